"""
Provider error types.

Every provider raises a subclass of ProviderError so route handlers can
translate failures into responses without knowing which backend failed.
"""

from typing import Optional, Dict


class ProviderError(Exception):
    """Base exception for provider errors."""

    def __init__(self, message: str, provider_name: Optional[str] = None, details: Optional[Dict] = None):
        """Initialize provider error.

        Args:
            message: Error message
            provider_name: Name of the provider that failed
            details: Additional error details
        """
        super().__init__(message)
        self.provider_name = provider_name
        self.details = details or {}
