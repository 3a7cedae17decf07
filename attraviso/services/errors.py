"""
Image proxy failures.

Each validation stage has its own exception so the route can answer with a
distinct status and error code. None of them is ever turned into a success.
"""

from typing import Optional, Dict

from attraviso.providers.base import ProviderError


class ImageProxyError(ProviderError):
    """Base class for image proxy failures."""
    status_code = 502
    code = "image_proxy_failed"

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, provider_name="image_proxy", details=details)


class InvalidImageUrl(ImageProxyError):
    """Missing, unparsable or non-http(s) target URL, or bad parameters."""
    status_code = 400
    code = "invalid_url"


class HostNotAllowed(ImageProxyError):
    """Target host is not on the configured allowlist."""
    status_code = 403
    code = "host_not_allowed"


class BlockedAddress(ImageProxyError):
    """Target host resolves to a private, loopback or otherwise internal address."""
    status_code = 403
    code = "blocked_address"


class TooManyRedirects(ImageProxyError):
    status_code = 502
    code = "too_many_redirects"


class PayloadTooLarge(ImageProxyError):
    status_code = 413
    code = "payload_too_large"


class UnsupportedContent(ImageProxyError):
    """Upstream answered with something that is not an image."""
    status_code = 415
    code = "unsupported_content"


class ImageFetchError(ImageProxyError):
    """Transport failure, DNS failure or non-2xx upstream status."""
    status_code = 502
    code = "upstream_fetch_failed"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message, details={"upstream_status": upstream_status})
        self.upstream_status = upstream_status


class TranscodeError(ImageProxyError):
    """Image bytes could not be decoded or re-encoded."""
    status_code = 502
    code = "transcode_failed"
