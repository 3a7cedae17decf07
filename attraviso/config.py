"""
Centralized configuration management with validation and type conversion.

All tunables are read from environment variables once, converted to the
right type and grouped into small dataclasses. A `.env` file next to the
working directory is loaded first when present.
"""

import os
import logging
from typing import Optional, List
from dataclasses import dataclass, field

from dotenv import load_dotenv


DEFAULT_OVERPASS_URLS = [
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
    "https://overpass.openstreetmap.ru/api/interpreter",
]


@dataclass
class TimeoutConfig:
    """Timeouts (seconds) for outbound calls."""
    overpass: float = 25.0
    enrichment_call: float = 6.0
    enrichment_total: float = 12.0
    proxy_hop: float = 10.0


@dataclass
class OverpassConfig:
    """Geodata backend configuration."""
    urls: List[str] = field(default_factory=lambda: list(DEFAULT_OVERPASS_URLS))
    max_results: int = 300


@dataclass
class EnrichmentConfig:
    """Image enrichment configuration."""
    concurrency: int = 6
    max_items: int = 40
    cache_ttl: int = 86400  # 24 hours


@dataclass
class ProxyConfig:
    """Image proxy configuration."""
    allowed_hosts: List[str] = field(default_factory=list)
    max_redirects: int = 3
    max_bytes: int = 8 * 1024 * 1024  # 8MB
    default_quality: int = 75


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Config:
    """Centralized configuration with validation and type conversion."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.debug = self._get_bool("DEBUG", False)
        self.port = self._get_int("PORT", 5000)
        self.cors_origins = self._get_list("CORS_ORIGINS", ["*"])

        self.timeout_config = TimeoutConfig(
            overpass=self._get_float("OVERPASS_TIMEOUT", 25.0),
            enrichment_call=self._get_float("ENRICH_CALL_TIMEOUT", 6.0),
            enrichment_total=self._get_float("ENRICH_TIMEOUT", 12.0),
            proxy_hop=self._get_float("IMAGE_PROXY_TIMEOUT", 10.0),
        )

        self.overpass_config = OverpassConfig(
            urls=self._get_list("OVERPASS_URLS", list(DEFAULT_OVERPASS_URLS)),
            max_results=self._get_int("ATTRACTIONS_MAX_RESULTS", 300),
        )

        self.enrichment_config = EnrichmentConfig(
            concurrency=self._get_int("ENRICH_CONCURRENCY", 6),
            max_items=self._get_int("ENRICH_MAX_ITEMS", 40),
            cache_ttl=self._get_int("IMAGE_CACHE_TTL", 86400),
        )

        self.proxy_config = ProxyConfig(
            allowed_hosts=self._get_list("IMAGE_PROXY_ALLOWED_HOSTS", []),
            max_redirects=self._get_int("IMAGE_PROXY_MAX_REDIRECTS", 3),
            max_bytes=self._get_int("IMAGE_PROXY_MAX_BYTES", 8 * 1024 * 1024),
            default_quality=self._get_int("IMAGE_PROXY_DEFAULT_QUALITY", 75),
        )

        self.logging_config = LoggingConfig(
            level=self._get_str("LOG_LEVEL", "INFO"),
            format=self._get_str("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        )

        self._validate()

    def _get_str(self, key: str, default: str) -> str:
        return os.getenv(key, default)

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable with default.

        Raises:
            ValueError: If value cannot be converted to int
        """
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Invalid integer for {key}: {value}")

    def _get_float(self, key: str, default: float) -> float:
        """Get float environment variable with default.

        Raises:
            ValueError: If value cannot be converted to float
        """
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"Invalid float for {key}: {value}")

    def _get_bool(self, key: str, default: bool) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ('1', 'true', 'yes', 'on')

    def _get_list(self, key: str, default: list) -> list:
        """Get comma separated list environment variable with default."""
        value = os.getenv(key)
        if value is None:
            return default
        return [item.strip() for item in value.split(',') if item.strip()]

    def _validate(self):
        """Validate configuration values."""
        for attr_name in ['overpass', 'enrichment_call', 'enrichment_total', 'proxy_hop']:
            timeout = getattr(self.timeout_config, attr_name)
            if timeout <= 0:
                raise ValueError(f"Invalid timeout for {attr_name}: {timeout}")

        if self.enrichment_config.concurrency < 1:
            raise ValueError(f"Invalid enrichment concurrency: {self.enrichment_config.concurrency}")
        if self.enrichment_config.max_items < 0:
            raise ValueError(f"Invalid enrichment item cap: {self.enrichment_config.max_items}")
        if self.enrichment_config.cache_ttl <= 0:
            raise ValueError(f"Invalid image cache TTL: {self.enrichment_config.cache_ttl}")
        if self.proxy_config.max_redirects < 0:
            raise ValueError(f"Invalid max redirects: {self.proxy_config.max_redirects}")
        if self.proxy_config.max_bytes <= 0:
            raise ValueError(f"Invalid proxy byte ceiling: {self.proxy_config.max_bytes}")

        if not self.overpass_config.urls:
            logging.getLogger(__name__).warning("OVERPASS_URLS is empty - attraction lookups will fail")


_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance, loading it on first use.

    Returns:
        Configuration instance
    """
    global _config
    if _config is None:
        load_dotenv()
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
