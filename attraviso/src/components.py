"""
Long-lived collaborators shared by every request.

They are built once per app, stored in `app.extensions`, and wired to the
shared HTTP session when the server starts.
"""

from dataclasses import dataclass, field
from typing import Optional

import aiohttp
from quart import current_app

from attraviso.config import Config
from attraviso.providers.caching import EnrichmentCache
from attraviso.providers.image_provider import ImageResolver
from attraviso.providers.overpass_provider import OverpassClient
from attraviso.services.image_proxy import ImageProxy
from attraviso.services.session_manager import SessionManager
from attraviso.services.url_guard import UrlGuard

EXTENSION_KEY = "attraviso"


@dataclass
class AppComponents:
    config: Config
    cache: EnrichmentCache
    overpass: OverpassClient
    resolver: ImageResolver
    proxy: ImageProxy
    sessions: SessionManager
    # enrichment tasks that outlived their request
    background: set = field(default_factory=set)

    @classmethod
    def from_config(cls, config: Config, cache: Optional[EnrichmentCache] = None) -> "AppComponents":
        timeouts = config.timeout_config
        cache = cache or EnrichmentCache(config.enrichment_config.cache_ttl)
        proxy_cfg = config.proxy_config
        return cls(
            config=config,
            cache=cache,
            overpass=OverpassClient(config.overpass_config.urls, timeout=timeouts.overpass),
            resolver=ImageResolver(cache, timeout=timeouts.enrichment_call),
            proxy=ImageProxy(
                UrlGuard(proxy_cfg.allowed_hosts),
                max_redirects=proxy_cfg.max_redirects,
                max_bytes=proxy_cfg.max_bytes,
                timeout=timeouts.proxy_hop,
                default_quality=proxy_cfg.default_quality,
            ),
            sessions=SessionManager(timeout=timeouts.overpass + 10),
        )

    def attach_session(self, session: Optional[aiohttp.ClientSession]) -> None:
        """Hand the shared session to the Overpass client and the image resolver.

        The image proxy opens its own pinned connection for every hop.
        """
        self.overpass.session = session
        self.resolver.session = session


def get_components() -> AppComponents:
    return current_app.extensions[EXTENSION_KEY]
