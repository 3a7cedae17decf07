"""
Session management for proper resource handling and connection pooling.

One SessionManager is created per app and shared by the Overpass client,
the image resolver and the image proxy, so every outbound call goes through
the same connection pool.
"""

import asyncio
import aiohttp
from typing import Optional

from attraviso.providers.utils import USER_AGENT


class SessionManager:
    """Owns the shared aiohttp ClientSession for the lifetime of the app."""

    def __init__(self, timeout: float = 30.0, limit: int = 100, limit_per_host: int = 20):
        self._session: Optional[aiohttp.ClientSession] = None
        self._lock = asyncio.Lock()
        self._timeout = timeout
        self._limit = limit
        self._limit_per_host = limit_per_host

    async def get_session(self) -> aiohttp.ClientSession:
        """Get the shared HTTP session, creating it if necessary.

        Uses a lock to prevent race conditions when multiple coroutines
        try to create the session simultaneously.
        """
        async with self._lock:
            if self._session is None or self._session.closed:
                self._session = self._create_session()
            return self._session

    def _create_session(self) -> aiohttp.ClientSession:
        timeout = aiohttp.ClientTimeout(total=self._timeout)

        connector = aiohttp.TCPConnector(
            limit=self._limit,
            limit_per_host=self._limit_per_host,
            enable_cleanup_closed=True,
            ttl_dns_cache=300,
        )

        return aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            headers={
                'User-Agent': USER_AGENT,
                'Accept-Language': 'en-US,en;q=0.9',
            }
        )

    async def close(self):
        """Close the shared session and clean up resources."""
        async with self._lock:
            if self._session and not self._session.closed:
                await self._session.close()
            self._session = None
