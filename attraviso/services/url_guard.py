"""
SSRF guard for outbound image fetches.

A URL is only fetched when its scheme is http(s), its host passes the
allowlist policy and every address the host resolves to is public. The image
proxy runs this check again for every redirect target.
"""

import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

from aiohttp.abc import AbstractResolver

from attraviso.services.errors import BlockedAddress, HostNotAllowed, ImageFetchError, InvalidImageUrl

logger = logging.getLogger(__name__)

Resolver = Callable[[str, int], Awaitable[List[str]]]

BLOCKED_NETWORKS = tuple(ipaddress.ip_network(n) for n in (
    "0.0.0.0/8",
    "10.0.0.0/8",
    "100.64.0.0/10",      # carrier-grade NAT
    "127.0.0.0/8",
    "169.254.0.0/16",
    "172.16.0.0/12",
    "192.0.0.0/24",
    "192.168.0.0/16",
    "198.18.0.0/15",
    "224.0.0.0/4",
    "240.0.0.0/4",
    "::/128",
    "::1/128",
    "fc00::/7",
    "fe80::/10",
    "ff00::/8",
))


@dataclass(frozen=True)
class ValidatedTarget:
    url: str
    host: str
    port: int
    addresses: Tuple[str, ...]


def is_public_address(address: str) -> bool:
    """True when an IP address is safe to connect to from the server."""
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    if ip.version == 6 and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    for net in BLOCKED_NETWORKS:
        if net.version == ip.version and ip in net:
            return False
    return not (
        ip.is_loopback
        or ip.is_link_local
        or ip.is_private
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


async def system_resolve(host: str, port: int) -> List[str]:
    """Resolve a host name with the event loop's getaddrinfo."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return sorted({info[4][0] for info in infos})


class PinnedResolver(AbstractResolver):
    """Answers only for one validated host, and only with its validated addresses.

    Installed on the connector of each proxy hop so the socket is opened to
    exactly the address the guard checked. Any other host name is refused.
    """

    def __init__(self, host: str, addresses: Iterable[str]):
        self.host = host.lower().rstrip(".")
        self.addresses = tuple(addresses)

    async def resolve(self, host: str, port: int = 0, family: int = socket.AF_INET) -> List[Dict[str, Any]]:
        if host.lower().rstrip(".") != self.host:
            raise OSError(f"Refusing to resolve unvalidated host {host}")
        results = []
        for address in self.addresses:
            ip_family = socket.AF_INET6 if ipaddress.ip_address(address).version == 6 else socket.AF_INET
            if family not in (socket.AF_UNSPEC, ip_family):
                continue
            results.append({
                "hostname": host,
                "host": address,
                "port": port,
                "family": ip_family,
                "proto": 0,
                "flags": socket.AI_NUMERICHOST,
            })
        if not results:
            raise OSError(f"No validated address for {host}")
        return results

    async def close(self) -> None:
        pass


def host_allowed(host: str, allowed_hosts: Optional[Iterable[str]]) -> bool:
    """Allowlist policy: empty or `*` permits everything, otherwise exact match."""
    allowed = [h.strip().lower() for h in (allowed_hosts or []) if h and h.strip()]
    if not allowed or "*" in allowed:
        return True
    return host.lower() in allowed


class UrlGuard:
    """Validates proxy targets before any byte is fetched."""

    def __init__(self, allowed_hosts: Optional[Iterable[str]] = None, resolver: Optional[Resolver] = None):
        self.allowed_hosts = list(allowed_hosts or [])
        self._resolve = resolver or system_resolve

    async def validate(self, url: str) -> ValidatedTarget:
        """Check a URL and return its resolved target.

        Raises:
            InvalidImageUrl: Unparsable URL, unsupported scheme or missing host
            HostNotAllowed: Host is not on the allowlist
            BlockedAddress: Host resolves to any non-public address
            ImageFetchError: Host name could not be resolved
        """
        if not url or not isinstance(url, str):
            raise InvalidImageUrl("Missing image URL")
        try:
            parts = urlsplit(url.strip())
            port = parts.port
        except ValueError as e:
            raise InvalidImageUrl(f"Malformed URL: {e}")

        scheme = (parts.scheme or "").lower()
        if scheme not in ("http", "https"):
            raise InvalidImageUrl(f"Unsupported URL scheme: {scheme or 'none'}")
        host = parts.hostname
        if not host:
            raise InvalidImageUrl("URL has no host")
        if port is None:
            port = 443 if scheme == "https" else 80

        if not host_allowed(host, self.allowed_hosts):
            raise HostNotAllowed(f"Host not permitted: {host}")

        try:
            addresses = [str(ipaddress.ip_address(host))]
        except ValueError:
            try:
                addresses = await self._resolve(host, port)
            except (OSError, UnicodeError) as e:
                raise ImageFetchError(f"Could not resolve {host}: {e}")

        if not addresses:
            raise ImageFetchError(f"Could not resolve {host}")
        blocked = [a for a in addresses if not is_public_address(a)]
        if blocked:
            logger.warning("Blocked image fetch to %s (%s)", host, ", ".join(blocked))
            raise BlockedAddress(f"Host resolves to a non-public address: {host}")

        return ValidatedTarget(url=url.strip(), host=host, port=port, addresses=tuple(addresses))
