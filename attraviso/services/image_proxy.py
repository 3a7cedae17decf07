"""
Image proxy: fetch an arbitrary image URL safely and optionally resize it.

Flow per request: validate -> fetch -> (redirect -> validate -> fetch)* ->
deliver. Redirects are never followed by the HTTP client; each Location is
validated by the UrlGuard before it is requested, and the connection for
each hop can only reach the addresses the guard approved. Resizing happens in a
worker thread with Pillow and always produces WebP.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from io import BytesIO
from typing import Any, AsyncContextManager, Callable, Dict, Optional
from urllib.parse import urljoin

import aiohttp
from PIL import Image, ImageOps

from attraviso.providers.utils import USER_AGENT, BodyTooLarge, read_limited
from attraviso.services.errors import (
    ImageFetchError,
    InvalidImageUrl,
    PayloadTooLarge,
    TooManyRedirects,
    TranscodeError,
    UnsupportedContent,
)
from attraviso.services.url_guard import PinnedResolver, UrlGuard, ValidatedTarget
from attraviso.utils.async_utils import first_of

logger = logging.getLogger(__name__)

MIN_WIDTH = 16
MAX_WIDTH = 2048
MIN_QUALITY = 30
MAX_QUALITY = 95

OUTPUT_FORMAT = "WEBP"
OUTPUT_CONTENT_TYPE = "image/webp"


@dataclass
class ProxiedImage:
    body: bytes
    content_type: str


def parse_width(value: Any) -> Optional[int]:
    """Parse the optional target width, clamped to [MIN_WIDTH, MAX_WIDTH]."""
    if value is None or value == "":
        return None
    try:
        width = int(float(value))
    except (TypeError, ValueError):
        raise InvalidImageUrl(f"Invalid width: {value}")
    if width <= 0:
        raise InvalidImageUrl(f"Invalid width: {value}")
    return max(MIN_WIDTH, min(width, MAX_WIDTH))


def parse_quality(value: Any, default: int = 75) -> int:
    """Parse the optional encoder quality, clamped to [MIN_QUALITY, MAX_QUALITY]."""
    if value is None or value == "":
        quality = default
    else:
        try:
            quality = int(float(value))
        except (TypeError, ValueError):
            raise InvalidImageUrl(f"Invalid quality: {value}")
    return max(MIN_QUALITY, min(quality, MAX_QUALITY))


def transcode(data: bytes, width: int, quality: int) -> bytes:
    """Downscale to `width` (never upscaling, aspect preserved) and encode as WebP.

    Raises:
        TranscodeError: If the bytes cannot be decoded or encoded
    """
    try:
        with Image.open(BytesIO(data)) as source:
            img = ImageOps.exif_transpose(source)
            if img.mode not in ("RGB", "RGBA"):
                has_alpha = "A" in img.getbands() or "transparency" in img.info
                img = img.convert("RGBA" if has_alpha else "RGB")
            if img.width > width:
                height = max(1, round(img.height * width / img.width))
                img = img.resize((width, height), Image.Resampling.LANCZOS)
            out = BytesIO()
            img.save(out, format=OUTPUT_FORMAT, quality=quality)
            return out.getvalue()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise TranscodeError(f"Could not transcode image: {e}")


@dataclass
class _Upstream:
    body: bytes
    content_type: str
    url: str


@asynccontextmanager
async def pinned_session(target: ValidatedTarget):
    """Short-lived session whose connector can only reach `target.addresses`.

    The host name is never looked up again, so a DNS answer that changes
    after validation cannot redirect the connection.
    """
    connector = aiohttp.TCPConnector(resolver=PinnedResolver(target.host, target.addresses))
    async with aiohttp.ClientSession(connector=connector, headers={"User-Agent": USER_AGENT}) as session:
        yield session


class ImageProxy:
    """Fetches validated images on behalf of the browser."""

    def __init__(
        self,
        guard: UrlGuard,
        session_factory: Callable[[ValidatedTarget], AsyncContextManager[aiohttp.ClientSession]] = pinned_session,
        max_redirects: int = 3,
        max_bytes: int = 8 * 1024 * 1024,
        timeout: float = 10.0,
        default_quality: int = 75,
    ):
        self.guard = guard
        self.session_factory = session_factory
        self.max_redirects = max_redirects
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.default_quality = default_quality

    async def fetch(self, url: str, width: Any = None, quality: Any = None) -> ProxiedImage:
        """Fetch `url` and return the image, resized when a width is given.

        Raises:
            ImageProxyError: A subclass naming the stage that failed
        """
        target_width = parse_width(width)
        target_quality = parse_quality(quality, self.default_quality)

        upstream = await self._follow(url)

        if target_width is None:
            return ProxiedImage(body=upstream.body, content_type=upstream.content_type)

        loop = asyncio.get_running_loop()
        body = await loop.run_in_executor(None, transcode, upstream.body, target_width, target_quality)
        return ProxiedImage(body=body, content_type=OUTPUT_CONTENT_TYPE)

    async def _follow(self, url: str) -> _Upstream:
        state: Dict[str, Any] = {"url": url}

        def hops():
            # initial request plus at most max_redirects redirect targets
            for _ in range(self.max_redirects + 1):
                yield lambda: self._hop(state)

        # Any failure aborts the whole request, so nothing is caught here
        upstream = await first_of(hops(), catch=())
        if upstream is None:
            logger.warning("Image proxy gave up after %d redirects: %s", self.max_redirects, url)
            raise TooManyRedirects(f"More than {self.max_redirects} redirects")
        return upstream

    async def _hop(self, state: Dict[str, Any]) -> Optional[_Upstream]:
        """Validate and fetch the current target.

        Returns None after recording the next target when the response is a
        redirect.
        """
        target = await self.guard.validate(state["url"])
        try:
            async with self.session_factory(target) as session:
                async with session.get(
                    target.url,
                    allow_redirects=False,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if 300 <= resp.status < 400:
                        location = resp.headers.get("Location")
                        if not location:
                            raise ImageFetchError(
                                f"Redirect without Location from {target.host}", upstream_status=resp.status
                            )
                        state["url"] = urljoin(target.url, location)
                        return None
                    if not 200 <= resp.status < 300:
                        raise ImageFetchError(
                            f"Upstream returned status {resp.status}", upstream_status=resp.status
                        )
                    content_type = (resp.headers.get("Content-Type") or "").strip()
                    if not content_type.lower().startswith("image/"):
                        raise UnsupportedContent(f"Upstream content type is not an image: {content_type or 'none'}")
                    body = await read_limited(resp, self.max_bytes)
        except BodyTooLarge as e:
            raise PayloadTooLarge(str(e))
        except asyncio.TimeoutError:
            raise ImageFetchError(f"Timed out fetching from {target.host}")
        except aiohttp.ClientError as e:
            raise ImageFetchError(f"Fetch from {target.host} failed: {e}")

        return _Upstream(body=body, content_type=content_type, url=target.url)
