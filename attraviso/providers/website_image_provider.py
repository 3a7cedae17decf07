"""Website image provider.

Finds a representative image for an attraction's own website: first from the
page's social-preview metadata, then by probing a few conventional hero-image
paths on the site's origin.
"""

import logging
from typing import Iterable, Optional
from urllib.parse import urljoin, urlsplit

import aiohttp
from bs4 import BeautifulSoup

from attraviso.providers.utils import read_limited

logger = logging.getLogger(__name__)

MAX_PAGE_BYTES = 1024 * 1024

# (tag, marker, attribute holding the URL), highest priority first
META_IMAGE_SOURCES = (
    ("meta", "og:image:secure_url", "content"),
    ("meta", "og:image", "content"),
    ("meta", "twitter:image", "content"),
    ("link", "image_src", "href"),
)

GUESSED_IMAGE_PATHS = (
    "/og-image.jpg",
    "/og-image.png",
    "/images/og-image.jpg",
    "/img/og-image.jpg",
    "/hero.jpg",
    "/images/hero.jpg",
)


def normalize_website(website: Optional[str]) -> Optional[str]:
    """Return an absolute http(s) URL for a website tag, or None."""
    if not website:
        return None
    website = website.strip()
    if "://" not in website:
        website = "https://" + website.lstrip("/")
    parts = urlsplit(website)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return website


def site_origin(website: str) -> str:
    parts = urlsplit(website)
    return f"{parts.scheme}://{parts.netloc}"


def _absolute(candidate: Optional[str], page_url: str) -> Optional[str]:
    if not candidate:
        return None
    candidate = candidate.strip()
    if not candidate or "undefined" in candidate.lower() or candidate.startswith("data:"):
        return None
    resolved = urljoin(page_url, candidate)
    parts = urlsplit(resolved)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return resolved


def _matches(element, tag: str, marker: str) -> bool:
    if tag == "meta":
        for attr in ("property", "name"):
            value = element.get(attr)
            if value and value.strip().lower() == marker:
                return True
        return False
    rel = element.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return marker in [r.lower() for r in rel]


def extract_meta_image(html: str, page_url: str) -> Optional[str]:
    """Find the highest priority metadata image in an HTML page.

    Relative URLs are resolved against `page_url`. Candidates containing
    the text "undefined" (a common templating leak) are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag, marker, url_attr in META_IMAGE_SOURCES:
        for element in soup.find_all(tag):
            if not _matches(element, tag, marker):
                continue
            url = _absolute(element.get(url_attr), page_url)
            if url:
                return url
    return None


async def scrape_site_image(
    session: aiohttp.ClientSession,
    website: str,
    timeout: float = 6.0,
) -> Optional[str]:
    """Fetch a website and return its metadata image URL, or None.

    Raises:
        aiohttp.ClientError: On transport or HTTP errors
    """
    async with session.get(
        website,
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers={"Accept": "text/html,application/xhtml+xml"},
    ) as resp:
        resp.raise_for_status()
        body = await read_limited(resp, MAX_PAGE_BYTES)
        page_url = str(resp.url)
        charset = resp.charset or "utf-8"
    try:
        html = body.decode(charset, errors="replace")
    except LookupError:
        html = body.decode("utf-8", errors="replace")
    return extract_meta_image(html, page_url)


async def probe_image(session: aiohttp.ClientSession, url: str, timeout: float = 6.0) -> bool:
    """Cheap existence check: 2xx with an image/* content type.

    The body is never downloaded or decoded.
    """
    async with session.head(url, timeout=aiohttp.ClientTimeout(total=timeout), allow_redirects=True) as resp:
        content_type = (resp.headers.get("Content-Type") or "").lower()
        return 200 <= resp.status < 300 and content_type.startswith("image/")


async def guess_site_image(
    session: aiohttp.ClientSession,
    website: str,
    timeout: float = 6.0,
    paths: Iterable[str] = GUESSED_IMAGE_PATHS,
) -> Optional[str]:
    """Probe conventional hero-image paths on the site origin.

    Probe failures are logged and skipped.
    """
    origin = site_origin(website)
    for path in paths:
        url = origin + path
        try:
            if await probe_image(session, url, timeout=timeout):
                return url
        except Exception as e:
            logger.debug("Image probe %s failed: %s", url, e)
    return None
