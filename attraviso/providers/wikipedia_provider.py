"""Wikipedia provider: page thumbnail for an OSM `wikipedia=lang:Title` tag."""

import re
from typing import Optional, Tuple

import aiohttp

WIKIPEDIA_API_URL = "https://{lang}.wikipedia.org/w/api.php"
THUMBNAIL_WIDTH = 640

_REF_RE = re.compile(r"^([a-z][a-z0-9-]{1,15}):(.+)$")


def parse_wikipedia_ref(value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split `en:Tower of London` into ("en", "Tower of London")."""
    if not value:
        return None
    m = _REF_RE.match(value.strip())
    if not m:
        return None
    title = m.group(2).strip()
    if not title:
        return None
    return m.group(1), title


async def fetch_wikipedia_thumbnail(
    session: aiohttp.ClientSession,
    lang: str,
    title: str,
    timeout: float = 6.0,
    width: int = THUMBNAIL_WIDTH,
) -> Optional[str]:
    """Return the page image thumbnail URL at a fixed width, or None.

    Raises:
        aiohttp.ClientError: On transport or HTTP errors
    """
    params = {
        "action": "query",
        "format": "json",
        "prop": "pageimages",
        "piprop": "thumbnail",
        "pithumbsize": str(width),
        "redirects": "1",
        "titles": title,
    }
    url = WIKIPEDIA_API_URL.format(lang=lang)
    async with session.get(url, params=params, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
        resp.raise_for_status()
        data = await resp.json(content_type=None)

    pages = ((data or {}).get("query") or {}).get("pages") or {}
    for page in pages.values():
        source = ((page or {}).get("thumbnail") or {}).get("source")
        if source:
            return source
    return None
