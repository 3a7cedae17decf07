"""Wikidata provider: representative image for an entity.

Reads the entity document and takes the first P18 ("image") claim, which
names a file on Wikimedia Commons.
"""

import re
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

WIKIDATA_ENTITY_URL = "https://www.wikidata.org/wiki/Special:EntityData/{qid}.json"
COMMONS_FILE_URL = "https://commons.wikimedia.org/wiki/Special:FilePath/{name}?width={width}"

IMAGE_PROPERTY = "P18"
COMMONS_WIDTH = 800

QID_RE = re.compile(r"^Q[0-9]+$")


def is_valid_qid(value: Optional[str]) -> bool:
    return bool(value) and bool(QID_RE.match(value))


def commons_file_url(filename: str, width: int = COMMONS_WIDTH) -> str:
    """Build a Commons URL that redirects to the (scaled) file."""
    name = filename.strip().replace(" ", "_")
    return COMMONS_FILE_URL.format(name=quote(name), width=width)


def extract_image_filename(entity_doc: Dict[str, Any], qid: str) -> Optional[str]:
    """Pull the P18 filename out of a Special:EntityData document."""
    entities = entity_doc.get("entities") or {}
    entity = entities.get(qid)
    if entity is None and len(entities) == 1:
        # Redirected entities come back under their new id
        entity = next(iter(entities.values()))
    if not isinstance(entity, dict):
        return None
    claims = (entity.get("claims") or {}).get(IMAGE_PROPERTY) or []
    for claim in claims:
        value = (((claim or {}).get("mainsnak") or {}).get("datavalue") or {}).get("value")
        if isinstance(value, str) and value.strip():
            return value
    return None


async def fetch_wikidata_image(
    session: aiohttp.ClientSession,
    qid: str,
    timeout: float = 6.0,
) -> Optional[str]:
    """Return a Commons image URL for a Wikidata id, or None.

    Raises:
        aiohttp.ClientError: On transport or HTTP errors
    """
    if not is_valid_qid(qid):
        return None
    url = WIKIDATA_ENTITY_URL.format(qid=qid)
    async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
        resp.raise_for_status()
        doc = await resp.json(content_type=None)
    if not isinstance(doc, dict):
        return None
    filename = extract_image_filename(doc, qid)
    return commons_file_url(filename) if filename else None
