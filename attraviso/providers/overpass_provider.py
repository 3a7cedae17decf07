"""Overpass provider: query building, endpoint failover and element normalization.

The Overpass endpoints are interchangeable mirrors. They are tried one after
another and the first successful response wins; nothing is raced in
parallel.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence
import asyncio
import logging
import math

import aiohttp

from attraviso.models import Attraction, AttractionTags
from attraviso.providers.base import ProviderError
from attraviso.providers.utils import get_session
from attraviso.utils.async_utils import first_of
from attraviso.utils.geo import haversine_m

logger = logging.getLogger(__name__)

MIN_RADIUS_M = 100
MAX_RADIUS_M = 200000
DEFAULT_RADIUS_M = 2000

# tourism=* values worth showing; every historic=* element is included as well
TOURISM_VALUES = (
    "attraction",
    "museum",
    "gallery",
    "artwork",
    "viewpoint",
    "zoo",
    "theme_park",
    "aquarium",
)

# (max radius, query timeout seconds, result cap). Wider searches get more
# time on the server but fewer results back.
RADIUS_STEPS = (
    (5000, 25, 500),
    (20000, 40, 400),
    (50000, 60, 300),
)
WIDEST_STEP = (90, 200)

# First present tag wins
CATEGORY_KEYS = ("tourism", "historic")
DEFAULT_CATEGORY = "attraction"

DEFAULT_MAX_RESULTS = 300


class OverpassError(ProviderError):
    """Raised when an Overpass endpoint (or all of them) fails."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message, provider_name="overpass", details={"status": status, "url": url})
        self.status = status
        self.url = url


@dataclass(frozen=True)
class OverpassQuery:
    """A ready-to-send Overpass QL query and the parameters it was built from."""
    text: str
    radius: int
    timeout: int
    limit: int


def clamp_radius(radius: Any) -> int:
    """Coerce a requested radius into the supported range.

    Missing or non-numeric input falls back to DEFAULT_RADIUS_M.
    """
    try:
        value = float(radius)
    except (TypeError, ValueError):
        value = float(DEFAULT_RADIUS_M)
    if math.isnan(value):
        value = float(DEFAULT_RADIUS_M)
    value = max(MIN_RADIUS_M, min(value, MAX_RADIUS_M))
    return int(round(value))


def radius_budget(radius: int):
    """Return (timeout seconds, result cap) for an already clamped radius."""
    for max_radius, timeout, limit in RADIUS_STEPS:
        if radius <= max_radius:
            return timeout, limit
    return WIDEST_STEP


def build_overpass_query(lat: float, lon: float, radius: Any = None) -> OverpassQuery:
    """Build the Overpass QL query for attractions around a coordinate.

    Args:
        lat: Latitude of the search center
        lon: Longitude of the search center
        radius: Requested radius in meters (clamped to [100, 200000])

    Returns:
        OverpassQuery carrying the query text and the effective parameters
    """
    r = clamp_radius(radius)
    timeout, limit = radius_budget(r)
    lat = float(lat)
    lon = float(lon)
    around = f"(around:{r},{lat},{lon})"
    tourism = "|".join(TOURISM_VALUES)

    lines = []
    for kind in ("node", "way", "relation"):
        lines.append(f'  {kind}["tourism"~"^({tourism})$"]{around};')
    for kind in ("node", "way", "relation"):
        lines.append(f'  {kind}["historic"]{around};')

    text = (
        f"[out:json][timeout:{timeout}];\n"
        "(\n"
        + "\n".join(lines)
        + "\n);\n"
        f"out center {limit};\n"
    )
    return OverpassQuery(text=text, radius=r, timeout=timeout, limit=limit)


class OverpassClient:
    """Sends queries to an ordered list of Overpass mirrors."""

    def __init__(
        self,
        urls: Sequence[str],
        timeout: float = 25.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.urls = list(urls)
        self.timeout = timeout
        self.session = session

    async def fetch(self, query: OverpassQuery) -> Dict[str, Any]:
        """Return the decoded payload from the first endpoint that answers.

        Raises:
            OverpassError: The last endpoint's failure once every endpoint
                has failed, or a generic error when no endpoint is configured
        """
        async with get_session(self.session) as session:
            def attempts():
                for url in self.urls:
                    yield lambda url=url: self._post(session, url, query)

            def log_failure(index: int, exc: BaseException):
                logger.warning("Overpass endpoint %s failed: %s", self.urls[index], exc)

            payload = await first_of(
                attempts(),
                catch=(OverpassError,),
                reraise=True,
                on_error=log_failure,
            )

        if payload is None:
            raise OverpassError("All Overpass endpoints failed")
        return payload

    async def _post(self, session, url: str, query: OverpassQuery) -> Dict[str, Any]:
        # Client-side budget a little above the server-side [timeout:N]
        timeout = aiohttp.ClientTimeout(total=max(self.timeout, query.timeout + 5))
        try:
            async with session.post(url, data={"data": query.text}, timeout=timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise OverpassError(f"{url} returned status {resp.status}", status=resp.status, url=url)
                payload = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise OverpassError(f"{url} timed out", url=url) from e
        except aiohttp.ClientError as e:
            raise OverpassError(f"{url} request failed: {e}", url=url) from e
        except ValueError as e:
            raise OverpassError(f"{url} returned invalid JSON", url=url) from e

        if not isinstance(payload, dict):
            raise OverpassError(f"{url} returned an unexpected payload", url=url)
        return payload


def _coord(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def has_location(element: Dict[str, Any]) -> bool:
    """Nodes need lat/lon; ways and relations need a center."""
    if element.get("type") == "node":
        return element.get("lat") is not None and element.get("lon") is not None
    return isinstance(element.get("center"), dict)


def normalize_element(element: Dict[str, Any]) -> Attraction:
    """Map one raw Overpass element to an Attraction.

    Ways and relations use the center Overpass computed (`out center`),
    never a locally computed centroid.
    """
    tags = element.get("tags") or {}
    kind = element.get("type")

    if kind in ("way", "relation") and isinstance(element.get("center"), dict):
        lat = _coord(element["center"].get("lat"))
        lon = _coord(element["center"].get("lon"))
    else:
        lat = _coord(element.get("lat"))
        lon = _coord(element.get("lon"))

    category = DEFAULT_CATEGORY
    for key in CATEGORY_KEYS:
        value = (tags.get(key) or "").strip()
        if value:
            category = value
            break

    name = (tags.get("name") or tags.get("name:en") or "").strip() or category

    return Attraction(
        id=f"{kind}/{element.get('id')}",
        name=name,
        category=category,
        latitude=lat,
        longitude=lon,
        tags=AttractionTags.from_osm(tags),
    )


def normalize_elements(
    elements: Iterable[Dict[str, Any]],
    max_results: int = DEFAULT_MAX_RESULTS,
    origin: Optional[tuple] = None,
) -> List[Attraction]:
    """Normalize, drop records without usable coordinates and cap the list.

    Order is preserved. When `origin` (lat, lon) is given each record gets
    its distance from it.
    """
    out: List[Attraction] = []
    for element in elements:
        if not isinstance(element, dict) or not has_location(element):
            continue
        record = normalize_element(element)
        if record.latitude is None or record.longitude is None:
            continue
        if origin is not None:
            record.distance_m = haversine_m(origin[0], origin[1], record.latitude, record.longitude)
        out.append(record)
        if len(out) >= max_results:
            break
    return out


async def discover_attractions(
    client: OverpassClient,
    lat: float,
    lon: float,
    radius: Any = None,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> List[Attraction]:
    """Query Overpass around a coordinate and return normalized attractions."""
    query = build_overpass_query(lat, lon, radius)
    logger.info("Overpass lookup lat=%s lon=%s radius=%s", lat, lon, query.radius)
    payload = await client.fetch(query)
    elements = payload.get("elements")
    if not isinstance(elements, list):
        elements = []
    return normalize_elements(elements, max_results=max_results, origin=(float(lat), float(lon)))
