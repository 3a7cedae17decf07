"""
Canonical attraction record produced from Overpass elements.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


# OSM tag key -> AttractionTags field. Anything not listed is discarded.
TAG_FIELDS = {
    "tourism": "tourism",
    "historic": "historic",
    "attraction": "attraction",
    "wikidata": "wikidata",
    "wikipedia": "wikipedia",
    "opening_hours": "opening_hours",
    "addr:city": "addr_city",
    "addr:street": "addr_street",
    "addr:housenumber": "addr_housenumber",
}


@dataclass
class AttractionTags:
    """The subset of source tags kept on a record."""
    tourism: Optional[str] = None
    historic: Optional[str] = None
    attraction: Optional[str] = None
    website: Optional[str] = None
    wikidata: Optional[str] = None
    wikipedia: Optional[str] = None
    opening_hours: Optional[str] = None
    addr_city: Optional[str] = None
    addr_street: Optional[str] = None
    addr_housenumber: Optional[str] = None

    @classmethod
    def from_osm(cls, tags: Dict[str, Any]) -> "AttractionTags":
        """Pick the recognized keys out of a raw OSM tag dict."""
        values = {}
        for key, attr in TAG_FIELDS.items():
            value = _clean(tags.get(key))
            if value is not None:
                values[attr] = value
        # `url` is the older spelling of `website`
        values["website"] = _clean(tags.get("website")) or _clean(tags.get("url"))
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        """Set fields only, keyed by field name (`opening_hours`, `addr_city`, ...)."""
        return {name: value for name, value in asdict(self).items() if value is not None}


@dataclass
class Attraction:
    """A point of interest near the requested coordinate.

    `image_url` starts empty and is filled at most once by enrichment.
    """
    id: str
    name: str
    category: str
    latitude: float
    longitude: float
    tags: AttractionTags = field(default_factory=AttractionTags)
    image_url: Optional[str] = None
    distance_m: Optional[float] = None

    def set_image(self, url: Optional[str]) -> bool:
        """Attach an image URL unless one is already set.

        Returns:
            True if the record was updated
        """
        if self.image_url or not url:
            return False
        self.image_url = url
        return True

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "tags": self.tags.to_dict(),
        }
        if self.image_url:
            out["imageUrl"] = self.image_url
        if self.distance_m is not None:
            out["distanceMeters"] = round(self.distance_m, 1)
        return out


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
