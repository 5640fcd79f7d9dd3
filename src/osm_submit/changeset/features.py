"""Narrow view of elements returned by a nearby-feature lookup.

The lookup service itself is external; callers hand over its raw elements
(``{"type", "id", "lat", "lon", "center", "tags"}``) and only the fields read
here are kept.  Used to pre-fill a submission from an existing place instead of
creating a duplicate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final, Mapping

from osm_submit.changeset.models import PointOfInterest

# Tags carried over into an edit form
FORM_TAGS: Final[tuple[str, ...]] = (
    "name",
    "amenity",
    "cuisine",
    "phone",
    "website",
    "opening_hours",
    "addr:street",
    "addr:housenumber",
    "addr:city",
    "addr:postcode",
    "wheelchair",
)


@dataclass(frozen=True, slots=True)
class NearbyFeature:
    type: str
    id: int
    lat: float
    lon: float
    tags: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_element(cls, element: Mapping[str, Any]) -> "NearbyFeature":
        """Build from a raw lookup element.

        Nodes carry ``lat``/``lon``; ways and relations carry a ``center``.

        Raises
        ------
        ValueError
            If the element has no usable coordinates.
        """
        kind = str(element.get("type", "node"))
        if kind == "node":
            lat, lon = element.get("lat"), element.get("lon")
        else:
            center = element.get("center") or {}
            lat, lon = center.get("lat"), center.get("lon")
        if lat is None or lon is None:
            raise ValueError(f"element {element.get('id')} has no coordinates")
        return cls(
            type=kind,
            id=int(element["id"]),
            lat=float(lat),
            lon=float(lon),
            tags=dict(element.get("tags") or {}),
        )


def poi_from_feature(feature: NearbyFeature) -> PointOfInterest:
    """Return a submission pre-filled from *feature*; ``amenity`` falls back to ``shop``."""
    tags: dict[str, str | None] = {key: feature.tags.get(key) for key in FORM_TAGS}
    tags["name"] = feature.tags.get("name") or ""
    tags["amenity"] = feature.tags.get("amenity") or feature.tags.get("shop") or ""
    return PointOfInterest(lat=feature.lat, lon=feature.lon, tags=tags)


def feature_display_name(feature: NearbyFeature) -> str:
    name = feature.tags.get("name")
    amenity = feature.tags.get("amenity") or feature.tags.get("shop")
    if name and amenity:
        return f"{name} ({amenity})"
    if name:
        return name
    if amenity:
        return amenity.replace("_", " ")
    return f"POI #{feature.id}"
