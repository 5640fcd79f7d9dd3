"""Wire formats of a point of interest.

* :func:`to_osm_xml` – the OSM API 0.6 node document uploaded to
  ``/node/create``.
* :func:`to_osm_json` – a JSON rendition used for previews.
* :func:`to_changeset_xml` – the document opening a changeset.

All functions are pure: identical input gives byte-identical output.
"""

from __future__ import annotations

import json
from typing import Final, Mapping
from xml.sax.saxutils import escape

from osm_submit.changeset.models import PointOfInterest
from osm_submit.utils.environment import DEFAULT_CREATED_BY

GENERATOR: Final[str] = "OSM Submit"
COORD_DECIMALS: Final[int] = 7

# ``escape`` covers & < > by itself
_ATTR_ENTITIES: Final[dict[str, str]] = {"'": "&apos;", '"': "&quot;"}


def escape_xml(value: str) -> str:
    """Escape the five XML-reserved characters."""
    return escape(value, _ATTR_ENTITIES)


def format_coordinate(value: float) -> str:
    """Render degrees with at most seven decimals, trailing zeros dropped.

    >>> format_coordinate(40.712800)
    '40.7128'
    >>> format_coordinate(-74.006)
    '-74.006'
    """
    text = f"{value:.{COORD_DECIMALS}f}".rstrip("0").rstrip(".")
    if text in ("-0", "", "-"):
        return "0"
    return text


def filter_tags(tags: Mapping[str, str | None]) -> dict[str, str]:
    """Drop entries whose value is missing or whitespace-only."""
    return {k: v for k, v in tags.items() if v is not None and v.strip() != ""}


def to_osm_xml(poi: PointOfInterest, changeset_id: str) -> str:
    """Return the node-create document for *poi* inside *changeset_id*."""
    tag_lines = "".join(
        f'    <tag k="{escape_xml(k)}" v="{escape_xml(v)}"/>\n'
        for k, v in filter_tags(poi.tags).items()
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<osm version="0.6" generator="{GENERATOR}">\n'
        f'  <node changeset="{escape_xml(str(changeset_id))}" '
        f'lat="{format_coordinate(poi.lat)}" lon="{format_coordinate(poi.lon)}">\n'
        f"{tag_lines}"
        "  </node>\n"
        "</osm>"
    )


def to_osm_json(poi: PointOfInterest) -> str:
    """Return the JSON preview document of *poi*."""
    return json.dumps(
        {
            "type": "node",
            "lat": round(poi.lat, COORD_DECIMALS),
            "lon": round(poi.lon, COORD_DECIMALS),
            "tags": filter_tags(poi.tags),
        },
        indent=2,
        ensure_ascii=False,
    )


def changeset_comment(tags: Mapping[str, str | None], created_by: str = DEFAULT_CREATED_BY) -> str:
    name = (tags.get("name") or "").strip()
    return f"Added {name or 'a place'} via {created_by}"


def to_changeset_xml(
    tags: Mapping[str, str | None], created_by: str = DEFAULT_CREATED_BY
) -> str:
    """Return the changeset-create document carrying the metadata tags."""
    return (
        "<osm>\n"
        "  <changeset>\n"
        f'    <tag k="created_by" v="{escape_xml(created_by)}"/>\n'
        f'    <tag k="comment" v="{escape_xml(changeset_comment(tags, created_by))}"/>\n'
        "  </changeset>\n"
        "</osm>"
    )
