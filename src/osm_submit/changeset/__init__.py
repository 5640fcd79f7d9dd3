"""Changeset submission: codec, log sinks and the write pipeline."""

from __future__ import annotations

from .models import (  # noqa: F401
    Changeset,
    ChangesetState,
    PointOfInterest,
    SubmissionLogEntry,
)
from .errors import (  # noqa: F401
    ChangesetCloseError,
    ChangesetCreateError,
    NodeCreateError,
    SubmissionError,
)
from .codec import to_changeset_xml, to_osm_json, to_osm_xml  # noqa: F401
from .sink import ListLogSink, LogSink  # noqa: F401
from .pipeline import ChangesetSubmitter  # noqa: F401
from .features import NearbyFeature, feature_display_name, poi_from_feature  # noqa: F401

__all__ = [
    "Changeset",
    "ChangesetState",
    "PointOfInterest",
    "SubmissionLogEntry",
    "SubmissionError",
    "ChangesetCreateError",
    "NodeCreateError",
    "ChangesetCloseError",
    "to_osm_xml",
    "to_osm_json",
    "to_changeset_xml",
    "LogSink",
    "ListLogSink",
    "ChangesetSubmitter",
    "NearbyFeature",
    "poi_from_feature",
    "feature_display_name",
]
