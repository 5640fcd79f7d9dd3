"""Records handled by the changeset submission pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Literal, Mapping

Severity = Literal["info", "success", "error"]


@dataclass(frozen=True, slots=True)
class PointOfInterest:
    """A node to create: coordinates plus OSM tags.

    Tags whose value is ``None`` or blank are kept here but never transmitted.
    """

    lat: float
    lon: float
    tags: Mapping[str, str | None] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"longitude out of range: {self.lon}")
        # Detach from the caller's mapping
        object.__setattr__(self, "tags", dict(self.tags))

    @property
    def name(self) -> str | None:
        value = self.tags.get("name")
        return value.strip() if value and value.strip() else None


class ChangesetState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class Changeset:
    """A changeset opened for exactly one submission."""

    id: str
    state: ChangesetState = ChangesetState.OPEN

    def transition(self, state: ChangesetState) -> "Changeset":
        return replace(self, state=state)


@dataclass(frozen=True, slots=True)
class SubmissionLogEntry:
    """One line of the running console shown to the caller."""

    timestamp: datetime
    message: str
    severity: Severity = "info"

    def to_dict(self) -> dict[str, str]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "severity": self.severity,
        }
