"""Log sinks receiving :class:`SubmissionLogEntry` events."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from osm_submit.changeset.models import SubmissionLogEntry


@runtime_checkable
class LogSink(Protocol):
    """Anything that accepts submission log entries, in order."""

    def emit(self, entry: SubmissionLogEntry) -> None: ...


class ListLogSink(LogSink):
    """Collects entries in memory; used by tools and tests."""

    def __init__(self) -> None:
        self.entries: list[SubmissionLogEntry] = []

    def emit(self, entry: SubmissionLogEntry) -> None:
        self.entries.append(entry)

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self.entries]
