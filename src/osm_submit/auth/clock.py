"""Clock abstraction for testable timestamps.

Submission log entries carry the moment they were produced.  Code in this
package MUST obtain that moment from an injected ``Clock`` rather than calling
``datetime.now()`` directly, so tests can freeze time.

Example
-------
>>> from osm_submit.auth.clock import default_clock
>>> default_clock().tzinfo is not None
True
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning the current time as an aware ``datetime``."""

    def __call__(self) -> datetime: ...


def default_clock() -> datetime:
    """Default implementation returning the current UTC time."""
    return datetime.now(timezone.utc)
