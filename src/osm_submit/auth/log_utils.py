"""Structured logging helpers for the OAuth handshake and submission pipeline.

This module purposefully restricts **which** contextual attributes are attached
to log records in order to avoid accidentally leaking secrets.  All helpers
ONLY inject the following *non-sensitive* fields:

- ``environment``    – OpenStreetMap deployment (``dev`` or ``prod``)
- ``changeset_id``   – Changeset being written, once the API assigned one
- ``correlation_id`` – Request identifier set by the HTTP middleware

Usage
-----
>>> from osm_submit.auth.log_utils import get_osm_logger
>>> log = get_osm_logger(
...     base_logger_name="osm-submit.changeset.pipeline",
...     environment="dev",
...     changeset_id="42",
... )
>>> log.info("Uploading node")
INFO osm-submit.changeset.pipeline environment=dev changeset_id=42 ...

The adapter is a thin wrapper around :class:`logging.LoggerAdapter`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping


class _OsmLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted context into log records."""

    extra_keys = ("environment", "changeset_id", "correlation_id")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if extra and extra.get(k) is not None:
                extra_clean[k] = str(extra[k])
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        # merge but do not overwrite call-site provided extras
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs

    def bind(self, **context: Any) -> "_OsmLoggerAdapter":
        """Return a new adapter with *context* merged over the current one."""
        merged = dict(self.extra)
        merged.update({k: v for k, v in context.items() if v is not None})
        return _OsmLoggerAdapter(self.logger, merged)


def get_osm_logger(
    *,
    base_logger_name: str = "osm-submit",
    environment: str | None = None,
    changeset_id: str | None = None,
    correlation_id: str | None = None,
) -> _OsmLoggerAdapter:
    """Return a LoggerAdapter pre-filled with submission context."""
    logger = logging.getLogger(base_logger_name)
    return _OsmLoggerAdapter(
        logger,
        {
            "environment": environment,
            "changeset_id": changeset_id,
            "correlation_id": correlation_id,
        },
    )
