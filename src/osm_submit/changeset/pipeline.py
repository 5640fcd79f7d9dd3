"""Changeset-based node submission against the OSM API 0.6.

One submission runs three strictly sequential steps::

    PUT /changeset/create        -> changeset id
    PUT /node/create             -> node id
    PUT /changeset/{id}/close    (always, once the changeset exists)

The close step runs in a ``finally`` block: it happens whether the upload
succeeded or not, and its own failure is only logged so it never masks the
upload outcome.  There is no retry anywhere; the caller decides whether to
submit again.

Every step reports progress to a :class:`~osm_submit.changeset.sink.LogSink`
and mirrors it to the ``osm-submit.changeset.pipeline`` logger.

A caller abandoning :meth:`ChangesetSubmitter.submit` mid-flight leaves the
changeset open on the server until it times out there.
"""

from __future__ import annotations

import logging

import requests

from osm_submit.auth.clock import Clock, default_clock
from osm_submit.auth.errors import UnauthorizedError
from osm_submit.auth.log_utils import get_osm_logger
from osm_submit.auth.models import Credential
from osm_submit.changeset.codec import to_changeset_xml, to_osm_xml
from osm_submit.changeset.errors import (
    ChangesetCloseError,
    ChangesetCreateError,
    NodeCreateError,
)
from osm_submit.changeset.models import (
    Changeset,
    ChangesetState,
    PointOfInterest,
    Severity,
    SubmissionLogEntry,
)
from osm_submit.changeset.sink import LogSink
from osm_submit.utils.environment import DEFAULT_CREATED_BY, endpoints_for

_LOGGER_NAME = "osm-submit.changeset.pipeline"


class ChangesetSubmitter:
    """Submit one :class:`PointOfInterest` per call inside a fresh changeset."""

    def __init__(
        self,
        *,
        sink: LogSink | None = None,
        http: requests.Session | None = None,
        clock: Clock = default_clock,
        api_url: str | None = None,
        created_by: str = DEFAULT_CREATED_BY,
        timeout: tuple[float, float] = (5.0, 30.0),
    ) -> None:
        self.sink = sink
        self.http = http or requests.Session()
        self.clock = clock
        self.api_url = api_url.rstrip("/") if api_url else None
        self.created_by = created_by
        self.timeout = timeout
        self._log = get_osm_logger(base_logger_name=_LOGGER_NAME)

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def submit(self, credential: Credential, poi: PointOfInterest) -> str:
        """Create *poi* as a new node and return its id.

        Raises
        ------
        UnauthorizedError
            Changeset creation answered 401.
        ChangesetCreateError
            Changeset creation failed otherwise; nothing else was sent.
        NodeCreateError
            Node upload failed; the changeset was still closed.
        """
        base = self.api_url or endpoints_for(credential.environment).api_url
        headers = {
            "Authorization": credential.authorization_header,
            "Content-Type": "text/xml",
        }
        self._log = get_osm_logger(
            base_logger_name=_LOGGER_NAME, environment=credential.environment
        )

        changeset = self._open_changeset(base, headers, poi)
        self._log = self._log.bind(changeset_id=changeset.id)
        try:
            return self._upload_node(base, headers, poi, changeset)
        finally:
            self._close_changeset(base, headers, changeset)

    # ------------------------------------------------------------------ #
    # Steps                                                              #
    # ------------------------------------------------------------------ #
    def _open_changeset(
        self, base: str, headers: dict[str, str], poi: PointOfInterest
    ) -> Changeset:
        self._emit("Creating OSM Changeset...", "info")
        body = to_changeset_xml(poi.tags, self.created_by)
        try:
            resp = self.http.put(
                f"{base}/changeset/create",
                data=body.encode("utf-8"),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            error = ChangesetCreateError(body=str(exc))
            self._emit(str(error), "error")
            raise error from exc

        if resp.status_code == 401:
            error = UnauthorizedError(
                body=resp.text, message="Unauthorized. Please check your access token."
            )
            self._emit(str(error), "error")
            raise error
        changeset_id = resp.text.strip() if resp.ok else ""
        if not changeset_id.isdigit():
            error = ChangesetCreateError(body=resp.text)
            self._emit(str(error), "error")
            raise error

        self._emit(f"Changeset #{changeset_id} created.", "success")
        return Changeset(id=changeset_id)

    def _upload_node(
        self,
        base: str,
        headers: dict[str, str],
        poi: PointOfInterest,
        changeset: Changeset,
    ) -> str:
        self._emit("Uploading Node data...", "info")
        body = to_osm_xml(poi, changeset.id)
        try:
            resp = self.http.put(
                f"{base}/node/create",
                data=body.encode("utf-8"),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            error = NodeCreateError(body=str(exc))
            self._emit(str(error), "error")
            raise error from exc

        node_id = resp.text.strip() if resp.ok else ""
        if not node_id.isdigit():
            error = NodeCreateError(body=resp.text)
            self._emit(str(error), "error")
            raise error

        self._emit(f"Node #{node_id} successfully created!", "success")
        return node_id

    def _close_changeset(
        self, base: str, headers: dict[str, str], changeset: Changeset
    ) -> Changeset:
        """Best-effort close; failures are logged and never raised."""
        changeset = changeset.transition(ChangesetState.CLOSING)
        self._emit(f"Closing changeset #{changeset.id}...", "info")
        close_headers = {"Authorization": headers["Authorization"]}
        error: ChangesetCloseError | None = None
        try:
            resp = self.http.put(
                f"{base}/changeset/{changeset.id}/close",
                headers=close_headers,
                timeout=self.timeout,
            )
            if not resp.ok:
                error = ChangesetCloseError(body=resp.text)
        except requests.RequestException as exc:
            error = ChangesetCloseError(body=str(exc))

        if error is not None:
            self._emit(str(error), "error")
            return changeset
        self._emit("Changeset closed.", "success")
        return changeset.transition(ChangesetState.CLOSED)

    # ------------------------------------------------------------------ #
    # Logging                                                            #
    # ------------------------------------------------------------------ #
    def _emit(self, message: str, severity: Severity) -> None:
        entry = SubmissionLogEntry(timestamp=self.clock(), message=message, severity=severity)
        self._log.log(logging.ERROR if severity == "error" else logging.INFO, message)
        if self.sink is not None:
            self.sink.emit(entry)
