"""Exception types raised by the changeset submission pipeline."""

from __future__ import annotations

from osm_submit.auth.errors import OsmSubmitError, _preview


class SubmissionError(OsmSubmitError):
    """A step of the changeset write protocol failed."""

    code = "submission_error"
    step = "submit"

    def __init__(self, body: str | None = None, message: str | None = None) -> None:
        super().__init__(message or f"{self.step} failed: {_preview(body)}")
        self.body = body or ""


class ChangesetCreateError(SubmissionError):
    code = "changeset_create_failed"
    step = "Changeset creation"


class NodeCreateError(SubmissionError):
    code = "node_create_failed"
    step = "Node creation"


class ChangesetCloseError(SubmissionError):
    """Never raised by the pipeline; built only to be logged."""

    code = "changeset_close_failed"
    step = "Changeset close"
