"""Unit tests for the three-step changeset write protocol.

Coverage:
* Happy path: create -> upload -> close, request shapes and log entries
* 401 on create aborts before any other request
* Upload failure still closes the changeset, then raises
* Close failure is logged but never raised
"""

from __future__ import annotations

from datetime import datetime

import pytest
import requests
from fakes import FakeHttp, FakeResponse, fixed_clock_factory

from osm_submit.auth.errors import UnauthorizedError
from osm_submit.auth.models import Credential
from osm_submit.changeset.errors import ChangesetCreateError, NodeCreateError
from osm_submit.changeset.models import PointOfInterest
from osm_submit.changeset.pipeline import ChangesetSubmitter
from osm_submit.changeset.sink import ListLogSink

DEV_API = "https://master.apis.dev.openstreetmap.org/api/0.6"
PROD_API = "https://api.openstreetmap.org/api/0.6"


@pytest.fixture()
def poi() -> PointOfInterest:
    return PointOfInterest(lat=40.7128, lon=-74.006, tags={"name": "Cafe", "amenity": "cafe"})


@pytest.fixture()
def credential() -> Credential:
    return Credential(access_token="tok", environment="dev")


def _submitter(http: FakeHttp, sink: ListLogSink, now: datetime) -> ChangesetSubmitter:
    return ChangesetSubmitter(sink=sink, http=http, clock=fixed_clock_factory(now))  # type: ignore[arg-type]


def _happy_routes(changeset_id: str = "7", node_id: str = "123") -> dict:
    return {
        ("PUT", "/changeset/create"): FakeResponse(200, changeset_id),
        ("PUT", "/node/create"): FakeResponse(200, node_id),
        ("PUT", f"/changeset/{changeset_id}/close"): FakeResponse(200, ""),
    }


def test_submit_success(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    http = FakeHttp(_happy_routes("7", "123"))
    sink = ListLogSink()

    node_id = _submitter(http, sink, frozen_now).submit(credential, poi)

    assert node_id == "123"
    assert http.urls("PUT") == [
        f"{DEV_API}/changeset/create",
        f"{DEV_API}/node/create",
        f"{DEV_API}/changeset/7/close",
    ]
    assert sink.messages == [
        "Creating OSM Changeset...",
        "Changeset #7 created.",
        "Uploading Node data...",
        "Node #123 successfully created!",
        "Closing changeset #7...",
        "Changeset closed.",
    ]
    assert [e.severity for e in sink.entries] == [
        "info",
        "success",
        "info",
        "success",
        "info",
        "success",
    ]
    assert all(e.timestamp == frozen_now for e in sink.entries)


def test_submit_request_shapes(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    http = FakeHttp(_happy_routes("7", "123"))
    _submitter(http, ListLogSink(), frozen_now).submit(credential, poi)

    create, upload, close = http.calls
    assert create.kwargs["headers"] == {
        "Authorization": "Bearer tok",
        "Content-Type": "text/xml",
    }
    assert b'<tag k="comment" v="Added Cafe via OSM Submit"/>' in create.kwargs["data"]
    assert b'<node changeset="7" lat="40.7128" lon="-74.006">' in upload.kwargs["data"]
    assert upload.kwargs["headers"]["Authorization"] == "Bearer tok"
    assert close.kwargs["headers"] == {"Authorization": "Bearer tok"}
    assert "data" not in close.kwargs


def test_submit_uses_credential_environment(poi: PointOfInterest, frozen_now: datetime) -> None:
    http = FakeHttp(_happy_routes())
    _submitter(http, ListLogSink(), frozen_now).submit(Credential("tok", "prod"), poi)
    assert all(url.startswith(PROD_API) for url in http.urls())


def test_submit_explicit_api_url(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    http = FakeHttp(_happy_routes())
    submitter = ChangesetSubmitter(
        http=http, clock=fixed_clock_factory(frozen_now), api_url="http://osm.test/api/0.6/"  # type: ignore[arg-type]
    )
    submitter.submit(credential, poi)
    assert http.urls()[0] == "http://osm.test/api/0.6/changeset/create"


def test_unauthorized_create_stops_immediately(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    http = FakeHttp({("PUT", "/changeset/create"): FakeResponse(401, "Couldn't authenticate you")})
    sink = ListLogSink()

    with pytest.raises(UnauthorizedError) as exc_info:
        _submitter(http, sink, frozen_now).submit(credential, poi)

    assert len(http.calls) == 1
    assert "access token" in str(exc_info.value)
    assert sink.entries[-1].severity == "error"


@pytest.mark.parametrize(
    "response",
    [FakeResponse(500, "Internal error"), FakeResponse(200, "not-a-number")],
)
def test_create_failure_sends_nothing_else(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime, response: FakeResponse
) -> None:
    http = FakeHttp({("PUT", "/changeset/create"): response})

    with pytest.raises(ChangesetCreateError):
        _submitter(http, ListLogSink(), frozen_now).submit(credential, poi)

    assert len(http.calls) == 1


def test_create_transport_error(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    http = FakeHttp({("PUT", "/changeset/create"): requests.ConnectionError("down")})
    with pytest.raises(ChangesetCreateError):
        _submitter(http, ListLogSink(), frozen_now).submit(credential, poi)


def test_node_failure_still_closes_changeset(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    routes = _happy_routes("7")
    routes[("PUT", "/node/create")] = FakeResponse(500, "Precondition failed")
    http = FakeHttp(routes)
    sink = ListLogSink()

    with pytest.raises(NodeCreateError) as exc_info:
        _submitter(http, sink, frozen_now).submit(credential, poi)

    assert "Precondition failed" in str(exc_info.value)
    assert http.urls("PUT")[-1] == f"{DEV_API}/changeset/7/close"
    assert sink.messages[-2:] == ["Closing changeset #7...", "Changeset closed."]
    assert sum(url.endswith("/close") for url in http.urls()) == 1


def test_node_transport_error_still_closes(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    routes = _happy_routes("7")
    routes[("PUT", "/node/create")] = requests.Timeout("slow")
    http = FakeHttp(routes)

    with pytest.raises(NodeCreateError):
        _submitter(http, ListLogSink(), frozen_now).submit(credential, poi)

    assert http.urls()[-1].endswith("/changeset/7/close")


@pytest.mark.parametrize(
    "close_response",
    [FakeResponse(409, "already closed"), requests.ConnectionError("gone")],
)
def test_close_failure_is_not_raised(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime, close_response
) -> None:
    routes = _happy_routes("7", "123")
    routes[("PUT", "/changeset/7/close")] = close_response
    http = FakeHttp(routes)
    sink = ListLogSink()

    assert _submitter(http, sink, frozen_now).submit(credential, poi) == "123"

    assert sink.entries[-1].severity == "error"
    assert sink.entries[-1].message.startswith("Changeset close failed")


def test_close_failure_does_not_mask_node_error(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    http = FakeHttp(
        {
            ("PUT", "/changeset/create"): FakeResponse(200, "7"),
            ("PUT", "/node/create"): FakeResponse(400, "bad node"),
            ("PUT", "/changeset/7/close"): FakeResponse(500, "close broke"),
        }
    )
    with pytest.raises(NodeCreateError):
        _submitter(http, ListLogSink(), frozen_now).submit(credential, poi)


def test_submit_without_sink(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    http = FakeHttp(_happy_routes("1", "2"))
    submitter = ChangesetSubmitter(http=http, clock=fixed_clock_factory(frozen_now))  # type: ignore[arg-type]
    assert submitter.submit(credential, poi) == "2"


def test_log_entry_to_dict(
    poi: PointOfInterest, credential: Credential, frozen_now: datetime
) -> None:
    sink = ListLogSink()
    _submitter(FakeHttp(_happy_routes()), sink, frozen_now).submit(credential, poi)
    assert sink.entries[0].to_dict() == {
        "timestamp": "2024-01-01T00:00:00+00:00",
        "message": "Creating OSM Changeset...",
        "severity": "info",
    }
