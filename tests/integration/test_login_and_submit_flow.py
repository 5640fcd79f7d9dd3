"""End-to-end flow across two processes sharing a storage directory.

The login is started by one provider instance and completed by another, as
happens when the browser callback lands on a restarted server.  The stored
credential then drives a full submission against a stubbed API.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest
from fakes import FakeHttp, FakeResponse

from osm_submit.auth.errors import UnauthorizedError
from osm_submit.auth.models import AuthPhase
from osm_submit.auth.provider import build_auth_provider
from osm_submit.changeset.errors import NodeCreateError
from osm_submit.changeset.models import PointOfInterest
from osm_submit.changeset.pipeline import ChangesetSubmitter
from osm_submit.changeset.sink import ListLogSink
from osm_submit.utils.environment import OsmSettings

pytestmark = [pytest.mark.integration, pytest.mark.ci_safe]


@pytest.fixture()
def disk_settings(tmp_path: Path) -> OsmSettings:
    return OsmSettings(auth_provider="fixture", storage_dir=tmp_path, environment="dev")


def _login(settings: OsmSettings) -> None:
    url = build_auth_provider(settings).begin_login(restore_context={"return_to": "/form"})
    params = {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}

    second_process = build_auth_provider(settings)
    assert second_process.phase is AuthPhase.AWAITING_CALLBACK
    result = second_process.complete_callback(params["code"], params["state"])
    assert result.restore_context == {"return_to": "/form"}


def test_login_survives_restart_then_submits(disk_settings: OsmSettings) -> None:
    _login(disk_settings)

    provider = build_auth_provider(disk_settings)
    assert provider.phase is AuthPhase.AUTHENTICATED
    credential = provider.get_credential()
    assert credential is not None

    http = FakeHttp(
        {
            ("PUT", "/changeset/create"): FakeResponse(200, "100"),
            ("PUT", "/node/create"): FakeResponse(200, "200"),
            ("PUT", "/changeset/100/close"): FakeResponse(200, ""),
        }
    )
    sink = ListLogSink()
    node_id = ChangesetSubmitter(sink=sink, http=http).submit(  # type: ignore[arg-type]
        credential, PointOfInterest(lat=52.52, lon=13.405, tags={"name": "Späti"})
    )

    assert node_id == "200"
    assert http.calls[0].kwargs["headers"]["Authorization"] == "Bearer fixture-access-token"
    assert sink.entries[-1].message == "Changeset closed."


def test_revoked_token_then_relogin(disk_settings: OsmSettings) -> None:
    _login(disk_settings)
    provider = build_auth_provider(disk_settings)
    credential = provider.get_credential()
    assert credential is not None

    revoked = FakeHttp({("PUT", "/changeset/create"): FakeResponse(401, "")})
    with pytest.raises(UnauthorizedError):
        ChangesetSubmitter(http=revoked).submit(  # type: ignore[arg-type]
            credential, PointOfInterest(lat=0.0, lon=0.0)
        )

    provider.logout()
    assert build_auth_provider(disk_settings).phase is AuthPhase.IDLE


def test_failed_upload_reports_and_closes(disk_settings: OsmSettings) -> None:
    _login(disk_settings)
    credential = build_auth_provider(disk_settings).get_credential()
    assert credential is not None

    http = FakeHttp(
        {
            ("PUT", "/changeset/create"): FakeResponse(200, "5"),
            ("PUT", "/node/create"): FakeResponse(412, "Precondition failed"),
            ("PUT", "/changeset/5/close"): FakeResponse(200, ""),
        }
    )
    with pytest.raises(NodeCreateError):
        ChangesetSubmitter(http=http).submit(  # type: ignore[arg-type]
            credential, PointOfInterest(lat=0.0, lon=0.0, tags={"name": "x"})
        )
    assert http.urls()[-1].endswith("/changeset/5/close")
