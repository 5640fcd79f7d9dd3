"""Tests for env-driven settings and the logging helpers."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pytest

from osm_submit.utils.environment import (
    DEFAULT_REDIRECT_URI,
    OsmSettings,
    endpoints_for,
    ensure_environment,
    is_read_only_mode,
)
from osm_submit.utils.logging import mask_sensitive, setup_logging

_OSM_VARS = (
    "OSM_OAUTH_CLIENT_ID",
    "OSM_OAUTH_CLIENT_SECRET",
    "OSM_OAUTH_REDIRECT_URI",
    "OSM_OAUTH_SCOPE",
    "OSM_ENVIRONMENT",
    "OSM_AUTH_PROVIDER",
    "OSM_FIXTURE_TOKEN",
    "OSM_SUBMIT_STORAGE_DIR",
    "OSM_READ_ONLY",
    "OSM_CHANGESET_CREATED_BY",
    "OSM_HTTP_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _OSM_VARS:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="osm-submit.utils.environment"):
        settings = OsmSettings.from_env()

    assert settings.client_id == ""
    assert settings.redirect_uri == DEFAULT_REDIRECT_URI
    assert settings.scope == "read_prefs write_api"
    assert settings.environment == "dev"
    assert settings.auth_provider == "pkce"
    assert settings.storage_dir is None
    assert settings.read_only is False
    assert settings.created_by == "OSM Submit"
    assert settings.http_timeout == (5.0, 30.0)
    assert not settings.is_confidential
    assert "OSM_OAUTH_CLIENT_ID" in caplog.text


def test_from_env_reads_everything(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("OSM_OAUTH_CLIENT_ID", "cid")
    monkeypatch.setenv("OSM_OAUTH_CLIENT_SECRET", "secret")
    monkeypatch.setenv("OSM_OAUTH_REDIRECT_URI", "https://app.test/cb")
    monkeypatch.setenv("OSM_OAUTH_SCOPE", "read_prefs")
    monkeypatch.setenv("OSM_ENVIRONMENT", " PROD ")
    monkeypatch.setenv("OSM_AUTH_PROVIDER", "fixture")
    monkeypatch.setenv("OSM_FIXTURE_TOKEN", "fx")
    monkeypatch.setenv("OSM_SUBMIT_STORAGE_DIR", str(tmp_path))
    monkeypatch.setenv("OSM_READ_ONLY", "yes")
    monkeypatch.setenv("OSM_CHANGESET_CREATED_BY", "Tester")
    monkeypatch.setenv("OSM_HTTP_TIMEOUT_SECONDS", "12.5")

    settings = OsmSettings.from_env()

    assert settings == OsmSettings(
        client_id="cid",
        client_secret="secret",
        redirect_uri="https://app.test/cb",
        scope="read_prefs",
        environment="prod",
        auth_provider="fixture",
        fixture_token="fx",
        storage_dir=tmp_path,
        read_only=True,
        created_by="Tester",
        http_timeout=(5.0, 12.5),
    )
    assert settings.is_confidential


@pytest.mark.parametrize(
    ("name", "value"),
    [("OSM_ENVIRONMENT", "staging"), ("OSM_AUTH_PROVIDER", "oauth1")],
)
def test_from_env_rejects_unknown_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        OsmSettings.from_env()


@pytest.mark.parametrize(
    ("value", "expected"),
    [("true", True), ("1", True), ("ON", True), ("false", False), ("", False)],
)
def test_read_only_mode(monkeypatch: pytest.MonkeyPatch, value: str, expected: bool) -> None:
    monkeypatch.setenv("OSM_READ_ONLY", value)
    assert is_read_only_mode() is expected


def test_endpoints() -> None:
    dev = endpoints_for("dev")
    prod = OsmSettings(environment="prod").endpoints()
    assert dev.api_url == "https://master.apis.dev.openstreetmap.org/api/0.6"
    assert prod.authorize_url == "https://www.openstreetmap.org/oauth2/authorize"
    assert prod.api_url == "https://api.openstreetmap.org/api/0.6"
    assert OsmSettings(environment="prod").endpoints("dev") == dev


def test_ensure_environment() -> None:
    assert ensure_environment("prod") == "prod"
    with pytest.raises(ValueError):
        ensure_environment("PROD")


# --------------------------------------------------------------------------- #
# logging helpers                                                             #
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    ("text", "expected"),
    [(None, ""), ("", ""), ("abcd", "****"), ("abcdefghij", "abcd******")],
)
def test_mask_sensitive(text: str | None, expected: str) -> None:
    assert mask_sensitive(text) == expected


def test_setup_logging_is_idempotent() -> None:
    stream = io.StringIO()
    name = "osm-submit.test-setup"
    logger = setup_logging(logging.INFO, logger_name=name, stream=stream)
    setup_logging(logging.INFO, logger_name=name, stream=stream)

    logger.info("hello")

    assert stream.getvalue().count("hello") == 1
    assert logger.level == logging.INFO
