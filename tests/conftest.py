"""Shared fixtures: in-memory store, settings, anyio backend."""

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

from osm_submit.auth import service as service_mod
from osm_submit.auth.store import MemorySessionStore
from osm_submit.utils.environment import OsmSettings


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def memory_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture()
def settings() -> OsmSettings:
    return OsmSettings(
        client_id="test-client",
        redirect_uri="http://localhost:9000/auth/callback",
        environment="dev",
    )


@pytest.fixture()
def frozen_now() -> datetime:
    return datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _clear_user_cache():
    """User details are cached per token across tests otherwise."""
    service_mod.user_details_cache.clear()
    yield
    service_mod.user_details_cache.clear()


# --------------------------------------------------------------------------- #
# Opt-in markers                                                              #
# --------------------------------------------------------------------------- #
def pytest_addoption(parser):
    """Add integration option to pytest."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly requested.

    Tests marked with 'ci_safe' are always run because they stub all external
    calls.  Live tests additionally need ``OSM_LIVE=1``.
    """
    if not config.getoption("--integration", default=False):
        skip_integration = pytest.mark.skip(reason="Need --integration option to run")
        for item in items:
            if "integration" in item.keywords and "ci_safe" not in item.keywords:
                item.add_marker(skip_integration)
    if os.getenv("OSM_LIVE") != "1":
        skip_live = pytest.mark.skip(reason="Set OSM_LIVE=1 to run live smoke tests")
        for item in items:
            if "live" in item.keywords:
                item.add_marker(skip_live)
