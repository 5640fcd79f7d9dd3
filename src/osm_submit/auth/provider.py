"""Pluggable authentication providers.

Two implementations share the session/CSRF/persistence logic of
:class:`~osm_submit.auth.service.BaseAuthProvider`:

* :class:`~osm_submit.auth.service.PkceAuthProvider` – real OAuth 2.0 + PKCE.
* :class:`FixtureAuthProvider` – issues a configured token without contacting
  the authorization server.  Meant for tests and local demos.

The provider is chosen by ``OSM_AUTH_PROVIDER`` through
:func:`build_auth_provider`; nothing inspects hostnames at runtime.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, runtime_checkable
from urllib.parse import urlencode

from osm_submit.auth.models import (
    AuthorizationSession,
    AuthPhase,
    Credential,
    LoginResult,
    OsmUser,
)
from osm_submit.auth.service import BaseAuthProvider, PkceAuthProvider
from osm_submit.auth.store import DiskSessionStore, SessionStore, default_store
from osm_submit.utils.environment import OsmSettings

_LOG = logging.getLogger("osm-submit.auth.provider")

FIXTURE_CODE = "fixture-code"


@runtime_checkable
class AuthProvider(Protocol):
    """What the server surface needs from an authentication provider."""

    @property
    def phase(self) -> AuthPhase: ...

    def begin_login(
        self,
        environment: str | None = None,
        restore_context: Mapping[str, Any] | None = None,
    ) -> str: ...

    def complete_callback(self, code: str, state: str) -> LoginResult: ...

    def logout(self) -> None: ...

    def is_authenticated(self) -> bool: ...

    def get_credential(self) -> Credential | None: ...

    def fetch_user(self, credential: Credential | None = None) -> OsmUser: ...


class FixtureAuthProvider(BaseAuthProvider):
    """Provider that completes the handshake locally.

    ``begin_login`` returns the configured redirect URI with a fixture code and
    the generated state, so the callback path (including the CSRF check) runs
    exactly as with the real provider.
    """

    def __init__(
        self,
        settings: OsmSettings,
        store: SessionStore,
        *,
        user: OsmUser | None = None,
    ) -> None:
        super().__init__(settings, store)
        self.user = user or OsmUser(id=0, display_name="fixture-user")

    def _authorize_url(self, session: AuthorizationSession, challenge: str) -> str:
        query = urlencode({"code": FIXTURE_CODE, "state": session.state})
        sep = "&" if "?" in self.settings.redirect_uri else "?"
        return f"{self.settings.redirect_uri}{sep}{query}"

    def _exchange_code(self, code: str, session: AuthorizationSession) -> str:
        _LOG.info("Issuing fixture credential env=%s", session.environment)
        return self.settings.fixture_token

    def _fetch_user(self, credential: Credential) -> OsmUser:
        return self.user


def build_auth_provider(
    settings: OsmSettings, store: SessionStore | None = None
) -> BaseAuthProvider:
    """Return the provider selected by ``settings.auth_provider``."""
    if store is None:
        store = DiskSessionStore(settings.storage_dir) if settings.storage_dir else default_store()
    if settings.auth_provider == "fixture":
        _LOG.warning("Using fixture authentication provider; no real login is performed")
        return FixtureAuthProvider(settings, store)
    if settings.auth_provider == "pkce":
        return PkceAuthProvider(settings, store)
    raise ValueError(f"unsupported auth provider: {settings.auth_provider!r}")


# --------------------------------------------------------------------------- #
# Convenience – default singleton                                            #
# --------------------------------------------------------------------------- #

_default_provider: BaseAuthProvider | None = None


def default_auth_provider() -> BaseAuthProvider:
    """Return the process-wide provider built from the environment."""
    global _default_provider  # noqa: PLW0603
    if _default_provider is None:
        _default_provider = build_auth_provider(OsmSettings.from_env())
    return _default_provider
