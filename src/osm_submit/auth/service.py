"""PKCE login orchestration against the OpenStreetMap OAuth 2.0 server.

This service encapsulates the *business logic* of the browser-based
authorization-code flow.  Handlers in ``osm_submit.servers.auth`` call the thin
methods below; nothing here knows about HTTP requests or responses.

State machine::

    IDLE -> AWAITING_CALLBACK -> EXCHANGING -> AUTHENTICATED
                                            \\-> FAILED

Values that must survive the redirect live in an injected
:class:`~osm_submit.auth.store.SessionStore`.  Tokens, verifiers, codes and
state values are **never** logged unmasked.

Known limitation: access tokens are never refreshed nor checked for expiry; a
revoked token is reported as authenticated until an API call answers 401.
"""

from __future__ import annotations

import logging
from hashlib import sha256
from typing import Any, Mapping
from urllib.parse import urlencode

import requests
from cachetools import TTLCache

from osm_submit.auth import store as session_store
from osm_submit.auth.errors import (
    CsrfMismatchError,
    SessionExpiredError,
    TokenExchangeError,
    UnauthorizedError,
    UserDetailsError,
)
from osm_submit.auth.models import (
    AuthorizationSession,
    AuthPhase,
    Credential,
    LoginResult,
    OsmUser,
)
from osm_submit.auth.pkce import (
    code_challenge_s256,
    generate_code_verifier,
    generate_state,
    states_match,
)
from osm_submit.auth.store import SessionStore
from osm_submit.utils.environment import OsmSettings, ensure_environment
from osm_submit.utils.logging import mask_sensitive

_LOG = logging.getLogger("osm-submit.auth.service")

user_details_cache: TTLCache[tuple[str, str], OsmUser] = TTLCache(maxsize=64, ttl=300)


def _token_key(credential: Credential) -> tuple[str, str]:
    return credential.environment, sha256(credential.access_token.encode()).hexdigest()[:16]


class BaseAuthProvider:
    """Session, CSRF and persistence logic shared by every provider.

    Subclasses decide how the authorization URL looks and how a code becomes
    an access token (:meth:`_authorize_url`, :meth:`_exchange_code`).
    """

    def __init__(self, settings: OsmSettings, store: SessionStore) -> None:
        self.settings = settings
        self.store = store
        self._phase = self._initial_phase()

    def _initial_phase(self) -> AuthPhase:
        if session_store.load_credential(self.store) is not None:
            return AuthPhase.AUTHENTICATED
        if session_store.load_session(self.store) is not None:
            return AuthPhase.AWAITING_CALLBACK
        return AuthPhase.IDLE

    @property
    def phase(self) -> AuthPhase:
        return self._phase

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def begin_login(
        self,
        environment: str | None = None,
        restore_context: Mapping[str, Any] | None = None,
    ) -> str:
        """Start a login and return the URL the browser must be redirected to.

        A fresh verifier and state are generated and persisted *before* the
        URL is returned, so the callback can be served by another process.
        """
        env = ensure_environment(environment or self.settings.environment)

        code_verifier = generate_code_verifier()
        challenge = code_challenge_s256(code_verifier)
        state = generate_state()

        session = AuthorizationSession(
            state=state,
            code_verifier=code_verifier,
            environment=env,
            restore_context=dict(restore_context) if restore_context else None,
        )
        url = self._authorize_url(session, challenge)
        session_store.save_session(self.store, session)
        self._phase = AuthPhase.AWAITING_CALLBACK

        _LOG.info(
            "Starting OAuth login env=%s state=%s restore_context=%s",
            env,
            mask_sensitive(state, 4),
            bool(session.restore_context),
        )
        return url

    def complete_callback(self, code: str, state: str) -> LoginResult:
        """Validate the callback and exchange *code* for a credential.

        Raises
        ------
        SessionExpiredError
            No login is in flight, or its code verifier is missing.
        CsrfMismatchError
            *state* differs from the stored one.  Checked before any I/O.
        TokenExchangeError
            The token endpoint rejected the code.
        """
        session = session_store.load_session(self.store)
        try:
            if session is None:
                raise SessionExpiredError()
            if not states_match(session.state, state):
                raise CsrfMismatchError()
            if not session.code_verifier:
                raise SessionExpiredError()

            self._phase = AuthPhase.EXCHANGING
            access_token = self._exchange_code(code, session)
        except Exception:
            self._phase = AuthPhase.FAILED
            session_store.clear_session(self.store)
            raise

        credential = Credential(access_token=access_token, environment=session.environment)
        session_store.save_credential(self.store, credential)
        session_store.clear_session(self.store)
        self._phase = AuthPhase.AUTHENTICATED
        _LOG.info("OAuth login successful env=%s", session.environment)
        return LoginResult(
            access_token=access_token,
            environment=session.environment,
            restore_context=session.restore_context,
        )

    def logout(self) -> None:
        """Forget the stored credential.  Safe to call repeatedly."""
        credential = session_store.load_credential(self.store)
        if credential is not None:
            user_details_cache.pop(_token_key(credential), None)
        session_store.clear_credential(self.store)
        self._phase = AuthPhase.IDLE
        _LOG.info("Logged out")

    def is_authenticated(self) -> bool:
        """True iff a credential is stored; the server is not consulted."""
        return session_store.load_credential(self.store) is not None

    def get_credential(self) -> Credential | None:
        return session_store.load_credential(self.store)

    def fetch_user(self, credential: Credential | None = None) -> OsmUser:
        """Return the account behind *credential* (default: the stored one)."""
        credential = credential or self.get_credential()
        if credential is None:
            raise UnauthorizedError(message="Not logged in.")
        key = _token_key(credential)
        cached = user_details_cache.get(key)
        if cached is not None:
            return cached
        user = self._fetch_user(credential)
        user_details_cache[key] = user
        return user

    # ------------------------------------------------------------------ #
    # Hooks                                                              #
    # ------------------------------------------------------------------ #
    def _authorize_url(self, session: AuthorizationSession, challenge: str) -> str:
        raise NotImplementedError

    def _exchange_code(self, code: str, session: AuthorizationSession) -> str:
        raise NotImplementedError

    def _fetch_user(self, credential: Credential) -> OsmUser:
        raise NotImplementedError


class PkceAuthProvider(BaseAuthProvider):
    """Real OAuth 2.0 + PKCE provider talking to the OpenStreetMap server."""

    def __init__(
        self,
        settings: OsmSettings,
        store: SessionStore,
        *,
        http: requests.Session | None = None,
    ) -> None:
        super().__init__(settings, store)
        self.http = http or requests.Session()

    def _authorize_url(self, session: AuthorizationSession, challenge: str) -> str:
        if not self.settings.client_id:
            raise ValueError("OSM OAuth client id not configured (OSM_OAUTH_CLIENT_ID)")

        query_params: dict[str, str] = {
            "response_type": "code",
            "client_id": self.settings.client_id,
            "redirect_uri": self.settings.redirect_uri,
            "scope": self.settings.scope,
            "code_challenge": challenge,
            "code_challenge_method": "S256",
            "state": session.state,
        }
        authorize_base = self.settings.endpoints(session.environment).authorize_url
        return f"{authorize_base}?{urlencode(query_params)}"

    def _exchange_code(self, code: str, session: AuthorizationSession) -> str:
        token_url = self.settings.endpoints(session.environment).token_url
        payload: dict[str, str] = {
            "grant_type": "authorization_code",
            "client_id": self.settings.client_id,
            "code": code,
            "redirect_uri": self.settings.redirect_uri,
            "code_verifier": session.code_verifier or "",
        }
        if self.settings.is_confidential:
            payload["client_secret"] = self.settings.client_secret  # noqa: S105

        _LOG.info("Exchanging code for token env=%s", session.environment)
        try:
            resp = self.http.post(
                token_url,
                data=payload,
                headers={"Accept": "application/json"},
                timeout=self.settings.http_timeout,
            )
        except requests.RequestException as exc:
            raise TokenExchangeError(status=None, body=str(exc)) from exc

        if not resp.ok:
            raise TokenExchangeError(status=resp.status_code, body=resp.text)

        try:
            data = resp.json()
        except ValueError:
            data = {}
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise TokenExchangeError(
                status=resp.status_code, body="Token response missing access_token"
            )
        return access_token

    def _fetch_user(self, credential: Credential) -> OsmUser:
        url = self.settings.endpoints(credential.environment).user_details_url
        try:
            resp = self.http.get(
                url,
                headers={"Authorization": credential.authorization_header},
                timeout=self.settings.http_timeout,
            )
        except requests.RequestException as exc:
            raise UserDetailsError(status=None, body=str(exc)) from exc

        if resp.status_code == 401:
            raise UnauthorizedError(body=resp.text)
        if not resp.ok:
            raise UserDetailsError(status=resp.status_code, body=resp.text)

        try:
            user = resp.json().get("user")
        except (ValueError, AttributeError):
            user = None
        if not isinstance(user, dict):
            raise UserDetailsError(status=resp.status_code, body="Response missing user")
        return OsmUser.from_payload(user)
