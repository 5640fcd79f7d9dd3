"""Authentication core package.

This namespace hosts **HTTP-agnostic** building blocks for the OpenStreetMap
OAuth 2.0 + PKCE login.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
pkce
    Random strings and the S256 code challenge.
models
    Immutable dataclasses for sessions, credentials and users.
errors
    Exception types used by the login flow and the pipeline.
store
    Persistent key/value storage surviving the browser redirect.
service
    The PKCE login state machine.
provider
    Provider protocol, fixture provider and config-driven factory.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, default_clock  # noqa: F401
from .pkce import (  # noqa: F401
    code_challenge_s256,
    generate_code_verifier,
    generate_state,
    random_string,
)
from .models import (  # noqa: F401
    AuthorizationSession,
    AuthPhase,
    Credential,
    LoginResult,
    OsmUser,
)
from .errors import (  # noqa: F401
    AuthError,
    CsrfMismatchError,
    OsmSubmitError,
    SessionExpiredError,
    TokenExchangeError,
    UnauthorizedError,
    UserDetailsError,
)
from .store import DiskSessionStore, MemorySessionStore, SessionStore  # noqa: F401
from .service import PkceAuthProvider  # noqa: F401
from .provider import (  # noqa: F401
    AuthProvider,
    FixtureAuthProvider,
    build_auth_provider,
    default_auth_provider,
)
from .log_utils import get_osm_logger  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "default_clock",
    # pkce
    "random_string",
    "generate_code_verifier",
    "generate_state",
    "code_challenge_s256",
    # models
    "AuthorizationSession",
    "AuthPhase",
    "Credential",
    "LoginResult",
    "OsmUser",
    # errors
    "OsmSubmitError",
    "AuthError",
    "CsrfMismatchError",
    "SessionExpiredError",
    "TokenExchangeError",
    "UnauthorizedError",
    "UserDetailsError",
    # storage
    "SessionStore",
    "DiskSessionStore",
    "MemorySessionStore",
    # providers
    "AuthProvider",
    "PkceAuthProvider",
    "FixtureAuthProvider",
    "build_auth_provider",
    "default_auth_provider",
    # logging helpers
    "get_osm_logger",
]
