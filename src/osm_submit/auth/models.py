"""Typed, immutable records used by the OAuth handshake."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from osm_submit.utils.environment import Environment


class AuthPhase(str, Enum):
    """Position of the PKCE handshake state machine."""

    IDLE = "idle"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class AuthorizationSession:
    """Ephemeral values of one in-flight login, persisted across the redirect."""

    state: str = field(repr=False)
    code_verifier: str | None = field(repr=False)
    environment: Environment = "dev"
    # Caller-supplied snapshot handed back after the callback
    restore_context: Mapping[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class Credential:
    """Bearer credential obtained from the token endpoint.

    There is no expiry tracking: a stored credential is trusted until logout
    or until a protected call answers 401.
    """

    access_token: str = field(repr=False)
    environment: Environment = "dev"

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"


@dataclass(frozen=True, slots=True)
class LoginResult:
    """Outcome of a successful callback."""

    access_token: str = field(repr=False)
    environment: Environment
    restore_context: Mapping[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class OsmUser:
    """The fields of the user-details response this package reads."""

    id: int | None
    display_name: str
    avatar_url: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "OsmUser":
        """Build from the ``user`` object of ``/user/details.json``."""
        img = payload.get("img") or {}
        return cls(
            id=payload.get("id"),
            display_name=str(payload.get("display_name") or ""),
            avatar_url=img.get("href") if isinstance(img, Mapping) else None,
        )
