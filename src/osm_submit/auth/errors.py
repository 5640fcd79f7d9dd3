"""Exception types raised by the OAuth handshake and shared by the pipeline.

Only lightweight, **data-carrying** exceptions live here so that web/CLI layers
can transform them into HTTP responses or user-friendly messages.
"""

from __future__ import annotations

from typing import Any

_BODY_PREVIEW = 200


def _preview(body: str | None) -> str:
    return (body or "")[:_BODY_PREVIEW]


class OsmSubmitError(RuntimeError):
    """Base class of every error surfaced by OSM Submit."""

    code: str = "osm_submit_error"

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.code, "message": str(self)}


class AuthError(OsmSubmitError):
    """Failure of the login handshake; the handshake is aborted."""

    code = "auth_error"


class CsrfMismatchError(AuthError):
    """The callback ``state`` differs from the one stored at login start."""

    code = "csrf_mismatch"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Invalid state parameter - possible CSRF attack.")


class SessionExpiredError(AuthError):
    """No in-flight login (or no code verifier) was found for the callback."""

    code = "session_expired"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Code verifier not found - session may have expired.")


class TokenExchangeError(AuthError):
    """The token endpoint rejected the authorization code."""

    code = "token_exchange_failed"

    def __init__(self, *, status: int | None, body: str | None) -> None:
        super().__init__(f"Token exchange failed ({status}): {_preview(body)}")
        self.status = status
        self.body = body or ""

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["status"] = self.status
        return payload


class UserDetailsError(AuthError):
    """The user-details endpoint could not be read."""

    code = "user_details_failed"

    def __init__(self, *, status: int | None, body: str | None) -> None:
        super().__init__(f"Failed to fetch user details ({status}): {_preview(body)}")
        self.status = status
        self.body = body or ""


class UnauthorizedError(OsmSubmitError):
    """The API answered 401 for the stored bearer credential."""

    code = "unauthorized"

    def __init__(self, body: str | None = None, message: str | None = None) -> None:
        super().__init__(message or "Unauthorized. Please log in again.")
        self.body = body or ""
