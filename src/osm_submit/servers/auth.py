"""Browser-based OAuth endpoints.

Handlers are intentionally thin:

1. Parse and validate HTTP-layer parameters.
2. Delegate business logic to the configured auth provider.
3. Return an appropriate Starlette ``Response`` type.

The base path is configurable (default: ``/auth``) so that reverse-proxies can
mount the application under arbitrary prefixes.

SECURITY NOTE
-------------
• No raw secrets (state, code verifiers, authorization codes, access tokens)
  are ever logged.
• ``return_to`` only accepts same-site relative paths, so the callback cannot
  be turned into an open redirect.
• Correlation IDs, if present in ``request.state.correlation_id``, are included
  in INFO logs to aid troubleshooting.

This module is HTTP-only and MUST remain free from heavy business logic.
"""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, Callable

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from osm_submit.auth.errors import AuthError, OsmSubmitError
from osm_submit.auth.provider import AuthProvider, default_auth_provider

if TYPE_CHECKING:  # pragma: no cover
    from osm_submit.servers.main import OsmSubmitMCP  # circular – only for typing

_LOG = logging.getLogger("osm-submit.auth.routes")


def _html_page(title: str, body: str, status: int = 200) -> HTMLResponse:
    """Return a tiny success / error HTML page."""
    content = (
        "<!doctype html><html lang='en'>"
        "<head><meta charset='utf-8'><title>"
        f"{html.escape(title)}</title></head><body><h1>{html.escape(title)}</h1>"
        f"<p>{html.escape(body)}</p></body></html>"
    )
    return HTMLResponse(content, status_code=status)


def _is_local_path(target: str) -> bool:
    return target.startswith("/") and not target.startswith("//") and "\\" not in target


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "-")


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def register_auth_routes(
    app: "OsmSubmitMCP",
    *,
    base_path: str = "/auth",
    provider: AuthProvider | None = None,
) -> None:
    """Attach the OAuth endpoints to *app* under *base_path*.

    Without an explicit *provider* the process-wide one is resolved lazily on
    the first request.
    """
    get_provider: Callable[[], AuthProvider] = (
        (lambda: provider) if provider is not None else default_auth_provider
    )

    # ----- GET /auth/start ------------------------------------------------ #
    @app.custom_route(f"{base_path}/start", methods=["GET"])
    async def _start_oauth(request: Request) -> Response:  # noqa: D401
        environment = request.query_params.get("env")
        return_to = request.query_params.get("return_to")

        if return_to and not _is_local_path(return_to):
            return JSONResponse({"error": "return_to must be a local path"}, status_code=400)

        try:
            authorize_url = get_provider().begin_login(
                environment=environment,
                restore_context={"return_to": return_to} if return_to else None,
            )
        except ValueError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)

        _LOG.info(
            "OAuth start env=%s correlation_id=%s",
            environment or "default",
            _correlation_id(request),
        )

        # ------------------------------------------------------------------
        # Content negotiation + explicit override for browser vs API clients
        # ------------------------------------------------------------------
        fmt_param = request.query_params.get("format")
        accept_header = (request.headers.get("accept") or "").lower()

        def _json_resp() -> JSONResponse:
            return JSONResponse({"authorize_url": authorize_url})

        def _redirect_resp() -> RedirectResponse:
            # Use 303 See Other for GET safety across methods
            return RedirectResponse(authorize_url, status_code=303)

        if fmt_param == "json":
            return _json_resp()
        if fmt_param == "redirect":
            return _redirect_resp()

        if "text/html" in accept_header:
            return _redirect_resp()

        return _json_resp()

    # ----- GET /auth/callback --------------------------------------------- #
    @app.custom_route(f"{base_path}/callback", methods=["GET"])
    async def _oauth_callback(request: Request) -> Response:  # noqa: D401
        # Check for provider-side errors first (e.g., access_denied)
        oauth_error = request.query_params.get("error")
        if oauth_error:
            description = request.query_params.get("error_description", "")
            return _html_page(
                "Authorization error",
                f"{oauth_error}: {description}" if description else oauth_error,
                400,
            )

        code = request.query_params.get("code")
        state = request.query_params.get("state")

        if not code or not state:
            return _html_page("Missing parameters", "Missing authorization code or state", 400)

        svc = get_provider()
        try:
            result = await run_in_threadpool(svc.complete_callback, code, state)
        except AuthError as exc:
            _LOG.warning(
                "OAuth callback error=%s correlation_id=%s", exc.code, _correlation_id(request)
            )
            return _html_page("Login failed", str(exc), 400)

        welcome = "You are logged in."
        try:
            user = await run_in_threadpool(svc.fetch_user)
            welcome = f"Welcome, {user.display_name}!"
        except OsmSubmitError as exc:
            _LOG.warning("Could not load user details after login: %s", exc)

        _LOG.info(
            "OAuth success env=%s correlation_id=%s",
            result.environment,
            _correlation_id(request),
        )

        return_to = (result.restore_context or {}).get("return_to")
        if isinstance(return_to, str) and _is_local_path(return_to):
            return RedirectResponse(return_to, status_code=303)
        return _html_page("Login successful", f"{welcome} You may close this window.")

    # ----- GET /auth/status ----------------------------------------------- #
    @app.custom_route(f"{base_path}/status", methods=["GET"])
    async def _status(request: Request) -> Response:  # noqa: D401
        svc = get_provider()
        credential = svc.get_credential()
        return JSONResponse(
            {
                "authenticated": credential is not None,
                "environment": credential.environment if credential else None,
                "phase": svc.phase.value,
            }
        )

    # ----- POST /auth/logout ---------------------------------------------- #
    @app.custom_route(f"{base_path}/logout", methods=["POST"])
    async def _logout(request: Request) -> Response:  # noqa: D401
        get_provider().logout()
        _LOG.info("Logged out correlation_id=%s", _correlation_id(request))
        return Response(status_code=204)
