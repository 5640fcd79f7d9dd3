"""Main FastMCP server setup for OSM Submit."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from osm_submit.auth.provider import default_auth_provider

from .auth import register_auth_routes
from .context import MainAppContext
from .correlation import CorrelationIdMiddleware
from .osm import osm_mcp

logger = logging.getLogger("osm-submit.server.main")


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


@asynccontextmanager
async def main_lifespan(app: FastMCP[MainAppContext]) -> AsyncIterator[dict]:
    logger.info("OSM Submit MCP server lifespan starting...")
    provider = default_auth_provider()
    settings = provider.settings

    app_context = MainAppContext(
        settings=settings,
        auth_provider=provider,
        read_only=settings.read_only,
    )
    logger.info(
        "Auth provider=%s environment=%s authenticated=%s",
        settings.auth_provider,
        settings.environment,
        provider.is_authenticated(),
    )
    logger.info(f"Read-only mode: {'ENABLED' if settings.read_only else 'DISABLED'}")

    try:
        yield {"app_lifespan_context": app_context}
    except Exception as e:
        logger.error(f"Error during lifespan: {e}", exc_info=True)
        raise
    finally:
        logger.info("OSM Submit MCP server lifespan shutdown complete.")


class OsmSubmitMCP(FastMCP[MainAppContext]):
    """FastMCP server that tags every HTTP request with a correlation id."""

    def http_app(
        self,
        path: str | None = None,
        middleware: list[Middleware] | None = None,
        transport: Literal["streamable-http", "sse"] = "streamable-http",
        **kwargs: Any,
    ) -> "Starlette":
        final_middleware_list = [Middleware(CorrelationIdMiddleware)]
        if middleware:
            final_middleware_list.extend(middleware)
        return super().http_app(
            path=path, middleware=final_middleware_list, transport=transport, **kwargs
        )


main_mcp = OsmSubmitMCP(name="OSM Submit MCP", lifespan=main_lifespan)
main_mcp.mount(osm_mcp, prefix="osm")
register_auth_routes(main_mcp)


@main_mcp.custom_route("/healthz", methods=["GET"], include_in_schema=False)
async def _health_check_route(request: Request) -> JSONResponse:
    return await health_check(request)
