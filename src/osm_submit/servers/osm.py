"""OpenStreetMap tools exposed over MCP."""

import logging
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field
from starlette.concurrency import run_in_threadpool

from osm_submit.auth.errors import OsmSubmitError, UnauthorizedError
from osm_submit.changeset.codec import to_osm_json, to_osm_xml
from osm_submit.changeset.models import PointOfInterest
from osm_submit.changeset.pipeline import ChangesetSubmitter
from osm_submit.changeset.sink import ListLogSink
from osm_submit.servers.context import MainAppContext

logger = logging.getLogger("osm-submit.servers.osm")

osm_mcp = FastMCP(
    name="OSM tools",
    instructions="Preview and submit OpenStreetMap points of interest.",
)


def _app_context(ctx: Context) -> MainAppContext:
    lifespan_ctx_dict = ctx.request_context.lifespan_context  # type: ignore
    app_ctx: MainAppContext | None = (
        lifespan_ctx_dict.get("app_lifespan_context")
        if isinstance(lifespan_ctx_dict, dict)
        else None
    )
    if app_ctx is None:
        raise ToolError("Application context unavailable; is the server lifespan running?")
    return app_ctx


def _build_poi(lat: float, lon: float, tags: dict[str, str] | None) -> PointOfInterest:
    try:
        return PointOfInterest(lat=lat, lon=lon, tags=tags or {})
    except ValueError as exc:
        raise ToolError(str(exc)) from exc


async def preview_poi(
    lat: Annotated[float, Field(description="Latitude in decimal degrees.")],
    lon: Annotated[float, Field(description="Longitude in decimal degrees.")],
    tags: Annotated[
        dict[str, str] | None,
        Field(description="OSM tags, e.g. {'name': 'Cafe', 'amenity': 'cafe'}. Blank values are dropped."),
    ] = None,
    changeset_id: Annotated[
        str, Field(description="Changeset id to embed in the XML document.")
    ] = "0",
) -> dict[str, str]:
    """Render the XML and JSON documents a submission would send."""
    poi = _build_poi(lat, lon, tags)
    return {"xml": to_osm_xml(poi, changeset_id), "json": to_osm_json(poi)}


async def submit_poi(
    ctx: Context,
    lat: Annotated[float, Field(description="Latitude in decimal degrees.")],
    lon: Annotated[float, Field(description="Longitude in decimal degrees.")],
    tags: Annotated[
        dict[str, str],
        Field(description="OSM tags of the new node. Blank values are dropped."),
    ],
) -> dict[str, Any]:
    """Create a node in a fresh changeset using the logged-in account."""
    app_ctx = _app_context(ctx)
    if app_ctx.read_only:
        raise ToolError("Server is in read-only mode (OSM_READ_ONLY).")

    credential = app_ctx.auth_provider.get_credential()
    if credential is None:
        raise ToolError("Not logged in. Open /auth/start in a browser first.")

    poi = _build_poi(lat, lon, tags)
    sink = ListLogSink()
    submitter = ChangesetSubmitter(
        sink=sink,
        created_by=app_ctx.settings.created_by,
        timeout=app_ctx.settings.http_timeout,
    )
    try:
        node_id = await run_in_threadpool(submitter.submit, credential, poi)
    except OsmSubmitError as exc:
        logger.warning("Submission failed: %s", exc.code)
        lines = "\n".join(sink.messages)
        hint = " Log in again via /auth/start." if isinstance(exc, UnauthorizedError) else ""
        raise ToolError(f"{exc}{hint}\n{lines}") from exc

    return {
        "node_id": node_id,
        "environment": credential.environment,
        "log": [entry.to_dict() for entry in sink.entries],
    }


async def auth_status(ctx: Context) -> dict[str, Any]:
    """Report whether an OpenStreetMap account is logged in."""
    provider = _app_context(ctx).auth_provider
    credential = provider.get_credential()
    status: dict[str, Any] = {
        "authenticated": credential is not None,
        "environment": credential.environment if credential else None,
        "phase": provider.phase.value,
        "user": None,
    }
    if credential is not None:
        try:
            user = await run_in_threadpool(provider.fetch_user, credential)
            status["user"] = user.display_name
        except OsmSubmitError as exc:
            logger.warning("Could not load user details: %s", exc)
    return status


osm_mcp.tool(name="preview_poi", tags={"osm", "read"})(preview_poi)
osm_mcp.tool(name="submit_poi", tags={"osm", "write"})(submit_poi)
osm_mcp.tool(name="auth_status", tags={"osm", "read"})(auth_status)
