"""OSM Submit: log in to OpenStreetMap with OAuth 2.0 + PKCE and submit points of interest."""

import argparse
import logging
import os
import sys

from osm_submit.utils.logging import setup_logging

__version__ = "0.1.0"

logger = logging.getLogger("osm-submit")


def main(argv: list[str] | None = None) -> None:
    """Run the OSM Submit MCP server."""
    parser = argparse.ArgumentParser(prog="osm-submit", description=main.__doc__)
    parser.add_argument(
        "--transport",
        choices=("stdio", "sse", "streamable-http"),
        default=os.getenv("TRANSPORT", "stdio"),
        help="MCP transport (default: stdio)",
    )
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "9000")))
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG"
    )
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    setup_logging(level)

    from osm_submit.servers.main import main_mcp

    logger.info("Starting server with %s transport", args.transport)
    try:
        if args.transport == "stdio":
            main_mcp.run(transport="stdio")
        else:
            main_mcp.run(transport=args.transport, host=args.host, port=args.port)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)


__all__ = ["main", "__version__"]
