"""MCP server and HTTP routes for OSM Submit."""
