"""Central registry for MCP tools.

This module provides a single point of registration for all MCP tools and
resources. Tool names carry the backend prefix (``mysql_`` or
``postgresql_``) so one client can talk to both gateways side by side.
"""

import logging
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from fastmcp import FastMCP

    from mcp_server.tools.database_tools import DatabaseTools
    from mcp_server.tools.query_tools import QueryTools

logger = logging.getLogger(__name__)

# Canonical tool names (without backend prefix)
DATABASE_TOOLS = ("list_databases", "list_tables", "describe_table", "server_status")
QUERY_TOOLS = ("select", "insert", "update", "delete", "execute_query")


def get_all_tool_names(prefix: str) -> List[str]:
    """Return the registered tool names for a backend prefix."""
    return sorted(f"{prefix}_{name}" for name in DATABASE_TOOLS + QUERY_TOOLS)


def register_all(
    mcp: "FastMCP",
    database_tools: "DatabaseTools",
    query_tools: "QueryTools",
    prefix: str,
) -> None:
    """Register all tools and resources with the MCP server.

    Args:
        mcp: FastMCP server instance
        database_tools: Catalog tool handlers
        query_tools: Query tool handlers
        prefix: Backend prefix for tool names and resource URIs
    """
    from mcp_server.utils.tracing import trace_tool

    def register(name, func):
        full_name = f"{prefix}_{name}"
        traced = trace_tool(full_name)(func)
        mcp.tool(name=full_name)(traced)

    for name in DATABASE_TOOLS:
        register(name, getattr(database_tools, name))
    for name in QUERY_TOOLS:
        register(name, getattr(query_tools, name))

    mcp.resource(f"{prefix}://connection/status", name=f"{prefix}_connection_status")(
        database_tools.connection_status
    )
    mcp.resource(f"{prefix}://server/capabilities", name=f"{prefix}_server_capabilities")(
        database_tools.capabilities
    )

    logger.info(
        "Registered %d tools with MCP server",
        len(DATABASE_TOOLS) + len(QUERY_TOOLS),
        extra={"prefix": prefix},
    )
