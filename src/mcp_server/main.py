"""MCP Server entrypoint for the SQL gateway.

This module builds the gateway from the environment (and optional command-line
overrides), initializes the FastMCP server and registers the tools via the
central registry.
"""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from common.config.env import get_env_int, get_env_str
from common.config.settings import GatewaySettings, normalize_backend
from common.errors import ConfigurationError
from common.observability import is_otel_exporter_configured
from dal.dialect import get_dialect
from dal.pool import ConnectionPool
from mcp_server.tools.database_tools import DatabaseTools
from mcp_server.tools.query_tools import QueryTools
from mcp_server.tools.registry import register_all
from security.policy import SecurityConfig, SecurityPolicy

logger = logging.getLogger(__name__)

SERVER_VERSION = "1.0.0"


def configure_logging(level: str) -> None:
    """Send logs to stderr; stdout carries the stdio transport."""
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def setup_telemetry() -> None:
    """Initialize OTEL SDK for the MCP server."""
    service_name = get_env_str("OTEL_SERVICE_NAME", "sql-gateway-mcp")
    resource = Resource.create({SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    if not is_otel_exporter_configured():
        logger.info("OTEL initialized without exporter")
        return

    endpoint = get_env_str("OTEL_EXPORTER_OTLP_ENDPOINT")
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    logger.info("OTEL initialized for MCP server: %s", service_name)


def create_server(settings: GatewaySettings) -> FastMCP:
    """Build the pool, policy and tool handlers and wire them into FastMCP.

    The pool opens connections lazily; the lifespan verifies connectivity at
    startup and closes every connection at shutdown.
    """
    dialect = get_dialect(settings.backend)
    pool = ConnectionPool(dialect, settings)
    policy = SecurityPolicy(
        SecurityConfig.from_settings(
            settings, extra_dangerous_keywords=dialect.extra_dangerous_keywords
        )
    )

    @asynccontextmanager
    async def lifespan(app):
        """Check connectivity on startup and drain the pool on shutdown."""
        logger.info(
            "Starting SQL gateway",
            extra={"dsn": dialect.build_dsn(settings, redact=True), **settings.public_dict()},
        )
        if await pool.test_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection test failed; tools will retry on demand")
        try:
            yield
        finally:
            await pool.close_all()

    mcp = FastMCP(f"{settings.tool_prefix}-sql-gateway", lifespan=lifespan)
    register_all(
        mcp,
        DatabaseTools(pool, policy, settings),
        QueryTools(pool, policy),
        settings.tool_prefix,
    )
    return mcp


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sql-gateway-mcp",
        description="Policy-gated MySQL/PostgreSQL gateway exposed as MCP tools.",
    )
    parser.add_argument("--backend", help="mysql or postgres (default: DB_BACKEND)")
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    parser.add_argument("--user")
    parser.add_argument("--password")
    parser.add_argument("--database")
    parser.add_argument("--allow-insert", action="store_const", const=True, default=None)
    parser.add_argument("--allow-update", action="store_const", const=True, default=None)
    parser.add_argument("--allow-delete", action="store_const", const=True, default=None)
    parser.add_argument("--log-level")
    parser.add_argument(
        "--transport", choices=["stdio", "sse", "http", "streamable-http"], default=None
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {SERVER_VERSION}")
    return parser


def load_settings(args: argparse.Namespace) -> GatewaySettings:
    """Load settings from the environment and apply command-line overrides.

    Raises:
        ConfigurationError: On invalid configuration.
    """
    backend = normalize_backend(args.backend) if args.backend else None
    settings = GatewaySettings.from_env(backend)
    return settings.with_overrides(
        host=args.host,
        port=args.port,
        user=args.user,
        password=args.password,
        database=args.database,
        allow_insert=args.allow_insert,
        allow_update=args.allow_update,
        allow_delete=args.allow_delete,
        log_level=args.log_level.upper() if args.log_level else None,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point."""
    args = build_arg_parser().parse_args(argv)
    load_dotenv()

    try:
        settings = load_settings(args)
    except ConfigurationError as exc:
        configure_logging("INFO")
        logger.error("Invalid configuration: %s", exc.message)
        return 1

    configure_logging(settings.log_level)
    setup_telemetry()
    mcp = create_server(settings)

    # Respect transport and host/port from environment for containerized use
    transport = (args.transport or get_env_str("MCP_TRANSPORT", "stdio")).lower()
    host = get_env_str("MCP_HOST", "0.0.0.0")
    port = get_env_int("MCP_PORT", 8000)

    if transport in ("sse", "http", "streamable-http"):
        logger.info("Starting MCP server in sse mode on %s:%s/messages", host, port)
        mcp.run(transport="sse", host=host, port=port, path="/messages")
    else:
        mcp.run(transport="stdio")
    return 0


if __name__ == "__main__":
    sys.exit(main())
