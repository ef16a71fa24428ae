import argparse
import logging
import os
import sys
from typing import Awaitable
from typing import Callable
from typing import List
from typing import Optional

from aiohttp import web
from aiohttp.web import HTTPException
from aiohttp.web import Request
from aiohttp.web import middleware

from . import _get_version
from .graphql import DEFAULT_GRAPHQL_URL
from .graphql import GraphQLForwarder
from .mcp_server import DEFAULT_PROTOCOL_VERSION
from .mcp_server import INTERNAL_ERROR
from .mcp_server import MCPServer
from .mcp_server import ServerConfig
from .mcp_server import error_response


MCP_PATH = "/mcp"

SERVER_NAME = "CatalysisHub"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

_Handler = Callable[[Request], Awaitable[web.StreamResponse]]


log = logging.getLogger(__name__)


@middleware
async def cors_middleware(request: Request, handler: _Handler) -> web.StreamResponse:
    """Add the CORS headers to every response, error responses included."""
    try:
        response = await handler(request)
    except HTTPException as e:
        e.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


@middleware
async def handle_exception_middleware(request: Request, handler: _Handler) -> web.StreamResponse:
    """Turn exceptions into JSON-RPC internal errors.

    The request id is unknown at this point so the envelope carries a null id.
    """
    try:
        response = await handler(request)
        return response
    except HTTPException:
        raise
    except Exception as e:
        log.exception("Error handling %s %s", request.method, request.path)
        return error_response(None, INTERNAL_ERROR, f"Internal error: {e}", status=500)


async def handle_mcp(request: Request) -> web.StreamResponse:
    if request.method == "POST":
        mcp_server: MCPServer = request.app["mcp_server"]
        return await mcp_server.handle_request(request)
    if request.method == "OPTIONS":
        return web.Response(status=204)
    return web.Response(text="ready")


async def handle_not_found(request: Request) -> web.Response:
    return web.Response(status=404, text="Catalysis Hub MCP Server - Not found")


def make_app(
    graphql_url: str = DEFAULT_GRAPHQL_URL,
    protocol_version: str = DEFAULT_PROTOCOL_VERSION,
) -> web.Application:
    version = _get_version()
    config = ServerConfig(
        name=SERVER_NAME,
        version=version,
        protocol_version=protocol_version,
        graphql_url=graphql_url,
        user_agent=f"MCPCatalysisHubServer/{version}",
    )
    forwarder = GraphQLForwarder(config.graphql_url, config.user_agent)

    app = web.Application(
        middlewares=[
            cors_middleware,  # type: ignore
            handle_exception_middleware,  # type: ignore
        ],
    )
    app.add_routes(
        [
            web.route("*", MCP_PATH, handle_mcp),
            web.route("*", "/{path:.*}", handle_not_found),
        ]
    )
    app["config"] = config
    app["mcp_server"] = MCPServer(config, forwarder)
    return app


def main(args: Optional[List[str]] = None) -> None:
    if args is None:
        args = sys.argv[1:]
    parser = argparse.ArgumentParser(
        description="MCP server for the Catalysis Hub GraphQL API",
        prog="catalysishub-mcp",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="store_true",
        dest="version",
        help="Print version info and exit.",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=os.environ.get("MCP_HOST", "localhost"),
        help="Host to listen on. Default is localhost.",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=int(os.environ.get("MCP_PORT", os.environ.get("PORT", 8000))),
    )
    parser.add_argument(
        "--graphql-url",
        type=str,
        default=os.environ.get("CATALYSISHUB_GRAPHQL_URL", DEFAULT_GRAPHQL_URL),
        help=f"Catalysis Hub GraphQL endpoint. Default is {DEFAULT_GRAPHQL_URL}",
    )
    parser.add_argument(
        "--protocol-version",
        type=str,
        default=os.environ.get("MCP_PROTOCOL_VERSION", DEFAULT_PROTOCOL_VERSION),
        help="Protocol version reported when the client does not request one.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Set the log level. DEBUG, INFO, WARNING, ERROR, CRITICAL.",
    )
    parsed_args = parser.parse_args(args=args)
    logging.basicConfig(level=parsed_args.log_level)

    if parsed_args.version:
        print(_get_version())
        sys.exit(0)

    app = make_app(
        graphql_url=parsed_args.graphql_url,
        protocol_version=parsed_args.protocol_version,
    )
    log.info("Forwarding GraphQL queries to %r", parsed_args.graphql_url)
    web.run_app(app, host=parsed_args.host, port=parsed_args.port)


if __name__ == "__main__":
    main()
