import socket
from typing import Any
from typing import Dict
from typing import Generator
from typing import List

from aiohttp import web
import pytest

from catalysishub_mcp.server import make_app


pytest_plugins = "aiohttp.pytest_plugin"


@pytest.fixture
def upstream_status() -> Generator[int, None, None]:
    yield 200


@pytest.fixture
def upstream_body() -> Generator[str, None, None]:
    yield '{"data":{"__schema":{"queryType":{"name":"Query"}}}}'


@pytest.fixture
def upstream_requests() -> Generator[List[Dict[str, Any]], None, None]:
    yield []


@pytest.fixture
async def graphql_upstream(aiohttp_server, upstream_status, upstream_body, upstream_requests):
    """An in-process stand-in for the Catalysis Hub GraphQL endpoint."""

    async def handle_graphql(request: web.Request) -> web.Response:
        upstream_requests.append(
            {
                "headers": request.headers.copy(),
                "body": await request.json(),
            }
        )
        return web.Response(status=upstream_status, text=upstream_body, content_type="application/json")

    app = web.Application()
    app.router.add_post("/graphql", handle_graphql)
    server = await aiohttp_server(app)
    yield server


@pytest.fixture
def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


@pytest.fixture
def graphql_url(graphql_upstream) -> Generator[str, None, None]:
    yield str(graphql_upstream.make_url("/graphql"))


@pytest.fixture
async def mcp_app(aiohttp_server, graphql_url):
    app = await aiohttp_server(make_app(graphql_url=graphql_url))
    yield app


@pytest.fixture
async def mcp(mcp_app, aiohttp_client):
    client = await aiohttp_client(mcp_app)
    yield client
