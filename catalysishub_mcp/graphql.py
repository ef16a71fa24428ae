import asyncio
import json
import logging
from typing import Any
from typing import Dict
from typing import Optional

from aiohttp import ClientError
from aiohttp import ClientSession


log = logging.getLogger(__name__)

DEFAULT_GRAPHQL_URL = "http://api.catalysis-hub.org/graphql"

HTTP_ERROR_LABEL = "HTTP Request Error connecting to Catalysis Hub"


class UpstreamStatusError(Exception):
    """The GraphQL endpoint answered with a non-2xx status."""

    def __init__(self, status: int):
        super().__init__(f"HTTP error! status: {status}")
        self.status = status


def error_result(message: str) -> Dict[str, Any]:
    """Return a GraphQL style error payload.

    >>> error_result("boom")
    {'errors': [{'message': 'boom'}]}
    """
    return {"errors": [{"message": message}]}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_json(text: str) -> Any:
    """Parse a response body as strict JSON.

    Empty bodies and the NaN/Infinity extensions are rejected.

    >>> parse_json('{"data": null}')
    {'data': None}
    """
    return json.loads(text, parse_constant=_reject_constant)


class GraphQLForwarder:
    """Send GraphQL queries to a single upstream endpoint.

    Failures are reported as ``{"errors": [...]}`` values, the same shape a
    GraphQL server uses for its own errors, so :meth:`forward` never raises.
    """

    def __init__(self, url: str, user_agent: str):
        self.url = url
        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }

    def _payload(self, query: str, variables: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        data: Dict[str, Any] = {"query": query}
        if variables is not None:
            data["variables"] = variables
        return data

    async def _post(self, data: Dict[str, Any]) -> Any:
        log.debug("Making GraphQL request to %r", self.url)
        async with ClientSession() as session:
            async with session.post(self.url, headers=self.headers, json=data) as resp:
                log.debug("GraphQL response status %r", resp.status)
                if not 200 <= resp.status < 300:
                    raise UpstreamStatusError(resp.status)
                return parse_json(await resp.text())

    async def forward(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Any:
        try:
            return await self._post(self._payload(query, variables))
        except (ClientError, asyncio.TimeoutError, UpstreamStatusError, ValueError) as e:
            log.warning("Error during Catalysis Hub request: %s", e)
            return error_result(f"{HTTP_ERROR_LABEL}: {e}")
        except Exception as e:
            log.exception("Unexpected error during Catalysis Hub request")
            return error_result(f"An unexpected error occurred: {e}")
