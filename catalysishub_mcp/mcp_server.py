from dataclasses import dataclass
import enum
import inspect
import json
import logging
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Union
from typing import get_args
from typing import get_origin

from aiohttp import web
import docstring_parser

from .graphql import GraphQLForwarder


log = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"

METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

TYPE_MAP = {
    "str": "string",
    "int": "number",
    "float": "number",
    "bool": "boolean",
    "list": "array",
    "dict": "object",
}


class Method(enum.Enum):
    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"


class MalformedEnvelope(Exception):
    pass


@dataclass(frozen=True)
class ServerConfig:
    """Static server metadata, built once and shared read-only by all requests."""

    name: str
    version: str
    protocol_version: str
    graphql_url: str
    user_agent: str


@dataclass
class RpcEnvelope:
    method: str
    params: Dict[str, Any]
    id: Union[str, int, None]
    is_notification: bool

    @classmethod
    def from_dict(cls, data: Any) -> "RpcEnvelope":
        if not isinstance(data, dict):
            raise MalformedEnvelope(f"Expected a JSON object, got {type(data).__name__}")
        method = data.get("method")
        if not isinstance(method, str):
            raise MalformedEnvelope("Missing method")
        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise MalformedEnvelope("params must be an object")
        return cls(
            method=method,
            params=params,
            id=data.get("id"),
            is_notification="id" not in data,
        )


def _type_to_json_schema(annotation: Any) -> Dict[str, Any]:
    if annotation is type(None):
        return {"type": "null"}

    origin = get_origin(annotation)

    if origin is Union:
        non_none_args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return _type_to_json_schema(non_none_args[0]) if non_none_args else {"type": "null"}

    if origin is not None:
        return _type_to_json_schema(origin)

    if hasattr(annotation, "__name__"):
        return {"type": TYPE_MAP.get(annotation.__name__, annotation.__name__)}

    return {"type": "string"}


class _Tool:
    def __init__(self, func: Callable[..., Awaitable[Any]]):
        self.func = func
        self.name = func.__name__

        if not func.__doc__:
            raise ValueError(f"Function {self.name} must have a docstring")
        doc = docstring_parser.parse(func.__doc__)
        self.description = "\n\n".join(d for d in (doc.short_description, doc.long_description) if d)

        arguments = {}
        required = []
        for name, param in inspect.signature(func).parameters.items():
            if name == "self":
                continue
            argument = {}

            if param.annotation and param.annotation != inspect.Parameter.empty:
                argument = _type_to_json_schema(param.annotation)

            if param.default != inspect.Parameter.empty:
                if param.default is not None:
                    argument["default"] = param.default
            else:
                required.append(name)

            doc_param = next((p for p in doc.params if p.arg_name == name), None)
            if not doc_param or not doc_param.description:
                raise ValueError(f"Function {self.name} must have a description for parameter {name}")
            argument["description"] = doc_param.description

            arguments[name] = argument

        self.arguments = arguments
        self.required = required

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": self.arguments,
                "required": self.required,
            },
        }

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    async def call(self, **kwargs: Any) -> Any:
        return await self.func(**kwargs)


def _result(request_id: Any, result: Dict[str, Any]) -> web.Response:
    return web.json_response({"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result})


def error_response(request_id: Any, code: int, message: str, status: int) -> web.Response:
    return web.json_response(
        {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "error": {"code": code, "message": message},
        },
        status=status,
    )


class MCPServer:
    def __init__(self, config: ServerConfig, forwarder: GraphQLForwarder):
        self.config = config
        self.forwarder = forwarder
        self.tools: List[_Tool] = [
            _Tool(self.catalysishub_graphql),
        ]
        # Built once so every tools/list answer is identical.
        self._tools_list = {"tools": [t.to_dict() for t in self.tools]}
        self._handlers: Dict[Method, Callable[[RpcEnvelope], Awaitable[web.Response]]] = {
            Method.INITIALIZE: self.initialize,
            Method.INITIALIZED: self.initialized,
            Method.TOOLS_LIST: self.tools_list,
            Method.TOOLS_CALL: self.call_tool,
        }
        missing = set(Method) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for methods: {sorted(m.value for m in missing)}")

    async def handle_request(self, request: web.Request) -> web.Response:
        envelope = RpcEnvelope.from_dict(await request.json())

        log.info("Handling MCP request for %s", envelope.method)

        try:
            method: Optional[Method] = Method(envelope.method)
        except ValueError:
            method = None

        if envelope.is_notification and method is not Method.INITIALIZED:
            return web.Response(status=204)
        if method is None:
            return error_response(envelope.id, METHOD_NOT_FOUND, f"Method not found: {envelope.method}", status=400)
        return await self._handlers[method](envelope)

    async def initialize(self, envelope: RpcEnvelope) -> web.Response:
        return _result(
            envelope.id,
            {
                "protocolVersion": envelope.params.get("protocolVersion") or self.config.protocol_version,
                "capabilities": {"tools": {}},
                "serverInfo": {
                    "name": self.config.name,
                    "version": self.config.version,
                },
            },
        )

    async def initialized(self, envelope: RpcEnvelope) -> web.Response:
        return web.Response(status=204)

    async def tools_list(self, envelope: RpcEnvelope) -> web.Response:
        return _result(envelope.id, self._tools_list)

    async def call_tool(self, envelope: RpcEnvelope) -> web.Response:
        tool_name = envelope.params.get("name")
        tool = next((t for t in self.tools if t.name == tool_name), None)
        if not tool:
            return error_response(envelope.id, METHOD_NOT_FOUND, f"Tool not found: {tool_name}", status=404)

        tool_arguments = envelope.params.get("arguments") or {}
        try:
            result = await tool.call(**tool_arguments)
            text = json.dumps(result, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except Exception as e:
            log.exception("Tool %s failed", tool.name)
            return error_response(envelope.id, INTERNAL_ERROR, f"Internal error: {e}", status=500)

        return _result(envelope.id, {"content": [{"type": "text", "text": text}]})

    async def catalysishub_graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a GraphQL query against the Catalysis Hub API.

        Catalysis Hub holds computational catalysis data: reaction energetics
        and barriers, surface structures, DFT calculation parameters and
        publication metadata. Example queries:

        - query { reactions(first: 10) { edges { node { id chemicalComposition } } } }
        - query { publications(first: 10) { edges { node { title authors year doi } } } }
        - query { systems(first: 10) { edges { node { id energy } } } }
        - query { __schema { queryType { name } types { name kind description } } }
        - query { reactions(textsearch: "CO2", first: 5) { edges { node { id chemicalComposition } } } }

        Args:
            query: The GraphQL query to execute against the Catalysis Hub API. Use introspection queries to
                discover the schema. If you get a HTTP 400 error, it means the query is invalid, and you should
                run introspection queries in order to correct your queries.
            variables: Optional dictionary of variables for the GraphQL query
        """
        log.info("Executing catalysishub_graphql with query: %s...", query[:100])
        return await self.forwarder.forward(query, variables)
