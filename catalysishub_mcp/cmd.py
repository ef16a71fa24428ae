import argparse
import json
import os
import sys
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

import requests
import yarl

from .mcp_server import JSONRPC_VERSION
from .server import MCP_PATH


TOOL_NAME = "catalysishub_graphql"


def _add_server_url_arg(parser: argparse.ArgumentParser) -> None:
    """Add the server url argument to the given parser."""
    parser.add_argument(
        "--server-url",
        type=str,
        default=os.environ.get("CATALYSISHUB_MCP_URL", "http://localhost:8000"),
        help="MCP server URL. Default is http://localhost:8000",
    )


def _parse_variables(s: str) -> Dict[str, Any]:
    """Return the GraphQL variables encoded in a JSON string.

    >>> _parse_variables('{"first": 5}')
    {'first': 5}
    """
    variables = json.loads(s)
    if not isinstance(variables, dict):
        raise argparse.ArgumentTypeError("variables must be a JSON object")
    return variables


def tools_call_payload(query: str, variables: Optional[Dict[str, Any]] = None, request_id: int = 1) -> Dict[str, Any]:
    arguments: Dict[str, Any] = {"query": query}
    if variables is not None:
        arguments["variables"] = variables
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": "tools/call",
        "params": {"name": TOOL_NAME, "arguments": arguments},
    }


def main_query(args: Optional[List[str]] = None) -> None:
    """Entrypoint for the query command"""
    parser = argparse.ArgumentParser(
        description="Run a GraphQL query against Catalysis Hub through a running MCP server.",
        prog="catalysishub-mcp-query",
    )
    _add_server_url_arg(parser)
    parser.add_argument(
        "--variables",
        type=_parse_variables,
        default=None,
        help="GraphQL variables as a JSON object.",
    )
    parser.add_argument("query", type=str, help="The GraphQL query to execute.")
    parsed_args = parser.parse_args(sys.argv[1:] if args is None else args)

    url = yarl.URL(parsed_args.server_url).with_path(MCP_PATH)
    resp = requests.post(str(url), json=tools_call_payload(parsed_args.query, parsed_args.variables))
    if resp.status_code != 200:
        print(resp.text)
        sys.exit(1)
    body = resp.json()
    if "error" in body:
        print(json.dumps(body["error"]))
        sys.exit(1)
    for item in body["result"]["content"]:
        print(item["text"])
    sys.exit(0)
