from typing import Any
from typing import Dict


def tools_call(query: str, **arguments: Any) -> Dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "tools/call",
        "params": {"name": "catalysishub_graphql", "arguments": {"query": query, **arguments}},
    }
