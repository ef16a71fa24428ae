import json

import pytest

from catalysishub_mcp import cmd


class FakeResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body
        self.text = json.dumps(body)

    def json(self):
        return self._body


@pytest.fixture
def posted(monkeypatch):
    calls = []

    def install(response):
        def fake_post(url, json):
            calls.append({"url": url, "json": json})
            return response

        monkeypatch.setattr(cmd.requests, "post", fake_post)
        return calls

    yield install


def test_tools_call_payload():
    assert cmd.tools_call_payload("query { a }") == {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "tools/call",
        "params": {"name": "catalysishub_graphql", "arguments": {"query": "query { a }"}},
    }


def test_query(posted, capsys):
    text = '{"data":{"reactions":{"totalCount":3}}}'
    calls = posted(FakeResponse(200, {"jsonrpc": "2.0", "id": 1, "result": {"content": [{"type": "text", "text": text}]}}))
    with pytest.raises(SystemExit) as e:
        cmd.main_query(["--server-url", "http://localhost:9000/", "--variables", '{"n": 3}', "query { a }"])
    assert e.value.code == 0
    assert calls[0]["url"] == "http://localhost:9000/mcp"
    assert calls[0]["json"]["params"]["arguments"] == {"query": "query { a }", "variables": {"n": 3}}
    assert capsys.readouterr().out.strip() == text


def test_query_rpc_error(posted, capsys):
    posted(FakeResponse(404, {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Tool not found"}}))
    with pytest.raises(SystemExit) as e:
        cmd.main_query(["query { a }"])
    assert e.value.code == 1
    assert "Tool not found" in capsys.readouterr().out


def test_query_bad_variables(capsys):
    with pytest.raises(SystemExit) as e:
        cmd.main_query(["--variables", "[1]", "query { a }"])
    assert e.value.code == 2
    assert "variables must be a JSON object" in capsys.readouterr().err
