from __future__ import annotations

import io
import json
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from mcp_servers.browser_bridge.cancel import CancelScope
from mcp_servers.browser_bridge.errors import RequestCancelled
from mcp_servers.mcp_test.dsl import Interpreter
from mcp_servers.mcp_test.errors import MCPClientError
from mcp_servers.mcp_test.mcp_client import PROTOCOL_VERSION, MCPClient, coerce_arguments

REPO_ROOT = Path(__file__).resolve().parents[1]

FAKE_SERVER = textwrap.dedent(
    """
    import json
    import sys
    import time

    pongs = 0

    def send(payload):
        sys.stdout.write(json.dumps(payload) + "\\n")
        sys.stdout.flush()

    for line in sys.stdin:
        msg = json.loads(line)
        method = msg.get("method")
        if method is None:
            if msg.get("id") == "srv-ping" and msg.get("result") == {}:
                pongs += 1
            continue
        if "id" not in msg:
            continue
        rid = msg["id"]
        params = msg.get("params") or {}
        if method == "initialize":
            send({"jsonrpc": "2.0", "id": "srv-ping", "method": "ping"})
            send({"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info", "data": "starting"}})
            result = {
                "protocolVersion": params["protocolVersion"],
                "serverInfo": {"name": "fake", "version": "0.1"},
                "capabilities": {"tools": {}},
            }
        elif method == "tools/list":
            if params.get("cursor") == "page2":
                result = {"tools": [{"name": "pongs", "inputSchema": {"type": "object"}}]}
            else:
                result = {"tools": [{"name": "echo", "inputSchema": {"type": "object"}}], "nextCursor": "page2"}
        elif method == "tools/call" and params["name"] == "echo":
            result = {"content": [{"type": "text", "text": json.dumps(params["arguments"], sort_keys=True)}]}
        elif method == "tools/call" and params["name"] == "pongs":
            result = {"content": [{"type": "text", "text": str(pongs)}]}
        elif method == "tools/call" and params["name"] == "die":
            sys.exit(0)
        elif method == "tools/call" and params["name"] == "slow":
            time.sleep(3)
            result = {"content": [{"type": "text", "text": "late"}]}
        else:
            send({"jsonrpc": "2.0", "id": rid, "error": {"code": -32602, "message": "Unknown tool"}})
            continue
        send({"jsonrpc": "2.0", "id": rid, "result": result})
    """
)


@pytest.fixture()
def fake_server(tmp_path: Path) -> Path:
    path = tmp_path / "fake_server.py"
    path.write_text(FAKE_SERVER, encoding="utf-8")
    return path


def test_handshake_list_and_call(fake_server: Path) -> None:
    client = MCPClient(request_timeout=10)
    client.connect(sys.executable, str(fake_server))
    try:
        assert client.connected
        assert client.protocol_version == PROTOCOL_VERSION
        assert client.server_info == {"name": "fake", "version": "0.1"}

        tools = client.list_tools()
        assert [t["name"] for t in tools] == ["echo", "pongs"]

        result = client.call_tool("echo", {"b": 2, "a": "x"})
        assert not result.is_error
        assert json.loads(result.content[0]["text"]) == {"a": "x", "b": 2}

        # the server's ping during initialize was answered
        assert client.call_tool("pongs").content[0]["text"] == "1"

        with pytest.raises(MCPClientError) as exc_info:
            client.call_tool("missing")
        assert str(exc_info.value) == "Unknown tool (code -32602)"
        assert exc_info.value.code == -32602
    finally:
        client.close()
    assert not client.connected


def test_server_exit_fails_pending_request(fake_server: Path) -> None:
    client = MCPClient(request_timeout=10)
    client.connect(sys.executable, str(fake_server))
    try:
        with pytest.raises(MCPClientError) as exc_info:
            client.call_tool("die")
        assert str(exc_info.value) == "MCP server closed the connection"
    finally:
        client.close()


def test_cancelled_scope_abandons_call(fake_server: Path) -> None:
    client = MCPClient(request_timeout=10)
    client.connect(sys.executable, str(fake_server))
    try:
        scope = CancelScope()
        timer = threading.Timer(0.2, scope.cancel, args=(RequestCancelled("stop"),))
        timer.start()
        started = time.monotonic()
        with pytest.raises(RequestCancelled):
            client.call_tool("slow", scope=scope)
        assert time.monotonic() - started < 2.0
    finally:
        client.close()
    assert not client.connected


def test_missing_executable() -> None:
    client = MCPClient()
    with pytest.raises(MCPClientError) as exc_info:
        client.connect("/nonexistent/mcp-server-binary")
    assert "failed to start MCP server" in str(exc_info.value)


def test_coerce_arguments() -> None:
    assert coerce_arguments(None) == {}
    assert coerce_arguments({"a": 1}) == {"a": 1}
    coerced = coerce_arguments({"tabId": 5.0, "ratio": 0.5})
    assert coerced == {"tabId": 5, "ratio": 0.5}
    assert isinstance(coerced["tabId"], int)
    with pytest.raises(MCPClientError):
        coerce_arguments([1, 2])


def test_dsl_script_against_fake_server(fake_server: Path, tmp_path: Path) -> None:
    script = tmp_path / "smoke.dsl"
    script.write_text(
        f"connect {json.dumps(sys.executable)} {json.dumps(str(fake_server))}\n"
        "call list_tools -> tools\n"
        'assert len(tools) == 2, "two tools"\n'
        'call echo {n: 1, tags: ["x"]} -> r\n'
        "assert r.n == 1\n"
        'assert r.tags[0] == "x"\n'
        "print r\n",
        encoding="utf-8",
    )
    interp = Interpreter(stdout=io.StringIO())
    try:
        interp.execute_file(script)
    finally:
        interp.close()
    assert interp.output == '{\n  "n": 1,\n  "tags": [\n    "x"\n  ]\n}\n'


def test_dsl_script_against_bridge_server(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PYTHONPATH", str(REPO_ROOT))
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("MCP_BROWSER_WS_HOST", "127.0.0.1")
    monkeypatch.setenv("MCP_BROWSER_WS_PORT", "0")
    monkeypatch.delenv("MCP_BROWSER_CONFIG", raising=False)

    source = (
        f'connect {json.dumps(sys.executable)} "-m" "mcp_servers.browser_bridge.main"\n'
        "call list_tools -> tools\n"
        "assert len(tools) == 36\n"
        "call browser_list_tabs -> r\n"
        'assert r == "Failed to list tabs: no connection to Chrome extension"\n'
        'call browser_close_tab {} -> missing\n'
        "print missing\n"
    )
    out = io.StringIO()
    interp = Interpreter(stdout=out)
    try:
        interp.execute_string(source)
    finally:
        interp.close()
    assert out.getvalue() == 'required argument "tabId" not found\n'
