"""
MCP server bridging tool calls to the browser extension.

This module provides the main entry point and protocol handling: newline
delimited JSON-RPC on stdin/stdout. Tool dispatch is handled via the registry
in server/registry.py; each tool call runs on a worker thread with its own
cancel scope so that slow extension round-trips never block the read loop.
"""

from __future__ import annotations

import json
import logging
import os
import signal
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import IO, Any

from .browser_client import BrowserClient
from .cancel import CancelScope
from .config import BridgeConfig
from .correlator import RequestCorrelator
from .errors import ConfigError, RequestCancelled
from .extension_gateway import ExtensionGateway
from .logging_setup import configure_logging
from .server.contract import (
    DEFAULT_PROTOCOL_VERSION,
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    initialize_result,
    select_protocol,
    tools_list,
)
from .server.redaction import redact_jsonrpc_for_log, redact_tool_arguments
from .server.registry import create_default_registry
from .server.types import ToolResult

logger = logging.getLogger("mcp.bridge")

__all__ = [
    "SUPPORTED_PROTOCOL_VERSIONS",
    "LATEST_PROTOCOL_VERSION",
    "DEFAULT_PROTOCOL_VERSION",
    "McpServer",
    "main",
]

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
DEFAULT_MAX_WORKERS = 16


class McpServer:
    """MCP Server with registry-based tool dispatch."""

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        out: IO[bytes] | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.config = config or BridgeConfig.load()
        self.correlator = RequestCorrelator(self.config.request_timeout)
        self.client = BrowserClient(self.correlator)
        self.registry = create_default_registry()
        ws = self.config.websocket
        self.gateway = ExtensionGateway(
            self.correlator,
            host=ws.host,
            port=ws.port,
            allowed_origins=ws.allowed_origins,
            ping_interval=ws.ping_interval,
        )
        self.root_scope = CancelScope(name="root")

        self._out = out if out is not None else sys.stdout.buffer
        self._write_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mcp-tool")
        self._inflight_lock = threading.Lock()
        self._inflight: dict[Any, CancelScope] = {}
        self._client_cancelled: set[Any] = set()

    @property
    def server_info(self) -> dict[str, str]:
        return {"name": self.config.server.name, "version": self.config.server.version}

    def _write_message(self, payload: dict[str, Any]) -> None:
        """Write JSON-RPC message to stdout."""
        line = (json.dumps(payload, ensure_ascii=False) + "\n").encode()
        if os.environ.get("MCP_TRACE"):
            logger.info("send %s", redact_jsonrpc_for_log(payload))
        with self._write_lock:
            self._out.write(line)
            self._out.flush()

    def _reply(self, request_id: Any, result: dict[str, Any]) -> None:
        self._write_message({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _reply_error(self, request_id: Any, code: int, message: str) -> None:
        self._write_message({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})

    def handle_initialize(self, request_id: Any, params: dict[str, Any] | None = None) -> None:
        """Handle initialize request."""
        requested = params.get("protocolVersion") if isinstance(params, dict) else None
        self._reply(request_id, initialize_result(select_protocol(requested), self.server_info))

    def handle_list_tools(self, request_id: Any) -> None:
        """Handle tools/list request."""
        self._reply(request_id, {"tools": tools_list()})

    def _log_call(self, name: str, arguments: dict[str, Any]) -> None:
        """Log tool call with sanitized arguments."""
        logger.info("tool=%s args=%s", name, redact_tool_arguments(name, arguments))

    def run_tool(self, name: str, arguments: dict[str, Any], scope: CancelScope) -> ToolResult:
        """Run one tool to completion. Never raises."""
        self._log_call(name, arguments)
        try:
            if not name:
                return ToolResult.error("Missing tool name")
            if not self.registry.has(name):
                return ToolResult.error(f"Unknown tool: {name}")
            return self.registry.dispatch(name, self.client, arguments, scope)
        except Exception as exc:
            logger.exception("tool_call_failed tool=%s", name)
            return ToolResult.error(str(exc))

    def handle_call_tool(self, request_id: Any, name: str, arguments: dict[str, Any]) -> None:
        """Run the tool on a worker thread and reply when it finishes."""
        scope = self.root_scope.child(name=f"call:{request_id}")
        with self._inflight_lock:
            self._inflight[request_id] = scope

        def _work() -> None:
            try:
                result = self.run_tool(name, arguments, scope)
            finally:
                scope.close()
                with self._inflight_lock:
                    self._inflight.pop(request_id, None)
                    cancelled_by_client = request_id in self._client_cancelled
                    self._client_cancelled.discard(request_id)
            if cancelled_by_client:
                logger.info("tool=%s cancelled by client, no response sent", name)
                return
            self._reply(request_id, {"content": result.to_content_list(), "isError": result.is_error})

        try:
            self._executor.submit(_work)
        except RuntimeError:
            # executor already shut down
            scope.close()
            with self._inflight_lock:
                self._inflight.pop(request_id, None)
            self._reply(request_id, {"content": ToolResult.error("server is shutting down").to_content_list(), "isError": True})

    def handle_cancelled(self, params: dict[str, Any]) -> None:
        request_id = params.get("requestId")
        reason = params.get("reason") or "cancelled by client"
        with self._inflight_lock:
            scope = self._inflight.get(request_id)
            if scope is not None:
                self._client_cancelled.add(request_id)
        if scope is None:
            return
        logger.info("cancelling request %s: %s", request_id, reason)
        scope.cancel(RequestCancelled(str(reason)))

    def dispatch(self, message: dict[str, Any]) -> None:
        """Dispatch incoming JSON-RPC message to appropriate handler."""
        if not message:
            return

        method = message.get("method")
        request_id = message.get("id")
        params = message.get("params") or {}
        is_notification = "id" not in message

        if method == "initialize":
            self.handle_initialize(request_id, params)
        elif method in ("notifications/initialized", "initialized"):
            return
        elif method == "notifications/cancelled":
            self.handle_cancelled(params if isinstance(params, dict) else {})
        elif method == "tools/list":
            self.handle_list_tools(request_id)
        elif method == "tools/call":
            name = params.get("name") if isinstance(params, dict) else None
            arguments = params.get("arguments") if isinstance(params, dict) else None
            self.handle_call_tool(request_id, name or "", arguments if isinstance(arguments, dict) else {})
        elif method == "ping":
            self._reply(request_id, {})
        elif is_notification or method is None:
            return
        else:
            self._reply_error(request_id, METHOD_NOT_FOUND, f"Method {method} not found")

    def serve(self, stream: IO[bytes]) -> None:
        """Read frames until EOF or until the root scope is cancelled."""
        for raw in iter(stream.readline, b""):
            if self.root_scope.cancelled:
                break
            line = raw.strip()
            if not line:
                continue
            try:
                message = json.loads(line.decode())
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                logger.warning("malformed frame: %s", exc)
                self._reply_error(None, PARSE_ERROR, "Parse error")
                continue
            if not isinstance(message, dict):
                self._reply_error(None, PARSE_ERROR, "Parse error")
                continue
            if os.environ.get("MCP_TRACE"):
                logger.info("recv %s", redact_jsonrpc_for_log(message))
            self.dispatch(message)

    def shutdown(self, *, wait: bool = True) -> None:
        self.root_scope.cancel(RequestCancelled("server shutting down"))
        self.gateway.stop()
        self._executor.shutdown(wait=wait, cancel_futures=True)


def main() -> int:
    """Main entry point for MCP server."""
    try:
        config = BridgeConfig.load()
    except ConfigError as exc:
        configure_logging("info", "text")
        logger.error("failed to load config: %s", exc)
        return 1

    configure_logging(config.logging.level, config.logging.format)
    if config.source:
        logger.info("loaded config from %s", config.source)

    server = McpServer(config)
    try:
        server.gateway.start()
    except RuntimeError as exc:
        # The MCP side stays up; tool calls report the missing extension link.
        logger.error("extension gateway failed to start: %s", exc)

    stop = threading.Event()

    def _on_signal(signum: int, _frame: Any) -> None:
        logger.info("received signal %d, shutting down", signum)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    def _read_loop() -> None:
        try:
            server.serve(sys.stdin.buffer)
        finally:
            stop.set()

    reader = threading.Thread(target=_read_loop, name="mcp-stdio-reader", daemon=True)
    reader.start()

    while not stop.wait(0.5):
        pass

    logger.info("Shutting down...")
    server.shutdown()
    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
