"""Blocking MCP client over a child process's stdio, built on the ``mcp`` SDK.

Used by the DSL ``connect``/``call`` statements. The SDK session lives on a
private event loop running in a daemon thread; the public methods submit
coroutines to it and wait, so the interpreter stays synchronous. The child's
stderr is inherited so its logs stay visible next to the runner's.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import logging
import os
import threading
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp import types as mcp_types
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError

from mcp_servers.browser_bridge.cancel import CancelScope

from .errors import MCPClientError
from .values import normalize

logger = logging.getLogger("mcp.test.client")

PROTOCOL_VERSION = mcp_types.LATEST_PROTOCOL_VERSION
CLIENT_INFO = mcp_types.Implementation(name="mcp-test-client", version="1.0.0")
DEFAULT_REQUEST_TIMEOUT = 60.0


@dataclass(slots=True)
class CallToolResult:
    content: list[dict[str, Any]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def from_sdk(cls, result: mcp_types.CallToolResult) -> CallToolResult:
        return cls(
            content=[block.model_dump(mode="json", by_alias=True, exclude_none=True) for block in result.content],
            is_error=bool(result.isError),
        )


def coerce_arguments(arguments: Any) -> dict[str, Any]:
    """Tool arguments as a string-keyed map (None -> {}, others via JSON round-trip).

    Integral floats are sent as integers.
    """
    if arguments is None:
        return {}
    if isinstance(arguments, dict):
        return normalize(arguments)
    try:
        decoded = json.loads(json.dumps(arguments))
    except (TypeError, ValueError) as exc:
        raise MCPClientError(f"failed to marshal arguments: {exc}") from exc
    if not isinstance(decoded, dict):
        raise MCPClientError(f"failed to unmarshal arguments: expected an object, got {type(arguments).__name__}")
    return normalize(decoded)


def _leaf_error(exc: BaseException) -> BaseException:
    """First non-group exception inside an (anyio) exception group."""
    while True:
        inner = getattr(exc, "exceptions", None)
        if not inner:
            return exc
        exc = inner[0]


def _settle(fut: concurrent.futures.Future, *, result: Any = None, exc: BaseException | None = None) -> None:
    if fut.done():
        return
    try:
        if exc is not None:
            fut.set_exception(exc)
        else:
            fut.set_result(result)
    except concurrent.futures.InvalidStateError:  # cancelled meanwhile
        pass


def _client_error(exc: McpError) -> MCPClientError:
    code = exc.error.code
    if code == mcp_types.CONNECTION_CLOSED:
        return MCPClientError("MCP server closed the connection", code=code)
    return MCPClientError(f"{exc.error.message} (code {code})", code=code)


class MCPClient:
    def __init__(self, *, request_timeout: float = DEFAULT_REQUEST_TIMEOUT) -> None:
        self.request_timeout = request_timeout
        self.server_info: dict[str, Any] = {}
        self.protocol_version = ""
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._session: ClientSession | None = None
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task | None = None
        self._finished = threading.Event()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._session is not None and not self._closed and not self._finished.is_set()

    def connect(self, command: str, *args: str, scope: CancelScope | None = None) -> None:
        """Spawn ``command`` and run the initialize handshake."""
        if self._thread is not None:
            raise MCPClientError("client already connected")
        if scope is not None:
            scope.raise_if_cancelled()
        ready: concurrent.futures.Future = concurrent.futures.Future()
        loop_ready = threading.Event()

        def _run_thread() -> None:
            loop = asyncio.new_event_loop()
            self._loop = loop
            asyncio.set_event_loop(loop)
            loop_ready.set()
            try:
                loop.run_forever()
            finally:
                loop.close()

        self._thread = threading.Thread(target=_run_thread, name="mcp-client-loop", daemon=True)
        self._thread.start()
        loop_ready.wait()

        params = StdioServerParameters(command=command, args=list(args), env=dict(os.environ))
        asyncio.run_coroutine_threadsafe(self._session_main(params, ready), self._loop)
        try:
            result = self._wait(ready, scope, "initialize")
        except MCPClientError as exc:
            self.close()
            raise MCPClientError(f"failed to initialize client: {exc}") from exc
        except BaseException:
            self.close()
            raise

        self.protocol_version = str(result.protocolVersion)
        self.server_info = result.serverInfo.model_dump(mode="json", exclude_none=True)
        logger.info(
            "connected to %s %s (protocol %s)",
            self.server_info.get("name", command),
            self.server_info.get("version", ""),
            self.protocol_version,
        )

    async def _session_main(self, params: StdioServerParameters, ready: concurrent.futures.Future) -> None:
        self._task = asyncio.current_task()
        self._stop = asyncio.Event()
        try:
            async with AsyncExitStack() as stack:
                try:
                    read, write = await stack.enter_async_context(stdio_client(params))
                except OSError as exc:
                    raise MCPClientError(f"failed to start MCP server {params.command!r}: {exc}") from exc
                session = await stack.enter_async_context(ClientSession(read, write, client_info=CLIENT_INFO))
                result = await session.initialize()
                self._session = session
                _settle(ready, result=result)
                await self._stop.wait()
        except BaseException as exc:
            leaf = _leaf_error(exc)
            if isinstance(leaf, McpError):
                _settle(ready, exc=_client_error(leaf))
            elif isinstance(leaf, MCPClientError):
                _settle(ready, exc=leaf)
            elif isinstance(leaf, OSError):
                _settle(ready, exc=MCPClientError(f"failed to start MCP server {params.command!r}: {leaf}"))
            elif isinstance(leaf, Exception):
                _settle(ready, exc=MCPClientError(str(leaf) or type(leaf).__name__))
            else:
                _settle(ready, exc=MCPClientError("session cancelled"))
            if not isinstance(exc, Exception):
                raise
            logger.debug("MCP session ended: %s", leaf)
        finally:
            self._session = None
            self._finished.set()

    # -- requests --------------------------------------------------------

    def _wait(self, fut: concurrent.futures.Future, scope: CancelScope | None, what: str) -> Any:
        causes: list[BaseException] = []

        def _on_cancel(cause: BaseException) -> None:
            causes.append(cause)
            fut.cancel()

        if scope is not None:
            scope.add_callback(_on_cancel)
        try:
            return fut.result(timeout=self.request_timeout)
        except concurrent.futures.CancelledError:
            if causes:
                raise causes[0] from None
            raise MCPClientError(f"{what} cancelled") from None
        except concurrent.futures.TimeoutError:
            fut.cancel()
            raise MCPClientError(f"timeout waiting for {what} response") from None
        except McpError as exc:
            raise _client_error(exc) from exc
        finally:
            if scope is not None:
                scope.remove_callback(_on_cancel)

    def _request(self, call: Callable[[ClientSession], Awaitable[Any]], scope: CancelScope | None, what: str) -> Any:
        if scope is not None:
            scope.raise_if_cancelled()
        session, loop = self._session, self._loop
        if session is None or loop is None or self._closed:
            raise MCPClientError("client not connected")
        fut = asyncio.run_coroutine_threadsafe(call(session), loop)
        return self._wait(fut, scope, what)

    def list_tools(self, *, scope: CancelScope | None = None) -> list[dict[str, Any]]:
        tools: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            page = self._request(lambda s, c=cursor: s.list_tools(c), scope, "tools/list")
            tools.extend(t.model_dump(mode="json", by_alias=True, exclude_none=True) for t in page.tools)
            cursor = page.nextCursor
            if not cursor:
                return tools

    def call_tool(self, name: str, arguments: Any = None, *, scope: CancelScope | None = None) -> CallToolResult:
        args = coerce_arguments(arguments)
        sdk_result = self._request(lambda s: s.call_tool(name, args), scope, "tools/call")
        result = CallToolResult.from_sdk(sdk_result)
        if result.is_error:
            logger.warning("tool %s returned an error result", name)
        return result

    # -- shutdown --------------------------------------------------------

    def _shutdown(self) -> None:
        # loop thread: leave an established session cleanly, abort a handshake
        if self._session is not None and self._stop is not None:
            self._stop.set()
        else:
            self._cancel_task()

    def _cancel_task(self) -> None:
        task = self._task
        if task is not None and not task.done():
            task.cancel()

    def close(self, timeout: float = 5.0) -> None:
        """Close the session; the SDK closes stdin, then terminates the child."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        loop = self._loop
        if loop is None:
            return
        loop.call_soon_threadsafe(self._shutdown)
        if not self._finished.wait(timeout):
            logger.warning("MCP session did not shut down within %.1fs", timeout)
            loop.call_soon_threadsafe(self._cancel_task)
            self._finished.wait(timeout)
        loop.call_soon_threadsafe(loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._session = None
