from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import queue
import threading
import time
import uuid
from typing import Any
from urllib.parse import urlsplit

from .correlator import RequestCorrelator
from .errors import BufferFullError, LinkError
from .protocol import Message

logger = logging.getLogger("mcp.bridge.gateway")

SEND_BUFFER_SIZE = 256
READ_TIMEOUT = 60.0
WRITE_TIMEOUT = 10.0
DEFAULT_PING_INTERVAL = 30.0
HEALTH_PATH = "/health"

_CLOSE = object()


def _is_localhost(origin: str, scheme: str) -> bool:
    """``<scheme>://localhost`` with an optional numeric port and nothing else."""
    try:
        parts = urlsplit(origin)
        port = parts.port
    except ValueError:  # non-numeric or out-of-range port
        return False
    netloc = "localhost" if port is None else f"localhost:{port}"
    return parts.scheme == scheme and parts.netloc == netloc and not (parts.path or parts.query or parts.fragment)


def origin_allowed(origin: str | None, allowed_origins: list[str]) -> bool:
    """Origin policy for WebSocket upgrades.

    An empty Origin is accepted. ``chrome-extension://*`` admits every
    extension origin; ``http://localhost`` and ``https://localhost`` admit any
    port on localhost. Every other entry must match exactly.
    """
    if not origin:
        return True
    for allowed in allowed_origins:
        if allowed == "chrome-extension://*" and origin.startswith("chrome-extension://"):
            return True
        if allowed in ("http://localhost", "https://localhost") and _is_localhost(origin, allowed.split(":", 1)[0]):
            return True
        if origin == allowed:
            return True
    return False


class PeerConnection:
    """One upgraded extension connection.

    ``send_message`` is thread-safe and never blocks: frames go into a bounded
    queue drained in order by a single writer task on the gateway loop.
    """

    def __init__(self, ws: Any, loop: asyncio.AbstractEventLoop, *, ping_interval: float) -> None:
        self.id = str(uuid.uuid4())
        self._ws = ws
        self._loop = loop
        self._ping_interval = ping_interval
        self._outbox: queue.Queue = queue.Queue(maxsize=SEND_BUFFER_SIZE)
        self._wakeup = asyncio.Event()
        self._closed = threading.Event()
        self.last_seen = time.monotonic()
        self.remote = str(getattr(ws, "remote_address", "") or "")

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send_message(self, msg: Message) -> None:
        if self._closed.is_set():
            raise LinkError(f"connection {self.id} is closed")
        try:
            self._outbox.put_nowait(msg.encode())
        except queue.Full:
            logger.warning("send buffer full on connection %s", self.id)
            raise BufferFullError() from None
        try:
            self._loop.call_soon_threadsafe(self._wakeup.set)
        except RuntimeError as exc:
            raise LinkError(f"connection {self.id} is closed") from exc

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def close_outbox(self) -> None:
        self._closed.set()
        with contextlib.suppress(queue.Full):
            self._outbox.put_nowait(_CLOSE)
        self._wakeup.set()

    async def write_pump(self) -> None:
        while True:
            try:
                item = self._outbox.get_nowait()
            except queue.Empty:
                self._wakeup.clear()
                if self._outbox.empty():
                    await self._wakeup.wait()
                continue
            if item is _CLOSE or self._closed.is_set():
                return
            try:
                await asyncio.wait_for(self._ws.send(item), timeout=WRITE_TIMEOUT)
            except Exception as exc:  # noqa: BLE001
                logger.warning("write failed on connection %s: %s", self.id, exc)
                with contextlib.suppress(Exception):
                    await self._ws.close()
                return

    async def ping_pump(self) -> None:
        if self._ping_interval <= 0:
            return
        while not self._closed.is_set():
            await asyncio.sleep(self._ping_interval)
            try:
                pong_waiter = await asyncio.wait_for(self._ws.ping(), timeout=WRITE_TIMEOUT)
            except Exception:  # noqa: BLE001
                return
            pong_waiter.add_done_callback(self._on_pong)

    def _on_pong(self, fut: asyncio.Future) -> None:
        if not fut.cancelled() and fut.exception() is None:
            self.touch()

    async def next_frame(self) -> str | bytes | None:
        """Next inbound frame, or None once the read deadline has passed."""
        while True:
            remaining = READ_TIMEOUT - (time.monotonic() - self.last_seen)
            if remaining <= 0:
                return None
            try:
                raw = await asyncio.wait_for(self._ws.recv(), timeout=remaining)
            except asyncio.TimeoutError:
                continue
            self.touch()
            return raw


class ExtensionGateway:
    """Local WebSocket endpoint the browser extension connects to.

    The asyncio server runs in a dedicated daemon thread; callers interact with
    it synchronously. The most recently upgraded connection is the one the
    correlator sends commands over.
    """

    def __init__(
        self,
        correlator: RequestCorrelator,
        *,
        host: str = "localhost",
        port: int = 8765,
        allowed_origins: list[str] | None = None,
        ping_interval: float = DEFAULT_PING_INTERVAL,
    ) -> None:
        self.correlator = correlator
        self.host = host
        self.port = port
        self.allowed_origins = list(allowed_origins or [])
        self.ping_interval = float(ping_interval)

        self._lock = threading.Lock()
        self._connections: dict[str, PeerConnection] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()
        self._stop: asyncio.Event | None = None
        self._server: Any | None = None
        self._bind_error: str | None = None

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def start(self, *, wait_timeout: float = 5.0) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._ready.clear()
        with self._lock:
            self._bind_error = None

        t = threading.Thread(target=self._run_thread, name="mcp-extension-gateway", daemon=True)
        self._thread = t
        t.start()

        if not self._ready.wait(timeout=max(0.05, float(wait_timeout))):
            raise RuntimeError(f"Extension gateway failed to start on {self.host}:{self.port}")
        with self._lock:
            bind_error = self._bind_error
        if bind_error:
            raise RuntimeError(f"Extension gateway bind failed on {self.host}:{self.port}: {bind_error}")

    def stop(self, *, timeout: float = 2.0) -> None:
        loop = self._loop
        stop = self._stop
        if loop is not None and stop is not None:
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(stop.set)
        t = self._thread
        if t is not None:
            t.join(timeout=timeout)

    def is_listening(self) -> bool:
        with self._lock:
            return self._server is not None

    def connections(self) -> list[PeerConnection]:
        with self._lock:
            return list(self._connections.values())

    def status(self) -> dict[str, Any]:
        with self._lock:
            listening = self._server is not None
            conn_ids = list(self._connections)
            bind_error = self._bind_error
        current = self.correlator.connection
        return {
            "listening": listening,
            "host": self.host,
            "port": self.port,
            "connections": conn_ids,
            "current": current.id if current is not None else None,
            "activeTabId": self.correlator.active_tab_id,
            "pending": self.correlator.pending_count(),
            **({"bindError": bind_error} if bind_error else {}),
        }

    def _run_thread(self) -> None:
        try:
            asyncio.run(self._run_async())
        finally:
            self._ready.set()

    async def _run_async(self) -> None:
        from websockets.asyncio.server import serve
        from websockets.datastructures import Headers as WsHeaders
        from websockets.http11 import Response as WsResponse

        def _plain(status: int, reason: str, body: bytes) -> WsResponse:
            headers = WsHeaders()
            headers["Content-Type"] = "text/plain; charset=utf-8"
            headers["Content-Length"] = str(len(body))
            headers["Cache-Control"] = "no-store"
            return WsResponse(status, reason, headers, body)

        def _process_request(_conn, request):  # type: ignore[no-untyped-def]
            if request.path.split("?", 1)[0] == HEALTH_PATH:
                return _plain(200, "OK", b"OK")
            origin = request.headers.get("Origin")
            if not origin_allowed(origin, self.allowed_origins):
                logger.warning("rejected WebSocket connection from origin: %s", origin)
                return _plain(403, "Forbidden", b"origin not allowed")
            return None

        self._loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        try:
            server = await serve(
                self._handle_connection,
                self.host,
                int(self.port),
                process_request=_process_request,
                ping_interval=None,
                max_size=16 * 1024 * 1024,
            )
        except OSError as exc:
            with self._lock:
                self._bind_error = str(exc)
            logger.error("extension gateway bind failed on %s:%s: %s", self.host, self.port, exc)
            return

        with self._lock:
            self._server = server
            if int(self.port) == 0 and server.sockets:
                self.port = int(server.sockets[0].getsockname()[1])
        logger.info("WebSocket server listening on ws://%s:%s", self.host, self.port)
        self._ready.set()

        try:
            await self._stop.wait()
        finally:
            with self._lock:
                self._server = None
            server.close()
            await server.wait_closed()
            logger.info("extension gateway stopped")

    # ─────────────────────────────────────────────────────────────────────────
    # Connections
    # ─────────────────────────────────────────────────────────────────────────

    async def _handle_connection(self, ws: Any) -> None:
        conn = PeerConnection(ws, asyncio.get_running_loop(), ping_interval=self.ping_interval)
        with self._lock:
            self._connections[conn.id] = conn
        self.correlator.set_connection(conn)
        logger.info("new WebSocket connection: %s", conn.id)

        writer = asyncio.create_task(conn.write_pump())
        pinger = asyncio.create_task(conn.ping_pump())
        try:
            await self._read_pump(conn)
        finally:
            with self._lock:
                self._connections.pop(conn.id, None)
            conn.close_outbox()
            self.correlator.remove_connection(conn)
            pinger.cancel()
            with contextlib.suppress(Exception):
                await asyncio.wait_for(writer, timeout=WRITE_TIMEOUT)
            with contextlib.suppress(Exception):
                await ws.close()
            logger.info("WebSocket connection closed: %s", conn.id)

    async def _read_pump(self, conn: PeerConnection) -> None:
        from websockets.exceptions import ConnectionClosed

        while True:
            try:
                raw = await conn.next_frame()
            except ConnectionClosed as exc:
                if exc.rcvd is None or exc.rcvd.code not in (1000, 1001):
                    logger.info("WebSocket read error on %s: %s", conn.id, exc)
                return
            if raw is None:
                logger.warning("read deadline exceeded on connection %s", conn.id)
                return
            try:
                msg = Message.decode(raw)
            except (ValueError, json.JSONDecodeError) as exc:
                logger.warning("WebSocket read error on %s: invalid frame: %s", conn.id, exc)
                return
            self._route(conn, msg)

    def _route(self, conn: PeerConnection, msg: Message) -> None:
        mtype = msg.type
        if mtype == "response":
            self.correlator.handle_response(msg.id, msg.reply_payload(), msg.error)
        elif mtype == "event":
            self.correlator.handle_event(msg.action, msg.get("data"))
        elif mtype == "ping":
            self._reply(conn, Message.reply_frame(msg.id, "pong"), "pong")
        elif mtype == "connected":
            logger.info("Chrome extension connected successfully: %s", conn.id)
            if msg.id:
                self._reply(conn, Message.reply_frame(msg.id, "ack"), "acknowledgment")
        elif mtype == "error":
            logger.warning("Chrome extension error (connection: %s): %s", conn.id, msg.error)
            if msg.has("data") and msg.data is not None:
                logger.warning("error details: %s", json.dumps(msg.data, ensure_ascii=False))
            if msg.id:
                self.correlator.handle_response(msg.id, None, msg.error or "unknown error")
        else:
            logger.info("unknown message type: %s", mtype)

    @staticmethod
    def _reply(conn: PeerConnection, msg: Message, label: str) -> None:
        try:
            conn.send_message(msg)
        except LinkError as exc:
            logger.warning("failed to send %s message: %s", label, exc)
