"""Request/response correlation between tool calls and the extension link.

Each outgoing command gets a fresh id and a single-slot waiter (a
``concurrent.futures.Future``). Replies are routed back by id. A waiter is
settled at most once: by the reply, a peer error, its timeout, cancellation
of the caller's scope, or loss of the link it was sent over.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import Future, InvalidStateError
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from typing import Any, Protocol

from .cancel import CancelScope
from .errors import ExtensionError, LinkError, RequestTimeout
from .protocol import Message

logger = logging.getLogger("mcp.bridge.correlator")

NO_ACTIVE_TAB = -1
CONNECTION_POLL_INTERVAL = 0.1


class Link(Protocol):
    """What the correlator needs from a live extension connection."""

    id: str

    def send_message(self, msg: Message) -> None: ...


@dataclass(slots=True)
class _Pending:
    future: Future
    action: str
    link_id: str


def _settle(fut: Future, *, result: Any = None, exc: BaseException | None = None) -> bool:
    try:
        if exc is not None:
            fut.set_exception(exc)
        else:
            fut.set_result(result)
    except InvalidStateError:
        return False
    return True


def _as_tab_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class RequestCorrelator:
    def __init__(self, request_timeout: float = 5.0) -> None:
        self.request_timeout = request_timeout
        self._lock = threading.Lock()
        self._connection: Link | None = None
        self._pending: dict[str, _Pending] = {}
        self._active_tab_id = NO_ACTIVE_TAB
        self._event_handlers: dict[str, Callable[[Any], None]] = {
            "tabClosed": self._on_tab_closed,
        }

    # ── link ownership ───────────────────────────────────────────────────────

    def set_connection(self, conn: Link) -> None:
        """Make ``conn`` the current link, replacing any previous one."""
        with self._lock:
            previous = self._connection
            self._connection = conn
        if previous is not None and previous is not conn:
            logger.info("extension link %s replaced by %s", previous.id, conn.id)

    def remove_connection(self, conn: Link) -> None:
        """Forget ``conn`` (if still current) and fail every waiter sent over it."""
        with self._lock:
            if self._connection is conn:
                self._connection = None
            stale = [key for key, p in self._pending.items() if p.link_id == conn.id]
            dropped = [self._pending.pop(key) for key in stale]
        for pending in dropped:
            _settle(pending.future, exc=LinkError("extension disconnected"))
        if dropped:
            logger.warning("link %s closed with %d request(s) in flight", conn.id, len(dropped))

    @property
    def connection(self) -> Link | None:
        with self._lock:
            return self._connection

    def is_connected(self) -> bool:
        return self.connection is not None

    def wait_for_connection(self, timeout: float, scope: CancelScope | None = None) -> None:
        deadline = time.monotonic() + max(0.0, timeout)
        while True:
            if scope is None:
                time.sleep(CONNECTION_POLL_INTERVAL)
            elif scope.wait(CONNECTION_POLL_INTERVAL):
                scope.raise_if_cancelled()
            if self.is_connected():
                return
            if time.monotonic() > deadline:
                raise RequestTimeout("timeout waiting for Chrome extension connection")

    # ── active tab ───────────────────────────────────────────────────────────

    @property
    def active_tab_id(self) -> int:
        with self._lock:
            return self._active_tab_id

    @active_tab_id.setter
    def active_tab_id(self, tab_id: int) -> None:
        with self._lock:
            self._active_tab_id = tab_id

    def resolve_tab(self, tab_id: int) -> int:
        """Substitute the remembered active tab for ``0``."""
        return self.active_tab_id if tab_id == 0 else tab_id

    # ── send and await ───────────────────────────────────────────────────────

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def send_command(self, action: str, params: Any = None, scope: CancelScope | None = None) -> Any:
        """Send ``action`` to the extension and block until its reply.

        Returns the decoded reply payload. Raises ``ExtensionError`` when the
        extension answers with an error, ``RequestTimeout`` after the
        round-trip ceiling, ``LinkError`` when there is no usable link, or the
        scope's cause when ``scope`` is cancelled first.
        """
        if scope is not None:
            scope.raise_if_cancelled()

        msg_id = str(uuid.uuid4())
        fut: Future = Future()
        # same lock as remove_connection: a waiter is never registered on a dropped link
        with self._lock:
            conn = self._connection
            if conn is None:
                raise LinkError("no connection to Chrome extension")
            self._pending[msg_id] = _Pending(future=fut, action=action, link_id=conn.id)

        def _on_cancel(cause: BaseException) -> None:
            _settle(fut, exc=cause)

        if scope is not None:
            scope.add_callback(_on_cancel)
        try:
            conn.send_message(Message.command_frame(msg_id, action, params))
            done, _ = wait_futures([fut], timeout=self.request_timeout)
            if not done:
                raise RequestTimeout("timeout waiting for Chrome extension response")
            return fut.result()
        finally:
            with self._lock:
                self._pending.pop(msg_id, None)
            if scope is not None:
                scope.remove_callback(_on_cancel)

    # ── inbound routing ──────────────────────────────────────────────────────

    def handle_response(self, msg_id: str, payload: Any, error: str = "") -> bool:
        """Deliver a reply to its waiter. Unknown ids are dropped."""
        with self._lock:
            pending = self._pending.pop(msg_id, None)
        if pending is None:
            logger.debug("dropping reply for unknown request id=%s", msg_id)
            return False
        if error:
            return _settle(pending.future, exc=ExtensionError(error))
        return _settle(pending.future, result=payload)

    def handle_event(self, action: str, data: Any) -> None:
        handler = self._event_handlers.get(action)
        if handler is None:
            logger.debug("ignoring extension event %s", action)
            return
        handler(data)

    def _on_tab_closed(self, data: Any) -> None:
        if not isinstance(data, dict):
            return
        tab_id = _as_tab_id(data.get("tabId"))
        if tab_id is None:
            return
        with self._lock:
            if tab_id == self._active_tab_id:
                self._active_tab_id = NO_ACTIVE_TAB
                logger.info("active tab %d closed", tab_id)
