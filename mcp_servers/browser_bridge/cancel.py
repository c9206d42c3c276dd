"""Thread-safe cancellation scopes.

A ``CancelScope`` is the cancellation signal threaded through every blocking
bridge operation and through the DSL interpreter. Scopes form a tree: a child
is cancelled together with its parent, and may carry its own deadline.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from .errors import RequestCancelled, RequestTimeout

Callback = Callable[[BaseException], None]


class CancelScope:
    def __init__(self, *, timeout: float | None = None, name: str = "") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._cause: BaseException | None = None
        self._callbacks: list[Callback] = []
        self._parent: CancelScope | None = None
        self._timer: threading.Timer | None = None
        if timeout is not None and timeout > 0:
            self._timer = threading.Timer(
                timeout, self.cancel, args=(RequestTimeout(f"execution timeout after {timeout:g}s"),)
            )
            self._timer.daemon = True
            self._timer.start()

    def __enter__(self) -> CancelScope:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def cause(self) -> BaseException | None:
        with self._lock:
            return self._cause

    def cancel(self, cause: BaseException | None = None) -> bool:
        """Cancel the scope. Returns False when it was already cancelled."""
        with self._lock:
            if self._event.is_set():
                return False
            self._cause = cause if cause is not None else RequestCancelled()
            self._event.set()
            callbacks = self._callbacks
            self._callbacks = []
            timer = self._timer
            self._timer = None
            cause = self._cause
        if timer is not None:
            timer.cancel()
        for cb in callbacks:
            cb(cause)
        return True

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise self.cause or RequestCancelled()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses. Returns ``cancelled``."""
        return self._event.wait(timeout)

    def add_callback(self, fn: Callback) -> None:
        """Register ``fn(cause)``. Runs immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(fn)
                return
            cause = self._cause
        fn(cause or RequestCancelled())

    def remove_callback(self, fn: Callback) -> None:
        with self._lock:
            try:
                self._callbacks.remove(fn)
            except ValueError:
                pass

    def child(self, *, timeout: float | None = None, name: str = "") -> CancelScope:
        scope = CancelScope(timeout=timeout, name=name)
        scope._parent = self
        self.add_callback(scope.cancel)
        return scope

    def close(self) -> None:
        """Detach from the parent and stop the deadline timer."""
        with self._lock:
            timer = self._timer
            self._timer = None
            parent = self._parent
            self._parent = None
        if timer is not None:
            timer.cancel()
        if parent is not None:
            parent.remove_callback(self.cancel)
