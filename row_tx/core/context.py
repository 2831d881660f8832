"""Cancellation contexts.

A Context is a node in a cancellation tree. Cancelling a context cancels all
of its descendants and runs the callbacks registered on each of them, which
is how adapters interrupt blocking driver calls.

Usage:
    with Context.background().with_timeout(5.0) as ctx:
        select(db, ctx, query, mapping)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from row_tx.core.exceptions import ContextCancelledError, DeadlineExceededError

logger = logging.getLogger(__name__)


def _noop() -> None:
    pass


class Context:
    """Cancellable context, optionally bound to a parent."""

    def __init__(self, parent: Context | None = None) -> None:
        self._parent = parent
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._error: ContextCancelledError | None = None
        self._children: set[Context] = set()
        self._callbacks: dict[int, Callable[[], Any]] = {}
        self._next_callback_id = 0
        self._timer: threading.Timer | None = None
        if parent is not None:
            parent._attach(self)

    @classmethod
    def background(cls) -> Context:
        """Create a root context that is only cancelled explicitly."""
        return cls()

    def with_cancel(self) -> Context:
        """Derive a child context cancelled together with this one."""
        return Context(self)

    def with_timeout(self, seconds: float) -> Context:
        """Derive a child context that is cancelled after ``seconds``."""
        child = Context(self)
        with child._lock:
            if child._error is None:
                timer = threading.Timer(seconds, child._cancel, args=(DeadlineExceededError(),))
                timer.daemon = True
                child._timer = timer
                timer.start()
        return child

    @property
    def parent(self) -> Context | None:
        return self._parent

    @property
    def cancelled(self) -> bool:
        return self._done.is_set()

    def error(self) -> ContextCancelledError | None:
        """Return the cancellation cause, or None while the context is live."""
        return self._error

    def raise_if_cancelled(self) -> None:
        """Raise ContextCancelledError (or DeadlineExceededError) if cancelled."""
        if self._error is None:
            return
        if isinstance(self._error, DeadlineExceededError):
            raise DeadlineExceededError()
        raise ContextCancelledError()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses. Returns cancellation state."""
        return self._done.wait(timeout)

    def cancel(self) -> None:
        """Cancel this context and all of its descendants."""
        self._cancel(ContextCancelledError())

    def on_cancel(self, callback: Callable[[], Any]) -> Callable[[], None]:
        """Register ``callback`` to run on cancellation.

        Runs immediately if the context is already cancelled. Returns a
        function that unregisters the callback.
        """
        with self._lock:
            if self._error is None:
                callback_id = self._next_callback_id
                self._next_callback_id += 1
                self._callbacks[callback_id] = callback

                def unregister() -> None:
                    with self._lock:
                        self._callbacks.pop(callback_id, None)

                return unregister
        callback()
        return _noop

    def _attach(self, child: Context) -> None:
        with self._lock:
            error = self._error
            if error is None:
                self._children.add(child)
        if error is not None:
            child._cancel(error)

    def _detach(self, child: Context) -> None:
        with self._lock:
            self._children.discard(child)

    def _cancel(self, error: ContextCancelledError) -> None:
        with self._lock:
            if self._error is not None:
                return
            self._error = error
            children = list(self._children)
            self._children.clear()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
            timer, self._timer = self._timer, None
        self._done.set()

        if timer is not None:
            timer.cancel()
        if self._parent is not None:
            self._parent._detach(self)
        for child in children:
            child._cancel(error)
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback %r failed", callback)

    def __enter__(self) -> Context:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: Any, exc_tb: Any) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "live" if self._error is None else str(self._error)
        return f"<Context {state}>"
