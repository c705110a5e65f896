"""
Caller-initiated cancellation and deadlines.

A CancelScope is installed for the current context (thread or task) with a
``with`` block. Anything that may block, such as the interpreter before each
tool call, a remote request or a child process, asks the active scope whether
it should stop. Scopes nest: an inner scope is cancelled when its outer scope
is.

Usage:
    with CancelScope(timeout=5.0) as scope:
        evaluate(program, env)

    # from another thread
    scope.cancel()
"""
from __future__ import annotations

import contextvars
import threading
import time
from typing import Optional

from .errors import cancelled

_scope_var: contextvars.ContextVar[Optional["CancelScope"]] = contextvars.ContextVar(
    "pygossyp_cancel_scope", default=None
)


class CancelScope:
    def __init__(self, timeout: float | None = None):
        self._event = threading.Event()
        self._deadline = (time.monotonic() + timeout) if timeout is not None else None
        self._parent: CancelScope | None = None
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "CancelScope":
        self._parent = _scope_var.get()
        self._token = _scope_var.set(self)
        return self

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _scope_var.reset(self._token)
            self._token = None

    def cancel(self) -> None:
        self._event.set()

    def reason(self) -> str | None:
        """Why this scope (or an enclosing one) stopped, or None if it is live."""
        if self._event.is_set():
            return "cancelled"
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return "deadline exceeded"
        if self._parent is not None:
            return self._parent.reason()
        return None

    @property
    def cancelled(self) -> bool:
        return self.reason() is not None

    def remaining(self) -> float | None:
        """Seconds until the nearest deadline in the chain, or None."""
        own = None
        if self._deadline is not None:
            own = max(0.0, self._deadline - time.monotonic())
        inherited = self._parent.remaining() if self._parent is not None else None
        if own is None:
            return inherited
        if inherited is None:
            return own
        return min(own, inherited)


def check_cancelled() -> None:
    scope = _scope_var.get()
    if scope is None:
        return
    reason = scope.reason()
    if reason is not None:
        raise cancelled(reason)


def wait_timeout(limit: float | None, slice_s: float = 0.05) -> float | None:
    """Next wait interval for a blocking loop: bounded by the slice, the
    remaining deadline and limit."""
    scope = _scope_var.get()
    candidates = [x for x in (limit, scope.remaining() if scope else None) if x is not None]
    if scope is not None:
        candidates.append(slice_s)
    return min(candidates) if candidates else None
