"""Collapse concurrent calls for the same key into a single execution."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional


class _Call:
    __slots__ = ("done", "value", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: Any = None
        self.error: Optional[BaseException] = None

    def result(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


class SingleFlight:
    """Runs at most one ``fn`` per key at a time; callers arriving meanwhile share its outcome."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, _Call] = {}

    def do(self, key: str, fn: Callable[[], Any]) -> Any:
        """Return ``fn()``'s result, or re-raise its exception, sharing an in-flight call for ``key``."""
        with self._lock:
            call = self._calls.get(key)
            if call is not None:
                waiting = True
            else:
                waiting = False
                call = _Call()
                self._calls[key] = call

        if waiting:
            call.done.wait()
            return call.result()

        try:
            call.value = fn()
        except BaseException as exc:
            call.error = exc
        finally:
            call.done.set()
            with self._lock:
                del self._calls[key]
        return call.result()