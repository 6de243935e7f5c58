"""Single-writer, multi-reader observable values.

Holders publish by replacing the value wholesale; readers get the current
value or subscribe to be called with every new one.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Collection
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Observable(Generic[T]):
    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = threading.Lock()
        self._listeners: list[Listener[T]] = []

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("Observable listener %r failed", listener)

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it again."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe


ReloadHandler = Callable[[str, Collection[str] | None], object]


class ReloadTrigger:
    """Fan-out of "something on disk changed, reload" requests.

    Handlers get the reason and the affected mod ids (None for everything).
    """

    def __init__(self) -> None:
        self._handlers: list[ReloadHandler] = []

    def connect(self, handler: ReloadHandler) -> None:
        self._handlers.append(handler)

    def fire(self, reason: str, mod_ids: Collection[str] | None = None) -> None:
        logger.debug("Reload triggered: %s", reason)
        for handler in list(self._handlers):
            try:
                handler(reason, mod_ids)
            except Exception:
                logger.exception("Reload handler failed for '%s'", reason)
