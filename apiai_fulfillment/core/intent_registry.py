"""
Intent registry: maps api.ai intent names to handler callables.

Lookups run concurrently; registration takes the lock exclusively, so a
reader sees either the previous handler or the new one.
"""
from __future__ import annotations

import importlib
import logging
import threading
from contextlib import contextmanager
from typing import Awaitable, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from starlette.requests import Request

from apiai_fulfillment.schemas import WebhookRequest, WebhookResponse

logger = logging.getLogger("intent_registry")

HANDLERS_PACKAGE = "apiai_fulfillment.core.handlers"

HandlerResult = Union[WebhookResponse, Mapping[str, str]]
HandlerFunc = Callable[
    [WebhookRequest, Optional[Request]],
    Union[HandlerResult, Awaitable[HandlerResult]],
]


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class IntentRegistry:
    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._handlers: Dict[str, HandlerFunc] = {}

    def register(self, intent: str, handler: HandlerFunc) -> None:
        with self._lock.write():
            replaced = intent in self._handlers
            self._handlers[intent] = handler
        if replaced:
            logger.info(f"Replaced handler for intent '{intent}'")

    def unregister(self, intent: str) -> bool:
        with self._lock.write():
            return self._handlers.pop(intent, None) is not None

    def lookup(self, intent: str) -> Tuple[Optional[HandlerFunc], bool]:
        with self._lock.read():
            handler = self._handlers.get(intent)
        return handler, handler is not None

    def has(self, intent: str) -> bool:
        return self.lookup(intent)[1]

    def intents(self) -> List[str]:
        with self._lock.read():
            return sorted(self._handlers)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._handlers)


def register_from_config(registry: IntentRegistry, intents: Mapping[str, object]) -> List[str]:
    """Import ``core.handlers.<module>`` for each configured intent and
    register its ``handle`` function. Returns the intents that were wired."""
    wired: List[str] = []
    for intent, meta in intents.items():
        handler_mod = getattr(meta, "handler", None)
        if handler_mod is None and isinstance(meta, Mapping):
            handler_mod = meta.get("handler")
        if not handler_mod:
            continue
        try:
            mod = importlib.import_module(f"{HANDLERS_PACKAGE}.{handler_mod}")
            registry.register(intent, getattr(mod, "handle"))
        except (ImportError, AttributeError) as e:
            logger.warning(f"Failed to register handler for {intent}: {e}")
            continue
        wired.append(intent)
    return wired
