"""In-process ordered store.

:class:`MemoryStore` implements the full :class:`~pysynclist.store.base.OrderedStore`
contract without any network: writes are coroutines that yield to the event
loop, apply atomically to an :class:`~pysynclist.store.tree.OrderedChildren`
mirror, and deliver the resulting child events to subscribers before they
complete.  It backs the test-suite and offline consumers.

``put``/``patch`` write raw export-form data at any path and stand in for
writes made by other clients of the same collection.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pysynclist._redact import redact_for_log
from pysynclist._wire import Priority, export_value, priority_path
from pysynclist.events import ChildEvent, ChildEventKind
from pysynclist.store.base import ChildCallback, EventHub
from pysynclist.store.push_ids import generate_push_id
from pysynclist.store.tree import ChildSnapshot, OrderedChildren

_logger = logging.getLogger(__name__)


class MemoryStore:
    """Ordered collection held in memory."""

    def __init__(
        self,
        initial: Mapping[str, Any] | None = None,
        *,
        latency: float = 0.0,
        key_factory: Callable[[], str] = generate_push_id,
    ) -> None:
        self._tree = OrderedChildren(initial)
        self._hub = EventHub()
        self._latency = latency
        self._key_factory = key_factory

    def __len__(self) -> int:
        return len(self._tree)

    def generate_key(self) -> str:
        return self._key_factory()

    def get(self, key: str) -> ChildSnapshot | None:
        """Current snapshot of one child (a copy)."""
        return self._tree.get(key)

    def keys(self) -> list[str]:
        return [child.key for child in self._tree.ordered()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _commit(self, apply: Callable[[], list[ChildEvent]]) -> None:
        await asyncio.sleep(self._latency)
        events = apply()
        _logger.debug("Committed write producing %d child event(s)", len(events))
        self._hub.dispatch(events)

    async def put(self, path: str, data: Any) -> None:
        _logger.debug("PUT %s %s", path or "/", redact_for_log(data))
        await self._commit(lambda: self._tree.apply_put(path, data))

    async def patch(self, path: str, data: Mapping[str, Any]) -> None:
        _logger.debug("PATCH %s %s", path or "/", redact_for_log(data))
        payload = dict(data)
        await self._commit(lambda: self._tree.apply_patch(path, payload))

    async def set(self, key: str, value: Any, priority: Priority) -> None:
        await self.put(key, export_value(value, priority))

    async def update(self, key: str, fields: Mapping[str, Any]) -> None:
        await self.patch(key, fields)

    async def update_many(self, updates: Mapping[str, Any]) -> None:
        await self.patch("", updates)

    async def remove(self, key: str) -> None:
        await self.put(key, None)

    async def set_priority(self, key: str, priority: Priority) -> None:
        await self.put(priority_path(key), priority)

    async def snapshot(self) -> list[ChildSnapshot]:
        await asyncio.sleep(self._latency)
        return self._tree.ordered()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, kind: ChildEventKind, callback: ChildCallback) -> int:
        """Register *callback* and return its token.

        A ``child_added`` subscriber first receives one event per existing
        child, in order.  The replay runs synchronously inside this call, so
        the caller has seen the whole collection by the time it returns.
        """
        token = self._hub.subscribe(kind, callback)
        if kind == ChildEventKind.ADDED:
            for event in self._tree.replay():
                self._hub.deliver(callback, event)
        return token

    def unsubscribe(self, token: int) -> None:
        self._hub.unsubscribe(token)
