"""Remote ordered store contract.

The list layer only talks to a store through :class:`OrderedStore`.
Having a protocol here makes it easy to pass test doubles while keeping the
shipped implementations (:class:`~pysynclist.store.memory.MemoryStore`,
:class:`~pysynclist.store.rest.RestStore`) concrete.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from pysynclist._wire import Priority
from pysynclist.events import ChildEvent, ChildEventKind
from pysynclist.store.tree import ChildSnapshot

_logger = logging.getLogger(__name__)

ChildCallback = Callable[[ChildEvent], None]


class OrderedStore(Protocol):
    """Structural interface of a remote keyed collection sorted by priority.

    Write coroutines complete once the store accepted the write; the
    resulting change notifications are delivered separately, through the
    subscribed callbacks, in the order the store determines.
    """

    def generate_key(self) -> str: ...

    async def set(self, key: str, value: Any, priority: Priority) -> None: ...

    async def update(self, key: str, fields: Mapping[str, Any]) -> None: ...

    async def update_many(self, updates: Mapping[str, Any]) -> None:
        """Atomic multi-location write.

        Locations are child keys (``"abc"``) or child-relative paths such as
        ``"abc/.priority"``; values are in export form.
        """
        ...

    async def remove(self, key: str) -> None: ...

    async def set_priority(self, key: str, priority: Priority) -> None: ...

    async def snapshot(self) -> list[ChildSnapshot]: ...

    def subscribe(self, kind: ChildEventKind, callback: ChildCallback) -> int: ...

    def unsubscribe(self, token: int) -> None: ...


class EventHub:
    """Ordered per-kind callback registry used by the stores.

    A raising callback is logged; delivery to the remaining callbacks
    continues.
    """

    def __init__(self) -> None:
        self._tokens = itertools.count(1)
        self._callbacks: dict[int, tuple[ChildEventKind, ChildCallback]] = {}

    def __len__(self) -> int:
        return len(self._callbacks)

    def subscribe(self, kind: ChildEventKind, callback: ChildCallback) -> int:
        token = next(self._tokens)
        self._callbacks[token] = (ChildEventKind(kind), callback)
        return token

    def unsubscribe(self, token: int) -> bool:
        return self._callbacks.pop(token, None) is not None

    def deliver(self, callback: ChildCallback, event: ChildEvent) -> None:
        try:
            callback(event)
        except Exception:
            _logger.warning("Child event callback failed kind=%s key=%s", event.kind, event.key, exc_info=True)

    def dispatch(self, events: Iterable[ChildEvent]) -> None:
        for event in events:
            for kind, callback in list(self._callbacks.values()):
                if kind == event.kind:
                    self.deliver(callback, event)
