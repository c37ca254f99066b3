"""Apply remote change notifications to the local ordered cache.

Notifications are applied one at a time, in delivery order.  Nothing is
buffered or coalesced.  Notifications about identities the cache does not
hold are dropped: the store is the source of truth, and a missed ``added``
corrects itself with the store's next notification or snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pysynclist.cache import OrderedCache, Record
from pysynclist.events import ChildEvent, ChildEventKind, ListEventKind
from pysynclist.values import from_wire

_logger = logging.getLogger(__name__)

EmitFn = Callable[[ListEventKind, str | None, Any], None]


class EventReconciler:
    """State machine driven by :class:`ChildEvent` notifications."""

    def __init__(self, cache: OrderedCache, emit: EmitFn) -> None:
        self._cache = cache
        self._emit = emit
        self._handlers: dict[ChildEventKind, Callable[[ChildEvent], None]] = {
            ChildEventKind.ADDED: self.on_added,
            ChildEventKind.REMOVED: self.on_removed,
            ChildEventKind.CHANGED: self.on_changed,
            ChildEventKind.MOVED: self.on_moved,
        }

    def apply(self, event: ChildEvent) -> None:
        self._handlers[event.kind](event)

    def on_added(self, event: ChildEvent) -> None:
        cache = self._cache
        value = from_wire(event.value)
        existing = cache.position_of(event.key)
        if existing != -1:
            # Duplicate delivery: reposition and merge instead of adding a
            # second record under the same identity.
            record = cache.remove_at(existing)
            cache.insert_at(cache.placement_index(event.prev_key), record, event.priority)
            cache.replace_at(cache.position_of(event.key), value, event.priority)
            _logger.debug("Re-added known child key=%s", event.key)
        else:
            record = Record(key=event.key, value=value)
            cache.insert_at(cache.placement_index(event.prev_key), record, event.priority)
        self._emit(ListEventKind.ADDED, event.key, record)

    def on_removed(self, event: ChildEvent) -> None:
        position = self._cache.position_of(event.key)
        if position == -1:
            _logger.debug("Ignoring removal of unknown child key=%s", event.key)
            return
        record = self._cache.remove_at(position)
        self._emit(ListEventKind.REMOVED, event.key, record)

    def on_changed(self, event: ChildEvent) -> None:
        position = self._cache.position_of(event.key)
        if position == -1:
            _logger.debug("Ignoring change of unknown child key=%s", event.key)
            return
        record = self._cache.replace_at(position, from_wire(event.value), event.priority)
        self._emit(ListEventKind.CHANGED, event.key, record)

    def on_moved(self, event: ChildEvent) -> None:
        cache = self._cache
        position = cache.position_of(event.key)
        if position == -1:
            _logger.debug("Ignoring move of unknown child key=%s", event.key)
            return
        record = cache.remove_at(position)
        # Sibling lookup runs against the list without the moved record.
        cache.insert_at(cache.placement_index(event.prev_key), record, event.priority)
        self._emit(ListEventKind.MOVED, event.key, record)
