"""Locally cached list synchronized with a remote ordered store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator, Sequence
from typing import Any, overload

from pysynclist._wire import Priority, priority_path
from pysynclist.allocator import Placement, place_insert, place_move
from pysynclist.cache import OrderedCache, Record
from pysynclist.config import SyncListConfig
from pysynclist.events import ChildEvent, ChildEventKind, ListEventKind
from pysynclist.exceptions import SyncListStoreError, SyncListUsageError
from pysynclist.reconciler import EventReconciler
from pysynclist.store.base import OrderedStore
from pysynclist.subscriptions import SubscriptionManager
from pysynclist.values import Keyed, Value, coerce, to_export, to_wire

_logger = logging.getLogger(__name__)

OnEvent = Callable[[ListEventKind, str | None, Any], None]


class WriteHandle:
    """An in-flight store write.

    Await it to wait for the store to accept the write; a failed write
    raises :class:`~pysynclist.exceptions.SyncListStoreError`.  The list
    itself changes only when the resulting notification arrives.
    """

    __slots__ = ("key", "task")

    def __init__(self, key: str, task: asyncio.Task[None]) -> None:
        self.key = key
        self.task = task

    def __await__(self) -> Any:
        return self.task.__await__()

    def done(self) -> bool:
        return self.task.done()

    def __repr__(self) -> str:
        state = "done" if self.task.done() else "pending"
        return f"WriteHandle(key={self.key!r}, {state})"


class SyncedList(Sequence[Record]):
    """Ordered list of records mirrored from a remote collection.

    Reads (indexing, iteration, :meth:`index_of`, :meth:`get`) serve the
    local cache.  Writes are sent to the store and return immediately with a
    :class:`WriteHandle`; the cache follows once the store's change
    notifications come back, including the ones caused by our own writes.

    Usage::

        items = await SyncedList.attach(store, on_event=print)
        await items.add({"title": "milk"})
        items.move(0, len(items))
        items.dispose()
    """

    def __init__(
        self,
        store: OrderedStore,
        *,
        on_event: OnEvent | None = None,
        config: SyncListConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or SyncListConfig()
        self._on_event = on_event
        self._cache = OrderedCache()
        self._reconciler = EventReconciler(self._cache, self._emit)
        self._subscriptions = SubscriptionManager(store)
        self._pending: set[asyncio.Task[None]] = set()

    @classmethod
    async def attach(
        cls,
        store: OrderedStore,
        *,
        on_event: OnEvent | None = None,
        config: SyncListConfig | None = None,
    ) -> SyncedList:
        """Create a list bound to *store* and start following it.

        Unordered collections are backfilled with sequential priorities
        first, so the backfill never shows up as list events.
        """
        synced = cls(store, on_event=on_event, config=config)
        if synced._config.backfill_priorities:
            await synced._backfill_priorities()
        synced._subscribe()
        return synced

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SyncedList:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.dispose()

    def dispose(self) -> None:
        """Stop following the store.  Cached records stay; in-flight writes continue."""
        self._subscriptions.dispose()

    @property
    def disposed(self) -> bool:
        return not self._subscriptions.active

    # ------------------------------------------------------------------
    # Sequence access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._cache)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._cache)

    @overload
    def __getitem__(self, index: int) -> Record: ...

    @overload
    def __getitem__(self, index: slice) -> list[Record]: ...

    def __getitem__(self, index: int | slice) -> Record | list[Record]:
        return self._cache[index]  # type: ignore[index]

    def __repr__(self) -> str:
        return f"SyncedList({self._cache.keys()!r})"

    def keys(self) -> list[str]:
        return self._cache.keys()

    def index_of(self, key: str) -> int:
        """Position of *key*, or ``-1``."""
        return self._cache.position_of(key)

    def get(self, key: str) -> Record | None:
        position = self._cache.position_of(key)
        return None if position == -1 else self._cache[position]

    def raw_data(self, key: str) -> Any:
        """Plain value of *key* as it is written to the store, or ``None``."""
        record = self.get(key)
        return None if record is None else to_wire(record.value)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, value: Any) -> WriteHandle:
        """Append *value* under a new store-generated identity."""
        data = coerce(value)
        return self._write_new(self._store.generate_key(), data, len(self._cache))

    def set(self, key: str, value: Any) -> WriteHandle:
        """Replace the value of *key*, keeping its priority.

        An unknown *key* is appended under that identity.
        """
        data = coerce(value)
        if key not in self._cache:
            return self._write_new(key, data, len(self._cache))
        priority = self._cache.priority_of(key)
        return self._submit(key, lambda: self._store.set(key, to_wire(data), priority))

    def set_at(self, index: int, value: Any) -> WriteHandle | None:
        record = self._cache.record_at(index)
        if record is None:
            return None
        return self.set(record.key, value)

    def update(self, key: str, value: Any) -> WriteHandle:
        """Merge the fields of *value* into *key*.

        Raises :class:`SyncListUsageError` for scalar values.  An unknown
        *key* is created as with :meth:`set`.
        """
        data = coerce(value)
        if not isinstance(data, Keyed):
            raise SyncListUsageError("update() needs a keyed value; use set() to replace a value with a scalar")
        if key not in self._cache:
            return self.set(key, data)
        fields = to_wire(data)
        return self._submit(key, lambda: self._store.update(key, fields))

    def update_at(self, index: int, value: Any) -> WriteHandle | None:
        record = self._cache.record_at(index)
        if record is None:
            return None
        return self.update(record.key, value)

    def remove(self, key: str) -> WriteHandle:
        """Delete *key* from the store.  Deleting a missing key is harmless."""
        return self._submit(key, lambda: self._store.remove(key))

    def remove_at(self, index: int) -> WriteHandle | None:
        record = self._cache.record_at(index)
        if record is None:
            return None
        return self.remove(record.key)

    def insert(self, index: int, value: Any) -> WriteHandle:
        """Insert *value* so that it lands at *index*.

        ``index <= 0`` inserts first, ``index >= len(self)`` appends.
        """
        data = coerce(value)
        return self._write_new(self._store.generate_key(), data, index)

    def move(self, index: int, destination: int) -> WriteHandle | None:
        """Move the record at *index* in front of the record now at *destination*.

        Any *destination* past the end moves the record last.  Returns
        ``None`` (nothing written) for an invalid *index*, a negative
        *destination*, or a destination of ``index`` or ``index + 1``.
        """
        entries = self._cache.entries()
        placement = place_move(entries, index, destination, min_diff=self._config.min_priority_diff)
        if placement is None:
            return None
        key = entries[index][0]
        if placement.renumbered is not None:
            updates = {priority_path(k): p for k, p in placement.renumbered.items()}
            _logger.debug("Renumbering %d record(s) to move %s", len(updates), key)
            return self._submit(key, lambda: self._store.update_many(updates))
        priority = placement.priority
        _logger.debug("Moving %s from %d to %d priority=%s", key, index, destination, priority)
        return self._submit(key, lambda: self._store.set_priority(key, priority))

    def move_key(self, key: str, destination: int) -> WriteHandle | None:
        position = self._cache.position_of(key)
        if position == -1:
            return None
        return self.move(position, destination)

    def set_priority(self, key: str, priority: Priority) -> WriteHandle:
        """Write a raw priority for *key*, bypassing allocation."""
        return self._submit(key, lambda: self._store.set_priority(key, priority))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _write_new(self, key: str, data: Value, index: int) -> WriteHandle:
        placement: Placement = place_insert(
            self._cache.entries(),
            index,
            key,
            min_diff=self._config.min_priority_diff,
        )
        if placement.renumbered is not None:
            updates: dict[str, Any] = {
                priority_path(k): p for k, p in placement.renumbered.items() if k != key
            }
            updates[key] = to_export(data, placement.renumbered[key])
            _logger.debug("Renumbering %d record(s) to insert %s at %d", len(updates), key, index)
            return self._submit(key, lambda: self._store.update_many(updates))
        priority = placement.priority
        _logger.debug("Writing %s at %d priority=%s", key, index, priority)
        return self._submit(key, lambda: self._store.set(key, to_wire(data), priority))

    def _submit(self, key: str, write: Callable[[], Awaitable[None]]) -> WriteHandle:
        task = asyncio.get_running_loop().create_task(self._run_write(key, write))
        self._pending.add(task)
        task.add_done_callback(self._write_finished)
        return WriteHandle(key, task)

    def _write_finished(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if not task.cancelled():
            # Already reported through the error channel.
            task.exception()

    async def _run_write(self, key: str, write: Callable[[], Awaitable[None]]) -> None:
        try:
            await write()
        except SyncListStoreError as exc:
            self._report_write_error(key, exc)
            raise
        except Exception as exc:
            error = SyncListStoreError(f"Write to {key} failed: {exc}", path=key)
            self._report_write_error(key, error)
            raise error from exc

    def _report_write_error(self, key: str, exc: SyncListStoreError) -> None:
        _logger.warning("Write to %s failed: %s", key, exc)
        self._emit(ListEventKind.ERROR, key, exc)

    async def _backfill_priorities(self) -> None:
        children = await self._store.snapshot()
        if all(child.priority is not None for child in children):
            return
        updates = {priority_path(child.key): position for position, child in enumerate(children)}
        _logger.info("Assigning sequential priorities to %d record(s)", len(updates))
        await self._store.update_many(updates)

    def _subscribe(self) -> None:
        for kind in (ChildEventKind.ADDED, ChildEventKind.REMOVED, ChildEventKind.CHANGED, ChildEventKind.MOVED):
            self._subscriptions.watch(kind, self._on_child_event)

    def _on_child_event(self, event: ChildEvent) -> None:
        _logger.debug("Applying %s key=%s prev=%s", event.kind, event.key, event.prev_key)
        self._reconciler.apply(event)

    def _emit(self, kind: ListEventKind, key: str | None, value: Any) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(kind, key, value)
        except Exception:
            _logger.warning("on_event callback failed kind=%s key=%s", kind, key, exc_info=True)


async def get_as_list(
    store: OrderedStore,
    on_event: OnEvent | None = None,
    config: SyncListConfig | None = None,
) -> SyncedList:
    """Attach a :class:`SyncedList` to *store*."""
    return await SyncedList.attach(store, on_event=on_event, config=config)
