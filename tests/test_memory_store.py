from __future__ import annotations

from typing import Any

import pytest

from pysynclist.events import ChildEvent, ChildEventKind
from pysynclist.store.memory import MemoryStore


def _collect(store: MemoryStore, *kinds: ChildEventKind) -> list[ChildEvent]:
    events: list[ChildEvent] = []
    for kind in kinds:
        store.subscribe(kind, events.append)
    return events


def _store() -> MemoryStore:
    return MemoryStore(
        {
            "a": {"title": "first", ".priority": 1},
            "b": {"title": "second", ".priority": 2},
        }
    )


def test_added_subscribers_receive_existing_children() -> None:
    store = _store()

    events = _collect(store, ChildEventKind.ADDED)

    assert [(e.key, e.prev_key, e.priority) for e in events] == [("a", None, 1), ("b", "a", 2)]


@pytest.mark.asyncio
async def test_writes_are_delivered_before_they_complete() -> None:
    store = _store()
    events = _collect(store, ChildEventKind.CHANGED, ChildEventKind.MOVED, ChildEventKind.REMOVED)

    await store.set("a", {"title": "renamed"}, 1)
    await store.set_priority("a", 3)
    await store.remove("b")

    assert [(e.kind, e.key) for e in events] == [
        (ChildEventKind.CHANGED, "a"),
        (ChildEventKind.MOVED, "a"),
        (ChildEventKind.REMOVED, "b"),
    ]
    assert store.keys() == ["a"]


@pytest.mark.asyncio
async def test_update_many_is_one_atomic_write() -> None:
    store = _store()
    seen: list[list[str]] = []

    def on_event(event: ChildEvent) -> None:
        seen.append(store.keys())

    for kind in ChildEventKind:
        store.subscribe(kind, on_event)
    seen.clear()

    await store.update_many({"x": {".value": "new", ".priority": 0}, "a/.priority": 1, "b/.priority": 2})

    # Every notification observes the fully applied write.
    assert seen == [["x", "a", "b"]]


@pytest.mark.asyncio
async def test_unsubscribed_callbacks_stop_receiving() -> None:
    store = _store()
    events: list[ChildEvent] = []
    token = store.subscribe(ChildEventKind.REMOVED, events.append)

    store.unsubscribe(token)
    await store.remove("a")

    assert events == []
    assert len(store) == 1


@pytest.mark.asyncio
async def test_raising_subscriber_does_not_block_others() -> None:
    store = _store()
    received: list[Any] = []

    def broken(event: ChildEvent) -> None:
        raise RuntimeError("subscriber bug")

    store.subscribe(ChildEventKind.REMOVED, broken)
    store.subscribe(ChildEventKind.REMOVED, received.append)
    await store.remove("a")

    assert [event.key for event in received] == ["a"]


@pytest.mark.asyncio
async def test_snapshot_returns_copies() -> None:
    store = _store()

    children = await store.snapshot()
    children[0].value["title"] = "mutated"

    assert store.get("a").value == {"title": "first"}  # type: ignore[union-attr]
    assert store.generate_key() != store.generate_key()
