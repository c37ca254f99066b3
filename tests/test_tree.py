from __future__ import annotations

import pytest

from pysynclist.events import ChildEvent, ChildEventKind
from pysynclist.store.tree import ChildSnapshot, OrderedChildren, priority_sort_key


def _three() -> OrderedChildren:
    return OrderedChildren(
        {
            "a": {"hello": "world", ".priority": 1},
            "b": {"foo": "bar", ".priority": 2},
            "c": {".value": "baz", ".priority": 3},
        }
    )


def _keys(tree: OrderedChildren) -> list[str]:
    return [child.key for child in tree.ordered()]


def test_sort_order_nulls_numbers_strings_then_key() -> None:
    keys = sorted(
        [("s", "x"), ("n2", 2), ("z", None), ("n1", 1), ("a", None), ("m", 1)],
        key=lambda item: priority_sort_key(*item),
    )
    assert [key for key, _ in keys] == ["a", "z", "m", "n1", "n2", "s"]


def test_initial_load_strips_export_metadata() -> None:
    tree = _three()

    children = tree.ordered()

    assert [c.key for c in children] == ["a", "b", "c"]
    assert children[0].value == {"hello": "world"}
    assert children[2].value == "baz"
    assert children[2].priority == 3


def test_replay_chains_preceding_siblings() -> None:
    events = _three().replay()

    assert [(e.kind, e.key, e.prev_key) for e in events] == [
        (ChildEventKind.ADDED, "a", None),
        (ChildEventKind.ADDED, "b", "a"),
        (ChildEventKind.ADDED, "c", "b"),
    ]


def test_put_new_child_emits_added_with_prev() -> None:
    tree = _three()

    events = tree.apply_put("x", {"n": 1, ".priority": 1.5})

    assert [(e.kind, e.key, e.prev_key) for e in events] == [(ChildEventKind.ADDED, "x", "a")]
    assert _keys(tree) == ["a", "x", "b", "c"]


def test_priority_change_that_moves_emits_only_moved() -> None:
    tree = _three()

    events = tree.apply_put("a/.priority", 100)

    assert [(e.kind, e.key, e.prev_key) for e in events] == [(ChildEventKind.MOVED, "a", "c")]
    assert events[0].priority == 100


def test_priority_change_in_place_emits_changed() -> None:
    tree = _three()

    events = tree.apply_put("b/.priority", 2.5)

    assert [(e.kind, e.key) for e in events] == [(ChildEventKind.CHANGED, "b")]
    assert events[0].priority == 2.5


def test_value_change_keeps_priority_and_emits_changed() -> None:
    tree = _three()

    events = tree.apply_patch("b", {"extra": 1})

    assert [(e.kind, e.key) for e in events] == [(ChildEventKind.CHANGED, "b")]
    assert events[0].value == {"foo": "bar", "extra": 1}
    assert events[0].priority == 2


def test_delete_emits_removed_and_missing_delete_emits_nothing() -> None:
    tree = _three()

    assert [(e.kind, e.key) for e in tree.apply_put("b", None)] == [(ChildEventKind.REMOVED, "b")]
    assert tree.apply_put("b", None) == []
    assert _keys(tree) == ["a", "c"]


def test_multi_path_patch_renumbers_in_one_step() -> None:
    tree = OrderedChildren(
        {
            "a": {".value": 1, ".priority": 0},
            "b": {".value": 2, ".priority": 0.00000001},
            "c": {".value": 3, ".priority": 0.00000002},
        }
    )

    events = tree.apply_patch(
        "",
        {"a/.priority": 0, "b/.priority": 2, "c/.priority": 3, "x": {".value": "x", ".priority": 1}},
    )

    assert [(c.key, c.priority) for c in tree.ordered()] == [("a", 0), ("x", 1), ("b", 2), ("c", 3)]
    assert [(e.kind, e.key) for e in events] == [
        (ChildEventKind.CHANGED, "c"),
        (ChildEventKind.CHANGED, "b"),
        (ChildEventKind.ADDED, "x"),
    ]


def test_nested_writes_create_and_prune_fields() -> None:
    tree = _three()

    tree.apply_put("c/detail/size", 3)
    child = tree.get("c")
    assert child is not None
    assert child.value == {"detail": {"size": 3}}
    assert child.priority == 3

    events = tree.apply_put("c/detail/size", None)
    assert [(e.kind, e.key) for e in events] == [(ChildEventKind.REMOVED, "c")]


def test_set_without_priority_clears_priority() -> None:
    tree = _three()

    events = tree.apply_put("c", {"plain": True})

    # Null priorities sort first.
    assert _keys(tree) == ["c", "a", "b"]
    assert [(e.kind, e.key, e.prev_key) for e in events][0] == (ChildEventKind.MOVED, "c", None)


def test_root_put_replaces_collection() -> None:
    tree = _three()

    events = tree.apply_put("/", {"b": {"foo": "bar", ".priority": 2}, "d": {".value": 4, ".priority": 9}})

    assert _keys(tree) == ["b", "d"]
    assert [(e.kind, e.key) for e in events] == [
        (ChildEventKind.REMOVED, "a"),
        (ChildEventKind.REMOVED, "c"),
        (ChildEventKind.ADDED, "d"),
    ]


def test_replaying_events_reproduces_new_order() -> None:
    tree = OrderedChildren({k: {".value": k, ".priority": i} for i, k in enumerate("abcdef")})
    replica = [c.key for c in tree.ordered()]

    events = tree.apply_patch(
        "",
        {"a/.priority": 10, "d/.priority": -1, "b": None, "g": {".value": "g", ".priority": 2.5}},
    )
    for event in events:
        if event.kind == ChildEventKind.REMOVED:
            replica.remove(event.key)
        elif event.kind in (ChildEventKind.ADDED, ChildEventKind.MOVED):
            if event.key in replica:
                replica.remove(event.key)
            index = 0 if event.prev_key is None else replica.index(event.prev_key) + 1
            replica.insert(index, event.key)

    assert replica == _keys(tree)


def _sorted_after_every_event(before: list[ChildSnapshot], events: list[ChildEvent]) -> list[str]:
    replica = [(c.key, c.priority) for c in before]
    for event in events:
        if event.kind == ChildEventKind.REMOVED:
            replica = [item for item in replica if item[0] != event.key]
            continue
        position = next((i for i, (key, _) in enumerate(replica) if key == event.key), None)
        if event.kind in (ChildEventKind.ADDED, ChildEventKind.MOVED):
            if position is not None:
                del replica[position]
            index = 0 if event.prev_key is None else [key for key, _ in replica].index(event.prev_key) + 1
            replica.insert(index, (event.key, event.priority))
        elif position is not None:
            replica[position] = (event.key, event.priority)
        sort_keys = [priority_sort_key(key, priority) for key, priority in replica]
        assert sort_keys == sorted(sort_keys), (event, replica)
    return [key for key, _ in replica]


@pytest.mark.parametrize(
    "patch",
    [
        {"a/.priority": 0, "b/.priority": 2, "c/.priority": 3, "x": {".value": "x", ".priority": 1}},
        {"a/.priority": 0, "b/.priority": 2, "c/.priority": 1},
        {"a/.priority": 2, "b/.priority": 0, "c/.priority": 1},
        {"c/.priority": -5, "a/.priority": 7, "b": None, "y": {".value": "y", ".priority": 0.5}},
    ],
)
def test_every_intermediate_order_is_sorted(patch: dict) -> None:
    tree = OrderedChildren(
        {
            "a": {".value": 1, ".priority": 0},
            "b": {".value": 2, ".priority": 0.00000001},
            "c": {".value": 3, ".priority": 0.00000002},
        }
    )
    before = tree.ordered()

    events = tree.apply_patch("", patch)

    assert _sorted_after_every_event(before, events) == _keys(tree)


def test_renumbering_around_a_moved_child_reports_one_move() -> None:
    tree = OrderedChildren(
        {
            "a": {".value": 1, ".priority": 0},
            "b": {".value": 2, ".priority": 0.00000001},
            "c": {".value": 3, ".priority": 0.00000002},
        }
    )

    events = tree.apply_patch("", {"a/.priority": 0, "b/.priority": 2, "c/.priority": 1})

    assert [(e.kind, e.key, e.prev_key) for e in events] == [
        (ChildEventKind.CHANGED, "c", None),
        (ChildEventKind.MOVED, "b", "c"),
    ]
    assert _keys(tree) == ["a", "c", "b"]
