"""In-memory mirror of one ordered collection.

:class:`OrderedChildren` applies Firebase-style ``put``/``patch`` writes at a
path and reports what happened as a sequence of :class:`ChildEvent`
objects, each positioned through the identity of its preceding sibling.
Both the in-process store and the REST stream adapter are built on it.

Event sequence for one write (the whole write is applied before the first
event is produced):

1. ``child_removed`` for every child that disappeared, in old order.
2. One step per child whose priority changed, and per new child.  Each step
   puts a single child at its new priority into a replica in which every
   child not stepped yet keeps its old priority, so the replica stays
   sorted after every event.  The step yields ``child_added`` for a new child,
   ``child_moved`` when the child changed places in the replica, and
   ``child_changed`` when it kept its place or its value changed too.
   Children whose priority did not change are never moved.  Children that
   keep their relative order are stepped first, so a renumbering that adds
   one child reports ``child_changed`` for all the others.
3. ``child_changed`` for children whose value alone changed.

Replaying the events in order against a replica of the old order produces
the new order, and every intermediate replica is sorted by the priorities
reported so far.
"""

from __future__ import annotations

import bisect
import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pysynclist._wire import PRIORITY_KEY, VALUE_KEY, Priority, split_export, strip_export
from pysynclist.events import ChildEvent, ChildEventKind


@dataclass(slots=True)
class ChildSnapshot:
    """A child's plain value and its priority."""

    key: str
    value: Any
    priority: Priority = None


def priority_sort_key(key: str, priority: Priority) -> tuple[int, float, str, str]:
    """Sort order of the store: null priorities, then numbers, then strings.

    Ties are broken by key.
    """
    if priority is None:
        return (0, 0.0, "", key)
    if isinstance(priority, str):
        return (2, 0.0, priority, key)
    return (1, float(priority), "", key)


def split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _set_nested(target: dict[str, Any], segments: list[str], data: Any) -> None:
    head, rest = segments[0], segments[1:]
    if not rest:
        if data is None:
            target.pop(head, None)
        else:
            target[head] = data
        return
    child = target.get(head)
    if not isinstance(child, dict):
        if data is None:
            return
        child = {}
        target[head] = child
    _set_nested(child, rest, data)
    if not child:
        target.pop(head, None)


def _stationary_keys(before: list[ChildSnapshot], after: list[ChildSnapshot]) -> set[str]:
    """Largest set of surviving children that keep their relative order.

    A child whose priority did not change outweighs all others together, so
    every such child is kept in place.
    """
    previous = {child.key: child for child in before}
    old_index = {child.key: position for position, child in enumerate(before)}
    common = [child for child in after if child.key in previous]
    if not common:
        return set()

    heavy = len(common) + 1
    weights = [heavy if previous[child.key].priority == child.priority else 1 for child in common]
    best = list(weights)
    parent = [-1] * len(common)
    for i in range(len(common)):
        for j in range(i):
            if old_index[common[j].key] < old_index[common[i].key] and best[j] + weights[i] > best[i]:
                best[i] = best[j] + weights[i]
                parent[i] = j

    keep: set[str] = set()
    i = max(range(len(common)), key=best.__getitem__)
    while i != -1:
        keep.add(common[i].key)
        i = parent[i]
    return keep


def _reposition(current: list[ChildSnapshot], old: ChildSnapshot | None, child: ChildSnapshot) -> list[ChildEvent]:
    """Move *child* to its sorted place in *current* and describe the step."""
    old_index = -1
    if old is not None:
        old_index = next(i for i, c in enumerate(current) if c.key == child.key)
        del current[old_index]
    new_index = bisect.bisect_left(
        current,
        priority_sort_key(child.key, child.priority),
        key=lambda c: priority_sort_key(c.key, c.priority),
    )
    current.insert(new_index, child)
    prev_key = current[new_index - 1].key if new_index else None

    if old is None:
        return [_event(ChildEventKind.ADDED, child, prev_key)]
    events: list[ChildEvent] = []
    moved = new_index != old_index
    if moved:
        events.append(_event(ChildEventKind.MOVED, child, prev_key))
    if not moved or old.value != child.value:
        events.append(_event(ChildEventKind.CHANGED, child))
    return events


def _event(kind: ChildEventKind, child: ChildSnapshot, prev_key: str | None = None) -> ChildEvent:
    return ChildEvent(
        kind=kind,
        key=child.key,
        value=copy.deepcopy(child.value),
        priority=child.priority,
        prev_key=prev_key,
    )


def diff_children(before: list[ChildSnapshot], after: list[ChildSnapshot]) -> list[ChildEvent]:
    """Describe the change from *before* to *after* (both in store order)."""
    after_keys = {child.key for child in after}
    previous = {child.key: child for child in before}
    events = [_event(ChildEventKind.REMOVED, child) for child in before if child.key not in after_keys]

    stationary = _stationary_keys(before, after)
    raised: list[ChildSnapshot] = []
    lowered: list[ChildSnapshot] = []
    placed: list[ChildSnapshot] = []
    value_only: list[ChildSnapshot] = []
    for child in after:
        old = previous.get(child.key)
        if old is None or child.key not in stationary:
            placed.append(child)
        elif old.priority == child.priority:
            if old.value != child.value:
                value_only.append(child)
        elif priority_sort_key(child.key, child.priority) > priority_sort_key(old.key, old.priority):
            raised.append(child)
        else:
            lowered.append(child)

    # Raised children right to left, lowered ones left to right: a stationary
    # child never passes another stationary child.
    current = [child for child in before if child.key in after_keys]
    for child in [*reversed(raised), *lowered, *placed]:
        events.extend(_reposition(current, previous.get(child.key), child))
    events.extend(_event(ChildEventKind.CHANGED, child) for child in value_only)
    return events


class OrderedChildren:
    """Children of one collection, kept by key and read in store order."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._children: dict[str, ChildSnapshot] = {}
        if initial:
            self._put([], dict(initial))

    def __len__(self) -> int:
        return len(self._children)

    def __contains__(self, key: object) -> bool:
        return key in self._children

    def get(self, key: str) -> ChildSnapshot | None:
        child = self._children.get(key)
        if child is None:
            return None
        return ChildSnapshot(child.key, copy.deepcopy(child.value), child.priority)

    def ordered(self) -> list[ChildSnapshot]:
        """Copies of all children, in store order."""
        children = sorted(self._children.values(), key=lambda c: priority_sort_key(c.key, c.priority))
        return [ChildSnapshot(c.key, copy.deepcopy(c.value), c.priority) for c in children]

    def replay(self) -> list[ChildEvent]:
        """``child_added`` events describing the current state from scratch."""
        return diff_children([], self.ordered())

    def apply_put(self, path: str, data: Any) -> list[ChildEvent]:
        """Replace the node at *path* with *data* (export form, ``None`` deletes)."""
        before = self.ordered()
        self._put(split_path(path), data)
        return diff_children(before, self.ordered())

    def apply_patch(self, path: str, data: Mapping[str, Any]) -> list[ChildEvent]:
        """Write every ``relative path -> value`` of *data* under *path* at once."""
        before = self.ordered()
        base = split_path(path)
        for relative, item in data.items():
            self._put(base + split_path(relative), item)
        return diff_children(before, self.ordered())

    def _put(self, segments: list[str], data: Any) -> None:
        if not segments:
            self._children = {}
            if isinstance(data, dict):
                for key, item in data.items():
                    if not key.startswith("."):
                        self._put([key], item)
            return

        key, rest = segments[0], segments[1:]
        child = self._children.get(key)

        if not rest:
            value, priority = split_export(data)
            if value is None:
                self._children.pop(key, None)
            else:
                self._children[key] = ChildSnapshot(key, value, priority)
            return

        if rest == [PRIORITY_KEY]:
            if child is not None:
                child.priority = data
            return

        if rest == [VALUE_KEY]:
            value = strip_export(data)
            if value is None:
                self._children.pop(key, None)
            else:
                self._children[key] = ChildSnapshot(key, value, child.priority if child else None)
            return

        value = strip_export(data)
        if child is not None and isinstance(child.value, dict):
            fields = child.value
        elif value is None:
            return
        else:
            fields = {}
        _set_nested(fields, rest, value)
        if not fields:
            self._children.pop(key, None)
        else:
            self._children[key] = ChildSnapshot(key, fields, child.priority if child else None)
