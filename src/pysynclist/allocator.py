"""Priority allocation for positional inserts and moves.

The store only knows how to sort children by priority.  Positional intent
("insert at 3", "move 0 to the end") is translated here into either a single
new priority for one record or, once fractional gaps are exhausted, a full
renumbering of the collection to integer positions.

Everything in this module is pure: it receives the ordered
``(key, priority)`` pairs currently cached and returns a :class:`Placement`.
Building and issuing the writes is the caller's job.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from pysynclist._wire import Priority

#: Smallest gap between two neighbour priorities that may still be split.
MIN_PRIORITY_DIFF: float = 5e-8

Entry = tuple[str, Priority]


@dataclass(frozen=True, slots=True)
class Placement:
    """Outcome of an allocation.

    Exactly one of ``priority`` (a single new priority for the target
    record) or ``renumbered`` (identity -> integer position for every
    record, the target included) is set.
    """

    priority: float | None = None
    renumbered: Mapping[str, int] | None = None

    @property
    def is_renumbering(self) -> bool:
        return self.renumbered is not None


def _is_numeric(priority: Priority) -> bool:
    if isinstance(priority, bool) or not isinstance(priority, (int, float)):
        return False
    return math.isfinite(priority)


def priority_after(entries: Sequence[Entry]) -> float | None:
    """Priority for a record appended after the last entry.

    Returns ``None`` when no numeric priority can sort strictly after the
    last one.
    """
    if not entries:
        return 0
    last = entries[-1][1]
    if last is None:
        # Numbers sort after null priorities.
        return 0
    if not _is_numeric(last):
        return None
    candidate = last + 1
    return candidate if candidate > last else None


def priority_before(entries: Sequence[Entry]) -> float | None:
    """Priority for a record placed before the first entry."""
    if not entries:
        return 0
    first = entries[0][1]
    if not _is_numeric(first):
        return None
    candidate = first - 1
    return candidate if candidate < first else None


def priority_between(prev: Priority, nxt: Priority, min_diff: float = MIN_PRIORITY_DIFF) -> float | None:
    """Midpoint of two neighbour priorities, or ``None`` if the gap is too small."""
    if not (_is_numeric(prev) and _is_numeric(nxt)):
        return None
    if nxt - prev < min_diff:  # type: ignore[operator]
        return None
    midpoint = (prev + nxt) / 2  # type: ignore[operator]
    if not prev < midpoint < nxt:  # type: ignore[operator]
        return None
    return midpoint


def renumber(keys: Sequence[str]) -> dict[str, int]:
    """Assign every key its list position."""
    return {key: position for position, key in enumerate(keys)}


def _place(entries: Sequence[Entry], index: int, min_diff: float) -> float | None:
    if index <= 0:
        return priority_before(entries)
    if index >= len(entries):
        return priority_after(entries)
    return priority_between(entries[index - 1][1], entries[index][1], min_diff)


def place_insert(
    entries: Sequence[Entry],
    index: int,
    new_key: str,
    *,
    min_diff: float = MIN_PRIORITY_DIFF,
) -> Placement:
    """Allocate a priority for *new_key* inserted at *index*.

    ``index <= 0`` places before the first entry, ``index >= len(entries)``
    appends.  When no priority fits strictly between the neighbours the
    whole collection is renumbered, with *new_key* at *index* and every
    entry at or after it shifted by one.
    """
    index = max(0, min(index, len(entries)))
    candidate = _place(entries, index, min_diff)
    if candidate is not None:
        return Placement(priority=candidate)

    keys = [key for key, _ in entries]
    keys.insert(index, new_key)
    return Placement(renumbered=renumber(keys))


def place_move(
    entries: Sequence[Entry],
    index: int,
    destination: int,
    *,
    min_diff: float = MIN_PRIORITY_DIFF,
) -> Placement | None:
    """Allocate a priority for moving the entry at *index* before *destination*.

    *destination* is expressed against the current list (the moved entry
    still in it), so ``destination == index`` and ``destination == index + 1``
    both mean "stay put" and return ``None``, as do an invalid *index* and a
    negative *destination*.  Any destination past the end moves the entry
    last.

    Neighbour priorities are read from the list without the moved entry so
    that it never lands relative to itself.
    """
    if not 0 <= index < len(entries):
        return None
    if destination < 0 or destination in (index, index + 1):
        return None

    moved_key = entries[index][0]
    remaining = [*entries[:index], *entries[index + 1 :]]
    final_index = destination - 1 if destination > index else destination
    final_index = min(final_index, len(remaining))

    candidate = _place(remaining, final_index, min_diff)
    if candidate is not None:
        return Placement(priority=candidate)

    keys = [key for key, _ in remaining]
    keys.insert(final_index, moved_key)
    return Placement(renumbered=renumber(keys))
