"""Local ordered cache.

The cache is an eventually-applied replica of a remote collection: a list
of :class:`Record` objects kept in priority order, plus a shadow table with
the last known priority of every record.  Priority is kept out of the
records themselves; only the allocator reads it.

Lookups are linear scans.  Lists fed to a UI stay small enough for that.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from pysynclist._wire import Priority
from pysynclist.allocator import Entry
from pysynclist.values import Value, merge_into


@dataclass(slots=True)
class Record:
    """One cached child: its identity and its current value."""

    key: str
    value: Value


class OrderedCache:
    """Records in priority order plus their shadow metadata."""

    def __init__(self) -> None:
        self._records: list[Record] = []
        self._priorities: dict[str, Priority] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __getitem__(self, index: int) -> Record:
        return self._records[index]

    def __contains__(self, key: object) -> bool:
        return key in self._priorities

    def keys(self) -> list[str]:
        return [record.key for record in self._records]

    def entries(self) -> list[Entry]:
        """Ordered ``(key, priority)`` pairs for the allocator."""
        return [(record.key, self._priorities.get(record.key)) for record in self._records]

    def position_of(self, key: str) -> int:
        """Index of *key*, or ``-1`` when it is not cached."""
        for position, record in enumerate(self._records):
            if record.key == key:
                return position
        return -1

    def record_at(self, index: int) -> Record | None:
        if 0 <= index < len(self._records):
            return self._records[index]
        return None

    def priority_of(self, key: str) -> Priority:
        return self._priorities.get(key)

    def set_priority(self, key: str, priority: Priority) -> None:
        if key in self._priorities:
            self._priorities[key] = priority

    def placement_index(self, prev_key: str | None) -> int:
        """Index right after *prev_key*.

        ``None`` means "first".  A preceding sibling that is not cached
        (removed, or not seen yet) places the record last.
        """
        if prev_key is None:
            return 0
        position = self.position_of(prev_key)
        if position == -1:
            return len(self._records)
        return position + 1

    def insert_at(self, index: int, record: Record, priority: Priority) -> None:
        self._records.insert(index, record)
        self._priorities[record.key] = priority

    def remove_at(self, index: int) -> Record:
        record = self._records.pop(index)
        self._priorities.pop(record.key, None)
        return record

    def replace_at(self, index: int, value: Value, priority: Priority) -> Record:
        """Merge *value* into the record at *index*, keeping the same objects.

        The :class:`Record` instance is always kept; its keyed ``fields``
        dict is kept too when both the old and the new value are keyed.
        """
        record = self._records[index]
        record.value = merge_into(record.value, value)
        self._priorities[record.key] = priority
        return record
