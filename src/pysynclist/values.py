"""Record values.

A record's value is one of two explicit variants:

* :class:`Scalar` wraps a single JSON scalar (on the wire it may appear
  boxed as ``{".value": <scalar>}``).
* :class:`Keyed` wraps a mapping of fields.  The wrapped ``dict`` is the
  object callers hold on to; merges mutate it in place.

Priority never appears inside a value.  It lives in the cache's shadow
metadata and is only joined with the value by :func:`to_export` when a
write is built.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pysynclist._wire import ID_KEY, PRIORITY_KEY, VALUE_KEY, Priority, export_value, strip_export
from pysynclist.exceptions import SyncListUsageError

_SCALAR_TYPES = (str, int, float, bool)


@dataclass(slots=True)
class Scalar:
    """A single scalar value."""

    value: str | int | float | bool | None = None


@dataclass(slots=True)
class Keyed:
    """A keyed mapping of fields."""

    fields: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


Value = Scalar | Keyed


def coerce(data: Any) -> Value:
    """Normalise caller input into a :data:`Value`.

    Mappings lose the ``"$id"`` identity marker and any ``".priority"``;
    a mapping carrying ``".value"`` is a boxed scalar.  The caller's object
    is copied, never modified.
    """
    if isinstance(data, (Scalar, Keyed)):
        return data
    if isinstance(data, Mapping):
        if VALUE_KEY in data:
            return coerce(data[VALUE_KEY])
        fields = {str(k): copy.deepcopy(v) for k, v in data.items() if k not in (ID_KEY, PRIORITY_KEY)}
        return Keyed(fields)
    if data is None or isinstance(data, _SCALAR_TYPES):
        return Scalar(data)
    raise SyncListUsageError(f"Unsupported value type {type(data).__name__!r}; expected a mapping or a JSON scalar")


def from_wire(raw: Any) -> Value:
    """Build a value from a store snapshot (export metadata is stripped)."""
    stripped = strip_export(raw)
    if isinstance(stripped, dict):
        return Keyed(stripped)
    return Scalar(stripped)


def to_wire(value: Value) -> Any:
    """Return the plain JSON form of *value* (no priority, no identity)."""
    if isinstance(value, Keyed):
        return copy.deepcopy(value.fields)
    return value.value


def to_export(value: Value, priority: Priority) -> Any:
    """Return the export form of *value* carrying *priority*."""
    return export_value(to_wire(value), priority)


def merge_into(base: Value, incoming: Value) -> Value:
    """Merge *incoming* into *base* and return the value to keep.

    When both sides are keyed the existing ``fields`` dict is updated in
    place: fields only present in *base* are deleted, the rest are written
    from *incoming*.  Holders of the old dict observe the change.  In every
    other combination *incoming* replaces *base*.
    """
    if isinstance(base, Keyed) and isinstance(incoming, Keyed):
        target = base.fields
        for name in [name for name in target if name not in incoming.fields]:
            del target[name]
        for name, item in incoming.fields.items():
            target[name] = item
        return base
    return incoming
