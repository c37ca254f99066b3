"""Export-format helpers shared by the value layer and the store adapters.

The store keeps priority as side-channel metadata.  On the wire a record is
written in "export" form, where the priority rides along under
``".priority"`` and scalars are boxed under ``".value"``::

    {"title": "milk", ".priority": 3}
    {".value": true, ".priority": 4}

Everything outside of this module and the stores works on plain values.
"""

from __future__ import annotations

from typing import Any

PRIORITY_KEY = ".priority"
VALUE_KEY = ".value"
ID_KEY = "$id"

Priority = int | float | str | None


def priority_path(key: str) -> str:
    """Multi-path update location of *key*'s priority."""
    return f"{key}/{PRIORITY_KEY}"


def export_value(raw: Any, priority: Priority) -> Any:
    """Combine a wire value and a priority into export form."""
    if priority is None:
        return raw
    if isinstance(raw, dict):
        exported = dict(raw)
        exported[PRIORITY_KEY] = priority
        return exported
    return {VALUE_KEY: raw, PRIORITY_KEY: priority}


def strip_export(data: Any) -> Any:
    """Drop export metadata from *data*, recursively.

    Nested nodes may carry their own ``".priority"``; only the top-level
    child priority is meaningful here, the rest is discarded.  Empty
    mappings collapse to ``None`` because the store does not keep empty
    nodes.
    """
    if not isinstance(data, dict):
        return data
    if VALUE_KEY in data:
        return data[VALUE_KEY]
    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        if key.startswith("."):
            continue
        stripped = strip_export(value)
        if stripped is None:
            continue
        cleaned[key] = stripped
    return cleaned or None


def split_export(data: Any) -> tuple[Any, Priority]:
    """Split export-form *data* into ``(value, priority)``."""
    if not isinstance(data, dict):
        return data, None
    priority = data.get(PRIORITY_KEY)
    return strip_export(data), priority
