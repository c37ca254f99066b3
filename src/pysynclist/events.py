"""Change notifications.

Stores describe every change of an ordered collection as a
:class:`ChildEvent`.  The reconciler turns them into application-level
list events (:class:`ListEventKind`), which add ``error`` for failed writes.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChildEventKind(StrEnum):
    ADDED = "child_added"
    REMOVED = "child_removed"
    CHANGED = "child_changed"
    MOVED = "child_moved"


class ListEventKind(StrEnum):
    ADDED = "child_added"
    REMOVED = "child_removed"
    CHANGED = "child_changed"
    MOVED = "child_moved"
    ERROR = "error"


class ChildEvent(BaseModel):
    """A single change of one child of a remote collection."""

    model_config = ConfigDict(frozen=True)

    kind: ChildEventKind
    key: str = Field(..., description="Identity of the child")
    value: Any = Field(default=None, description="Current value snapshot (plain, no export metadata)")
    priority: int | float | str | None = Field(default=None, description="Current priority")
    prev_key: str | None = Field(
        default=None,
        description="Identity of the preceding sibling (added/moved only); None means first.",
    )

    @field_validator("key")
    @classmethod
    def _require_key(cls, value: str) -> str:
        # Store keys are kept verbatim.
        if not value:
            raise ValueError("key must be non-empty")
        return value
