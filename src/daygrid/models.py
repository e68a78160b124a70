"""Data models for Daygrid."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from .calendar_math import end_date, format_iso


class TaskType(str, Enum):
    """Kinds of task a row can hold."""

    PROJECT = "project"
    MEETING = "meeting"
    VACATION = "vacation"


class Handle(str, Enum):
    """Part of a task element hit by a pointer-down."""

    LEFT = "left"
    RIGHT = "right"
    BODY = "body"


@dataclass(slots=True, frozen=True)
class Point:
    """Pointer position in grid pixels."""

    x: float
    y: float


@dataclass(slots=True, frozen=True)
class Resource:
    """A grid row. Its identity is its position in the resource list."""

    index: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return {"index": self.index, "name": self.name}


@dataclass(slots=True, frozen=True)
class Task:
    """A span of whole days placed on one resource row.

    ``end`` is always derived from ``start`` and ``duration``; it is never
    stored, so it cannot disagree with them.
    """

    id: int
    title: str
    start: date
    duration: int
    resource_index: int
    type: TaskType = TaskType.PROJECT

    @property
    def end(self) -> date:
        """Last day covered by the task (inclusive)."""
        return end_date(self.start, self.duration)

    def covers(self, day: date) -> bool:
        """Whether ``day`` falls within ``start..end`` inclusive."""
        return self.start <= day <= self.end

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire format used by hosts (ISO dates, camelCase keys)."""
        return {
            "id": self.id,
            "title": self.title,
            "start": format_iso(self.start),
            "end": format_iso(self.end),
            "duration": self.duration,
            "resourceIndex": self.resource_index,
            "type": self.type.value,
        }
