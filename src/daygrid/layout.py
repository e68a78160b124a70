"""Render snapshots: everything a rendering layer needs to draw the grid."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from .calendar_math import date_range
from .grid import GridMapper, TaskGeometry

if TYPE_CHECKING:
    from .models import Resource, Task
    from .store import TaskStore
    from .window import DateWindow

SATURDAY = 5  # date.weekday() index


@dataclass(slots=True, frozen=True)
class DayColumn:
    """One day column of the header and grid."""

    date: date
    offset: int
    x: float
    is_weekend: bool


@dataclass(slots=True, frozen=True)
class ResourceRow:
    """One resource row."""

    resource: Resource
    y: float


@dataclass(slots=True, frozen=True)
class PlacedTask:
    """A task with its computed placement."""

    task: Task
    day_offset: int
    geometry: TaskGeometry


@dataclass(slots=True, frozen=True)
class LayoutSnapshot:
    """Immutable view of the grid at one moment."""

    anchor: date
    days_visible: int
    cell_width: float
    row_height: float
    days: list[DayColumn] = field(default_factory=list)
    rows: list[ResourceRow] = field(default_factory=list)
    tasks: list[PlacedTask] = field(default_factory=list)

    @property
    def total_width(self) -> float:
        return self.days_visible * self.cell_width

    @property
    def total_height(self) -> float:
        return len(self.rows) * self.row_height

    def placement(self, task_id: int) -> PlacedTask | None:
        """Placement of a single task, if it is in view."""
        for placed in self.tasks:
            if placed.task.id == task_id:
                return placed
        return None


def build_snapshot(store: TaskStore, window: DateWindow, mapper: GridMapper) -> LayoutSnapshot:
    """Lay out every day column, resource row and task that overlaps the window.

    Tasks that start before the first column are included with a negative
    ``left`` so the renderer can clip them.
    """
    anchor = window.week_anchor_start
    days = [
        DayColumn(
            date=day,
            offset=offset,
            x=mapper.day_to_x(offset),
            is_weekend=day.weekday() >= SATURDAY,
        )
        for offset, day in enumerate(date_range(anchor, window.days_visible))
    ]
    rows = [ResourceRow(resource=r, y=mapper.resource_to_y(r.index)) for r in store.resources]

    tasks: list[PlacedTask] = []
    for task in sorted(store.tasks, key=lambda t: (t.resource_index, t.start, t.id)):
        offset = window.offset_of(task.start)
        if offset >= window.days_visible or offset + task.duration <= 0:
            continue
        tasks.append(
            PlacedTask(task=task, day_offset=offset, geometry=mapper.task_geometry(task, anchor))
        )

    return LayoutSnapshot(
        anchor=anchor,
        days_visible=window.days_visible,
        cell_width=mapper.cell_width,
        row_height=mapper.row_height,
        days=days,
        rows=rows,
        tasks=tasks,
    )
