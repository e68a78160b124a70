"""Conversion between grid coordinates (day offset, resource row) and pixels."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

from .calendar_math import add_days, day_offset
from .config import GridConfig
from .models import Handle, Task


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity.

    The builtin round() uses banker's rounding, which would make a pointer
    exactly half a cell away snap differently depending on parity.
    """
    return math.floor(value + 0.5)


def clamp(value: int, low: int, high: int) -> int:
    """Clamp ``value`` into ``[low, high]``; ``low`` wins if the bounds cross."""
    return max(low, min(high, value))


@dataclass(slots=True, frozen=True)
class TaskGeometry:
    """Pixel placement of a task element relative to the grid origin."""

    left: float
    width: float
    top: float
    height: float


@dataclass(slots=True, frozen=True)
class Cell:
    """A single (day, resource) grid cell."""

    day_offset: int
    resource_index: int
    date: date


@dataclass(slots=True, frozen=True)
class VisibleRange:
    """Day columns intersecting the viewport."""

    start: date
    end: date
    start_day: int
    end_day: int


@dataclass(slots=True, frozen=True)
class GridMapper:
    """Pure coordinate mapping for a grid of ``cell_width`` x ``row_height`` cells.

    Nothing here holds state; identical inputs always give identical outputs,
    so re-rendering from the same model is idempotent.
    """

    cell_width: float
    row_height: float
    handle_width: float = 8.0

    @classmethod
    def from_config(cls, config: GridConfig) -> GridMapper:
        """Build a mapper from grid configuration."""
        return cls(
            cell_width=config.cell_width,
            row_height=config.row_height,
            handle_width=config.handle_width,
        )

    def day_to_x(self, offset: int) -> float:
        return offset * self.cell_width

    def x_to_day(self, x: float) -> int:
        return round_half_up(x / self.cell_width)

    def resource_to_y(self, resource_index: int) -> float:
        return resource_index * self.row_height

    def y_to_resource(self, y: float, resource_count: int) -> int:
        """Nearest row for ``y``, clamped to ``[0, resource_count - 1]``."""
        return clamp(round_half_up(y / self.row_height), 0, resource_count - 1)

    def cells_delta(self, dx: float) -> int:
        """Whole columns spanned by a horizontal pointer movement."""
        return round_half_up(dx / self.cell_width)

    def rows_delta(self, dy: float) -> int:
        """Whole rows spanned by a vertical pointer movement."""
        return round_half_up(dy / self.row_height)

    def task_geometry(self, task: Task, anchor: date) -> TaskGeometry:
        """Placement of ``task`` in a window whose first column is ``anchor``."""
        return self.span_geometry(
            day_offset(anchor, task.start), task.duration, task.resource_index
        )

    def span_geometry(self, offset: int, duration: int, resource_index: int) -> TaskGeometry:
        """Placement of an arbitrary span, used for gesture previews."""
        return TaskGeometry(
            left=self.day_to_x(offset),
            width=duration * self.cell_width,
            top=self.resource_to_y(resource_index),
            height=self.row_height,
        )

    def cell_at(self, x: float, y: float, anchor: date, resource_count: int) -> Cell:
        """Cell containing the point ``(x, y)``; columns and rows are floor-indexed."""
        offset = math.floor(x / self.cell_width)
        row = clamp(math.floor(y / self.row_height), 0, resource_count - 1)
        return Cell(day_offset=offset, resource_index=row, date=add_days(anchor, offset))

    def visible_range(self, scroll_x: float, viewport_width: float, anchor: date) -> VisibleRange:
        """First and last day columns touched by a viewport scrolled to ``scroll_x``."""
        start_day = math.floor(scroll_x / self.cell_width)
        end_day = math.ceil((scroll_x + viewport_width) / self.cell_width)
        return VisibleRange(
            start=add_days(anchor, start_day),
            end=add_days(anchor, end_day),
            start_day=start_day,
            end_day=end_day,
        )

    def hit_handle(self, offset_x: float, element_width: float) -> Handle:
        """Which part of a task element a pointer-down at ``offset_x`` hits.

        ``offset_x`` is measured from the element's left edge. The left handle
        wins when both zones overlap on a very narrow span.
        """
        if offset_x <= self.handle_width:
            return Handle.LEFT
        if element_width - offset_x <= self.handle_width:
            return Handle.RIGHT
        return Handle.BODY
