"""Host-facing timeline: resources as rows, days as columns, tasks as spans."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from contextlib import suppress
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .calendar_math import DAYS_PER_WEEK, add_days, coerce_date, format_iso
from .config import TimelineConfig, load_config
from .events import ErrorReport, EventBus, Handler, Refreshed, ScrolledToDate, TimelineEvent
from .exceptions import RangeError, StateError, ValidationError
from .grid import Cell, GridMapper, VisibleRange
from .interaction import GesturePreview, GestureState, InteractionController, Session
from .layout import LayoutSnapshot, build_snapshot
from .logger import get_logger
from .models import Handle, Point, Resource, Task, TaskType
from .store import ResourceInput, TaskInput, TaskStore, validate
from .window import DateWindow

logger = get_logger()

DateLike = str | date | datetime


class Timeline:
    """Interactive day grid model.

    Wires together the task store, the sliding date window, the grid mapper
    and the gesture controller behind one API. The host forwards scroll and
    pointer telemetry in, subscribes to events, and re-renders from the
    payloads or from snapshot(); nothing here draws.
    """

    def __init__(
        self,
        anchor: DateLike | None = None,
        *,
        config: TimelineConfig | None = None,
        config_path: Path | str | None = None,
        clock: Callable[[], date] | None = None,
    ):
        """Create a timeline whose first column is the Monday of ``anchor``'s week.

        Args:
            anchor: Any day of the first week to show. Defaults to today
            config: Optional pre-loaded configuration
            config_path: Optional path to daygrid_config.yaml, used when
                ``config`` is not given
            clock: Returns "today"; injectable for tests
        """
        self.clock = clock or date.today
        if config is None and config_path is not None:
            with suppress(FileNotFoundError):
                config = load_config(config_path)
        self.config = config or TimelineConfig()

        self.bus = EventBus()
        self.store = TaskStore(self.bus)
        self.mapper = GridMapper.from_config(self.config.grid)
        start = coerce_date(anchor) if anchor is not None else self.clock()
        self.window = DateWindow(
            start, self.config.window, self.store, self.bus, cell_width=self.mapper.cell_width
        )
        self.controller = InteractionController(self.store, self.window, self.mapper, self.bus)

        self.scroll_x = 0.0
        self.viewport_width = 0.0
        self._destroyed = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: TimelineEvent | str, handler: Handler) -> Timeline:
        """Subscribe to an event. Returns the timeline to allow chaining."""
        self._check_alive()
        self.bus.on(event, handler)
        return self

    def off(self, event: TimelineEvent | str, handler: Handler) -> bool:
        return self.bus.off(event, handler)

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def load(self, resources: Iterable[ResourceInput], tasks: Iterable[TaskInput]) -> None:
        """Replace resources and tasks wholesale and refresh.

        Raises:
            ValidationError: If any task or resource is malformed (state unchanged)
        """
        self._check_alive()
        self.controller.cancel()
        try:
            self.store.load(resources, tasks)
        except ValidationError as e:
            self._report("validation", e)
            raise
        self.refresh()

    def get_data(self) -> dict[str, list[Any]]:
        """Copies of the current resources and tasks."""
        return {"resources": self.store.resources, "tasks": self.store.tasks}

    @property
    def resources(self) -> list[Resource]:
        return self.store.resources

    @property
    def tasks(self) -> list[Task]:
        return self.store.tasks

    def add_task(self, partial: TaskInput) -> Task | None:
        """Add a task; returns None if its resource row does not exist.

        Raises:
            ValidationError: If the task data is malformed
        """
        self._check_alive()
        try:
            schema = validate(partial)
        except ValidationError as e:
            self._report("validation", e)
            raise
        if not self._resource_in_range(schema.resource_index):
            return None
        try:
            return self.store.add(partial)
        except ValidationError as e:
            self._report("validation", e)
            raise

    def update_task(self, task_id: int, patch: Mapping[str, Any]) -> Task | None:
        """Merge ``patch`` into a task; None if unknown or moved to a missing row.

        Raises:
            ValidationError: If the merged task is malformed
        """
        self._check_alive()
        resource_index = patch.get("resource_index", patch.get("resourceIndex"))
        if isinstance(resource_index, int) and not self._resource_in_range(resource_index):
            return None
        try:
            return self.store.update(task_id, patch)
        except ValidationError as e:
            self._report("validation", e)
            raise

    def remove_task(self, task_id: int) -> Task | None:
        self._check_alive()
        return self.store.remove(task_id)

    def get_task(self, task_id: int) -> Task | None:
        return self.store.get(task_id)

    def get_tasks_for_resource(self, resource_index: int) -> list[Task]:
        return self.store.by_resource(resource_index)

    def get_tasks_for_date(self, day: DateLike) -> list[Task]:
        return self.store.by_date(self._parse_date(day))

    # ------------------------------------------------------------------
    # Date range
    # ------------------------------------------------------------------

    def set_date_range(self, anchor: DateLike, days_visible: int | None = None) -> None:
        """Show ``days_visible`` days starting at the Monday of ``anchor``'s week.

        An in-flight gesture is cancelled first since its offsets refer to the
        old window.
        """
        self._check_alive()
        start = self._parse_date(anchor)
        self.controller.cancel()
        self.window.set_range(start, days_visible)
        self.scroll_x = 0.0

    def go_to_today(self) -> None:
        self.set_date_range(self.clock())

    def go_to_next_week(self) -> None:
        self.set_date_range(add_days(self.window.week_anchor_start, DAYS_PER_WEEK))

    def go_to_previous_week(self) -> None:
        self.set_date_range(add_days(self.window.week_anchor_start, -DAYS_PER_WEEK))

    def scroll_to_date(self, day: DateLike) -> bool:
        """Ask the host to scroll ``day`` to the viewport's left edge.

        Returns False (and emits ``error``) if the day has no column.
        """
        self._check_alive()
        target = self._parse_date(day)
        offset = self.window.offset_of(target)
        if not 0 <= offset < self.window.days_visible:
            self._report(
                "range",
                RangeError(
                    f"{format_iso(target)} is outside the loaded range "
                    f"{format_iso(self.window.week_anchor_start)}..{format_iso(self.window.visible_end)}"
                ),
            )
            return False

        self.scroll_x = self.mapper.day_to_x(offset)
        self.bus.emit(
            TimelineEvent.SCROLLED_TO_DATE,
            ScrolledToDate(date=target, scroll_position=self.scroll_x, day_index=offset),
        )
        return True

    def get_visible_date_range(
        self, scroll_x: float | None = None, viewport_width: float | None = None
    ) -> VisibleRange:
        """Days under the viewport; defaults to the last reported scroll telemetry."""
        return self.mapper.visible_range(
            self.scroll_x if scroll_x is None else scroll_x,
            self.viewport_width if viewport_width is None else viewport_width,
            self.window.week_anchor_start,
        )

    # ------------------------------------------------------------------
    # Infinite scroll
    # ------------------------------------------------------------------

    def on_scroll(self, scroll_x: float, viewport_width: float) -> None:
        """Feed raw horizontal scroll telemetry (pixels).

        Extends the window when the viewport nears the trailing edge, then
        evicts columns far behind it. Eviction is skipped while a gesture is
        in flight; the resulting scroll shift arrives with ``daysCleanedUp``.
        """
        self._check_alive()
        self.scroll_x = scroll_x
        self.viewport_width = viewport_width
        if not self.config.window.infinite_scroll:
            return

        cell_width = self.mapper.cell_width
        total_width = self.window.days_visible * cell_width
        days_from_end = math.ceil((total_width - scroll_x - viewport_width) / cell_width)
        logger.debug(f"Scroll at {scroll_x}px: {days_from_end} day(s) from the end")
        self.window.maybe_extend(days_from_end)

        if self.controller.is_active:
            logger.checks("Eviction skipped: gesture in progress")
            return
        visible_start_day = math.floor(scroll_x / cell_width)
        min_days = max(1, math.ceil(viewport_width / cell_width))
        result = self.window.evict(visible_start_day, min_days)
        if result is not None:
            self.scroll_x += result.scroll_adjust_px

    def extend(self) -> bool:
        """Force one extension; False if one is already in flight or data has ended."""
        self._check_alive()
        return self.window.extend() is not None

    def complete_extension(self) -> bool:
        return self.window.complete_extension()

    def fail_extension(self, error: Exception) -> bool:
        return self.window.fail_extension(error)

    def mark_end_of_data(self) -> None:
        """Host signal that no data exists beyond the loaded range."""
        self.window.mark_end_of_data()

    @property
    def is_loading(self) -> bool:
        return self.window.is_loading

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    def cell_at(self, x: float, y: float) -> Cell | None:
        """Grid cell under a point, or None outside the day columns or rows."""
        cell = self.mapper.cell_at(x, y, self.window.week_anchor_start, self.store.resource_count)
        if not 0 <= cell.day_offset < self.window.days_visible:
            return None
        if self.store.resource_count == 0 or y < 0:
            return None
        return cell

    def add_task_at_cell(
        self,
        x: float,
        y: float,
        title: str,
        duration: int = 1,
        task_type: TaskType | str = TaskType.PROJECT,
    ) -> Task | None:
        """Create a task starting in the clicked empty cell."""
        cell = self.cell_at(x, y)
        if cell is None:
            self._report("range", RangeError(f"No grid cell at ({x}, {y})"))
            return None
        return self.add_task(
            {
                "title": title,
                "start": cell.date,
                "duration": duration,
                "resource_index": cell.resource_index,
                "type": task_type,
            }
        )

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def pointer_down(
        self, task_id: int, point: Point, offset_x: float, element_width: float | None = None
    ) -> Session | None:
        """Begin a drag, or a resize when ``offset_x`` lands on an edge handle."""
        self._check_alive()
        return self._guard_state(
            lambda: self.controller.pointer_down(task_id, point, offset_x, element_width)
        )

    def begin_drag(self, task_id: int, origin: Point, current_left: float | None = None) -> Session | None:
        self._check_alive()
        return self._guard_state(lambda: self.controller.begin_drag(task_id, origin, current_left))

    def begin_resize(self, task_id: int, origin: Point, edge: Handle) -> Session | None:
        self._check_alive()
        return self._guard_state(lambda: self.controller.begin_resize(task_id, origin, edge))

    def pointer_move(self, point: Point) -> GesturePreview:
        return self._guard_state(lambda: self.controller.update(point))

    def pointer_up(self, point: Point | None = None) -> Task | None:
        return self._guard_state(lambda: self.controller.commit(point))

    def cancel_gesture(self) -> bool:
        """Abort the gesture (e.g. pointer capture lost)."""
        return self.controller.cancel()

    @property
    def gesture_state(self) -> GestureState:
        return self.controller.state

    # ------------------------------------------------------------------
    # Rendering and lifecycle
    # ------------------------------------------------------------------

    def snapshot(self) -> LayoutSnapshot:
        """Current layout for the rendering layer."""
        return build_snapshot(self.store, self.window, self.mapper)

    def refresh(self) -> LayoutSnapshot:
        """Emit ``refreshed`` with a fresh snapshot and return it."""
        self._check_alive()
        snapshot = self.snapshot()
        self.bus.emit(TimelineEvent.REFRESHED, Refreshed(snapshot=snapshot))
        return snapshot

    def destroy(self) -> None:
        """Cancel any gesture, drop all data, notify, then drop all subscribers."""
        if self._destroyed:
            return
        self.controller.cancel()
        self.store.clear()
        self.bus.emit(TimelineEvent.DESTROYED)
        self.bus.clear()
        self._destroyed = True
        logger.changes("Timeline destroyed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resource_in_range(self, resource_index: int) -> bool:
        count = self.store.resource_count
        if count and resource_index >= count:
            self._report(
                "range",
                RangeError(f"Resource index {resource_index} out of bounds (0..{count - 1})"),
            )
            return False
        return True

    def _parse_date(self, value: DateLike) -> date:
        try:
            return coerce_date(value)
        except ValueError as e:
            error = ValidationError(str(e))
            self._report("validation", error)
            raise error from e

    def _guard_state(self, action: Callable[[], Any]) -> Any:
        try:
            return action()
        except StateError as e:
            self._report("state", e)
            raise

    def _report(self, kind: str, error: Exception) -> None:
        logger.warning(f"{kind} error: {error}")
        self.bus.emit(TimelineEvent.ERROR, ErrorReport(type=kind, error=error))

    def _check_alive(self) -> None:
        if self._destroyed:
            raise StateError("Timeline has been destroyed")
