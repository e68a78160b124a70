"""Pointer gesture state machines for dragging and resizing tasks.

A gesture lives from pointer-down to pointer-up. While it is active only a
preview is computed; the task store is written once, on commit. Drag and
resize share a single session slot, so at most one gesture is in flight.

    IDLE --begin--> ACTIVE --commit--> COMMITTING --> IDLE
                      |
                      +----cancel----------------------> IDLE
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .calendar_math import add_days, end_date, format_iso
from .events import EventBus, GestureStarted, TaskMoved, TaskResized, TimelineEvent
from .exceptions import StateError
from .grid import GridMapper, TaskGeometry, clamp
from .logger import get_logger
from .models import Handle, Point, Task

if TYPE_CHECKING:
    from .store import TaskStore
    from .window import DateWindow

logger = get_logger()


class GestureState(str, Enum):
    """Lifecycle of the current gesture."""

    IDLE = "idle"
    ACTIVE = "active"
    COMMITTING = "committing"


@dataclass
class DragSession:
    """An in-progress move of a task across days and resource rows."""

    task: Task  # Snapshot taken at pointer-down
    origin: Point
    origin_day_offset: int
    origin_resource_index: int
    candidate_day_offset: int
    candidate_resource_index: int


@dataclass
class ResizeSession:
    """An in-progress drag of one edge of a task."""

    task: Task  # Snapshot taken at pointer-down
    origin: Point
    edge: Handle
    origin_day_offset: int
    origin_duration: int
    day_offset: int
    duration: int


Session = DragSession | ResizeSession


@dataclass(slots=True, frozen=True)
class GesturePreview:
    """Where the task would land if the gesture were committed now."""

    task_id: int
    day_offset: int
    resource_index: int
    duration: int
    geometry: TaskGeometry


class InteractionController:
    """Owns the drag/resize session and turns its outcome into a task update."""

    def __init__(
        self,
        store: TaskStore,
        window: DateWindow,
        mapper: GridMapper,
        bus: EventBus,
        *,
        resource_count: Callable[[], int] | None = None,
    ):
        self.store = store
        self.window = window
        self.mapper = mapper
        self.bus = bus
        self._resource_count = resource_count or (lambda: store.resource_count)
        self.session: Session | None = None
        self._state = GestureState.IDLE

    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def is_active(self) -> bool:
        """True while any gesture (active or committing) is in flight."""
        return self.session is not None

    # ------------------------------------------------------------------
    # Begin
    # ------------------------------------------------------------------

    def pointer_down(
        self,
        task_id: int,
        point: Point,
        offset_x: float,
        element_width: float | None = None,
    ) -> Session | None:
        """Start a drag or a resize depending on where the task element was hit.

        Args:
            task_id: Task under the pointer
            point: Pointer position in grid pixels
            offset_x: Pointer x measured from the task element's left edge
            element_width: Rendered width; defaults to ``duration * cell_width``
        """
        task = self._find(task_id)
        if task is None:
            return None
        width = element_width if element_width is not None else task.duration * self.mapper.cell_width
        handle = self.mapper.hit_handle(offset_x, width)
        if handle is Handle.BODY:
            return self.begin_drag(task_id, point)
        return self.begin_resize(task_id, point, handle)

    def begin_drag(
        self, task_id: int, origin: Point, current_left: float | None = None
    ) -> DragSession | None:
        """Start moving a task.

        ``current_left`` is the element's rendered left edge; when omitted it
        is computed from the task's start date.

        Raises:
            StateError: If another gesture is already in flight
        """
        self._require_idle()
        task = self._find(task_id)
        if task is None:
            return None
        if current_left is None:
            current_left = self.mapper.task_geometry(task, self.window.week_anchor_start).left
        origin_day = self.mapper.x_to_day(current_left)

        session = DragSession(
            task=task,
            origin=origin,
            origin_day_offset=origin_day,
            origin_resource_index=task.resource_index,
            candidate_day_offset=origin_day,
            candidate_resource_index=task.resource_index,
        )
        self._start(session, Handle.BODY)
        return session

    def begin_resize(self, task_id: int, origin: Point, edge: Handle) -> ResizeSession | None:
        """Start dragging the left or right edge of a task.

        Raises:
            StateError: If another gesture is already in flight
            ValueError: If ``edge`` is not a left or right handle
        """
        if edge not in (Handle.LEFT, Handle.RIGHT):
            raise ValueError(f"Resize edge must be left or right, got {edge!r}")
        self._require_idle()
        task = self._find(task_id)
        if task is None:
            return None
        origin_day = self.window.offset_of(task.start)

        session = ResizeSession(
            task=task,
            origin=origin,
            edge=edge,
            origin_day_offset=origin_day,
            origin_duration=task.duration,
            day_offset=origin_day,
            duration=task.duration,
        )
        self._start(session, edge)
        return session

    # ------------------------------------------------------------------
    # Move / commit / cancel
    # ------------------------------------------------------------------

    def update(self, point: Point) -> GesturePreview:
        """Recompute the candidate placement for the pointer at ``point``.

        Raises:
            StateError: If no gesture is active
        """
        session = self._require_session()
        if isinstance(session, DragSession):
            self._track_drag(session, point)
            return GesturePreview(
                task_id=session.task.id,
                day_offset=session.candidate_day_offset,
                resource_index=session.candidate_resource_index,
                duration=session.task.duration,
                geometry=self.mapper.span_geometry(
                    session.candidate_day_offset,
                    session.task.duration,
                    session.candidate_resource_index,
                ),
            )

        self._track_resize(session, point)
        return GesturePreview(
            task_id=session.task.id,
            day_offset=session.day_offset,
            resource_index=session.task.resource_index,
            duration=session.duration,
            geometry=self.mapper.span_geometry(
                session.day_offset, session.duration, session.task.resource_index
            ),
        )

    def commit(self, point: Point | None = None) -> Task | None:
        """Finish the gesture and write its outcome to the task store.

        Args:
            point: Pointer position at release; defaults to the last update()

        Returns:
            The task after the gesture, or None if it vanished mid-gesture
        """
        session = self._require_session()
        if self._state is GestureState.COMMITTING:
            raise StateError("Gesture is already committing")
        if point is not None:
            self.update(point)

        self._state = GestureState.COMMITTING
        try:
            if isinstance(session, DragSession):
                return self._commit_drag(session)
            return self._commit_resize(session)
        finally:
            self._end()

    def cancel(self) -> bool:
        """Discard the active gesture without touching the store."""
        if self.session is None or self._state is GestureState.COMMITTING:
            return False
        task = self.session.task
        logger.checks(f"Gesture on task {task.id} cancelled")
        self._end()
        self.bus.emit(TimelineEvent.GESTURE_CANCELLED, task)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _track_drag(self, session: DragSession, point: Point) -> None:
        dx = point.x - session.origin.x
        dy = point.y - session.origin.y
        session.candidate_day_offset = session.origin_day_offset + self.mapper.cells_delta(dx)
        session.candidate_resource_index = clamp(
            session.origin_resource_index + self.mapper.rows_delta(dy),
            0,
            self._resource_count() - 1,
        )
        logger.debug(
            f"Drag task {session.task.id}: dx={dx} dy={dy} -> day "
            f"{session.candidate_day_offset}, resource {session.candidate_resource_index}"
        )

    def _track_resize(self, session: ResizeSession, point: Point) -> None:
        delta = self.mapper.cells_delta(point.x - session.origin.x)
        origin_day = session.origin_day_offset
        origin_duration = session.origin_duration

        if session.edge is Handle.RIGHT:
            # A span already reaching past the window keeps its length at zero delta
            max_duration = max(self.window.days_visible - origin_day, origin_duration)
            session.day_offset = origin_day
            session.duration = clamp(origin_duration + delta, 1, max_duration)
        else:
            # The right edge stays fixed; the left edge stops one day before it
            min_day = min(0, origin_day)
            session.day_offset = clamp(
                origin_day + delta, min_day, origin_day + origin_duration - 1
            )
            session.duration = origin_duration - (session.day_offset - origin_day)
        logger.debug(
            f"Resize task {session.task.id} ({session.edge.value}): delta={delta} -> "
            f"day {session.day_offset}, duration {session.duration}"
        )

    def _commit_drag(self, session: DragSession) -> Task | None:
        task = session.task
        # A span already hanging off either end of the window may stay there
        origin_day = session.origin_day_offset
        day = clamp(
            session.candidate_day_offset,
            min(0, origin_day),
            max(self.window.days_visible - task.duration, origin_day),
        )
        resource_index = session.candidate_resource_index
        new_start = add_days(self.window.week_anchor_start, day)

        if new_start == task.start and resource_index == task.resource_index:
            logger.checks(f"Drag of task {task.id} ended where it started")
            return self.store.get(task.id)

        updated = self.store.update(
            task.id,
            {
                "start": new_start,
                "end": end_date(new_start, task.duration),
                "resource_index": resource_index,
            },
        )
        if updated is None:
            logger.warning(f"Task {task.id} disappeared during drag; nothing committed")
            return None

        logger.changes(
            f"Moved task {task.id}: {format_iso(task.start)} -> {format_iso(new_start)}, "
            f"resource {task.resource_index} -> {resource_index}"
        )
        self.bus.emit(
            TimelineEvent.TASK_MOVED,
            TaskMoved(
                task=updated,
                old_start=task.start,
                new_start=updated.start,
                old_resource_index=task.resource_index,
                new_resource_index=updated.resource_index,
            ),
        )
        return updated

    def _commit_resize(self, session: ResizeSession) -> Task | None:
        task = session.task
        new_start = add_days(self.window.week_anchor_start, session.day_offset)

        if new_start == task.start and session.duration == task.duration:
            logger.checks(f"Resize of task {task.id} left it unchanged")
            return self.store.get(task.id)

        updated = self.store.update(task.id, {"start": new_start, "duration": session.duration})
        if updated is None:
            logger.warning(f"Task {task.id} disappeared during resize; nothing committed")
            return None

        logger.changes(
            f"Resized task {task.id} ({session.edge.value}): "
            f"{format_iso(task.start)}..{format_iso(task.end)} -> "
            f"{format_iso(updated.start)}..{format_iso(updated.end)}"
        )
        self.bus.emit(
            TimelineEvent.TASK_RESIZED,
            TaskResized(
                task=updated,
                edge=session.edge,
                old_start=task.start,
                new_start=updated.start,
                old_end=task.end,
                new_end=updated.end,
                old_duration=task.duration,
                new_duration=updated.duration,
            ),
        )
        return updated

    def _find(self, task_id: int) -> Task | None:
        task = self.store.get(task_id)
        if task is None:
            logger.checks(f"No task {task_id} to start a gesture on")
        return task

    def _start(self, session: Session, handle: Handle) -> None:
        self.session = session
        self._state = GestureState.ACTIVE
        event = TimelineEvent.DRAG_START if handle is Handle.BODY else TimelineEvent.RESIZE_START
        logger.debug(f"{event.value} task {session.task.id} at ({session.origin.x}, {session.origin.y})")
        self.bus.emit(event, GestureStarted(task=session.task, handle=handle))

    def _end(self) -> None:
        self.session = None
        self._state = GestureState.IDLE

    def _require_idle(self) -> None:
        if self.session is not None:
            raise StateError(
                f"Cannot start a gesture while one is {self._state.value} "
                f"(task {self.session.task.id})"
            )

    def _require_session(self) -> Session:
        if self.session is None:
            raise StateError("No gesture in progress")
        return self.session
