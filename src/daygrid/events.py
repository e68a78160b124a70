"""Synchronous event bus notifying the host of timeline state changes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any

from .logger import get_logger

if TYPE_CHECKING:
    from .layout import LayoutSnapshot
    from .models import Handle, Task

logger = get_logger()


class TimelineEvent(str, Enum):
    """Event names a host can subscribe to."""

    TASK_ADDED = "taskAdded"
    TASK_UPDATED = "taskUpdated"
    TASK_REMOVED = "taskRemoved"
    TASK_MOVED = "taskMoved"
    TASK_RESIZED = "taskResized"
    DATE_RANGE_CHANGED = "dateRangeChanged"
    DATE_RANGE_EXTENDED = "dateRangeExtended"
    DAYS_CLEANED_UP = "daysCleanedUp"
    LOADING_START = "loadingStart"
    LOADING_END = "loadingEnd"
    LOADING_ERROR = "loadingError"
    END_OF_DATA = "endOfData"
    DRAG_START = "dragStart"
    RESIZE_START = "resizeStart"
    GESTURE_CANCELLED = "gestureCancelled"
    SCROLLED_TO_DATE = "scrolledToDate"
    REFRESHED = "refreshed"
    DESTROYED = "destroyed"
    ERROR = "error"


Handler = Callable[[Any], None]


# ============================================================================
# Event payloads
# ============================================================================


@dataclass(slots=True, frozen=True)
class DateSpan:
    """Inclusive range of calendar days."""

    start: date
    end: date

    @property
    def days(self) -> int:
        """Number of days in the span."""
        return (self.end - self.start).days + 1


@dataclass(slots=True, frozen=True)
class TaskUpdated:
    """Before/after snapshots of an updated task."""

    task: Task
    old_task: Task


@dataclass(slots=True, frozen=True)
class TaskMoved:
    """Outcome of a committed drag."""

    task: Task
    old_start: date
    new_start: date
    old_resource_index: int
    new_resource_index: int


@dataclass(slots=True, frozen=True)
class TaskResized:
    """Outcome of a committed resize."""

    task: Task
    edge: Handle
    old_start: date
    new_start: date
    old_end: date
    new_end: date
    old_duration: int
    new_duration: int


@dataclass(slots=True, frozen=True)
class DateRangeChanged:
    """Window re-initialized by an explicit range-setting call."""

    start_date: date
    end_date: date
    days: int


@dataclass(slots=True, frozen=True)
class DateRangeExtended:
    """Window grown at its trailing edge; ``opened`` is the newly revealed span."""

    old_end: date
    new_end: date
    new_days: int
    total_days: int
    opened: DateSpan


@dataclass(slots=True, frozen=True)
class DaysCleanedUp:
    """Day columns evicted from the front of the window.

    The host shifts its scroll position by ``scroll_adjust_px`` (negative)
    to keep the same content under the viewport.
    """

    removed_days: int
    removed_tasks: list[Task]
    current_range: DateSpan
    total_days: int
    scroll_adjust_px: float

    @property
    def day_delta(self) -> int:
        """Shift of every surviving column's day offset."""
        return -self.removed_days


@dataclass(slots=True, frozen=True)
class LoadingStatus:
    """Payload for ``loadingStart`` and ``loadingEnd``."""

    current_range: DateSpan
    total_days: int
    requested_days: int = 0


@dataclass(slots=True, frozen=True)
class GestureStarted:
    """Payload for ``dragStart`` and ``resizeStart``."""

    task: Task
    handle: Handle


@dataclass(slots=True, frozen=True)
class ScrolledToDate:
    """A date was brought to the left edge of the viewport."""

    date: date
    scroll_position: float
    day_index: int


@dataclass(slots=True, frozen=True)
class Refreshed:
    """Full re-render request carrying the current layout."""

    snapshot: LayoutSnapshot


@dataclass(slots=True, frozen=True)
class ErrorReport:
    """Payload for the ``error`` event."""

    type: str
    error: Exception


# ============================================================================
# Bus
# ============================================================================


def _event_key(event: TimelineEvent | str) -> TimelineEvent:
    try:
        return TimelineEvent(event)
    except ValueError as e:
        raise ValueError(f"Unknown event '{event}'") from e


class EventBus:
    """Synchronous publish/subscribe.

    Handlers run in subscription order on the caller's stack. A handler that
    raises interrupts delivery and propagates to whoever emitted the event.
    """

    def __init__(self) -> None:
        self._handlers: dict[TimelineEvent, list[Handler]] = {}

    def on(self, event: TimelineEvent | str, handler: Handler) -> EventBus:
        """Subscribe ``handler`` to ``event``. Returns the bus to allow chaining."""
        self._handlers.setdefault(_event_key(event), []).append(handler)
        return self

    def off(self, event: TimelineEvent | str, handler: Handler) -> bool:
        """Unsubscribe a handler. Returns False if it was not subscribed."""
        handlers = self._handlers.get(_event_key(event), [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def emit(self, event: TimelineEvent, payload: Any = None) -> None:
        """Deliver ``payload`` to every handler subscribed to ``event``."""
        handlers = list(self._handlers.get(event, []))
        logger.debug(f"emit {event.value} -> {len(handlers)} handler(s)")
        for handler in handlers:
            handler(payload)

    def has_subscribers(self, event: TimelineEvent | str) -> bool:
        """Whether any handler is subscribed to ``event``."""
        return bool(self._handlers.get(_event_key(event)))

    def clear(self) -> None:
        """Drop all subscriptions."""
        self._handlers.clear()
