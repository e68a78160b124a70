"""Sliding window of loaded day columns.

The window starts on a Monday and grows at its trailing edge in fixed
chunks as the host scrolls toward the end (extension). Once it holds more
than ``max_days_resident`` days, columns far behind the viewport are dropped
from the front together with the tasks that end before them (eviction).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from .calendar_math import add_days, day_offset, format_iso, monday_of
from .config import WindowConfig
from .events import (
    DateRangeChanged,
    DateRangeExtended,
    DateSpan,
    DaysCleanedUp,
    ErrorReport,
    EventBus,
    LoadingStatus,
    TimelineEvent,
)
from .logger import get_logger
from .store import TaskStore

logger = get_logger()


@dataclass(slots=True, frozen=True)
class _PendingExtension:
    """Window shape before an extension, kept so a failed load can roll back."""

    loaded_range_end: date
    days_visible: int


class DateWindow:
    """Loaded and visible range of calendar days.

    Invariant: ``loaded_range_start <= week_anchor_start`` and
    ``week_anchor_start + days_visible - 1 <= loaded_range_end``.
    """

    def __init__(
        self,
        anchor: date | datetime,
        config: WindowConfig,
        store: TaskStore,
        bus: EventBus,
        *,
        cell_width: float = 80.0,
    ):
        """Initialize the window on the Monday of ``anchor``'s week.

        Args:
            anchor: Any day in the first week to show
            config: Window sizing and loading behaviour
            store: Task store that eviction prunes
            bus: Event bus for window notifications
            cell_width: Column width, used to express eviction as a scroll shift
        """
        self.config = config
        self.store = store
        self.bus = bus
        self.cell_width = cell_width
        self.chunk_days = config.chunk_days
        self.buffer_days = config.buffer_days
        self.max_days_resident = config.max_days_resident
        self.load_threshold_days = config.load_threshold_days

        self.is_loading = False
        self.has_reached_end = False
        self._pending: _PendingExtension | None = None
        self.init(anchor, config.days_visible)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def loaded_range(self) -> DateSpan:
        return DateSpan(start=self.loaded_range_start, end=self.loaded_range_end)

    @property
    def visible_end(self) -> date:
        """Last day column currently laid out."""
        return add_days(self.week_anchor_start, self.days_visible - 1)

    def offset_of(self, day: date | datetime) -> int:
        """Day offset of ``day`` from the first column."""
        return day_offset(self.week_anchor_start, day)

    def date_at(self, offset: int) -> date:
        """Calendar date of the column at ``offset``."""
        return add_days(self.week_anchor_start, offset)

    def contains(self, day: date | datetime) -> bool:
        """Whether ``day`` has a column in the current window."""
        return 0 <= self.offset_of(day) < self.days_visible

    # ------------------------------------------------------------------
    # Range setting
    # ------------------------------------------------------------------

    def init(self, anchor: date | datetime, days_visible: int) -> None:
        """Reset the window to ``days_visible`` days from the Monday of ``anchor``."""
        if days_visible < 1:
            raise ValueError(f"days_visible must be >= 1, got {days_visible}")
        self.week_anchor_start = monday_of(anchor)
        self.days_visible = days_visible
        self.loaded_range_start = self.week_anchor_start
        self.loaded_range_end = add_days(self.week_anchor_start, days_visible - 1)
        self.has_reached_end = False

        if self.is_loading:
            # An extension against the old range can no longer be applied
            logger.checks("Abandoning in-flight extension: window was reset")
            self._pending = None
            self._finish_loading()

    def set_range(self, anchor: date | datetime, days_visible: int | None = None) -> None:
        """Re-initialize the window (go to today / next week / previous week)."""
        self.init(anchor, self.days_visible if days_visible is None else days_visible)
        logger.changes(
            f"Date range set to {format_iso(self.week_anchor_start)}.."
            f"{format_iso(self.visible_end)} ({self.days_visible} days)"
        )
        self.bus.emit(
            TimelineEvent.DATE_RANGE_CHANGED,
            DateRangeChanged(
                start_date=self.week_anchor_start,
                end_date=self.visible_end,
                days=self.days_visible,
            ),
        )

    # ------------------------------------------------------------------
    # Extension
    # ------------------------------------------------------------------

    def extend(self) -> DateSpan | None:
        """Open ``chunk_days`` more days at the trailing edge.

        No-op (returns None) while a previous extension is outstanding or
        after the host has marked the end of its data. In deferred mode the
        extension stays outstanding until complete_extension() or
        fail_extension() is called; otherwise it completes before returning.

        Returns:
            The newly opened span, or None if nothing was extended
        """
        if self.is_loading:
            logger.checks("Extend skipped: an extension is already in flight")
            return None
        if self.has_reached_end:
            logger.checks("Extend skipped: end of data reached")
            return None

        self.is_loading = True
        self._pending = _PendingExtension(
            loaded_range_end=self.loaded_range_end, days_visible=self.days_visible
        )

        # A raising subscriber on either event fails the extension
        try:
            self.bus.emit(
                TimelineEvent.LOADING_START,
                LoadingStatus(
                    current_range=self.loaded_range,
                    total_days=self.days_visible,
                    requested_days=self.chunk_days,
                ),
            )

            old_end = self.loaded_range_end
            self.loaded_range_end = add_days(old_end, self.chunk_days)
            self.days_visible += self.chunk_days
            opened = DateSpan(start=add_days(old_end, 1), end=self.loaded_range_end)
            logger.changes(
                f"Extended window to {format_iso(self.loaded_range_end)} "
                f"({self.days_visible} days, +{self.chunk_days})"
            )

            self.bus.emit(
                TimelineEvent.DATE_RANGE_EXTENDED,
                DateRangeExtended(
                    old_end=old_end,
                    new_end=self.loaded_range_end,
                    new_days=self.chunk_days,
                    total_days=self.days_visible,
                    opened=opened,
                ),
            )
        except Exception as e:  # noqa: BLE001
            self.fail_extension(e)
            return None

        if not self.config.deferred_loading:
            self.complete_extension()
        return opened

    def complete_extension(self) -> bool:
        """Mark the outstanding extension as loaded. False if none is outstanding."""
        if not self.is_loading:
            return False
        self._pending = None
        self._finish_loading()
        return True

    def fail_extension(self, error: Exception) -> bool:
        """Roll back the outstanding extension and report ``error`` as ``loadingError``.

        The host decides whether to retry by calling extend() again. The
        window stops loading even if a ``loadingError`` handler raises.
        """
        if not self.is_loading:
            return False
        pending = self._pending
        if pending is not None:
            self.loaded_range_end = pending.loaded_range_end
            self.days_visible = pending.days_visible
        self._pending = None
        logger.warning(f"Loading more days failed: {error}")
        try:
            self.bus.emit(TimelineEvent.LOADING_ERROR, ErrorReport(type="loading", error=error))
        finally:
            self._finish_loading()
        return True

    def maybe_extend(self, distance_from_end_days: int) -> DateSpan | None:
        """Extend iff the viewport is within ``load_threshold_days`` of the trailing edge."""
        if distance_from_end_days > self.load_threshold_days:
            return None
        return self.extend()

    def mark_end_of_data(self) -> None:
        """Stop further extensions until the range is reset."""
        if self.has_reached_end:
            return
        self.has_reached_end = True
        logger.changes(f"End of data at {format_iso(self.loaded_range_end)}")
        self.bus.emit(TimelineEvent.END_OF_DATA, self.loaded_range)

    def reset_end_of_data(self) -> None:
        self.has_reached_end = False

    def _finish_loading(self) -> None:
        self.is_loading = False
        self.bus.emit(
            TimelineEvent.LOADING_END,
            LoadingStatus(current_range=self.loaded_range, total_days=self.days_visible),
        )

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def evict(self, current_scroll_day: int, min_days_visible: int = 1) -> DaysCleanedUp | None:
        """Drop day columns more than ``buffer_days`` behind the viewport.

        Only runs while the window holds more than ``max_days_resident`` days
        and no extension is in flight. Never shrinks the window below
        ``min_days_visible`` (the host's viewport width in days).

        Args:
            current_scroll_day: Day offset of the viewport's left edge
            min_days_visible: Days that must remain laid out

        Returns:
            The ``daysCleanedUp`` payload, or None if nothing was evicted
        """
        if self.is_loading:
            logger.checks("Eviction skipped: extension in flight")
            return None
        if self.days_visible <= self.max_days_resident:
            return None

        keep_from_day = max(0, current_scroll_day - self.buffer_days)
        keep_from_day = min(keep_from_day, self.days_visible - max(1, min_days_visible))
        if keep_from_day <= 0:
            return None

        self.week_anchor_start = add_days(self.week_anchor_start, keep_from_day)
        self.days_visible -= keep_from_day
        self.loaded_range_start = add_days(self.loaded_range_start, keep_from_day)

        cutoff = add_days(self.loaded_range_start, -1)
        removed_tasks = self.store.evict_before(cutoff)
        logger.changes(
            f"Evicted {keep_from_day} day(s); window now {format_iso(self.week_anchor_start)}.."
            f"{format_iso(self.visible_end)} ({self.days_visible} days)"
        )

        result = DaysCleanedUp(
            removed_days=keep_from_day,
            removed_tasks=removed_tasks,
            current_range=self.loaded_range,
            total_days=self.days_visible,
            scroll_adjust_px=-keep_from_day * self.cell_width,
        )
        self.bus.emit(TimelineEvent.DAYS_CLEANED_UP, result)
        return result

    def __repr__(self) -> str:
        return (
            f"DateWindow(anchor={format_iso(self.week_anchor_start)}, days={self.days_visible}, "
            f"loaded={format_iso(self.loaded_range_start)}..{format_iso(self.loaded_range_end)}, "
            f"loading={self.is_loading})"
        )
