"""Tests for the sliding date window."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

import pytest

from daygrid.calendar_math import add_days
from daygrid.config import WindowConfig
from daygrid.events import DateSpan, EventBus, TimelineEvent
from daygrid.store import TaskStore
from daygrid.window import DateWindow

if TYPE_CHECKING:
    from tests.conftest import EventRecorder


def _window(
    anchor: date = date(2024, 1, 1), *, bus: EventBus | None = None, **overrides: Any
) -> DateWindow:
    bus = bus or EventBus()
    store = TaskStore(bus)
    return DateWindow(anchor, WindowConfig(**overrides), store, bus, cell_width=80)


def _assert_invariants(window: DateWindow) -> None:
    assert window.loaded_range_start <= window.week_anchor_start
    assert window.visible_end <= window.loaded_range_end
    assert window.days_visible >= 1


class TestInit:
    """Test window construction and range setting."""

    def test_aligns_to_monday(self) -> None:
        """A Wednesday anchor starts the window on the preceding Monday."""
        window = _window(date(2024, 1, 3))
        assert window.week_anchor_start == date(2024, 1, 1)
        assert window.loaded_range_start == date(2024, 1, 1)
        assert window.loaded_range_end == date(2024, 1, 21)
        assert window.days_visible == 21
        _assert_invariants(window)

    def test_offsets_and_dates(self) -> None:
        """offset_of and date_at are inverses."""
        window = _window()
        assert window.offset_of(date(2024, 1, 3)) == 2
        assert window.date_at(2) == date(2024, 1, 3)
        assert window.contains(date(2024, 1, 21))
        assert not window.contains(date(2024, 1, 22))
        assert not window.contains(date(2023, 12, 31))

    def test_set_range_emits_date_range_changed(self, recorder: EventRecorder) -> None:
        """Explicit range changes are announced with the new visible span."""
        bus = EventBus()
        recorder.attach(bus)
        window = _window(bus=bus)
        window.set_range(date(2024, 2, 15), 14)
        (payload,) = recorder.payloads("dateRangeChanged")
        assert payload.start_date == date(2024, 2, 12)
        assert payload.end_date == date(2024, 2, 25)
        assert payload.days == 14

    def test_set_range_keeps_day_count_by_default(self) -> None:
        """Omitting days_visible keeps the current width."""
        window = _window(days_visible=14, max_days_resident=84)
        window.set_range(date(2024, 3, 4))
        assert window.days_visible == 14

    def test_rejects_empty_window(self) -> None:
        """A window must show at least one day."""
        window = _window()
        with pytest.raises(ValueError, match="days_visible"):
            window.init(date(2024, 1, 1), 0)


class TestExtend:
    """Test growing the window at its trailing edge."""

    def test_extend_adds_one_chunk(self, recorder: EventRecorder) -> None:
        """21 days plus a 21-day chunk gives 42."""
        bus = EventBus()
        recorder.attach(bus)
        window = _window(bus=bus)
        opened = window.extend()

        assert opened == DateSpan(start=date(2024, 1, 22), end=date(2024, 2, 11))
        assert window.days_visible == 42
        assert window.loaded_range_end == date(2024, 2, 11)
        assert not window.is_loading
        assert recorder.names == ["loadingStart", "dateRangeExtended", "loadingEnd"]
        extended = recorder.payloads("dateRangeExtended")[0]
        assert extended.old_end == date(2024, 1, 21)
        assert extended.new_end == date(2024, 2, 11)
        assert extended.new_days == 21
        assert extended.total_days == 42
        _assert_invariants(window)

    def test_maybe_extend_within_threshold(self) -> None:
        """Five days from the end is inside the seven-day threshold."""
        window = _window()
        assert window.maybe_extend(5) is not None
        assert window.days_visible == 42

    def test_maybe_extend_outside_threshold(self) -> None:
        """Eight days from the end does nothing."""
        window = _window()
        assert window.maybe_extend(8) is None
        assert window.days_visible == 21

    def test_deferred_extension_blocks_second_extend(self, recorder: EventRecorder) -> None:
        """While a load is outstanding, further extends are no-ops."""
        bus = EventBus()
        recorder.attach(bus)
        window = _window(bus=bus, deferred_loading=True)

        assert window.extend() is not None
        assert window.is_loading
        assert window.extend() is None
        assert window.maybe_extend(0) is None
        assert window.days_visible == 42
        assert recorder.names.count("dateRangeExtended") == 1

        assert window.complete_extension()
        assert not window.is_loading
        assert recorder.names[-1] == "loadingEnd"
        assert not window.complete_extension()

    def test_failed_extension_rolls_back(self, recorder: EventRecorder) -> None:
        """fail_extension restores the previous range and reports loadingError."""
        bus = EventBus()
        recorder.attach(bus)
        window = _window(bus=bus, deferred_loading=True)
        window.extend()
        error = ConnectionError("backend down")

        assert window.fail_extension(error)
        assert window.days_visible == 21
        assert window.loaded_range_end == date(2024, 1, 21)
        assert not window.is_loading
        assert recorder.names[-2:] == ["loadingError", "loadingEnd"]
        report = recorder.payloads("loadingError")[0]
        assert report.type == "loading"
        assert report.error is error
        _assert_invariants(window)

    def test_subscriber_failure_becomes_loading_error(self, recorder: EventRecorder) -> None:
        """A dateRangeExtended handler that raises fails the extension."""
        bus = EventBus()
        window = _window(bus=bus)

        def _fetch(_payload: Any) -> None:
            raise TimeoutError("fetch timed out")

        bus.on(TimelineEvent.DATE_RANGE_EXTENDED, _fetch)
        recorder.attach(bus)

        assert window.extend() is None
        assert window.days_visible == 21
        assert not window.is_loading
        assert isinstance(recorder.payloads("loadingError")[0].error, TimeoutError)

    def test_loading_start_failure_leaves_window_usable(self, recorder: EventRecorder) -> None:
        """A loadingStart handler that raises fails only that extension."""
        bus = EventBus()
        window = _window(bus=bus)

        def _spinner(_payload: Any) -> None:
            raise RuntimeError("spinner broke")

        bus.on(TimelineEvent.LOADING_START, _spinner)
        recorder.attach(bus)

        assert window.extend() is None
        assert not window.is_loading
        assert window.days_visible == 21
        assert recorder.names[-2:] == ["loadingError", "loadingEnd"]

        bus.off(TimelineEvent.LOADING_START, _spinner)
        assert window.extend() is not None
        assert window.days_visible == 42
        _assert_invariants(window)

    def test_raising_error_handler_still_ends_loading(self, recorder: EventRecorder) -> None:
        """A loadingError handler that raises propagates after loading ends."""
        bus = EventBus()
        window = _window(bus=bus)
        recorder.attach(bus)

        def _fetch(_payload: Any) -> None:
            raise TimeoutError("fetch timed out")

        def _report(_payload: Any) -> None:
            raise RuntimeError("toast failed")

        bus.on(TimelineEvent.DATE_RANGE_EXTENDED, _fetch)
        bus.on(TimelineEvent.LOADING_ERROR, _report)

        with pytest.raises(RuntimeError, match="toast failed"):
            window.extend()
        assert not window.is_loading
        assert window.days_visible == 21
        assert recorder.names[-1] == "loadingEnd"

        bus.off(TimelineEvent.DATE_RANGE_EXTENDED, _fetch)
        assert window.extend() is not None
        assert window.days_visible == 42

    def test_end_of_data_stops_extension(self, recorder: EventRecorder) -> None:
        """After mark_end_of_data, extend is a no-op until reset."""
        bus = EventBus()
        recorder.attach(bus)
        window = _window(bus=bus)
        window.mark_end_of_data()
        window.mark_end_of_data()

        assert recorder.names == ["endOfData"]
        assert window.extend() is None

        window.reset_end_of_data()
        assert window.extend() is not None

    def test_set_range_clears_end_of_data(self) -> None:
        """Navigating elsewhere allows loading again."""
        window = _window()
        window.mark_end_of_data()
        window.set_range(date(2024, 6, 3))
        assert not window.has_reached_end

    def test_set_range_abandons_pending_extension(self, recorder: EventRecorder) -> None:
        """A reset while loading clears the loading flag."""
        bus = EventBus()
        recorder.attach(bus)
        window = _window(bus=bus, deferred_loading=True)
        window.extend()
        window.set_range(date(2024, 6, 3))

        assert not window.is_loading
        assert window.days_visible == 42
        assert "loadingEnd" in recorder.names
        assert not window.complete_extension()


class TestEvict:
    """Test dropping day columns from the front."""

    def _grown(self, bus: EventBus | None = None) -> DateWindow:
        # 21 + 3 * 23 = 90 days
        window = _window(bus=bus, chunk_days=23)
        for _ in range(3):
            window.extend()
        assert window.days_visible == 90
        return window

    def test_evicts_beyond_buffer(self) -> None:
        """90 days, scroll at day 30, buffer 14: drop 16 days."""
        window = self._grown()
        start_before = window.loaded_range_start
        result = window.evict(30)

        assert result is not None
        assert result.removed_days == 16
        assert result.day_delta == -16
        assert result.scroll_adjust_px == -16 * 80
        assert window.days_visible == 74
        assert window.week_anchor_start == date(2024, 1, 17)
        assert window.loaded_range_start == date(2024, 1, 17)
        assert (window.loaded_range_start - start_before).days == 16
        assert result.current_range == window.loaded_range
        _assert_invariants(window)

    def test_removes_tasks_ending_before_new_range(self) -> None:
        """Tasks ending before new start minus one day are discarded."""
        window = self._grown()
        store = window.store
        gone = store.add({"title": "old", "start": "2024-01-01", "duration": 15})  # ends 01-15
        kept = store.add({"title": "edge", "start": "2024-01-01", "duration": 16})  # ends 01-16
        visible = store.add({"title": "now", "start": "2024-02-01", "duration": 2})

        result = window.evict(30)

        assert result is not None
        assert result.removed_tasks == [gone]
        assert store.get(kept.id) == kept
        assert store.get(visible.id) == visible

    def test_no_eviction_under_resident_limit(self) -> None:
        """Windows within max_days_resident are left alone."""
        window = _window()
        window.extend()
        assert window.evict(40) is None
        assert window.days_visible == 42

    def test_no_eviction_within_buffer(self) -> None:
        """Scrolling no further than the buffer keeps every column."""
        window = self._grown()
        assert window.evict(14) is None
        assert window.days_visible == 90

    def test_respects_minimum_visible_days(self) -> None:
        """Eviction never leaves fewer columns than the viewport needs."""
        window = self._grown()
        result = window.evict(89, min_days_visible=20)
        assert result is not None
        assert result.removed_days == 70
        assert window.days_visible == 20

    def test_skipped_while_loading(self) -> None:
        """Eviction waits for an outstanding extension."""
        window = _window(chunk_days=70, deferred_loading=True)
        window.extend()
        assert window.days_visible == 91
        assert window.evict(40) is None
        window.complete_extension()
        assert window.evict(40) is not None

    def test_emits_days_cleaned_up(self, recorder: EventRecorder) -> None:
        """daysCleanedUp carries the returned payload."""
        bus = EventBus()
        window = self._grown(bus)
        recorder.attach(bus)
        result = window.evict(30)
        assert recorder.names == ["daysCleanedUp"]
        assert recorder.payloads("daysCleanedUp") == [result]

    def test_extend_after_eviction(self) -> None:
        """The trailing edge keeps growing from loaded_range_end."""
        window = self._grown()
        window.evict(30)
        end_before = window.loaded_range_end
        window.extend()
        assert window.loaded_range_end == add_days(end_before, 23)
        _assert_invariants(window)
