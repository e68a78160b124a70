"""Pytest configuration and fixtures for daygrid tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date
from typing import Any

import pytest

from daygrid.config import TimelineConfig, WindowConfig
from daygrid.events import EventBus, TimelineEvent
from daygrid.logger import reset_logger
from daygrid.timeline import Timeline

# Monday
ANCHOR = date(2024, 1, 1)

RESOURCES = ["Alice", "Bob", "Carol"]


class EventRecorder:
    """Collects (event name, payload) pairs delivered by a bus."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def attach(self, target: EventBus | Timeline) -> EventRecorder:
        for event in TimelineEvent:
            target.on(event, self._handler(event))
        return self

    def _handler(self, event: TimelineEvent) -> Callable[[Any], None]:
        def _record(payload: Any) -> None:
            self.events.append((event.value, payload))

        return _record

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture(autouse=True)
def clean_logger() -> Iterator[None]:
    """Reset the daygrid logger around every test."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def anchor() -> date:
    """Monday 2024-01-01, the first column of most test windows."""
    return ANCHOR


@pytest.fixture
def recorder() -> EventRecorder:
    """Fresh event recorder."""
    return EventRecorder()


@pytest.fixture
def make_timeline() -> Callable[..., Timeline]:
    """Factory for timelines anchored on ANCHOR with three resources loaded."""

    def _make(
        tasks: list[dict[str, Any]] | None = None,
        *,
        resources: list[str] | None = None,
        anchor: date = ANCHOR,
        **window_overrides: Any,
    ) -> Timeline:
        config = TimelineConfig(window=WindowConfig(**window_overrides))
        timeline = Timeline(anchor, config=config, clock=lambda: date(2024, 3, 13))
        timeline.load(RESOURCES if resources is None else resources, tasks or [])
        return timeline

    return _make


@pytest.fixture
def timeline(make_timeline: Callable[..., Timeline]) -> Timeline:
    """Timeline with one three-day task on Alice's row starting 2024-01-03."""
    return make_timeline([{"id": 1, "title": "A", "start": "2024-01-03", "duration": 3}])
