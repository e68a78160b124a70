"""Task and resource collections with validated CRUD."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .calendar_math import coerce_date, end_date, format_iso
from .events import EventBus, TaskUpdated, TimelineEvent
from .exceptions import ValidationError
from .logger import get_logger
from .models import Resource, Task
from .schemas import ResourceSchema, TaskSchema

logger = get_logger()

TaskInput = Mapping[str, Any] | Task
ResourceInput = Mapping[str, Any] | Resource | str

# Patch keys accepted in wire spelling
_FIELD_ALIASES = {"resourceIndex": "resource_index"}


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {_FIELD_ALIASES.get(key, key): value for key, value in data.items()}


def _task_fields(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "start": task.start,
        "duration": task.duration,
        "resource_index": task.resource_index,
        "type": task.type,
    }


def _check_supplied_end(schema: TaskSchema, label: str) -> None:
    """Log when a caller-supplied ``end`` disagrees with start + duration."""
    if schema.end is None:
        return
    if not isinstance(schema.end, str | date):
        logger.checks(f"{label}: ignoring non-date end {schema.end!r}")
        return
    try:
        supplied = coerce_date(schema.end)
    except ValueError:
        logger.checks(f"{label}: ignoring unparseable end {schema.end!r}")
        return
    expected = end_date(schema.start, schema.duration)
    if supplied != expected:
        logger.checks(
            f"{label}: end {format_iso(supplied)} disagrees with start+duration, "
            f"using {format_iso(expected)}"
        )


def validate(data: TaskInput) -> TaskSchema:
    """Validate task data.

    Raises:
        ValidationError: If the title is empty, ``start`` is not a calendar
            date, ``duration`` is not a positive integer, or ``resource_index``
            is not a non-negative integer
    """
    if isinstance(data, Task):
        data = _task_fields(data)
    if not isinstance(data, Mapping):
        raise ValidationError(f"Task data must be a mapping, got {type(data).__name__}")
    try:
        return TaskSchema.model_validate(_normalize_keys(data))
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid task: {e}") from e


def _build_resources(resources: Iterable[ResourceInput]) -> list[Resource]:
    built: list[Resource] = []
    for index, item in enumerate(resources):
        if isinstance(item, Resource):
            name = item.name
        elif isinstance(item, str):
            name = item
        else:
            try:
                name = ResourceSchema.model_validate(item).name
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid resource at position {index}: {e}") from e
        if not name.strip():
            raise ValidationError(f"Resource at position {index} has an empty name")
        built.append(Resource(index=index, name=name))
    return built


class TaskStore:
    """Owns the resource list and the task collection.

    Ids are assigned from a counter seeded with the highest id seen at load
    time, so a removed task's id is never handed out again.
    """

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or EventBus()
        self._resources: list[Resource] = []
        self._tasks: dict[int, Task] = {}
        self._last_id = 0

    # ------------------------------------------------------------------
    # Bulk state
    # ------------------------------------------------------------------

    def load(self, resources: Iterable[ResourceInput], tasks: Iterable[TaskInput]) -> None:
        """Replace resources and tasks wholesale.

        Everything is validated before any state changes, so a bad task leaves
        the previous data in place.
        """
        new_resources = _build_resources(resources)
        schemas = [validate(task) for task in tasks]

        seen: set[int] = set()
        for schema in schemas:
            if schema.id is not None:
                if schema.id in seen:
                    raise ValidationError(f"Duplicate task id {schema.id}")
                seen.add(schema.id)

        last_id = max(seen, default=0)
        new_tasks: dict[int, Task] = {}
        for schema in schemas:
            task_id = schema.id
            if task_id is None:
                last_id += 1
                task_id = last_id
            _check_supplied_end(schema, f"Task {task_id}")
            new_tasks[task_id] = self._from_schema(schema, task_id)

        self._resources = new_resources
        self._tasks = new_tasks
        self._last_id = last_id
        logger.changes(f"Loaded {len(new_resources)} resources and {len(new_tasks)} tasks")

    def clear(self) -> None:
        """Drop all resources and tasks and reset the id counter."""
        self._resources = []
        self._tasks = {}
        self._last_id = 0

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources)

    @property
    def resource_count(self) -> int:
        return len(self._resources)

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add(self, partial: TaskInput) -> Task:
        """Validate, assign an id if absent, store and return the task."""
        schema = validate(partial)
        if schema.id is not None and schema.id in self._tasks:
            raise ValidationError(f"Task id {schema.id} already exists")

        if schema.id is None:
            task_id = self._last_id + 1
        else:
            task_id = schema.id
        self._last_id = max(self._last_id, task_id)

        _check_supplied_end(schema, f"Task {task_id}")
        task = self._from_schema(schema, task_id)
        self._tasks[task_id] = task
        logger.changes(
            f"Added task {task_id} '{task.title}' {format_iso(task.start)}..{format_iso(task.end)} "
            f"on resource {task.resource_index}"
        )
        self.bus.emit(TimelineEvent.TASK_ADDED, task)
        return task

    def update(self, task_id: int, patch: Mapping[str, Any]) -> Task | None:
        """Merge ``patch`` into an existing task.

        Returns None if ``task_id`` is unknown. ``end`` is recomputed from the
        merged ``start`` and ``duration``; a patched ``end`` is never used.
        """
        existing = self._tasks.get(task_id)
        if existing is None:
            logger.checks(f"Update ignored: no task {task_id}")
            return None

        changes = _normalize_keys(patch)
        if "id" in changes and changes["id"] != task_id:
            raise ValidationError(f"Task id {task_id} cannot be changed to {changes['id']}")

        merged = _task_fields(existing)
        merged.update(changes)
        schema = validate(merged)
        _check_supplied_end(schema, f"Task {task_id}")

        updated = self._from_schema(schema, task_id)
        self._tasks[task_id] = updated
        logger.changes(f"Updated task {task_id}: {sorted(changes)}")
        self.bus.emit(TimelineEvent.TASK_UPDATED, TaskUpdated(task=updated, old_task=existing))
        return updated

    def remove(self, task_id: int) -> Task | None:
        """Delete a task. Returns the removed task, or None if not found."""
        task = self._tasks.pop(task_id, None)
        if task is None:
            return None
        logger.changes(f"Removed task {task_id} '{task.title}'")
        self.bus.emit(TimelineEvent.TASK_REMOVED, task)
        return task

    def evict_before(self, cutoff: date) -> list[Task]:
        """Drop every task whose ``end`` is strictly before ``cutoff``.

        Eviction is reported by the window as a single ``daysCleanedUp``
        event, not as individual removals.
        """
        removed = [task for task in self._tasks.values() if task.end < cutoff]
        for task in removed:
            del self._tasks[task.id]
        if removed:
            logger.changes(
                f"Evicted {len(removed)} task(s) ending before {format_iso(cutoff)}: "
                f"{[task.id for task in removed]}"
            )
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, task_id: int) -> Task | None:
        return self._tasks.get(task_id)

    def by_resource(self, resource_index: int) -> list[Task]:
        return [task for task in self._tasks.values() if task.resource_index == resource_index]

    def by_date(self, day: str | date | datetime) -> list[Task]:
        """Tasks covering ``day`` (inclusive of start and end)."""
        target = coerce_date(day)
        return [task for task in self._tasks.values() if task.covers(target)]

    def resource(self, index: int) -> Resource | None:
        if 0 <= index < len(self._resources):
            return self._resources[index]
        return None

    @staticmethod
    def _from_schema(schema: TaskSchema, task_id: int) -> Task:
        return Task(
            id=task_id,
            title=schema.title,
            start=schema.start,
            duration=schema.duration,
            resource_index=schema.resource_index,
            type=schema.type,
        )
