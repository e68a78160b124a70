"""Pydantic schemas for task and resource input validation."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from .calendar_math import parse_iso
from .models import TaskType


class TaskSchema(BaseModel):
    """Schema for host-supplied task data.

    Accepts both the wire spelling (``resourceIndex``) and the Python field
    name. An ``end`` value is accepted but ignored: it is always recomputed
    from ``start`` and ``duration``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Annotated[StrictInt, Field(gt=0)] | None = None
    title: StrictStr
    start: date
    duration: StrictInt = Field(ge=1)
    resource_index: StrictInt = Field(default=0, ge=0, alias="resourceIndex")
    type: TaskType = TaskType.PROJECT
    end: Any = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        """Reject empty or whitespace-only titles."""
        if not v.strip():
            raise ValueError("title must not be empty")
        return v

    @field_validator("start", mode="before")
    @classmethod
    def parse_start(cls, v: Any) -> Any:
        """Parse strict ISO strings and normalize datetimes to their calendar day."""
        if isinstance(v, str):
            return parse_iso(v)
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, date):
            return v
        raise ValueError(f"start must be a date or YYYY-MM-DD string, got {type(v).__name__}")

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: Any) -> Any:
        """Treat a missing type as a project."""
        if v is None or v == "":
            return TaskType.PROJECT
        return v


class ResourceSchema(BaseModel):
    """Schema for host-supplied resource data."""

    model_config = ConfigDict(extra="ignore")

    name: StrictStr

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        """Reject empty resource names."""
        if not v.strip():
            raise ValueError("resource name must not be empty")
        return v
