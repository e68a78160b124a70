"""YAML dataset reader used by the preview CLI.

A dataset lists resources (row names, in order) and tasks:

    anchor: 2024-01-01
    resources: [Alice, Bob]
    tasks:
      - title: Kickoff
        start: 2024-01-03
        duration: 3
        resourceIndex: 0
        type: meeting
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ParseError, ValidationError


class DatasetSchema(BaseModel):
    """Schema for the dataset file root."""

    anchor: date | None = None
    resources: list[str | dict[str, Any]] = Field(default_factory=list)
    tasks: list[dict[str, Any]] = Field(default_factory=list)


@dataclass
class Dataset:
    """Raw resources and tasks ready for Timeline.load()."""

    resources: list[str | dict[str, Any]] = field(default_factory=list)
    tasks: list[dict[str, Any]] = field(default_factory=list)
    anchor: date | None = None


def load_dataset(path: Path | str) -> Dataset:
    """Parse a dataset file.

    Raises:
        ParseError: If the file is missing or is not a YAML mapping
        ValidationError: If the root structure is wrong
    """
    path = Path(path)
    if not path.exists():
        raise ParseError(f"File not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}") from e

    if data is None:
        return Dataset()
    if not isinstance(data, dict):
        raise ParseError("YAML must contain a dictionary at the root level")

    try:
        schema = DatasetSchema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid dataset structure: {e}") from e

    return Dataset(resources=schema.resources, tasks=schema.tasks, anchor=schema.anchor)
