"""Configuration for grid geometry and the sliding date window.

A single YAML file (daygrid_config.yaml) may override any default:

    grid:
      cell_width: 80
      row_height: 50
    window:
      days_visible: 21
      chunk_days: 21
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

DEFAULT_CONFIG_FILENAME = "daygrid_config.yaml"


class GridConfig(BaseModel):
    """Pixel geometry of one grid cell."""

    cell_width: float = Field(default=80.0, gt=0)
    row_height: float = Field(default=50.0, gt=0)
    handle_width: float = Field(default=8.0, ge=0)  # Resize hit zone at each task edge


class WindowConfig(BaseModel):
    """Sliding window behaviour."""

    days_visible: int = Field(default=21, ge=1)
    chunk_days: int = Field(default=21, gt=0)  # Days added per extension
    buffer_days: int = Field(default=14, ge=0)  # Days kept before the viewport on eviction
    max_days_resident: int = Field(default=84, ge=1)
    load_threshold_days: int = Field(default=7, ge=0)
    infinite_scroll: bool = True
    deferred_loading: bool = False  # Extension stays open until the host completes it

    @model_validator(mode="after")
    def validate_resident_limit(self) -> WindowConfig:
        """Ensure the resident limit can hold the initial window."""
        if self.max_days_resident < self.days_visible:
            raise ValueError(
                f"max_days_resident ({self.max_days_resident}) must be >= "
                f"days_visible ({self.days_visible})"
            )
        return self


class TimelineConfig(BaseModel):
    """Complete timeline configuration."""

    grid: GridConfig = GridConfig()
    window: WindowConfig = WindowConfig()


def load_config(config_path: Path | str) -> TimelineConfig:
    """Load timeline configuration from a YAML file.

    Args:
        config_path: Path to daygrid_config.yaml

    Returns:
        TimelineConfig with defaults for any omitted section

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is empty or invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open(encoding="utf-8") as f:
        data: Any = yaml.safe_load(f)

    if not data:
        raise ValueError("Empty configuration file")
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a mapping at the root level")

    try:
        return TimelineConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ValueError(f"Invalid configuration in {config_path}: {e}") from e

