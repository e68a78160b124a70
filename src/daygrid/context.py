"""CLI context: global options and config discovery."""

from __future__ import annotations

from pathlib import Path

from .config import DEFAULT_CONFIG_FILENAME, TimelineConfig, load_config


class _CliContext:
    """Options set by the top-level callback and shared by every command."""

    def __init__(self) -> None:
        self.config_path: Path | None = None

    def resolve_config(self, dataset_path: Path | None = None) -> TimelineConfig:
        """Find the timeline config for a command.

        Search order:
        1. --config given on the command line (must exist)
        2. dataset directory / daygrid_config.yaml
        3. current directory / daygrid_config.yaml
        4. built-in defaults
        """
        if self.config_path is not None:
            return load_config(self.config_path)

        candidates: list[Path] = []
        if dataset_path is not None:
            candidates.append(Path(dataset_path).parent / DEFAULT_CONFIG_FILENAME)
        candidates.append(Path(DEFAULT_CONFIG_FILENAME))

        for candidate in candidates:
            if candidate.exists():
                return load_config(candidate)
        return TimelineConfig()


# Singleton instance
_context = _CliContext()


def get_context() -> _CliContext:
    return _context


def set_options(config_path: Path | None) -> None:
    """Record the --config option for the current invocation."""
    _context.config_path = config_path
