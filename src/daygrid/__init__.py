"""Daygrid - headless model of an interactive day grid timeline.

Resources are rows, calendar days are columns, and tasks are spans of whole
days placed on one row. The host feeds scroll and pointer telemetry in,
subscribes to events, and renders from event payloads or snapshots.

Main entry points:
- Timeline: Facade wiring everything below behind one API
- TaskStore: Validated task and resource CRUD
- DateWindow: Sliding window of loaded days (extension and eviction)
- GridMapper: Pixel <-> (day offset, resource row) conversion
- InteractionController: Drag and resize gesture state machines
- EventBus / TimelineEvent: Host notifications
"""

# Calendar arithmetic
from .calendar_math import add_days, day_offset, end_date, format_iso, monday_of, parse_iso

# Configuration
from .config import GridConfig, TimelineConfig, WindowConfig, load_config

# Events
from .events import EventBus, TimelineEvent

# Errors
from .exceptions import DaygridError, ParseError, RangeError, StateError, ValidationError

# Geometry
from .grid import Cell, GridMapper, TaskGeometry, VisibleRange

# Gestures
from .interaction import GesturePreview, GestureState, InteractionController

# Rendering
from .layout import LayoutSnapshot, build_snapshot

# Core dataclasses
from .models import Handle, Point, Resource, Task, TaskType

# Data
from .store import TaskStore

# Facade
from .timeline import Timeline
from .window import DateWindow

__all__ = [
    "Cell",
    "DateWindow",
    "DaygridError",
    "EventBus",
    "GesturePreview",
    "GestureState",
    "GridConfig",
    "GridMapper",
    "Handle",
    "InteractionController",
    "LayoutSnapshot",
    "ParseError",
    "Point",
    "RangeError",
    "Resource",
    "StateError",
    "Task",
    "TaskGeometry",
    "TaskStore",
    "TaskType",
    "Timeline",
    "TimelineConfig",
    "TimelineEvent",
    "ValidationError",
    "VisibleRange",
    "WindowConfig",
    "add_days",
    "build_snapshot",
    "day_offset",
    "end_date",
    "format_iso",
    "load_config",
    "monday_of",
    "parse_iso",
]
