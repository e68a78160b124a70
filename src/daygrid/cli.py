"""Command-line preview for Daygrid datasets."""

from __future__ import annotations

from datetime import date
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from . import context
from .calendar_math import format_iso, parse_iso
from .config import TimelineConfig
from .dataset import load_dataset
from .events import TimelineEvent
from .exceptions import DaygridError
from .logger import setup_logger
from .timeline import Timeline

app = typer.Typer(
    name="daygrid",
    help="Day grid timeline - preview task layout and window behaviour for a dataset",
    add_completion=False,
)


class OutputFormat(Enum):
    """Output formats for the layout command."""

    TABLE = "table"
    YAML = "yaml"


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to timeline config file (default: daygrid_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for daygrid commands."""
    setup_logger(verbose)
    context.set_options(config)


@app.command()
def layout(
    file: Annotated[Path, typer.Argument(help="Path to the dataset YAML file")],
    *,
    anchor: Annotated[
        str | None,
        typer.Option("--anchor", "-a", help="Any day of the first week (YYYY-MM-DD)"),
    ] = None,
    days: Annotated[int | None, typer.Option("--days", "-d", help="Days to lay out", min=1)] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """Print the computed placement of every task in the window."""
    timeline = _open_timeline(file, anchor, days)
    snapshot = timeline.snapshot()
    window = timeline.window

    if output_format == OutputFormat.YAML:
        placements: list[dict[str, Any]] = []
        for placed in snapshot.tasks:
            entry = placed.task.to_dict()
            entry.update(
                {
                    "dayOffset": placed.day_offset,
                    "left": placed.geometry.left,
                    "width": placed.geometry.width,
                    "top": placed.geometry.top,
                }
            )
            placements.append(entry)
        output = {
            "window": {
                "start": format_iso(window.week_anchor_start),
                "end": format_iso(window.visible_end),
                "days": window.days_visible,
            },
            "tasks": placements,
        }
        typer.echo(yaml.safe_dump(output, default_flow_style=False, sort_keys=False), nl=False)
        return

    typer.echo(
        f"Window {format_iso(window.week_anchor_start)}..{format_iso(window.visible_end)} "
        f"({window.days_visible} days, cell {snapshot.cell_width:g}px x {snapshot.row_height:g}px)"
    )
    names = {row.resource.index: row.resource.name for row in snapshot.rows}
    for placed in snapshot.tasks:
        task = placed.task
        geometry = placed.geometry
        typer.echo(
            f"#{task.id} {task.title} [{names.get(task.resource_index, task.resource_index)}] "
            f"{format_iso(task.start)}..{format_iso(task.end)} day {placed.day_offset} "
            f"left={geometry.left:g} width={geometry.width:g} top={geometry.top:g}"
        )
    hidden = len(timeline.tasks) - len(snapshot.tasks)
    if hidden:
        typer.echo(f"({hidden} task(s) outside the window)")


@app.command()
def check(
    file: Annotated[Path, typer.Argument(help="Path to the dataset YAML file")],
) -> None:
    """Validate a dataset without laying it out."""
    timeline = _open_timeline(file, None, None)
    typer.echo(f"OK: {len(timeline.resources)} resource(s), {len(timeline.tasks)} task(s)")


@app.command()
def window(
    file: Annotated[Path, typer.Argument(help="Path to the dataset YAML file")],
    *,
    scroll: Annotated[
        list[float] | None,
        typer.Option("--scroll", "-s", help="Scroll positions (px) to replay in order"),
    ] = None,
    viewport: Annotated[float, typer.Option("--viewport", help="Viewport width (px)")] = 800.0,
    anchor: Annotated[
        str | None,
        typer.Option("--anchor", "-a", help="Any day of the first week (YYYY-MM-DD)"),
    ] = None,
) -> None:
    """Replay scroll telemetry and show how the window extends and evicts."""
    timeline = _open_timeline(file, anchor, None)
    fired: list[str] = []
    for event in (
        TimelineEvent.DATE_RANGE_EXTENDED,
        TimelineEvent.DAYS_CLEANED_UP,
        TimelineEvent.LOADING_ERROR,
    ):
        timeline.on(event, lambda _payload, name=event.value: fired.append(name))

    _echo_window(timeline, "start")
    for position in scroll or []:
        fired.clear()
        timeline.on_scroll(position, viewport)
        label = f"scroll {position:g}px"
        if fired:
            label += f" [{', '.join(fired)}]"
        _echo_window(timeline, label)


def _echo_window(timeline: Timeline, label: str) -> None:
    window = timeline.window
    typer.echo(
        f"{label}: {format_iso(window.week_anchor_start)}..{format_iso(window.visible_end)} "
        f"days={window.days_visible} tasks={len(timeline.tasks)} scroll={timeline.scroll_x:g}px"
    )


def _open_timeline(
    file: Path, anchor: str | None, days: int | None
) -> Timeline:
    """Load config and dataset into a fresh timeline, exiting on any error."""
    try:
        config = context.get_context().resolve_config(file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if days is not None:
        config = _with_days(config, days)

    try:
        dataset = load_dataset(file)
        start: date | None = parse_iso(anchor) if anchor else dataset.anchor
        timeline = Timeline(start, config=config)
        timeline.load(dataset.resources, dataset.tasks)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except DaygridError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    return timeline


def _with_days(config: TimelineConfig, days: int) -> TimelineConfig:
    window = config.window.model_copy(
        update={"days_visible": days, "max_days_resident": max(days, config.window.max_days_resident)}
    )
    return config.model_copy(update={"window": window})


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()
