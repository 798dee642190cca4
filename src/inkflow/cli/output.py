"""Console rendering for the inkflow CLI.

Everything the CLI prints goes through the shared rich ``console`` here:
step markers, the job spinner, the controls table and the final summary.
"""

from rich.console import Console
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from inkflow.config import ControlSpec, ControlType

console = Console()

# Status markers
SYM_STEP = "▸"
SYM_OK = "✓"
SYM_ERR = "✗"
SYM_DOT = "·"


def create_progress() -> Progress:
    """Create a rich progress display for a running job.

    Jobs report free-form status messages rather than a completion ratio,
    so the display is a spinner with the latest message.

    Returns:
        Configured Progress instance with spinner and time elapsed.
    """
    return Progress(
        TextColumn("  "),
        SpinnerColumn(style="green"),
        TextColumn("{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )


def print_header(version: str) -> None:
    """Print the banner with the package version."""
    console.print(f"\n[bold]Inkflow[/bold] v{version}")
    console.print("─" * 44)


def print_step(message: str) -> None:
    """Announce a pipeline stage."""
    console.print(f"\n{SYM_STEP} {message}")


def print_image_info(image_path: str, width: int, height: int, algorithm: str) -> None:
    """Print input image information.

    Args:
        image_path: Path to the image file
        width: Image width in pixels
        height: Image height in pixels
        algorithm: Algorithm that will run
    """
    console.print(Text(f"  {image_path}"))
    console.print(f"  {width}×{height} px {SYM_DOT} {algorithm}")


def _format_time(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(seconds, 60)
    return f"{int(minutes)}m {rest:.1f}s"


def print_success(
    output_path: str,
    total_time_s: float,
    segments: int,
    seed: int | None,
) -> None:
    """Print the run summary.

    Args:
        output_path: Where the result document was written
        total_time_s: Wall time of load, render and write
        segments: Number of sub-paths in the result
        seed: Seed the run used, so it can be repeated
    """
    console.print(f"\n[bold green]{SYM_OK} Complete[/bold green] in {_format_time(total_time_s)}")

    console.print(Text(f"  {output_path}", style="bold"))

    seed_str = f"seed {seed}" if seed is not None else "unseeded"
    if segments == 0:
        console.print(f"  [yellow]no geometry produced[/yellow] {SYM_DOT} {seed_str}")
    else:
        console.print(f"  {segments:,} paths {SYM_DOT} {seed_str}")


def print_error(message: str, details: str | None = None) -> None:
    """Print an error line, optionally followed by an indented hint."""
    console.print(f"\n[bold red]{SYM_ERR} {message}[/bold red]")
    if details:
        console.print(f"  {details}")


def print_cancellation_notice() -> None:
    """Tell the user the run stopped before writing anything."""
    console.print(f"\n{SYM_DOT} [bold]Cancelled[/bold], nothing written")


def print_controls(algorithm: str, controls: list[ControlSpec]) -> None:
    """Print the controls an algorithm accepts.

    Args:
        algorithm: Algorithm name
        controls: Control declarations
    """
    table = Table(title=f"{algorithm} controls", title_justify="left")
    table.add_column("Label", style="bold")
    table.add_column("Type")
    table.add_column("Default")
    table.add_column("Range")

    for spec in controls:
        if spec.type == ControlType.CHECKBOX:
            default = str(bool(spec.checked))
            bounds = ""
        elif spec.type == ControlType.SELECT:
            default = str(spec.value)
            bounds = " | ".join(spec.options or [])
        else:
            default = str(spec.value)
            bounds = f"{spec.min:g} – {spec.max:g}" if spec.min is not None and spec.max is not None else ""
            if spec.step is not None:
                bounds += f" (step {spec.step:g})"
        table.add_row(spec.label, spec.type.value, default, bounds)

    console.print(table)


def print_algorithms(rows: list[tuple[str, str]]) -> None:
    """Print registered algorithms.

    Args:
        rows: ``(name, description)`` pairs
    """
    for name, description in rows:
        console.print(f"  [bold]{name}[/bold] {SYM_DOT} {description}")
