"""CLI application entry point for inkflow.

This module provides the main CLI interface using Typer.
"""

import time
from pathlib import Path
from typing import Annotated, Any

import typer

from inkflow import __version__
from inkflow.cli.output import (
    console,
    create_progress,
    print_algorithms,
    print_cancellation_notice,
    print_controls,
    print_error,
    print_header,
    print_image_info,
    print_step,
    print_success,
)
from inkflow.config import (
    EmitterConfig,
    InkflowSettings,
    LoggingConfig,
    ProcessingConfig,
)
from inkflow.core import JobProcessor, get_algorithm, list_algorithms
from inkflow.domain import JobResult
from inkflow.exceptions import (
    AuxiliaryDataError,
    ImageLoadError,
    InkflowError,
    JobCancelledError,
    JobFailedError,
    ResultSaveError,
    UnknownAlgorithmError,
)
from inkflow.io import ImageReader, ResultWriter, load_depth, load_polygon
from inkflow.utils import configure_logging

# Create the Typer app
app = typer.Typer(
    name="inkflow",
    help="Turn raster images into plotter-ready line art.",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]Inkflow[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    _version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Turn raster images into plotter-ready line art."""


def parse_value(raw: str) -> Any:
    """Interpret a ``--set`` value as bool, int, float or string."""
    lowered = raw.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def parse_settings(items: list[str]) -> dict[str, Any]:
    """Parse repeated ``Label=value`` options into a parameter mapping.

    Args:
        items: Raw option values

    Returns:
        Mapping of control label to parsed value

    Raises:
        typer.BadParameter: If an item has no ``=``
    """
    params: dict[str, Any] = {}
    for item in items:
        label, sep, value = item.partition("=")
        if not sep or not label.strip():
            raise typer.BadParameter(f"expected Label=value, got '{item}'", param_hint="--set")
        params[label.strip()] = parse_value(value)
    return params


def default_output_path(image: Path, algorithm: str) -> Path:
    """Default result path beside the input image."""
    return image.with_name(f"{image.stem}-{algorithm}.json")


@app.command()
def render(
    image: Annotated[
        Path,
        typer.Argument(
            help="Path to input image (any format Pillow reads)",
            show_default=False,
        ),
    ],
    algorithm: Annotated[
        str,
        typer.Option(
            "--algorithm",
            "-a",
            help="Algorithm to run (see 'inkflow algorithms')",
        ),
    ] = "stipple",
    settings_: Annotated[
        list[str] | None,
        typer.Option(
            "--set",
            "-s",
            help="Algorithm control as Label=value (repeatable), e.g. -s 'Max Stipples=4000'",
        ),
    ] = None,
    seed: Annotated[
        int | None,
        typer.Option(
            "--seed",
            help="Random seed (default: random)",
            min=0,
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output path (default: {name}-{algorithm}.json)",
        ),
    ] = None,
    polygon: Annotated[
        Path | None,
        typer.Option(
            "--polygon",
            help="JSON face-boundary polygon; enables Face Boundary",
        ),
    ] = None,
    depth: Annotated[
        Path | None,
        typer.Option(
            "--depth",
            help="Grayscale depth image (white = near); enables Depth Map",
        ),
    ] = None,
    pen_width: Annotated[
        float,
        typer.Option(
            "--pen-width",
            help="Pen width in output units",
            min=0.01,
        ),
    ] = 1.0,
    smooth: Annotated[
        bool,
        typer.Option(
            "--smooth",
            help="Emit Catmull-Rom curves instead of straight segments",
        ),
    ] = False,
    max_size: Annotated[
        int | None,
        typer.Option(
            "--max-size",
            help="Downscale the image so neither side exceeds this",
            min=1,
        ),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option(
            "--workers",
            "-j",
            help="Number of worker processes (default: auto)",
            min=1,
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            help="Write detailed logs to file",
        ),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            help="Logging level (DEBUG|INFO|WARNING|ERROR)",
        ),
    ] = "WARNING",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show every progress message",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Minimal console output",
        ),
    ] = False,
) -> None:
    """Render an image with one of the line-art algorithms.

    Example:
        inkflow render portrait.jpg -a stipple -s "Max Stipples=4000" -s "TSP Art=true"

    This will create portrait-stipple.json holding the path string and its
    sub-paths.
    """
    # Validate mutually exclusive options
    if verbose and quiet:
        print_error("Cannot use --verbose and --quiet together")
        raise typer.Exit(code=1)

    if not image.exists():
        print_error(
            f"Input file not found: {image}",
            details=f"The file '{image}' does not exist or is not accessible.",
        )
        raise typer.Exit(code=1)

    if not image.is_file():
        print_error(
            f"Input path is not a file: {image}",
            details="Please provide a path to an image file.",
        )
        raise typer.Exit(code=1)

    params = parse_settings(settings_ or [])
    if seed is not None:
        params["Seed"] = seed

    if not quiet:
        print_header(__version__)

    settings = InkflowSettings(
        emitter=EmitterConfig(smooth=smooth),
        processing=ProcessingConfig(max_workers=workers),
        logging=LoggingConfig(
            log_file=log_file,
            log_level=log_level if not quiet else "WARNING",
        ),
    )
    logger = configure_logging(
        log_file=settings.logging.log_file,
        console_level=settings.logging.log_level,
        file_level=settings.logging.file_log_level,
        quiet=quiet,
    )

    try:
        get_algorithm(algorithm)

        if not quiet:
            print_step("Loading image")

        reader = ImageReader(image, max_size=max_size)
        reader.load()

        if polygon is not None:
            params["faceBoundary"] = load_polygon(polygon)
            params.setdefault("Face Boundary", True)
        if depth is not None:
            params["depthData"] = load_depth(depth, reader.width, reader.height)
            params.setdefault("Depth Map", True)

        if not quiet:
            print_image_info(str(image), reader.width, reader.height, algorithm)

        job = reader.to_job(algorithm, params, pen_width=pen_width)
        actual_output_path = output or default_output_path(image, algorithm)

        if not quiet:
            print_step("Rendering")

        start = time.time()
        try:
            with JobProcessor(settings, logger) as processor:
                if quiet:
                    result = processor.process(job)
                else:
                    result = _process_with_progress(processor, job, verbose)
        except KeyboardInterrupt:
            if not quiet:
                print_cancellation_notice()
            raise typer.Exit(code=130) from None  # Standard Unix SIGINT exit code

        ResultWriter(actual_output_path).write(result, reader.width, reader.height)

        if not quiet:
            print_success(
                output_path=str(actual_output_path),
                total_time_s=time.time() - start,
                segments=len(result.segments),
                seed=result.seed,
            )

    except ImageLoadError as e:
        print_error(f"Could not load image: {e.reason}")
        raise typer.Exit(code=1)
    except AuxiliaryDataError as e:
        print_error(f"Could not load {e.path}: {e.reason}")
        raise typer.Exit(code=1)
    except ResultSaveError as e:
        print_error(f"Could not save result: {e.reason}")
        raise typer.Exit(code=1)
    except UnknownAlgorithmError as e:
        print_error(str(e), details=f"Available: {', '.join(list_algorithms())}")
        raise typer.Exit(code=1)
    except JobCancelledError:
        print_cancellation_notice()
        raise typer.Exit(code=1)
    except JobFailedError as e:
        print_error(f"Rendering failed: {e.reason}")
        raise typer.Exit(code=1)
    except InkflowError as e:
        print_error(str(e))
        raise typer.Exit(code=1)
    except typer.Exit:
        # Re-raise typer.Exit to allow clean exits
        raise
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(code=1)


def _process_with_progress(processor: JobProcessor, job: Any, verbose: bool) -> JobResult:
    """Run a job while showing its progress messages.

    Args:
        processor: Started job processor
        job: Job to run
        verbose: Print every message instead of only updating the spinner

    Returns:
        The job result
    """
    with create_progress() as progress:
        task_id = progress.add_task("Starting", total=None)

        def update_progress(message: str) -> None:
            progress.update(task_id, description=message)
            if verbose:
                progress.console.print(f"    {message}", highlight=False)

        return processor.process(job, on_progress=update_progress)


@app.command()
def controls(
    algorithm: Annotated[
        str,
        typer.Argument(help="Algorithm name", show_default=False),
    ],
) -> None:
    """Show the controls an algorithm accepts."""
    try:
        algo = get_algorithm(algorithm)
    except UnknownAlgorithmError as e:
        print_error(str(e), details=f"Available: {', '.join(list_algorithms())}")
        raise typer.Exit(code=1)
    print_controls(algo.name, algo.controls())


@app.command()
def algorithms() -> None:
    """List the available algorithms."""
    print_algorithms([(name, get_algorithm(name).description) for name in list_algorithms()])


def cli() -> None:
    """Entry point for the CLI application."""
    app()


def main() -> None:
    """Entry point for the CLI application (alias for cli)."""
    cli()


if __name__ == "__main__":
    cli()
