"""mediaproc convert command - convert any media file by extension."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from mediaproc_cli.cli.error_handler import FileSystemError, ValidationError, handle_errors
from mediaproc_cli.cli.plugins import ensure_capability
from mediaproc_cli.engine import get_engine

console = Console()
logger = logging.getLogger(__name__)


def check_input(path: Path) -> None:
    """Raise ``FileSystemError`` unless ``path`` is an existing file."""
    if not path.exists():
        raise FileSystemError(f"File not found: {path}")
    if not path.is_file():
        raise FileSystemError(f"Not a file: {path}")


@handle_errors
def convert(
    ctx: typer.Context,
    input: Path = typer.Argument(
        ...,
        help="File to convert.",
    ),
    output: Path = typer.Argument(
        ...,
        help="Destination file; its extension selects the target format.",
    ),
    quality: Optional[int] = typer.Option(
        None,
        "--quality",
        help="Output quality, 1-100.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite the output file if it exists.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show plugin and installer diagnostics.",
    ),
) -> None:
    """Convert a media file to another format.

    The plugin is picked from the input extension (or the output's, when
    the input's is not recognized) and installed on first use.

    Example:
        mediaproc convert photo.jpg photo.webp --quality 85
        mediaproc convert clip.mov clip.mp4
    """
    if quality is not None and not 1 <= quality <= 100:
        raise ValidationError(f"--quality must be between 1 and 100, got {quality}")

    engine = get_engine(ctx)
    descriptor = engine.router.route(input, output)

    check_input(input)
    if output.exists() and not force:
        raise FileSystemError(
            f"Output file already exists: {output}",
            hint=f"mediaproc convert {input} {output} --force",
        )

    logger.info(f"Converting {input} -> {output} with {descriptor.package_id}")
    ensure_capability(engine, descriptor.short_name)

    engine.router.dispatch(
        descriptor,
        ["convert", str(input), str(output)],
        {"quality": quality, "force": force, "verbose": verbose},
    )
