"""mediaproc optimize command - shrink any media file by extension."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from mediaproc_cli.cli.convert import check_input
from mediaproc_cli.cli.error_handler import ValidationError, handle_errors
from mediaproc_cli.cli.output import format_path
from mediaproc_cli.cli.plugins import ensure_capability
from mediaproc_cli.engine import get_engine
from mediaproc_cli.plugins.router import DOMAIN_LABELS, OPTIMIZE_VERBS, classify

console = Console()
logger = logging.getLogger(__name__)


def default_output(path: Path) -> Path:
    """``photo.jpg`` -> ``photo.optimized.jpg``."""
    return path.with_name(f"{path.stem}.optimized{path.suffix}")


@handle_errors
def optimize(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ...,
        help="File to optimize.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output path (default: adds .optimized before the extension).",
    ),
    aggressive: bool = typer.Option(
        False,
        "--aggressive",
        help="Smaller output at lower quality.",
    ),
    lossless: bool = typer.Option(
        False,
        "--lossless",
        help="Keep full quality.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show plugin and installer diagnostics.",
    ),
) -> None:
    """Optimize a media file with the plugin for its type.

    Example:
        mediaproc optimize photo.jpg
        mediaproc optimize movie.mp4 --aggressive -o small.mp4
    """
    if aggressive and lossless:
        raise ValidationError("--aggressive and --lossless are mutually exclusive")

    engine = get_engine(ctx)
    descriptor = engine.router.route(file)
    domain = classify(file).domain

    check_input(file)
    target = output or default_output(file)

    strategy = "lossless" if lossless else "aggressive" if aggressive else "balanced"
    console.print(
        f"[dim]{DOMAIN_LABELS[domain]}: {escape(format_path(file))} -> "
        f"{escape(format_path(target))} ({strategy})[/dim]"
    )
    logger.info(f"Optimizing {file} -> {target} with {descriptor.package_id}")

    ensure_capability(engine, descriptor.short_name)

    engine.router.dispatch(
        descriptor,
        [OPTIMIZE_VERBS[domain], str(file)],
        {
            "output": str(target),
            "aggressive": aggressive,
            "lossless": lossless,
            "verbose": verbose,
        },
    )
