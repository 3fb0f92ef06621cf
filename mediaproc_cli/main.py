"""Main CLI entry point for mediaproc."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from mediaproc_cli import __app_name__, __version__
from mediaproc_cli.cli import convert, optimize, plugins
from mediaproc_cli.cli.error_handler import ConfigurationError, MediaprocError, report_error
from mediaproc_cli.cli.exit_codes import ExitCode
from mediaproc_cli.config import get_config, validate_config
from mediaproc_cli.engine import Engine, build_engine

# Create the main Typer app
app = typer.Typer(
    name=__app_name__,
    help="mediaproc - plugin-based media processing.",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Console for CLI output
console = Console()

# Register commands; plugins add their own command groups at runtime
app.command("add")(plugins.add)
app.command("install", hidden=True)(plugins.add)
app.command("remove")(plugins.remove)
app.command("uninstall", hidden=True)(plugins.remove)
app.command("rm", hidden=True)(plugins.remove)
app.command("update")(plugins.update)
app.command("list")(plugins.list_loaded)
app.command("ls", hidden=True)(plugins.list_loaded)
app.command("plugins")(plugins.browse)
app.command("convert")(convert.convert)
app.command("optimize")(optimize.optimize)

# Global state for CLI options
_global_state: dict[str, bool] = {
    "quiet": False,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"{__app_name__} v{__version__}")
        raise typer.Exit(code=ExitCode.SUCCESS)


def _setup_logging(
    verbose: bool = False,
    debug: bool = False,
    quiet: bool = False,
    log_file: Optional[Path] = None,
    default_level: str = "WARNING",
) -> None:
    """Set up logging configuration based on CLI options.

    Args:
        verbose: Enable INFO level logging
        debug: Enable DEBUG level logging
        quiet: Only log errors
        log_file: Optional log file path (always at DEBUG)
        default_level: Level used when no flag is given (from config)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.getLevelName(default_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    if debug:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers: list[logging.Handler] = []

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        handlers.append(console_handler)
    elif not log_file:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured: level={logging.getLevelName(level)}, debug={debug}")


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output (INFO level logging).",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode (DEBUG level logging).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log to file (logs DEBUG level regardless of console settings).",
    ),
) -> None:
    """mediaproc - plugin-based media processing.

    Capabilities live in plugins that are installed on first use:

    [bold]Core Commands:[/bold]

    • [cyan]convert[/cyan] - Convert any media file; the plugin is picked by extension
    • [cyan]optimize[/cyan] - Optimize any media file
    • [cyan]add[/cyan] - Install and load a plugin
    • [cyan]remove[/cyan] - Uninstall a plugin
    • [cyan]update[/cyan] - Update installed plugins
    • [cyan]list[/cyan] - Show loaded plugins
    • [cyan]plugins[/cyan] - Browse the plugin catalog

    [bold]Examples:[/bold]

        mediaproc convert photo.jpg photo.webp
        mediaproc optimize movie.mp4 --aggressive
        mediaproc add video
        mediaproc image resize photo.jpg -w 800

    For more help on a specific command, use: [cyan]mediaproc <command> --help[/cyan]
    """
    _global_state["quiet"] = quiet

    if quiet and verbose:
        console.print("[red]Error:[/red] --quiet and --verbose are mutually exclusive")
        raise typer.Exit(code=ExitCode.USER_INPUT)

    if quiet and debug:
        console.print("[red]Error:[/red] --quiet and --debug are mutually exclusive")
        raise typer.Exit(code=ExitCode.USER_INPUT)

    engine = ctx.find_object(Engine)
    default_level = engine.config.logging.level if engine else "WARNING"
    if log_file is None and engine is not None:
        log_file = engine.config.logging.file

    _setup_logging(
        verbose=verbose,
        debug=debug,
        quiet=quiet,
        log_file=log_file,
        default_level=default_level,
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"mediaproc v{__version__} starting")
    logger.debug(f"Options: verbose={verbose}, debug={debug}, quiet={quiet}")


def run() -> None:
    """Console script entry point.

    Builds the command group, loads plugins installed by earlier runs so
    their commands are available, then runs the CLI with the engine as
    the context object.
    """
    group = typer.main.get_command(app)

    try:
        config = get_config()
        problems = validate_config(config)
        if problems:
            raise ConfigurationError(
                f"Invalid configuration in {config.config_path}",
                details={"problems": "; ".join(problems)},
                hint=f"fix {config.config_path}",
            )
        _setup_logging(log_file=config.logging.file, default_level=config.logging.level)
        engine = build_engine(group, config=config)
        asyncio.run(engine.provisioner.autoload())
    except MediaprocError as e:
        report_error(e)
        sys.exit(e.exit_code)

    group(prog_name=__app_name__, obj=engine)


def is_quiet() -> bool:
    """Check if quiet mode is enabled."""
    return _global_state.get("quiet", False)


__all__ = [
    "app",
    "console",
    "run",
    "is_quiet",
]


if __name__ == "__main__":
    run()
