"""Global exception handling for mediaproc.

This module provides centralized error handling through custom exception
classes and a decorator that ensures consistent error reporting and
exit codes across all CLI commands.
"""

from functools import wraps
from typing import Callable, TypeVar, Any
import logging
import traceback

import click
import typer
from rich.console import Console
from rich.markup import escape

from mediaproc_cli.cli.exit_codes import ExitCode

# Console for error output (stderr)
console = Console(stderr=True)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _base_named(cls: type, name: str) -> type:
    return next(c for c in cls.__mro__ if c.__name__ == name)


# Exception classes of every click copy in use; typer may bundle its own click
CLICK_EXIT_ERRORS: tuple[type[BaseException], ...] = tuple({click.exceptions.Exit, typer.Exit})
CLICK_ABORT_ERRORS: tuple[type[BaseException], ...] = tuple({click.exceptions.Abort, typer.Abort})
CLICK_ERRORS: tuple[type[BaseException], ...] = tuple(
    {click.ClickException, _base_named(typer.BadParameter, "ClickException")}
)


class MediaprocError(Exception):
    """Base exception for mediaproc.

    All custom exceptions in mediaproc should inherit from this class
    to ensure proper error handling and exit codes.

    Attributes:
        message: Error message
        exit_code: Exit code to use when exiting
        details: Optional dictionary of additional error details
        hint: Optional manual remedy shown as "try: <hint>"
        diagnostics: Raw installer/loader output, shown in verbose mode
    """

    exit_code: int = ExitCode.INTERNAL

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
        diagnostics: str = "",
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            exit_code: Optional override for exit code
            details: Optional dictionary of additional error details
            hint: Optional suggested manual remedy
            diagnostics: Optional raw diagnostic text
        """
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        self.details = details or {}
        self.hint = hint
        self.diagnostics = diagnostics

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(MediaprocError):
    """Invalid command-line input.

    Examples:
        - Mutually exclusive flags given together
        - Quality outside 1-100
    """

    exit_code = ExitCode.USER_INPUT


class ConfigurationError(MediaprocError):
    """The configuration file could not be read or parsed."""

    exit_code = ExitCode.USER_INPUT


class UnknownCapability(MediaprocError):
    """A capability name is neither a known short name nor a package id.

    This is a user input error and is never retried.
    """

    exit_code = ExitCode.USER_INPUT

    def __init__(self, name: str, **kwargs: Any) -> None:
        kwargs.setdefault("hint", "mediaproc plugins")
        super().__init__(f"Unknown plugin: {name}", **kwargs)
        self.name = name


class FileSystemError(MediaprocError):
    """Missing input file, existing output file, unreadable path."""

    exit_code = ExitCode.FS_ERROR


class NotFoundError(MediaprocError):
    """A requested plugin is not installed."""

    exit_code = ExitCode.FS_ERROR


class UnsupportedFormat(MediaprocError):
    """None of the given file extensions maps to a media domain."""

    exit_code = ExitCode.UNSUPPORTED


class PluginError(MediaprocError):
    """Plugin-related error.

    Examples:
        - Removing a built-in plugin
        - Plugin loading failure
    """

    exit_code = ExitCode.PLUGIN_ERROR


class PluginContractViolation(PluginError):
    """A plugin lacks a callable ``register`` or ``register`` raised.

    The plugin's raw error is kept in ``cause`` and ``diagnostics`` so it
    is never swallowed.
    """

    def __init__(
        self,
        package_id: str,
        reason: str,
        cause: BaseException | None = None,
        **kwargs: Any,
    ) -> None:
        if cause is not None and not kwargs.get("diagnostics"):
            kwargs["diagnostics"] = "".join(
                traceback.format_exception(type(cause), cause, cause.__traceback__)
            )
        super().__init__(f"Failed to load plugin {package_id}: {reason}", **kwargs)
        self.package_id = package_id
        self.cause = cause


class InstallFailure(MediaprocError):
    """The external package manager exited non-zero."""

    exit_code = ExitCode.TOOL_ERROR

    def __init__(
        self,
        package_id: str,
        returncode: int | None = None,
        action: str = "install",
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", None) or {}
        if returncode is not None:
            details.setdefault("exit status", returncode)
        super().__init__(f"Failed to {action} {package_id}", details=details, **kwargs)
        self.package_id = package_id
        self.returncode = returncode


class PluginCommandError(MediaprocError):
    """A plugin subcommand ran but reported failure."""

    exit_code = ExitCode.TOOL_ERROR


class DispatchError(MediaprocError):
    """A loaded plugin did not register the command it was expected to.

    This indicates an inconsistency between the plugin and the registry
    and is never retried.
    """

    exit_code = ExitCode.INTERNAL


def _verbose_requested(kwargs: dict[str, Any]) -> bool:
    if kwargs.get("verbose"):
        return True
    return logging.getLogger().isEnabledFor(logging.INFO)


def report_error(error: MediaprocError, verbose: bool = False) -> None:
    """Print an error with its details, hint and (when verbose) diagnostics."""
    logger.error(
        f"{type(error).__name__}: {error.message}",
        extra={"exit_code": error.exit_code, "details": error.details},
    )

    console.print(f"[red]Error:[/red] {escape(error.message)}")

    for key, value in error.details.items():
        console.print(f"  [dim]{key}:[/dim] {escape(str(value))}")

    if error.hint:
        console.print(f"[dim]try: {escape(error.hint)}[/dim]")

    if error.diagnostics:
        if verbose:
            console.print("[dim]--- diagnostics ---[/dim]")
            console.print(escape(error.diagnostics.rstrip()), highlight=False)
        else:
            console.print("[dim]Run with --verbose for more details[/dim]")


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling across CLI commands.

    This decorator catches all exceptions and converts them to appropriate
    error messages and exit codes. It handles:

    - MediaprocError subclasses: message, details, remedy hint, exit code
    - KeyboardInterrupt: cancellation message with exit code 130
    - Other exceptions: generic error with exit code INTERNAL

    Diagnostics captured from installers and loaders are printed only when
    the command was given ``verbose=True`` or logging is at INFO or lower.

    Args:
        func: The function to wrap

    Returns:
        Wrapped function with error handling

    Example:
        @app.command()
        @handle_errors
        def my_command():
            raise UnsupportedFormat("Unsupported file format: .xyz")
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except MediaprocError as e:
            report_error(e, _verbose_requested(kwargs))
            raise typer.Exit(code=e.exit_code)

        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user.[/yellow]")
            logger.info("Operation cancelled by user (KeyboardInterrupt)")
            raise typer.Exit(code=ExitCode.CANCELLED)

        except CLICK_EXIT_ERRORS + CLICK_ABORT_ERRORS + CLICK_ERRORS:
            raise

        except Exception as e:
            logger.exception("Unexpected error occurred")
            console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
            console.print("[dim]Run with --verbose for more details[/dim]")
            raise typer.Exit(code=ExitCode.INTERNAL)

    return wrapper  # type: ignore[return-value]
