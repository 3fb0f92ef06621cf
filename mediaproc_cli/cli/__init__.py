"""CLI command modules for mediaproc.

This package contains the command implementations and supporting
utilities for error handling, progress display and table output.
Command modules are imported by ``mediaproc_cli.main``.
"""

from mediaproc_cli.cli.exit_codes import ExitCode
from mediaproc_cli.cli.error_handler import (
    MediaprocError,
    ConfigurationError,
    DispatchError,
    FileSystemError,
    InstallFailure,
    NotFoundError,
    PluginCommandError,
    PluginContractViolation,
    PluginError,
    UnknownCapability,
    UnsupportedFormat,
    ValidationError,
    handle_errors,
    report_error,
)

__all__ = [
    # Exit codes
    "ExitCode",
    # Error handling
    "MediaprocError",
    "ConfigurationError",
    "DispatchError",
    "FileSystemError",
    "InstallFailure",
    "NotFoundError",
    "PluginCommandError",
    "PluginContractViolation",
    "PluginError",
    "UnknownCapability",
    "UnsupportedFormat",
    "ValidationError",
    "handle_errors",
    "report_error",
]
