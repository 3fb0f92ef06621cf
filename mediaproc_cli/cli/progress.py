"""Progress indicators and status utilities for mediaproc.

This module provides the spinner and status lines shown while a plugin
is installed and loaded, driven by the provisioner's state transitions.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

from mediaproc_cli.plugins.provisioning import ProvisioningRequest, ProvisionState

# Default console for progress output
console = Console()


@contextmanager
def spinner(
    message: str,
    transient: bool = True,
    console_instance: Console | None = None,
) -> Generator[None, None, None]:
    """Show a spinner for indeterminate operations.

    Args:
        message: The message to display next to the spinner
        transient: If True, remove the spinner after completion
        console_instance: Optional custom console instance

    Example:
        with spinner("Removing mediaproc-video..."):
            asyncio.run(provisioner.remove("video"))
    """
    prog_console = console_instance or console

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=transient,
        console=prog_console,
    ) as progress:
        progress.add_task(description=message, total=None)
        yield


def status_message(message: str, status: str = "info", console_instance: Console | None = None) -> None:
    """Print a status message with an appropriate icon.

    Args:
        message: The message to display
        status: Status type - one of: info, success, warning, error
    """
    icons = {
        "info": "[blue]ℹ[/blue]",
        "success": "[green]✓[/green]",
        "warning": "[yellow]⚠[/yellow]",
        "error": "[red]✗[/red]",
    }

    icon = icons.get(status, "[blue]ℹ[/blue]")
    (console_instance or console).print(f"{icon} {message}")


def step_complete(step_name: str, details: str | None = None, console_instance: Console | None = None) -> None:
    """Print a step completion message."""
    out = console_instance or console
    if details:
        out.print(f"  [green]✓[/green] {step_name} [dim]{details}[/dim]")
    else:
        out.print(f"  [green]✓[/green] {step_name}")


def step_failed(step_name: str, reason: str | None = None, console_instance: Console | None = None) -> None:
    """Print a step failure message."""
    out = console_instance or console
    if reason:
        out.print(f"  [red]✗[/red] {step_name} [dim]- {reason}[/dim]")
    else:
        out.print(f"  [red]✗[/red] {step_name}")


class ProvisioningProgress:
    """Spinner and step lines that follow a provisioning request.

    Pass ``update`` as the request's transition callback:

        with ProvisioningProgress() as progress:
            asyncio.run(provisioner.ensure("video", on_transition=progress.update))

    Nothing is printed when the plugin was already loaded, or when
    ``quiet`` is set.
    """

    def __init__(self, console_instance: Console | None = None, quiet: bool = False) -> None:
        self.console = console_instance or console
        self.quiet = quiet
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None

    def __enter__(self) -> "ProvisioningProgress":
        if not self.quiet:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                transient=True,
                console=self.console,
            )
            self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self._stop_spinner()
        if self._progress:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None

    def _start_spinner(self, description: str) -> None:
        if self._progress is None:
            return
        if self._task_id is None:
            self._task_id = self._progress.add_task(description, total=None)
        else:
            self._progress.update(self._task_id, description=description)

    def _stop_spinner(self) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.remove_task(self._task_id)
        self._task_id = None

    def update(self, request: ProvisioningRequest) -> None:
        """Reflect the request's latest state."""
        if self.quiet:
            return

        package_id = request.resolved_package_id
        state = request.current_state
        previous = request.history[-2] if len(request.history) > 1 else None

        if state is ProvisionState.NOT_INSTALLED:
            self.console.print(f"[yellow]{package_id} is not installed[/yellow]")
        elif state is ProvisionState.INSTALLING:
            self._start_spinner(f"Installing {package_id} with {request.installer}...")
        elif state is ProvisionState.INSTALLED_NOT_LOADED and previous is ProvisionState.INSTALLING:
            self._stop_spinner()
            step_complete(f"Installed {package_id}", request.installer, console_instance=self.console)
        elif state is ProvisionState.LOADING:
            self._start_spinner(f"Loading {package_id}...")
        elif state is ProvisionState.LOADED and previous is not None:
            self._stop_spinner()
            step_complete(f"Loaded {package_id}", console_instance=self.console)
        elif state is ProvisionState.FAILED:
            self._stop_spinner()
            step = "Install" if previous is ProvisionState.INSTALLING else "Load"
            step_failed(f"{step} {package_id}", console_instance=self.console)
