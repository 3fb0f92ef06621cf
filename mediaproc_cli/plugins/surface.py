"""The live command tree plugins register themselves into.

``CommandSurface`` wraps the click group built from the root Typer app.
Plugins add their own command groups to it from ``register(surface)`` and
the router looks those commands up again by name when dispatching.
"""

import logging
from typing import List, Optional

import click
import typer

logger = logging.getLogger(__name__)


class CommandSurface:
    """Named-command view of the root CLI group.

    Example:
        image_app = typer.Typer(help="Image processing commands")

        @image_app.command("convert")
        def convert(input: str, output: str) -> None:
            ...

        def register(surface: CommandSurface) -> None:
            surface.add_typer(image_app, name="image")
    """

    def __init__(self, group: click.Group) -> None:
        """Initialize the surface.

        Args:
            group: Root click group of the running CLI
        """
        self._group = group

    @property
    def group(self) -> click.Group:
        """The underlying click group."""
        return self._group

    def add_command(self, command: click.Command, name: Optional[str] = None) -> None:
        """Register a click command or group.

        Raises:
            ValueError: If the name is already taken
        """
        cmd_name = name or command.name
        if not cmd_name:
            raise ValueError("Command must have a name")
        if cmd_name in self._group.commands:
            raise ValueError(f"Command already registered: {cmd_name}")

        self._group.add_command(command, cmd_name)
        logger.debug(f"Registered command: {cmd_name}")

    def add_typer(self, app: typer.Typer, name: str) -> None:
        """Register a Typer app as a command group under ``name``."""
        command = typer.main.get_command(app)
        command.name = name
        self.add_command(command, name)

    def get_command(self, name: str) -> Optional[click.Command]:
        """Look up a top-level command by name."""
        return self._group.commands.get(name)

    def has_command(self, name: str) -> bool:
        """Check whether a top-level command exists."""
        return name in self._group.commands

    def command_names(self) -> List[str]:
        """Names of all top-level commands."""
        return list(self._group.commands.keys())

    def remove_command(self, name: str) -> bool:
        """Drop a top-level command.

        Returns:
            True if the command existed
        """
        if self._group.commands.pop(name, None) is None:
            return False
        logger.debug(f"Removed command: {name}")
        return True
