"""Runtime state of plugins loaded into this process.

The ``PluginRuntime`` tracks which plugin packages have run their
``register`` entry point against the command surface. It lives for one
CLI invocation and is never persisted; the on-disk ledger of installed
plugins is kept separately in the configuration file.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from mediaproc_cli.cli.error_handler import PluginContractViolation
from mediaproc_cli.plugins.surface import CommandSurface

logger = logging.getLogger(__name__)

RegisterFn = Callable[[CommandSurface], Union[None, Awaitable[None]]]


@dataclass
class LoadedPluginRecord:
    """A plugin whose ``register`` has completed without error.

    Attributes:
        package_id: Plugin package id
        is_builtin: Whether the plugin ships with mediaproc
        command_surface: Surface the plugin registered into
        commands: Top-level commands the plugin added
        version: Plugin version, if it exposes one
    """

    package_id: str
    is_builtin: bool
    command_surface: CommandSurface
    commands: List[str] = field(default_factory=list)
    version: Optional[str] = None


class PluginRuntime:
    """Loaded-plugin bookkeeping for one CLI invocation.

    ``load`` is idempotent: a plugin's ``register`` runs at most once per
    runtime, because registering subcommands twice is not safe.

    Example:
        runtime = PluginRuntime(surface)
        await runtime.load("mediaproc-image", image_plugin.register)
        runtime.is_loaded("mediaproc-image")  # True
    """

    def __init__(self, surface: CommandSurface) -> None:
        """Initialize the runtime.

        Args:
            surface: Command surface plugins register into
        """
        self._surface = surface
        self._plugins: Dict[str, LoadedPluginRecord] = {}

    @property
    def surface(self) -> CommandSurface:
        """The command surface plugins register into."""
        return self._surface

    def is_loaded(self, package_id: str) -> bool:
        """Check whether a plugin has been loaded in this process."""
        return package_id in self._plugins

    async def load(
        self,
        package_id: str,
        register: Any,
        is_builtin: bool = False,
        version: Optional[str] = None,
    ) -> LoadedPluginRecord:
        """Run a plugin's ``register`` and record it as loaded.

        Args:
            package_id: Plugin package id
            register: The plugin's entry point; called with the surface
            is_builtin: Whether the plugin ships with mediaproc
            version: Plugin version, if known

        Returns:
            The record for the loaded plugin (the existing one if the
            plugin was already loaded)

        Raises:
            PluginContractViolation: If ``register`` is not callable or
                raises. Nothing is recorded and any commands the plugin
                added before failing are removed.
        """
        existing = self._plugins.get(package_id)
        if existing is not None:
            logger.debug(f"Plugin already loaded: {package_id}")
            return existing

        if not callable(register):
            raise PluginContractViolation(
                package_id, "plugin does not export a register() function"
            )

        before = set(self._surface.command_names())
        try:
            result = register(self._surface)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            for name in set(self._surface.command_names()) - before:
                self._surface.remove_command(name)
            logger.debug(f"register() failed for {package_id}", exc_info=True)
            raise PluginContractViolation(package_id, str(e) or type(e).__name__, cause=e) from e

        added = [n for n in self._surface.command_names() if n not in before]
        record = LoadedPluginRecord(
            package_id=package_id,
            is_builtin=is_builtin,
            command_surface=self._surface,
            commands=added,
            version=version,
        )
        self._plugins[package_id] = record
        logger.info(f"Loaded plugin {package_id} (commands: {', '.join(added) or 'none'})")
        return record

    def unload(self, package_id: str) -> bool:
        """Forget a loaded plugin.

        Only the bookkeeping is removed; commands the plugin already
        registered stay on the surface for the rest of the process.

        Returns:
            True if the plugin was loaded
        """
        if package_id not in self._plugins:
            return False
        del self._plugins[package_id]
        return True

    def get(self, package_id: str) -> Optional[LoadedPluginRecord]:
        """Get the record for a loaded plugin."""
        return self._plugins.get(package_id)

    def loaded_plugins(self) -> List[str]:
        """Package ids of loaded plugins, in load order."""
        return list(self._plugins.keys())

    def records(self) -> List[LoadedPluginRecord]:
        """Records of loaded plugins, in load order."""
        return list(self._plugins.values())
