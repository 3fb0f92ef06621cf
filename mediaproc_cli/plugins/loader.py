"""Locating installed plugins and their ``register`` entry points.

Plugins are discovered explicitly, never by scanning module attributes:
- Built-in plugins passed in as a ``package_id -> register`` mapping
- The ``mediaproc.plugins`` entry point group of installed distributions
- As a fallback, the ``register`` attribute of the module named after
  the package (``mediaproc-image`` -> ``mediaproc_image``)

A plugin distribution declares its entry point like this::

    [project.entry-points."mediaproc.plugins"]
    image = "mediaproc_image:register"
"""

import importlib
import logging
import re
from importlib import metadata
from typing import Any, Callable, Dict, Mapping, Optional

from mediaproc_cli.cli.error_handler import PluginContractViolation

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    """Normalize a distribution name the way the package index does."""
    return re.sub(r"[-_.]+", "-", name).lower()


def module_name(package_id: str) -> str:
    """Import name for a plugin package (``mediaproc-image`` -> ``mediaproc_image``)."""
    return re.sub(r"[-.]+", "_", package_id)


class PluginLoader:
    """Finds plugin ``register`` functions for package ids.

    Example:
        loader = PluginLoader()
        if loader.is_installed("mediaproc-image"):
            register = loader.load_register("mediaproc-image")
    """

    # Entry point group for mediaproc plugins
    ENTRY_POINT_GROUP = "mediaproc.plugins"

    def __init__(self, builtins: Optional[Mapping[str, Callable[..., Any]]] = None) -> None:
        """Initialize the loader.

        Args:
            builtins: Plugins that ship with mediaproc, by package id
        """
        self._builtins: Dict[str, Callable[..., Any]] = dict(builtins or {})

    def is_builtin(self, package_id: str) -> bool:
        """Check whether a plugin ships with mediaproc."""
        return package_id in self._builtins

    def is_installed(self, package_id: str) -> bool:
        """Check the installed package metadata for a plugin.

        Built-in plugins always count as installed.
        """
        if package_id in self._builtins:
            return True
        try:
            metadata.distribution(package_id)
        except metadata.PackageNotFoundError:
            return False
        return True

    def version(self, package_id: str) -> Optional[str]:
        """Installed version of a plugin, or None."""
        if package_id in self._builtins:
            return None
        try:
            return metadata.version(package_id)
        except metadata.PackageNotFoundError:
            return None

    def refresh(self) -> None:
        """Pick up packages installed since the process started."""
        importlib.invalidate_caches()

    def load_register(self, package_id: str) -> Callable[..., Any]:
        """Import a plugin and return its ``register`` function.

        Raises:
            PluginContractViolation: If the plugin cannot be imported or
                does not expose a callable ``register``
        """
        builtin = self._builtins.get(package_id)
        if builtin is not None:
            return builtin

        entry_point = self._find_entry_point(package_id)
        if entry_point is not None:
            try:
                target = entry_point.load()
            except Exception as e:
                raise PluginContractViolation(
                    package_id, f"entry point {entry_point.value} failed to import", cause=e
                ) from e
            register = getattr(target, "register", target)
        else:
            name = module_name(package_id)
            try:
                module = importlib.import_module(name)
            except Exception as e:
                raise PluginContractViolation(
                    package_id, f"cannot import module {name}", cause=e
                ) from e
            register = getattr(module, "register", None)

        if not callable(register):
            raise PluginContractViolation(
                package_id, "plugin does not export a register() function"
            )
        return register

    def _find_entry_point(self, package_id: str) -> Optional[metadata.EntryPoint]:
        """Find the entry point published by a plugin's distribution."""
        wanted = normalize_name(package_id)
        for entry_point in metadata.entry_points(group=self.ENTRY_POINT_GROUP):
            dist = getattr(entry_point, "dist", None)
            if dist is not None and normalize_name(dist.metadata["Name"]) == wanted:
                return entry_point
        return None
