"""Wiring of the provisioning and routing components for one process.

The engine is built once per CLI invocation around the root click group
and handed to commands through ``ctx.obj``. Nothing here is a module-level
singleton, so tests can build isolated engines.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import click

from mediaproc_cli.config import MediaprocConfig, get_config
from mediaproc_cli.plugins.loader import PluginLoader
from mediaproc_cli.plugins.provisioning import InstallerSelector, Provisioner
from mediaproc_cli.plugins.registry import CapabilityRegistry, get_registry
from mediaproc_cli.plugins.router import CapabilityRouter
from mediaproc_cli.plugins.runtime import PluginRuntime
from mediaproc_cli.plugins.surface import CommandSurface

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """Everything a command needs to provision and route plugins."""

    config: MediaprocConfig
    registry: CapabilityRegistry
    surface: CommandSurface
    runtime: PluginRuntime
    loader: PluginLoader
    provisioner: Provisioner
    router: CapabilityRouter


def build_engine(
    group: click.Group,
    config: Optional[MediaprocConfig] = None,
    registry: Optional[CapabilityRegistry] = None,
    builtins: Optional[Mapping[str, Callable[..., Any]]] = None,
    loader: Optional[PluginLoader] = None,
    installer_selector: Optional[InstallerSelector] = None,
) -> Engine:
    """Build an engine whose plugins register into ``group``.

    Args:
        group: Root click group of the CLI
        config: Configuration (default: the global configuration)
        registry: Capability table (default: the built-in table)
        builtins: Plugins shipped with mediaproc, by package id
        loader: Plugin loader (default: one built with ``builtins``)
        installer_selector: Override for package manager selection

    Raises:
        ConfigurationError: If the configuration file cannot be parsed
    """
    config = config or get_config()
    registry = registry or get_registry()
    surface = CommandSurface(group)
    runtime = PluginRuntime(surface)
    loader = loader or PluginLoader(builtins=builtins)
    provisioner = Provisioner(
        registry,
        runtime,
        loader,
        installer_selector=installer_selector,
        config=config,
    )
    return Engine(
        config=config,
        registry=registry,
        surface=surface,
        runtime=runtime,
        loader=loader,
        provisioner=provisioner,
        router=CapabilityRouter(registry, surface),
    )


def get_engine(ctx: click.Context) -> Engine:
    """Return the engine attached to the command context.

    When the CLI was started without one (for example by a test runner),
    an engine is built around the root command and attached to the root
    context so later lookups reuse it.
    """
    root = ctx.find_root()
    engine = ctx.find_object(Engine)
    if engine is not None:
        return engine

    if getattr(root.command, "commands", None) is None:
        raise TypeError("mediaproc commands must run under the root command group")

    logger.debug("No engine on the context; building one")
    engine = build_engine(root.command)
    root.obj = engine
    ctx.obj = engine
    return engine
