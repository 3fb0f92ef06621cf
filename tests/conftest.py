"""Shared fixtures: an in-memory installer, loader and plugin factory."""

from typing import Callable, Dict, List, Optional, Set, Tuple

import click
import pytest
import typer

from mediaproc_cli.config import MediaprocConfig
from mediaproc_cli.plugins.installer import Installer, InstallResult, InstallScope
from mediaproc_cli.plugins.loader import PluginLoader
from mediaproc_cli.plugins.registry import CapabilityRegistry
from mediaproc_cli.plugins.runtime import PluginRuntime
from mediaproc_cli.plugins.provisioning import Provisioner
from mediaproc_cli.plugins.surface import CommandSurface

# (plugin command, verb, argv) for every plugin subcommand invocation
Calls = List[Tuple[str, str, List[str]]]


class FakeInstaller(Installer):
    """Installer that marks packages installed in memory."""

    name = "fake"

    def __init__(
        self,
        installed: Set[str],
        fail: bool = False,
        output: str = "",
        versions: Optional[Dict[str, str]] = None,
    ) -> None:
        self.installed = installed
        self.versions = versions if versions is not None else {}
        self.fail = fail
        self.output = output
        self.install_calls: List[Tuple[str, InstallScope]] = []
        self.uninstall_calls: List[Tuple[str, InstallScope]] = []
        self.upgrade_calls: List[Tuple[str, InstallScope, Optional[str]]] = []

    def command(self) -> list[str]:
        return ["fake"]

    def install_args(self, package_id: str, scope: InstallScope, upgrade: bool = False) -> list[str]:
        return ["install", package_id]

    def uninstall_args(self, package_id: str, scope: InstallScope) -> list[str]:
        return ["uninstall", package_id]

    def manual_hint(self, package_id: str, action: str = "install") -> str:
        return f"fake {action} {package_id}"

    async def is_available(self) -> bool:
        return True

    async def install(self, package_id: str, scope: InstallScope = InstallScope.AUTO) -> InstallResult:
        self.install_calls.append((package_id, scope))
        if self.fail:
            return InstallResult(success=False, returncode=1, stderr=self.output)
        self.installed.add(package_id)
        return InstallResult(success=True, returncode=0, stdout=self.output)

    async def upgrade(
        self,
        package_id: str,
        scope: InstallScope = InstallScope.AUTO,
        version: Optional[str] = None,
    ) -> InstallResult:
        self.upgrade_calls.append((package_id, scope, version))
        if self.fail:
            return InstallResult(success=False, returncode=1, stderr=self.output)
        self.versions[package_id] = version or "2.0.0"
        return InstallResult(success=True, returncode=0, stdout=self.output)

    async def uninstall(self, package_id: str, scope: InstallScope = InstallScope.AUTO) -> InstallResult:
        self.uninstall_calls.append((package_id, scope))
        if self.fail:
            return InstallResult(success=False, returncode=1, stderr=self.output)
        self.installed.discard(package_id)
        return InstallResult(success=True, returncode=0)


class FakeLoader(PluginLoader):
    """Loader backed by an in-memory set of installed packages."""

    def __init__(
        self,
        installed: Set[str],
        plugins: Dict[str, Callable],
        builtins: Optional[Dict[str, Callable]] = None,
        versions: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(builtins=builtins)
        self.installed = installed
        self.versions = versions if versions is not None else {}
        self.plugins = plugins
        self.load_calls: List[str] = []
        self.refresh_calls = 0

    def is_installed(self, package_id: str) -> bool:
        return self.is_builtin(package_id) or package_id in self.installed

    def version(self, package_id: str) -> Optional[str]:
        if package_id not in self.installed:
            return None
        return self.versions.get(package_id, "1.0.0")

    def refresh(self) -> None:
        self.refresh_calls += 1

    def load_register(self, package_id: str) -> Callable:
        self.load_calls.append(package_id)
        if self.is_builtin(package_id):
            return super().load_register(package_id)
        return self.plugins[package_id]


def make_plugin(
    command_name: str,
    calls: Calls,
    verbs: Tuple[str, ...] = ("convert", "optimize", "compress"),
    exit_code: int = 0,
) -> Callable[[CommandSurface], None]:
    """Build a plugin ``register`` function that records subcommand calls."""
    register_count = {"n": 0}

    def register(surface: CommandSurface) -> None:
        register_count["n"] += 1
        group = click.Group(command_name)

        for verb in verbs:
            def callback(argv: Tuple[str, ...], _verb: str = verb) -> None:
                calls.append((command_name, _verb, list(argv)))
                if exit_code:
                    raise click.exceptions.Exit(exit_code)

            group.add_command(
                click.Command(
                    verb,
                    callback=callback,
                    params=[click.Argument(["argv"], nargs=-1, type=click.UNPROCESSED)],
                    context_settings={"ignore_unknown_options": True},
                )
            )

        surface.add_command(group, command_name)

    register.count = register_count  # type: ignore[attr-defined]
    return register


def _typer_verb(command_name: str, verb: str, calls: Calls) -> Callable[[typer.Context], None]:
    def callback(ctx: typer.Context) -> None:
        calls.append((command_name, verb, list(ctx.args)))

    return callback


def make_typer_plugin(
    command_name: str,
    calls: Calls,
    verbs: Tuple[str, ...] = ("convert", "optimize", "compress"),
) -> Callable[[CommandSurface], None]:
    """Build a plugin ``register`` function that adds a Typer app."""

    def register(surface: CommandSurface) -> None:
        app = typer.Typer()
        for verb in verbs:
            app.command(
                verb,
                context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
            )(_typer_verb(command_name, verb, calls))
        surface.add_typer(app, name=command_name)

    return register


@pytest.fixture
def installed() -> Set[str]:
    return set()


@pytest.fixture
def versions() -> Dict[str, str]:
    return {}


@pytest.fixture
def calls() -> Calls:
    return []


@pytest.fixture
def plugins(calls: Calls) -> Dict[str, Callable]:
    return {
        f"mediaproc-{name}": make_plugin(name, calls)
        for name in ("image", "video", "audio", "document", "3d")
    }


@pytest.fixture
def fake_installer(installed: Set[str], versions: Dict[str, str]) -> FakeInstaller:
    return FakeInstaller(installed, versions=versions)


@pytest.fixture
def fake_loader(
    installed: Set[str], plugins: Dict[str, Callable], versions: Dict[str, str]
) -> FakeLoader:
    return FakeLoader(installed, plugins, versions=versions)


@pytest.fixture
def config(tmp_path) -> MediaprocConfig:
    return MediaprocConfig(config_dir=tmp_path / "config")


@pytest.fixture
def surface() -> CommandSurface:
    return CommandSurface(click.Group("mediaproc"))


@pytest.fixture
def registry() -> CapabilityRegistry:
    return CapabilityRegistry()


@pytest.fixture
def provisioner(registry, surface, fake_loader, fake_installer, config) -> Provisioner:
    async def select():
        return fake_installer

    return Provisioner(
        registry,
        PluginRuntime(surface),
        fake_loader,
        installer_selector=select,
        config=config,
    )


@pytest.fixture
def plugin_factory() -> Callable[..., Callable[[CommandSurface], None]]:
    return make_plugin


@pytest.fixture
def typer_plugin_factory() -> Callable[..., Callable[[CommandSurface], None]]:
    return make_typer_plugin
