"""Install-then-load orchestration for plugins.

The ``Provisioner`` takes a requested capability to a loaded plugin:

    NOT_INSTALLED -> INSTALLING -> INSTALLED_NOT_LOADED -> LOADING -> LOADED
                          |                                    |
                          +--------------> FAILED <------------+

"Installed" and "loaded" are tracked separately: a plugin installed by an
earlier run is loaded without reinstalling, and a plugin already loaded in
this process short-circuits straight to LOADED. Failures are never retried.

``remove`` and ``update`` act on installed packages directly and keep the
installed-plugin ledger in the config file in step.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from mediaproc_cli.cli.error_handler import (
    ConfigurationError,
    InstallFailure,
    MediaprocError,
    NotFoundError,
    PluginError,
    ValidationError,
)
from mediaproc_cli.config import MediaprocConfig, forget_installed, record_installed
from mediaproc_cli.plugins.installer import (
    Installer,
    InstallScope,
    PipInstaller,
    resolve_scope,
    select_installer,
)
from mediaproc_cli.plugins.loader import PluginLoader
from mediaproc_cli.plugins.registry import CapabilityRegistry
from mediaproc_cli.plugins.runtime import LoadedPluginRecord, PluginRuntime

logger = logging.getLogger(__name__)

InstallerSelector = Callable[[], Awaitable[Installer]]


class ProvisionState(str, Enum):
    """States of a provisioning request."""

    NOT_INSTALLED = "not_installed"
    INSTALLING = "installing"
    INSTALLED_NOT_LOADED = "installed_not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class ProvisioningRequest:
    """One capability request and the states it went through.

    Attributes:
        requested_capability: What the user asked for
        resolved_package_id: Package id from the registry
        current_state: Latest state
        history: Every state visited, in order
        installer: Package manager used, if an install happened
        diagnostics: Installer or loader output
        error: The failure, when current_state is FAILED
        on_transition: Called after every state change of this request
    """

    requested_capability: str
    resolved_package_id: str
    current_state: Optional[ProvisionState] = None
    history: List[ProvisionState] = field(default_factory=list)
    installer: Optional[str] = None
    diagnostics: str = ""
    error: Optional[MediaprocError] = None
    on_transition: Optional[Callable[["ProvisioningRequest"], None]] = field(
        default=None, repr=False, compare=False
    )

    @property
    def loaded(self) -> bool:
        return self.current_state is ProvisionState.LOADED

    @property
    def failed(self) -> bool:
        return self.current_state is ProvisionState.FAILED


@dataclass
class PluginUpdate:
    """Installed versions of a plugin before and after an upgrade."""

    package_id: str
    old_version: Optional[str]
    new_version: Optional[str]

    @property
    def changed(self) -> bool:
        return self.old_version != self.new_version


class Provisioner:
    """Makes capabilities usable in the current process.

    Example:
        provisioner = Provisioner(registry, runtime, PluginLoader(), config=config)
        request = await provisioner.ensure("video")
        request.history
        # [NOT_INSTALLED, INSTALLING, INSTALLED_NOT_LOADED, LOADING, LOADED]
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        runtime: PluginRuntime,
        loader: PluginLoader,
        installer_selector: Optional[InstallerSelector] = None,
        config: Optional[MediaprocConfig] = None,
        on_transition: Optional[Callable[[ProvisioningRequest], None]] = None,
    ) -> None:
        """Initialize the provisioner.

        Args:
            registry: Capability registry used to resolve names
            runtime: Loaded-plugin state of this process
            loader: Finds installed plugins and their register functions
            installer_selector: Coroutine factory picking a package manager;
                defaults to probing uv then pip
            config: Configuration holding the installed-plugin ledger
            on_transition: Called after every state change
        """
        self._registry = registry
        self._runtime = runtime
        self._loader = loader
        self._config = config
        self._installer_selector = installer_selector or self._select_from_config
        self._on_transition = on_transition

    @property
    def runtime(self) -> PluginRuntime:
        return self._runtime

    @property
    def loader(self) -> PluginLoader:
        return self._loader

    async def _select_from_config(self) -> Installer:
        preferred = self._config.plugins.package_manager if self._config else None
        return await select_installer(preferred=preferred)

    def _default_scope(self) -> InstallScope:
        if self._config is None:
            return InstallScope.AUTO
        try:
            return InstallScope(self._config.plugins.install_scope)
        except ValueError:
            logger.warning(f"Invalid install_scope in config: {self._config.plugins.install_scope}")
            return InstallScope.AUTO

    def _transition(self, request: ProvisioningRequest, state: ProvisionState) -> None:
        previous = request.current_state
        request.current_state = state
        request.history.append(state)
        logger.debug(
            f"{request.resolved_package_id}: "
            f"{previous.value if previous else 'start'} -> {state.value}"
        )
        for callback in (self._on_transition, request.on_transition):
            if callback is not None:
                callback(request)

    def _fail(self, request: ProvisioningRequest, error: MediaprocError) -> MediaprocError:
        request.error = error
        if error.diagnostics and not request.diagnostics:
            request.diagnostics = error.diagnostics
        self._transition(request, ProvisionState.FAILED)
        return error

    async def ensure(
        self,
        capability: str,
        scope: Optional[InstallScope] = None,
        on_transition: Optional[Callable[[ProvisioningRequest], None]] = None,
    ) -> ProvisioningRequest:
        """Install (if needed) and load the plugin for a capability.

        Args:
            capability: Short name, alias, or package id
            scope: Install scope; defaults to the configured scope
            on_transition: Called after every state change of this request

        Returns:
            The request, in state LOADED

        Raises:
            UnknownCapability: If the name does not resolve
            InstallFailure: If the package manager fails
            PluginContractViolation: If the plugin fails to load
        """
        package_id = self._registry.resolve(capability)
        request = ProvisioningRequest(
            requested_capability=capability,
            resolved_package_id=package_id,
            on_transition=on_transition,
        )

        if self._runtime.is_loaded(package_id):
            self._transition(request, ProvisionState.LOADED)
            return request

        if self._loader.is_installed(package_id):
            self._transition(request, ProvisionState.INSTALLED_NOT_LOADED)
        else:
            self._transition(request, ProvisionState.NOT_INSTALLED)
            await self._install(request, scope)

        await self._load(request)
        return request

    async def _install(self, request: ProvisioningRequest, scope: Optional[InstallScope]) -> None:
        package_id = request.resolved_package_id
        resolved = resolve_scope(scope or self._default_scope())
        installer = await self._installer_for(resolved)
        request.installer = installer.name
        self._transition(request, ProvisionState.INSTALLING)

        logger.info(f"Installing {package_id} with {installer.name} ({resolved.value})")
        result = await installer.install(package_id, resolved)
        request.diagnostics = result.output

        if not result.success:
            raise self._fail(
                request,
                InstallFailure(
                    package_id,
                    returncode=result.returncode,
                    hint=installer.manual_hint(package_id),
                    diagnostics=result.output,
                ),
            )

        self._update_ledger(record_installed, package_id)

        self._loader.refresh()
        self._transition(request, ProvisionState.INSTALLED_NOT_LOADED)

    async def _installer_for(self, scope: InstallScope) -> Installer:
        installer = await self._installer_selector()
        if scope is InstallScope.GLOBAL and not installer.supports_user_scope:
            logger.info(f"{installer.name} cannot install per-user; using pip")
            return PipInstaller()
        return installer

    def _update_ledger(
        self, update: Callable[[MediaprocConfig, str], bool], package_id: str
    ) -> None:
        """Apply a ledger change; a failed write is logged, never fatal."""
        if self._config is None:
            return
        try:
            update(self._config, package_id)
        except (OSError, ConfigurationError) as e:
            logger.warning(f"Could not update installed plugins in {self._config.config_path}: {e}")

    async def _load(self, request: ProvisioningRequest) -> LoadedPluginRecord:
        package_id = request.resolved_package_id
        self._transition(request, ProvisionState.LOADING)
        try:
            register = self._loader.load_register(package_id)
            record = await self._runtime.load(
                package_id,
                register,
                is_builtin=self._loader.is_builtin(package_id),
                version=self._loader.version(package_id),
            )
        except PluginError as e:
            raise self._fail(request, e)

        self._transition(request, ProvisionState.LOADED)
        return record

    async def autoload(self) -> List[str]:
        """Load every official plugin that is already installed.

        Plugins that fail to load are logged and skipped.

        Returns:
            Package ids loaded by this call
        """
        loaded: List[str] = []
        for package_id in self._registry.official_packages():
            if self._runtime.is_loaded(package_id) or not self._loader.is_installed(package_id):
                continue
            try:
                register = self._loader.load_register(package_id)
                await self._runtime.load(
                    package_id,
                    register,
                    is_builtin=self._loader.is_builtin(package_id),
                    version=self._loader.version(package_id),
                )
                loaded.append(package_id)
            except PluginError as e:
                logger.warning(f"Skipping plugin {package_id}: {e.message}")
        return loaded

    async def remove(self, capability: str, scope: Optional[InstallScope] = None) -> str:
        """Uninstall a plugin and drop it from the ledger.

        Commands the plugin already registered remain available until
        the process exits.

        Returns:
            The removed package id

        Raises:
            UnknownCapability: If the name does not resolve
            NotFoundError: If the plugin is neither installed nor loaded
            PluginError: If the plugin is built in
            InstallFailure: If the package manager fails
        """
        package_id = self._registry.resolve(capability)

        if self._loader.is_builtin(package_id):
            raise PluginError(
                f"Cannot remove plugin: {capability}",
                details={"reason": "plugin is built in"},
            )

        if not (self._loader.is_installed(package_id) or self._runtime.is_loaded(package_id)):
            raise NotFoundError(
                f"Plugin {package_id} is not installed",
                hint="mediaproc list",
            )

        resolved = resolve_scope(scope or self._default_scope())
        installer = await self._installer_for(resolved)
        result = await installer.uninstall(package_id, resolved)
        if not result.success:
            raise InstallFailure(
                package_id,
                returncode=result.returncode,
                action="uninstall",
                diagnostics=result.output,
                hint=installer.manual_hint(package_id, action="uninstall"),
            )

        if self._runtime.unload(package_id):
            logger.info(f"Unloaded plugin {package_id}")
        self._update_ledger(forget_installed, package_id)

        self._loader.refresh()
        return package_id

    def installed_packages(self) -> List[str]:
        """Installed plugins a package manager can upgrade.

        Official plugins found in the package metadata come first, then
        community plugins recorded in the ledger. Built-ins are skipped.
        """
        candidates = list(self._registry.official_packages())
        if self._config is not None:
            candidates += [p for p in self._config.plugins.installed_plugins if p not in candidates]
        return [
            p for p in candidates if not self._loader.is_builtin(p) and self._loader.is_installed(p)
        ]

    async def update(
        self,
        capability: Optional[str] = None,
        scope: Optional[InstallScope] = None,
        version: Optional[str] = None,
    ) -> List[PluginUpdate]:
        """Upgrade one plugin, or every installed plugin.

        A plugin already loaded keeps its old code until the process exits.

        Args:
            capability: Plugin to upgrade; all installed plugins if None
            scope: Install scope; defaults to the configured scope
            version: Exact version to install (single plugin only)

        Returns:
            One entry per upgraded plugin, in upgrade order

        Raises:
            ValidationError: If a version is given without a plugin
            UnknownCapability: If the name does not resolve
            NotFoundError: If the plugin is not installed
            PluginError: If the plugin is built in
            InstallFailure: If the package manager fails
        """
        if capability is None:
            if version:
                raise ValidationError("A version can only be given for a single plugin")
            package_ids = self.installed_packages()
        else:
            package_id = self._registry.resolve(capability)
            if self._loader.is_builtin(package_id):
                raise PluginError(
                    f"Cannot update plugin: {capability}",
                    details={"reason": "plugin is built in"},
                )
            if not self._loader.is_installed(package_id):
                raise NotFoundError(
                    f"Plugin {package_id} is not installed",
                    hint=f"mediaproc add {capability}",
                )
            package_ids = [package_id]

        if not package_ids:
            return []

        resolved = resolve_scope(scope or self._default_scope())
        installer = await self._installer_for(resolved)
        updates: List[PluginUpdate] = []
        for package_id in package_ids:
            old_version = self._loader.version(package_id)
            logger.info(f"Upgrading {package_id} with {installer.name} ({resolved.value})")
            result = await installer.upgrade(package_id, resolved, version=version)
            if not result.success:
                raise InstallFailure(
                    package_id,
                    returncode=result.returncode,
                    action="upgrade",
                    diagnostics=result.output,
                    hint=installer.manual_hint(package_id, action="upgrade"),
                )
            self._loader.refresh()
            updates.append(PluginUpdate(package_id, old_version, self._loader.version(package_id)))
        return updates
