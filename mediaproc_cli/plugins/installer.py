"""
Package manager abstraction for installing plugins.

Detects an available Python package manager (uv, then pip) and runs its
install/uninstall commands as subprocesses with output captured.
Detection is repeated on every invocation since the environment may
change between runs.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

# Seconds to wait for a `--version` check
VERSION_CHECK_TIMEOUT = 5.0


class InstallScope(str, Enum):
    """Where a plugin gets installed."""

    AUTO = "auto"
    GLOBAL = "global"
    LOCAL = "local"


def resolve_scope(scope: Optional[InstallScope | str]) -> InstallScope:
    """Turn AUTO (or None) into LOCAL.

    LOCAL installs into the environment of the running interpreter, so the
    plugin can be imported by this process. GLOBAL is an explicit request
    for a per-user install (`pip install --user`).
    """
    if scope is None:
        scope = InstallScope.AUTO
    scope = InstallScope(scope)
    if scope is InstallScope.AUTO:
        return InstallScope.LOCAL
    return scope


@dataclass
class InstallResult:
    """Outcome of a package manager invocation."""

    success: bool
    returncode: Optional[int]
    command: list[str] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


async def _run(argv: Sequence[str], timeout: Optional[float] = None) -> InstallResult:
    """Run a command and capture its output."""
    logger.debug(f"Running: {' '.join(argv)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return InstallResult(success=False, returncode=None, command=list(argv), stderr=str(e))

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return InstallResult(
            success=False,
            returncode=None,
            command=list(argv),
            stderr=f"Timed out after {timeout}s",
        )

    return InstallResult(
        success=process.returncode == 0,
        returncode=process.returncode,
        command=list(argv),
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


class Installer(ABC):
    """One package manager that can install and remove plugins."""

    name: str = ""

    # Whether GLOBAL (per-user) installs are supported
    supports_user_scope: bool = True

    @abstractmethod
    def command(self) -> list[str]:
        """Executable (plus fixed leading arguments) for this manager."""

    @abstractmethod
    def install_args(self, package_id: str, scope: InstallScope, upgrade: bool = False) -> list[str]:
        """Arguments that install (or upgrade) ``package_id``."""

    @abstractmethod
    def uninstall_args(self, package_id: str, scope: InstallScope) -> list[str]:
        """Arguments that remove ``package_id``."""

    @abstractmethod
    def manual_hint(self, package_id: str, action: str = "install") -> str:
        """Command a user can run by hand to install, upgrade or uninstall ``package_id``."""

    async def is_available(self) -> bool:
        """Run ``--version``; available if it exits 0 and prints something."""
        result = await _run([*self.command(), "--version"], timeout=VERSION_CHECK_TIMEOUT)
        available = result.success and bool(result.stdout.strip())
        logger.debug(f"Package manager {self.name}: {'available' if available else 'unavailable'}")
        return available

    async def install(self, package_id: str, scope: InstallScope = InstallScope.AUTO) -> InstallResult:
        """Install a plugin package."""
        resolved = resolve_scope(scope)
        return await _run([*self.command(), *self.install_args(package_id, resolved)])

    async def upgrade(
        self,
        package_id: str,
        scope: InstallScope = InstallScope.AUTO,
        version: Optional[str] = None,
    ) -> InstallResult:
        """Upgrade a plugin package to the latest (or a given) version."""
        resolved = resolve_scope(scope)
        spec = f"{package_id}=={version}" if version else package_id
        return await _run([*self.command(), *self.install_args(spec, resolved, upgrade=True)])

    async def uninstall(self, package_id: str, scope: InstallScope = InstallScope.AUTO) -> InstallResult:
        """Remove a plugin package."""
        resolved = resolve_scope(scope)
        return await _run([*self.command(), *self.uninstall_args(package_id, resolved)])


class UvInstaller(Installer):
    """uv, always targeting the running interpreter.

    uv has no per-user installs, so GLOBAL requests go to pip instead.
    """

    name = "uv"
    supports_user_scope = False

    def command(self) -> list[str]:
        return [shutil.which("uv") or "uv"]

    def install_args(self, package_id: str, scope: InstallScope, upgrade: bool = False) -> list[str]:
        flags = ["--upgrade"] if upgrade else []
        return ["pip", "install", *flags, "--python", sys.executable, package_id]

    def uninstall_args(self, package_id: str, scope: InstallScope) -> list[str]:
        return ["pip", "uninstall", "--python", sys.executable, package_id]

    def manual_hint(self, package_id: str, action: str = "install") -> str:
        if action == "upgrade":
            return f"uv pip install --upgrade {package_id}"
        return f"uv pip {action} {package_id}"


class PipInstaller(Installer):
    """pip of the running interpreter; always present as the fallback."""

    name = "pip"

    def command(self) -> list[str]:
        return [sys.executable, "-m", "pip"]

    def install_args(self, package_id: str, scope: InstallScope, upgrade: bool = False) -> list[str]:
        flags = ["--upgrade"] if upgrade else []
        if scope is InstallScope.GLOBAL:
            flags.append("--user")
        return ["install", *flags, package_id]

    def uninstall_args(self, package_id: str, scope: InstallScope) -> list[str]:
        return ["uninstall", "--yes", package_id]

    def manual_hint(self, package_id: str, action: str = "install") -> str:
        if action == "upgrade":
            return f"pip install --upgrade {package_id}"
        return f"pip {action} {package_id}"


# Detection order (fastest first, pip last as the universal default)
INSTALLER_PREFERENCE: tuple[type[Installer], ...] = (UvInstaller, PipInstaller)


def default_installers() -> list[Installer]:
    """Fresh installer instances in detection order."""
    return [installer_cls() for installer_cls in INSTALLER_PREFERENCE]


async def select_installer(
    preferred: Optional[str] = None,
    candidates: Optional[Sequence[Installer]] = None,
) -> Installer:
    """
    Pick the first package manager that answers a version check.

    Candidates are tried one at a time, in order. Nothing is cached.

    Args:
        preferred: Name of a manager to try first (from config)
        candidates: Managers to try (default: uv, pip)

    Returns:
        The selected installer; pip if none of the candidates respond
    """
    search_order = list(candidates) if candidates is not None else default_installers()
    if preferred:
        for installer in search_order:
            if installer.name == preferred:
                search_order.remove(installer)
                search_order.insert(0, installer)
                break
        else:
            logger.warning(f"Unknown package manager in config: {preferred}")

    for installer in search_order:
        if await installer.is_available():
            logger.info(f"Using package manager: {installer.name}")
            return installer

    logger.info("No package manager responded; falling back to pip")
    return PipInstaller()
