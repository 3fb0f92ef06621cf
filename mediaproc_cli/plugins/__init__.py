"""Plugin provisioning and capability routing.

Capabilities (image, video, audio, ...) are provided by separately
installable plugin packages. The registry maps names to packages, the
provisioner installs and loads them on demand, and the router sends
universal commands to the plugin that handles a file type.
"""

from mediaproc_cli.plugins.installer import (
    Installer,
    InstallResult,
    InstallScope,
    PipInstaller,
    UvInstaller,
    select_installer,
)
from mediaproc_cli.plugins.loader import PluginLoader
from mediaproc_cli.plugins.provisioning import (
    PluginUpdate,
    ProvisioningRequest,
    ProvisionState,
    Provisioner,
)
from mediaproc_cli.plugins.registry import (
    CapabilityDescriptor,
    CapabilityRegistry,
    Category,
    get_registry,
)
from mediaproc_cli.plugins.router import (
    CapabilityRouter,
    ExtensionClassification,
    MediaDomain,
    classify,
    translate_options,
)
from mediaproc_cli.plugins.runtime import LoadedPluginRecord, PluginRuntime
from mediaproc_cli.plugins.surface import CommandSurface

__all__ = [
    "CapabilityDescriptor",
    "CapabilityRegistry",
    "CapabilityRouter",
    "Category",
    "CommandSurface",
    "ExtensionClassification",
    "Installer",
    "InstallResult",
    "InstallScope",
    "LoadedPluginRecord",
    "MediaDomain",
    "PipInstaller",
    "PluginLoader",
    "PluginRuntime",
    "PluginUpdate",
    "ProvisioningRequest",
    "ProvisionState",
    "Provisioner",
    "UvInstaller",
    "classify",
    "get_registry",
    "select_installer",
    "translate_options",
]
