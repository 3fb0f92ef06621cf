"""Routing universal commands to the plugin that handles a file type.

``classify`` maps a file extension to a media domain, ``route`` picks the
capability for an input/output pair, and ``dispatch`` re-invokes the
loaded plugin's own subcommand with a translated argument list.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Union

from mediaproc_cli.cli.error_handler import (
    CLICK_ABORT_ERRORS,
    CLICK_ERRORS,
    CLICK_EXIT_ERRORS,
    DispatchError,
    PluginCommandError,
    UnsupportedFormat,
)
from mediaproc_cli.plugins.registry import CapabilityDescriptor, CapabilityRegistry
from mediaproc_cli.plugins.surface import CommandSurface

logger = logging.getLogger(__name__)


class MediaDomain(str, Enum):
    """Kind of media a file holds."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    MODEL = "model"
    UNKNOWN = "unknown"


EXTENSIONS: Dict[MediaDomain, FrozenSet[str]] = {
    MediaDomain.IMAGE: frozenset(
        {"jpg", "jpeg", "png", "webp", "gif", "bmp", "tiff", "avif", "heif", "svg"}
    ),
    MediaDomain.VIDEO: frozenset(
        {"mp4", "webm", "mkv", "avi", "mov", "flv", "wmv", "m4v", "mpg", "mpeg"}
    ),
    MediaDomain.AUDIO: frozenset({"mp3", "wav", "ogg", "flac", "aac", "m4a", "wma", "opus"}),
    MediaDomain.DOCUMENT: frozenset({"pdf", "docx", "doc", "pptx", "ppt", "xlsx", "xls", "epub"}),
    MediaDomain.MODEL: frozenset({"gltf", "glb", "obj", "fbx", "usdz"}),
}

# Capability short name that handles each domain
DOMAIN_CAPABILITIES: Dict[MediaDomain, str] = {
    MediaDomain.IMAGE: "image",
    MediaDomain.VIDEO: "video",
    MediaDomain.AUDIO: "audio",
    MediaDomain.DOCUMENT: "document",
    MediaDomain.MODEL: "3d",
}

# Plugin subcommand that performs `mediaproc optimize` for each domain
OPTIMIZE_VERBS: Dict[MediaDomain, str] = {
    MediaDomain.IMAGE: "optimize",
    MediaDomain.VIDEO: "compress",
    MediaDomain.AUDIO: "convert",
    MediaDomain.DOCUMENT: "compress",
    MediaDomain.MODEL: "optimize",
}

DOMAIN_LABELS: Dict[MediaDomain, str] = {
    MediaDomain.IMAGE: "Images",
    MediaDomain.VIDEO: "Videos",
    MediaDomain.AUDIO: "Audio",
    MediaDomain.DOCUMENT: "Documents",
    MediaDomain.MODEL: "3D Models",
}

# Options forwarded to plugin subcommands; anything else is dropped
PASSTHROUGH_OPTIONS = ("output", "quality", "aggressive", "lossless", "force", "verbose")


@dataclass(frozen=True)
class ExtensionClassification:
    """Extension of a path and the media domain it belongs to."""

    extension: str
    domain: MediaDomain


def extension_of(path: Union[str, Path]) -> str:
    """Lowercased extension without the dot (``"Photo.JPG"`` -> ``"jpg"``)."""
    return Path(path).suffix.lower().lstrip(".")


def classify(path: Union[str, Path]) -> ExtensionClassification:
    """Classify a path by its extension.

    Unknown or missing extensions give ``MediaDomain.UNKNOWN``; this never
    raises.
    """
    ext = extension_of(path)
    for domain, extensions in EXTENSIONS.items():
        if ext in extensions:
            return ExtensionClassification(extension=ext, domain=domain)
    return ExtensionClassification(extension=ext, domain=MediaDomain.UNKNOWN)


def supported_formats() -> List[str]:
    """One line per domain listing its extensions."""
    return [
        f"{DOMAIN_LABELS[domain] + ':':<11}{', '.join(sorted(exts))}"
        for domain, exts in EXTENSIONS.items()
    ]


def translate_options(options: Mapping[str, Any]) -> List[str]:
    """Turn an options mapping into CLI flags for a plugin subcommand.

    Only the options in ``PASSTHROUGH_OPTIONS`` are forwarded, in that
    order. ``True`` becomes a bare flag; ``False`` and ``None`` are dropped.

    Example:
        translate_options({"quality": 85, "force": True, "dry_run": True})
        # ["--quality", "85", "--force"]
    """
    flags: List[str] = []
    for name in PASSTHROUGH_OPTIONS:
        value = options.get(name)
        if value is None or value is False:
            continue
        flag = "--" + name.replace("_", "-")
        if value is True:
            flags.append(flag)
        else:
            flags.extend([flag, str(value)])
    return flags


class CapabilityRouter:
    """Picks capabilities for files and dispatches to plugin commands.

    Example:
        router = CapabilityRouter(registry, surface)
        descriptor = router.route("photo.png", "photo.webp")
        # ... provisioner.ensure(descriptor.short_name) ...
        router.dispatch(descriptor, ["convert", "photo.png", "photo.webp"], {"quality": 85})
    """

    def __init__(self, registry: CapabilityRegistry, surface: CommandSurface) -> None:
        self._registry = registry
        self._surface = surface

    def route_domain(self, domain: MediaDomain) -> CapabilityDescriptor:
        """Descriptor of the capability that handles a known domain."""
        return self._registry.descriptor(DOMAIN_CAPABILITIES[domain])

    def route(
        self,
        input_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
    ) -> CapabilityDescriptor:
        """Choose the capability for an input (and optional output) file.

        The input's domain wins; the output's is used when the input's
        extension is not recognized.

        Raises:
            UnsupportedFormat: If neither extension is recognized
        """
        source = classify(input_path)
        if source.domain is not MediaDomain.UNKNOWN:
            return self.route_domain(source.domain)

        if output_path is not None:
            target = classify(output_path)
            if target.domain is not MediaDomain.UNKNOWN:
                return self.route_domain(target.domain)
            formats = f".{source.extension or '?'} -> .{target.extension or '?'}"
        else:
            formats = f".{source.extension or '?'}"

        raise UnsupportedFormat(
            f"Unsupported file format: {formats}",
            details={"supported": "; ".join(supported_formats())},
        )

    def dispatch(
        self,
        descriptor: CapabilityDescriptor,
        args: Sequence[str],
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Re-invoke a loaded plugin's subcommand.

        Runs ``<short_name> <args...> <translated options>`` against the
        command registered by the plugin.

        Args:
            descriptor: Capability whose plugin is loaded
            args: Subcommand name followed by its positional arguments
            options: Options to translate with ``translate_options``

        Raises:
            DispatchError: If the plugin command or subcommand is missing
            PluginCommandError: If the plugin subcommand fails
        """
        command_name = self._registry.command_name(descriptor.package_id)
        command = self._surface.get_command(command_name)
        if command is None:
            raise DispatchError(
                f"Plugin command not found: {command_name}",
                details={"plugin": descriptor.package_id},
            )

        argv = [*args, *translate_options(options or {})]
        # Groups from click and from typer's bundled click both expose `commands`
        subcommands = getattr(command, "commands", None)
        if argv and isinstance(subcommands, Mapping):
            if argv[0] not in subcommands:
                raise DispatchError(
                    f"Plugin command not found: {command_name} {argv[0]}",
                    details={"plugin": descriptor.package_id},
                )

        invocation = " ".join([command_name, *args[:1]])
        logger.info(f"Dispatching: {command_name} {' '.join(argv)}")
        try:
            result = command.main(
                args=argv,
                prog_name=f"mediaproc {command_name}",
                standalone_mode=False,
            )
        except CLICK_EXIT_ERRORS as e:
            result = e.exit_code
        except CLICK_ABORT_ERRORS as e:
            if isinstance(e.__cause__ or e.__context__, KeyboardInterrupt):
                raise KeyboardInterrupt from e
            raise PluginCommandError(f"{invocation} was aborted") from e
        except CLICK_ERRORS as e:
            raise PluginCommandError(
                f"{invocation} failed: {e.format_message()}",
                details={"plugin": descriptor.package_id},
            ) from e

        if isinstance(result, int) and result != 0:
            raise PluginCommandError(
                f"{invocation} exited with status {result}",
                details={"plugin": descriptor.package_id},
            )
