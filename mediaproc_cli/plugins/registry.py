"""Capability registry mapping short names to plugin packages.

The registry lets users type ``mediaproc add image`` instead of
``mediaproc add mediaproc-image``. It is built once from a fixed table
and never mutated, so resolution does not depend on the environment.

Three kinds of plugin package are recognised:
- Official: listed in the table below (``mediaproc-image``)
- Community: any other ``mediaproc-<name>`` distribution
- Third-party: anything else; these cannot be resolved by short name
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from mediaproc_cli.cli.error_handler import UnknownCapability

# Distribution name prefix shared by official and community plugins
PACKAGE_PREFIX = "mediaproc-"

_VALID_NAME = re.compile(r"^[A-Za-z0-9_.\-]+$")


class Category(str, Enum):
    """Grouping used when listing plugins."""

    CORE = "core"
    ADVANCED = "advanced"
    EXPERIMENTAL = "experimental"


@dataclass(frozen=True)
class CapabilityDescriptor:
    """A registry entry.

    Attributes:
        short_name: Name the user types (``image``, ``doc``)
        package_id: Installable distribution name
        category: Display group
        description: One-line summary
        system_requirements: External tools the plugin needs, in order
        alias_of: Package id this entry aliases, or None for canonical entries
        keywords: Search terms
    """

    short_name: str
    package_id: str
    category: Category
    description: str = ""
    system_requirements: Tuple[str, ...] = ()
    alias_of: Optional[str] = None
    keywords: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_alias(self) -> bool:
        """Whether this entry is an alternate name for another entry."""
        return self.alias_of is not None


def _entry(
    name: str,
    description: str,
    category: Category,
    requirements: Tuple[str, ...] = (),
    keywords: Tuple[str, ...] = (),
) -> CapabilityDescriptor:
    return CapabilityDescriptor(
        short_name=name,
        package_id=f"{PACKAGE_PREFIX}{name}",
        category=category,
        description=description,
        system_requirements=requirements,
        keywords=keywords,
    )


def _alias(name: str, target: CapabilityDescriptor) -> CapabilityDescriptor:
    return CapabilityDescriptor(
        short_name=name,
        package_id=target.package_id,
        category=target.category,
        description=f"Alias for {target.short_name} plugin",
        alias_of=target.package_id,
        keywords=(target.short_name, "alias"),
    )


_IMAGE = _entry(
    "image",
    "Image processing (resize, convert, filters, effects)",
    Category.CORE,
    ("Pillow (auto-installed)",),
    ("image", "photo", "resize", "convert", "filter", "compress"),
)
_VIDEO = _entry(
    "video",
    "Video processing (transcode, compress, extract)",
    Category.CORE,
    ("FFmpeg",),
    ("video", "movie", "transcode", "compress", "extract", "trim"),
)
_AUDIO = _entry(
    "audio",
    "Audio processing (convert, normalize, extract)",
    Category.CORE,
    ("FFmpeg",),
    ("audio", "music", "sound", "convert", "normalize", "extract"),
)
_DOCUMENT = _entry(
    "document",
    "PDF/DOCX/PPTX/EPUB processing, OCR, compression",
    Category.CORE,
    ("Ghostscript", "Tesseract OCR", "Poppler"),
    ("pdf", "document", "docx", "ocr", "compress"),
)
_ANIMATION = _entry(
    "animation",
    "GIF/APNG/WebP animations, Lottie, SVG animations",
    Category.CORE,
    ("FFmpeg",),
    ("gif", "animation", "webp", "lottie", "animated"),
)
_MODEL = _entry(
    "3d",
    "3D models (GLTF, GLB, OBJ), textures, HDRI, AR/VR assets",
    Category.ADVANCED,
    ("gltf-transform",),
    ("3d", "model", "gltf", "glb", "texture", "ar", "vr"),
)
_METADATA = _entry(
    "metadata",
    "EXIF cleanup, GPS removal, codec inspection, compliance checks",
    Category.CORE,
    ("ExifTool",),
    ("metadata", "exif", "inspect", "compliance"),
)
_STREAM = _entry(
    "stream",
    "HLS/DASH packaging, chunking, encryption, manifests",
    Category.ADVANCED,
    ("FFmpeg", "Shaka Packager (optional)"),
    ("stream", "hls", "dash", "manifest", "packaging"),
)
_AI = _entry(
    "ai",
    "Auto-captioning, scene detection, face blur, background removal, speech-to-text",
    Category.EXPERIMENTAL,
    ("ONNX Runtime (optional)", "Whisper (optional)"),
    ("ai", "ml", "caption", "detection", "blur", "transcribe"),
)
_PIPELINE = _entry(
    "pipeline",
    "Declarative YAML-based media processing workflows",
    Category.ADVANCED,
    (),
    ("pipeline", "workflow", "batch", "yaml"),
)

# Declaration order is display order
DEFAULT_ENTRIES: Tuple[CapabilityDescriptor, ...] = (
    _IMAGE,
    _VIDEO,
    _AUDIO,
    _DOCUMENT,
    _alias("doc", _DOCUMENT),
    _ANIMATION,
    _alias("anim", _ANIMATION),
    _MODEL,
    _alias("spatial", _MODEL),
    _METADATA,
    _alias("meta", _METADATA),
    _alias("inspect", _METADATA),
    _STREAM,
    _alias("streaming", _STREAM),
    _AI,
    _alias("ml", _AI),
    _PIPELINE,
)


class CapabilityRegistry:
    """Immutable catalog of installable capabilities.

    Example:
        registry = CapabilityRegistry()
        registry.resolve("doc")         # "mediaproc-document"
        registry.resolve("mediaproc-x")  # literal package ids pass through
        registry.resolve("bogus")       # raises UnknownCapability
    """

    def __init__(self, entries: Tuple[CapabilityDescriptor, ...] = DEFAULT_ENTRIES) -> None:
        """Initialize the registry.

        Args:
            entries: Registry table in display order
        """
        self._entries: Tuple[CapabilityDescriptor, ...] = tuple(entries)
        self._by_name: Dict[str, CapabilityDescriptor] = {}
        self._by_package: Dict[str, CapabilityDescriptor] = {}

        for entry in self._entries:
            name = entry.short_name.lower()
            if name in self._by_name:
                raise ValueError(f"Duplicate capability name: {entry.short_name}")
            self._by_name[name] = entry
            if not entry.is_alias:
                self._by_package.setdefault(entry.package_id, entry)

    @property
    def entries(self) -> Tuple[CapabilityDescriptor, ...]:
        """All entries, aliases included."""
        return self._entries

    @staticmethod
    def is_package_id(name: str) -> bool:
        """Check whether a name is already a full plugin package id."""
        return name.startswith(PACKAGE_PREFIX) and len(name) > len(PACKAGE_PREFIX)

    def resolve(self, name: str) -> str:
        """Resolve a short name, alias, or package id to a package id.

        Args:
            name: What the user typed

        Returns:
            The installable package id

        Raises:
            UnknownCapability: If the name is empty, malformed, or unknown
        """
        trimmed = (name or "").strip()
        if not trimmed or not _VALID_NAME.match(trimmed):
            raise UnknownCapability(name or "<empty>")

        lowered = trimmed.lower()
        if self.is_package_id(lowered):
            return lowered

        entry = self._by_name.get(lowered)
        if entry is None:
            raise UnknownCapability(trimmed)
        return entry.package_id

    def is_valid(self, name: str) -> bool:
        """Check whether a name would resolve, without raising."""
        if not isinstance(name, str):
            return False
        trimmed = name.strip().lower()
        if not trimmed or not _VALID_NAME.match(trimmed):
            return False
        return self.is_package_id(trimmed) or trimmed in self._by_name

    def descriptor(self, short_name: str) -> CapabilityDescriptor:
        """Get the entry for a short name or alias.

        Raises:
            UnknownCapability: If the name is not in the table
        """
        entry = self._by_name.get((short_name or "").strip().lower())
        if entry is None:
            raise UnknownCapability(short_name)
        return entry

    def get_entry(self, package_id: str) -> Optional[CapabilityDescriptor]:
        """Get the canonical (non-alias) entry for a package id."""
        return self._by_package.get(package_id)

    def list_by_category(self) -> Dict[Category, List[CapabilityDescriptor]]:
        """Group canonical entries by category in declaration order.

        Every category is present, even when empty. Display only.
        """
        grouped: Dict[Category, List[CapabilityDescriptor]] = {c: [] for c in Category}
        for entry in self.all_plugins():
            grouped[entry.category].append(entry)
        return grouped

    def all_plugins(self) -> List[CapabilityDescriptor]:
        """Canonical entries, one per package, in declaration order."""
        return list(self._by_package.values())

    def official_packages(self) -> List[str]:
        """Package ids of every official plugin."""
        return list(self._by_package.keys())

    def search(self, keyword: str) -> List[CapabilityDescriptor]:
        """Find plugins whose name, description, or keywords contain keyword."""
        needle = keyword.lower()
        results: List[CapabilityDescriptor] = []
        seen = set()

        for entry in self._entries:
            if entry.package_id in seen:
                continue
            haystack = [entry.short_name, entry.description, *entry.keywords]
            if any(needle in item.lower() for item in haystack):
                results.append(self._by_package.get(entry.package_id, entry))
                seen.add(entry.package_id)

        return results

    def plugin_type(self, package_id: str) -> str:
        """Classify a package id as an official or a community plugin."""
        return "official" if package_id in self._by_package else "community"

    @staticmethod
    def command_name(package_id: str) -> str:
        """Top-level command a plugin registers (``mediaproc-image`` -> ``image``)."""
        if package_id.startswith(PACKAGE_PREFIX):
            return package_id[len(PACKAGE_PREFIX):]
        return package_id


_default_registry: Optional[CapabilityRegistry] = None


def get_registry() -> CapabilityRegistry:
    """Get the default capability registry.

    The table is immutable, so a single shared instance is safe.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = CapabilityRegistry()
    return _default_registry
