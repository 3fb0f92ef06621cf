"""Tests for the capability registry."""

import pytest

from mediaproc_cli.cli.error_handler import UnknownCapability
from mediaproc_cli.cli.exit_codes import ExitCode
from mediaproc_cli.plugins.registry import (
    DEFAULT_ENTRIES,
    PACKAGE_PREFIX,
    CapabilityDescriptor,
    CapabilityRegistry,
    Category,
    get_registry,
)


@pytest.fixture
def registry() -> CapabilityRegistry:
    return CapabilityRegistry()


class TestResolve:
    """Tests for name resolution."""

    def test_resolve_short_name(self, registry) -> None:
        """Test resolve short name."""
        assert registry.resolve("image") == "mediaproc-image"

    def test_resolve_is_deterministic(self, registry) -> None:
        """Test resolve is deterministic."""
        for entry in DEFAULT_ENTRIES:
            first = registry.resolve(entry.short_name)
            assert registry.resolve(entry.short_name) == first

    def test_alias_resolves_to_same_package(self, registry) -> None:
        """Test alias resolves to same package."""
        assert registry.resolve("doc") == registry.resolve("document")
        assert registry.resolve("anim") == registry.resolve("animation")
        assert registry.resolve("spatial") == registry.resolve("3d")
        assert registry.resolve("meta") == registry.resolve("inspect") == registry.resolve("metadata")

    def test_resolve_is_case_insensitive(self, registry) -> None:
        """Test resolve is case insensitive."""
        assert registry.resolve("  Video ") == "mediaproc-video"

    def test_resolve_package_id_passes_through(self, registry) -> None:
        """Test resolve package id passes through."""
        assert registry.resolve("mediaproc-image") == "mediaproc-image"
        assert registry.resolve("mediaproc-watermark") == "mediaproc-watermark"

    def test_resolve_unknown_raises(self, registry) -> None:
        """Test resolve unknown raises."""
        with pytest.raises(UnknownCapability) as exc_info:
            registry.resolve("bogus-name")

        assert exc_info.value.name == "bogus-name"
        assert exc_info.value.exit_code == ExitCode.USER_INPUT
        assert "bogus-name" in exc_info.value.message

    @pytest.mark.parametrize("name", ["", "   ", "image/../x", "video;rm", "mediaproc-"])
    def test_resolve_malformed_raises(self, registry, name) -> None:
        """Test resolve malformed raises."""
        with pytest.raises(UnknownCapability):
            registry.resolve(name)


class TestIsValid:
    """Tests for the is_valid predicate."""

    def test_known_names(self, registry) -> None:
        """Test known names."""
        assert registry.is_valid("image")
        assert registry.is_valid("doc")
        assert registry.is_valid("mediaproc-anything")

    def test_unknown_names(self, registry) -> None:
        """Test unknown names."""
        assert not registry.is_valid("bogus")
        assert not registry.is_valid("")
        assert not registry.is_valid(None)  # type: ignore[arg-type]


class TestListing:
    """Tests for display helpers."""

    def test_list_by_category_has_every_category(self, registry) -> None:
        """Test list by category has every category."""
        grouped = registry.list_by_category()
        assert list(grouped) == list(Category)

    def test_list_by_category_keeps_declaration_order(self, registry) -> None:
        """Test list by category keeps declaration order."""
        core = [e.short_name for e in registry.list_by_category()[Category.CORE]]
        assert core == ["image", "video", "audio", "document", "animation", "metadata"]

    def test_list_by_category_excludes_aliases(self, registry) -> None:
        """Test list by category excludes aliases."""
        for entries in registry.list_by_category().values():
            assert not any(e.is_alias for e in entries)

    def test_all_plugins_one_per_package(self, registry) -> None:
        """Test all plugins one per package."""
        packages = [e.package_id for e in registry.all_plugins()]
        assert len(packages) == len(set(packages))
        assert registry.official_packages() == packages

    def test_search_matches_keywords(self, registry) -> None:
        """Test search matches keywords."""
        results = registry.search("pdf")
        assert [e.short_name for e in results] == ["document"]

    def test_search_returns_canonical_entry_for_alias(self, registry) -> None:
        """Test search returns canonical entry for alias."""
        results = registry.search("spatial")
        assert [e.short_name for e in results] == ["3d"]

    def test_search_no_match(self, registry) -> None:
        """Test search no match."""
        assert registry.search("nothing-matches-this") == []


class TestLookup:
    """Tests for descriptor lookups."""

    def test_descriptor(self, registry) -> None:
        """Test descriptor."""
        entry = registry.descriptor("3d")
        assert entry.package_id == "mediaproc-3d"
        assert entry.category == Category.ADVANCED
        assert entry.system_requirements == ("gltf-transform",)

    def test_descriptor_unknown(self, registry) -> None:
        """Test descriptor unknown."""
        with pytest.raises(UnknownCapability):
            registry.descriptor("bogus")

    def test_get_entry(self, registry) -> None:
        """Test get entry."""
        assert registry.get_entry("mediaproc-document").short_name == "document"
        assert registry.get_entry("mediaproc-unknown") is None

    def test_plugin_type(self, registry) -> None:
        """Test plugin type."""
        assert registry.plugin_type("mediaproc-image") == "official"
        assert registry.plugin_type("mediaproc-watermark") == "community"

    def test_command_name(self) -> None:
        """Test command name."""
        assert CapabilityRegistry.command_name("mediaproc-image") == "image"
        assert CapabilityRegistry.command_name("other") == "other"

    def test_alias_is_alias(self, registry) -> None:
        """Test alias is alias."""
        assert registry.descriptor("doc").is_alias
        assert not registry.descriptor("document").is_alias


class TestConstruction:
    """Tests for building registries."""

    def test_duplicate_names_rejected(self) -> None:
        """Test duplicate names rejected."""
        entry = CapabilityDescriptor("x", f"{PACKAGE_PREFIX}x", Category.CORE)
        with pytest.raises(ValueError):
            CapabilityRegistry((entry, entry))

    def test_descriptors_are_immutable(self, registry) -> None:
        """Test descriptors are immutable."""
        with pytest.raises(AttributeError):
            registry.descriptor("image").package_id = "other"  # type: ignore[misc]

    def test_get_registry_singleton(self) -> None:
        """Test get registry singleton."""
        assert get_registry() is get_registry()
