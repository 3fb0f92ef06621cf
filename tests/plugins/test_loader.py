"""Tests for locating plugin register functions."""

import sys
import types

import pytest

from mediaproc_cli.cli.error_handler import PluginContractViolation
from mediaproc_cli.plugins.loader import PluginLoader, module_name, normalize_name


def _register(surface) -> None:
    pass


class TestNames:
    """Tests for package name helpers."""

    def test_module_name(self) -> None:
        """Test module name."""
        assert module_name("mediaproc-image") == "mediaproc_image"
        assert module_name("mediaproc-3d") == "mediaproc_3d"
        assert module_name("acme.media-tools") == "acme_media_tools"

    def test_normalize_name(self) -> None:
        """Test normalize name."""
        assert normalize_name("MediaProc_Image") == "mediaproc-image"
        assert normalize_name("mediaproc..image") == "mediaproc-image"


class TestBuiltins:
    """Tests for plugins shipped with mediaproc."""

    def test_builtin_is_installed(self) -> None:
        """Test builtin is installed."""
        loader = PluginLoader(builtins={"mediaproc-image": _register})

        assert loader.is_builtin("mediaproc-image")
        assert loader.is_installed("mediaproc-image")
        assert loader.version("mediaproc-image") is None

    def test_builtin_register_returned(self) -> None:
        """Test builtin register returned."""
        loader = PluginLoader(builtins={"mediaproc-image": _register})
        assert loader.load_register("mediaproc-image") is _register


class TestInstalledPackages:
    """Tests against the real package metadata."""

    def test_missing_package(self) -> None:
        """Test missing package."""
        loader = PluginLoader()

        assert not loader.is_installed("mediaproc-does-not-exist")
        assert loader.version("mediaproc-does-not-exist") is None

    def test_installed_distribution(self) -> None:
        """Test installed distribution."""
        loader = PluginLoader()
        assert loader.is_installed("click")
        assert loader.version("click")


class TestModuleFallback:
    """Tests for the module-name fallback when no entry point exists."""

    def test_module_register(self, monkeypatch) -> None:
        """Test module register."""
        module = types.ModuleType("mediaproc_fakeplugin")
        module.register = _register  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "mediaproc_fakeplugin", module)

        assert PluginLoader().load_register("mediaproc-fakeplugin") is _register

    def test_module_without_register(self, monkeypatch) -> None:
        """Test module without register."""
        module = types.ModuleType("mediaproc_fakeplugin")
        monkeypatch.setitem(sys.modules, "mediaproc_fakeplugin", module)

        with pytest.raises(PluginContractViolation, match="register"):
            PluginLoader().load_register("mediaproc-fakeplugin")

    def test_register_not_callable(self, monkeypatch) -> None:
        """Test register not callable."""
        module = types.ModuleType("mediaproc_fakeplugin")
        module.register = "not a function"  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "mediaproc_fakeplugin", module)

        with pytest.raises(PluginContractViolation):
            PluginLoader().load_register("mediaproc-fakeplugin")

    def test_import_failure(self) -> None:
        """Test import failure."""
        with pytest.raises(PluginContractViolation) as exc_info:
            PluginLoader().load_register("mediaproc-does-not-exist")

        error = exc_info.value
        assert error.package_id == "mediaproc-does-not-exist"
        assert "mediaproc_does_not_exist" in error.message
        assert isinstance(error.cause, ImportError)
