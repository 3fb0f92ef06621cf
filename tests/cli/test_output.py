"""Tests for output formatting module."""

import io
from pathlib import Path

from rich.console import Console

from mediaproc_cli.cli.output import format_path, print_key_value, print_list, print_table


def _console() -> Console:
    return Console(file=io.StringIO(), width=120, force_terminal=False)


class TestPrintTable:
    """Test print_table."""

    def test_print_basic_table(self) -> None:
        """Test print basic table."""
        out = _console()
        rows = [
            {"name": "image", "package": "mediaproc-image", "loaded": True},
            {"name": "video", "package": "mediaproc-video", "loaded": False},
        ]

        print_table(rows, ["name", "package", "loaded"], title="Plugins", console_instance=out)

        text = out.file.getvalue()
        assert "Plugins" in text
        assert "Package" in text
        assert "mediaproc-image" in text
        assert "yes" in text and "no" in text

    def test_none_rendered_empty(self) -> None:
        """Test none rendered empty."""
        out = _console()

        print_table([{"name": "image", "version": None}], ["name", "version"], console_instance=out)

        assert "None" not in out.file.getvalue()


class TestPrintKeyValue:
    """Test print_key_value."""

    def test_skips_empty_and_joins_lists(self) -> None:
        """Test skips empty and joins lists."""
        out = _console()

        print_key_value(
            {"Category": "core", "Requires": ["FFmpeg", "libvips"], "Alias of": None},
            title="mediaproc-video",
            console_instance=out,
        )

        text = out.file.getvalue()
        assert "mediaproc-video" in text
        assert "Category : core" in text
        assert "FFmpeg, libvips" in text
        assert "Alias of" not in text


class TestPrintList:
    """Test print_list."""

    def test_print_basic_list(self) -> None:
        """Test print basic list."""
        out = _console()

        print_list(["mediaproc image resize", "mediaproc image convert"], title="Examples", console_instance=out)

        text = out.file.getvalue()
        assert "Examples" in text
        assert "• mediaproc image resize" in text


class TestFormatPath:
    """Test format_path."""

    def test_relative_to_base(self, tmp_path: Path) -> None:
        """Test relative to base."""
        assert format_path(tmp_path / "a" / "b.jpg", relative_to=tmp_path) == str(Path("a") / "b.jpg")

    def test_outside_base(self, tmp_path: Path) -> None:
        """Test outside base."""
        other = Path("/definitely/elsewhere.jpg")
        assert format_path(other, relative_to=tmp_path) == str(other)
