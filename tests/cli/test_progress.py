"""Tests for progress indicator module."""

import io

import pytest
from unittest.mock import Mock, patch, MagicMock

from rich.console import Console

from mediaproc_cli.cli.progress import (
    ProvisioningProgress,
    spinner,
    status_message,
    step_complete,
    step_failed,
)
from mediaproc_cli.plugins.provisioning import ProvisioningRequest, ProvisionState

S = ProvisionState


def _console() -> Console:
    return Console(file=io.StringIO(), width=120, force_terminal=False)


def _walk(progress: ProvisioningProgress, states: list) -> ProvisioningRequest:
    """Feed states to the progress display the way the provisioner does."""
    request = ProvisioningRequest("video", "mediaproc-video", installer="uv")
    for state in states:
        request.current_state = state
        request.history.append(state)
        progress.update(request)
    return request


class TestSpinner:
    """Test spinner context manager."""

    def test_spinner_context_manager(self) -> None:
        """Test spinner context manager."""
        mock_progress = MagicMock()
        mock_progress.__enter__ = Mock(return_value=mock_progress)
        mock_progress.__exit__ = Mock(return_value=None)

        with patch("mediaproc_cli.cli.progress.Progress", return_value=mock_progress):
            with spinner("Removing mediaproc-video..."):
                pass

        mock_progress.__enter__.assert_called_once()
        mock_progress.__exit__.assert_called_once()
        mock_progress.add_task.assert_called_once_with(
            description="Removing mediaproc-video...", total=None
        )


class TestStatusMessages:
    """Test status and step lines."""

    @pytest.mark.parametrize("status,icon", [("success", "✓"), ("error", "✗"), ("unknown", "ℹ")])
    def test_status_message(self, status: str, icon: str) -> None:
        """Test status message."""
        out = _console()
        status_message("Plugin ready", status=status, console_instance=out)
        assert f"{icon} Plugin ready" in out.file.getvalue()

    def test_step_complete_with_details(self) -> None:
        """Test step complete with details."""
        out = _console()
        step_complete("Installed mediaproc-video", "uv", console_instance=out)
        assert "✓ Installed mediaproc-video uv" in out.file.getvalue()

    def test_step_failed_with_reason(self) -> None:
        """Test step failed with reason."""
        out = _console()
        step_failed("Load mediaproc-video", "no register", console_instance=out)
        assert "✗ Load mediaproc-video - no register" in out.file.getvalue()


class TestProvisioningProgress:
    """Test the display that follows provisioning transitions."""

    def test_full_install(self) -> None:
        """Test full install."""
        out = _console()

        with ProvisioningProgress(console_instance=out) as progress:
            _walk(progress, [S.NOT_INSTALLED, S.INSTALLING, S.INSTALLED_NOT_LOADED, S.LOADING, S.LOADED])

        text = out.file.getvalue()
        assert "mediaproc-video is not installed" in text
        assert "Installed mediaproc-video" in text
        assert "Loaded mediaproc-video" in text

    def test_already_loaded_prints_nothing(self) -> None:
        """Test already loaded prints nothing."""
        out = _console()

        with ProvisioningProgress(console_instance=out) as progress:
            _walk(progress, [S.LOADED])

        assert out.file.getvalue().strip() == ""

    def test_install_failure(self) -> None:
        """Test install failure."""
        out = _console()

        with ProvisioningProgress(console_instance=out) as progress:
            _walk(progress, [S.NOT_INSTALLED, S.INSTALLING, S.FAILED])

        text = out.file.getvalue()
        assert "Install mediaproc-video" in text
        assert "Loaded" not in text

    def test_load_failure(self) -> None:
        """Test load failure."""
        out = _console()

        with ProvisioningProgress(console_instance=out) as progress:
            _walk(progress, [S.INSTALLED_NOT_LOADED, S.LOADING, S.FAILED])

        text = out.file.getvalue()
        assert "Load mediaproc-video" in text
        assert "Installed" not in text

    def test_quiet(self) -> None:
        """Test quiet mode prints nothing."""
        out = _console()

        with ProvisioningProgress(console_instance=out, quiet=True) as progress:
            _walk(progress, [S.NOT_INSTALLED, S.INSTALLING, S.INSTALLED_NOT_LOADED, S.LOADING, S.LOADED])

        assert out.file.getvalue() == ""
