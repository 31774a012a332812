"""Unit tests for the auxiliary tool wrappers."""

from unittest.mock import MagicMock, patch

from gentup.portage.tools import (
    KERNELS_TO_KEEP,
    eclean_kernel,
    news_count,
    revdep_is_consistent,
)
from gentup.utils.shell import CommandResult


class TestNewsCount:
    """Tests for news_count function."""

    @patch("gentup.portage.tools.run_command")
    def test_parses_count(self, mock_run: MagicMock) -> None:
        """The number printed by eselect is returned."""
        mock_run.return_value = CommandResult(stdout="2\n", stderr="", returncode=0)

        assert news_count() == 2

    @patch("gentup.portage.tools.run_command")
    def test_failure_counts_as_none(self, mock_run: MagicMock) -> None:
        """A failing eselect reports no news."""
        mock_run.return_value = CommandResult(stdout="", stderr="boom", returncode=1)

        assert news_count() == 0

    @patch("gentup.portage.tools.run_command")
    def test_garbage_counts_as_none(self, mock_run: MagicMock) -> None:
        """Unparseable output reports no news."""
        mock_run.return_value = CommandResult(stdout="many\n", stderr="", returncode=0)

        assert news_count() == 0


class TestRevdep:
    """Tests for revdep-rebuild output checks."""

    def test_consistent(self) -> None:
        """The all-clear line is recognised."""
        output = " * Checking dynamic linking consistency\n Your system is consistent\n"

        assert revdep_is_consistent(output) is True

    def test_broken(self) -> None:
        """Output without the all-clear line means broken links."""
        output = " * Broken files found:\n /usr/lib64/libold.so.1\n"

        assert revdep_is_consistent(output) is False


class TestEcleanKernel:
    """Tests for eclean_kernel function."""

    @patch("gentup.portage.tools.run_interactive", return_value=0)
    def test_keeps_newest_kernels(self, mock_run: MagicMock) -> None:
        """eclean-kernel is told how many kernels to keep."""
        eclean_kernel()

        mock_run.assert_called_once_with(["eclean-kernel", "--num", str(KERNELS_TO_KEEP)])
