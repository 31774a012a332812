"""Unit tests for the interactive configuration editor."""

from unittest.mock import MagicMock

from gentup.core.config import GentupConfig
from gentup.core.setup import run_setup
from gentup.utils.prompt import Prompter

SAVE = 6
QUIT = 7


def _prompter(choices: list[int], answers: list[str] | None = None) -> MagicMock:
    prompter = MagicMock(spec=Prompter)
    prompter.choose.side_effect = choices
    prompter.ask.side_effect = answers or []
    return prompter


class TestRunSetup:
    """Tests for run_setup function."""

    def test_quit_returns_none(self) -> None:
        """Quitting discards every change."""
        prompter = _prompter([0, QUIT])

        assert run_setup(GentupConfig(), prompter) is None

    def test_toggles(self) -> None:
        """Menu entries 1 and 2 flip the cleanup and trim defaults."""
        prompter = _prompter([0, 1, SAVE])

        result = run_setup(GentupConfig(), prompter)

        assert result is not None
        assert result.cleanup_by_default is True
        assert result.trim_by_default is True

    def test_set_and_clear_email(self) -> None:
        """The email can be set, then cleared with 'none'."""
        prompter = _prompter([2, SAVE], ["admin@example.org"])
        result = run_setup(GentupConfig(), prompter)
        assert result is not None
        assert result.notify_email == "admin@example.org"

        prompter = _prompter([2, SAVE], ["none"])
        result = run_setup(result, prompter)
        assert result is not None
        assert result.notify_email is None

    def test_invalid_email_keeps_previous_value(self) -> None:
        """A rejected address leaves the configuration unchanged."""
        prompter = _prompter([2, SAVE], ["not-an-address"])

        result = run_setup(GentupConfig(notify_email="a@b.org"), prompter)

        assert result is not None
        assert result.notify_email == "a@b.org"

    def test_add_and_remove_packages(self) -> None:
        """Packages can be added and removed."""
        prompter = _prompter([3, 4, SAVE], ["app-misc/screen"])
        prompter.choose.side_effect = [3, 4, 0, SAVE]

        result = run_setup(GentupConfig(default_packages=["dev-vcs/git"]), prompter)

        assert result is not None
        assert result.default_packages == ["app-misc/screen"]

    def test_add_rejects_duplicates_and_bare_names(self) -> None:
        """Duplicates and atoms without a category are refused."""
        prompter = _prompter([3, 3, SAVE], ["dev-vcs/git", "git"])

        result = run_setup(GentupConfig(default_packages=["dev-vcs/git"]), prompter)

        assert result is not None
        assert result.default_packages == ["dev-vcs/git"]

    def test_set_interval(self) -> None:
        """The sync interval accepts whole hours within range."""
        prompter = _prompter([5, 5, 5, SAVE], ["abc", "0", "48"])

        result = run_setup(GentupConfig(), prompter)

        assert result is not None
        assert result.sync_interval_hours == 48
