"""Unit tests for the configuration store."""

import tomllib
from pathlib import Path

import pytest
from gentup.core.config import (
    DEFAULT_PACKAGES,
    ConfigError,
    ConfigParseError,
    GentupConfig,
    config_exists,
    load_config,
    reset_config,
    save_config,
)
from pydantic import ValidationError


class TestGentupConfig:
    """Tests for the GentupConfig model."""

    def test_defaults(self) -> None:
        """Defaults leave optional stages off and mail disabled."""
        config = GentupConfig()

        assert config.cleanup_by_default is False
        assert config.trim_by_default is False
        assert config.notify_email is None
        assert config.default_packages == list(DEFAULT_PACKAGES)
        assert config.sync_interval_hours == 24
        assert config.mail_command == "sendmail"

    def test_blank_email_is_none(self) -> None:
        """A blank email address disables notification."""
        assert GentupConfig(notify_email="   ").notify_email is None

    def test_invalid_email_rejected(self) -> None:
        """An address without @ is rejected."""
        with pytest.raises(ValidationError, match="invalid email address"):
            GentupConfig(notify_email="root")

    def test_interval_bounds(self) -> None:
        """The sync interval must be between 1 and 720 hours."""
        with pytest.raises(ValidationError):
            GentupConfig(sync_interval_hours=0)
        with pytest.raises(ValidationError):
            GentupConfig(sync_interval_hours=721)

    def test_empty_package_rejected(self) -> None:
        """Empty package names are rejected."""
        with pytest.raises(ValidationError, match="cannot be empty"):
            GentupConfig(default_packages=["app-editors/vim", " "])

    def test_unknown_key_rejected(self) -> None:
        """Unknown settings are rejected."""
        with pytest.raises(ValidationError):
            GentupConfig.model_validate({"colour": "blue"})


class TestLoadConfig:
    """Tests for load_config function."""

    def test_missing_file_yields_defaults(self, tmp_path: Path) -> None:
        """A missing file is not an error."""
        path = tmp_path / "config.toml"

        assert load_config(path) == GentupConfig()
        assert config_exists(path) is False

    def test_loads_values(self, tmp_path: Path) -> None:
        """Settings present in the file are loaded."""
        path = tmp_path / "config.toml"
        path.write_text(
            "cleanup_by_default = true\n"
            'notify_email = "admin@example.org"\n'
            'default_packages = ["app-misc/tmux"]\n'
            "sync_interval_hours = 12\n"
        )

        config = load_config(path)

        assert config.cleanup_by_default is True
        assert config.trim_by_default is False
        assert config.notify_email == "admin@example.org"
        assert config.default_packages == ["app-misc/tmux"]
        assert config.sync_interval_hours == 12

    def test_malformed_field_names_the_field(self, tmp_path: Path) -> None:
        """A mistyped value raises ConfigError naming the setting."""
        path = tmp_path / "config.toml"
        path.write_text('trim_by_default = "sometimes"\n')

        with pytest.raises(ConfigError, match="trim_by_default") as exc_info:
            load_config(path)

        assert exc_info.value.field == "trim_by_default"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Broken TOML raises ConfigParseError."""
        path = tmp_path / "config.toml"
        path.write_text("cleanup_by_default = [true\n")

        with pytest.raises(ConfigParseError, match="Invalid TOML"):
            load_config(path)


class TestSaveConfig:
    """Tests for save_config and reset_config."""

    def test_saved_config_loads_back(self, tmp_path: Path) -> None:
        """A saved configuration loads back unchanged."""
        path = tmp_path / "gentup" / "config.toml"
        config = GentupConfig(
            trim_by_default=True,
            notify_email="admin@example.org",
            default_packages=["dev-vcs/git"],
        )

        assert save_config(config, path) == path
        assert load_config(path) == config

    def test_unset_email_is_omitted(self, tmp_path: Path) -> None:
        """TOML has no null, so an unset address is left out of the file."""
        path = tmp_path / "config.toml"
        save_config(GentupConfig(), path)

        with open(path, "rb") as f:
            data = tomllib.load(f)

        assert "notify_email" not in data
        assert not list(tmp_path.glob("*.tmp"))

    def test_reset_overwrites_broken_file(self, tmp_path: Path) -> None:
        """reset_config replaces an invalid file with defaults."""
        path = tmp_path / "config.toml"
        path.write_text("garbage = = =\n")

        config = reset_config(path)

        assert config == GentupConfig()
        assert load_config(path) == GentupConfig()

    def test_unwritable_location(self, tmp_path: Path) -> None:
        """A path that cannot be created raises ConfigError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        with pytest.raises(ConfigError, match="Cannot create"):
            save_config(GentupConfig(), blocker / "config.toml")
