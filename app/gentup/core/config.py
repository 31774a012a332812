"""Persistent configuration for gentup.

The configuration is a small TOML document stored at
/etc/gentup/config.toml. It stays human-editable as a fallback to
``gentup --setup``.

Example::

    cleanup_by_default = false
    trim_by_default = true
    notify_email = "root@localhost"
    default_packages = ["app-editors/vim", "dev-vcs/git"]
    sync_interval_hours = 24
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gentup.core.paths import get_config_path

logger = logging.getLogger(__name__)

# Packages commonly wanted on a fresh Gentoo install. Operators edit this
# list through setup mode.
DEFAULT_PACKAGES: tuple[str, ...] = (
    "app-portage/cpuid2cpuflags",
    "app-portage/pfl",
    "app-portage/ufed",
    "app-admin/sysstat",
    "app-editors/vim",
    "net-dns/bind-tools",
    "app-misc/tmux",
    "sys-apps/mlocate",
    "sys-apps/inxi",
    "sys-apps/pciutils",
    "sys-apps/usbutils",
    "sys-process/nmon",
    "dev-vcs/git",
)

DEFAULT_SYNC_INTERVAL_HOURS = 24


class GentupConfig(BaseModel):
    """Operator settings for an update session.

    Attributes:
        cleanup_by_default: Default answer for distfile/kernel/orphan cleanup.
        trim_by_default: Default answer for the filesystem trim stage.
        notify_email: Address for the session summary, or None to disable mail.
        default_packages: Packages offered for installation, in order.
        sync_interval_hours: Minimum hours between repository syncs.
        mail_command: Local mail transport invoked as ``<command> -t``.
    """

    model_config = ConfigDict(extra="forbid")

    cleanup_by_default: bool = False
    trim_by_default: bool = False
    notify_email: Annotated[
        str | None,
        Field(description="Recipient of the session summary"),
    ] = None
    default_packages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PACKAGES),
        description="Packages offered for installation",
    )
    sync_interval_hours: Annotated[
        int,
        Field(ge=1, le=720, description="Minimum hours between syncs (1-720)"),
    ] = DEFAULT_SYNC_INTERVAL_HOURS
    mail_command: Annotated[
        str,
        Field(min_length=1, description="Local mail transport"),
    ] = "sendmail"

    @field_validator("notify_email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        """Normalise blank addresses to None and reject obvious garbage."""
        if v is None:
            return None
        address = v.strip()
        if not address:
            return None
        if "@" not in address or " " in address:
            msg = f"invalid email address '{address}'"
            raise ValueError(msg)
        return address

    @field_validator("default_packages")
    @classmethod
    def validate_packages(cls, v: list[str]) -> list[str]:
        """Strip entries and reject empty package names."""
        packages = [p.strip() for p in v]
        if any(not p for p in packages):
            msg = "package names cannot be empty"
            raise ValueError(msg)
        return packages


class ConfigError(Exception):
    """Raised when the configuration file is malformed or unwritable.

    Attributes:
        field: Name of the offending setting, if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class ConfigParseError(ConfigError):
    """Raised when the configuration file is not valid TOML."""


def config_exists(path: Path | None = None) -> bool:
    """Check whether a configuration file is present."""
    return (path or get_config_path()).exists()


def load_config(path: Path | None = None) -> GentupConfig:
    """Load configuration, falling back to defaults if the file is absent.

    Args:
        path: Path to the config file. If None, uses the default location.

    Returns:
        Validated GentupConfig.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If a setting has the wrong type or value.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.info("No configuration at %s, using defaults", config_path)
        return GentupConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"{config_path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e

    try:
        return GentupConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ConfigError(
            f"Invalid setting '{field}' in {config_path}: {first['msg']}",
            field=field,
        ) from e


def save_config(config: GentupConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written to a temporary file in the same directory and moved
    into place with os.replace(), so a crash never leaves a truncated file.

    Args:
        config: The configuration to save.
        path: Destination path. If None, uses the default location.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Cannot create {config_path.parent}: {e}") from e

    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(b"# Configuration for gentup. Edit with 'gentup --setup'.\n\n")
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write {config_path}: {e}") from e

    logger.info("Saved configuration to %s", config_path)
    return config_path


def reset_config(path: Path | None = None) -> GentupConfig:
    """Overwrite the configuration file with defaults.

    Returns:
        The default configuration that was written.
    """
    config = GentupConfig()
    save_config(config, path)
    return config


def _config_to_dict(config: GentupConfig) -> dict[str, object]:
    """Convert GentupConfig to a TOML-serialisable dictionary.

    TOML has no null, so an unset email address is simply omitted.
    """
    result: dict[str, object] = {
        "cleanup_by_default": config.cleanup_by_default,
        "trim_by_default": config.trim_by_default,
    }
    if config.notify_email is not None:
        result["notify_email"] = config.notify_email
    result["default_packages"] = list(config.default_packages)
    result["sync_interval_hours"] = config.sync_interval_hours
    result["mail_command"] = config.mail_command
    return result
