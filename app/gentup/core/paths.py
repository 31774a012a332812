"""Filesystem locations used by gentup.

gentup is a root-only system tool, so its configuration lives under /etc.
The configuration directory can be overridden with GENTUP_CONFIG_DIR, which
is useful for testing and for trying the setup mode without root.

Portage-owned paths are read-only inputs; gentup never writes to them
except for the one-time ELOG configuration appended to make.conf.
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "gentup"

DEFAULT_CONFIG_DIR = Path("/etc") / APP_NAME
CONFIG_FILENAME = "config.toml"

# Portage-owned locations
PORTAGE_TIMESTAMP_PATH = Path("/var/db/repos/gentoo/metadata/timestamp")
MAKE_CONF_PATH = Path("/etc/portage/make.conf")
OS_RELEASE_PATH = Path("/etc/os-release")


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to /etc/gentup (or $GENTUP_CONFIG_DIR).
    """
    override = os.environ.get("GENTUP_CONFIG_DIR")
    if override:
        return Path(override)
    return DEFAULT_CONFIG_DIR


def get_config_path() -> Path:
    """Get the configuration file path.

    Returns:
        Path to /etc/gentup/config.toml.
    """
    return get_config_dir() / CONFIG_FILENAME
