"""Wrappers around the eix tool suite."""

import logging

from gentup.utils.shell import CommandResult, run_command, run_interactive

logger = logging.getLogger(__name__)


def eix_sync() -> CommandResult:
    """Sync the Gentoo repository and refresh the eix database."""
    return run_command(["eix-sync"])


def eix_update() -> CommandResult:
    """Rebuild the eix database from the installed package state."""
    return run_command(["eix-update"])


def is_outdated(atom: str) -> bool:
    """Check whether ``atom`` has an upgrade available.

    ``eix --upgrade`` exits 0 only when the package matches and is
    upgradable.
    """
    result = run_command(["eix", "--quiet", "--upgrade", "--exact", "--category-name", atom])
    if result.success:
        logger.info("%s has a pending upgrade", atom)
    return result.success


def check_obsolete() -> int:
    """Report obsolete entries in /etc/portage package files."""
    return run_interactive(["eix-test-obsolete"])
