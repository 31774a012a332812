"""Wrappers around the auxiliary Portage and system maintenance tools.

Covers news (eselect), configuration merging (dispatch-conf), ELOG
display (elogv), reverse-dependency repair (revdep-rebuild), cleanup
(eclean, eclean-kernel) and filesystem trim (fstrim).
"""

import logging

from gentup.utils.shell import CommandResult, run_command, run_interactive

logger = logging.getLogger(__name__)

# Number of kernels eclean-kernel keeps installed
KERNELS_TO_KEEP = 3

_REVDEP_CONSISTENT = "Your system is consistent"


def news_count() -> int:
    """Return the number of unread Gentoo news items.

    Unparseable output counts as no news.
    """
    result = run_command(["eselect", "news", "count", "new"])
    if not result.success:
        logger.warning("eselect news count failed: %s", result.stderr.strip())
        return 0
    try:
        return int(result.stdout.strip())
    except ValueError:
        logger.debug("Unexpected eselect news output: %r", result.stdout[:100])
        return 0


def list_news() -> int:
    """List news items."""
    return run_interactive(["eselect", "news", "list"])


def read_news() -> int:
    """Display unread news items and mark them read."""
    return run_interactive(["eselect", "news", "read", "new"])


def dispatch_conf() -> int:
    """Merge pending configuration file updates interactively."""
    return run_interactive(["dispatch-conf"])


def elogv() -> int:
    """Show ELOG messages left by package installs."""
    return run_interactive(["elogv"])


def pretend_revdep_rebuild() -> CommandResult:
    """Check for broken reverse dependencies without rebuilding."""
    return run_command(["revdep-rebuild", "--ignore", "--pretend"])


def revdep_is_consistent(output: str) -> bool:
    """Check revdep-rebuild output for the all-clear message."""
    return any(line.strip().startswith(_REVDEP_CONSISTENT) for line in output.splitlines())


def revdep_rebuild() -> int:
    """Rebuild packages with broken library links."""
    return run_interactive(["revdep-rebuild"])


def eclean_distfiles() -> int:
    """Remove source archives no installed package needs."""
    return run_interactive(["eclean", "--deep", "distfiles"])


def eclean_kernel() -> int:
    """Remove old kernels, keeping the newest few."""
    return run_interactive(["eclean-kernel", "--num", str(KERNELS_TO_KEEP)])


def fstrim() -> int:
    """Discard unused blocks on all mounted filesystems that support it."""
    return run_interactive(["fstrim", "--all", "--verbose"])
