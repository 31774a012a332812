"""Wrappers for Portage and the Gentoo maintenance tools.

Each module maps a fixed set of external invocations to Python functions.
The tools themselves own all package resolution; gentup only observes
their exit codes and a few lines of output.
"""

from gentup.portage.deps import DependencyError, DependencyInstaller, RequiredTool
from gentup.portage.emerge import PendingUpgrade, parse_depclean_count, parse_pending_upgrades
from gentup.portage.sync import SyncGate, SyncOutcome

__all__ = [
    "DependencyError",
    "DependencyInstaller",
    "PendingUpgrade",
    "RequiredTool",
    "SyncGate",
    "SyncOutcome",
    "parse_depclean_count",
    "parse_pending_upgrades",
]
