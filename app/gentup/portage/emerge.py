"""Wrappers around emerge.

Each function maps to one fixed emerge invocation. Functions that stream
to the terminal return the exit status; functions whose output gentup
inspects return the captured CommandResult. Output parsing lives in
separate ``parse_*`` functions so it can be tested without Portage.
"""

import logging
import re
from dataclasses import dataclass

from gentup.utils.shell import CommandResult, run_command, run_interactive

logger = logging.getLogger(__name__)

PORTAGE_ATOM = "sys-apps/portage"
COMPILER_ATOM = "sys-devel/gcc"

# Kernels are left to eclean-kernel, which keeps the newest few.
KERNEL_ATOMS = ("sys-kernel/gentoo-kernel-bin", "sys-kernel/gentoo-sources")

WORLD_UPDATE_ARGS = [
    "emerge",
    "--quiet",
    "--update",
    "--deep",
    "--newuse",
    "--verbose",
    "--with-bdeps=y",
    "--changed-use",
    "--complete-graph",
    "@world",
]

# [ebuild     U  ] sys-apps/portage-3.0.65::gentoo [3.0.63-r1::gentoo] USE="..."
_MERGE_LINE = re.compile(
    r"^\[(?:ebuild|binary)\s*(?P<flags>[^\]]*)\]\s+"
    r"(?P<cpv>\S+?)(?:::(?P<repo>\S+))?"
    r"(?:\s+\[(?P<old>[^\]]+)\])?(?:\s|$)"
)
_CPV = re.compile(r"^(?P<atom>.+?)-(?P<version>\d[\w.]*(?:-r\d+)?)$")
_DEPCLEAN_COUNT = re.compile(r"^Number to remove:\s+(\d+)", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class PendingUpgrade:
    """A package emerge would merge during a world update.

    Attributes:
        atom: Category and package name (e.g., 'sys-apps/portage').
        candidate_version: Version that would be merged.
        current_version: Installed version, or None for a new package.
        repository: Repository the candidate comes from, if reported.
    """

    atom: str
    candidate_version: str
    current_version: str | None = None
    repository: str | None = None

    @property
    def is_new(self) -> bool:
        """Check if the package is not installed yet."""
        return self.current_version is None


def parse_pending_upgrades(output: str) -> list[PendingUpgrade]:
    """Parse ``emerge --pretend --verbose`` output into pending upgrades.

    Lines that are not merge lines (blockers, USE change notices, news
    hints) are ignored. Merge order is preserved.

    Args:
        output: Captured stdout of a pretend world update.

    Returns:
        Pending upgrades in the order emerge would merge them.
    """
    upgrades: list[PendingUpgrade] = []
    for line in output.splitlines():
        match = _MERGE_LINE.match(line.strip())
        if match is None:
            continue

        # Drop a ":slot" suffix from the package version
        cpv = _CPV.match(match.group("cpv").split(":")[0])
        if cpv is None:
            logger.debug("Skipping merge line without a version: %r", line[:100])
            continue

        old = match.group("old")
        current = old.split(":")[0].split(",")[0].strip() if old else None
        upgrades.append(
            PendingUpgrade(
                atom=cpv.group("atom"),
                candidate_version=cpv.group("version"),
                current_version=current or None,
                repository=match.group("repo"),
            )
        )
    return upgrades


def parse_depclean_count(output: str) -> int:
    """Extract the "Number to remove" figure from depclean output.

    Returns:
        Count of orphaned packages, 0 when the line is absent.
    """
    match = _DEPCLEAN_COUNT.search(output)
    if match is None:
        return 0
    return int(match.group(1))


def pretend_world_update() -> CommandResult:
    """List what a world update would merge, without merging."""
    return run_command(
        ["emerge", "--pretend", "--update", "--deep", "--newuse", "--verbose", "@world"]
    )


def fetch_world() -> CommandResult:
    """Download sources for the pending world update."""
    return run_command(
        ["emerge", "--fetchonly", "--quiet", "--update", "--deep", "--newuse", "@world"]
    )


def update_world() -> int:
    """Update the @world set, streaming emerge output to the terminal."""
    logger.info("Updating @world")
    return run_interactive(WORLD_UPDATE_ARGS)


def update_package(atom: str) -> int:
    """Update a single package without adding it to the world file."""
    logger.info("Updating %s on its own", atom)
    return run_interactive(["emerge", "--quiet", "--oneshot", "--verbose", atom])


def install_packages(atoms: list[str], *, autounmask: bool = False) -> int:
    """Install packages in one emerge invocation.

    Args:
        atoms: Packages to install.
        autounmask: Let emerge write keyword/USE changes it needs.

    Returns:
        emerge exit status.
    """
    args = ["emerge", "--quiet", "--verbose"]
    if autounmask:
        args.extend(["--autounmask=y", "--autounmask-write=y"])
    args.extend(atoms)
    logger.info("Installing %s", ", ".join(atoms))
    return run_interactive(args)


def pretend_depclean() -> CommandResult:
    """List orphaned dependencies without removing them."""
    return run_command(["emerge", "--pretend", "--depclean"])


def depclean() -> int:
    """Remove orphaned dependencies, leaving kernels to eclean-kernel."""
    args = ["emerge", "--depclean"]
    for atom in KERNEL_ATOMS:
        args.extend(["--exclude", atom])
    return run_interactive(args)
