"""Installation of the external tools gentup relies on.

Installing packages modifies the host, so the installer always computes an
explicit plan first. In dry-run mode the plan is only reported; otherwise
all missing tools are merged in a single emerge invocation to pay the
dependency resolver's start-up cost once.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from gentup.core.paths import MAKE_CONF_PATH
from gentup.portage import emerge
from gentup.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)


class DependencyError(Exception):
    """Raised when required tools are missing and cannot be installed."""


@dataclass(frozen=True, slots=True)
class RequiredTool:
    """An external program gentup needs and the package that provides it.

    Attributes:
        atom: Package providing the program.
        executable: Program probed on PATH.
        post_install: Command to run once after installing, if any.
    """

    atom: str
    executable: str
    post_install: tuple[str, ...] = ()


REQUIRED_TOOLS: tuple[RequiredTool, ...] = (
    RequiredTool("app-portage/eix", "eix", ("eix-update",)),
    RequiredTool("app-portage/gentoolkit", "equery"),
    RequiredTool("app-portage/elogv", "elogv"),
    RequiredTool("app-admin/eclean-kernel", "eclean-kernel"),
)

ELOG_SETTINGS = (
    "# Logging\n"
    'PORTAGE_ELOG_CLASSES="warn error log"\n'
    'PORTAGE_ELOG_SYSTEM="save"\n'
)


@dataclass(frozen=True, slots=True)
class InstallPlan:
    """Packages an installer run would merge.

    Attributes:
        tools: Missing tools, in REQUIRED_TOOLS order.
    """

    tools: tuple[RequiredTool, ...]

    @property
    def atoms(self) -> list[str]:
        """Package atoms to install."""
        return [tool.atom for tool in self.tools]

    @property
    def is_empty(self) -> bool:
        """Check if nothing needs installing."""
        return not self.tools

    @property
    def command(self) -> list[str]:
        """The emerge command line the plan would run."""
        return ["emerge", "--quiet", "--verbose", *self.atoms]


class DependencyInstaller:
    """Checks for and installs gentup's required tools.

    Attributes:
        dry_run: If True, report the plan without installing anything.

    Example:
        >>> installer = DependencyInstaller(dry_run=True)
        >>> plan = installer.install_missing()
        >>> print(" ".join(plan.command))
    """

    def __init__(
        self,
        tools: tuple[RequiredTool, ...] = REQUIRED_TOOLS,
        dry_run: bool = False,
    ) -> None:
        self._tools = tools
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        """Check if installer is in dry-run mode."""
        return self._dry_run

    def find_missing(self) -> list[RequiredTool]:
        """Return the required tools whose executable is not on PATH."""
        missing = [tool for tool in self._tools if not command_exists(tool.executable)]
        for tool in missing:
            logger.info("%s not found, %s will be installed", tool.executable, tool.atom)
        return missing

    def plan(self) -> InstallPlan:
        """Compute which packages need installing."""
        return InstallPlan(tools=tuple(self.find_missing()))

    def install_missing(self) -> InstallPlan:
        """Install every missing tool in one batch.

        Returns:
            The plan that was executed (or only reported, in dry-run mode).

        Raises:
            DependencyError: If emerge or a post-install command fails.
        """
        plan = self.plan()
        if plan.is_empty:
            return plan

        logger.info(
            "Installing required tools: %s (dry_run=%s)", ", ".join(plan.atoms), self._dry_run
        )
        if self._dry_run:
            return plan

        status = emerge.install_packages(plan.atoms)
        if status != 0:
            msg = f"emerge exited with status {status} installing {', '.join(plan.atoms)}"
            raise DependencyError(msg)

        for tool in plan.tools:
            if not tool.post_install:
                continue
            result = run_command(list(tool.post_install))
            if not result.success:
                msg = (
                    f"{' '.join(tool.post_install)} failed after installing {tool.atom}: "
                    f"{result.stderr.strip() or 'unknown error'}"
                )
                raise DependencyError(msg)

        return plan


def is_installed(atom: str) -> bool:
    """Check whether a package is installed, using gentoolkit's equery."""
    return run_command(["equery", "--quiet", "list", atom]).success


def missing_packages(atoms: list[str]) -> list[str]:
    """Return the packages from ``atoms`` that are not installed."""
    return [atom for atom in atoms if not is_installed(atom)]


def install_packages(atoms: list[str]) -> None:
    """Install operator-chosen packages in one batch.

    Raises:
        DependencyError: If emerge fails.
    """
    if not atoms:
        return
    status = emerge.install_packages(atoms, autounmask=True)
    if status != 0:
        msg = f"emerge exited with status {status} installing {', '.join(atoms)}"
        raise DependencyError(msg)


def configure_elog(make_conf: Path = MAKE_CONF_PATH) -> bool:
    """Make Portage save ELOG messages so elogv has something to show.

    Appends the ELOG settings to make.conf unless PORTAGE_ELOG_SYSTEM is
    already set.

    Returns:
        True if make.conf was changed.
    """
    try:
        contents = make_conf.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("%s not found, leaving ELOG configuration alone", make_conf)
        return False

    if "PORTAGE_ELOG_SYSTEM" in contents:
        return False

    with make_conf.open(mode="a", encoding="utf-8") as f:
        if contents and not contents.endswith("\n"):
            f.write("\n")
        f.write(ELOG_SETTINGS)
    logger.info("Added ELOG settings to %s", make_conf)
    return True
