"""The update session state machine.

A session walks the stages of ``Stage`` strictly forward, one external
tool invocation (or operator question) at a time:

    INIT -> DEPENDENCIES_CHECKED -> SYNCED -> UPGRADE_LISTED -> SELF_UPDATED
    -> NEWS_SHOWN -> WORLD_UPDATED -> CONFIGS_MERGED -> ELOGS_SHOWN
    -> ORPHANS_HANDLED -> REVDEP_CHECKED -> PORTAGE_SANITY_CHECKED
    -> DISTFILES_HANDLED -> KERNELS_HANDLED -> TRIMMED -> DONE

Portage is updated on its own before anything else, then the compiler,
then @world, so the resolver never works with stale code.

A failure of the Portage or compiler update, of the world update, or a
missing tool/dependency ends the session: @world is never resolved by
stale Portage, and cleanup on a half-updated system could remove packages
that are still needed. Failures in every other stage are advisory; they are
recorded as warnings and the session moves on. Skipping a stage is a
normal transition, not a failure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from gentup.core.config import GentupConfig
from gentup.portage import eix, emerge, tools
from gentup.portage.deps import (
    DependencyError,
    DependencyInstaller,
    configure_elog,
    install_packages,
    missing_packages,
)
from gentup.portage.emerge import COMPILER_ATOM, PORTAGE_ATOM, PendingUpgrade
from gentup.portage.sync import SyncGate, SyncOutcome
from gentup.utils.formatting import (
    console,
    create_upgrade_table,
    print_info,
    print_stage,
    print_success,
    print_warning,
)
from gentup.utils.prompt import Prompter
from gentup.utils.shell import ExecutionError
from gentup.utils.system import root_is_rotational

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Pipeline stages in execution order."""

    INIT = "init"
    DEPENDENCIES_CHECKED = "dependencies_checked"
    SYNCED = "synced"
    UPGRADE_LISTED = "upgrade_listed"
    SELF_UPDATED = "self_updated"
    NEWS_SHOWN = "news_shown"
    WORLD_UPDATED = "world_updated"
    CONFIGS_MERGED = "configs_merged"
    ELOGS_SHOWN = "elogs_shown"
    ORPHANS_HANDLED = "orphans_handled"
    REVDEP_CHECKED = "revdep_checked"
    PORTAGE_SANITY_CHECKED = "portage_sanity_checked"
    DISTFILES_HANDLED = "distfiles_handled"
    KERNELS_HANDLED = "kernels_handled"
    TRIMMED = "trimmed"
    DONE = "done"

    @property
    def order(self) -> int:
        """Position of the stage in the pipeline."""
        return _STAGE_ORDER.index(self)


_STAGE_ORDER: list[Stage] = list(Stage)

# A failure in one of these ends the session
FATAL_STAGES = frozenset(
    {Stage.DEPENDENCIES_CHECKED, Stage.SELF_UPDATED, Stage.WORLD_UPDATED}
)

# Stages that only display information; a missing tool is not fatal here
ADVISORY_STAGES = frozenset({Stage.NEWS_SHOWN, Stage.ELOGS_SHOWN})

# Stages skipped by --cleanup
UPDATE_STAGES = frozenset(
    {
        Stage.SYNCED,
        Stage.UPGRADE_LISTED,
        Stage.SELF_UPDATED,
        Stage.NEWS_SHOWN,
        Stage.WORLD_UPDATED,
        Stage.CONFIGS_MERGED,
    }
)


class StageFailure(Exception):
    """Raised when a stage's external tool reports failure.

    Attributes:
        stage: The stage that failed.
        output: The tool's error output, verbatim.
    """

    def __init__(self, stage: Stage, message: str, output: str = "") -> None:
        self.stage = stage
        self.output = output
        super().__init__(message)


class OperatorAbort(Exception):
    """Raised when the operator chooses to stop the session."""


@dataclass
class PipelineOptions:
    """Per-run switches from the command line.

    Attributes:
        force: Sync even if the last sync was recent, and run the update
            stages even when nothing is pending.
        cleanup_only: Skip the update stages and run only the cleanup.
        offer_packages: Offer to install missing default packages.
        no_trim: Never run the filesystem trim stage.
        prefetch: Download sources before asking to start the world update.
    """

    force: bool = False
    cleanup_only: bool = False
    offer_packages: bool = False
    no_trim: bool = False
    prefetch: bool = True


@dataclass
class SessionReport:
    """Everything a session learned, for the final summary and mail.

    Attributes:
        completed: Stages transitioned through, in order (including skips).
        skipped: Subset of ``completed`` that was skipped.
        failed_stage: Stage that ended the session, if any.
        error: Message describing the fatal error, if any.
        aborted: True if the operator stopped the session.
    """

    completed: list[Stage] = field(default_factory=lambda: [Stage.INIT])
    skipped: list[Stage] = field(default_factory=list)
    sync_outcome: SyncOutcome | None = None
    upgrades: list[PendingUpgrade] = field(default_factory=list)
    updated_count: int = 0
    removed_count: int = 0
    news_count: int = 0
    warnings: list[str] = field(default_factory=list)
    failed_stage: Stage | None = None
    error: str | None = None
    aborted: bool = False

    @property
    def last_completed(self) -> Stage:
        """The most recent stage the session reached."""
        return self.completed[-1]

    @property
    def failed(self) -> bool:
        """Check if the session ended on a fatal error."""
        return self.failed_stage is not None

    @property
    def finished(self) -> bool:
        """Check if the session reached DONE."""
        return self.last_completed is Stage.DONE

    def failure_summary(self) -> str:
        """One-line description of where the session stopped."""
        if self.failed_stage is None:
            return f"Session reached {self.last_completed.name}"
        return (
            f"failed at {self.failed_stage.name} "
            f"(last completed stage: {self.last_completed.name})"
        )


class _Skip(Exception):
    """Internal signal that a stage was skipped."""


class UpdatePipeline:
    """Runs one update session.

    The configuration, prompt layer, sync gate and dependency installer
    are passed in, so each stage can be exercised in isolation.

    Example:
        >>> pipeline = UpdatePipeline(load_config(), Prompter())
        >>> report = pipeline.run()
        >>> report.finished
        True
    """

    def __init__(
        self,
        config: GentupConfig,
        prompter: Prompter,
        options: PipelineOptions | None = None,
        sync_gate: SyncGate | None = None,
        installer: DependencyInstaller | None = None,
    ) -> None:
        self.config = config
        self.prompter = prompter
        self.options = options or PipelineOptions()
        self.sync_gate = sync_gate or SyncGate(
            interval=timedelta(hours=config.sync_interval_hours)
        )
        self.installer = installer or DependencyInstaller()
        self.report = SessionReport()

    def _steps(self) -> list[tuple[Stage, Callable[[], None]]]:
        return [
            (Stage.DEPENDENCIES_CHECKED, self._check_dependencies),
            (Stage.SYNCED, self._sync),
            (Stage.UPGRADE_LISTED, self._list_upgrades),
            (Stage.SELF_UPDATED, self._self_update),
            (Stage.NEWS_SHOWN, self._show_news),
            (Stage.WORLD_UPDATED, self._update_world),
            (Stage.CONFIGS_MERGED, self._merge_configs),
            (Stage.ELOGS_SHOWN, self._show_elogs),
            (Stage.ORPHANS_HANDLED, self._handle_orphans),
            (Stage.REVDEP_CHECKED, self._check_revdeps),
            (Stage.PORTAGE_SANITY_CHECKED, self._check_sanity),
            (Stage.DISTFILES_HANDLED, self._clean_distfiles),
            (Stage.KERNELS_HANDLED, self._clean_kernels),
            (Stage.TRIMMED, self._trim),
        ]

    def run(self) -> SessionReport:
        """Run every stage in order.

        Returns:
            The session report. Fatal failures are recorded in the report
            (``failed_stage``/``error``) rather than raised.
        """
        for stage, step in self._steps():
            if self.options.cleanup_only and stage in UPDATE_STAGES:
                self._transition(stage, skipped=True)
                continue

            try:
                step()
            except _Skip:
                self._transition(stage, skipped=True)
                continue
            except OperatorAbort:
                logger.info("Operator stopped the session before %s", stage.name)
                self.report.aborted = True
                return self.report
            except (StageFailure, ExecutionError, DependencyError) as e:
                if self._is_fatal(stage, e):
                    self._fail(stage, e)
                    return self.report
                self._warn(stage, e)

            self._transition(stage)

        self._transition(Stage.DONE)
        return self.report

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _transition(self, stage: Stage, skipped: bool = False) -> None:
        if stage.order <= self.report.last_completed.order:
            msg = f"Illegal transition {self.report.last_completed.name} -> {stage.name}"
            raise RuntimeError(msg)
        self.report.completed.append(stage)
        if skipped:
            self.report.skipped.append(stage)
            logger.info("Stage %s skipped", stage.name)
        else:
            logger.info("Stage %s completed", stage.name)

    @staticmethod
    def _is_fatal(stage: Stage, error: Exception) -> bool:
        if stage in FATAL_STAGES:
            return True
        return isinstance(error, ExecutionError) and stage not in ADVISORY_STAGES

    def _fail(self, stage: Stage, error: Exception) -> None:
        self.report.failed_stage = stage
        message = str(error)
        if isinstance(error, StageFailure) and error.output:
            message = f"{message}\n{error.output}"
        self.report.error = message
        logger.error("Session failed at %s: %s", stage.name, error)

    def _warn(self, stage: Stage, error: Exception) -> None:
        warning = f"{stage.name}: {error}"
        self.report.warnings.append(warning)
        logger.warning("Advisory stage %s failed: %s", stage.name, error)
        print_warning(str(error))

    def _pending(self, atom: str) -> bool:
        """Check if ``atom`` needs an upgrade, per the listing or eix."""
        if any(upgrade.atom == atom for upgrade in self.report.upgrades):
            return True
        return eix.is_outdated(atom)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _check_dependencies(self) -> None:
        print_stage("Checking required tools")
        plan = self.installer.plan()
        if not plan.is_empty:
            print_stage(f"Installing required tools: {', '.join(plan.atoms)}")
            self.installer.install_missing()

        try:
            if configure_elog():
                print_info("Configured Portage to save ELOG messages")
        except OSError as e:
            print_warning(f"Cannot update make.conf: {e}")

        if self.options.offer_packages:
            self._offer_default_packages()

    def _offer_default_packages(self) -> None:
        with self.prompter.spinner("Checking default packages"):
            missing = missing_packages(self.config.default_packages)
        if not missing:
            print_info("All default packages are installed")
            return

        print_info(f"Default packages not installed: {', '.join(missing)}")
        if self.prompter.confirm("Install the missing default packages?", default=True):
            install_packages(missing)

    def _sync(self) -> None:
        print_stage("Syncing package repository")
        while True:
            with self.prompter.spinner("Syncing package repository"):
                outcome = self.sync_gate.run(force=self.options.force)
            self.report.sync_outcome = outcome

            if outcome is SyncOutcome.SKIPPED:
                print_info("Last sync was too recent: skipping sync")
                raise _Skip
            if outcome is SyncOutcome.SYNCED:
                print_success("Repository synced")
                return

            result = self.sync_gate.last_result
            if result is not None and result.stderr.strip():
                console.print(result.stderr.strip(), markup=False, highlight=False)
            print_warning("Repository sync failed")
            if self.prompter.confirm("Try syncing again?", default=False):
                continue
            if self.prompter.confirm("Continue with the existing repository snapshot?", default=True):
                return
            raise OperatorAbort

    def _list_upgrades(self) -> None:
        print_stage("Checking for updates")
        with self.prompter.spinner("Updating package database"):
            result = eix.eix_update()
        if not result.success:
            print_warning(f"eix-update failed: {result.stderr.strip() or 'unknown error'}")

        with self.prompter.spinner("Calculating pending updates"):
            result = emerge.pretend_world_update()
        if not result.success:
            raise StageFailure(
                Stage.UPGRADE_LISTED,
                "Could not calculate pending updates",
                result.stderr.strip() or result.stdout.strip(),
            )

        self.report.upgrades = emerge.parse_pending_upgrades(result.stdout)
        count = len(self.report.upgrades)
        if count == 0:
            print_info("There are no pending updates")
            return

        console.print(create_upgrade_table(self.report.upgrades))
        print_info(f"{count} package(s) pending update")

    def _nothing_pending(self) -> bool:
        return not self.report.upgrades and not self.options.force

    def _self_update(self) -> None:
        if self._nothing_pending():
            raise _Skip

        for atom in (PORTAGE_ATOM, COMPILER_ATOM):
            if not self._pending(atom):
                continue
            print_stage(f"Updating {atom} before the world update")
            status = emerge.update_package(atom)
            if status != 0:
                raise StageFailure(
                    Stage.SELF_UPDATED, f"emerge exited with status {status} updating {atom}"
                )

    def _show_news(self) -> None:
        count = tools.news_count()
        self.report.news_count = count
        if count == 0:
            print_info("No news is good news")
            return

        print_stage(f"You have {count} news item(s) to read")
        tools.list_news()
        tools.read_news()

    def _update_world(self) -> None:
        if self._nothing_pending():
            raise _Skip

        if self.options.prefetch:
            with self.prompter.spinner("Fetching sources"):
                result = emerge.fetch_world()
            if not result.success:
                print_warning("Some sources could not be fetched in advance")

        if not self.prompter.confirm("Ready for upgrade?", default=True):
            print_info("World update skipped at operator request")
            raise _Skip

        print_stage("Updating world set")
        status = emerge.update_world()
        if status != 0:
            raise StageFailure(
                Stage.WORLD_UPDATED, f"emerge exited with status {status} updating @world"
            )
        self.report.updated_count = len(self.report.upgrades)
        print_success("World update complete")

    def _merge_configs(self) -> None:
        print_stage("Merging configuration file changes")
        status = tools.dispatch_conf()
        if status != 0:
            raise StageFailure(Stage.CONFIGS_MERGED, f"dispatch-conf exited with status {status}")

    def _show_elogs(self) -> None:
        print_stage("Checking for new ebuild logs")
        status = tools.elogv()
        if status != 0:
            raise StageFailure(Stage.ELOGS_SHOWN, f"elogv exited with status {status}")

    def _handle_orphans(self) -> None:
        print_stage("Checking for orphaned dependencies")
        with self.prompter.spinner("Checking for orphaned dependencies"):
            result = emerge.pretend_depclean()
        if not result.success:
            raise StageFailure(
                Stage.ORPHANS_HANDLED,
                "emerge --pretend --depclean failed",
                result.stderr.strip(),
            )

        count = emerge.parse_depclean_count(result.stdout)
        if count == 0:
            print_info("There are no orphaned dependencies")
            return

        print_info(f"Found {count} orphaned dependencies")
        if not self.prompter.confirm(
            f"Remove {count} orphaned dependencies?", default=self.config.cleanup_by_default
        ):
            raise _Skip

        status = emerge.depclean()
        if status != 0:
            raise StageFailure(Stage.ORPHANS_HANDLED, f"emerge --depclean exited with status {status}")
        self.report.removed_count = count

    def _check_revdeps(self) -> None:
        print_stage("Checking reverse dependencies")
        with self.prompter.spinner("Checking reverse dependencies"):
            result = tools.pretend_revdep_rebuild()
        if not result.success:
            raise StageFailure(
                Stage.REVDEP_CHECKED,
                f"revdep-rebuild --pretend exited with status {result.returncode}",
                result.stderr.strip(),
            )
        if tools.revdep_is_consistent(result.stdout):
            print_info("No broken reverse dependencies were found")
            return

        print_warning("Broken reverse dependencies were found")
        if not self.prompter.confirm("Rebuild broken reverse dependencies?", default=True):
            raise _Skip
        status = tools.revdep_rebuild()
        if status != 0:
            raise StageFailure(Stage.REVDEP_CHECKED, f"revdep-rebuild exited with status {status}")

    def _check_sanity(self) -> None:
        print_stage("Checking for obsolete Portage configuration")
        status = eix.check_obsolete()
        if status != 0:
            raise StageFailure(
                Stage.PORTAGE_SANITY_CHECKED, f"eix-test-obsolete exited with status {status}"
            )

    def _clean_distfiles(self) -> None:
        if not self.prompter.confirm(
            "Clean up old distribution source archives?", default=self.config.cleanup_by_default
        ):
            raise _Skip
        print_stage("Cleaning unused distfiles")
        status = tools.eclean_distfiles()
        if status != 0:
            raise StageFailure(Stage.DISTFILES_HANDLED, f"eclean exited with status {status}")

    def _clean_kernels(self) -> None:
        if not self.prompter.confirm(
            "Clean up old kernels?", default=self.config.cleanup_by_default
        ):
            raise _Skip
        print_stage("Cleaning old kernels")
        status = tools.eclean_kernel()
        if status != 0:
            raise StageFailure(Stage.KERNELS_HANDLED, f"eclean-kernel exited with status {status}")

    def _trim(self) -> None:
        if self.options.no_trim:
            raise _Skip
        if root_is_rotational():
            print_info("Root filesystem is on rotational storage: skipping trim")
            raise _Skip
        if not self.prompter.confirm("Reclaim free blocks?", default=self.config.trim_by_default):
            raise _Skip
        print_stage("Trimming filesystems")
        status = tools.fstrim()
        if status != 0:
            raise StageFailure(Stage.TRIMMED, f"fstrim exited with status {status}")
