"""Main CLI application entry point.

Defines the Typer application: option parsing, logging setup, host
checks and the hand-off to the update pipeline or the setup menu.
"""

import logging
import sys
from typing import Annotated

import typer

from gentup import __version__
from gentup.core.config import (
    ConfigError,
    GentupConfig,
    config_exists,
    load_config,
    reset_config,
    save_config,
)
from gentup.core.notifier import Notifier
from gentup.core.pipeline import PipelineOptions, SessionReport, UpdatePipeline
from gentup.core.setup import run_setup
from gentup.utils.formatting import console, print_error, print_info, print_success, print_warning
from gentup.utils.prompt import Prompter
from gentup.utils.system import is_gentoo, is_root

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="gentup",
    help="Guided update of a Gentoo Linux system.",
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def setup_logging(verbose: bool) -> None:
    """Route log records to stderr.

    The root logger stays at WARNING to keep library noise out; the
    gentup loggers drop to DEBUG with ``--verbose``.
    """
    handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=logging.WARNING,
        handlers=[handler],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("gentup").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.debug("Logging initialized (verbose=%s)", verbose)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"gentup version {__version__}")
        raise typer.Exit()


def _load_or_reset(prompter: Prompter) -> GentupConfig:
    """Load the configuration, offering a reset when it is unreadable.

    Raises:
        typer.Exit: If the file is invalid and the operator keeps it.
    """
    try:
        return load_config()
    except ConfigError as e:
        print_error(str(e))
        if not prompter.confirm("Reset the configuration to defaults?", default=False):
            print_info("Fix the file or run 'gentup --setup' after resetting it.")
            raise typer.Exit(code=EXIT_CONFIG_ERROR) from e

    try:
        config = reset_config()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e
    print_success("Configuration reset to defaults")
    return config


def _run_setup(prompter: Prompter) -> None:
    config = _load_or_reset(prompter)
    edited = run_setup(config, prompter)
    if edited is None:
        print_info("Configuration left unchanged")
        return
    try:
        path = save_config(edited)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e
    print_success(f"Configuration saved to {path}")


def _check_host() -> None:
    if not is_root():
        print_error("gentup must be run as root.")
        raise typer.Exit(code=EXIT_FAILURE)
    if not is_gentoo():
        print_error("This does not look like a Gentoo system.")
        raise typer.Exit(code=EXIT_FAILURE)


def _print_report(report: SessionReport) -> None:
    console.print()
    for warning in report.warnings:
        print_warning(warning)
    if report.failed:
        print_error(f"Update {report.failure_summary()}")
        if report.error:
            console.print(report.error, markup=False, highlight=False)
    elif report.aborted:
        print_info(f"Session stopped after {report.last_completed.name}")
    else:
        print_success(
            f"Update complete: {report.updated_count} package(s) updated, "
            f"{report.removed_count} removed"
        )


@app.command()
def main(
    setup: Annotated[
        bool,
        typer.Option("--setup", help="Edit the persistent configuration and exit."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Sync even if the last sync was recent."),
    ] = False,
    cleanup: Annotated[
        bool,
        typer.Option("--cleanup", "-c", help="Skip the update and run only the cleanup stages."),
    ] = False,
    optional: Annotated[
        bool,
        typer.Option("--optional", "-o", help="Offer to install the default package list."),
    ] = False,
    no_trim: Annotated[
        bool,
        typer.Option("--no-trim", "-t", help="Never trim filesystems."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Answer every question with its default."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output."),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """gentup - guided update of a Gentoo Linux system.

    Syncs the repository, updates Portage and the compiler, then @world,
    and walks through merging configs, reading logs and cleaning up.
    """
    setup_logging(verbose)
    prompter = Prompter(assume_yes=yes)

    if setup:
        _run_setup(prompter)
        return

    _check_host()

    first_run = not config_exists()
    config = _load_or_reset(prompter)
    if first_run:
        try:
            path = save_config(config)
        except ConfigError as e:
            print_warning(str(e))
        else:
            print_info(f"Created default configuration at {path}")

    options = PipelineOptions(
        force=force,
        cleanup_only=cleanup,
        offer_packages=optional or first_run,
        no_trim=no_trim,
    )
    pipeline = UpdatePipeline(config, prompter, options)

    try:
        report = pipeline.run()
    except (KeyboardInterrupt, typer.Abort):
        console.print()
        print_error(
            f"Interrupted (last completed stage: {pipeline.report.last_completed.name})"
        )
        raise typer.Exit(code=EXIT_INTERRUPTED) from None

    _print_report(report)
    Notifier(config).notify(report)

    if report.failed:
        raise typer.Exit(code=EXIT_FAILURE)


if __name__ == "__main__":
    app()
