"""Interactive configuration editor behind ``gentup --setup``."""

import logging
from typing import Any

from pydantic import ValidationError
from rich.table import Table

from gentup.core.config import GentupConfig
from gentup.utils.formatting import console, print_warning
from gentup.utils.prompt import Prompter

logger = logging.getLogger(__name__)

_MENU = (
    "Toggle cleanup by default",
    "Toggle trim by default",
    "Set notification email",
    "Add a default package",
    "Remove a default package",
    "Set minimum sync interval",
    "Save and exit",
    "Quit without saving",
)
_SAVE = _MENU.index("Save and exit")
_QUIT = _MENU.index("Quit without saving")


def show_config(config: GentupConfig) -> None:
    """Print the running configuration as a table."""
    table = Table(
        title="Running Configuration",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Setting", style="info")
    table.add_column("Value")

    table.add_row("cleanup_by_default", str(config.cleanup_by_default))
    table.add_row("trim_by_default", str(config.trim_by_default))
    table.add_row("notify_email", config.notify_email or "[muted]not set[/]")
    table.add_row("sync_interval_hours", str(config.sync_interval_hours))
    table.add_row("mail_command", config.mail_command)
    table.add_row(
        "default_packages",
        "\n".join(config.default_packages) or "[muted]none[/]",
    )
    console.print(table)


def _updated(config: GentupConfig, **changes: Any) -> GentupConfig:
    """Return a validated copy of ``config`` with ``changes`` applied.

    Invalid values are reported and the original config is kept.
    """
    try:
        return GentupConfig.model_validate({**config.model_dump(), **changes})
    except ValidationError as e:
        print_warning(f"Rejected: {e.errors()[0]['msg']}")
        return config


def _remove_package(config: GentupConfig, prompter: Prompter) -> GentupConfig:
    if not config.default_packages:
        print_warning("The default package list is empty.")
        return config
    index = prompter.choose("Remove which package?", config.default_packages)
    remaining = [p for i, p in enumerate(config.default_packages) if i != index]
    return _updated(config, default_packages=remaining)


def _add_package(config: GentupConfig, prompter: Prompter) -> GentupConfig:
    atom = prompter.ask("Package atom (category/name)")
    if not atom:
        return config
    if atom in config.default_packages:
        print_warning(f"{atom} is already in the list.")
        return config
    if "/" not in atom:
        print_warning(f"'{atom}' is not a category/name atom.")
        return config
    return _updated(config, default_packages=[*config.default_packages, atom])


def _set_interval(config: GentupConfig, prompter: Prompter) -> GentupConfig:
    answer = prompter.ask("Minimum hours between syncs", str(config.sync_interval_hours))
    try:
        hours = int(answer)
    except ValueError:
        print_warning(f"'{answer}' is not a whole number of hours.")
        return config
    return _updated(config, sync_interval_hours=hours)


def run_setup(config: GentupConfig, prompter: Prompter) -> GentupConfig | None:
    """Drive an interactive editing session.

    Args:
        config: Configuration to start from.
        prompter: Prompt layer used to talk to the operator.

    Returns:
        The edited configuration to save, or None if the operator quit
        without saving.
    """
    current = config
    while True:
        console.print()
        show_config(current)
        choice = prompter.choose("What would you like to change?", _MENU, default=_SAVE)

        if choice == _SAVE:
            logger.debug("Setup finished with changes saved")
            return current
        if choice == _QUIT:
            logger.debug("Setup abandoned")
            return None

        if choice == 0:
            current = _updated(current, cleanup_by_default=not current.cleanup_by_default)
        elif choice == 1:
            current = _updated(current, trim_by_default=not current.trim_by_default)
        elif choice == 2:
            address = prompter.ask(
                "Notification email ('none' to disable)", current.notify_email or ""
            )
            if address.lower() == "none":
                address = ""
            current = _updated(current, notify_email=address or None)
        elif choice == 3:
            current = _add_package(current, prompter)
        elif choice == 4:
            current = _remove_package(current, prompter)
        elif choice == 5:
            current = _set_interval(current, prompter)
