"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from gentup.core.theme import get_theme

if TYPE_CHECKING:
    from gentup.portage.emerge import PendingUpgrade


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, let Rich decide otherwise."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_upgrade_table(upgrades: list[PendingUpgrade]) -> Table:
    """Create a table listing pending package upgrades.

    Args:
        upgrades: Pending upgrades in emerge merge order.

    Returns:
        Rich Table with Package, Installed and Candidate columns.
    """
    table = Table(
        title="Pending Upgrades",
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("#", justify="right", style="muted")
    table.add_column("Package", no_wrap=True, style="package")
    table.add_column("Installed", style="version_old")
    table.add_column("Candidate", style="version_new")

    for index, upgrade in enumerate(upgrades, start=1):
        table.add_row(
            str(index),
            upgrade.atom,
            upgrade.current_version or "[muted]new[/]",
            upgrade.candidate_version,
        )
    return table


def print_stage(message: str) -> None:
    """Print a pipeline stage heading."""
    console.print(f"[stage]>>>[/] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
