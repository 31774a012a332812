"""Utility modules for gentup.

This module exports commonly used utility functions.
"""

from gentup.utils.formatting import (
    console,
    create_upgrade_table,
    err_console,
    print_error,
    print_info,
    print_stage,
    print_success,
    print_warning,
)
from gentup.utils.shell import (
    CommandResult,
    ExecutionError,
    command_exists,
    run_command,
    run_interactive,
)

__all__ = [
    "CommandResult",
    "ExecutionError",
    "command_exists",
    "console",
    "create_upgrade_table",
    "err_console",
    "print_error",
    "print_info",
    "print_stage",
    "print_success",
    "print_warning",
    "run_command",
    "run_interactive",
]
