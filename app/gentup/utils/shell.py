"""Shell execution utilities.

Provides subprocess execution for the external Portage tools. A non-zero
exit status is returned to the caller, never raised; only a program that
cannot be started is an error.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ExecutionError(Exception):
    """Raised when an external program is missing or cannot be spawned.

    Attributes:
        program: Name of the program that failed to start.
    """

    def __init__(self, program: str, reason: str) -> None:
        self.program = program
        super().__init__(f"Cannot execute {program}: {reason}")


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = None,
    input_text: str | None = None,
) -> CommandResult:
    """Execute a command and capture its output.

    Portage operations can take hours, so there is no timeout by default.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait for command.
        input_text: Text passed to the command on stdin.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        ExecutionError: If the executable is not found or cannot be spawned.
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
    """
    logger.debug("Running: %s", " ".join(args))
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            check=check,
            timeout=timeout,
            input=input_text,
        )
    except FileNotFoundError as e:
        raise ExecutionError(args[0], "command not found") from e
    except PermissionError as e:
        raise ExecutionError(args[0], "permission denied") from e
    except OSError as e:
        raise ExecutionError(args[0], str(e)) from e

    logger.debug("%s exited with status %d", args[0], result.returncode)
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def run_interactive(
    args: list[str],
    *,
    env: dict[str, str] | None = None,
) -> int:
    """Execute a command interactively, inheriting the terminal.

    Unlike run_command(), this does NOT capture stdout/stderr, so emerge
    output and prompts from tools like dispatch-conf reach the operator
    directly.

    Args:
        args: Command and arguments to execute.
        env: Additional environment variables (merged with current env).

    Returns:
        Exit code of the command.

    Raises:
        ExecutionError: If the executable is not found or cannot be spawned.
    """
    logger.debug("Running interactively: %s", " ".join(args))
    full_env = {**os.environ, **(env or {})}
    try:
        result = subprocess.run(args, check=False, env=full_env)
    except FileNotFoundError as e:
        raise ExecutionError(args[0], "command not found") from e
    except OSError as e:
        raise ExecutionError(args[0], str(e)) from e
    return result.returncode


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None
