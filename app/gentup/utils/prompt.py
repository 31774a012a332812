"""Interactive operator prompts.

Wraps typer's confirm/prompt helpers and Rich's status spinner behind a
single object so pipeline stages can be driven by tests without a TTY.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

import typer

from gentup.utils.formatting import console

logger = logging.getLogger(__name__)


class Prompter:
    """Asks the operator yes/no, free-text and list-selection questions.

    Attributes:
        assume_yes: If True, every question is answered with its default
            without reading from the terminal.
    """

    def __init__(self, assume_yes: bool = False) -> None:
        self._assume_yes = assume_yes

    @property
    def assume_yes(self) -> bool:
        """Check if prompts are answered automatically."""
        return self._assume_yes

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question biased towards ``default``."""
        if self._assume_yes:
            logger.debug("Auto-answering '%s' with %s", message, default)
            return default
        return typer.confirm(message, default=default)

    def ask(self, message: str, default: str = "") -> str:
        """Ask for a line of text; an empty answer returns ``default``."""
        if self._assume_yes:
            return default
        answer: str = typer.prompt(message, default=default, show_default=bool(default))
        return answer.strip()

    def choose(self, message: str, choices: Sequence[str], default: int = 0) -> int:
        """Present a numbered list and return the chosen index.

        Args:
            message: Question shown above the list.
            choices: Options to present.
            default: Index returned when the operator just presses return.

        Returns:
            Zero-based index into ``choices``.
        """
        if not choices:
            msg = "choose() needs at least one choice"
            raise ValueError(msg)
        if self._assume_yes:
            return default

        console.print(message)
        for number, choice in enumerate(choices, start=1):
            console.print(f"  [info]{number}[/]) {choice}")

        while True:
            answer: int = typer.prompt("Selection", default=default + 1, type=int)
            if 1 <= answer <= len(choices):
                return answer - 1
            console.print(f"[warning]Please enter a number between 1 and {len(choices)}[/]")

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Show an indeterminate spinner while a long command runs."""
        with console.status(message, spinner="line"):
            yield
