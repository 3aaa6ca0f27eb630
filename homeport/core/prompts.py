"""Interactive prompts for operator-driven workflows.

Prompter wraps rich.prompt so every question the workflows ask goes through
one object that tests can replace with scripted answers.
"""
from typing import Callable, List, Optional, Sequence

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

Validator = Callable[[str], bool]


class Prompter:
    """Ask the operator questions on the console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def ask(
        self,
        message: str,
        default: Optional[str] = None,
        validator: Optional[Validator] = None,
        error_message: str = "Invalid value, try again.",
        secret: bool = False,
    ) -> str:
        """Ask for free text, re-asking until the validator accepts it."""
        while True:
            answer = Prompt.ask(
                message,
                console=self.console,
                default=default,
                password=secret,
                show_default=bool(default),
            )
            answer = (answer or "").strip()
            if validator is None or validator(answer):
                return answer
            self.console.print(f"[red]{error_message}[/red]")

    def confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(message, console=self.console, default=default)

    def select(self, message: str, choices: Sequence[str], default: int = 0) -> int:
        """Pick exactly one choice. Returns its index."""
        self._show_choices(choices)
        while True:
            answer = Prompt.ask(message, console=self.console, default=str(default + 1))
            indexes = _parse_indexes(answer, len(choices))
            if indexes is not None and len(indexes) == 1:
                return indexes[0]
            self.console.print(f"[red]Enter one number between 1 and {len(choices)}.[/red]")

    def multi_select(self, message: str, choices: Sequence[str]) -> List[int]:
        """Pick any number of choices. Returns their indexes (possibly empty)."""
        self._show_choices(choices)
        while True:
            answer = Prompt.ask(
                f"{message} [dim](comma-separated numbers, blank for none)[/dim]",
                console=self.console,
                default="",
                show_default=False,
            )
            indexes = _parse_indexes(answer, len(choices))
            if indexes is not None:
                return indexes
            self.console.print(f"[red]Use numbers between 1 and {len(choices)}, e.g. 1,3[/red]")

    def _show_choices(self, choices: Sequence[str]) -> None:
        table = Table(show_header=False, box=None, padding=(0, 1))
        for number, choice in enumerate(choices, start=1):
            table.add_row(f"[cyan]{number}[/cyan]", choice)
        self.console.print(table)


def _parse_indexes(answer: Optional[str], count: int) -> Optional[List[int]]:
    """Parse "1, 3" into [0, 2]. Returns None on any invalid entry."""
    indexes: List[int] = []
    for token in (answer or "").replace(" ", "").split(","):
        if not token:
            continue
        if not token.isdigit():
            return None
        number = int(token)
        if not 1 <= number <= count:
            return None
        if number - 1 not in indexes:
            indexes.append(number - 1)
    return indexes
