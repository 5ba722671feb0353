"""Interactive prompts shown to the operator.

All questions go through rich.prompt so they share the orchestrator's console.
The epic loop receives a UserInput instance; tests substitute a fake with the
same methods.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from storyloop.pm.models import Epic

# Choices at the max-iterations prompt, in display order
MAX_ITERATION_ACTIONS = [
    ("continue", "Continue (reset iteration counter)"),
    ("complete", "Mark as complete (run final dev pass, then commit)"),
    ("skip", "Skip story (leave it unfinished)"),
    ("abort", "Abort (save state and exit)"),
]


class UserInput:
    def __init__(self, console: Console | None = None):
        self.console = console or Console(highlight=False)

    def select_epic(self, epics: list[Epic]) -> Optional[Epic]:
        """Ask which epic to implement. None when there is nothing to pick."""
        if not epics:
            return None

        self.console.print("[bold]Select an epic to implement:[/bold]")
        for i, epic in enumerate(epics, 1):
            self.console.print(
                f"  [bold]{i}[/bold]. {escape(epic.id)}: {escape(epic.title)} "
                f"[dim]({len(epic.stories)} stories)[/dim]"
            )

        choices = [str(i) for i in range(1, len(epics) + 1)]
        choice = Prompt.ask("Choose", choices=choices, console=self.console)
        return epics[int(choice) - 1]

    def confirm_resume(self, story_id: str, story_index: int) -> bool:
        return Confirm.ask(
            f"Resume from story {escape(story_id)} (story #{story_index + 1})?",
            default=True,
            console=self.console,
        )

    def handle_max_iterations(self, story_id: str, iterations: int) -> str:
        """Ask what to do with a story that never passed review.

        Returns one of "continue", "complete", "skip", "abort".
        """
        self.console.print(
            f"[yellow]Story {escape(story_id)} has gone through {iterations} dev-review cycles "
            f"without completion. What would you like to do?[/yellow]"
        )
        for i, (_, label) in enumerate(MAX_ITERATION_ACTIONS, 1):
            self.console.print(f"  [bold]{i}[/bold]. {label}")

        choices = [str(i) for i in range(1, len(MAX_ITERATION_ACTIONS) + 1)]
        choice = Prompt.ask("Choose", choices=choices, console=self.console)
        return MAX_ITERATION_ACTIONS[int(choice) - 1][0]

    def confirm_action(self, message: str, default: bool = True) -> bool:
        return Confirm.ask(escape(message), default=default, console=self.console)

    def confirm_continue_next_epic(self, epic_id: str) -> bool:
        return Confirm.ask(
            f"Epic complete. Continue with next epic {escape(epic_id)}?",
            default=True,
            console=self.console,
        )
