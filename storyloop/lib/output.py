"""Console output for the orchestrator.

Separates UI/display concerns from orchestration logic. Every line carries a
wall-clock timestamp and the session elapsed time.
"""

from datetime import datetime

from rich.console import Console
from rich.markup import escape

from storyloop.lib.timer import SessionTimer, format_duration

LEVEL_STYLES = {
    "info": ("INFO", "blue"),
    "warn": ("WARN", "yellow"),
    "error": ("ERROR", "red"),
    "debug": ("DEBUG", "bright_black"),
    "success": ("SUCCESS", "green"),
}


class ConsoleLog:
    """Leveled, timestamped console output.

    Verbosity and the session timer are owned by the instance, so two
    orchestrator runs in one interpreter never share output settings.
    """

    def __init__(self, console: Console | None = None, timer: SessionTimer | None = None,
                 verbose: bool = False):
        self.console = console or Console(highlight=False)
        self.timer = timer or SessionTimer()
        self.verbose = verbose

    def _elapsed(self) -> str:
        return f"[dim]({self.timer.format()})[/dim]"

    def log(self, level: str, message: str) -> None:
        if level == "debug" and not self.verbose:
            return
        label, style = LEVEL_STYLES[level]
        timestamp = escape(f"[{datetime.now().strftime('%H:%M:%S')}]")
        self.console.print(
            f"[dim]{timestamp}[/dim] [{style}]{label}[/{style}] {escape(message)} {self._elapsed()}",
            highlight=False,
        )

    def info(self, message: str) -> None:
        self.log("info", message)

    def warn(self, message: str) -> None:
        self.log("warn", message)

    def error(self, message: str) -> None:
        self.log("error", message)

    def debug(self, message: str) -> None:
        self.log("debug", message)

    def success(self, message: str) -> None:
        self.log("success", message)

    def info_with_timing(self, message: str, agent_duration_ms: float | None = None) -> None:
        self.log("info", _with_timing(message, agent_duration_ms))

    def success_with_timing(self, message: str, agent_duration_ms: float | None = None) -> None:
        self.log("success", _with_timing(message, agent_duration_ms))

    def header(self, title: str) -> None:
        """Print a section header."""
        line = "─" * 60
        self.console.print()
        self.console.print(f"[cyan]{line}[/cyan]")
        self.console.print(f"[bold cyan]  {escape(title)}[/bold cyan] {self._elapsed()}")
        self.console.print(f"[cyan]{line}[/cyan]")
        self.console.print()

    def sub_header(self, title: str) -> None:
        self.console.print()
        self.console.print(f"[bold yellow]▸ {escape(title)}[/bold yellow] {self._elapsed()}")
        self.console.print()

    def step(self, step_num: int, total: int, message: str) -> None:
        self.console.print(
            f"[magenta]\\[{step_num}/{total}][/magenta] {escape(message)} {self._elapsed()}",
            highlight=False,
        )

    def agent_lifecycle(self, role: str, event: str, exit_code: int | None = None,
                        duration_ms: float | None = None) -> None:
        """Record an agent start/complete/fail event (debug level)."""
        parts = [f"[{role}] agent {event}"]
        if exit_code is not None:
            parts.append(f"exit={exit_code}")
        if duration_ms is not None:
            parts.append(f"duration={format_duration(duration_ms)}")
        self.debug(" ".join(parts))


def _with_timing(message: str, agent_duration_ms: float | None) -> str:
    if agent_duration_ms is None:
        return message
    return f"{message} (agent: {format_duration(agent_duration_ms)})"

