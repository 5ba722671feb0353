"""
Exceptions that end or redirect an orchestrator run.

Data-quality problems never raise; they degrade through fallbacks. Only the
conditions below stop the loop, and cmd_run maps each of them to exit 1.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class AgentError(Exception):
    """An agent process exited non-zero or could not be spawned."""
    role: str
    message: str
    exit_code: Optional[int] = None  # None when the process never started

    def __str__(self):
        return self.message


@dataclass
class FatalAgentError(AgentError):
    """An agent failed twice in a row. State has been persisted."""


@dataclass
class AbortRequested(Exception):
    """The user chose to abort at the max-iterations prompt."""
    story_id: str

    def __str__(self):
        return f"Aborted by user at story {self.story_id}"


class NoWorkAvailable(Exception):
    """No epic could be selected, or an epic has no story data."""


class StateWriteError(Exception):
    """The session state file could not be written."""
