"""
Run context shared by the epic loop and the iteration controller.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from storyloop.agents.claude import AgentRunner
from storyloop.lib.config import RunConfig
from storyloop.lib.output import ConsoleLog
from storyloop.lib.user_input import UserInput
from storyloop.runner.state_files import SessionState, save_state


@dataclass
class RunContext:
    """Everything one orchestrator session needs, passed explicitly."""
    cwd: Path
    config: RunConfig
    out: ConsoleLog
    user_input: UserInput
    agents: AgentRunner
    has_git: bool = False
    state: Optional[SessionState] = None

    @classmethod
    def create(cls, config: RunConfig, out: ConsoleLog, has_git: bool,
               user_input: UserInput | None = None,
               agents: AgentRunner | None = None) -> 'RunContext':
        return cls(
            cwd=config.cwd,
            config=config,
            out=out,
            user_input=user_input or UserInput(out.console),
            agents=agents or AgentRunner(config, out),
            has_git=has_git,
        )

    def checkpoint(self) -> None:
        """Persist the session state. Raises StateWriteError on failure."""
        if self.state is not None:
            save_state(self.cwd, self.state)
