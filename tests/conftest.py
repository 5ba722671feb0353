"""Shared fixtures: a throwaway BMAD project and fakes for agents and the operator."""

import io
from pathlib import Path

import pytest
import yaml
from rich.console import Console

from storyloop.agents.claude import AgentRunner
from storyloop.lib.config import RunConfig
from storyloop.lib.constants import SPRINT_STATUS_PATH
from storyloop.lib.output import ConsoleLog
from storyloop.runner.context import RunContext


def write_sprint_status(project: Path, development_status: dict, /, **extra) -> Path:
    path = project / SPRINT_STATUS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    data = dict(extra)
    data["development_status"] = development_status
    path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


def read_sprint_status(project: Path) -> dict:
    return yaml.safe_load((project / SPRINT_STATUS_PATH).read_text())


def write_epic(project: Path, number: int, title: str, stories: list[tuple[str, str]]) -> Path:
    path = project / "_bmad-output" / "planning-artifacts" / f"epic-{number}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [f"# {title}", "", "## Stories", ""]
    lines += [f"- [ ] {sid}: {stitle}" for sid, stitle in stories]
    path.write_text("\n".join(lines) + "\n")
    return path


def write_story(project: Path, story_id: str, title: str = "A story") -> Path:
    path = project / "_bmad-output" / "implementation-artifacts" / f"{story_id}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"# {title}\n\n## Acceptance Criteria\n\n- [ ] It works\n")
    return path


class FakeUserInput:
    """Scripted operator. Records every question asked."""

    def __init__(self, resume=True, epic_index=0, max_actions=None, confirm=True, next_epic=True):
        self.resume = resume
        self.epic_index = epic_index
        self.max_actions = list(max_actions or [])
        self.confirm = confirm
        self.next_epic = next_epic
        self.calls = []

    def select_epic(self, epics):
        self.calls.append(("select_epic", [e.id for e in epics]))
        if self.epic_index is None or not epics:
            return None
        return epics[self.epic_index]

    def confirm_resume(self, story_id, story_index):
        self.calls.append(("confirm_resume", story_id, story_index))
        return self.resume

    def handle_max_iterations(self, story_id, iterations):
        self.calls.append(("handle_max_iterations", story_id, iterations))
        return self.max_actions.pop(0)

    def confirm_action(self, message, default=True):
        self.calls.append(("confirm_action", message))
        return self.confirm

    def confirm_continue_next_epic(self, epic_id):
        self.calls.append(("confirm_continue_next_epic", epic_id))
        return self.next_epic

    def asked(self, name):
        return [c for c in self.calls if c[0] == name]


class FakeSpawn:
    """Stands in for spawn_agent.

    handlers maps a role to a callable(call_number, cmd, cwd) returning
    (exit_code, output); roles without a handler succeed with no output.
    """

    def __init__(self, handlers=None):
        self.handlers = handlers or {}
        self.calls = []

    def __call__(self, cmd, cwd, console, role, verbose):
        self.calls.append((role, cmd))
        handler = self.handlers.get(role)
        if handler is None:
            return 0, ""
        return handler(len(self.roles(role)), cmd, cwd)

    def roles(self, role=None):
        names = [r for r, _ in self.calls]
        return [r for r in names if r == role] if role else names


@pytest.fixture
def bmad_project(tmp_path):
    """Minimal BMAD project layout."""
    (tmp_path / "_bmad" / "bmm").mkdir(parents=True)
    (tmp_path / "_bmad" / "bmm" / "config.yaml").write_text("project_name: demo\n")
    (tmp_path / "_bmad-output" / "implementation-artifacts").mkdir(parents=True)
    (tmp_path / "_bmad-output" / "planning-artifacts").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def out():
    console = Console(file=io.StringIO(), width=200, force_terminal=False, color_system=None)
    return ConsoleLog(console=console, verbose=True)


def console_text(out: ConsoleLog) -> str:
    return out.console.file.getvalue()


@pytest.fixture
def make_ctx(bmad_project, out):
    """Build a RunContext over bmad_project with a fake spawn and operator."""

    def _make(spawn=None, user_input=None, has_git=False, **config_kwargs):
        config_kwargs.setdefault("retry_delay", 0)
        config = RunConfig(cwd=bmad_project, **config_kwargs)
        spawn = spawn or FakeSpawn()
        agents = AgentRunner(config, out, spawn=spawn, sleep=lambda s: None)
        return RunContext.create(
            config, out, has_git,
            user_input=user_input or FakeUserInput(),
            agents=agents,
        )

    return _make
