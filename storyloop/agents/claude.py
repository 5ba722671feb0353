"""
Agent process management.

Every BMAD role is the same CLI invocation with a different profile (prompt,
model tier, tool list). AgentRunner builds the command, spawns it in the
project directory, streams its output to the console and reports how long it
took. Interpreting what the agent did is left to the caller, except for the
review verdict, which classify_review() reads back from sprint-status.yaml.
"""

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from storyloop.agents.profiles import DEV, REVIEW, AgentProfile
from storyloop.lib.agents_config import build_agent_command
from storyloop.lib.config import RunConfig
from storyloop.lib.constants import REVIEW_PASSED_SENTINEL, STATUS_DONE
from storyloop.lib.output import ConsoleLog
from storyloop.lib.prompts import render_prompt
from storyloop.lib.stream import LabeledStream
from storyloop.pm.locator import get_story_status
from storyloop.pm.sprint_status import load_sprint_status
from storyloop.runner.errors import AgentError, FatalAgentError

logger = logging.getLogger(__name__)

# spawn(cmd, cwd, console, role, verbose) -> (exit_code, captured stdout)
SpawnFn = Callable[[list[str], Path, Console, str, bool], tuple[int, str]]


@dataclass
class AgentRun:
    duration_ms: float
    exit_code: int
    output: str


@dataclass
class ReviewResult:
    passed: bool
    output: str
    duration_ms: float


def _pump(pipe, sink) -> None:
    for line in iter(pipe.readline, ""):
        sink.write(line)
    pipe.close()


def spawn_agent(cmd: list[str], cwd: Path, console: Console, role: str,
                verbose: bool) -> tuple[int, str]:
    """Run an agent process to completion.

    stdin is inherited so the agent can still ask the operator questions.
    stdout is captured and echoed, labelled per line when verbose. stderr is
    inherited, or labelled on a helper thread when verbose.

    Raises:
        AgentError: If the process cannot be started.
    """
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE if verbose else None,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except OSError as e:
        raise AgentError(role, f"Failed to start {cmd[0]}: {e}") from e

    out_stream = LabeledStream(role, console) if verbose else None
    err_thread = None
    err_stream = None
    if verbose:
        err_stream = LabeledStream(role, console, stream_type="stderr")
        err_thread = threading.Thread(target=_pump, args=(proc.stderr, err_stream), daemon=True)
        err_thread.start()

    captured = []
    try:
        for chunk in iter(proc.stdout.readline, ""):
            captured.append(chunk)
            if out_stream:
                out_stream.write(chunk)
            else:
                console.file.write(chunk)
                console.file.flush()
    except BaseException:
        proc.kill()
        raise
    finally:
        proc.stdout.close()
        exit_code = proc.wait()
        if err_thread:
            err_thread.join()
            err_stream.close()

    if out_stream:
        out_stream.close()

    return exit_code, "".join(captured)


def classify_review(cwd: Path, story_id: str, output: str) -> bool:
    """Decide whether a finished review passed the story.

    sprint-status.yaml is authoritative when readable. Only when it is
    missing or malformed is the review output searched for the sentinel.
    """
    sprint_status = load_sprint_status(cwd)
    if sprint_status is not None:
        return get_story_status(sprint_status, story_id) == STATUS_DONE
    logger.debug(f"No sprint status for review of {story_id}; checking output for {REVIEW_PASSED_SENTINEL}")
    return REVIEW_PASSED_SENTINEL in output


class AgentRunner:
    """Runs agent profiles with the session's configuration."""

    def __init__(self, config: RunConfig, out: ConsoleLog, spawn: SpawnFn = spawn_agent,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.out = out
        self.spawn = spawn
        self.sleep = sleep

    def run(self, profile: AgentProfile, cwd: Path, **prompt_vars) -> AgentRun:
        """Run one agent invocation.

        Raises:
            AgentError: On non-zero exit or spawn failure.
        """
        prompt = render_prompt(profile.prompt_name, **prompt_vars)
        cmd = build_agent_command(self.config.agents, profile.tier, prompt, profile.allowed_tools)
        logger.debug(f"[{profile.role}] model tier {profile.tier}, prompt {len(prompt)} chars, cwd {cwd}")

        self.out.agent_lifecycle(profile.role, "start")
        start = time.monotonic()
        try:
            exit_code, output = self.spawn(cmd, cwd, self.out.console, profile.role, self.config.verbose)
        except AgentError:
            self.out.agent_lifecycle(profile.role, "fail", duration_ms=(time.monotonic() - start) * 1000)
            raise
        duration_ms = (time.monotonic() - start) * 1000

        if exit_code != 0:
            self.out.agent_lifecycle(profile.role, "fail", exit_code=exit_code, duration_ms=duration_ms)
            raise AgentError(profile.role, f"{profile.role} agent exited with code {exit_code}", exit_code)

        self.out.agent_lifecycle(profile.role, "complete", exit_code=exit_code, duration_ms=duration_ms)
        return AgentRun(duration_ms=duration_ms, exit_code=exit_code, output=output)

    def run_with_retry(self, profile: AgentProfile, cwd: Path,
                       checkpoint: Optional[Callable[[], None]] = None, **prompt_vars) -> AgentRun:
        """Run an agent, retrying once after retry_delay.

        On the second failure checkpoint() is called so the session can be
        resumed, then FatalAgentError is raised.
        """
        try:
            return self.run(profile, cwd, **prompt_vars)
        except AgentError as e:
            self.out.warn(f"{e}. Retrying in {self.config.retry_delay:g}s...")

        self.sleep(self.config.retry_delay)
        try:
            return self.run(profile, cwd, **prompt_vars)
        except AgentError as e:
            self.out.error(f"{profile.role} agent failed twice: {e}")
            if checkpoint:
                checkpoint()
            raise FatalAgentError(profile.role, f"{profile.role} agent failed after retry: {e}",
                                  e.exit_code) from e

    def dev(self, cwd: Path, story_id: str, story_file: str,
            checkpoint: Optional[Callable[[], None]] = None) -> AgentRun:
        return self.run_with_retry(DEV, cwd, checkpoint, story_id=story_id, story_file=story_file)

    def review(self, cwd: Path, story_id: str, story_file: str,
               checkpoint: Optional[Callable[[], None]] = None) -> ReviewResult:
        run = self.run_with_retry(
            REVIEW, cwd, checkpoint,
            story_id=story_id, story_file=story_file, sentinel=REVIEW_PASSED_SENTINEL,
        )
        passed = classify_review(cwd, story_id, run.output)
        return ReviewResult(passed=passed, output=run.output, duration_ms=run.duration_ms)
