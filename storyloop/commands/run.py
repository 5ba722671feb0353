"""
storyloop run - pre-flight checks, then the epic loop.
"""

import logging

from storyloop.git import is_git_repo
from storyloop.lib.agents_config import check_binary_available, get_agent_binary
from storyloop.lib.config import RunConfig, load_project_config
from storyloop.lib.constants import RESUME_HINT
from storyloop.lib.output import ConsoleLog
from storyloop.pm.epics import ensure_output_dir, is_bmad_project
from storyloop.runner.context import RunContext
from storyloop.runner.epic_loop import run_epic_loop
from storyloop.runner.errors import AbortRequested, FatalAgentError, NoWorkAvailable, StateWriteError

logger = logging.getLogger(__name__)


def preflight(config: RunConfig, out: ConsoleLog) -> bool | None:
    """Check the environment. Returns whether git commits are possible, or None on failure."""
    out.info("Running pre-flight checks...")

    binary = get_agent_binary(config.agents)
    if not check_binary_available(binary):
        out.error(f"Agent CLI '{binary}' is not installed or not in PATH")
        out.error("Install Claude Code from: https://github.com/anthropics/claude-code")
        return None

    if not is_bmad_project(config.cwd):
        out.error("Not a BMAD project directory.")
        out.error("Expected to find _bmad/ with bmm configuration.")
        out.error("Run this command from the root of your BMAD project.")
        return None

    ensure_output_dir(config.cwd)

    has_git = is_git_repo(config.cwd)
    if not has_git:
        out.warn("Not a git repository - commits will be skipped")

    out.success("Pre-flight checks passed")
    return has_git


def cmd_run(config: RunConfig, out: ConsoleLog | None = None, ctx: RunContext | None = None) -> int:
    """Run the orchestrator. Returns the process exit code."""
    out = out or (ctx.out if ctx else ConsoleLog(verbose=config.verbose))

    project = load_project_config(config.cwd)
    out.header(f"storyloop - {project.name}")

    try:
        if ctx is None:
            has_git = preflight(config, out)
            if has_git is None:
                return 1
            ctx = RunContext.create(config, out, has_git)
        return run_epic_loop(ctx)
    except NoWorkAvailable as e:
        out.error(str(e))
        return 1
    except AbortRequested as e:
        out.error(str(e))
        out.info(RESUME_HINT)
        return 1
    except (FatalAgentError, StateWriteError) as e:
        out.error(f"Fatal error: {e}")
        out.info(RESUME_HINT)
        return 1
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        out.error(f"Fatal error: {e}")
        out.info(RESUME_HINT)
        return 1
