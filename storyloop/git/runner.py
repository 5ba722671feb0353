"""Single entry point for running git in the project directory."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
# Commit hooks (lint, tests) can take a while
COMMIT_TIMEOUT = 300


@dataclass
class GitResult:
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        return self.stdout.strip()

    @property
    def error(self) -> str:
        """Best failure description; git prints some errors on stdout."""
        return self.stderr.strip() or self.stdout.strip()


def run_git(args: list[str], cwd: Path, timeout: int = DEFAULT_TIMEOUT) -> GitResult:
    """Run `git -C cwd <args>` and capture its output.

    Never raises. A missing git binary or a timeout comes back as a failed
    GitResult with returncode -1.
    """
    cmd = ["git", "-C", str(cwd), *args]
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(f"git {args[0]} timed out after {timeout}s in {cwd}")
        return GitResult(-1, "", f"git {args[0]} timed out after {timeout}s", timed_out=True)
    except OSError as e:
        logger.debug(f"Could not run git: {e}")
        return GitResult(-1, "", str(e))

    result = GitResult(proc.returncode, proc.stdout, proc.stderr)
    if not result.success:
        logger.debug(f"git {' '.join(args)} exited {proc.returncode}: {result.error}")
    return result
