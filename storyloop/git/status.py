"""Git status operations."""

from pathlib import Path

from storyloop.git.runner import run_git


def is_git_repo(cwd: Path) -> bool:
    """True if cwd is inside a git work tree."""
    result = run_git(["rev-parse", "--is-inside-work-tree"], cwd)
    return result.success and result.output == "true"


def get_status_porcelain(cwd: Path) -> str:
    """Get git status in porcelain format."""
    result = run_git(["status", "--porcelain"], cwd)
    return result.stdout


def has_uncommitted_changes(cwd: Path) -> bool:
    """Check for any staged, unstaged, or untracked changes."""
    return bool(get_status_porcelain(cwd).strip())
