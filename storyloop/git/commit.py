"""Git commit operations."""

import logging
from pathlib import Path

from storyloop.git.runner import COMMIT_TIMEOUT, GitResult, run_git
from storyloop.git.status import has_uncommitted_changes

logger = logging.getLogger(__name__)


def stage_all(cwd: Path) -> GitResult:
    """Stage all changes (new, modified, deleted)."""
    return run_git(["add", "-A"], cwd)


def commit(cwd: Path, message: str) -> GitResult:
    """Create a commit with the given message."""
    return run_git(["commit", "-m", message], cwd, timeout=COMMIT_TIMEOUT)


def story_commit_message(story_id: str, title: str) -> str:
    return f"feat({story_id}): {title}"


def commit_story_changes(cwd: Path, story_id: str, title: str) -> bool:
    """Stage everything and commit it as the story's work.

    Returns True if a commit was created. A clean tree is not an error; it is
    logged and returns False, as does any git failure.
    """
    if not has_uncommitted_changes(cwd):
        logger.warning(f"No changes to commit for {story_id}")
        return False

    staged = stage_all(cwd)
    if not staged.success:
        logger.warning(f"git add failed for {story_id}: {staged.error}")
        return False

    result = commit(cwd, story_commit_message(story_id, title))
    if not result.success:
        logger.warning(f"git commit failed for {story_id}: {result.error}")
        return False

    logger.debug(f"Committed {story_id}")
    return True
