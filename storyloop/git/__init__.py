"""Git operations for storyloop.

Return type conventions:
- Functions returning GitResult: Caller must check .success before using output.
  Examples: stage_all(), commit()
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: is_git_repo(), has_uncommitted_changes(), commit_story_changes()
"""

from storyloop.git.status import (
    is_git_repo,
    has_uncommitted_changes,
    get_status_porcelain,
)
from storyloop.git.commit import (
    stage_all,
    commit,
    story_commit_message,
    commit_story_changes,
)

__all__ = [
    # status
    "is_git_repo",
    "has_uncommitted_changes",
    "get_status_porcelain",
    # commit
    "stage_all",
    "commit",
    "story_commit_message",
    "commit_story_changes",
]
