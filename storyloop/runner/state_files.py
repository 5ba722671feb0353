"""Session state persistence.

.storyloop-state.json records where an interrupted run stopped: the epic, the
position in its story list, the dev/review iteration and the stories already
finished. It is written before every unit of agent work and deleted when an
epic completes.

Reads are forgiving (a missing, unparseable or invalid file is treated as
absent). Writes are not: losing a write would break resume, so every write
failure raises StateWriteError.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from storyloop.lib.constants import STATE_FILE
from storyloop.lib.validate import ValidationError, is_valid, validate_before_write
from storyloop.runner.errors import StateWriteError

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    current_epic: str
    current_story_index: int = 0
    dev_review_iteration: int = 0
    completed_stories: list[str] = field(default_factory=list)
    last_updated: str = ""

    def add_completed(self, story_id: str) -> None:
        if story_id not in self.completed_stories:
            self.completed_stories.append(story_id)

    def is_completed(self, story_id: str) -> bool:
        return story_id in self.completed_stories

    def to_dict(self) -> dict:
        return {
            "currentEpic": self.current_epic,
            "currentStoryIndex": self.current_story_index,
            "devReviewIteration": self.dev_review_iteration,
            "completedStories": list(self.completed_stories),
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionState':
        completed = list(dict.fromkeys(data.get("completedStories", [])))
        return cls(
            current_epic=data["currentEpic"],
            current_story_index=data.get("currentStoryIndex", 0),
            dev_review_iteration=data.get("devReviewIteration", 0),
            completed_stories=completed,
            last_updated=data.get("lastUpdated", ""),
        )


def get_state_file_path(cwd: Path) -> Path:
    return cwd / STATE_FILE


def create_initial_state(epic_id: str) -> SessionState:
    return SessionState(
        current_epic=epic_id,
        last_updated=datetime.now().isoformat(),
    )


def load_state(cwd: Path) -> Optional[SessionState]:
    """Load saved session state, or None if there is nothing usable."""
    path = get_state_file_path(cwd)
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable state file {path}: {e}")
        return None

    if not is_valid(data, "session_state"):
        logger.warning(f"Ignoring invalid state file {path}")
        return None

    return SessionState.from_dict(data)


def save_state(cwd: Path, state: SessionState) -> None:
    """Write session state, refreshing lastUpdated.

    Raises:
        StateWriteError: If the state is invalid or the file cannot be written.
    """
    path = get_state_file_path(cwd)
    state.last_updated = datetime.now().isoformat()
    data = state.to_dict()

    try:
        validate_before_write(data, "session_state", path)
        path.write_text(json.dumps(data, indent=2) + "\n")
    except (ValidationError, OSError) as e:
        raise StateWriteError(f"Failed to save session state to {path}: {e}") from e

    logger.debug(
        f"Saved state: {state.current_epic} story={state.current_story_index} "
        f"iteration={state.dev_review_iteration}"
    )


def clear_state(cwd: Path) -> None:
    """Delete the state file if present."""
    path = get_state_file_path(cwd)
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove state file {path}: {e}")
        return
    logger.debug(f"Cleared state file {path}")
