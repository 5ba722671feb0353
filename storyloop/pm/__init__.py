"""
PM (Project Management) module for storyloop.

Reads the BMAD planning artifacts: epic and story markdown files, and the
sprint-status.yaml document that tracks what is done and what is next.
"""

from storyloop.pm.models import (
    AcceptanceCriterion,
    Epic,
    EpicStory,
    OngoingWork,
    Story,
    StoryRef,
)
from storyloop.pm.epics import (
    ensure_output_dir,
    find_epic,
    load_epics,
    load_story,
    story_file_exists,
)
from storyloop.pm.locator import (
    find_ongoing_work,
    get_all_stories_for_epic,
    normalize_epic_id,
)
from storyloop.pm.sprint_status import (
    load_sprint_status,
    mark_epic_complete,
    update_sprint_status,
)

__all__ = [
    "AcceptanceCriterion",
    "Epic",
    "EpicStory",
    "OngoingWork",
    "Story",
    "StoryRef",
    "ensure_output_dir",
    "find_epic",
    "load_epics",
    "load_story",
    "story_file_exists",
    "find_ongoing_work",
    "get_all_stories_for_epic",
    "normalize_epic_id",
    "load_sprint_status",
    "mark_epic_complete",
    "update_sprint_status",
]
