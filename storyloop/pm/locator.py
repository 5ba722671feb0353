"""
Work discovery over sprint-status.yaml.

development_status is a flat mapping that mixes epic markers ("epic-8") with
story keys ("8-2-pool-reset-function"). classify_entries() sorts every key once;
everything else in this module works on the classified entries.

Keys that are neither (e.g. "epic-8-retrospective") and non-string statuses
are skipped, never raised on: the document is also written by agents.
"""

import logging
from typing import Iterable, Optional, Union

from storyloop.lib.constants import (
    ACTIONABLE_STATUSES,
    EPIC_MARKER_PATTERN,
    EPIC_PREFIX,
    STATUS_IN_PROGRESS,
    STORY_ID_PATTERN,
    TERMINAL_STATUSES,
)
from storyloop.pm.models import EpicMarker, OngoingWork, StoryEntry, StoryRef

logger = logging.getLogger(__name__)

Entry = Union[EpicMarker, StoryEntry]


def epic_number(epic_id: str) -> str:
    """'epic-8' -> '8'. Unprefixed ids are returned unchanged."""
    epic_id = str(epic_id)
    if epic_id.startswith(EPIC_PREFIX):
        return epic_id[len(EPIC_PREFIX):]
    return epic_id


def normalize_epic_id(epic_id) -> str:
    """'8', 8 or 'epic-8' -> 'epic-8'."""
    return f"{EPIC_PREFIX}{epic_number(str(epic_id))}"


def story_epic_id(story_id: str) -> Optional[str]:
    """Derive the epic of a story from its leading numeric token.

    '8-2-pool-reset' -> 'epic-8'; returns None for ids without one.
    """
    match = STORY_ID_PATTERN.match(str(story_id))
    if not match:
        return None
    return normalize_epic_id(match.group(1))


def classify_entry(key, status) -> Optional[Entry]:
    """Classify one development_status entry, or None if it should be skipped."""
    if not isinstance(status, str):
        return None
    key = str(key)

    marker = EPIC_MARKER_PATTERN.match(key)
    if marker:
        return EpicMarker(key=key, epic_id=normalize_epic_id(marker.group(1)), status=status)
    if key.startswith(EPIC_PREFIX):
        return None

    epic_id = story_epic_id(key)
    if epic_id is None:
        return None
    return StoryEntry(key=key, epic_id=epic_id, status=status)


def classify_entries(sprint_status: Optional[dict]) -> list[Entry]:
    """Classify development_status in document order, dropping malformed entries."""
    if not isinstance(sprint_status, dict):
        return []
    dev_status = sprint_status.get("development_status")
    if not isinstance(dev_status, dict):
        return []

    entries = []
    for key, status in dev_status.items():
        entry = classify_entry(key, status)
        if entry is None:
            logger.debug(f"Skipping sprint-status entry {key!r}: {status!r}")
            continue
        entries.append(entry)
    return entries


def _stories(entries: Iterable[Entry]) -> list[StoryEntry]:
    return [e for e in entries if isinstance(e, StoryEntry)]


def is_actionable(status: str) -> bool:
    return status in ACTIONABLE_STATUSES


def is_terminal(status: Optional[str]) -> bool:
    return status in TERMINAL_STATUSES


def find_ongoing_work(sprint_status: Optional[dict]) -> Optional[OngoingWork]:
    """Find the epic to work on next from sprint-status.yaml.

    1. The first actionable story (document order) picks the epic; every
       actionable story of that epic is returned.
    2. Failing that, an epic marked in-progress is returned with its
       non-terminal stories. An in-progress epic whose stories are all done
       is stale and skipped.
    3. Otherwise None.
    """
    entries = classify_entries(sprint_status)
    stories = _stories(entries)

    actionable = [s for s in stories if is_actionable(s.status)]
    if actionable:
        epic_id = actionable[0].epic_id
        return OngoingWork(
            epic_id=epic_id,
            stories=[StoryRef(s.key, s.status) for s in actionable if s.epic_id == epic_id],
        )

    for marker in entries:
        if not isinstance(marker, EpicMarker) or marker.status != STATUS_IN_PROGRESS:
            continue
        open_stories = [
            s for s in stories
            if s.epic_id == marker.epic_id and not is_terminal(s.status)
        ]
        if open_stories:
            return OngoingWork(
                epic_id=marker.epic_id,
                stories=[StoryRef(s.key, s.status) for s in open_stories],
            )
        logger.debug(f"Ignoring stale in-progress marker {marker.key}: all stories are done")

    return None


def get_all_stories_for_epic(sprint_status: Optional[dict], epic_id: str) -> list[StoryRef]:
    """Every story of an epic in sprint-status.yaml, regardless of status.

    Used as the story list when the epic file is missing or unparseable.
    """
    wanted = normalize_epic_id(epic_id)
    return [
        StoryRef(s.key, s.status)
        for s in _stories(classify_entries(sprint_status))
        if s.epic_id == wanted
    ]


def get_story_status(sprint_status: Optional[dict], story_id: str) -> Optional[str]:
    """Status recorded for one story, or None if absent or unreadable."""
    if not isinstance(sprint_status, dict):
        return None
    dev_status = sprint_status.get("development_status")
    if not isinstance(dev_status, dict):
        return None
    status = dev_status.get(story_id)
    return status if isinstance(status, str) else None
