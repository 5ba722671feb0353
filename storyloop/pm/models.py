"""
Data models for epics, stories and sprint-status entries.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class EpicStory:
    """A story as listed in an epic: just enough to schedule it."""
    id: str                                    # 8-2-pool-reset-function
    title: str
    status: Optional[str] = None               # from a checkbox or sprint-status.yaml


@dataclass
class Epic:
    """A group of stories, usually backed by planning-artifacts/epic-<N>.md."""
    id: str                                    # epic-8
    title: str
    stories: list[EpicStory] = field(default_factory=list)
    file_path: str = ""                        # empty when synthesized from sprint status


@dataclass
class AcceptanceCriterion:
    text: str
    done: bool


@dataclass
class Story:
    """Full story detail, loaded only when the story is about to be worked on."""
    id: str
    title: str
    file_path: str
    acceptance_criteria: list[AcceptanceCriterion] = field(default_factory=list)


@dataclass
class StoryRef:
    """A (story id, status) pair read from sprint-status.yaml."""
    id: str
    status: str


@dataclass
class OngoingWork:
    """Work found in sprint-status.yaml. Derived on demand, never persisted."""
    epic_id: str
    stories: list[StoryRef] = field(default_factory=list)
    source: str = "sprint-status"


# Sprint-status entries. development_status mixes epics and stories under one
# mapping; classify_entries() in pm.locator sorts each key into one of these.

@dataclass(frozen=True)
class EpicMarker:
    key: str                                   # epic-8
    epic_id: str                               # epic-8
    status: str


@dataclass(frozen=True)
class StoryEntry:
    key: str                                   # 8-2-pool-reset-function
    epic_id: str                               # epic-8
    status: str
