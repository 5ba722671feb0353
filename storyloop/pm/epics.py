"""
Epic and story markdown parsing.

Epics live in  _bmad-output/planning-artifacts/epic-<N>.md
Stories live in _bmad-output/implementation-artifacts/<story id>*.md
"""

import logging
import re
from pathlib import Path
from typing import Optional

from storyloop.lib.constants import (
    BMAD_CONFIG_PATH,
    BMAD_DIR,
    BMAD_OUTPUT_DIR,
    EPICS_DIR,
    STATUS_DONE,
    STORIES_DIR,
)
from storyloop.pm.locator import normalize_epic_id
from storyloop.pm.models import AcceptanceCriterion, Epic, EpicStory, Story

logger = logging.getLogger(__name__)

EPIC_FILE_RE = re.compile(r'^epic-([^/]+)\.md$')
TITLE_RE = re.compile(r'^#\s+(.+?)\s*$')
H2_RE = re.compile(r'^##\s+')
STORIES_HEADING_RE = re.compile(r'^##\s+.*stories', re.IGNORECASE)
AC_HEADING_RE = re.compile(r'^##\s+.*acceptance.*criteria', re.IGNORECASE)

# Story list formats inside the "## Stories" section:
#   - [ ] 8-1-pool-change: Title      (checkbox, [x] means done)
#   - 8-1-pool-change: Title
#   1. 8-1-pool-change: Title
CHECKBOX_STORY_RE = re.compile(r'^-\s+\[([ xX])\]\s+(\w+-[\w-]+):\s*(.+)$')
BULLET_STORY_RE = re.compile(r'^-\s+(\w+-[\w-]+):\s*(.+)$')
NUMBERED_STORY_RE = re.compile(r'^\d+\.\s+(\w+-[\w-]+):\s*(.+)$')

AC_ITEM_RE = re.compile(r'^-\s+\[([ xX])\]\s*(.+)$')


def get_epics_dir(cwd: Path) -> Path:
    return cwd / EPICS_DIR


def get_stories_dir(cwd: Path) -> Path:
    return cwd / STORIES_DIR


def is_bmad_project(cwd: Path) -> bool:
    """True if cwd has a _bmad/ directory with the bmm config file."""
    return (cwd / BMAD_DIR).is_dir() and (cwd / BMAD_CONFIG_PATH).is_file()


def ensure_output_dir(cwd: Path) -> None:
    """Create _bmad-output/ if the project has never produced output."""
    (cwd / BMAD_OUTPUT_DIR).mkdir(parents=True, exist_ok=True)


def _parse_story_line(line: str) -> Optional[EpicStory]:
    match = CHECKBOX_STORY_RE.match(line)
    if match:
        status = STATUS_DONE if match.group(1).lower() == 'x' else "pending"
        return EpicStory(id=match.group(2), title=match.group(3).strip(), status=status)

    match = BULLET_STORY_RE.match(line) or NUMBERED_STORY_RE.match(line)
    if match:
        return EpicStory(id=match.group(1), title=match.group(2).strip())

    return None


def parse_epic_file(content: str, file_path: str) -> Epic:
    """Parse an epic markdown file.

    The epic id comes from the file name, the title from the first H1, and
    the stories from the first "## ... Stories" section. A file with no
    recognizable story lines yields an Epic with an empty story list.
    """
    match = EPIC_FILE_RE.match(Path(file_path).name)
    epic_id = normalize_epic_id(match.group(1)) if match else "unknown"

    lines = content.splitlines()
    title = f"Epic {epic_id}"
    for line in lines:
        title_match = TITLE_RE.match(line)
        if title_match:
            title = title_match.group(1)
            break

    stories: list[EpicStory] = []
    in_stories = False
    for line in lines:
        if STORIES_HEADING_RE.match(line):
            in_stories = True
            continue
        if in_stories and H2_RE.match(line):
            in_stories = False
            continue
        if in_stories:
            story = _parse_story_line(line.strip())
            if story:
                stories.append(story)

    return Epic(id=epic_id, title=title, stories=stories, file_path=file_path)


def load_epics(cwd: Path) -> list[Epic]:
    """Load every epic-*.md file, sorted by file name."""
    epics_dir = get_epics_dir(cwd)
    if not epics_dir.is_dir():
        logger.debug(f"No epics directory at {epics_dir}")
        return []

    epics = []
    for path in sorted(epics_dir.glob("epic-*.md")):
        try:
            epics.append(parse_epic_file(path.read_text(), str(path)))
        except OSError as e:
            logger.warning(f"Failed to read epic file {path}: {e}")
    return epics


def find_epic(cwd: Path, epic_id: str) -> Optional[Epic]:
    wanted = normalize_epic_id(epic_id)
    for epic in load_epics(cwd):
        if epic.id == wanted:
            return epic
    return None


def find_story_file(cwd: Path, story_id: str) -> Optional[Path]:
    """Story markdown file for an id.

    A file named after the id wins; otherwise the first file whose name
    contains it ("1-1" must not pick "11-1-...md" over "1-1-...md").
    """
    stories_dir = get_stories_dir(cwd)
    if not stories_dir.is_dir():
        return None
    needle = story_id.lower()
    candidates = [p for p in sorted(stories_dir.iterdir()) if p.suffix == ".md" and needle in p.name.lower()]
    for path in candidates:
        if path.name.lower().startswith(needle):
            return path
    return candidates[0] if candidates else None


def story_file_exists(cwd: Path, story_id: str) -> bool:
    return find_story_file(cwd, story_id) is not None


def parse_story_file(content: str, story_id: str, file_path: str) -> Story:
    """Parse a story file: H1 title plus checkbox items under Acceptance Criteria."""
    lines = content.splitlines()

    title = f"Story {story_id}"
    for line in lines:
        title_match = TITLE_RE.match(line)
        if title_match:
            title = title_match.group(1)
            break

    criteria = []
    in_ac = False
    for line in lines:
        if AC_HEADING_RE.match(line):
            in_ac = True
            continue
        if in_ac and H2_RE.match(line):
            in_ac = False
            continue
        if in_ac:
            match = AC_ITEM_RE.match(line.strip())
            if match:
                criteria.append(AcceptanceCriterion(
                    text=match.group(2).strip(),
                    done=match.group(1).lower() == 'x',
                ))

    return Story(id=story_id, title=title, file_path=file_path, acceptance_criteria=criteria)


def load_story(cwd: Path, story_id: str) -> Optional[Story]:
    """Load full story detail, or None if no readable story file exists."""
    path = find_story_file(cwd, story_id)
    if path is None:
        return None
    try:
        return parse_story_file(path.read_text(), story_id, str(path))
    except OSError as e:
        logger.warning(f"Failed to read story file {path}: {e}")
        return None
