"""
Read/write access to the shared sprint-status.yaml document.

The document is written by BMAD agents as well as by the orchestrator, so
every write is a whole-document read-modify-write that keeps unrecognized
fields in their original order. Reads never raise; writes are best-effort
and report failure through their return value.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import yaml

from storyloop.lib.constants import SPRINT_STATUS_PATH, STATUS_DONE
from storyloop.lib.validate import is_valid
from storyloop.pm.locator import epic_number, normalize_epic_id

logger = logging.getLogger(__name__)


def get_sprint_status_path(cwd: Path) -> Path:
    return cwd / SPRINT_STATUS_PATH


def parse_sprint_status(content: str) -> Optional[dict]:
    """Parse sprint-status YAML text. None if malformed."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.debug(f"sprint-status.yaml is not valid YAML: {e}")
        return None
    if not is_valid(data, "sprint_status"):
        logger.debug("sprint-status.yaml does not match the expected shape")
        return None
    return data


def dump_sprint_status(data: dict) -> str:
    """Serialize the document, keeping key order."""
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def load_sprint_status(cwd: Path) -> Optional[dict]:
    """Load sprint-status.yaml, or None if it is missing or malformed."""
    path = get_sprint_status_path(cwd)
    try:
        content = path.read_text()
    except OSError as e:
        logger.debug(f"No readable sprint status at {path}: {e}")
        return None
    return parse_sprint_status(content)


def save_sprint_status(cwd: Path, data: dict) -> bool:
    """Write the whole document. Logs and returns False on failure."""
    path = get_sprint_status_path(cwd)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_sprint_status(data))
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to write sprint status {path}: {e}")
        return False
    logger.debug(f"Saved sprint status to {path}")
    return True


def _load_for_update(cwd: Path) -> Optional[dict]:
    """Load the document for modification; a missing file starts empty."""
    path = get_sprint_status_path(cwd)
    if not path.exists():
        return {"development_status": {}}

    data = load_sprint_status(cwd)
    if data is None:
        logger.warning(f"Not updating {path}: file is unreadable or malformed")
        return None
    if not isinstance(data.get("development_status"), dict):
        data["development_status"] = {}
    return data


def update_sprint_status(cwd: Path, key: str, status: str) -> bool:
    """Set one development_status entry."""
    data = _load_for_update(cwd)
    if data is None:
        return False

    data["development_status"][key] = status
    if not save_sprint_status(cwd, data):
        return False
    logger.debug(f"sprint-status: {key} -> {status}")
    return True


def apply_epic_complete(data: dict, epic_id: str, story_ids: Iterable[str]) -> dict:
    """Mark an epic and its stories done inside an already-loaded document.

    Historical documents use either "epic-8" or a bare "8" for the epic; the
    prefixed key is always written, the bare key only when it already exists.
    """
    dev_status = data.setdefault("development_status", {})
    if not isinstance(dev_status, dict):
        dev_status = data["development_status"] = {}

    dev_status[normalize_epic_id(epic_id)] = STATUS_DONE

    number = epic_number(epic_id)
    for bare_key in (number, int(number) if number.isdigit() else None):
        if bare_key is not None and bare_key in dev_status:
            dev_status[bare_key] = STATUS_DONE

    for story_id in story_ids:
        dev_status[story_id] = STATUS_DONE

    return data


def mark_epic_complete(cwd: Path, epic_id: str, story_ids: Iterable[str]) -> bool:
    """Mark the epic and all of its stories done. Idempotent."""
    data = _load_for_update(cwd)
    if data is None:
        return False

    apply_epic_complete(data, epic_id, story_ids)
    if not save_sprint_status(cwd, data):
        return False
    logger.debug(f"sprint-status: {normalize_epic_id(epic_id)} and its stories -> {STATUS_DONE}")
    return True
