"""Shared constants for the orchestrator."""

import re

# BMAD project layout (relative to the project root)
BMAD_DIR = "_bmad"
BMAD_OUTPUT_DIR = "_bmad-output"
BMAD_CONFIG_PATH = "_bmad/bmm/config.yaml"
SPRINT_STATUS_PATH = "_bmad-output/implementation-artifacts/sprint-status.yaml"
EPICS_DIR = "_bmad-output/planning-artifacts"
STORIES_DIR = "_bmad-output/implementation-artifacts"

# Orchestrator files (relative to the project root)
STATE_FILE = ".storyloop-state.json"
SETTINGS_FILE = "storyloop.yaml"

# Sprint-status keys
EPIC_PREFIX = "epic-"
EPIC_MARKER_PATTERN = re.compile(r'^epic-(\d+)$')
STORY_ID_PATTERN = re.compile(r'^(\d+)-\S')

# Story statuses
STATUS_DONE = "done"
STATUS_IN_PROGRESS = "in-progress"
TERMINAL_STATUSES = frozenset({STATUS_DONE})

# Statuses that make a story eligible for the dev/review loop.
# backlog and pending are included: a freshly planned epic has nothing else.
ACTIONABLE_STATUSES = frozenset({
    "review",
    "in-progress",
    "ready-for-dev",
    "backlog",
    "pending",
    "ready",
})

# Written by the review agent when sprint-status.yaml cannot be read
REVIEW_PASSED_SENTINEL = "REVIEW_PASSED"

DEFAULT_MAX_ITERATIONS = 10
DEFAULT_RETRY_DELAY = 2.0

RESUME_HINT = "Run storyloop again to resume from saved state."
