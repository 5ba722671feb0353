"""Epic loop driver.

Decides which epic to work on, walks its stories through the iteration
controller, closes the epic out in sprint-status.yaml and moves on to the
next epic with ongoing work until none is left or the operator stops.

Work is resolved in priority order:
    1. saved session state (an interrupted run)
    2. ongoing work in sprint-status.yaml
    3. a fresh pick: SM agent refreshes the sprint, operator selects an epic
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from storyloop.agents.profiles import SM
from storyloop.pm.epics import find_epic, load_epics
from storyloop.pm.locator import find_ongoing_work, get_all_stories_for_epic
from storyloop.pm.models import Epic, EpicStory, StoryRef
from storyloop.pm.sprint_status import load_sprint_status, mark_epic_complete
from storyloop.runner.context import RunContext
from storyloop.runner.errors import NoWorkAvailable
from storyloop.runner.iteration import StoryOutcome, process_story
from storyloop.runner.state_files import (
    SessionState,
    clear_state,
    create_initial_state,
    load_state,
)

logger = logging.getLogger(__name__)

TOTAL_STEPS = 4


class Resolution(Enum):
    RESUMED = "resumed"
    DISCOVERED = "discovered"
    FRESH_SELECTION = "fresh_selection"


@dataclass
class WorkSelection:
    """Which epic to run and where to start."""
    resolution: Resolution
    epic_id: str
    state: SessionState
    epic: Optional[Epic] = None  # set when the operator picked a parsed epic


@dataclass
class EpicResult:
    epic: Epic
    outcomes: dict[str, StoryOutcome] = field(default_factory=dict)


def _stories_from_refs(refs: list[StoryRef]) -> list[EpicStory]:
    return [EpicStory(id=r.id, title=r.id, status=r.status) for r in refs]


def _resume_label(ctx: RunContext, state: SessionState) -> str:
    """Story id at the saved index, or the epic id if it cannot be found."""
    epic = find_epic(ctx.cwd, state.current_epic)
    stories = epic.stories if epic else []
    if not stories:
        stories = _stories_from_refs(get_all_stories_for_epic(load_sprint_status(ctx.cwd), state.current_epic))
    if 0 <= state.current_story_index < len(stories):
        return stories[state.current_story_index].id
    return state.current_epic


def _resolve_saved_state(ctx: RunContext) -> Optional[WorkSelection]:
    state = load_state(ctx.cwd)
    if state is None:
        return None

    if not (ctx.config.resume or ctx.config.yolo):
        label = _resume_label(ctx, state)
        if not ctx.user_input.confirm_resume(label, state.current_story_index):
            ctx.out.info("Discarding saved session state")
            clear_state(ctx.cwd)
            return None

    ctx.out.success(f"Resuming ongoing session: {state.current_epic}")
    ctx.out.info(f"Story index: {state.current_story_index}, Completed: {len(state.completed_stories)}")
    return WorkSelection(Resolution.RESUMED, state.current_epic, state)


def resolve_work(ctx: RunContext) -> WorkSelection:
    """Pick the epic to work on.

    Raises:
        NoWorkAvailable: Nothing to resume or discover, and no epic was selected.
        FatalAgentError: The SM agent failed twice.
    """
    ctx.out.info("Checking for ongoing work...")

    selection = _resolve_saved_state(ctx)
    if selection:
        return selection

    ongoing = find_ongoing_work(load_sprint_status(ctx.cwd))
    if ongoing:
        ctx.out.success(f"Found ongoing work in epic: {ongoing.epic_id}")
        if ongoing.stories:
            listing = ", ".join(f"{s.id} ({s.status})" for s in ongoing.stories)
            ctx.out.info(f"Actionable stories: {listing}")
        return WorkSelection(
            Resolution.DISCOVERED,
            ongoing.epic_id,
            create_initial_state(ongoing.epic_id),
        )

    ctx.out.step(1, TOTAL_STEPS, "Running SM Agent to check sprint status")
    run = ctx.agents.run_with_retry(SM, ctx.cwd)
    ctx.out.success_with_timing("Sprint status refreshed", run.duration_ms)

    ctx.out.step(2, TOTAL_STEPS, "Loading epics and selecting one to implement")
    epics = load_epics(ctx.cwd)
    if not epics:
        raise NoWorkAvailable(
            "No epics found in _bmad-output/planning-artifacts/. "
            "Run the planning phase first to create epics."
        )

    epic = ctx.user_input.select_epic(epics)
    if epic is None:
        raise NoWorkAvailable("No epic selected")
    return WorkSelection(Resolution.FRESH_SELECTION, epic.id, create_initial_state(epic.id), epic=epic)


def load_epic_for_selection(ctx: RunContext, selection: WorkSelection) -> Epic:
    """Load the selected epic, falling back to sprint-status data.

    Raises:
        NoWorkAvailable: Neither an epic file nor sprint-status lists any story.
    """
    epic = selection.epic or find_epic(ctx.cwd, selection.epic_id)

    if epic is None:
        # Every story, done ones included: the saved story index counts into this list
        refs = get_all_stories_for_epic(load_sprint_status(ctx.cwd), selection.epic_id)
        if not refs:
            raise NoWorkAvailable(f"Epic {selection.epic_id} not found and no story data available")
        ctx.out.warn(f"Epic file not found, using sprint-status data for {selection.epic_id}")
        return Epic(
            id=selection.epic_id,
            title=f"Epic {selection.epic_id}",
            stories=_stories_from_refs(refs),
        )

    if not epic.stories:
        refs = get_all_stories_for_epic(load_sprint_status(ctx.cwd), epic.id)
        if refs:
            ctx.out.warn("Epic file has no parseable stories, using sprint-status data")
            epic.stories = _stories_from_refs(refs)
        else:
            ctx.out.warn(f"Epic {epic.id} lists no stories")

    return epic


def _start_index(ctx: RunContext, epic: Epic) -> int:
    index = ctx.state.current_story_index
    if epic.stories and not 0 <= index < len(epic.stories):
        ctx.out.warn(
            f"Saved story index {index} is out of range for {epic.id} "
            f"({len(epic.stories)} stories); starting from the first story"
        )
        return 0
    return index


def _close_epic(ctx: RunContext, epic: Epic) -> None:
    sprint_refs = get_all_stories_for_epic(load_sprint_status(ctx.cwd), epic.id)
    story_ids = list(dict.fromkeys([s.id for s in epic.stories] + [r.id for r in sprint_refs]))
    if not mark_epic_complete(ctx.cwd, epic.id, story_ids):
        ctx.out.warn(f"Could not mark {epic.id} done in sprint-status.yaml")
    clear_state(ctx.cwd)
    ctx.state = None


def run_epic(ctx: RunContext, selection: WorkSelection) -> EpicResult:
    """Process every story of the selected epic and close it out."""
    epic = load_epic_for_selection(ctx, selection)
    ctx.state = selection.state
    ctx.state.current_epic = epic.id

    ctx.out.info(f"Selected epic: {epic.id} - {epic.title}")
    ctx.out.info(f"Stories to implement: {len(epic.stories)}")
    ctx.out.step(3, TOTAL_STEPS, "Processing stories in epic")

    result = EpicResult(epic=epic)
    start_index = _start_index(ctx, epic)
    resumed = selection.resolution is Resolution.RESUMED

    for i in range(start_index, len(epic.stories)):
        epic_story = epic.stories[i]
        start_iteration = ctx.state.dev_review_iteration if resumed and i == start_index else 0
        ctx.state.current_story_index = i
        ctx.state.dev_review_iteration = start_iteration
        ctx.checkpoint()

        ctx.out.header(f"Story {i + 1}/{len(epic.stories)}: {epic_story.id}")
        ctx.out.info(f"Title: {epic_story.title}")
        result.outcomes[epic_story.id] = process_story(ctx, epic, epic_story, start_iteration=max(start_iteration, 1))

    ctx.out.step(4, TOTAL_STEPS, "Epic implementation complete")
    completed_count = len(ctx.state.completed_stories)
    _close_epic(ctx, epic)

    ctx.out.header("Epic Complete")
    ctx.out.success(f"Epic {epic.id} finished!")
    ctx.out.success(f"Completed {completed_count} stories (total: {ctx.out.timer.format()})")
    return result


def run_epic_loop(ctx: RunContext) -> int:
    """Run epics until no ongoing work remains. Returns the exit code.

    Raises:
        NoWorkAvailable, FatalAgentError, AbortRequested, StateWriteError
    """
    while True:
        selection = resolve_work(ctx)
        result = run_epic(ctx, selection)

        next_work = find_ongoing_work(load_sprint_status(ctx.cwd))
        if next_work is None:
            ctx.out.success("No further actionable work. All done!")
            return 0

        if next_work.epic_id == result.epic.id:
            ctx.out.warn(
                f"{result.epic.id} still has actionable stories after completion; stopping. "
                f"Check sprint-status.yaml."
            )
            return 0

        if ctx.config.yolo:
            ctx.out.info(f"Continuing with next epic: {next_work.epic_id}")
            continue

        if not ctx.user_input.confirm_continue_next_epic(next_work.epic_id):
            ctx.out.info("Stopping. Run storyloop again to continue with the next epic.")
            return 0
