"""Dev/review loop for a single story.

process_story() takes one story from "listed in an epic" to a final outcome:
the story file is created if needed, then dev and review agents alternate
until the review passes or max_iterations is reached, at which point the
operator (or --yolo) decides what happens.

Session state is persisted before each iteration so an interrupted run
restarts the same story at the same iteration.
"""

import logging
from enum import Enum

from storyloop.agents.profiles import DEV, STORY_CREATOR
from storyloop.git import commit_story_changes
from storyloop.lib.constants import STATUS_DONE
from storyloop.pm.epics import load_story, story_file_exists
from storyloop.pm.locator import get_story_status, is_terminal
from storyloop.pm.models import Epic, EpicStory, Story
from storyloop.pm.sprint_status import load_sprint_status, update_sprint_status
from storyloop.runner.context import RunContext
from storyloop.runner.errors import AbortRequested, AgentError, FatalAgentError
from storyloop.workflow.fsm import StoryFSM

logger = logging.getLogger(__name__)


class StoryOutcome(Enum):
    COMPLETED = "completed"
    ALREADY_DONE = "already_done"
    SKIPPED = "skipped"          # operator skipped it at the max-iterations prompt
    NOT_LOADED = "not_loaded"    # no readable story file


def is_story_done(ctx: RunContext, epic_story: EpicStory) -> bool:
    """Completed this session, or marked done in sprint-status / the epic file."""
    if ctx.state is not None and ctx.state.is_completed(epic_story.id):
        return True
    status = get_story_status(load_sprint_status(ctx.cwd), epic_story.id)
    if status is None:
        status = epic_story.status
    return is_terminal(status)


def _ensure_story_file(ctx: RunContext, fsm: StoryFSM, epic: Epic, epic_story: EpicStory) -> None:
    if story_file_exists(ctx.cwd, epic_story.id):
        return

    fsm.create_story()
    ctx.out.info("Story file does not exist, creating...")
    try:
        run = ctx.agents.run_with_retry(
            STORY_CREATOR, ctx.cwd, ctx.checkpoint,
            story_id=epic_story.id, story_title=epic_story.title, epic_id=epic.id,
        )
    except FatalAgentError:
        fsm.halt()
        raise
    ctx.out.success_with_timing(f"Story file created for {epic_story.id}", run.duration_ms)


def _dev_review_round(ctx: RunContext, fsm: StoryFSM, story: Story, iteration: int) -> bool:
    """Run one dev pass and one review. Returns True if the review passed."""
    max_iterations = ctx.config.max_iterations
    ctx.state.dev_review_iteration = iteration
    ctx.checkpoint()

    ctx.out.info(f"Dev-Review iteration {iteration}/{max_iterations}")
    try:
        dev = ctx.agents.dev(ctx.cwd, story.id, story.file_path, ctx.checkpoint)
        ctx.out.info_with_timing("Dev pass finished", dev.duration_ms)
        review = ctx.agents.review(ctx.cwd, story.id, story.file_path, ctx.checkpoint)
    except FatalAgentError:
        fsm.halt()
        raise

    if review.passed:
        ctx.out.success_with_timing(f"Story {story.id} passed review", review.duration_ms)
        return True

    ctx.out.warn("Review found issues, running another dev cycle...")
    return False


def _final_dev_pass(ctx: RunContext, story: Story) -> None:
    """One last dev pass before a forced completion. Failure only warns."""
    ctx.out.info(f"Running final dev pass for {story.id}")
    try:
        run = ctx.agents.run(DEV, ctx.cwd, story_id=story.id, story_file=story.file_path)
    except AgentError as e:
        ctx.out.warn(f"Final dev pass failed, completing anyway: {e}")
        return
    ctx.out.info_with_timing("Final dev pass finished", run.duration_ms)


def _finish_story(ctx: RunContext, epic_story: EpicStory, story: Story) -> None:
    title = epic_story.title if epic_story.title != epic_story.id else story.title

    if ctx.has_git:
        if ctx.config.yolo or ctx.user_input.confirm_action(f"Commit changes for {story.id}?"):
            if commit_story_changes(ctx.cwd, story.id, title):
                ctx.out.success(f"Committed changes for {story.id}")

    ctx.state.add_completed(epic_story.id)
    if not update_sprint_status(ctx.cwd, epic_story.id, STATUS_DONE):
        ctx.out.warn(f"Could not mark {epic_story.id} done in sprint-status.yaml")
    ctx.checkpoint()
    ctx.out.success(f"Story {story.id} completed!")


def process_story(ctx: RunContext, epic: Epic, epic_story: EpicStory,
                  start_iteration: int = 1) -> StoryOutcome:
    """Drive one story to an outcome.

    Raises:
        FatalAgentError: An agent failed twice; state was persisted first.
        AbortRequested: The operator chose to abort; state was persisted first.
        StateWriteError: Session state could not be written.
    """
    fsm = StoryFSM(epic_story.id)

    if is_story_done(ctx, epic_story):
        ctx.out.info("Story already completed, skipping")
        fsm.skip()
        return StoryOutcome.ALREADY_DONE

    _ensure_story_file(ctx, fsm, epic, epic_story)

    story = load_story(ctx.cwd, epic_story.id)
    if story is None:
        ctx.out.error(f"Failed to load story file for {epic_story.id}")
        fsm.skip()
        return StoryOutcome.NOT_LOADED

    fsm.start_dev_review()
    max_iterations = ctx.config.max_iterations
    iteration = max(start_iteration, 1)

    while fsm.state != "complete":
        while iteration <= max_iterations:
            if _dev_review_round(ctx, fsm, story, iteration):
                fsm.review_passed()
                break
            iteration += 1
        if fsm.state == "complete":
            break

        fsm.max_reached()
        if ctx.config.yolo:
            ctx.out.warn(f"Max iterations reached for {story.id}; auto-completing (yolo)")
            action = "complete"
        else:
            action = ctx.user_input.handle_max_iterations(story.id, max_iterations)
        logger.debug(f"Max-iterations action for {story.id}: {action}")

        if action == "continue":
            ctx.state.dev_review_iteration = 0
            ctx.checkpoint()
            fsm.retry_round()
            iteration = 1
        elif action == "complete":
            _final_dev_pass(ctx, story)
            fsm.force_complete()
        elif action == "skip":
            ctx.out.warn(f"Skipping story {story.id}")
            fsm.skip()
            return StoryOutcome.SKIPPED
        else:
            ctx.out.error("Aborting at user request")
            fsm.abort()
            ctx.checkpoint()
            raise AbortRequested(story.id)

    _finish_story(ctx, epic_story, story)
    return StoryOutcome.COMPLETED
