"""Per-story state machine using the transitions library.

One StoryFSM tracks a single story through the dev/review loop:

    pending -> creating_story -> dev_review -> complete
                                     |
                                     v
                                 escalated -> complete | skipped | aborted
                                     |
                                     +-> dev_review (user chose to continue)

Any working state can also halt into "failed" when an agent fails fatally.

Usage:
    from storyloop.workflow.fsm import StoryFSM

    fsm = StoryFSM("8-2-pool-reset")
    fsm.start_dev_review()
    fsm.review_passed()
"""

import logging

from transitions import Machine

logger = logging.getLogger(__name__)


STATES = [
    "pending",
    "creating_story",
    "dev_review",
    "escalated",
    "complete",
    "skipped",
    "aborted",
    "failed",
]

TRANSITIONS = [
    # Story file has to be written first
    {"trigger": "create_story", "source": "pending", "dest": "creating_story"},

    # Dev/review loop
    {"trigger": "start_dev_review", "source": "pending", "dest": "dev_review"},
    {"trigger": "start_dev_review", "source": "creating_story", "dest": "dev_review"},
    {"trigger": "review_passed", "source": "dev_review", "dest": "complete"},
    {"trigger": "max_reached", "source": "dev_review", "dest": "escalated"},

    # Escalation choices
    {"trigger": "retry_round", "source": "escalated", "dest": "dev_review"},
    {"trigger": "force_complete", "source": "escalated", "dest": "complete"},
    {"trigger": "skip", "source": "escalated", "dest": "skipped"},
    {"trigger": "abort", "source": "escalated", "dest": "aborted"},

    # Already done, or no story file could be produced
    {"trigger": "skip", "source": "pending", "dest": "skipped"},
    {"trigger": "skip", "source": "creating_story", "dest": "skipped"},

    # Fatal agent failure
    {"trigger": "halt", "source": "creating_story", "dest": "failed"},
    {"trigger": "halt", "source": "dev_review", "dest": "failed"},
    {"trigger": "halt", "source": "escalated", "dest": "failed"},
]


class StoryFSM:
    """State machine for one story's pass through the dev/review loop."""

    def __init__(self, story_id: str):
        self.story_id = story_id

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="pending",
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.debug(
            f"[FSM] {self.story_id}: {event.transition.source} -> {event.transition.dest} ({event.event.name})"
        )
