"""Agent profiles: which prompt, model tier and tools each BMAD role gets."""

from dataclasses import dataclass

ALL_TOOLS = ("Read", "Write", "Edit", "Bash", "Glob", "Grep")


@dataclass(frozen=True)
class AgentProfile:
    role: str                       # label used in console output
    tier: str                       # "fast" or "capable", see lib.agents_config
    allowed_tools: tuple[str, ...]
    prompt_name: str                # template under storyloop/prompts/


SM = AgentProfile(
    role="SM",
    tier="capable",
    allowed_tools=ALL_TOOLS,
    prompt_name="sm_status",
)

# Writes story files only, never runs commands
STORY_CREATOR = AgentProfile(
    role="Story Creator",
    tier="capable",
    allowed_tools=("Read", "Write", "Edit", "Glob", "Grep"),
    prompt_name="create_story",
)

DEV = AgentProfile(
    role="Dev",
    tier="fast",
    allowed_tools=ALL_TOOLS,
    prompt_name="dev_story",
)

REVIEW = AgentProfile(
    role="Review",
    tier="capable",
    allowed_tools=ALL_TOOLS,
    prompt_name="code_review",
)
