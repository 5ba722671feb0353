"""
Agent command configuration.

Reads the ``agents`` section of storyloop.yaml to decide which CLI command is
spawned for an agent and which model each capability tier maps to. Without a
config file, returns defaults that invoke the Claude CLI.

COMMAND TEMPLATE
================

The template supports variable substitution using {variable_name} syntax:

- {model}:  Model name resolved from the agent's tier ("fast" or "capable").
- {prompt}: The prompt text, passed as a single CLI argument.
- {tools}:  Comma-separated list of tools the agent may use.

Example storyloop.yaml:

    agents:
      command: "claude --model {model} -p {prompt} --allowedTools {tools}"
      models:
        fast: sonnet
        capable: opus
"""

import logging
import re
import shlex
import shutil
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


DEFAULT_AGENT_COMMAND = "claude --model {model} -p {prompt} --allowedTools {tools}"

# Two capability tiers; an agent uses exactly one per invocation.
DEFAULT_MODELS = {
    "fast": "sonnet",
    "capable": "opus",
}

_PLACEHOLDER = "__STORYLOOP_{name}__"


@dataclass
class AgentsConfig:
    """Agent configuration from the ``agents`` section of storyloop.yaml."""
    command: str = DEFAULT_AGENT_COMMAND
    models: dict[str, str] = field(default_factory=lambda: DEFAULT_MODELS.copy())


def parse_agents_config(data: dict | None) -> AgentsConfig:
    """Build AgentsConfig from a parsed ``agents`` section, keeping defaults for gaps."""
    if not isinstance(data, dict):
        return AgentsConfig()

    models = DEFAULT_MODELS.copy()
    if isinstance(data.get("models"), dict):
        for tier, model in data["models"].items():
            if tier not in DEFAULT_MODELS:
                logger.warning(f"Ignoring unknown model tier '{tier}' in agents config")
                continue
            models[tier] = str(model)

    command = data.get("command") or DEFAULT_AGENT_COMMAND
    return AgentsConfig(command=str(command), models=models)


def build_agent_command(
    config: AgentsConfig,
    tier: str,
    prompt: str,
    allowed_tools: tuple[str, ...] = (),
) -> list[str]:
    """Build the argv list for one agent invocation.

    Raises:
        ValueError: If the tier is unknown.

    Example:
        >>> build_agent_command(AgentsConfig(), "fast", "do stuff", ("Read", "Edit"))
        ['claude', '--model', 'sonnet', '-p', 'do stuff', '--allowedTools', 'Read,Edit']
    """
    if tier not in config.models:
        raise ValueError(f"Unknown model tier: {tier}")

    values = {
        "model": config.models[tier],
        "prompt": prompt,
        "tools": ",".join(allowed_tools),
    }

    # Swap placeholders in before shlex so prompt quotes and newlines survive
    template = config.command
    for name in values:
        template = template.replace(f"{{{name}}}", _PLACEHOLDER.format(name=name.upper()))

    remaining_vars = re.findall(r'\{(\w+)\}', template)
    if remaining_vars:
        logger.error(f"Agent command has unsubstituted variables: {remaining_vars}. Template: {config.command}")

    tools_placeholder = _PLACEHOLDER.format(name="TOOLS")
    cmd: list[str] = []
    for arg in shlex.split(template):
        if arg == tools_placeholder and not allowed_tools:
            # An empty tool list drops the flag that introduces it
            if cmd and cmd[-1].startswith("-"):
                cmd.pop()
            continue
        for name, value in values.items():
            placeholder = _PLACEHOLDER.format(name=name.upper())
            if arg == placeholder:
                arg = value
            elif placeholder in arg:
                arg = arg.replace(placeholder, value)
        cmd.append(arg)

    return cmd


def get_agent_binary(config: AgentsConfig) -> str:
    """Get the binary name of the agent command (first element)."""
    parts = shlex.split(config.command)
    return parts[0] if parts else ""


def check_binary_available(binary: str) -> bool:
    """Check if a binary is available in PATH."""
    return bool(binary) and shutil.which(binary) is not None
