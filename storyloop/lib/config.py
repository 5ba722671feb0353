"""
Configuration loaders for storyloop.

Run settings come from three layers, later ones winning:
built-in defaults, the optional storyloop.yaml in the project root, and
command-line flags.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from storyloop.lib.agents_config import AgentsConfig, parse_agents_config
from storyloop.lib.constants import (
    BMAD_CONFIG_PATH,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_RETRY_DELAY,
    SETTINGS_FILE,
)

logger = logging.getLogger(__name__)


@dataclass
class ProjectConfig:
    """BMAD project metadata from _bmad/bmm/config.yaml"""
    name: str


@dataclass
class RunConfig:
    """Settings for one orchestrator session."""
    cwd: Path
    resume: bool = False
    verbose: bool = False
    yolo: bool = False  # auto-continue, auto-complete at max iterations, auto-commit
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    retry_delay: float = DEFAULT_RETRY_DELAY  # seconds between an agent failure and its retry
    agents: AgentsConfig = field(default_factory=AgentsConfig)


def _read_yaml(path: Path) -> dict:
    """Read a YAML mapping, returning {} when missing or unparseable."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text())
    except (yaml.YAMLError, OSError) as e:
        logger.warning(f"Failed to parse {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: expected a mapping at the top level")
        return {}
    return data


def parse_positive_int(value) -> int | None:
    """Return value as a positive int, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None


def load_run_config(
    cwd: Path,
    resume: bool = False,
    verbose: bool = False,
    yolo: bool = False,
    max_iterations: int | None = None,
) -> RunConfig:
    """Load storyloop.yaml from cwd and apply command-line overrides."""
    data = _read_yaml(cwd / SETTINGS_FILE)
    run = data.get("run") if isinstance(data.get("run"), dict) else {}

    config = RunConfig(
        cwd=cwd,
        resume=resume,
        verbose=verbose,
        yolo=yolo or bool(run.get("yolo", False)),
        agents=parse_agents_config(data.get("agents")),
    )

    if "max_iterations" in run:
        file_max = parse_positive_int(run["max_iterations"])
        if file_max is None:
            logger.warning(f"Ignoring invalid run.max_iterations '{run['max_iterations']}' in {SETTINGS_FILE}")
        else:
            config.max_iterations = file_max

    if "retry_delay" in run:
        try:
            delay = float(run["retry_delay"])
            if delay < 0:
                raise ValueError(delay)
            config.retry_delay = delay
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid run.retry_delay '{run['retry_delay']}' in {SETTINGS_FILE}")

    if max_iterations is not None:
        config.max_iterations = max_iterations

    return config


def load_project_config(cwd: Path) -> ProjectConfig:
    """Load BMAD project metadata. Falls back to the directory name."""
    data = _read_yaml(cwd / BMAD_CONFIG_PATH)
    project = data.get("project") if isinstance(data.get("project"), dict) else {}
    name = project.get("name") or data.get("project_name") or cwd.name
    return ProjectConfig(name=str(name))
