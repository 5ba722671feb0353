"""
Agent prompt templates.

Each agent profile names a markdown template under storyloop/prompts/. The
template body uses str.format() fields ({story_id}, {story_file}, ...); write
{{ and }} for literal braces. HTML comments (<!-- ... -->) document the
template for maintainers and are never sent to the agent.

A template knows which fields it needs, so a call site that forgets one fails
with the field names instead of a bare KeyError.
"""

import logging
import re
import string
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

_HTML_COMMENT_RE = re.compile(r'<!--.*?-->\s*', re.DOTALL)
_FORMATTER = string.Formatter()

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"


class PromptError(Exception):
    """A template is missing or cannot be rendered with the given values."""


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    body: str

    @property
    def fields(self) -> frozenset[str]:
        """Names of the format fields in the body."""
        return frozenset(field for _, field, _, _ in _FORMATTER.parse(self.body) if field)

    def render(self, **values) -> str:
        missing = sorted(self.fields - values.keys())
        if missing:
            raise PromptError(
                f"Prompt '{self.name}' needs {', '.join(missing)}; got {sorted(values) or 'nothing'}"
            )
        unused = sorted(values.keys() - self.fields)
        if unused:
            logger.debug(f"Prompt '{self.name}' ignores {', '.join(unused)}")
        return self.body.format(**values)


@lru_cache(maxsize=None)
def get_template(name: str) -> PromptTemplate:
    """Read and cache prompts/<name>.md.

    Raises:
        PromptError: If the template file does not exist.
    """
    path = PROMPTS_DIR / f"{name}.md"
    try:
        text = path.read_text()
    except FileNotFoundError as e:
        raise PromptError(f"Prompt template '{name}' not found. Expected file: {path}") from e

    logger.debug(f"Loaded prompt template {name} from {path}")
    return PromptTemplate(name=name, body=_HTML_COMMENT_RE.sub('', text).strip())


def load_prompt(name: str) -> str:
    """Template body with maintainer comments removed."""
    return get_template(name).body


def render_prompt(name: str, **values) -> str:
    """
    Render a template.

    Example:
        render_prompt('dev_story', story_id='1-2-login', story_file='...')
    """
    return get_template(name).render(**values)


def clear_cache():
    get_template.cache_clear()
