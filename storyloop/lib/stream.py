"""Line-buffered relabelling of agent output.

Each complete line written to a LabeledStream is echoed with an agent role
prefix, e.g. ``[Dev] running tests``. Partial lines are held until their
newline arrives; whatever is left when the stream closes is flushed once.
"""

from rich.console import Console
from rich.markup import escape

AGENT_COLORS = {
    "SM": "cyan",
    "Story Creator": "magenta",
    "Dev": "blue",
    "Review": "yellow",
}


class LabeledStream:
    """Prefix every output line with an agent role tag."""

    def __init__(self, role: str, console: Console, stream_type: str = "stdout"):
        color = AGENT_COLORS.get(role, "white")
        suffix = ":ERR" if stream_type == "stderr" else ""
        self.prefix = f"[{color}]{escape(f'[{role}{suffix}]')}[/{color}] "
        self.console = console
        self._buffer = ""
        self._closed = False

    def write(self, text: str) -> None:
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            self._emit(line)

    def close(self) -> None:
        """Flush a trailing partial line, at most once."""
        if self._closed:
            return
        self._closed = True
        if self._buffer:
            self._emit(self._buffer)
            self._buffer = ""

    def _emit(self, line: str) -> None:
        self.console.print(f"{self.prefix}{escape(line)}", highlight=False, soft_wrap=True)
