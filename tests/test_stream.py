"""Tests for storyloop.lib.stream module."""

import io

from rich.console import Console

from storyloop.lib.stream import AGENT_COLORS, LabeledStream


def make_console():
    return Console(file=io.StringIO(), width=200, force_terminal=False, color_system=None)


class TestLabeledStream:
    """Line-buffered prefixing of agent output."""

    def test_prefixes_complete_lines(self):
        console = make_console()
        stream = LabeledStream("Dev", console)
        stream.write("first\nsecond\n")
        assert console.file.getvalue() == "[Dev] first\n[Dev] second\n"

    def test_holds_partial_line_until_newline(self):
        console = make_console()
        stream = LabeledStream("Dev", console)
        stream.write("par")
        assert console.file.getvalue() == ""
        stream.write("tial\nnext")
        assert console.file.getvalue() == "[Dev] partial\n"

    def test_close_flushes_residual_once(self):
        console = make_console()
        stream = LabeledStream("Review", console)
        stream.write("no newline")
        stream.close()
        stream.close()
        assert console.file.getvalue() == "[Review] no newline\n"

    def test_close_without_residual_prints_nothing(self):
        console = make_console()
        stream = LabeledStream("SM", console)
        stream.write("done\n")
        stream.close()
        assert console.file.getvalue() == "[SM] done\n"

    def test_stderr_label(self):
        console = make_console()
        stream = LabeledStream("Dev", console, stream_type="stderr")
        stream.write("boom\n")
        assert console.file.getvalue() == "[Dev:ERR] boom\n"

    def test_markup_in_output_is_not_interpreted(self):
        console = make_console()
        stream = LabeledStream("Dev", console)
        stream.write("[bold]x[/bold]\n")
        assert console.file.getvalue() == "[Dev] [bold]x[/bold]\n"

    def test_empty_lines_are_kept(self):
        console = make_console()
        stream = LabeledStream("Dev", console)
        stream.write("a\n\nb\n")
        lines = console.file.getvalue().splitlines()
        assert [line.rstrip() for line in lines] == ["[Dev] a", "[Dev]", "[Dev] b"]

    def test_role_colors(self):
        assert AGENT_COLORS == {
            "SM": "cyan",
            "Story Creator": "magenta",
            "Dev": "blue",
            "Review": "yellow",
        }
