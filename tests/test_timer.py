"""Tests for storyloop.lib.timer and storyloop.lib.output."""

from storyloop.lib.timer import SessionTimer, format_duration

from conftest import console_text


class TestFormatDuration:
    def test_seconds(self):
        assert format_duration(0) == "0s"
        assert format_duration(45_000) == "45s"
        assert format_duration(45_999) == "45s"

    def test_minutes(self):
        assert format_duration(154_000) == "2m 34s"
        assert format_duration(120_000) == "2m"

    def test_hours(self):
        assert format_duration(3_720_000) == "1h 2m"
        assert format_duration(3_600_000) == "1h"


class TestSessionTimer:
    def test_elapsed_uses_injected_clock(self):
        ticks = iter([100.0, 165.0])
        timer = SessionTimer(clock=lambda: next(ticks))
        assert timer.elapsed_ms() == 65_000

    def test_format(self):
        ticks = iter([0.0, 90.0])
        timer = SessionTimer(clock=lambda: next(ticks))
        assert timer.format() == "1m 30s"


class TestConsoleLog:
    def test_line_has_level_and_elapsed(self, out):
        out.info("hello")
        text = console_text(out)
        assert "INFO" in text
        assert "hello" in text
        assert "(0s)" in text

    def test_debug_hidden_unless_verbose(self, out):
        out.verbose = False
        out.debug("secret")
        assert "secret" not in console_text(out)
        out.verbose = True
        out.debug("shown")
        assert "shown" in console_text(out)

    def test_timing_suffix(self, out):
        out.success_with_timing("Dev pass finished", 154_000)
        assert "Dev pass finished (agent: 2m 34s)" in console_text(out)

    def test_agent_lifecycle(self, out):
        out.agent_lifecycle("Dev", "fail", exit_code=2, duration_ms=5000)
        assert "[Dev] agent fail exit=2 duration=5s" in console_text(out)

    def test_step(self, out):
        out.step(1, 4, "Running SM Agent")
        assert "[1/4] Running SM Agent" in console_text(out)

