"""Tests for storyloop.commands.run module."""

from unittest.mock import patch

import pytest

from storyloop.commands.run import cmd_run, preflight
from storyloop.lib.config import RunConfig
from storyloop.lib.prompts import PromptError
from storyloop.runner.errors import AbortRequested, NoWorkAvailable, StateWriteError
from storyloop.runner.state_files import load_state

from conftest import FakeSpawn, console_text, write_epic, write_sprint_status, write_story


class TestPreflight:
    """Tests for preflight()."""

    @patch("storyloop.commands.run.check_binary_available", return_value=False)
    def test_missing_binary(self, _, bmad_project, out):
        assert preflight(RunConfig(cwd=bmad_project), out) is None
        assert "Agent CLI 'claude' is not installed" in console_text(out)

    @patch("storyloop.commands.run.check_binary_available", return_value=True)
    def test_not_a_bmad_project(self, _, tmp_path, out):
        assert preflight(RunConfig(cwd=tmp_path), out) is None
        assert "Not a BMAD project directory." in console_text(out)

    @patch("storyloop.commands.run.is_git_repo", return_value=False)
    @patch("storyloop.commands.run.check_binary_available", return_value=True)
    def test_without_git(self, _binary, _git, bmad_project, out):
        assert preflight(RunConfig(cwd=bmad_project), out) is False
        text = console_text(out)
        assert "commits will be skipped" in text
        assert "Pre-flight checks passed" in text

    @patch("storyloop.commands.run.is_git_repo", return_value=True)
    @patch("storyloop.commands.run.check_binary_available", return_value=True)
    def test_creates_output_dir(self, _binary, _git, tmp_path, out):
        (tmp_path / "_bmad" / "bmm").mkdir(parents=True)
        (tmp_path / "_bmad" / "bmm" / "config.yaml").write_text("project_name: x\n")
        assert preflight(RunConfig(cwd=tmp_path), out) is True
        assert (tmp_path / "_bmad-output").is_dir()


class TestCmdRun:
    """Exit codes of cmd_run()."""

    @patch("storyloop.commands.run.check_binary_available", return_value=False)
    def test_preflight_failure_exits_1(self, _, bmad_project, out):
        assert cmd_run(RunConfig(cwd=bmad_project), out) == 1

    def test_header_uses_project_name(self, make_ctx, out):
        ctx = make_ctx()
        with patch("storyloop.commands.run.run_epic_loop", return_value=0):
            assert cmd_run(ctx.config, ctx=ctx) == 0
        assert "storyloop - demo" in console_text(out)

    def test_no_work_exits_1(self, make_ctx, out):
        ctx = make_ctx()
        with patch("storyloop.commands.run.run_epic_loop", side_effect=NoWorkAvailable("No epic selected")):
            assert cmd_run(ctx.config, ctx=ctx) == 1
        assert "No epic selected" in console_text(out)

    def test_abort_exits_1_with_hint(self, make_ctx, out):
        ctx = make_ctx()
        with patch("storyloop.commands.run.run_epic_loop", side_effect=AbortRequested("1-1-a")):
            assert cmd_run(ctx.config, ctx=ctx) == 1
        text = console_text(out)
        assert "Aborted by user at story 1-1-a" in text
        assert "resume from saved state" in text

    def test_state_write_failure_is_fatal(self, make_ctx, out):
        ctx = make_ctx()
        with patch("storyloop.commands.run.run_epic_loop", side_effect=StateWriteError("disk full")):
            assert cmd_run(ctx.config, ctx=ctx) == 1
        assert "Fatal error: disk full" in console_text(out)

    def test_dev_failing_twice_halts_with_state_saved(self, make_ctx, bmad_project, out):
        write_epic(bmad_project, 1, "One", [("1-1-a", "A")])
        write_story(bmad_project, "1-1-a")
        write_sprint_status(bmad_project, {"epic-1": "in-progress", "1-1-a": "in-progress"})

        def review(n, cmd, cwd):
            return 0, "needs work"

        def dev(n, cmd, cwd):
            return (0, "") if n <= 2 else (1, "crash")

        spawn = FakeSpawn({"Dev": dev, "Review": review})
        ctx = make_ctx(spawn=spawn)

        assert cmd_run(ctx.config, ctx=ctx) == 1

        state = load_state(bmad_project)
        assert state.current_epic == "epic-1"
        assert state.current_story_index == 0
        assert state.dev_review_iteration == 3
        assert spawn.roles() == ["Dev", "Review", "Dev", "Review", "Dev", "Dev"]
        assert "Fatal error" in console_text(out)

    @pytest.mark.parametrize("error", [
        PromptError("Prompt template 'dev_story' not found"),
        UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
        ValueError("No closing quotation"),
    ])
    def test_unexpected_error_exits_1_with_hint(self, make_ctx, out, error):
        ctx = make_ctx()
        with patch("storyloop.commands.run.run_epic_loop", side_effect=error):
            assert cmd_run(ctx.config, ctx=ctx) == 1
        text = console_text(out)
        assert f"Fatal error: {error}" in text
        assert "resume from saved state" in text

    @patch("storyloop.commands.run.ensure_output_dir", side_effect=PermissionError("read-only file system"))
    @patch("storyloop.commands.run.check_binary_available", return_value=True)
    def test_preflight_os_error_exits_1(self, _binary, _mkdir, bmad_project, out):
        assert cmd_run(RunConfig(cwd=bmad_project), out) == 1
        assert "Fatal error: read-only file system" in console_text(out)

    def test_ctrl_c_is_not_swallowed(self, make_ctx):
        ctx = make_ctx()
        with patch("storyloop.commands.run.run_epic_loop", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                cmd_run(ctx.config, ctx=ctx)
