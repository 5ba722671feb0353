"""Tests for the storyloop command line."""

from unittest.mock import patch

import pytest

from storyloop.cli import build_parser, main
from storyloop.lib.constants import DEFAULT_MAX_ITERATIONS


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.resume is False
        assert args.verbose is False
        assert args.yolo is False
        assert args.max_iterations is None

    def test_short_flags(self):
        args = build_parser().parse_args(["-r", "-v", "-y", "-m", "5"])
        assert args.resume and args.verbose and args.yolo
        assert args.max_iterations == "5"

    def test_help_describes_workflow(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--help"])
        text = capsys.readouterr().out
        assert "workflow:" in text
        assert "review agent verifies completion" in text
        assert "--max-iterations" in text


class TestMain:
    """main() with cmd_run patched out."""

    @pytest.fixture(autouse=True)
    def in_tmp(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

    def test_passes_flags_to_config(self):
        with patch("storyloop.cli.cmd_run", return_value=0) as run:
            assert main(["--resume", "--yolo", "-m", "3"]) == 0
        config = run.call_args[0][0]
        assert config.resume is True
        assert config.yolo is True
        assert config.max_iterations == 3

    @pytest.mark.parametrize("value", ["0", "-2", "abc"])
    def test_invalid_max_iterations_is_ignored(self, value, capsys):
        with patch("storyloop.cli.cmd_run", return_value=0) as run:
            main(["-m", value])
        assert run.call_args[0][0].max_iterations == DEFAULT_MAX_ITERATIONS
        assert "Ignoring invalid --max-iterations value" in capsys.readouterr().out

    def test_max_iterations_without_value_is_ignored(self, capsys):
        with patch("storyloop.cli.cmd_run", return_value=0) as run:
            assert main(["-r", "-m"]) == 0
        config = run.call_args[0][0]
        assert config.max_iterations == DEFAULT_MAX_ITERATIONS
        assert config.resume is True
        assert "Ignoring invalid --max-iterations value" in capsys.readouterr().out

    def test_unknown_arguments_are_ignored(self, capsys):
        with patch("storyloop.cli.cmd_run", return_value=0) as run:
            assert main(["--fast", "-y"]) == 0
        assert run.call_args[0][0].yolo is True
        assert "Ignoring unrecognized arguments: --fast" in capsys.readouterr().out

    def test_exit_code_propagates(self):
        with patch("storyloop.cli.cmd_run", return_value=1):
            assert main([]) == 1

    def test_ctrl_c_exits_130(self, capsys):
        with patch("storyloop.cli.cmd_run", side_effect=KeyboardInterrupt):
            assert main([]) == 130
        assert "Interrupted" in capsys.readouterr().out
