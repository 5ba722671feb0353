"""Tests for storyloop.git module."""

import subprocess
from pathlib import Path
from unittest.mock import patch, MagicMock

from storyloop.git import commit_story_changes, is_git_repo, story_commit_message
from storyloop.git.runner import COMMIT_TIMEOUT, run_git, GitResult
from storyloop.git.status import has_uncommitted_changes


def completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestGitResult:
    """Test GitResult dataclass."""

    def test_success_when_returncode_zero(self):
        result = GitResult(returncode=0, stdout="ok", stderr="")
        assert result.success is True

    def test_failure_when_returncode_nonzero(self):
        result = GitResult(returncode=1, stdout="", stderr="error")
        assert result.success is False

    def test_failure_when_timed_out(self):
        result = GitResult(returncode=0, stdout="ok", stderr="", timed_out=True)
        assert result.success is False

    def test_error_falls_back_to_stdout(self):
        assert GitResult(1, "nothing added to commit\n", "").error == "nothing added to commit"
        assert GitResult(1, "out", " fatal: bad\n").error == "fatal: bad"


class TestRunGit:
    """Test run_git function."""

    @patch("storyloop.git.runner.subprocess.run")
    def test_returns_result_on_success(self, mock_run):
        mock_run.return_value = completed(stdout="output")
        result = run_git(["status"], Path("/tmp"))
        assert result.success
        assert result.stdout == "output"
        mock_run.assert_called_once()

    @patch("storyloop.git.runner.subprocess.run")
    def test_handles_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=30)
        result = run_git(["status"], Path("/tmp"))
        assert not result.success
        assert result.timed_out
        assert "timed out" in result.stderr

    @patch("storyloop.git.runner.subprocess.run")
    def test_handles_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")
        result = run_git(["status"], Path("/tmp"))
        assert not result.success
        assert not result.timed_out

    @patch("storyloop.git.runner.subprocess.run")
    def test_passes_cwd_with_C_flag(self, mock_run):
        mock_run.return_value = completed()
        run_git(["status", "--porcelain"], Path("/my/repo"))
        call_args = mock_run.call_args[0][0]
        assert call_args == ["git", "-C", "/my/repo", "status", "--porcelain"]


class TestStatus:
    @patch("storyloop.git.runner.subprocess.run")
    def test_is_git_repo(self, mock_run):
        mock_run.return_value = completed(stdout="true\n")
        assert is_git_repo(Path("/repo")) is True

    @patch("storyloop.git.runner.subprocess.run")
    def test_not_a_git_repo(self, mock_run):
        mock_run.return_value = completed(returncode=128, stderr="fatal: not a git repository")
        assert is_git_repo(Path("/repo")) is False

    @patch("storyloop.git.runner.subprocess.run")
    def test_uncommitted_changes(self, mock_run):
        mock_run.return_value = completed(stdout="?? new.py\n")
        assert has_uncommitted_changes(Path("/repo")) is True
        mock_run.return_value = completed(stdout="")
        assert has_uncommitted_changes(Path("/repo")) is False


class TestCommitStoryChanges:
    """Test commit_story_changes function."""

    def test_message_format(self):
        assert story_commit_message("8-2-pool-reset", "Pool reset") == "feat(8-2-pool-reset): Pool reset"

    @patch("storyloop.git.runner.subprocess.run")
    def test_clean_tree_is_not_committed(self, mock_run, caplog):
        mock_run.return_value = completed(stdout="")
        assert commit_story_changes(Path("/repo"), "1-1-a", "Title") is False
        assert mock_run.call_count == 1
        assert "No changes to commit for 1-1-a" in caplog.text

    @patch("storyloop.git.runner.subprocess.run")
    def test_stages_and_commits(self, mock_run):
        mock_run.side_effect = [
            completed(stdout=" M app.py\n"),
            completed(),
            completed(stdout="[main abc123] feat"),
        ]
        assert commit_story_changes(Path("/repo"), "1-1-a", "Login form") is True

        add_cmd = mock_run.call_args_list[1][0][0]
        commit_call = mock_run.call_args_list[2]
        assert add_cmd[-2:] == ["add", "-A"]
        assert commit_call[0][0][-3:] == ["commit", "-m", "feat(1-1-a): Login form"]
        assert commit_call[1]["timeout"] == COMMIT_TIMEOUT

    @patch("storyloop.git.runner.subprocess.run")
    def test_commit_failure_returns_false(self, mock_run, caplog):
        mock_run.side_effect = [
            completed(stdout=" M app.py\n"),
            completed(),
            completed(returncode=1, stderr="hook failed"),
        ]
        assert commit_story_changes(Path("/repo"), "1-1-a", "Login form") is False
        assert "hook failed" in caplog.text
