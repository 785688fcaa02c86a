from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import porcelain_git_mcp.core.git_runner as gr
from porcelain_git_mcp.core.errors import (
    GitCommandError,
    GitExecutionError,
    GitPolicyError,
    InvalidRootError,
    MalformedLineError,
    PorcelainGitError,
)
from porcelain_git_mcp.core.git_runner import GitRunnerConfig, OutputMode, SafeGitRunner, require_ok
from porcelain_git_mcp.core.models import GitRunResult


def _result(**overrides) -> GitRunResult:
    fields = {
        "argv": ["git", "push", "-q"],
        "root": "/tmp/repo",
        "stdout": "",
        "stderr": "",
        "exit_code": 0,
        "duration_ms": 1,
        "timed_out": False,
        "output_truncated": False,
    }
    fields.update(overrides)
    return GitRunResult(**fields)


@pytest.fixture()
def no_kill(monkeypatch):
    """Never signal real process groups from tests using fake processes."""
    monkeypatch.setattr(gr, "_kill_process_tree_windows", lambda pid: None)
    monkeypatch.setattr(gr, "_kill_process_group_posix", lambda p: None)


def test_nonzero_exit_code_is_reported_not_raised(tmp_git_repo: Path):
    runner = SafeGitRunner(tmp_git_repo)

    res = runner.run(["rev-parse", "--verify", "nonexistent_commit_hash_12345"])
    assert res.exit_code != 0
    assert "fatal" in (res.stderr + res.stdout).lower()


def test_require_ok_raises_command_error(tmp_git_repo: Path):
    runner = SafeGitRunner(tmp_git_repo)
    res = runner.run(["rev-parse", "--verify", "nonexistent_ref_xyz"])

    with pytest.raises(GitCommandError) as exc:
        require_ok(res, context="rev-parse")

    assert exc.value.command == "git rev-parse"
    assert exc.value.exit_code == res.exit_code
    assert "returned error code" in str(exc.value)


def test_require_ok_passes_successful_result_through():
    res = _result()
    assert require_ok(res, context="push") is res


def test_require_ok_reports_timeout():
    with pytest.raises(GitCommandError, match="git push timed out") as exc:
        require_ok(_result(exit_code=124, timed_out=True, stderr="partial"), context="push")
    assert exc.value.timed_out is True
    assert exc.value.stderr == "partial"


@pytest.mark.parametrize("make_path", [lambda p: p / "nope", lambda p: p / "file.txt"])
def test_runner_rejects_invalid_root(tmp_path: Path, make_path):
    (tmp_path / "file.txt").write_text("x", encoding="utf-8")
    with pytest.raises(InvalidRootError):
        SafeGitRunner(make_path(tmp_path))


def test_git_binary_not_found_raises_execution_error(tmp_git_repo: Path):
    runner = SafeGitRunner(tmp_git_repo)

    with patch("subprocess.Popen", side_effect=FileNotFoundError("git not found")):
        with pytest.raises(GitExecutionError, match="not found in PATH"):
            runner.run(["status"])


def test_timeout_marks_result_and_uses_exit_code_124(tmp_git_repo: Path, monkeypatch, no_kill):
    class FakePopen:
        def __init__(self, *args, **kwargs):
            self.pid = 12345
            self.returncode = None
            self._calls = 0

        def communicate(self, timeout=None):
            self._calls += 1
            if self._calls == 1:
                raise subprocess.TimeoutExpired(cmd="git status", timeout=timeout)
            return ("partial out", "")

        def wait(self, timeout=None):
            self.returncode = -9
            return -9

    monkeypatch.setattr(subprocess, "Popen", FakePopen)

    runner = SafeGitRunner(tmp_git_repo, config=GitRunnerConfig(timeout_s=0.001))
    res = runner.run(["status"])

    assert res.timed_out is True
    assert res.exit_code == 124
    assert res.stdout == "partial out"


def test_unexpected_failure_is_wrapped(tmp_git_repo: Path, no_kill):
    runner = SafeGitRunner(tmp_git_repo)

    with patch("subprocess.Popen") as popen:
        proc = MagicMock()
        proc.communicate.side_effect = RuntimeError("Unexpected error")
        proc.pid = 12345
        popen.return_value = proc

        with pytest.raises(GitExecutionError, match="RuntimeError"):
            runner.run(["status"])


def test_output_ceiling_truncates(tmp_git_repo: Path, make_change):
    for i in range(50):
        make_change(f"untracked_file_number_{i:03d}.txt", "x\n")

    runner = SafeGitRunner(tmp_git_repo, config=GitRunnerConfig(max_output_chars=1000))
    res = runner.run(["status", "--porcelain=v2", "--untracked-files=all"])

    assert res.output_truncated is True
    assert len(res.stdout) + len(res.stderr) <= 1000


def test_print_mode_does_not_capture(tmp_git_repo: Path):
    runner = SafeGitRunner(tmp_git_repo, config=GitRunnerConfig(output=OutputMode.PRINT))

    with patch("subprocess.Popen") as popen:
        proc = MagicMock()
        proc.communicate.return_value = (None, None)
        proc.returncode = 0
        popen.return_value = proc

        res = runner.run(["status"])

    kwargs = popen.call_args.kwargs
    assert kwargs["stdout"] is None
    assert kwargs["stderr"] is None
    assert kwargs["shell"] is False
    assert res.stdout == ""
    assert res.exit_code == 0


def test_per_call_output_overrides_config(tmp_git_repo: Path):
    runner = SafeGitRunner(tmp_git_repo, config=GitRunnerConfig(output=OutputMode.PRINT))
    res = runner.run(["rev-parse", "--is-inside-work-tree"], output=OutputMode.PIPE)
    assert res.stdout.strip() == "true"


def test_runner_records_argv_and_duration(tmp_git_repo: Path):
    runner = SafeGitRunner(tmp_git_repo)
    res = runner.run(["rev-parse", "--show-toplevel"])
    assert res.argv == ["git", "rev-parse", "--show-toplevel"]
    assert res.root == str(tmp_git_repo.resolve())
    assert isinstance(res.duration_ms, int)
    assert res.duration_ms >= 0


def test_malformed_line_error_carries_line_and_reason():
    err = MalformedLineError("0 foo.txt", "unknown record marker '0'")
    assert err.raw_line == "0 foo.txt"
    assert err.reason == "unknown record marker '0'"
    assert "0 foo.txt" in str(err)


def test_error_types_inheritance():
    for cls in (InvalidRootError, GitPolicyError, GitExecutionError, MalformedLineError):
        assert issubclass(cls, PorcelainGitError)
    assert issubclass(GitCommandError, GitExecutionError)
