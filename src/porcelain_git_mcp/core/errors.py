from __future__ import annotations


class PorcelainGitError(Exception):
    """Base error for the project."""


class InvalidRootError(PorcelainGitError):
    pass


class GitPolicyError(PorcelainGitError):
    pass


class GitExecutionError(PorcelainGitError):
    pass


class GitCommandError(GitExecutionError):
    """
    git ran but did not succeed (non-zero exit code or timeout).
    """

    def __init__(self, command: str, exit_code: int, stderr: str = "", *, timed_out: bool = False) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        self.timed_out = timed_out
        if timed_out:
            msg = f"{command} timed out"
        else:
            msg = f"{command} returned error code {exit_code}"
        if stderr.strip():
            msg = f"{msg}: {stderr.strip()}"
        super().__init__(msg)


class MalformedLineError(PorcelainGitError):
    """A status report line does not follow the porcelain v2 layout."""

    def __init__(self, raw_line: str, reason: str) -> None:
        self.raw_line = raw_line
        self.reason = reason
        super().__init__(f"{reason}: {raw_line!r}")
