from __future__ import annotations

from ..core.git_runner import GitRunnerConfig, SafeGitRunner
from ..core.security import resolve_root


_DEFAULT_CFG = GitRunnerConfig(timeout_s=3.0, max_output_chars=80_000)


def make_runner(root: str = ".") -> SafeGitRunner:
    return SafeGitRunner(root=resolve_root(root), config=_DEFAULT_CFG)
