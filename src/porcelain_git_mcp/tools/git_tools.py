from __future__ import annotations

from typing import Any

from .common import make_runner
from ..core.commands import StatusOptions
from ..core.errors import GitExecutionError
from ..core.git_runner import SafeGitRunner, require_ok
from ..core.models import GitRunResult, StatusReport


def _status(r: SafeGitRunner) -> tuple[StatusReport, GitRunResult]:
    options = StatusOptions()
    res = require_ok(r.run(options.git_args()), context="status")
    if res.output_truncated:
        raise GitExecutionError("status output truncated; narrow the repository or raise max_output_chars.")
    return options.parse_output(res.stdout), res


def repo_info(root: str = ".") -> dict[str, Any]:
    """
    High-signal repo metadata: root, is_git, branch, head oid, upstream tracking.
    """
    r = make_runner(root)
    is_git = r.run(["rev-parse", "--is-inside-work-tree"]).stdout.strip() == "true"
    if not is_git:
        return {"root": r.root.as_posix(), "is_git": False}

    report, _ = _status(r)
    return {
        "root": r.root.as_posix(),
        "is_git": True,
        "branch": report.branch_head,
        "head": report.branch_commit_id or None,
        "upstream": report.upstream_name,
        "ahead": report.upstream_ahead,
        "behind": report.upstream_behind,
    }


def repo_status(root: str = ".", max_entries: int = 200) -> dict[str, Any]:
    """
    Machine-readable status (porcelain v2), every collection capped at max_entries.
    """
    r = make_runner(root)
    report, res = _status(r)
    limit = max(1, int(max_entries))

    out = report.to_dict()
    truncated = False
    for key in ("changed", "renamed", "unmerged", "untracked", "ignored"):
        if len(out[key]) > limit:
            out[key] = out[key][:limit]
            truncated = True

    return {
        "status": out,
        "counts": {
            "changed": len(report.changed),
            "renamed": len(report.renamed),
            "unmerged": len(report.unmerged),
            "untracked": len(report.untracked),
            "ignored": len(report.ignored),
        },
        "ui_truncated": truncated,
        "git": res.to_dict(),
    }
