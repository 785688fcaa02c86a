from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class GitRunResult:
    argv: list[str]
    root: str
    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int
    timed_out: bool
    output_truncated: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "argv": self.argv,
            "root": self.root,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "duration_ms": self.duration_ms,
            "timed_out": self.timed_out,
            "output_truncated": self.output_truncated,
        }


class EntryKind(str, Enum):
    """Record shape of a status entry, valued by its porcelain v2 marker."""

    ORDINARY = "1"
    RENAME_OR_COPY = "2"
    UNMERGED = "u"
    UNTRACKED = "?"
    IGNORED = "!"


@dataclass(frozen=True)
class SubmoduleState:
    is_submodule: bool = False
    commit_changed: bool = False
    has_tracked_changes: bool = False
    has_untracked_changes: bool = False


@dataclass(frozen=True)
class Stage:
    """One side of a three-way merge (unmerged entries only)."""

    object_id: str = ""
    mode: str = ""


@dataclass(frozen=True)
class ChangeEntry:
    """
    One file-level record from `git status --porcelain=v2`.

    Which fields carry data depends on `kind`:
      ORDINARY        status, submodule, mode_head/index/worktree, object ids, path
      RENAME_OR_COPY  as ORDINARY plus rename_or_copy_marker, similarity_score,
                      original_path (path is the target)
      UNMERGED        status, submodule, stage1..3, mode_worktree, path
      UNTRACKED       path
      IGNORED         path
    Unused fields keep their empty defaults.
    """

    kind: EntryKind
    path: str
    index_status: str = ""
    worktree_status: str = ""
    submodule: SubmoduleState = SubmoduleState()
    mode_head: str = ""
    mode_index: str = ""
    mode_worktree: str = ""
    object_id_head: str = ""
    object_id_index: str = ""
    rename_or_copy_marker: str = ""
    similarity_score: int = 0
    original_path: str = ""
    stage1: Stage = Stage()
    stage2: Stage = Stage()
    stage3: Stage = Stage()

    @property
    def is_changed(self) -> bool:
        return self.kind is EntryKind.ORDINARY

    @property
    def is_renamed(self) -> bool:
        return self.kind is EntryKind.RENAME_OR_COPY and self.rename_or_copy_marker == "R"

    @property
    def is_copied(self) -> bool:
        return self.kind is EntryKind.RENAME_OR_COPY and self.rename_or_copy_marker == "C"

    @property
    def is_unmerged(self) -> bool:
        return self.kind is EntryKind.UNMERGED

    @property
    def is_untracked(self) -> bool:
        return self.kind is EntryKind.UNTRACKED

    @property
    def is_ignored(self) -> bool:
        return self.kind is EntryKind.IGNORED

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass(frozen=True)
class StatusReport:
    """
    Parsed result of one `git status --porcelain=v2 --branch --ignored` run.

    `ahead`/`behind` hold the raw `# branch.ab` counts; read them through
    `upstream_ahead`/`upstream_behind`, which are None without an upstream.
    """

    branch_commit_id: str = ""
    branch_head: str = ""
    upstream_name: str | None = None
    ahead: int = 0
    behind: int = 0
    changed: tuple[ChangeEntry, ...] = ()
    renamed: tuple[ChangeEntry, ...] = ()
    unmerged: tuple[ChangeEntry, ...] = ()
    untracked: tuple[str, ...] = ()
    ignored: tuple[str, ...] = ()

    @property
    def upstream_ahead(self) -> int | None:
        if self.upstream_name is None:
            return None
        return self.ahead

    @property
    def upstream_behind(self) -> int | None:
        if self.upstream_name is None:
            return None
        return self.behind

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch": {"oid": self.branch_commit_id, "head": self.branch_head},
            "upstream": {
                "name": self.upstream_name,
                "ahead": self.upstream_ahead,
                "behind": self.upstream_behind,
            },
            "changed": [e.to_dict() for e in self.changed],
            "renamed": [e.to_dict() for e in self.renamed],
            "unmerged": [e.to_dict() for e in self.unmerged],
            "untracked": list(self.untracked),
            "ignored": list(self.ignored),
        }
