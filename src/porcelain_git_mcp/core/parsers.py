from __future__ import annotations

import re

from .errors import MalformedLineError
from .models import ChangeEntry, EntryKind, Stage, StatusReport, SubmoduleState


_OCTAL = frozenset("01234567")
_AB_RE = re.compile(r"\+([0-9]+) -([0-9]+)")
_SCORE_RE = re.compile(r"[0-9]{1,3}")
_RENAME_COPY_MARKERS = frozenset("RC")

# `# branch.oid` value of a branch without commits
_UNBORN_OID = "(initial)"


class _Cursor:
    """
    Left-to-right reader over one status line.

    Every read either consumes exactly what the field layout requires or
    raises MalformedLineError for the whole line.
    """

    def __init__(self, line: str, pos: int = 0) -> None:
        self.line = line
        self.pos = pos

    def fail(self, reason: str) -> MalformedLineError:
        return MalformedLineError(self.line, reason)

    def fixed(self, width: int, what: str) -> str:
        end = self.pos + width
        if end > len(self.line):
            raise self.fail(f"truncated {what}")
        value = self.line[self.pos:end]
        self.pos = end
        return value

    def space(self, after: str) -> None:
        if self.pos >= len(self.line) or self.line[self.pos] != " ":
            raise self.fail(f"missing separator after {after}")
        self.pos += 1

    def mode(self, what: str) -> str:
        value = self.fixed(6, what)
        if not set(value) <= _OCTAL:
            raise self.fail(f"non-octal {what}")
        self.space(what)
        return value

    def token(self, what: str) -> str:
        """Read up to the next whitespace character and consume that character."""
        start = self.pos
        while self.pos < len(self.line) and not self.line[self.pos].isspace():
            self.pos += 1
        if self.pos == start:
            raise self.fail(f"missing {what}")
        if self.pos >= len(self.line):
            raise self.fail(f"missing separator after {what}")
        value = self.line[start:self.pos]
        self.pos += 1
        return value

    def rest(self, what: str) -> str:
        value = self.line[self.pos:]
        if not value:
            raise self.fail(f"missing {what}")
        self.pos = len(self.line)
        return value


def _submodule_state(code: str) -> SubmoduleState:
    # Unknown letters simply read as False.
    return SubmoduleState(
        is_submodule=code[0] == "S",
        commit_changed=code[1] == "C",
        has_tracked_changes=code[2] == "M",
        has_untracked_changes=code[3] == "U",
    )


def _entry_prefix(cur: _Cursor) -> dict:
    """<XY> <sub> shared by ordinary, rename/copy and unmerged entries."""
    xy = cur.fixed(2, "status code")
    cur.space("status code")
    sub = cur.fixed(4, "submodule code")
    cur.space("submodule code")
    return {
        "index_status": xy[0],
        "worktree_status": xy[1],
        "submodule": _submodule_state(sub),
    }


def _start(line: str) -> _Cursor:
    cur = _Cursor(line, 1)
    cur.space("record marker")
    return cur


def parse_ordinary_entry(line: str) -> ChangeEntry:
    """
    1 <XY> <sub> <mH> <mI> <mW> <hH> <hI> <path>
    """
    cur = _start(line)
    fields = _entry_prefix(cur)
    fields["mode_head"] = cur.mode("HEAD mode")
    fields["mode_index"] = cur.mode("index mode")
    fields["mode_worktree"] = cur.mode("worktree mode")
    fields["object_id_head"] = cur.token("HEAD object id")
    fields["object_id_index"] = cur.token("index object id")
    return ChangeEntry(kind=EntryKind.ORDINARY, path=cur.rest("path"), **fields)


def parse_rename_entry(line: str) -> ChangeEntry:
    """
    2 <XY> <sub> <mH> <mI> <mW> <hH> <hI> <X><score> <path><TAB><origPath>
    """
    cur = _start(line)
    fields = _entry_prefix(cur)
    fields["mode_head"] = cur.mode("HEAD mode")
    fields["mode_index"] = cur.mode("index mode")
    fields["mode_worktree"] = cur.mode("worktree mode")
    fields["object_id_head"] = cur.token("HEAD object id")
    fields["object_id_index"] = cur.token("index object id")

    marker_and_score = cur.token("rename/copy score")
    if marker_and_score[0] not in _RENAME_COPY_MARKERS:
        raise cur.fail("invalid rename/copy marker")
    score = marker_and_score[1:]
    if not _SCORE_RE.fullmatch(score) or int(score) > 255:
        raise cur.fail("invalid similarity score")

    paths = cur.rest("path")
    path, tab, original_path = paths.partition("\t")
    if not tab:
        raise cur.fail("missing tab before original path")
    if not path or not original_path:
        raise cur.fail("empty rename/copy path")

    return ChangeEntry(
        kind=EntryKind.RENAME_OR_COPY,
        path=path,
        rename_or_copy_marker=marker_and_score[0],
        similarity_score=int(score),
        original_path=original_path,
        **fields,
    )


def parse_unmerged_entry(line: str) -> ChangeEntry:
    """
    u <XY> <sub> <m1> <m2> <m3> <mW> <h1> <h2> <h3> <path>
    """
    cur = _start(line)
    fields = _entry_prefix(cur)
    m1 = cur.mode("stage 1 mode")
    m2 = cur.mode("stage 2 mode")
    m3 = cur.mode("stage 3 mode")
    fields["mode_worktree"] = cur.mode("worktree mode")
    h1 = cur.token("stage 1 object id")
    h2 = cur.token("stage 2 object id")
    h3 = cur.token("stage 3 object id")
    return ChangeEntry(
        kind=EntryKind.UNMERGED,
        path=cur.rest("path"),
        stage1=Stage(object_id=h1, mode=m1),
        stage2=Stage(object_id=h2, mode=m2),
        stage3=Stage(object_id=h3, mode=m3),
        **fields,
    )


def parse_path_entry(line: str) -> ChangeEntry:
    """
    ? <path>    untracked
    ! <path>    ignored
    """
    cur = _start(line)
    kind = EntryKind.UNTRACKED if line[0] == "?" else EntryKind.IGNORED
    # The remainder is the path as-is, even when empty.
    return ChangeEntry(kind=kind, path=line[cur.pos:])


def parse_entry(line: str) -> ChangeEntry:
    """Decode a single non-header status line, dispatching on its marker."""
    if not line:
        raise MalformedLineError(line, "empty entry line")
    parser = _ENTRY_PARSERS.get(line[0])
    if parser is None:
        raise MalformedLineError(line, f"unknown record marker {line[0]!r}")
    return parser(line)


_ENTRY_PARSERS = {
    EntryKind.ORDINARY.value: parse_ordinary_entry,
    EntryKind.RENAME_OR_COPY.value: parse_rename_entry,
    EntryKind.UNMERGED.value: parse_unmerged_entry,
    EntryKind.UNTRACKED.value: parse_path_entry,
    EntryKind.IGNORED.value: parse_path_entry,
}


def _apply_header(line: str, branch: dict) -> None:
    cur = _start(line)
    key, sep, value = line[cur.pos:].partition(" ")
    if not sep or not value:
        raise cur.fail("missing header value")

    if key == "branch.oid":
        branch["branch_commit_id"] = "" if value == _UNBORN_OID else value
    elif key == "branch.head":
        branch["branch_head"] = value
    elif key == "branch.upstream":
        branch["upstream_name"] = value
    elif key == "branch.ab":
        m = _AB_RE.fullmatch(value)
        if m is None:
            raise cur.fail("invalid ahead/behind counts")
        branch["ahead"] = int(m.group(1))
        branch["behind"] = int(m.group(2))
    else:
        raise cur.fail(f"unknown header {key!r}")


def parse_status_v2(text: str) -> StatusReport:
    """
    Parses `git status --porcelain=v2 --branch --ignored` output:
      # branch.oid <commit> | (initial)
      # branch.head <branch> | (detached)
      # branch.upstream <upstream_branch>
      # branch.ab +<ahead> -<behind>
      1 ...   ordinary changed entry
      2 ...   renamed or copied entry
      u ...   unmerged entry
      ? ...   untracked path
      ! ...   ignored path
    Records end at LF or CRLF. Blank lines are skipped. Any malformed line
    aborts the whole parse with MalformedLineError.
    """
    branch: dict = {}
    buckets: dict[EntryKind, list[ChangeEntry]] = {kind: [] for kind in EntryKind}

    for line in text.split("\n"):
        line = line.removesuffix("\r")
        if not line:
            continue
        if line[0] == "#":
            _apply_header(line, branch)
            continue
        entry = parse_entry(line)
        buckets[entry.kind].append(entry)

    return StatusReport(
        changed=tuple(buckets[EntryKind.ORDINARY]),
        renamed=tuple(buckets[EntryKind.RENAME_OR_COPY]),
        unmerged=tuple(buckets[EntryKind.UNMERGED]),
        untracked=tuple(e.path for e in buckets[EntryKind.UNTRACKED]),
        ignored=tuple(e.path for e in buckets[EntryKind.IGNORED]),
        **branch,
    )
