from __future__ import annotations

from pathlib import Path

import pytest

from porcelain_git_mcp.core.errors import InvalidRootError
from porcelain_git_mcp.core.security import ensure_root, resolve_root


def test_resolve_root_with_valid_directory(tmp_path: Path):
    result = resolve_root(tmp_path)
    assert result == tmp_path.resolve()
    assert result.is_dir()


def test_resolve_root_with_nonexistent_path(tmp_path: Path):
    with pytest.raises(InvalidRootError, match="Root does not exist:"):
        resolve_root(tmp_path / "does_not_exist")


def test_resolve_root_with_file_instead_of_directory(tmp_path: Path):
    file_path = tmp_path / "file.txt"
    file_path.write_text("data", encoding="utf-8")
    with pytest.raises(InvalidRootError, match="Root is not a directory:"):
        resolve_root(file_path)


def test_resolve_root_expands_user_home(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(Path, "expanduser", lambda self: tmp_path if str(self) == "~" else self)
    result = resolve_root("~")
    assert result.is_absolute()
    assert result == tmp_path.resolve()


def test_ensure_root_creates_missing_directories(tmp_path: Path):
    target = tmp_path / "a" / "b" / "repo"
    result = ensure_root(target)
    assert result == target.resolve()
    assert result.is_dir()
    # idempotent on an existing directory
    assert ensure_root(target) == result


def test_ensure_root_rejects_file(tmp_path: Path):
    file_path = tmp_path / "file.txt"
    file_path.write_text("data", encoding="utf-8")
    with pytest.raises(InvalidRootError, match="Root is not a directory:"):
        ensure_root(file_path)
