from __future__ import annotations

from pathlib import Path

from .errors import InvalidRootError


def resolve_root(root: str | Path) -> Path:
    """Resolve and validate root directory for local-repo operations."""
    p = Path(root).expanduser().resolve()

    if not p.exists():
        raise InvalidRootError(f"Root does not exist: {p}")
    if not p.is_dir():
        raise InvalidRootError(f"Root is not a directory: {p}")

    return p


def ensure_root(root: str | Path) -> Path:
    """
    Like resolve_root, but creates the directory (and parents) when missing.
    Used before `git init` / `git clone` into a fresh location.
    """
    p = Path(root).expanduser().resolve()
    if p.exists() and not p.is_dir():
        raise InvalidRootError(f"Root is not a directory: {p}")
    p.mkdir(parents=True, exist_ok=True)
    return p
