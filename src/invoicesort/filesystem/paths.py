"""Existence checks shared by every filing component."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional

from .errors import PathOutsideRootError


def path_exists(path: Path) -> bool:
    """Return whether ``path`` is currently accessible.

    Missing paths, permission failures and malformed paths all count as absent.
    Nothing is cached because the tree can change underneath the engine.
    """
    try:
        return os.access(path, os.F_OK)
    except (OSError, ValueError, TypeError):
        return False


def first_missing(paths: Iterable[Path]) -> Optional[Path]:
    """Return the first path in ``paths`` that does not exist, or ``None``."""
    for path in paths:
        if not path_exists(path):
            return path
    return None


def contained_path(root: Path, relative: str | Path) -> Path:
    """Join ``relative`` onto ``root`` and ensure the result stays inside ``root``.

    Raises:
        PathOutsideRootError: If the joined path resolves outside ``root``.
    """
    candidate = root / relative
    resolved_root = root.resolve()
    resolved = candidate.resolve()
    if resolved != resolved_root and resolved_root not in resolved.parents:
        raise PathOutsideRootError(f"Path {relative} is outside root {root}")
    return candidate


__all__ = ["path_exists", "first_missing", "contained_path"]
