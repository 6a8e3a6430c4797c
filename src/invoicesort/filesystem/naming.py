"""Collision-free file naming inside a target folder."""

from __future__ import annotations

import re
from pathlib import Path

from .paths import path_exists

COPY_PATTERN = re.compile(r"\((\d+)\)")
SYNTHESIZED_EXTENSION = ".pdf"


def next_copy_name(name: str) -> str:
    """Return the next candidate in the numbered-copy sequence for ``name``.

    ``invoice.pdf`` becomes ``invoice (2).pdf`` and ``invoice (2).pdf`` becomes
    ``invoice (3).pdf``. Synthesized names always carry the ``.pdf`` extension.
    """
    if COPY_PATTERN.search(name) is None:
        stem = name[: name.rfind(".")] if "." in name else name
        return f"{stem} (2){SYNTHESIZED_EXTENSION}"
    return COPY_PATTERN.sub(lambda match: f"({int(match.group(1)) + 1})", name, count=1)


def resolve_name(folder: Path, desired_name: str) -> tuple[Path, str]:
    """Return a path and file name in ``folder`` that nothing currently occupies.

    Args:
        folder: Directory the file will be written into.
        desired_name: Preferred file name.

    Returns:
        tuple[Path, str]: Free destination path and its file name.
    """
    name = desired_name
    candidate = folder / name
    while path_exists(candidate):
        name = next_copy_name(name)
        candidate = folder / name
    return candidate, name


__all__ = ["COPY_PATTERN", "SYNTHESIZED_EXTENSION", "next_copy_name", "resolve_name"]
