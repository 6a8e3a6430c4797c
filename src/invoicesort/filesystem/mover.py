"""Two-phase (copy, then delete) file moves."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .errors import MoveError, MoveFailureCause
from .paths import path_exists

LOGGER = logging.getLogger(__name__)


def move_file(source: Path, destination: Path) -> None:
    """Copy ``source`` to ``destination`` byte for byte, then delete ``source``.

    Args:
        source: Existing file to relocate.
        destination: Target path, which must not exist yet.

    Raises:
        MoveError: With the cause naming the phase that failed. When the cause is
            ``FAILED_TO_DELETE_FILE`` the file is present at both paths and is left
            that way for manual intervention. A failed copy removes any partial
            destination file.
    """
    if not path_exists(source):
        raise MoveError(MoveFailureCause.SOURCE_PATH_INVALID, source, destination)
    if path_exists(destination):
        raise MoveError(MoveFailureCause.DESTINATION_PATH_ALREADY_IN_USE, source, destination)

    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        LOGGER.warning("Copy of %s to %s failed: %s", source, destination, exc)
        # destination was absent before the copy, so anything there now is a partial write
        try:
            destination.unlink(missing_ok=True)
        except OSError as cleanup_exc:
            LOGGER.error("Could not remove partial copy %s: %s", destination, cleanup_exc)
        raise MoveError(MoveFailureCause.FAILED_TO_COPY_FILE, source, destination) from exc

    try:
        source.unlink()
    except OSError as exc:
        LOGGER.error(
            "Copied %s to %s but could not delete the original; file now exists at both paths: %s",
            source,
            destination,
            exc,
        )
        raise MoveError(MoveFailureCause.FAILED_TO_DELETE_FILE, source, destination) from exc


__all__ = ["move_file"]
