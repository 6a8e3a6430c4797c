"""Filesystem engine errors."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class FileSystemError(Exception):
    """Base exception for filing engine failures."""


class TopologyError(FileSystemError):
    """Raised when the namespace roots or letter buckets cannot be made ready."""


class PathOutsideRootError(FileSystemError):
    """Raised when a caller-supplied path escapes its configured root."""


class InvalidPathError(FileSystemError):
    """Raised when a required path does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"{path} does not exist!")
        self.path = path


class YearFolderError(FileSystemError):
    """Raised when a year folder cannot be created under a category folder."""


class MoveFailureCause(str, Enum):
    """Named failure causes for each phase of a copy-then-delete move."""

    SOURCE_PATH_INVALID = "SourcePathInvalid"
    DESTINATION_PATH_ALREADY_IN_USE = "DestinationPathAlreadyInUse"
    FAILED_TO_COPY_FILE = "FailedToCopyFile"
    FAILED_TO_DELETE_FILE = "FailedToDeleteFile"


class MoveError(FileSystemError):
    """Raised by the move engine with the phase that failed."""

    def __init__(self, cause: MoveFailureCause, source: Path, destination: Path) -> None:
        super().__init__(f"{cause.value}: {source} -> {destination}")
        self.cause = cause
        self.source = source
        self.destination = destination


__all__ = [
    "FileSystemError",
    "TopologyError",
    "PathOutsideRootError",
    "InvalidPathError",
    "YearFolderError",
    "MoveFailureCause",
    "MoveError",
]
