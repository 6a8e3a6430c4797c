"""Namespace root validation and letter bucket initialization."""

from __future__ import annotations

import logging
import string
from pathlib import Path

from .errors import TopologyError
from .paths import first_missing, path_exists

LOGGER = logging.getLogger(__name__)

LETTERS = tuple(string.ascii_uppercase)


def letter_bucket_paths(directories_root: Path) -> list[Path]:
    """Return the 26 expected bucket paths in alphabetical order."""
    return [directories_root / letter for letter in LETTERS]


def validate_main_directories(name: str, invoice_root: Path, directories_root: Path) -> str:
    """Check that both namespace roots exist and do not overlap.

    Args:
        name: Namespace identifier used in messages.
        invoice_root: Inbox directory of pending invoices.
        directories_root: Archive directory holding letter buckets.

    Returns:
        str: Readiness message for the namespace.

    Raises:
        TopologyError: Listing every invalid root when validation fails.
    """
    problems: list[str] = []
    if not path_exists(invoice_root):
        problems.append(f"{name} - Invoice Directory Path {invoice_root} is invalid!")
    if not path_exists(directories_root):
        problems.append(f"{name} - Directories Folder Path {directories_root} is invalid!")
    if problems:
        raise TopologyError("Invalid Paths:\n" + "\n".join(problems))

    invoice_resolved = invoice_root.resolve()
    directories_resolved = directories_root.resolve()
    if invoice_resolved == directories_resolved:
        raise TopologyError(f"{name} - Invoice and Directories paths must be different folders.")
    if (
        invoice_resolved in directories_resolved.parents
        or directories_resolved in invoice_resolved.parents
    ):
        raise TopologyError(f"{name} - Invoice and Directories paths must not be nested.")

    return f"All Main Directory Paths are valid for {name}."


def ensure_letter_buckets(directories_root: Path, name: str | None = None) -> str:
    """Create any missing A-Z bucket folders under ``directories_root``.

    The whole set is re-validated after every single creation so that folders
    created or removed by someone else in the meantime are picked up.

    Returns:
        str: Readiness message.

    Raises:
        TopologyError: If a bucket folder cannot be created.
    """
    label = name or str(directories_root)
    buckets = letter_bucket_paths(directories_root)

    missing = first_missing(buckets)
    while missing is not None:
        try:
            missing.mkdir()
        except FileExistsError:
            if not path_exists(missing):
                raise TopologyError(
                    f"Failed to initialize missing letter folders: {missing} is not accessible."
                )
        except OSError as exc:
            raise TopologyError(
                f"Failed to initialize missing letter folders: {missing} ({exc.strerror})."
            ) from exc
        else:
            LOGGER.info("Created letter folder %s for %s.", missing, label)
        missing = first_missing(buckets)

    return f"All Letter Folders are initialized for {label}."


__all__ = [
    "LETTERS",
    "letter_bucket_paths",
    "validate_main_directories",
    "ensure_letter_buckets",
]
