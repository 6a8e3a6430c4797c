"""Year folder creation under category folders."""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import YearFolderError
from .paths import path_exists

LOGGER = logging.getLogger(__name__)


def ensure_year_folder(category_path: Path, year: str) -> Path:
    """Return ``category_path/year``, creating the folder on first use.

    Raises:
        YearFolderError: If the folder is missing and cannot be created.
    """
    if not year or year in (".", "..") or "/" in year or "\\" in year:
        raise YearFolderError(f"{year!r} is not a valid year folder name.")

    year_path = category_path / year
    if path_exists(year_path):
        return year_path

    try:
        year_path.mkdir()
    except FileExistsError:
        if not year_path.is_dir():
            raise YearFolderError(
                f"Failed to make a {year} year directory within {category_path}."
            ) from None
    except OSError as exc:
        raise YearFolderError(
            f"Failed to make a {year} year directory within {category_path}."
        ) from exc
    else:
        LOGGER.info("Created year folder %s.", year_path)
    return year_path


__all__ = ["ensure_year_folder"]
