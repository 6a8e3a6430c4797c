"""Unit tests for naming, moving, year folders and path helpers."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from invoicesort.filesystem import MoveError, MoveFailureCause, PathOutsideRootError
from invoicesort.filesystem.errors import YearFolderError
from invoicesort.filesystem.mover import move_file
from invoicesort.filesystem.naming import next_copy_name, resolve_name
from invoicesort.filesystem.paths import contained_path, first_missing, path_exists
from invoicesort.filesystem.years import ensure_year_folder


def test_next_copy_name_starts_and_increments_sequence() -> None:
    assert next_copy_name("invoice1.pdf") == "invoice1 (2).pdf"
    assert next_copy_name("invoice1 (2).pdf") == "invoice1 (3).pdf"
    assert next_copy_name("invoice1 (9).pdf") == "invoice1 (10).pdf"


def test_next_copy_name_always_synthesizes_pdf_extension() -> None:
    assert next_copy_name("scan.tiff") == "scan (2).pdf"
    assert next_copy_name("archive.tar.gz") == "archive.tar (2).pdf"
    assert next_copy_name("README") == "README (2).pdf"


def test_next_copy_name_only_bumps_first_counter() -> None:
    assert next_copy_name("a (1) b (5).pdf") == "a (2) b (5).pdf"


def test_resolve_name_returns_desired_name_when_free(tmp_path: Path) -> None:
    path, name = resolve_name(tmp_path, "invoice1.pdf")

    assert name == "invoice1.pdf"
    assert path == tmp_path / "invoice1.pdf"


def test_resolve_name_walks_past_occupied_names(tmp_path: Path) -> None:
    for existing in ("invoice1.pdf", "invoice1 (2).pdf", "invoice1 (3).pdf"):
        (tmp_path / existing).write_bytes(b"x")

    path, name = resolve_name(tmp_path, "invoice1.pdf")

    assert name == "invoice1 (4).pdf"
    assert not path.exists()
    assert path.parent == tmp_path


def test_move_file_moves_bytes(tmp_path: Path) -> None:
    source = tmp_path / "source.pdf"
    source.write_bytes(b"%PDF-1.4 data")
    destination = tmp_path / "out" / "dest.pdf"
    destination.parent.mkdir()

    move_file(source, destination)

    assert not source.exists()
    assert destination.read_bytes() == b"%PDF-1.4 data"


def test_move_file_missing_source(tmp_path: Path) -> None:
    with pytest.raises(MoveError) as excinfo:
        move_file(tmp_path / "missing.pdf", tmp_path / "dest.pdf")

    assert excinfo.value.cause is MoveFailureCause.SOURCE_PATH_INVALID


def test_move_file_refuses_to_overwrite(tmp_path: Path) -> None:
    source = tmp_path / "a.pdf"
    source.write_bytes(b"new")
    destination = tmp_path / "b.pdf"
    destination.write_bytes(b"old")

    with pytest.raises(MoveError) as excinfo:
        move_file(source, destination)

    assert excinfo.value.cause is MoveFailureCause.DESTINATION_PATH_ALREADY_IN_USE
    assert destination.read_bytes() == b"old"
    assert source.exists()


def test_move_file_copy_failure_removes_partial_destination(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = tmp_path / "a.pdf"
    source.write_bytes(b"complete data")
    destination = tmp_path / "b.pdf"

    def _fail_midway(src: Path, dst: Path) -> None:
        Path(dst).write_bytes(b"comp")
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("invoicesort.filesystem.mover.shutil.copyfile", _fail_midway)

    with pytest.raises(MoveError) as excinfo:
        move_file(source, destination)

    assert excinfo.value.cause is MoveFailureCause.FAILED_TO_COPY_FILE
    assert source.read_bytes() == b"complete data"
    assert not destination.exists()


def test_move_file_delete_failure_keeps_both_copies(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = tmp_path / "a.pdf"
    source.write_bytes(b"data")
    destination = tmp_path / "b.pdf"

    def _fail_unlink(self: Path, missing_ok: bool = False) -> None:
        raise PermissionError("read-only")

    monkeypatch.setattr(Path, "unlink", _fail_unlink)

    with pytest.raises(MoveError) as excinfo:
        move_file(source, destination)

    monkeypatch.undo()
    assert excinfo.value.cause is MoveFailureCause.FAILED_TO_DELETE_FILE
    assert source.read_bytes() == b"data"
    assert destination.read_bytes() == b"data"


def test_move_file_uses_copy_not_rename(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = tmp_path / "a.pdf"
    source.write_bytes(b"data")
    calls: list[tuple[Path, Path]] = []
    real_copy = shutil.copyfile

    def _tracking_copy(src: Path, dst: Path) -> Path:
        calls.append((src, dst))
        return real_copy(src, dst)

    monkeypatch.setattr("invoicesort.filesystem.mover.shutil.copyfile", _tracking_copy)

    move_file(source, tmp_path / "b.pdf")

    assert calls == [(source, tmp_path / "b.pdf")]


def test_ensure_year_folder_creates_once(tmp_path: Path) -> None:
    first = ensure_year_folder(tmp_path, "2024")
    (first / "keep.pdf").write_bytes(b"x")
    second = ensure_year_folder(tmp_path, "2024")

    assert first == second == tmp_path / "2024"
    assert (second / "keep.pdf").exists()


@pytest.mark.parametrize("year", ["", "..", "20/24"])
def test_ensure_year_folder_rejects_invalid_names(tmp_path: Path, year: str) -> None:
    with pytest.raises(YearFolderError):
        ensure_year_folder(tmp_path, year)


def test_ensure_year_folder_fails_when_category_missing(tmp_path: Path) -> None:
    with pytest.raises(YearFolderError) as excinfo:
        ensure_year_folder(tmp_path / "missing", "2024")

    assert "Failed to make a 2024 year directory" in str(excinfo.value)


def test_path_helpers(tmp_path: Path) -> None:
    present = tmp_path / "present"
    present.mkdir()
    absent = tmp_path / "absent"

    assert path_exists(present)
    assert not path_exists(absent)
    assert first_missing([present, absent]) == absent
    assert first_missing([present]) is None


def test_contained_path_rejects_escape(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()

    assert contained_path(root, "A/Acme") == root / "A" / "Acme"
    with pytest.raises(PathOutsideRootError):
        contained_path(root, "../elsewhere")
