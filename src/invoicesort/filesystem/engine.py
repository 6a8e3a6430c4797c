"""Filing engine for one namespace: list, fetch, sort, create and undo."""

from __future__ import annotations

import base64
import errno
import logging
from pathlib import Path
from typing import Any, Mapping, Type, TypeVar

from pydantic import ValidationError

from invoicesort.config.models import NamespaceSettings

from .errors import FileSystemError, InvalidPathError, MoveError, MoveFailureCause
from .locks import KeyedLock
from .models import (
    FOLDER_CREATION,
    CreateFolderRequest,
    DirectoryListing,
    EngineModel,
    FolderCreationUndoRecord,
    InvoiceFetchResult,
    OperationResult,
    SortRequest,
    TransferUndoRecord,
    UndoRequest,
    UndoResult,
)
from .mover import move_file
from .naming import resolve_name
from .paths import contained_path, first_missing, path_exists
from .topology import ensure_letter_buckets, validate_main_directories
from .years import ensure_year_folder

LOGGER = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=EngineModel)

_NOT_EMPTY_ERRNOS = {errno.ENOTEMPTY, errno.EEXIST}


class InvoiceFiler:
    """File pending invoices from one inbox into one letter-bucketed archive.

    The engine keeps no state besides its two roots and a lock table; every call
    re-reads the tree. Mutations return an undo record that the caller must hold
    on to and resubmit to reverse the action.
    """

    def __init__(self, name: str, invoice_root: Path, directories_root: Path) -> None:
        self._name = name
        self._invoice_root = Path(invoice_root).expanduser()
        self._directories_root = Path(directories_root).expanduser()
        self._locks = KeyedLock()

    @classmethod
    def from_settings(cls, name: str, settings: NamespaceSettings) -> "InvoiceFiler":
        """Build an engine from a namespace's configured roots."""
        return cls(name, settings.invoice_root, settings.directories_root)

    @property
    def name(self) -> str:
        """Return the namespace identifier."""
        return self._name

    @property
    def invoice_root(self) -> Path:
        """Return the inbox of pending invoices."""
        return self._invoice_root

    @property
    def directories_root(self) -> Path:
        """Return the archive root holding the letter buckets."""
        return self._directories_root

    def load_directory_paths(self) -> str:
        """Validate both roots and initialize the letter buckets.

        Returns:
            str: Combined readiness message.

        Raises:
            TopologyError: If a root is invalid or a bucket cannot be created.
        """
        roots_message = validate_main_directories(
            self._name, self._invoice_root, self._directories_root
        )
        buckets_message = ensure_letter_buckets(self._directories_root, self._name)
        return f"{roots_message}\n{buckets_message}"

    # ------------------------------------------------------------------ #
    # Read-only operations                                               #
    # ------------------------------------------------------------------ #

    def get_all_directories(self) -> DirectoryListing:
        """List category folder names for every letter bucket in A-Z order."""
        try:
            if not path_exists(self._directories_root):
                return DirectoryListing(
                    success=False, message="Directories Folder path is invalid."
                )
            buckets = sorted(
                entry
                for entry in self._directories_root.iterdir()
                if len(entry.name) == 1 and entry.is_dir()
            )
            directories = [
                sorted(child.name for child in bucket.iterdir() if child.is_dir())
                for bucket in buckets
            ]
            return DirectoryListing(
                success=True,
                message=f"Found {sum(len(names) for names in directories)} directories.",
                letters=[bucket.name for bucket in buckets],
                directories=directories,
            )
        except Exception:
            LOGGER.exception("Listing directories for %s failed.", self._name)
            return DirectoryListing(success=False, message="Failed to list directories.")

    def get_invoice(self) -> InvoiceFetchResult:
        """Return the first regular file in the inbox, base64 encoded."""
        try:
            for entry in sorted(self._invoice_root.iterdir()):
                if not entry.is_file():
                    continue
                encoded = base64.b64encode(entry.read_bytes()).decode("ascii")
                return InvoiceFetchResult(
                    success=True,
                    message=f"Invoice {entry.name} loaded.",
                    file_name=entry.name,
                    file=encoded,
                )
            return InvoiceFetchResult(
                success=False, message="No Valid Files Within Invoice Directory."
            )
        except Exception:
            LOGGER.exception("Fetching the next invoice for %s failed.", self._name)
            return InvoiceFetchResult(success=False, message="Failed to read invoice directory.")

    # ------------------------------------------------------------------ #
    # Mutating operations                                                #
    # ------------------------------------------------------------------ #

    def sort_file(self, request: SortRequest | Mapping[str, Any]) -> OperationResult:
        """Move one pending invoice into ``<category>/<year>`` without overwriting.

        Args:
            request: Category path and name, invoice name and year.

        Returns:
            OperationResult: Success flag, message and, on success, the transfer
            undo record.
        """
        try:
            query = self._coerce(SortRequest, request)
        except ValidationError as exc:
            return OperationResult(success=False, message=f"Transfer Failed - {_first_error(exc)}")

        header = (
            f"Transfer Failed - {query.invoice_name} failed to transfer to {query.category_name}."
        )
        new_name: str | None = None
        try:
            invoice_path = self._invoice_root / query.invoice_name
            category_folder = contained_path(self._directories_root, query.category_path)

            with self._locks.hold(self._invoice_root, category_folder):
                missing = first_missing([category_folder, invoice_path])
                if missing is not None:
                    raise InvalidPathError(missing)

                year_folder = ensure_year_folder(category_folder, query.year)
                destination, new_name = resolve_name(year_folder, query.invoice_name)

                try:
                    move_file(invoice_path, destination)
                except MoveError as exc:
                    detail = self._sort_failure_detail(exc.cause, query, new_name)
                    message = _with_rename_note(f"{header}\n{detail}", query.invoice_name, new_name)
                    LOGGER.warning("%s %s", header, detail)
                    return OperationResult(
                        success=False,
                        message=message,
                    )
        except FileSystemError as exc:
            LOGGER.warning("%s %s", header, exc)
            return OperationResult(
                success=False,
                message=_with_rename_note(f"{header}\n{exc}", query.invoice_name, new_name),
            )
        except Exception:
            LOGGER.exception("Unexpected error while sorting %s.", query.invoice_name)
            return OperationResult(
                success=False,
                message=_with_rename_note(header, query.invoice_name, new_name),
            )

        message = f"Transfer Successful - {new_name} moved to {query.category_name}."
        if new_name != query.invoice_name:
            message += f"\nRenamed {query.invoice_name} to {new_name} to avoid a name conflict."
        LOGGER.info("Filed %s as %s.", invoice_path, destination)
        return OperationResult(
            success=True,
            message=message,
            undo_record=TransferUndoRecord(
                old_invoice_name=query.invoice_name,
                new_invoice_name=new_name,
                category_path=query.category_path,
                category_name=query.category_name,
                year=query.year,
            ),
        )

    def create_new_folder(
        self, request: CreateFolderRequest | Mapping[str, Any]
    ) -> OperationResult:
        """Create ``<letter>/<category_name>`` under the directories root."""
        try:
            query = self._coerce(CreateFolderRequest, request)
        except ValidationError as exc:
            return OperationResult(
                success=False, message=f"Initialization Failed - {_first_error(exc)}"
            )

        name = query.category_name
        try:
            bucket = self._directories_root / query.letter
            folder = bucket / name
            with self._locks.hold(bucket, folder):
                if path_exists(folder):
                    LOGGER.warning("Directory %s already exists.", folder)
                    return OperationResult(
                        success=False,
                        message=f"Initialization Failed - Directory {name} already exists.",
                    )
                folder.mkdir()
        except FileExistsError:
            return OperationResult(
                success=False,
                message=f"Initialization Failed - Directory {name} already exists.",
            )
        except Exception:
            LOGGER.exception("Failed to create directory %s under %s.", name, query.letter)
            return OperationResult(
                success=False,
                message=f"Initialization Failed - Failed to create {name} folder.",
            )

        LOGGER.info("Created directory %s.", folder)
        return OperationResult(
            success=True,
            message=f"Initialization Successful - Directory {name} Was Created.",
            undo_record=FolderCreationUndoRecord(category_name=name, letter=query.letter),
        )

    def undo_previous_action(self, request: UndoRequest | Mapping[str, Any]) -> UndoResult:
        """Reverse a transfer or folder creation described by a caller-held record.

        The action id is echoed back untouched. Replaying a record that was already
        undone is not detected.
        """
        raw_action = None
        raw_action_id = None
        if isinstance(request, Mapping):
            raw_action = request.get("action")
            raw_action_id = request.get("actionId", request.get("action_id"))
        try:
            query = self._coerce(UndoRequest, request)
        except ValidationError as exc:
            return UndoResult(
                success=False,
                message=f"Undo Action Failed - Failed to undo {raw_action or 'action'}.\n"
                f"{_first_error(exc)}",
                action_id=raw_action_id,
            )

        header = f"Undo Action Failed - Failed to undo {query.action}."
        record = query.undo_record
        try:
            if isinstance(record, FolderCreationUndoRecord):
                message = self._undo_folder_creation(record)
            else:
                message = self._undo_file_transfer(record)
        except FileSystemError as exc:
            LOGGER.warning("%s %s", header, exc)
            return UndoResult(success=False, message=f"{header}\n{exc}", action_id=query.action_id)
        except Exception:
            LOGGER.exception("Unexpected error while undoing %s.", query.action)
            return UndoResult(success=False, message=header, action_id=query.action_id)

        return UndoResult(success=True, message=message, action_id=query.action_id)

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _undo_folder_creation(self, record: FolderCreationUndoRecord) -> str:
        bucket = self._directories_root / record.letter
        folder = contained_path(self._directories_root, Path(record.letter) / record.category_name)
        with self._locks.hold(bucket, folder):
            if not path_exists(folder):
                raise FileSystemError(
                    f"Folder {record.category_name} does not exist within the "
                    f"{record.letter} directory."
                )
            try:
                folder.rmdir()
            except OSError as exc:
                if exc.errno in _NOT_EMPTY_ERRNOS:
                    raise FileSystemError(f"Folder {record.category_name} is not empty.") from exc
                raise FileSystemError(
                    f"Failed to remove directory at path ./{record.letter}/{record.category_name}."
                ) from exc

        LOGGER.info("Removed directory %s.", folder)
        return (
            f"Undo Action Successful - {FOLDER_CREATION} has successfully been undone. "
            f"Directory {record.category_name} has been successfully removed."
        )

    def _undo_file_transfer(self, record: TransferUndoRecord) -> str:
        category_folder = contained_path(self._directories_root, record.category_path)
        filed_path = category_folder / record.year / record.new_invoice_name
        restore_name = record.old_invoice_name

        with self._locks.hold(self._invoice_root, category_folder):
            return_path, unique_name = resolve_name(self._invoice_root, restore_name)
            try:
                move_file(filed_path, return_path)
            except MoveError as exc:
                raise FileSystemError(
                    self._undo_failure_detail(exc.cause, record, unique_name)
                ) from exc

        LOGGER.info("Returned %s to %s.", filed_path, return_path)
        message = (
            f"Undo Action Successful - {record.action} has successfully been undone. "
            f"File {record.new_invoice_name} has been successfully removed from "
            f"{record.category_name}."
        )
        if unique_name != restore_name:
            message += f"\nReturned invoice has been renamed from {restore_name} to {unique_name}."
        return message

    def _sort_failure_detail(
        self, cause: MoveFailureCause, query: SortRequest, new_name: str
    ) -> str:
        if cause is MoveFailureCause.SOURCE_PATH_INVALID:
            return f"Invoice {query.invoice_name} was not found in invoice directory."
        if cause is MoveFailureCause.DESTINATION_PATH_ALREADY_IN_USE:
            return f"Directory {query.category_name} already contains a {new_name} invoice file."
        if cause is MoveFailureCause.FAILED_TO_COPY_FILE:
            return "Failed to copy invoice to new location!"
        return (
            "Failed to remove invoice from original location! "
            "The invoice now exists in both locations."
        )

    def _undo_failure_detail(
        self, cause: MoveFailureCause, record: TransferUndoRecord, unique_name: str
    ) -> str:
        if cause is MoveFailureCause.SOURCE_PATH_INVALID:
            return (
                f"Invoice {record.new_invoice_name} was not found in directory "
                f"{record.category_name}."
            )
        if cause is MoveFailureCause.DESTINATION_PATH_ALREADY_IN_USE:
            return f"Invoice directory already contains a {unique_name} invoice file."
        if cause is MoveFailureCause.FAILED_TO_COPY_FILE:
            return (
                f"Failed to transfer invoice {record.new_invoice_name} back to invoice "
                f"directory from {record.category_name}."
            )
        return (
            f"Failed to delete invoice {record.new_invoice_name} from {record.category_name}. "
            "The invoice now exists in both locations."
        )

    def _coerce(self, model: Type[ModelT], value: ModelT | Mapping[str, Any]) -> ModelT:
        if isinstance(value, model):
            return value
        return model.model_validate(value)


def _with_rename_note(message: str, old_name: str, new_name: str | None) -> str:
    if new_name and new_name != old_name:
        return f"{message}\nAttempted to rename {old_name} to {new_name}."
    return message


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


__all__ = ["InvoiceFiler"]
