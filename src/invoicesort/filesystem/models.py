"""Request, undo record and result models for the filing engine."""

from __future__ import annotations

import json
import string
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

FILE_TRANSFER = "File Transfer"
FOLDER_CREATION = "Folder Creation"


class EngineModel(BaseModel):
    """Shared configuration: camelCase on the wire, field names accepted too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        coerce_numbers_to_str=True,
    )


def _single_component(value: str, label: str) -> str:
    if not value.strip() or value in (".", "..") or "/" in value or "\\" in value:
        raise ValueError(f"{label} must be a single folder or file name.")
    return value


def _bucket_letter(value: str) -> str:
    letter = value.strip().upper()
    if len(letter) != 1 or letter not in string.ascii_uppercase:
        raise ValueError("Letter must be a single character between A and Z.")
    return letter


def _category_path(value: str) -> str:
    """Normalize ``<letter>/<category>``; any other depth is rejected."""
    parts = value.split("/")
    if len(parts) != 2:
        raise ValueError("Category path must look like '<letter>/<category>'.")
    return f"{_bucket_letter(parts[0])}/{_single_component(parts[1], 'Category name')}"


class TransferUndoRecord(EngineModel):
    """Everything needed to move a filed invoice back to the inbox.

    Attributes:
        old_invoice_name: Name the invoice had in the inbox.
        new_invoice_name: Name the invoice was filed under.
        category_path: Category folder relative to the directories root.
        category_name: Display name of the category.
        year: Year folder the invoice was filed into.
    """

    action: Literal["File Transfer"] = Field(default=FILE_TRANSFER, exclude=True)
    old_invoice_name: str
    new_invoice_name: str
    category_path: str
    category_name: str
    year: str

    @field_validator("old_invoice_name", "new_invoice_name")
    @classmethod
    def _check_invoice_names(cls, value: str) -> str:
        return _single_component(value, "Invoice name")

    @field_validator("year")
    @classmethod
    def _check_year(cls, value: str) -> str:
        return _single_component(value, "Year")

    @field_validator("category_path")
    @classmethod
    def _check_category_path(cls, value: str) -> str:
        return _category_path(value)


class FolderCreationUndoRecord(EngineModel):
    """Everything needed to remove a category folder created earlier.

    Attributes:
        category_name: Folder name under the letter bucket.
        letter: Letter bucket the folder was created in.
    """

    action: Literal["Folder Creation"] = Field(default=FOLDER_CREATION, exclude=True)
    category_name: str
    letter: str

    @field_validator("category_name")
    @classmethod
    def _check_category_name(cls, value: str) -> str:
        return _single_component(value, "Category name")

    @field_validator("letter")
    @classmethod
    def _check_letter(cls, value: str) -> str:
        return _bucket_letter(value)


UndoRecord = Annotated[
    Union[TransferUndoRecord, FolderCreationUndoRecord],
    Field(discriminator="action"),
]


class SortRequest(EngineModel):
    """File one pending invoice into a category's year folder."""

    category_path: str
    category_name: str
    invoice_name: str
    year: str

    @field_validator("invoice_name")
    @classmethod
    def _check_invoice_name(cls, value: str) -> str:
        return _single_component(value, "Invoice name")

    @field_validator("year")
    @classmethod
    def _check_year(cls, value: str) -> str:
        return _single_component(value, "Year")

    @field_validator("category_path")
    @classmethod
    def _check_category_path(cls, value: str) -> str:
        return _category_path(value)


class CreateFolderRequest(EngineModel):
    """Create a category folder inside a letter bucket."""

    category_name: str
    letter: str

    @field_validator("category_name")
    @classmethod
    def _check_category_name(cls, value: str) -> str:
        return _single_component(value, "Category name")

    @field_validator("letter")
    @classmethod
    def _check_letter(cls, value: str) -> str:
        return _bucket_letter(value)


def _infer_action(record: dict[str, Any]) -> Optional[str]:
    if "newInvoiceName" in record or "new_invoice_name" in record:
        return FILE_TRANSFER
    if "letter" in record:
        return FOLDER_CREATION
    return None


class UndoRequest(EngineModel):
    """Caller-held undo record resubmitted for reversal.

    Accepts ``{"action": ..., "actionId": ..., "undoRecord": ...}`` where the
    record may also arrive as a JSON string. The top-level ``action`` selects the
    record kind; when it is absent the kind is inferred from the record fields.
    """

    action_id: Optional[str] = None
    undo_record: UndoRecord

    @model_validator(mode="before")
    @classmethod
    def _attach_action(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        action = data.pop("action", None)
        if "undoInfo" in data and "undoRecord" not in data:
            data["undoRecord"] = data.pop("undoInfo")
        key = "undo_record" if "undo_record" in data else "undoRecord"
        record = data.get(key)
        if isinstance(record, str):
            record = json.loads(record)
        elif isinstance(record, (TransferUndoRecord, FolderCreationUndoRecord)):
            record = {**record.model_dump(by_alias=True), "action": record.action}
        if isinstance(record, dict) and "action" not in record:
            record = {**record, "action": action or _infer_action(record)}
        data[key] = record
        return data

    @property
    def action(self) -> str:
        """Return the kind of action this request reverses."""
        return self.undo_record.action


class EngineResult(EngineModel):
    """Outcome shared by every engine operation."""

    success: bool
    message: str


class OperationResult(EngineResult):
    """Outcome of a mutating operation, carrying its undo record on success."""

    undo_record: Optional[UndoRecord] = None


class UndoResult(EngineResult):
    """Outcome of an undo, echoing the caller's action id."""

    action_id: Optional[str] = None


class DirectoryListing(EngineResult):
    """Category folder names for each letter bucket, in A-Z order.

    ``letters[i]`` names the bucket whose folders are listed in ``directories[i]``.
    """

    letters: List[str] = Field(default_factory=list)
    directories: List[List[str]] = Field(default_factory=list)


class InvoiceFetchResult(EngineResult):
    """Next pending invoice, base64 encoded."""

    file_name: Optional[str] = None
    file: Optional[str] = None


__all__ = [
    "FILE_TRANSFER",
    "FOLDER_CREATION",
    "EngineModel",
    "TransferUndoRecord",
    "FolderCreationUndoRecord",
    "UndoRecord",
    "SortRequest",
    "CreateFolderRequest",
    "UndoRequest",
    "EngineResult",
    "OperationResult",
    "UndoResult",
    "DirectoryListing",
    "InvoiceFetchResult",
]
