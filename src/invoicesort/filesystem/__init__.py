"""File-organization engine for letter-bucketed, year-partitioned invoice archives."""

from .engine import InvoiceFiler
from .errors import (
    FileSystemError,
    InvalidPathError,
    MoveError,
    MoveFailureCause,
    PathOutsideRootError,
    TopologyError,
    YearFolderError,
)
from .models import (
    FILE_TRANSFER,
    FOLDER_CREATION,
    CreateFolderRequest,
    DirectoryListing,
    FolderCreationUndoRecord,
    InvoiceFetchResult,
    OperationResult,
    SortRequest,
    TransferUndoRecord,
    UndoRequest,
    UndoResult,
)

__all__ = [
    "InvoiceFiler",
    "FileSystemError",
    "InvalidPathError",
    "MoveError",
    "MoveFailureCause",
    "PathOutsideRootError",
    "TopologyError",
    "YearFolderError",
    "FILE_TRANSFER",
    "FOLDER_CREATION",
    "CreateFolderRequest",
    "DirectoryListing",
    "FolderCreationUndoRecord",
    "InvoiceFetchResult",
    "OperationResult",
    "SortRequest",
    "TransferUndoRecord",
    "UndoRequest",
    "UndoResult",
]
