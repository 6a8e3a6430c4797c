"""Configuration models describing invoicesort settings."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_NAMESPACE = "customer-scanned-documents"


class InvoiceSortBaseModel(BaseModel):
    """Shared configuration for invoicesort settings models."""

    model_config = ConfigDict(extra="forbid")


class NamespaceSettings(InvoiceSortBaseModel):
    """Root paths owned by a single filing namespace.

    Attributes:
        invoice_root: Flat inbox directory holding pending invoices.
        directories_root: Archive directory containing the A-Z letter buckets.
    """

    invoice_root: Path
    directories_root: Path


class LoggingSettings(InvoiceSortBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file; rotation applies when set.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    file: Optional[Path] = None
    max_size_mb: int = Field(default=10, ge=1)
    backup_count: int = Field(default=5, ge=0)


class CLIOptions(InvoiceSortBaseModel):
    """CLI behavior defaults.

    Attributes:
        default_namespace: Namespace used when a command omits `--namespace`.
        json_default: Whether commands emit JSON by default.
    """

    default_namespace: str = DEFAULT_NAMESPACE
    json_default: bool = False


class InvoiceSortConfig(InvoiceSortBaseModel):
    """Top-level configuration struct for invoicesort.

    Attributes:
        namespaces: Mapping of namespace identifiers to their root paths.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    namespaces: Dict[str, NamespaceSettings] = Field(default_factory=dict)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)

    @model_validator(mode="after")
    def _check_namespaces(self) -> "InvoiceSortConfig":
        """Reject blank names and roots shared between or within namespaces.

        Each namespace owns its inbox and archive exclusively.
        """
        owners: dict[Path, str] = {}
        for name, settings in self.namespaces.items():
            if not name or name != name.strip():
                raise ValueError(f"Namespace name {name!r} must be non-blank without padding.")
            for label, root in (
                ("invoice_root", settings.invoice_root),
                ("directories_root", settings.directories_root),
            ):
                key = root.expanduser()
                if key in owners:
                    raise ValueError(
                        f"{name}.{label} ({root}) is already used by {owners[key]}."
                    )
                owners[key] = f"{name}.{label}"
        return self


__all__ = [
    "DEFAULT_NAMESPACE",
    "InvoiceSortBaseModel",
    "NamespaceSettings",
    "LoggingSettings",
    "CLIOptions",
    "InvoiceSortConfig",
]
