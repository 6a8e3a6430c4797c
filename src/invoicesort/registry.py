"""Startup wiring of one filing engine per configured namespace."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Mapping

from invoicesort.config import InvoiceSortConfig, NamespaceSettings
from invoicesort.filesystem import InvoiceFiler, TopologyError

LOGGER = logging.getLogger(__name__)


class UnknownNamespaceError(KeyError):
    """Raised when a caller asks for a namespace that is not configured."""

    def __str__(self) -> str:
        return f"Unknown namespace: {self.args[0]}"


class NamespaceUnavailableError(RuntimeError):
    """Raised when a namespace failed startup validation and refuses traffic."""


@dataclass(slots=True)
class NamespaceStatus:
    """Startup outcome for a single namespace.

    Attributes:
        name: Namespace identifier.
        ready: Whether the namespace accepts requests.
        message: Readiness message or the reason startup failed.
    """

    name: str
    ready: bool
    message: str


class NamespaceRegistry:
    """Hold the engines that passed startup and the reasons the others did not."""

    def __init__(self) -> None:
        self._engines: dict[str, InvoiceFiler] = {}
        self._statuses: dict[str, NamespaceStatus] = {}

    @classmethod
    def from_config(cls, config: InvoiceSortConfig) -> "NamespaceRegistry":
        """Build and validate an engine for every namespace in ``config``."""
        return cls.from_settings(config.namespaces)

    @classmethod
    def from_settings(cls, namespaces: Mapping[str, NamespaceSettings]) -> "NamespaceRegistry":
        """Build and validate an engine for each entry in ``namespaces``."""
        registry = cls()
        for name, settings in namespaces.items():
            registry.register(InvoiceFiler.from_settings(name, settings))
        return registry

    def register(self, engine: InvoiceFiler) -> NamespaceStatus:
        """Validate ``engine``'s topology and make it available when ready.

        Startup failures are fatal for that namespace only; they are recorded and
        surfaced when the namespace is requested.
        """
        try:
            message = engine.load_directory_paths()
        except TopologyError as exc:
            LOGGER.error("Namespace %s failed startup: %s", engine.name, exc)
            status = NamespaceStatus(name=engine.name, ready=False, message=str(exc))
            self._engines.pop(engine.name, None)
        else:
            LOGGER.info("Namespace %s ready.", engine.name)
            status = NamespaceStatus(name=engine.name, ready=True, message=message)
            self._engines[engine.name] = engine
        self._statuses[engine.name] = status
        return status

    def get(self, name: str) -> InvoiceFiler:
        """Return the engine for ``name``.

        Raises:
            UnknownNamespaceError: If ``name`` is not configured.
            NamespaceUnavailableError: If ``name`` failed startup validation.
        """
        status = self._statuses.get(name)
        if status is None:
            raise UnknownNamespaceError(name)
        if not status.ready:
            raise NamespaceUnavailableError(
                f"Namespace {name} is not accepting requests:\n{status.message}"
            )
        return self._engines[name]

    def status(self) -> list[NamespaceStatus]:
        """Return startup outcomes in registration order."""
        return list(self._statuses.values())

    @property
    def all_ready(self) -> bool:
        """Return whether every registered namespace passed startup."""
        return all(status.ready for status in self._statuses.values())

    def __iter__(self) -> Iterator[str]:
        return iter(self._engines)

    def __len__(self) -> int:
        return len(self._engines)


__all__ = [
    "NamespaceRegistry",
    "NamespaceStatus",
    "UnknownNamespaceError",
    "NamespaceUnavailableError",
]
