"""Configuration management for invoicesort."""

from __future__ import annotations

import json
import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import DEFAULT_NAMESPACE, InvoiceSortConfig, NamespaceSettings
from .resolver import assign_path, parse_env, resolve_config

DEFAULT_CONFIG_PATH = Path("~/.invoicesort/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # invoicesort configuration file
    # Generated automatically; manage via `invoicesort config edit` or `invoicesort config set`.
    # Each entry under `namespaces` needs an `invoice_root` and a `directories_root`.
    """
)
_PATHS_FILE_KEYS = {
    "invoiceRoot": "invoice_root",
    "invoice_root": "invoice_root",
    "directoriesRoot": "directories_root",
    "directories_root": "directories_root",
}


class ConfigManager:
    """Read, validate and rewrite the YAML file holding namespace and logging settings.

    Every write validates the complete file first, so the file on disk always loads.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> InvoiceSortConfig:
        """Return the effective configuration: defaults, then the file, then the environment.

        Args:
            include_env: Apply `INVOICESORT__*` variables when True.
            ensure_file: Write a default file first if none exists.
            env_overrides: Variables to use instead of the process environment.

        Raises:
            ConfigError: If the file or the variables do not form a valid config.
        """
        if ensure_file:
            self.ensure_exists()

        data = self.file_data()
        env_data = None
        if include_env:
            env = env_overrides if env_overrides is not None else self._env
            env_data = parse_env(env, namespaces=self._namespace_names(data))
        return resolve_config(file_data=data, env_data=env_data)

    def file_data(self) -> dict[str, Any]:
        """Return the mapping stored in the file, without defaults or environment."""
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def save(self, data: InvoiceSortConfig | Mapping[str, Any]) -> None:
        """Validate ``data`` and write it to the file with a fresh header.

        Raises:
            ConfigError: If ``data`` is not a valid configuration.
        """
        if isinstance(data, InvoiceSortConfig):
            payload = data.model_dump(mode="json")
        else:
            payload = dict(data)
            resolve_config(file_data=payload)
        self._write_file(payload)

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        if not self._config_path.exists():
            self._write_file(InvoiceSortConfig().model_dump(mode="json"))
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def set_value(self, dotted_key: str, value: Any) -> list[str]:
        """Store ``value`` at ``dotted_key`` (for example ``logging.level``).

        Namespace names containing dots cannot be addressed this way; use
        :meth:`import_namespaces` or `config edit` for those.

        Returns:
            list[str]: The key's path segments.

        Raises:
            ConfigError: If the key is empty or the result is not a valid config.
        """
        segments = [segment.strip() for segment in dotted_key.split(".") if segment.strip()]
        if not segments:
            raise ConfigError("KEY must specify a dotted path such as 'logging.level'.")
        data = self.file_data()
        assign_path(data, segments, value)
        self.save(data)
        return segments

    def import_namespaces(self, imported: Mapping[str, NamespaceSettings]) -> list[str]:
        """Add or replace namespaces in the file, keeping every other setting.

        Returns:
            list[str]: Names of namespaces that did not exist before.

        Raises:
            ConfigError: If the merged namespaces overlap or the file is invalid.
        """
        data = self.file_data()
        namespaces = data.get("namespaces") or {}
        if not isinstance(namespaces, dict):
            raise ConfigError("The 'namespaces' section must be a mapping.")
        added = [name for name in imported if name not in namespaces]
        for name, settings in imported.items():
            namespaces[name] = settings.model_dump(mode="json")
        data["namespaces"] = namespaces
        self.save(data)
        return added

    # Internal helpers -------------------------------------------------

    def _namespace_names(self, data: Mapping[str, Any]) -> list[str]:
        namespaces = data.get("namespaces")
        return list(namespaces) if isinstance(namespaces, dict) else []

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{serialized}", encoding="utf-8"
        )


def load_namespace_file(path: Path) -> dict[str, NamespaceSettings]:
    """Read a JSON paths file mapping namespaces to their two root directories.

    The file holds one object per namespace, keyed by `invoiceRoot` and
    `directoriesRoot` (snake_case keys are accepted too).

    Args:
        path: Location of the JSON paths file.

    Returns:
        dict[str, NamespaceSettings]: Validated settings keyed by namespace.

    Raises:
        ConfigError: If the file is missing, unreadable, or malformed.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Unable to read paths file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Paths file {path} is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Paths file must contain an object keyed by namespace.")

    namespaces: dict[str, NamespaceSettings] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"Paths entry for {name} must be an object.")
        translated = {_PATHS_FILE_KEYS.get(key, key): value for key, value in entry.items()}
        try:
            namespaces[name] = NamespaceSettings.model_validate(translated)
        except ValidationError as exc:
            raise ConfigError(f"Invalid paths entry for {name}: {exc}") from exc
    return namespaces


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_NAMESPACE",
    "InvoiceSortConfig",
    "NamespaceSettings",
    "resolve_config",
    "parse_env",
    "load_namespace_file",
    "ConfigError",
]
