"""Layering of file and environment settings over the built-in defaults."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Iterable, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import InvoiceSortConfig

ENV_PREFIX = "INVOICESORT__"


def resolve_config(
    *,
    file_data: Mapping[str, Any] | None = None,
    env_data: Mapping[str, Any] | None = None,
) -> InvoiceSortConfig:
    """Validate the defaults overlaid with file data, then environment data.

    Args:
        file_data: Nested mapping read from the YAML config file.
        env_data: Nested mapping produced by :func:`parse_env`.

    Returns:
        InvoiceSortConfig: The effective configuration.

    Raises:
        ConfigError: If a source is not a mapping or the merged data is invalid.
    """
    merged = InvoiceSortConfig().model_dump(mode="python")
    for source_name, source in (("file", file_data), ("environment", env_data)):
        if source is None:
            continue
        if not isinstance(source, MappingABC):
            raise ConfigError(f"{source_name.capitalize()} settings must be a mapping.")
        merged = _deep_merge(merged, source)

    try:
        return InvoiceSortConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env(env: Mapping[str, str], namespaces: Iterable[str] = ()) -> dict[str, Any]:
    """Turn `INVOICESORT__SECTION__KEY` variables into a nested settings mapping.

    Values are parsed as YAML scalars. Namespace names may contain hyphens, which
    variable names cannot, so the segment after `NAMESPACES` is matched against
    ``namespaces`` with hyphens spelled as underscores. An unmatched segment names a
    new namespace, lowercased with underscores turned into hyphens.

    Example:
        ``INVOICESORT__NAMESPACES__CUSTOMER_SCANNED_DOCUMENTS__INVOICE_ROOT=/srv/in``
        sets ``namespaces["customer-scanned-documents"].invoice_root``.

    Raises:
        ConfigError: If a variable has an empty segment or conflicts with another.
    """
    known = {env_segment(name): name for name in namespaces}
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = key[len(ENV_PREFIX) :].split("__")
        if not all(segments):
            raise ConfigError(f"Environment variable {key} has an empty section name.")

        path = [segment.lower() for segment in segments]
        if path[0] == "namespaces" and len(path) > 1:
            path[1] = known.get(segments[1].upper(), path[1].replace("_", "-"))

        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        assign_path(overrides, path, value)
    return overrides


def env_segment(namespace: str) -> str:
    """Return how ``namespace`` is spelled inside an environment variable name."""
    return namespace.upper().replace("-", "_")


def assign_path(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Set ``value`` at the nested ``path`` inside ``target``, creating mappings.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping "
                f"(while setting {'.'.join(path)})."
            )
        node = existing
    node[path[-1]] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        if isinstance(value, MappingABC) and isinstance(merged.get(key), MappingABC):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_config", "parse_env", "env_segment", "assign_path"]
