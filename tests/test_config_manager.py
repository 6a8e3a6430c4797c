"""Unit tests for configuration management."""

import json
import logging
from pathlib import Path

import pytest

from invoicesort.config import (
    DEFAULT_NAMESPACE,
    ConfigError,
    ConfigManager,
    InvoiceSortConfig,
    NamespaceSettings,
    load_namespace_file,
    parse_env,
    resolve_config,
)
from invoicesort.config.models import LoggingSettings
from invoicesort.logs import configure_logging


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".invoicesort" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "invoicesort configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, InvoiceSortConfig)
    assert config.namespaces == {}
    assert config.cli.default_namespace == DEFAULT_NAMESPACE


def test_environment_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save(
        {
            "namespaces": {
                "customer-scanned-documents": {
                    "invoice_root": "/srv/in",
                    "directories_root": "/srv/out",
                }
            },
            "logging": {"level": "INFO"},
        }
    )

    env = {
        "INVOICESORT__LOGGING__LEVEL": "DEBUG",
        "INVOICESORT__CLI__JSON_DEFAULT": "true",
        "INVOICESORT__NAMESPACES__CUSTOMER_SCANNED_DOCUMENTS__INVOICE_ROOT": "/mnt/in",
        "UNRELATED": "ignored",
    }

    config = manager.load(env_overrides=env)

    assert config.logging.level == "DEBUG"
    assert config.cli.json_default is True
    settings = config.namespaces["customer-scanned-documents"]
    assert settings.invoice_root == Path("/mnt/in")
    assert settings.directories_root == Path("/srv/out")


def test_parse_env_names_new_namespaces_with_hyphens() -> None:
    overrides = parse_env(
        {
            "INVOICESORT__NAMESPACES__VENDOR_BILLS__INVOICE_ROOT": "/a",
            "INVOICESORT__NAMESPACES__VENDOR_BILLS__DIRECTORIES_ROOT": "/b",
        }
    )

    assert overrides == {
        "namespaces": {"vendor-bills": {"invoice_root": "/a", "directories_root": "/b"}}
    }


def test_parse_env_rejects_empty_segment() -> None:
    with pytest.raises(ConfigError):
        parse_env({"INVOICESORT__LOGGING____LEVEL": "INFO"})


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_resolve_config_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_config(file_data={"logging": {"max_size_mb": "not-an-int"}})


def test_resolve_config_rejects_shared_roots() -> None:
    with pytest.raises(ConfigError) as excinfo:
        resolve_config(
            file_data={
                "namespaces": {
                    "first": {"invoice_root": "/srv/in", "directories_root": "/srv/out"},
                    "second": {"invoice_root": "/srv/other", "directories_root": "/srv/out"},
                }
            }
        )

    assert "already used by first.directories_root" in str(excinfo.value)


def test_save_refuses_invalid_data(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()
    before = manager.read_text()

    with pytest.raises(ConfigError):
        manager.save({"namespaces": {"scans": {"invoice_root": "/only"}}})

    assert manager.read_text() == before


def test_set_value_and_import_namespaces(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    segments = manager.set_value("logging.level", "ERROR")
    first = manager.import_namespaces(
        {"scans": NamespaceSettings(invoice_root="/srv/in", directories_root="/srv/out")}
    )
    second = manager.import_namespaces(
        {"scans": NamespaceSettings(invoice_root="/srv/in2", directories_root="/srv/out2")}
    )

    assert segments == ["logging", "level"]
    assert first == ["scans"]
    assert second == []
    config = manager.load(include_env=False)
    assert config.logging.level == "ERROR"
    assert config.namespaces["scans"].invoice_root == Path("/srv/in2")


def test_load_namespace_file_accepts_camel_case(tmp_path: Path) -> None:
    paths_file = tmp_path / "paths.json"
    paths_file.write_text(
        json.dumps(
            {
                "customer-scanned-documents": {
                    "invoiceRoot": "/srv/invoices",
                    "directoriesRoot": "/srv/directories",
                }
            }
        ),
        encoding="utf-8",
    )

    namespaces = load_namespace_file(paths_file)

    settings = namespaces["customer-scanned-documents"]
    assert settings.invoice_root == Path("/srv/invoices")
    assert settings.directories_root == Path("/srv/directories")


@pytest.mark.parametrize(
    "content",
    ["not json", json.dumps(["a"]), json.dumps({"scans": {"invoiceRoot": "/only"}})],
)
def test_load_namespace_file_rejects_malformed(tmp_path: Path, content: str) -> None:
    paths_file = tmp_path / "paths.json"
    paths_file.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_namespace_file(paths_file)


def test_configure_logging_replaces_handlers(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "invoicesort.log"

    logger = configure_logging(LoggingSettings(level="INFO", file=log_file))
    configure_logging(LoggingSettings(level="INFO", file=log_file))
    logger.info("filed something")

    try:
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 2
        for handler in logger.handlers:
            handler.flush()
        assert "filed something" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
