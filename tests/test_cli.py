"""CLI integration tests for the `invoicesort` command group."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Iterator

import pytest
from click.testing import CliRunner

from invoicesort.cli import cli
from invoicesort.config import ConfigManager


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("invoicesort")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _env_with_home(tmp_path: Path) -> dict[str, str]:
    """Return environment variables pointing HOME to a temp directory."""
    env = {key: value for key, value in os.environ.items() if not key.startswith("INVOICESORT__")}
    env["HOME"] = str(tmp_path / "home")
    return env


def _configure_namespace(tmp_path: Path, name: str = "scans") -> tuple[Path, Path]:
    invoices = tmp_path / "invoices"
    directories = tmp_path / "directories"
    invoices.mkdir()
    directories.mkdir()
    manager = ConfigManager(tmp_path / "home" / ".invoicesort" / "config.yaml")
    manager.save(
        {
            "namespaces": {
                name: {"invoice_root": str(invoices), "directories_root": str(directories)}
            },
            "cli": {"default_namespace": name},
        }
    )
    return invoices, directories


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Invoicesort files scanned invoices" in result.output
    for command in ("sort", "create-folder", "undo", "directories", "next-invoice"):
        assert command in result.output


def test_cli_check_reports_ready_namespace(tmp_path: Path) -> None:
    _, directories = _configure_namespace(tmp_path)
    runner = CliRunner()

    result = runner.invoke(cli, ["check", "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["namespaces"][0]["name"] == "scans"
    assert payload["namespaces"][0]["ready"] is True
    assert (directories / "Q").is_dir()


def test_cli_check_fails_without_namespaces(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["check"], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    assert "No namespaces configured." in result.output


def test_cli_unknown_namespace_json_error(tmp_path: Path) -> None:
    _configure_namespace(tmp_path)
    runner = CliRunner()

    result = runner.invoke(
        cli, ["directories", "--namespace", "other", "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "unknown_namespace"


def test_cli_create_folder_then_list(tmp_path: Path) -> None:
    _, directories = _configure_namespace(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    created = runner.invoke(cli, ["create-folder", "Acme", "--json"], env=env)
    listed = runner.invoke(cli, ["directories", "--json"], env=env)

    assert created.exit_code == 0
    envelope = json.loads(created.output)
    assert envelope["result"] == "Succeeded"
    assert envelope["action"] == "Folder Creation"
    assert envelope["undoInfo"] == {"categoryName": "Acme", "letter": "A"}
    assert envelope["id"]
    assert (directories / "A" / "Acme").is_dir()

    assert listed.exit_code == 0
    assert json.loads(listed.output)["directoriesArray"][0] == ["Acme"]


def test_cli_sort_and_undo_round_trip(tmp_path: Path) -> None:
    invoices, directories = _configure_namespace(tmp_path)
    (directories / "A").mkdir()
    (directories / "A" / "Acme").mkdir()
    (invoices / "invoice1.pdf").write_bytes(b"pdf")
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    sorted_result = runner.invoke(
        cli,
        ["sort", "invoice1.pdf", "--category-name", "Acme", "--year", "2024", "--json"],
        env=env,
    )

    assert sorted_result.exit_code == 0
    envelope = json.loads(sorted_result.output)
    assert envelope["action"] == "File Transfer"
    assert envelope["undoInfo"]["newInvoiceName"] == "invoice1.pdf"
    assert (directories / "A" / "Acme" / "2024" / "invoice1.pdf").exists()

    undone = runner.invoke(
        cli, ["undo", "--record", "-", "--json"], input=sorted_result.output, env=env
    )

    assert undone.exit_code == 0
    undo_envelope = json.loads(undone.output)
    assert undo_envelope["result"] == "Succeeded"
    assert undo_envelope["action"] == "Undo Action"
    assert undo_envelope["undoneActionId"] == envelope["id"]
    assert (invoices / "invoice1.pdf").read_bytes() == b"pdf"


def test_cli_next_invoice_writes_output(tmp_path: Path) -> None:
    invoices, _ = _configure_namespace(tmp_path)
    (invoices / "scan.pdf").write_bytes(b"%PDF")
    target = tmp_path / "copy.pdf"
    runner = CliRunner()

    result = runner.invoke(
        cli, ["next-invoice", "--output", str(target), "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0
    assert json.loads(result.output)["fileName"] == "scan.pdf"
    assert target.read_bytes() == b"%PDF"
    assert (invoices / "scan.pdf").exists()


def test_cli_config_set_and_import_paths(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    paths_file = tmp_path / "paths.json"
    paths_file.write_text(
        json.dumps({"ledger": {"invoiceRoot": "/srv/in", "directoriesRoot": "/srv/out"}}),
        encoding="utf-8",
    )

    set_result = runner.invoke(cli, ["config", "set", "logging.level", "--value", "INFO"], env=env)
    import_result = runner.invoke(cli, ["config", "import-paths", str(paths_file)], env=env)
    bad_result = runner.invoke(
        cli, ["config", "set", "logging.level", "--value", "LOUD"], env=env
    )

    assert set_result.exit_code == 0
    assert "Updated logging.level" in set_result.output
    assert import_result.exit_code == 0
    assert "Imported namespaces: ledger." in import_result.output
    assert bad_result.exit_code != 0

    manager = ConfigManager(tmp_path / "home" / ".invoicesort" / "config.yaml")
    config = manager.load(include_env=False)
    assert config.logging.level == "INFO"
    assert config.namespaces["ledger"].directories_root == Path("/srv/out")
