"""Command line interface for the invoicesort filing service."""

from __future__ import annotations

import base64
import difflib
import json
import secrets
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from invoicesort.config import (
    ConfigError,
    ConfigManager,
    InvoiceSortConfig,
    load_namespace_file,
)
from invoicesort.filesystem import FILE_TRANSFER, FOLDER_CREATION, InvoiceFiler
from invoicesort.filesystem.models import OperationResult
from invoicesort.filesystem.paths import path_exists
from invoicesort.logs import configure_logging
from invoicesort.registry import (
    NamespaceRegistry,
    NamespaceUnavailableError,
    UnknownNamespaceError,
)

console = Console()

_namespace_option = click.option(
    "-n",
    "--namespace",
    type=str,
    help="Namespace to operate on (defaults to cli.default_namespace).",
)
_json_option = click.option(
    "--json", "json_output", is_flag=True, help="Emit a JSON response envelope."
)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _new_action_id() -> str:
    return secrets.token_hex(8)


def _load_config() -> InvoiceSortConfig:
    manager = ConfigManager()
    config = manager.load()
    configure_logging(config.logging)
    return config


def _open_namespace(config: InvoiceSortConfig, namespace: Optional[str]) -> InvoiceFiler:
    """Validate and return the engine for one namespace.

    Raises:
        UnknownNamespaceError: If the namespace is not configured.
        NamespaceUnavailableError: If its roots or letter folders are not usable.
    """
    name = namespace or config.cli.default_namespace
    settings = config.namespaces.get(name)
    if settings is None:
        raise UnknownNamespaceError(name)
    registry = NamespaceRegistry()
    registry.register(InvoiceFiler.from_settings(name, settings))
    return registry.get(name)


def _envelope(
    success: bool,
    message: str,
    *,
    action: str,
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "result": "Succeeded" if success else "Failed",
        "message": message,
    }
    payload.update(extra)
    payload["id"] = _new_action_id()
    payload["action"] = action
    return payload


def _emit_text(message: str, color: str) -> None:
    console.print(f"[{color}]{escape(message)}[/{color}]", highlight=False, soft_wrap=True)


def _emit_operation(result: OperationResult, *, action: str, json_output: bool) -> None:
    undo_info = (
        result.undo_record.model_dump(mode="json", by_alias=True)
        if result.undo_record is not None
        else None
    )
    payload = _envelope(result.success, result.message, action=action, undoInfo=undo_info)
    if json_output:
        console.print_json(data=payload)
    else:
        _emit_text(result.message, "green" if result.success else "red")
        if undo_info is not None:
            console.print(
                f"[cyan]Undo with:[/cyan] invoicesort undo --action '{action}' "
                f"--action-id {payload['id']} --record '{escape(json.dumps(undo_info))}'",
                highlight=False,
                soft_wrap=True,
            )
    if not result.success:
        raise SystemExit(1)


def _run_guarded(json_output: bool, action: str, func: Any) -> None:
    """Run ``func`` mapping configuration and namespace errors onto CLI errors."""
    try:
        func()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except UnknownNamespaceError as exc:
        _handle_cli_error(str(exc), code="unknown_namespace", json_output=json_output, original=exc)
    except NamespaceUnavailableError as exc:
        _handle_cli_error(
            str(exc), code="namespace_unavailable", json_output=json_output, original=exc
        )
    except click.ClickException as exc:
        _handle_cli_error(
            exc.format_message(), code="cli_error", json_output=json_output, original=exc
        )
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error during {action}: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="invoicesort")
def cli() -> None:
    """Invoicesort files scanned invoices into letter and year folders, with undo."""


@cli.command()
@_json_option
def check(json_output: bool) -> None:
    """Validate every configured namespace and report whether it is ready."""

    def _run() -> None:
        config = _load_config()
        registry = NamespaceRegistry.from_config(config)
        statuses = registry.status()

        if json_output or config.cli.json_default:
            console.print_json(
                data={
                    "namespaces": [
                        {"name": s.name, "ready": s.ready, "message": s.message}
                        for s in statuses
                    ]
                }
            )
        elif not statuses:
            console.print("[yellow]No namespaces configured.[/yellow]")
        else:
            table = Table(title="Namespaces")
            table.add_column("Namespace")
            table.add_column("Ready")
            table.add_column("Message")
            for status in statuses:
                ready = "[green]yes[/green]" if status.ready else "[red]no[/red]"
                table.add_row(status.name, ready, status.message)
            console.print(table)

        if not statuses or not registry.all_ready:
            raise SystemExit(1)

    _run_guarded(json_output, "check", _run)


@cli.command()
@_namespace_option
@_json_option
def directories(namespace: Optional[str], json_output: bool) -> None:
    """List the category folders inside each letter folder."""

    def _run() -> None:
        config = _load_config()
        json_enabled = json_output or config.cli.json_default
        engine = _open_namespace(config, namespace)
        listing = engine.get_all_directories()

        if json_enabled:
            console.print_json(data={"directoriesArray": listing.directories})
        elif listing.success:
            table = Table(title=f"Directories for {engine.name}")
            table.add_column("Letter")
            table.add_column("Directories")
            for letter, names in zip(listing.letters, listing.directories):
                table.add_row(letter, ", ".join(names))
            console.print(table)
        else:
            _emit_text(listing.message, "red")

        if not listing.success:
            raise SystemExit(1)

    _run_guarded(json_output, "directories", _run)


@cli.command("next-invoice")
@_namespace_option
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the invoice bytes to this file.",
)
@_json_option
def next_invoice(namespace: Optional[str], output: Optional[Path], json_output: bool) -> None:
    """Show the next pending invoice in the inbox."""

    def _run() -> None:
        config = _load_config()
        json_enabled = json_output or config.cli.json_default
        engine = _open_namespace(config, namespace)
        result = engine.get_invoice()

        if result.success and output is not None and result.file is not None:
            output.write_bytes(base64.b64decode(result.file))

        if json_enabled:
            if result.success:
                console.print_json(data={"fileName": result.file_name, "file": result.file})
            else:
                error = {"code": "no_invoice", "message": result.message}
                console.print_json(data={"error": error})
        elif result.success:
            _emit_text(result.file_name or "", "green")
            if output is not None:
                _emit_text(f"Saved to {output}.", "cyan")
        else:
            _emit_text(result.message, "yellow")

        if not result.success:
            raise SystemExit(1)

    _run_guarded(json_output, "next-invoice", _run)


@cli.command()
@click.argument("invoice")
@click.option("--category-name", required=True, help="Category the invoice is filed under.")
@click.option(
    "--category-path",
    help="Category folder relative to the directories root (defaults to <LETTER>/<NAME>).",
)
@click.option("--year", help="Year folder to file into (defaults to the current year).")
@_namespace_option
@_json_option
def sort(
    invoice: str,
    category_name: str,
    category_path: Optional[str],
    year: Optional[str],
    namespace: Optional[str],
    json_output: bool,
) -> None:
    """File INVOICE from the inbox into a category's year folder."""

    def _run() -> None:
        config = _load_config()
        engine = _open_namespace(config, namespace)
        request = {
            "categoryPath": category_path or f"{category_name[:1].upper()}/{category_name}",
            "categoryName": category_name,
            "invoiceName": invoice,
            "year": year or str(datetime.now().year),
        }
        result = engine.sort_file(request)
        _emit_operation(
            result,
            action=FILE_TRANSFER,
            json_output=json_output or config.cli.json_default,
        )

    _run_guarded(json_output, "sort", _run)


@cli.command("create-folder")
@click.argument("category")
@click.option("--letter", help="Letter folder to create in (defaults to CATEGORY's initial).")
@_namespace_option
@_json_option
def create_folder(
    category: str,
    letter: Optional[str],
    namespace: Optional[str],
    json_output: bool,
) -> None:
    """Create the CATEGORY folder inside a letter folder."""

    def _run() -> None:
        config = _load_config()
        engine = _open_namespace(config, namespace)
        result = engine.create_new_folder(
            {"categoryName": category, "letter": letter or category[:1]}
        )
        _emit_operation(
            result,
            action=FOLDER_CREATION,
            json_output=json_output or config.cli.json_default,
        )

    _run_guarded(json_output, "create-folder", _run)


@cli.command()
@click.option(
    "--record",
    required=True,
    help="Undo record JSON, a full `--json` response envelope, or '-' to read stdin.",
)
@click.option(
    "--action",
    type=click.Choice([FILE_TRANSFER, FOLDER_CREATION]),
    help="Kind of action to undo (inferred from the record when omitted).",
)
@click.option("--action-id", help="Identifier of the action being undone.")
@_namespace_option
@_json_option
def undo(
    record: str,
    action: Optional[str],
    action_id: Optional[str],
    namespace: Optional[str],
    json_output: bool,
) -> None:
    """Reverse a previous sort or create-folder using its undo record."""

    def _run() -> None:
        config = _load_config()
        json_enabled = json_output or config.cli.json_default
        text = click.get_text_stream("stdin").read() if record == "-" else record
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise click.ClickException(f"Undo record is not valid JSON: {exc}") from exc

        undo_record: Any = parsed
        undo_action = action
        undone_id = action_id
        if isinstance(parsed, dict) and "undoInfo" in parsed:
            undo_record = parsed["undoInfo"]
            undo_action = undo_action or parsed.get("action")
            undone_id = undone_id or parsed.get("id")
        if undo_record is None:
            raise click.ClickException("The response envelope carries no undo record.")

        engine = _open_namespace(config, namespace)
        request: dict[str, Any] = {"actionId": undone_id, "undoRecord": undo_record}
        if undo_action:
            request["action"] = undo_action
        result = engine.undo_previous_action(request)

        payload = _envelope(
            result.success,
            result.message,
            action="Undo Action",
            undoneActionId=result.action_id,
        )
        if json_enabled:
            console.print_json(data=payload)
        else:
            _emit_text(result.message, "green" if result.success else "red")
        if not result.success:
            raise SystemExit(1)

    _run_guarded(json_output, "undo", _run)


@cli.group()
def config() -> None:
    """Manage namespaces and settings in ~/.invoicesort/config.yaml."""


def _root_cell(path: Path) -> str:
    text = escape(str(path))
    return text if path_exists(path.expanduser()) else f"[red]{text} (missing)[/red]"


def _namespace_keys(data: dict[str, Any]) -> set[str]:
    namespaces = data.get("namespaces")
    return set(namespaces) if isinstance(namespaces, dict) else set()


def _print_file_diff(before: list[str], after: list[str]) -> None:
    """Print a unified diff of the config file, ignoring the timestamp line."""

    def _content(lines: list[str]) -> list[str]:
        return [line for line in lines if not line.startswith("# Last updated:")]

    diff = list(
        difflib.unified_diff(
            _content(before),
            _content(after),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if diff:
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore INVOICESORT__* environment overrides.")
def config_view(no_env: bool) -> None:
    """Show the effective settings and where each namespace's roots point.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    general = loaded.model_dump(mode="json", exclude={"namespaces"})
    console.print(Syntax(yaml.safe_dump(general, sort_keys=False), "yaml", word_wrap=True))

    if not loaded.namespaces:
        console.print(
            "[yellow]No namespaces configured; add some with "
            "`invoicesort config import-paths`.[/yellow]"
        )
        return

    table = Table(title=f"Namespaces in {escape(str(manager.config_path))}")
    table.add_column("Namespace")
    table.add_column("Invoice root")
    table.add_column("Directories root")
    for name, settings in loaded.namespaces.items():
        label = escape(name)
        if name == loaded.cli.default_namespace:
            label += " [cyan](default)[/cyan]"
        table.add_row(
            label, _root_cell(settings.invoice_root), _root_cell(settings.directories_root)
        )
    console.print(table)


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Store VALUE at a dotted KEY such as `namespaces.scans.invoice_root`.

    Raises:
        click.ClickException: If the value does not parse or the result is invalid.
    """
    manager = ConfigManager()
    manager.ensure_exists()
    before = manager.read_text().splitlines()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        segments = manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    _print_file_diff(before, manager.read_text().splitlines())
    console.print(f"[green]Updated {escape('.'.join(segments))}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Edit the configuration file and report namespaces added or removed.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        console.print("[yellow]No changes applied.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        previous = _namespace_keys(manager.file_data())
    except ConfigError:
        previous = set()
    try:
        manager.save(parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    current = _namespace_keys(parsed)
    console.print("[green]Configuration updated.[/green]")
    for name in sorted(current - previous):
        _emit_text(f"Added namespace {name}.", "cyan")
    for name in sorted(previous - current):
        _emit_text(f"Removed namespace {name}.", "yellow")


@config.command("import-paths")
@click.argument("paths_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def config_import_paths(paths_file: Path) -> None:
    """Merge namespaces from a JSON paths file into the configuration file.

    Raises:
        click.ClickException: If the paths file or resulting configuration is invalid.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    try:
        imported = load_namespace_file(paths_file)
        added = manager.import_namespaces(imported)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    names = ", ".join(sorted(imported)) or "none"
    _emit_text(f"Imported namespaces: {names}.", "green")
    replaced = sorted(set(imported) - set(added))
    if replaced:
        _emit_text(f"Replaced existing settings for: {', '.join(replaced)}.", "yellow")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
