"""
CLI commands for datastores.

Provides the `datastores` command-line interface for inspecting the path
layout, settings and persisted store files.
"""

import json
import sqlite3
import sys
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.table import Table

from config.loader import ConfigurationLoader
from .bootstrap import DataStorePathProvider

console = Console()


def _is_sqlite_file(path: Path) -> bool:
    return path.suffix.lower() in ('.db', '.sqlite', '.sqlite3')


def _list_collections(path: Path) -> List[str]:
    with closing(sqlite3.connect(path)) as connection:
        rows = connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        ).fetchall()
    return [row[0] for row in rows]


def _read_records(path: Path, collection: Optional[str]) -> List[Dict[str, Any]]:
    """Records of a JSON store file or of one collection of a SQLite store"""
    if _is_sqlite_file(path):
        if not collection:
            raise click.UsageError("--collection is required for SQLite store files")
        if collection not in _list_collections(path):
            raise click.ClickException(f"Collection '{collection}' not found in {path}")

        with closing(sqlite3.connect(path)) as connection:
            rows = connection.execute(
                f'SELECT id, document FROM "{collection}" ORDER BY id'
            ).fetchall()
        return [{'id': row_id, **json.loads(document)} for row_id, document in rows]

    text = path.read_text(encoding='utf-8')
    if not text.strip():
        return []

    data = json.loads(text)
    if not isinstance(data, list):
        raise click.ClickException(f"{path} does not contain a JSON array")
    return [item if isinstance(item, dict) else {'value': item} for item in data]


@click.group()
@click.version_option(version="1.0.0", prog_name="datastores")
def main():
    """
    Datastores CLI.

    Inspect application paths and persisted store files.
    """
    pass


@main.command()
@click.argument('app_name')
@click.option('--root', type=click.Path(path_type=Path), help='Application root directory')
@click.option('--create', is_flag=True, help='Create missing directories')
def paths(app_name: str, root: Optional[Path], create: bool):
    """Show the directory layout for APP_NAME."""
    try:
        provider = DataStorePathProvider(app_name, root)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='APP_NAME')

    if create:
        provider.ensure_directories_exist()

    table = Table(title=f"Paths for {provider.application_name}")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    table.add_column("Exists", justify="center")

    for name, path in [
        ("application", provider.application_path),
        ("data", provider.data_path),
        ("settings", provider.settings_path),
        ("logs", provider.logs_path),
        ("cache", provider.cache_path),
        ("temp", provider.temp_path)
    ]:
        table.add_row(name, str(path), "✅" if path.exists() else "-")

    console.print(table)


@main.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--collection', '-c', help='Collection name (SQLite store files)')
@click.option('--limit', '-n', type=click.IntRange(min=1), help='Show at most N items')
def show(file: Path, collection: Optional[str], limit: Optional[int]):
    """Show the items of a store FILE as a table."""
    try:
        records = _read_records(file, collection)
    except (json.JSONDecodeError, sqlite3.Error) as e:
        console.print(f"[red]❌ Failed to read {file}: {e}[/red]")
        sys.exit(1)

    if not records:
        console.print(f"[yellow]⚠️  {file} contains no items[/yellow]")
        return

    shown = records[:limit] if limit else records
    columns: List[str] = []
    for record in shown:
        for key in record:
            if key not in columns:
                columns.append(key)

    table = Table(title=f"{file.name} ({len(records)} items)")
    for column in columns:
        table.add_column(column)
    for record in shown:
        table.add_row(*(_format_cell(record.get(column)) for column in columns))

    console.print(table)


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


@main.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--collection', '-c', help='Collection name (SQLite store files)')
def count(file: Path, collection: Optional[str]):
    """Print the number of items in a store FILE."""
    try:
        if _is_sqlite_file(file) and not collection:
            for name in _list_collections(file):
                click.echo(f"{name}: {len(_read_records(file, name))}")
            return

        click.echo(len(_read_records(file, collection)))
    except (json.JSONDecodeError, sqlite3.Error) as e:
        console.print(f"[red]❌ Failed to read {file}: {e}[/red]")
        sys.exit(1)


@main.command()
@click.option(
    '--file', '-f', 'settings_file',
    type=click.Path(dir_okay=False, path_type=Path),
    help='Settings file (JSON)'
)
def settings(settings_file: Optional[Path]):
    """Show the effective settings."""
    loaded = ConfigurationLoader(settings_file).load_settings()

    table = Table(title="Datastores Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in loaded.model_dump().items():
        table.add_row(name, _format_cell(value) or "-")

    console.print(table)


if __name__ == "__main__":
    main()
