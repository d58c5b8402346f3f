"""
Unit tests for CLI functionality.

Tests the datastores command-line interface commands: paths, show, count, settings.
"""

import json
import sqlite3

import pytest
from click.testing import CliRunner

from config.defaults import ENV_VAR_MAPPING
from datastores.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def json_store(tmp_path):
    path = tmp_path / "customers.json"
    path.write_text(json.dumps([
        {"id": 1, "name": "Ada", "city": "London"},
        {"id": 2, "name": "Bob", "city": "Paris"},
        {"id": 3, "name": "Cy", "city": "Rome"}
    ]))
    return path


@pytest.fixture
def sqlite_store(tmp_path):
    path = tmp_path / "app.db"
    with sqlite3.connect(path) as connection:
        for table in ("Customer", "Group"):
            connection.execute(
                f'CREATE TABLE "{table}" (id INTEGER PRIMARY KEY AUTOINCREMENT, document TEXT NOT NULL)'
            )
        connection.executemany(
            'INSERT INTO "Customer" (document) VALUES (?)',
            [(json.dumps({"name": "Ada"}),), (json.dumps({"name": "Bob"}),)]
        )
    return path


class TestMainGroup:
    """Test the command group"""

    def test_help(self, runner):
        result = runner.invoke(main, ['--help'])

        assert result.exit_code == 0
        for command in ('paths', 'show', 'count', 'settings'):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ['--version'])

        assert result.exit_code == 0
        assert "1.0.0" in result.output


class TestPathsCommand:
    """Test the paths command"""

    def test_paths_lists_layout(self, runner, tmp_path):
        result = runner.invoke(main, ['paths', 'myapp', '--root', str(tmp_path / "root")])

        assert result.exit_code == 0
        for name in ('data', 'settings', 'logs', 'cache', 'temp'):
            assert name in result.output
        assert not (tmp_path / "root").exists()

    def test_paths_create(self, runner, tmp_path):
        result = runner.invoke(main, ['paths', 'myapp', '--root', str(tmp_path / "root"), '--create'])

        assert result.exit_code == 0
        assert (tmp_path / "root" / "Data").is_dir()
        assert (tmp_path / "root" / "Temp").is_dir()

    def test_paths_rejects_blank_name(self, runner):
        result = runner.invoke(main, ['paths', '  '])

        assert result.exit_code != 0


class TestShowCommand:
    """Test the show command"""

    def test_show_json_store(self, runner, json_store):
        result = runner.invoke(main, ['show', str(json_store)])

        assert result.exit_code == 0
        assert "Ada" in result.output
        assert "Rome" in result.output

    def test_show_limit(self, runner, json_store):
        result = runner.invoke(main, ['show', str(json_store), '-n', '1'])

        assert result.exit_code == 0
        assert "Ada" in result.output
        assert "Bob" not in result.output

    def test_show_empty_file(self, runner, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("")

        result = runner.invoke(main, ['show', str(path)])

        assert result.exit_code == 0
        assert "no items" in " ".join(result.output.split())

    def test_show_invalid_json(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{broken")

        result = runner.invoke(main, ['show', str(path)])

        assert result.exit_code == 1

    def test_show_sqlite_collection(self, runner, sqlite_store):
        result = runner.invoke(main, ['show', str(sqlite_store), '--collection', 'Customer'])

        assert result.exit_code == 0
        assert "Bob" in result.output

    def test_show_sqlite_requires_collection(self, runner, sqlite_store):
        result = runner.invoke(main, ['show', str(sqlite_store)])

        assert result.exit_code == 2

    def test_show_unknown_collection(self, runner, sqlite_store):
        result = runner.invoke(main, ['show', str(sqlite_store), '-c', 'Missing'])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestCountCommand:
    """Test the count command"""

    def test_count_json_store(self, runner, json_store):
        result = runner.invoke(main, ['count', str(json_store)])

        assert result.exit_code == 0
        assert result.output.strip() == "3"

    def test_count_sqlite_collections(self, runner, sqlite_store):
        result = runner.invoke(main, ['count', str(sqlite_store)])

        assert result.exit_code == 0
        assert result.output.splitlines() == ["Customer: 2", "Group: 0"]

    def test_count_sqlite_collection(self, runner, sqlite_store):
        result = runner.invoke(main, ['count', str(sqlite_store), '-c', 'Customer'])

        assert result.output.strip() == "2"

    def test_count_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, ['count', str(tmp_path / "missing.json")])

        assert result.exit_code == 2


class TestSettingsCommand:
    """Test the settings command"""

    def test_settings_from_file(self, runner, tmp_path, monkeypatch):
        for env_var in ENV_VAR_MAPPING:
            monkeypatch.delenv(env_var, raising=False)
        settings_file = tmp_path / "settings.json"
        settings_file.write_text(json.dumps({"application": {"name": "crm"}}))

        result = runner.invoke(main, ['settings', '--file', str(settings_file)])

        assert result.exit_code == 0
        assert "crm" in result.output
        assert "json_indent" in result.output
