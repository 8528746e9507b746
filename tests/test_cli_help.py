# ==============================================================================
# Tests for CLI Commands
# ==============================================================================
"""
Tests that the CLI command tree is wired up and that the commands which need
no broker produce the expected output.

These tests use the real app from streamtable.app (not minimal Typer apps)
to ensure Typer can introspect all command function signatures.
"""

import json

import pytest
from typer.testing import CliRunner

from streamtable.app import app
from streamtable.utils.config import get_settings

runner = CliRunner()


@pytest.fixture()
def table_env(monkeypatch):
    """A complete table configuration in the environment."""
    monkeypatch.setenv("KAFKA_BROKER_LIST", "b1:9092, b2:9092")
    monkeypatch.setenv("KAFKA_TOPIC_LIST", "clicks,views")
    monkeypatch.setenv("KAFKA_GROUP_NAME", "ingest")
    monkeypatch.setenv("KAFKA_CLIENT_ID", "ingest-client")
    monkeypatch.setenv("KAFKA_NUM_CONSUMERS", "2")
    monkeypatch.setenv("TABLE_DATABASE", "web")
    monkeypatch.setenv("TABLE_NAME", "clicks_queue")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ==============================================================================
# Root App
# ==============================================================================


class TestRootHelp:
    """Tests for the root `streamtable --help` output."""

    def test_exit_code(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0

    def test_description(self):
        result = runner.invoke(app, ["--help"])
        assert "Kafka table engine" in result.output

    def test_lists_all_subcommands(self):
        result = runner.invoke(app, ["--help"])
        for cmd in ["run", "config", "columns"]:
            assert cmd in result.output, f"Missing command: {cmd}"


class TestRunHelp:
    def test_options(self):
        result = runner.invoke(app, ["run", "--help"])
        assert result.exit_code == 0
        assert "--output" in result.output
        assert "--pool-size" in result.output


class TestConfigHelp:
    def test_lists_subcommands(self):
        result = runner.invoke(app, ["config", "--help"])
        assert result.exit_code == 0
        assert "Configuration management" in result.output
        assert "show" in result.output

    def test_show_json_option(self):
        result = runner.invoke(app, ["config", "show", "--help"])
        assert result.exit_code == 0
        assert "--json" in result.output


# ==============================================================================
# Commands
# ==============================================================================


class TestConfigShow:
    def test_json(self, table_env):
        result = runner.invoke(app, ["config", "show", "--json"])

        assert result.exit_code == 0
        config = json.loads(result.output)
        assert config["table"] == {"database": "web", "name": "clicks_queue"}
        assert config["kafka"]["broker_list"] == ["b1:9092", "b2:9092"]
        assert config["kafka"]["topics"] == ["clicks", "views"]
        assert config["streaming"]["max_block_size"] == 1048576 // 2

    def test_human_readable(self, table_env):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "web.clicks_queue" in result.output
        assert "ingest-client" in result.output

    def test_invalid_configuration(self, table_env, monkeypatch):
        monkeypatch.setenv("KAFKA_NUM_CONSUMERS", "40")
        get_settings.cache_clear()

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert "can not be bigger than 16" in result.output


class TestColumns:
    def test_json(self):
        result = runner.invoke(app, ["columns", "--json"])
        assert result.exit_code == 0
        names = [c["name"] for c in json.loads(result.output)]
        assert names[0] == "_topic"
        assert "_headers.value" in names

    def test_table(self):
        result = runner.invoke(app, ["columns"])
        assert result.exit_code == 0
        assert "_timestamp_ms" in result.output
