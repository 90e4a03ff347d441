"""Tests for ``workpool config show``."""

from __future__ import annotations

import json
from unittest.mock import patch

from typer.testing import CliRunner

from workpool.cli.app import app
from workpool.core.settings import PoolSettings

runner = CliRunner()


class TestShowConfig:
    def test_show_json_format(self, monkeypatch):
        monkeypatch.setenv("WORKPOOL_CAPACITY", "3")
        result = runner.invoke(app, ["config", "show", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["capacity"] == 3
        assert data["backend"] == "thread"

    def test_show_env_format(self):
        result = runner.invoke(app, ["config", "show", "--format", "env"])
        assert result.exit_code == 0
        assert "WORKPOOL_BACKEND=thread" in result.output
        assert "WORKPOOL_CAPACITY=" in result.output
        assert "WORKPOOL_DEFAULT_TIMEOUT=5.0" in result.output

    @patch("workpool.core.settings.get_settings")
    def test_show_table_format(self, mock_settings):
        mock_settings.return_value = PoolSettings(_env_file=None, capacity=8, backend="process")
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "Pool settings" in result.output
        assert "process" in result.output
        assert "8" in result.output

    def test_unknown_format(self):
        result = runner.invoke(app, ["config", "show", "--format", "yaml"])
        assert result.exit_code == 2
