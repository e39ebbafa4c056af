"""Pytest configuration and fixtures for CLI tests."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from discovery.cli.main import cli
from discovery.search import SearchServiceBuilder


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Keep user and project config files out of CLI runs."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_service(mock_backend, field_names, field_groups):
    """Search service on the mock backend, handed to every command."""
    service = (
        SearchServiceBuilder()
        .with_backend(mock_backend)
        .with_fields(field_names, field_groups)
        .build()
    )
    with patch("discovery.cli.main.create_service", return_value=service):
        yield service


@pytest.fixture
def invoke(runner, isolated_config, cli_service):
    """Run the CLI without colors and return the click result."""

    def run(*args: str):
        return runner.invoke(cli, ["--no-color", *args])

    return run
