"""Tests for the command line interface."""

import pytest
from click.testing import CliRunner
from loguru import logger

from voteny.__main__ import cli


@pytest.fixture
def runner():
    yield CliRunner()
    # configure_logging attaches a sink to the runner's stderr
    logger.remove()


def test_update_creates_vote_table(runner, tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'wiki' / 'voteny.db'}"

    result = runner.invoke(cli, ["update", "--database-url", url])

    assert result.exit_code == 0, result.output
    assert "Created tables: vote" in result.output
    assert (tmp_path / "wiki" / "voteny.db").exists()


def test_update_is_idempotent(runner, tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'voteny.db'}"

    runner.invoke(cli, ["update", "--database-url", url])
    result = runner.invoke(cli, ["update", "--database-url", url])

    assert result.exit_code == 0, result.output
    assert "Nothing to do, all tables exist." in result.output


def test_update_unsupported_engine(runner):
    result = runner.invoke(cli, ["update", "--database-url", "mssql://wiki:secret@db/wiki"])

    assert result.exit_code == 1
    assert "VoteNY does not support mssql." in result.output


def test_serve_runs_uvicorn(runner, monkeypatch):
    calls = []
    monkeypatch.setattr("voteny.__main__.uvicorn.run", lambda app, **kwargs: calls.append((app, kwargs)))

    result = runner.invoke(cli, ["serve", "--port", "9001"])

    assert result.exit_code == 0, result.output
    app, kwargs = calls[0]
    assert app == "voteny.api:app"
    assert kwargs["port"] == 9001
