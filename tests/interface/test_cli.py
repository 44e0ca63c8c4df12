"""Tests for CLI commands: help, stats, record, recent, serve and config."""

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from memtrack.application.stats.session_store import SessionStore
from memtrack.domain.stats.errors import StorageQuotaExceeded
from memtrack.interface.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(mock_home, monkeypatch):
    for var in ("MEMTRACK_USER_ID", "MEMTRACK_DEFAULT_PERIOD", "MEMTRACK_DATA_DIR"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("MEMTRACK_TIMEZONE", "UTC")
    return mock_home


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "memtrack: Session analytics" in result.stdout
    assert "stats" in result.stdout
    assert "record" in result.stdout


# --- Stats ---


def test_stats_json_output(service, remote, make_session):
    remote.records = [make_session(total=10, correct=8)]

    with patch("memtrack.application.factory.build_stats_service", return_value=service):
        result = runner.invoke(app, ["stats", "--period", "all", "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["period"] == "all"
    assert data["tier"] == "live"
    assert data["overall"]["accuracy"] == 80
    assert data["labels"] == ["Sun, Mar 3"]
    assert set(data["series"]) == {"people", "places", "objects", "category-match", "other"}
    assert remote.close_calls == 1


def test_stats_text_output_offline(service, remote):
    remote.online = False

    with patch("memtrack.application.factory.build_stats_service", return_value=service):
        result = runner.invoke(app, ["stats", "--period", "week"])

    assert result.exit_code == 0, result.output
    assert "Source: No Data" in result.stdout
    assert "Accuracy: 0%" in result.stdout


def test_stats_rejects_bad_date():
    result = runner.invoke(app, ["stats", "--period", "custom", "--start", "yesterday"])
    assert result.exit_code == 2
    assert "Invalid date" in result.stdout


# --- Record ---


def test_record_saves_session(store, remote):
    with patch("memtrack.application.factory.build_session_store", return_value=store):
        result = runner.invoke(
            app, ["record", "Category Match", "--total", "10", "--correct", "7", "--time", "95"]
        )

    assert result.exit_code == 0, result.output
    assert "Session saved." in result.stdout
    [saved] = remote.appended
    assert saved.category == "Category Match"
    assert saved.correct_answers == 7
    assert saved.total_time == 95.0
    assert remote.close_calls == 1


def test_record_reports_remote_failure(store, remote):
    remote.online = False
    with patch("memtrack.application.factory.build_session_store", return_value=store):
        result = runner.invoke(app, ["record", "people", "--total", "5", "--correct", "5"])

    assert result.exit_code == 0
    assert "remote save failed" in result.stdout


def test_record_storage_full(user, remote, cache):
    durable = MagicMock()
    durable.get.return_value = None
    durable.set.side_effect = StorageQuotaExceeded("disk full")
    store = SessionStore(user=user, remote=remote, cache=cache, durable=durable)

    with patch("memtrack.application.factory.build_session_store", return_value=store):
        result = runner.invoke(app, ["record", "people", "--total", "5", "--correct", "5"])

    assert result.exit_code == 1
    assert "Could not save session locally" in result.stdout
    assert remote.close_calls == 1


# --- Recent ---


def test_recent_json(store, remote, make_session):
    remote.records = [make_session(total=4, correct=3, seconds=130)]

    with patch("memtrack.application.factory.build_session_store", return_value=store):
        result = runner.invoke(app, ["recent", "--json"])

    assert result.exit_code == 0, result.output
    [item] = json.loads(result.stdout)
    assert item["accuracy"] == 75
    assert item["band"] == "good"
    assert item["durationMinutes"] == 2
    assert remote.close_calls == 1


def test_recent_empty(store, remote):
    with patch("memtrack.application.factory.build_session_store", return_value=store):
        result = runner.invoke(app, ["recent"])

    assert result.exit_code == 0
    assert "No sessions found." in result.stdout


# --- Serve ---


@patch("uvicorn.run")
def test_serve_command(mock_run):
    result = runner.invoke(app, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    mock_run.assert_called_with("memtrack.server:app", host="127.0.0.1", port=9000)


# --- Config ---


def test_config_show_command(isolated_config):
    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["user_id"] == "anon"
    assert data["timezone"] == "UTC"
    assert data["default_period"] == "today"


def test_config_show_reads_toml(isolated_config):
    cfg_dir = isolated_config / ".config" / "memtrack"
    cfg_dir.mkdir(parents=True)
    (cfg_dir / "config.toml").write_text('user_id = "grandma"\ndefault_period = "week"\n')

    result = runner.invoke(app, ["config", "show"])

    data = json.loads(result.stdout)
    assert data["user_id"] == "grandma"
    assert data["default_period"] == "week"
