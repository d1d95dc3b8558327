"""Tests for the amalgam command line."""

import json
import sys
import pytest
import yaml
from click.testing import CliRunner
from loguru import logger

from amalgam.cli.main import cli, ingested_entry
from amalgam.daemon.bus import Event
from amalgam.daemon.history import HistoryStore


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI points loguru at the runner's stderr; restore it afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "amalgam.yaml"
    path.write_text(yaml.safe_dump({"data_dir": str(tmp_path / "data")}))
    return path


@pytest.fixture
def runner():
    return CliRunner()


def test_seek_prints_matches(runner, config_file, tmp_path):
    scope = tmp_path / "drive"
    scope.mkdir()
    (scope / "invoice-2024.pdf").write_text("x")
    (scope / "photo.jpg").write_text("x")

    result = runner.invoke(cli, ["-c", str(config_file), "seek", "invoice", "--scope", str(scope)])

    assert result.exit_code == 0, result.output
    assert "invoice-2024.pdf" in result.output
    assert "photo.jpg" not in result.output


def test_seek_without_matches(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["-c", str(config_file), "seek", "zzz", "--scope", str(tmp_path)])

    assert result.exit_code == 0
    assert "No results found" in result.output


def test_seek_bad_regex_reports_failure(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["-c", str(config_file), "seek", "([", "--regex", "--scope", str(tmp_path)])

    assert result.exit_code == 0
    assert "Search failed" in result.output


def test_history_lists_saved_entries(runner, config_file, tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "history.json").write_text(json.dumps([
        {"id": "2", "kind": "text", "content": "newest clip"},
        {"id": "1", "kind": "file-link", "content": "/a.txt\n/b.txt"},
    ]))

    result = runner.invoke(cli, ["-c", str(config_file), "history"])

    assert result.exit_code == 0
    assert "newest clip" in result.output
    assert "file-link" in result.output


def test_empty_history(runner, config_file):
    result = runner.invoke(cli, ["-c", str(config_file), "history"])

    assert result.exit_code == 0
    assert "No saved clipboard history" in result.output


def test_copy_out_of_range(runner, config_file):
    result = runner.invoke(cli, ["-c", str(config_file), "copy", "3"])

    assert result.exit_code == 1
    assert "No history entry #3" in result.output


def test_locate_missing_path(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["-c", str(config_file), "locate", str(tmp_path / "gone.txt")])

    assert result.exit_code == 1
    assert "Path does not exist" in result.output


def test_settings_update_and_show(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["-c", str(config_file), "settings", "--theme", "dark", "--quit-on-close"])
    assert result.exit_code == 0
    assert "Settings saved" in result.output

    saved = json.loads((tmp_path / "data" / "settings.json").read_text())
    assert saved == {"theme": "dark", "close_to_tray": False}

    result = runner.invoke(cli, ["-c", str(config_file), "settings"])
    assert "dark" in result.output


def test_missing_config_file(runner, tmp_path):
    result = runner.invoke(cli, ["-c", str(tmp_path / "nope.yaml"), "history"])

    assert result.exit_code != 0
    assert "Config file not found" in result.output


def test_scopes(runner):
    result = runner.invoke(cli, ["scopes"])

    assert result.exit_code == 0
    assert "(default)" in result.output


def test_trace_shows_each_ingested_entry_once():
    """Two ingests dispatched after both happened still name their own entries."""
    store = HistoryStore(capacity=2)
    first = store.ingest("text", "first")
    second = store.ingest("text", "second")

    events = [
        Event(type="history.changed", data={"reason": "ingest", "size": 1, "entry_id": first.id}),
        Event(type="history.changed", data={"reason": "ingest", "size": 2, "entry_id": second.id}),
        Event(type="history.changed", data={"reason": "clear", "size": 0, "entry_id": None}),
    ]

    assert [ingested_entry(store, e) for e in events] == [first, second, None]

    store.ingest("text", "third")
    assert ingested_entry(store, events[0]) is None
