from __future__ import annotations

import json
import subprocess

from typer.testing import CliRunner

from swarmlink import __version__
from swarmlink.cli import app
from swarmlink.file_lock import FileLock
from swarmlink.session_mapping import SessionMappingStore
from swarmlink.tmux import client as tmux_client

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_default_prints_template(config_file):
    result = runner.invoke(app, ["config", "--default"])

    assert result.exit_code == 0
    assert "message_mode" in result.output


def test_config_shows_loaded_values(config_file):
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "auto_detect_agent" in result.output
    assert str(config_file.parent / "state") in result.output


def test_invalid_config_exits_nonzero(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("key: [unclosed\n", encoding="utf-8")
    monkeypatch.setenv("SWARMLINK_CONFIG", str(path))

    result = runner.invoke(app, ["mapping", "list"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_mapping_list_remove(config_file):
    store = SessionMappingStore(config_file.parent / "state" / "sessions.json")
    store.insert("r1", "work")

    listed = runner.invoke(app, ["mapping", "list"])
    removed = runner.invoke(app, ["mapping", "remove", "r1"])
    missing = runner.invoke(app, ["mapping", "remove", "r1"])
    empty = runner.invoke(app, ["mapping", "list"])

    assert listed.exit_code == 0
    assert "r1" in listed.output and "work" in listed.output
    assert removed.exit_code == 0
    assert missing.exit_code == 1
    assert "No mapping for r1" in missing.output
    assert "No session mappings" in empty.output


def test_enqueue_then_stats_and_clear(config_file):
    queue_dir = config_file.parent / "state" / "queue"

    queued = runner.invoke(app, ["message", "enqueue", "work", "run", "the", "tests"])
    stats = runner.invoke(app, ["queue", "stats"])

    assert queued.exit_code == 0
    assert "Queued message" in queued.output
    files = list(queue_dir.glob("*.msg"))
    assert len(files) == 1
    payload = json.loads(files[0].read_text(encoding="utf-8"))
    assert payload["message"]["pane_id"] == "work:0.0"
    assert payload["message"]["content"] == "run the tests"
    assert stats.exit_code == 0
    assert "Message queue" in stats.output

    refused = runner.invoke(app, ["queue", "clear"], input="n\n")
    assert refused.exit_code == 1
    assert len(list(queue_dir.glob("*.msg"))) == 1

    cleared = runner.invoke(app, ["queue", "clear", "--yes"])
    assert cleared.exit_code == 0
    assert list(queue_dir.glob("*.msg")) == []


def test_message_send_writes_prompt_and_types_it(config_file, monkeypatch):
    calls: list[list[str]] = []

    def fake_run(args, *, binary="tmux"):
        calls.append(list(args))
        return subprocess.CompletedProcess([binary, *args], 0, "", "")

    monkeypatch.setattr(tmux_client, "_run_tmux", fake_run)

    result = runner.invoke(app, ["message", "send", "%3", "hello", "there"])

    assert result.exit_code == 0
    prompt = config_file.parent / "state" / "prompts" / "%3.prompt.input"
    assert prompt.read_text(encoding="utf-8") == "hello there\n"
    assert calls == [
        ["send-keys", "-t", "%3", "hello there"],
        ["send-keys", "-t", "%3", "Enter"],
    ]


def test_message_send_reports_tmux_failure(config_file, monkeypatch):
    def fake_run(args, *, binary="tmux"):
        return subprocess.CompletedProcess([binary, *args], 1, "", "can't find pane: %9")

    monkeypatch.setattr(tmux_client, "_run_tmux", fake_run)

    result = runner.invoke(app, ["message", "send", "%9", "hi"])

    assert result.exit_code == 1
    assert "Failed to send to %9" in result.output


def test_message_send_still_types_when_prompt_file_is_locked(config_file, monkeypatch):
    calls: list[list[str]] = []

    def fake_run(args, *, binary="tmux"):
        calls.append(list(args))
        return subprocess.CompletedProcess([binary, *args], 0, "", "")

    monkeypatch.setattr(tmux_client, "_run_tmux", fake_run)
    prompt = config_file.parent / "state" / "prompts" / "%3.prompt.input"
    holder = FileLock(prompt.with_name(prompt.name + ".lock"))
    assert holder.acquire(blocking=False)

    try:
        result = runner.invoke(app, ["message", "send", "%3", "hello"])
    finally:
        holder.release()

    assert result.exit_code == 0
    assert "Warning" in result.output
    assert not prompt.exists()
    assert calls == [
        ["send-keys", "-t", "%3", "hello"],
        ["send-keys", "-t", "%3", "Enter"],
    ]
