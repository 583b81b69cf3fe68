from __future__ import annotations

import pytest

from swarmlink.errors import NotFoundError, ProcessError
from swarmlink.file_lock import FileLock, try_with
from swarmlink.messaging.prompts import PromptMetadata, PromptWriter


def test_send_and_read_prompt(tmp_path):
    writer = PromptWriter(tmp_path)

    path = writer.send_prompt("%3", "summarize the diff")

    assert path == tmp_path / "%3.prompt.input"
    assert writer.read_prompt("%3") == "summarize the diff\n"


def test_prompt_with_metadata_header(tmp_path):
    writer = PromptWriter(tmp_path)
    metadata = PromptMetadata(session_id="work", agent="reviewer", timestamp=1700000000)

    writer.send_prompt_with_metadata("work:0.0", "check tests", metadata)

    assert writer.read_prompt("work:0.0") == (
        "# work\n# timestamp: 1700000000\n# agent: reviewer\n\ncheck tests\n"
    )


def test_read_missing_prompt_is_not_found(tmp_path):
    with pytest.raises(NotFoundError):
        PromptWriter(tmp_path).read_prompt("%9")


def test_clear_prompt(tmp_path):
    writer = PromptWriter(tmp_path)
    writer.send_prompt("%1", "x")

    writer.clear_prompt("%1")
    writer.clear_prompt("%1")

    assert not writer.prompt_file("%1").exists()


def test_write_fails_fast_while_lock_is_held(tmp_path):
    writer = PromptWriter(tmp_path)
    target = writer.prompt_file("%2")
    holder = FileLock(target.with_name(target.name + ".lock"))
    assert holder.acquire(blocking=False)

    try:
        with pytest.raises(ProcessError) as excinfo:
            writer.send_prompt("%2", "blocked")
        assert excinfo.value.kind == "BlockingIOError"
        assert not target.exists()
    finally:
        holder.release()

    writer.send_prompt("%2", "now it works")
    assert writer.read_prompt("%2") == "now it works\n"


def test_lock_is_released_when_body_raises(tmp_path):
    path = tmp_path / "job.lock"

    with pytest.raises(RuntimeError):
        with FileLock(path):
            raise RuntimeError("boom")

    second = FileLock(path)
    assert second.acquire(blocking=False) is True
    second.release()


def test_try_with_returns_value_and_acquire_reports_contention(tmp_path):
    path = tmp_path / "job.lock"
    assert try_with(path, lambda: 42) == 42

    first = FileLock(path)
    second = FileLock(path)
    assert first.acquire() is True
    assert second.acquire(blocking=False) is False
    first.release()
    assert second.acquire(blocking=False) is True
    second.release()
