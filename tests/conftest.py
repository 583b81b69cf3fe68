from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

# Keep test logging out of the user's home directory.
os.environ.setdefault("SWARMLINK_LOG_DIR", tempfile.mkdtemp(prefix="swarmlink-test-logs-"))


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch) -> Path:
    state_dir = tmp_path / "state"
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                f'state_dir: "{state_dir}"',
                f'log_dir: "{tmp_path / "logs"}"',
                "auto_detect_agent: false",
                "",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("SWARMLINK_CONFIG", str(path))
    return path
