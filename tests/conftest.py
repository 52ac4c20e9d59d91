"""Shared fixtures."""

from pathlib import Path

import pytest
import structlog

SAMPLE_LINES = [
    "2024-01-01T00:00:00Z [Init]",
    "2024-01-01T00:00:01Z [Init][Load]",
    "2024-01-01T00:00:03Z [Init]",
    "garbage line with no timestamp",
    "2024-01-01T00:00:05Z [Done]",
]


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep stored pattern defaults out of the real home directory."""
    path = tmp_path / "state" / "state.json"
    monkeypatch.setenv("LOG_FLAME_STATE_FILE", str(path))
    return path


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI binds structlog to the runner's stderr, which is closed afterwards."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def sample_lines() -> list:
    return list(SAMPLE_LINES)


@pytest.fixture
def sample_log(tmp_path: Path) -> Path:
    path = tmp_path / "app.log"
    path.write_text("\n".join(SAMPLE_LINES) + "\n", encoding="utf-8")
    return path
