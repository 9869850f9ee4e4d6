"""
Pytest configuration and fixtures for tomatolog tests.
"""

import sys
from pathlib import Path

# Ensure project root is in sys.path for 'tomatolog' imports
# This must happen before any imports from tomatolog
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import json
from typing import Iterable

import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "tui: marks TUI tests")


@pytest.fixture
def temp_state_dir(tmp_path: Path, monkeypatch) -> Path:
    """Create and return a temporary state directory.

    Sets TOMATOLOG_STATE and points settings at a file that does not exist
    yet, then resets the debug logger so it picks up the new paths.
    """
    state_dir = tmp_path / ".local" / "state" / "tomatolog"
    state_dir.mkdir(parents=True)
    monkeypatch.setenv("TOMATOLOG_STATE", str(state_dir))
    monkeypatch.setenv("TOMATOLOG_SETTINGS", str(tmp_path / "settings.json"))
    monkeypatch.delenv("TOMATOLOG_DEBUG", raising=False)

    from tomatolog.debug_logger import reset_logger
    reset_logger()

    return state_dir


@pytest.fixture(autouse=True)
def isolate_state_dir(temp_state_dir: Path):
    """Autouse fixture that keeps every test out of the real state directory."""
    yield temp_state_dir

    from tomatolog.debug_logger import reset_logger
    reset_logger()


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """Path of the isolated settings.json (not created)."""
    return tmp_path / "settings.json"


@pytest.fixture
def log_path(temp_state_dir: Path) -> Path:
    return temp_state_dir / "tomatolog.log"


def write_log_lines(path: Path, records: Iterable) -> None:
    """Write records to a log file; dicts are JSON-encoded, strings written as-is."""
    lines = [r if isinstance(r, str) else json.dumps(r, sort_keys=True) for r in records]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def transition(ts: float, from_state: str, to_state: str, project=None) -> dict:
    """Build a raw transition record as the timer writes it."""
    record = {"type": "transition", "timestamp": ts, "fromState": from_state, "toState": to_state}
    if project is not None:
        record["project"] = project
    return record
