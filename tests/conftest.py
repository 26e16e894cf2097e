"""Shared fixtures for memtop tests."""

from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def rollup_text() -> str:
    """Contents of the sample smaps_rollup file."""
    return (FIXTURES / "smaps_rollup.txt").read_text()


@pytest.fixture
def linux(monkeypatch):
    """Pretend the platform supports smaps_rollup."""
    monkeypatch.setattr("memtop.memory.is_supported", lambda platform=None: True)
    monkeypatch.setattr("memtop.monitor.is_supported", lambda platform=None: True)


@pytest.fixture
def not_linux(monkeypatch):
    """Pretend the platform has no smaps_rollup."""
    monkeypatch.setattr("memtop.memory.is_supported", lambda platform=None: False)
    monkeypatch.setattr("memtop.monitor.is_supported", lambda platform=None: False)


@pytest.fixture
def proc_root(tmp_path, monkeypatch):
    """
    Redirect rollup lookups to a temporary directory.

    Returns a function writing the rollup text for a pid.
    """
    monkeypatch.setattr(
        "memtop.rollup.rollup_path", lambda pid: tmp_path / str(pid) / "smaps_rollup"
    )

    def write(pid: int, text: str) -> Path:
        path = tmp_path / str(pid) / "smaps_rollup"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    return write
