"""Shared test fixtures for session-scribe tests."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest


def _write_jsonl(path: Path, entries: list) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for entry in entries:
            f.write((entry if isinstance(entry, str) else json.dumps(entry)) + "\n")
    return path


@pytest.fixture
def write_jsonl() -> Callable[[Path, list], Path]:
    """Write a list of dicts (or raw strings) as a JSONL file."""
    return _write_jsonl


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project working directory."""
    path = tmp_path / "work" / "my-project"
    path.mkdir(parents=True)
    return path
