"""Tests for the command line interface."""

import os
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from session_scribe.cli import build_synchronizer, cli
from session_scribe.config import Config
from session_scribe.paths import encode_path_claude
from session_scribe.providers import ClaudeCodeProvider


@pytest.fixture
def home(tmp_path: Path) -> Iterator[Path]:
    path = tmp_path / "home"
    path.mkdir()
    with patch.object(Path, "home", return_value=path):
        yield path


@pytest.fixture
def config_file(tmp_path: Path, project_dir: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        f"provider: claude\nproject_dir: {project_dir}\nlog_dir: {tmp_path / 'logs'}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def claude_session_dir(home: Path, project_dir: Path) -> Path:
    return home / ".claude" / "projects" / encode_path_claude(project_dir.resolve())


def claude_events(session_id: str, texts: list[str]) -> list[dict]:
    return [
        {
            "type": "user" if i % 2 == 0 else "assistant",
            "uuid": f"{session_id}-{i}",
            "sessionId": session_id,
            "timestamp": f"2026-02-01T10:00:{i:02d}Z",
            "message": {"content": text},
        }
        for i, text in enumerate(texts)
    ]


def invoke(config_file: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config_file), *args], obj={})


class TestBuildSynchronizer:
    def test_uses_configured_provider(self, tmp_path: Path) -> None:
        config = Config(provider="claude", project_dir=tmp_path, log_dir=tmp_path / "logs")
        synchronizer = build_synchronizer(config)

        assert isinstance(synchronizer.provider, ClaudeCodeProvider)
        assert synchronizer.history_dir == tmp_path.resolve() / ".scribe" / "history"

    def test_unknown_provider(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unknown provider: cursor"):
            build_synchronizer(Config(provider="cursor", project_dir=tmp_path))


class TestSyncCommand:
    """Tests for `session-scribe sync`."""

    def test_no_sessions(self, home: Path, config_file: Path) -> None:
        result = invoke(config_file, "sync")

        assert result.exit_code == 0
        assert "No claude sessions found" in result.output

    def test_syncs_latest_session(
        self, home: Path, config_file: Path, project_dir: Path, claude_session_dir: Path, write_jsonl: Callable
    ) -> None:
        old = write_jsonl(claude_session_dir / "old.jsonl", claude_events("old", ["first try", "ok"]))
        new = write_jsonl(claude_session_dir / "new.jsonl", claude_events("new", ["second try", "ok", "more"]))
        os.utime(old, (1_000_000, 1_000_000))
        os.utime(new, (2_000_000, 2_000_000))

        result = invoke(config_file, "sync")

        assert result.exit_code == 0, result.output
        assert "new.jsonl: synced 3 new message(s)" in result.output
        assert "old.jsonl" not in result.output
        assert "Done: 1 synced, 0 up to date, 0 skipped, 0 failed" in result.output
        [transcript] = (project_dir / ".scribe" / "history").glob("*.md")
        assert transcript.name == "2026-02-01_10-00-00Z-claude-second-try.md"

    def test_sync_all_reports_each_file(
        self, home: Path, config_file: Path, claude_session_dir: Path, write_jsonl: Callable
    ) -> None:
        write_jsonl(claude_session_dir / "a.jsonl", claude_events("a", ["hello"]))
        write_jsonl(claude_session_dir / "b.jsonl", claude_events("b", ["hi"]))

        first = invoke(config_file, "sync", "--all")
        second = invoke(config_file, "sync", "--all")

        assert first.exit_code == 0, first.output
        assert "Done: 2 synced" in first.output
        assert "Done: 0 synced, 2 up to date" in second.output

    def test_failures_set_exit_code(
        self, home: Path, config_file: Path, claude_session_dir: Path, write_jsonl: Callable
    ) -> None:
        write_jsonl(claude_session_dir / "bad.jsonl", ["{not json"])

        result = invoke(config_file, "sync", "--all")

        assert result.exit_code == 1
        assert "bad.jsonl: failed: Parse error:" in result.output

    def test_force_rewrites(
        self, home: Path, config_file: Path, claude_session_dir: Path, write_jsonl: Callable
    ) -> None:
        write_jsonl(claude_session_dir / "s.jsonl", claude_events("s", ["hello", "hi"]))
        invoke(config_file, "sync")

        result = invoke(config_file, "sync", "--force")

        assert "s.jsonl: synced 2 new message(s)" in result.output

    def test_unknown_provider_is_usage_error(self, home: Path, config_file: Path) -> None:
        result = invoke(config_file, "sync", "--provider", "cursor")

        assert result.exit_code == 2
        assert "Unknown provider: cursor" in result.output

    def test_project_override(
        self, home: Path, config_file: Path, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        other = tmp_path / "other"
        other.mkdir()
        session_dir = home / ".claude" / "projects" / encode_path_claude(other.resolve())
        write_jsonl(session_dir / "x.jsonl", claude_events("x", ["elsewhere"]))

        result = invoke(config_file, "sync", "--project", str(other))

        assert result.exit_code == 0, result.output
        assert (other / ".scribe" / "history").is_dir()


class TestStatusCommand:
    def test_lists_providers_and_transcripts(
        self, home: Path, config_file: Path, claude_session_dir: Path, write_jsonl: Callable
    ) -> None:
        write_jsonl(claude_session_dir / "s.jsonl", claude_events("s", ["hello", "hi"]))
        invoke(config_file, "sync")

        with patch("session_scribe.providers.base.shutil.which", return_value=None):
            result = invoke(config_file, "status")

        assert result.exit_code == 0, result.output
        assert "* claude   not found" in result.output
        assert "  codex    not found" in result.output
        assert "Transcripts in" in result.output
        assert "[claude] 2 message(s)" in result.output


class TestWatchCommand:
    def test_initial_sync_then_loop(
        self, home: Path, config_file: Path, claude_session_dir: Path, write_jsonl: Callable
    ) -> None:
        write_jsonl(claude_session_dir / "s.jsonl", claude_events("s", ["hello"]))

        with patch("session_scribe.cli.watcher.start") as mock_start, patch(
            "session_scribe.cli.signal.signal"
        ):
            result = invoke(config_file, "watch", "--interval", "7")

        assert result.exit_code == 0, result.output
        assert "Initial sync: 1 of 1 session(s) updated" in result.output
        args = mock_start.call_args.args
        assert args[1] == 7

    def test_rejects_zero_interval(self, home: Path, config_file: Path) -> None:
        result = invoke(config_file, "watch", "--interval", "0")
        assert result.exit_code == 2
