"""Tests for the Codex provider."""

import os
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from session_scribe.models import MessageRole
from session_scribe.providers import CodexProvider
from session_scribe.providers.codex import is_injected_content, project_matches

SESSION_ID = "019be668-4c23-7792-8b9c-7995e5bfdeee"


@pytest.fixture
def provider() -> CodexProvider:
    """Create a fresh provider instance."""
    return CodexProvider()


def meta(cwd: str = "/home/user/project") -> dict:
    return {
        "timestamp": "2026-01-22T15:52:33.575Z",
        "type": "session_meta",
        "payload": {"id": SESSION_ID, "cwd": cwd, "timestamp": "2026-01-22T15:52:33.575Z"},
    }


def item(role: str, text: str, ts: str = "2026-01-22T15:52:40.000Z", block_type: str | None = None) -> dict:
    if block_type is None:
        block_type = "input_text" if role == "user" else "output_text"
    return {
        "timestamp": ts,
        "type": "response_item",
        "payload": {"type": "message", "role": role, "content": [{"type": block_type, "text": text}]},
    }


def rollout_name(day: datetime, suffix: str = SESSION_ID) -> str:
    return f"rollout-{day.strftime('%Y-%m-%dT%H-%M-%S')}-{suffix}.jsonl"


class TestProjectMatches:
    """Tests for cwd/project matching."""

    def test_exact(self) -> None:
        assert project_matches("/home/u/proj", "/home/u/proj")

    def test_trailing_separators_ignored(self) -> None:
        assert project_matches("/home/u/proj/", "/home/u/proj")
        assert project_matches("C:\\work\\proj\\", "C:\\work\\proj")

    def test_subdirectory(self) -> None:
        assert project_matches("/home/u/proj/src", "/home/u/proj")

    def test_ancestor(self) -> None:
        assert project_matches("/home/u", "/home/u/proj")

    def test_sibling_with_common_prefix_does_not_match(self) -> None:
        assert not project_matches("/home/u/proj-other", "/home/u/proj")

    def test_unrelated(self) -> None:
        assert not project_matches("/srv/app", "/home/u/proj")

    def test_root_never_matches_as_ancestor(self) -> None:
        assert not project_matches("/", "/home/u/proj")
        assert not project_matches("/home/u/proj", "/")


class TestInjectedContent:
    @pytest.mark.parametrize(
        "content",
        [
            "<environment_context>\n  <cwd>/x</cwd>\n</environment_context>",
            "<user_instructions>\n<INSTRUCTIONS>be nice</INSTRUCTIONS>",
            "# AGENTS.md instructions for /x\n...",
        ],
    )
    def test_detects_markers(self, content: str) -> None:
        assert is_injected_content(content)

    def test_plain_content(self) -> None:
        assert not is_injected_content("please fix the environment variable handling")


class TestCodexParse:
    """Tests for parse method."""

    def test_parses_response_items(
        self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        path = write_jsonl(
            tmp_path / rollout_name(datetime(2026, 1, 22)),
            [
                meta(),
                {"timestamp": "2026-01-22T15:52:34Z", "type": "turn_context", "payload": {"cwd": "/home/user/project"}},
                item("user", "Fix the tests"),
                {"timestamp": "2026-01-22T15:52:41Z", "type": "event_msg", "payload": {"type": "user_message", "message": "Fix the tests"}},
                item("assistant", "Done.", ts="2026-01-22T15:53:00.000Z"),
            ],
        )
        session = provider.parse(path)

        assert session.session_id == SESSION_ID
        assert session.provider == "codex"
        assert session.project_path == "/home/user/project"
        assert [(m.role, m.content) for m in session.messages] == [
            (MessageRole.USER, "Fix the tests"),
            (MessageRole.ASSISTANT, "Done."),
        ]
        assert session.started_at == datetime(2026, 1, 22, 15, 52, 40, tzinfo=timezone.utc)
        assert session.updated_at == datetime(2026, 1, 22, 15, 53, 0, tzinfo=timezone.utc)

    def test_project_from_earliest_cwd(
        self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        """A later turn_context in another directory does not move the session."""
        path = write_jsonl(
            tmp_path / rollout_name(datetime(2026, 1, 22)),
            [
                meta(cwd="/home/user/project"),
                item("user", "Fix the tests"),
                {"timestamp": "2026-01-22T15:55:00Z", "type": "turn_context", "payload": {"cwd": "/home/user/project/sub"}},
                item("assistant", "Done."),
            ],
        )

        assert provider.parse(path).project_path == "/home/user/project"

    def test_joins_text_blocks(self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable) -> None:
        path = write_jsonl(
            tmp_path / "r.jsonl",
            [
                {
                    "timestamp": "2026-01-22T15:52:40Z",
                    "type": "response_item",
                    "payload": {
                        "type": "message",
                        "role": "assistant",
                        "content": [
                            {"type": "output_text", "text": "part one"},
                            {"type": "reasoning", "text": "skip me"},
                            {"type": "output_text", "text": "part two"},
                        ],
                    },
                }
            ],
        )
        assert provider.parse(path).messages[0].content == "part one\npart two"

    def test_skips_developer_and_non_message_items(
        self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        path = write_jsonl(
            tmp_path / "r.jsonl",
            [
                item("developer", "system prompt", block_type="input_text"),
                {"timestamp": "2026-01-22T15:52:40Z", "type": "response_item", "payload": {"type": "function_call", "name": "shell"}},
                item("user", "real question"),
            ],
        )
        assert [m.content for m in provider.parse(path).messages] == ["real question"]

    def test_filters_injected_user_content(
        self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        path = write_jsonl(
            tmp_path / "r.jsonl",
            [
                item("user", "<environment_context>\n<cwd>/x</cwd>\n</environment_context>"),
                item("user", "# AGENTS.md instructions for /x\n\n<INSTRUCTIONS>...</INSTRUCTIONS>"),
                item("user", "hello"),
                # Assistant text mentioning a marker is kept
                item("assistant", "The <environment_context> block lists your cwd."),
            ],
        )
        assert [m.content for m in provider.parse(path).messages] == [
            "hello",
            "The <environment_context> block lists your cwd.",
        ]

    def test_suppresses_adjacent_duplicates(
        self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        path = write_jsonl(
            tmp_path / "r.jsonl",
            [
                item("user", "same"),
                item("user", "same", ts="2026-01-22T15:52:41Z"),
                item("assistant", "same"),
                item("user", "same"),
            ],
        )
        roles = [m.role for m in provider.parse(path).messages]
        assert roles == [MessageRole.USER, MessageRole.ASSISTANT, MessageRole.USER]

    def test_skips_malformed_lines(self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable) -> None:
        path = write_jsonl(tmp_path / "r.jsonl", ["{broken", item("user", "ok"), "42"])
        assert [m.content for m in provider.parse(path).messages] == ["ok"]

    def test_session_id_falls_back_to_filename(
        self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        path = write_jsonl(tmp_path / "rollout-x.jsonl", [item("user", "hi")])
        session = provider.parse(path)
        assert session.session_id == "rollout-x"
        assert session.project_path == ""

    def test_message_ids_are_stable(self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable) -> None:
        path = write_jsonl(tmp_path / "r.jsonl", [meta(), item("user", "hi")])
        assert provider.parse(path).messages[0].id == provider.parse(path).messages[0].id


class TestProbeProjectPath:
    def test_matches_session_meta_cwd(self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable) -> None:
        path = write_jsonl(tmp_path / "r.jsonl", [meta("/home/user/project")])
        assert provider.probe_project_path(path, Path("/home/user/project"))
        assert provider.probe_project_path(path, Path("/home/user/project/sub"))
        assert not provider.probe_project_path(path, Path("/home/user/other"))

    def test_stops_at_first_cwd(self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable) -> None:
        path = write_jsonl(tmp_path / "r.jsonl", [meta("/srv/other"), meta("/home/user/project")])
        assert not provider.probe_project_path(path, Path("/home/user/project"))

    def test_gives_up_after_fifty_lines(self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable) -> None:
        entries: list = [item("user", f"m{i}") for i in range(50)] + [meta("/home/user/project")]
        path = write_jsonl(tmp_path / "r.jsonl", entries)
        assert not provider.probe_project_path(path, Path("/home/user/project"))


class TestListCandidateFiles:
    """Tests for date-partitioned discovery."""

    def test_missing_directory(self, provider: CodexProvider, tmp_path: Path) -> None:
        with patch.object(Path, "home", return_value=tmp_path):
            assert provider.list_candidate_files(Path("/home/user/project")) == []

    def test_all_sessions_scans_every_partition(
        self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        sessions = tmp_path / ".codex" / "sessions"
        old = write_jsonl(sessions / "2024" / "03" / "01" / "rollout-a.jsonl", [meta()])
        recent = write_jsonl(sessions / "2026" / "01" / "22" / "rollout-b.jsonl", [meta()])
        write_jsonl(sessions / "2026" / "01" / "22" / "rollout-c.jsonl", [meta("/elsewhere")])
        os.utime(old, (1_000_000, 1_000_000))
        os.utime(recent, (2_000_000, 2_000_000))

        with patch.object(Path, "home", return_value=tmp_path):
            result = provider.list_candidate_files(Path("/home/user/project"))

        assert result == [recent, old]

    def test_latest_only_scans_recent_days(
        self, provider: CodexProvider, tmp_path: Path, write_jsonl: Callable
    ) -> None:
        now = datetime.now(timezone.utc)
        sessions = tmp_path / ".codex" / "sessions"

        def day_dir(day: datetime) -> Path:
            return sessions / day.strftime("%Y") / day.strftime("%m") / day.strftime("%d")

        today = write_jsonl(day_dir(now) / "rollout-today.jsonl", [meta()])
        write_jsonl(day_dir(now - timedelta(days=30)) / "rollout-old.jsonl", [meta()])

        with patch.object(Path, "home", return_value=tmp_path):
            assert provider.list_candidate_files(Path("/home/user/project"), latest_only=True) == [today]
            assert provider.find_latest_session(Path("/home/user/project")) == today
            assert len(provider.list_candidate_files(Path("/home/user/project"))) == 2
