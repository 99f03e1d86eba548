"""Provider for Codex (OpenAI) conversation logs.

Codex stores conversations as JSONL files at:
    ~/.codex/sessions/<year>/<month>/<day>/rollout-*.jsonl

Each line is a JSON object with a type field:
- session_meta: Session metadata (id, cwd, timestamp)
- turn_context: Turn-level context, also carries cwd (the earliest cwd wins)
- response_item: Contains messages with role and content blocks
- event_msg: UI event notifications (duplicates of response items, ignored)

Codex logs its own injected context (environment description, AGENTS.md
instructions) as user messages; those are filtered out.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from session_scribe.logging import get_logger
from session_scribe.models import ChatMessage, ChatSession, MessageRole
from session_scribe.paths import home_dir
from session_scribe.providers.base import (
    Provider,
    extract_text_blocks,
    generate_message_id,
    parse_timestamp,
    sort_newest_first,
)

logger = get_logger("providers.codex")

# Number of non-empty lines inspected when matching a log to a project
PROJECT_PROBE_LINES = 50

# Days of date partitions scanned when only the latest session is wanted
RECENT_DAYS = 7

TEXT_BLOCK_TYPES = ("input_text", "output_text", "text")

INJECTED_USER_MARKERS = (
    "<environment_context>",
    "<INSTRUCTIONS>",
    "# AGENTS.md instructions",
)


def is_injected_content(content: str) -> bool:
    """Check whether user content is context injected by Codex itself."""
    return any(marker in content for marker in INJECTED_USER_MARKERS)


def _normalize_dir(path: str) -> str:
    return path.rstrip("/\\")


def project_matches(session_cwd: str, target: str) -> bool:
    """Check whether a session's cwd belongs to the target project.

    Matches when the cwd equals the target, is inside it, or is one of its
    ancestors. Trailing separators are ignored and the filesystem root never
    matches anything but itself.
    """
    cwd = _normalize_dir(session_cwd)
    target = _normalize_dir(target)

    if cwd == target:
        return True
    if not cwd or not target:
        return False

    def is_within(child: str, parent: str) -> bool:
        return child.startswith(parent + "/") or child.startswith(parent + "\\")

    return is_within(cwd, target) or is_within(target, cwd)


class CodexProvider(Provider):
    """Provider for Codex JSONL rollout files."""

    name = "codex"
    command = "codex"

    def data_dir(self) -> Path:
        return home_dir() / ".codex" / "sessions"

    def session_dir(self, project_path: Path, day: datetime | None = None) -> Path:
        """Date partition for a given day (today by default).

        Codex partitions by date rather than by project.
        """
        if day is None:
            day = datetime.now(timezone.utc)
        return self.data_dir() / day.strftime("%Y") / day.strftime("%m") / day.strftime("%d")

    def list_candidate_files(self, project_path: Path, latest_only: bool = False) -> list[Path]:
        """List rollout files for a project, newest first.

        With latest_only, only the last RECENT_DAYS date partitions are
        scanned; otherwise every partition is walked.
        """
        base_dir = self.data_dir()
        if not base_dir.is_dir():
            return []

        if latest_only:
            now = datetime.now(timezone.utc)
            files: list[Path] = []
            for days_ago in range(RECENT_DAYS):
                day_dir = self.session_dir(project_path, now - timedelta(days=days_ago))
                if day_dir.is_dir():
                    files.extend(day_dir.glob("*.jsonl"))
        else:
            files = list(base_dir.rglob("*.jsonl"))

        candidates = [
            path for path in files if path.is_file() and self.probe_project_path(path, project_path)
        ]
        return sort_newest_first(candidates)

    def probe_project_path(self, path: Path, project_path: Path) -> bool:
        """Check whether a rollout file was recorded in the given project.

        Only the first cwd found within PROJECT_PROBE_LINES non-empty lines
        is considered.
        """
        target = str(project_path)
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                checked = 0
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    if checked >= PROJECT_PROBE_LINES:
                        break
                    checked += 1

                    try:
                        entry = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if not isinstance(entry, dict):
                        continue

                    payload = entry.get("payload")
                    if isinstance(payload, dict) and payload.get("cwd"):
                        return project_matches(str(payload["cwd"]), target)
        except OSError:
            logger.debug("Cannot probe rollout file: path=%s", path)
        return False

    def parse(self, path: Path) -> ChatSession:
        """Parse a Codex JSONL file into a session.

        Malformed lines are skipped. Consecutive messages with the same role
        and content collapse into one.
        """
        messages: list[ChatMessage] = []
        session_id = ""
        project = ""

        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue

                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    # Skip malformed lines
                    continue
                if not isinstance(entry, dict):
                    continue

                event_type = entry.get("type")
                payload = entry.get("payload")
                if not isinstance(payload, dict):
                    continue

                if event_type in ("session_meta", "turn_context"):
                    if event_type == "session_meta" and not session_id and payload.get("id"):
                        session_id = str(payload["id"])
                    if not project and payload.get("cwd"):
                        project = str(payload["cwd"])
                    continue

                if event_type != "response_item":
                    continue

                message = self._parse_response_item(
                    payload, entry.get("timestamp"), session_id or path.stem
                )
                if message is None:
                    continue

                if messages and messages[-1].role is message.role and messages[-1].content == message.content:
                    continue
                messages.append(message)

        return self.build_session(session_id or path.stem, project, messages)

    def _parse_response_item(
        self,
        payload: dict,
        timestamp_str: str | None,
        session_id: str,
    ) -> ChatMessage | None:
        """Extract a message from a response_item payload.

        Returns:
            ChatMessage or None if the item is not a visible user/assistant turn
        """
        if payload.get("type", "message") != "message":
            return None

        role_name = payload.get("role")
        if role_name == "user":
            role = MessageRole.USER
        elif role_name == "assistant":
            role = MessageRole.ASSISTANT
        else:
            # developer/system prompts are not part of the conversation
            return None

        content = extract_text_blocks(payload.get("content"), TEXT_BLOCK_TYPES)
        if not content:
            return None

        if role is MessageRole.USER and is_injected_content(content):
            return None

        timestamp = parse_timestamp(timestamp_str)
        return ChatMessage(
            id=generate_message_id(self.name, session_id, timestamp, content),
            timestamp=timestamp,
            role=role,
            content=content,
        )
