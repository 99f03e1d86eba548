"""Provider for Gemini CLI conversation logs.

Gemini CLI stores conversations as JSON files at:
    ~/.gemini/tmp/<project_hash>/chats/session-*.json

Each file is a JSON object with:
- sessionId: UUID session identifier
- projectHash: SHA-256 hash of the project path
- startTime / lastUpdated: ISO 8601 timestamps
- messages: Array of message objects
  - id: Message UUID
  - timestamp: ISO 8601 timestamp
  - type: "user", "gemini", "info", "error", ...
  - content: String content
  - model: Model name (gemini messages)
  - tokens: {input, output, cached, ...}
  - thoughts: Optional array of {subject, description, timestamp}
"""

import json
from pathlib import Path

from session_scribe.models import ChatMessage, ChatSession, MessageMetadata, MessageRole, TokenUsage
from session_scribe.paths import encode_path_gemini, get_ai_data_dir
from session_scribe.providers.base import (
    ParseError,
    Provider,
    generate_message_id,
    parse_timestamp,
    sort_newest_first,
)


class GeminiProvider(Provider):
    """Provider for Gemini CLI JSON session files."""

    name = "gemini"
    command = "gemini"

    def data_dir(self) -> Path:
        return get_ai_data_dir("gemini") / "tmp"

    def session_dir(self, project_path: Path) -> Path:
        return self.data_dir() / encode_path_gemini(project_path) / "chats"

    def list_candidate_files(self, project_path: Path, latest_only: bool = False) -> list[Path]:
        session_dir = self.session_dir(project_path)
        if not session_dir.is_dir():
            return []
        return sort_newest_first([p for p in session_dir.glob("*.json") if p.is_file()])

    def is_installed(self) -> bool:
        # The CLI is often run through npx, so look for its data instead
        return self.data_dir().exists()

    def parse(self, path: Path) -> ChatSession:
        """Parse a Gemini CLI JSON file into a session.

        Gemini rewrites the whole document on every turn, so the file is
        always read in full.

        Raises:
            ParseError: If the document is not valid JSON or not an object
        """
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ParseError(f"{path.name}: invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ParseError(f"{path.name}: expected a JSON object")

        session_id = str(data.get("sessionId") or path.stem)

        raw_messages = data.get("messages") or []
        if not isinstance(raw_messages, list):
            raise ParseError(f"{path.name}: 'messages' is not an array")

        messages = [
            message
            for message in (self._parse_message(m, session_id) for m in raw_messages)
            if message is not None
        ]

        started_at = parse_timestamp(data["startTime"]) if data.get("startTime") else None
        updated_at = parse_timestamp(data["lastUpdated"]) if data.get("lastUpdated") else None

        # The log carries no working directory; the project-hash folder stands in
        project = str(path.parent.parent) if path.parent.name == "chats" else ""

        return self.build_session(session_id, project, messages, started_at, updated_at)

    def _parse_message(self, msg_data: dict, session_id: str) -> ChatMessage | None:
        """Convert one message object, or None if it is not a conversation turn."""
        if not isinstance(msg_data, dict):
            return None

        msg_type = msg_data.get("type")
        if msg_type == "user":
            role = MessageRole.USER
        elif msg_type == "gemini":
            role = MessageRole.ASSISTANT
        else:
            # Skip "info", "error" and other non-conversation messages
            return None

        content = msg_data.get("content")
        if not isinstance(content, str) or not content:
            return None

        timestamp = parse_timestamp(msg_data.get("timestamp"))

        thoughts = [
            f"{thought.get('subject', '')}: {thought.get('description', '')}"
            for thought in msg_data.get("thoughts") or []
            if isinstance(thought, dict)
        ]

        tokens = None
        raw_tokens = msg_data.get("tokens")
        if isinstance(raw_tokens, dict):
            tokens = TokenUsage(
                input=int(raw_tokens.get("input") or 0),
                output=int(raw_tokens.get("output") or 0),
                cached=int(raw_tokens.get("cached") or 0),
            )

        return ChatMessage(
            id=msg_data.get("id") or generate_message_id(self.name, session_id, timestamp, content),
            timestamp=timestamp,
            role=role,
            content=content,
            metadata=MessageMetadata(
                model=msg_data.get("model"),
                tokens=tokens,
                thoughts=thoughts,
            ),
        )
