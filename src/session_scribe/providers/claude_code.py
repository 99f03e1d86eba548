"""Provider for Claude Code conversation logs.

Claude Code stores conversations as JSONL files at:
    ~/.claude/projects/<encoded-project-path>/<session-id>.jsonl

Each line is a JSON object with:
- type: "user", "assistant", "summary", "queue-operation", ...
- message.role / message.content: string or array of content blocks
- message.model / message.usage: model name and token usage (assistant only)
- timestamp: ISO 8601 timestamp
- sessionId: UUID session identifier
- cwd: Working directory (project path)
- isSidechain: true for sub-agent branches that are not the main thread
"""

import json
from pathlib import Path

from session_scribe.logging import get_logger
from session_scribe.models import ChatMessage, ChatSession, MessageMetadata, MessageRole, TokenUsage
from session_scribe.paths import encode_path_claude, get_ai_data_dir
from session_scribe.providers.base import (
    ParseError,
    Provider,
    extract_text_blocks,
    generate_message_id,
    parse_timestamp,
    sort_newest_first,
)

logger = get_logger("providers.claude")

# Number of non-empty lines inspected when looking for the isSidechain flag
SIDECHAIN_PROBE_LINES = 10

COMMAND_NAME_OPEN = "<command-name>"
COMMAND_NAME_CLOSE = "</command-name>"
STDOUT_OPEN = "<local-command-stdout>"
STDOUT_CLOSE = "</local-command-stdout>"


def format_command_tags(content: str) -> str:
    """Rewrite Claude Code's slash-command tags into quoted Markdown.

    <command-name>/resume</command-name> becomes "> /resume" and
    <local-command-stdout>out</local-command-stdout> becomes "> ⎿ out".
    Only the first tag of each kind is considered. A command name that does
    not start with '/' is free-form user text and is left untouched.
    """
    start = content.find(COMMAND_NAME_OPEN)
    if start != -1:
        end = content.find(COMMAND_NAME_CLOSE, start)
        if end != -1:
            command = content[start + len(COMMAND_NAME_OPEN) : end].strip()
            if command.startswith("/"):
                return f"> {command}"

    start = content.find(STDOUT_OPEN)
    if start != -1:
        end = content.find(STDOUT_CLOSE, start)
        if end != -1:
            output = content[start + len(STDOUT_OPEN) : end].strip()
            return f"> ⎿ {output}"

    return content


class ClaudeCodeProvider(Provider):
    """Provider for Claude Code JSONL session files."""

    name = "claude"
    command = "claude"

    def data_dir(self) -> Path:
        return get_ai_data_dir("claude") / "projects"

    def session_dir(self, project_path: Path) -> Path:
        return self.data_dir() / encode_path_claude(project_path)

    def list_candidate_files(self, project_path: Path, latest_only: bool = False) -> list[Path]:
        """List main-thread session files for a project, newest first.

        Sub-agent sidechain files live in the same directory and are excluded.
        """
        session_dir = self.session_dir(project_path)
        if not session_dir.is_dir():
            return []

        candidates = [
            path
            for path in session_dir.glob("*.jsonl")
            if path.is_file() and self.is_main_session(path)
        ]
        return sort_newest_first(candidates)

    def is_main_session(self, path: Path) -> bool:
        """Check whether a session file is a main session (not a sidechain).

        Looks at up to the first SIDECHAIN_PROBE_LINES non-empty lines and
        defaults to main when no event states otherwise.
        """
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                checked = 0
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    if checked >= SIDECHAIN_PROBE_LINES:
                        break
                    checked += 1

                    try:
                        entry = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if not isinstance(entry, dict):
                        continue

                    flag = entry.get("isSidechain")
                    if flag is True:
                        return False
                    if flag is False:
                        return True
        except OSError:
            logger.debug("Cannot probe session file: path=%s", path)
            return False

        return True

    def parse(self, path: Path) -> ChatSession:
        """Parse a Claude Code JSONL file into a session.

        A line that is not a JSON object makes the whole file unparseable.

        Raises:
            ParseError: If any non-empty line is malformed
        """
        messages: list[ChatMessage] = []
        session_id = ""
        project = ""

        with open(path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue

                try:
                    entry = json.loads(line)
                except json.JSONDecodeError as e:
                    raise ParseError(f"{path.name}:{line_no}: invalid JSON: {e}") from e
                if not isinstance(entry, dict):
                    raise ParseError(f"{path.name}:{line_no}: expected a JSON object")

                # Session identity and cwd come from the earliest event carrying them
                if not session_id and entry.get("sessionId"):
                    session_id = str(entry["sessionId"])
                if not project and entry.get("cwd"):
                    project = str(entry["cwd"])

                message = self._parse_message(entry, session_id or path.stem)
                if message is not None:
                    messages.append(message)

        return self.build_session(session_id or path.stem, project, messages)

    def _parse_message(self, entry: dict, session_id: str) -> ChatMessage | None:
        """Convert a user/assistant event into a ChatMessage.

        Returns None for other event types and for events without text.
        """
        entry_type = entry.get("type")
        if entry_type == "user":
            role = MessageRole.USER
        elif entry_type == "assistant":
            role = MessageRole.ASSISTANT
        else:
            return None

        message = entry.get("message")
        if not isinstance(message, dict):
            return None

        raw_content = message.get("content")
        content = extract_text_blocks(raw_content)
        if not content:
            return None

        if role is MessageRole.USER:
            content = format_command_tags(content)

        timestamp = parse_timestamp(entry.get("timestamp"))

        tool_calls: list[str] = []
        if isinstance(raw_content, list):
            tool_calls = [
                block["name"]
                for block in raw_content
                if isinstance(block, dict) and block.get("type") == "tool_use" and block.get("name")
            ]

        tokens = None
        usage = message.get("usage")
        if isinstance(usage, dict):
            tokens = TokenUsage(
                input=int(usage.get("input_tokens") or 0),
                output=int(usage.get("output_tokens") or 0),
                cached=int(usage.get("cache_read_input_tokens") or 0),
            )

        return ChatMessage(
            id=entry.get("uuid") or generate_message_id(self.name, session_id, timestamp, content),
            timestamp=timestamp,
            role=role,
            content=content,
            metadata=MessageMetadata(
                model=message.get("model"),
                tokens=tokens,
                tool_calls=tool_calls,
            ),
        )
