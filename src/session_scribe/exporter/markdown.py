"""Markdown transcript writer.

A transcript starts with a frontmatter block that is read back on startup
to recover sync progress, followed by a title and one block per message.
Files are either written whole or extended with complete message blocks,
so an interrupted process never leaves a half-written message behind.
"""

from datetime import datetime
from pathlib import Path

from session_scribe.exporter.frontmatter import FRONTMATTER_DELIMITER
from session_scribe.logging import get_logger
from session_scribe.models import ChatMessage, ChatSession, MessageRole

logger = get_logger("exporter")

UNTITLED = "Untitled Session"
TITLE_MAX_CHARS = 60

ROLE_ICONS = {
    MessageRole.USER: "👤",
    MessageRole.ASSISTANT: "🤖",
    MessageRole.SYSTEM: "⚙️",
}


def format_datetime(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def extract_title(messages: list[ChatMessage]) -> str:
    """Title from the first line of the first user message.

    Lines longer than TITLE_MAX_CHARS are cut and marked with "...".
    """
    for message in messages:
        if message.role is MessageRole.USER:
            lines = message.content.splitlines()
            first_line = lines[0] if lines else UNTITLED
            if len(first_line) > TITLE_MAX_CHARS:
                return first_line[:TITLE_MAX_CHARS] + "..."
            return first_line
    return UNTITLED


def render_frontmatter(session: ChatSession) -> str:
    lines = [
        FRONTMATTER_DELIMITER,
        f"provider: {session.provider}",
        f"session_id: {session.session_id}",
        f"project: {session.project_path}",
        f"started_at: {session.started_at.isoformat()}",
        f"updated_at: {session.updated_at.isoformat()}",
        f"message_count: {len(session.messages)}",
    ]
    total_tokens = session.total_tokens
    if total_tokens > 0:
        lines.append(f"total_tokens: {total_tokens}")
    lines.append(FRONTMATTER_DELIMITER)
    return "\n".join(lines) + "\n"


def render_message(message: ChatMessage) -> str:
    """Render one message block (without the trailing separator)."""
    parts = [
        f"## {ROLE_ICONS[message.role]} {message.role.label} ({format_datetime(message.timestamp)})\n\n",
        message.content,
        "\n",
    ]

    if message.metadata.tool_calls:
        parts.append("\n**Tools Used:**\n")
        parts.extend(f"- `{tool}`\n" for tool in message.metadata.tool_calls)

    if message.metadata.thoughts:
        parts.append("\n<details>\n<summary>💭 Thoughts</summary>\n\n")
        parts.extend(f"- {thought}\n" for thought in message.metadata.thoughts)
        parts.append("\n</details>\n")

    return "".join(parts)


def generate_markdown(session: ChatSession) -> str:
    """Render a complete transcript for a session."""
    parts = [render_frontmatter(session), "\n", f"# {extract_title(session.messages)}\n\n"]
    for message in session.messages:
        parts.append(render_message(message))
        parts.append("\n\n")
    return "".join(parts)


def encode_transcript(text: str) -> bytes:
    """Encode transcript text as UTF-8.

    Lone surrogates (a source log can carry half of an escaped emoji) are
    written as "?" instead of failing the write.
    """
    return text.encode("utf-8", errors="replace")


def create_markdown_file(path: Path, session: ChatSession) -> None:
    """Write (or overwrite) a transcript with the full session."""
    data = encode_transcript(generate_markdown(session))
    path.write_bytes(data)
    logger.debug("Wrote transcript: path=%s messages=%d", path.name, len(session.messages))


def append_messages(path: Path, messages: list[ChatMessage]) -> None:
    """Append message blocks to an existing transcript.

    All blocks are rendered before the file is opened, so a rendering error
    leaves the transcript untouched. The frontmatter is not touched; callers
    bump message_count with update_message_count once the blocks are on disk.
    """
    data = encode_transcript("".join(render_message(message) + "\n\n" for message in messages))
    with open(path, "ab") as f:
        f.write(data)
        f.flush()
    logger.debug("Appended to transcript: path=%s messages=%d", path.name, len(messages))
