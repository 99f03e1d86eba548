"""Canonical data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class MessageRole(str, Enum):
    """Speaker of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass
class TokenUsage:
    """Token counts reported by the provider for one message."""

    input: int = 0
    output: int = 0
    cached: int = 0

    @property
    def total(self) -> int:
        """Billable total (cached tokens are already part of input)."""
        return self.input + self.output


@dataclass
class MessageMetadata:
    """Optional per-message details carried through to the transcript."""

    model: str | None = None
    tokens: TokenUsage | None = None
    tool_calls: list[str] = field(default_factory=list)  # Claude Code
    thoughts: list[str] = field(default_factory=list)  # Gemini CLI


@dataclass
class ChatMessage:
    """A normalized message from any AI assistant log."""

    id: str
    timestamp: datetime  # UTC, timezone-aware
    role: MessageRole
    content: str
    metadata: MessageMetadata = field(default_factory=MessageMetadata)


@dataclass
class ChatSession:
    """One conversation parsed from a provider log file.

    Messages keep the order in which they appear in the source log; they are
    never re-sorted by timestamp.
    """

    session_id: str
    provider: str  # claude, codex, gemini
    project_path: str
    started_at: datetime
    updated_at: datetime
    messages: list[ChatMessage] = field(default_factory=list)

    def first_user_message(self) -> ChatMessage | None:
        """Return the first message with the user role, if any."""
        for message in self.messages:
            if message.role is MessageRole.USER:
                return message
        return None

    @property
    def total_tokens(self) -> int:
        """Sum of input and output tokens across messages that report usage."""
        return sum(m.metadata.tokens.total for m in self.messages if m.metadata.tokens)
