"""Base provider interface and registry."""

import hashlib
import shutil
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from session_scribe.models import ChatMessage, ChatSession

__all__ = [
    "ParseError",
    "Provider",
    "ProviderRegistry",
    "content_hash",
    "extract_text_blocks",
    "generate_message_id",
    "parse_timestamp",
    "sort_newest_first",
]


class ParseError(ValueError):
    """Raised when a log file cannot be parsed as a whole."""


def content_hash(content: str) -> str:
    """Compute SHA256 hash of content for deduplication.

    Returns:
        First 16 characters of the hex-encoded SHA256 hash
    """
    return hashlib.sha256(content.encode("utf-8", errors="surrogatepass")).hexdigest()[:16]


def generate_message_id(
    provider: str,
    session_id: str,
    ts: datetime,
    content: str,
) -> str:
    """Generate a stable ID for a message whose source carries none.

    The ID format is: {provider}:{session_id}:{unix_ts}:{content_hash}
    """
    return f"{provider}:{session_id}:{int(ts.timestamp())}:{content_hash(content)}"


def parse_timestamp(timestamp_str: str | None) -> datetime:
    """Parse an ISO 8601 / RFC 3339 timestamp into an aware UTC datetime.

    Missing or unparseable values fall back to the current instant so that a
    single bad field never fails a whole session.

    Args:
        timestamp_str: Timestamp string (e.g., "2026-01-26T00:38:34.590Z")

    Returns:
        UTC datetime
    """
    if not timestamp_str or not isinstance(timestamp_str, str):
        return datetime.now(timezone.utc)

    try:
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str[:-1] + "+00:00"
        dt = datetime.fromisoformat(timestamp_str)
    except ValueError:
        return datetime.now(timezone.utc)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def extract_text_blocks(content: str | list | None, text_types: tuple[str, ...] = ("text",)) -> str:
    """Extract text from a content field.

    Content is either a plain string or a list of typed blocks. Only blocks
    whose type is in text_types contribute; they are newline-joined in order.
    """
    if content is None:
        return ""

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        text_parts: list[str] = []
        for block in content:
            if isinstance(block, dict) and block.get("type") in text_types:
                text = block.get("text")
                if isinstance(text, str):
                    text_parts.append(text)
        return "\n".join(text_parts)

    return ""


def sort_newest_first(paths: list[Path]) -> list[Path]:
    """Order files by modification time, newest first.

    Files that disappear between discovery and stat are dropped.
    """
    stamped: list[tuple[float, Path]] = []
    for path in paths:
        try:
            stamped.append((path.stat().st_mtime, path))
        except OSError:
            continue
    stamped.sort(key=lambda item: item[0], reverse=True)
    return [path for _, path in stamped]


class Provider(ABC):
    """Base class for assistant log providers.

    Subclasses set the `name` and `command` class attributes and implement
    file discovery and parsing for their on-disk format. Parsing never
    touches shared mutable state, so one instance can serve many files.
    """

    name: str
    command: str

    @abstractmethod
    def data_dir(self) -> Path:
        """Root directory under which this provider stores session logs."""

    @abstractmethod
    def list_candidate_files(self, project_path: Path, latest_only: bool = False) -> list[Path]:
        """List session log files belonging to a project, newest first.

        Args:
            project_path: Project working directory
            latest_only: Hint that only the newest file is wanted, allowing
                providers to limit how much they scan

        Returns:
            List of log file paths ordered by modification time, newest first
        """

    @abstractmethod
    def parse(self, path: Path) -> ChatSession:
        """Parse a log file into a canonical session.

        Raises:
            ParseError: If the file is structurally unreadable as a whole
            OSError: If the file cannot be read
        """

    def find_latest_session(self, project_path: Path) -> Path | None:
        """Return the most recently modified session log for a project."""
        candidates = self.list_candidate_files(project_path, latest_only=True)
        return candidates[0] if candidates else None

    def is_installed(self) -> bool:
        """Check whether the provider's CLI is available on PATH."""
        return shutil.which(self.command) is not None

    def build_session(
        self,
        session_id: str,
        project_path: str,
        messages: list[ChatMessage],
        started_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> ChatSession:
        """Assemble a ChatSession, deriving start/update times from messages."""
        if started_at is None:
            started_at = messages[0].timestamp if messages else datetime.now(timezone.utc)
        if updated_at is None:
            updated_at = messages[-1].timestamp if messages else started_at
        return ChatSession(
            session_id=session_id,
            provider=self.name,
            project_path=project_path,
            started_at=started_at,
            updated_at=updated_at,
            messages=messages,
        )


class ProviderRegistry:
    """Registry of providers by name."""

    _providers: dict[str, Provider] = {}

    @classmethod
    def register(cls, provider: Provider) -> None:
        """Register a provider."""
        cls._providers[provider.name] = provider

    @classmethod
    def get(cls, name: str) -> Provider | None:
        """Get provider by name."""
        return cls._providers.get(name)

    @classmethod
    def require(cls, name: str) -> Provider:
        """Get provider by name, raising ValueError for unknown names."""
        provider = cls.get(name)
        if provider is None:
            known = ", ".join(sorted(cls._providers))
            raise ValueError(f"Unknown provider: {name} (expected one of: {known})")
        return provider

    @classmethod
    def all_names(cls) -> list[str]:
        """List all registered provider names."""
        return list(cls._providers.keys())
