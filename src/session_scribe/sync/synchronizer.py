"""Incremental sync of provider session logs into Markdown transcripts."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from session_scribe.exporter.frontmatter import update_message_count
from session_scribe.exporter.markdown import append_messages, create_markdown_file
from session_scribe.logging import get_logger
from session_scribe.providers.base import Provider
from session_scribe.sync.naming import transcript_filename
from session_scribe.sync.state import SyncStateStore

logger = get_logger("sync")


class SyncStatus(str, Enum):
    SYNCED = "synced"
    UP_TO_DATE = "up_to_date"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of syncing one log file."""

    status: SyncStatus
    new_messages: int = 0
    reason: str | None = None
    output_path: Path | None = None

    @classmethod
    def synced(cls, new_messages: int, output_path: Path) -> "SyncOutcome":
        return cls(SyncStatus.SYNCED, new_messages=new_messages, output_path=output_path)

    @classmethod
    def up_to_date(cls, output_path: Path | None = None) -> "SyncOutcome":
        return cls(SyncStatus.UP_TO_DATE, output_path=output_path)

    @classmethod
    def skipped(cls) -> "SyncOutcome":
        return cls(SyncStatus.SKIPPED)

    @classmethod
    def failed(cls, reason: str) -> "SyncOutcome":
        return cls(SyncStatus.FAILED, reason=reason)

    def describe(self) -> str:
        """One-line human readable summary."""
        if self.status is SyncStatus.SYNCED:
            return f"synced {self.new_messages} new message(s)"
        if self.status is SyncStatus.UP_TO_DATE:
            return "up to date"
        if self.status is SyncStatus.SKIPPED:
            return "skipped (no messages)"
        return f"failed: {self.reason}"


class Synchronizer:
    """Decides, per log file, whether to create, append to, or skip a transcript.

    One instance serves one project directory and one provider. Progress is
    kept in a SyncStateStore, which is rebuilt from transcripts on startup.
    """

    def __init__(self, provider: Provider, project_dir: Path, store: SyncStateStore) -> None:
        self.provider = provider
        self.project_dir = project_dir
        self.store = store

    @property
    def history_dir(self) -> Path:
        return self.store.history_dir

    def sync_session(self, session_path: Path, force: bool = False) -> SyncOutcome:
        """Sync one provider log file.

        Args:
            session_path: Path to the provider's log file
            force: Rewrite the transcript from scratch

        Returns:
            SyncOutcome describing what happened; errors are reported as
            FAILED outcomes rather than raised
        """
        try:
            session = self.provider.parse(session_path)
        except Exception as e:
            logger.exception("Error parsing session: provider=%s path=%s", self.provider.name, session_path)
            return SyncOutcome.failed(f"Parse error: {e}")

        if not session.messages:
            logger.debug("Session has no messages: path=%s", session_path.name)
            return SyncOutcome.skipped()

        existing = self.store.get_session(session.session_id)
        if existing is not None:
            output_path = existing.output_path
            synced_count = existing.synced_count
        else:
            output_path = self.history_dir / transcript_filename(session)
            synced_count = 0

        # Full rewrite when forced or when a previously written transcript is gone
        if force or (synced_count > 0 and not output_path.exists()):
            synced_count = 0

        total = len(session.messages)
        if synced_count >= total:
            return SyncOutcome.up_to_date(output_path)

        new_messages = session.messages[synced_count:]
        if not new_messages:
            return SyncOutcome.up_to_date(output_path)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            if synced_count == 0:
                create_markdown_file(output_path, session)
            else:
                append_messages(output_path, new_messages)
        except (OSError, ValueError) as e:
            logger.exception("Error writing transcript: session=%s path=%s", session.session_id, output_path)
            return SyncOutcome.failed(f"Write error: {e}")

        # Blocks are on disk; progress is recorded even if the header rewrite fails
        self.store.update_session(session.session_id, session_path, output_path, total)

        if synced_count > 0:
            try:
                updated = update_message_count(output_path, total)
            except (OSError, ValueError):
                logger.warning(
                    "Cannot update message_count: path=%s count=%d", output_path.name, total, exc_info=True
                )
            else:
                if not updated:
                    logger.warning("Transcript has no message_count field: path=%s", output_path.name)

        logger.info(
            "Synced session: provider=%s id=%s new=%d total=%d path=%s",
            self.provider.name,
            session.session_id,
            len(new_messages),
            total,
            output_path.name,
        )
        return SyncOutcome.synced(len(new_messages), output_path)

    def sync_all(self, force: bool = False) -> list[tuple[Path, SyncOutcome]]:
        """Sync every session log the provider has for this project.

        Files are processed one at a time; a failure in one never stops the
        others.

        Raises:
            PathResolutionError: If the provider's data directory cannot be resolved
        """
        results: list[tuple[Path, SyncOutcome]] = []
        for session_path in self.provider.list_candidate_files(self.project_dir):
            try:
                outcome = self.sync_session(session_path, force)
            except Exception as e:
                logger.exception("Error syncing session: path=%s", session_path)
                outcome = SyncOutcome.failed(str(e))
            results.append((session_path, outcome))
        return results

    def sync_latest(self, force: bool = False) -> tuple[Path, SyncOutcome] | None:
        """Sync only the most recently modified session log.

        Returns:
            (path, outcome), or None when the project has no session logs

        Raises:
            PathResolutionError: If the provider's data directory cannot be resolved
        """
        session_path = self.provider.find_latest_session(self.project_dir)
        if session_path is None:
            logger.debug("No session file found: provider=%s project=%s", self.provider.name, self.project_dir)
            return None
        return session_path, self.sync_session(session_path, force)
