"""In-memory sync state, recovered from existing transcripts.

There is no separate journal: each transcript's frontmatter records the
session id and how many messages it holds, which is all that is needed to
resume. The store scans the transcript directory once on construction.
"""

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path

from session_scribe.exporter.frontmatter import read_frontmatter
from session_scribe.logging import get_logger

logger = get_logger("state")


@dataclass
class SessionSyncState:
    """Sync progress for one session."""

    session_id: str
    provider: str
    output_path: Path
    synced_count: int = 0
    # Unknown after recovery from disk
    source_path: Path | None = None
    last_sync_time: datetime | None = None


@dataclass
class ProjectSyncState:
    """Sync progress for every session of one project."""

    sessions: dict[str, SessionSyncState] = field(default_factory=dict)

    def get_session(self, session_id: str) -> SessionSyncState | None:
        return self.sessions.get(session_id)

    def upsert_session(self, state: SessionSyncState) -> None:
        self.sessions[state.session_id] = state

    def get_synced_count(self, session_id: str) -> int:
        state = self.sessions.get(session_id)
        return state.synced_count if state else 0


def restore_project_state(history_dir: Path, default_provider: str) -> ProjectSyncState:
    """Rebuild project sync state from transcript frontmatter.

    Unreadable files and files without a session_id are skipped; they only
    cost that one session its recovered progress.
    """
    state = ProjectSyncState()
    if not history_dir.is_dir():
        return state

    try:
        transcripts = sorted(history_dir.glob("*.md"))
    except OSError:
        logger.warning("Cannot list transcript directory: path=%s", history_dir, exc_info=True)
        return state

    for path in transcripts:
        try:
            fm = read_frontmatter(path)
        except OSError:
            logger.warning("Cannot read transcript frontmatter: path=%s", path, exc_info=True)
            continue

        if not fm.session_id:
            logger.debug("Transcript has no session_id: path=%s", path.name)
            continue

        state.upsert_session(
            SessionSyncState(
                session_id=fm.session_id,
                provider=fm.provider or default_provider,
                output_path=path,
                synced_count=fm.message_count or 0,
            )
        )

    logger.debug("Restored sync state: dir=%s sessions=%d", history_dir, len(state.sessions))
    return state


class SyncStateStore:
    """Thread-safe holder of one project's sync state.

    All access to the session map goes through one lock. File I/O happens
    outside of it.
    """

    def __init__(self, history_dir: Path, provider: str) -> None:
        """Initialize the store by scanning existing transcripts.

        Args:
            history_dir: Directory holding the project's transcripts
            provider: Provider name assumed for transcripts that omit it
        """
        self._history_dir = history_dir
        self._provider = provider
        self._lock = threading.Lock()
        self._state = restore_project_state(history_dir, provider)

    @property
    def history_dir(self) -> Path:
        return self._history_dir

    def get_session(self, session_id: str) -> SessionSyncState | None:
        """Return a copy of a session's state, or None if never synced."""
        with self._lock:
            state = self._state.get_session(session_id)
            return replace(state) if state else None

    def get_synced_count(self, session_id: str) -> int:
        with self._lock:
            return self._state.get_synced_count(session_id)

    def update_session(
        self,
        session_id: str,
        source_path: Path | None,
        output_path: Path,
        synced_count: int,
    ) -> SessionSyncState:
        """Record progress after a successful write."""
        state = SessionSyncState(
            session_id=session_id,
            provider=self._provider,
            output_path=output_path,
            synced_count=synced_count,
            source_path=source_path,
            last_sync_time=datetime.now(timezone.utc),
        )
        with self._lock:
            self._state.upsert_session(state)
        return replace(state)

    def snapshot(self) -> ProjectSyncState:
        """Return a copy of the whole project state."""
        with self._lock:
            return ProjectSyncState(
                sessions={sid: replace(s) for sid, s in self._state.sessions.items()}
            )
