"""Periodic sync loop for the latest session of a project."""

import time
from collections.abc import Callable

from session_scribe.logging import get_logger
from session_scribe.sync.synchronizer import SyncOutcome, SyncStatus, Synchronizer

logger = get_logger("watcher")

# Global flag for graceful shutdown
_shutdown_requested = False


def request_shutdown() -> None:
    """Request graceful shutdown of the watch loop."""
    global _shutdown_requested
    _shutdown_requested = True


def is_shutdown_requested() -> bool:
    """Check if shutdown has been requested."""
    return _shutdown_requested


def reset_shutdown() -> None:
    """Reset shutdown flag (useful for testing)."""
    global _shutdown_requested
    _shutdown_requested = False


def run_sync_cycle(synchronizer: Synchronizer) -> SyncOutcome | None:
    """Run one pass: sync the latest session only.

    Errors are logged and swallowed so the loop keeps running.

    Returns:
        The outcome, or None when there was nothing to sync or the pass failed
    """
    try:
        result = synchronizer.sync_latest()
    except Exception:
        logger.exception("Periodic sync error: provider=%s", synchronizer.provider.name)
        return None

    if result is None:
        logger.debug("Cycle complete: no session file found")
        return None

    session_path, outcome = result
    if outcome.status is SyncStatus.FAILED:
        logger.error("Sync failed: path=%s reason=%s", session_path.name, outcome.reason)
    elif outcome.status is SyncStatus.SYNCED:
        logger.info("Cycle complete: path=%s new_messages=%d", session_path.name, outcome.new_messages)
    else:
        logger.debug("Cycle complete: path=%s status=%s", session_path.name, outcome.status.value)
    return outcome


def next_tick(start: float, interval: float, now: float) -> float:
    """Return the first scheduled tick strictly after now.

    Ticks sit on a fixed grid start + k * interval; ticks missed while a pass
    was running are skipped rather than queued.
    """
    elapsed = now - start
    return start + (int(elapsed // interval) + 1) * interval


def start(
    synchronizer: Synchronizer,
    interval_seconds: float,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Run the periodic sync loop until shutdown is requested.

    The first pass runs immediately. Sleeping happens in slices of at most
    one second so a shutdown request is noticed promptly.

    Args:
        synchronizer: Synchronizer for the watched project
        interval_seconds: Seconds between passes
        clock: Monotonic clock (injectable for tests)
        sleep: Sleep function (injectable for tests)
    """
    if interval_seconds <= 0:
        raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

    logger.info(
        "Starting periodic sync: provider=%s project=%s interval=%ss",
        synchronizer.provider.name,
        synchronizer.project_dir,
        interval_seconds,
    )

    origin = clock()
    while not is_shutdown_requested():
        run_sync_cycle(synchronizer)

        if is_shutdown_requested():
            break

        wake_at = next_tick(origin, interval_seconds, clock())
        while not is_shutdown_requested():
            remaining = wake_at - clock()
            if remaining <= 0:
                break
            sleep(min(1.0, remaining))

    logger.info("Periodic sync stopped")
