"""CLI entrypoint: session-scribe sync, watch, status."""

import logging
import signal
from pathlib import Path
from types import FrameType

import click

from session_scribe.config import Config, load_config
from session_scribe.logging import get_logger, setup_logging
from session_scribe.paths import PathResolutionError, get_history_dir
from session_scribe.providers import ProviderRegistry
from session_scribe.sync import watcher
from session_scribe.sync.state import SyncStateStore
from session_scribe.sync.synchronizer import SyncStatus, Synchronizer

logger = get_logger("cli")


def build_synchronizer(config: Config) -> Synchronizer:
    """Create the provider, state store and synchronizer for a project.

    Raises:
        ValueError: If the configured provider is unknown
    """
    provider = ProviderRegistry.require(config.provider)
    project_dir = config.project_dir.resolve()
    store = SyncStateStore(get_history_dir(project_dir, config.output_dir), provider.name)
    return Synchronizer(provider, project_dir, store)


def _apply_overrides(config: Config, provider: str | None, project: Path | None) -> Config:
    if provider:
        config.provider = provider
    if project:
        config.project_dir = project.resolve()
    return config


def _make_synchronizer(config: Config) -> Synchronizer:
    try:
        return build_synchronizer(config)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a YAML config file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """session-scribe: sync AI assistant sessions into Markdown transcripts."""
    ctx.ensure_object(dict)
    config = load_config(config_path)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


def _setup(ctx: click.Context, name: str) -> Config:
    config: Config = ctx.obj["config"]
    level = logging.DEBUG if ctx.obj.get("verbose") else logging.INFO
    setup_logging(name, log_dir=config.log_dir, level=level, console=ctx.obj.get("verbose", False))
    return config


@cli.command()
@click.option("--provider", help="Provider to sync (claude, codex, gemini).")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Project directory (defaults to the configured one or cwd).",
)
@click.option("--all", "sync_everything", is_flag=True, help="Sync every session, not just the latest.")
@click.option("--force", is_flag=True, help="Rewrite transcripts from scratch.")
@click.pass_context
def sync(
    ctx: click.Context,
    provider: str | None,
    project: Path | None,
    sync_everything: bool,
    force: bool,
) -> None:
    """Sync the latest (or every) session for a project."""
    config = _apply_overrides(_setup(ctx, "sync"), provider, project)
    synchronizer = _make_synchronizer(config)

    try:
        if sync_everything:
            results = synchronizer.sync_all(force=force)
        else:
            latest = synchronizer.sync_latest(force=force)
            results = [latest] if latest else []
    except PathResolutionError as e:
        raise click.ClickException(str(e)) from e

    if not results:
        click.echo(f"No {synchronizer.provider.name} sessions found for {synchronizer.project_dir}")
        return

    counts = {status: 0 for status in SyncStatus}
    for session_path, outcome in results:
        counts[outcome.status] += 1
        click.echo(f"{session_path.name}: {outcome.describe()}")

    click.echo(
        f"Done: {counts[SyncStatus.SYNCED]} synced, {counts[SyncStatus.UP_TO_DATE]} up to date, "
        f"{counts[SyncStatus.SKIPPED]} skipped, {counts[SyncStatus.FAILED]} failed"
    )
    if counts[SyncStatus.FAILED]:
        ctx.exit(1)


def _signal_handler(signum: int, frame: FrameType | None) -> None:
    """Handle shutdown signals gracefully."""
    sig_name = signal.Signals(signum).name
    logger.info("Received signal %s, shutting down", sig_name)
    watcher.request_shutdown()


@cli.command()
@click.option("--provider", help="Provider to watch (claude, codex, gemini).")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Project directory (defaults to the configured one or cwd).",
)
@click.option("--interval", type=click.IntRange(min=1), help="Seconds between sync passes.")
@click.pass_context
def watch(ctx: click.Context, provider: str | None, project: Path | None, interval: int | None) -> None:
    """Sync every session once, then keep the latest one in sync."""
    config = _apply_overrides(_setup(ctx, "watch"), provider, project)
    synchronizer = _make_synchronizer(config)
    interval_seconds = interval or config.watch.interval_seconds

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        results = synchronizer.sync_all()
    except PathResolutionError as e:
        raise click.ClickException(str(e)) from e

    synced = sum(1 for _, outcome in results if outcome.status is SyncStatus.SYNCED)
    click.echo(f"Initial sync: {synced} of {len(results)} session(s) updated")
    click.echo(f"Watching {synchronizer.provider.name} sessions every {interval_seconds}s (Ctrl+C to stop)")

    watcher.reset_shutdown()
    watcher.start(synchronizer, interval_seconds)


@cli.command()
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Project directory (defaults to the configured one or cwd).",
)
@click.pass_context
def status(ctx: click.Context, project: Path | None) -> None:
    """Show providers and the sync state recovered from transcripts."""
    config = _apply_overrides(ctx.obj["config"], None, project)
    synchronizer = _make_synchronizer(config)

    for name in sorted(ProviderRegistry.all_names()):
        installed = ProviderRegistry.require(name).is_installed()
        marker = "*" if name == synchronizer.provider.name else " "
        click.echo(f"{marker} {name:<8} {'installed' if installed else 'not found'}")

    sessions = synchronizer.store.snapshot().sessions
    click.echo(f"\nTranscripts in {synchronizer.history_dir}: {len(sessions)}")
    for state in sorted(sessions.values(), key=lambda s: s.output_path.name):
        click.echo(f"  {state.output_path.name} [{state.provider}] {state.synced_count} message(s)")


def main() -> None:
    """Console entry point."""
    cli(obj={})
