"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_PROVIDER = "claude"
DEFAULT_OUTPUT_DIR = ".scribe/history"
DEFAULT_INTERVAL_SECONDS = 30


@dataclass
class WatchConfig:
    interval_seconds: int = DEFAULT_INTERVAL_SECONDS


@dataclass
class Config:
    provider: str = DEFAULT_PROVIDER
    project_dir: Path = field(default_factory=Path.cwd)
    # Relative paths are resolved against project_dir
    output_dir: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_DIR))
    log_dir: Path = field(default_factory=lambda: Path.home() / ".session-scribe" / "logs")
    watch: WatchConfig = field(default_factory=WatchConfig)


def expand_env_var(value: str) -> str:
    """Expand environment variables in string (e.g. ${VAR})."""
    if value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.environ.get(env_var, value)
    return value


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config in standard locations
        search_paths = [
            Path.cwd() / "session-scribe.yaml",
            Path.home() / ".config" / "session-scribe" / "config.yaml",
            Path("/etc/session-scribe/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    watch_data = data.get("watch", {}) or {}
    watch = WatchConfig(
        interval_seconds=int(watch_data.get("interval_seconds", DEFAULT_INTERVAL_SECONDS)),
    )

    project_dir = data.get("project_dir")
    log_dir = data.get("log_dir")

    return Config(
        provider=expand_env_var(str(data.get("provider", DEFAULT_PROVIDER))),
        project_dir=expand_path(project_dir).resolve() if project_dir else Path.cwd(),
        output_dir=expand_path(str(data.get("output_dir", DEFAULT_OUTPUT_DIR))),
        log_dir=expand_path(log_dir) if log_dir else Path.home() / ".session-scribe" / "logs",
        watch=watch,
    )
