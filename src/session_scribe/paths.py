"""Provider data directory resolution.

Each assistant keeps its logs under a dot-directory in the user's home:

- Claude Code: ~/.claude/projects/<encoded-project-path>/
- Codex:       ~/.codex/sessions/<year>/<month>/<day>/
- Gemini CLI:  ~/.gemini/tmp/<sha256-of-project-path>/chats/
"""

import hashlib
import re
from pathlib import Path

from session_scribe.config import DEFAULT_OUTPUT_DIR


class PathResolutionError(RuntimeError):
    """Raised when a required base directory cannot be determined."""


def home_dir() -> Path:
    """Return the user's home directory.

    Raises:
        PathResolutionError: If the home directory cannot be determined
    """
    try:
        return Path.home()
    except RuntimeError as e:
        raise PathResolutionError(f"Cannot determine home directory: {e}") from e


def get_ai_data_dir(provider: str) -> Path:
    """Return the root data directory for a provider (e.g. ~/.claude)."""
    return home_dir() / f".{provider}"


def encode_path_claude(project_path: Path | str) -> str:
    """Encode a project path the way Claude Code names its project folders.

    Every character that is not alphanumeric or '-' becomes '-', so
    /home/user/my.project turns into -home-user-my-project.
    """
    return re.sub(r"[^A-Za-z0-9-]", "-", str(project_path))


def encode_path_gemini(project_path: Path | str) -> str:
    """Hash a project path the way Gemini CLI names its project folders."""
    return hashlib.sha256(str(project_path).encode()).hexdigest()


def get_history_dir(project_dir: Path, output_dir: Path | str = DEFAULT_OUTPUT_DIR) -> Path:
    """Return the transcript directory for a project."""
    output_dir = Path(output_dir)
    if output_dir.is_absolute():
        return output_dir
    return project_dir / output_dir
