"""Frontmatter reader for existing transcripts.

Only the fields needed to resume syncing are read back: the session id,
the provider and the number of messages already written.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path

FRONTMATTER_DELIMITER = "---"

# Leading bytes read from a transcript; the frontmatter always fits
FRONTMATTER_WINDOW_BYTES = 2048

# The delimiter only counts on a line of its own
_DELIMITER_LINE_RE = re.compile(r"^---[ \t]*\r?$", re.MULTILINE)
_MESSAGE_COUNT_RE = re.compile(r"^message_count:.*$", re.MULTILINE)


@dataclass
class Frontmatter:
    session_id: str | None = None
    provider: str | None = None
    message_count: int | None = None


def _header_span(text: str) -> tuple[int, int] | None:
    """Locate the frontmatter body.

    Returns:
        (start, end) offsets of the text between the opening and closing
        delimiter lines, or None if the text has no complete frontmatter
    """
    opening = _DELIMITER_LINE_RE.match(text)
    if opening is None:
        return None

    start = text.find("\n", opening.end()) + 1
    if start == 0:
        return None

    closing = _DELIMITER_LINE_RE.search(text, start)
    if closing is None:
        return None
    return start, closing.start()


def parse_frontmatter_text(text: str) -> Frontmatter:
    """Extract recoverable fields from the text at the top of a transcript."""
    fm = Frontmatter()

    span = _header_span(text)
    if span is None:
        return fm

    for line in text[span[0] : span[1]].splitlines():
        key, sep, value = line.strip().partition(":")
        if not sep:
            continue
        value = value.strip()
        if key == "session_id" and value:
            fm.session_id = value
        elif key == "provider" and value:
            fm.provider = value
        elif key == "message_count":
            try:
                fm.message_count = int(value)
            except ValueError:
                pass

    return fm


def read_frontmatter(path: Path) -> Frontmatter:
    """Read the frontmatter of a transcript file.

    Raises:
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        head = f.read(FRONTMATTER_WINDOW_BYTES)
    return parse_frontmatter_text(head.decode("utf-8", errors="replace"))


def update_message_count(path: Path, message_count: int) -> bool:
    """Rewrite the message_count field of a transcript's frontmatter.

    The file is rewritten through a temporary sibling and os.replace, so
    readers see either the old or the new header, never a partial one.

    Returns:
        True if the field was found and updated

    Raises:
        OSError: If the file cannot be read or replaced
    """
    text = path.read_text(encoding="utf-8", errors="replace")
    span = _header_span(text)
    if span is None:
        return False

    start, end = span
    header, replaced = _MESSAGE_COUNT_RE.subn(f"message_count: {message_count}", text[start:end], count=1)
    if not replaced:
        return False

    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(text[:start] + header + text[end:], encoding="utf-8")
    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    return True
