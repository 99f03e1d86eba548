"""Transcript filename derivation."""

from session_scribe.models import ChatSession

SLUG_MAX_CHARS = 50
DEFAULT_SLUG = "new-chat"


def slugify(text: str) -> str:
    """Create a filesystem-safe slug from message text.

    Uses the first SLUG_MAX_CHARS characters; alphanumerics are lowercased
    and every run of other characters becomes a single hyphen.
    """
    chars = [c.lower() if c.isalnum() else "-" for c in text[:SLUG_MAX_CHARS]]
    slug = "-".join(part for part in "".join(chars).split("-") if part)
    return slug or DEFAULT_SLUG


def transcript_filename(session: ChatSession) -> str:
    """Build the transcript filename for a new session.

    Format: <YYYY-MM-DD_HH-MM-SSZ>-<provider>-<slug>.md, where the slug comes
    from the first user message, or the session id when there is none.
    """
    first_user = session.first_user_message()
    slug = slugify(first_user.content) if first_user else session.session_id
    timestamp = session.started_at.strftime("%Y-%m-%d_%H-%M-%SZ")
    return f"{timestamp}-{session.provider}-{slug}.md"
