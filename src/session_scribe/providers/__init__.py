"""Providers for the session log formats of different AI coding assistants."""

from .base import (
    ParseError,
    Provider,
    ProviderRegistry,
    content_hash,
    extract_text_blocks,
    generate_message_id,
    parse_timestamp,
)
from .claude_code import ClaudeCodeProvider
from .codex import CodexProvider
from .gemini import GeminiProvider

__all__ = [
    "ClaudeCodeProvider",
    "CodexProvider",
    "GeminiProvider",
    "ParseError",
    "Provider",
    "ProviderRegistry",
    "content_hash",
    "extract_text_blocks",
    "generate_message_id",
    "parse_timestamp",
]

# Register providers
ProviderRegistry.register(ClaudeCodeProvider())
ProviderRegistry.register(CodexProvider())
ProviderRegistry.register(GeminiProvider())
