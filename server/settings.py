"""Lazily created, process-wide server dependencies."""

from threadgraph.config import load_context_config, load_llm_config
from threadgraph.llm.chat_service import ChatService
from threadgraph.llm.clients import create_client
from threadgraph.models.context import ContextConfig

# created on first use so the app starts without an API key
_context_config: ContextConfig | None = None
_chat_service: ChatService | None = None


def get_context_config() -> ContextConfig:
    """Truncation limits from the environment, read once."""
    global _context_config
    if _context_config is None:
        _context_config = load_context_config()
    return _context_config


def get_chat_service() -> ChatService:
    """Chat service for the configured provider.

    Raises:
        ConfigurationError: if the LLM environment is incomplete.
    """
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService(create_client(load_llm_config()))
    return _chat_service


def reset() -> None:
    """Forget cached dependencies (after the environment changed)."""
    global _context_config, _chat_service
    _context_config = None
    _chat_service = None
