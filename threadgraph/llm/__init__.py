"""Language model access for threadgraph."""

from threadgraph.llm.clients import (
    AnthropicChatClient,
    Completion,
    LLMClient,
    OpenAIChatClient,
    create_client,
)
from threadgraph.llm.chat_service import (
    SYSTEM_PROMPT,
    ChatService,
    ChatServiceError,
    StreamChunk,
    build_user_message,
)

__all__ = [
    "AnthropicChatClient",
    "Completion",
    "LLMClient",
    "OpenAIChatClient",
    "create_client",
    "SYSTEM_PROMPT",
    "ChatService",
    "ChatServiceError",
    "StreamChunk",
    "build_user_message",
]
