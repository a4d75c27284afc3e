"""Core data models for threadgraph."""

from threadgraph.models.conversation import (
    Conversation,
    ConversationMetadata,
    Edge,
    EdgeMetadata,
    EdgeType,
    Node,
    NodeType,
    Position,
)
from threadgraph.models.context import (
    ChatMessage,
    ContextConfig,
    ContextMessage,
    TruncationStrategy,
)
from threadgraph.models.chat import (
    ChatRequest,
    ChatResponse,
    StreamEvent,
    TokenUsage,
)

__all__ = [
    # Conversation graph
    "Conversation",
    "ConversationMetadata",
    "Edge",
    "EdgeMetadata",
    "EdgeType",
    "Node",
    "NodeType",
    "Position",
    # Context
    "ChatMessage",
    "ContextConfig",
    "ContextMessage",
    "TruncationStrategy",
    # Chat
    "ChatRequest",
    "ChatResponse",
    "StreamEvent",
    "TokenUsage",
]
