"""threadgraph - branching conversation graphs and context assembly for LLM chat."""

from threadgraph.models import (
    ChatMessage,
    ContextConfig,
    ContextMessage,
    Conversation,
    Edge,
    EdgeType,
    Node,
    NodeType,
    TruncationStrategy,
)
from threadgraph.graph import (
    AnomalyCode,
    PathResolution,
    is_valid_path,
    resolve_path,
    resolve_path_to_root,
)
from threadgraph.context import (
    ContextWindow,
    build_context_window,
    flatten,
    get_context,
    truncate,
)

__all__ = [
    # Models
    "ChatMessage",
    "ContextConfig",
    "ContextMessage",
    "Conversation",
    "Edge",
    "EdgeType",
    "Node",
    "NodeType",
    "TruncationStrategy",
    # Traversal
    "AnomalyCode",
    "PathResolution",
    "is_valid_path",
    "resolve_path",
    "resolve_path_to_root",
    # Context assembly
    "ContextWindow",
    "build_context_window",
    "flatten",
    "get_context",
    "truncate",
]
