"""Context assembly: flattening, token budgeting and orchestration."""

from threadgraph.context.flattener import flatten
from threadgraph.context.budget import (
    CHARS_PER_TOKEN,
    estimate_context_tokens,
    estimate_tokens,
    truncate,
)
from threadgraph.context.assembler import (
    ContextWindow,
    build_context_window,
    get_context,
)

__all__ = [
    "flatten",
    "CHARS_PER_TOKEN",
    "estimate_context_tokens",
    "estimate_tokens",
    "truncate",
    "ContextWindow",
    "build_context_window",
    "get_context",
]
