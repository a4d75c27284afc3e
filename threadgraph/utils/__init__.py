"""Utility functions for threadgraph."""

from threadgraph.utils.identifiers import (
    generate_conversation_id,
    generate_edge_id,
    generate_node_id,
    utc_timestamp,
)

__all__ = [
    "generate_conversation_id",
    "generate_edge_id",
    "generate_node_id",
    "utc_timestamp",
]
