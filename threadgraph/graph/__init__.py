"""Conversation graph traversal: path resolution, validation and queries."""

from threadgraph.graph.index import GraphIndex
from threadgraph.graph.path_resolver import (
    AnomalyCode,
    PathAnomaly,
    PathResolution,
    resolve_path,
    resolve_path_to_root,
)
from threadgraph.graph.path_validator import is_valid_path
from threadgraph.graph.queries import (
    find_context_snippet,
    find_node,
    get_active_edges,
    get_active_nodes,
    get_leaf_nodes,
    get_root_node,
    get_root_nodes,
    is_edge_active,
    is_node_active,
)
from threadgraph.graph.editing import (
    add_edge,
    add_node,
    create_edge,
    create_input_node,
    delete_node,
    update_node,
)

__all__ = [
    "GraphIndex",
    # resolver
    "AnomalyCode",
    "PathAnomaly",
    "PathResolution",
    "resolve_path",
    "resolve_path_to_root",
    # validator
    "is_valid_path",
    # queries
    "find_context_snippet",
    "find_node",
    "get_active_edges",
    "get_active_nodes",
    "get_leaf_nodes",
    "get_root_node",
    "get_root_nodes",
    "is_edge_active",
    "is_node_active",
    # editing
    "add_edge",
    "add_node",
    "create_edge",
    "create_input_node",
    "delete_node",
    "update_node",
]
