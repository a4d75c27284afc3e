"""Read-only queries used to highlight the active path of a conversation."""

import logging
from collections.abc import Sequence

from threadgraph.models.conversation import Edge, Node

logger = logging.getLogger(__name__)


def find_node(node_id: str, nodes: Sequence[Node]) -> Node | None:
    """Find a node by its ID."""
    for node in nodes:
        if node.id == node_id:
            return node
    return None


def get_active_nodes(active_path: Sequence[str], nodes: Sequence[Node]) -> list[Node]:
    """Nodes of the active path in path order, skipping unknown ids."""
    by_id = {}
    for node in nodes:
        by_id.setdefault(node.id, node)
    return [by_id[node_id] for node_id in active_path if node_id in by_id]


def is_node_active(node_id: str, active_path: Sequence[str]) -> bool:
    return node_id in active_path


def get_root_nodes(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[Node]:
    """All nodes without an incoming edge, in node order."""
    targets = {edge.target_node_id for edge in edges}
    return [node for node in nodes if node.id not in targets]


def get_root_node(nodes: Sequence[Node], edges: Sequence[Edge]) -> Node | None:
    """The first root node, or None if every node has a parent."""
    roots = get_root_nodes(nodes, edges)
    if not roots:
        return None
    if len(roots) > 1:
        logger.warning(
            "Multiple root nodes found: %s", ", ".join(node.id for node in roots)
        )
    return roots[0]


def get_leaf_nodes(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[Node]:
    """Nodes with no outgoing edge."""
    sources = {edge.source_node_id for edge in edges}
    return [node for node in nodes if node.id not in sources]


def get_active_edges(active_path: Sequence[str], edges: Sequence[Edge]) -> list[str]:
    """IDs of the edges joining consecutive nodes of a root-first path.

    Pairs with no connecting edge are skipped.
    """
    if len(active_path) < 2:
        return []

    edge_ids: list[str] = []
    for parent_id, child_id in zip(active_path, active_path[1:]):
        for edge in edges:
            if edge.source_node_id == parent_id and edge.target_node_id == child_id:
                edge_ids.append(edge.id)
                break
    return edge_ids


def is_edge_active(edge_id: str, active_path: Sequence[str], edges: Sequence[Edge]) -> bool:
    return edge_id in get_active_edges(active_path, edges)


def find_context_snippet(node_id: str, edges: Sequence[Edge]) -> str | None:
    """Snippet of the markdown element `node_id` was branched from, if any.

    Edges leaving a node's bottom branch handle are plain continuations and
    are skipped; the first remaining incoming edge with a snippet wins.
    """
    for edge in edges:
        if edge.target_node_id != node_id:
            continue
        if edge.source_handle and edge.source_handle.startswith("bottom-branch"):
            continue
        if edge.metadata and edge.metadata.context_snippet:
            return edge.metadata.context_snippet
    return None
