"""Adjacency index over a conversation snapshot.

Built once per call. The index only borrows the snapshot: nodes and edges
are never copied or modified.
"""

from collections import defaultdict
from collections.abc import Sequence

from threadgraph.models.conversation import Edge, Node


class GraphIndex:
    """Lookup tables for one node/edge snapshot."""

    def __init__(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
        self.nodes_by_id: dict[str, Node] = {}
        for node in nodes:
            # first occurrence wins, matching a linear find()
            self.nodes_by_id.setdefault(node.id, node)

        # edge lists keep the order of the supplied edge sequence
        self.incoming: dict[str, list[Edge]] = defaultdict(list)
        self.outgoing: dict[str, list[Edge]] = defaultdict(list)
        for edge in edges:
            self.incoming[edge.target_node_id].append(edge)
            self.outgoing[edge.source_node_id].append(edge)

    def node(self, node_id: str) -> Node | None:
        return self.nodes_by_id.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes_by_id

    def incoming_edges(self, node_id: str) -> list[Edge]:
        """Edges whose target is `node_id`, in snapshot order."""
        return self.incoming.get(node_id, [])

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        """Edges whose source is `node_id`, in snapshot order."""
        return self.outgoing.get(node_id, [])

    def has_edge(self, source_node_id: str, target_node_id: str) -> bool:
        return any(
            edge.target_node_id == target_node_id
            for edge in self.outgoing_edges(source_node_id)
        )

    def find_edge(self, source_node_id: str, target_node_id: str) -> Edge | None:
        """First edge from `source_node_id` to `target_node_id`, if any."""
        for edge in self.outgoing_edges(source_node_id):
            if edge.target_node_id == target_node_id:
                return edge
        return None

    def __repr__(self) -> str:
        edge_count = sum(len(edges) for edges in self.incoming.values())
        return f"GraphIndex(nodes={len(self.nodes_by_id)}, edges={edge_count})"
