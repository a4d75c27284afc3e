"""Reconstruct the ancestor path of a node from a flat node/edge list.

The conversation is logically a tree: every non-root node has exactly one
incoming edge. Stored data does not always honour that, so the resolver
never raises. Instead it resolves violations deterministically and reports
them as anomalies on the result:

- unknown_target: the requested node is not in the node set. The path is
  just `[target]` so traversal stays total.
- multiple_parents: a node has several incoming edges. The first edge in
  snapshot order wins.
- cycle_detected: an ancestor was already visited. Traversal stops and the
  prefix collected so far is returned.
- missing_node: an edge points at a source id that is not in the node set.
  Traversal keeps following edges.
- parent_mismatch: a node's `parent_node_id` disagrees with the edge chosen
  for it.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from threadgraph.graph.index import GraphIndex
from threadgraph.models.conversation import Edge, Node

logger = logging.getLogger(__name__)


class AnomalyCode(str, Enum):
    """Integrity problems found while walking towards the root."""

    unknown_target = "unknown_target"
    multiple_parents = "multiple_parents"
    cycle_detected = "cycle_detected"
    missing_node = "missing_node"
    parent_mismatch = "parent_mismatch"


@dataclass
class PathAnomaly:
    """One integrity problem and the node it was observed at."""

    code: AnomalyCode
    node_id: str
    detail: str = ""


@dataclass
class PathResolution:
    """Resolved root-to-target path plus whatever went wrong on the way."""

    target_node_id: str
    path: list[str]
    anomalies: list[PathAnomaly] = field(default_factory=list)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)

    def codes(self) -> list[AnomalyCode]:
        """Anomaly codes in the order they were found."""
        return [anomaly.code for anomaly in self.anomalies]


def resolve_path(
    target_node_id: str,
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    index: GraphIndex | None = None,
) -> PathResolution:
    """Walk incoming edges from `target_node_id` up to its root.

    Args:
        target_node_id: node whose lineage is wanted.
        nodes: all nodes of the conversation.
        edges: all edges of the conversation.
        index: prebuilt index over the same snapshot, if the caller has one.

    Returns:
        PathResolution whose path runs root first, target last, with no
        duplicate ids.
    """
    index = index or GraphIndex(nodes, edges)
    anomalies: list[PathAnomaly] = []

    if not index.has_node(target_node_id):
        anomalies.append(PathAnomaly(
            code=AnomalyCode.unknown_target,
            node_id=target_node_id,
            detail=f"node {target_node_id} is not part of the conversation",
        ))
        return PathResolution(target_node_id, [target_node_id], anomalies)

    # collected leaf first, reversed once at the end
    reversed_path: list[str] = []
    visited: set[str] = set()
    current: str = target_node_id

    while True:
        visited.add(current)
        reversed_path.append(current)

        incoming = index.incoming_edges(current)
        if not incoming:
            break  # root reached

        if len(incoming) > 1:
            sources = ", ".join(edge.source_node_id for edge in incoming)
            anomalies.append(PathAnomaly(
                code=AnomalyCode.multiple_parents,
                node_id=current,
                detail=f"incoming edges from {sources}; using {incoming[0].source_node_id}",
            ))
            logger.warning(
                "Node %s has %d parents, using the first one (%s)",
                current, len(incoming), incoming[0].source_node_id,
            )

        parent_id = incoming[0].source_node_id

        node = index.node(current)
        if node is not None and node.parent_node_id and node.parent_node_id != parent_id:
            anomalies.append(PathAnomaly(
                code=AnomalyCode.parent_mismatch,
                node_id=current,
                detail=f"parent_node_id is {node.parent_node_id} but edge source is {parent_id}",
            ))

        if parent_id in visited:
            anomalies.append(PathAnomaly(
                code=AnomalyCode.cycle_detected,
                node_id=parent_id,
                detail=f"node {parent_id} is already in the path",
            ))
            logger.warning(
                "Circular reference detected at node %s while resolving %s",
                parent_id, target_node_id,
            )
            break

        if not index.has_node(parent_id):
            anomalies.append(PathAnomaly(
                code=AnomalyCode.missing_node,
                node_id=parent_id,
                detail=f"edge into {current} comes from unknown node {parent_id}",
            ))

        current = parent_id

    reversed_path.reverse()
    return PathResolution(target_node_id, reversed_path, anomalies)


def resolve_path_to_root(
    target_node_id: str,
    nodes: Sequence[Node],
    edges: Sequence[Edge],
) -> list[str]:
    """Node ids from the root down to `target_node_id` (chronological order)."""
    return resolve_path(target_node_id, nodes, edges).path
