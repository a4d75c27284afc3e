"""Independent structural check of a candidate path.

Paths run root first. The check walks them back from the leaf: every step
from `path[i + 1]` to `path[i]` must be backed by an edge pointing from the
ancestor `path[i]` to the descendant `path[i + 1]`.

Shares nothing with the resolver; any list of ids can be checked.
"""

from collections.abc import Sequence

from threadgraph.models.conversation import Edge, Node


def is_valid_path(
    path: Sequence[str],
    nodes: Sequence[Node],
    edges: Sequence[Edge],
) -> bool:
    """Return True if `path` can be trusted as a root-to-node lineage.

    Rejects an empty path, duplicate ids, ids missing from `nodes`, and
    consecutive ids with no connecting edge.
    """
    if not path:
        return False

    # duplicates are the signature of a cycle
    if len(set(path)) != len(path):
        return False

    node_ids = {node.id for node in nodes}
    if any(node_id not in node_ids for node_id in path):
        return False

    links = {(edge.source_node_id, edge.target_node_id) for edge in edges}
    for i in range(len(path) - 1, 0, -1):
        if (path[i - 1], path[i]) not in links:
            return False

    return True
