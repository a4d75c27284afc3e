"""Construction and mutation helpers for conversation snapshots.

Each mutation returns a new Conversation and leaves its argument untouched,
so a snapshot handed to the traversal code never changes underneath it.
"""

from typing import Any

from threadgraph.models.conversation import (
    Conversation,
    Edge,
    EdgeMetadata,
    EdgeType,
    Node,
    NodeType,
    Position,
)
from threadgraph.utils.identifiers import generate_edge_id, generate_node_id, utc_timestamp


# fields a node update is allowed to touch
NODE_UPDATE_FIELDS = {"type", "user_message", "assistant_response", "position"}


def create_input_node(
    conversation_id: str,
    position: Position | None = None,
    parent_node_id: str | None = None,
    user_message: str = "",
) -> Node:
    """A fresh, empty node waiting for user input."""
    now = utc_timestamp()
    return Node(
        id=generate_node_id(),
        conversation_id=conversation_id,
        type=NodeType.input,
        user_message=user_message,
        assistant_response="",
        position=position or Position(),
        parent_node_id=parent_node_id,
        created_at=now,
        updated_at=now,
    )


def create_edge(
    conversation_id: str,
    source_node_id: str,
    target_node_id: str,
    edge_type: EdgeType = EdgeType.auto,
    context_snippet: str | None = None,
    markdown_element_id: str | None = None,
    source_handle: str | None = None,
    target_handle: str | None = None,
) -> Edge:
    """An edge from a parent node to its child."""
    metadata = None
    if context_snippet is not None or markdown_element_id is not None:
        metadata = EdgeMetadata(
            context_snippet=context_snippet,
            markdown_element_id=markdown_element_id,
        )
    return Edge(
        id=generate_edge_id(),
        conversation_id=conversation_id,
        source_node_id=source_node_id,
        target_node_id=target_node_id,
        type=edge_type,
        created_at=utc_timestamp(),
        source_handle=source_handle,
        target_handle=target_handle,
        metadata=metadata,
    )


def _touch(conversation: Conversation, **changes: Any) -> Conversation:
    updated = conversation.model_copy(update={**changes, "updated_at": utc_timestamp()})
    metadata = updated.metadata.model_copy(update={"node_count": len(updated.nodes)})
    return updated.model_copy(update={"metadata": metadata})


def add_node(conversation: Conversation, node: Node) -> Conversation:
    """Append a node and make it the last active one."""
    updated = _touch(conversation, nodes=[*conversation.nodes, node])
    metadata = updated.metadata.model_copy(update={"last_active_node_id": node.id})
    return updated.model_copy(update={"metadata": metadata})


def add_edge(conversation: Conversation, edge: Edge) -> Conversation:
    return _touch(conversation, edges=[*conversation.edges, edge])


def update_node(conversation: Conversation, node_id: str, **changes: Any) -> Conversation:
    """Replace fields of one node.

    Raises:
        KeyError: if the node is not in the conversation.
        ValueError: if a field outside NODE_UPDATE_FIELDS is given.
    """
    unknown = set(changes) - NODE_UPDATE_FIELDS
    if unknown:
        raise ValueError(f"cannot update node fields: {sorted(unknown)}")

    nodes: list[Node] = []
    found = False
    for node in conversation.nodes:
        if node.id == node_id and not found:
            node = Node.model_validate({
                **node.model_dump(),
                **changes,
                "updated_at": utc_timestamp(),
            })
            found = True
        nodes.append(node)
    if not found:
        raise KeyError(node_id)
    return _touch(conversation, nodes=nodes)


def delete_node(conversation: Conversation, node_id: str) -> Conversation:
    """Remove a node together with every edge touching it.

    Raises:
        KeyError: if the node is not in the conversation.
    """
    if not any(node.id == node_id for node in conversation.nodes):
        raise KeyError(node_id)

    nodes = [node for node in conversation.nodes if node.id != node_id]
    edges = [
        edge for edge in conversation.edges
        if edge.source_node_id != node_id and edge.target_node_id != node_id
    ]
    updated = _touch(conversation, nodes=nodes, edges=edges)
    if updated.metadata.last_active_node_id == node_id:
        metadata = updated.metadata.model_copy(update={"last_active_node_id": None})
        updated = updated.model_copy(update={"metadata": metadata})
    return updated
