"""Turn a resolved path into an ordered user/assistant transcript."""

from collections.abc import Sequence

from threadgraph.models.context import ContextMessage
from threadgraph.models.conversation import Node


def flatten(path: Sequence[str], nodes: Sequence[Node]) -> list[ContextMessage]:
    """Emit the messages of each node on `path`, in path order.

    A node contributes a user message (stamped with `created_at`) and then an
    assistant message (stamped with `updated_at`), each only when its text is
    not blank. Unknown ids and empty nodes contribute nothing.
    """
    by_id: dict[str, Node] = {}
    for node in nodes:
        by_id.setdefault(node.id, node)

    messages: list[ContextMessage] = []
    for node_id in path:
        node = by_id.get(node_id)
        if node is None:
            continue

        if node.user_message and node.user_message.strip():
            messages.append(ContextMessage(
                role="user",
                content=node.user_message,
                node_id=node.id,
                timestamp=node.created_at,
            ))

        if node.assistant_response and node.assistant_response.strip():
            messages.append(ContextMessage(
                role="assistant",
                content=node.assistant_response,
                node_id=node.id,
                timestamp=node.updated_at,
            ))

    return messages
