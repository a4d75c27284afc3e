"""Assemble the history sent to a language model for one conversation node.

Pipeline: resolve the path to the root, check it with the validator, flatten
it into messages, truncate to the token budget. Graph anomalies never raise;
the worst outcome is a shorter (or empty) context.
"""

import logging
from dataclasses import dataclass, field

from threadgraph.context.budget import estimate_context_tokens, truncate
from threadgraph.context.flattener import flatten
from threadgraph.graph.index import GraphIndex
from threadgraph.graph.path_resolver import PathAnomaly, resolve_path
from threadgraph.graph.path_validator import is_valid_path
from threadgraph.models.context import ChatMessage, ContextConfig, ContextMessage
from threadgraph.models.conversation import Conversation

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_CONFIG = ContextConfig()


@dataclass
class ContextWindow:
    """The context of one node plus bookkeeping about how it was built."""

    node_id: str
    path: list[str]
    is_valid_path: bool
    messages: list[ContextMessage] = field(default_factory=list)
    total_tokens: int = 0
    original_message_count: int = 0
    anomalies: list[PathAnomaly] = field(default_factory=list)

    @property
    def truncated_count(self) -> int:
        return self.original_message_count - len(self.messages)

    @property
    def is_complete(self) -> bool:
        """True when nothing was dropped to fit the budget."""
        return self.truncated_count == 0

    def to_chat_messages(self) -> list[ChatMessage]:
        return [
            ChatMessage(role=message.role, content=message.content)
            for message in self.messages
        ]


def build_context_window(
    conversation: Conversation,
    node_id: str,
    config: ContextConfig | None = None,
    validate: bool = True,
) -> ContextWindow:
    """Resolve, check, flatten and truncate the history of `node_id`.

    Args:
        conversation: snapshot to read; it is not modified.
        node_id: node whose lineage forms the context.
        config: truncation limits, defaults to ContextConfig().
        validate: when True an invalid path yields an empty window instead
            of a partially trusted one.
    """
    config = config or DEFAULT_CONTEXT_CONFIG
    nodes, edges = conversation.nodes, conversation.edges

    index = GraphIndex(nodes, edges)
    resolution = resolve_path(node_id, nodes, edges, index=index)
    for anomaly in resolution.anomalies:
        logger.warning(
            "Conversation %s: %s at node %s (%s)",
            conversation.id, anomaly.code.value, anomaly.node_id, anomaly.detail,
        )

    path_ok = is_valid_path(resolution.path, nodes, edges)
    window = ContextWindow(
        node_id=node_id,
        path=resolution.path,
        is_valid_path=path_ok,
        anomalies=resolution.anomalies,
    )

    if validate and not path_ok:
        logger.warning(
            "Conversation %s: path to node %s failed validation, sending no history",
            conversation.id, node_id,
        )
        return window

    messages = flatten(resolution.path, nodes)
    window.original_message_count = len(messages)
    window.messages = truncate(messages, config)
    window.total_tokens = estimate_context_tokens(window.messages)

    if window.truncated_count:
        logger.debug(
            "Conversation %s: dropped %d of %d messages for node %s (%s)",
            conversation.id, window.truncated_count, len(messages), node_id,
            config.truncation_strategy.value,
        )
    return window


def get_context(
    conversation: Conversation,
    node_id: str,
    config: ContextConfig | None = None,
    validate: bool = True,
) -> list[ChatMessage]:
    """Role/content history for `node_id`, ready to send to a model.

    An unknown node id yields an empty list.
    """
    return build_context_window(conversation, node_id, config, validate).to_chat_messages()
