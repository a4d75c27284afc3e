"""Token estimation and truncation of a transcript.

Token counts are a fixed approximation (four characters per token), not a
real tokenizer.
"""

import math
from collections.abc import Sequence

from threadgraph.models.context import ContextConfig, ContextMessage, TruncationStrategy


CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token cost of `text`: ceil(len / 4)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_context_tokens(messages: Sequence[ContextMessage]) -> int:
    return sum(estimate_tokens(message.content) for message in messages)


def _drop_index(count: int, strategy: TruncationStrategy) -> int:
    """Index of the message to remove next from a list of `count` messages."""
    if strategy == TruncationStrategy.head:
        return 0
    if strategy == TruncationStrategy.tail:
        return count - 1
    return count // 2


def truncate(
    messages: Sequence[ContextMessage],
    config: ContextConfig,
) -> list[ContextMessage]:
    """Cut `messages` down to the limits in `config`.

    First the message count is capped by keeping the most recent
    `max_messages` messages, whatever the strategy. Then, while the estimated
    token total is over `max_tokens`, one message at a time is dropped
    according to `truncation_strategy` (`smart` drops the middle one). At
    least one message always survives and the relative order is preserved.

    Returns a new list; `messages` is not modified.
    """
    result = list(messages)

    if len(result) > config.max_messages:
        result = result[-config.max_messages:]

    # running total, adjusted per removal
    total = estimate_context_tokens(result)
    while total > config.max_tokens and len(result) > 1:
        dropped = result.pop(_drop_index(len(result), config.truncation_strategy))
        total -= estimate_tokens(dropped.content)

    return result
