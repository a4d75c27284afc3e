"""Models for assembled conversation context.

ContextMessage is the unit produced by flattening a path; ChatMessage is the
role/content shape handed to a language model.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["user", "assistant"]


class TruncationStrategy(str, Enum):
    """Which message to drop while the context is over its token budget."""

    head = "head"  # oldest first
    tail = "tail"  # newest first
    smart = "smart"  # middle first, keeps earliest and latest context


class ContextMessage(BaseModel):
    role: Role
    content: str
    node_id: str
    timestamp: str


class ChatMessage(BaseModel):
    role: Role
    content: str


class ContextConfig(BaseModel):
    """Limits applied when truncating a transcript.

    Frozen; the server shares one instance across requests.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_tokens: int = Field(default=4000, gt=0)
    max_messages: int = Field(default=20, gt=0)
    truncation_strategy: TruncationStrategy = TruncationStrategy.head
