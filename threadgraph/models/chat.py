"""Request/response models for chat completions over a conversation node."""

from typing import Literal

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Ask the model to answer `message` with the history of `node_id`."""

    conversation_id: str = Field(min_length=1)
    node_id: str = Field(min_length=1)
    message: str = Field(min_length=1)
    reference_context_snippet: str | None = None


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(BaseModel):
    content: str
    node_id: str
    conversation_id: str
    timestamp: str
    usage: TokenUsage | None = None


class StreamEvent(BaseModel):
    """One server-sent event of a streamed completion.

    `content` is the accumulated response so far, not the delta.
    """

    type: Literal["chunk", "complete", "error"]
    content: str = ""
    node_id: str
    conversation_id: str
    chunk_index: int = 0
    timestamp: str
    error: str | None = None
