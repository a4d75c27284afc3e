"""Send a new user message together with a node's history to the model."""

import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from threadgraph.llm.clients import Completion, LLMClient
from threadgraph.models.context import ChatMessage
from threadgraph.utils.identifiers import utc_timestamp

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """
You are a helpful assistant.
Always respond using valid Markdown formatting.

Depending on the context of the conversation, you must use:
- Titles and subtitles (#, ##, ###) for clear structure.
- Bullet points or numbered lists for steps, processes, or summaries.
- Links in Markdown format [text](url) when referencing resources.
- Code blocks (triple backticks) for technical snippets or examples.
- Tables when comparing or organizing structured data.
Inline emphasis (*italic*, **bold**) for clarity and readability.

Your goal is to make answers structured, clear, and easy to read, leveraging Markdown to enhance understanding."""


class ChatServiceError(RuntimeError):
    """Raised when the language model call fails."""


@dataclass
class StreamChunk:
    """A piece of a streamed answer."""

    content: str  # delta, empty on the final chunk
    is_complete: bool
    chunk_index: int
    timestamp: str


def build_user_message(message: str, context_snippet: str | None = None) -> str:
    """Prefix the request with the snippet a markdown branch was created from."""
    if context_snippet:
        return (
            f"The current user request is related to this context: {context_snippet}"
            f" - user request: {message}"
        )
    return message


class ChatService:
    """Wraps an LLMClient with the system prompt and message layout."""

    def __init__(self, client: LLMClient, system_prompt: str = SYSTEM_PROMPT) -> None:
        self.client = client
        self.system_prompt = system_prompt

    def build_messages(
        self,
        message: str,
        context: Sequence[ChatMessage],
        context_snippet: str | None = None,
    ) -> list[dict[str, str]]:
        """System prompt, then the history, then the new user message."""
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend({"role": m.role, "content": m.content} for m in context)
        messages.append({
            "role": "user",
            "content": build_user_message(message, context_snippet),
        })
        return messages

    async def send_message(
        self,
        message: str,
        context: Sequence[ChatMessage],
        context_snippet: str | None = None,
    ) -> Completion:
        """Blocking completion.

        Raises:
            ChatServiceError: if the provider call fails.
        """
        messages = self.build_messages(message, context, context_snippet)
        try:
            return await self.client.complete(messages)
        except Exception as e:
            logger.error("Chat completion failed: %s", e)
            raise ChatServiceError(f"Chat service error: {e}") from e

    async def stream_message(
        self,
        message: str,
        context: Sequence[ChatMessage],
        context_snippet: str | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Yield deltas, then a final empty chunk with `is_complete=True`.

        Raises:
            ChatServiceError: if the provider call fails mid-stream.
        """
        messages = self.build_messages(message, context, context_snippet)
        chunk_index = 0
        try:
            async for delta in self.client.stream_complete(messages):
                yield StreamChunk(
                    content=delta,
                    is_complete=False,
                    chunk_index=chunk_index,
                    timestamp=utc_timestamp(),
                )
                chunk_index += 1
        except Exception as e:
            logger.error("Streaming completion failed after %d chunks: %s", chunk_index, e)
            raise ChatServiceError(f"Chat service error: {e}") from e

        yield StreamChunk(
            content="",
            is_complete=True,
            chunk_index=chunk_index,
            timestamp=utc_timestamp(),
        )
