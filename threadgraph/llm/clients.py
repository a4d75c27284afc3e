"""Language model clients.

Each client turns a list of `{"role", "content"}` dicts (system message
first, if any) into either one completion or a stream of text deltas.
Provider SDK clients are created lazily so importing this module never
needs an API key.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Protocol

from threadgraph.config import ConfigurationError, LLMConfig
from threadgraph.models.chat import TokenUsage


@dataclass
class Completion:
    """Text returned by a model plus token usage when the provider reports it."""

    content: str
    usage: TokenUsage | None = None


class LLMClient(Protocol):
    """Anything that can answer a chat transcript."""

    async def complete(self, messages: list[dict[str, str]]) -> Completion:
        """Return the full response for `messages`."""
        ...

    def stream_complete(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        """Yield the response for `messages` as text deltas."""
        ...


class OpenAIChatClient:
    """Chat completions through the OpenAI SDK (or a compatible base_url)."""

    def __init__(self, config: LLMConfig, client: Any | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            import openai
            self._client = openai.AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
            )
        return self._client

    async def complete(self, messages: list[dict[str, str]]) -> Completion:
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=messages,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise RuntimeError("No response received from OpenAI API")

        usage = response.usage
        return Completion(
            content=content,
            usage=TokenUsage(
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
            ) if usage else None,
        )

    async def stream_complete(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        stream = await self.client.chat.completions.create(
            model=self.config.model,
            messages=messages,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta


def _split_system(messages: list[dict[str, str]]) -> tuple[str | None, list[dict[str, str]]]:
    """Anthropic takes the system prompt as a separate argument."""
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    rest = [m for m in messages if m["role"] != "system"]
    return ("\n\n".join(system_parts) if system_parts else None), rest


class AnthropicChatClient:
    """Messages API through the Anthropic SDK."""

    def __init__(self, config: LLMConfig, client: Any | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.config.api_key)
        return self._client

    def _params(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        system, rest = _split_system(messages)
        params: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": rest,
        }
        if system:
            params["system"] = system
        return params

    async def complete(self, messages: list[dict[str, str]]) -> Completion:
        response = await self.client.messages.create(**self._params(messages))
        content = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        if not content:
            raise RuntimeError("No response received from Anthropic API")

        usage = response.usage
        return Completion(
            content=content,
            usage=TokenUsage(
                prompt_tokens=usage.input_tokens,
                completion_tokens=usage.output_tokens,
                total_tokens=usage.input_tokens + usage.output_tokens,
            ) if usage else None,
        )

    async def stream_complete(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        async with self.client.messages.stream(**self._params(messages)) as stream:
            async for text in stream.text_stream:
                if text:
                    yield text


def create_client(config: LLMConfig) -> LLMClient:
    """Client for `config.provider`."""
    if config.provider == "openai":
        return OpenAIChatClient(config)
    if config.provider == "anthropic":
        return AnthropicChatClient(config)
    raise ConfigurationError(f"Unsupported LLM provider: {config.provider}")
