"""Conversation loader SDK.

Fetches conversation snapshots from the threadgraph server and assembles
context locally, so a client can build model input with one call:

    loader = ConversationLoader("http://localhost:8000")
    history = loader.get_context(conversation_id, node_id)
"""

from __future__ import annotations

import httpx

from threadgraph.context.assembler import ContextWindow, build_context_window
from threadgraph.graph.path_resolver import PathResolution, resolve_path
from threadgraph.models.context import ChatMessage, ContextConfig
from threadgraph.models.conversation import Conversation


class ConversationLoaderError(Exception):
    """Exception raised when a conversation cannot be loaded."""
    pass


class ConversationLoader:
    """Load conversation snapshots from the server.

    Snapshots are cached per conversation id; pass `refresh=True` (or call
    `clear_cache`) after the conversation changed on the server.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Base URL of the threadgraph server
            timeout: HTTP request timeout in seconds
            transport: optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._cache: dict[str, Conversation] = {}

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def get_conversation(self, conversation_id: str, refresh: bool = False) -> Conversation:
        """Fetch a conversation snapshot.

        Raises:
            ConversationLoaderError: if the conversation does not exist or the
                server cannot be reached.
        """
        if not refresh and conversation_id in self._cache:
            return self._cache[conversation_id]

        url = f"{self.base_url}/api/conversations/{conversation_id}"
        try:
            with self._client() as client:
                response = client.get(url)

                if response.status_code == 404:
                    raise ConversationLoaderError(
                        f"Conversation not found: {conversation_id}"
                    )

                response.raise_for_status()
                conversation = Conversation.model_validate(response.json())
        except httpx.RequestError as e:
            raise ConversationLoaderError(
                f"Failed to connect to server at {self.base_url}: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise ConversationLoaderError(
                f"Server returned {e.response.status_code} for {conversation_id}"
            ) from e

        self._cache[conversation_id] = conversation
        return conversation

    def get_active_path(self, conversation_id: str, node_id: str) -> PathResolution:
        """Resolve the root-to-node path of `node_id` locally."""
        conversation = self.get_conversation(conversation_id)
        return resolve_path(node_id, conversation.nodes, conversation.edges)

    def get_context_window(
        self,
        conversation_id: str,
        node_id: str,
        config: ContextConfig | None = None,
        refresh: bool = False,
    ) -> ContextWindow:
        conversation = self.get_conversation(conversation_id, refresh=refresh)
        return build_context_window(conversation, node_id, config)

    def get_context(
        self,
        conversation_id: str,
        node_id: str,
        config: ContextConfig | None = None,
        refresh: bool = False,
    ) -> list[ChatMessage]:
        """Role/content history of `node_id`, assembled from a fresh or cached snapshot."""
        return self.get_context_window(
            conversation_id, node_id, config, refresh=refresh
        ).to_chat_messages()

    def clear_cache(self) -> None:
        """Clear the snapshot cache."""
        self._cache.clear()
