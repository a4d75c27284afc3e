"""Client SDK for the threadgraph server."""

from threadgraph.sdk.conversation_loader import ConversationLoader, ConversationLoaderError

__all__ = ["ConversationLoader", "ConversationLoaderError"]
