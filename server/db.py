"""database initialization helpers."""

from server.conversation_db import init_db as init_conversation_db


def init_all() -> None:
    """initialize all sqlite tables."""
    init_conversation_db()
