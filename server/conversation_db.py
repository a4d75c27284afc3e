"""SQLite storage for conversation snapshots.

Each conversation is stored whole as one JSON document, the same shape the
traversal code reads.
"""

import os
import sqlite3
from pathlib import Path

from threadgraph.models.conversation import Conversation


DEFAULT_DB_PATH = Path(__file__).parent / "data" / "threadgraph.db"
CONVERSATION_DB_PATH = Path(os.getenv("CONVERSATION_DB_PATH", str(DEFAULT_DB_PATH)))


def _connect() -> sqlite3.Connection:
    CONVERSATION_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(CONVERSATION_DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    with _connect() as conn:
        conn.execute(
            """
            create table if not exists conversations (
                conversation_id text primary key,
                conversation_json text not null,
                title text not null,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            """
            create index if not exists idx_conversations_updated_at
            on conversations(updated_at)
            """
        )
        conn.commit()


def upsert_conversation(conversation: Conversation) -> None:
    """insert or replace a conversation snapshot."""
    with _connect() as conn:
        conn.execute(
            """
            insert into conversations (
                conversation_id, conversation_json, title, created_at, updated_at
            )
            values (?, ?, ?, ?, ?)
            on conflict(conversation_id) do update set
                conversation_json = excluded.conversation_json,
                title = excluded.title,
                updated_at = excluded.updated_at
            """,
            (
                conversation.id,
                conversation.model_dump_json(),
                conversation.title,
                conversation.created_at,
                conversation.updated_at,
            ),
        )
        conn.commit()


def get_conversation(conversation_id: str) -> Conversation | None:
    with _connect() as conn:
        row = conn.execute(
            "select conversation_json from conversations where conversation_id = ?",
            (conversation_id,),
        ).fetchone()
    if not row:
        return None
    return Conversation.model_validate_json(row["conversation_json"])


def list_conversations(limit: int = 100, offset: int = 0) -> list[Conversation]:
    with _connect() as conn:
        rows = conn.execute(
            """
            select conversation_json
            from conversations
            order by updated_at desc
            limit ? offset ?
            """,
            (limit, offset),
        ).fetchall()
    return [Conversation.model_validate_json(row["conversation_json"]) for row in rows]


def delete_conversation(conversation_id: str) -> bool:
    with _connect() as conn:
        cursor = conn.execute(
            "delete from conversations where conversation_id = ?",
            (conversation_id,),
        )
        conn.commit()
    return cursor.rowcount > 0


def delete_all_conversations() -> int:
    with _connect() as conn:
        cursor = conn.execute("delete from conversations")
        conn.commit()
    return cursor.rowcount
