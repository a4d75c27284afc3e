"""ID generation and timestamp utilities."""

import uuid
from datetime import datetime, timezone


def generate_conversation_id() -> str:
    """Generate a unique conversation ID (UUID4)."""
    return str(uuid.uuid4())


def generate_node_id() -> str:
    """Generate a node ID, e.g. `node_3f2a...`."""
    return f"node_{uuid.uuid4().hex[:16]}"


def generate_edge_id() -> str:
    """Generate an edge ID, e.g. `edge_9c1d...`."""
    return f"edge_{uuid.uuid4().hex[:16]}"


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
