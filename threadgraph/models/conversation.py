"""Data models for branching conversations.

A conversation is stored as flat `nodes` and `edges` lists. Edges are the
authoritative adjacency; `parent_node_id` on a node is a convenience copy.
"""

from enum import Enum

from pydantic import BaseModel, Field


class NodeType(str, Enum):
    """Lifecycle state of a node as shown in the UI."""

    input = "input"
    loading = "loading"
    generating = "generating"
    streaming = "streaming"
    completed = "completed"


class EdgeType(str, Enum):
    """How an edge came to exist."""

    auto = "auto"
    manual = "manual"
    markdown = "markdown"  # branched from an element of a markdown response


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class Node(BaseModel):
    """A point in the conversation tree: one user message and one reply."""

    id: str
    conversation_id: str = ""
    type: NodeType = NodeType.input
    user_message: str = ""
    assistant_response: str = ""
    position: Position = Field(default_factory=Position)
    parent_node_id: str | None = None  # weak back-reference, may dangle
    created_at: str
    updated_at: str


class EdgeMetadata(BaseModel):
    markdown_element_id: str | None = None
    context_snippet: str | None = None  # excerpt that motivated a markdown branch


class Edge(BaseModel):
    """A directed connection from a parent node to a child node."""

    id: str
    conversation_id: str = ""
    source_node_id: str
    target_node_id: str
    type: EdgeType = EdgeType.auto
    created_at: str
    source_handle: str | None = None
    target_handle: str | None = None
    metadata: EdgeMetadata | None = None


class ConversationMetadata(BaseModel):
    node_count: int = 0
    last_active_node_id: str | None = None
    tags: list[str] = Field(default_factory=list)


class Conversation(BaseModel):
    """A conversation snapshot: owns its nodes and edges."""

    id: str
    title: str
    created_at: str
    updated_at: str
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    metadata: ConversationMetadata = Field(default_factory=ConversationMetadata)
