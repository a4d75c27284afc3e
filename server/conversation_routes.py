"""API routes for conversations, their nodes and edges, and derived paths."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from threadgraph.context.assembler import build_context_window
from threadgraph.graph.editing import (
    add_edge,
    add_node,
    create_edge,
    create_input_node,
    delete_node,
    update_node,
)
from threadgraph.graph.path_resolver import resolve_path
from threadgraph.graph.path_validator import is_valid_path
from threadgraph.graph.queries import find_node, get_active_edges
from threadgraph.models.context import ContextConfig, ContextMessage
from threadgraph.models.conversation import (
    Conversation,
    ConversationMetadata,
    EdgeType,
    NodeType,
    Position,
)
from threadgraph.utils.identifiers import generate_conversation_id, utc_timestamp
from server.conversation_db import (
    delete_all_conversations as db_delete_all_conversations,
    delete_conversation as db_delete_conversation,
    get_conversation as db_get_conversation,
    list_conversations as db_list_conversations,
    upsert_conversation as db_upsert_conversation,
)
from server.settings import get_context_config

router = APIRouter()


class CreateConversationRequest(BaseModel):
    title: str
    tags: list[str] | None = None


class UpdateConversationRequest(BaseModel):
    title: str | None = None
    tags: list[str] | None = None


class CreateNodeRequest(BaseModel):
    """request body for a new node, optionally branching from a parent."""

    parent_node_id: str | None = None
    user_message: str = ""
    position: Position | None = None
    edge_type: EdgeType = EdgeType.auto
    context_snippet: str | None = None  # text of the markdown element branched from
    markdown_element_id: str | None = None
    source_handle: str | None = None
    target_handle: str | None = None


class UpdateNodeRequest(BaseModel):
    type: NodeType | None = None
    user_message: str | None = None
    assistant_response: str | None = None
    position: Position | None = None


class CreateEdgeRequest(BaseModel):
    source_node_id: str
    target_node_id: str
    type: EdgeType = EdgeType.manual
    context_snippet: str | None = None
    markdown_element_id: str | None = None
    source_handle: str | None = None
    target_handle: str | None = None


class AnomalyOut(BaseModel):
    code: str
    node_id: str
    detail: str


class ActivePathResponse(BaseModel):
    node_id: str
    path: list[str]
    active_edge_ids: list[str]
    is_valid: bool
    anomalies: list[AnomalyOut]


class ContextResponse(BaseModel):
    node_id: str
    path: list[str]
    is_valid_path: bool
    messages: list[ContextMessage]
    total_tokens: int
    original_message_count: int
    truncated_count: int
    is_complete: bool
    config: ContextConfig


def _load(conversation_id: str) -> Conversation:
    conversation = db_get_conversation(conversation_id)
    if not conversation:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}"
        )
    return conversation


# --- Conversations ---


@router.get("/conversations")
def list_conversations(limit: int = 100, offset: int = 0) -> list[Conversation]:
    """list conversations, most recently updated first."""
    return db_list_conversations(limit=limit, offset=offset)


@router.post("/conversations")
def create_conversation(request: CreateConversationRequest) -> Conversation:
    """create an empty conversation."""
    title = request.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required and cannot be empty")

    now = utc_timestamp()
    conversation = Conversation(
        id=generate_conversation_id(),
        title=title,
        created_at=now,
        updated_at=now,
        metadata=ConversationMetadata(tags=request.tags or []),
    )
    db_upsert_conversation(conversation)
    return conversation


@router.delete("/conversations")
def delete_all_conversations() -> dict:
    return {"deleted": db_delete_all_conversations()}


@router.get("/conversations/{conversation_id}")
def get_conversation(conversation_id: str) -> Conversation:
    return _load(conversation_id)


@router.patch("/conversations/{conversation_id}")
def update_conversation(conversation_id: str, request: UpdateConversationRequest) -> Conversation:
    """rename a conversation or replace its tags."""
    conversation = _load(conversation_id)

    changes: dict = {"updated_at": utc_timestamp()}
    if request.title is not None:
        title = request.title.strip()
        if not title:
            raise HTTPException(status_code=400, detail="Title must be a non-empty string")
        changes["title"] = title
    if request.tags is not None:
        changes["metadata"] = conversation.metadata.model_copy(update={"tags": request.tags})

    conversation = conversation.model_copy(update=changes)
    db_upsert_conversation(conversation)
    return conversation


@router.delete("/conversations/{conversation_id}")
def delete_conversation(conversation_id: str) -> dict:
    if not db_delete_conversation(conversation_id):
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}"
        )
    return {"deleted": conversation_id}


# --- Nodes and edges ---


@router.post("/conversations/{conversation_id}/nodes")
def create_node(conversation_id: str, request: CreateNodeRequest) -> Conversation:
    """add a node; with a parent this creates a branch (node plus edge)."""
    conversation = _load(conversation_id)

    if request.parent_node_id and not find_node(request.parent_node_id, conversation.nodes):
        raise HTTPException(
            status_code=404, detail=f"Parent node not found: {request.parent_node_id}"
        )

    node = create_input_node(
        conversation_id,
        position=request.position,
        parent_node_id=request.parent_node_id,
        user_message=request.user_message,
    )
    conversation = add_node(conversation, node)

    if request.parent_node_id:
        edge = create_edge(
            conversation_id,
            request.parent_node_id,
            node.id,
            edge_type=request.edge_type,
            context_snippet=request.context_snippet,
            markdown_element_id=request.markdown_element_id,
            source_handle=request.source_handle,
            target_handle=request.target_handle,
        )
        conversation = add_edge(conversation, edge)

    db_upsert_conversation(conversation)
    return conversation


@router.patch("/conversations/{conversation_id}/nodes/{node_id}")
def patch_node(conversation_id: str, node_id: str, request: UpdateNodeRequest) -> Conversation:
    """update the content, state or position of a node."""
    conversation = _load(conversation_id)
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    try:
        conversation = update_node(conversation, node_id, **changes)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")

    db_upsert_conversation(conversation)
    return conversation


@router.delete("/conversations/{conversation_id}/nodes/{node_id}")
def remove_node(conversation_id: str, node_id: str) -> Conversation:
    """delete a node and every edge touching it."""
    conversation = _load(conversation_id)
    try:
        conversation = delete_node(conversation, node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")

    db_upsert_conversation(conversation)
    return conversation


@router.post("/conversations/{conversation_id}/edges")
def create_conversation_edge(conversation_id: str, request: CreateEdgeRequest) -> Conversation:
    conversation = _load(conversation_id)
    for node_id in (request.source_node_id, request.target_node_id):
        if not find_node(node_id, conversation.nodes):
            raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")

    edge = create_edge(
        conversation_id,
        request.source_node_id,
        request.target_node_id,
        edge_type=request.type,
        context_snippet=request.context_snippet,
        markdown_element_id=request.markdown_element_id,
        source_handle=request.source_handle,
        target_handle=request.target_handle,
    )
    conversation = add_edge(conversation, edge)
    db_upsert_conversation(conversation)
    return conversation


# --- Derived views ---


@router.get("/conversations/{conversation_id}/path/{node_id}")
def get_active_path(conversation_id: str, node_id: str) -> ActivePathResponse:
    """the root-to-node lineage used to highlight the active branch."""
    conversation = _load(conversation_id)
    resolution = resolve_path(node_id, conversation.nodes, conversation.edges)
    return ActivePathResponse(
        node_id=node_id,
        path=resolution.path,
        active_edge_ids=get_active_edges(resolution.path, conversation.edges),
        is_valid=is_valid_path(resolution.path, conversation.nodes, conversation.edges),
        anomalies=[
            AnomalyOut(code=a.code.value, node_id=a.node_id, detail=a.detail)
            for a in resolution.anomalies
        ],
    )


@router.get("/conversations/{conversation_id}/context/{node_id}")
def get_node_context(conversation_id: str, node_id: str) -> ContextResponse:
    """the history that would be sent to the model for this node."""
    conversation = _load(conversation_id)
    config = get_context_config()
    window = build_context_window(conversation, node_id, config)
    return ContextResponse(
        node_id=node_id,
        path=window.path,
        is_valid_path=window.is_valid_path,
        messages=window.messages,
        total_tokens=window.total_tokens,
        original_message_count=window.original_message_count,
        truncated_count=window.truncated_count,
        is_complete=window.is_complete,
        config=config,
    )
