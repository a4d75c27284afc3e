"""API routes for chatting from a conversation node.

The history sent to the model is the context of the node (its lineage up to
the root), assembled from the stored snapshot. The answer is written back to
the node once it is complete.
"""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from threadgraph.config import ConfigurationError, validate_environment
from threadgraph.context.assembler import get_context
from threadgraph.graph.editing import update_node
from threadgraph.graph.queries import find_context_snippet, find_node
from threadgraph.llm.chat_service import ChatService, ChatServiceError
from threadgraph.models.chat import ChatRequest, ChatResponse, StreamEvent
from threadgraph.models.context import ChatMessage
from threadgraph.models.conversation import Conversation, NodeType
from threadgraph.utils.identifiers import utc_timestamp
from server.conversation_db import get_conversation as db_get_conversation
from server.conversation_db import upsert_conversation as db_upsert_conversation
from server.settings import get_chat_service, get_context_config

logger = logging.getLogger(__name__)

router = APIRouter()


def chat_service_dependency() -> ChatService:
    try:
        return get_chat_service()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


def _prepare(request: ChatRequest) -> tuple[list[ChatMessage], str | None]:
    """Load the conversation and assemble the history of the target node.

    Returns the history and the context snippet to send with the message: the
    one in the request, else the one stored on the node's incoming edge.
    An unknown conversation or node is a 404 here, so the history is never
    the empty context of an unknown id.
    """
    conversation = db_get_conversation(request.conversation_id)
    if not conversation:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {request.conversation_id}"
        )
    if not find_node(request.node_id, conversation.nodes):
        raise HTTPException(status_code=404, detail=f"Node not found: {request.node_id}")
    context = get_context(conversation, request.node_id, get_context_config())
    snippet = request.reference_context_snippet
    if snippet is None:
        snippet = find_context_snippet(request.node_id, conversation.edges)
    return context, snippet


def _save_answer(request: ChatRequest, answer: str) -> Conversation | None:
    """Store the exchange on its node; the snapshot is reloaded to keep concurrent edits."""
    conversation = db_get_conversation(request.conversation_id)
    if not conversation or not find_node(request.node_id, conversation.nodes):
        logger.warning(
            "Node %s of conversation %s disappeared before its answer was saved",
            request.node_id, request.conversation_id,
        )
        return None

    conversation = update_node(
        conversation,
        request.node_id,
        user_message=request.message,
        assistant_response=answer,
        type=NodeType.completed,
    )
    metadata = conversation.metadata.model_copy(update={"last_active_node_id": request.node_id})
    conversation = conversation.model_copy(update={"metadata": metadata})
    db_upsert_conversation(conversation)
    return conversation


@router.post("/chat")
async def chat(
    request: ChatRequest,
    service: ChatService = Depends(chat_service_dependency),
) -> ChatResponse:
    """answer a message using the history of `node_id`."""
    context, snippet = _prepare(request)

    try:
        completion = await service.send_message(request.message, context, snippet)
    except ChatServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))

    _save_answer(request, completion.content)
    return ChatResponse(
        content=completion.content,
        node_id=request.node_id,
        conversation_id=request.conversation_id,
        timestamp=utc_timestamp(),
        usage=completion.usage,
    )


def _sse(event: StreamEvent) -> str:
    return f"data: {event.model_dump_json()}\n\n"


def _error_event(request: ChatRequest, content: str, error: str) -> str:
    return _sse(StreamEvent(
        type="error",
        content=content,
        node_id=request.node_id,
        conversation_id=request.conversation_id,
        timestamp=utc_timestamp(),
        error=error,
    ))


@router.post("/chat/stream")
async def chat_stream(
    request: ChatRequest,
    service: ChatService = Depends(chat_service_dependency),
) -> StreamingResponse:
    """stream the answer as server-sent events carrying the accumulated text."""
    context, snippet = _prepare(request)

    async def events() -> AsyncIterator[str]:
        full_content = ""
        try:
            async for chunk in service.stream_message(request.message, context, snippet):
                if chunk.is_complete:
                    try:
                        _save_answer(request, full_content)
                    except Exception as e:
                        logger.exception(
                            "Failed to save streamed answer for node %s", request.node_id
                        )
                        yield _error_event(request, full_content, f"Failed to save response: {e}")
                        return
                    yield _sse(StreamEvent(
                        type="complete",
                        content=full_content,
                        node_id=request.node_id,
                        conversation_id=request.conversation_id,
                        chunk_index=chunk.chunk_index,
                        timestamp=chunk.timestamp,
                    ))
                    continue

                full_content += chunk.content
                yield _sse(StreamEvent(
                    type="chunk",
                    content=full_content,
                    node_id=request.node_id,
                    conversation_id=request.conversation_id,
                    chunk_index=chunk.chunk_index,
                    timestamp=chunk.timestamp,
                ))
        except ChatServiceError as e:
            yield _error_event(request, full_content, str(e))

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/chat/health")
def chat_health() -> dict:
    """check that the LLM environment is configured."""
    try:
        config = validate_environment()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "status": "healthy",
        "provider": config.provider,
        "model": config.model,
        "timestamp": utc_timestamp(),
    }
