"""End-to-end tests for the HTTP API with a temporary database and a fake model."""

import json
import sqlite3

import pytest
from fastapi.testclient import TestClient

from server import chat_routes, conversation_db, settings
from server.app import app
from server.chat_routes import chat_service_dependency
from threadgraph.llm.chat_service import ChatService
from threadgraph.llm.clients import Completion
from threadgraph.models.chat import TokenUsage


class FakeLLMClient:
    """Answers every request with the same text and remembers what it was sent."""

    def __init__(self, reply: str = "Hello there", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.requests: list[list[dict]] = []

    async def complete(self, messages):
        self.requests.append(messages)
        if self.fail:
            raise RuntimeError("rate limited")
        return Completion(content=self.reply, usage=TokenUsage(total_tokens=3))

    async def stream_complete(self, messages):
        self.requests.append(messages)
        for word in self.reply.split(" "):
            yield word + " "
        if self.fail:
            raise RuntimeError("stream dropped")


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def client(tmp_path, monkeypatch, llm):
    monkeypatch.setattr(conversation_db, "CONVERSATION_DB_PATH", tmp_path / "test.db")
    for name in ("CONTEXT_MAX_TOKENS", "CONTEXT_MAX_MESSAGES", "CONTEXT_TRUNCATION_STRATEGY"):
        monkeypatch.delenv(name, raising=False)
    settings.reset()

    app.dependency_overrides[chat_service_dependency] = lambda: ChatService(llm)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    settings.reset()


def _create_conversation(client, title="Python questions") -> dict:
    response = client.post("/api/conversations", json={"title": title})
    assert response.status_code == 200
    return response.json()


def _add_node(client, conversation_id, **body) -> dict:
    response = client.post(f"/api/conversations/{conversation_id}/nodes", json=body)
    assert response.status_code == 200
    return response.json()


def _answer(client, conversation_id, node_id, user, assistant) -> dict:
    response = client.patch(
        f"/api/conversations/{conversation_id}/nodes/{node_id}",
        json={"user_message": user, "assistant_response": assistant, "type": "completed"},
    )
    assert response.status_code == 200
    return response.json()


class TestConversations:

    def test_root(self, client):
        body = client.get("/").json()

        assert body["status"] == "ok"
        assert body["endpoints"]["chat"] == "/api/chat"

    def test_create_and_get(self, client):
        created = _create_conversation(client)

        fetched = client.get(f"/api/conversations/{created['id']}").json()

        assert fetched["title"] == "Python questions"
        assert fetched["nodes"] == []
        assert fetched["edges"] == []

    def test_blank_title_rejected(self, client):
        response = client.post("/api/conversations", json={"title": "   "})

        assert response.status_code == 400
        assert response.json()["detail"] == "Title is required and cannot be empty"

    def test_missing_conversation(self, client):
        response = client.get("/api/conversations/nope")

        assert response.status_code == 404
        assert response.json()["detail"] == "Conversation not found: nope"

    def test_rename_and_tag(self, client):
        created = _create_conversation(client)

        updated = client.patch(
            f"/api/conversations/{created['id']}",
            json={"title": "Renamed", "tags": ["python"]},
        ).json()

        assert updated["title"] == "Renamed"
        assert updated["metadata"]["tags"] == ["python"]

    def test_list_and_delete(self, client):
        first = _create_conversation(client, "first")
        _create_conversation(client, "second")

        assert len(client.get("/api/conversations").json()) == 2

        assert client.delete(f"/api/conversations/{first['id']}").json() == {"deleted": first["id"]}
        assert client.delete(f"/api/conversations/{first['id']}").status_code == 404
        assert client.delete("/api/conversations").json() == {"deleted": 1}
        assert client.get("/api/conversations").json() == []


class TestNodesAndEdges:

    def test_branch_creates_node_and_edge(self, client):
        conversation_id = _create_conversation(client)["id"]
        root = _add_node(client, conversation_id)["nodes"][0]

        conversation = _add_node(
            client,
            conversation_id,
            parent_node_id=root["id"],
            edge_type="markdown",
            context_snippet="def f(): pass",
            markdown_element_id="code-1",
        )

        child = conversation["nodes"][1]
        edge = conversation["edges"][0]
        assert child["type"] == "input"
        assert child["parent_node_id"] == root["id"]
        assert edge["source_node_id"] == root["id"]
        assert edge["target_node_id"] == child["id"]
        assert edge["type"] == "markdown"
        assert edge["metadata"]["context_snippet"] == "def f(): pass"
        assert conversation["metadata"]["node_count"] == 2
        assert conversation["metadata"]["last_active_node_id"] == child["id"]

    def test_unknown_parent(self, client):
        conversation_id = _create_conversation(client)["id"]

        response = client.post(
            f"/api/conversations/{conversation_id}/nodes", json={"parent_node_id": "ghost"}
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Parent node not found: ghost"

    def test_update_node(self, client):
        conversation_id = _create_conversation(client)["id"]
        node_id = _add_node(client, conversation_id)["nodes"][0]["id"]

        conversation = client.patch(
            f"/api/conversations/{conversation_id}/nodes/{node_id}",
            json={"position": {"x": 10, "y": 20}},
        ).json()

        assert conversation["nodes"][0]["position"] == {"x": 10, "y": 20}
        assert conversation["nodes"][0]["type"] == "input"

    def test_update_missing_node(self, client):
        conversation_id = _create_conversation(client)["id"]

        response = client.patch(
            f"/api/conversations/{conversation_id}/nodes/ghost", json={"user_message": "hi"}
        )

        assert response.status_code == 404

    def test_delete_node_cascades_edges(self, client):
        conversation_id = _create_conversation(client)["id"]
        root_id = _add_node(client, conversation_id)["nodes"][0]["id"]
        _add_node(client, conversation_id, parent_node_id=root_id)

        conversation = client.delete(
            f"/api/conversations/{conversation_id}/nodes/{root_id}"
        ).json()

        assert len(conversation["nodes"]) == 1
        assert conversation["nodes"][0]["id"] != root_id
        assert conversation["edges"] == []

    def test_manual_edge(self, client):
        conversation_id = _create_conversation(client)["id"]
        _add_node(client, conversation_id)
        nodes = _add_node(client, conversation_id)["nodes"]

        conversation = client.post(
            f"/api/conversations/{conversation_id}/edges",
            json={"source_node_id": nodes[0]["id"], "target_node_id": nodes[1]["id"]},
        ).json()

        assert conversation["edges"][0]["type"] == "manual"

    def test_edge_to_missing_node(self, client):
        conversation_id = _create_conversation(client)["id"]
        node_id = _add_node(client, conversation_id)["nodes"][0]["id"]

        response = client.post(
            f"/api/conversations/{conversation_id}/edges",
            json={"source_node_id": node_id, "target_node_id": "ghost"},
        )

        assert response.status_code == 404


class TestDerivedViews:

    def _tree(self, client):
        """root with two answered branches, a and b."""
        conversation_id = _create_conversation(client)["id"]
        root_id = _add_node(client, conversation_id)["nodes"][0]["id"]
        _answer(client, conversation_id, root_id, "What is Python?", "A language.")
        a_id = _add_node(client, conversation_id, parent_node_id=root_id)["nodes"][-1]["id"]
        _answer(client, conversation_id, a_id, "Loops?", "for and while.")
        b_id = _add_node(client, conversation_id, parent_node_id=root_id)["nodes"][-1]["id"]
        _answer(client, conversation_id, b_id, "Creator?", "Guido.")
        return conversation_id, root_id, a_id, b_id

    def test_active_path(self, client):
        conversation_id, root_id, a_id, _ = self._tree(client)

        body = client.get(f"/api/conversations/{conversation_id}/path/{a_id}").json()

        assert body["path"] == [root_id, a_id]
        assert body["is_valid"] is True
        assert len(body["active_edge_ids"]) == 1
        assert body["anomalies"] == []

    def test_unknown_node_path(self, client):
        conversation_id, *_ = self._tree(client)

        body = client.get(f"/api/conversations/{conversation_id}/path/ghost").json()

        assert body["path"] == ["ghost"]
        assert body["is_valid"] is False
        assert body["anomalies"][0]["code"] == "unknown_target"

    def test_context_excludes_sibling_branch(self, client):
        conversation_id, _, _, b_id = self._tree(client)

        body = client.get(f"/api/conversations/{conversation_id}/context/{b_id}").json()

        assert [m["content"] for m in body["messages"]] == [
            "What is Python?", "A language.", "Creator?", "Guido.",
        ]
        assert body["is_valid_path"] is True
        assert body["is_complete"] is True
        assert body["config"]["max_messages"] == 20

    def test_context_respects_environment_limits(self, client, monkeypatch):
        conversation_id, _, a_id, _ = self._tree(client)
        monkeypatch.setenv("CONTEXT_MAX_MESSAGES", "2")
        settings.reset()

        body = client.get(f"/api/conversations/{conversation_id}/context/{a_id}").json()

        assert [m["content"] for m in body["messages"]] == ["Loops?", "for and while."]
        assert body["truncated_count"] == 2


class TestChat:

    def _branch(self, client):
        conversation_id = _create_conversation(client)["id"]
        root_id = _add_node(client, conversation_id)["nodes"][0]["id"]
        _answer(client, conversation_id, root_id, "What is Python?", "A language.")
        child_id = _add_node(client, conversation_id, parent_node_id=root_id)["nodes"][-1]["id"]
        return conversation_id, child_id

    def test_chat_sends_lineage_and_saves_answer(self, client, llm):
        conversation_id, child_id = self._branch(client)

        response = client.post("/api/chat", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "Is it fast?",
        })

        assert response.status_code == 200
        assert response.json()["content"] == "Hello there"
        assert response.json()["usage"]["total_tokens"] == 3

        sent = llm.requests[0]
        assert sent[0]["role"] == "system"
        assert [m["content"] for m in sent[1:]] == ["What is Python?", "A language.", "Is it fast?"]

        conversation = client.get(f"/api/conversations/{conversation_id}").json()
        node = next(n for n in conversation["nodes"] if n["id"] == child_id)
        assert node["user_message"] == "Is it fast?"
        assert node["assistant_response"] == "Hello there"
        assert node["type"] == "completed"
        assert conversation["metadata"]["last_active_node_id"] == child_id

    def test_reference_snippet_is_included(self, client, llm):
        conversation_id, child_id = self._branch(client)

        client.post("/api/chat", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "Explain",
            "reference_context_snippet": "print(1)",
        })

        assert "print(1)" in llm.requests[0][-1]["content"]

    def test_chat_unknown_node(self, client):
        conversation_id, _ = self._branch(client)

        response = client.post("/api/chat", json={
            "conversation_id": conversation_id,
            "node_id": "ghost",
            "message": "hi",
        })

        assert response.status_code == 404

    def test_empty_message_rejected(self, client):
        conversation_id, child_id = self._branch(client)

        response = client.post("/api/chat", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "",
        })

        assert response.status_code == 422

    def test_provider_failure(self, client, llm):
        conversation_id, child_id = self._branch(client)
        llm.fail = True

        response = client.post("/api/chat", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "hi",
        })

        assert response.status_code == 502
        assert "rate limited" in response.json()["detail"]

    def test_stream(self, client):
        conversation_id, child_id = self._branch(client)

        response = client.post("/api/chat/stream", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "Is it fast?",
        })

        assert response.headers["content-type"].startswith("text/event-stream")
        events = [
            json.loads(line[len("data: "):])
            for line in response.text.splitlines()
            if line.startswith("data: ")
        ]
        assert [e["type"] for e in events] == ["chunk", "chunk", "complete"]
        assert events[0]["content"] == "Hello "
        assert events[1]["content"] == "Hello there "
        assert events[-1]["content"] == "Hello there "

        conversation = client.get(f"/api/conversations/{conversation_id}").json()
        node = next(n for n in conversation["nodes"] if n["id"] == child_id)
        assert node["assistant_response"] == "Hello there "

    def test_stream_error_event(self, client, llm):
        conversation_id, child_id = self._branch(client)
        llm.fail = True

        response = client.post("/api/chat/stream", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "hi",
        })

        events = [
            json.loads(line[len("data: "):])
            for line in response.text.splitlines()
            if line.startswith("data: ")
        ]
        assert events[-1]["type"] == "error"
        assert "stream dropped" in events[-1]["error"]

        conversation = client.get(f"/api/conversations/{conversation_id}").json()
        node = next(n for n in conversation["nodes"] if n["id"] == child_id)
        assert node["assistant_response"] == ""

    def _markdown_branch(self, client, snippet="SNIPPET-X"):
        conversation_id = _create_conversation(client)["id"]
        root_id = _add_node(client, conversation_id)["nodes"][0]["id"]
        _answer(client, conversation_id, root_id, "Show code", "```python\nx = 1\n```")
        child_id = _add_node(
            client,
            conversation_id,
            parent_node_id=root_id,
            edge_type="markdown",
            context_snippet=snippet,
            markdown_element_id="code-1",
        )["nodes"][-1]["id"]
        return conversation_id, child_id

    def test_stored_snippet_used_when_request_has_none(self, client, llm):
        conversation_id, child_id = self._markdown_branch(client)

        client.post("/api/chat", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "explain",
        })

        sent = llm.requests[0][-1]["content"]
        assert "SNIPPET-X" in sent
        assert sent.endswith("user request: explain")

    def test_request_snippet_takes_precedence(self, client, llm):
        conversation_id, child_id = self._markdown_branch(client)

        client.post("/api/chat", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "explain",
            "reference_context_snippet": "from request",
        })

        sent = llm.requests[0][-1]["content"]
        assert "from request" in sent
        assert "SNIPPET-X" not in sent

    def test_stream_uses_stored_snippet(self, client, llm):
        conversation_id, child_id = self._markdown_branch(client)

        client.post("/api/chat/stream", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "explain",
        })

        assert "SNIPPET-X" in llm.requests[0][-1]["content"]

    def test_stream_save_failure_becomes_error_event(self, client, monkeypatch):
        conversation_id, child_id = self._branch(client)

        def locked(conversation):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(chat_routes, "db_upsert_conversation", locked)

        response = client.post("/api/chat/stream", json={
            "conversation_id": conversation_id,
            "node_id": child_id,
            "message": "hi",
        })

        events = [
            json.loads(line[len("data: "):])
            for line in response.text.splitlines()
            if line.startswith("data: ")
        ]
        assert response.status_code == 200
        assert [e["type"] for e in events] == ["chunk", "chunk", "error"]
        assert "database is locked" in events[-1]["error"]
        assert events[-1]["content"] == "Hello there "


class TestHealth:

    def test_healthy(self, client, monkeypatch):
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        body = client.get("/api/chat/health").json()

        assert body["status"] == "healthy"
        assert body["provider"] == "openai"

    def test_unconfigured(self, client, monkeypatch):
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        response = client.get("/api/chat/health")

        assert response.status_code == 500
        assert "Environment validation failed" in response.json()["detail"]
