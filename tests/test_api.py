"""Tests for the FastAPI chunking service."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from deployment.fastapi_app import (
    app,
    get_count_tokens,
    get_shared_embedding_client,
    run_until_disconnect,
)
from shared.config import settings
from shared.errors import PipelineCancelledError

SMALL_LIMITS = {"token_limit": 20, "batch_token_limit": 20}


@pytest.fixture
def make_client(word_counter):
    """Build a TestClient backed by the given fake embedding client."""

    def _make(embedding_client):
        app.dependency_overrides[get_shared_embedding_client] = lambda: embedding_client
        app.dependency_overrides[get_count_tokens] = lambda: word_counter
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


class TestHealth:
    def test_debug_follows_settings(self) -> None:
        assert app.debug is settings.DEBUG

    def test_health(self, make_client, keyword_client) -> None:
        response = make_client(keyword_client).get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["embedding_provider"]
        assert "X-Request-ID" in response.headers


class TestChunkEndpoint:
    """Test POST /chunk."""

    def test_semantic_chunking(self, make_client, keyword_client, topic_text) -> None:
        client = make_client(keyword_client)

        response = client.post(
            "/chunk",
            json={"pages": [topic_text], "doc_id": "doc_1", "normalize": False, **SMALL_LIMITS},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["doc_id"] == "doc_1"
        assert data["mode"] == "semantic"
        assert data["chunk_count"] == 2
        assert [c["id"] for c in data["chunks"]] == ["doc_1#chunk_0", "doc_1#chunk_1"]
        assert data["chunks"][0]["text"].startswith("The cat sat on the mat.")

    def test_sentence_mode(self, make_client, keyword_client, topic_text) -> None:
        client = make_client(keyword_client)

        response = client.post(
            "/chunk",
            json={"pages": [topic_text], "mode": "sentence", "normalize": False, **SMALL_LIMITS},
        )

        assert response.status_code == 200
        assert response.json()["chunks"][0]["text"].startswith("The cat sat on the mat. Stock")
        assert keyword_client.calls == []

    def test_generated_doc_id(self, make_client, keyword_client) -> None:
        response = make_client(keyword_client).post(
            "/chunk", json={"pages": ["Just one sentence."], "normalize": False}
        )

        assert response.status_code == 200
        assert response.json()["doc_id"].startswith("doc_")

    def test_empty_document(self, make_client, keyword_client) -> None:
        response = make_client(keyword_client).post("/chunk", json={"pages": [""]})

        assert response.status_code == 200
        assert response.json()["chunk_count"] == 0

    def test_inconsistent_overrides(self, make_client, keyword_client, topic_text) -> None:
        response = make_client(keyword_client).post(
            "/chunk",
            json={"pages": [topic_text], "token_limit": 500, "batch_token_limit": 100},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid chunking configuration"
        assert keyword_client.calls == []

    def test_out_of_range_threshold(self, make_client, keyword_client, topic_text) -> None:
        response = make_client(keyword_client).post(
            "/chunk", json={"pages": [topic_text], "similarity_threshold": 1.5}
        )
        assert response.status_code == 422

    def test_provider_failure(self, make_client, failing_client, topic_text) -> None:
        response = make_client(failing_client).post(
            "/chunk", json={"pages": [topic_text], "normalize": False, **SMALL_LIMITS}
        )

        assert response.status_code == 502
        assert "quota exceeded" in response.json()["detail"]


class FakeRequest:
    """Stands in for a Starlette request; only disconnect state matters."""

    def __init__(self, disconnected: bool):
        self.disconnected = disconnected
        self.checks = 0

    async def is_disconnected(self) -> bool:
        self.checks += 1
        return self.disconnected


def _wait_for_cancel(label, cancel_event=None):
    """Blocking job that finishes only if it is not cancelled within 5s."""
    if cancel_event.wait(5):
        raise PipelineCancelledError(f"{label} cancelled")
    return label


def _finish_quickly(label, cancel_event=None):
    return f"{label} done"


class TestRunUntilDisconnect:
    """Test client-disconnect cancellation of chunking runs."""

    def test_disconnect_sets_cancel_event(self) -> None:
        request = FakeRequest(disconnected=True)

        with pytest.raises(PipelineCancelledError):
            asyncio.run(
                run_until_disconnect(request, _wait_for_cancel, "doc", poll_interval=0.01)
            )
        assert request.checks >= 1

    def test_connected_client_gets_result(self) -> None:
        request = FakeRequest(disconnected=False)

        result = asyncio.run(
            run_until_disconnect(request, _finish_quickly, "doc", poll_interval=0.01)
        )

        assert result == "doc done"
