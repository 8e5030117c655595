"""Tests for the HTTP gateway"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from prompt_trainer.config.settings import Settings
from prompt_trainer.errors import (
    ImportFormatError,
    PersistenceError,
    RequestError,
    TemplateNotFoundError,
    ValidationError,
)
from prompt_trainer.gateway.main import create_app, status_for
from prompt_trainer.observability.tracer import LangFuseTracer
from prompt_trainer.orchestrator.request_orchestrator import RequestOrchestrator
from prompt_trainer.session.session_store import SessionStore
from prompt_trainer.storage.persistence import MemoryPersistence


class Upstream:
    """Scripted completion service"""

    def __init__(self):
        self.status_code = 200
        self.body = {
            "choices": [{"message": {"content": "Paris"}}],
            "usage": {"total_tokens": 12},
        }
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def client(upstream):
    settings = Settings(storage_backend="memory", api_key="test-key")
    store = SessionStore(MemoryPersistence(), autosave_delay_seconds=10)
    orchestrator = RequestOrchestrator(
        store,
        api_key="test-key",
        client=httpx.AsyncClient(transport=httpx.MockTransport(upstream)),
    )
    app = create_app(
        settings=settings,
        session_store=store,
        orchestrator=orchestrator,
        tracer=LangFuseTracer(secret_key="", public_key=""),
    )
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    """Test health endpoint"""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["orchestrator"] == "idle"


def test_analyze(client):
    """Test prompt analysis endpoint"""
    response = client.post("/v1/analyze", json={"prompt": "Explain quantum computing"})

    assert response.status_code == 200
    data = response.json()
    assert (data["clarity"], data["specificity"], data["structure"]) == (15, 9, 20)
    assert len(data["suggestions"]) == 4
    assert data["quality_score"] == 15
    assert data["is_good"] is False

    assert client.post("/v1/analyze", json={"prompt": "   "}).status_code == 400


def test_completion_recorded_in_history(client, upstream):
    """Test a successful completion and the history it leaves"""
    response = client.post("/v1/completions", json={
        "prompt": "What is the capital of France?",
        "parameters": {"temperature": 0.3, "max_tokens": 50},
    })

    assert response.status_code == 200
    data = response.json()
    assert data["content"] == "Paris"
    assert data["token_count"] == 12
    assert data["latency_ms"] > 0

    history = client.get("/v1/history").json()
    assert len(history) == 1
    assert history[0]["id"] == data["id"]
    assert history[0]["response"] == "Paris"
    assert history[0]["temperature"] == 0.3
    assert history[0]["maxTokens"] == 50

    reused = client.post(f"/v1/history/{data['id']}/reuse")
    assert reused.json() == {"prompt": "What is the capital of France?"}
    assert client.post("/v1/history/missing/reuse").status_code == 404


def test_completion_errors(client, upstream):
    """Test error status mapping for completions"""
    response = client.post("/v1/completions", json={"prompt": "  "})
    assert response.status_code == 400
    assert upstream.calls == 0

    upstream.status_code = 401
    upstream.body = {"error": {"message": "No auth credentials found"}}
    response = client.post("/v1/completions", json={"prompt": "Hello"})
    assert response.status_code == 502
    assert response.json() == {"detail": "No auth credentials found"}

    upstream.status_code = 200
    upstream.body = {"choices": []}
    response = client.post("/v1/completions", json={"prompt": "Hello"})
    assert response.status_code == 502
    assert response.json() == {"detail": "Unexpected response format from API"}

    assert client.get("/v1/history").json() == []


def test_invalid_parameters_rejected(client, upstream):
    """Test parameter range validation"""
    response = client.post("/v1/completions", json={
        "prompt": "Hello",
        "parameters": {"temperature": 5},
    })

    assert response.status_code == 422
    assert upstream.calls == 0


def test_template_lifecycle(client):
    """Test create, list, favorite and delete"""
    created = client.post("/v1/templates", json={"prompt": "Write a haiku"}).json()
    assert created["name"] == "Template 1"
    template_id = created["id"]

    template = client.get(f"/v1/templates/{template_id}").json()
    assert template["prompt"] == "Write a haiku"
    assert template["category"] == "Custom"
    assert template["is_favorite"] is False

    toggled = client.post(f"/v1/templates/{template_id}/favorite").json()
    assert toggled == {"id": template_id, "is_favorite": True}
    assert len(client.get("/v1/templates", params={"favorites_only": True}).json()) == 1

    assert client.delete(f"/v1/templates/{template_id}").status_code == 204
    assert client.get("/v1/templates").json() == []
    assert client.get(f"/v1/templates/{template_id}").status_code == 404
    assert client.get("/v1/export").json()["favorites"] == []

    assert client.post("/v1/templates", json={"prompt": " "}).status_code == 400


def test_draft(client):
    """Test scheduling and flushing the draft"""
    assert client.get("/v1/draft").json() == {"prompt": None, "autosave_enabled": True}

    assert client.put("/v1/draft", json={"prompt": "Write a"}).json() == {"scheduled": True}
    assert client.put("/v1/draft", json={"prompt": "Write a poem"}).status_code == 202
    assert client.post("/v1/draft/flush").status_code == 204

    assert client.get("/v1/draft").json()["prompt"] == "Write a poem"

    response = client.put("/v1/draft", json={"prompt": "ignored", "autosave_enabled": False})
    assert response.json() == {"scheduled": False}
    assert client.get("/v1/draft").json() == {"prompt": "Write a poem", "autosave_enabled": False}


def test_export_import_and_clear(client):
    """Test export document, import and removal of all data"""
    client.post("/v1/completions", json={"prompt": "What is the capital of France?"})
    template_id = client.post("/v1/templates", json={"prompt": "Write a haiku"}).json()["id"]
    client.post(f"/v1/templates/{template_id}/favorite")

    exported = client.get("/v1/export")
    assert exported.status_code == 200
    assert "prompt-trainer-export-" in exported.headers["content-disposition"]
    document = exported.json()
    assert set(document) == {"history", "templates", "favorites", "exportDate"}

    assert client.delete("/v1/data").status_code == 204
    assert client.get("/v1/history").json() == []
    assert client.get("/v1/templates").json() == []

    response = client.post("/v1/import", content=json.dumps(document))
    assert response.status_code == 200
    assert response.json() == {"history": 1, "templates": 1, "favorites": 1}
    assert client.get(f"/v1/templates/{template_id}").json()["is_favorite"] is True

    response = client.post("/v1/import", content=b"{broken")
    assert response.status_code == 422
    assert client.get("/v1/export").json()["templates"] == document["templates"]


def test_error_status_mapping():
    """Test that local storage failures are not reported as upstream failures"""
    assert status_for(ValidationError("empty")) == 400
    assert status_for(TemplateNotFoundError("missing")) == 404
    assert status_for(ImportFormatError("bad")) == 422
    assert status_for(PersistenceError("disk full")) == 500
    assert status_for(RequestError("rate limited", status_code=429)) == 502
