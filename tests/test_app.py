"""Tests for the HTTP endpoints"""

import pytest
from fastapi.testclient import TestClient

from memory_graph.api import app as app_module
from memory_graph.api.service import MemoryGraphService
from memory_graph.core.extractor import EntityExtractor
from tests.conftest import FakeGateway


@pytest.fixture
def gateway():
    return FakeGateway({"agents list": [{"id": "main", "isDefault": True}, {"id": "ops"}]})


@pytest.fixture
def client(config, gateway):
    app_module.service = MemoryGraphService(
        config, gateway, extractor_factory=lambda: EntityExtractor(api_key=None)
    )
    with TestClient(app_module.app) as test_client:
        yield test_client
    app_module.service = None


def test_health(client, workspace):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["workspace"] == str(workspace)
    assert body["graph_exists"] is False


def test_bootstrap_read(client):
    response = client.get("/api/memory/graph", params={"mode": "bootstrap"})

    assert response.status_code == 200
    body = response.json()
    assert len(body["graph"]["nodes"]) == 5
    assert body["bootstrap"]["source"] == "filesystem"
    assert "extractionError" not in body
    assert "OPENAI_API_KEY" in body["bootstrap"]["error"]
    assert set(body["paths"]) == {"json", "markdown", "memory"}
    assert set(body["telemetry"]) == {"generatedAt", "sourceDocuments", "recentChatMessages"}


def test_save_without_reindex(client, gateway, config):
    response = client.post(
        "/api/memory/graph",
        json={"action": "save", "graph": {"nodes": [{"id": "a"}]}, "reindex": False},
    )

    assert response.status_code == 200
    assert response.json()["reindexScheduled"] is False
    assert gateway.calls == []
    assert config.graph_json_path.exists()


def test_save_defaults_to_save_action(client, gateway):
    response = client.post("/api/memory/graph", json={"graph": None, "reindex": False})
    assert response.status_code == 200
    assert response.json()["action"] == "save"
    assert response.json()["graph"]["nodes"] == []


def test_unknown_action_is_rejected(client):
    response = client.post("/api/memory/graph", json={"action": "explode", "graph": {}})
    assert response.status_code == 400
    assert "explode" in response.json()["detail"]


def test_stale_base_hash_conflicts(client):
    saved = client.post("/api/memory/graph", json={"graph": {}, "reindex": False}).json()

    stale = client.post("/api/memory/graph", json={"graph": {}, "reindex": False, "baseHash": "stale"})
    assert stale.status_code == 409

    fresh = client.post("/api/memory/graph", json={"graph": {}, "reindex": False, "baseHash": saved["hash"]})
    assert fresh.status_code == 200


def test_publish_memory_md(client, workspace):
    response = client.post(
        "/api/memory/graph",
        json={"action": "publish-memory-md", "graph": {"nodes": [{"label": "Tea"}]}, "reindex": False},
    )
    assert response.status_code == 200
    assert "**Tea**" in (workspace / "MEMORY.md").read_text()


def test_diagnostics(client):
    response = client.get("/api/memory/graph/diagnostics")
    assert response.status_code == 200
    assert response.json() == {"reindex": {"running": False, "last": None}}


def test_unparsable_body_is_a_server_error(client, gateway):
    response = client.post(
        "/api/memory/graph",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 500
    assert response.json()["detail"]
    assert gateway.calls == []


@pytest.mark.parametrize("reindex, scheduled", [(None, True), ("no", True), (0, True), (False, False)])
def test_only_false_disables_reindex(client, reindex, scheduled):
    response = client.post("/api/memory/graph", json={"graph": {}, "reindex": reindex})
    assert response.status_code == 200
    assert response.json()["reindexScheduled"] is scheduled
