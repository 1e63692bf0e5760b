"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from pomdp_planner.api.app import create_app
from pomdp_planner.models.config import PlannerConfig
from pomdp_planner.store.plan_store import SQLitePlanStore


@pytest.fixture
def client():
    """Create a test client over a fresh in-memory store."""
    app = create_app(store=SQLitePlanStore(":memory:"), config=PlannerConfig())
    with TestClient(app) as c:
        yield c


def _state(message: str = "quero comprar um produto") -> dict:
    return {"customer_id": "cust_1", "conversation_id": "conv_1", "message": message}


def _create_tenant(client) -> str:
    return client.post("/tenants", json={"name": "Loja Teste"}).json()["id"]


def _plan(client, message: str = "quero comprar um produto") -> dict:
    tenant_id = _create_tenant(client)
    response = client.post("/plan", json={"state": _state(message), "tenant_id": tenant_id})
    assert response.status_code == 200
    return response.json()


class TestTenantEndpoints:
    def test_create_and_list(self, client):
        response = client.post("/tenants", json={"name": "Loja A", "id": "t_a"})
        assert response.status_code == 200
        assert response.json()["id"] == "t_a"

        client.post("/tenants", json={"name": "Loja B"})
        tenants = client.get("/tenants").json()
        assert [t["name"] for t in tenants] == ["Loja A", "Loja B"]


class TestPlanEndpoints:
    def test_plan(self, client):
        data = _plan(client)
        assert data["type"] == "search_products"
        assert data["params"]["kind"] == "search_products"
        assert "score" in data
        assert len(data["confidence_interval"]) == 2

    def test_plan_unknown_tenant(self, client):
        response = client.post("/plan", json={"state": _state(), "tenant_id": "nope"})
        assert response.status_code == 404

    def test_legacy_without_tenant(self, client):
        response = client.post("/plan/legacy", json={"customer_id": "c1", "message": "ok"})
        assert response.status_code == 503

    def test_legacy_with_tenant(self, client):
        _create_tenant(client)
        response = client.post("/plan/legacy", json={"customer_id": "c1", "message": "ok"})
        assert response.status_code == 200
        assert response.json()["type"] == "clarify_intent"


class TestSessionEndpoints:
    def _session(self, client) -> dict:
        response = client.get("/conversations/conv_1/session")
        assert response.status_code == 200
        return response.json()

    def test_get_session(self, client):
        _plan(client)
        session = self._session(client)
        response = client.get(f"/sessions/{session['id']}")
        assert response.status_code == 200
        assert response.json()["explored_paths"] == 13

    def test_unknown_session(self, client):
        assert client.get("/sessions/plan_missing").status_code == 404
        assert client.get("/sessions/plan_missing/nodes").status_code == 404
        assert client.get("/sessions/plan_missing/tree").status_code == 404

    def test_nodes_and_tree(self, client):
        _plan(client)
        session = self._session(client)
        nodes = client.get(f"/sessions/{session['id']}/nodes").json()
        assert nodes[0]["id"] == session["root_node_id"]
        assert [n["depth"] for n in nodes] == sorted(n["depth"] for n in nodes)

        tree = client.get(f"/sessions/{session['id']}/tree").json()
        assert tree["id"] == session["root_node_id"]
        assert len(tree["children"]) == 3

    def test_outcome(self, client):
        action = _plan(client)
        session = self._session(client)
        response = client.post(
            f"/sessions/{session['id']}/outcome",
            json={"action": action, "observation": {"success": True}},
        )
        assert response.status_code == 200
        assert len(response.json()["previous_beliefs"]) == 1
        assert client.get(f"/sessions/{session['id']}").json()["completed_actions"] == 1

    def test_outcome_unknown_session(self, client):
        action = {
            "type": "checkout",
            "params": {"kind": "checkout"},
            "description": "Checkout",
            "estimated_complexity": 0.3,
        }
        response = client.post("/sessions/plan_missing/outcome", json={"action": action})
        assert response.status_code == 404

    def test_decompose_uses_session_state(self, client):
        _plan(client)
        session = self._session(client)
        response = client.post(
            f"/sessions/{session['id']}/decompose",
            json={"message": "quero comprar um tênis, depois pagar com cartão e ver o status do pedido"},
        )
        assert response.status_code == 200
        steps = response.json()
        assert [s["step"] for s in steps] == [1, 2, 3]
        assert [s["dependencies"] for s in steps] == [[], [1], [2]]


class TestConfigEndpoint:
    def test_get_config(self, client):
        data = client.get("/config").json()
        assert data["max_depth"] == 3
        assert data["weights"] == {"lambda1": 0.5, "lambda2": 0.3, "lambda3": 0.2}
