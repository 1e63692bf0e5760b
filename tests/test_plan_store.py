"""Tests for the SQLite plan store."""

from datetime import datetime, timedelta

import pytest

from pomdp_planner.exceptions import PlanStoreError
from pomdp_planner.models.action import ActionType, make_action
from pomdp_planner.models.belief import BeliefState, IntentProbabilities
from pomdp_planner.models.plan import NodeStatus, PlanNode, PlanSession, SessionStatus
from pomdp_planner.models.state import ObservedState, Tenant
from pomdp_planner.store.plan_store import SQLitePlanStore


def _make_session(
    session_id: str = "plan_1",
    conversation_id: str = "conv_1",
    updated_at: datetime = None,
) -> PlanSession:
    now = updated_at or datetime.utcnow()
    return PlanSession(
        id=session_id,
        conversation_id=conversation_id,
        customer_id="cust_1",
        belief_state=BeliefState(
            intent_probabilities=IntentProbabilities(
                purchase=0.5, information=0.1, browse=0.2,
                checkout=0.1, support=0.05, clarification=0.05,
            ),
            intent_confidence=0.8,
            state_uncertainty=0.5,
        ),
        current_state=ObservedState(customer_id="cust_1", message="quero comprar"),
        max_depth=3,
        expires_at=now + timedelta(minutes=30),
        created_at=now,
        updated_at=now,
    )


def _make_node(
    node_id: str,
    parent_id: str = None,
    depth: int = 0,
    score: float = 0.5,
    session_id: str = "plan_1",
) -> PlanNode:
    now = datetime.utcnow()
    return PlanNode(
        id=node_id,
        session_id=session_id,
        parent_id=parent_id,
        depth=depth,
        action=make_action(ActionType.SEARCH_PRODUCTS, "Search", 0.3, query="tênis", limit=5),
        q_value=0.6,
        risk_score=0.02,
        explain_score=0.8,
        total_score=score,
        reasoning="test",
        created_at=now,
        updated_at=now,
    )


class TestStoreLifecycle:
    @pytest.mark.asyncio
    async def test_requires_init(self):
        store = SQLitePlanStore(":memory:")
        with pytest.raises(PlanStoreError):
            await store.get_plan_session("plan_1")

    @pytest.mark.asyncio
    async def test_unusable_after_close(self):
        store = SQLitePlanStore(":memory:")
        await store.init()
        await store.close()
        with pytest.raises(PlanStoreError):
            await store.list_tenants()


class TestSessions:
    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        session = _make_session()
        await store.create_plan_session(session)
        loaded = await store.get_plan_session("plan_1")
        assert loaded == session
        assert loaded.current_state.message == "quero comprar"

    @pytest.mark.asyncio
    async def test_missing_session(self, store):
        assert await store.get_plan_session("nope") is None
        assert await store.update_plan_session("nope", {"explored_paths": 1}) is None

    @pytest.mark.asyncio
    async def test_update(self, store):
        await store.create_plan_session(_make_session())
        updated = await store.update_plan_session(
            "plan_1", {"explored_paths": 4, "status": SessionStatus.EXPIRED}
        )
        assert updated.explored_paths == 4
        assert updated.status == SessionStatus.EXPIRED
        loaded = await store.get_plan_session("plan_1")
        assert loaded.explored_paths == 4
        assert loaded.status == SessionStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_by_conversation_most_recent(self, store):
        now = datetime.utcnow()
        await store.create_plan_session(_make_session("plan_old", updated_at=now - timedelta(hours=1)))
        await store.create_plan_session(_make_session("plan_new", updated_at=now))
        found = await store.get_session_by_conversation("conv_1")
        assert found.id == "plan_new"
        assert await store.get_session_by_conversation("other") is None


class TestNodes:
    @pytest.mark.asyncio
    async def test_nodes_ordered_by_depth_then_creation(self, store):
        await store.create_plan_session(_make_session())
        await store.create_plan_node(_make_node("n_root", depth=0, score=1.0))
        await store.create_plan_node(_make_node("n_b", "n_root", depth=1, score=0.2))
        await store.create_plan_node(_make_node("n_deep", "n_b", depth=2, score=0.9))
        await store.create_plan_node(_make_node("n_a", "n_root", depth=1, score=0.7))

        nodes = await store.get_nodes_by_session("plan_1")
        assert [n.id for n in nodes] == ["n_root", "n_b", "n_a", "n_deep"]

    @pytest.mark.asyncio
    async def test_children_ordered_by_score(self, store):
        await store.create_plan_session(_make_session())
        await store.create_plan_node(_make_node("n_root", depth=0, score=1.0))
        await store.create_plan_node(_make_node("n_low", "n_root", depth=1, score=0.2))
        await store.create_plan_node(_make_node("n_high", "n_root", depth=1, score=0.7))
        await store.create_plan_node(_make_node("n_tie", "n_root", depth=1, score=0.7))

        children = await store.get_child_nodes("n_root")
        assert [c.id for c in children] == ["n_high", "n_tie", "n_low"]

    @pytest.mark.asyncio
    async def test_update_node_status(self, store):
        await store.create_plan_session(_make_session())
        await store.create_plan_node(_make_node("n_1"))
        updated = await store.update_plan_node("n_1", {"status": NodeStatus.PRUNED})
        assert updated.status == NodeStatus.PRUNED
        assert (await store.get_plan_node("n_1")).status == NodeStatus.PRUNED
        assert await store.update_plan_node("missing", {"status": NodeStatus.PRUNED}) is None

    @pytest.mark.asyncio
    async def test_action_params_survive_storage(self, store):
        await store.create_plan_session(_make_session())
        await store.create_plan_node(_make_node("n_1"))
        node = await store.get_plan_node("n_1")
        assert node.action.type == ActionType.SEARCH_PRODUCTS
        assert node.action.params.limit == 5


class TestTenants:
    @pytest.mark.asyncio
    async def test_create_and_list(self, store):
        assert await store.list_tenants() == []
        await store.create_tenant(Tenant(id="t1", name="Loja A", created_at=datetime.utcnow()))
        await store.create_tenant(Tenant(id="t2", name="Loja B", created_at=datetime.utcnow()))
        tenants = await store.list_tenants()
        assert [t.id for t in tenants] == ["t1", "t2"]
        assert (await store.get_tenant("t2")).name == "Loja B"
        assert await store.get_tenant("t3") is None
