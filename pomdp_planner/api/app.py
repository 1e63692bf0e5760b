"""
POMDP Planner API — FastAPI endpoints.

Exposes the planner via a thin REST API for:
- Tenant setup
- Planning (explicit state and legacy shapes)
- Plan session and search-tree inspection
- Outcome feedback
- Sub-goal decomposition
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from pomdp_planner.config.settings import get_settings
from pomdp_planner.exceptions import NoTenantError, SessionNotFoundError
from pomdp_planner.models.action import Action
from pomdp_planner.models.belief import ActionObservation
from pomdp_planner.models.config import PlannerConfig
from pomdp_planner.models.state import LegacyPlannerState, ObservedState, Tenant
from pomdp_planner.observability.logger import get_logger, setup_logging
from pomdp_planner.planner import Planner
from pomdp_planner.store.plan_store import SQLitePlanStore

log = get_logger(__name__)


# --- Request/Response Models ---

class TenantCreateRequest(BaseModel):
    name: str
    id: Optional[str] = None


class PlanRequest(BaseModel):
    state: ObservedState
    tenant_id: str


class OutcomeRequest(BaseModel):
    action: Action
    observation: Optional[ActionObservation] = None


class DecomposeRequest(BaseModel):
    message: str
    state: Optional[ObservedState] = None


# --- Application Factory ---

def create_app(
    store: Optional[SQLitePlanStore] = None,
    config: Optional[PlannerConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    st = store or SQLitePlanStore(settings.db_path)
    cfg = config or settings.to_planner_config()
    planner = Planner(st, cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await st.init()
        try:
            yield
        finally:
            await st.close()

    app = FastAPI(
        title="POMDP Planner API",
        description="Belief-driven Tree-of-Thought action planner",
        version="0.1.0-alpha",
        lifespan=lifespan,
    )

    # Store components on app state for access in endpoints
    app.state.store = st
    app.state.config = cfg
    app.state.planner = planner

    async def _require_session(session_id: str):
        session = await st.get_plan_session(session_id)
        if session is None:
            raise HTTPException(404, "Plan session not found")
        return session

    # === TENANTS ===

    @app.post("/tenants")
    async def create_tenant(req: TenantCreateRequest):
        """Register the store the agent acts for."""
        tenant = Tenant(
            id=req.id or f"tenant_{uuid4().hex[:12]}",
            name=req.name,
            created_at=datetime.utcnow(),
        )
        await st.create_tenant(tenant)
        return tenant.model_dump(mode="json")

    @app.get("/tenants")
    async def list_tenants():
        return [t.model_dump(mode="json") for t in await st.list_tenants()]

    # === PLANNING ===

    @app.post("/plan")
    async def plan(req: PlanRequest):
        """Choose the next action for an explicit observed state."""
        tenant = await st.get_tenant(req.tenant_id)
        if tenant is None:
            raise HTTPException(404, "Tenant not found")
        action = await planner.plan_action_with_pomdp(req.state, tenant)
        return action.model_dump(mode="json")

    @app.post("/plan/legacy")
    async def plan_legacy(req: LegacyPlannerState):
        """Legacy shape; plans for the first configured tenant."""
        try:
            action = await planner.plan_action(req)
        except NoTenantError as e:
            raise HTTPException(503, str(e))
        return action.model_dump(mode="json")

    # === SESSIONS ===

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str):
        session = await _require_session(session_id)
        return session.model_dump(mode="json")

    @app.get("/conversations/{conversation_id}/session")
    async def get_conversation_session(conversation_id: str):
        """Most recently updated session of a conversation."""
        session = await st.get_session_by_conversation(conversation_id)
        if session is None:
            raise HTTPException(404, "No plan session for conversation")
        return session.model_dump(mode="json")

    @app.get("/sessions/{session_id}/nodes")
    async def get_session_nodes(session_id: str):
        """All nodes of the session, by depth then creation order."""
        await _require_session(session_id)
        nodes = await st.get_nodes_by_session(session_id)
        return [n.model_dump(mode="json") for n in nodes]

    @app.get("/sessions/{session_id}/tree")
    async def get_session_tree(session_id: str):
        """Nested view of the search tree from the root."""
        session = await _require_session(session_id)
        if not session.root_node_id:
            raise HTTPException(404, "Plan session has no root node")
        tree = await planner.engine.describe_tree(session.root_node_id)
        if tree is None:
            raise HTTPException(404, "Root node not found")
        return tree

    @app.post("/sessions/{session_id}/outcome")
    async def record_outcome(session_id: str, req: OutcomeRequest):
        """Feed an executed action's outcome back into the session belief."""
        try:
            belief = await planner.record_outcome(session_id, req.action, req.observation)
        except SessionNotFoundError:
            raise HTTPException(404, "Plan session not found")
        return belief.model_dump(mode="json")

    @app.post("/sessions/{session_id}/decompose")
    async def decompose(session_id: str, req: DecomposeRequest):
        """Split a compound request into an ordered sub-goal pipeline."""
        session = await _require_session(session_id)
        state = req.state or session.current_state
        subgoals = await planner.decompose(req.message, session_id, state)
        return [s.model_dump(mode="json") for s in subgoals]

    # === CONFIG ===

    @app.get("/config")
    async def get_config():
        return cfg.model_dump(mode="json")

    return app


def build_app() -> FastAPI:
    """Application for an ASGI server, configured from the environment."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json, settings.log_dir)
    log.info("planner.api.starting", db_path=settings.db_path)
    return create_app()
