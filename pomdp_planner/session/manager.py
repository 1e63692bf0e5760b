"""
Session Manager — create or resume the plan session for a conversation.

A session is reused while strictly before its expires_at; a stale one is
marked EXPIRED and replaced by a fresh session with a new root node.
Expired sessions are never written again.

Get-or-create runs under a per-conversation asyncio.Lock, so concurrent
planning calls in one process cannot create two sessions for the same
conversation. Across processes the caller must keep a single writer per
conversation.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Dict, Optional
from uuid import uuid4

from pomdp_planner.exceptions import SessionNotFoundError
from pomdp_planner.models.action import ActionType, ScoredAction, make_action
from pomdp_planner.models.belief import BeliefState
from pomdp_planner.models.config import PlannerContext
from pomdp_planner.models.plan import PlanNode, PlanSession, SessionStatus
from pomdp_planner.observability.logger import get_logger
from pomdp_planner.search.tree import TreeSearchEngine
from pomdp_planner.store.plan_store import PlanStore

log = get_logger(__name__)


def _root_action() -> ScoredAction:
    """Synthetic root: clarify_intent with maximal score."""
    action = make_action(ActionType.CLARIFY_INTENT, "Root planning node", 0.0)
    return ScoredAction(
        type=action.type,
        params=action.params,
        description=action.description,
        estimated_complexity=action.estimated_complexity,
        score=1.0,
        q_value=1.0,
        risk=0.0,
        explainability=1.0,
        reasoning="Root node",
        confidence_interval=(1.0, 1.0),
    )


class SessionManager:
    """Owns plan session lifecycle: get-or-create, progress, expiry."""

    def __init__(self, store: PlanStore, engine: Optional[TreeSearchEngine] = None):
        self.store = store
        self.engine = engine or TreeSearchEngine(store)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: str):
        """Hold the conversation's lock; drop it once no caller holds or awaits it."""
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[conversation_id] -= 1
            if self._lock_users[conversation_id] == 0:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]

    async def get_or_create_plan_session(
        self,
        context: PlannerContext,
        current_time: Optional[datetime] = None,
    ) -> PlanSession:
        """Resume the conversation's session if still valid, else start one."""
        if current_time is None:
            current_time = datetime.utcnow()

        conversation_id = context.state.conversation_id
        if not conversation_id:
            return await self._create_session(context, current_time)

        async with self._conversation_lock(conversation_id):
            existing = await self.store.get_session_by_conversation(conversation_id)
            if existing is not None:
                if existing.is_valid_at(current_time):
                    log.info(
                        "planner.session.resumed",
                        session_id=existing.id,
                        conversation_id=conversation_id,
                    )
                    return existing
                await self.expire(existing, current_time)
            return await self._create_session(context, current_time)

    async def _create_session(
        self, context: PlannerContext, current_time: datetime
    ) -> PlanSession:
        config = context.config
        session = PlanSession(
            id=f"plan_{uuid4().hex[:12]}",
            conversation_id=context.state.conversation_id,
            customer_id=context.state.customer_id,
            belief_state=context.belief,
            current_state=context.state,
            max_depth=config.max_depth,
            expires_at=current_time + timedelta(minutes=config.session_timeout_minutes),
            created_at=current_time,
            updated_at=current_time,
        )
        session = await self.store.create_plan_session(session)

        root = await self.engine.create_tree_node(session.id, None, 0, _root_action())
        session = await self.store.update_plan_session(
            session.id,
            {
                "root_node_id": root.id,
                "current_node_id": root.id,
                "updated_at": current_time,
            },
        )
        log.info(
            "planner.session.created",
            session_id=session.id,
            conversation_id=session.conversation_id,
            expires_at=session.expires_at.isoformat(),
        )
        return session

    async def expire(
        self, session: PlanSession, current_time: Optional[datetime] = None
    ) -> PlanSession:
        """Mark a session expired. Idempotent."""
        if session.status == SessionStatus.EXPIRED:
            return session
        expired = await self.store.update_plan_session(
            session.id,
            {
                "status": SessionStatus.EXPIRED,
                "updated_at": current_time or datetime.utcnow(),
            },
        )
        log.info("planner.session.expired", session_id=session.id)
        return expired or session

    async def record_progress(
        self,
        session: PlanSession,
        expansions: int,
        last_node: Optional[PlanNode],
    ) -> PlanSession:
        """Count explored paths and move the cursor to the last expanded node."""
        if session.status == SessionStatus.EXPIRED or (expansions == 0 and last_node is None):
            return session
        updates: dict = {"explored_paths": session.explored_paths + expansions}
        if last_node is not None and last_node.session_id == session.id:
            updates["current_node_id"] = last_node.id
        updated = await self.store.update_plan_session(session.id, updates)
        return updated or session

    async def record_completed_action(
        self, session_id: str, belief: BeliefState
    ) -> PlanSession:
        """Count an executed action and store the belief that followed it."""
        session = await self.store.get_plan_session(session_id)
        if session is None:
            raise SessionNotFoundError(f"Plan session {session_id} not found")
        if session.status == SessionStatus.EXPIRED:
            return session
        updated = await self.store.update_plan_session(
            session_id,
            {
                "completed_actions": session.completed_actions + 1,
                "belief_state": belief,
            },
        )
        return updated or session
