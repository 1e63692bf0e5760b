"""
Planner — POMDP belief estimation + Tree-of-Thought search, end to end.

    caller → SessionManager (get-or-create)
           → TreeSearchEngine (expansion loop, bounded budget)
           → best leaf
           → fallback: score depth-0 candidates directly

Each planning call is strictly sequential: one expansion, with all its
node writes awaited, completes before the next begins. The expansion
budget (max_actions_to_consider × max_depth) bounds the work per call.
"""

from typing import List, Mapping, Optional, Union

from pomdp_planner.belief.estimator import estimate_initial_belief, update_belief
from pomdp_planner.decomposition.pipeline import decompose_into_subgoals
from pomdp_planner.exceptions import NoTenantError, SessionNotFoundError
from pomdp_planner.models.action import Action, ActionType, ScoredAction, make_action
from pomdp_planner.models.belief import ActionObservation, BeliefState
from pomdp_planner.models.config import DEFAULT_CONFIG, PlannerConfig, PlannerContext
from pomdp_planner.models.plan import PlanNode, SubGoal
from pomdp_planner.models.state import LegacyPlannerState, ObservedState, Tenant
from pomdp_planner.observability.logger import get_logger
from pomdp_planner.scoring.scorer import score_action
from pomdp_planner.search.tree import TreeSearchEngine
from pomdp_planner.session.manager import SessionManager
from pomdp_planner.store.plan_store import PlanStore
from pomdp_planner.strategy.generator import generate_candidate_actions

log = get_logger(__name__)


def best_of(scored: List[ScoredAction]) -> ScoredAction:
    """Highest score; the first one wins ties."""
    best = scored[0]
    for candidate in scored[1:]:
        if candidate.score > best.score:
            best = candidate
    return best


def fallback_action(
    state: ObservedState,
    belief: BeliefState,
    config: PlannerConfig,
) -> ScoredAction:
    """
    Tree-less plan: score the depth-0 candidates and keep the best.
    With no candidates at all, ask the customer to clarify.
    """
    actions = generate_candidate_actions(state, belief, 0, config)
    if not actions:
        actions = [make_action(
            ActionType.CLARIFY_INTENT,
            "Ask clarifying question to understand user intent",
            0.1,
        )]
    return best_of([score_action(a, state, belief, config) for a in actions])


class Planner:
    """Entry points for choosing the next action of a conversation."""

    def __init__(self, store: PlanStore, config: PlannerConfig = DEFAULT_CONFIG):
        self.store = store
        self.config = config
        self.engine = TreeSearchEngine(store)
        self.sessions = SessionManager(store, self.engine)

    async def plan_action_with_pomdp(
        self,
        state: ObservedState,
        tenant: Tenant,
        config: Optional[PlannerConfig] = None,
    ) -> ScoredAction:
        """Choose the best next action for an explicit observed state."""
        config = config or self.config

        # 1. Initial belief b0(s)
        belief = estimate_initial_belief(state)
        log.info(
            "planner.plan.started",
            customer_id=state.customer_id,
            intents={k: round(v, 3) for k, v in belief.intent_probabilities.as_dict().items()},
            confidence=round(belief.intent_confidence, 2),
            uncertainty=round(belief.state_uncertainty, 2),
        )

        # 2-3. Context and session
        context = PlannerContext(state=state, belief=belief, tenant=tenant, config=config)
        session = await self.sessions.get_or_create_plan_session(context)
        context = context.model_copy(update={"session": session})

        # 4. Expand the frontier within budget
        expansions = 0
        last_expanded: Optional[PlanNode] = None
        while expansions < config.max_expansions:
            expanded = await self.engine.expand_frontier(context)
            if expanded is None:
                break
            last_expanded = expanded
            expansions += 1
        log.info("planner.tree.explored", session_id=session.id, expansions=expansions)

        session = await self.sessions.record_progress(session, expansions, last_expanded)

        # 5. Best leaf, or fall back to direct scoring
        best = await self.engine.select_best_action(session, belief)
        if best is None:
            log.warning("planner.fallback", session_id=session.id, reason="no_tree_leaves")
            return fallback_action(state, belief, config)

        log.info(
            "planner.action.selected",
            session_id=session.id,
            action=best.type.value,
            score=round(best.score, 3),
            reasoning=best.reasoning,
        )
        return best

    async def plan_action(
        self,
        legacy_state: Union[LegacyPlannerState, Mapping],
        config: Optional[PlannerConfig] = None,
    ) -> ScoredAction:
        """Legacy entry point: loose state, first configured tenant."""
        if not isinstance(legacy_state, LegacyPlannerState):
            legacy_state = LegacyPlannerState.model_validate(dict(legacy_state))
        state = legacy_state.to_observed_state()

        tenants = await self.store.list_tenants()
        if not tenants:
            raise NoTenantError("No tenant found in single-tenant system")

        return await self.plan_action_with_pomdp(state, tenants[0], config)

    async def record_outcome(
        self,
        session_id: str,
        action: Action,
        observation: Optional[Union[ActionObservation, Mapping]],
    ) -> BeliefState:
        """Fold an executed action's outcome into the session belief."""
        session = await self.store.get_plan_session(session_id)
        if session is None:
            raise SessionNotFoundError(f"Plan session {session_id} not found")

        belief = update_belief(session.belief_state, action, observation)
        await self.sessions.record_completed_action(session_id, belief)
        log.info(
            "planner.outcome.recorded",
            session_id=session_id,
            action=action.type.value,
            confidence=round(belief.intent_confidence, 3),
        )
        return belief

    async def decompose(
        self,
        message: str,
        session_id: str,
        state: ObservedState,
        config: Optional[PlannerConfig] = None,
    ) -> List[SubGoal]:
        """Ordered sub-goal pipeline for a compound request."""
        session = await self.store.get_plan_session(session_id)
        if session is None:
            raise SessionNotFoundError(f"Plan session {session_id} not found")
        belief = estimate_initial_belief(state)
        return await decompose_into_subgoals(
            message, session_id, state, belief, config or self.config, self.engine
        )
