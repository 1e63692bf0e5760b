"""
Tree Search Engine — best-first Tree-of-Thought expansion over a stored tree.

Node states:
  PENDING → COMPLETED   (expanded; children persisted)
  PENDING → PRUNED      (depth limit or score below threshold)

Frontier order is (depth asc, score desc): shallow, high-scoring nodes
expand first so shallow alternatives are not starved. The reserved UCB1
exploration constant in PlannerConfig is not consulted.

Ordering guarantee: a parent's children are written one by one, in
candidate-generation order, and all are awaited before the parent is
marked COMPLETED.
"""

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import uuid4

from pomdp_planner.exceptions import NoActiveSessionError
from pomdp_planner.models.action import ScoredAction
from pomdp_planner.models.belief import BeliefState
from pomdp_planner.models.config import PlannerContext
from pomdp_planner.models.plan import NodeOrigin, NodeStatus, PlanNode, PlanSession
from pomdp_planner.observability.logger import get_logger
from pomdp_planner.scoring.scorer import confidence_interval, score_action
from pomdp_planner.store.plan_store import PlanStore
from pomdp_planner.strategy.generator import generate_candidate_actions

log = get_logger(__name__)

DEFAULT_CI_HALF_WIDTH = 0.1


def node_to_scored_action(
    node: PlanNode,
    reasoning: str,
    belief: Optional[BeliefState] = None,
) -> ScoredAction:
    """Rebuild a ScoredAction from a stored node."""
    if belief is not None:
        interval = confidence_interval(node.total_score, belief.state_uncertainty)
    else:
        interval = (
            max(0.0, min(1.0, node.total_score - DEFAULT_CI_HALF_WIDTH)),
            max(0.0, min(1.0, node.total_score + DEFAULT_CI_HALF_WIDTH)),
        )
    return ScoredAction(
        type=node.action.type,
        params=node.action.params,
        description=node.action.description,
        estimated_complexity=node.action.estimated_complexity,
        score=node.total_score,
        q_value=node.q_value,
        risk=node.risk_score,
        explainability=node.explain_score,
        reasoning=reasoning,
        confidence_interval=interval,
    )


class TreeSearchEngine:
    """Expands, prunes and reads back the search tree of a plan session."""

    def __init__(self, store: PlanStore):
        self.store = store

    async def create_tree_node(
        self,
        session_id: str,
        parent_id: Optional[str],
        depth: int,
        scored_action: ScoredAction,
        origin: NodeOrigin = NodeOrigin.SEARCH,
        dependencies: Iterable[int] = (),
    ) -> PlanNode:
        """Persist a pending node for a scored action."""
        now = datetime.utcnow()
        node = PlanNode(
            id=f"node_{uuid4().hex[:12]}",
            session_id=session_id,
            parent_id=parent_id,
            depth=depth,
            action=scored_action.as_action(),
            q_value=scored_action.q_value,
            risk_score=scored_action.risk,
            explain_score=scored_action.explainability,
            total_score=scored_action.score,
            reasoning=scored_action.reasoning,
            dependencies=list(dependencies),
            status=NodeStatus.PENDING,
            origin=origin,
            created_at=now,
            updated_at=now,
        )
        return await self.store.create_plan_node(node)

    async def search_nodes(self, session_id: str) -> List[PlanNode]:
        """Nodes of the session's search tree (sub-goal nodes excluded)."""
        nodes = await self.store.get_nodes_by_session(session_id)
        return [n for n in nodes if n.origin == NodeOrigin.SEARCH]

    async def expand_frontier(self, context: PlannerContext) -> Optional[PlanNode]:
        """
        Expand the best pending node.

        Returns the expanded (now COMPLETED) node, or None when the frontier
        is empty or the selected node was pruned instead.
        """
        session = context.session
        if session is None:
            raise NoActiveSessionError("No active plan session")

        pending = [
            n for n in await self.search_nodes(session.id)
            if n.status == NodeStatus.PENDING
        ]
        if not pending:
            return None

        pending.sort(key=lambda n: (n.depth, -n.total_score))
        node = pending[0]
        config = context.config

        if node.depth >= config.max_depth:
            await self.store.update_plan_node(node.id, {"status": NodeStatus.PRUNED})
            log.debug("planner.tree.pruned", node_id=node.id, reason="max_depth", depth=node.depth)
            return None

        if node.total_score < config.pruning_threshold:
            await self.store.update_plan_node(node.id, {"status": NodeStatus.PRUNED})
            log.debug(
                "planner.tree.pruned",
                node_id=node.id,
                reason="below_threshold",
                score=round(node.total_score, 3),
            )
            return None

        child_depth = node.depth + 1
        candidates = generate_candidate_actions(
            context.state, context.belief, child_depth, config
        )
        for action in candidates:
            scored = score_action(action, context.state, context.belief, config)
            await self.create_tree_node(session.id, node.id, child_depth, scored)

        expanded = await self.store.update_plan_node(
            node.id, {"status": NodeStatus.COMPLETED}
        )
        log.debug(
            "planner.tree.expanded",
            session_id=session.id,
            node_id=node.id,
            depth=node.depth,
            children=len(candidates),
        )
        return expanded

    async def select_best_action(
        self,
        session: PlanSession,
        belief: Optional[BeliefState] = None,
    ) -> Optional[ScoredAction]:
        """
        Highest-scoring leaf of the search tree.

        Leaves are non-root nodes without children that were not pruned.
        Ties go to the shallower, then earlier-created node.
        """
        nodes = await self.search_nodes(session.id)
        if len(nodes) <= 1:
            return None  # Only the root

        parent_ids = {n.parent_id for n in nodes if n.parent_id}
        leaves = [
            n for n in nodes
            if not n.is_root
            and n.id not in parent_ids
            and n.status != NodeStatus.PRUNED
        ]
        if not leaves:
            return None

        # Store order is (depth, creation); a stable sort keeps it for ties
        best = sorted(leaves, key=lambda n: -n.total_score)[0]
        return node_to_scored_action(
            best,
            reasoning=(
                f"Selected from search tree depth={best.depth}, "
                f"explored {len(nodes)} nodes. {best.reasoning}"
            ),
            belief=belief,
        )

    async def describe_tree(self, root_node_id: str) -> Optional[dict]:
        """Nested, score-ordered view of the tree under a node, for auditing."""
        root = await self.store.get_plan_node(root_node_id)
        if root is None:
            return None
        return await self._describe(root)

    async def _describe(self, node: PlanNode) -> dict:
        children = await self.store.get_child_nodes(node.id)
        return {
            "id": node.id,
            "depth": node.depth,
            "action_type": node.action.type.value,
            "description": node.action.description,
            "total_score": node.total_score,
            "status": node.status.value,
            "children": [await self._describe(c) for c in children],
        }
