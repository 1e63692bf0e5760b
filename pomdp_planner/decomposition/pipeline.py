"""
Sub-goal pipeline — splits a compound request into ordered, scored steps.

Despite the Graph-of-Thought lineage, the result is a strictly linear
chain: step i+1 depends on step i. Sub-goal nodes are persisted flat (no
parent) and tagged as decomposition nodes, so the search never expands
them.
"""

import re
from typing import List

from pomdp_planner.belief.estimator import estimate_initial_belief
from pomdp_planner.models.action import ActionType, make_action
from pomdp_planner.models.belief import BeliefState
from pomdp_planner.models.config import PlannerConfig
from pomdp_planner.models.plan import NodeOrigin, SubGoal
from pomdp_planner.models.state import ObservedState
from pomdp_planner.observability.logger import get_logger
from pomdp_planner.scoring.scorer import score_action
from pomdp_planner.search.tree import TreeSearchEngine
from pomdp_planner.strategy.generator import generate_candidate_actions

log = get_logger(__name__)

CONJUNCTIONS = ("e", "and", "então", "then", "depois", "after")

_SPLIT_PATTERN = re.compile(
    r"\s*(,)\s*|\s+(" + "|".join(CONJUNCTIONS) + r")\s+", re.IGNORECASE
)
_DELIMITER_PATTERN = re.compile(
    r"^(,|" + "|".join(CONJUNCTIONS) + r")$", re.IGNORECASE
)

MIN_SEGMENT_LENGTH = 5   # Segments must be longer than this


def split_segments(message: str) -> List[str]:
    """Meaningful clauses of a message, in order."""
    pieces = _SPLIT_PATTERN.split(message)
    segments = []
    for piece in pieces:
        if piece is None:
            continue
        piece = piece.strip()
        if len(piece) <= MIN_SEGMENT_LENGTH or _DELIMITER_PATTERN.match(piece):
            continue
        segments.append(piece)
    return segments


async def decompose_into_subgoals(
    message: str,
    session_id: str,
    state: ObservedState,
    belief: BeliefState,
    config: PlannerConfig,
    engine: TreeSearchEngine,
) -> List[SubGoal]:
    """
    Build an ordered pipeline of at most config.max_depth sub-goals.

    Each segment is re-estimated on its own text; the first candidate for
    it is scored and persisted. A segment with no candidate falls back to
    clarify_intent so the pipeline has no gaps.
    """
    segments = split_segments(message)[: config.max_depth]
    subgoals: List[SubGoal] = []

    for i, segment in enumerate(segments):
        segment_state = state.model_copy(update={"message": segment})
        segment_belief = estimate_initial_belief(segment_state)
        candidates = generate_candidate_actions(segment_state, segment_belief, i, config)
        if candidates:
            action = candidates[0]
        else:
            action = make_action(
                ActionType.CLARIFY_INTENT,
                "Ask clarifying question to understand user intent",
                0.1,
            )

        scored = score_action(action, segment_state, segment_belief, config)
        dependencies = [i] if i > 0 else []
        node = await engine.create_tree_node(
            session_id,
            None,
            i,
            scored,
            origin=NodeOrigin.DECOMPOSITION,
            dependencies=dependencies,
        )
        subgoals.append(SubGoal(
            step=i + 1,
            action=action,
            dependencies=dependencies,
            node_id=node.id,
        ))

    log.info(
        "planner.decomposition.built",
        session_id=session_id,
        segments=len(segments),
        steps=[s.action.type.value for s in subgoals],
    )
    return subgoals
