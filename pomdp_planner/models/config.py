"""Planner configuration and the per-call planning context."""

from typing import Optional

from pydantic import BaseModel, Field

from pomdp_planner.models.belief import BeliefState
from pomdp_planner.models.plan import PlanSession
from pomdp_planner.models.state import ObservedState, Tenant


class ScoringWeights(BaseModel):
    """score(a|s) = lambda1*Q - lambda2*risk + lambda3*explain. Need not sum to 1."""

    lambda1: float = 0.5    # Q-value
    lambda2: float = 0.3    # Risk penalty
    lambda3: float = 0.2    # Explainability


class PlannerConfig(BaseModel):
    """Fixed tunables for one planner."""

    weights: ScoringWeights = ScoringWeights()
    max_actions_to_consider: int = Field(default=5, ge=0)   # Branching factor
    max_depth: int = Field(default=3, ge=0)
    # UCB1 constant. Reserved: the depth-then-score frontier order does not read it.
    exploration_factor: float = 1.4
    pruning_threshold: float = 0.1
    session_timeout_minutes: int = Field(default=30, ge=0)

    @property
    def max_expansions(self) -> int:
        return self.max_actions_to_consider * self.max_depth


DEFAULT_CONFIG = PlannerConfig()


class PlannerContext(BaseModel):
    """Everything one planning call carries between components."""

    state: ObservedState
    belief: BeliefState
    tenant: Tenant
    config: PlannerConfig = DEFAULT_CONFIG
    session: Optional[PlanSession] = None
    critics_enabled: bool = True
    rag_enabled: bool = True
