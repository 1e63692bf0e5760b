"""Plan Session and Plan Node — the persisted search tree."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from pomdp_planner.models.action import Action
from pomdp_planner.models.belief import BeliefState
from pomdp_planner.models.state import ObservedState


class NodeStatus(str, Enum):
    PENDING = "pending"       # Not yet expanded
    COMPLETED = "completed"   # Expanded; children persisted
    PRUNED = "pruned"         # Cut off by depth or score


class NodeOrigin(str, Enum):
    SEARCH = "search"                 # Part of the session's search tree
    DECOMPOSITION = "decomposition"   # Flat sub-goal, not under the root


class SessionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


class PlanNode(BaseModel):
    """
    One visited point of the search tree.

    Parent/child links are ids resolved through the store, never object
    references, so a tree can be resumed from any process.
    """

    id: str
    session_id: str
    parent_id: Optional[str] = None         # None for the root and for sub-goals
    depth: int = Field(ge=0)
    action: Action
    q_value: float
    risk_score: float
    explain_score: float
    total_score: float
    reasoning: str = ""
    dependencies: List[int] = []            # Sub-goal steps that must finish first
    status: NodeStatus = NodeStatus.PENDING
    origin: NodeOrigin = NodeOrigin.SEARCH
    created_at: datetime
    updated_at: datetime

    @property
    def is_root(self) -> bool:
        return self.parent_id is None and self.origin == NodeOrigin.SEARCH


class PlanSession(BaseModel):
    """Root aggregate for one conversation's planning."""

    id: str
    conversation_id: Optional[str] = None
    customer_id: str
    belief_state: BeliefState
    current_state: ObservedState
    max_depth: int
    explored_paths: int = 0
    completed_actions: int = 0
    root_node_id: Optional[str] = None
    current_node_id: Optional[str] = None
    status: SessionStatus = SessionStatus.ACTIVE
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    def is_valid_at(self, current_time: datetime) -> bool:
        """Reusable only while strictly before expiry."""
        return self.status == SessionStatus.ACTIVE and self.expires_at > current_time


class SubGoal(BaseModel):
    """One step of an ordered sub-goal pipeline."""

    step: int = Field(ge=1)
    action: Action
    dependencies: List[int] = []            # Steps that must complete first
    node_id: Optional[str] = None
