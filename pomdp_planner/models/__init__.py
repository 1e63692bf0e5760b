"""POMDP planner data models."""

from pomdp_planner.models.action import (
    Action,
    ActionType,
    AddToCartParams,
    AnswerQuestionParams,
    CheckoutParams,
    ClarifyIntentParams,
    EscalateHumanParams,
    MultiStepPlanParams,
    ScoredAction,
    SearchProductsParams,
    make_action,
)
from pomdp_planner.models.belief import (
    ActionObservation,
    BeliefState,
    IntentProbabilities,
)
from pomdp_planner.models.config import (
    DEFAULT_CONFIG,
    PlannerConfig,
    PlannerContext,
    ScoringWeights,
)
from pomdp_planner.models.plan import (
    NodeOrigin,
    NodeStatus,
    PlanNode,
    PlanSession,
    SessionStatus,
    SubGoal,
)
from pomdp_planner.models.state import (
    CartSummary,
    CatalogItem,
    LegacyPlannerState,
    ObservedState,
    PriceRange,
    Tenant,
    UserPreferences,
)

__all__ = [
    "Action",
    "ActionObservation",
    "ActionType",
    "AddToCartParams",
    "AnswerQuestionParams",
    "BeliefState",
    "CartSummary",
    "CatalogItem",
    "CheckoutParams",
    "ClarifyIntentParams",
    "DEFAULT_CONFIG",
    "EscalateHumanParams",
    "IntentProbabilities",
    "LegacyPlannerState",
    "MultiStepPlanParams",
    "NodeOrigin",
    "NodeStatus",
    "ObservedState",
    "PlanNode",
    "PlanSession",
    "PlannerConfig",
    "PlannerContext",
    "PriceRange",
    "ScoredAction",
    "ScoringWeights",
    "SearchProductsParams",
    "SessionStatus",
    "SubGoal",
    "Tenant",
    "UserPreferences",
    "make_action",
]
