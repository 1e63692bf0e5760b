"""
Action Scorer — score(a|s) = lambda1*Q(s,a) - lambda2*risk(s,a) + lambda3*explain(s,a)

Q, risk and explain are kind-specific heuristics, each clamped to [0, 1].
The combined score is NOT clamped: comparisons and the pruning threshold
operate on the raw weighted sum.

Each component keeps a registry mapping every ActionType to its rule; the
registries are checked for completeness at import time so a new action
kind cannot be scored by accident with a silent default.
"""

import re
from typing import Callable, Dict

from pomdp_planner.models.action import Action, ActionType, ScoredAction
from pomdp_planner.models.belief import BeliefState
from pomdp_planner.models.config import DEFAULT_CONFIG, PlannerConfig
from pomdp_planner.models.state import ObservedState

SENSITIVE_TOPIC_PATTERN = re.compile(
    r"(reembolso|estorno|fraude|refund|chargeback)", re.IGNORECASE
)

_ACTION_KEYWORDS: Dict[ActionType, re.Pattern] = {
    ActionType.ADD_TO_CART: re.compile(r"(comprar|adicionar|buy|add)", re.IGNORECASE),
    ActionType.CHECKOUT: re.compile(r"(checkout|finalizar|pagar|pay)", re.IGNORECASE),
    ActionType.ANSWER_QUESTION: re.compile(r"(como|quando|o que|what|how|when)", re.IGNORECASE),
    ActionType.SEARCH_PRODUCTS: re.compile(r"(produto|ver|mostrar|show|product)", re.IGNORECASE),
    ActionType.ESCALATE_HUMAN: re.compile(r"(problema|erro|ajuda|help|issue)", re.IGNORECASE),
    ActionType.CLARIFY_INTENT: re.compile(r".*", re.DOTALL),
    ActionType.MULTI_STEP_PLAN: re.compile(r".*", re.DOTALL),
}

CI_UNCERTAINTY_SCALE = 0.2   # Interval half-width is at most 20% of uncertainty


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


# --- Q-value: expected utility ---

def _q_add_to_cart(action: Action, state: ObservedState, belief: BeliefState) -> float:
    q = 0.5
    if state.available_products:
        q += 0.2 * belief.intent_probabilities.purchase
    message = state.message.lower()
    if any(p.name and p.name.lower() in message for p in state.available_products):
        q += 0.3
    if state.current_cart and state.current_cart.item_count > 5:
        q -= 0.1
    return q


def _q_checkout(action: Action, state: ObservedState, belief: BeliefState) -> float:
    if not state.has_cart_items:
        return 0.0  # Cannot check out an empty cart
    return 0.5 + 0.4 * belief.intent_probabilities.checkout


def _q_answer_question(action: Action, state: ObservedState, belief: BeliefState) -> float:
    q = 0.5
    if state.knowledge_base:
        q += 0.3 * belief.intent_probabilities.information
    return q


def _q_search_products(action: Action, state: ObservedState, belief: BeliefState) -> float:
    intents = belief.intent_probabilities
    return 0.5 + 0.2 * (intents.browse + intents.purchase) / 2


def _q_escalate_human(action: Action, state: ObservedState, belief: BeliefState) -> float:
    return 0.2 + 0.6 * belief.intent_probabilities.support


def _q_clarify_intent(action: Action, state: ObservedState, belief: BeliefState) -> float:
    return 0.3 * belief.state_uncertainty


def _q_multi_step_plan(action: Action, state: ObservedState, belief: BeliefState) -> float:
    return 0.5 + 0.3


_Q_RULES: Dict[ActionType, Callable[[Action, ObservedState, BeliefState], float]] = {
    ActionType.ADD_TO_CART: _q_add_to_cart,
    ActionType.CHECKOUT: _q_checkout,
    ActionType.ANSWER_QUESTION: _q_answer_question,
    ActionType.SEARCH_PRODUCTS: _q_search_products,
    ActionType.ESCALATE_HUMAN: _q_escalate_human,
    ActionType.CLARIFY_INTENT: _q_clarify_intent,
    ActionType.MULTI_STEP_PLAN: _q_multi_step_plan,
}


# --- Risk ---

def _risk_add_to_cart(action: Action, state: ObservedState, belief: BeliefState) -> float:
    risk = 0.0
    cart_value = state.cart_total
    if cart_value > 1000:
        risk += 0.2
    if cart_value > 5000:
        risk += 0.4
    return risk + (1.0 - belief.intent_confidence) * 0.2


def _risk_checkout(action: Action, state: ObservedState, belief: BeliefState) -> float:
    risk = 0.0
    checkout_value = state.cart_total
    if checkout_value > 500:
        risk += 0.2
    if checkout_value > 2000:
        risk += 0.4
    if belief.intent_probabilities.checkout < 0.5:
        risk += 0.3
    return risk


def _risk_answer_question(action: Action, state: ObservedState, belief: BeliefState) -> float:
    risk = 0.05
    if SENSITIVE_TOPIC_PATTERN.search(state.message):
        risk += 0.5
    return risk


def _risk_minimal(action: Action, state: ObservedState, belief: BeliefState) -> float:
    return 0.02


def _risk_escalate_human(action: Action, state: ObservedState, belief: BeliefState) -> float:
    return 0.1


def _risk_multi_step_plan(action: Action, state: ObservedState, belief: BeliefState) -> float:
    return 0.2


_RISK_RULES: Dict[ActionType, Callable[[Action, ObservedState, BeliefState], float]] = {
    ActionType.ADD_TO_CART: _risk_add_to_cart,
    ActionType.CHECKOUT: _risk_checkout,
    ActionType.ANSWER_QUESTION: _risk_answer_question,
    ActionType.SEARCH_PRODUCTS: _risk_minimal,
    ActionType.CLARIFY_INTENT: _risk_minimal,
    ActionType.ESCALATE_HUMAN: _risk_escalate_human,
    ActionType.MULTI_STEP_PLAN: _risk_multi_step_plan,
}


# --- Explainability ---

def relevant_intent(action_type: ActionType, belief: BeliefState) -> float:
    """Probability of the intent an action kind serves."""
    intents = belief.intent_probabilities
    mapping = {
        ActionType.ADD_TO_CART: intents.purchase,
        ActionType.CHECKOUT: intents.checkout,
        ActionType.ANSWER_QUESTION: intents.information,
        ActionType.SEARCH_PRODUCTS: intents.browse,
        ActionType.ESCALATE_HUMAN: intents.support,
        ActionType.CLARIFY_INTENT: intents.clarification,
        ActionType.MULTI_STEP_PLAN: 0.5,
    }
    return mapping[action_type]


def detect_keywords(action_type: ActionType, message: str) -> bool:
    return bool(_ACTION_KEYWORDS[action_type].search(message.lower()))


def estimate_q_value(action: Action, state: ObservedState, belief: BeliefState) -> float:
    return _clamp01(_Q_RULES[action.type](action, state, belief))


def estimate_risk(action: Action, state: ObservedState, belief: BeliefState) -> float:
    return _clamp01(_RISK_RULES[action.type](action, state, belief))


def estimate_explainability(
    action: Action, state: ObservedState, belief: BeliefState
) -> float:
    """How well the choice of this action can be explained to a human."""
    explain = 0.5

    if action.estimated_complexity < 0.3:
        explain += 0.3
    elif action.estimated_complexity > 0.7:
        explain -= 0.2

    if relevant_intent(action.type, belief) > 0.6:
        explain += 0.4

    if detect_keywords(action.type, state.message):
        explain += 0.3

    return _clamp01(explain)


def confidence_interval(score: float, state_uncertainty: float) -> tuple:
    """[score - u, score + u] with each bound clamped into [0, 1]."""
    u = state_uncertainty * CI_UNCERTAINTY_SCALE
    return (_clamp01(score - u), _clamp01(score + u))


def score_action(
    action: Action,
    state: ObservedState,
    belief: BeliefState,
    config: PlannerConfig = DEFAULT_CONFIG,
) -> ScoredAction:
    """Score one candidate. Deterministic for identical inputs."""
    q_value = estimate_q_value(action, state, belief)
    risk = estimate_risk(action, state, belief)
    explainability = estimate_explainability(action, state, belief)

    weights = config.weights
    score = (
        weights.lambda1 * q_value
        - weights.lambda2 * risk
        + weights.lambda3 * explainability
    )

    low, high = confidence_interval(score, belief.state_uncertainty)
    reasoning = (
        f"Q={q_value:.3f} (utility) · risk={risk:.3f} · "
        f"explain={explainability:.3f} → score={score:.3f} "
        f"CI=[{low:.2f}, {high:.2f}]"
    )

    return ScoredAction(
        type=action.type,
        params=action.params,
        description=action.description,
        estimated_complexity=action.estimated_complexity,
        score=score,
        q_value=q_value,
        risk=risk,
        explainability=explainability,
        reasoning=reasoning,
        confidence_interval=(low, high),
    )


for _registry in (_Q_RULES, _RISK_RULES, _ACTION_KEYWORDS):
    _missing = set(ActionType) - set(_registry)
    if _missing:
        raise RuntimeError(f"Scoring rules missing for action types: {sorted(m.value for m in _missing)}")
