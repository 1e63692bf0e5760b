"""
Action Generator — the branching step of the search.

Candidates are proposed per intent whose probability clears its activation
threshold. Generation order is a latent priority (purchase and checkout
first) and truncation keeps that order; it is not a ranked top-k.
"""

import re
from typing import List

from pomdp_planner.models.action import Action, ActionType, make_action
from pomdp_planner.models.belief import BeliefState
from pomdp_planner.models.config import PlannerConfig
from pomdp_planner.models.state import ObservedState

PURCHASE_THRESHOLD = 0.3
CHECKOUT_THRESHOLD = 0.3
INFORMATION_THRESHOLD = 0.3
BROWSE_THRESHOLD = 0.3
SUPPORT_THRESHOLD = 0.5
CLARIFICATION_THRESHOLD = 0.4

COMPLEX_MESSAGE_CHARS = 100
COMPLEX_MESSAGE_WORDS = 20


def is_complex_message(message: str) -> bool:
    """Long or many-clause requests are worth decomposing."""
    words = [w for w in re.split(r"\s+", message) if w]
    return len(message) > COMPLEX_MESSAGE_CHARS or len(words) > COMPLEX_MESSAGE_WORDS


def generate_candidate_actions(
    state: ObservedState,
    belief: BeliefState,
    depth: int,
    config: PlannerConfig,
) -> List[Action]:
    """Propose at most config.max_actions_to_consider candidate actions."""
    intents = belief.intent_probabilities
    message = state.message
    actions: List[Action] = []

    if intents.purchase > PURCHASE_THRESHOLD:
        actions.append(make_action(
            ActionType.ADD_TO_CART,
            "Search and add product to cart based on user intent",
            0.4,
            search_query=message,
        ))
        actions.append(make_action(
            ActionType.SEARCH_PRODUCTS,
            "Show product options before adding to cart",
            0.3,
            query=message,
            limit=5,
        ))

    if intents.checkout > CHECKOUT_THRESHOLD:
        actions.append(make_action(
            ActionType.CHECKOUT,
            "Initiate checkout process for current cart",
            0.3,
        ))

    if intents.information > INFORMATION_THRESHOLD:
        actions.append(make_action(
            ActionType.ANSWER_QUESTION,
            "Answer question using Knowledge Base or AI",
            0.5,
            query=message,
        ))

    if intents.browse > BROWSE_THRESHOLD:
        actions.append(make_action(
            ActionType.SEARCH_PRODUCTS,
            "Search and display available products",
            0.3,
            query=message,
        ))

    if intents.support > SUPPORT_THRESHOLD:
        actions.append(make_action(
            ActionType.ESCALATE_HUMAN,
            "Escalate to human agent due to detected frustration",
            0.2,
            reason="customer_frustration",
        ))

    if intents.clarification > CLARIFICATION_THRESHOLD:
        actions.append(make_action(
            ActionType.CLARIFY_INTENT,
            "Ask clarifying question to understand user intent",
            0.1,
        ))

    # Decomposition only makes sense for the request as a whole
    if depth == 0 and is_complex_message(message):
        actions.append(make_action(
            ActionType.MULTI_STEP_PLAN,
            "Decompose complex request into sequential sub-goals",
            0.8,
            original_message=message,
        ))

    return actions[: config.max_actions_to_consider]
