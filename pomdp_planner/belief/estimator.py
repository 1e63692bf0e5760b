"""
Belief Estimator — turns an observation into b(s) over customer intents.

Observation model: independent keyword detectors, one per intent. Each
detector yields a hand-tuned weight when it fires and a low non-zero
default otherwise, so the normalizing sum can never be zero.

Belief update is a coarse approximation of a Bayes filter: confidence is
nudged by the observed outcome of the last action. It is not calibrated.
"""

import re
from typing import Mapping, Optional, Union

from pomdp_planner.models.action import Action
from pomdp_planner.models.belief import (
    ActionObservation,
    BeliefState,
    IntentProbabilities,
)
from pomdp_planner.models.state import ObservedState
from pomdp_planner.observability.logger import get_logger

log = get_logger(__name__)

BUY_PATTERN = re.compile(r"(comprar|adicionar|quero|buy|add|purchase)", re.IGNORECASE)
CHECKOUT_PATTERN = re.compile(r"(checkout|finalizar|pagar|concluir|pay)", re.IGNORECASE)
QUESTION_PATTERN = re.compile(
    r"(como|quando|onde|o que|what|how|when|where|why)", re.IGNORECASE
)
BROWSE_PATTERN = re.compile(r"(produto|ver|mostrar|show|product|list|browse)", re.IGNORECASE)
SUPPORT_PATTERN = re.compile(
    r"(problema|erro|não funciona|ajuda|help|issue|error)", re.IGNORECASE
)
_WORD_PATTERN = re.compile(r"\w{3,}", re.ASCII)

HISTORY_LIMIT = 5
CONFIDENCE_STEP = 0.1


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def estimate_initial_belief(state: ObservedState) -> BeliefState:
    """b0(s): initial belief before any action is taken."""
    message = state.message.lower()

    purchase = 0.7 if BUY_PATTERN.search(message) else 0.05
    if CHECKOUT_PATTERN.search(message):
        checkout = 0.8
    else:
        checkout = 0.3 if state.has_cart_items else 0.02
    information = 0.6 if QUESTION_PATTERN.search(message) else 0.1
    browse = 0.5 if BROWSE_PATTERN.search(message) else 0.15
    support = 0.7 if SUPPORT_PATTERN.search(message) else 0.05
    unclear = len(message) < 10 or not _WORD_PATTERN.search(message)
    clarification = 0.6 if unclear else 0.1

    total = purchase + checkout + information + browse + support + clarification

    probabilities = IntentProbabilities(
        purchase=purchase / total,
        information=information / total,
        browse=browse / total,
        checkout=checkout / total,
        support=support / total,
        clarification=clarification / total,
    )

    has_keywords = any(
        p.search(message)
        for p in (BUY_PATTERN, CHECKOUT_PATTERN, QUESTION_PATTERN, BROWSE_PATTERN)
    )
    intent_confidence = min(
        1.0, (0.7 if has_keywords else 0.3) + len(state.message) / 200
    )
    state_uncertainty = _clamp01(1.0 - probabilities.max())

    belief = BeliefState(
        intent_probabilities=probabilities,
        intent_confidence=intent_confidence,
        state_uncertainty=state_uncertainty,
    )
    log.debug(
        "planner.belief.estimated",
        intents=probabilities.as_dict(),
        confidence=round(intent_confidence, 3),
        uncertainty=round(state_uncertainty, 3),
    )
    return belief


def update_belief(
    belief: BeliefState,
    action: Action,
    observation: Optional[Union[ActionObservation, Mapping]],
) -> BeliefState:
    """
    b'(s) after executing an action and observing its outcome.

    The previous belief is appended to a trail capped at the last five.
    A reported success raises confidence and lowers uncertainty by a fixed
    step; a reported failure does the opposite; an unknown outcome leaves
    both unchanged. Intent probabilities are carried over as they are.
    """
    if observation is None:
        outcome = ActionObservation()
    elif isinstance(observation, ActionObservation):
        outcome = observation
    else:
        outcome = ActionObservation.model_validate(dict(observation))

    trail = list(belief.previous_beliefs) + [belief.snapshot()]

    confidence = belief.intent_confidence
    uncertainty = belief.state_uncertainty
    if outcome.success is True:
        confidence = _clamp01(confidence + CONFIDENCE_STEP)
        uncertainty = _clamp01(uncertainty - CONFIDENCE_STEP)
    elif outcome.success is False:
        confidence = _clamp01(confidence - CONFIDENCE_STEP)
        uncertainty = _clamp01(uncertainty + CONFIDENCE_STEP)

    log.debug(
        "planner.belief.updated",
        action=action.type.value,
        success=outcome.success,
        confidence=round(confidence, 3),
    )
    return belief.model_copy(
        update={
            "intent_confidence": confidence,
            "state_uncertainty": uncertainty,
            "previous_beliefs": trail[-HISTORY_LIMIT:],
        }
    )
