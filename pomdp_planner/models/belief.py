"""Belief State — probability distribution over the customer's hidden intent."""

from typing import List, Optional

from pydantic import BaseModel, Field


INTENT_LABELS = (
    "purchase",
    "information",
    "browse",
    "checkout",
    "support",
    "clarification",
)


class IntentProbabilities(BaseModel):
    """Closed set of intents. Values sum to 1 after normalization."""

    purchase: float = Field(ge=0, le=1)       # Wants to buy something
    information: float = Field(ge=0, le=1)    # Asking a question
    browse: float = Field(ge=0, le=1)         # Just looking around
    checkout: float = Field(ge=0, le=1)       # Ready to pay
    support: float = Field(ge=0, le=1)        # Needs help / frustrated
    clarification: float = Field(ge=0, le=1)  # Unclear what they want

    def as_dict(self) -> dict:
        return {label: getattr(self, label) for label in INTENT_LABELS}

    def max(self) -> float:
        return max(self.as_dict().values())

    def total(self) -> float:
        return sum(self.as_dict().values())


class BeliefState(BaseModel):
    """b(s) for one planning step, plus a short trail of earlier beliefs."""

    intent_probabilities: IntentProbabilities
    intent_confidence: float = Field(ge=0, le=1)
    state_uncertainty: float = Field(ge=0, le=1)   # 1 - max(intent_probabilities)
    previous_beliefs: List["BeliefState"] = []     # Diagnostics only, at most 5

    def snapshot(self) -> "BeliefState":
        """Copy without history, for appending to another belief's trail."""
        return self.model_copy(update={"previous_beliefs": []})


class ActionObservation(BaseModel):
    """What came back after an action was executed."""

    success: Optional[bool] = None
    detail: dict = {}
