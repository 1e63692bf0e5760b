"""Actions — the closed set of things the agent can do next."""

from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ActionType(str, Enum):
    ANSWER_QUESTION = "answer_question"
    SEARCH_PRODUCTS = "search_products"
    ADD_TO_CART = "add_to_cart"
    CHECKOUT = "checkout"
    ESCALATE_HUMAN = "escalate_human"
    CLARIFY_INTENT = "clarify_intent"
    MULTI_STEP_PLAN = "multi_step_plan"


class _Params(BaseModel):
    model_config = ConfigDict(frozen=True)


class AnswerQuestionParams(_Params):
    kind: Literal["answer_question"] = "answer_question"
    query: str


class SearchProductsParams(_Params):
    kind: Literal["search_products"] = "search_products"
    query: str
    limit: Optional[int] = None


class AddToCartParams(_Params):
    kind: Literal["add_to_cart"] = "add_to_cart"
    search_query: str


class CheckoutParams(_Params):
    kind: Literal["checkout"] = "checkout"


class EscalateHumanParams(_Params):
    kind: Literal["escalate_human"] = "escalate_human"
    reason: str


class ClarifyIntentParams(_Params):
    kind: Literal["clarify_intent"] = "clarify_intent"


class MultiStepPlanParams(_Params):
    kind: Literal["multi_step_plan"] = "multi_step_plan"
    original_message: str


ActionParams = Annotated[
    Union[
        AnswerQuestionParams,
        SearchProductsParams,
        AddToCartParams,
        CheckoutParams,
        EscalateHumanParams,
        ClarifyIntentParams,
        MultiStepPlanParams,
    ],
    Field(discriminator="kind"),
]

PARAMS_BY_TYPE: Dict[ActionType, Type[_Params]] = {
    ActionType.ANSWER_QUESTION: AnswerQuestionParams,
    ActionType.SEARCH_PRODUCTS: SearchProductsParams,
    ActionType.ADD_TO_CART: AddToCartParams,
    ActionType.CHECKOUT: CheckoutParams,
    ActionType.ESCALATE_HUMAN: EscalateHumanParams,
    ActionType.CLARIFY_INTENT: ClarifyIntentParams,
    ActionType.MULTI_STEP_PLAN: MultiStepPlanParams,
}


class Action(BaseModel):
    """A candidate next move. Immutable."""

    model_config = ConfigDict(frozen=True)

    type: ActionType
    params: ActionParams
    description: str                                  # Human-readable
    estimated_complexity: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def _params_match_type(self) -> "Action":
        if self.params.kind != self.type.value:
            raise ValueError(
                f"params of kind '{self.params.kind}' do not belong to "
                f"action type '{self.type.value}'"
            )
        return self

    def as_action(self) -> "Action":
        """Plain Action view (drops scoring fields on subclasses)."""
        return Action(
            type=self.type,
            params=self.params,
            description=self.description,
            estimated_complexity=self.estimated_complexity,
        )


class ScoredAction(Action):
    """
    An Action with its POMDP score components.

    q_value, risk and explainability are bounded to [0, 1].
    score is the weighted combination and is intentionally unbounded.
    """

    score: float
    q_value: float = Field(ge=0, le=1)
    risk: float = Field(ge=0, le=1)
    explainability: float = Field(ge=0, le=1)
    reasoning: str
    confidence_interval: Tuple[float, float]


def make_action(
    action_type: ActionType,
    description: str,
    estimated_complexity: float,
    **params,
) -> Action:
    """Build an Action, picking the parameter model from the action type."""
    return Action(
        type=action_type,
        params=PARAMS_BY_TYPE[action_type](**params),
        description=description,
        estimated_complexity=estimated_complexity,
    )
