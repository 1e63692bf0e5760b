"""Tests for candidate action generation."""

from pomdp_planner.belief.estimator import estimate_initial_belief
from pomdp_planner.models.action import ActionType
from pomdp_planner.models.config import DEFAULT_CONFIG, PlannerConfig
from pomdp_planner.models.state import ObservedState
from pomdp_planner.strategy.generator import generate_candidate_actions, is_complex_message


def _candidates(message: str, depth: int = 0, config: PlannerConfig = DEFAULT_CONFIG):
    state = ObservedState(customer_id="cust_1", message=message)
    belief = estimate_initial_belief(state)
    return generate_candidate_actions(state, belief, depth, config)


LONG_MESSAGE = (
    "quero comprar um tênis de corrida azul tamanho 42, depois adicionar meias "
    "e então finalizar o pedido com entrega expressa para a minha casa amanhã"
)


class TestGenerateCandidates:
    def test_purchase_candidates_in_order(self):
        actions = _candidates("quero comprar um produto")
        assert [a.type for a in actions] == [
            ActionType.ADD_TO_CART,
            ActionType.SEARCH_PRODUCTS,
            ActionType.SEARCH_PRODUCTS,
        ]
        assert actions[0].params.search_query == "quero comprar um produto"
        assert actions[1].params.limit == 5
        assert actions[2].params.limit is None

    def test_unclear_message_asks_for_clarification(self):
        actions = _candidates("ok")
        assert [a.type for a in actions] == [ActionType.CLARIFY_INTENT]

    def test_checkout_message(self):
        actions = _candidates("quero finalizar e pagar agora")
        assert ActionType.CHECKOUT in [a.type for a in actions]

    def test_support_escalates(self):
        actions = _candidates("estou com um problema, preciso de ajuda")
        escalations = [a for a in actions if a.type == ActionType.ESCALATE_HUMAN]
        assert len(escalations) == 1
        assert escalations[0].params.reason == "customer_frustration"

    def test_multi_step_only_at_depth_zero(self):
        at_root = _candidates(LONG_MESSAGE, depth=0)
        deeper = _candidates(LONG_MESSAGE, depth=1)
        assert ActionType.MULTI_STEP_PLAN in [a.type for a in at_root]
        assert ActionType.MULTI_STEP_PLAN not in [a.type for a in deeper]

    def test_truncated_to_branching_factor(self):
        config = PlannerConfig(max_actions_to_consider=1)
        actions = _candidates("quero comprar um produto", config=config)
        assert [a.type for a in actions] == [ActionType.ADD_TO_CART]

    def test_zero_branching_gives_no_candidates(self):
        config = PlannerConfig(max_actions_to_consider=0)
        assert _candidates("quero comprar um produto", config=config) == []


class TestComplexity:
    def test_long_message_is_complex(self):
        assert is_complex_message("a" * 101)

    def test_many_words_is_complex(self):
        assert is_complex_message(" ".join(["ab"] * 21))

    def test_short_message_is_simple(self):
        assert not is_complex_message("quero comprar um produto")
