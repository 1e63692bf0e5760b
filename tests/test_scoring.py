"""Tests for the action scorer."""

import pytest

from pomdp_planner.belief.estimator import estimate_initial_belief
from pomdp_planner.models.action import ActionType, make_action
from pomdp_planner.models.config import PlannerConfig, ScoringWeights
from pomdp_planner.models.state import CartSummary, CatalogItem, ObservedState
from pomdp_planner.scoring.scorer import (
    confidence_interval,
    estimate_explainability,
    estimate_q_value,
    estimate_risk,
    score_action,
)


def _state(message: str, **kwargs) -> ObservedState:
    return ObservedState(customer_id="cust_1", message=message, **kwargs)


class TestScoreFormula:
    def test_score_is_weighted_combination(self):
        state = _state("quero comprar um produto")
        belief = estimate_initial_belief(state)
        config = PlannerConfig(weights=ScoringWeights(lambda1=0.6, lambda2=0.5, lambda3=0.1))

        for action in (
            make_action(ActionType.ADD_TO_CART, "Add", 0.4, search_query=state.message),
            make_action(ActionType.CHECKOUT, "Checkout", 0.3),
            make_action(ActionType.CLARIFY_INTENT, "Clarify", 0.1),
        ):
            scored = score_action(action, state, belief, config)
            assert scored.score == pytest.approx(
                0.6 * scored.q_value - 0.5 * scored.risk + 0.1 * scored.explainability,
                abs=1e-12,
            )

    def test_components_bounded(self):
        state = _state(
            "quero comprar o tênis agora, reembolso?",
            current_cart=CartSummary(total=9000, item_count=3),
            available_products=[CatalogItem(id="p1", name="Tênis", price=299.0)],
        )
        belief = estimate_initial_belief(state)
        for action_type, params in (
            (ActionType.ADD_TO_CART, {"search_query": "x"}),
            (ActionType.CHECKOUT, {}),
            (ActionType.ANSWER_QUESTION, {"query": "x"}),
            (ActionType.MULTI_STEP_PLAN, {"original_message": "x"}),
        ):
            scored = score_action(make_action(action_type, "a", 0.5, **params), state, belief)
            for value in (scored.q_value, scored.risk, scored.explainability):
                assert 0.0 <= value <= 1.0

    def test_deterministic(self):
        state = _state("quero comprar um produto")
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.SEARCH_PRODUCTS, "Search", 0.3, query=state.message)
        assert score_action(action, state, belief) == score_action(action, state, belief)

    def test_reasoning_mentions_components(self):
        state = _state("ok")
        belief = estimate_initial_belief(state)
        scored = score_action(make_action(ActionType.CLARIFY_INTENT, "Clarify", 0.1), state, belief)
        assert scored.reasoning.startswith("Q=")
        assert "risk=" in scored.reasoning
        assert "explain=" in scored.reasoning
        assert "score=" in scored.reasoning


class TestQValue:
    def test_checkout_empty_cart_is_zero(self):
        state = _state("quero pagar agora")
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.CHECKOUT, "Checkout", 0.3)
        assert estimate_q_value(action, state, belief) == 0.0

    def test_checkout_with_cart(self):
        state = _state("quero pagar agora", current_cart=CartSummary(total=50, item_count=1))
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.CHECKOUT, "Checkout", 0.3)
        expected = 0.5 + 0.4 * belief.intent_probabilities.checkout
        assert estimate_q_value(action, state, belief) == pytest.approx(expected)

    def test_add_to_cart_product_name_bonus(self):
        products = [CatalogItem(id="p1", name="Tênis", price=299.0)]
        named = _state("quero o tênis", available_products=products)
        unnamed = _state("quero um sapato", available_products=products)
        action = make_action(ActionType.ADD_TO_CART, "Add", 0.4, search_query="x")
        q_named = estimate_q_value(action, named, estimate_initial_belief(named))
        q_unnamed = estimate_q_value(action, unnamed, estimate_initial_belief(unnamed))
        assert q_named > q_unnamed

    def test_nameless_product_never_matches(self):
        state = _state("quero um sapato", available_products=[CatalogItem(id="p1", name="")])
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.ADD_TO_CART, "Add", 0.4, search_query="x")
        expected = 0.5 + 0.2 * belief.intent_probabilities.purchase
        assert estimate_q_value(action, state, belief) == pytest.approx(expected)

    def test_clarify_tracks_uncertainty(self):
        state = _state("ok")
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.CLARIFY_INTENT, "Clarify", 0.1)
        assert estimate_q_value(action, state, belief) == pytest.approx(
            0.3 * belief.state_uncertainty
        )


class TestRisk:
    def test_high_cart_value_add_to_cart(self):
        state = _state(
            "quero comprar mais um",
            current_cart=CartSummary(total="6000", item_count=4),
        )
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.ADD_TO_CART, "Add", 0.4, search_query="x")
        assert estimate_risk(action, state, belief) >= 0.6

    def test_checkout_risk_tiers(self):
        state = _state("finalizar", current_cart=CartSummary(total=2500, item_count=2))
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.CHECKOUT, "Checkout", 0.3)
        risk = estimate_risk(action, state, belief)
        expected = 0.6 + (0.3 if belief.intent_probabilities.checkout < 0.5 else 0.0)
        assert risk == pytest.approx(expected)

    def test_sensitive_question(self):
        state = _state("como funciona o reembolso?")
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.ANSWER_QUESTION, "Answer", 0.5, query=state.message)
        assert estimate_risk(action, state, belief) == pytest.approx(0.55)

    def test_fixed_risks(self):
        state = _state("ok")
        belief = estimate_initial_belief(state)
        assert estimate_risk(make_action(ActionType.CLARIFY_INTENT, "c", 0.1), state, belief) == 0.02
        assert estimate_risk(
            make_action(ActionType.ESCALATE_HUMAN, "e", 0.2, reason="r"), state, belief
        ) == 0.1


class TestExplainability:
    def test_clarify_on_unclear_message_is_fully_explainable(self):
        state = _state("ok")
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.CLARIFY_INTENT, "Clarify", 0.1)
        assert estimate_explainability(action, state, belief) == 1.0

    def test_complex_action_penalized(self):
        state = _state("bom dia, tudo bem?")
        belief = estimate_initial_belief(state)
        action = make_action(ActionType.ANSWER_QUESTION, "Answer", 0.8, query="x")
        assert estimate_explainability(action, state, belief) == pytest.approx(0.3)


class TestConfidenceInterval:
    def test_width_scales_with_uncertainty(self):
        low, high = confidence_interval(0.5, 0.5)
        assert low == pytest.approx(0.4)
        assert high == pytest.approx(0.6)

    def test_bounds_clamped(self):
        assert confidence_interval(-0.2, 1.0) == (0.0, 0.0)
        assert confidence_interval(1.1, 0.0) == (1.0, 1.0)
