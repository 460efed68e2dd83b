"""Tests for ui_migrator.services.analyzer."""

import json

import pytest

from ui_migrator.errors import AnalysisError
from ui_migrator.models.business_logic import PatternCategory, TransformOperation
from ui_migrator.models.component import ComplexityTier
from ui_migrator.models.migration import ComplexityPolicy
from ui_migrator.extractors.tsx_extractor import TSXExtractor
from ui_migrator.services.analyzer import BusinessLogicAnalyzer, handler_interaction, infer_type

from conftest import (
    BUTTON_TSX,
    COUNTER_TSX,
    ORDERS_TSX,
    PROFILE_TSX,
    SIGNUP_FORM_TSX,
    USE_TOGGLE_TS,
)

BROKEN_SET_STATE_TSX = """\
import React, { Component } from 'react';

export class Panel extends Component {
  state = { open: false };

  handleClick = () => {
    this.setState({ closed: true });
  };

  render() {
    return <div onClick={this.handleClick} />;
  }
}
"""

AXIOS_TSX = """\
import axios from 'axios';

export function saveOrder(order) {
  return axios.post('/api/orders', order);
}
"""


# ---------------------------------------------------------------------------
# Pattern recognition
# ---------------------------------------------------------------------------
class TestPatternRecognition:
    """Each category is recognized structurally."""

    def test_stateless_view_has_no_patterns(self, analyzer):
        logic = analyzer.analyze_source(BUTTON_TSX, "Button.tsx", "Button")
        assert logic.pattern_total == 0
        assert logic.complexity_score == 0

    def test_state_handler_and_fetch(self, analyzer):
        logic = analyzer.analyze_source(PROFILE_TSX, "Profile.tsx", "Profile")

        (state,) = logic.state_bindings
        assert (state.name, state.setter, state.value_type) == ("name", "setName", "string")
        assert state.origin == "useState"

        (handler,) = logic.event_handlers
        assert handler.name == "handleLoad"
        assert handler.interaction == "click"
        assert handler.mutators == ("setName",)
        assert handler.confidence == 1.0

        (call,) = logic.external_calls
        assert call.target == "/api/users/${userId}"
        assert call.method == "GET"
        assert call.has_success_branch
        assert call.has_error_branch
        assert not call.via_registry

    def test_validation_guard(self, analyzer):
        logic = analyzer.analyze_source(SIGNUP_FORM_TSX, "SignupForm.tsx", "SignupForm")

        (rule,) = logic.validation_rules
        assert rule.field == "email"
        assert rule.rule == "required"
        assert rule.message == "Email is invalid"
        assert [h.name for h in logic.event_handlers] == ["handleSubmit"]
        assert logic.event_handlers[0].mutators == ("setError",)
        assert [s.name for s in logic.state_bindings] == ["email", "error"]

    def test_registry_use_case_effect_and_map(self, analyzer):
        logic = analyzer.analyze_source(ORDERS_TSX, "Orders.tsx", "Orders")

        (call,) = logic.external_calls
        assert call.target == "ListOrders"
        assert call.method == "execute"
        assert call.via_registry
        assert call.has_success_branch and call.has_error_branch

        (effect,) = logic.side_effects
        assert effect.origin == "useEffect"
        assert effect.mount_only
        assert not effect.has_cleanup

        (transformation,) = logic.data_transformations
        assert transformation.operation == TransformOperation.MAP
        assert transformation.target == "orders"

    def test_http_client_method(self, analyzer):
        logic = analyzer.analyze_source(AXIOS_TSX, "saveOrder.tsx", "saveOrder")
        (call,) = logic.external_calls
        assert (call.target, call.method) == ("/api/orders", "POST")
        assert not call.has_error_branch

    def test_class_state_and_set_state_mutators(self, analyzer):
        logic = analyzer.analyze_source(COUNTER_TSX, "Counter.tsx", "Counter")
        (state,) = logic.state_bindings
        assert (state.name, state.setter, state.origin) == ("count", "setCount", "class_state")
        assert state.value_type == "number"
        (handler,) = logic.event_handlers
        assert handler.mutators == ("setCount",)

    def test_set_state_on_undeclared_key_raises(self, analyzer):
        with pytest.raises(AnalysisError):
            analyzer.analyze_source(BROKEN_SET_STATE_TSX, "Panel.tsx", "Panel")

    def test_results_follow_source_order(self, analyzer):
        first = analyzer.analyze_source(SIGNUP_FORM_TSX, "SignupForm.tsx", "SignupForm")
        second = analyzer.analyze_source(SIGNUP_FORM_TSX, "SignupForm.tsx", "SignupForm")
        assert first == second
        lines = [s.line for s in first.state_bindings]
        assert lines == sorted(lines)

    @pytest.mark.parametrize("source_text,source_path", [
        (COUNTER_TSX, "Counter.tsx"),
        (ORDERS_TSX, "Orders.tsx"),
        (SIGNUP_FORM_TSX, "SignupForm.tsx"),
    ])
    def test_unchanged_source_gives_identical_model(self, source_text, source_path):
        def run():
            model = BusinessLogicAnalyzer().enrich(TSXExtractor().extract(source_text, source_path))
            return model, json.dumps(model.to_dict(), indent=2)

        first, first_json = run()
        second, second_json = run()

        assert first.business_logic == second.business_logic
        assert first.to_dict() == second.to_dict()
        assert first_json == second_json


# ---------------------------------------------------------------------------
# Scoring and tiers
# ---------------------------------------------------------------------------
class TestComplexity:
    """Weighted score and tier selection."""

    def test_state_plus_external_call_is_moderate(self, analyzed):
        model = analyzed(PROFILE_TSX, "Profile.tsx")
        # 1 state + 1 handler + 1 external call
        assert model.business_logic.complexity_score == 7
        assert model.complexity_tier == ComplexityTier.MODERATE

    def test_simple_hook(self, analyzed):
        model = analyzed(USE_TOGGLE_TS, "useToggle.ts")
        assert model.business_logic.counts()[PatternCategory.STATE_BINDING] == 1
        assert model.complexity_tier == ComplexityTier.SIMPLE

    def test_custom_policy(self):
        policy = ComplexityPolicy(moderate_threshold=1, complex_threshold=2, critical_threshold=3)
        analyzer = BusinessLogicAnalyzer(policy=policy)
        logic = analyzer.analyze_source(PROFILE_TSX, "Profile.tsx", "Profile")
        assert analyzer.tier_for(logic) == ComplexityTier.CRITICAL

    def test_adding_a_pattern_never_lowers_the_score(self):
        policy = ComplexityPolicy()
        counts = {category: 1 for category in PatternCategory}
        for category in PatternCategory:
            more = dict(counts)
            more[category] += 1
            assert policy.score(more) >= policy.score(counts)

    def test_negative_weights_rejected(self):
        with pytest.raises(ValueError):
            ComplexityPolicy(weights={PatternCategory.STATE_BINDING: -1})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
class TestHelpers:

    def test_handler_interaction(self):
        assert handler_interaction("handleEmailChange") == "change"
        assert handler_interaction("onClose") == "close"

    def test_infer_type_defaults_to_unknown(self):
        assert infer_type(None, None) == "unknown"
