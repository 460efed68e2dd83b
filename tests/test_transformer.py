"""Tests for ui_migrator.services.transformer."""

import pytest

from ui_migrator.errors import TransformationError
from ui_migrator.extractors.tsx_extractor import TSXExtractor
from ui_migrator.models.component import ComplexityTier, ComponentKind, ComponentModel
from ui_migrator.models.migration import ComplexityPolicy, MigrationStrategy
from ui_migrator.models.record import RecordKind
from ui_migrator.models.transformed import DeclarationStyle
from ui_migrator.services.analyzer import BusinessLogicAnalyzer
from ui_migrator.services.transformer import ComponentTransformer

from conftest import (
    BUTTON_TSX,
    COUNTER_TSX,
    GREETING_TSX,
    ORDERS_TSX,
    PROFILE_TSX,
    SIGNUP_FORM_TSX,
    USE_TOGGLE_TS,
)

LEGACY_TSX = """\
import React from 'react';
import { Card } from '@daisy/components';
import type { DaisyTheme } from '@daisy/core';

interface BadgeProps {
  theme: DaisyTheme;
}

export const Badge = ({ theme }: BadgeProps) => {
  return <Card theme={theme} />;
};
"""

CUSTOM_TYPE_TSX = """\
import React from 'react';
import type { LegacyTheme } from './theme';

interface PanelProps {
  theme: LegacyTheme;
}

export const Panel = ({ theme }: PanelProps) => {
  const active: LegacyTheme = theme;
  return <div className={active.panel} />;
};
"""

PATTERN_KINDS = (RecordKind.PROP, RecordKind.STATE, RecordKind.HANDLER, RecordKind.EFFECT,
                 RecordKind.VALIDATION, RecordKind.API)


@pytest.fixture
def transformer():
    return ComponentTransformer()


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------
class TestStrategySelection:
    """Strategy is a pure function of the tier."""

    @pytest.mark.parametrize("tier,strategy", [
        (ComplexityTier.SIMPLE, MigrationStrategy.DIRECT_TRANSLATION),
        (ComplexityTier.MODERATE, MigrationStrategy.PATTERN_MAPPING),
        (ComplexityTier.COMPLEX, MigrationStrategy.HYBRID_APPROACH),
        (ComplexityTier.CRITICAL, MigrationStrategy.MANUAL_REVIEW_REQUIRED),
    ])
    def test_tier_to_strategy(self, transformer, tier, strategy):
        assert transformer.select_strategy(tier) == strategy

    def test_simple_view_uses_direct_translation(self, transformer, analyzed):
        outcome = transformer.transform(analyzed(BUTTON_TSX, "Button.tsx"))
        assert outcome.strategy == MigrationStrategy.DIRECT_TRANSLATION
        assert not outcome.transformed.requires_manual_review

    def test_critical_tier_is_flagged(self):
        policy = ComplexityPolicy(moderate_threshold=0, complex_threshold=0, critical_threshold=0)
        analyzer = BusinessLogicAnalyzer(policy=policy)
        model = analyzer.enrich(TSXExtractor().extract(BUTTON_TSX, "Button.tsx"))

        outcome = ComponentTransformer(policy=policy).transform(model)

        assert outcome.strategy == MigrationStrategy.MANUAL_REVIEW_REQUIRED
        assert outcome.transformed.requires_manual_review
        assert any("MIGRATION REVIEW REQUIRED" in line for line in outcome.transformed.banner)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
class TestRecords:
    """One record per recognized pattern, plus structural records."""

    def test_state_and_external_call_give_two_pattern_records(self, transformer, analyzed):
        model = analyzed(GREETING_TSX, "Greeting.tsx")
        assert model.complexity_tier == ComplexityTier.MODERATE

        outcome = transformer.transform(model)

        assert outcome.strategy == MigrationStrategy.PATTERN_MAPPING
        pattern_records = [r for r in outcome.records if r.kind in PATTERN_KINDS]
        assert [r.kind for r in pattern_records] == [RecordKind.STATE, RecordKind.API]
        assert outcome.records_of(RecordKind.API)[0].target == "/api/greeting"
        assert outcome.records_of(RecordKind.STRUCTURAL)

    def test_record_counts_match_pattern_counts(self, transformer, analyzed):
        model = analyzed(PROFILE_TSX, "Profile.tsx")
        logic = model.business_logic

        outcome = transformer.transform(model)

        assert len(outcome.records_of(RecordKind.STATE)) == len(logic.state_bindings)
        assert len(outcome.records_of(RecordKind.HANDLER)) == len(logic.event_handlers)
        assert len(outcome.records_of(RecordKind.API)) == len(logic.external_calls)
        assert len(outcome.records_of(RecordKind.PROP)) == len(model.inputs)
        (api,) = outcome.records_of(RecordKind.API)
        assert api.note == "GET; error branch kept"

    @pytest.mark.parametrize("thresholds,strategy", [
        ((100, 200, 300), MigrationStrategy.DIRECT_TRANSLATION),
        ((0, 100, 200), MigrationStrategy.PATTERN_MAPPING),
        ((0, 0, 100), MigrationStrategy.HYBRID_APPROACH),
        ((0, 0, 0), MigrationStrategy.MANUAL_REVIEW_REQUIRED),
    ])
    @pytest.mark.parametrize("source_text,source_path", [
        (ORDERS_TSX, "Orders.tsx"),
        (SIGNUP_FORM_TSX, "SignupForm.tsx"),
        (COUNTER_TSX, "Counter.tsx"),
        (PROFILE_TSX, "Profile.tsx"),
    ])
    def test_one_record_per_pattern_in_every_tier(self, thresholds, strategy, source_text, source_path):
        moderate, complex_, critical = thresholds
        policy = ComplexityPolicy(
            moderate_threshold=moderate, complex_threshold=complex_, critical_threshold=critical,
        )
        model = BusinessLogicAnalyzer(policy=policy).enrich(TSXExtractor().extract(source_text, source_path))
        logic = model.business_logic

        outcome = ComponentTransformer(policy=policy).transform(model)

        assert outcome.strategy == strategy
        expected = {
            RecordKind.PROP: len(model.inputs),
            RecordKind.STATE: len(logic.state_bindings),
            RecordKind.EFFECT: len(logic.side_effects),
            RecordKind.HANDLER: len(logic.event_handlers),
            RecordKind.VALIDATION: len(logic.validation_rules),
            RecordKind.API: len(logic.external_calls),
        }
        assert {kind: len(outcome.records_of(kind)) for kind in PATTERN_KINDS} == expected
        assert sum(expected.values()) > 0

    def test_effects_and_validations_are_recorded(self, transformer, analyzed):
        orders = transformer.transform(analyzed(ORDERS_TSX, "Orders.tsx"))
        signup = transformer.transform(analyzed(SIGNUP_FORM_TSX, "SignupForm.tsx"))

        assert len(orders.records_of(RecordKind.EFFECT)) == 1
        assert signup.records_of(RecordKind.VALIDATION)

    def test_input_model_is_not_mutated(self, transformer, analyzed):
        model = analyzed(PROFILE_TSX, "Profile.tsx")
        before = model.to_dict()
        transformer.transform(model)
        assert model.to_dict() == before


# ---------------------------------------------------------------------------
# Rewrites
# ---------------------------------------------------------------------------
class TestRewrites:
    """v1 to v2 dialect rules."""

    def test_function_view_declared_as_fc(self, transformer, analyzed):
        transformed = transformer.transform(analyzed(BUTTON_TSX, "Button.tsx")).transformed
        assert transformed.style == DeclarationStyle.COMPONENT
        assert transformed.props_interface == "ButtonProps"
        assert transformed.parameters == "{ label, disabled }"
        assert transformed.extension == ".tsx"
        assert any("from 'react'" in line and "FC" in line for line in transformed.imports)

    def test_pattern_mapping_types_state_hooks(self, transformer, analyzed):
        transformed = transformer.transform(analyzed(PROFILE_TSX, "Profile.tsx")).transformed
        body = "\n".join(s.code for s in transformed.body)
        assert "useState<string>('')" in body

    def test_class_component_becomes_function(self, transformer, analyzed):
        outcome = transformer.transform(analyzed(COUNTER_TSX, "Counter.tsx"))
        transformed = outcome.transformed
        body = "\n".join(s.code for s in transformed.body)

        assert transformed.style == DeclarationStyle.COMPONENT
        assert transformed.parameters == "props"
        assert "const [count, setCount] = useState<number>(0);" in body
        assert "setCount(count + props.step)" in body
        assert "this." not in body
        assert outcome.records_of(RecordKind.STATE)[0].source == "this.state.count"

    def test_registry_lookup_uses_injected_services(self, transformer, analyzed):
        outcome = transformer.transform(analyzed(ORDERS_TSX, "Orders.tsx"))
        transformed = outcome.transformed
        body = "\n".join(s.code for s in transformed.body)

        assert body.startswith("const services = useServices();")
        assert "services.resolve<ListOrders>('ListOrders')" in body
        assert "container" not in body
        assert "import { useServices } from '@configurator/services';" in transformed.imports
        assert not any("tsyringe" in line for line in transformed.imports)

    def test_legacy_imports_and_types_are_renamed(self, transformer, analyzed):
        transformed = transformer.transform(analyzed(LEGACY_TSX, "Badge.tsx")).transformed
        imports = "\n".join(transformed.imports)

        assert "@configurator/components" in imports
        assert "ConfiguratorTheme" in imports
        assert "@daisy/" not in imports
        assert [p.type for p in transformed.props] == ["ConfiguratorTheme"]

    def test_custom_type_renames_are_recorded(self, analyzed):
        transformer = ComponentTransformer(type_renames={"LegacyTheme": "Theme"})

        outcome = transformer.transform(analyzed(CUSTOM_TYPE_TSX, "Panel.tsx"))

        renames = [
            (r.source, r.target) for r in outcome.records_of(RecordKind.STRUCTURAL) if r.note == "type rename"
        ]
        assert renames == [("LegacyTheme", "Theme")]
        assert "const active: Theme = theme;" in "\n".join(s.code for s in outcome.transformed.body)

    def test_hook_keeps_function_declaration(self, transformer, analyzed):
        transformed = transformer.transform(analyzed(USE_TOGGLE_TS, "hooks/useToggle.ts")).transformed
        assert transformed.style == DeclarationStyle.FUNCTION
        assert transformed.file_name == "useToggle.ts"
        assert transformed.parameters == "initial: boolean = false"

    def test_remap_and_rename_helpers(self, transformer):
        assert transformer.remap_import("@daisy/hooks") == "@configurator/hooks"
        assert transformer.remap_import("@daisy/forms/input") == "@configurator/forms/input"
        assert transformer.remap_import("lodash") == "lodash"
        assert transformer.rename_type("DaisyConfig") == "ConfiguratorConfig"
        assert transformer.rename_type("DaisyButtonProps") == "ConfiguratorButtonProps"
        assert transformer.rename_type("ButtonProps") is None


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class TestTransformationErrors:

    def test_unanalyzed_model_raises(self, transformer, extractor):
        model = extractor.extract(BUTTON_TSX, "Button.tsx")
        with pytest.raises(TransformationError):
            transformer.transform(model)

    def test_failed_model_raises(self, transformer):
        model = ComponentModel.failed_model("Broken.tsx", "Broken.tsx", "parse failure")
        assert model.kind == ComponentKind.UTILITY_FUNCTION
        with pytest.raises(TransformationError):
            transformer.transform(model)
