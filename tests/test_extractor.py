"""Tests for ui_migrator.extractors (discovery and TSX extraction)."""

import pytest

from ui_migrator.errors import ExtractionError
from ui_migrator.extractors.discovery import discover_sources, matches
from ui_migrator.models.component import ComponentKind, DependencyKind, InputField

from conftest import (
    BARREL_TS,
    BROKEN_TSX,
    BUTTON_TSX,
    COUNTER_TSX,
    PROFILE_TSX,
    TOOLBAR_TSX,
    USE_TOGGLE_TS,
)


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------
class TestDiscovery:
    """Include/exclude glob handling."""

    def test_double_star_matches_root_files(self):
        assert matches("Button.tsx", ["**/*.tsx"])
        assert matches("components/Button.tsx", ["**/*.tsx"])
        assert not matches("components/Button.css", ["**/*.tsx"])

    def test_default_excludes_drop_tests(self, source_tree):
        found = [p.relative_to(source_tree).as_posix() for p in discover_sources(source_tree)]
        assert "components/Button.test.tsx" not in found
        assert found == sorted(found)
        assert "components/Button.tsx" in found
        assert "hooks/useToggle.ts" in found

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            discover_sources(tmp_path / "missing")


# ---------------------------------------------------------------------------
# Classification and inputs
# ---------------------------------------------------------------------------
class TestTSXExtractor:
    """Structural extraction of single files."""

    def test_stateless_view(self, extractor):
        model = extractor.extract(BUTTON_TSX, "components/Button.tsx")
        assert model.name == "Button"
        assert model.kind == ComponentKind.STATELESS_VIEW
        assert model.id == "components/Button.tsx"
        assert model.inputs == (
            InputField(name="label", type="string", required=True),
            InputField(name="disabled", type="boolean", required=False),
        )

    def test_stateful_view(self, extractor):
        model = extractor.extract(PROFILE_TSX, "Profile.tsx")
        assert model.kind == ComponentKind.STATEFUL_VIEW
        assert [i.name for i in model.inputs] == ["userId"]

    def test_class_view_reads_props_type_argument(self, extractor):
        model = extractor.extract(COUNTER_TSX, "Counter.tsx")
        assert model.kind == ComponentKind.CLASS_BASED_VIEW
        assert model.inputs == (InputField(name="step", type="number", required=True),)

    def test_hook_is_utility_with_parameter_inputs(self, extractor):
        model = extractor.extract(USE_TOGGLE_TS, "hooks/useToggle.ts")
        assert model.name == "useToggle"
        assert model.kind == ComponentKind.UTILITY_FUNCTION
        assert model.inputs == (InputField(name="initial", type="boolean", required=False),)

    def test_dependencies_are_classified(self, extractor):
        model = extractor.extract(TOOLBAR_TSX, "Toolbar.tsx")
        kinds = {d.name: d.kind for d in model.dependencies}
        assert kinds["React"] == DependencyKind.LIBRARY
        assert kinds["Button"] == DependencyKind.COMPONENT
        assert [d.name for d in model.component_dependencies()] == ["Button"]

    def test_classify_import(self, extractor):
        assert extractor.classify_import("@/utils/format", "formatDate") == DependencyKind.UTILITY
        assert extractor.classify_import("@/components/Card", "Card") == DependencyKind.COMPONENT
        assert extractor.classify_import("./types", "Props", type_only=True) == DependencyKind.UTILITY
        assert extractor.classify_import("lodash", "debounce") == DependencyKind.LIBRARY


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class TestExtractionErrors:
    """Failures map to ExtractionError reasons."""

    def test_syntax_error_is_parse_failure(self, extractor):
        with pytest.raises(ExtractionError) as info:
            extractor.extract(BROKEN_TSX, "Broken.tsx")
        assert info.value.reason == ExtractionError.PARSE_FAILURE
        assert info.value.retryable

    def test_barrel_has_no_declaration(self, extractor):
        with pytest.raises(ExtractionError) as info:
            extractor.extract(BARREL_TS, "index.ts")
        assert info.value.reason == ExtractionError.NO_DECLARATION
        assert not info.value.retryable

    def test_missing_file_is_not_retryable(self, extractor, tmp_path):
        with pytest.raises(ExtractionError) as info:
            extractor.extract_file(tmp_path / "Gone.tsx", tmp_path)
        assert info.value.reason == ExtractionError.FILE_NOT_FOUND
        assert info.value.component_id == "Gone.tsx"
        assert not info.value.retryable

    def test_extract_all_stamps_failed_models(self, extractor, tmp_path):
        (tmp_path / "Button.tsx").write_text(BUTTON_TSX, encoding="utf-8")
        (tmp_path / "Broken.tsx").write_text(BROKEN_TSX, encoding="utf-8")

        result = extractor.extract_all(
            [tmp_path / "Broken.tsx", tmp_path / "Button.tsx"], tmp_path
        )

        assert result.total_extracted == 1
        assert not result.success
        failed = [m for m in result.models if m.failed]
        assert [m.id for m in failed] == ["Broken.tsx"]
        assert result.errors[0]["reason"] == ExtractionError.PARSE_FAILURE
