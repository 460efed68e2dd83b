"""Tests for ui_migrator.services.generator."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from ui_migrator.errors import GenerationError
from ui_migrator.models.record import ArtifactKind
from ui_migrator.services.generator import CodeGenerator
from ui_migrator.services.transformer import ComponentTransformer

from conftest import BUTTON_TSX, PROFILE_TSX, USE_TOGGLE_TS

GENERATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def transformed(analyzed):
    def _transformed(source_text, source_path):
        return ComponentTransformer().transform(analyzed(source_text, source_path)).transformed
    return _transformed


@pytest.fixture
def generator():
    return CodeGenerator()


class TestArtifacts:
    """Three artifacts per component, in a folder named after it."""

    def test_paths_and_kinds(self, generator, transformed):
        artifacts = generator.generate(transformed(BUTTON_TSX, "Button.tsx"), GENERATED_AT)
        assert [(a.relative_path, a.kind) for a in artifacts] == [
            ("Button/Button.tsx", ArtifactKind.PRIMARY_SOURCE),
            ("Button/index.ts", ArtifactKind.BARREL),
            ("Button/README.md", ArtifactKind.DOCUMENTATION),
        ]
        assert all(a.generated_at == GENERATED_AT for a in artifacts)

    def test_primary_source(self, generator, transformed):
        content = generator.render_primary(transformed(BUTTON_TSX, "Button.tsx"))
        assert content.startswith("import { FC } from 'react';\n")
        assert "export interface ButtonProps {\n  label: string;\n  disabled?: boolean;\n}" in content
        assert "export const Button: FC<ButtonProps> = ({ label, disabled }) => {" in content
        assert "  return <button disabled={disabled}>{label}</button>;" in content
        assert content.endswith("export default Button;\n")

    def test_barrel_reexports_primary(self, generator, transformed):
        barrel = generator.render_barrel(transformed(BUTTON_TSX, "Button.tsx"))
        assert barrel == "export * from './Button';\nexport { default } from './Button';\n"

    def test_readme_documents_props_and_behavior(self, generator, transformed):
        readme = generator.render_readme(transformed(PROFILE_TSX, "Profile.tsx"))
        assert readme.startswith("# Profile\n")
        assert "| `userId` | `string` | yes |" in readme
        assert "<Profile userId={userId} />" in readme
        assert "- State `name` (`string`), updated by `setName`" in readme
        assert "- Handler `handleLoad` on click, updates `setName`" in readme
        assert "- Strategy: `pattern_mapping`" in readme

    def test_hook_is_rendered_as_function(self, generator, transformed):
        model = transformed(USE_TOGGLE_TS, "hooks/useToggle.ts")
        artifacts = generator.generate(model, GENERATED_AT)
        assert artifacts[0].relative_path == "useToggle/useToggle.ts"
        assert "export function useToggle(initial: boolean = false) {" in artifacts[0].content
        assert "const result = useToggle();" in artifacts[2].content

    def test_output_is_deterministic(self, generator, transformed):
        model = transformed(PROFILE_TSX, "Profile.tsx")
        first = generator.generate(model, GENERATED_AT)
        second = generator.generate(model, GENERATED_AT)
        assert [a.content for a in first] == [a.content for a in second]


class TestConsistency:

    def test_handler_with_undeclared_mutator_raises(self, generator, transformed):
        model = replace(transformed(PROFILE_TSX, "Profile.tsx"), state_bindings=())
        with pytest.raises(GenerationError):
            generator.generate(model)
