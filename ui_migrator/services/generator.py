"""Code generator rendering TransformedModels into v2 source artifacts."""

import logging
import re
from datetime import datetime
from typing import List, Optional

from ..errors import GenerationError
from ..extractors.syntax import indent_block
from ..models.migration import utcnow
from ..models.record import ArtifactKind, GeneratedArtifact
from ..models.transformed import DeclarationStyle, TargetStatement, TransformedModel

logger = logging.getLogger(__name__)

IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


class CodeGenerator:
    """
    Renders the primary source, the barrel and the README of a component.

    Output depends only on the TransformedModel and `generated_at`, so two
    runs over the same input produce identical artifacts.
    """

    def __init__(self, indent: str = "  "):
        self.indent = indent

    def generate(
        self,
        transformed: TransformedModel,
        generated_at: Optional[datetime] = None,
    ) -> List[GeneratedArtifact]:
        """
        Generate the artifacts of one component.

        Raises:
            GenerationError: If a handler mutates state that has no binding
        """
        self.check_mutators(transformed)
        generated_at = generated_at or utcnow()
        folder = transformed.name

        artifacts = [
            GeneratedArtifact(
                relative_path=f"{folder}/{transformed.file_name}",
                content=self.render_primary(transformed),
                kind=ArtifactKind.PRIMARY_SOURCE,
                generated_at=generated_at,
            ),
            GeneratedArtifact(
                relative_path=f"{folder}/index.ts",
                content=self.render_barrel(transformed),
                kind=ArtifactKind.BARREL,
                generated_at=generated_at,
            ),
            GeneratedArtifact(
                relative_path=f"{folder}/README.md",
                content=self.render_readme(transformed),
                kind=ArtifactKind.DOCUMENTATION,
                generated_at=generated_at,
            ),
        ]
        logger.debug(f"Generated {len(artifacts)} artifacts for {transformed.component_id}")
        return artifacts

    def check_mutators(self, transformed: TransformedModel) -> None:
        setters = {b.setter for b in transformed.state_bindings if b.setter}
        for handler in transformed.handlers:
            missing = [m for m in handler.mutators if m not in setters]
            if missing:
                raise GenerationError(
                    f"Handler '{handler.name}' calls undeclared mutator(s): {', '.join(missing)}",
                    transformed.component_id,
                )

    # ------------------------------------------------------------------
    # Primary source
    # ------------------------------------------------------------------

    def render_primary(self, transformed: TransformedModel) -> str:
        sections: List[str] = []
        if transformed.banner:
            sections.append("\n".join(transformed.banner))
        if transformed.directives:
            sections.append("\n".join(transformed.directives))
        if transformed.imports:
            sections.append("\n".join(transformed.imports))
        sections.extend(transformed.prelude)
        if transformed.is_view and transformed.declare_props and transformed.props_interface:
            sections.append(self.render_props_interface(transformed))

        declaration = self.render_declaration(transformed)
        if transformed.doc_comment:
            declaration = f"{transformed.doc_comment}\n{declaration}"
        sections.append(declaration)
        sections.extend(transformed.postlude)
        sections.append(f"export default {transformed.name};")
        return "\n\n".join(sections) + "\n"

    def render_props_interface(self, transformed: TransformedModel) -> str:
        name = transformed.props_interface
        extends = f" extends {transformed.props_extends}" if transformed.props_extends else ""
        if not transformed.props and not extends:
            return f"export type {name} = Record<string, never>;"
        lines = [f"export interface {name}{extends} {{"]
        for prop in transformed.props:
            key = prop.name if IDENTIFIER.match(prop.name) else f"'{prop.name}'"
            optional = "" if prop.required else "?"
            lines.append(f"{self.indent}{key}{optional}: {prop.type};")
        lines.append("}")
        return "\n".join(lines)

    def render_declaration(self, transformed: TransformedModel) -> str:
        body = self.render_body(transformed.body)
        if transformed.style == DeclarationStyle.DECLARATION:
            return "\n".join(s.code for s in transformed.body)
        if transformed.style == DeclarationStyle.COMPONENT:
            head = (
                f"export const {transformed.name}: FC<{transformed.props_interface}> = "
                f"({transformed.parameters}) => {{"
            )
            return f"{head}\n{body}\n}};" if body else f"{head}\n}};"
        prefix = "async " if transformed.is_async else ""
        head = (
            f"export {prefix}function {transformed.name}{transformed.type_parameters}"
            f"({transformed.parameters}){transformed.return_type} {{"
        )
        return f"{head}\n{body}\n}}" if body else f"{head}\n}}"

    def render_body(self, statements: tuple) -> str:
        lines: List[str] = []
        for index, statement in enumerate(statements):
            if index and self._spaced(statements[index - 1], statement):
                lines.append("")
            lines.append(indent_block(statement.code, self.indent))
        return "\n".join(lines)

    def _spaced(self, previous: TargetStatement, statement: TargetStatement) -> bool:
        if statement.blank_before:
            return True
        # Injected service lookups sit apart from the copied body.
        return previous.kind == "service"

    # ------------------------------------------------------------------
    # Barrel and documentation
    # ------------------------------------------------------------------

    def render_barrel(self, transformed: TransformedModel) -> str:
        module = f"./{transformed.name}"
        return f"export * from '{module}';\nexport {{ default }} from '{module}';\n"

    def render_readme(self, transformed: TransformedModel) -> str:
        name = transformed.name
        lines = [
            f"# {name}",
            "",
            f"Migrated from `{transformed.source_path}` ({transformed.source_kind.value.replace('_', ' ')}).",
            "",
        ]

        if transformed.is_view:
            lines.extend(["## Props", ""])
            if transformed.props:
                lines.extend(["| Name | Type | Required |", "| --- | --- | --- |"])
                for prop in transformed.props:
                    type_text = prop.type.replace("|", "\\|")
                    lines.append(f"| `{prop.name}` | `{type_text}` | {'yes' if prop.required else 'no'} |")
            else:
                lines.append("This component takes no props.")
            lines.append("")
        elif transformed.props:
            lines.extend(["## Parameters", ""])
            for prop in transformed.props:
                optional = "" if prop.required else " (optional)"
                lines.append(f"- `{prop.name}`: `{prop.type}`{optional}")
            lines.append("")

        lines.extend(["## Usage", "", "```tsx", f"import {name} from './{name}';", ""])
        if transformed.is_view:
            required = [p for p in transformed.props if p.required]
            attributes = "".join(f" {p.name}={{{p.name}}}" for p in required if IDENTIFIER.match(p.name))
            lines.append(f"<{name}{attributes} />")
        else:
            arguments = ", ".join(p.name for p in transformed.props if p.required and IDENTIFIER.match(p.name))
            lines.append(f"const result = {name}({arguments});")
        lines.extend(["```", ""])

        if transformed.state_bindings or transformed.handlers:
            lines.extend(["## Behavior", ""])
            for binding in transformed.state_bindings:
                lines.append(f"- State `{binding.name}` (`{binding.value_type}`), updated by `{binding.setter}`")
            for handler in transformed.handlers:
                mutators = ", ".join(f"`{m}`" for m in handler.mutators) or "no state"
                lines.append(f"- Handler `{handler.name}` on {handler.interaction}, updates {mutators}")
            lines.append("")

        lines.extend([
            "## Migration notes",
            "",
            f"- Strategy: `{transformed.strategy.value}`",
            f"- Manual review required: {'yes' if transformed.requires_manual_review else 'no'}",
        ])
        lines.extend(f"- {note}" for note in transformed.notes)
        return "\n".join(lines) + "\n"
