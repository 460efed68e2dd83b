"""
Component transformer.

Turns an analyzed v1 ComponentModel into a TransformedModel in the v2
Configurator dialect. The migration strategy is a pure function of the
complexity tier and selects which rewrite rules run; every strategy reports
one record per recognized pattern and per input.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging
import re

from tree_sitter import Node

from .class_converter import ClassConverter
from .rewriter import SourceRewriter
from ..errors import TransformationError
from ..extractors.syntax import (
    JSX_TYPES,
    SyntaxTree,
    child_of_type,
    contains_type,
    function_body,
    has_token,
    identifiers_in,
    is_hook_name,
    named_children,
    parse_source,
    string_value,
    unwrap,
    walk,
)
from ..extractors.tsx_extractor import (
    Declaration,
    collect_declarations,
    component_heritage,
    file_stem,
    find_type_declarations,
    first_parameter,
    import_bindings,
    props_declaration,
    select_primary,
    type_members,
)
from ..models.business_logic import BusinessLogicModel, ExternalCall
from ..models.component import ComplexityTier, ComponentKind, ComponentModel, InputField
from ..models.migration import ComplexityPolicy, MigrationStrategy
from ..models.record import RecordKind, TransformationRecord
from ..models.transformed import DeclarationStyle, TargetStatement, TransformedModel

logger = logging.getLogger(__name__)

STRATEGY_BY_TIER: Dict[ComplexityTier, MigrationStrategy] = {
    ComplexityTier.SIMPLE: MigrationStrategy.DIRECT_TRANSLATION,
    ComplexityTier.MODERATE: MigrationStrategy.PATTERN_MAPPING,
    ComplexityTier.COMPLEX: MigrationStrategy.HYBRID_APPROACH,
    ComplexityTier.CRITICAL: MigrationStrategy.MANUAL_REVIEW_REQUIRED,
}


@dataclass(frozen=True)
class StrategyRules:
    """Rewrite rules enabled by a strategy on top of the always-on v1 -> v2 rules."""
    normalize_hooks: bool = False  # React.useX -> useX, typed useState<T>
    mark_ambiguous: bool = False  # TODO(migration) markers above ambiguous patterns
    manual_review: bool = False  # Review banner, flagged in the manifest


STRATEGY_RULES: Dict[MigrationStrategy, StrategyRules] = {
    MigrationStrategy.DIRECT_TRANSLATION: StrategyRules(),
    MigrationStrategy.PATTERN_MAPPING: StrategyRules(normalize_hooks=True),
    MigrationStrategy.HYBRID_APPROACH: StrategyRules(normalize_hooks=True, mark_ambiguous=True),
    MigrationStrategy.MANUAL_REVIEW_REQUIRED: StrategyRules(
        normalize_hooks=True, mark_ambiguous=True, manual_review=True,
    ),
}

IMPORT_MAP: Dict[str, str] = {
    "@daisy/core": "@configurator/core",
    "@daisy/components": "@configurator/components",
    "@daisy/hooks": "@configurator/hooks",
}
LEGACY_IMPORT_PREFIX = ("@daisy/", "@configurator/")

TYPE_RENAMES: Dict[str, str] = {
    "DaisyConfig": "ConfiguratorConfig",
    "DaisyTheme": "ConfiguratorTheme",
    "DaisyAPI": "ConfiguratorAPI",
}
LEGACY_TYPE_NAME = re.compile(r"^Daisy([A-Z]\w*)$")

REMOVED_IMPORT_SOURCES = ("tsyringe", "reflect-metadata")
REGISTRY_NAMES = ("container", "registry")
SERVICES_MODULE = "@configurator/services"
HOOKS_MODULE = "@configurator/hooks"
REACT_RUNTIME_NAMES = (
    "FC", "useState", "useEffect", "useLayoutEffect", "useRef", "useReducer",
    "useCallback", "useMemo", "useContext",
)
MARKER_PREFIX = "// TODO(migration):"


@dataclass(frozen=True)
class TransformationOutcome:
    """Transformer output for one component."""
    transformed: TransformedModel
    records: Tuple[TransformationRecord, ...]
    strategy: MigrationStrategy

    def records_of(self, kind: RecordKind) -> List[TransformationRecord]:
        return [r for r in self.records if r.kind == kind]


class ComponentTransformer:
    """
    Transformer from analyzed v1 components to v2 target models.

    Stateless between calls: each transform() builds its own syntax tree
    and rewriters, so one transformer can serve concurrent workers.
    """

    def __init__(
        self,
        policy: Optional[ComplexityPolicy] = None,
        import_map: Optional[Dict[str, str]] = None,
        type_renames: Optional[Dict[str, str]] = None,
    ):
        self.policy = policy or ComplexityPolicy()
        self.import_map = dict(IMPORT_MAP if import_map is None else import_map)
        self.type_renames = dict(TYPE_RENAMES if type_renames is None else type_renames)

    def select_strategy(self, tier: ComplexityTier) -> MigrationStrategy:
        return STRATEGY_BY_TIER[tier]

    def remap_import(self, source: str) -> str:
        """v2 module specifier for a v1 import path."""
        if source in self.import_map:
            return self.import_map[source]
        legacy, modern = LEGACY_IMPORT_PREFIX
        if source.startswith(legacy):
            return modern + source[len(legacy):]
        return source

    def rename_type(self, name: str) -> Optional[str]:
        if name in self.type_renames:
            return self.type_renames[name]
        match = LEGACY_TYPE_NAME.match(name)
        if match:
            return f"Configurator{match.group(1)}"
        return None

    def transform(
        self,
        model: ComponentModel,
        logic: Optional[BusinessLogicModel] = None,
    ) -> TransformationOutcome:
        """
        Transform an analyzed component.

        Args:
            model: Extracted component, normally already enriched by the analyzer
            logic: Business logic override; defaults to model.business_logic

        Returns:
            The new target model with its transformation records

        Raises:
            TransformationError: If the component cannot be expressed in the target dialect
        """
        if model.failed:
            raise TransformationError(f"Cannot transform failed component {model.id}", model.id)
        logic = logic or model.business_logic
        if logic is None:
            raise TransformationError(f"Component {model.id} has not been analyzed", model.id)

        tier = model.complexity_tier or self.policy.tier_for(logic.complexity_score)
        strategy = self.select_strategy(tier)
        builder = _TransformationBuilder(self, model, logic, tier, strategy)
        transformed = builder.build()

        logger.debug(
            f"Transformed {model.id} with {strategy.value}: "
            f"{len(builder.records)} records, {len(transformed.body)} statements"
        )
        return TransformationOutcome(
            transformed=transformed,
            records=tuple(builder.records),
            strategy=strategy,
        )


class _TransformationBuilder:
    """Per-call working state of ComponentTransformer.transform()."""

    def __init__(
        self,
        transformer: ComponentTransformer,
        model: ComponentModel,
        logic: BusinessLogicModel,
        tier: ComplexityTier,
        strategy: MigrationStrategy,
    ):
        self.transformer = transformer
        self.model = model
        self.logic = logic
        self.tier = tier
        self.strategy = strategy
        self.rules = STRATEGY_RULES[strategy]

        self.tree: SyntaxTree = parse_source(model.source_text, model.source_path)
        if self.tree.has_errors:
            raise TransformationError(
                f"Component {model.id} does not parse near line {self.tree.first_error_line()}",
                model.id,
            )

        self.records: List[TransformationRecord] = []
        self.notes: List[str] = []
        self.manual_review = self.rules.manual_review
        self.quote = "'"
        self.react_default: Optional[str] = None  # "default" or "namespace"
        self.react_specs: List[Tuple[str, str]] = []  # (local name, specifier text)
        self.registry_imports: List[Tuple[Node, str]] = []
        self.extra_imports: Dict[str, List[str]] = {}

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self) -> TransformedModel:
        declaration = self._primary()
        name = declaration.name
        style = self._style(declaration)
        type_renames = self._type_renames()
        dropped: Set[int] = set()

        props_interface, declare_props, props_extends = None, True, ""
        if style == DeclarationStyle.COMPONENT:
            props_interface, declare_props, props_extends = self._props_type(
                declaration, type_renames, dropped,
            )

        options = dict(
            type_renames=type_renames,
            registries=REGISTRY_NAMES,
            normalize_hooks=self.rules.normalize_hooks,
            typed_state={
                b.name: b.value_type for b in self.logic.state_bindings if b.origin == "useState"
            },
            inject_services=True,
        )
        module_rewriter = SourceRewriter(self.tree, **options)

        if self.model.kind == ComponentKind.CLASS_BASED_VIEW:
            body, body_rewriter = self._class_body(declaration, dropped, options)
            parameters = "props"
        else:
            body_rewriter = SourceRewriter(self.tree, **options)
            body = self._function_body(declaration, body_rewriter, style)
            parameters = self._parameters(declaration, body_rewriter, style)

        type_parameters, return_type, is_async = "", "", False
        if style == DeclarationStyle.FUNCTION and declaration.function is not None:
            function = declaration.function
            type_parameters = body_rewriter.fragment(function.child_by_field_name("type_parameters"))
            return_type = body_rewriter.fragment(function.child_by_field_name("return_type"))
            is_async = has_token(function, "async")
            if declaration.annotation is not None:
                self.notes.append(
                    f"Declared type {self.tree.text(declaration.annotation).lstrip(': ')} "
                    "dropped; the function signature carries the types"
                )

        directives, imports, prelude, postlude, doc_comment = self._module_statements(
            declaration, module_rewriter, dropped,
        )

        uses_hooks = style == DeclarationStyle.COMPONENT or is_hook_name(name)
        if body_rewriter.injected:
            if uses_hooks and "useServices(" not in self.model.source_text:
                body.insert(0, TargetStatement(code="const services = useServices();", kind="service"))
                self._add_import(SERVICES_MODULE, "useServices")
            elif not uses_hooks:
                self._add_import(SERVICES_MODULE, "services")
            self._record(
                RecordKind.STRUCTURAL, "container.resolve", "services.resolve",
                f"{body_rewriter.injected} registry lookup(s) now use injected services",
            )
        if module_rewriter.injected:
            self._add_import(SERVICES_MODULE, "services")
            self._record(
                RecordKind.STRUCTURAL, "container.resolve", "services.resolve",
                f"{module_rewriter.injected} module-level registry lookup(s)",
            )
            self.notes.append("Module-level service lookups should move into components via useServices()")

        if self.rules.mark_ambiguous:
            body, prelude, postlude = self._mark_ambiguities(body, prelude, postlude, module_rewriter.injected)

        inputs = tuple(
            InputField(name=i.name, type=self._rename_in_text(i.type, type_renames), required=i.required)
            for i in self.model.inputs
        )
        code_text = "\n".join(
            [s.code for s in body + prelude + postlude if s.kind != "marker"]
            + [f"{i.name}: {i.type}" for i in inputs]
            + [parameters, type_parameters, return_type, props_extends, props_interface or ""]
        )
        imports = self._finish_imports(imports, code_text, style, module_rewriter, body_rewriter)

        for old in sorted(module_rewriter.renamed | body_rewriter.renamed):
            if self.transformer.rename_type(old) is not None:
                self._record(RecordKind.STRUCTURAL, old, type_renames[old], "type rename")
        normalized = sorted(module_rewriter.normalized | body_rewriter.normalized)
        if normalized:
            self._record(
                RecordKind.STRUCTURAL, "React.useX", ", ".join(normalized),
                "namespace hook calls imported by name",
            )
        typed = module_rewriter.typed + body_rewriter.typed
        if typed:
            self._record(RecordKind.STRUCTURAL, "useState(...)", "useState<T>(...)", f"{typed} state hook(s) typed")

        self._declaration_record(declaration, style, props_interface)
        self._pattern_records(inputs, style, props_interface)

        banner: Tuple[str, ...] = ()
        if self.manual_review:
            banner = (
                "/**",
                f" * MIGRATION REVIEW REQUIRED: {name} scored {self.logic.complexity_score} "
                f"({self.tier.value}).",
                " * Generated automatically; resolve every TODO(migration) marker before release.",
                " */",
            )

        extension = ".tsx"
        if style != DeclarationStyle.COMPONENT and not contains_type(self.tree.root, JSX_TYPES):
            extension = ".ts"

        return TransformedModel(
            component_id=self.model.id,
            name=name,
            source_kind=self.model.kind,
            source_path=self.model.source_path,
            strategy=self.strategy,
            style=style,
            extension=extension,
            directives=tuple(directives),
            imports=tuple(imports),
            prelude=_blocks(prelude),
            props=inputs,
            props_interface=props_interface,
            declare_props=declare_props,
            props_extends=props_extends,
            type_parameters=type_parameters,
            parameters=parameters,
            return_type=return_type,
            is_async=is_async,
            body=tuple(body),
            postlude=_blocks(postlude),
            state_bindings=self.logic.state_bindings,
            handlers=self.logic.event_handlers,
            doc_comment=doc_comment,
            banner=banner,
            notes=tuple(self.notes),
            requires_manual_review=self.manual_review,
        )

    # ------------------------------------------------------------------
    # Primary declaration
    # ------------------------------------------------------------------

    def _primary(self) -> Declaration:
        declarations = collect_declarations(self.tree)
        primary = select_primary(declarations, file_stem(self.model.source_path))
        if primary is None or primary.name != self.model.name:
            primary = next((d for d in declarations if d.name == self.model.name), primary)
        if primary is None:
            raise TransformationError(f"No primary declaration found in {self.model.source_path}", self.model.id)
        return primary

    def _style(self, declaration: Declaration) -> DeclarationStyle:
        if self.model.kind == ComponentKind.CLASS_BASED_VIEW:
            return DeclarationStyle.COMPONENT
        if self.model.kind in (ComponentKind.STATELESS_VIEW, ComponentKind.STATEFUL_VIEW):
            function = declaration.function
            if function is not None and function.child_by_field_name("type_parameters") is not None:
                self.notes.append("Generic component kept as a function declaration; FC cannot carry type parameters")
                return DeclarationStyle.FUNCTION
            return DeclarationStyle.COMPONENT
        if declaration.function is not None:
            return DeclarationStyle.FUNCTION
        return DeclarationStyle.DECLARATION

    def _type_renames(self) -> Dict[str, str]:
        renames: Dict[str, str] = {}
        for node in walk(self.tree.root):
            if node.type in ("type_identifier", "identifier"):
                text = self.tree.text(node)
                renamed = self.transformer.rename_type(text)
                if renamed:
                    renames[text] = renamed
        renames.pop(self.model.name, None)
        return renames

    def _rename_in_text(self, text: str, renames: Dict[str, str]) -> str:
        if not renames:
            return text
        pattern = re.compile(r"\b(" + "|".join(re.escape(k) for k in renames) + r")\b")
        return pattern.sub(lambda m: renames[m.group(1)], text)

    def _props_type(
        self,
        declaration: Declaration,
        type_renames: Dict[str, str],
        dropped: Set[int],
    ) -> Tuple[Optional[str], bool, str]:
        """Decide the props interface: (name, declared here, extends clause)."""
        props_name = f"{declaration.name}Props"
        type_name, _, local, type_node = props_declaration(self.tree, declaration)
        if local is not None and type_members(local) is not None:
            dropped.add(_top_level(local).start_byte)
            if type_name and type_name != props_name:
                type_renames[type_name] = props_name
            extends = ""
            if local.type == "interface_declaration":
                clause = child_of_type(local, "extends_type_clause")
                if clause is not None:
                    extends = self._rename_in_text(
                        ", ".join(self.tree.text(t) for t in named_children(clause)), type_renames,
                    )
            if type_name:
                self._record(RecordKind.STRUCTURAL, type_name, props_name, "props type regenerated as interface")
            return props_name, True, extends
        if type_name:
            kept = self._rename_in_text(" ".join(self.tree.text(type_node).split()), type_renames)
            self.notes.append(f"Props type {kept} kept as declared in the source")
            return kept, False, ""
        return props_name, True, ""

    # ------------------------------------------------------------------
    # Bodies
    # ------------------------------------------------------------------

    def _class_body(
        self,
        declaration: Declaration,
        dropped: Set[int],
        options: Dict,
    ) -> Tuple[List[TargetStatement], SourceRewriter]:
        converter = ClassConverter(self.tree, declaration.node, self.logic, **options)
        conversion = converter.convert()
        self.notes.extend(conversion.notes)
        if conversion.manual_review:
            self.manual_review = True
        if conversion.needs_previous:
            self._add_import(HOOKS_MODULE, "usePrevious")

        base, type_args = component_heritage(self.tree, declaration.node)
        if len(type_args) > 1:
            state_type = find_type_declarations(self.tree).get(self.tree.text(type_args[1]))
            if state_type is not None:
                dropped.add(_top_level(state_type).start_byte)
        self._record(
            RecordKind.STRUCTURAL,
            f"class {declaration.name} extends {base}",
            f"const {declaration.name}: FC<{declaration.name}Props>",
            "class component converted to a function component",
        )
        return list(conversion.statements), converter.rewriter

    def _function_body(
        self,
        declaration: Declaration,
        rewriter: SourceRewriter,
        style: DeclarationStyle,
    ) -> List[TargetStatement]:
        if style == DeclarationStyle.DECLARATION:
            return [self._declaration_statement(declaration, rewriter)]
        function = declaration.function
        body = function_body(function)
        if body is None:
            return []
        if declaration.wrapper is not None:
            self.notes.append(
                f"{self.tree.text(declaration.wrapper.child_by_field_name('function'))}() wrapper dropped"
            )
        if body.type != "statement_block":
            return [TargetStatement(
                code=f"return {rewriter.statement(body)};",
                kind="render" if contains_type(body, JSX_TYPES) else "statement",
                start_line=self.tree.line(body),
                end_line=body.end_point[0] + 1,
            )]
        return _statements(self.tree, rewriter, body.named_children)

    def _declaration_statement(self, declaration: Declaration, rewriter: SourceRewriter) -> TargetStatement:
        node = declaration.node
        if node.type in ("class_declaration", "abstract_class_declaration"):
            code = "export " + rewriter.statement(node)
        else:
            code = f"export const {declaration.name} = {rewriter.statement(node)};"
        return TargetStatement(
            code=code, kind="statement",
            start_line=self.tree.line(node), end_line=node.end_point[0] + 1,
        )

    def _parameters(self, declaration: Declaration, rewriter: SourceRewriter, style: DeclarationStyle) -> str:
        function = declaration.function
        if function is None:
            return ""
        if style == DeclarationStyle.COMPONENT:
            parameter = first_parameter(function)
            if parameter is None:
                return ""
            params = function.child_by_field_name("parameters")
            if params is not None and len(named_children(params)) > 1:
                self.notes.append("Parameters after props dropped (ref forwarding needs review)")
            pattern = parameter.child_by_field_name("pattern") or parameter
            return rewriter.statement(pattern)
        params = function.child_by_field_name("parameters")
        if params is None:
            single = function.child_by_field_name("parameter")
            return rewriter.statement(single) if single is not None else ""
        return rewriter.statement(params)[1:-1]

    # ------------------------------------------------------------------
    # Module-level statements
    # ------------------------------------------------------------------

    def _module_statements(
        self,
        declaration: Declaration,
        rewriter: SourceRewriter,
        dropped: Set[int],
    ) -> Tuple[List[str], List[str], List[TargetStatement], List[TargetStatement], str]:
        directives: List[str] = []
        imports: List[str] = []
        prelude: List[TargetStatement] = []
        postlude: List[TargetStatement] = []
        primary_seen = False
        primary_line = self.tree.line(declaration.statement)
        previous_end: Optional[int] = None

        for node in self.tree.root.named_children:
            blank = previous_end is not None and self.tree.line(node) - previous_end > 1
            previous_end = node.end_point[0] + 1
            if node == declaration.statement:
                primary_seen = True
                continue
            if node.type == "import_statement":
                rewritten = self._import(node, rewriter)
                if rewritten:
                    imports.append(rewritten)
                continue
            if not prelude and not imports and not primary_seen and _is_directive(node):
                directives.append(self.tree.text(node))
                continue
            if node.start_byte in dropped:
                continue
            code = self._reexport(node, declaration.name)
            if code == "":
                continue
            statement = TargetStatement(
                code=code if code is not None else rewriter.statement(node),
                kind="comment" if node.type == "comment" else "statement",
                blank_before=blank,
                start_line=self.tree.line(node),
                end_line=node.end_point[0] + 1,
            )
            (postlude if primary_seen else prelude).append(statement)

        doc_comment = ""
        if prelude and prelude[-1].kind == "comment" and prelude[-1].end_line == primary_line - 1:
            doc_comment = prelude.pop().code
        return directives, imports, prelude, postlude, doc_comment

    def _import(self, node: Node, rewriter: SourceRewriter) -> Optional[str]:
        source_node = node.child_by_field_name("source")
        source = string_value(self.tree, source_node) or ""
        if source_node is not None:
            self.quote = self.tree.text(source_node)[0]

        if source == "react":
            self._react_import(node)
            return None
        if source in REMOVED_IMPORT_SOURCES:
            self._record(RecordKind.STRUCTURAL, f"import '{source}'", "", "dependency container import removed")
            return None

        clause = child_of_type(node, "import_clause")
        bound = [name for name, _ in import_bindings(self.tree, clause)] if clause is not None else []
        extra = []
        target = self.transformer.remap_import(source)
        if target != source:
            extra.append((source_node.start_byte + 1, source_node.end_byte - 1, target))
            self._record(RecordKind.STRUCTURAL, source, target, "import path remapped")
        code = rewriter.statement(node, extra)
        if bound and all(name in REGISTRY_NAMES for name in bound):
            self.registry_imports.append((node, code))
            return None
        return code

    def _react_import(self, node: Node) -> None:
        clause = child_of_type(node, "import_clause")
        type_only = has_token(node, "type")
        for child in named_children(clause):
            if child.type == "identifier":
                self.react_default = "default"
            elif child.type == "namespace_import":
                self.react_default = "namespace"
            elif child.type == "named_imports":
                for spec in named_children(child):
                    if spec.type != "import_specifier":
                        continue
                    alias = spec.child_by_field_name("alias")
                    local = self.tree.text(alias if alias is not None else spec.child_by_field_name("name"))
                    text = self.tree.text(spec)
                    if type_only and not text.startswith("type "):
                        text = f"type {text}"
                    self.react_specs.append((local, text))

    def _reexport(self, node: Node, name: str) -> Optional[str]:
        """
        Export statements that re-export the primary.

        Returns "" to drop the statement, a rewritten statement when other
        names remain, or None when the statement is unrelated.
        """
        if node.type != "export_statement" or node.child_by_field_name("declaration") is not None:
            return None
        if node.child_by_field_name("source") is not None:
            return None
        value = node.child_by_field_name("value")
        if value is not None and has_token(node, "default"):
            if name not in identifiers_in(self.tree, value):
                return None
            if unwrap(value).type != "identifier":
                self.notes.append(
                    f"Default export wrapper `{' '.join(self.tree.text(value).split())}` dropped; "
                    "apply it where the component is consumed"
                )
            return ""
        clause = child_of_type(node, "export_clause")
        specs = [s for s in named_children(clause) if s.type == "export_specifier"]
        remaining = [
            self.tree.text(s) for s in specs
            if self.tree.text(s.child_by_field_name("name")) != name
        ]
        if len(remaining) == len(specs):
            return None
        if not remaining:
            return ""
        return "export { " + ", ".join(remaining) + " };"

    def _add_import(self, module: str, name: str) -> None:
        names = self.extra_imports.setdefault(module, [])
        if name not in names:
            names.append(name)

    def _finish_imports(
        self,
        imports: List[str],
        code_text: str,
        style: DeclarationStyle,
        *rewriters: SourceRewriter,
    ) -> List[str]:
        q = self.quote
        final: List[str] = []

        candidates: List[Tuple[str, str]] = list(self.react_specs)
        known = {local for local, _ in self.react_specs}
        normalized: Set[str] = set()
        for rewriter in rewriters:
            normalized |= rewriter.normalized
        for name in sorted(set(REACT_RUNTIME_NAMES) | normalized):
            if name not in known:
                candidates.append((name, name))
        used = [
            text for local, text in candidates
            if (local == "FC" and style == DeclarationStyle.COMPONENT) or _mentions(code_text, local)
        ]
        needs_namespace = "React." in code_text
        if needs_namespace and self.react_default == "namespace":
            final.append(f"import * as React from {q}react{q};")
            if used:
                final.append(f"import {{ {', '.join(used)} }} from {q}react{q};")
        elif needs_namespace:
            named = f", {{ {', '.join(used)} }}" if used else ""
            final.append(f"import React{named} from {q}react{q};")
        elif used:
            final.append(f"import {{ {', '.join(used)} }} from {q}react{q};")

        for node, code in self.registry_imports:
            still_used = any(_mentions(code_text, registry) for registry in REGISTRY_NAMES)
            if still_used:
                final.append(code)
                self.notes.append("Registry import kept: the container is still referenced directly")
            else:
                self._record(RecordKind.STRUCTURAL, self.tree.text(node), "", "registry import removed")

        final.extend(imports)
        for module, names in self.extra_imports.items():
            final.append(f"import {{ {', '.join(sorted(names))} }} from {q}{module}{q};")
        return final

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    def _ambiguities(self) -> List[Tuple[int, str]]:
        found: List[Tuple[int, str]] = []
        for binding in self.logic.state_bindings:
            if binding.confidence < 1.0:
                found.append((binding.line, f"'{binding.name}' comes from {binding.origin}; confirm "
                                            f"{binding.setter} still drives re-renders"))
        for effect in self.logic.side_effects:
            if effect.confidence < 1.0:
                found.append((effect.line, f"{effect.origin} recognized by name; confirm it runs as an effect"))
            if effect.has_cleanup:
                found.append((effect.line, f"verify the {effect.origin} cleanup still runs on unmount"))
        for handler in self.logic.event_handlers:
            if handler.confidence < 1.0:
                found.append((handler.line, f"'{handler.name}' recognized as a handler by name only"))
        for rule in self.logic.validation_rules:
            if rule.confidence < 1.0:
                found.append((rule.line, f"validation of '{rule.field}' recognized by name only"))
        for call in self.logic.external_calls:
            if not call.has_error_branch:
                found.append((call.line, f"call to {_v2_target(call)} has no error handling"))
        return sorted(found, key=lambda item: item[0])

    def _mark_ambiguities(
        self,
        body: List[TargetStatement],
        prelude: List[TargetStatement],
        postlude: List[TargetStatement],
        module_lookups: int,
    ) -> Tuple[List[TargetStatement], List[TargetStatement], List[TargetStatement]]:
        pending: Dict[Tuple[int, int], List[str]] = {}
        unplaced: List[str] = []
        for line, message in self._ambiguities():
            for section, statements in enumerate((body, prelude, postlude)):
                index = next(
                    (i for i, s in enumerate(statements) if s.start_line <= line <= s.end_line and s.kind != "comment"),
                    None,
                )
                if index is not None:
                    pending.setdefault((section, index), []).append(message)
                    break
            else:
                unplaced.append(message)
        if module_lookups:
            unplaced.append("module-level service lookup; move it into a component and use useServices()")

        marked = []
        for section, statements in enumerate((body, prelude, postlude)):
            result: List[TargetStatement] = []
            if section == 0:
                result.extend(TargetStatement(code=f"{MARKER_PREFIX} {m}", kind="marker") for m in unplaced)
            for index, statement in enumerate(statements):
                messages = pending.get((section, index), [])
                for position, message in enumerate(messages):
                    result.append(TargetStatement(
                        code=f"{MARKER_PREFIX} {message}",
                        kind="marker",
                        blank_before=statement.blank_before and position == 0,
                        start_line=statement.start_line,
                        end_line=statement.start_line,
                    ))
                if messages and statement.blank_before:
                    statement = TargetStatement(
                        code=statement.code, kind=statement.kind, blank_before=False,
                        start_line=statement.start_line, end_line=statement.end_line,
                    )
                result.append(statement)
            marked.append(result)
        return marked[0], marked[1], marked[2]

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def _record(self, kind: RecordKind, source: str, target: str, note: str = "") -> None:
        self.records.append(TransformationRecord(kind=kind, source=source, target=target, note=note))

    def _declaration_record(
        self,
        declaration: Declaration,
        style: DeclarationStyle,
        props_interface: Optional[str],
    ) -> None:
        name = declaration.name
        if style == DeclarationStyle.COMPONENT:
            target = f"export const {name}: FC<{props_interface}>"
        elif style == DeclarationStyle.FUNCTION:
            target = f"export function {name}"
        else:
            target = f"export {declaration.node.type.replace('_declaration', '')} {name}"
        self._record(RecordKind.STRUCTURAL, f"{self.model.kind.value} {name}", target, "component declaration")

    def _pattern_records(
        self,
        inputs: Sequence[InputField],
        style: DeclarationStyle,
        props_interface: Optional[str],
    ) -> None:
        note = self.strategy.value
        owner = props_interface if style == DeclarationStyle.COMPONENT and props_interface else "parameter"
        for field in inputs:
            marker = "" if field.required else "?"
            self._record(RecordKind.PROP, f"{field.name}: {field.type}", f"{owner}.{field.name}{marker}", note)

        for binding in self.logic.state_bindings:
            if binding.origin == "class_state":
                source = f"this.state.{binding.name}"
            else:
                source = f"{binding.origin}: {binding.name}"
            generic = f"<{binding.value_type}>" if binding.value_type != "unknown" else ""
            target = f"const [{binding.name}, {binding.setter}] = useState{generic}()"
            if binding.origin == "custom_hook":
                target = f"const [{binding.name}, {binding.setter}] (custom hook)"
            self._record(RecordKind.STATE, source, target, note)

        for effect in self.logic.side_effects:
            dependencies = ", ".join(effect.dependencies)
            target = f"useEffect(..., [{dependencies}])" if effect.dependencies or effect.mount_only else "useEffect(...)"
            cleanup = "; with cleanup" if effect.has_cleanup else ""
            self._record(RecordKind.EFFECT, effect.origin, target, note + cleanup)

        for handler in self.logic.event_handlers:
            mutators = ", ".join(handler.mutators) or "no state updates"
            self._record(RecordKind.HANDLER, handler.name, f"const {handler.name}", f"{handler.interaction}; {mutators}")

        for rule in self.logic.validation_rules:
            self._record(RecordKind.VALIDATION, f"{rule.rule}: {rule.field}", rule.message or rule.rule, note)

        for call in self.logic.external_calls:
            target = _v2_target(call)
            branches = "error branch kept" if call.has_error_branch else "no error branch"
            self._record(RecordKind.API, call.target, target, f"{call.method}; {branches}")


def _v2_target(call: ExternalCall) -> str:
    if not call.via_registry:
        return call.target
    return f"services.resolve({call.target}).{call.method}"


def _top_level(node: Node) -> Node:
    """Top-level statement containing a node (export statements included)."""
    current = node
    while current.parent is not None and current.parent.type != "program":
        current = current.parent
    return current


def _is_directive(node: Node) -> bool:
    """`"use client";` style prologue statements."""
    if node.type != "expression_statement":
        return False
    inner = named_children(node)
    return len(inner) == 1 and inner[0].type == "string"


def _mentions(code: str, name: str) -> bool:
    return re.search(rf"(?<![\w$.]){re.escape(name)}\b", code) is not None


def _statements(tree: SyntaxTree, rewriter: SourceRewriter, nodes: Sequence[Node]) -> List[TargetStatement]:
    """Rewritten body statements with comments and blank-line spacing kept."""
    statements = []
    previous_end: Optional[int] = None
    for node in nodes:
        start = tree.line(node)
        if node.type == "comment":
            kind = "comment"
        elif node.type == "return_statement":
            kind = "render"
        else:
            kind = "statement"
        statements.append(TargetStatement(
            code=rewriter.statement(node),
            kind=kind,
            blank_before=previous_end is not None and start - previous_end > 1,
            start_line=start,
            end_line=node.end_point[0] + 1,
        ))
        previous_end = node.end_point[0] + 1
    return statements


def _blocks(statements: Sequence[TargetStatement]) -> Tuple[str, ...]:
    """Group statements into blank-line separated blocks."""
    blocks: List[str] = []
    current: List[str] = []
    for statement in statements:
        if statement.blank_before and current:
            blocks.append("\n".join(current))
            current = []
        current.append(statement.code)
    if current:
        blocks.append("\n".join(current))
    return tuple(blocks)
