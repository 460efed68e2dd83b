"""
TSX/TS source model extractor.

Parses a v1 component file with tree-sitter and builds a ComponentModel for
its primary declaration: name, kind, declared inputs and imported
dependencies.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
from pathlib import PurePosixPath
import logging
import re

from tree_sitter import Node

from .base import BaseExtractor
from .syntax import (
    FUNCTION_VALUE_TYPES,
    JSX_TYPES,
    SyntaxTree,
    call_arguments,
    callee_base,
    child_of_type,
    function_body,
    has_token,
    is_hook_name,
    is_pascal_case,
    named_children,
    own_returns,
    parse_source,
    returned_expression,
    string_value,
    unwrap,
    walk,
)
from ..errors import ExtractionError
from ..models.component import (
    ComponentKind,
    ComponentModel,
    DependencyKind,
    DependencyReference,
    InputField,
)

logger = logging.getLogger(__name__)

DEFAULT_ALIAS_PREFIXES = (
    "@/", "~/", "@app/", "@presentation/", "@domain/", "@application/",
    "@infrastructure/", "@components/", "@hooks/", "@utils/", "@lib/", "@shared/",
)

COMPONENT_BASES = ("Component", "PureComponent")
STATE_EFFECT_HOOKS = ("useState", "useReducer", "useEffect", "useLayoutEffect", "useSyncExternalStore")
COMPONENT_TYPE_PATTERN = re.compile(
    r"\b(ComponentType|FC|FunctionComponent|ComponentClass|ElementType)\b"
)


@dataclass
class Declaration:
    """A top-level declaration that may be a file's primary component."""
    name: str
    node: Node  # function_declaration, class_declaration, variable_declarator or an expression
    statement: Node  # Enclosing top-level statement
    function: Optional[Node] = None  # Function node carrying parameters and body
    exported: bool = False
    default: bool = False
    annotation: Optional[Node] = None  # Type annotation of a variable declarator
    wrapper: Optional[Node] = None  # memo()/forwardRef() call around the function

    @property
    def is_class(self) -> bool:
        return self.node.type in ("class_declaration", "class", "abstract_class_declaration")


def file_stem(source_path: str) -> str:
    return PurePosixPath(source_path.replace("\\", "/")).name.split(".")[0]


def _function_from_value(value: Optional[Node]) -> Tuple[Optional[Node], Optional[Node]]:
    """Function node of a declarator value, looking through memo()/forwardRef() wrappers."""
    value = unwrap(value)
    if value is None:
        return None, None
    if value.type in FUNCTION_VALUE_TYPES:
        return value, None
    if value.type == "call_expression":
        for arg in call_arguments(value):
            inner, _ = _function_from_value(arg)
            if inner is not None:
                return inner, value
    return None, None


def collect_declarations(tree: SyntaxTree) -> List[Declaration]:
    """Top-level function, class and function-valued const declarations, in source order."""
    declarations: List[Declaration] = []
    default_names: List[str] = []

    for statement in named_children(tree.root):
        exported = statement.type == "export_statement"
        is_default = exported and has_token(statement, "default")
        target = statement.child_by_field_name("declaration") if exported else statement
        if exported and target is None:
            value = statement.child_by_field_name("value")
            if value is not None and is_default:
                default_names.extend(_default_export_names(tree, value, statement, declarations))
            clause = child_of_type(statement, "export_clause")
            for spec in named_children(clause):
                alias = spec.child_by_field_name("alias")
                if alias is not None and tree.text(alias) == "default":
                    default_names.append(tree.text(spec.child_by_field_name("name")))
            continue
        if target is None:
            continue

        if target.type in ("function_declaration", "generator_function_declaration"):
            name_node = target.child_by_field_name("name")
            declarations.append(Declaration(
                name=tree.text(name_node) if name_node else file_stem(tree.path),
                node=target, statement=statement, function=target,
                exported=exported, default=is_default,
            ))
        elif target.type in ("class_declaration", "abstract_class_declaration"):
            name_node = target.child_by_field_name("name")
            declarations.append(Declaration(
                name=tree.text(name_node) if name_node else file_stem(tree.path),
                node=target, statement=statement,
                exported=exported, default=is_default,
            ))
        elif target.type in ("lexical_declaration", "variable_declaration"):
            for declarator in named_children(target):
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None or name_node.type != "identifier":
                    continue
                function, wrapper = _function_from_value(declarator.child_by_field_name("value"))
                if function is None:
                    continue
                declarations.append(Declaration(
                    name=tree.text(name_node), node=declarator, statement=statement,
                    function=function, exported=exported,
                    annotation=declarator.child_by_field_name("type"), wrapper=wrapper,
                ))

    for declaration in declarations:
        if declaration.name in default_names:
            declaration.default = True
    return declarations


def _default_export_names(
    tree: SyntaxTree,
    value: Node,
    statement: Node,
    declarations: List[Declaration],
) -> List[str]:
    """Names referenced by `export default <expr>`; anonymous values become declarations."""
    value = unwrap(value)
    if value.type == "identifier":
        return [tree.text(value)]
    if value.type in FUNCTION_VALUE_TYPES or value.type == "class":
        name_node = value.child_by_field_name("name")
        declarations.append(Declaration(
            name=tree.text(name_node) if name_node else file_stem(tree.path),
            node=value, statement=statement,
            function=value if value.type != "class" else None,
            exported=True, default=True,
        ))
        return []
    if value.type == "call_expression":
        names = []
        for arg in call_arguments(value):
            names.extend(_default_export_names(tree, arg, statement, declarations))
        return names
    return []


def select_primary(declarations: Sequence[Declaration], stem: str) -> Optional[Declaration]:
    """
    Pick the primary declaration of a file.

    Preference: default export, then a declaration named like the file stem,
    then the first exported PascalCase or hook declaration, then the first
    PascalCase or hook declaration, then the first declaration.
    """
    if not declarations:
        return None
    for declaration in declarations:
        if declaration.default:
            return declaration
    normalized_stem = stem.replace("-", "").replace("_", "").lower()
    for declaration in declarations:
        if declaration.name.lower() == normalized_stem:
            return declaration

    def looks_primary(d: Declaration) -> bool:
        return is_pascal_case(d.name) or is_hook_name(d.name)

    for declaration in declarations:
        if declaration.exported and looks_primary(declaration):
            return declaration
    for declaration in declarations:
        if looks_primary(declaration):
            return declaration
    return declarations[0]


def find_type_declarations(tree: SyntaxTree) -> Dict[str, Node]:
    """Map of interface/type alias names to their declaration nodes."""
    found: Dict[str, Node] = {}
    for node in walk(tree.root, skip=("statement_block", "class_body")):
        if node.type in ("interface_declaration", "type_alias_declaration"):
            name = node.child_by_field_name("name")
            if name is not None:
                found.setdefault(tree.text(name), node)
    return found


def type_members(declaration: Node) -> Optional[Node]:
    """Object-shaped body of an interface or type alias, if any."""
    if declaration.type == "interface_declaration":
        return declaration.child_by_field_name("body")
    value = declaration.child_by_field_name("value")
    if value is not None and value.type == "object_type":
        return value
    return None


def component_heritage(tree: SyntaxTree, node: Node) -> Tuple[str, List[Node]]:
    """Base class name and its type arguments for a class declaration."""
    heritage = child_of_type(node, "class_heritage")
    extends = child_of_type(heritage, "extends_clause")
    if extends is None:
        return "", []
    value = extends.child_by_field_name("value") or (named_children(extends) or [None])[0]
    type_args = extends.child_by_field_name("type_arguments") or child_of_type(extends, "type_arguments")
    base = tree.text(value).split(".")[-1] if value is not None else ""
    return base, named_children(type_args)


def parameter_type(parameter: Node) -> Optional[Node]:
    annotation = parameter.child_by_field_name("type")
    if annotation is None:
        annotation = child_of_type(parameter, "type_annotation")
    inner = named_children(annotation)
    return inner[0] if inner else None


def first_parameter(function: Optional[Node]) -> Optional[Node]:
    if function is None:
        return None
    parameters = function.child_by_field_name("parameters")
    if parameters is None:
        # Single bare parameter arrow: `props => ...`
        parameter = function.child_by_field_name("parameter")
        return parameter
    params = [p for p in named_children(parameters) if p.type in ("required_parameter", "optional_parameter")]
    return params[0] if params else None


def declared_props_type(
    tree: SyntaxTree,
    declaration: Declaration,
) -> Tuple[Optional[str], Optional[Node], Optional[Node]]:
    """
    Locate the props type of a view declaration.

    Returns the referenced type name with its type node, or the inline
    object type node.
    """
    type_node: Optional[Node] = None
    if declaration.is_class:
        _, type_args = component_heritage(tree, declaration.node)
        type_node = type_args[0] if type_args else None
    else:
        if declaration.annotation is not None:
            args = [n for n in walk(declaration.annotation) if n.type == "type_arguments"]
            if args and named_children(args[0]):
                type_node = named_children(args[0])[0]
        if type_node is None and declaration.wrapper is not None:
            args = named_children(declaration.wrapper.child_by_field_name("type_arguments"))
            if args and callee_base(tree, declaration.wrapper) == "forwardRef":
                type_node = args[-1]
        if type_node is None:
            parameter = first_parameter(declaration.function)
            if parameter is not None:
                type_node = parameter_type(parameter)

    if type_node is None:
        return None, None, None
    if type_node.type == "object_type":
        return None, type_node, None
    if type_node.type == "generic_type":
        name = type_node.child_by_field_name("name") or named_children(type_node)[0]
        return tree.text(name), None, type_node
    if type_node.type in ("type_identifier", "nested_type_identifier"):
        return tree.text(type_node), None, type_node
    return None, None, None


def props_declaration(
    tree: SyntaxTree,
    declaration: Declaration,
) -> Tuple[Optional[str], Optional[Node], Optional[Node], Optional[Node]]:
    """
    Props type of a view: (name, inline object type, local declaration, type node).

    Without an explicit annotation, a local `<Name>Props` or `Props`
    declaration is used.
    """
    type_name, inline, type_node = declared_props_type(tree, declaration)
    if inline is not None:
        return None, inline, None, None
    types = find_type_declarations(tree)
    candidates = [type_name] if type_name else [f"{declaration.name}Props", "Props"]
    for candidate in candidates:
        if candidate in types:
            return candidate, None, types[candidate], type_node
    return type_name, None, None, type_node


def import_bindings(tree: SyntaxTree, clause: Node) -> List[Tuple[str, bool]]:
    """Local names bound by an import clause, with their `type`-only flag."""
    bindings = []
    for child in named_children(clause):
        if child.type == "identifier":
            bindings.append((tree.text(child), False))
        elif child.type == "namespace_import":
            identifiers = [c for c in named_children(child) if c.type == "identifier"]
            if identifiers:
                bindings.append((tree.text(identifiers[0]), False))
        elif child.type == "named_imports":
            for spec in named_children(child):
                if spec.type != "import_specifier":
                    continue
                alias = spec.child_by_field_name("alias")
                name = alias if alias is not None else spec.child_by_field_name("name")
                bindings.append((tree.text(name), has_token(spec, "type")))
    return bindings


class TSXExtractor(BaseExtractor):
    """
    Extractor for v1 React TSX/TS components.

    Stateless: parsing state lives in local variables of each call.
    """

    def __init__(self, alias_prefixes: Optional[Sequence[str]] = None):
        self.alias_prefixes = tuple(alias_prefixes or DEFAULT_ALIAS_PREFIXES)

    def extract(
        self,
        source_text: str,
        source_path: str,
        component_id: Optional[str] = None,
    ) -> ComponentModel:
        component_id = component_id or source_path.replace("\\", "/")
        tree = parse_source(source_text, source_path)
        if tree.has_errors:
            raise ExtractionError(
                f"Syntax error in {source_path} near line {tree.first_error_line()}",
                reason=ExtractionError.PARSE_FAILURE,
                component_id=component_id,
            )

        declaration = select_primary(collect_declarations(tree), file_stem(source_path))
        if declaration is None:
            raise ExtractionError(
                f"No component or function declaration found in {source_path}",
                reason=ExtractionError.NO_DECLARATION,
                component_id=component_id,
            )

        kind = self.classify(tree, declaration)
        inputs = self.extract_inputs(tree, declaration, kind)
        dependencies = self.extract_dependencies(tree)

        logger.debug(
            f"Extracted {declaration.name} ({kind.value}) from {source_path}: "
            f"{len(inputs)} inputs, {len(dependencies)} dependencies"
        )
        return ComponentModel(
            id=component_id,
            name=declaration.name,
            kind=kind,
            source_path=source_path,
            inputs=inputs,
            dependencies=dependencies,
            source_text=source_text,
        )

    # ------------------------------------------------------------------
    # Kind
    # ------------------------------------------------------------------

    def classify(self, tree: SyntaxTree, declaration: Declaration) -> ComponentKind:
        if declaration.is_class:
            base, _ = component_heritage(tree, declaration.node)
            if base in COMPONENT_BASES:
                return ComponentKind.CLASS_BASED_VIEW
            return ComponentKind.UTILITY_FUNCTION

        function = declaration.function
        if function is None:
            return ComponentKind.UTILITY_FUNCTION
        if self._is_composite(tree, declaration.name, function):
            return ComponentKind.COMPOSITE
        if self._returns_jsx(function):
            if self._uses_state_hooks(tree, function):
                return ComponentKind.STATEFUL_VIEW
            return ComponentKind.STATELESS_VIEW
        return ComponentKind.UTILITY_FUNCTION

    def _is_composite(self, tree: SyntaxTree, name: str, function: Node) -> bool:
        if not is_hook_name(name):
            body = function_body(function)
            if body is not None and body.type in FUNCTION_VALUE_TYPES + ("class",):
                return True
            for statement in own_returns(function):
                expression = returned_expression(statement)
                if expression is not None and expression.type in FUNCTION_VALUE_TYPES + ("class",):
                    return True
        parameter = first_parameter(function)
        type_node = parameter_type(parameter) if parameter is not None else None
        if type_node is not None and COMPONENT_TYPE_PATTERN.search(tree.text(type_node)):
            return True
        return bool(re.match(r"^with[A-Z]", name))

    def _returns_jsx(self, function: Node) -> bool:
        body = function_body(function)
        if body is None:
            return False
        if body.type != "statement_block":
            return any(n.type in JSX_TYPES for n in walk(body))
        for statement in own_returns(function):
            if any(n.type in JSX_TYPES for n in walk(statement)):
                return True
        return False

    def _uses_state_hooks(self, tree: SyntaxTree, function: Node) -> bool:
        for node in walk(function):
            if node.type == "call_expression" and callee_base(tree, node) in STATE_EFFECT_HOOKS:
                return True
        return False

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def extract_inputs(
        self,
        tree: SyntaxTree,
        declaration: Declaration,
        kind: ComponentKind,
    ) -> Tuple[InputField, ...]:
        if kind in (ComponentKind.UTILITY_FUNCTION, ComponentKind.COMPOSITE):
            if declaration.function is None:
                return ()
            return self._parameter_inputs(tree, declaration.function)

        _, inline, local, _ = props_declaration(tree, declaration)
        if inline is not None:
            return self._members_to_inputs(tree, inline)
        members = type_members(local) if local is not None else None
        if members is not None:
            return self._members_to_inputs(tree, members)

        parameter = first_parameter(declaration.function)
        if parameter is not None:
            pattern = parameter.child_by_field_name("pattern") or parameter
            if pattern.type == "object_pattern":
                return self._pattern_inputs(tree, pattern)
        return ()

    def _members_to_inputs(self, tree: SyntaxTree, members: Node) -> Tuple[InputField, ...]:
        inputs = []
        for member in named_children(members):
            name_node = member.child_by_field_name("name")
            if name_node is None:
                continue
            name = tree.text(name_node).strip("'\"")
            if member.type == "property_signature":
                inner = named_children(member.child_by_field_name("type"))
                type_text = tree.text(inner[0]) if inner else "unknown"
            elif member.type == "method_signature":
                params = member.child_by_field_name("parameters")
                returns = named_children(member.child_by_field_name("return_type"))
                type_text = f"{tree.text(params)} => {tree.text(returns[0]) if returns else 'void'}"
            else:
                continue
            inputs.append(InputField(
                name=name,
                type=" ".join(type_text.split()),
                required=not has_token(member, "?"),
            ))
        return tuple(inputs)

    def _pattern_inputs(self, tree: SyntaxTree, pattern: Node) -> Tuple[InputField, ...]:
        inputs = []
        for child in named_children(pattern):
            if child.type == "shorthand_property_identifier_pattern":
                inputs.append(InputField(name=tree.text(child)))
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                inputs.append(InputField(name=tree.text(left), required=False))
            elif child.type == "pair_pattern":
                key = child.child_by_field_name("key")
                inputs.append(InputField(name=tree.text(key)))
        return tuple(inputs)

    def _parameter_inputs(self, tree: SyntaxTree, function: Node) -> Tuple[InputField, ...]:
        parameters = function.child_by_field_name("parameters")
        if parameters is None:
            single = function.child_by_field_name("parameter")
            return (InputField(name=tree.text(single)),) if single is not None else ()
        inputs = []
        for parameter in named_children(parameters):
            if parameter.type not in ("required_parameter", "optional_parameter"):
                continue
            pattern = parameter.child_by_field_name("pattern") or parameter
            type_node = parameter_type(parameter)
            inputs.append(InputField(
                name=" ".join(tree.text(pattern).split()),
                type=" ".join(tree.text(type_node).split()) if type_node is not None else "unknown",
                required=(
                    parameter.type == "required_parameter"
                    and parameter.child_by_field_name("value") is None
                ),
            ))
        return tuple(inputs)

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def extract_dependencies(self, tree: SyntaxTree) -> Tuple[DependencyReference, ...]:
        dependencies = []
        for statement in named_children(tree.root):
            if statement.type != "import_statement":
                continue
            source = string_value(tree, statement.child_by_field_name("source")) or ""
            type_only = has_token(statement, "type")
            clause = child_of_type(statement, "import_clause")
            if clause is None:
                # Side-effect import such as `import "reflect-metadata"`
                dependencies.append(DependencyReference(
                    name=source, source=source, kind=self.classify_import(source, source, True),
                ))
                continue
            for name, spec_type_only in import_bindings(tree, clause):
                dependencies.append(DependencyReference(
                    name=name,
                    source=source,
                    kind=self.classify_import(source, name, type_only or spec_type_only),
                ))
        return tuple(dependencies)

    def is_local_import(self, source: str) -> bool:
        return source.startswith((".", "/")) or source.startswith(self.alias_prefixes)

    def classify_import(self, source: str, name: str, type_only: bool = False) -> DependencyKind:
        """
        Classify an imported binding.

        Local (relative or aliased) imports of PascalCase bindings, or from a
        `components` path, are components; other local imports are utilities;
        everything else is a library.
        """
        if not self.is_local_import(source):
            return DependencyKind.LIBRARY
        if not type_only and (is_pascal_case(name) or "components" in source.lower().split("/")):
            return DependencyKind.COMPONENT
        return DependencyKind.UTILITY
