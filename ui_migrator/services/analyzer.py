"""
Business Logic Analyzer.

Recognizes behavior in a component's syntax tree: reactive state, side
effects, event handlers, data transformations, validation guards and
external calls. Recognition is structural; name-based rules only act as
fallbacks and carry a lower confidence.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Set, Tuple
import logging
import re

from tree_sitter import Node

from ..errors import AnalysisError
from ..extractors.syntax import (
    FUNCTION_TYPES,
    FUNCTION_VALUE_TYPES,
    STRING_TYPES,
    SyntaxTree,
    call_arguments,
    callee_base,
    callee_path,
    capitalize,
    function_body,
    identifiers_in,
    is_hook_name,
    member_path,
    named_children,
    own_returns,
    parse_source,
    string_value,
    unwrap,
    walk,
)
from ..extractors.tsx_extractor import component_heritage, find_type_declarations, type_members
from ..models.business_logic import (
    BusinessLogicModel,
    DataTransformation,
    EventHandler,
    ExternalCall,
    SideEffect,
    StateBinding,
    TransformOperation,
    ValidationRule,
)
from ..models.component import ComplexityTier, ComponentModel
from ..models.migration import ComplexityPolicy

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.6
NAME_ONLY_CONFIDENCE = 0.5

LIFECYCLE_METHODS = (
    "constructor",
    "render",
    "componentDidMount",
    "componentDidUpdate",
    "componentWillUnmount",
    "shouldComponentUpdate",
    "getSnapshotBeforeUpdate",
    "componentDidCatch",
    "getDerivedStateFromProps",
    "getDerivedStateFromError",
    "UNSAFE_componentWillMount",
    "UNSAFE_componentWillReceiveProps",
    "UNSAFE_componentWillUpdate",
)

HANDLER_NAME = re.compile(r"^(handle|on)[A-Z]")
VALIDATOR_NAME = re.compile(r"^(validate|isValid)([A-Z]\w*)?$")
CAMEL_WORDS = re.compile(r"[A-Z][a-z0-9]*")


@dataclass(frozen=True)
class PatternVocabulary:
    """Names the analyzer treats as state, effect, network and registry primitives."""
    state_hooks: Tuple[str, ...] = ("useState", "useReducer")
    effect_hooks: Tuple[str, ...] = ("useEffect", "useLayoutEffect")
    callback_hooks: Tuple[str, ...] = ("useCallback",)
    network_functions: Tuple[str, ...] = ("fetch", "axios")
    network_clients: Tuple[str, ...] = ("axios", "apiClient", "httpClient", "http", "api")
    http_methods: Tuple[str, ...] = ("get", "post", "put", "patch", "delete", "head", "request")
    registries: Tuple[str, ...] = ("container", "services", "registry")
    use_case_methods: Tuple[str, ...] = ("execute",)
    normalize_callees: Tuple[str, ...] = ("Object.fromEntries", "Object.assign", "JSON.parse", "structuredClone")
    normalize_prefix: str = "normalize"


COLLECTION_OPERATIONS = {
    "map": TransformOperation.MAP,
    "filter": TransformOperation.FILTER,
    "reduce": TransformOperation.REDUCE,
}


def _in_source_order(found: List[Tuple[int, Any]]) -> Tuple[Any, ...]:
    return tuple(pattern for _, pattern in sorted(found, key=lambda item: item[0]))


def infer_type(tree: SyntaxTree, node: Optional[Node]) -> str:
    """Best-effort TypeScript type of an initializer literal."""
    node = unwrap(node)
    if node is None:
        return "unknown"
    if node.type == "number":
        return "number"
    if node.type in STRING_TYPES:
        return "string"
    if node.type in ("true", "false"):
        return "boolean"
    if node.type == "array":
        elements = named_children(node)
        if elements:
            inner = infer_type(tree, elements[0])
            if inner != "unknown":
                return f"{inner}[]"
        return "unknown[]"
    if node.type == "object":
        return "Record<string, unknown>"
    if node.type == "unary_expression" and tree.text(node).startswith("!"):
        return "boolean"
    if node.type == "arrow_function":
        body = function_body(node)
        if body is not None and body.type != "statement_block":
            return infer_type(tree, body)
    return "unknown"


def handler_interaction(name: str) -> str:
    """`handleEmailChange` -> `change`, `onClose` -> `close`."""
    words = CAMEL_WORDS.findall(name)
    return words[-1].lower() if words else "unknown"


def set_state_keys(tree: SyntaxTree, call: Node) -> List[str]:
    """State keys written by `this.setState(...)` with an object or updater argument."""
    args = call_arguments(call)
    if not args:
        return []
    argument = unwrap(args[0])
    objects: List[Node] = []
    if argument.type == "object":
        objects.append(argument)
    elif argument.type in FUNCTION_VALUE_TYPES:
        body = unwrap(function_body(argument))
        if body is not None and body.type == "object":
            objects.append(body)
        elif body is not None and body.type == "statement_block":
            for statement in own_returns(argument):
                inner = unwrap(named_children(statement)[0]) if named_children(statement) else None
                if inner is not None and inner.type == "object":
                    objects.append(inner)
    keys: List[str] = []
    for obj in objects:
        for key in object_keys(tree, obj):
            if key not in keys:
                keys.append(key)
    return keys


def object_keys(tree: SyntaxTree, obj: Node) -> List[str]:
    keys = []
    for child in named_children(obj):
        if child.type == "pair":
            keys.append(tree.text(child.child_by_field_name("key")).strip("'\""))
        elif child.type == "shorthand_property_identifier":
            keys.append(tree.text(child))
    return keys


def collect_handler_references(tree: SyntaxTree) -> Dict[str, str]:
    """Map of function names referenced by JSX `on*` attributes to their interaction."""
    references: Dict[str, str] = {}
    for node in walk(tree.root):
        if node.type != "jsx_attribute":
            continue
        parts = named_children(node)
        if len(parts) < 2:
            continue
        attribute = tree.text(parts[0])
        if not re.match(r"^on[A-Z]", attribute) or parts[1].type != "jsx_expression":
            continue
        expression = named_children(parts[1])
        name = _referenced_function(tree, unwrap(expression[0])) if expression else None
        if name and name not in references:
            references[name] = attribute[2:].lower()
    return references


def _referenced_function(tree: SyntaxTree, node: Optional[Node]) -> Optional[str]:
    if node is None:
        return None
    if node.type == "identifier":
        return tree.text(node)
    if node.type == "member_expression":
        obj = node.child_by_field_name("object")
        if obj is not None and obj.type == "this":
            return tree.text(node.child_by_field_name("property"))
        return None
    if node.type == "call_expression" and callee_base(tree, node) == "bind":
        function = node.child_by_field_name("function")
        return _referenced_function(tree, function.child_by_field_name("object"))
    if node.type in FUNCTION_VALUE_TYPES:
        body = unwrap(function_body(node))
        if body is not None and body.type == "statement_block":
            statements = named_children(body)
            if len(statements) == 1 and statements[0].type == "expression_statement":
                body = unwrap(named_children(statements[0])[0])
        if body is not None and body.type == "call_expression":
            return _referenced_function(tree, body.child_by_field_name("function"))
    return None


class BusinessLogicAnalyzer:
    """
    Analyzer producing a BusinessLogicModel for a component.

    The analyzer holds only configuration; every call parses and scans its
    own tree, so it is safe to share across concurrent workers. Results are
    ordered by source position and therefore deterministic.
    """

    def __init__(
        self,
        policy: Optional[ComplexityPolicy] = None,
        vocabulary: Optional[PatternVocabulary] = None,
    ):
        self.policy = policy or ComplexityPolicy()
        self.vocabulary = vocabulary or PatternVocabulary()

    def analyze(self, model: ComponentModel) -> BusinessLogicModel:
        """
        Build the business logic model of an extracted component.

        Raises:
            AnalysisError: If the model failed extraction or violates an invariant
        """
        if model.failed:
            raise AnalysisError(f"Cannot analyze failed component {model.id}: {model.error}", model.id)
        tree = parse_source(model.source_text, model.source_path)
        if tree.has_errors:
            raise AnalysisError(f"Component {model.id} no longer parses", model.id)
        return self.analyze_tree(tree, primary_name=model.name, component_id=model.id)

    def analyze_source(self, source_text: str, source_path: str, primary_name: str = "") -> BusinessLogicModel:
        return self.analyze_tree(parse_source(source_text, source_path), primary_name)

    def enrich(self, model: ComponentModel) -> ComponentModel:
        """Return a copy of the model carrying its business logic and tier."""
        logic = self.analyze(model)
        tier = self.tier_for(logic)
        logger.debug(f"Analyzed {model.id}: score={logic.complexity_score} tier={tier.value}")
        return model.with_analysis(logic, tier)

    def tier_for(self, logic: BusinessLogicModel) -> ComplexityTier:
        return self.policy.tier_for(logic.complexity_score)

    def analyze_tree(
        self,
        tree: SyntaxTree,
        primary_name: str = "",
        component_id: Optional[str] = None,
    ) -> BusinessLogicModel:
        states = self._state_bindings(tree)
        setters = {binding.setter for _, binding in states if binding.setter}
        class_state = {binding.name for _, binding in states if binding.origin == "class_state"}

        handlers = self._event_handlers(tree, primary_name, setters, class_state, component_id)
        effects = self._side_effects(tree)
        transformations = self._data_transformations(tree)
        rules = self._validation_rules(tree, setters)
        calls = self._external_calls(tree)

        logic = BusinessLogicModel(
            state_bindings=_in_source_order(states),
            side_effects=_in_source_order(effects),
            event_handlers=_in_source_order(handlers),
            data_transformations=_in_source_order(transformations),
            validation_rules=_in_source_order(rules),
            external_calls=_in_source_order(calls),
        )
        return replace(logic, complexity_score=self.policy.score(logic.counts()))

    # ------------------------------------------------------------------
    # State bindings
    # ------------------------------------------------------------------

    def _state_bindings(self, tree: SyntaxTree) -> List[Tuple[int, StateBinding]]:
        found: List[Tuple[int, StateBinding]] = []
        class_keys: Set[Tuple[int, str]] = set()
        for node in walk(tree.root):
            if node.type == "variable_declarator":
                binding = self._hook_state(tree, node)
                if binding is not None:
                    found.append((node.start_byte, binding))
            elif node.type in ("public_field_definition", "field_definition"):
                name = node.child_by_field_name("name") or node.child_by_field_name("property")
                value = unwrap(node.child_by_field_name("value"))
                if name is not None and tree.text(name) == "state" and value is not None and value.type == "object":
                    found.extend(self._class_state(tree, node, value, class_keys))
            elif node.type == "assignment_expression":
                left = node.child_by_field_name("left")
                right = unwrap(node.child_by_field_name("right"))
                if (
                    left is not None and right is not None and right.type == "object"
                    and member_path(tree, left) == "this.state"
                ):
                    found.extend(self._class_state(tree, node, right, class_keys))
        return found

    def _hook_state(self, tree: SyntaxTree, declarator: Node) -> Optional[StateBinding]:
        pattern = declarator.child_by_field_name("name")
        value = unwrap(declarator.child_by_field_name("value"))
        if pattern is None or pattern.type != "array_pattern":
            return None
        if value is None or value.type != "call_expression":
            return None

        names = [self._binding_name(tree, element) for element in named_children(pattern)]
        if len(names) != 2 or not all(names):
            return None

        base = callee_base(tree, value)
        if base in self.vocabulary.state_hooks:
            origin, confidence = base, 1.0
        elif is_hook_name(base) and names[1].startswith("set"):
            origin, confidence = "custom_hook", FALLBACK_CONFIDENCE
        else:
            return None

        args = call_arguments(value)
        if base == "useReducer":
            initial = args[1] if len(args) > 1 else None
            dependencies = (tree.text(args[0]),) if args and args[0].type == "identifier" else ()
        else:
            initial = args[0] if args else None
            dependencies = identifiers_in(tree, initial)

        type_arguments = named_children(value.child_by_field_name("type_arguments"))
        if type_arguments:
            value_type = " ".join(tree.text(type_arguments[0]).split())
        else:
            value_type = infer_type(tree, initial)

        return StateBinding(
            name=names[0],
            value_type=value_type,
            setter=names[1],
            dependencies=dependencies,
            origin=origin,
            initial_value=" ".join(tree.text(initial).split()) if initial is not None else "",
            confidence=confidence,
            line=tree.line(declarator),
        )

    def _binding_name(self, tree: SyntaxTree, element: Node) -> Optional[str]:
        if element.type == "identifier":
            return tree.text(element)
        if element.type == "assignment_pattern":
            left = element.child_by_field_name("left")
            if left is not None and left.type == "identifier":
                return tree.text(left)
        return None

    def _class_state(
        self,
        tree: SyntaxTree,
        node: Node,
        obj: Node,
        seen: Set[Tuple[int, str]],
    ) -> List[Tuple[int, StateBinding]]:
        owner = node.parent
        while owner is not None and owner.type not in ("class_declaration", "class"):
            owner = owner.parent
        declared_types = self._state_types(tree, owner) if owner is not None else {}
        owner_key = owner.start_byte if owner is not None else -1

        found = []
        for child in named_children(obj):
            if child.type == "pair":
                key_node = child.child_by_field_name("key")
                value = child.child_by_field_name("value")
                name = tree.text(key_node).strip("'\"")
            elif child.type == "shorthand_property_identifier":
                value = child
                name = tree.text(child)
            else:
                continue
            if (owner_key, name) in seen:
                continue
            seen.add((owner_key, name))
            found.append((child.start_byte, StateBinding(
                name=name,
                value_type=declared_types.get(name) or infer_type(tree, value),
                setter=f"set{capitalize(name)}",
                dependencies=identifiers_in(tree, value),
                origin="class_state",
                initial_value=" ".join(tree.text(value).split()),
                confidence=1.0,
                line=tree.line(child),
            )))
        return found

    def _state_types(self, tree: SyntaxTree, owner: Node) -> Dict[str, str]:
        _, type_args = component_heritage(tree, owner)
        if len(type_args) < 2:
            return {}
        declaration = find_type_declarations(tree).get(tree.text(type_args[1]))
        members = type_members(declaration) if declaration is not None else None
        types = {}
        for member in named_children(members):
            if member.type != "property_signature":
                continue
            name = member.child_by_field_name("name")
            annotation = named_children(member.child_by_field_name("type"))
            if name is not None and annotation:
                types[tree.text(name)] = " ".join(tree.text(annotation[0]).split())
        return types

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _side_effects(self, tree: SyntaxTree) -> List[Tuple[int, SideEffect]]:
        found: List[Tuple[int, SideEffect]] = []
        for node in walk(tree.root):
            if node.type == "call_expression":
                effect = self._hook_effect(tree, node)
                if effect is not None:
                    found.append((node.start_byte, effect))
            elif node.type == "class_body":
                found.extend(self._lifecycle_effects(tree, node))
        return found

    def _hook_effect(self, tree: SyntaxTree, call: Node) -> Optional[SideEffect]:
        base = callee_base(tree, call)
        if base in self.vocabulary.effect_hooks:
            confidence = 1.0
        elif is_hook_name(base) and base.endswith("Effect"):
            confidence = FALLBACK_CONFIDENCE
        else:
            return None
        args = call_arguments(call)
        if not args:
            return None
        callback = unwrap(args[0])
        if callback.type not in FUNCTION_VALUE_TYPES:
            return None

        dependencies: Tuple[str, ...] = ()
        mount_only = False
        if len(args) > 1 and args[1].type == "array":
            dependencies = tuple(" ".join(tree.text(e).split()) for e in named_children(args[1]))
            mount_only = not dependencies
        return SideEffect(
            dependencies=dependencies,
            has_cleanup=self._returns_cleanup(callback),
            mount_only=mount_only,
            origin=base,
            confidence=confidence,
            line=tree.line(call),
        )

    def _returns_cleanup(self, callback: Node) -> bool:
        body = function_body(callback)
        if body is None:
            return False
        if body.type != "statement_block":
            inner = unwrap(body)
            return inner is not None and inner.type in FUNCTION_VALUE_TYPES
        return any(named_children(statement) for statement in own_returns(callback))

    def _lifecycle_effects(self, tree: SyntaxTree, class_body: Node) -> List[Tuple[int, SideEffect]]:
        methods = {}
        for member in named_children(class_body):
            if member.type == "method_definition":
                name = member.child_by_field_name("name")
                if name is not None:
                    methods.setdefault(tree.text(name), member)

        found = []
        mount = methods.get("componentDidMount")
        unmount = methods.get("componentWillUnmount")
        update = methods.get("componentDidUpdate")
        if mount is not None:
            found.append((mount.start_byte, SideEffect(
                dependencies=(),
                has_cleanup=unmount is not None,
                mount_only=True,
                origin="componentDidMount",
                line=tree.line(mount),
            )))
        elif unmount is not None:
            found.append((unmount.start_byte, SideEffect(
                dependencies=(),
                has_cleanup=True,
                mount_only=True,
                origin="componentWillUnmount",
                line=tree.line(unmount),
            )))
        if update is not None:
            found.append((update.start_byte, SideEffect(
                dependencies=self.previous_value_dependencies(tree, update),
                has_cleanup=False,
                mount_only=False,
                origin="componentDidUpdate",
                line=tree.line(update),
            )))
        return found

    def previous_value_dependencies(self, tree: SyntaxTree, method: Node) -> Tuple[str, ...]:
        """
        Dependencies of `componentDidUpdate(prevProps, prevState)`.

        `prevProps.x` maps to `props.x` and `prevState.x` to `x`.
        """
        parameters = [
            p.child_by_field_name("pattern") or p
            for p in named_children(method.child_by_field_name("parameters"))
        ]
        names = [tree.text(p) for p in parameters if p.type == "identifier"]
        dependencies: List[str] = []
        for node in walk(method.child_by_field_name("body")):
            if node.type != "member_expression":
                continue
            obj = node.child_by_field_name("object")
            if obj is None or obj.type != "identifier":
                continue
            prop = tree.text(node.child_by_field_name("property"))
            owner = tree.text(obj)
            if names and owner == names[0]:
                dependency = f"props.{prop}"
            elif len(names) > 1 and owner == names[1]:
                dependency = prop
            else:
                continue
            if dependency not in dependencies:
                dependencies.append(dependency)
        return tuple(dependencies)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _function_declarations(self, tree: SyntaxTree) -> List[Tuple[str, Node, Node]]:
        """(name, declaration node, function node) for every named function value."""
        found = []
        for node in walk(tree.root):
            if node.type in ("function_declaration", "generator_function_declaration"):
                name = node.child_by_field_name("name")
                if name is not None:
                    found.append((tree.text(name), node, node))
            elif node.type == "variable_declarator":
                name = node.child_by_field_name("name")
                function = self._function_value(tree, node.child_by_field_name("value"))
                if name is not None and name.type == "identifier" and function is not None:
                    found.append((tree.text(name), node, function))
            elif node.type == "method_definition":
                name = node.child_by_field_name("name")
                if name is not None and tree.text(name) not in LIFECYCLE_METHODS:
                    found.append((tree.text(name), node, node))
            elif node.type in ("public_field_definition", "field_definition"):
                name = node.child_by_field_name("name") or node.child_by_field_name("property")
                function = self._function_value(tree, node.child_by_field_name("value"))
                if name is not None and function is not None:
                    found.append((tree.text(name), node, function))
        return found

    def _function_value(self, tree: SyntaxTree, value: Optional[Node]) -> Optional[Node]:
        value = unwrap(value)
        if value is None:
            return None
        if value.type in FUNCTION_VALUE_TYPES:
            return value
        if value.type == "call_expression" and callee_base(tree, value) in self.vocabulary.callback_hooks:
            args = call_arguments(value)
            if args and unwrap(args[0]).type in FUNCTION_VALUE_TYPES:
                return unwrap(args[0])
        return None

    def _event_handlers(
        self,
        tree: SyntaxTree,
        primary_name: str,
        setters: Set[str],
        class_state: Set[str],
        component_id: Optional[str],
    ) -> List[Tuple[int, EventHandler]]:
        references = collect_handler_references(tree)
        found = []
        for name, declaration, function in self._function_declarations(tree):
            if name == primary_name:
                continue
            if name in references:
                confidence, interaction = 1.0, references[name]
            elif HANDLER_NAME.match(name):
                confidence, interaction = FALLBACK_CONFIDENCE, handler_interaction(name)
            else:
                continue
            mutators = self._mutators(tree, name, function, setters, class_state, component_id)
            found.append((declaration.start_byte, EventHandler(
                name=name,
                interaction=interaction,
                mutators=mutators,
                confidence=confidence,
                line=tree.line(declaration),
            )))
        return found

    def _mutators(
        self,
        tree: SyntaxTree,
        handler: str,
        function: Node,
        setters: Set[str],
        class_state: Set[str],
        component_id: Optional[str],
    ) -> Tuple[str, ...]:
        mutators: List[str] = []
        for node in walk(function):
            if node.type != "call_expression":
                continue
            path = callee_path(tree, node)
            if path in setters:
                names = [path]
            elif path == "this.setState":
                names = []
                for key in set_state_keys(tree, node):
                    if key not in class_state:
                        raise AnalysisError(
                            f"Handler '{handler}' updates undeclared state '{key}'", component_id
                        )
                    names.append(f"set{capitalize(key)}")
            else:
                continue
            for name in names:
                if name not in mutators:
                    mutators.append(name)
        return tuple(mutators)

    # ------------------------------------------------------------------
    # Data transformations
    # ------------------------------------------------------------------

    def _data_transformations(self, tree: SyntaxTree) -> List[Tuple[int, DataTransformation]]:
        found = []
        for node in walk(tree.root):
            if node.type != "call_expression":
                continue
            function = node.child_by_field_name("function")
            if function is None:
                continue
            path = callee_path(tree, node)
            if function.type == "member_expression":
                prop = tree.text(function.child_by_field_name("property"))
                if prop in COLLECTION_OPERATIONS:
                    target = " ".join(tree.text(function.child_by_field_name("object")).split())
                    found.append((node.start_byte, DataTransformation(
                        operation=COLLECTION_OPERATIONS[prop],
                        target=target[:80],
                        line=tree.line(node),
                    )))
                    continue
            prefix = self.vocabulary.normalize_prefix
            if path in self.vocabulary.normalize_callees or (
                function.type == "identifier" and path.startswith(prefix) and path != prefix
            ):
                args = call_arguments(node)
                target = " ".join(tree.text(args[0]).split())[:80] if args else ""
                found.append((node.start_byte, DataTransformation(
                    operation=TransformOperation.NORMALIZE,
                    target=target,
                    line=tree.line(node),
                )))
        return found

    # ------------------------------------------------------------------
    # Validation rules
    # ------------------------------------------------------------------

    def _validation_rules(self, tree: SyntaxTree, setters: Set[str]) -> List[Tuple[int, ValidationRule]]:
        error_setters = {s for s in setters if "rror" in s}
        found = []
        guarded: List[Node] = []
        for node in walk(tree.root):
            if node.type != "if_statement":
                continue
            consequence = node.child_by_field_name("consequence")
            message = self._guard_message(tree, consequence, error_setters)
            if message is None:
                continue
            condition = unwrap(node.child_by_field_name("condition"))
            found.append((node.start_byte, ValidationRule(
                field=self._guard_field(tree, condition),
                rule=self._rule_kind(tree, condition),
                message=message,
                confidence=1.0,
                line=tree.line(node),
            )))
            guarded.append(node)

        for name, declaration, function in self._function_declarations(tree):
            match = VALIDATOR_NAME.match(name)
            if not match:
                continue
            if any(function.start_byte <= g.start_byte < function.end_byte for g in guarded):
                continue
            field = match.group(2) or name
            found.append((declaration.start_byte, ValidationRule(
                field=field[:1].lower() + field[1:],
                rule="custom",
                message="",
                confidence=NAME_ONLY_CONFIDENCE,
                line=tree.line(declaration),
            )))
        return found

    def _guard_message(self, tree: SyntaxTree, consequence: Optional[Node], error_setters: Set[str]) -> Optional[str]:
        if consequence is None:
            return None
        for node in walk(consequence, skip=FUNCTION_TYPES + ("if_statement",)):
            if node.type == "throw_statement":
                thrown = named_children(node)
                error = unwrap(thrown[0]) if thrown else None
                if error is not None and error.type == "new_expression":
                    constructor = tree.text(error.child_by_field_name("constructor"))
                    args = named_children(error.child_by_field_name("arguments"))
                    message = string_value(tree, args[0]) if args else None
                    if constructor.endswith("Error") and message is not None:
                        return message
            elif node.type == "call_expression":
                path = callee_path(tree, node)
                if path in error_setters:
                    message = self._first_string(tree, node.child_by_field_name("arguments"))
                    if message is not None:
                        return message
                elif path == "this.setState":
                    args = call_arguments(node)
                    obj = unwrap(args[0]) if args else None
                    if obj is not None and obj.type == "object":
                        for pair in named_children(obj):
                            if pair.type != "pair":
                                continue
                            key = tree.text(pair.child_by_field_name("key"))
                            message = string_value(tree, unwrap(pair.child_by_field_name("value")))
                            if "rror" in key and message is not None:
                                return message
            elif node.type == "assignment_expression":
                left = node.child_by_field_name("left")
                if left is not None and left.type in ("member_expression", "subscript_expression"):
                    owner = left.child_by_field_name("object")
                    message = string_value(tree, unwrap(node.child_by_field_name("right")))
                    if owner is not None and "error" in tree.text(owner).lower() and message is not None:
                        return message
        return None

    def _first_string(self, tree: SyntaxTree, node: Optional[Node]) -> Optional[str]:
        if node is None:
            return None
        for child in walk(node):
            if child.type in STRING_TYPES:
                return string_value(tree, child)
        return None

    def _guard_field(self, tree: SyntaxTree, condition: Optional[Node]) -> str:
        if condition is None:
            return "unknown"
        skip_names = {"this", "state", "props", "length", "trim", "test", "match", "includes",
                      "Number", "String", "isNaN", "undefined"}
        for node in walk(condition):
            if node.type == "call_expression" and callee_base(tree, node) in ("test", "match"):
                if callee_base(tree, node) == "test":
                    args = call_arguments(node)
                    if args:
                        return tree.text(args[-1]).split(".")[-1]
                function = node.child_by_field_name("function")
                return tree.text(function.child_by_field_name("object")).split(".")[-1]
        for node in walk(condition):
            if node.type in ("identifier", "property_identifier") and tree.text(node) not in skip_names:
                parent = node.parent
                if parent is not None and parent.type == "call_expression":
                    continue
                return tree.text(node)
        return "unknown"

    def _rule_kind(self, tree: SyntaxTree, condition: Optional[Node]) -> str:
        if condition is None:
            return "custom"
        nodes = list(walk(condition))
        if any(n.type == "regex" for n in nodes) or any(
            n.type == "call_expression" and callee_base(tree, n) in ("test", "match") for n in nodes
        ):
            return "pattern"
        if any(
            n.type == "member_expression" and tree.text(n.child_by_field_name("property")) == "length"
            for n in nodes
        ):
            return "length"
        for n in nodes:
            if n.type == "binary_expression":
                operator = tree.text(n.child_by_field_name("operator"))
                if operator in ("<", ">", "<=", ">="):
                    return "range"
        for n in nodes:
            if n.type == "unary_expression" and tree.text(n).startswith("!"):
                return "required"
            if n.type == "binary_expression":
                right = tree.text(n.child_by_field_name("right"))
                if right in ("''", '""', "null", "undefined"):
                    return "required"
        return "custom"

    # ------------------------------------------------------------------
    # External calls
    # ------------------------------------------------------------------

    def _registry_key(self, tree: SyntaxTree, call: Node) -> Optional[str]:
        """Registry key of `container.resolve<T>("T")`, or None for other calls."""
        if call.type != "call_expression":
            return None
        path = callee_path(tree, call)
        if "." not in path:
            return None
        owner, method = path.rsplit(".", 1)
        if method != "resolve" or owner.split(".")[-1] not in self.vocabulary.registries:
            return None
        args = call_arguments(call)
        key = string_value(tree, args[0]) if args else None
        if key is None:
            type_args = named_children(call.child_by_field_name("type_arguments"))
            key = tree.text(type_args[0]) if type_args else (tree.text(args[0]) if args else "")
        return key

    def _external_calls(self, tree: SyntaxTree) -> List[Tuple[int, ExternalCall]]:
        registry_bindings: Dict[str, str] = {}
        for node in walk(tree.root):
            if node.type == "variable_declarator":
                name = node.child_by_field_name("name")
                value = unwrap(node.child_by_field_name("value"))
                if name is not None and name.type == "identifier" and value is not None:
                    key = self._registry_key(tree, value)
                    if key is not None:
                        registry_bindings[tree.text(name)] = key

        found = []
        for node in walk(tree.root):
            if node.type != "call_expression":
                continue
            call = self._external_call(tree, node, registry_bindings)
            if call is not None:
                found.append((node.start_byte, call))
        return found

    def _external_call(self, tree: SyntaxTree, call: Node, registry_bindings: Dict[str, str]) -> Optional[ExternalCall]:
        function = call.child_by_field_name("function")
        if function is None:
            return None
        args = call_arguments(call)
        via_registry = False

        if function.type == "identifier" and tree.text(function) in self.vocabulary.network_functions:
            target = self._target_text(tree, args[0]) if args else ""
            options = unwrap(args[1]) if len(args) > 1 else None
            if tree.text(function) != "fetch":
                options = unwrap(args[0]) if args else None
            method = self._option_method(tree, options) or "GET"
        elif function.type == "member_expression":
            prop = tree.text(function.child_by_field_name("property"))
            owner = function.child_by_field_name("object")
            owner_path = member_path(tree, owner)
            if owner_path in self.vocabulary.network_clients and prop in self.vocabulary.http_methods:
                target = self._target_text(tree, args[0]) if args else ""
                if prop == "request":
                    method = self._option_method(tree, unwrap(args[0]) if args else None) or "REQUEST"
                else:
                    method = prop.upper()
            elif prop in self.vocabulary.use_case_methods:
                owner = unwrap(owner)
                if owner.type == "identifier" and tree.text(owner) in registry_bindings:
                    target = registry_bindings[tree.text(owner)]
                else:
                    key = self._registry_key(tree, owner)
                    if key is None:
                        return None
                    target = key
                method = prop
                via_registry = True
            else:
                return None
        else:
            return None

        success, error = self._branches(tree, call)
        return ExternalCall(
            target=target,
            method=method,
            has_success_branch=success,
            has_error_branch=error,
            via_registry=via_registry,
            line=tree.line(call),
        )

    def _target_text(self, tree: SyntaxTree, node: Node) -> str:
        value = string_value(tree, node)
        if value is not None:
            return value
        return " ".join(tree.text(node).split())[:120]

    def _option_method(self, tree: SyntaxTree, options: Optional[Node]) -> Optional[str]:
        if options is None or options.type != "object":
            return None
        for pair in named_children(options):
            if pair.type == "pair" and tree.text(pair.child_by_field_name("key")) == "method":
                value = string_value(tree, unwrap(pair.child_by_field_name("value")))
                if value:
                    return value.upper()
        return None

    def _branches(self, tree: SyntaxTree, call: Node) -> Tuple[bool, bool]:
        """Whether a call's result is consumed on success and whether its failure is handled."""
        success = error = False
        current = call
        while True:
            parent = current.parent
            if parent is None:
                break
            if parent.type == "await_expression":
                success = True
                current = parent
                continue
            if (
                parent.type == "member_expression"
                and parent.child_by_field_name("object") == current
                and parent.parent is not None
                and parent.parent.type == "call_expression"
            ):
                prop = tree.text(parent.child_by_field_name("property"))
                if prop == "then":
                    success = True
                    if len(call_arguments(parent.parent)) > 1:
                        error = True
                elif prop == "catch":
                    error = True
                current = parent.parent
                continue
            break

        previous, ancestor = current, current.parent
        while ancestor is not None and ancestor.type not in FUNCTION_TYPES:
            if (
                ancestor.type == "try_statement"
                and ancestor.child_by_field_name("body") == previous
                and ancestor.child_by_field_name("handler") is not None
            ):
                error = True
                break
            previous, ancestor = ancestor, ancestor.parent
        return success, error
