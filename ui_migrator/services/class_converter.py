"""
Class component to function component conversion.

State keys become `useState` pairs, `this.setState` calls become setter
calls, lifecycle methods become `useEffect` blocks, other methods become
`const` arrow functions and `render()` becomes the function body.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging

from tree_sitter import Node

from .analyzer import LIFECYCLE_METHODS, object_keys
from .rewriter import Edit, SourceRewriter
from ..errors import TransformationError
from ..extractors.syntax import (
    FUNCTION_VALUE_TYPES,
    SyntaxTree,
    call_arguments,
    callee_base,
    callee_path,
    capitalize,
    dedent_continuation,
    function_body,
    has_token,
    indent_block,
    member_path,
    named_children,
    unwrap,
)
from ..models.business_logic import BusinessLogicModel
from ..models.transformed import TargetStatement

logger = logging.getLogger(__name__)

SUPPORTED_LIFECYCLE = ("constructor", "render", "componentDidMount", "componentDidUpdate", "componentWillUnmount")


class ClassRewriter(SourceRewriter):
    """SourceRewriter that also removes `this` from class member code."""

    def __init__(
        self,
        tree: SyntaxTree,
        state_names: Sequence[str],
        functions: Set[str],
        ref_fields: Set[str],
        value_fields: Set[str],
        **kwargs,
    ):
        super().__init__(tree, **kwargs)
        self.state_names = list(state_names)
        self.functions = functions
        self.ref_fields = ref_fields
        self.value_fields = value_fields
        self.updater: Optional[Tuple[str, str]] = None  # (updater parameter, state key)
        self.unresolved: Set[str] = set()
        self.dropped_callbacks = 0

    def edit_for(self, node: Node) -> Tuple[List[Edit], bool]:
        if node.type == "member_expression":
            owner = node.child_by_field_name("object")
            prop = self.tree.text(node.child_by_field_name("property"))
            if owner is not None and owner.type == "this":
                return self._this_member(node, prop)
            if (
                self.updater is not None and owner is not None and owner.type == "identifier"
                and self.tree.text(owner) == self.updater[0]
            ):
                replacement = f"prev{capitalize(prop)}" if prop == self.updater[1] else prop
                return [(node.start_byte, node.end_byte, replacement)], False
        if node.type == "call_expression" and callee_path(self.tree, node) == "this.setState":
            return [(node.start_byte, node.end_byte, self._set_state(node))], False
        if node.type == "call_expression" and callee_base(self.tree, node) == "bind":
            # this.handleX.bind(this) -> handleX
            target = node.child_by_field_name("function").child_by_field_name("object")
            if target is not None and target.type == "member_expression":
                owner = target.child_by_field_name("object")
                prop = self.tree.text(target.child_by_field_name("property"))
                if owner is not None and owner.type == "this" and prop in self.functions:
                    return [(node.start_byte, node.end_byte, prop)], False
        return super().edit_for(node)

    def _this_member(self, node: Node, prop: str) -> Tuple[List[Edit], bool]:
        parent = node.parent
        if prop == "props":
            return [(node.start_byte, node.end_byte, "props")], False
        if prop == "state":
            if (
                parent is not None and parent.type == "member_expression"
                and parent.child_by_field_name("object") == node
            ):
                key = self.tree.text(parent.child_by_field_name("property"))
                return [(parent.start_byte, parent.end_byte, key)], False
            snapshot = "({ " + ", ".join(self.state_names) + " })"
            return [(node.start_byte, node.end_byte, snapshot)], False
        if prop in self.functions or prop in self.ref_fields:
            return [(node.start_byte, node.end_byte, prop)], False
        if prop in self.value_fields:
            return [(node.start_byte, node.end_byte, f"{prop}.current")], False
        self.unresolved.add(prop)
        return [], True

    def _set_state(self, call: Node) -> str:
        args = call_arguments(call)
        update = unwrap(args[0]) if args else None
        if update is None:
            raise TransformationError("this.setState() called without an update")
        if len(args) > 1:
            self.dropped_callbacks += 1

        calls = []
        if update.type == "object":
            for child in named_children(update):
                if child.type == "pair":
                    key = self.tree.text(child.child_by_field_name("key")).strip("'\"")
                    value = self.fragment(child.child_by_field_name("value"))
                    calls.append(f"set{capitalize(key)}({value})")
                elif child.type == "shorthand_property_identifier":
                    key = self.tree.text(child)
                    calls.append(f"set{capitalize(key)}({key})")
                else:
                    raise TransformationError(
                        f"Unsupported setState entry: {self.tree.text(child)}"
                    )
        elif update.type in FUNCTION_VALUE_TYPES:
            parameters = update.child_by_field_name("parameters")
            parameter = update.child_by_field_name("parameter")
            names = [
                self.tree.text(p.child_by_field_name("pattern") or p)
                for p in named_children(parameters)
            ] if parameters is not None else ([self.tree.text(parameter)] if parameter is not None else [])
            body = unwrap(function_body(update))
            if body is None or body.type != "object":
                raise TransformationError("setState updater must return an object literal")
            for pair in named_children(body):
                if pair.type != "pair":
                    raise TransformationError(f"Unsupported setState entry: {self.tree.text(pair)}")
                key = self.tree.text(pair.child_by_field_name("key")).strip("'\"")
                previous = f"prev{capitalize(key)}"
                if names:
                    self.updater = (names[0], key)
                try:
                    value = self.fragment(pair.child_by_field_name("value"))
                finally:
                    self.updater = None
                calls.append(f"set{capitalize(key)}(({previous}) => {value})")
        else:
            raise TransformationError(
                f"Unsupported setState argument: {self.tree.text(update)}"
            )

        if not calls:
            return "undefined"
        parent = call.parent
        if parent is not None and parent.type == "expression_statement":
            indent = " " * self.tree.line_indent(call)
            return (";\n" + indent).join(calls)
        return calls[0] if len(calls) == 1 else "(" + ", ".join(calls) + ")"


@dataclass
class _Field:
    name: str
    value: Optional[Node]
    annotation: str
    origin: Node


@dataclass
class ClassConversion:
    """Function body produced from a class component."""
    statements: List[TargetStatement] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    needs_previous: bool = False
    manual_review: bool = False


class ClassConverter:
    """Converts a class component declaration into function component statements."""

    def __init__(
        self,
        tree: SyntaxTree,
        class_node: Node,
        logic: BusinessLogicModel,
        **rewriter_options,
    ):
        self.tree = tree
        self.class_node = class_node
        self.logic = logic
        self.rewriter_options = rewriter_options

        self.methods: Dict[str, Node] = {}
        self.arrow_fields: Dict[str, _Field] = {}
        self.ref_fields: Dict[str, _Field] = {}
        self.value_fields: Dict[str, _Field] = {}
        self.lifecycle: Dict[str, Node] = {}
        self.state_object: Optional[Node] = None
        self.leftover: List[Node] = []
        self.notes: List[str] = []
        self.manual_review = False
        self.rewriter: Optional[ClassRewriter] = None

    def convert(self) -> ClassConversion:
        self._collect_members()
        state_names = [b.name for b in self.logic.state_bindings if b.origin == "class_state"]
        rewriter = ClassRewriter(
            self.tree,
            state_names=state_names,
            functions=set(self.methods) | set(self.arrow_fields),
            ref_fields=set(self.ref_fields),
            value_fields=set(self.value_fields),
            **self.rewriter_options,
        )
        self.rewriter = rewriter

        statements: List[TargetStatement] = []
        statements.extend(self._state_statements(rewriter))
        statements.extend(self._field_statements(rewriter))
        previous = self._previous_statements()
        statements.extend(previous)
        statements.extend(self._function_statements(rewriter))
        statements.extend(self._effect_statements(rewriter))
        statements.extend(self._render_statements(rewriter))

        for node in self.leftover:
            first_line = self.tree.text(node).split("\n")[0].strip()
            statements.insert(0, TargetStatement(
                code=f"// TODO(migration): constructor statement not migrated: {first_line}",
                kind="marker",
                start_line=self.tree.line(node),
                end_line=self.tree.line(node),
            ))
            self.notes.append(f"Constructor statement not migrated: {first_line}")

        if rewriter.dropped_callbacks:
            self.notes.append(
                f"{rewriter.dropped_callbacks} setState completion callback(s) dropped; "
                "move them into an effect on the updated state"
            )
        if rewriter.unresolved:
            self.manual_review = True
            self.notes.append(
                "Unresolved instance members: " + ", ".join(sorted(rewriter.unresolved))
            )

        return ClassConversion(
            statements=statements,
            notes=self.notes,
            needs_previous=bool(previous),
            manual_review=self.manual_review,
        )

    # ------------------------------------------------------------------
    # Member collection
    # ------------------------------------------------------------------

    def _collect_members(self) -> None:
        body = self.class_node.child_by_field_name("body")
        for member in named_children(body):
            if member.type == "method_definition":
                name = self.tree.text(member.child_by_field_name("name"))
                if has_token(member, "static"):
                    self.notes.append(f"Static member '{name}' dropped")
                elif name in SUPPORTED_LIFECYCLE:
                    self.lifecycle[name] = member
                elif name in LIFECYCLE_METHODS:
                    self.manual_review = True
                    self.notes.append(f"Lifecycle method '{name}' has no hook equivalent and was dropped")
                else:
                    self.methods[name] = member
            elif member.type in ("public_field_definition", "field_definition"):
                name_node = member.child_by_field_name("name") or member.child_by_field_name("property")
                if name_node is None:
                    continue
                name = self.tree.text(name_node)
                value = member.child_by_field_name("value")
                if has_token(member, "static"):
                    if name == "defaultProps":
                        self.notes.append("static defaultProps dropped; use parameter defaults")
                    else:
                        self.notes.append(f"Static member '{name}' dropped")
                    continue
                if name == "state":
                    self.state_object = unwrap(value)
                    continue
                annotation = member.child_by_field_name("type")
                self._add_field(name, value, self.tree.text(annotation) if annotation else "", member)

        constructor = self.lifecycle.get("constructor")
        if constructor is not None:
            self._collect_constructor(constructor)

    def _add_field(self, name: str, value: Optional[Node], annotation: str, origin: Node) -> None:
        inner = unwrap(value)
        entry = _Field(name=name, value=value, annotation=annotation, origin=origin)
        if inner is not None and inner.type in FUNCTION_VALUE_TYPES:
            self.arrow_fields[name] = entry
        elif inner is not None and inner.type == "call_expression" and callee_base(self.tree, inner) == "createRef":
            self.ref_fields[name] = entry
        else:
            self.value_fields[name] = entry

    def _collect_constructor(self, constructor: Node) -> None:
        for statement in named_children(constructor.child_by_field_name("body")):
            if statement.type == "comment":
                continue
            expression = unwrap(named_children(statement)[0]) if (
                statement.type == "expression_statement" and named_children(statement)
            ) else None
            if expression is None:
                self.leftover.append(statement)
                continue
            if expression.type == "call_expression" and self.tree.text(
                expression.child_by_field_name("function")
            ) == "super":
                continue
            if expression.type == "assignment_expression":
                left = member_path(self.tree, expression.child_by_field_name("left"))
                right = expression.child_by_field_name("right")
                if left == "this.state":
                    self.state_object = unwrap(right)
                    continue
                if left.startswith("this.") and left.count(".") == 1:
                    name = left.split(".", 1)[1]
                    inner = unwrap(right)
                    if inner is not None and inner.type == "call_expression" and callee_base(self.tree, inner) == "bind":
                        continue
                    self._add_field(name, right, "", statement)
                    continue
            self.leftover.append(statement)

    # ------------------------------------------------------------------
    # Statement builders
    # ------------------------------------------------------------------

    def _state_statements(self, rewriter: ClassRewriter) -> List[TargetStatement]:
        if self.state_object is None or self.state_object.type != "object":
            return []
        types = {b.name: b.value_type for b in self.logic.state_bindings if b.origin == "class_state"}
        statements = []
        for child in named_children(self.state_object):
            if child.type == "pair":
                key = self.tree.text(child.child_by_field_name("key")).strip("'\"")
                initial = rewriter.fragment(child.child_by_field_name("value"))
            elif child.type == "shorthand_property_identifier":
                key = initial = self.tree.text(child)
            else:
                continue
            value_type = types.get(key, "unknown")
            generic = f"<{value_type}>" if "unknown" not in value_type else ""
            code = f"const [{key}, set{capitalize(key)}] = useState{generic}({initial});"
            statements.append(TargetStatement(
                code=dedent_continuation(code, self.tree.line_indent(child)),
                kind="state",
                start_line=self.tree.line(child),
                end_line=child.end_point[0] + 1,
            ))
        return statements

    def _field_statements(self, rewriter: ClassRewriter) -> List[TargetStatement]:
        statements = []
        for name, entry in self.ref_fields.items():
            inner = unwrap(entry.value)
            type_args = inner.child_by_field_name("type_arguments") if inner is not None else None
            generic = self.tree.text(type_args) if type_args is not None else ""
            statements.append(self._statement(entry.origin, f"const {name} = useRef{generic}(null);", "statement"))
        for name, entry in self.value_fields.items():
            initial = rewriter.fragment(entry.value) if entry.value is not None else "undefined"
            annotation = entry.annotation.lstrip(":").strip()
            generic = f"<{annotation}>" if annotation else ""
            code = f"const {name} = useRef{generic}({initial});"
            statements.append(self._statement(entry.origin, code, "statement"))
        return statements

    def _previous_statements(self) -> List[TargetStatement]:
        update = self.lifecycle.get("componentDidUpdate")
        if update is None:
            return []
        names = self._parameter_names(update)
        statements = []
        state_names = [b.name for b in self.logic.state_bindings if b.origin == "class_state"]
        if names:
            statements.append(self._statement(update, f"const {names[0]} = usePrevious(props);", "state"))
        if len(names) > 1:
            snapshot = "{ " + ", ".join(state_names) + " }"
            statements.append(self._statement(update, f"const {names[1]} = usePrevious({snapshot});", "state"))
        return statements

    def _parameter_names(self, method: Node) -> List[str]:
        parameters = method.child_by_field_name("parameters")
        names = []
        for parameter in named_children(parameters):
            pattern = parameter.child_by_field_name("pattern") or parameter
            if pattern.type == "identifier":
                names.append(self.tree.text(pattern))
        return names

    def _function_statements(self, rewriter: ClassRewriter) -> List[TargetStatement]:
        entries: List[Tuple[int, TargetStatement]] = []
        for name, method in self.methods.items():
            prefix = "async " if has_token(method, "async") else ""
            parameters = rewriter.fragment(method.child_by_field_name("parameters"))
            return_type = method.child_by_field_name("return_type")
            annotation = rewriter.fragment(return_type) if return_type is not None else ""
            body = rewriter.fragment(method.child_by_field_name("body"))
            code = f"const {name} = {prefix}{parameters}{annotation} => {body};"
            entries.append((method.start_byte, self._statement(method, code, "handler")))
        for name, entry in self.arrow_fields.items():
            annotation = entry.annotation if entry.annotation.startswith(":") else (
                f": {entry.annotation}" if entry.annotation else ""
            )
            code = f"const {name}{annotation} = {rewriter.fragment(entry.value)};"
            entries.append((entry.origin.start_byte, self._statement(entry.origin, code, "handler")))
        return [statement for _, statement in sorted(entries, key=lambda e: e[0])]

    def _body_lines(self, rewriter: ClassRewriter, method: Node) -> List[str]:
        body = method.child_by_field_name("body")
        lines = []
        for statement in named_children(body):
            if self._is_state_destructure(statement):
                continue
            lines.append(rewriter.statement(statement))
        return lines

    def _is_state_destructure(self, statement: Node) -> bool:
        """`const { a, b } = this.state;` where every key is a state binding."""
        if statement.type != "lexical_declaration":
            return False
        declarators = [d for d in named_children(statement) if d.type == "variable_declarator"]
        if len(declarators) != 1:
            return False
        pattern = declarators[0].child_by_field_name("name")
        value = declarators[0].child_by_field_name("value")
        if pattern is None or pattern.type != "object_pattern" or member_path(self.tree, value) != "this.state":
            return False
        state_names = {b.name for b in self.logic.state_bindings if b.origin == "class_state"}
        keys = named_children(pattern)
        return all(
            k.type == "shorthand_property_identifier_pattern" and self.tree.text(k) in state_names
            for k in keys
        )

    def _effect_statements(self, rewriter: ClassRewriter) -> List[TargetStatement]:
        statements = []
        mount = self.lifecycle.get("componentDidMount")
        unmount = self.lifecycle.get("componentWillUnmount")
        if mount is not None or unmount is not None:
            parts: List[str] = []
            if mount is not None:
                mount_lines = "\n".join(self._body_lines(rewriter, mount))
                if has_token(mount, "async"):
                    parts.append("void (async () => {\n" + indent_block(mount_lines) + "\n})();")
                elif mount_lines:
                    parts.append(mount_lines)
            if unmount is not None:
                unmount_lines = "\n".join(self._body_lines(rewriter, unmount))
                parts.append("return () => {\n" + indent_block(unmount_lines) + "\n};")
            code = "useEffect(() => {\n" + indent_block("\n".join(parts)) + "\n}, []);"
            origin = mount if mount is not None else unmount
            end = max(n.end_point[0] for n in (mount, unmount) if n is not None) + 1
            statements.append(TargetStatement(
                code=code, kind="effect", blank_before=True,
                start_line=self.tree.line(origin), end_line=end,
            ))

        update = self.lifecycle.get("componentDidUpdate")
        if update is not None:
            names = self._parameter_names(update)
            lines = self._body_lines(rewriter, update)
            if names:
                guard = " || ".join(f"!{n}" for n in names)
                lines.insert(0, f"if ({guard}) {{\n  return;\n}}")
            else:
                self.notes.append("componentDidUpdate without parameters now also runs on mount")
            dependencies = next(
                (e.dependencies for e in self.logic.side_effects if e.origin == "componentDidUpdate"),
                (),
            )
            body = "useEffect(() => {\n" + indent_block("\n".join(lines)) + "\n}"
            code = body + (f", [{', '.join(dependencies)}]);" if dependencies else ");")
            statements.append(TargetStatement(
                code=code, kind="effect", blank_before=True,
                start_line=self.tree.line(update), end_line=update.end_point[0] + 1,
            ))
        return statements

    def _render_statements(self, rewriter: ClassRewriter) -> List[TargetStatement]:
        render = self.lifecycle.get("render")
        if render is None:
            self.manual_review = True
            self.notes.append("Class component has no render method")
            return [TargetStatement(code="return null;", kind="render", blank_before=True)]
        statements = []
        body = render.child_by_field_name("body")
        first = True
        for statement in named_children(body):
            if self._is_state_destructure(statement):
                continue
            kind = "render" if statement.type == "return_statement" else "statement"
            statements.append(TargetStatement(
                code=rewriter.statement(statement),
                kind=kind,
                blank_before=first,
                start_line=self.tree.line(statement),
                end_line=statement.end_point[0] + 1,
            ))
            first = False
        return statements

    def _statement(self, origin: Node, code: str, kind: str, blank_before: bool = False) -> TargetStatement:
        return TargetStatement(
            code=dedent_continuation(code, self.tree.line_indent(origin)),
            kind=kind,
            blank_before=blank_before,
            start_line=self.tree.line(origin),
            end_line=origin.end_point[0] + 1,
        )
