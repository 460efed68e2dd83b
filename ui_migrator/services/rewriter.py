"""Structural source rewriting over tree-sitter byte ranges."""

from typing import Dict, List, Optional, Sequence, Set, Tuple

from tree_sitter import Node

from ..extractors.syntax import (
    SyntaxTree,
    apply_edits,
    callee_base,
    is_hook_name,
    member_path,
    named_children,
)

Edit = Tuple[int, int, str]


class SourceRewriter:
    """
    Rule-table rewriter for statements copied into the target dialect.

    Rules:
      - type renames (`DaisyConfig` -> `ConfiguratorConfig`, props type -> `<Name>Props`)
      - registry lookups (`container.resolve`) -> injected `services.resolve`
      - `React.useX(...)` -> `useX(...)` (when hooks are normalized)
      - untyped `useState(...)` -> `useState<T>(...)` (when hooks are normalized)

    Counters record how often each rule fired so the transformer can
    report structural records.
    """

    def __init__(
        self,
        tree: SyntaxTree,
        type_renames: Optional[Dict[str, str]] = None,
        registries: Sequence[str] = ("container", "registry"),
        normalize_hooks: bool = False,
        typed_state: Optional[Dict[str, str]] = None,
        inject_services: bool = False,
    ):
        self.tree = tree
        self.type_renames = type_renames or {}
        self.registries = tuple(registries)
        self.normalize_hooks = normalize_hooks
        self.typed_state = typed_state or {}
        self.inject_services = inject_services

        self.renamed: Set[str] = set()
        self.injected = 0
        self.normalized: Set[str] = set()
        self.typed = 0

    def fragment(self, node: Optional[Node], extra: Sequence[Edit] = ()) -> str:
        """Rewritten text of a node, original indentation untouched."""
        if node is None:
            return ""
        edits = list(extra) + self.edits(node)
        return apply_edits(self.tree.text(node), node.start_byte, edits)

    def statement(self, node: Node, extra: Sequence[Edit] = ()) -> str:
        """Rewritten text of a node with continuation lines re-based to column 0."""
        return self.tree.statement_text(node, self.fragment(node, extra))

    def edits(self, node: Node) -> List[Edit]:
        edits: List[Edit] = []
        stack = [node]
        while stack:
            current = stack.pop()
            found, descend = self.edit_for(current)
            edits.extend(found)
            if descend:
                stack.extend(reversed(current.children))
        return edits

    def edit_for(self, node: Node) -> Tuple[List[Edit], bool]:
        """Edits for one node and whether to keep walking into its children."""
        if node.type in ("type_identifier", "identifier"):
            text = self.tree.text(node)
            renamed = self.type_renames.get(text)
            if renamed:
                self.renamed.add(text)
                return [(node.start_byte, node.end_byte, renamed)], False
            return [], False
        if node.type == "call_expression":
            return self._call_edits(node), True
        return [], True

    def _call_edits(self, call: Node) -> List[Edit]:
        edits: List[Edit] = []
        function = call.child_by_field_name("function")
        if function is None:
            return edits

        if function.type == "member_expression":
            owner = function.child_by_field_name("object")
            prop = self.tree.text(function.child_by_field_name("property"))
            if (
                self.inject_services and prop == "resolve"
                and owner is not None and owner.type == "identifier"
                and self.tree.text(owner) in self.registries
            ):
                edits.append((owner.start_byte, owner.end_byte, "services"))
                self.injected += 1
            if self.normalize_hooks and member_path(self.tree, owner) == "React" and is_hook_name(prop):
                edits.append((function.start_byte, function.end_byte, prop))
                self.normalized.add(prop)

        if (
            self.normalize_hooks
            and callee_base(self.tree, call) == "useState"
            and call.child_by_field_name("type_arguments") is None
        ):
            value_type = self._declared_state_type(call)
            if value_type and "unknown" not in value_type:
                edits.append((function.end_byte, function.end_byte, f"<{value_type}>"))
                self.typed += 1
        return edits

    def _declared_state_type(self, call: Node) -> Optional[str]:
        declarator = call.parent
        if declarator is None or declarator.type != "variable_declarator":
            return None
        pattern = declarator.child_by_field_name("name")
        if pattern is None or pattern.type != "array_pattern":
            return None
        elements = named_children(pattern)
        if not elements or elements[0].type != "identifier":
            return None
        return self.typed_state.get(self.tree.text(elements[0]))
