"""Thin helpers over the tree-sitter TSX/TypeScript grammars."""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

TSX_LANGUAGE = Language(tree_sitter_typescript.language_tsx())
TYPESCRIPT_LANGUAGE = Language(tree_sitter_typescript.language_typescript())

FUNCTION_TYPES = ("arrow_function", "function_expression", "function", "function_declaration",
                  "generator_function_declaration", "method_definition")
FUNCTION_VALUE_TYPES = ("arrow_function", "function_expression", "function")
JSX_TYPES = ("jsx_element", "jsx_self_closing_element", "jsx_fragment")
STRING_TYPES = ("string", "template_string")
WRAPPER_TYPES = ("parenthesized_expression", "as_expression", "satisfies_expression",
                 "non_null_expression", "type_assertion")


def language_for(path: str) -> Language:
    """Plain `.ts` files use the TypeScript grammar; everything else TSX."""
    if path.endswith(".ts") and not path.endswith(".d.ts"):
        return TYPESCRIPT_LANGUAGE
    return TSX_LANGUAGE


@dataclass
class SyntaxTree:
    """A parsed source file with byte-accurate text access."""
    source: bytes
    root: Node
    path: str = "<memory>"

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte:node.end_byte].decode("utf-8")

    def line(self, node: Node) -> int:
        """1-based line of the node start."""
        return node.start_point[0] + 1

    @property
    def has_errors(self) -> bool:
        return self.root.has_error

    def error_nodes(self) -> List[Node]:
        return [n for n in walk(self.root) if n.type == "ERROR" or n.is_missing]

    def first_error_line(self) -> Optional[int]:
        errors = self.error_nodes()
        return self.line(errors[0]) if errors else None

    def line_indent(self, node: Node) -> int:
        """Leading whitespace width of the line a node starts on."""
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        line = self.source[line_start:node.start_byte]
        return len(line) - len(line.lstrip(b" \t"))

    def statement_text(self, node: Node, text: Optional[str] = None) -> str:
        """Node text (or a rewrite of it) with continuation lines re-based to column 0."""
        return dedent_continuation(self.text(node) if text is None else text, self.line_indent(node))


def dedent_continuation(text: str, indent: int) -> str:
    """Strip up to `indent` leading spaces from every line after the first."""
    lines = text.split("\n")
    result = [lines[0]]
    for line in lines[1:]:
        stripped = line.lstrip(" \t")
        removable = min(indent, len(line) - len(stripped))
        result.append(line[removable:])
    return "\n".join(result)


def indent_block(text: str, prefix: str = "  ") -> str:
    return "\n".join(prefix + line if line.strip() else "" for line in text.split("\n"))


def parse_source(text: str, path: str = "<memory>") -> SyntaxTree:
    """Parse source text; a fresh parser per call keeps callers independent."""
    source = text.encode("utf-8")
    parser = Parser(language_for(path))
    tree = parser.parse(source)
    return SyntaxTree(source=source, root=tree.root_node, path=path)


def walk(node: Node, skip: Sequence[str] = ()) -> Iterator[Node]:
    """Pre-order traversal. Children of node types in `skip` are not visited."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if current is not node and current.type in skip:
            continue
        stack.extend(reversed(current.children))


def find_all(node: Node, types: Iterable[str], skip: Sequence[str] = ()) -> List[Node]:
    wanted = set(types)
    return [n for n in walk(node, skip) if n.type in wanted]


def named_children(node: Optional[Node]) -> List[Node]:
    if node is None:
        return []
    return [c for c in node.named_children if c.type != "comment"]


def child_of_type(node: Optional[Node], *types: str) -> Optional[Node]:
    if node is None:
        return None
    for child in node.children:
        if child.type in types:
            return child
    return None


def has_token(node: Node, token: str) -> bool:
    """Check for an anonymous token child such as `?`, `async` or `default`."""
    return any(c.type == token for c in node.children)


def unwrap(node: Optional[Node]) -> Optional[Node]:
    """Strip parentheses, `as` casts, `await` and non-null assertions."""
    while node is not None and node.type in WRAPPER_TYPES + ("await_expression",):
        inner = named_children(node)
        if not inner:
            break
        node = inner[0]
    return node


def string_value(tree: SyntaxTree, node: Optional[Node]) -> Optional[str]:
    """Literal value of a string or template node, without quotes."""
    if node is None or node.type not in STRING_TYPES:
        return None
    return tree.text(node)[1:-1]


def call_arguments(call: Node) -> List[Node]:
    return named_children(call.child_by_field_name("arguments"))


def callee_path(tree: SyntaxTree, call: Node) -> str:
    """
    Dotted callee of a call expression, e.g. `React.useState` or `axios.get`.

    Returns an empty string when the callee is not a plain identifier or
    member chain (for instance a call on the result of another call).
    """
    function = call.child_by_field_name("function")
    return member_path(tree, function)


def member_path(tree: SyntaxTree, node: Optional[Node]) -> str:
    if node is None:
        return ""
    if node.type in ("identifier", "this", "property_identifier", "super"):
        return tree.text(node)
    if node.type == "member_expression":
        obj = member_path(tree, node.child_by_field_name("object"))
        prop = node.child_by_field_name("property")
        if not obj or prop is None:
            return ""
        return f"{obj}.{tree.text(prop)}"
    return ""


def callee_base(tree: SyntaxTree, call: Node) -> str:
    """Last segment of the callee (`useState` for `React.useState`)."""
    function = call.child_by_field_name("function")
    if function is None:
        return ""
    if function.type == "identifier":
        return tree.text(function)
    if function.type == "member_expression":
        prop = function.child_by_field_name("property")
        return tree.text(prop)
    return ""


def function_body(node: Node) -> Optional[Node]:
    return node.child_by_field_name("body")


def enclosing_function(node: Node) -> Optional[Node]:
    current = node.parent
    while current is not None:
        if current.type in FUNCTION_TYPES:
            return current
        current = current.parent
    return None


def own_returns(function: Node) -> List[Node]:
    """Return statements of a function, excluding those of nested functions."""
    body = function_body(function)
    if body is None or body.type != "statement_block":
        return []
    return [n for n in walk(body, skip=FUNCTION_TYPES + ("class_declaration", "class"))
            if n.type == "return_statement" and enclosing_function(n) == function]


def returned_expression(statement: Node) -> Optional[Node]:
    inner = named_children(statement)
    return unwrap(inner[0]) if inner else None


def contains_type(node: Optional[Node], types: Iterable[str], skip: Sequence[str] = ()) -> bool:
    if node is None:
        return False
    wanted = set(types)
    return any(n.type in wanted for n in walk(node, skip))


def identifiers_in(tree: SyntaxTree, node: Optional[Node]) -> Tuple[str, ...]:
    """Sorted distinct identifiers referenced inside a node."""
    if node is None:
        return ()
    names = {tree.text(n) for n in walk(node) if n.type == "identifier"}
    return tuple(sorted(names))


def apply_edits(text: str, base_offset: int, edits: List[Tuple[int, int, str]]) -> str:
    """
    Apply byte-range replacements to a slice of source text.

    `edits` hold absolute (start_byte, end_byte, replacement) triples; the
    slice starts at `base_offset`. Overlapping edits keep the outermost one.
    """
    data = text.encode("utf-8")
    chosen: List[Tuple[int, int, str]] = []
    for start, end, replacement in sorted(edits, key=lambda e: (e[0], -(e[1] - e[0]))):
        if chosen and start < chosen[-1][1]:
            continue
        chosen.append((start, end, replacement))
    for start, end, replacement in reversed(chosen):
        rel_start, rel_end = start - base_offset, end - base_offset
        if rel_start < 0 or rel_end > len(data):
            continue
        data = data[:rel_start] + replacement.encode("utf-8") + data[rel_end:]
    return data.decode("utf-8")


def capitalize(name: str) -> str:
    return name[:1].upper() + name[1:]


def is_pascal_case(name: str) -> bool:
    return bool(name) and name[0].isupper() and "_" not in name


def is_hook_name(name: str) -> bool:
    return name.startswith("use") and len(name) > 3 and name[3].isupper()
