"""Target-dialect component model handed from the transformer to the generator."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from enum import Enum

from .business_logic import EventHandler, StateBinding
from .component import ComponentKind, InputField
from .migration import MigrationStrategy


class DeclarationStyle(str, Enum):
    """How the generator declares the primary export."""
    COMPONENT = "component"  # export const Name: FC<NameProps> = (...) => {...}
    FUNCTION = "function"    # export function name(...) {...}
    DECLARATION = "declaration"  # Declaration kept as written (non-view classes)


@dataclass(frozen=True)
class TargetStatement:
    """One statement of the generated primary function body."""
    code: str
    kind: str = "statement"  # state, effect, handler, service, render, marker, statement
    blank_before: bool = False
    start_line: int = 0  # Source lines the statement was derived from
    end_line: int = 0


@dataclass(frozen=True)
class TransformedModel:
    """
    A component expressed in the target dialect.

    Built fresh by the transformer from an analyzed ComponentModel; the
    generator renders it to files without consulting the original source.
    """
    component_id: str
    name: str
    source_kind: ComponentKind
    source_path: str
    strategy: MigrationStrategy
    style: DeclarationStyle
    extension: str = ".tsx"
    directives: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()
    prelude: Tuple[str, ...] = ()
    props: Tuple[InputField, ...] = ()
    props_interface: Optional[str] = None
    declare_props: bool = True  # False when the props type is imported or kept from the source
    props_extends: str = ""
    type_parameters: str = ""
    parameters: str = ""
    return_type: str = ""
    is_async: bool = False
    body: Tuple[TargetStatement, ...] = ()
    postlude: Tuple[str, ...] = ()
    state_bindings: Tuple[StateBinding, ...] = ()
    handlers: Tuple[EventHandler, ...] = ()
    doc_comment: str = ""
    banner: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()
    requires_manual_review: bool = False

    @property
    def file_name(self) -> str:
        return f"{self.name}{self.extension}"

    @property
    def is_view(self) -> bool:
        return self.style == DeclarationStyle.COMPONENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_id": self.component_id,
            "name": self.name,
            "source_kind": self.source_kind.value,
            "strategy": self.strategy.value,
            "style": self.style.value,
            "file_name": self.file_name,
            "props": [p.to_dict() for p in self.props],
            "props_interface": self.props_interface,
            "statements": len(self.body),
            "notes": list(self.notes),
            "requires_manual_review": self.requires_manual_review,
        }
