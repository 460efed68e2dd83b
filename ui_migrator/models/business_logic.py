"""Business logic models recognized in component source."""

from dataclasses import dataclass
from typing import Any, Dict, Tuple
from enum import Enum


class PatternCategory(str, Enum):
    """Categories of business logic that must survive a migration."""
    STATE_BINDING = "state_binding"
    SIDE_EFFECT = "side_effect"
    EVENT_HANDLER = "event_handler"
    DATA_TRANSFORMATION = "data_transformation"
    VALIDATION_RULE = "validation_rule"
    EXTERNAL_CALL = "external_call"


class TransformOperation(str, Enum):
    MAP = "map"
    FILTER = "filter"
    REDUCE = "reduce"
    NORMALIZE = "normalize"


@dataclass(frozen=True)
class StateBinding:
    """A reactive value paired with its mutator."""
    name: str
    value_type: str = "unknown"
    setter: str = ""
    dependencies: Tuple[str, ...] = ()
    origin: str = "useState"  # useState, useReducer, custom_hook, class_state
    initial_value: str = ""
    confidence: float = 1.0
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value_type": self.value_type,
            "setter": self.setter,
            "dependencies": list(self.dependencies),
            "origin": self.origin,
            "initial_value": self.initial_value,
            "confidence": self.confidence,
            "line": self.line,
        }


@dataclass(frozen=True)
class SideEffect:
    """A block that runs in response to mounting or dependency changes."""
    dependencies: Tuple[str, ...] = ()
    has_cleanup: bool = False
    mount_only: bool = False
    origin: str = "useEffect"
    confidence: float = 1.0
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dependencies": list(self.dependencies),
            "has_cleanup": self.has_cleanup,
            "mount_only": self.mount_only,
            "origin": self.origin,
            "confidence": self.confidence,
            "line": self.line,
        }


@dataclass(frozen=True)
class EventHandler:
    """A named function that reacts to a user interaction."""
    name: str
    interaction: str = "unknown"
    mutators: Tuple[str, ...] = ()
    confidence: float = 1.0
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "interaction": self.interaction,
            "mutators": list(self.mutators),
            "confidence": self.confidence,
            "line": self.line,
        }


@dataclass(frozen=True)
class DataTransformation:
    """A collection or shape transformation."""
    operation: TransformOperation
    target: str = ""
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"operation": self.operation.value, "target": self.target, "line": self.line}


@dataclass(frozen=True)
class ValidationRule:
    """A guard that rejects invalid input with a message."""
    field: str
    rule: str = "custom"  # required, length, pattern, range, custom
    message: str = ""
    confidence: float = 1.0
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "rule": self.rule,
            "message": self.message,
            "confidence": self.confidence,
            "line": self.line,
        }


@dataclass(frozen=True)
class ExternalCall:
    """A call site that reaches a network primitive or a registered use case."""
    target: str
    method: str = "GET"
    has_success_branch: bool = False
    has_error_branch: bool = False
    via_registry: bool = False
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "method": self.method,
            "has_success_branch": self.has_success_branch,
            "has_error_branch": self.has_error_branch,
            "via_registry": self.via_registry,
            "line": self.line,
        }


@dataclass(frozen=True)
class BusinessLogicModel:
    """Behavioral model of one component, ordered by source position."""
    state_bindings: Tuple[StateBinding, ...] = ()
    side_effects: Tuple[SideEffect, ...] = ()
    event_handlers: Tuple[EventHandler, ...] = ()
    data_transformations: Tuple[DataTransformation, ...] = ()
    validation_rules: Tuple[ValidationRule, ...] = ()
    external_calls: Tuple[ExternalCall, ...] = ()
    complexity_score: int = 0

    def counts(self) -> Dict[PatternCategory, int]:
        """Number of recognized patterns per category."""
        return {
            PatternCategory.STATE_BINDING: len(self.state_bindings),
            PatternCategory.SIDE_EFFECT: len(self.side_effects),
            PatternCategory.EVENT_HANDLER: len(self.event_handlers),
            PatternCategory.DATA_TRANSFORMATION: len(self.data_transformations),
            PatternCategory.VALIDATION_RULE: len(self.validation_rules),
            PatternCategory.EXTERNAL_CALL: len(self.external_calls),
        }

    @property
    def setters(self) -> Tuple[str, ...]:
        return tuple(s.setter for s in self.state_bindings if s.setter)

    @property
    def pattern_total(self) -> int:
        return sum(self.counts().values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "state_bindings": [s.to_dict() for s in self.state_bindings],
            "side_effects": [s.to_dict() for s in self.side_effects],
            "event_handlers": [h.to_dict() for h in self.event_handlers],
            "data_transformations": [d.to_dict() for d in self.data_transformations],
            "validation_rules": [v.to_dict() for v in self.validation_rules],
            "external_calls": [c.to_dict() for c in self.external_calls],
            "complexity_score": self.complexity_score,
        }
