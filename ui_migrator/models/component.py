"""Component models produced by the extractor and enriched by the analyzer."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple
from enum import Enum

from .business_logic import BusinessLogicModel


class ComponentKind(str, Enum):
    """Structural kind of a source component."""
    STATELESS_VIEW = "stateless_view"
    STATEFUL_VIEW = "stateful_view"
    CLASS_BASED_VIEW = "class_based_view"
    COMPOSITE = "composite"  # Higher-order component
    UTILITY_FUNCTION = "utility_function"  # Custom hooks and helpers


class ComplexityTier(str, Enum):
    """Complexity tier derived from the business logic score."""
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    CRITICAL = "critical"


class DependencyKind(str, Enum):
    """Classification of an imported binding."""
    COMPONENT = "component"
    LIBRARY = "library"
    UTILITY = "utility"


class ExtractionStatus(str, Enum):
    EXTRACTED = "extracted"
    FAILED = "failed"


@dataclass(frozen=True)
class InputField:
    """A declared input (prop or parameter) of a component."""
    name: str
    type: str = "unknown"
    required: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "required": self.required}


@dataclass(frozen=True)
class DependencyReference:
    """A binding imported by a component."""
    name: str
    source: str  # Module specifier as written in the import
    kind: DependencyKind = DependencyKind.LIBRARY

    @property
    def module_basename(self) -> str:
        """Last path segment of the import specifier."""
        return self.source.rstrip("/").split("/")[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "source": self.source, "kind": self.kind.value}


@dataclass(frozen=True)
class ComponentModel:
    """
    One discovered unit of UI logic.

    Instances are immutable. The analyzer returns an enriched copy and the
    transformer builds a separate TransformedModel, so "before" snapshots
    stay intact for validation.
    """
    id: str
    name: str
    kind: ComponentKind
    source_path: str
    inputs: Tuple[InputField, ...] = ()
    dependencies: Tuple[DependencyReference, ...] = ()
    complexity_tier: Optional[ComplexityTier] = None
    business_logic: Optional[BusinessLogicModel] = None
    source_text: str = field(default="", repr=False, compare=False)
    status: ExtractionStatus = ExtractionStatus.EXTRACTED
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == ExtractionStatus.FAILED

    @property
    def is_analyzed(self) -> bool:
        return self.business_logic is not None

    def component_dependencies(self) -> Tuple[DependencyReference, ...]:
        """References that may point at other discovered components."""
        return tuple(
            d for d in self.dependencies
            if d.kind in (DependencyKind.COMPONENT, DependencyKind.UTILITY)
        )

    def with_analysis(
        self,
        business_logic: BusinessLogicModel,
        tier: ComplexityTier,
    ) -> "ComponentModel":
        """Return a copy carrying the analyzer output."""
        return replace(self, business_logic=business_logic, complexity_tier=tier)

    @classmethod
    def failed_model(
        cls,
        component_id: str,
        source_path: str,
        error: str,
    ) -> "ComponentModel":
        """Stamp a placeholder model for a file that could not be extracted."""
        stem = source_path.replace("\\", "/").split("/")[-1].split(".")[0]
        return cls(
            id=component_id,
            name=stem,
            kind=ComponentKind.UTILITY_FUNCTION,
            source_path=source_path,
            status=ExtractionStatus.FAILED,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "source_path": self.source_path,
            "inputs": [i.to_dict() for i in self.inputs],
            "dependencies": [d.to_dict() for d in self.dependencies],
            "complexity_tier": self.complexity_tier.value if self.complexity_tier else None,
            "business_logic": self.business_logic.to_dict() if self.business_logic else None,
            "status": self.status.value,
            "error": self.error,
        }
