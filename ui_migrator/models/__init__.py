"""Data models for the component migration pipeline."""

from .component import (
    ComponentKind,
    ComplexityTier,
    DependencyKind,
    ExtractionStatus,
    InputField,
    DependencyReference,
    ComponentModel,
)
from .business_logic import (
    PatternCategory,
    TransformOperation,
    StateBinding,
    SideEffect,
    EventHandler,
    DataTransformation,
    ValidationRule,
    ExternalCall,
    BusinessLogicModel,
)
from .migration import (
    MigrationStatus,
    ProcessingMode,
    OperationKind,
    MigrationStrategy,
    RetryPolicy,
    ComplexityPolicy,
    ValidationSettings,
    MigrationConfig,
    FailureEntry,
    Manifest,
)
from .record import (
    RecordKind,
    ArtifactKind,
    Severity,
    TransformationRecord,
    GeneratedArtifact,
    ValidationIssue,
    ValidationOutcome,
    MigrationResult,
)
from .transformed import DeclarationStyle, TargetStatement, TransformedModel

__all__ = [
    "ComponentKind",
    "ComplexityTier",
    "DependencyKind",
    "ExtractionStatus",
    "InputField",
    "DependencyReference",
    "ComponentModel",
    "PatternCategory",
    "TransformOperation",
    "StateBinding",
    "SideEffect",
    "EventHandler",
    "DataTransformation",
    "ValidationRule",
    "ExternalCall",
    "BusinessLogicModel",
    "MigrationStatus",
    "ProcessingMode",
    "OperationKind",
    "MigrationStrategy",
    "RetryPolicy",
    "ComplexityPolicy",
    "ValidationSettings",
    "MigrationConfig",
    "FailureEntry",
    "Manifest",
    "RecordKind",
    "ArtifactKind",
    "Severity",
    "TransformationRecord",
    "GeneratedArtifact",
    "ValidationIssue",
    "ValidationOutcome",
    "MigrationResult",
    "DeclarationStyle",
    "TargetStatement",
    "TransformedModel",
]
