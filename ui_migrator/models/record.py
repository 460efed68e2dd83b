"""Per-component pipeline records: transformations, artifacts, outcomes."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum
from datetime import datetime

from .migration import MigrationStrategy, utcnow


class RecordKind(str, Enum):
    """Kind of an individual rewrite."""
    PROP = "prop"
    STATE = "state"
    HANDLER = "handler"
    EFFECT = "effect"
    VALIDATION = "validation"
    STRUCTURAL = "structural"
    API = "api"


class ArtifactKind(str, Enum):
    PRIMARY_SOURCE = "primary_source"
    BARREL = "barrel"
    DOCUMENTATION = "documentation"
    MANIFEST = "manifest"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class TransformationRecord:
    """One rewrite applied by the transformer."""
    kind: RecordKind
    source: str
    target: str
    note: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "source": self.source,
            "target": self.target,
            "note": self.note,
        }


@dataclass(frozen=True)
class GeneratedArtifact:
    """A file produced by the generator, written only by the atomic writer."""
    relative_path: str
    content: str
    kind: ArtifactKind
    generated_at: datetime = field(default_factory=utcnow)

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relative_path": self.relative_path,
            "kind": self.kind.value,
            "size_bytes": self.size_bytes,
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding of the migration validator."""
    check: str
    message: str
    severity: Severity = Severity.HIGH
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check": self.check,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category,
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """Equivalence verdict for one migrated component."""
    valid: bool
    score: int
    errors: Tuple[ValidationIssue, ...] = ()
    warnings: Tuple[ValidationIssue, ...] = ()
    checks: Tuple[Tuple[str, bool], ...] = ()
    pattern_counts: Tuple[Tuple[str, int, int], ...] = ()  # (category, original, generated)

    def passed(self, check: str) -> Optional[bool]:
        for name, ok in self.checks:
            if name == check:
                return ok
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "score": self.score,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "checks": {name: ok for name, ok in self.checks},
            "pattern_counts": {
                category: {"original": original, "generated": generated}
                for category, original, generated in self.pattern_counts
            },
        }


@dataclass(frozen=True)
class MigrationResult:
    """Result of migrating one component in one orchestrator pass."""
    component_id: str
    component_name: str
    success: bool
    strategy: Optional[MigrationStrategy] = None
    records: Tuple[TransformationRecord, ...] = ()
    artifacts: Tuple[GeneratedArtifact, ...] = ()
    validation: Optional[ValidationOutcome] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    attempts: int = 1
    errors: Tuple[str, ...] = ()
    requires_manual_review: bool = False

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def records_of(self, kind: RecordKind) -> List[TransformationRecord]:
        return [r for r in self.records if r.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "component_id": self.component_id,
            "component_name": self.component_name,
            "success": self.success,
            "strategy": self.strategy.value if self.strategy else None,
            "records": [r.to_dict() for r in self.records],
            "artifacts": [a.to_dict() for a in self.artifacts],
            "validation": self.validation.to_dict() if self.validation else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "attempts": self.attempts,
            "errors": list(self.errors),
            "requires_manual_review": self.requires_manual_review,
        }
