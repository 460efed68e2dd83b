"""Migration run configuration and manifest models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime, timezone
import uuid

from dateutil import parser as date_parser

from .business_logic import PatternCategory
from .component import ComplexityTier, ComponentKind


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    PENDING = "pending"
    DISCOVERING = "discovering"
    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    MIGRATING = "migrating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ProcessingMode(str, Enum):
    SERIAL = "serial"
    PARALLEL = "parallel"


class OperationKind(str, Enum):
    """Operation kinds that the retry policy can whitelist."""
    FILE_READ = "file_read"
    FILE_WRITE = "file_write"
    PARSE = "parse"
    VALIDATION = "validation"


class MigrationStrategy(str, Enum):
    DIRECT_TRANSLATION = "direct_translation"
    PATTERN_MAPPING = "pattern_mapping"
    HYBRID_APPROACH = "hybrid_approach"
    MANUAL_REVIEW_REQUIRED = "manual_review_required"


DEFAULT_INCLUDE = ["**/*.tsx", "**/*.ts", "**/*.jsx", "**/*.js"]
DEFAULT_EXCLUDE = [
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/*.test.*",
    "**/*.spec.*",
    "**/*.stories.*",
    "**/*.d.ts",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RetryPolicy:
    """Retry policy for transient operations."""
    max_attempts: int = 3
    base_delay: float = 1.0  # Seconds
    backoff_multiplier: float = 2.0
    retryable_operations: List[OperationKind] = field(default_factory=lambda: [
        OperationKind.FILE_READ,
        OperationKind.FILE_WRITE,
        OperationKind.PARSE,
    ])

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        return self.base_delay * (self.backoff_multiplier ** max(0, attempt - 1))

    def is_retryable(self, operation: OperationKind) -> bool:
        # Validation outcomes are deterministic; retrying cannot change them.
        if operation == OperationKind.VALIDATION:
            return False
        return operation in self.retryable_operations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "backoff_multiplier": self.backoff_multiplier,
            "retryable_operations": [o.value for o in self.retryable_operations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetryPolicy":
        ops = data.get("retryable_operations")
        return cls(
            max_attempts=data.get("max_attempts", 3),
            base_delay=data.get("base_delay", 1.0),
            backoff_multiplier=data.get("backoff_multiplier", 2.0),
            retryable_operations=(
                [OperationKind(o) for o in ops] if ops is not None
                else [OperationKind.FILE_READ, OperationKind.FILE_WRITE, OperationKind.PARSE]
            ),
        )


DEFAULT_WEIGHTS: Dict[PatternCategory, int] = {
    PatternCategory.EXTERNAL_CALL: 5,
    PatternCategory.SIDE_EFFECT: 3,
    PatternCategory.VALIDATION_RULE: 2,
    PatternCategory.STATE_BINDING: 1,
    PatternCategory.EVENT_HANDLER: 1,
    PatternCategory.DATA_TRANSFORMATION: 1,
}


@dataclass
class ComplexityPolicy:
    """
    Weights and tier thresholds for the complexity score.

    A score below `moderate_threshold` is simple, below `complex_threshold`
    moderate, below `critical_threshold` complex, and critical otherwise.
    Weights must be non-negative so the score never decreases when a
    pattern is added.
    """
    weights: Dict[PatternCategory, int] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    moderate_threshold: int = 5
    complex_threshold: int = 15
    critical_threshold: int = 30

    def __post_init__(self):
        if any(w < 0 for w in self.weights.values()):
            raise ValueError("Complexity weights must be non-negative")
        if not (0 <= self.moderate_threshold <= self.complex_threshold <= self.critical_threshold):
            raise ValueError("Complexity thresholds must be ascending")

    def score(self, counts: Dict[PatternCategory, int]) -> int:
        return sum(self.weights.get(category, 0) * count for category, count in counts.items())

    def tier_for(self, score: int) -> ComplexityTier:
        if score < self.moderate_threshold:
            return ComplexityTier.SIMPLE
        if score < self.complex_threshold:
            return ComplexityTier.MODERATE
        if score < self.critical_threshold:
            return ComplexityTier.COMPLEX
        return ComplexityTier.CRITICAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weights": {k.value: v for k, v in self.weights.items()},
            "moderate_threshold": self.moderate_threshold,
            "complex_threshold": self.complex_threshold,
            "critical_threshold": self.critical_threshold,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComplexityPolicy":
        weights = dict(DEFAULT_WEIGHTS)
        for key, value in data.get("weights", {}).items():
            weights[PatternCategory(key)] = value
        return cls(
            weights=weights,
            moderate_threshold=data.get("moderate_threshold", 5),
            complex_threshold=data.get("complex_threshold", 15),
            critical_threshold=data.get("critical_threshold", 30),
        )


@dataclass
class ValidationSettings:
    """Strictness flags for the migration validator."""
    strict: bool = True  # Count mismatches fail the component
    check_structure: bool = True
    check_types: bool = True
    check_business_logic: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strict": self.strict,
            "check_structure": self.check_structure,
            "check_types": self.check_types,
            "check_business_logic": self.check_business_logic,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationSettings":
        return cls(
            strict=data.get("strict", True),
            check_structure=data.get("check_structure", True),
            check_types=data.get("check_types", True),
            check_business_logic=data.get("check_business_logic", True),
        )


@dataclass
class MigrationConfig:
    """Configuration for a migration run."""
    source_root: str
    output_root: str
    name: str = "component-migration"

    # Discovery
    include: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    kinds: List[ComponentKind] = field(default_factory=list)  # Empty means all
    tiers: List[ComplexityTier] = field(default_factory=list)  # Empty means all

    # Execution options
    mode: ProcessingMode = ProcessingMode.SERIAL
    concurrency: int = 4
    continue_on_error: bool = True
    skip_cycles: bool = False
    dry_run: bool = False
    operation_timeout: float = 30.0  # Seconds per attempt
    component_timeout: float = 300.0  # Seconds per component
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    # Pipeline tuning
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    complexity: ComplexityPolicy = field(default_factory=ComplexityPolicy)
    write_manifest: bool = True

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.retry.max_attempts < 1:
            raise ValueError("retry.max_attempts must be at least 1")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "source_root": self.source_root,
            "output_root": self.output_root,
            "include": self.include,
            "exclude": self.exclude,
            "kinds": [k.value for k in self.kinds],
            "tiers": [t.value for t in self.tiers],
            "mode": self.mode.value,
            "concurrency": self.concurrency,
            "continue_on_error": self.continue_on_error,
            "skip_cycles": self.skip_cycles,
            "dry_run": self.dry_run,
            "operation_timeout": self.operation_timeout,
            "component_timeout": self.component_timeout,
            "retry": self.retry.to_dict(),
            "validation": self.validation.to_dict(),
            "complexity": self.complexity.to_dict(),
            "write_manifest": self.write_manifest,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            name=data.get("name", "component-migration"),
            source_root=data["source_root"],
            output_root=data["output_root"],
            include=data.get("include", list(DEFAULT_INCLUDE)),
            exclude=data.get("exclude", list(DEFAULT_EXCLUDE)),
            kinds=[ComponentKind(k) for k in data.get("kinds", [])],
            tiers=[ComplexityTier(t) for t in data.get("tiers", [])],
            mode=ProcessingMode(data.get("mode", "serial")),
            concurrency=data.get("concurrency", 4),
            continue_on_error=data.get("continue_on_error", True),
            skip_cycles=data.get("skip_cycles", False),
            dry_run=data.get("dry_run", False),
            operation_timeout=data.get("operation_timeout", 30.0),
            component_timeout=data.get("component_timeout", 300.0),
            retry=RetryPolicy.from_dict(data.get("retry", {})),
            validation=ValidationSettings.from_dict(data.get("validation", {})),
            complexity=ComplexityPolicy.from_dict(data.get("complexity", {})),
            write_manifest=data.get("write_manifest", True),
        )


@dataclass
class FailureEntry:
    """A component that failed during the run."""
    component_id: str
    error: str
    error_type: str = "MigrationError"
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_id": self.component_id,
            "error": self.error,
            "error_type": self.error_type,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FailureEntry":
        return cls(
            component_id=data["component_id"],
            error=data.get("error", ""),
            error_type=data.get("error_type", "MigrationError"),
            timestamp=date_parser.isoparse(data["timestamp"]),
        )


@dataclass
class Manifest:
    """
    Run-level record of which components succeeded or failed and why.

    Owned by the orchestrator; the single source of truth for a run.
    """
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    successful: List[str] = field(default_factory=list)
    failed: List[FailureEntry] = field(default_factory=list)
    manual_review: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    order: List[str] = field(default_factory=list)
    config_snapshot: Dict[str, Any] = field(default_factory=dict)
    results: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def failed_ids(self) -> List[str]:
        return [f.component_id for f in self.failed]

    def record_failure(self, component_id: str, error: Exception) -> FailureEntry:
        entry = FailureEntry(
            component_id=component_id,
            error=str(error),
            error_type=type(error).__name__,
        )
        self.failed.append(entry)
        return entry

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "run_id": self.run_id,
            "name": self.name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "successful": self.successful,
            "failed": [f.to_dict() for f in self.failed],
            "manual_review": self.manual_review,
            "skipped": self.skipped,
            "cycles": self.cycles,
            "warnings": self.warnings,
            "order": self.order,
            "config_snapshot": self.config_snapshot,
            "results": self.results,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        """Create from dictionary representation."""
        started = data.get("started_at")
        completed = data.get("completed_at")
        return cls(
            run_id=data.get("run_id", str(uuid.uuid4())),
            name=data.get("name", ""),
            status=MigrationStatus(data.get("status", "pending")),
            started_at=date_parser.isoparse(started) if started else None,
            completed_at=date_parser.isoparse(completed) if completed else None,
            successful=data.get("successful", []),
            failed=[FailureEntry.from_dict(f) for f in data.get("failed", [])],
            manual_review=data.get("manual_review", []),
            skipped=data.get("skipped", []),
            cycles=data.get("cycles", []),
            warnings=data.get("warnings", []),
            order=data.get("order", []),
            config_snapshot=data.get("config_snapshot", {}),
            results=data.get("results", []),
        )
