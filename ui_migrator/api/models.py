"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime

from ..models.component import ComplexityTier, ComponentKind
from ..models.migration import (
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    MigrationConfig,
    ProcessingMode,
    RetryPolicy,
    ValidationSettings,
)


class MigrationStatusEnum(str, Enum):
    PENDING = "pending"
    DISCOVERING = "discovering"
    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    MIGRATING = "migrating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = (
    MigrationStatusEnum.COMPLETED,
    MigrationStatusEnum.FAILED,
    MigrationStatusEnum.CANCELLED,
)


# Request Models
class MigrationCreate(BaseModel):
    name: str = "component-migration"
    source_root: str
    output_root: str
    include: List[str] = Field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    kinds: List[ComponentKind] = Field(default_factory=list)
    tiers: List[ComplexityTier] = Field(default_factory=list)
    mode: ProcessingMode = ProcessingMode.SERIAL
    concurrency: int = Field(default=4, ge=1)
    continue_on_error: bool = True
    skip_cycles: bool = False
    dry_run: bool = True
    operation_timeout: float = Field(default=30.0, gt=0)
    component_timeout: float = Field(default=300.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    strict_validation: bool = True

    def to_config(self) -> MigrationConfig:
        return MigrationConfig(
            name=self.name,
            source_root=self.source_root,
            output_root=self.output_root,
            include=list(self.include),
            exclude=list(self.exclude),
            kinds=list(self.kinds),
            tiers=list(self.tiers),
            mode=self.mode,
            concurrency=self.concurrency,
            continue_on_error=self.continue_on_error,
            skip_cycles=self.skip_cycles,
            dry_run=self.dry_run,
            operation_timeout=self.operation_timeout,
            component_timeout=self.component_timeout,
            retry=RetryPolicy(max_attempts=self.max_attempts, base_delay=self.base_delay),
            validation=ValidationSettings(strict=self.strict_validation),
        )


class PreviewRequest(BaseModel):
    source_text: str
    file_name: str = "Component.tsx"


# Response Models
class FailureResponse(BaseModel):
    component_id: str
    error: str
    error_type: str
    timestamp: datetime


class MigrationResponse(BaseModel):
    id: str
    name: str
    status: MigrationStatusEnum
    source_root: str
    output_root: str
    dry_run: bool
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    order: List[str] = Field(default_factory=list)
    successful: List[str] = Field(default_factory=list)
    manual_review: List[str] = Field(default_factory=list)
    failed: List[FailureResponse] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    cycles: List[List[str]] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    results: List[Dict[str, Any]] = Field(default_factory=list)


class MigrationListResponse(BaseModel):
    migrations: List[MigrationResponse]
    total: int


class ArtifactResponse(BaseModel):
    relative_path: str
    kind: str
    size_bytes: int
    content: str


class PreviewResponse(BaseModel):
    component: Dict[str, Any]
    strategy: str
    records: List[Dict[str, Any]] = Field(default_factory=list)
    artifacts: List[ArtifactResponse] = Field(default_factory=list)
    validation: Dict[str, Any]
    requires_manual_review: bool = False
