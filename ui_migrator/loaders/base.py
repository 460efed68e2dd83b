"""Base loader interface for generated artifacts."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence
from datetime import datetime
import logging

from ..models.record import GeneratedArtifact

logger = logging.getLogger(__name__)

# Content validators return an error message, or None when the content is acceptable.
ContentValidator = Callable[[GeneratedArtifact], Optional[str]]


@dataclass
class LoadResult:
    """Result of writing one batch of artifacts."""
    output_root: str
    total_attempted: int = 0
    total_written: int = 0
    total_replaced: int = 0
    written_paths: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def success(self) -> bool:
        return not self.errors and self.total_written == self.total_attempted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_root": self.output_root,
            "total_attempted": self.total_attempted,
            "total_written": self.total_written,
            "total_replaced": self.total_replaced,
            "written_paths": self.written_paths,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }


class BaseLoader(ABC):
    """
    Base class for artifact loaders.

    Loaders persist the artifacts of one component. A batch is either
    written completely or not at all.
    """

    def __init__(
        self,
        dry_run: bool = False,
        validators: Optional[Sequence[ContentValidator]] = None,
    ):
        """
        Initialize the loader.

        Args:
            dry_run: If True, stage and validate without committing
            validators: Content checks run on every staged artifact
        """
        self.dry_run = dry_run
        self.validators = list(validators or [])

    @abstractmethod
    def write_all(
        self,
        artifacts: Sequence[GeneratedArtifact],
        output_root: str,
        deadline: Optional[float] = None,
    ) -> LoadResult:
        """
        Persist a batch of artifacts under `output_root`.

        `deadline` is a `time.monotonic()` value. Once staging finishes past
        it, nothing is committed. A commit that has started always runs to
        completion or rolls back.

        Returns:
            LoadResult describing what was committed

        Raises:
            WriteError: If any artifact could not be written; nothing is kept
            OperationTimeout: If staging finished after the deadline
        """
        pass

    def check_content(self, artifact: GeneratedArtifact) -> Optional[str]:
        """Run every content validator, returning the first failure message."""
        for validator in self.validators:
            problem = validator(artifact)
            if problem:
                logger.debug(f"Content check failed for {artifact.relative_path}: {problem}")
                return problem
        return None
