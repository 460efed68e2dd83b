"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime
from pathlib import Path
import logging

from ..errors import ExtractionError
from ..models.component import ComponentModel
from ..models.migration import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Result of extracting a batch of source files."""
    models: List[ComponentModel] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def success(self) -> bool:
        """Check if extraction was successful."""
        return len(self.errors) == 0

    @property
    def total_extracted(self) -> int:
        return len([m for m in self.models if not m.failed])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total_extracted": self.total_extracted,
            "models": [m.to_dict() for m in self.models],
            "errors": self.errors,
            "warnings": self.warnings,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


class BaseExtractor(ABC):
    """
    Base class for source model extractors.

    Extractors turn one source file into a ComponentModel. They hold no
    per-file state, so a single instance can serve concurrent workers.
    """

    encoding = "utf-8"

    @abstractmethod
    def extract(
        self,
        source_text: str,
        source_path: str,
        component_id: Optional[str] = None,
    ) -> ComponentModel:
        """
        Build a ComponentModel from source text.

        Args:
            source_text: Full text of the source file
            source_path: Path of the file, also the name fallback
            component_id: Stable id; defaults to source_path

        Returns:
            ComponentModel for the file's primary declaration

        Raises:
            ExtractionError: If the text cannot be parsed
        """
        pass

    def component_id(self, path: Path, root: Optional[Path] = None) -> str:
        """Stable id: POSIX path relative to the source root."""
        if root is not None:
            try:
                return path.resolve().relative_to(root.resolve()).as_posix()
            except ValueError:
                pass
        return path.as_posix()

    def read_source(self, path: Path, root: Optional[Path] = None) -> str:
        """Read a source file, mapping a missing file to ExtractionError."""
        try:
            return path.read_text(encoding=self.encoding)
        except FileNotFoundError as e:
            raise ExtractionError(
                f"Source file not found: {path}",
                reason=ExtractionError.FILE_NOT_FOUND,
                component_id=self.component_id(path, root),
            ) from e

    def extract_file(self, path: Path, root: Optional[Path] = None) -> ComponentModel:
        """
        Read and extract one file.

        Args:
            path: Source file path
            root: Source root used to derive the component id

        Returns:
            Extracted ComponentModel
        """
        path = Path(path)
        text = self.read_source(path, root)
        return self.extract(text, str(path), component_id=self.component_id(path, root))

    def extract_all(
        self,
        paths: Iterable[Path],
        root: Optional[Path] = None,
    ) -> ExtractionResult:
        """
        Extract every file, stamping a failed model for each file that errors.

        The batch never stops on a single failure.
        """
        result = ExtractionResult(started_at=utcnow())
        for path in paths:
            path = Path(path)
            try:
                result.models.append(self.extract_file(path, root))
            except ExtractionError as e:
                component_id = e.component_id or self.component_id(path, root)
                result.models.append(
                    ComponentModel.failed_model(component_id, str(path), e.message)
                )
                result.errors.append(e.to_dict())
                logger.error(f"Extraction error: {e.message}")
        result.completed_at = utcnow()
        return result
