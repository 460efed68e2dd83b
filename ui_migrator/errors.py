"""Exception taxonomy for the migration pipeline."""

from typing import List, Optional


class MigrationError(Exception):
    """Base class for pipeline errors recorded in the run manifest."""

    kind = "migration"
    retryable = False

    def __init__(self, message: str, component_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.component_id = component_id

    def to_dict(self):
        return {
            "type": type(self).__name__,
            "kind": self.kind,
            "message": self.message,
            "component_id": self.component_id,
        }


class ExtractionError(MigrationError):
    """Raised when a source file cannot be read or parsed."""

    kind = "extraction"

    PARSE_FAILURE = "parse-failure"
    FILE_NOT_FOUND = "file-not-found"
    NO_DECLARATION = "no-declaration"

    def __init__(
        self,
        message: str,
        reason: str = PARSE_FAILURE,
        component_id: Optional[str] = None,
    ):
        super().__init__(message, component_id)
        self.reason = reason

    @property
    def retryable(self) -> bool:
        # A missing file does not come back by retrying; a parse may race a writer.
        return self.reason == self.PARSE_FAILURE

    def to_dict(self):
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class AnalysisError(MigrationError):
    """Raised when the analyzed model violates an internal invariant."""

    kind = "analysis"


class ResolutionError(MigrationError):
    """Raised when the dependency graph contains cycles."""

    kind = "resolution"

    def __init__(self, message: str, cycles: Optional[List[List[str]]] = None):
        super().__init__(message)
        self.cycles = cycles or []

    def to_dict(self):
        data = super().to_dict()
        data["cycles"] = self.cycles
        return data


class TransformationError(MigrationError):
    """Raised when a strategy cannot be applied to a component."""

    kind = "transformation"


class GenerationError(MigrationError):
    """Raised when the transformed model is internally inconsistent."""

    kind = "generation"


class WriteError(MigrationError):
    """Raised when staged artifacts cannot be committed."""

    kind = "write"
    retryable = True

    def __init__(self, message: str, component_id: Optional[str] = None, retryable: bool = True):
        super().__init__(message, component_id)
        self.retryable = retryable


class OperationTimeout(MigrationError):
    """Raised when a single operation exceeds its time budget."""

    kind = "timeout"
    retryable = True


class MigrationCancelled(MigrationError):
    """Raised when the run was cancelled before an operation completed."""

    kind = "cancelled"
