"""Service layer for the component migration pipeline."""

from .analyzer import BusinessLogicAnalyzer
from .dependency_resolver import DependencyResolver, ResolutionResult
from .transformer import ComponentTransformer, TransformationOutcome
from .generator import CodeGenerator
from .validator import MigrationValidator
from .retry import CancellationToken, RetryController, RetryState
from .run_state import RunStateOwner

__all__ = [
    "BusinessLogicAnalyzer",
    "DependencyResolver",
    "ResolutionResult",
    "ComponentTransformer",
    "TransformationOutcome",
    "CodeGenerator",
    "MigrationValidator",
    "CancellationToken",
    "RetryController",
    "RetryState",
    "RunStateOwner",
]
