"""Source model extraction for v1 components."""

from .base import BaseExtractor, ExtractionResult
from .discovery import discover_sources
from .tsx_extractor import TSXExtractor

__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "TSXExtractor",
    "discover_sources",
]
