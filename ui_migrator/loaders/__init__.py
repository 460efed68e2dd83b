"""Loaders persisting generated artifacts."""

from .base import BaseLoader, LoadResult
from .atomic_writer import AtomicFileWriter, syntax_validator, markdown_validator

__all__ = [
    "BaseLoader",
    "LoadResult",
    "AtomicFileWriter",
    "syntax_validator",
    "markdown_validator",
]
