"""
UI Migrator

Migrates v1 React TSX components to typed v2 Configurator components while
preserving their business logic.

Supports:
- Discovery and structural extraction of function, class and hook modules
- Business logic analysis (state, effects, handlers, validation, external calls)
- Dependency-ordered batch migration with cycle reporting
- Complexity-tiered transformation strategies
- Equivalence validation of the generated code
- Atomic multi-file output with a run manifest
"""

__version__ = "0.1.0"
