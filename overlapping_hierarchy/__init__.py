"""Overlapping Hierarchy: an acyclic, transitively reduced multi-parent hierarchy."""

__version__ = "0.1.0"

from overlapping_hierarchy.engine import (
    ROOT,
    CycleError,
    HierarchyError,
    HierarchyStore,
    LoopError,
    TransitiveReductionError,
)
from overlapping_hierarchy.models import HierarchyStats, ValidationResult

__all__ = [
    "ROOT",
    "CycleError",
    "HierarchyError",
    "HierarchyStats",
    "HierarchyStore",
    "LoopError",
    "TransitiveReductionError",
    "ValidationResult",
    "__version__",
]
