from overlapping_hierarchy.engine.core import ROOT, HierarchyStore
from overlapping_hierarchy.engine.errors import (
    CycleError,
    HierarchyError,
    LoopError,
    TransitiveReductionError,
)

__all__ = [
    "ROOT",
    "HierarchyStore",
    "HierarchyError",
    "LoopError",
    "CycleError",
    "TransitiveReductionError",
]
