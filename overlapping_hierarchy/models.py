"""Pydantic models for overlapping hierarchy reports.

Returned by ``HierarchyStore.stats()`` and ``HierarchyStore.validate()``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ValidationResult(BaseModel):
    """Result of a hierarchy integrity check.

    Contains a pass/fail flag, a list of invariant violations, and a list of
    warnings about checks that could not be completed.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class HierarchyStats(BaseModel):
    """Summary counts for a hierarchy.

    ``depth`` is the number of nodes on the longest hierarch-to-leaf path.
    """

    node_count: int = Field(ge=0)
    edge_count: int = Field(ge=0)
    hierarch_count: int = Field(ge=0)
    leaf_count: int = Field(ge=0)
    depth: int = Field(ge=0)
