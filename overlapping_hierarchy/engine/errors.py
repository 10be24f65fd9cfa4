"""Structural validation errors for overlapping hierarchies.

These are returned (not raised) by ``HierarchyStore.attach`` and
``HierarchyStore.check`` when an edit would break one of the structural
invariants. The store is never modified when one of them is returned.
"""


class HierarchyError(Exception):
    """Base class for all structural validation failures.

    Two errors are equal when they share the same class and message, so a
    returned error can be compared against an expected one directly.
    """

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HierarchyError):
            return NotImplemented
        return type(self) is type(other) and self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class LoopError(HierarchyError):
    """A node was attached to itself."""


class CycleError(HierarchyError):
    """The attachment would make a node its own ancestor."""


class TransitiveReductionError(HierarchyError):
    """The attachment would introduce or expose a redundant edge.

    Raised for both shortcut cases: attaching a node that the parent already
    reaches through a longer path, and attaching a node whose descendant is
    already a direct child of the parent.
    See https://en.wikipedia.org/wiki/Transitive_reduction
    """
