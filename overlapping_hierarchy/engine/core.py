"""Core overlapping hierarchy data structure and operations.

An overlapping hierarchy is a tree that allows sharing: a node may have
several parents as well as several children. Two invariants are enforced on
every attachment:

- Acyclicity: no node is its own ancestor.
- Transitive reduction: no direct edge is implied by a longer path, and no
  attachment may turn an existing direct edge into such a shortcut.

Nodes are arbitrary hashable values compared with ``==``; ``None`` is a
legal node. Top-level membership is expressed through the ``ROOT``
sentinel, the pseudo-parent of every hierarch (a node without parents).

Thread Safety:
    Not thread-safe. The store performs no locking; callers sharing a store
    between threads must serialize access themselves.

References:
- Aho, Garey & Ullman: "The Transitive Reduction of a Directed Graph" (1972)
"""

import copy
import logging
from collections.abc import Callable, Hashable, Iterator
from typing import Any, Generic, TypeVar

from overlapping_hierarchy.engine.errors import (
    CycleError,
    HierarchyError,
    LoopError,
    TransitiveReductionError,
)
from overlapping_hierarchy.models import HierarchyStats, ValidationResult

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=Hashable)


class _Root:
    """Pseudo-parent of every hierarch. Never a member of a hierarchy."""

    _instance: "_Root | None" = None

    def __new__(cls) -> "_Root":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ROOT"

    def __copy__(self) -> "_Root":
        return self

    def __deepcopy__(self, memo: dict) -> "_Root":
        return self

    def __reduce__(self) -> str:
        return "ROOT"


ROOT = _Root()


class HierarchyStore(Generic[N]):
    """A set of nodes with parent->child edges kept acyclic and transitively reduced.

    Internally a single mapping from each node (plus ``ROOT``) to the set of
    its direct children. Presence as a key is what makes a node a member;
    the set stored under ``ROOT`` always holds exactly the hierarchs.

    Every query returns a fresh copy, so callers may mutate results freely.
    Lookups of unknown nodes return ``None``.

    Example:
        ```python
        family = HierarchyStore()
        family.attach("grandparent")
        family.attach("parent", "grandparent")
        family.attach("child", "parent")

        family.ancestors("child")                 # {"grandparent", "parent"}
        family.attach("child", "grandparent")     # TransitiveReductionError(...)
        ```
    """

    def __init__(self, source: "HierarchyStore[N] | None" = None) -> None:
        self._children: dict[Any, set[N]] = {ROOT: set()}
        if source is not None:
            # Copy every child set by value; the source is already valid.
            for parent, children in source._children.items():
                self._children[parent] = set(children)

    def copy(self) -> "HierarchyStore[N]":
        """Return an independent copy sharing node values but no containers."""
        return type(self)(self)

    def __copy__(self) -> "HierarchyStore[N]":
        return self.copy()

    def __deepcopy__(self, memo: dict) -> "HierarchyStore[N]":
        """Support for copy.deepcopy - node values are deep-copied as well."""
        new_store = type(self).__new__(type(self))
        memo[id(self)] = new_store
        new_store._children = copy.deepcopy(self._children, memo)
        return new_store

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HierarchyStore):
            return NotImplemented
        return self._children == other._children

    __hash__ = None  # type: ignore[assignment]

    def __len__(self) -> int:
        return len(self._children) - 1

    def __contains__(self, node: object) -> bool:
        return self.has_node(node)

    def __iter__(self) -> Iterator[N]:
        return iter(self.nodes())

    def __repr__(self) -> str:
        return f"HierarchyStore(nodes={len(self)}, edges={len(self.edges())})"

    # ========== Mutation ==========

    def check(self, node: N, parent: "N | _Root" = ROOT) -> HierarchyError | None:
        """Validate attaching ``node`` under ``parent`` without changing anything.

        Checks run in order and the first failure is returned:

        1. ``LoopError`` if ``node`` equals ``parent``.
        2. ``CycleError`` if ``parent`` is already a descendant of ``node``.
        3. ``TransitiveReductionError`` if ``node`` is already reachable from
           ``parent`` through a longer path.
        4. ``TransitiveReductionError`` if a descendant of ``node`` is already
           a direct child of ``parent``.
        5. ``TransitiveReductionError`` if ``node`` or one of its descendants
           is already a direct child of an ancestor of ``parent``.

        Args:
            node: The node to attach
            parent: The prospective parent, or ``ROOT`` for top level

        Returns:
            The error that ``attach`` would return, or None if it would succeed
        """
        if node == parent:
            return LoopError("Cannot attach node to itself")
        if node in self._children and parent in self._expand(node, self._child_set):
            return CycleError("Cannot attach ancestor as a child")
        if (
            parent is not ROOT
            and parent in self._children
            and node not in self._children[parent]
            and node in self._expand(parent, self._child_set)
        ):
            return TransitiveReductionError("Cannot attach non-child descendant as a child")
        if self._expand(node, self._child_set) & self._child_set(parent):
            return TransitiveReductionError(
                "Cannot attach child whose descendant is a child of the parent"
            )
        if parent is not ROOT:
            # The new edge links every node in ``upper`` to every node in ``lower``.
            upper = {parent} | self._expand(parent, self._parents)
            lower = {node} | self._expand(node, self._child_set)
            for ancestor in upper:
                shadowed = self._child_set(ancestor) & lower
                if ancestor == parent:
                    shadowed = shadowed - {node}
                if shadowed:
                    return TransitiveReductionError(
                        "Cannot attach child whose subtree is a child of the parent's ancestor"
                    )
        return None

    def attach(self, node: N, parent: "N | _Root" = ROOT) -> HierarchyError | None:
        """Add ``node`` to the hierarchy, optionally as a direct child of ``parent``.

        Unknown nodes, including an unknown ``parent``, are created on the fly.
        Re-attaching an existing edge is a successful no-op, and so is adding a
        node that already has a parent with the default ``parent=ROOT``.

        Validation failures are returned rather than raised; the hierarchy is
        left untouched when that happens. See ``check()`` for the rules.

        Args:
            node: The node to add or attach
            parent: Parent node, or ``ROOT`` to add ``node`` at top level

        Returns:
            None on success, otherwise a ``HierarchyError`` describing the failure

        Raises:
            ValueError: If ``node`` is ``ROOT``
        """
        if node is ROOT:
            raise ValueError("ROOT cannot be attached as a node")

        error = self.check(node, parent)
        if error is not None:
            logger.debug("Rejected attaching %r to %r: %s", node, parent, error)
            return error

        is_new = node not in self._children
        if is_new:
            self._children[node] = set()

        if parent is ROOT:
            if is_new:
                self._children[ROOT].add(node)
            return None

        if parent not in self._children:
            self._children[parent] = set()
            self._children[ROOT].add(parent)
        self._children[parent].add(node)
        self._children[ROOT].discard(node)
        return None

    add = attach

    def detach(self, node: N, parent: "N | _Root") -> None:
        """Remove the direct edge ``parent -> node`` if it exists.

        Neither node leaves the hierarchy. A node detached from its last parent
        becomes a hierarch. Detaching from ``ROOT`` is a no-op; use ``delete()``
        to remove a node.
        """
        children = self._children.get(parent)
        if parent is ROOT or children is None or node not in children:
            return
        children.discard(node)
        if not self._parents(node):
            self._children[ROOT].add(node)

    remove = detach

    def delete(self, node: N) -> None:
        """Remove ``node`` and every edge it takes part in.

        Former children stay in the hierarchy and keep their other parents;
        those left without any parent become hierarchs. Deleting a non-member
        is a no-op.
        """
        if node is ROOT or node not in self._children:
            return
        orphans = self._children.pop(node)
        for children in self._children.values():
            children.discard(node)
        for child in orphans:
            if not self._parents(child):
                self._children[ROOT].add(child)
        logger.debug("Deleted node %r, detached %d children", node, len(orphans))

    # ========== Queries ==========

    def has_node(self, node: object) -> bool:
        """Check if a node is a member of the hierarchy."""
        return node is not ROOT and node in self._children

    def nodes(self) -> set[N]:
        """Get all nodes in the hierarchy."""
        return {node for node in self._children if node is not ROOT}

    def hierarchs(self) -> set[N]:
        """Get all nodes without a parent."""
        return set(self._children[ROOT])

    def leaves(self) -> set[N]:
        """Get all nodes without a child."""
        return {
            node for node, children in self._children.items() if node is not ROOT and not children
        }

    def edges(self) -> list[tuple[N, N]]:
        """Get every direct (parent, child) pair."""
        return [
            (parent, child)
            for parent, children in self._children.items()
            if parent is not ROOT
            for child in children
        ]

    def children(self, parent: "N | _Root" = ROOT) -> set[N] | None:
        """Get the direct children of ``parent``, or None if it is not a member.

        With the default ``ROOT`` this returns the hierarchs.
        """
        children = self._children.get(parent)
        return set(children) if children is not None else None

    def parents(self, node: N) -> set[N] | None:
        """Get the direct parents of ``node``, or None if it is not a member.

        O(n): every child set is scanned, there is no reverse index.
        """
        if not self.has_node(node):
            return None
        return self._parents(node)

    def descendants(self, node: "N | _Root" = ROOT, depth: int | None = None) -> set[N] | None:
        """Get the nodes reachable from ``node`` by following child edges.

        Args:
            node: Start node. The default ``ROOT`` covers the whole hierarchy.
            depth: Maximum number of levels to descend; None for no limit.
                ``depth=1`` is equivalent to ``children(node)``.

        Returns:
            Set of descendants, or None if ``node`` is not a member

        Raises:
            ValueError: If depth is not a positive integer or None
        """
        self._check_depth(depth)
        if node not in self._children:
            return None
        return self._expand(node, self._child_set, depth)

    def ancestors(self, node: N, depth: int | None = None) -> set[N] | None:
        """Get the nodes ``node`` is reachable from, following parent edges.

        Args:
            node: Start node
            depth: Maximum number of levels to ascend; None for no limit.
                ``depth=1`` is equivalent to ``parents(node)``.

        Returns:
            Set of ancestors, or None if ``node`` is not a member

        Raises:
            ValueError: If depth is not a positive integer or None
        """
        self._check_depth(depth)
        if not self.has_node(node):
            return None
        return self._expand(node, self._parents, depth)

    # ========== Statistics & Validation ==========

    def stats(self) -> HierarchyStats:
        """Get hierarchy statistics."""
        depth, _ = self._peel()
        return HierarchyStats(
            node_count=len(self),
            edge_count=len(self.edges()),
            hierarch_count=len(self._children[ROOT]),
            leaf_count=len(self.leaves()),
            depth=depth,
        )

    def validate(self) -> ValidationResult:
        """Validate hierarchy integrity.

        Checks for:
        - Children that are not members (closure)
        - ``ROOT`` appearing as a child
        - Self-loops and cycles
        - Edges implied by a longer path (transitive reduction)
        - Hierarch bookkeeping under ``ROOT``

        A hierarchy changed only through the public API always passes.

        Returns:
            ValidationResult listing every violation found
        """
        errors: list[str] = []
        warnings: list[str] = []

        if ROOT not in self._children:
            errors.append("ROOT entry is missing")

        for parent, children in self._children.items():
            for child in children:
                if child is ROOT:
                    errors.append(f"ROOT is listed as a child of {parent!r}")
                elif child not in self._children:
                    errors.append(f"Node {parent!r} references non-member child {child!r}")
            if parent is not ROOT and parent in children:
                errors.append(f"Node {parent!r} is its own child")

        members = self.nodes()
        expected = {node for node in members if not self._parents(node)}
        registered = self._children.get(ROOT, set()) & members
        for node in expected - registered:
            errors.append(f"Hierarch {node!r} is not registered under ROOT")
        for node in registered - expected:
            errors.append(f"Node {node!r} is registered under ROOT but has a parent")

        _, cyclic = self._peel()
        if cyclic:
            names = ", ".join(sorted(repr(node) for node in cyclic))
            errors.append(f"Cycle detected among nodes: {names}")
            warnings.append("Skipped transitive reduction check because the relation is cyclic")
        else:
            for parent, child in self.edges():
                for sibling in self._child_set(parent) - {child}:
                    if child in self._expand(sibling, self._child_set):
                        errors.append(
                            f"Edge {parent!r} -> {child!r} is implied by the path through "
                            f"{sibling!r}"
                        )
                        break

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    # ========== Internals ==========

    def _child_set(self, node: Any) -> set[N]:
        """Direct child set without copying. Empty for non-members."""
        return self._children.get(node, set())

    def _parents(self, node: Any) -> set[N]:
        return {
            parent
            for parent, children in self._children.items()
            if parent is not ROOT and node in children
        }

    def _expand(
        self,
        start: Any,
        neighbours: Callable[[Any], set[N]],
        depth: int | None = None,
    ) -> set[N]:
        """Breadth-first closure of ``neighbours`` from ``start``, up to ``depth`` levels.

        Terminates on any relation since already found nodes are never expanded twice.
        """
        found: set[N] = set()
        frontier = {start}
        level = 0
        while frontier and (depth is None or level < depth):
            frontier = {n for current in frontier for n in neighbours(current)} - found
            found |= frontier
            level += 1
        return found

    def _peel(self) -> tuple[int, set[N]]:
        """Peel the hierarchy level by level starting at the hierarchs (Kahn's algorithm).

        Returns:
            Tuple of (number of levels, nodes never reached). The second item is
            empty unless the relation contains a cycle.
        """
        in_degree = {node: 0 for node in self.nodes()}
        for _, child in self.edges():
            if child in in_degree:
                in_degree[child] += 1

        remaining = set(in_degree)
        level = [node for node, degree in in_degree.items() if degree == 0]
        levels = 0
        while level:
            levels += 1
            remaining.difference_update(level)
            next_level = []
            for node in level:
                for child in self._child_set(node):
                    if child in in_degree:
                        in_degree[child] -= 1
                        if in_degree[child] == 0:
                            next_level.append(child)
            level = next_level
        return levels, remaining

    @staticmethod
    def _check_depth(depth: int | None) -> None:
        if depth is None:
            return
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
            raise ValueError(f"depth must be a positive integer or None, got: {depth!r}")
