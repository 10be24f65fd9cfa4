"""Randomized tests for the structural invariants of HierarchyStore.

Every test drives a store through a seeded sequence of attach, detach and
delete calls and checks the invariants after each step.
"""

import random

import pytest

from overlapping_hierarchy import (
    ROOT,
    CycleError,
    HierarchyStore,
    LoopError,
    TransitiveReductionError,
)

SEEDS = [1, 7, 42, 1234]


def random_edits(store: HierarchyStore, seed: int, steps: int = 300, num_nodes: int = 10):
    """Apply random edits to a store, yielding after each one.

    Args:
        store: Store to mutate in place
        seed: Random seed for reproducibility
        steps: Number of edits to apply
        num_nodes: Size of the node pool edits draw from

    Yields:
        Tuple of (operation, node, parent, result, store before the edit)
    """
    rng = random.Random(seed)
    pool = list(range(num_nodes))
    for _ in range(steps):
        before = store.copy()
        node = rng.choice(pool)
        roll = rng.random()
        if roll < 0.65:
            parent = ROOT if rng.random() < 0.1 else rng.choice(pool)
            yield "attach", node, parent, store.attach(node, parent), before
        elif roll < 0.95:
            parent = rng.choice(pool)
            yield "detach", node, parent, store.detach(node, parent), before
        else:
            yield "delete", node, None, store.delete(node), before


def closure(store: HierarchyStore, node) -> set:
    """Descendants computed independently as a fixed point of children()."""
    reached: set = set()
    pending = list(store.children(node))
    while pending:
        current = pending.pop()
        if current not in reached:
            reached.add(current)
            pending.extend(store.children(current))
    return reached


class TestRandomEdits:
    """Invariants hold across arbitrary edit sequences."""

    @pytest.mark.parametrize("seed", SEEDS)
    def test_hierarchy_stays_valid(self, seed):
        store = HierarchyStore()
        for _, _, _, _, _ in random_edits(store, seed):
            result = store.validate()
            assert result.valid, result.errors

    @pytest.mark.parametrize("seed", SEEDS)
    def test_no_node_is_its_own_descendant(self, seed):
        store = HierarchyStore()
        for _ in random_edits(store, seed):
            for node in store.nodes():
                assert node not in store.descendants(node)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_no_edge_is_implied_by_a_longer_path(self, seed):
        store = HierarchyStore()
        for _ in random_edits(store, seed):
            for parent, child in store.edges():
                for other in store.children(parent) - {child}:
                    assert child not in store.descendants(other)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_rejected_attach_leaves_store_untouched(self, seed):
        store = HierarchyStore()
        for operation, _, _, result, before in random_edits(store, seed):
            if operation == "attach" and result is not None:
                assert store == before

    @pytest.mark.parametrize("seed", SEEDS)
    def test_rejections_match_their_cause(self, seed):
        store = HierarchyStore()
        for operation, node, parent, result, before in random_edits(store, seed):
            if operation != "attach":
                continue
            if isinstance(result, LoopError):
                assert node == parent
            elif isinstance(result, CycleError):
                assert parent in before.descendants(node)
            elif isinstance(result, TransitiveReductionError):
                via_path = node in (before.descendants(parent) or set())
                lower = {node} | (before.descendants(node) or set())
                upper = {parent} | (before.ancestors(parent) or set())
                shadowed = any(
                    (before.children(ancestor) or set()) & lower - {node}
                    if ancestor == parent
                    else (before.children(ancestor) or set()) & lower
                    for ancestor in upper
                )
                assert via_path or shadowed
            else:
                assert result is None
                assert node in store.nodes()
                if parent is not ROOT:
                    assert node in store.children(parent)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_root_children_are_exactly_the_hierarchs(self, seed):
        store = HierarchyStore()
        for _ in random_edits(store, seed):
            expected = {node for node in store.nodes() if not store.parents(node)}
            assert store.children() == expected
            assert store.descendants(depth=1) == expected
            assert store.descendants() == store.nodes()

    @pytest.mark.parametrize("seed", SEEDS)
    def test_descendants_match_fixed_point(self, seed):
        store = HierarchyStore()
        for _ in random_edits(store, seed, steps=150):
            for node in store.nodes():
                assert store.descendants(node) == closure(store, node)
                assert store.descendants(node, 1) == store.children(node)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_ancestors_mirror_descendants(self, seed):
        store = HierarchyStore()
        for _ in random_edits(store, seed, steps=150):
            pass
        for node in store.nodes():
            for ancestor in store.ancestors(node):
                assert node in store.descendants(ancestor)
            assert store.ancestors(node, 1) == store.parents(node)


class TestCloneIndependence:
    """A clone and its source never observe each other's edits."""

    @pytest.mark.parametrize("seed", SEEDS)
    def test_editing_clone_keeps_source(self, seed):
        source = HierarchyStore()
        for _ in random_edits(source, seed, steps=100):
            pass
        snapshot = {node: source.children(node) for node in source.nodes()}
        clone = HierarchyStore(source)
        for _ in random_edits(clone, seed + 1, steps=100):
            pass
        assert source.nodes() == set(snapshot)
        for node, children in snapshot.items():
            assert source.children(node) == children

    @pytest.mark.parametrize("seed", SEEDS)
    def test_editing_source_keeps_clone(self, seed):
        source = HierarchyStore()
        for _ in random_edits(source, seed, steps=100):
            pass
        clone = HierarchyStore(source)
        snapshot = {node: clone.children(node) for node in clone.nodes()}
        for _ in random_edits(source, seed + 1, steps=100):
            pass
        assert clone.nodes() == set(snapshot)
        for node, children in snapshot.items():
            assert clone.children(node) == children
