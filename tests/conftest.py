"""Shared fixtures for overlapping hierarchy tests."""

import pytest

from overlapping_hierarchy import HierarchyStore


@pytest.fixture()
def store():
    """Fresh empty HierarchyStore."""
    return HierarchyStore()


@pytest.fixture()
def family():
    """A three-generation chain.

    Nodes (3):
        grandparent (hierarch), parent, child (leaf)

    Edges (2):
        grandparent -> parent
        parent -> child
    """
    hierarchy = HierarchyStore()
    hierarchy.attach("grandparent")
    hierarchy.attach("parent", "grandparent")
    hierarchy.attach("child", "parent")
    return hierarchy


@pytest.fixture()
def diamond():
    """A shared child reachable along two paths.

    Edges (4):
        top -> left, top -> right
        left -> bottom, right -> bottom
    """
    hierarchy = HierarchyStore()
    hierarchy.attach("left", "top")
    hierarchy.attach("right", "top")
    hierarchy.attach("bottom", "left")
    hierarchy.attach("bottom", "right")
    return hierarchy
