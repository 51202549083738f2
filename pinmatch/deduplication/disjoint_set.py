"""
Union-find over hashable keys.

Keys used by the cluster build look like ``<source-tag>:<source-id>``. Items
can be marked exclusive: two sets that each hold an exclusive item are never
merged, which keeps at most one primary record per cluster.
"""

from collections.abc import Hashable, Iterable
from typing import Generic, TypeVar

T = TypeVar("T", bound=Hashable)


class DisjointSetForest(Generic[T]):
    """Disjoint sets with path compression; a union attaches the second root under the first."""

    def __init__(self, items: Iterable[T] = ()):
        self._parent: dict[T, T] = {}
        self._exclusive: dict[T, T] = {}
        for item in items:
            self.add(item)

    def __contains__(self, item: object) -> bool:
        return item in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def add(self, item: T, exclusive: bool = False) -> None:
        """Register an item as its own set (no-op if already present)."""
        if item not in self._parent:
            self._parent[item] = item
        if exclusive:
            root = self.find(item)
            self._exclusive.setdefault(root, item)

    def find(self, item: T) -> T:
        """Root of the item's set, adding the item if unseen."""
        if item not in self._parent:
            self._parent[item] = item
            return item

        root = item
        while self._parent[root] != root:
            root = self._parent[root]

        # Path compression
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, left: T, right: T) -> bool:
        """
        Merge the sets of two items.

        Returns:
            True if the items share a set afterwards, False if the merge was
            refused because both sets already hold an exclusive item
        """
        root_left = self.find(left)
        root_right = self.find(right)
        if root_left == root_right:
            return True

        if root_left in self._exclusive and root_right in self._exclusive:
            return False

        self._parent[root_right] = root_left
        if root_right in self._exclusive:
            self._exclusive[root_left] = self._exclusive.pop(root_right)
        return True

    def connected(self, left: T, right: T) -> bool:
        if left not in self._parent or right not in self._parent:
            return False
        return self.find(left) == self.find(right)

    def groups(self) -> dict[T, list[T]]:
        """Members of every set keyed by root, in insertion order."""
        grouped: dict[T, list[T]] = {}
        for item in list(self._parent):
            grouped.setdefault(self.find(item), []).append(item)
        return grouped
