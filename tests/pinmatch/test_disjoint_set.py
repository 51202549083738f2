# SPDX-License-Identifier: MIT
"""Tests for the union-find structure."""

from pinmatch.deduplication.disjoint_set import DisjointSetForest


class TestDisjointSetForest:
    """Test DisjointSetForest."""

    def test_new_items_are_singletons(self):
        """Unseen items become their own root."""
        forest = DisjointSetForest(["a", "b"])
        assert forest.find("a") == "a"
        assert not forest.connected("a", "b")
        assert len(forest) == 2

    def test_union_is_transitive(self):
        """Linking A-B and B-C puts A and C together."""
        forest = DisjointSetForest()
        forest.union("a", "b")
        forest.union("b", "c")
        assert forest.connected("a", "c")
        assert forest.find("c") == "a"

    def test_union_same_set(self):
        """Joining members of one set is a successful no-op."""
        forest = DisjointSetForest()
        forest.union("a", "b")
        assert forest.union("b", "a")
        assert len(forest.groups()) == 1

    def test_exclusive_sets_never_merge(self):
        """Two sets holding exclusive items stay apart."""
        forest = DisjointSetForest()
        forest.add("canon:1", exclusive=True)
        forest.add("canon:2", exclusive=True)
        assert forest.union("canon:1", "ipdb:7")
        assert not forest.union("canon:2", "ipdb:7")
        assert forest.connected("canon:1", "ipdb:7")
        assert not forest.connected("canon:2", "ipdb:7")

    def test_exclusivity_follows_the_root(self):
        """A set keeps its exclusive marker after being attached elsewhere."""
        forest = DisjointSetForest()
        forest.add("canon:1", exclusive=True)
        forest.union("x", "canon:1")
        forest.add("canon:2", exclusive=True)
        assert not forest.union("x", "canon:2")

    def test_groups_keep_insertion_order(self):
        """Groups list members in the order they were added."""
        forest = DisjointSetForest(["a", "b", "c", "d"])
        forest.union("c", "a")
        forest.union("b", "d")
        assert sorted(forest.groups().values()) == [["a", "c"], ["b", "d"]]

    def test_connected_unknown_items(self):
        """Unknown items are never connected and are not added."""
        forest = DisjointSetForest(["a"])
        assert not forest.connected("a", "zzz")
        assert "zzz" not in forest

    def test_long_chain_compresses(self):
        """Deep chains resolve to a single root."""
        forest = DisjointSetForest()
        for i in range(1, 2000):
            forest.union(i - 1, i)
        assert forest.find(1999) == 0
        assert forest.connected(0, 1999)
