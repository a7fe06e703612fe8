#!/usr/bin/env python
"""
Tests for the search tree store.

These tests check node deduplication, one-time edge initialization, the
running-mean update and subtree pruning used for tree reuse.
"""
import unittest

from mcts_dpw.exceptions import InvalidStateError
from mcts_dpw.hooks import InitialValue, resolve_node_initializer
from mcts_dpw.tree import SearchTree


class CountingValue(InitialValue):
    """Initial value source that counts how often it is asked."""

    def __init__(self, constant):
        self.constant = constant
        self.calls = 0

    def value(self, state, action):
        self.calls += 1
        return self.constant


class TestSearchTree(unittest.TestCase):
    """Test case for SearchTree."""

    def setUp(self):
        """Set up test fixtures."""
        self.initializer = resolve_node_initializer(0, 0.0)
        self.tree = SearchTree(self.initializer)

    def test_transpositions_share_nodes(self):
        """Equal states map to one node when transpositions are enabled."""
        a = self.tree.get_or_create_state_node((1, 1))
        b = self.tree.get_or_create_state_node((1, 1))
        self.assertIs(a, b)
        self.assertEqual(self.tree.node_count(), 1)

    def test_without_transpositions_nodes_are_distinct(self):
        """Without transpositions every request creates a node."""
        tree = SearchTree(self.initializer, transpositions=False)
        a = tree.get_or_create_state_node((1, 1))
        b = tree.get_or_create_state_node((1, 1))
        self.assertIsNot(a, b)
        self.assertNotEqual(a.node_id, b.node_id)
        self.assertIsNone(tree.find((1, 1)))

    def test_invalid_state_rejected(self):
        """The validator keeps malformed states out of the tree."""
        tree = SearchTree(self.initializer, validator=lambda s: s != "bad")
        with self.assertRaises(InvalidStateError):
            tree.get_or_create_state_node("bad")
        self.assertEqual(tree.node_count(), 0)

    def test_unhashable_state_with_index(self):
        """States must be hashable to be indexed."""
        with self.assertRaises(InvalidStateError):
            self.tree.get_or_create_state_node([1, 2])

    def test_edge_initialized_once(self):
        """The initializer runs exactly once per edge."""
        init_n = CountingValue(3)
        init_q = CountingValue(11.73)
        tree = SearchTree(resolve_node_initializer(init_n, init_q))
        node = tree.get_or_create_state_node("s")

        edge = tree.get_or_create_edge(node, "a")
        again = tree.get_or_create_edge(node, "a")

        self.assertIs(edge, again)
        self.assertEqual(init_n.calls, 1)
        self.assertEqual(init_q.calls, 1)

    def test_initial_values_round_trip(self):
        """An initialized edge with no visits keeps its initial N and Q exactly."""
        tree = SearchTree(resolve_node_initializer(3, 11.73))
        node = tree.get_or_create_state_node("s")
        edge = tree.get_or_create_edge(node, "a")

        self.assertEqual(edge.n, 3)
        self.assertEqual(edge.q, 11.73)
        self.assertEqual(node.total_visits, 3)
        self.assertEqual(node.total_visits, node.edge_visit_sum())

    def test_record_visit_running_mean(self):
        """Q is the running mean of the sampled returns."""
        node = self.tree.get_or_create_state_node("s")
        edge = self.tree.get_or_create_edge(node, "a")

        for sampled in (1.0, 2.0, 6.0):
            self.tree.record_visit(edge, sampled)

        self.assertEqual(edge.n, 3)
        self.assertAlmostEqual(edge.q, 3.0)

    def test_record_visit_blends_with_initial_value(self):
        """Initial counts weigh the initial value against sampled returns."""
        tree = SearchTree(resolve_node_initializer(2, 10.0))
        node = tree.get_or_create_state_node("s")
        edge = tree.get_or_create_edge(node, "a")

        tree.record_visit(edge, 4.0)

        self.assertEqual(edge.n, 3)
        self.assertAlmostEqual(edge.q, 8.0)

    def test_prune_to_keeps_subtree(self):
        """Pruning keeps the subtree of the new root with its statistics."""
        root = self.tree.get_or_create_state_node("root")
        self.tree.set_root(root)
        child = self.tree.get_or_create_state_node("child")
        other = self.tree.get_or_create_state_node("other")
        grandchild = self.tree.get_or_create_state_node("grandchild")

        edge = self.tree.get_or_create_edge(root, "a")
        self.tree.add_successor(edge, "child", child, 0.0)
        edge_b = self.tree.get_or_create_edge(root, "b")
        self.tree.add_successor(edge_b, "other", other, 0.0)
        child_edge = self.tree.get_or_create_edge(child, "c")
        self.tree.add_successor(child_edge, "grandchild", grandchild, 1.0)
        self.tree.record_visit(child_edge, 5.0)
        child.total_visits = 1

        new_root = self.tree.prune_to("child")

        self.assertIs(new_root, child)
        self.assertIs(self.tree.root, child)
        self.assertEqual({n.state for n in self.tree.nodes}, {"child", "grandchild"})
        self.assertIsNone(self.tree.find("other"))
        self.assertEqual(child.total_visits, 1)
        self.assertAlmostEqual(child.edges["c"].q, 5.0)

    def test_prune_to_unknown_state_clears(self):
        """Pruning to a state outside the tree discards everything."""
        root = self.tree.get_or_create_state_node("root")
        self.tree.set_root(root)

        self.assertIsNone(self.tree.prune_to("elsewhere"))
        self.assertIsNone(self.tree.root)
        self.assertEqual(self.tree.node_count(), 0)

    def test_rollback_removes_new_nodes(self):
        """Rolling back drops nodes created after the mark and the successors leading to them."""
        root = self.tree.get_or_create_state_node("root")
        self.tree.set_root(root)
        edge = self.tree.get_or_create_edge(root, "a")
        self.tree.add_successor(edge, "old", self.tree.get_or_create_state_node("old"), 0.0)

        mark = self.tree.checkpoint()
        new = self.tree.get_or_create_state_node("new")
        self.tree.add_successor(edge, "new", new, 1.0)
        self.tree.add_successor(self.tree.get_or_create_edge(root, "b"), "new", new, 1.0)

        self.tree.rollback(mark)

        self.assertEqual([n.state for n in self.tree.nodes], ["root", "old"])
        self.assertIsNone(self.tree.find("new"))
        self.assertIsNotNone(self.tree.find("old"))
        self.assertEqual(list(edge.successors), ["old"])
        self.assertEqual(root.edges["b"].num_successors, 0)
        self.assertEqual(self.tree.get_or_create_state_node("again").node_id, mark)

    def test_rollback_without_changes(self):
        self.tree.get_or_create_state_node("root")
        mark = self.tree.checkpoint()
        self.tree.rollback(mark)
        self.assertEqual(self.tree.node_count(), 1)

    def test_reachable_visits_cycles_once(self):
        """Traversal terminates on cyclic transposition graphs."""
        a = self.tree.get_or_create_state_node("a")
        b = self.tree.get_or_create_state_node("b")
        self.tree.add_successor(self.tree.get_or_create_edge(a, "x"), "b", b, 0.0)
        self.tree.add_successor(self.tree.get_or_create_edge(b, "y"), "a", a, 0.0)

        states = [node.state for node in self.tree.reachable(a)]

        self.assertEqual(states, ["a", "b"])


if __name__ == "__main__":
    unittest.main()
