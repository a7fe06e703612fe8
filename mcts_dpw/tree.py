"""
Search tree storage for MCTS and DPW.

This module defines the StateNode and StateActionEdge records built during a
planning call, and the SearchTree store that owns them. The store is the only
place where node and edge statistics are written.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from mcts_dpw.exceptions import InvalidStateError
from mcts_dpw.hooks import NodeInitializer


class StateNode:
    """
    A decision point reached during search.

    Each node tracks how many simulations passed through it and owns the
    state-action edges tried from it, keyed by action in insertion order.
    """

    def __init__(self, node_id: int, state: Any):
        self.node_id = node_id
        self.state = state
        self.total_visits = 0
        self.expanded = False
        self.edges: Dict[Any, StateActionEdge] = {}

    @property
    def num_actions(self) -> int:
        return len(self.edges)

    def edge_visit_sum(self) -> int:
        return sum(edge.n for edge in self.edges.values())

    def __str__(self) -> str:
        return (f"StateNode(id={self.node_id}, "
                f"state={self.state!r}, "
                f"visits={self.total_visits}, "
                f"actions={len(self.edges)}, "
                f"expanded={self.expanded})")

    __repr__ = __str__


@dataclass
class Successor:
    """A realized outcome of a state-action edge."""

    node: StateNode
    reward: float
    count: int = 0
    """Number of times the model produced this outcome"""


class StateActionEdge:
    """
    One (state, action) pair explored from a StateNode.

    ``q`` is a running average of the sampled returns through the edge,
    seeded with the initial value supplied by the node initializer.
    """

    def __init__(self, action: Any, n: int = 0, q: float = 0.0):
        self.action = action
        self.n = n
        self.q = q
        self.successors: Dict[Any, Successor] = {}

    @property
    def num_successors(self) -> int:
        return len(self.successors)

    def __str__(self) -> str:
        return (f"StateActionEdge(action={self.action!r}, "
                f"n={self.n}, "
                f"q={self.q:.3f}, "
                f"successors={len(self.successors)})")

    __repr__ = __str__


class SearchTree:
    """
    Store for the nodes and edges built during planning.

    Args:
        initializer: Hook seeding (N0, Q0) of every new edge
        transpositions: Whether states reached through different paths share a node
        keep_index: Whether to keep a state index even without transpositions
            (needed to find the new root when the tree is reused)
        validator: Model validity check; nodes are never built for rejected states
    """

    def __init__(
        self,
        initializer: NodeInitializer,
        transpositions: bool = True,
        keep_index: bool = False,
        validator: Optional[Callable[[Any], bool]] = None,
    ):
        self.initializer = initializer
        self.transpositions = transpositions
        self.keep_index = keep_index or transpositions
        self.validator = validator
        self.root: Optional[StateNode] = None
        self.nodes: List[StateNode] = []
        self._index: Dict[Any, StateNode] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self.nodes)

    def node_count(self) -> int:
        return len(self.nodes)

    def find(self, state: Any) -> Optional[StateNode]:
        """Look up the node for a state in the index, if one is kept."""
        if not self.keep_index:
            return None
        try:
            return self._index.get(state)
        except TypeError:
            raise InvalidStateError(state, "state must be hashable to be indexed") from None

    def insert_state_node(self, state: Any) -> StateNode:
        """
        Create a new node for a state.

        Raises:
            InvalidStateError: If the model rejects the state
        """
        if self.validator is not None and not self.validator(state):
            raise InvalidStateError(state)
        node = StateNode(self._next_id, state)
        if self.keep_index:
            try:
                self._index[state] = node
            except TypeError:
                raise InvalidStateError(state, "state must be hashable to be indexed") from None
        self._next_id += 1
        self.nodes.append(node)
        return node

    def get_or_create_state_node(self, state: Any) -> StateNode:
        """
        Get the node for a state, creating it if needed.

        Nodes are deduplicated by state equality only when transpositions are
        enabled; otherwise a new node is always created.
        """
        if self.transpositions:
            node = self.find(state)
            if node is not None:
                return node
        return self.insert_state_node(state)

    def get_or_create_edge(self, node: StateNode, action: Any) -> StateActionEdge:
        """
        Get the edge for an action, creating and initializing it if needed.

        The initializer runs exactly once per edge. Its initial visit count is
        added to the node's total so the node total always equals the sum of
        its edge counts.
        """
        edge = node.edges.get(action)
        if edge is not None:
            return edge
        n0, q0 = self.initializer.initialize(node.state, action)
        edge = StateActionEdge(action, n=n0, q=q0)
        node.edges[action] = edge
        node.total_visits += n0
        return edge

    def record_visit(self, edge: StateActionEdge, sampled_return: float) -> None:
        """Add one sampled return to an edge's running mean."""
        edge.n += 1
        edge.q += (sampled_return - edge.q) / edge.n

    def record_node_visit(self, node: StateNode) -> None:
        node.total_visits += 1

    def add_successor(self, edge: StateActionEdge, key: Any, node: StateNode, reward: float) -> Successor:
        successor = Successor(node=node, reward=reward)
        edge.successors[key] = successor
        return successor

    def set_root(self, node: StateNode) -> None:
        self.root = node

    def reachable(self, start: StateNode) -> Iterator[StateNode]:
        """Yield every node reachable from ``start`` once, breadth first."""
        seen = {start.node_id}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            yield node
            for edge in node.edges.values():
                for successor in edge.successors.values():
                    child = successor.node
                    if child.node_id not in seen:
                        seen.add(child.node_id)
                        queue.append(child)

    def prune_to(self, state: Any) -> Optional[StateNode]:
        """
        Keep only the subtree rooted at ``state``.

        Statistics of the kept nodes are left untouched. If the state is not
        in the tree, the whole tree is discarded.

        Returns:
            The new root, or None if the tree was cleared
        """
        node = self.find(state)
        if node is None:
            self.clear()
            return None
        self.nodes = list(self.reachable(node))
        self._rebuild_index()
        self.root = node
        return node

    def checkpoint(self) -> int:
        """Mark the current set of nodes; see rollback()."""
        return self._next_id

    def rollback(self, mark: int) -> None:
        """
        Drop every node created after ``mark`` and the successors leading to it.

        Used when an iteration fails, so that a node whose first value
        estimate never completed is not left behind for a reused tree.
        """
        if self._next_id == mark:
            return
        self.nodes = [node for node in self.nodes if node.node_id < mark]
        for node in self.nodes:
            for edge in node.edges.values():
                stale = [key for key, succ in edge.successors.items() if succ.node.node_id >= mark]
                for key in stale:
                    del edge.successors[key]
        self._rebuild_index()
        self._next_id = mark

    def _rebuild_index(self) -> None:
        self._index = {}
        if self.keep_index:
            for node in self.nodes:
                self._index[node.state] = node

    def clear(self) -> None:
        self.root = None
        self.nodes = []
        self._index = {}
