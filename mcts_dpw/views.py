"""Read-only snapshots of the search tree."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from mcts_dpw.tree import SearchTree, StateNode


class EdgeView(BaseModel):
    """Statistics of one state-action edge."""

    model_config = ConfigDict(frozen=True)

    action: Any
    n: int = Field(ge=0)
    q: float
    successors: Tuple[int, ...] = ()
    """Node ids of the realized successors, in realization order"""


class NodeView(BaseModel):
    """A state node and the (action, N, Q) triples of its edges."""

    model_config = ConfigDict(frozen=True)

    node_id: int
    state: Any
    total_visits: int = Field(ge=0)
    expanded: bool = False
    edges: Tuple[EdgeView, ...] = ()

    @property
    def actions(self) -> Tuple[Any, ...]:
        return tuple(edge.action for edge in self.edges)

    def edge(self, action: Any) -> Optional[EdgeView]:
        for edge in self.edges:
            if edge.action == action:
                return edge
        return None


class TreeView(BaseModel):
    """Snapshot of every node reachable from the root."""

    model_config = ConfigDict(frozen=True)

    root_id: Optional[int] = None
    nodes: Tuple[NodeView, ...] = ()

    @property
    def root(self) -> Optional[NodeView]:
        return self.node(self.root_id) if self.root_id is not None else None

    def node(self, node_id: int) -> Optional[NodeView]:
        for view in self.nodes:
            if view.node_id == node_id:
                return view
        return None

    def as_dict(self) -> Dict[int, NodeView]:
        return {view.node_id: view for view in self.nodes}


def snapshot_node(node: StateNode) -> NodeView:
    """Build a frozen view of a single node."""
    edges = tuple(
        EdgeView(
            action=edge.action,
            n=edge.n,
            q=edge.q,
            successors=tuple(succ.node.node_id for succ in edge.successors.values()),
        )
        for edge in node.edges.values()
    )
    return NodeView(
        node_id=node.node_id,
        state=node.state,
        total_visits=node.total_visits,
        expanded=node.expanded,
        edges=edges,
    )


def snapshot_tree(tree: SearchTree) -> TreeView:
    """Build a frozen view of every node reachable from the tree's root."""
    if tree.root is None:
        return TreeView()
    return TreeView(
        root_id=tree.root.node_id,
        nodes=tuple(snapshot_node(node) for node in tree.reachable(tree.root)),
    )
