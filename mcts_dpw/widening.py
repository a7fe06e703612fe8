"""
Progressive widening for large or continuous spaces.

The number of children explored below a node is bounded by k * N^alpha,
where N is the visit count: new actions (at state nodes) and new outcomes
(at state-action edges) are only admitted once enough simulations have
passed through to justify the extra width.
"""
import logging
import math
from typing import Any, Callable, Optional

import numpy as np

from mcts_dpw.hooks import ActionGenerator
from mcts_dpw.tree import StateActionEdge, StateNode, Successor
from mcts_dpw.views import NodeView

logger = logging.getLogger(__name__)


def widening_limit(k: float, alpha: float, n: int) -> int:
    """
    Maximum number of children allowed for a visit count.

    Formula: max_children = floor(k * n^alpha), at least 1

    Args:
        k: Base constant
        alpha: Exponent in [0, 1]
        n: Visit count

    Returns:
        Maximum number of children
    """
    return max(1, int(math.floor(k * (n ** alpha))))


def should_add_action(node: StateNode, k: float, alpha: float) -> bool:
    """Check whether action widening admits a new action at a node."""
    m = node.num_actions
    return m == 0 or m < widening_limit(k, alpha, node.total_visits)


def should_add_successor(edge: StateActionEdge, k: float, alpha: float) -> bool:
    """
    Check whether state widening admits a new outcome at an edge.

    The first outcome is always admitted, whatever the initial visit count.
    """
    m = edge.num_successors
    return m == 0 or m < widening_limit(k, alpha, edge.n)


def propose_action(
    node: StateNode,
    generator: ActionGenerator,
    rng: np.random.Generator,
    view: Callable[[StateNode], NodeView],
    max_retries: int = 10,
) -> Optional[Any]:
    """
    Ask the generator for an action not yet tried at the node.

    Args:
        node: Node being widened
        generator: Next-action hook
        rng: Random source passed to the hook
        view: Builds the read-only node view handed to the hook
        max_retries: Extra attempts allowed after a repeated action

    Returns:
        A fresh action, or None if every attempt repeated an existing one
    """
    node_view = view(node)
    for _ in range(max_retries + 1):
        action = generator.next_action(node.state, node_view, rng)
        if action not in node.edges:
            return action
    logger.debug("No fresh action after %d attempts at %s; selecting among existing edges",
                 max_retries + 1, node)
    return None


def sample_successor(edge: StateActionEdge, rng: np.random.Generator) -> Successor:
    """
    Reuse a realized outcome of an edge.

    Outcomes are drawn in proportion to how often the model produced them,
    which approximates the transition distribution without storing every
    sample.
    """
    successors = list(edge.successors.values())
    if not successors:
        raise ValueError(f"{edge} has no realized successors to reuse")
    weights = np.array([s.count for s in successors], dtype=float)
    total = weights.sum()
    if total <= 0:
        return successors[int(rng.integers(len(successors)))]
    return successors[int(rng.choice(len(successors), p=weights / total))]
