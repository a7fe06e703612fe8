"""
Monte Carlo Tree Search engine with optional Double Progressive Widening.

Each iteration walks down from the root:
1. Selection/Expansion: at every node, either add a new action (when the
   widening policy allows it) or pick an existing edge with UCB.
2. Transition: sample an outcome from the model, or reuse a realized one
   when state widening does not admit a new outcome.
3. Evaluation: stop at a terminal state, at the depth limit or at a
   brand-new node, and estimate the leaf value.
4. Backpropagation: unwind the path, folding rewards into discounted
   returns and updating the running means of the edges.

The walk keeps an explicit path instead of recursing, so the depth limit
is not bound by the interpreter's recursion limit.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from mcts_dpw.config import MCTSConfig
from mcts_dpw.exceptions import InvalidStateError, NoActionAvailableError
from mcts_dpw.hooks import ActionGenerator, ValueEstimator, check_value
from mcts_dpw.model import MDP
from mcts_dpw.tree import SearchTree, StateActionEdge, StateNode, Successor
from mcts_dpw.views import snapshot_node
from mcts_dpw.widening import (
    propose_action,
    sample_successor,
    should_add_action,
    should_add_successor,
)

logger = logging.getLogger(__name__)


@dataclass
class SearchContext:
    """Everything one planning call needs: model, tree, hooks and random source."""

    mdp: MDP
    tree: SearchTree
    config: MCTSConfig
    estimator: ValueEstimator
    rng: np.random.Generator
    generator: Optional[ActionGenerator] = None
    action_widening: bool = False
    state_widening: bool = False
    single_outcome: bool = False
    """Realize one outcome per edge and reuse it; used by DPW with state widening off"""


@dataclass
class _Step:
    """One level of the path walked by an iteration."""

    node: StateNode
    edge: StateActionEdge
    successor: Successor
    reward: float
    sampled: bool


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def ucb_score(edge: StateActionEdge, total_visits: int, c: float) -> float:
    """
    Calculate the UCB score of an edge.

    UCB = Q + c * sqrt(ln(N_node) / N_edge)

    An edge that has never been visited gets infinite priority, so every
    action is tried once before the bound is relied on.

    Args:
        edge: Edge to score
        total_visits: Visit count of the node owning the edge
        c: Exploration constant

    Returns:
        UCB score
    """
    if edge.n == 0:
        return MCTSConfig.INFINITE_VALUE
    if c == 0:
        return edge.q
    return edge.q + c * math.sqrt(math.log(max(total_visits, 1)) / edge.n)


def select_edge(node: StateNode, c: float) -> StateActionEdge:
    """
    Select the edge with the highest UCB score.

    Ties go to the edge added first.
    """
    if not node.edges:
        raise NoActionAvailableError(node.state)
    return max(node.edges.values(), key=lambda edge: ucb_score(edge, node.total_visits, c))


def expand_node(ctx: SearchContext, node: StateNode) -> None:
    """
    Add an edge for every legal action of a node.

    Used by plain MCTS and by DPW with action widening disabled.
    """
    for action in ctx.mdp.actions(node.state):
        ctx.tree.get_or_create_edge(node, action)
    node.expanded = True
    if not node.edges:
        raise InvalidStateError(node.state, "no legal actions in a non-terminal state")


def select_or_expand(ctx: SearchContext, node: StateNode) -> StateActionEdge:
    """
    Choose the edge an iteration follows from a node.

    With action widening, a new action is added whenever the node's visit
    count allows one and the generator finds an untried action; the new edge
    is followed immediately. Otherwise UCB picks among the existing edges.
    """
    if not ctx.action_widening:
        if not node.expanded:
            expand_node(ctx, node)
        return select_edge(node, ctx.config.exploration_constant)

    config = ctx.config
    if should_add_action(node, config.k_action, config.alpha_action):
        action = propose_action(
            node,
            ctx.generator,
            ctx.rng,
            view=snapshot_node,
            max_retries=config.max_action_retries,
        )
        if action is not None:
            edge = ctx.tree.get_or_create_edge(node, action)
            node.expanded = True
            return edge
    return select_edge(node, config.exploration_constant)


# ---------------------------------------------------------------------------
# Transition
# ---------------------------------------------------------------------------

def sample_transition(ctx: SearchContext, node: StateNode, edge: StateActionEdge) -> Tuple[Successor, float, bool, bool]:
    """
    Get the outcome an iteration follows from an edge.

    With state widening, a new outcome is drawn from the model only while
    the edge's visit count admits one. With ``single_outcome`` the first
    realized outcome is reused on every later visit. Otherwise the model is
    sampled on every visit.

    Returns:
        Tuple of (successor, reward, sampled from the model, brand-new node)
    """
    if ctx.state_widening:
        reuse = not should_add_successor(edge, ctx.config.k_state, ctx.config.alpha_state)
    else:
        reuse = ctx.single_outcome and edge.num_successors > 0
    if reuse:
        successor = sample_successor(edge, ctx.rng)
        return successor, successor.reward, False, False

    next_state, reward = ctx.mdp.step(node.state, edge.action, ctx.rng)
    reward = float(reward)
    tree = ctx.tree

    if tree.transpositions:
        known = tree.find(next_state)
        successor = edge.successors.get(next_state) if known is not None else None
        if successor is not None:
            return successor, reward, True, False
        key = next_state
    else:
        known = None
        key = len(edge.successors)

    is_new = known is None
    child = tree.insert_state_node(next_state) if is_new else known
    successor = tree.add_successor(edge, key, child, reward)
    return successor, reward, True, is_new


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

def _leaf_value(ctx: SearchContext, state: Any, remaining_depth: int) -> float:
    value = ctx.estimator.estimate(state, remaining_depth, ctx.rng)
    return check_value("estimate_value", value)


def _terminal_value(ctx: SearchContext, state: Any, remaining_depth: int) -> float:
    if ctx.config.estimate_terminal:
        return _leaf_value(ctx, state, remaining_depth)
    return 0.0


def simulate(ctx: SearchContext, root: StateNode, depth: int) -> Tuple[float, int]:
    """
    Run one simulation from the root and back up its return.

    Nothing is written to the statistics until the leaf value is known, so
    an exception from the model or a hook leaves the tree's counts and
    values as they were before the iteration. Nodes it inserted are
    removed by the caller, see run_search().

    Args:
        ctx: Search context
        root: Node to start from
        depth: Maximum number of transitions

    Returns:
        Tuple of (sampled return at the root, number of transitions taken)
    """
    mdp = ctx.mdp
    path: List[_Step] = []
    node = root
    remaining = depth

    while True:
        if mdp.is_terminal(node.state):
            value = _terminal_value(ctx, node.state, remaining)
            break
        if remaining == 0:
            value = _leaf_value(ctx, node.state, 0)
            break

        edge = select_or_expand(ctx, node)
        successor, reward, sampled, is_new = sample_transition(ctx, node, edge)
        path.append(_Step(node, edge, successor, reward, sampled))
        node = successor.node
        remaining -= 1

        if is_new:
            if mdp.is_terminal(node.state):
                value = _terminal_value(ctx, node.state, remaining)
            else:
                value = _leaf_value(ctx, node.state, remaining)
            break

    return backpropagate(ctx, path, value), len(path)


def backpropagate(ctx: SearchContext, path: List[_Step], leaf_value: float) -> float:
    """
    Update statistics along a simulated path.

    Each edge receives reward + discount * (return of the level below), and
    each node on the path gains one visit.
    """
    tree = ctx.tree
    value = leaf_value
    for step in reversed(path):
        value = step.reward + ctx.mdp.discount * value
        if step.sampled:
            step.successor.count += 1
        tree.record_visit(step.edge, value)
        tree.record_node_visit(step.node)
    return value


def run_search(ctx: SearchContext, root: StateNode) -> Dict[str, Any]:
    """
    Run simulations from the root until the budget is spent.

    The time budget is checked between iterations only; an iteration that
    has started always completes. If an iteration raises, the nodes it
    created are removed from the tree before the error propagates.

    Args:
        ctx: Search context
        root: Root node of the search

    Returns:
        Search statistics
    """
    config = ctx.config
    timer = config.timer

    stats: Dict[str, Any] = {
        "iterations": 0,
        "max_depth": 0,
        "total_simulation_steps": 0,
        "time_elapsed": 0.0,
        "stopped_early": False,
    }

    start_time = timer()
    deadline = start_time + config.max_time if config.max_time is not None else None

    pbar = tqdm(total=config.n_iterations, desc="Planning", disable=not config.show_progress)
    try:
        for _ in range(config.n_iterations):
            if deadline is not None and timer() >= deadline:
                stats["stopped_early"] = True
                break

            if config.reset_callback is not None:
                config.reset_callback(ctx.mdp, root.state)

            mark = ctx.tree.checkpoint()
            try:
                _, steps = simulate(ctx, root, config.depth)
            except Exception:
                ctx.tree.rollback(mark)
                raise

            stats["iterations"] += 1
            stats["total_simulation_steps"] += steps
            stats["max_depth"] = max(stats["max_depth"], steps)
            pbar.update(1)
    finally:
        pbar.close()

    stats["time_elapsed"] = timer() - start_time
    stats["iterations_per_second"] = stats["iterations"] / max(0.001, stats["time_elapsed"])
    stats["average_simulation_steps"] = stats["total_simulation_steps"] / max(1, stats["iterations"])
    stats["node_count"] = ctx.tree.node_count()

    if stats["stopped_early"]:
        logger.debug("Time budget of %ss reached after %d iterations",
                     config.max_time, stats["iterations"])

    return stats


# ---------------------------------------------------------------------------
# Policy extraction and inspection
# ---------------------------------------------------------------------------

def find_root(tree: SearchTree, state: Any) -> Optional[StateNode]:
    """Find the node of a state, checking the tree's root first."""
    root = tree.root
    if root is not None and (root.state is state or root.state == state):
        return root
    return tree.find(state)


def best_action(tree: SearchTree, root_state: Any, criterion: str = "q") -> Any:
    """
    Get the best action at a state from a built tree.

    Args:
        tree: Search tree
        root_state: State to choose an action for
        criterion: 'q' for the highest value, 'n' for the most visits

    Returns:
        Best action

    Raises:
        NoActionAvailableError: If the state has no expanded edges
    """
    node = find_root(tree, root_state)
    if node is None or not node.edges:
        raise NoActionAvailableError(root_state)

    if criterion == "n":
        best = max(node.edges.values(), key=lambda edge: edge.n)
    elif criterion == "q":
        best = max(node.edges.values(), key=lambda edge: edge.q)
    else:
        raise ValueError(f"Unknown criterion {criterion!r}")
    return best.action


def count_nodes(root: StateNode) -> int:
    """
    Count the nodes reachable from a root.

    Args:
        root: Root node of the tree

    Returns:
        Total number of distinct nodes
    """
    seen = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if node.node_id in seen:
            continue
        seen.add(node.node_id)
        for edge in node.edges.values():
            stack.extend(successor.node for successor in edge.successors.values())
    return len(seen)


def get_principal_variation(root: StateNode, max_depth: int = 10) -> List[Tuple[Any, float]]:
    """
    Get the principal variation (most visited path) from the root.

    This is useful for analysis and debugging.

    Args:
        root: Root node of the tree
        max_depth: Maximum depth to explore

    Returns:
        List of (action, value) pairs representing the principal variation
    """
    result = []
    current = root
    depth = 0

    while current.edges and depth < max_depth:
        # Most visited edge, then its most frequent outcome
        best_edge = max(current.edges.values(), key=lambda edge: edge.n)
        result.append((best_edge.action, best_edge.q))

        if not best_edge.successors:
            break
        current = max(best_edge.successors.values(), key=lambda s: s.count).node
        depth += 1

    return result


def get_action_statistics(root: StateNode, c: float = 0.0) -> Dict[str, Dict[str, float]]:
    """
    Get statistics for all actions from the root.

    Args:
        root: Root node of the tree
        c: Exploration constant used for the reported UCB score

    Returns:
        Dictionary mapping action strings to statistics
    """
    result = {}

    for edge in root.edges.values():
        result[str(edge.action)] = {
            "visits": edge.n,
            "value": edge.q,
            "successors": edge.num_successors,
            "ucb": ucb_score(edge, root.total_visits, c),
        }

    return result
