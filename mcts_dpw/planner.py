"""
Online planners built on Monte Carlo Tree Search.

This module provides MCTSPlanner (plain MCTS over a finite action set) and
DPWPlanner (MCTS with Double Progressive Widening for large or continuous
spaces). Both run a budgeted search from the state they are asked about and
return the best action at that state.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from mcts_dpw.config import DPWConfig, MCTSConfig
from mcts_dpw.exceptions import BudgetExhaustedEarly
from mcts_dpw.hooks import (
    resolve_action_generator,
    resolve_node_initializer,
    resolve_value_estimator,
)
from mcts_dpw.model import MDP
from mcts_dpw.search import (
    SearchContext,
    best_action,
    get_action_statistics,
    get_principal_variation,
    run_search,
)
from mcts_dpw.tree import SearchTree, StateNode
from mcts_dpw.views import TreeView, snapshot_tree

logger = logging.getLogger(__name__)


class MCTSPlanner:
    """
    Plain Monte Carlo Tree Search planner.

    Every legal action of a node is added the first time the node is
    selected, and states reached through different paths share one node.

    The planner owns its random source and its search tree. Heuristic hook
    objects given in the configuration are used as they are, never copied or
    reset, and are always called one at a time.
    """

    config_class = MCTSConfig

    def __init__(
        self,
        mdp: MDP,
        config: Optional[MCTSConfig] = None,
        rng: Optional[np.random.Generator] = None,
        name: str = "MCTS Planner",
    ):
        """
        Initialize a planner.

        Args:
            mdp: Problem model
            config: Search configuration
            rng: Random source; defaults to one seeded with ``config.seed``
            name: Name used in logs
        """
        self.mdp = mdp
        self.config = config or self.config_class()
        self.name = name
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        # Hooks are resolved once here, never per iteration
        self.initializer = resolve_node_initializer(self.config.init_n, self.config.init_q)
        self.estimator = resolve_value_estimator(self.config.estimate_value, mdp)

        self.tree = self._new_tree()

        # Statistics from the most recent search
        self.last_stats: Dict[str, Any] = {}

    def _new_tree(self) -> SearchTree:
        return SearchTree(
            self.initializer,
            transpositions=True,
            keep_index=self.config.reuse_tree,
            validator=self.mdp.is_valid_state,
        )

    def _context(self) -> SearchContext:
        return SearchContext(
            mdp=self.mdp,
            tree=self.tree,
            config=self.config,
            estimator=self.estimator,
            rng=self.rng,
        )

    def _prepare_root(self, state: Any) -> Tuple[StateNode, bool]:
        """
        Get the root node for a planning call.

        With tree reuse, the subtree rooted at ``state`` is kept from the
        previous call along with its statistics; everything else is dropped.

        Returns:
            Tuple of (root node, whether the root was reused)
        """
        root = None
        if self.config.reuse_tree and self.tree.root is not None:
            root = self.tree.prune_to(state)
        else:
            self.tree.clear()

        reused = root is not None
        if root is None:
            root = self.tree.get_or_create_state_node(state)
            self.tree.set_root(root)
        return root, reused

    def action_info(self, state: Any) -> Tuple[Any, Dict[str, Any]]:
        """
        Run the search and return the best action with search statistics.

        Args:
            state: Current state

        Returns:
            Tuple of (best action, search statistics)

        Raises:
            BudgetExhaustedEarly: If the time budget ran out before the first
                iteration on a tree with no usable root actions
            NoActionAvailableError: If the root has no expanded actions
        """
        root, reused = self._prepare_root(state)
        stats = run_search(self._context(), root)
        stats["tree_reused"] = reused

        if stats["stopped_early"] and stats["iterations"] == 0 and not root.edges:
            raise BudgetExhaustedEarly(state, self.config.max_time)

        action = best_action(self.tree, state, self.config.final_criterion)

        stats["action_visits"] = {str(edge.action): edge.n for edge in root.edges.values()}
        stats["action_values"] = {str(edge.action): edge.q for edge in root.edges.values()}
        if self.config.tree_in_info:
            stats["tree"] = self.inspect_tree()

        self.last_stats = stats

        logger.debug(
            "%s selected %r after %d iterations (%.3fs, %d nodes)",
            self.name, action, stats["iterations"], stats["time_elapsed"], stats["node_count"],
        )
        return action, stats

    def plan(self, state: Any) -> Any:
        """
        Run the search and return the best action at a state.

        Args:
            state: Current state

        Returns:
            Best action
        """
        action, _ = self.action_info(state)
        return action

    def best_action(self, state: Any) -> Any:
        """Extract the best action at a state from the current tree without searching."""
        return best_action(self.tree, state, self.config.final_criterion)

    def inspect_tree(self) -> TreeView:
        """
        Get a read-only snapshot of the current tree.

        Returns:
            Frozen view of every node reachable from the root
        """
        return snapshot_tree(self.tree)

    def clear_tree(self) -> None:
        """Discard the tree, including any subtree kept for reuse."""
        self.tree.clear()

    def get_last_statistics(self) -> Dict[str, Any]:
        return self.last_stats

    def get_principal_variation(self, max_depth: int = 10) -> List[Tuple[Any, float]]:
        """
        Get the principal variation (most visited path) from the last search.

        Returns:
            List of (action, value) pairs representing the principal variation
        """
        if self.tree.root is None:
            return []
        return get_principal_variation(self.tree.root, max_depth)

    def get_action_statistics(self) -> Dict[str, Dict[str, float]]:
        """
        Get statistics for all root actions from the last search.

        Returns:
            Dictionary mapping action strings to statistics
        """
        if self.tree.root is None:
            return {}
        return get_action_statistics(self.tree.root, self.config.exploration_constant)

    def __str__(self) -> str:
        return f"{self.name} ({type(self).__name__}, {self.config.n_iterations} iterations)"


class DPWPlanner(MCTSPlanner):
    """
    MCTS planner with Double Progressive Widening.

    New actions come from the configured action generator and are admitted
    as a node's visit count grows; new outcomes of an action are admitted
    the same way, and realized outcomes are reused in between.
    """

    config_class = DPWConfig

    def __init__(
        self,
        mdp: MDP,
        config: Optional[DPWConfig] = None,
        rng: Optional[np.random.Generator] = None,
        name: str = "DPW Planner",
    ):
        if config is not None and not isinstance(config, DPWConfig):
            raise TypeError(f"DPWPlanner requires a DPWConfig, got {type(config).__name__}")
        super().__init__(mdp, config, rng, name)
        self.generator = resolve_action_generator(self.config.next_action, mdp)

    def _new_tree(self) -> SearchTree:
        return SearchTree(
            self.initializer,
            transpositions=self.config.check_repeat_state,
            keep_index=self.config.reuse_tree,
            validator=self.mdp.is_valid_state,
        )

    def _context(self) -> SearchContext:
        return SearchContext(
            mdp=self.mdp,
            tree=self.tree,
            config=self.config,
            estimator=self.estimator,
            rng=self.rng,
            generator=self.generator,
            action_widening=self.config.enable_action_pw,
            state_widening=self.config.enable_state_pw,
            single_outcome=not self.config.enable_state_pw,
        )


def create_planner(mdp: MDP, config: Optional[MCTSConfig] = None, **kwargs) -> MCTSPlanner:
    """
    Create the planner matching a configuration.

    Args:
        mdp: Problem model
        config: MCTSConfig for plain MCTS or DPWConfig for DPW
        **kwargs: Passed on to the planner constructor

    Returns:
        MCTSPlanner or DPWPlanner
    """
    if isinstance(config, DPWConfig):
        return DPWPlanner(mdp, config, **kwargs)
    return MCTSPlanner(mdp, config, **kwargs)
