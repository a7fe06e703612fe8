"""
Online planning with Monte Carlo Tree Search (MCTS) and Double Progressive
Widening (DPW).

The planner builds a lookahead tree from the current state by repeated
simulation:

1. Selection: walk down from the root, picking actions with UCB, or adding
   a new action where progressive widening allows one.
2. Expansion: add a node for the first new state reached.
3. Evaluation: estimate the new node's value with a rollout or a heuristic.
4. Backpropagation: fold the discounted return into every edge on the path.

Domain knowledge is injected through three hooks (node initialization, value
estimation and next-action selection), each given as a constant, a function
or an object.
"""

__version__ = "0.1.0"

from mcts_dpw.config import MCTSConfig, DPWConfig
from mcts_dpw.exceptions import (
    BudgetExhaustedEarly,
    HookContractError,
    InvalidStateError,
    NoActionAvailableError,
    PlanningError,
)
from mcts_dpw.hooks import ActionGenerator, InitialValue, ValueEstimator
from mcts_dpw.model import MDP
from mcts_dpw.planner import DPWPlanner, MCTSPlanner, create_planner
from mcts_dpw.rollout import RandomActionGenerator, RolloutEstimator, RolloutSpec
from mcts_dpw.tree import SearchTree, StateActionEdge, StateNode
from mcts_dpw.views import EdgeView, NodeView, TreeView

# Version info as a tuple for programmatic access
VERSION_INFO = tuple(map(int, __version__.split('.')))

# Default configuration
DEFAULT_CONFIG = MCTSConfig(
    n_iterations=100,           # Number of simulations per planning call
    depth=10,                   # Maximum lookahead depth
    exploration_constant=1.0,   # UCB exploration constant
    max_time=None,              # Optional time limit in seconds (None = no limit)
)

__all__ = [
    'ActionGenerator',
    'BudgetExhaustedEarly',
    'DEFAULT_CONFIG',
    'DPWConfig',
    'DPWPlanner',
    'EdgeView',
    'HookContractError',
    'InitialValue',
    'InvalidStateError',
    'MCTSConfig',
    'MCTSPlanner',
    'MDP',
    'NoActionAvailableError',
    'NodeView',
    'PlanningError',
    'RandomActionGenerator',
    'RolloutEstimator',
    'RolloutSpec',
    'SearchTree',
    'StateActionEdge',
    'StateNode',
    'TreeView',
    'ValueEstimator',
    'create_planner',
]
