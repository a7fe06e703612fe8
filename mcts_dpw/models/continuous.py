"""
A one-dimensional control problem with continuous states and actions.

The agent pushes a point along a line towards the origin. Actions are real
numbers in [-max_action, max_action], the dynamics are noisy and the reward
is the negative squared distance to the origin after the move.
"""
import math
from typing import Any, Tuple

import numpy as np

from mcts_dpw.exceptions import InvalidStateError
from mcts_dpw.hooks import ActionGenerator
from mcts_dpw.model import MDP
from mcts_dpw.views import NodeView


class LinearDynamics1D(MDP):
    """
    Continuous MDP: x' = x + u + noise.

    Args:
        noise: Standard deviation of the transition noise
        max_action: Bound on the magnitude of an action
        goal_tolerance: Episode ends once |x| is within this distance of 0
        discount: Discount factor
    """

    def __init__(
        self,
        noise: float = 0.1,
        max_action: float = 1.0,
        goal_tolerance: float = 0.0,
        discount: float = 0.9,
    ):
        if noise < 0 or max_action <= 0 or goal_tolerance < 0:
            raise ValueError("noise and goal_tolerance must be non-negative, max_action positive")
        self.noise = noise
        self.max_action = max_action
        self.goal_tolerance = goal_tolerance
        self.discount = discount

    def is_valid_state(self, state: Any) -> bool:
        return isinstance(state, float) and math.isfinite(state)

    def is_terminal(self, state: float) -> bool:
        return abs(state) < self.goal_tolerance

    def step(self, state: float, action: float, rng: np.random.Generator) -> Tuple[float, float]:
        if abs(action) > self.max_action:
            raise InvalidStateError(state, f"action {action} exceeds {self.max_action}")
        next_state = state + action
        if self.noise > 0:
            next_state += float(rng.normal(0.0, self.noise))
        return float(next_state), -next_state ** 2


class UniformActionSampler(ActionGenerator):
    """Samples actions uniformly from [-max_action, max_action], rounded to a grid."""

    def __init__(self, max_action: float = 1.0, decimals: int = 3):
        self.max_action = max_action
        self.decimals = decimals

    def next_action(self, state: float, node: NodeView, rng: np.random.Generator) -> float:
        return round(float(rng.uniform(-self.max_action, self.max_action)), self.decimals)
