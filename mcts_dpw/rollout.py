"""
Default heuristics: random rollouts and random action generation.

These are used when the planner is configured without a custom value
estimator or action generator.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import numpy as np

from mcts_dpw.hooks import ActionGenerator, ValueEstimator, check_value
from mcts_dpw.model import MDP
from mcts_dpw.views import NodeView

Policy = Callable[[Any, np.random.Generator], Any]


def _legal_actions(mdp: MDP, state: Any) -> List[Any]:
    actions = list(mdp.actions(state))
    if not actions:
        raise ValueError(f"No legal actions at non-terminal state {state!r}")
    return actions


class RandomPolicy:
    """Chooses uniformly among the legal actions of the model."""

    def __init__(self, mdp: MDP):
        self.mdp = mdp

    def __call__(self, state: Any, rng: np.random.Generator) -> Any:
        actions = _legal_actions(self.mdp, state)
        return actions[int(rng.integers(len(actions)))]


@dataclass(frozen=True)
class RolloutSpec:
    """Configuration value selecting a rollout estimator."""

    policy: Optional[Policy] = None
    """Rollout policy, called as policy(state, rng); None means random"""

    horizon: Optional[int] = None
    """Maximum rollout length; None means the remaining search depth"""


class RolloutEstimator(ValueEstimator):
    """
    Estimates a leaf value with a simulated run of a simple policy.

    The rollout stops at a terminal state or after ``horizon`` steps
    (the remaining search depth when no horizon is set) and returns the
    discounted sum of rewards collected on the way.
    """

    def __init__(self, mdp: MDP, policy: Optional[Policy] = None, horizon: Optional[int] = None):
        if horizon is not None and horizon < 0:
            raise ValueError("horizon must be non-negative or None")
        self.mdp = mdp
        self.policy = policy or RandomPolicy(mdp)
        self.horizon = horizon

    def estimate(self, state: Any, remaining_depth: int, rng: np.random.Generator) -> float:
        max_steps = remaining_depth if self.horizon is None else self.horizon
        total = 0.0
        discount = 1.0
        steps = 0
        while steps < max_steps and not self.mdp.is_terminal(state):
            action = self.policy(state, rng)
            state, reward = self.mdp.step(state, action, rng)
            total += discount * check_value("rollout reward", reward)
            discount *= self.mdp.discount
            steps += 1
        return total

    def __repr__(self) -> str:
        return f"RolloutEstimator(policy={type(self.policy).__name__}, horizon={self.horizon})"


class RandomActionGenerator(ActionGenerator):
    """Proposes a uniformly random legal action, ignoring the tree."""

    def __init__(self, mdp: MDP):
        self.mdp = mdp

    def next_action(self, state: Any, node: NodeView, rng: np.random.Generator) -> Any:
        actions = _legal_actions(self.mdp, state)
        return actions[int(rng.integers(len(actions)))]
