"""
A small grid world with deterministic or slippery moves.

States are (x, y) tuples with 1 <= x <= width and 1 <= y <= height. Moving
into a wall leaves the agent in place. Entering a reward cell pays its reward
and ends the episode.
"""
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from mcts_dpw.exceptions import InvalidStateError
from mcts_dpw.model import MDP

State = Tuple[int, int]

ACTIONS: Tuple[str, ...] = ("up", "down", "left", "right")
MOVES: Dict[str, Tuple[int, int]] = {
    "up": (0, 1),
    "down": (0, -1),
    "left": (-1, 0),
    "right": (1, 0),
}


class GridWorld(MDP):
    """
    Grid world MDP.

    Args:
        width: Number of columns
        height: Number of rows
        rewards: Reward paid on entering a cell; those cells are terminal
        slip_probability: Chance that a random other move happens instead
        discount: Discount factor
    """

    def __init__(
        self,
        width: int = 4,
        height: int = 4,
        rewards: Optional[Dict[State, float]] = None,
        slip_probability: float = 0.0,
        discount: float = 0.95,
    ):
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be positive")
        if not 0 <= slip_probability <= 1:
            raise ValueError("slip_probability must be between 0 and 1")
        if not 0 <= discount <= 1:
            raise ValueError("discount must be between 0 and 1")

        self.width = width
        self.height = height
        self.rewards = dict(rewards or {})
        self.slip_probability = slip_probability
        self.discount = discount

        for cell in self.rewards:
            if not self.is_valid_state(cell):
                raise ValueError(f"Reward cell {cell} is outside the grid")

    def is_valid_state(self, state) -> bool:
        return (
            isinstance(state, tuple)
            and len(state) == 2
            and 1 <= state[0] <= self.width
            and 1 <= state[1] <= self.height
        )

    def is_terminal(self, state: State) -> bool:
        return state in self.rewards

    def actions(self, state: State) -> Iterable[str]:
        return ACTIONS

    def step(self, state: State, action: str, rng: np.random.Generator) -> Tuple[State, float]:
        if not self.is_valid_state(state):
            raise InvalidStateError(state, "outside the grid")
        if action not in MOVES:
            raise InvalidStateError(state, f"unknown action {action!r}")

        if self.slip_probability > 0 and rng.random() < self.slip_probability:
            others = [a for a in ACTIONS if a != action]
            action = others[int(rng.integers(len(others)))]

        dx, dy = MOVES[action]
        x = min(max(state[0] + dx, 1), self.width)
        y = min(max(state[1] + dy, 1), self.height)
        next_state = (x, y)
        return next_state, self.rewards.get(next_state, 0.0)

    def __repr__(self) -> str:
        return (f"GridWorld({self.width}x{self.height}, "
                f"rewards={self.rewards}, "
                f"slip={self.slip_probability})")
