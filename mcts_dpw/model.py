"""
Model adapter interface for the planner.

The planner never looks inside states or actions. Everything it knows about
the problem comes through the MDP base class defined here: a generative step
function, a terminal test, a discount factor and, where plain MCTS needs it,
the list of legal actions.
"""
from abc import ABC, abstractmethod
from typing import Any, Iterable, Tuple

import numpy as np


class MDP(ABC):
    """
    Abstract base class for a Markov Decision Process used by the planner.

    Subclasses supply the transition/reward model. The random source is
    always passed in explicitly so that search results are reproducible
    for a fixed seed.
    """

    discount: float = 0.95
    """Discount factor applied to future rewards, in [0, 1]"""

    @abstractmethod
    def step(self, state: Any, action: Any, rng: np.random.Generator) -> Tuple[Any, float]:
        """
        Sample a successor state and reward.

        Args:
            state: Current state
            action: Action taken in the current state
            rng: Random number generator owned by the caller

        Returns:
            Tuple of (next state, reward)
        """
        pass

    @abstractmethod
    def is_terminal(self, state: Any) -> bool:
        """
        Check whether a state ends the episode.

        Args:
            state: State to check

        Returns:
            True if no further actions can be taken
        """
        pass

    def actions(self, state: Any) -> Iterable[Any]:
        """
        Get the legal actions in a state.

        Required for plain MCTS, for the default rollout policy and for the
        default action generator. Continuous problems driven entirely by a
        custom action generator may leave it unimplemented.

        Args:
            state: State to query

        Returns:
            Finite iterable of actions
        """
        raise NotImplementedError(
            f"{type(self).__name__} does not enumerate actions; "
            "configure a next_action generator and a value estimator instead"
        )

    def is_valid_state(self, state: Any) -> bool:
        """
        Check whether a state is well formed for this model.

        Args:
            state: State to check

        Returns:
            True if the planner may build a node for this state
        """
        return True
