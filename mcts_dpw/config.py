"""
Configuration for Monte Carlo Tree Search (MCTS) planners.

This module defines the configuration parameters for plain MCTS and for its
Double Progressive Widening (DPW) variant, including the search budget,
exploration constant, widening parameters and heuristic hooks.
"""
from dataclasses import dataclass, fields
from typing import Any, Callable, ClassVar, Literal, Optional
import math
import time


@dataclass
class MCTSConfig:
    """
    Configuration parameters for plain Monte Carlo Tree Search.

    Every legal action is expanded the first time a node is selected and
    successor states are never widened: plain MCTS needs a finite action set
    and hashable states.
    """
    # Search parameters
    n_iterations: int = 100
    """Number of simulations to run per planning call"""

    depth: int = 10
    """Maximum lookahead depth of a simulation"""

    exploration_constant: float = 1.0
    """UCB exploration constant c"""

    max_time: Optional[float] = None
    """Optional wall-clock budget in seconds (None = no limit)"""

    # Heuristic hooks
    init_n: Any = 0
    """Initial visit count of a new edge: constant, function(state, action) or object"""

    init_q: Any = 0.0
    """Initial value of a new edge: constant, function(state, action) or object"""

    estimate_value: Any = None
    """Leaf value: None (random rollout), constant, function(state, depth), RolloutSpec or object"""

    estimate_terminal: bool = False
    """Whether terminal states are valued with estimate_value instead of 0"""

    # Final action selection
    final_criterion: Literal["q", "n"] = "q"
    """Pick the root action with the highest value ('q') or visit count ('n')"""

    # Tree handling
    reuse_tree: bool = False
    """Keep the subtree rooted at the next planning state between calls"""

    tree_in_info: bool = False
    """Whether action_info includes a snapshot of the tree"""

    # Reproducibility and bookkeeping
    seed: Optional[int] = None
    """Seed of the planner's random source (None = fresh entropy)"""

    timer: Callable[[], float] = time.time
    """Clock used for the time budget, in seconds"""

    reset_callback: Optional[Callable[[Any, Any], None]] = None
    """Called as reset_callback(mdp, state) before every simulation"""

    show_progress: bool = False
    """Display a progress bar while searching"""

    # Constants
    INFINITE_VALUE: ClassVar[float] = float('inf')
    """Value representing infinity in the algorithm"""

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.n_iterations < 0:
            raise ValueError("n_iterations must be non-negative")

        if self.depth < 0:
            raise ValueError("depth must be non-negative")

        if self.exploration_constant < 0:
            raise ValueError("exploration_constant must be non-negative")

        if self.max_time is not None and self.max_time < 0:
            raise ValueError("max_time must be non-negative or None")

        if self.final_criterion not in ("q", "n"):
            raise ValueError("final_criterion must be 'q' or 'n'")

        if self.reset_callback is not None and not callable(self.reset_callback):
            raise ValueError("reset_callback must be callable or None")

        if not callable(self.timer):
            raise ValueError("timer must be callable")

    @classmethod
    def default(cls) -> 'MCTSConfig':
        """
        Get the default configuration.

        Returns:
            Default configuration object
        """
        return cls()

    @classmethod
    def fast(cls) -> 'MCTSConfig':
        """
        Get a configuration optimized for speed (fewer iterations).

        Returns:
            Fast configuration object
        """
        return cls(
            n_iterations=50,
            depth=5,
        )

    @classmethod
    def deep(cls) -> 'MCTSConfig':
        """
        Get a configuration optimized for deep search.

        Returns:
            Deep configuration object
        """
        return cls(
            n_iterations=2000,
            depth=50,
            exploration_constant=math.sqrt(2),
            final_criterion="n",  # Visit counts are more robust with many iterations
        )

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'MCTSConfig':
        """
        Create a configuration from a dictionary.

        Args:
            config_dict: Dictionary of configuration parameters

        Returns:
            Configuration object
        """
        # Filter out any keys that aren't valid parameters
        valid_params = {k: v for k, v in config_dict.items()
                       if k in cls.__dataclass_fields__}
        return cls(**valid_params)

    def to_dict(self) -> dict:
        """
        Convert the configuration to a dictionary.

        Returns:
            Dictionary of configuration parameters
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __str__(self) -> str:
        """
        Get a human-readable string representation.

        Returns:
            String representation
        """
        params = []
        for name, value in self.to_dict().items():
            if callable(value) and not isinstance(value, type):
                value = getattr(value, "__name__", type(value).__name__)
            params.append(f"{name}={value}")

        return f"{type(self).__name__}({', '.join(params)})"


@dataclass
class DPWConfig(MCTSConfig):
    """
    Configuration parameters for MCTS with Double Progressive Widening.

    A node with N visits may hold at most max(1, floor(k_action * N^alpha_action))
    actions, and an edge with N visits at most max(1, floor(k_state * N^alpha_state))
    distinct outcomes.
    """
    k_action: float = 10.0
    """Action widening constant"""

    alpha_action: float = 0.5
    """Action widening exponent, in [0, 1]"""

    k_state: float = 10.0
    """State widening constant"""

    alpha_state: float = 0.5
    """State widening exponent, in [0, 1]"""

    enable_action_pw: bool = True
    """If False, every legal action is expanded when a node is first selected"""

    enable_state_pw: bool = True
    """If False, each action keeps the first outcome it realized and reuses it on later visits"""

    next_action: Any = None
    """New-action hook: None (random legal action), function(state, node_view) or object"""

    max_action_retries: int = 10
    """Extra next_action calls allowed when the proposed action already exists"""

    check_repeat_state: bool = True
    """Whether equal states share one node (requires hashable states)"""

    def __post_init__(self):
        """Validate configuration parameters."""
        super().__post_init__()

        if self.k_action <= 0 or self.k_state <= 0:
            raise ValueError("k_action and k_state must be positive")

        if not 0 <= self.alpha_action <= 1 or not 0 <= self.alpha_state <= 1:
            raise ValueError("alpha_action and alpha_state must be between 0 and 1")

        if self.max_action_retries < 0:
            raise ValueError("max_action_retries must be non-negative")

    @classmethod
    def fast(cls) -> 'DPWConfig':
        return cls(n_iterations=50, depth=5, k_action=4.0, k_state=2.0)

    @classmethod
    def deep(cls) -> 'DPWConfig':
        return cls(
            n_iterations=2000,
            depth=50,
            exploration_constant=math.sqrt(2),
            final_criterion="n",
        )
