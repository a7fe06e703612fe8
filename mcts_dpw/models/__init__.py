"""Reference models used by the tests and the demo script."""

from mcts_dpw.models.grid_world import GridWorld
from mcts_dpw.models.continuous import LinearDynamics1D, UniformActionSampler

__all__ = [
    'GridWorld',
    'LinearDynamics1D',
    'UniformActionSampler',
]
