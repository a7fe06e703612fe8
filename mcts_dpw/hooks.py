"""
Heuristic hooks used by the search engine.

There are three extension points, each behind a single-method interface:

1. InitialValue / NodeInitializer: seed the visit count and value of a new
   state-action edge.
2. ValueEstimator: estimate the value of a leaf state.
3. ActionGenerator: propose a new action when progressive widening allows one.

Configuration values may be a constant, a plain function or an object
implementing the method. They are resolved once, when the planner is built,
into one of the adaptor classes below so the engine only ever calls the
interface method.
"""
from __future__ import annotations

import math
import numbers
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Tuple

import numpy as np

from mcts_dpw.exceptions import HookContractError

if TYPE_CHECKING:
    from mcts_dpw.model import MDP
    from mcts_dpw.views import NodeView


def check_count(hook: str, value: Any) -> int:
    """Validate a visit count returned by a hook."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise HookContractError(hook, value, "a non-negative integer")
    if value < 0:
        raise HookContractError(hook, value, "a non-negative integer")
    return int(value)


def check_value(hook: str, value: Any) -> float:
    """Validate a real value returned by a hook."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise HookContractError(hook, value, "a finite real number")
    value = float(value)
    if not math.isfinite(value):
        raise HookContractError(hook, value, "a finite real number")
    return value


# ---------------------------------------------------------------------------
# Node initialization
# ---------------------------------------------------------------------------

class InitialValue(ABC):
    """Supplies the initial N or Q of a new state-action edge."""

    @abstractmethod
    def value(self, state: Any, action: Any) -> Any:
        pass


class ConstantValue(InitialValue):
    def __init__(self, constant: Any):
        self.constant = constant

    def value(self, state: Any, action: Any) -> Any:
        return self.constant

    def __repr__(self) -> str:
        return f"ConstantValue({self.constant!r})"


class FunctionValue(InitialValue):
    def __init__(self, fn: Callable[[Any, Any], Any]):
        self.fn = fn

    def value(self, state: Any, action: Any) -> Any:
        return self.fn(state, action)


class NodeInitializer:
    """
    Combines an init_N and an init_Q source into one (N0, Q0) hook.

    Returned values are checked here, so a misbehaving hook surfaces as a
    HookContractError instead of silently corrupting the statistics.
    """

    def __init__(self, init_n: InitialValue, init_q: InitialValue):
        self.init_n = init_n
        self.init_q = init_q

    def initialize(self, state: Any, action: Any) -> Tuple[int, float]:
        n0 = check_count("init_n", self.init_n.value(state, action))
        q0 = check_value("init_q", self.init_q.value(state, action))
        return n0, q0


# ---------------------------------------------------------------------------
# Leaf value estimation
# ---------------------------------------------------------------------------

class ValueEstimator(ABC):
    """Estimates the value of a state reached at the edge of the tree."""

    @abstractmethod
    def estimate(self, state: Any, remaining_depth: int, rng: np.random.Generator) -> float:
        pass


class ConstantEstimator(ValueEstimator):
    def __init__(self, constant: float):
        self.constant = constant

    def estimate(self, state: Any, remaining_depth: int, rng: np.random.Generator) -> float:
        return self.constant

    def __repr__(self) -> str:
        return f"ConstantEstimator({self.constant!r})"


class FunctionEstimator(ValueEstimator):
    def __init__(self, fn: Callable[[Any, int], float]):
        self.fn = fn

    def estimate(self, state: Any, remaining_depth: int, rng: np.random.Generator) -> float:
        return self.fn(state, remaining_depth)


class _MethodEstimator(ValueEstimator):
    """Wraps a heuristic object that has an ``estimate`` method but does not subclass ValueEstimator."""

    def __init__(self, obj: Any):
        self.obj = obj

    def estimate(self, state: Any, remaining_depth: int, rng: np.random.Generator) -> float:
        return self.obj.estimate(state, remaining_depth, rng)


# ---------------------------------------------------------------------------
# Next-action selection
# ---------------------------------------------------------------------------

class ActionGenerator(ABC):
    """Proposes a new action to add at a state node during action widening."""

    @abstractmethod
    def next_action(self, state: Any, node: NodeView, rng: np.random.Generator) -> Any:
        pass


class FunctionActionGenerator(ActionGenerator):
    def __init__(self, fn: Callable[[Any, NodeView], Any]):
        self.fn = fn

    def next_action(self, state: Any, node: NodeView, rng: np.random.Generator) -> Any:
        return self.fn(state, node)


class _MethodActionGenerator(ActionGenerator):
    def __init__(self, obj: Any):
        self.obj = obj

    def next_action(self, state: Any, node: NodeView, rng: np.random.Generator) -> Any:
        return self.obj.next_action(state, node, rng)


# ---------------------------------------------------------------------------
# Resolution of configuration values
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def resolve_initial_value(option: Any, name: str) -> InitialValue:
    """
    Turn an init_n / init_q configuration value into an InitialValue.

    Args:
        option: Constant, function(state, action) or object with a ``value`` method
        name: Configuration field name, used in error messages

    Returns:
        InitialValue implementation
    """
    if isinstance(option, InitialValue):
        return option
    if _is_number(option):
        return ConstantValue(option)
    if callable(getattr(option, "value", None)):
        return FunctionValue(option.value)
    if callable(option):
        return FunctionValue(option)
    raise TypeError(f"{name} must be a number, a function or an InitialValue, got {option!r}")


def resolve_node_initializer(init_n: Any, init_q: Any) -> NodeInitializer:
    return NodeInitializer(
        resolve_initial_value(init_n, "init_n"),
        resolve_initial_value(init_q, "init_q"),
    )


def resolve_value_estimator(option: Any, mdp: MDP) -> ValueEstimator:
    """
    Turn an estimate_value configuration value into a ValueEstimator.

    None selects a random-policy rollout; a RolloutSpec selects a rollout
    with the given policy and horizon.

    Args:
        option: None, constant, function(state, depth), RolloutSpec or heuristic object
        mdp: Model used by rollouts

    Returns:
        ValueEstimator implementation
    """
    from mcts_dpw.rollout import RolloutEstimator, RolloutSpec

    if option is None:
        return RolloutEstimator(mdp)
    if isinstance(option, ValueEstimator):
        return option
    if isinstance(option, RolloutSpec):
        return RolloutEstimator(mdp, policy=option.policy, horizon=option.horizon)
    if _is_number(option):
        return ConstantEstimator(float(option))
    if callable(getattr(option, "estimate", None)):
        return _MethodEstimator(option)
    if callable(option):
        return FunctionEstimator(option)
    raise TypeError(f"estimate_value must be a number, a function, a RolloutSpec or a ValueEstimator, got {option!r}")


def resolve_action_generator(option: Any, mdp: MDP) -> ActionGenerator:
    """
    Turn a next_action configuration value into an ActionGenerator.

    None selects uniform sampling over ``mdp.actions(state)``.

    Args:
        option: None, function(state, node_view) or heuristic object
        mdp: Model used by the default generator

    Returns:
        ActionGenerator implementation
    """
    from mcts_dpw.rollout import RandomActionGenerator

    if option is None:
        return RandomActionGenerator(mdp)
    if isinstance(option, ActionGenerator):
        return option
    if callable(getattr(option, "next_action", None)):
        return _MethodActionGenerator(option)
    if callable(option):
        return FunctionActionGenerator(option)
    raise TypeError(f"next_action must be a function or an ActionGenerator, got {option!r}")

