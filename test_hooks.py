#!/usr/bin/env python
"""
Tests for heuristic hooks and the default rollout estimator.
"""
import math
import unittest

import numpy as np

from mcts_dpw.exceptions import HookContractError
from mcts_dpw.hooks import (
    ActionGenerator,
    ConstantEstimator,
    ConstantValue,
    FunctionActionGenerator,
    FunctionEstimator,
    FunctionValue,
    ValueEstimator,
    check_count,
    check_value,
    resolve_action_generator,
    resolve_initial_value,
    resolve_node_initializer,
    resolve_value_estimator,
)
from mcts_dpw.models import GridWorld
from mcts_dpw.rollout import RandomActionGenerator, RolloutEstimator, RolloutSpec


class DistanceHeuristic:
    """Heuristic object with an ``estimate`` method that keeps a call counter."""

    def __init__(self):
        self.calls = 0

    def estimate(self, state, remaining_depth, rng):
        self.calls += 1
        return -float(sum(state))


class TestContractChecks(unittest.TestCase):
    """Test case for hook return value checks."""

    def test_check_count(self):
        """Counts must be non-negative integers."""
        self.assertEqual(check_count("init_n", 3), 3)
        self.assertEqual(check_count("init_n", np.int64(4)), 4)
        for bad in (-1, 1.5, True, "3", None):
            with self.assertRaises(HookContractError):
                check_count("init_n", bad)

    def test_check_value(self):
        """Values must be finite reals."""
        self.assertEqual(check_value("init_q", 2), 2.0)
        self.assertEqual(check_value("init_q", np.float32(0.5)), 0.5)
        for bad in (math.nan, math.inf, -math.inf, False, "1.0", None):
            with self.assertRaises(HookContractError):
                check_value("init_q", bad)

    def test_error_names_the_hook(self):
        """The error message identifies the hook and the offending value."""
        with self.assertRaises(HookContractError) as ctx:
            check_value("estimate_value", "high")
        self.assertEqual(ctx.exception.hook, "estimate_value")
        self.assertIn("'high'", str(ctx.exception))


class TestResolution(unittest.TestCase):
    """Test case for resolving configuration values into hooks."""

    def setUp(self):
        """Set up test fixtures."""
        self.mdp = GridWorld(rewards={(4, 4): 10.0})
        self.rng = np.random.default_rng(0)

    def test_initial_value_variants(self):
        """Constants, functions and objects all resolve to InitialValue."""
        self.assertIsInstance(resolve_initial_value(5, "init_n"), ConstantValue)
        self.assertIsInstance(resolve_initial_value(lambda s, a: 1, "init_n"), FunctionValue)

        class Prior:
            def value(self, state, action):
                return 7.0

        resolved = resolve_initial_value(Prior(), "init_q")
        self.assertEqual(resolved.value((1, 1), "up"), 7.0)

        with self.assertRaises(TypeError):
            resolve_initial_value("five", "init_n")

    def test_node_initializer_uses_state_and_action(self):
        """Function hooks receive the state and the action."""
        initializer = resolve_node_initializer(
            lambda s, a: len(a),
            lambda s, a: float(s[0] * 10 + s[1]),
        )
        self.assertEqual(initializer.initialize((2, 3), "left"), (4, 23.0))

    def test_node_initializer_rejects_bad_values(self):
        """A negative initial count is a contract violation."""
        initializer = resolve_node_initializer(-1, 0.0)
        with self.assertRaises(HookContractError):
            initializer.initialize((1, 1), "up")

    def test_value_estimator_variants(self):
        """Every supported estimate_value form resolves to a ValueEstimator."""
        self.assertIsInstance(resolve_value_estimator(None, self.mdp), RolloutEstimator)
        self.assertIsInstance(resolve_value_estimator(RolloutSpec(horizon=3), self.mdp), RolloutEstimator)
        self.assertIsInstance(resolve_value_estimator(2, self.mdp), ConstantEstimator)
        self.assertIsInstance(resolve_value_estimator(lambda s, d: 0.0, self.mdp), FunctionEstimator)

        custom = ConstantEstimator(1.0)
        self.assertIs(resolve_value_estimator(custom, self.mdp), custom)

        with self.assertRaises(TypeError):
            resolve_value_estimator([1.0], self.mdp)

    def test_stateful_estimator_used_as_is(self):
        """Heuristic objects are called directly, never copied."""
        heuristic = DistanceHeuristic()
        estimator = resolve_value_estimator(heuristic, self.mdp)

        self.assertIsInstance(estimator, ValueEstimator)
        self.assertEqual(estimator.estimate((1, 2), 4, self.rng), -3.0)
        estimator.estimate((1, 1), 4, self.rng)
        self.assertEqual(heuristic.calls, 2)

    def test_function_estimator_receives_depth(self):
        """Function estimators are called with the remaining depth."""
        seen = []
        estimator = resolve_value_estimator(lambda s, d: seen.append(d) or 0.0, self.mdp)
        estimator.estimate((1, 1), 7, self.rng)
        self.assertEqual(seen, [7])

    def test_action_generator_variants(self):
        """Every supported next_action form resolves to an ActionGenerator."""
        self.assertIsInstance(resolve_action_generator(None, self.mdp), RandomActionGenerator)
        self.assertIsInstance(resolve_action_generator(lambda s, n: "up", self.mdp), FunctionActionGenerator)

        class Sampler:
            def next_action(self, state, node, rng):
                return "down"

        generator = resolve_action_generator(Sampler(), self.mdp)
        self.assertIsInstance(generator, ActionGenerator)
        self.assertEqual(generator.next_action((1, 1), None, self.rng), "down")

        with self.assertRaises(TypeError):
            resolve_action_generator(3, self.mdp)


class TestRollout(unittest.TestCase):
    """Test case for the rollout estimator."""

    def setUp(self):
        """Set up test fixtures."""
        self.mdp = GridWorld(rewards={(4, 4): 10.0})
        self.rng = np.random.default_rng(0)

    def test_single_step_into_goal(self):
        """A one-step rollout that enters the goal collects its reward."""
        estimator = RolloutEstimator(self.mdp, policy=lambda s, rng: "up", horizon=1)
        self.assertEqual(estimator.estimate((4, 3), 5, self.rng), 10.0)

    def test_zero_horizon(self):
        """A zero-length rollout is worth nothing."""
        estimator = RolloutEstimator(self.mdp, horizon=0)
        self.assertEqual(estimator.estimate((4, 3), 5, self.rng), 0.0)

    def test_discounted_return(self):
        """Rewards are discounted by their distance from the leaf."""
        estimator = RolloutEstimator(self.mdp, policy=lambda s, rng: "up")
        # (4, 1) -> (4, 2) -> (4, 3) -> (4, 4): goal on the third step
        self.assertAlmostEqual(estimator.estimate((4, 1), 10, self.rng), 10.0 * 0.95 ** 2)

    def test_horizon_defaults_to_remaining_depth(self):
        """Without a horizon the rollout stops at the remaining search depth."""
        estimator = RolloutEstimator(self.mdp, policy=lambda s, rng: "up")
        self.assertEqual(estimator.estimate((4, 1), 2, self.rng), 0.0)

    def test_terminal_leaf(self):
        """A rollout from a terminal state collects nothing."""
        estimator = RolloutEstimator(self.mdp)
        self.assertEqual(estimator.estimate((4, 4), 10, self.rng), 0.0)

    def test_random_policy_is_reproducible(self):
        """The same seed gives the same rollout value."""
        estimator = RolloutEstimator(self.mdp)
        a = estimator.estimate((1, 1), 20, np.random.default_rng(7))
        b = estimator.estimate((1, 1), 20, np.random.default_rng(7))
        self.assertEqual(a, b)

    def test_negative_horizon_rejected(self):
        with self.assertRaises(ValueError):
            RolloutEstimator(self.mdp, horizon=-1)


if __name__ == "__main__":
    unittest.main()
