"""Exception classes raised by the planner."""

from __future__ import annotations

from typing import Any


class PlanningError(Exception):
    """Base exception for all planner errors."""


class InvalidStateError(PlanningError):
    """Raised when the model rejects a state or a state/action pair."""

    def __init__(self, state: Any, reason: str = "state rejected by the model") -> None:
        self.state = state
        self.reason = reason
        super().__init__(f"Invalid state {state!r}: {reason}")


class NoActionAvailableError(PlanningError):
    """Raised when the root node has no expanded actions to choose from."""

    def __init__(self, state: Any, message: str = "") -> None:
        self.state = state
        super().__init__(message or f"No action available at state {state!r}")


class BudgetExhaustedEarly(NoActionAvailableError):
    """Raised when the deadline passed before the first iteration completed.

    Not a failure of the search itself; the caller is expected to fall back
    to a default action.
    """

    def __init__(self, state: Any, max_time: float) -> None:
        self.max_time = max_time
        super().__init__(
            state,
            f"Time budget of {max_time}s exhausted before any iteration at state {state!r}",
        )


class HookContractError(PlanningError):
    """Raised when a heuristic hook returns a value of the wrong shape or type."""

    def __init__(self, hook: str, value: Any, expected: str) -> None:
        self.hook = hook
        self.value = value
        self.expected = expected
        super().__init__(f"{hook} returned {value!r}; expected {expected}")


__all__ = [
    "BudgetExhaustedEarly",
    "HookContractError",
    "InvalidStateError",
    "NoActionAvailableError",
    "PlanningError",
]
