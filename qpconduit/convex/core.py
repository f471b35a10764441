"""
Core state, result and option types for the convex QP engine.

Problems have the form

```
    minimize    ½ xᵗQx − cᵗx
    subject to  AE x  = bE
                AI x <= bI
```

and multipliers follow the convention ``Qx − c + AEᵗλE + AIᵗλI = 0``, so
inequality multipliers are nonnegative at an optimum. The multiplier
vector is laid out as ``[λE; λI]`` with ``λI`` aligned to the original
inequality indexing.

References:
    - Nocedal & Wright, *Numerical Optimization* (2006), Chapter 16
    - Goldfarb & Idnani, *A numerically stable dual method for solving
      strictly convex quadratic programs* (1983)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np

STRATEGIES = ("iterative", "direct")


class QPValidationError(ValueError):
    """Raised when strict validation rejects a numerically invalid problem."""


class State(Enum):
    """Solver state, ordered from failure to success."""

    UNEXPLORED = "unexplored"
    VALID = "valid"
    INVALID = "invalid"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    FAILED = "failed"
    APPROXIMATE = "approximate"
    FEASIBLE = "feasible"
    OPTIMAL = "optimal"
    DISTINCT = "distinct"

    def is_failure(self) -> bool:
        return self in _FAILURES

    def is_approximate(self) -> bool:
        """True for APPROXIMATE and every feasible state."""
        return self is State.APPROXIMATE or self.is_feasible()

    def is_feasible(self) -> bool:
        return self in (State.FEASIBLE, State.OPTIMAL, State.DISTINCT)

    def is_optimal(self) -> bool:
        return self in (State.OPTIMAL, State.DISTINCT)


_FAILURES = frozenset({State.INVALID, State.INFEASIBLE, State.UNBOUNDED, State.FAILED})


@dataclass(frozen=True)
class SolverOptions:
    """
    Configuration shared by all solvers.

    Args:
        iterations_limit: Maximum number of iterations; the only runtime bound.
        feasibility: Absolute tolerance on constraint slacks.
        solution: Relative tolerance below which a step counts as negligible.
        accuracy: Tolerance for ratio-test, multiplier-sign and tightness
            comparisons, and the relative pivot size below which a
            factorization counts as singular.
        iterative_tolerance: Relative residual targeted by the conjugate
            gradient solve of the Schur-complement system. Its absolute
            residual must also stay below ``feasibility``.
        small_diagonal: Relative size of the diagonal perturbation added to Q
            when its Cholesky factorization fails.
        strategy: Per-iteration solve strategy, "iterative" or "direct".
        validate: Turn numerical warnings (asymmetric or indefinite Q, rank
            deficient constraints, infeasible iterates) into
            :class:`QPValidationError`.
        keep_history: Record every accepted iterate in the result.
    """

    iterations_limit: int = 1000
    feasibility: float = 1e-8
    solution: float = 1e-12
    accuracy: float = 1e-9
    iterative_tolerance: float = 1e-9
    small_diagonal: float = 1e-10
    strategy: str = "iterative"
    validate: bool = False
    keep_history: bool = False

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ValueError(
                f"Unsupported strategy '{self.strategy}'. Supported strategies: {list(STRATEGIES)}"
            )
        if self.iterations_limit < 1:
            raise ValueError("iterations_limit must be positive")


@dataclass
class OptimizeResult:
    """
    Solution container returned by every solver.

    Attributes:
        x: Primal solution vector.
        fun: Objective value ``½ xᵗQx − cᵗx`` at ``x``.
        state: Authoritative solver state; check it before trusting ``x``.
        message: Human-readable string explaining the state.
        nit: Number of iterations performed.
        multipliers: Lagrange multipliers ``[λE; λI]`` (or ``None``).
        history: Accepted iterates when ``keep_history`` was requested.
    """

    x: np.ndarray
    fun: float
    state: State
    message: str
    nit: int
    multipliers: Optional[np.ndarray] = None
    history: List[np.ndarray] = field(default_factory=list)


def is_zero(value: float, eps: float) -> bool:
    return abs(value) <= eps


def is_small(compared_to: float, value: float, eps: float) -> bool:
    """Return True if ``value`` is negligible relative to ``compared_to``."""
    if compared_to == 0.0:
        return is_zero(value, eps)
    return abs(value) <= eps * abs(compared_to)


def largest(vector: np.ndarray) -> float:
    """Largest absolute element, 0.0 for an empty array."""
    return float(np.max(np.abs(vector))) if vector.size else 0.0


__all__ = [
    "STRATEGIES",
    "QPValidationError",
    "State",
    "SolverOptions",
    "OptimizeResult",
    "is_zero",
    "is_small",
    "largest",
]
