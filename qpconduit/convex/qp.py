"""
Quadratic programming entry points.

:func:`new_solver` picks the solver variant for a :class:`Problem` once, at
construction time:

```
    inequalities present  →  IterativeActiveSetSolver ("iterative", default)
                             DirectActiveSetSolver    ("direct")
    equalities only       →  EqualityConstrainedSolver
    no constraints        →  UnconstrainedSolver
```

:func:`active_set_qp` builds the problem, dispatches and solves in one call.
Variable bounds are accepted there and converted to inequality rows.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .core import OptimizeResult, SolverOptions
from .direct import DirectActiveSetSolver
from .iterative import IterativeActiveSetSolver
from .problem import Problem, _matrix, _vector, build_problem
from .solver import BaseSolver, EqualityConstrainedSolver, UnconstrainedSolver

_ACTIVE_SET_SOLVERS = {
    "iterative": IterativeActiveSetSolver,
    "direct": DirectActiveSetSolver,
}


def new_solver(problem: Problem, options: Optional[SolverOptions] = None) -> BaseSolver:
    """Create the solver matching the constraint structure of ``problem``."""

    options = options if options is not None else SolverOptions()
    if problem.has_inequalities:
        solver_cls: type = _ACTIVE_SET_SOLVERS[options.strategy]
        return solver_cls(problem, options)
    if problem.has_equalities:
        return EqualityConstrainedSolver(problem, options)
    return UnconstrainedSolver(problem, options)


def _bound_rows(
    n: int,
    lb: Optional[np.ndarray],
    ub: Optional[np.ndarray],
) -> Tuple[np.ndarray, np.ndarray]:
    rows = []
    rhs = []
    for bound, sign in ((lb, -1.0), (ub, 1.0)):
        if bound is None:
            continue
        vec = np.asarray(bound, dtype=float).reshape(-1)
        if vec.shape[0] != n:
            raise ValueError(f"Bound vector must have {n} elements, got {vec.shape[0]}")
        mask = np.isfinite(vec)
        if np.any(mask):
            rows.append(sign * np.eye(n)[mask])
            rhs.append(sign * vec[mask])
    if not rows:
        return np.zeros((0, n)), np.zeros(0)
    return np.vstack(rows), np.concatenate(rhs)


def active_set_qp(
    Q=None,
    c=None,
    AE=None,
    bE=None,
    AI=None,
    bI=None,
    options: Optional[SolverOptions] = None,
    warm_start: Optional[OptimizeResult] = None,
    lb: Optional[np.ndarray] = None,
    ub: Optional[np.ndarray] = None,
) -> OptimizeResult:
    """
    Solve ``min ½ xᵗQx − cᵗx`` s.t. ``AE x = bE``, ``AI x <= bI``,
    ``lb <= x <= ub``.

    Bounds are appended after the rows of ``AI`` (lower bounds first), so
    the leading inequality multipliers keep the indexing of ``AI``.
    Infinite bound entries are ignored.

    Args:
        Q, c, AE, bE, AI, bI: Problem data, see :func:`build_problem`.
        options: Solver configuration; defaults to :class:`SolverOptions`.
        warm_start: A previous result for the same problem dimensions.
        lb, ub: Optional variable bounds.

    Returns:
        OptimizeResult whose ``state`` tells how far the solve got.
    """

    if lb is not None or ub is not None:
        n = np.asarray(c).size if Q is None else np.shape(Q)[0]
        g_bounds, h_bounds = _bound_rows(n, lb, ub)
        if g_bounds.shape[0]:
            if AI is None and bI is None:
                AI, bI = g_bounds, h_bounds
            elif AI is not None and bI is not None:
                ai = _matrix(AI, n, "AI")
                AI = np.vstack([ai, g_bounds])
                bI = np.concatenate([_vector(bI, ai.shape[0], "bI"), h_bounds])

    problem = build_problem(Q, c, AE, bE, AI, bI)
    solver = new_solver(problem, options)
    return solver.solve(warm_start)


__all__ = ["new_solver", "active_set_qp"]
