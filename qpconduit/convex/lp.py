"""
Auxiliary linear programs for the active-set solver.

The active-set method needs a feasible starting point. It is obtained by
solving a linear program over the same constraints with SciPy's HiGHS dual
simplex, which returns a vertex together with its dual values. Two flavours
are used:

```
    feasibility:  minimize 0        s.t.  AE x = bE, AI x <= bI, x free
    linear:       minimize −cᵗx     s.t.  AE x = bE, AI x <= bI, x free
```

The linear flavour is the actual problem when Q is zero. Multipliers are
returned in the QP sign convention (``λ = −marginals``), so a positive
inequality multiplier marks a constraint that is active at the LP optimum.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.optimize import linprog

from ..logging import get_logger
from .core import State
from .problem import Problem

logger = get_logger(__name__)

_STATUS = {
    0: State.OPTIMAL,
    1: State.FAILED,
    2: State.INFEASIBLE,
    3: State.UNBOUNDED,
    4: State.FAILED,
}


@dataclass
class LPResult:
    """
    Outcome of an auxiliary LP.

    Attributes:
        state: OPTIMAL for the linear flavour, FEASIBLE for a feasibility
            solve that succeeded, otherwise a failure state.
        x: Primal vertex (``None`` unless the state is feasible).
        multipliers: ``[λE; λI]`` in the QP sign convention, when reported.
        nit: Simplex iterations reported by HiGHS.
        message: Solver message.
    """

    state: State
    x: Optional[np.ndarray]
    multipliers: Optional[np.ndarray]
    nit: int
    message: str


def solve_lp(problem: Problem, objective: bool, maxiter: int = 10_000) -> LPResult:
    """
    Solve the auxiliary LP for ``problem``.

    Args:
        problem: The QP whose constraints define the feasible region.
        objective: Use ``−c`` as objective (the true LP when Q is zero)
            instead of the zero objective.
        maxiter: Iteration limit passed to HiGHS.
    """

    n = problem.n
    cost = -problem.c if objective else np.zeros(n)

    res = linprog(
        c=cost,
        A_ub=problem.AI if problem.has_inequalities else None,
        b_ub=problem.bI if problem.has_inequalities else None,
        A_eq=problem.AE if problem.has_equalities else None,
        b_eq=problem.bE if problem.has_equalities else None,
        bounds=(None, None),
        method="highs-ds",
        options={"maxiter": maxiter},
    )

    state = _STATUS.get(res.status, State.FAILED)
    if state is State.OPTIMAL and not objective:
        state = State.FEASIBLE
    logger.debug("Auxiliary LP (objective=%s): %s - %s", objective, state.name, res.message)

    if not state.is_feasible():
        return LPResult(state=state, x=None, multipliers=None, nit=int(res.nit), message=res.message)

    multipliers = np.zeros(problem.m_eq + problem.m_ineq)
    eqlin = getattr(res, "eqlin", None)
    if problem.has_equalities and eqlin is not None:
        multipliers[: problem.m_eq] = -np.asarray(eqlin.marginals, dtype=float)
    ineqlin = getattr(res, "ineqlin", None)
    if problem.has_inequalities and ineqlin is not None:
        multipliers[problem.m_eq :] = -np.asarray(ineqlin.marginals, dtype=float)

    return LPResult(
        state=state,
        x=np.asarray(res.x, dtype=float),
        multipliers=multipliers,
        nit=int(res.nit),
        message=res.message,
    )


__all__ = ["LPResult", "solve_lp"]
