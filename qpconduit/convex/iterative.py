"""
Iterative active-set strategy.

The Schur complement ``S = A Q⁻¹ Aᵗ`` of the active rows is maintained
incrementally: including a constraint computes one new row/column against
the rows already present, excluding one just drops its key. The system

```
    S λ = A Q⁻¹ c − b,        x = Q⁻¹ c − Q⁻¹ Aᵗ λ
```

is then solved by conjugate gradients, warm started from the previous
multipliers. The full KKT system is factorized instead when Q is not
positive definite or CG misses its tolerance, with the dense Schur
complement as a last resort. The CG residual is the violation of the
active rows, so it must also stay below the feasibility tolerance unless Q
was perturbed, in which case the Schur complement only supplies a
direction.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.sparse.linalg import cg

from ..logging import get_logger
from .active_set import ActiveSetSolver
from .core import SolverOptions, largest
from .linalg import CholeskySolver
from .problem import Problem

logger = get_logger(__name__)


class SchurComplementSystem:
    """
    Incrementally maintained Schur complement over a fixed pool of rows.

    Keys index the stacked rows ``[AE; AI]``, which is also the layout of the
    multiplier vector, so ``λ[key]`` belongs to row ``key``. Buffers are
    sized for the whole pool up front; only the active keys take part in a
    solve.

    The residual ``S λ − (A Q⁻¹ c − b)`` equals ``A x − b`` for the primal
    point built from ``λ``, so the ``feasibility`` bound of :meth:`resolve`
    limits the violation of the active rows directly.
    """

    def __init__(
        self,
        rows: np.ndarray,
        rhs: np.ndarray,
        solver_q: CholeskySolver,
        tolerance: float,
    ) -> None:
        dim, n = rows.shape
        self._rows = rows
        self._b = rhs
        self._solver_q = solver_q
        self._tolerance = tolerance

        self._body = np.zeros((dim, dim))
        self._columns = np.zeros((dim, n))
        self._rhs = np.zeros(dim)
        self._active = np.zeros(dim, dtype=bool)

    @property
    def keys(self) -> np.ndarray:
        return np.flatnonzero(self._active)

    def clear(self) -> None:
        self._active[:] = False

    def add(self, key: int, inv_q_c: np.ndarray) -> None:
        row = self._rows[key]
        column = self._solver_q.solve(row)
        self._columns[key] = column

        keys = self.keys
        if keys.size:
            values = self._rows[keys] @ column
            self._body[keys, key] = values
            self._body[key, keys] = values
        self._body[key, key] = row @ column
        self._rhs[key] = row @ inv_q_c - self._b[key]
        self._active[key] = True

    def remove(self, key: int, multipliers: np.ndarray) -> None:
        self._active[key] = False
        multipliers[key] = 0.0

    def resolve(self, multipliers: np.ndarray, feasibility: float = np.inf) -> float:
        """
        Solve for the active multipliers in place, warm started from their
        current values.

        CG stops once the residual is below both ``tolerance`` relative to
        the right-hand side and ``feasibility``.

        Returns:
            Relative residual of the solution, ``inf`` if CG did not reach
            the tolerance or the active rows are violated by more than
            ``feasibility`` (the multipliers are then left untouched).
        """

        keys = self.keys
        if not keys.size:
            return 0.0

        body = self._body[np.ix_(keys, keys)]
        rhs = self._rhs[keys]
        scale = float(np.linalg.norm(rhs))
        solution, info = cg(
            body,
            rhs,
            x0=multipliers[keys],
            rtol=0.0,
            atol=min(self._tolerance * scale, feasibility),
            maxiter=10 * keys.size,
        )
        if info != 0:
            return float("inf")

        residual = body @ solution - rhs
        if largest(residual) > feasibility:
            logger.debug("Schur complement violation %g above feasibility", largest(residual))
            return float("inf")

        multipliers[keys] = solution
        error = float(np.linalg.norm(residual))
        return error / scale if scale > 0.0 else error

    def primal(self, inv_q_c: np.ndarray, multipliers: np.ndarray) -> np.ndarray:
        keys = self.keys
        return inv_q_c - self._columns[keys].T @ multipliers[keys]


class IterativeActiveSetSolver(ActiveSetSolver):
    """Active-set solver with an incrementally updated Schur complement."""

    def __init__(self, problem: Problem, options: Optional[SolverOptions] = None) -> None:
        super().__init__(problem, options)
        self._system = SchurComplementSystem(
            np.vstack([problem.AE, problem.AI]),
            np.concatenate([problem.bE, problem.bI]),
            self._solver_q,
            self.options.iterative_tolerance,
        )

    def _include(self, index: int) -> None:
        super()._include(index)
        if self._solver_q.is_solvable():
            self._system.add(self.problem.m_eq + index, self._inv_q_c)

    def _exclude(self, index: int) -> None:
        super()._exclude(index)
        self._system.remove(self.problem.m_eq + index, self._multipliers)

    def _reset_working_set(self, seed: Optional[np.ndarray]) -> None:
        self._system.clear()
        if self._solver_q.is_solvable():
            for key in range(self.problem.m_eq):
                self._system.add(key, self._inv_q_c)
        super()._reset_working_set(seed)

    def _solve_iteration(self, included: np.ndarray) -> bool:
        for attempt in self._ordered(self._solve_incremental, self._solve_full):
            if attempt(included):
                return True
        return False

    def _solve_incremental(self, included: np.ndarray) -> bool:
        if self.problem.m_eq + included.size > self.problem.n or not self._solver_q.is_solvable():
            return False

        feasibility = np.inf if self._patched_q else self.options.feasibility
        error = self._system.resolve(self._multipliers, feasibility)
        logger.debug("Schur complement relative residual %g", error)
        if not np.isfinite(error):
            return False

        self._iteration_x[:] = self._system.primal(self._inv_q_c, self._multipliers)
        return True

    def _solve_full(self, included: np.ndarray) -> bool:
        """Full KKT factorization, then the dense Schur complement."""
        a_mat, b_vec = self._iteration_rows(included)
        for attempt in (self._solve_full_kkt, self._solve_schur):
            solution = attempt(a_mat, b_vec)
            if solution is not None:
                x, lam = solution
                self._iteration_x[:] = x
                self._assign_multipliers(included, lam)
                return True
        return False


__all__ = ["SchurComplementSystem", "IterativeActiveSetSolver"]
