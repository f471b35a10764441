"""
Solver plumbing shared by every QP solver variant.

:class:`BaseSolver` owns the solution buffers, the cached factorizations of
Q, the iteration counter and the solve loop

```
    initialise → perform_iteration → (while allowed and needed) → build_result
```

Concrete solvers define ``_perform_iteration`` and
``_needs_another_iteration``. :class:`UnconstrainedSolver` and
:class:`EqualityConstrainedSolver` are one-shot specializations; the
active-set solvers build on :class:`ConstrainedSolver`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..diagnostics import is_debug_enabled
from ..logging import get_logger
from .core import (
    OptimizeResult,
    QPValidationError,
    SolverOptions,
    State,
    is_zero,
    largest,
)
from .kkt import kkt_residuals
from .linalg import (
    EPS,
    CholeskySolver,
    GeneralSolver,
    eigenvalues,
    is_positive_semidefinite,
    is_symmetric,
    symmetrize,
)
from .problem import SYMMETRY_TOLERANCE, Problem

logger = get_logger(__name__)

Q_NOT_SYMMETRIC = "Q not symmetric!"
Q_NOT_POSITIVE_SEMIDEFINITE = "Q not positive semidefinite!"
AE_NOT_FULL_RANK = "AE not full row rank!"

# Relative stationarity, measured with the unperturbed Q, required of a solution.
STATIONARITY_TOLERANCE = 1e-6

_MESSAGES = {
    State.UNEXPLORED: "Not solved",
    State.VALID: "Problem validated",
    State.INVALID: "Problem rejected by validation",
    State.INFEASIBLE: "No feasible point exists",
    State.UNBOUNDED: "Objective unbounded or Q not factorizable",
    State.FAILED: "Solver failed",
    State.APPROXIMATE: "Approximate solution",
    State.FEASIBLE: "Feasible solution (not proven optimal)",
    State.OPTIMAL: "KKT conditions satisfied",
    State.DISTINCT: "Unique optimal solution",
}

Solution = Tuple[np.ndarray, np.ndarray]


class BaseSolver(ABC):
    """
    Abstract QP solver: validation, Q factorization and the iteration loop.

    The solver exclusively owns its buffers (``x``, ``λ``) and caches; use
    one instance per concurrent solve.
    """

    def __init__(self, problem: Problem, options: Optional[SolverOptions] = None) -> None:
        self.problem = problem
        self.options = options if options is not None else SolverOptions()

        self._x = np.zeros(problem.n)
        self._multipliers = np.zeros(problem.m_eq + problem.m_ineq)
        self._matrix_q = np.array(problem.Q)

        self._solver_q = CholeskySolver(self.options.accuracy)
        self._solver_general = GeneralSolver(self.options.accuracy)

        self._state = State.UNEXPLORED
        self._iterations = 0
        self._patched_q = False
        self._zero_q = False
        self._history: List[np.ndarray] = []

    @property
    def state(self) -> State:
        return self._state

    @property
    def iterations(self) -> int:
        return self._iterations

    def solve(self, warm_start: Optional[OptimizeResult] = None) -> OptimizeResult:
        """
        Solve the problem, optionally warm started from a previous result.
        """

        self._iterations = 0
        self._history = []

        if self._initialise(warm_start):
            if self._is_iterating_possible():
                while True:
                    self._perform_iteration()
                    if not self._is_iteration_allowed():
                        self._on_iterations_exhausted()
                        break
                    if not self._needs_another_iteration():
                        break

        return self._build_result()

    # ------------------------------------------------------------------ #
    # Template methods
    # ------------------------------------------------------------------ #
    @abstractmethod
    def _perform_iteration(self) -> None:
        ...

    @abstractmethod
    def _needs_another_iteration(self) -> bool:
        ...

    def _is_iterating_possible(self) -> bool:
        return True

    def _on_iterations_exhausted(self) -> None:
        pass

    def _initialise(self, warm_start: Optional[OptimizeResult]) -> bool:
        """Validate Q and factorize it; return False to skip the iterations."""

        self._state = State.VALID
        self._x.fill(0.0)
        self._multipliers.fill(0.0)
        self._matrix_q = np.array(self.problem.Q)

        if not is_symmetric(self._matrix_q, SYMMETRY_TOLERANCE):
            self._invalid(Q_NOT_SYMMETRIC)
            self._matrix_q = symmetrize(self._matrix_q)

        self._factorize_q()

        if not self._solver_q.is_solvable() and self._is_checking():
            if not is_positive_semidefinite(self._matrix_q):
                logger.debug("The eigenvalues are: %s", eigenvalues(self._matrix_q))
                self._invalid(Q_NOT_POSITIVE_SEMIDEFINITE)

        if self.problem.has_equalities and self._is_checking():
            if np.linalg.matrix_rank(self.problem.AE) < self.problem.m_eq:
                self._invalid(AE_NOT_FULL_RANK)

        return True

    # ------------------------------------------------------------------ #
    # Shared machinery
    # ------------------------------------------------------------------ #
    def _factorize_q(self) -> None:
        """
        Cholesky of Q, retried once with a diagonal perturbation.

        The first attempt rejects pivots below ``accuracy`` (relative), so a
        rank-deficient Q is always perturbed; the perturbed matrix only has
        to clear machine precision.
        """

        self._patched_q = False
        self._zero_q = False

        if self._solver_q.compute(self._matrix_q):
            return

        big = largest(self._matrix_q)
        small = self.options.small_diagonal
        if big > small:
            patched = self._matrix_q + small * big * np.eye(self.problem.n)
            self._patched_q = True
            if not self._solver_q.compute(patched, EPS * self.problem.n):
                logger.info("Q not factorizable, even after perturbing the diagonal")
        else:
            self._zero_q = True

        logger.debug("Q patched=%s zero=%s", self._patched_q, self._zero_q)

    def _invalid(self, message: str) -> None:
        self._state = State.INVALID
        if self.options.validate:
            raise QPValidationError(message)
        logger.warning(message)

    def _is_log_debug(self) -> bool:
        return is_debug_enabled() or logger.isEnabledFor(logging.DEBUG)

    def _is_checking(self) -> bool:
        return self.options.validate or self._is_log_debug()

    def _is_iteration_allowed(self) -> bool:
        return self._iterations < self.options.iterations_limit

    def _is_stationary(self, x: np.ndarray, multipliers: np.ndarray) -> bool:
        """Check ``Qx − c + Aᵗλ ≈ 0`` against the unperturbed Q."""
        m_eq = self.problem.m_eq
        q_x = self._matrix_q @ x
        gradient = (
            q_x
            - self.problem.c
            + self.problem.AE.T @ multipliers[:m_eq]
            + self.problem.AI.T @ multipliers[m_eq:]
        )
        scale = max(1.0, largest(self.problem.c), largest(q_x))
        return largest(gradient) <= STATIONARITY_TOLERANCE * scale

    def _record(self) -> None:
        if self.options.keep_history:
            self._history.append(self._x.copy())

    def _build_result(self) -> OptimizeResult:
        x = self._x.copy()
        multipliers = self._multipliers.copy()
        if self._is_log_debug():
            logger.debug("KKT residuals: %s", kkt_residuals(self.problem, x, multipliers))
        return OptimizeResult(
            x=x,
            fun=self.problem.objective(x),
            state=self._state,
            message=_MESSAGES[self._state],
            nit=self._iterations,
            multipliers=multipliers,
            history=list(self._history),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.problem!r}, state={self._state.name})"


class UnconstrainedSolver(BaseSolver):
    """Solves ``Qx = c`` once: Cholesky first, LU as fallback."""

    def _perform_iteration(self) -> None:
        self._iterations += 1

        if self._zero_q and is_zero(largest(self.problem.c), self.options.accuracy):
            self._x.fill(0.0)
            self._state = State.OPTIMAL
            return

        for attempt, state in (
            (self._solve_with_cholesky, State.OPTIMAL if self._patched_q else State.DISTINCT),
            (self._solve_with_general, State.OPTIMAL),
        ):
            x = attempt()
            if x is not None and self._is_stationary(x, self._multipliers):
                self._x[:] = x
                self._state = state
                self._record()
                return

        logger.info("Unconstrained problem: Q not solvable")
        self._x.fill(0.0)
        self._state = State.UNBOUNDED

    def _solve_with_cholesky(self) -> Optional[np.ndarray]:
        if not self._solver_q.is_solvable():
            return None
        return self._solver_q.solve(self.problem.c)

    def _solve_with_general(self) -> Optional[np.ndarray]:
        if not self._solver_general.compute(self._matrix_q):
            return None
        return self._solver_general.solve(self.problem.c)

    def _needs_another_iteration(self) -> bool:
        return False


class ConstrainedSolver(BaseSolver):
    """
    Adds KKT assembly for a set of constraint rows ``A x = b``:

    ```
        [ Q   Aᵗ ] [x]   [c]
        [ A   0  ] [λ] = [b]
    ```

    solved either through the Schur complement ``S = A Q⁻¹ Aᵗ`` or through a
    general factorization of the full matrix.
    """

    def __init__(self, problem: Problem, options: Optional[SolverOptions] = None) -> None:
        super().__init__(problem, options)
        self._inv_q_c = np.zeros(problem.n)
        self._solver_schur = GeneralSolver(self.options.accuracy)

    def _initialise(self, warm_start: Optional[OptimizeResult]) -> bool:
        ok = super()._initialise(warm_start)
        if self._solver_q.is_solvable():
            self._inv_q_c[:] = self._solver_q.solve(self.problem.c)
        else:
            self._inv_q_c.fill(0.0)
        return ok

    def _ordered(
        self, *attempts: Callable[..., Optional[Solution]]
    ) -> Sequence[Callable[..., Optional[Solution]]]:
        """Schur-complement attempts first, unless Q had to be perturbed."""
        return attempts[::-1] if self._patched_q else attempts

    def _solve_schur(self, a_mat: np.ndarray, b_vec: np.ndarray) -> Optional[Solution]:
        if a_mat.shape[0] > self.problem.n or not self._solver_q.is_solvable():
            return None

        inv_q_at = self._solver_q.solve(a_mat.T)
        schur = a_mat @ inv_q_at
        if not self._solver_schur.compute(schur):
            logger.debug("Schur complement singular (rank %d)", self._solver_schur.rank())
            return None

        lam = self._solver_schur.solve(a_mat @ self._inv_q_c - b_vec)
        x = self._inv_q_c - inv_q_at @ lam
        return x, lam

    def _solve_full_kkt(self, a_mat: np.ndarray, b_vec: np.ndarray) -> Optional[Solution]:
        n = self.problem.n
        m = a_mat.shape[0]
        kkt = np.block([[self._matrix_q, a_mat.T], [a_mat, np.zeros((m, m))]])
        rhs = np.concatenate([self.problem.c, b_vec])

        if not self._solver_general.compute(kkt):
            if self._is_log_debug():
                logger.debug("KKT system unsolvable (rank %d of %d)", self._solver_general.rank(), n + m)
            return None

        solution = self._solver_general.solve(rhs)
        return solution[:n], solution[n:]

    def _solve_system(self, a_mat: np.ndarray, b_vec: np.ndarray) -> Optional[Solution]:
        for attempt in self._ordered(self._solve_schur, self._solve_full_kkt):
            solution = attempt(a_mat, b_vec)
            if solution is not None:
                return solution
        return None


class EqualityConstrainedSolver(ConstrainedSolver):
    """One KKT solve for ``AE x = bE``; no working-set search."""

    def _perform_iteration(self) -> None:
        self._iterations += 1
        m_eq = self.problem.m_eq

        solution = self._solve_system(self.problem.AE, self.problem.bE)

        if solution is not None:
            x, lam = solution
            if self._is_stationary(x, lam):
                self._x[:] = x
                self._multipliers[:m_eq] = lam
                self._state = State.OPTIMAL if self._patched_q else State.DISTINCT
                self._record()
                return

        if self._solver_q.is_solvable() and not self._patched_q:
            logger.info("Equality constraints inconsistent or rank deficient")
            self._state = State.INFEASIBLE
        else:
            logger.info("Equality constrained problem: KKT system not solvable")
            self._state = State.UNBOUNDED
        self._x.fill(0.0)
        self._multipliers.fill(0.0)

    def _needs_another_iteration(self) -> bool:
        return False


__all__ = [
    "BaseSolver",
    "ConstrainedSolver",
    "UnconstrainedSolver",
    "EqualityConstrainedSolver",
]
