"""
Primal active-set method for convex QPs with inequality constraints.

Starting from a feasible point (found by an auxiliary LP or taken from a
warm start), every iteration solves the equality-constrained subproblem
defined by the equalities plus the included inequalities:

```
    minimize ½ xᵗQx − cᵗx   s.t.  AE x = bE,  AI[W] x = bI[W]
```

The step towards its solution is shortened by a ratio test so that no
excluded constraint is violated; the blocking constraint joins the working
set. When the full step is taken, the included constraint with the most
negative multiplier leaves the working set. The iterate is optimal once no
constraint needs to be added or removed.

Subclasses decide how the subproblem is solved (see ``direct`` and
``iterative``).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Optional, Set

import numpy as np

from ..logging import get_logger
from .core import (
    OptimizeResult,
    QPValidationError,
    SolverOptions,
    State,
    is_small,
    is_zero,
    largest,
)
from .lp import solve_lp
from .problem import Problem
from .solver import ConstrainedSolver
from .working_set import WorkingSet

logger = get_logger(__name__)


class ActiveSetSolver(ConstrainedSolver):
    """
    Active-set iteration shared by the direct and iterative strategies.

    Subclasses implement :meth:`_solve_iteration`, which fills
    ``_iteration_x`` with the subproblem solution and writes the
    subproblem multipliers into ``_multipliers``.
    """

    def __init__(self, problem: Problem, options: Optional[SolverOptions] = None) -> None:
        super().__init__(problem, options)
        self._working_set = WorkingSet(problem.m_ineq)
        self._iteration_x = np.zeros(problem.n)
        self._constraint_to_include: Optional[int] = None
        self._shrink_switch = True
        # Working sets seen since the iterate last moved
        self._visited: Set[bytes] = set()
        self._smallest_index = False

    @property
    def working_set(self) -> WorkingSet:
        return self._working_set

    @abstractmethod
    def _solve_iteration(self, included: np.ndarray) -> bool:
        """Solve the subproblem for ``included``; return False if unsolvable."""

    # ------------------------------------------------------------------ #
    # Working-set bookkeeping
    # ------------------------------------------------------------------ #
    def _include(self, index: int) -> None:
        self._working_set.include(index)

    def _exclude(self, index: int) -> None:
        self._working_set.exclude(index)
        self._multipliers[self.problem.m_eq + index] = 0.0

    def _iteration_rows(self, included: np.ndarray):
        a_mat = np.vstack([self.problem.AE, self.problem.AI[included]])
        b_vec = np.concatenate([self.problem.bE, self.problem.bI[included]])
        return a_mat, b_vec

    def _assign_multipliers(self, included: np.ndarray, lam: np.ndarray) -> None:
        m_eq = self.problem.m_eq
        self._multipliers.fill(0.0)
        self._multipliers[:m_eq] = lam[:m_eq]
        self._multipliers[m_eq + included] = lam[m_eq:]

    def _reset_working_set(self, seed: Optional[np.ndarray]) -> None:
        """
        Include the constraints that are tight at the current iterate.

        At most ``n − mE`` constraints are included. When ``seed``
        multipliers are known (from the LP or a warm start), constraints with
        a positive multiplier are preferred.
        """

        self._working_set.exclude_all()
        if not self.problem.has_inequalities:
            return

        m_eq = self.problem.m_eq
        capacity = self.problem.n - m_eq
        if capacity < 0:
            logger.debug("Redundant equality constraints: %d rows for %d variables", m_eq, self.problem.n)

        slack = self.problem.slack_ineq(self._x)
        tight = [i for i in range(self.problem.m_ineq) if is_zero(slack[i], self.options.accuracy)]
        if seed is not None:
            tight.sort(key=lambda i: seed[m_eq + i] <= self.options.accuracy)

        for index in tight:
            if self._working_set.count_included() >= capacity:
                break
            self._include(index)

        if seed is not None:
            included = self._working_set.included
            self._multipliers[:m_eq] = seed[:m_eq]
            self._multipliers[m_eq + included] = seed[m_eq + included]

        logger.debug("Initial working set: %r", self._working_set)

    def _working_set_key(self) -> bytes:
        return self._working_set.included.tobytes()

    def _restart_cycle_detection(self) -> None:
        self._visited = {self._working_set_key()}
        self._smallest_index = False

    def _is_progressing(self) -> bool:
        """
        Record the working set just reached; detect a repeat at the same
        iterate.

        The first repeat switches the exclusion to the smallest-index rule;
        the ratio test already breaks ties by smallest index. A repeat under
        that rule stops the solve.
        """

        key = self._working_set_key()
        if key not in self._visited:
            self._visited.add(key)
            return True

        if self._smallest_index:
            logger.info("Working set cycling persists, stopping")
            self._state = State.FEASIBLE if self._check_feasibility() else State.FAILED
            return False

        logger.info("Working set repeated, switching to smallest-index rule")
        self._smallest_index = True
        self._visited = {key}
        return True

    def _check_feasibility(self) -> bool:
        tol = self.options.feasibility
        if largest(self.problem.slack_eq(self._x)) > tol:
            return False
        slack = self.problem.slack_ineq(self._x)
        return not slack.size or float(slack.min()) >= -tol

    def _verify_feasibility(self) -> None:
        if self._check_feasibility():
            return
        message = f"Iterate infeasible at iteration {self._iterations}"
        if self.options.validate:
            raise QPValidationError(message)
        logger.warning(message)

    # ------------------------------------------------------------------ #
    # Solver template
    # ------------------------------------------------------------------ #
    def _initialise(self, warm_start: Optional[OptimizeResult]) -> bool:
        super()._initialise(warm_start)

        self._constraint_to_include = None
        self._shrink_switch = True

        feasible = False
        seed = None

        if self._is_usable(warm_start):
            self._x[:] = warm_start.x
            feasible = warm_start.state.is_feasible() or self._check_feasibility()
            if feasible and warm_start.multipliers is not None:
                seed = np.asarray(warm_start.multipliers, dtype=float).reshape(-1)
                if seed.shape != self._multipliers.shape:
                    seed = None
            logger.info("Warm start %s", "accepted" if feasible else "rejected")

        if not feasible:
            lp = solve_lp(self.problem, objective=self._zero_q)
            if lp.state.is_feasible():
                self._x[:] = lp.x
                seed = lp.multipliers
                feasible = True
                if self._zero_q and lp.state is State.OPTIMAL:
                    logger.info("Q is zero: linear program solved directly")
                    self._multipliers[:] = lp.multipliers
                    self._state = State.OPTIMAL
                    self._record()
                    return True
            elif lp.state is not State.INFEASIBLE:
                logger.info("Auxiliary LP ended %s: %s", lp.state.name, lp.message)
                self._x.fill(0.0)
                self._state = lp.state
                return False

        if not feasible:
            logger.info("No feasible starting point")
            self._x.fill(0.0)
            self._state = State.INFEASIBLE
            return False

        self._state = State.FEASIBLE
        self._reset_working_set(seed)
        self._restart_cycle_detection()
        self._record()
        return True

    def _is_usable(self, warm_start: Optional[OptimizeResult]) -> bool:
        if warm_start is None or self._zero_q:
            return False
        if not warm_start.state.is_approximate() or warm_start.x is None:
            return False
        return np.shape(warm_start.x) == (self.problem.n,)

    def _is_iterating_possible(self) -> bool:
        return not self._state.is_optimal()

    def _perform_iteration(self) -> None:
        while True:
            logger.info("Iteration %d: %r", self._iterations + 1, self._working_set)
            self._constraint_to_include = None
            included = self._working_set.included
            excluded = self._working_set.excluded

            solved = self._solve_iteration(included)
            if not self._handle_iteration_results(solved, included, excluded):
                return

    def _handle_iteration_results(self, solved: bool, included: np.ndarray, excluded: np.ndarray) -> bool:
        """Process a subproblem outcome; return True to retry with a smaller working set."""

        self._iterations += 1

        if solved:
            self._handle_iteration_solution(excluded)
            return False

        if self._is_iteration_allowed():
            logger.info("Subproblem unsolvable with %d included constraints", included.size)
            if included.size:
                self._shrink()
                return True
            self._state = State.FAILED
            return False

        self._state = State.FEASIBLE if self._check_feasibility() else State.FAILED
        return False

    def _handle_iteration_solution(self, excluded: np.ndarray) -> None:
        x = self._x
        step = self._iteration_x - x
        norm_x = largest(x)
        norm_step = largest(step)
        tol = self.options.solution
        accuracy = self.options.accuracy

        if self._is_log_debug():
            logger.debug("Current x: %s", x)
            logger.debug("Step: %s", step)

        if not is_small(norm_x, norm_step, tol) and not is_small(norm_step, max(norm_x, 1.0), tol):
            step_length = 1.0

            if excluded.size:
                slack = self.problem.slack_ineq(x)[excluded]
                change = self.problem.AI[excluded] @ step

                for current, delta, index in zip(slack, change, excluded):
                    if delta <= 0.0 or is_small(norm_step, delta, accuracy):
                        continue
                    if np.sign(current) == np.sign(delta) and is_small(delta, current, accuracy):
                        fraction = 0.0
                    else:
                        fraction = abs(current) / delta
                    # excluded is ascending, so ties keep the smallest index
                    if fraction < step_length:
                        step_length = fraction
                        self._constraint_to_include = int(index)

            if (
                is_zero(step_length, accuracy)
                and self._constraint_to_include is not None
                and self._constraint_to_include == self._working_set.last_excluded
            ):
                logger.info("Break cycle on constraint %d", self._constraint_to_include)
                self._constraint_to_include = None
            elif step_length > 0.0:
                x += step_length * step
                if not is_small(max(norm_x, 1.0), step_length * norm_step, accuracy):
                    self._restart_cycle_detection()
                self._record()
                logger.debug("Step length %g, blocking constraint %s", step_length, self._constraint_to_include)
        else:
            logger.debug("Step negligible (or too large to trust)")
            self._state = State.FEASIBLE

        if self.options.validate or self._is_log_debug():
            self._verify_feasibility()

    def _needs_another_iteration(self) -> bool:
        if self._state.is_failure():
            return False

        if self._constraint_to_include is not None:
            logger.info("Include constraint %d", self._constraint_to_include)
            self._include(self._constraint_to_include)
            return self._is_progressing()

        to_exclude = self._suggest_constraint_to_exclude()
        if to_exclude is not None:
            logger.info("Exclude constraint %d", to_exclude)
            self._exclude(to_exclude)
            return self._is_progressing()

        if not self._is_stationary(self._x, self._multipliers):
            logger.info("Stationarity lost with the unperturbed Q")
            self._state = State.UNBOUNDED if self._patched_q else State.FAILED
            return False

        if not self._check_feasibility():
            logger.info("Final iterate violates the constraints")
            self._state = State.FAILED
            return False

        self._state = State.OPTIMAL
        return False

    def _on_iterations_exhausted(self) -> None:
        if self._state.is_optimal() or self._state.is_failure():
            return
        logger.info("Iterations limit %d reached", self.options.iterations_limit)
        self._state = State.FEASIBLE if self._check_feasibility() else State.FAILED

    # ------------------------------------------------------------------ #
    # Exclusion heuristics
    # ------------------------------------------------------------------ #
    def _suggest_constraint_to_exclude(self) -> Optional[int]:
        """
        Included constraint with the most negative multiplier, if any.

        After a cycle was detected the smallest index with a negative
        multiplier is taken instead.
        """

        included = self._working_set.included
        if not included.size:
            return None

        lam = self._multipliers[self.problem.m_eq + included]
        last = self._working_set.last_included
        accuracy = self.options.accuracy

        if self._smallest_index:
            for index, value in zip(included, lam):
                if value < 0.0 and not is_zero(value, accuracy):
                    return int(index)
            return None

        best: Optional[int] = None
        best_value = 0.0
        last_value: Optional[float] = None
        for index, value in zip(included, lam):
            if index == last:
                last_value = value
                continue
            if value < best_value and not is_zero(value, accuracy):
                best = int(index)
                best_value = value

        if best is None and last_value is not None and last_value < 0.0 and not is_zero(last_value, accuracy):
            logger.debug("Only the last included constraint has a negative multiplier")
            best = int(last)

        return best

    def _suggest_by_lagrange_magnitude(self, included: np.ndarray) -> int:
        lam = self._multipliers[self.problem.m_eq + included]
        weights = np.abs(lam) * np.maximum(-lam, 1.0)
        return int(included[int(np.argmax(weights))])

    def _suggest_by_vector_projection(self, included: np.ndarray, last: int) -> int:
        reference = self.problem.AI[last]
        rows = self.problem.AI[included]
        norms = np.linalg.norm(rows, axis=1) * max(float(np.linalg.norm(reference)), np.finfo(float).tiny)
        norms[norms == 0.0] = np.inf
        cosines = np.abs(rows @ reference) / norms
        return int(included[int(np.argmax(cosines))])

    def _shrink(self) -> None:
        """Drop one included constraint after an unsolvable subproblem."""

        to_exclude = self._suggest_constraint_to_exclude()

        if to_exclude is None:
            included = self._working_set.included
            last = self._working_set.last_included
            if self._shrink_switch or last is None:
                to_exclude = self._suggest_by_lagrange_magnitude(included)
            else:
                to_exclude = self._suggest_by_vector_projection(included, last)
            self._shrink_switch = not self._shrink_switch

        logger.info("Shrink: exclude constraint %d", to_exclude)
        self._exclude(to_exclude)


__all__ = ["ActiveSetSolver"]
