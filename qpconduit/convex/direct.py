"""
Direct active-set strategy.

Each iteration assembles ``A = [AE; AI[W]]`` and ``b = [bE; bI[W]]`` from
scratch and solves the KKT system with dense factorizations: the Schur
complement ``S = A Q⁻¹ Aᵗ`` when Q is positive definite and ``A`` has no
more rows than columns, the full KKT matrix otherwise.
"""

from __future__ import annotations

import numpy as np

from .active_set import ActiveSetSolver


class DirectActiveSetSolver(ActiveSetSolver):
    """Active-set solver that refactorizes the subproblem every iteration."""

    def _solve_iteration(self, included: np.ndarray) -> bool:
        a_mat, b_vec = self._iteration_rows(included)
        solution = self._solve_system(a_mat, b_vec)
        if solution is None:
            return False

        x, lam = solution
        self._iteration_x[:] = x
        self._assign_multipliers(included, lam)
        return True


__all__ = ["DirectActiveSetSolver"]
