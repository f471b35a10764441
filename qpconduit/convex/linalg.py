"""
Linear-algebra collaborators for the QP engine.

Thin stateful wrappers around SciPy's dense factorizations. Each solver
object caches one factorization, reports whether it is usable and solves
against it repeatedly, mirroring the ``compute → is_solvable → solve``
contract the active-set iterations rely on.
"""

from __future__ import annotations

import warnings
from typing import Optional, Tuple

import numpy as np
import scipy.linalg as la

EPS = np.finfo(float).eps


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """
    Return the symmetric part of ``matrix``.

    Small asymmetries due to floating-point error are removed by returning
    ``0.5 * (matrix + matrix.T)``.
    """

    return 0.5 * (matrix + matrix.T)


def is_symmetric(matrix: np.ndarray, tol: float) -> bool:
    """True if ``|M - Mᵗ| <= tol * max(1, |M|)`` element-wise."""
    if matrix.size == 0:
        return True
    scale = max(1.0, float(np.max(np.abs(matrix))))
    return bool(np.max(np.abs(matrix - matrix.T)) <= tol * scale)


def eigenvalues(matrix: np.ndarray) -> np.ndarray:
    """Eigenvalues of the symmetric part of ``matrix`` in ascending order."""
    return la.eigvalsh(symmetrize(matrix))


def is_positive_semidefinite(matrix: np.ndarray, tol: float = 1e-10) -> bool:
    """
    Diagnose positive semidefiniteness from the eigenvalues.

    Only used for validation and logging, never to steer the algorithm.
    """

    values = eigenvalues(matrix)
    if values.size == 0:
        return True
    scale = max(1.0, float(np.max(np.abs(values))))
    return bool(values[0] >= -tol * scale)


class CholeskySolver:
    """
    Cached Cholesky factorization of a symmetric positive definite matrix.

    A factorization whose squared pivots fall below ``tolerance`` times the
    largest one is treated as failed, so a singular or nearly singular PSD
    matrix is reported unsolvable even when LAPACK happens to finish. The
    squared pivots are bounded by the extreme eigenvalues, so any matrix
    with condition number below ``1 / tolerance`` is accepted. Without a
    tolerance the threshold is ``n * eps``.
    """

    def __init__(self, tolerance: Optional[float] = None) -> None:
        self._tolerance = tolerance
        self._factor: Optional[Tuple[np.ndarray, bool]] = None

    def compute(self, matrix: np.ndarray, tolerance: Optional[float] = None) -> bool:
        """Factorize ``matrix``; ``tolerance`` overrides the instance threshold."""
        self._factor = None
        try:
            factor = la.cho_factor(matrix, lower=True, check_finite=False)
        except la.LinAlgError:
            return False
        if tolerance is None:
            tolerance = self._tolerance
        if tolerance is None:
            tolerance = matrix.shape[0] * EPS
        pivots = np.diag(factor[0]) ** 2
        if pivots.size and not pivots.min() > tolerance * pivots.max():
            return False
        self._factor = factor
        return True

    def is_solvable(self) -> bool:
        return self._factor is not None

    def is_spd(self) -> bool:
        return self.is_solvable()

    def solve(self, rhs: np.ndarray) -> np.ndarray:
        if self._factor is None:
            raise la.LinAlgError("Cholesky factorization not available")
        return la.cho_solve(self._factor, rhs, check_finite=False)

    def reset(self) -> None:
        self._factor = None


class GeneralSolver:
    """
    Cached LU factorization (partial pivoting) of a general square matrix.

    The rank estimate counts the pivots of U above ``tolerance`` times the
    largest one (``n * eps`` when no tolerance is given). A matrix with a
    pivot below the threshold is reported unsolvable.
    """

    def __init__(self, tolerance: Optional[float] = None) -> None:
        self._tolerance = tolerance
        self._factor: Optional[Tuple[np.ndarray, np.ndarray]] = None
        self._rank = 0
        self._dim = 0
        self._solvable = False

    def compute(self, matrix: np.ndarray) -> bool:
        self._factor = None
        self._solvable = False
        self._dim = matrix.shape[0]
        if self._dim == 0:
            self._rank = 0
            self._solvable = True
            return True
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", la.LinAlgWarning)
            try:
                lu, piv = la.lu_factor(matrix, check_finite=False)
            except (la.LinAlgError, ValueError):
                self._rank = 0
                return False
        pivots = np.abs(np.diag(lu))
        tolerance = self._tolerance if self._tolerance is not None else self._dim * EPS
        threshold = tolerance * max(float(pivots.max()), EPS)
        self._rank = int(np.count_nonzero(pivots > threshold))
        if self._rank < self._dim:
            return False
        self._factor = (lu, piv)
        self._solvable = True
        return True

    def is_solvable(self) -> bool:
        return self._solvable

    def rank(self) -> int:
        return self._rank

    def solve(self, rhs: np.ndarray) -> np.ndarray:
        if self._dim == 0:
            return np.zeros_like(rhs)
        if not self._solvable:
            raise la.LinAlgError("LU factorization not available")
        return la.lu_solve(self._factor, rhs, check_finite=False)


__all__ = [
    "EPS",
    "symmetrize",
    "is_symmetric",
    "eigenvalues",
    "is_positive_semidefinite",
    "CholeskySolver",
    "GeneralSolver",
]
