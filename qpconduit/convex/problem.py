"""
Problem description and builder for the convex QP engine.

A :class:`Problem` is an immutable snapshot of the matrices
``(Q, c, AE, bE, AI, bI)``. Absent constraint blocks are stored as zero-row
arrays so that the solvers never branch on ``None``. Use
:func:`build_problem` to construct one from user data: it coerces dense or
SciPy sparse input, checks dimensions and normalizes Q to its symmetric
part.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp

from ..logging import get_logger
from .linalg import is_symmetric, symmetrize

logger = get_logger(__name__)

SYMMETRY_TOLERANCE = 1e-10


def _dense(data) -> np.ndarray:
    if sp.issparse(data):
        data = data.toarray()
    return np.array(data, dtype=float)


def _matrix(data, n: int, name: str) -> np.ndarray:
    if data is None:
        return np.zeros((0, n))
    arr = _dense(data)
    if arr.ndim == 1 and n > 0 and arr.size == n:
        arr = arr.reshape(1, n)
    if arr.ndim != 2 or arr.shape[1] != n:
        raise ValueError(f"{name} must have {n} columns, got shape {arr.shape}")
    return arr


def _vector(data, rows: int, name: str) -> np.ndarray:
    if data is None:
        return np.zeros(rows)
    arr = _dense(data).reshape(-1)
    if arr.shape[0] != rows:
        raise ValueError(f"{name} must have {rows} elements, got {arr.shape[0]}")
    return arr


def _freeze(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Problem:
    """
    Convex quadratic program ``min ½ xᵗQx − cᵗx`` s.t. ``AE x = bE``,
    ``AI x <= bI``.

    All arrays are read-only. Constructing a ``Problem`` directly checks
    dimensions but does not symmetrize Q; the solvers validate that.
    """

    Q: np.ndarray
    c: np.ndarray
    AE: np.ndarray
    bE: np.ndarray
    AI: np.ndarray
    bI: np.ndarray

    def __post_init__(self) -> None:
        for name in ("Q", "c", "AE", "bE", "AI", "bI"):
            object.__setattr__(self, name, np.array(getattr(self, name), dtype=float))
        n = self.c.shape[0]
        if self.Q.shape != (n, n):
            raise ValueError(f"Q must be {n}x{n}, got shape {self.Q.shape}")
        if self.AE.shape[1] != n or self.AI.shape[1] != n:
            raise ValueError("Constraint matrices must have one column per variable")
        if self.bE.shape != (self.AE.shape[0],):
            raise ValueError("AE and bE dimension mismatch")
        if self.bI.shape != (self.AI.shape[0],):
            raise ValueError("AI and bI dimension mismatch")
        for arr in (self.Q, self.c, self.AE, self.bE, self.AI, self.bI):
            if not np.all(np.isfinite(arr)):
                raise ValueError("Problem data must be finite")
            _freeze(arr)

    @property
    def n(self) -> int:
        return self.c.shape[0]

    @property
    def m_eq(self) -> int:
        return self.AE.shape[0]

    @property
    def m_ineq(self) -> int:
        return self.AI.shape[0]

    @property
    def has_equalities(self) -> bool:
        return self.m_eq > 0

    @property
    def has_inequalities(self) -> bool:
        return self.m_ineq > 0

    def objective(self, x: np.ndarray) -> float:
        return float(0.5 * x @ (self.Q @ x) - self.c @ x)

    def slack_eq(self, x: np.ndarray) -> np.ndarray:
        """Equality residual ``bE − AE x``."""
        return self.bE - self.AE @ x

    def slack_ineq(self, x: np.ndarray) -> np.ndarray:
        """Inequality slack ``bI − AI x``; negative entries are violations."""
        return self.bI - self.AI @ x

    def __repr__(self) -> str:
        return f"Problem(n={self.n}, m_eq={self.m_eq}, m_ineq={self.m_ineq})"


def build_problem(
    Q=None,
    c=None,
    AE=None,
    bE=None,
    AI=None,
    bI=None,
) -> Problem:
    """
    Assemble and validate a :class:`Problem`.

    Args:
        Q: Quadratic term (n×n). Defaults to a zero matrix when only ``c``
            is given, i.e. a linear program handled as a degenerate QP.
        c: Linear term (n). Defaults to zero when only ``Q`` is given.
        AE, bE: Equality constraints ``AE x = bE``; supply both or neither.
        AI, bI: Inequality constraints ``AI x <= bI``; supply both or neither.

    Raises:
        ValueError: If neither Q nor c is given, or on any dimension
            mismatch.
    """

    if Q is None and c is None:
        raise ValueError("Both Q and c can't be None")
    if (AE is None) != (bE is None):
        raise ValueError("AE and bE must be provided together")
    if (AI is None) != (bI is None):
        raise ValueError("AI and bI must be provided together")

    if Q is None:
        c_vec = _dense(c).reshape(-1)
        q_mat = np.zeros((c_vec.shape[0], c_vec.shape[0]))
    else:
        q_mat = _dense(Q)
        if q_mat.ndim != 2 or q_mat.shape[0] != q_mat.shape[1]:
            raise ValueError(f"Q must be square, got shape {q_mat.shape}")
        c_vec = _vector(c, q_mat.shape[0], "c")

    n = c_vec.shape[0]
    if n == 0:
        raise ValueError("Problem must contain at least one variable")

    if not is_symmetric(q_mat, SYMMETRY_TOLERANCE):
        logger.warning("Q not symmetric; using its symmetric part")
    q_mat = symmetrize(q_mat)

    ae = _matrix(AE, n, "AE")
    be = _vector(bE, ae.shape[0], "bE")
    ai = _matrix(AI, n, "AI")
    bi = _vector(bI, ai.shape[0], "bI")

    return Problem(Q=q_mat, c=c_vec, AE=ae, bE=be, AI=ai, bI=bi)


__all__ = ["Problem", "build_problem"]
