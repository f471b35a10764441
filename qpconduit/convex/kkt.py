"""
Karush-Kuhn-Tucker diagnostics for convex quadratic programs.

With multipliers ``λ = [λE; λI]`` the first-order conditions read

```
    Qx − c + AEᵗλE + AIᵗλI = 0        stationarity
    AE x = bE,  AI x <= bI            primal feasibility
    λI >= 0                           dual feasibility
    λI ∘ (bI − AI x) = 0              complementary slackness
```
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from .problem import Problem


def _inf_norm(vec: np.ndarray) -> float:
    return float(np.linalg.norm(vec, ord=np.inf)) if vec.size else 0.0


def kkt_residuals(
    problem: Problem,
    x: np.ndarray,
    multipliers: Optional[np.ndarray] = None,
) -> Dict[str, float]:
    """
    Compute infinity norms of the KKT residuals of ``problem`` at ``x``.
    """

    x = np.asarray(x, dtype=float).reshape(-1)
    m_eq = problem.m_eq
    lam = (
        np.zeros(m_eq + problem.m_ineq)
        if multipliers is None
        else np.asarray(multipliers, dtype=float).reshape(-1)
    )
    lam_eq = lam[:m_eq]
    lam_ineq = lam[m_eq:]

    stationarity = problem.Q @ x - problem.c + problem.AE.T @ lam_eq + problem.AI.T @ lam_ineq
    slack = problem.slack_ineq(x)

    return {
        "stationarity": _inf_norm(stationarity),
        "primal_eq": _inf_norm(problem.slack_eq(x)),
        "primal_ineq": _inf_norm(np.minimum(slack, 0.0)),
        "dual_ineq": _inf_norm(np.minimum(lam_ineq, 0.0)),
        "complementary": _inf_norm(slack * lam_ineq),
    }


def is_kkt_optimal(
    problem: Problem,
    x: np.ndarray,
    multipliers: Optional[np.ndarray] = None,
    tol: float = 1e-6,
) -> bool:
    """
    Return True if all KKT residuals are below ``tol``.
    """

    residuals = kkt_residuals(problem, x, multipliers)
    return all(value <= tol for value in residuals.values())


__all__ = ["kkt_residuals", "is_kkt_optimal"]
