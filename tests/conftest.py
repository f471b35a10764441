"""Pytest configuration and shared fixtures for qpconduit tests.

This module provides:
- A deterministic numpy RNG fixture
- Small QP builders shared by the solver tests
"""

import os

import numpy as np
import pytest

from qpconduit.convex import build_problem


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Auto-use fixture to set the global numpy seed for reproducibility."""
    np.random.seed(int(os.environ.get("TEST_RNG_SEED", "0")))


@pytest.fixture
def random_qp(rng: np.random.Generator):
    """Factory for strictly convex QPs with a known interior point.

    The inequalities are built around a random point ``x0`` with positive
    slack, so every generated problem is feasible and bounded.
    """

    def _make(n: int = 5, m_ineq: int = 8, m_eq: int = 0):
        m_mat = rng.standard_normal((n, n))
        q_mat = m_mat @ m_mat.T + np.eye(n)
        c_vec = 3.0 * rng.standard_normal(n)
        x0 = rng.standard_normal(n)
        ai = rng.standard_normal((m_ineq, n))
        bi = ai @ x0 + rng.uniform(0.1, 1.0, size=m_ineq)
        if m_eq:
            ae = rng.standard_normal((m_eq, n))
            be = ae @ x0
        else:
            ae = be = None
        return build_problem(q_mat, c_vec, ae, be, ai, bi)

    return _make
