import numpy as np

from qpconduit.convex.kkt import is_kkt_optimal, kkt_residuals
from qpconduit.convex.problem import build_problem


def test_kkt_residuals_at_optimum():
    problem = build_problem(2.0 * np.eye(2), np.zeros(2), AI=[[-1.0, -1.0]], bI=[-1.0])
    x = np.array([0.5, 0.5])
    lam = np.array([1.0])
    residuals = kkt_residuals(problem, x, lam)
    assert set(residuals) == {"stationarity", "primal_eq", "primal_ineq", "dual_ineq", "complementary"}
    assert all(value <= 1e-12 for value in residuals.values())
    assert is_kkt_optimal(problem, x, lam)


def test_kkt_detects_infeasibility():
    problem = build_problem(np.eye(1), [0.0], AI=[[1.0]], bI=[0.0])
    x = np.array([1.0])
    residuals = kkt_residuals(problem, x)
    assert residuals["primal_ineq"] > 0.5
    assert not is_kkt_optimal(problem, x)


def test_kkt_detects_negative_multiplier_and_complementarity():
    problem = build_problem(np.eye(1), [0.0], AI=[[1.0]], bI=[1.0])
    x = np.array([0.0])
    residuals = kkt_residuals(problem, x, np.array([-0.5]))
    assert residuals["dual_ineq"] == 0.5
    assert residuals["complementary"] == 0.5
    assert not is_kkt_optimal(problem, x, np.array([-0.5]))


def test_kkt_equality_multipliers():
    problem = build_problem(np.eye(2), np.zeros(2), AE=[[1.0, 1.0]], bE=[1.0])
    x = np.array([0.5, 0.5])
    assert is_kkt_optimal(problem, x, np.array([-0.5]), tol=1e-12)
    assert kkt_residuals(problem, x)["stationarity"] == 0.5
