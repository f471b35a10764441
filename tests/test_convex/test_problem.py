import numpy as np
import pytest
import scipy.sparse as sp

from qpconduit.convex.problem import Problem, build_problem


def test_build_problem_requires_q_or_c():
    with pytest.raises(ValueError):
        build_problem()


def test_build_problem_only_c_is_linear_program():
    problem = build_problem(c=[1.0, 2.0, 3.0])
    assert problem.n == 3
    assert np.array_equal(problem.Q, np.zeros((3, 3)))
    assert problem.m_eq == 0
    assert problem.m_ineq == 0
    assert not problem.has_equalities
    assert not problem.has_inequalities


def test_build_problem_only_q_has_zero_c():
    problem = build_problem(Q=np.eye(2))
    assert np.array_equal(problem.c, np.zeros(2))


def test_build_problem_pairs_are_required():
    with pytest.raises(ValueError):
        build_problem(np.eye(2), np.zeros(2), AE=np.ones((1, 2)))
    with pytest.raises(ValueError):
        build_problem(np.eye(2), np.zeros(2), bI=np.ones(1))


def test_build_problem_dimension_mismatch():
    with pytest.raises(ValueError):
        build_problem(np.eye(2), np.zeros(3))
    with pytest.raises(ValueError):
        build_problem(np.eye(2), np.zeros(2), AI=np.ones((1, 3)), bI=[1.0])
    with pytest.raises(ValueError):
        build_problem(np.eye(2), np.zeros(2), AE=np.ones((2, 2)), bE=[1.0])
    with pytest.raises(ValueError):
        build_problem(np.ones((2, 3)), np.zeros(2))


def test_build_problem_rejects_non_finite():
    with pytest.raises(ValueError):
        build_problem(np.eye(2), [np.nan, 0.0])
    with pytest.raises(ValueError):
        build_problem(np.eye(2), np.zeros(2), AI=[[1.0, 0.0]], bI=[np.inf])


def test_build_problem_symmetrizes_q():
    problem = build_problem([[2.0, 1.0], [0.0, 2.0]], [0.0, 0.0])
    assert np.allclose(problem.Q, [[2.0, 0.5], [0.5, 2.0]])


def test_build_problem_accepts_sparse_and_row_vectors():
    problem = build_problem(sp.csr_matrix(np.eye(2)), [1.0, 1.0], AI=[1.0, 1.0], bI=[1.0])
    assert isinstance(problem.Q, np.ndarray)
    assert problem.AI.shape == (1, 2)
    assert problem.bI.shape == (1,)


def test_problem_arrays_are_read_only():
    problem = build_problem(np.eye(2), [1.0, 1.0])
    with pytest.raises(ValueError):
        problem.Q[0, 0] = 5.0
    with pytest.raises(ValueError):
        problem.c[0] = 5.0


def test_problem_does_not_alias_input():
    q_mat = np.eye(2)
    problem = build_problem(q_mat, [1.0, 1.0])
    q_mat[0, 0] = 10.0
    assert problem.Q[0, 0] == 1.0


def test_problem_objective_and_slacks():
    problem = build_problem(
        2.0 * np.eye(2),
        [1.0, 1.0],
        AE=[[1.0, -1.0]],
        bE=[0.5],
        AI=[[-1.0, -1.0]],
        bI=[-1.0],
    )
    x = np.array([1.0, 1.0])
    assert problem.objective(x) == pytest.approx(0.0)
    assert np.allclose(problem.slack_eq(x), [0.5])
    assert np.allclose(problem.slack_ineq(x), [1.0])


def test_problem_direct_construction_checks_shapes():
    with pytest.raises(ValueError):
        Problem(
            Q=np.eye(2),
            c=np.zeros(2),
            AE=np.zeros((0, 2)),
            bE=np.zeros(1),
            AI=np.zeros((0, 2)),
            bI=np.zeros(0),
        )


def test_problem_repr():
    problem = build_problem(np.eye(3), np.zeros(3), AI=np.eye(3), bI=np.ones(3))
    assert repr(problem) == "Problem(n=3, m_eq=0, m_ineq=3)"
