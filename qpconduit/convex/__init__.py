"""
Active-set solvers for convex quadratic programs.

This subpackage solves

    minimize ½ xᵗQx − cᵗx   s.t.  AE x = bE,  AI x <= bI

with a primal active-set method. Q is factorized once per solve (Cholesky,
with a diagonal perturbation when Q is only semidefinite); the
per-iteration KKT systems are solved either directly, or through an
incrementally maintained Schur complement and conjugate gradients. A
feasible starting point comes from an auxiliary linear program solved by
SciPy's HiGHS backend.
"""

from . import active_set, core, direct, iterative, kkt, linalg, lp, problem, qp, solver, working_set
from .active_set import ActiveSetSolver
from .core import OptimizeResult, QPValidationError, SolverOptions, State
from .direct import DirectActiveSetSolver
from .iterative import IterativeActiveSetSolver, SchurComplementSystem
from .kkt import is_kkt_optimal, kkt_residuals
from .lp import LPResult, solve_lp
from .problem import Problem, build_problem
from .qp import active_set_qp, new_solver
from .solver import BaseSolver, EqualityConstrainedSolver, UnconstrainedSolver
from .working_set import WorkingSet

__all__ = [
    "active_set",
    "core",
    "direct",
    "iterative",
    "kkt",
    "linalg",
    "lp",
    "problem",
    "qp",
    "solver",
    "working_set",
    # Core types
    "State",
    "OptimizeResult",
    "SolverOptions",
    "QPValidationError",
    "Problem",
    "WorkingSet",
    # Solvers
    "BaseSolver",
    "UnconstrainedSolver",
    "EqualityConstrainedSolver",
    "ActiveSetSolver",
    "DirectActiveSetSolver",
    "IterativeActiveSetSolver",
    "SchurComplementSystem",
    # Entry points
    "build_problem",
    "new_solver",
    "active_set_qp",
    "solve_lp",
    "LPResult",
    "kkt_residuals",
    "is_kkt_optimal",
]
