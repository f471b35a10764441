"""qpconduit - an active-set engine for convex quadratic programs."""

__version__ = "0.1.0"

# Convex quadratic programming
from .convex import (
    OptimizeResult,
    Problem,
    QPValidationError,
    SolverOptions,
    State,
    WorkingSet,
    active_set_qp,
    build_problem,
    is_kkt_optimal,
    kkt_residuals,
    new_solver,
)

# Diagnostics
from .diagnostics import (
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level

__all__ = [
    # Version
    "__version__",
    # Convex quadratic programming
    "State",
    "OptimizeResult",
    "SolverOptions",
    "QPValidationError",
    "Problem",
    "WorkingSet",
    "build_problem",
    "new_solver",
    "active_set_qp",
    "kkt_residuals",
    "is_kkt_optimal",
    # Diagnostics
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
]
