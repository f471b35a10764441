"""Tests for logging utilities."""

import logging
from io import StringIO

import numpy as np

from qpconduit.convex import active_set_qp
from qpconduit.convex.problem import Problem
from qpconduit.convex.solver import UnconstrainedSolver
from qpconduit.logging import (
    configure_logging,
    get_logger,
    set_log_level,
)


def test_get_logger_returns_logger():
    """Test that get_logger returns a logger instance."""
    logger = get_logger("test_module")
    assert isinstance(logger, logging.Logger)
    assert logger.name.startswith("qpconduit.")


def test_get_logger_keeps_package_names():
    logger = get_logger("qpconduit.convex.active_set")
    assert logger.name == "qpconduit.convex.active_set"
    assert get_logger().name == "qpconduit"


def test_get_logger_caching():
    """Test that get_logger caches loggers."""
    logger1 = get_logger("test_module")
    logger2 = get_logger("test_module")
    assert logger1 is logger2


def test_get_logger_different_modules():
    """Test that different modules get different loggers."""
    logger1 = get_logger("module1")
    logger2 = get_logger("module2")
    assert logger1 is not logger2
    assert logger1.name != logger2.name


def test_set_log_level():
    """Test that set_log_level updates logger levels."""
    logger = get_logger("test_module")

    set_log_level(logging.INFO)
    assert logger.level == logging.INFO

    set_log_level(logging.WARNING)
    assert logger.level == logging.WARNING


def test_set_log_level_string():
    """Test that set_log_level accepts string levels."""
    logger = get_logger("test_module")

    try:
        set_log_level("DEBUG")
        assert logger.level == logging.DEBUG

        set_log_level("ERROR")
        assert logger.level == logging.ERROR
    finally:
        set_log_level(logging.WARNING)


def test_configure_logging():
    """Test configure_logging function."""
    stream = StringIO()
    try:
        configure_logging(level=logging.DEBUG, stream=stream)

        logger = get_logger("test_module")
        logger.debug("Debug message")

        assert "Debug message" in stream.getvalue()
        assert "[DEBUG] qpconduit.test_module" in stream.getvalue()
    finally:
        configure_logging(level=logging.WARNING)


def test_logger_does_not_propagate():
    """Test that loggers don't propagate to root logger."""
    logger = get_logger("test_module")
    assert logger.propagate is False


def test_solver_progress_is_logged_at_info():
    stream = StringIO()
    try:
        configure_logging(level=logging.INFO, stream=stream)
        active_set_qp(2.0 * np.eye(2), np.zeros(2), AI=[[-1.0, -1.0]], bI=[-1.0])
    finally:
        configure_logging(level=logging.WARNING)

    output = stream.getvalue()
    assert "[INFO] qpconduit.convex.active_set: Iteration 1" in output


def test_solver_warns_about_asymmetric_q():
    stream = StringIO()
    problem = Problem(
        Q=np.array([[2.0, 1.0], [0.0, 2.0]]),
        c=np.array([2.5, 2.5]),
        AE=np.zeros((0, 2)),
        bE=np.zeros(0),
        AI=np.zeros((0, 2)),
        bI=np.zeros(0),
    )
    try:
        configure_logging(level=logging.WARNING, stream=stream)
        UnconstrainedSolver(problem).solve()
    finally:
        configure_logging(level=logging.WARNING)

    assert "Q not symmetric!" in stream.getvalue()


def test_debug_logging_reports_kkt_residuals():
    stream = StringIO()
    try:
        configure_logging(level=logging.DEBUG, stream=stream)
        active_set_qp(np.eye(2), [1.0, 1.0], AI=[[1.0, 1.0]], bI=[1.0])
    finally:
        configure_logging(level=logging.WARNING)

    assert "KKT residuals" in stream.getvalue()
