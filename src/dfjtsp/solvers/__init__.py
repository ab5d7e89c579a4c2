from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Dict, Iterator

from ..constants import Solver
from .base import (
    DuplicateLabelError,
    ForeignHandleError,
    GatewayError,
    LinearExpr,
    LinearModelSession,
    LinearProgramData,
    NoSolutionError,
    SessionReleasedError,
    SolverGateway,
    SolverStats,
    SolverStatus,
    VariableHandle,
)
from .highs_backend import HighsSession
from .bnb_backend import BranchAndBoundSession


SessionFactory = Callable[..., SolverGateway]


# Factories, not sessions: every solve gets a fresh, exclusive session
_SOLVER_BACKENDS: Dict[str, SessionFactory] = {
    Solver.HIGHS.value: HighsSession,
    Solver.BNB.value: BranchAndBoundSession,
}


def register_solver_backend(solver_name: str, factory: SessionFactory) -> None:
    _SOLVER_BACKENDS[solver_name] = factory


def get_solver_backend(solver: Solver | str) -> SessionFactory:
    solver_name = solver.value if isinstance(solver, Solver) else str(solver)
    if solver_name not in _SOLVER_BACKENDS:
        raise ValueError(f"No solver backend registered for solver '{solver_name}'")
    return _SOLVER_BACKENDS[solver_name]


@contextmanager
def open_session(solver: Solver | str = Solver.HIGHS, **options) -> Iterator[SolverGateway]:
    """Create a session for `solver` and release it on every exit path."""
    session = get_solver_backend(solver)(**options)
    try:
        yield session
    finally:
        session.release()


__all__ = [
    "DuplicateLabelError",
    "ForeignHandleError",
    "GatewayError",
    "LinearExpr",
    "LinearModelSession",
    "LinearProgramData",
    "NoSolutionError",
    "SessionReleasedError",
    "SolverGateway",
    "SolverStats",
    "SolverStatus",
    "VariableHandle",
    "HighsSession",
    "BranchAndBoundSession",
    "get_solver_backend",
    "open_session",
    "register_solver_backend",
]
