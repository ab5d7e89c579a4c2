"""Error taxonomy for building, solving and decoding TSP models."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    INVALID_INSTANCE = "invalid_instance"
    BUILD_FAILURE = "build_failure"
    SOLVE_INFEASIBLE = "solve_infeasible"
    SOLVE_TIME_LIMIT = "solve_time_limit"
    SOLVE_ERROR = "solve_error"
    DEGENERATE_SOLUTION = "degenerate_solution"


class TSPError(Exception):
    """Base class for all errors reported to the caller.

    Every subclass fixes a single :class:`ErrorKind` so callers can branch on
    ``err.kind`` instead of the exception type.
    """

    kind: ErrorKind

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{self.kind}: {self.message}" if self.message else str(self.kind)


class InvalidInstanceError(TSPError, ValueError):
    kind = ErrorKind.INVALID_INSTANCE


class BuildFailureError(TSPError):
    kind = ErrorKind.BUILD_FAILURE


class SolveInfeasibleError(TSPError):
    kind = ErrorKind.SOLVE_INFEASIBLE


class SolveTimeLimitError(TSPError):
    """Time or memory limit reached before any feasible tour was found."""

    kind = ErrorKind.SOLVE_TIME_LIMIT


class SolveError(TSPError):
    kind = ErrorKind.SOLVE_ERROR


class DegenerateSolutionError(TSPError):
    kind = ErrorKind.DEGENERATE_SOLUTION
