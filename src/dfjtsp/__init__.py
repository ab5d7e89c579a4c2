__all__ = [
    "Instance",
    "TSPModel",
    "TSPProblem",
    "TourResult",
    "Tour",
    "Solver",
    "HIGHS",
    "BNB",
    "SolverStatus",
    "ErrorKind",
    "TSPError",
    "InvalidInstanceError",
    "BuildFailureError",
    "SolveInfeasibleError",
    "SolveTimeLimitError",
    "SolveError",
    "DegenerateSolutionError",
    "binomial",
    "count_subsets",
    "subsets_of_size",
    "build_subsets",
    "iter_subsets",
    "build_model",
    "extract_tour",
    "follow_selected_edges",
    "open_session",
    "solve_tsp",
]

from .constants import Solver
from .errors import (
    ErrorKind,
    TSPError,
    InvalidInstanceError,
    BuildFailureError,
    SolveInfeasibleError,
    SolveTimeLimitError,
    SolveError,
    DegenerateSolutionError,
)
from .instance import Instance
from .subsets import binomial, count_subsets, subsets_of_size, build_subsets, iter_subsets
from .model import TSPModel, build_model
from .solution import Tour, extract_tour, follow_selected_edges
from .solvers import SolverStatus, open_session
from .problem import TSPProblem, TourResult, solve_tsp

HIGHS = Solver.HIGHS
BNB = Solver.BNB
