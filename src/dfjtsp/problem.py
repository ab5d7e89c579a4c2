from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .constants import (
    DEFAULT_INTEGRALITY_TOL,
    DEFAULT_MEMORY_LIMIT,
    DEFAULT_TIME_LIMIT,
    Solver,
)
from .errors import (
    InvalidInstanceError,
    SolveError,
    SolveInfeasibleError,
    SolveTimeLimitError,
)
from .instance import Instance
from .model import build_model
from .solution import Tour, extract_tour
from .solvers import NoSolutionError, SolverStats, SolverStatus, open_session
from .subsets import build_subsets

logger = logging.getLogger(__name__)


@dataclass
class TourResult:
    tour: Tour
    status: SolverStatus
    stats: SolverStats

    @property
    def cities(self):
        return self.tour.cities

    @property
    def distance(self) -> float:
        return self.tour.distance

    @property
    def is_optimal(self) -> bool:
        return self.status == SolverStatus.OPTIMAL


class TSPProblem:
    """A TSP instance together with its DFJ model lifecycle."""

    def __init__(self, instance: Instance):
        if not isinstance(instance, Instance):
            raise InvalidInstanceError(
                f"Expected an Instance, got {type(instance).__name__}"
            )
        self.instance = instance
        self.status: Optional[SolverStatus] = None
        self.solver_stats: Optional[SolverStats] = None

    def solve(self, solver=None, solver_options=None) -> TourResult:
        """
        Build the DFJ model in a fresh session, solve it and decode the tour.

        Args:
            solver: The solver backend to use (default: HiGHS).
            solver_options: Options for the solve. ``time_limit`` (seconds),
                ``memory_limit`` (MB) and ``int_tol`` apply to every backend;
                remaining keys are passed to the backend session.

        Returns:
            TourResult. Its status is TIME_LIMIT, and ``is_optimal`` False,
            when a limit stopped the solver with an incumbent.

        Raises:
            BuildFailureError: The model could not be registered.
            SolveInfeasibleError: The solver proved the model infeasible.
            SolveTimeLimitError: A limit was hit before any tour was found.
            SolveError: The solver failed.
            DegenerateSolutionError: The solved edges do not form one tour.
        """
        options = dict(solver_options or {})
        time_limit = float(options.pop("time_limit", DEFAULT_TIME_LIMIT))
        memory_limit = float(options.pop("memory_limit", DEFAULT_MEMORY_LIMIT))
        int_tol = float(options.pop("int_tol", DEFAULT_INTEGRALITY_TOL))
        solver = Solver.HIGHS if solver is None else solver

        start_time = time.time()
        subsets = build_subsets(self.instance.num_cities)

        with open_session(solver, **options) as session:
            model = build_model(session, self.instance, subsets)
            status = session.solve(time_limit, memory_limit, int_tol)
            self.status = status
            self.solver_stats = session.stats

            if status == SolverStatus.INFEASIBLE:
                raise SolveInfeasibleError("Solver proved the model infeasible")
            if status == SolverStatus.ERROR:
                raise SolveError(f"Solver {session.stats.solver_name} failed")

            try:
                tour = extract_tour(session, model, self.instance.start)
            except NoSolutionError as e:
                if status == SolverStatus.TIME_LIMIT:
                    raise SolveTimeLimitError(
                        f"Limit reached after {time.time() - start_time:.2f}s "
                        "without a feasible tour"
                    ) from e
                raise SolveError(f"Solver reported {status} without a solution") from e

        logger.info(
            f"Solved {self.instance.num_cities}-city instance: status={status}, "
            f"distance={tour.distance}, total time={time.time() - start_time:.3f}s"
        )
        return TourResult(tour=tour, status=status, stats=self.solver_stats)


def solve_tsp(distances, start: int = 0, solver=None, solver_options=None) -> TourResult:
    """Validate `distances`, then build, solve and decode the tour."""
    return TSPProblem(Instance(distances, start)).solve(
        solver=solver, solver_options=solver_options
    )
