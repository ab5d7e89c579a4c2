"""HiGHS backend using scipy.optimize.milp."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, milp

from .base import LinearModelSession, LinearProgramData, SolverStatus

logger = logging.getLogger(__name__)


class HighsSession(LinearModelSession):
    """Session solved in one call to HiGHS through ``scipy.optimize.milp``.

    Options:
        - mip_rel_gap: relative optimality gap (default: HiGHS default)
        - node_limit: maximum branch-and-bound nodes
        - presolve: run the HiGHS presolver (default: True)
        - disp: print HiGHS progress (default: False)

    HiGHS stops with the best incumbent when the time limit is hit. The
    memory limit and integrality tolerance are not exposed by scipy and are
    only recorded.
    """

    solver_name = "HiGHS"
    SUPPORTED_OPTIONS = {"mip_rel_gap", "node_limit", "presolve", "disp"}

    def __init__(self, **options):
        unknown = set(options) - self.SUPPORTED_OPTIONS
        if unknown:
            raise ValueError(
                f"Unsupported HiGHS option(s): {', '.join(sorted(unknown))}"
            )
        super().__init__()
        self.options = dict(options)

    def _solve(
        self,
        data: LinearProgramData,
        time_limit: float,
        memory_limit: float,
        integrality_tolerance: float,
    ) -> Tuple[SolverStatus, Optional[np.ndarray], Optional[float]]:
        logger.debug(
            f"HiGHS via scipy does not enforce memory_limit={memory_limit}MB "
            f"or integrality_tolerance={integrality_tolerance}"
        )

        constraints = []
        if data.A_eq is not None:
            constraints.append(LinearConstraint(data.A_eq, data.b_eq, data.b_eq))
        if data.A_ub is not None:
            constraints.append(LinearConstraint(data.A_ub, -np.inf, data.b_ub))

        options = dict(self.options)
        options["time_limit"] = float(time_limit)

        result = milp(
            c=data.c,
            constraints=constraints or None,
            integrality=np.ones(data.num_vars, dtype=int),
            bounds=Bounds(np.zeros(data.num_vars), np.ones(data.num_vars)),
            options=options,
        )
        self.stats.num_iters = getattr(result, "mip_node_count", None)

        status = self._interpret_status(result)
        x = getattr(result, "x", None)
        if x is None:
            return status, None, None
        return status, x, getattr(result, "fun", None)

    @staticmethod
    def _interpret_status(result) -> SolverStatus:
        status_map = {
            0: SolverStatus.OPTIMAL,
            1: SolverStatus.TIME_LIMIT,
            2: SolverStatus.INFEASIBLE,
        }
        status_code = getattr(result, "status", None)
        return status_map.get(status_code, SolverStatus.ERROR)
