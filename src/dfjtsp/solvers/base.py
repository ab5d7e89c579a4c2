from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix

logger = logging.getLogger(__name__)

_SESSION_IDS = itertools.count()


class SolverStatus(StrEnum):
    OPTIMAL = "optimal"
    FEASIBLE = "feasible"
    INFEASIBLE = "infeasible"
    TIME_LIMIT = "time_limit"
    ERROR = "error"


class GatewayError(RuntimeError):
    """Raised by a solver session when a registration or query is rejected."""


class DuplicateLabelError(GatewayError):
    pass


class ForeignHandleError(GatewayError):
    pass


class SessionReleasedError(GatewayError):
    pass


class NoSolutionError(GatewayError):
    pass


@dataclass(frozen=True)
class VariableHandle:
    session_id: int
    index: int
    label: str

    def __repr__(self):
        return f"Var({self.label})"


LinearExpr = Mapping[VariableHandle, float]


@dataclass
class SolverStats:
    solver_name: str
    solve_time: Optional[float] = None
    setup_time: Optional[float] = None
    num_iters: Optional[int] = None


@dataclass
class ConstraintRow:
    label: str
    columns: Tuple[int, ...]
    coefficients: Tuple[float, ...]
    op: str  # "==" or "<="
    rhs: float


@dataclass
class LinearProgramData:
    """Column-oriented view of a 0/1 linear program, as handed to a backend."""

    c: np.ndarray
    A_eq: Optional[csr_matrix]
    b_eq: Optional[np.ndarray]
    A_ub: Optional[csr_matrix]
    b_ub: Optional[np.ndarray]
    var_labels: List[str] = field(default_factory=list)

    @property
    def num_vars(self) -> int:
        return len(self.c)


class SolverGateway(Protocol):
    stats: SolverStats

    def create_boolean_variable(self, label: str) -> VariableHandle:
        ...

    def add_linear_equality(self, expr: LinearExpr, rhs: float, label: str) -> None:
        ...

    def add_linear_inequality(self, expr: LinearExpr, rhs: float, label: str) -> None:
        ...

    def set_objective_minimize(self, expr: LinearExpr) -> None:
        ...

    def solve(
        self,
        time_limit: float,
        memory_limit: float,
        integrality_tolerance: float,
    ) -> SolverStatus:
        ...

    def get_value(self, handle: VariableHandle) -> float:
        ...

    def get_objective_value(self) -> float:
        ...

    def release(self) -> None:
        ...


class LinearModelSession:
    """
    Shared bookkeeping for sessions over pure 0/1 linear programs.

    Holds variables, constraint rows and the objective for a single
    build/solve sequence. Subclasses implement ``_solve`` on the assembled
    :class:`LinearProgramData`.
    """

    solver_name = "linear"

    def __init__(self):
        self.session_id = next(_SESSION_IDS)
        self.stats = SolverStats(solver_name=self.solver_name)
        self._var_labels: List[str] = []
        self._var_label_set: set = set()
        self._rows: List[ConstraintRow] = []
        self._row_label_set: set = set()
        self._objective: Dict[int, float] = {}
        self._solution: Optional[np.ndarray] = None
        self._objective_value: Optional[float] = None
        self._status: Optional[SolverStatus] = None
        self._released = False

    # =========================================================================
    # Registration
    # =========================================================================

    def create_boolean_variable(self, label: str) -> VariableHandle:
        self._check_open()
        if label in self._var_label_set:
            raise DuplicateLabelError(f"Variable label '{label}' is already in use")
        handle = VariableHandle(self.session_id, len(self._var_labels), label)
        self._var_labels.append(label)
        self._var_label_set.add(label)
        return handle

    def add_linear_equality(self, expr: LinearExpr, rhs: float, label: str) -> None:
        self._add_row(expr, "==", rhs, label)

    def add_linear_inequality(self, expr: LinearExpr, rhs: float, label: str) -> None:
        self._add_row(expr, "<=", rhs, label)

    def set_objective_minimize(self, expr: LinearExpr) -> None:
        self._check_open()
        self._objective = dict(zip(*self._unpack_expr(expr)))

    def _add_row(self, expr: LinearExpr, op: str, rhs: float, label: str) -> None:
        self._check_open()
        if label in self._row_label_set:
            raise DuplicateLabelError(f"Constraint label '{label}' is already in use")
        columns, coefficients = self._unpack_expr(expr)
        self._rows.append(ConstraintRow(label, columns, coefficients, op, float(rhs)))
        self._row_label_set.add(label)

    def _unpack_expr(self, expr: LinearExpr) -> Tuple[Tuple[int, ...], Tuple[float, ...]]:
        columns = []
        coefficients = []
        for handle, coef in expr.items():
            self._check_handle(handle)
            if coef != 0:
                columns.append(handle.index)
                coefficients.append(float(coef))
        return tuple(columns), tuple(coefficients)

    # =========================================================================
    # Solve
    # =========================================================================

    def solve(
        self,
        time_limit: float,
        memory_limit: float,
        integrality_tolerance: float,
    ) -> SolverStatus:
        self._check_open()
        if time_limit <= 0:
            raise ValueError(f"time_limit must be positive, got {time_limit}")
        if memory_limit <= 0:
            raise ValueError(f"memory_limit must be positive, got {memory_limit}")
        if integrality_tolerance < 0:
            raise ValueError(
                f"integrality_tolerance must be non-negative, got {integrality_tolerance}"
            )

        start_setup_time = time.time()
        data = self._assemble()
        self.stats.setup_time = time.time() - start_setup_time

        start_time = time.time()
        try:
            status, x, obj = self._solve(
                data, time_limit, memory_limit, integrality_tolerance
            )
        except (ValueError, RuntimeError) as e:
            logger.error(f"{self.solver_name} failed: {e}")
            status, x, obj = SolverStatus.ERROR, None, None
        self.stats.solve_time = time.time() - start_time

        self._status = status
        self._solution = None if x is None else np.asarray(x, dtype=float)
        self._objective_value = None if obj is None else float(obj)

        logger.info(
            f"{self.solver_name}: status={status}, objective={self._objective_value}, "
            f"solve time={self.stats.solve_time:.3f}s"
        )
        return status

    def _solve(
        self,
        data: LinearProgramData,
        time_limit: float,
        memory_limit: float,
        integrality_tolerance: float,
    ) -> Tuple[SolverStatus, Optional[np.ndarray], Optional[float]]:
        raise NotImplementedError

    def _assemble(self) -> LinearProgramData:
        n_vars = len(self._var_labels)
        c = np.zeros(n_vars)
        for idx, coef in self._objective.items():
            c[idx] = coef

        eq_rows = [r for r in self._rows if r.op == "=="]
        ub_rows = [r for r in self._rows if r.op == "<="]
        A_eq, b_eq = self._to_sparse(eq_rows, n_vars)
        A_ub, b_ub = self._to_sparse(ub_rows, n_vars)

        logger.debug(
            f"Assembled {n_vars} variables, {len(eq_rows)} equalities, "
            f"{len(ub_rows)} inequalities"
        )
        return LinearProgramData(
            c=c,
            A_eq=A_eq,
            b_eq=b_eq,
            A_ub=A_ub,
            b_ub=b_ub,
            var_labels=list(self._var_labels),
        )

    @staticmethod
    def _to_sparse(
        rows: List[ConstraintRow], n_vars: int
    ) -> Tuple[Optional[csr_matrix], Optional[np.ndarray]]:
        if not rows:
            return None, None
        row_idx = []
        col_idx = []
        data = []
        for i, row in enumerate(rows):
            row_idx.extend([i] * len(row.columns))
            col_idx.extend(row.columns)
            data.extend(row.coefficients)
        A = coo_matrix((data, (row_idx, col_idx)), shape=(len(rows), n_vars)).tocsr()
        b = np.array([row.rhs for row in rows])
        return A, b

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def status(self) -> Optional[SolverStatus]:
        return self._status

    @property
    def num_variables(self) -> int:
        return len(self._var_labels)

    @property
    def num_constraints(self) -> int:
        return len(self._rows)

    def get_value(self, handle: VariableHandle) -> float:
        self._check_open()
        self._check_handle(handle)
        if self._solution is None:
            raise NoSolutionError(f"No solution available (status={self._status})")
        return float(self._solution[handle.index])

    def get_objective_value(self) -> float:
        self._check_open()
        if self._objective_value is None:
            raise NoSolutionError(f"No objective value available (status={self._status})")
        return self._objective_value

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._var_labels.clear()
        self._var_label_set.clear()
        self._rows.clear()
        self._row_label_set.clear()
        self._objective.clear()
        self._solution = None
        self._objective_value = None
        logger.debug(f"Released {self.solver_name} session {self.session_id}")

    @property
    def released(self) -> bool:
        return self._released

    def _check_open(self) -> None:
        if self._released:
            raise SessionReleasedError(f"Session {self.session_id} has been released")

    def _check_handle(self, handle: VariableHandle) -> None:
        if not isinstance(handle, VariableHandle) or handle.session_id != self.session_id:
            raise ForeignHandleError(
                f"{handle!r} does not belong to session {self.session_id}"
            )
