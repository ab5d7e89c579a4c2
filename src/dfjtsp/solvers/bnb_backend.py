"""
Branch-and-Bound Backend

Solves the 0/1 program by branch-and-bound over LP relaxations, each solved
with scipy.optimize.linprog (HiGHS).

Features:
- Best-first or depth-first node selection
- Most-fractional branching
- Pruning by bound against the incumbent
- Time, node and open-node memory limits, returning the incumbent
- Each relaxation gets only the time left on the overall limit
"""

from __future__ import annotations

import heapq
import logging
import time
from typing import List, Optional, Tuple

import numpy as np
from scipy.optimize import linprog

from .base import LinearModelSession, LinearProgramData, SolverStatus
from .bnb import (
    BBNode,
    BBStats,
    NodeSelection,
    create_child_nodes,
    estimate_queue_mb,
    get_integer_violations,
    get_lp_bounds,
    satisfies_constraints,
    select_most_fractional,
)

logger = logging.getLogger(__name__)

# LP vertices carry round-off, so integrality is never checked tighter than this
MIN_INT_TOL = 1e-9

# linprog status codes
LP_OPTIMAL = 0
LP_LIMIT_REACHED = 1
LP_INFEASIBLE = 2


class LPLimitReached(Exception):
    """A node relaxation stopped on the time or iteration limit."""


class BranchAndBoundSession(LinearModelSession):
    """
    Session solved by an in-process branch-and-bound.

    Options:
        - bb_max_nodes: Maximum nodes to explore (default: 100000)
        - bb_abs_gap: Absolute optimality gap tolerance (default: 1e-6)
        - bb_rel_gap: Relative optimality gap tolerance (default: 1e-9)
        - bb_node_selection: "best_first" or "depth_first" (default: "best_first")
        - lp_method: scipy.optimize.linprog method (default: "highs-ds")
    """

    solver_name = "B&B(linprog)"
    SUPPORTED_OPTIONS = {
        "bb_max_nodes",
        "bb_abs_gap",
        "bb_rel_gap",
        "bb_node_selection",
        "lp_method",
    }

    def __init__(self, **options):
        unknown = set(options) - self.SUPPORTED_OPTIONS
        if unknown:
            raise ValueError(
                f"Unsupported B&B option(s): {', '.join(sorted(unknown))}"
            )
        super().__init__()
        self.max_nodes = int(options.get("bb_max_nodes", 100000))
        self.abs_gap = float(options.get("bb_abs_gap", 1e-6))
        self.rel_gap = float(options.get("bb_rel_gap", 1e-9))
        self.node_selection = NodeSelection(
            str(options.get("bb_node_selection", "best_first"))
        )
        self.lp_method = str(options.get("lp_method", "highs-ds"))
        self.bb_stats = BBStats()

    def _solve(
        self,
        data: LinearProgramData,
        time_limit: float,
        memory_limit: float,
        integrality_tolerance: float,
    ) -> Tuple[SolverStatus, Optional[np.ndarray], Optional[float]]:
        start_time = time.time()
        int_tol = max(integrality_tolerance, MIN_INT_TOL)
        stats = BBStats()
        self.bb_stats = stats

        incumbent_x: Optional[np.ndarray] = None
        incumbent_obj = float("inf")

        root = BBNode(priority=float("-inf"), node_id=0, depth=0)
        node_queue: List[BBNode] = [root]
        node_counter = 1
        limit_hit = None

        while node_queue:
            if time.time() - start_time > time_limit:
                limit_hit = "time"
                break
            if stats.nodes_explored >= self.max_nodes:
                limit_hit = "nodes"
                break
            if estimate_queue_mb(node_queue) > memory_limit:
                limit_hit = "memory"
                break

            stats.best_bound = min(n.priority for n in node_queue)
            if incumbent_x is not None and self._gap_closed(incumbent_obj, stats):
                logger.debug(f"Optimality gap reached (gap={stats.gap:.2e})")
                break

            node = self._select_node(node_queue)
            stats.nodes_explored += 1

            if node.lower_bound >= incumbent_obj - self.abs_gap:
                stats.nodes_pruned += 1
                continue

            remaining = max(time_limit - (time.time() - start_time), 0.0)
            try:
                lp_result = self._solve_node_lp(data, node, remaining)
            except LPLimitReached:
                # The node is still open
                heapq.heappush(node_queue, node)
                limit_hit = "time"
                break
            stats.lp_solves += 1
            if lp_result is None:
                stats.nodes_infeasible += 1
                continue

            x_relaxed, obj_relaxed = lp_result
            if obj_relaxed >= incumbent_obj - self.abs_gap:
                stats.nodes_pruned += 1
                continue

            violations = get_integer_violations(x_relaxed, int_tol)
            if not violations:
                candidate = np.round(x_relaxed)
                if satisfies_constraints(
                    candidate, data.A_eq, data.b_eq, data.A_ub, data.b_ub
                ):
                    incumbent_x = candidate
                    incumbent_obj = float(data.c @ incumbent_x)
                    node_queue = [
                        n for n in node_queue if n.priority < incumbent_obj - self.abs_gap
                    ]
                    heapq.heapify(node_queue)
                    logger.debug(
                        f"Node {stats.nodes_explored}: new incumbent {incumbent_obj:.6g}"
                    )
                    continue
                # Rounding within int_tol broke a row; branch on what is left
                violations = get_integer_violations(x_relaxed, MIN_INT_TOL)
                if not violations:
                    stats.nodes_infeasible += 1
                    continue

            branch_idx, _ = select_most_fractional(violations)
            down_node, up_node = create_child_nodes(
                node, branch_idx, obj_relaxed, node_counter
            )
            node_counter += 2
            heapq.heappush(node_queue, down_node)
            heapq.heappush(node_queue, up_node)

        self.stats.num_iters = stats.nodes_explored

        if incumbent_x is None:
            if limit_hit is None:
                return SolverStatus.INFEASIBLE, None, None
            logger.debug(f"B&B stopped on {limit_hit} limit without an incumbent")
            return SolverStatus.TIME_LIMIT, None, None

        if not node_queue or self._gap_closed(incumbent_obj, stats):
            stats.best_bound = incumbent_obj
            stats.gap = 0.0
            return SolverStatus.OPTIMAL, incumbent_x, incumbent_obj

        logger.debug(
            f"B&B stopped on {limit_hit} limit, incumbent={incumbent_obj:.6g}, "
            f"gap={stats.gap:.2e}"
        )
        if limit_hit == "nodes":
            return SolverStatus.FEASIBLE, incumbent_x, incumbent_obj
        return SolverStatus.TIME_LIMIT, incumbent_x, incumbent_obj

    def _gap_closed(self, incumbent_obj: float, stats: BBStats) -> bool:
        abs_diff = abs(incumbent_obj - stats.best_bound)
        if abs(incumbent_obj) > 1e-10:
            stats.gap = abs_diff / abs(incumbent_obj)
        else:
            stats.gap = abs_diff
        return stats.gap <= self.rel_gap or abs_diff <= self.abs_gap

    def _select_node(self, node_queue: List[BBNode]) -> BBNode:
        if self.node_selection == NodeSelection.BEST_FIRST:
            return heapq.heappop(node_queue)

        max_idx = max(range(len(node_queue)), key=lambda i: node_queue[i].depth)
        node = node_queue.pop(max_idx)
        heapq.heapify(node_queue)
        return node

    def _solve_node_lp(
        self, data: LinearProgramData, node: BBNode, time_limit: float
    ) -> Optional[Tuple[np.ndarray, float]]:
        """
        Solve the LP relaxation at a node.

        Returns None when the relaxation is infeasible. Raises LPLimitReached
        when linprog stops on its time or iteration limit, and RuntimeError on
        any other failure.
        """
        result = linprog(
            data.c,
            A_ub=data.A_ub,
            b_ub=data.b_ub,
            A_eq=data.A_eq,
            b_eq=data.b_eq,
            bounds=get_lp_bounds(node, data.num_vars),
            method=self.lp_method,
            options={"time_limit": time_limit},
        )
        if result.status == LP_INFEASIBLE:
            return None
        if result.status == LP_LIMIT_REACHED:
            raise LPLimitReached(result.message)
        if result.status != LP_OPTIMAL:
            raise RuntimeError(
                f"LP relaxation failed at node {node.node_id} "
                f"(status {result.status}): {result.message}"
            )
        return np.asarray(result.x), float(result.fun)
