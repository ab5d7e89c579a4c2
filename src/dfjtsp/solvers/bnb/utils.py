"""
Utility Functions for Branch-and-Bound

Bound handling, integrality checks and child node creation shared by the
branch-and-bound session.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from .node import BBNode

# Rough footprint of one fixed bound held by an open node (dict slot + tuple)
BYTES_PER_FIXED_BOUND = 128


def get_lp_bounds(node: BBNode, n_vars: int) -> List[Tuple[float, float]]:
    """Get [0, 1] bounds for scipy.optimize.linprog with the node's fixings applied."""
    bounds = [(0.0, 1.0)] * n_vars
    for idx, (lb, ub) in node.var_bounds.items():
        bounds[idx] = (lb, ub)
    return bounds


def get_integer_violations(x: np.ndarray, tol: float) -> List[Tuple[int, float]]:
    """Get list of (index, value) for variables violating integrality."""
    frac = np.abs(x - np.round(x))
    return [(int(idx), float(x[idx])) for idx in np.flatnonzero(frac > tol)]


def select_most_fractional(violations: List[Tuple[int, float]]) -> Tuple[int, float]:
    """Pick the variable whose value is closest to 0.5."""
    return min(violations, key=lambda item: abs(item[1] - 0.5))


def create_child_nodes(
    parent: BBNode,
    branch_idx: int,
    parent_obj: float,
    node_counter: int,
) -> Tuple[BBNode, BBNode]:
    """Create the x = 0 and x = 1 children of a node."""
    down_bounds = dict(parent.var_bounds)
    down_bounds[branch_idx] = (0.0, 0.0)

    up_bounds = dict(parent.var_bounds)
    up_bounds[branch_idx] = (1.0, 1.0)

    down_node = BBNode(
        priority=parent_obj,
        node_id=node_counter,
        depth=parent.depth + 1,
        var_bounds=down_bounds,
        lower_bound=parent_obj,
    )
    up_node = BBNode(
        priority=parent_obj,
        node_id=node_counter + 1,
        depth=parent.depth + 1,
        var_bounds=up_bounds,
        lower_bound=parent_obj,
    )
    return down_node, up_node


def estimate_queue_mb(node_queue: List[BBNode]) -> float:
    """Estimated memory held by the open nodes, in MB."""
    n_fixed = sum(len(node.var_bounds) for node in node_queue)
    return n_fixed * BYTES_PER_FIXED_BOUND / 2**20


def satisfies_constraints(
    x: np.ndarray,
    A_eq,
    b_eq: Optional[np.ndarray],
    A_ub,
    b_ub: Optional[np.ndarray],
    tol: float = 1e-6,
) -> bool:
    """Check a point against the equality and inequality rows."""
    if A_eq is not None and np.any(np.abs(A_eq @ x - b_eq) > tol):
        return False
    if A_ub is not None and np.any(A_ub @ x - b_ub > tol):
        return False
    return True
