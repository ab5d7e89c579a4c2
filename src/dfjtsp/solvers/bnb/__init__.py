"""
Branch-and-Bound over LP Relaxations

Modules:
- node: Node, statistics and node selection dataclasses
- utils: Bound handling, integrality and feasibility checks, branching helpers

The session itself lives in ``dfjtsp.solvers.bnb_backend``.
"""

from .node import BBNode, BBStats, NodeSelection
from .utils import (
    create_child_nodes,
    estimate_queue_mb,
    get_integer_violations,
    get_lp_bounds,
    satisfies_constraints,
    select_most_fractional,
)

__all__ = [
    "BBNode",
    "BBStats",
    "NodeSelection",
    "create_child_nodes",
    "estimate_queue_mb",
    "get_integer_violations",
    "get_lp_bounds",
    "satisfies_constraints",
    "select_most_fractional",
]
