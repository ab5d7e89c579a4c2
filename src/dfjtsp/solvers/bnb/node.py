"""
Branch-and-Bound Node and Statistics Dataclasses

Every decision variable is binary, so a node only records which variables
have been fixed to 0 or 1 on the path from the root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


class NodeSelection(Enum):
    """Node selection strategy."""

    BEST_FIRST = "best_first"  # Always pick node with best bound
    DEPTH_FIRST = "depth_first"  # Pick deepest node (finds feasible tours faster)


@dataclass(order=True)
class BBNode:
    """
    A node in the branch-and-bound tree.

    `lower_bound` is inherited from the parent's LP relaxation; `priority`
    mirrors it for heap ordering in best-first selection.
    """

    priority: float

    node_id: int = field(compare=False)
    depth: int = field(compare=False)

    # Fixed bounds on the flattened x vector: index -> (lb, ub)
    var_bounds: Dict[int, Tuple[float, float]] = field(
        compare=False, default_factory=dict
    )

    lower_bound: float = field(compare=False, default=float("-inf"))


@dataclass
class BBStats:
    """Statistics from the branch-and-bound solve."""

    nodes_explored: int = 0
    nodes_pruned: int = 0
    nodes_infeasible: int = 0
    best_bound: float = float("-inf")
    gap: float = float("inf")
    lp_solves: int = 0
