from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Tuple

import numpy as np

from .constants import SELECTION_THRESHOLD
from .errors import DegenerateSolutionError
from .model import Edge, TSPModel
from .solvers.base import SolverGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tour:
    """A closed tour: ``cities[0] == cities[-1] == start``."""

    cities: Tuple[int, ...]
    distance: float

    @property
    def start(self) -> int:
        return self.cities[0]

    @property
    def edges(self) -> List[Edge]:
        return list(zip(self.cities[:-1], self.cities[1:]))

    def legs(self, distances) -> List[Tuple[int, int, float]]:
        """(from, to, distance) for every edge of the tour."""
        matrix = np.asarray(distances)
        return [(v1, v2, float(matrix[v1, v2])) for v1, v2 in self.edges]

    def __len__(self):
        return len(self.cities)

    def __iter__(self):
        return iter(self.cities)


def follow_selected_edges(
    values: Mapping[Edge, float],
    n: int,
    start: int,
    threshold: float = SELECTION_THRESHOLD,
) -> Tuple[int, ...]:
    """
    Walk the selected edges from `start` until the cycle closes.

    Args:
        values: Solved value of every directed edge (v1, v2), v1 != v2.
        n: Number of cities.
        start: City the tour starts and ends at.
        threshold: Values above this count as selected.

    Returns:
        The n + 1 cities of the tour, beginning and ending at `start`.

    Raises:
        DegenerateSolutionError: A city on the walk has zero or several
            selected outgoing edges, a city is revisited, or the cycle does
            not close after exactly n steps.
    """
    successors = {}
    for (v1, v2), value in values.items():
        if v1 != v2 and value > threshold:
            successors.setdefault(v1, []).append(v2)

    path = [start]
    visited = {start}
    current = start
    for _ in range(n):
        selected = successors.get(current, [])
        if len(selected) != 1:
            raise DegenerateSolutionError(
                f"City {current} has {len(selected)} selected outgoing edges"
            )
        current = selected[0]
        path.append(current)
        if current == start:
            break
        if current in visited:
            raise DegenerateSolutionError(
                f"City {current} is visited twice before returning to {start}"
            )
        visited.add(current)

    if path[-1] != start:
        raise DegenerateSolutionError(
            f"Tour did not return to city {start} within {n} steps"
        )
    if len(path) != n + 1:
        raise DegenerateSolutionError(
            f"Cycle through city {start} covers {len(path) - 1} of {n} cities"
        )
    return tuple(path)


def extract_tour(session: SolverGateway, model: TSPModel, start: int) -> Tour:
    """Read the solved edge values from `session` and rebuild the tour."""
    values = {edge: session.get_value(var) for edge, var in model.variables.items()}
    cities = follow_selected_edges(values, model.num_cities, start)
    distance = session.get_objective_value()
    logger.debug(f"Tour {' -> '.join(map(str, cities))}, distance {distance}")
    return Tour(cities=cities, distance=distance)
