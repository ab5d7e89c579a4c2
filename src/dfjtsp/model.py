"""
DFJ Model Assembly

Registers the Dantzig-Fulkerson-Johnson formulation with a solver session:

    minimize    sum_{i != j} d[i, j] * x[i, j]
    subject to  sum_{j != i} x[i, j] == 1                    (C1_i, leave i once)
                sum_{j != i} x[j, i] == 1                    (C2_i, enter i once)
                sum_{i, j in S, i != j} x[i, j] <= |S| - 1   (C3_S, no subtour in S)
                x[i, j] in {0, 1}

for every proper subset S with 2 <= |S| <= n - 1. All terms are directed, so
asymmetric distances are handled as given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

import numpy as np

from .errors import BuildFailureError, InvalidInstanceError
from .instance import Instance
from .solvers.base import GatewayError, SolverGateway, VariableHandle
from .subsets import build_subsets

logger = logging.getLogger(__name__)

Edge = Tuple[int, int]


@dataclass
class TSPModel:
    """Handles of a built model, valid only while its session is open."""

    num_cities: int
    variables: Dict[Edge, VariableHandle] = field(default_factory=dict)
    num_degree_constraints: int = 0
    num_subtour_constraints: int = 0

    @property
    def num_variables(self) -> int:
        return len(self.variables)

    @property
    def num_constraints(self) -> int:
        return self.num_degree_constraints + self.num_subtour_constraints


def build_model(
    session: SolverGateway,
    instance: Instance,
    subsets: Sequence[np.ndarray] | None = None,
) -> TSPModel:
    """
    Build variables, objective and constraints for `instance` in `session`.

    Args:
        session: Open solver session; it receives every registration.
        instance: The instance to model.
        subsets: Subsets for subtour elimination, one array per size.
            Defaults to ``build_subsets(instance.num_cities)``.

    Raises:
        InvalidInstanceError: `instance` is not an :class:`Instance`.
        BuildFailureError: The session rejected a registration. The session
            then holds a partial model and must be released.
    """
    if not isinstance(instance, Instance):
        raise InvalidInstanceError(
            f"Expected an Instance, got {type(instance).__name__}"
        )

    n = instance.num_cities
    if subsets is None:
        subsets = build_subsets(n)

    model = TSPModel(num_cities=n)
    try:
        model.variables = _create_edge_variables(session, n)
        session.set_objective_minimize(
            {
                var: instance.distance(v1, v2)
                for (v1, v2), var in model.variables.items()
            }
        )
        model.num_degree_constraints = _add_degree_constraints(
            session, model.variables, n
        )
        model.num_subtour_constraints = _add_subtour_constraints(
            session, model.variables, subsets
        )
    except GatewayError as e:
        raise BuildFailureError(f"Model registration failed: {e}") from e
    except KeyError as e:
        raise BuildFailureError(f"Subset references an unknown edge {e}") from e

    logger.info(
        f"Built DFJ model for {n} cities: {model.num_variables} variables, "
        f"{model.num_degree_constraints} degree and "
        f"{model.num_subtour_constraints} subtour elimination constraints"
    )
    return model


def _create_edge_variables(session: SolverGateway, n: int) -> Dict[Edge, VariableHandle]:
    variables = {}
    for v1 in range(n):
        for v2 in range(n):
            if v1 != v2:
                variables[v1, v2] = session.create_boolean_variable(
                    f"PATH_{{{v1},{v2}}}"
                )
    return variables


def _add_degree_constraints(
    session: SolverGateway, variables: Dict[Edge, VariableHandle], n: int
) -> int:
    for v in range(n):
        from_city = {variables[v, v2]: 1.0 for v2 in range(n) if v2 != v}
        to_city = {variables[v2, v]: 1.0 for v2 in range(n) if v2 != v}
        session.add_linear_equality(from_city, 1.0, f"C1_{v}")
        session.add_linear_equality(to_city, 1.0, f"C2_{v}")
    return 2 * n


def _add_subtour_constraints(
    session: SolverGateway,
    variables: Dict[Edge, VariableHandle],
    subsets: Sequence[np.ndarray],
) -> int:
    count = 0
    for by_size in subsets:
        for row in by_size:
            subset = [int(city) for city in row]
            inside = {
                variables[v1, v2]: 1.0
                for v1 in subset
                for v2 in subset
                if v1 != v2
            }
            session.add_linear_inequality(inside, len(subset) - 1, f"C3_{subset}")
            count += 1
        logger.debug(f"Added {len(by_size)} subtour constraints for subsets of size {by_size.shape[1]}")
    return count
