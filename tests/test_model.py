"""Tests for DFJ model assembly."""
import itertools

import numpy as np
import pytest

from dfjtsp import BuildFailureError, ErrorKind, Instance, InvalidInstanceError, build_model
from dfjtsp.solvers import DuplicateLabelError, HighsSession
from dfjtsp.subsets import build_subsets

from conftest import RecordingSession, ring_distances


def _built(n, distances=None):
    session = RecordingSession()
    instance = Instance(distances or ring_distances(n))
    model = build_model(session, instance)
    return session, model, session._assemble()


def _feasible_assignments(data):
    """All 0/1 vectors satisfying every row, by exhaustive enumeration."""
    n_vars = data.num_vars
    X = ((np.arange(2**n_vars)[:, None] >> np.arange(n_vars)) & 1).astype(float)
    ok = np.ones(len(X), dtype=bool)
    if data.A_eq is not None:
        ok &= np.all(np.isclose(data.A_eq @ X.T, data.b_eq[:, None]), axis=0)
    if data.A_ub is not None:
        ok &= np.all(data.A_ub @ X.T <= data.b_ub[:, None] + 1e-9, axis=0)
    return X[ok]


class TestModelStructure:
    def test_variables_exclude_self_edges(self):
        session, model, data = _built(5)

        assert model.num_variables == 5 * 4
        assert all(v1 != v2 for v1, v2 in model.variables)
        assert "PATH_{0,0}" not in data.var_labels
        assert "PATH_{3,1}" in data.var_labels

    def test_constraint_counts(self):
        session, model, data = _built(5)

        assert model.num_degree_constraints == 10
        assert model.num_subtour_constraints == 25  # C(5,2) + C(5,3) + C(5,4)
        assert session.num_constraints == model.num_constraints
        assert data.A_eq.shape == (10, 20)
        assert data.A_ub.shape == (25, 20)

    def test_objective_uses_directed_distances(self):
        distances = [[0, 1, 2], [3, 0, 4], [5, 6, 0]]
        session, model, data = _built(3, distances)

        for (v1, v2), var in model.variables.items():
            assert data.c[var.index] == distances[v1][v2]

    def test_degree_rows(self):
        session, model, data = _built(4)
        labels = [row.label for row in session._rows if row.op == "=="]

        assert labels == ["C1_0", "C2_0", "C1_1", "C2_1", "C1_2", "C2_2", "C1_3", "C2_3"]
        assert np.all(data.b_eq == 1.0)
        # Every variable appears in exactly one C1 row and one C2 row
        assert np.all(np.asarray(data.A_eq.sum(axis=0)).ravel() == 2.0)

    def test_subtour_rows(self):
        session, model, data = _built(4)
        rows = [row for row in session._rows if row.op == "<="]

        assert [row.label for row in rows][:2] == ["C3_[0, 1]", "C3_[0, 2]"]
        assert rows[-1].label == "C3_[1, 2, 3]"
        for row in rows:
            size = len(row.label[len("C3_["):-1].split(","))
            assert row.rhs == size - 1
            assert len(row.columns) == size * (size - 1)

    def test_two_cities_have_no_subtour_rows(self):
        session, model, data = _built(2, [[0, 3], [4, 0]])

        assert model.num_subtour_constraints == 0
        assert data.A_ub is None

    def test_explicit_subsets(self):
        session = RecordingSession()
        model = build_model(session, Instance(ring_distances(4)), subsets=build_subsets(4)[:1])

        assert model.num_subtour_constraints == 6


class TestFeasibleSet:
    def test_four_city_feasible_set_is_exactly_the_tours(self):
        session, model, data = _built(4)
        feasible = _feasible_assignments(data)

        # (4 - 1)! directed Hamiltonian cycles
        assert len(feasible) == 6
        index = {var.index: edge for edge, var in model.variables.items()}
        for x in feasible:
            edges = [index[i] for i in np.flatnonzero(x)]
            assert sorted(v1 for v1, _ in edges) == [0, 1, 2, 3]
            assert sorted(v2 for _, v2 in edges) == [0, 1, 2, 3]

    def test_subset_edge_bound_holds_for_feasible_assignments(self):
        n = 4
        session, model, data = _built(n)
        feasible = _feasible_assignments(data)

        for x in feasible:
            for size in range(2, n):
                for subset in itertools.combinations(range(n), size):
                    inside = sum(
                        x[model.variables[v1, v2].index]
                        for v1 in subset
                        for v2 in subset
                        if v1 != v2
                    )
                    assert inside <= size - 1

    def test_degree_only_model_admits_subtours(self):
        session = RecordingSession()
        model = build_model(session, Instance(ring_distances(4)), subsets=())
        feasible = _feasible_assignments(session._assemble())

        # Two disjoint 2-cycles are now allowed as well: 9 derangements of 4 items
        assert len(feasible) == 9


class TestBuildErrors:
    def test_not_an_instance(self):
        session = RecordingSession()
        with pytest.raises(InvalidInstanceError):
            build_model(session, [[0, 1], [1, 0]])
        assert session.num_variables == 0

    def test_registration_failure_becomes_build_failure(self):
        session = RecordingSession(fail_on_label="C3_[1, 2]")
        with pytest.raises(BuildFailureError) as exc_info:
            build_model(session, Instance(ring_distances(4)))

        assert exc_info.value.kind == ErrorKind.BUILD_FAILURE
        assert session.solve_calls == 0

    def test_duplicate_label_becomes_build_failure(self):
        session = HighsSession()
        session.create_boolean_variable("PATH_{0,1}")

        with pytest.raises(BuildFailureError) as exc_info:
            build_model(session, Instance(ring_distances(3)))
        assert isinstance(exc_info.value.__cause__, DuplicateLabelError)

    def test_subset_outside_instance(self):
        session = RecordingSession()
        bogus = (np.array([[0, 7]]),)
        with pytest.raises(BuildFailureError):
            build_model(session, Instance(ring_distances(3)), subsets=bogus)
