"""End-to-end tests: build, solve and decode tours."""
import itertools

import networkx as nx
import numpy as np
import pytest

import dfjtsp as tsp
from dfjtsp import (
    BuildFailureError,
    DegenerateSolutionError,
    ErrorKind,
    Instance,
    InvalidInstanceError,
    SolveError,
    SolveInfeasibleError,
    SolverStatus,
    SolveTimeLimitError,
    TSPProblem,
    solve_tsp,
)

from conftest import RecordingSession, assignment, ring_distances

SOLVERS = [tsp.HIGHS, tsp.BNB]


def _brute_force(distances, start=0):
    n = len(distances)
    others = [v for v in range(n) if v != start]
    best = float("inf")
    for order in itertools.permutations(others):
        cities = (start, *order, start)
        best = min(best, sum(distances[a][b] for a, b in zip(cities, cities[1:])))
    return best


def _assert_hamiltonian(cities, n, start):
    assert len(cities) == n + 1
    assert cities[0] == cities[-1] == start
    assert sorted(cities[:-1]) == list(range(n))
    cycle = nx.DiGraph(list(zip(cities[:-1], cities[1:])))
    assert nx.is_strongly_connected(cycle)
    assert len(nx.recursive_simple_cycles(cycle)) == 1


@pytest.mark.parametrize("solver", SOLVERS)
class TestRoundTrip:
    def test_four_city_ring(self, solver):
        result = solve_tsp(ring_distances(4), start=0, solver=solver)

        assert result.status == SolverStatus.OPTIMAL
        assert result.is_optimal
        assert result.distance == pytest.approx(4.0)
        assert result.cities in {(0, 1, 2, 3, 0), (0, 3, 2, 1, 0)}

    def test_start_city_is_respected(self, solver):
        result = solve_tsp(ring_distances(5), start=3, solver=solver)

        assert result.cities[0] == result.cities[-1] == 3
        _assert_hamiltonian(result.cities, 5, 3)
        assert result.distance == pytest.approx(5.0)

    def test_two_cities(self, solver):
        result = solve_tsp([[0, 3], [4, 0]], start=1, solver=solver)

        assert result.cities == (1, 0, 1)
        assert result.distance == pytest.approx(7.0)

    def test_asymmetric_distances(self, solver):
        # Clockwise legs cost 1, counter-clockwise legs cost 5, chords cost 10
        distances = [
            [0, 1, 10, 5],
            [5, 0, 1, 10],
            [10, 5, 0, 1],
            [1, 10, 5, 0],
        ]
        result = solve_tsp(distances, solver=solver)

        assert result.cities == (0, 1, 2, 3, 0)
        assert result.distance == pytest.approx(4.0)

    def test_matches_brute_force(self, solver):
        rng = np.random.default_rng(7)
        n = 6
        upper = rng.integers(1, 16, size=(n, n))
        distances = np.triu(upper, 1) + np.triu(upper, 1).T

        result = solve_tsp(distances, start=2, solver=solver)

        _assert_hamiltonian(result.cities, n, 2)
        assert result.distance == pytest.approx(_brute_force(distances.tolist(), 2))
        legs = result.tour.legs(distances)
        assert sum(d for _, _, d in legs) == pytest.approx(result.distance)

    def test_from_networkx_graph(self, solver):
        G = nx.complete_graph(5, create_using=nx.DiGraph())
        rng = np.random.default_rng(0)
        for u, v in G.edges:
            G[u][v]["weight"] = float(rng.uniform(1.0, 5.0))

        result = TSPProblem(Instance.from_graph(G)).solve(solver=solver)

        expected = _brute_force(nx.to_numpy_array(G).tolist())
        assert result.distance == pytest.approx(expected)


def test_backends_agree():
    rng = np.random.default_rng(11)
    distances = rng.integers(1, 20, size=(5, 5))
    np.fill_diagonal(distances, 0)

    highs = solve_tsp(distances, solver=tsp.HIGHS)
    bnb = solve_tsp(distances, solver=tsp.BNB, solver_options={"bb_node_selection": "depth_first"})

    assert highs.distance == pytest.approx(bnb.distance)


def test_problem_records_status_and_stats():
    problem = TSPProblem(Instance(ring_distances(4)))
    result = problem.solve(solver_options={"time_limit": 30, "memory_limit": 512})

    assert problem.status == SolverStatus.OPTIMAL
    assert problem.solver_stats is result.stats
    assert result.stats.solver_name == "HiGHS"
    assert result.stats.setup_time is not None


class TestErrorPaths:
    def test_non_square_matrix_never_reaches_solver(self, recording_backend):
        with pytest.raises(InvalidInstanceError) as exc_info:
            solve_tsp([[0, 1, 2, 3], [1, 0, 2, 3], [1, 2, 0, 3]], solver="recording")

        assert exc_info.value.kind == ErrorKind.INVALID_INSTANCE
        assert recording_backend == []

    def test_problem_requires_instance(self):
        with pytest.raises(InvalidInstanceError):
            TSPProblem([[0, 1], [1, 0]])

    def test_build_failure_releases_once_and_skips_solve(self, recording_backend):
        with pytest.raises(BuildFailureError):
            solve_tsp(
                ring_distances(4),
                solver="recording",
                solver_options={"fail_on_label": "C2_3"},
            )

        (session,) = recording_backend
        assert session.solve_calls == 0
        assert session.release_calls == 1
        assert session.released

    def test_infeasible(self, recording_backend):
        with pytest.raises(SolveInfeasibleError):
            solve_tsp(
                ring_distances(3),
                solver="recording",
                solver_options={"outcome": lambda data: (SolverStatus.INFEASIBLE, None, None)},
            )
        assert recording_backend[0].release_calls == 1

    def test_backend_crash_is_solve_error(self, recording_backend):
        def crash(data):
            raise RuntimeError("license expired")

        with pytest.raises(SolveError) as exc_info:
            solve_tsp(ring_distances(3), solver="recording", solver_options={"outcome": crash})

        assert exc_info.value.kind == ErrorKind.SOLVE_ERROR
        (session,) = recording_backend
        assert session.solve_calls == 1
        assert session.release_calls == 1

    def test_time_limit_with_incumbent(self, recording_backend):
        ring = {(0, 1), (1, 2), (2, 3), (3, 0)}
        result = solve_tsp(
            ring_distances(4),
            solver="recording",
            solver_options={
                "outcome": lambda data: (SolverStatus.TIME_LIMIT, assignment(data, ring), 4.0)
            },
        )

        assert result.status == SolverStatus.TIME_LIMIT
        assert not result.is_optimal
        assert result.cities == (0, 1, 2, 3, 0)
        assert recording_backend[0].release_calls == 1

    def test_time_limit_without_incumbent(self, recording_backend):
        with pytest.raises(SolveTimeLimitError) as exc_info:
            solve_tsp(
                ring_distances(4),
                solver="recording",
                solver_options={"outcome": lambda data: (SolverStatus.TIME_LIMIT, None, None)},
            )
        assert exc_info.value.kind == ErrorKind.SOLVE_TIME_LIMIT
        assert recording_backend[0].release_calls == 1

    def test_degenerate_solver_output(self, recording_backend):
        two_cycles = {(0, 1), (1, 0), (2, 3), (3, 2)}
        with pytest.raises(DegenerateSolutionError):
            solve_tsp(
                ring_distances(4),
                solver="recording",
                solver_options={
                    "outcome": lambda data: (SolverStatus.FEASIBLE, assignment(data, two_cycles), 2.0)
                },
            )
        assert recording_backend[0].release_calls == 1

    def test_limits_are_passed_through(self, recording_backend, monkeypatch):
        seen = {}

        def spy(self, data, time_limit, memory_limit, integrality_tolerance):
            seen.update(time=time_limit, memory=memory_limit, tol=integrality_tolerance)
            return SolverStatus.INFEASIBLE, None, None

        monkeypatch.setattr(RecordingSession, "_solve", spy)
        with pytest.raises(SolveInfeasibleError):
            solve_tsp(
                ring_distances(3),
                solver="recording",
                solver_options={"time_limit": 12, "memory_limit": 256, "int_tol": 1e-6},
            )
        assert seen == {"time": 12.0, "memory": 256.0, "tol": 1e-6}

    def test_unknown_solver(self):
        with pytest.raises(ValueError, match="No solver backend"):
            solve_tsp(ring_distances(3), solver="gurobi")
