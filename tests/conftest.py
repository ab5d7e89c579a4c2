import pytest

from dfjtsp.solvers import _SOLVER_BACKENDS, GatewayError, LinearModelSession, SolverStatus


class RecordingSession(LinearModelSession):
    """Session that records every call and returns a scripted outcome.

    `outcome` is called with the assembled LinearProgramData and returns
    (status, x, objective); it may also raise to simulate a backend crash.
    """

    solver_name = "recording"

    def __init__(self, outcome=None, fail_on_label=None):
        super().__init__()
        self.outcome = outcome
        self.fail_on_label = fail_on_label
        self.solve_calls = 0
        self.release_calls = 0
        self.data = None

    def _add_row(self, expr, op, rhs, label):
        if label == self.fail_on_label:
            raise GatewayError(f"Rejected constraint '{label}'")
        super()._add_row(expr, op, rhs, label)

    def _solve(self, data, time_limit, memory_limit, integrality_tolerance):
        self.solve_calls += 1
        self.data = data
        if self.outcome is None:
            return SolverStatus.ERROR, None, None
        return self.outcome(data)

    def release(self):
        self.release_calls += 1
        super().release()


def assignment(data, edges):
    """0/1 vector selecting exactly the given directed edges."""
    wanted = {f"PATH_{{{v1},{v2}}}" for v1, v2 in edges}
    return [1.0 if label in wanted else 0.0 for label in data.var_labels]


def ring_distances(n, near=1.0, far=10.0):
    """Distance `near` between neighbours on the ring 0-1-...-(n-1)-0, `far` elsewhere."""
    distances = [[far] * n for _ in range(n)]
    for v in range(n):
        distances[v][v] = 0.0
        distances[v][(v + 1) % n] = near
        distances[(v + 1) % n][v] = near
    return distances


@pytest.fixture
def recording_backend(monkeypatch):
    """Register the "recording" solver and collect every session it creates."""
    sessions = []

    def factory(**options):
        session = RecordingSession(**options)
        sessions.append(session)
        return session

    monkeypatch.setitem(_SOLVER_BACKENDS, "recording", factory)
    return sessions
