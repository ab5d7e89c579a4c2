from __future__ import annotations

import numpy as np
import networkx as nx

from .errors import InvalidInstanceError


class Instance:
    """A TSP instance: an n x n distance matrix and the start city.

    The matrix is copied and frozen on construction. It may be asymmetric;
    diagonal entries are never used.
    """

    def __init__(self, distances, start: int = 0):
        try:
            matrix = np.array(distances, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InvalidInstanceError(f"Distance matrix is not numeric: {exc}") from exc

        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise InvalidInstanceError(
                f"Distance matrix must be square, got shape {matrix.shape}"
            )
        n = matrix.shape[0]
        if n < 2:
            raise InvalidInstanceError(f"At least 2 cities are required, got {n}")
        if not np.all(np.isfinite(matrix)):
            raise InvalidInstanceError("Distance matrix contains non-finite entries")
        if np.any(matrix < 0):
            raise InvalidInstanceError("Distance matrix contains negative entries")
        if isinstance(start, bool) or not isinstance(start, (int, np.integer)):
            raise InvalidInstanceError(f"Start city must be an integer, got {start!r}")
        if not 0 <= start < n:
            raise InvalidInstanceError(f"Start city {start} is out of range [0, {n})")

        matrix.setflags(write=False)
        self._distances = matrix
        self._start = int(start)

    @classmethod
    def from_graph(cls, graph: nx.Graph, start=None, weight: str = "weight") -> Instance:
        """Build an instance from a complete weighted graph.

        Nodes are relabelled 0..n-1 in ``graph.nodes`` order; ``start`` is a
        node of the graph (defaults to the first one). Undirected graphs give
        symmetric matrices. Every edge must carry the ``weight`` attribute.
        """
        if graph.is_multigraph():
            raise InvalidInstanceError("Multigraphs are not supported")
        nodes = list(graph.nodes)
        if start is None and nodes:
            start = nodes[0]
        index = {node: i for i, node in enumerate(nodes)}
        if start not in index:
            raise InvalidInstanceError(f"Start node {start!r} is not in the graph")

        n = len(nodes)
        matrix = np.zeros((n, n))
        for u in nodes:
            for v in nodes:
                if u == v:
                    continue
                if not graph.has_edge(u, v):
                    raise InvalidInstanceError(f"Graph is not complete: missing edge {u!r} -> {v!r}")
                attrs = graph[u][v]
                if weight not in attrs:
                    raise InvalidInstanceError(
                        f"Edge {u!r} -> {v!r} has no '{weight}' attribute"
                    )
                matrix[index[u], index[v]] = attrs[weight]
        return cls(matrix, index[start])

    @property
    def distances(self) -> np.ndarray:
        return self._distances

    @property
    def start(self) -> int:
        return self._start

    @property
    def num_cities(self) -> int:
        return self._distances.shape[0]

    def distance(self, v1: int, v2: int) -> float:
        return float(self._distances[v1, v2])

    def __repr__(self):
        return f"Instance(num_cities={self.num_cities}, start={self.start})"
