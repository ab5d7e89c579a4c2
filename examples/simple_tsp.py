"""
Simple TSP - Traveling Salesman Problem (cycle)

Find the shortest Hamiltonian cycle through randomly placed cities with the
DFJ formulation, once with HiGHS and once with the built-in branch-and-bound.
"""

import logging

import numpy as np
import networkx as nx

import dfjtsp as tsp

logging.basicConfig(level=logging.INFO)

np.random.seed(42)

NUM_CITIES = 6
MIN_DISTANCE = 1
MAX_DISTANCE = 15

# Build directed complete graph with symmetric random costs
G = nx.complete_graph(NUM_CITIES, create_using=nx.DiGraph())
for i in range(NUM_CITIES):
    for j in range(i + 1, NUM_CITIES):
        weight = float(np.random.randint(MIN_DISTANCE, MAX_DISTANCE + 1))
        G[i][j]["weight"] = weight
        G[j][i]["weight"] = weight

start = int(np.random.randint(NUM_CITIES))
instance = tsp.Instance.from_graph(G, start=start)

print(f"Problem: {NUM_CITIES} cities, start at {start}, "
      f"{tsp.count_subsets(NUM_CITIES)} subtour elimination constraints")

for solver in (tsp.HIGHS, tsp.BNB):
    try:
        result = tsp.TSPProblem(instance).solve(
            solver=solver, solver_options={"time_limit": 60}
        )
    except tsp.TSPError as e:
        print(f"{solver}: failed -> {e.kind}: {e.message}")
        continue

    print(f"\n{solver}: status={result.status}, optimal={result.is_optimal}")
    print(f"Total distance: {result.distance:.0f}")
    path = " -> ".join(
        f"City_{v1} ({d:.0f})" for v1, _, d in result.tour.legs(instance.distances)
    )
    print(f"Path: {path} -> City_{result.cities[-1]}")
