from enum import StrEnum


class Solver(StrEnum):
    HIGHS = "HiGHS"  # scipy.optimize.milp
    BNB = "BnB"  # Branch-and-Bound over LP relaxations


DEFAULT_TIME_LIMIT = 60 * 3  # seconds
DEFAULT_MEMORY_LIMIT = 5000  # MB
DEFAULT_INTEGRALITY_TOL = 0.0

# Solved edge values above this count as selected
SELECTION_THRESHOLD = 0.5
