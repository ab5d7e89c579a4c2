"""
Subset Enumeration for Subtour Elimination

Every proper subset of cities with 2 <= |S| <= n - 1 contributes one
subtour-elimination row to the DFJ model. Subsets of one size are stored as
the rows of an integer array, ordered lexicographically, and filled position
by position: for a prefix ending at city c, the C(n - 1 - c, remaining) rows
that share it form one contiguous block.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Iterator, List, Tuple

import numpy as np

logger = logging.getLogger(__name__)


def binomial(n: int, k: int) -> int:
    """C(n, k) with the multiplicative formula (exact, no factorials)."""
    if k < 0 or k > n:
        return 0
    k = min(k, n - k)
    result = 1
    for i in range(1, k + 1):
        # Exact at every step: result holds C(n - k + i, i)
        result = result * (n - k + i) // i
    return result


def count_subsets(n: int, size: int | None = None) -> int:
    """Number of subsets of one size, or of the whole collection when size is None."""
    if size is not None:
        return binomial(n, size)
    return sum(binomial(n, k) for k in range(2, n))


def subsets_of_size(n: int, size: int) -> np.ndarray:
    """
    All strictly increasing subsets of {0, ..., n-1} with `size` elements.

    Returns a read-only array of shape (C(n, size), size). Row order is
    lexicographic.
    """
    if size < 2 or size > n - 1:
        raise ValueError(f"Subset size must be in [2, {n - 1}] for {n} cities, got {size}")

    subsets = np.empty((binomial(n, size), size), dtype=np.intp)

    # Work items: (first row of the block, first candidate city, position to fill)
    stack: List[Tuple[int, int, int]] = [(0, 0, 0)]
    while stack:
        first_row, first_city, position = stack.pop()
        remaining = size - position - 1
        row = first_row
        for city in range(first_city, n - remaining):
            block = binomial(n - 1 - city, remaining)
            subsets[row : row + block, position] = city
            if remaining > 0:
                stack.append((row, city + 1, position + 1))
            row += block

    subsets.setflags(write=False)
    return subsets


@lru_cache(maxsize=32)
def build_subsets(n: int) -> Tuple[np.ndarray, ...]:
    """All subsets needed for subtour elimination, one array per size 2..n-1.

    The result depends on n alone and is cached, so instances with the same
    number of cities share it.
    """
    if n < 3:
        return ()
    subsets = []
    for size in range(2, n):
        by_size = subsets_of_size(n, size)
        logger.debug(f"{len(by_size)} subsets of size {size} for {n} cities")
        subsets.append(by_size)
    return tuple(subsets)


def iter_subsets(n: int) -> Iterator[Tuple[int, ...]]:
    for by_size in build_subsets(n):
        for row in by_size:
            yield tuple(int(city) for city in row)
