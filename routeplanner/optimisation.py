"""
Route ordering heuristics for the delivery route planner.

This module decides in which order the stops of a delivery run are
visited. It provides three main functions:

    - ``nearest_neighbor``: build an initial visiting order by repeatedly
      driving to the closest stop that has not been visited yet.
    - ``two_opt``: improve a visiting order by reversing segments of it
      until no single reversal makes the route cheaper.
    - ``route_total``: add up the cost of a visiting order, optionally
      ending at a fixed end location.

The functions operate on a square cost matrix (distances in metres or
durations in seconds). Index 0 is always the fixed start location and
indices ``1..N-1`` are the stops in the order the user entered them.
A visiting order never contains index 0; the start is implicit.

The matrix may be asymmetric, and cells the provider could not route are
``None``. Such cells are impassable: they are never driven along and
any route using one has an unknown total.

Everything here is pure and synchronous. Nothing is mutated and nothing
raises for odd input; problems show up as a short route or a ``None``
total which the caller must check.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import List, Optional, Sequence

Matrix = Sequence[Sequence[Optional[float]]]

START = 0
MIN_TWO_OPT_LENGTH = 4


def edge_cost(matrix: Matrix, origin: int, destination: int) -> Optional[float]:
    """Return the known cost of ``origin -> destination`` or ``None``.

    Missing rows, ``None``, non-numbers, booleans, NaN, infinities and
    negative values are all reported as unknown.
    """
    try:
        value = matrix[origin][destination]
    except (IndexError, KeyError, TypeError):
        return None
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    value = float(value)
    if math.isnan(value) or math.isinf(value) or value < 0:
        return None
    return value


def route_total(
    matrix: Matrix,
    route: Sequence[int],
    end: Optional[int] = None,
) -> Optional[float]:
    """Total cost of driving from the start through ``route``.

    The walk is ``0 -> route[0] -> ... -> route[-1]`` and then on to
    ``end`` when it is given. If any leg along the way is unknown the
    whole total is ``None``; a partial sum is never returned.

    Args:
        matrix: Square cost matrix, ``None`` for unknown cells.
        route: Visiting order of stop indices (without the start).
        end: Optional index of a fixed end location.

    Returns:
        The summed cost, or ``None`` when a leg is unknown.
    """
    total = 0.0
    current = START
    legs = list(route)
    if end is not None:
        legs.append(end)
    for nxt in legs:
        cost = edge_cost(matrix, current, nxt)
        if cost is None:
            return None
        total += cost
        current = nxt
    return total


def nearest_neighbor(dist_matrix: Matrix) -> List[int]:
    """Construct an initial visiting order with the nearest neighbour rule.

    Starting from index 0, the closest unvisited stop is chosen at each
    step. Stops are scanned in ascending index order and only a strictly
    smaller cost replaces the current pick, so ties go to the lowest
    index. Unknown cells are never chosen.

    Args:
        dist_matrix: A square matrix of distances or travel times.

    Returns:
        Stop indices in visiting order. When some stop cannot be reached
        from any visited stop the walk stops early, so the result is
        shorter than ``len(dist_matrix) - 1``.
    """
    size = len(dist_matrix)
    if size <= 1:
        return []
    visited = {START}
    route: List[int] = []
    current = START
    for _ in range(size - 1):
        nearest = None
        best_cost = math.inf
        for candidate in range(1, size):
            if candidate in visited:
                continue
            cost = edge_cost(dist_matrix, current, candidate)
            if cost is not None and cost < best_cost:
                best_cost = cost
                nearest = candidate
        if nearest is None:
            break
        visited.add(nearest)
        route.append(nearest)
        current = nearest
    return route


def _scored_total(matrix: Matrix, route: Sequence[int]) -> float:
    total = route_total(matrix, route)
    return math.inf if total is None else total


def two_opt(route: Sequence[int], dist_matrix: Matrix) -> List[int]:
    """Perform 2-opt optimisation on a visiting order.

    Every segment ``route[i..k]`` is tried reversed. A candidate is kept
    only if its total is strictly lower than the best so far, and the
    sweep carries on from the new best. Sweeps repeat until one of them
    makes no improvement. Candidates that use an unknown leg score as
    infinite and are never kept.

    Routes shorter than four stops are returned unchanged.

    Args:
        route: Initial visiting order (stop indices, without the start).
        dist_matrix: Square cost matrix for the indices in ``route``.

    Returns:
        A new list with the same stops and a total no higher than the
        input's.
    """
    best = list(route)
    n = len(best)
    if n < MIN_TWO_OPT_LENGTH:
        return best
    best_total = _scored_total(dist_matrix, best)
    improved = True
    while improved:
        improved = False
        for i in range(n - 1):
            for k in range(i + 1, n):
                candidate = best[:i] + best[i:k + 1][::-1] + best[k + 1:]
                candidate_total = _scored_total(dist_matrix, candidate)
                if candidate_total < best_total:
                    best = candidate
                    best_total = candidate_total
                    improved = True
    return best


def optimise_order(dist_matrix: Matrix) -> List[int]:
    """Nearest neighbour construction followed by 2-opt refinement."""
    return two_opt(nearest_neighbor(dist_matrix), dist_matrix)


def is_complete(route: Sequence[int], stop_count: int) -> bool:
    """True when ``route`` visits every one of ``stop_count`` stops."""
    return len(route) == stop_count
