"""
Visiting-order optimization for an already chosen set of stops.

Up to ``MAX_EXACT_STOPS`` stops every permutation is considered (open
path, no return leg) and the cheapest is kept. Enumeration is
lexicographic starting from the input order and only a strictly
cheaper order replaces the incumbent, so an input that is already
optimal comes back unchanged.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from src.models.place_models import Place
from src.models.response_models import OptimizedRoute

logger = logging.getLogger(__name__)

MAX_EXACT_STOPS = 10
UNREACHABLE_COST = 10 ** 9


def _edge_cost(matrix, i: int, j: int) -> float:
    value = matrix[i][j]
    return UNREACHABLE_COST if value is None else value


def path_cost(order: Sequence[int], matrix) -> float:
    """Sum of consecutive edge weights along ``order``; unreachable edges count as UNREACHABLE_COST."""
    return sum(_edge_cost(matrix, a, b) for a, b in zip(order, order[1:]))


def _exhaustive_order(matrix, k: int) -> Tuple[List[int], float]:
    best_order = list(range(k))
    best_cost = path_cost(best_order, matrix)
    remaining = list(range(k))
    prefix: List[int] = []

    # Every stop after the first is entered exactly once, so the cheapest
    # edge into each unvisited stop bounds what the rest of a path costs.
    cheapest_entry = [
        min(_edge_cost(matrix, u, v) for u in range(k) if u != v)
        for v in range(k)
    ]

    # Depth-first walk over permutations in lexicographic order. A prefix
    # whose cost plus that bound already reaches the incumbent cannot
    # produce a strictly cheaper order, so it is skipped.
    def extend(cost_so_far: float, entry_bound: float):
        nonlocal best_order, best_cost
        if not remaining:
            if cost_so_far < best_cost:
                best_order, best_cost = list(prefix), cost_so_far
            return
        for pos in range(len(remaining)):
            nxt = remaining[pos]
            step = _edge_cost(matrix, prefix[-1], nxt) if prefix else 0
            rest_bound = entry_bound - cheapest_entry[nxt]
            if cost_so_far + step + rest_bound >= best_cost:
                continue
            prefix.append(nxt)
            del remaining[pos]
            extend(cost_so_far + step, rest_bound)
            remaining.insert(pos, nxt)
            prefix.pop()

    extend(0, sum(cheapest_entry))
    return best_order, best_cost


def _heuristic_order(matrix, k: int) -> Tuple[List[int], float]:
    """Nearest neighbour from the first stop, then 2-opt until no reversal helps."""
    order = [0]
    unvisited = list(range(1, k))
    while unvisited:
        last = order[-1]
        nxt = min(unvisited, key=lambda j: _edge_cost(matrix, last, j))
        unvisited.remove(nxt)
        order.append(nxt)

    best_cost = path_cost(order, matrix)
    identity_cost = path_cost(list(range(k)), matrix)
    if identity_cost <= best_cost:
        order, best_cost = list(range(k)), identity_cost

    improved = True
    while improved:
        improved = False
        for i in range(1, k - 1):
            for j in range(i + 1, k):
                candidate = order[:i] + order[i:j + 1][::-1] + order[j + 1:]
                cost = path_cost(candidate, matrix)
                if cost < best_cost:
                    order, best_cost = candidate, cost
                    improved = True
    return order, best_cost


def find_optimal_order(matrix) -> Tuple[List[int], float]:
    """Order of indices ``0..k-1`` minimizing total walking along ``matrix``."""
    k = len(matrix)
    if k <= 1:
        return list(range(k)), 0.0
    if k > MAX_EXACT_STOPS:
        logger.info(f"{k} stops exceed exact search limit ({MAX_EXACT_STOPS}); using heuristic ordering")
        return _heuristic_order(matrix, k)
    return _exhaustive_order(matrix, k)


def optimize_route(stops: Sequence[Place], matrix) -> OptimizedRoute:
    """Re-order ``stops`` to minimize walking; ``matrix[i][j]`` is indexed in input stop order.

    Entries may be minutes or meters as long as they are consistent.
    ``None`` marks an unreachable pair.
    """
    k = len(stops)
    if len(matrix) != k:
        raise ValueError(f"Distance matrix size {len(matrix)} does not match {k} stops")

    order, cost = find_optimal_order(matrix)
    changed = order != list(range(k))
    if changed:
        logger.info(f"Route re-ordered: {order}", extra={"total_cost": cost})
    return OptimizedRoute(
        stops=[stops[i] for i in order],
        order=order,
        changed=changed,
        total_cost=cost,
    )
