"""
Greedy, budget-constrained stop selection for a walking food crawl.

Candidates are indexed as ``[restaurants..., landmarks...]``, the same
order the travel time matrix was built in. Starting from the first
restaurant (or the first landmark when there are none), the selector
alternates between the two categories and always walks to the nearest
feasible candidate of the wanted category.
"""
import logging
from typing import List, Optional, Sequence, Set

from src.models.place_models import Place
from src.services.travel_time_matrix import TravelTimeMatrix

logger = logging.getLogger(__name__)

MAX_STOPS = 10


def _remaining(indices: range, used: Set[int]) -> List[int]:
    return [i for i in indices if i not in used]


def _nearest_feasible(current: int, candidates: List[int], pool: Sequence[Place],
                      matrix: TravelTimeMatrix, walking_total: int, visit_total: int,
                      budget_minutes: int) -> Optional[int]:
    """Closest candidate that still fits the budget; first in input order wins ties."""
    best: Optional[int] = None
    best_walk: Optional[int] = None
    for idx in candidates:
        walk = matrix.get(current, idx)
        if walk is None:
            continue
        visit = pool[idx].estimated_visit_minutes
        if walking_total + walk + visit_total + visit > budget_minutes:
            continue
        if best_walk is None or walk < best_walk:
            best, best_walk = idx, walk
    return best


def select_stops(restaurants: Sequence[Place], landmarks: Sequence[Place],
                 matrix: TravelTimeMatrix, budget_minutes: int,
                 max_stops: int = MAX_STOPS) -> List[int]:
    """Pick and order stops; returns indices into ``[restaurants..., landmarks...]``.

    The seed stop is always kept, even when its own visit overruns the
    budget. Every later stop must keep walking plus visiting time within
    ``budget_minutes``. Unreachable matrix entries are never feasible.
    """
    pool: List[Place] = list(restaurants) + list(landmarks)
    if len(matrix) != len(pool):
        raise ValueError(f"Matrix size {len(matrix)} does not match {len(pool)} candidates")
    if not pool or max_stops < 1:
        return []

    restaurant_indices = range(0, len(restaurants))
    landmark_indices = range(len(restaurants), len(pool))

    seed = 0
    path = [seed]
    used: Set[int] = {seed}
    walking_total = 0
    visit_total = pool[seed].estimated_visit_minutes
    wants_restaurant = not pool[seed].is_restaurant

    while len(path) < max_stops:
        candidates = _remaining(restaurant_indices if wants_restaurant else landmark_indices, used)
        if not candidates:
            wants_restaurant = not wants_restaurant
            candidates = _remaining(restaurant_indices if wants_restaurant else landmark_indices, used)
            if not candidates:
                break

        current = path[-1]
        chosen = _nearest_feasible(current, candidates, pool, matrix,
                                   walking_total, visit_total, budget_minutes)
        if chosen is None:
            logger.debug(
                "No feasible candidate left",
                extra={"wants_restaurant": wants_restaurant, "stops": len(path)}
            )
            break

        walking_total += matrix.get(current, chosen)
        visit_total += pool[chosen].estimated_visit_minutes
        path.append(chosen)
        used.add(chosen)
        wants_restaurant = not wants_restaurant

    logger.info(
        f"Selected {len(path)} of {len(pool)} candidates "
        f"({walking_total} min walking, {visit_total} min visiting, budget {budget_minutes})"
    )
    return path

