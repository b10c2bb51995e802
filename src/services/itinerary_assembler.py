import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from src.models.place_models import Place
from src.models.response_models import ItineraryResponse, ItineraryStop

logger = logging.getLogger(__name__)


def build_route_description(stops: Sequence[Place]) -> str:
    """Human-readable route, e.g. "Start at A → B → C"."""
    return " ".join(
        f"Start at {stop.name}" if i == 0 else f"→ {stop.name}"
        for i, stop in enumerate(stops)
    )


def assemble_itinerary(stops: Sequence[Place], matrix, budget_minutes: int,
                       route_optimized: bool = False) -> ItineraryResponse:
    """Aggregate an ordered stop list into an itinerary.

    ``matrix[i][j]`` must be indexed in the same order as ``stops``.
    Unreachable legs are reported as ``None`` and left out of the total.
    """
    if len(matrix) != len(stops):
        raise ValueError(f"Matrix size {len(matrix)} does not match {len(stops)} stops")

    walking: List[Optional[int]] = [matrix[i][i + 1] for i in range(len(stops) - 1)]
    if any(leg is None for leg in walking):
        logger.warning("Itinerary contains unreachable walking legs")

    return ItineraryResponse(
        stops=[ItineraryStop(place=p, estimated_visit_minutes=p.estimated_visit_minutes) for p in stops],
        walking_minutes_between=walking,
        total_walking_minutes=sum(leg for leg in walking if leg is not None),
        total_visit_minutes=sum(p.estimated_visit_minutes for p in stops),
        total_budget_minutes=budget_minutes,
        total_cost=sum((p.estimated_cost for p in stops), Decimal("0")),
        route=build_route_description(stops),
        route_optimized=route_optimized,
    )
