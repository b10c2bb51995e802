"""
Pairwise walking times between the candidate places of one crawl request.

Entries are whole minutes, rounded up from the provider's seconds so the
selector never underestimates a walk. ``None`` marks an unreachable pair
(no data, failed lookup); the diagonal is always 0.
"""
import math
import logging
from typing import List, Optional, Sequence, Iterable, Any

from src.models.place_models import Place

logger = logging.getLogger(__name__)


class TravelTimeMatrix:
    """Immutable n x n table of ``Optional[int]`` walking minutes."""

    def __init__(self, minutes: Sequence[Sequence[Optional[int]]]):
        n = len(minutes)
        rows = []
        for i, row in enumerate(minutes):
            if len(row) != n:
                raise ValueError(f"Travel time matrix row {i} has {len(row)} entries, expected {n}")
            rows.append(tuple(0 if i == j else row[j] for j in range(n)))
        self._rows = tuple(rows)

    @classmethod
    def from_seconds(cls, seconds: Sequence[Sequence[Optional[float]]]) -> "TravelTimeMatrix":
        return cls([[seconds_to_minutes(value) for value in row] for row in seconds])

    @classmethod
    def unreachable(cls, n: int) -> "TravelTimeMatrix":
        return cls([[None] * n for _ in range(n)])

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, i: int):
        return self._rows[i]

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, TravelTimeMatrix):
            return self._rows == other._rows
        return NotImplemented

    def __repr__(self) -> str:
        return f"TravelTimeMatrix({[list(r) for r in self._rows]})"

    def get(self, i: int, j: int) -> Optional[int]:
        return self._rows[i][j]

    def is_reachable(self, i: int, j: int) -> bool:
        return self._rows[i][j] is not None

    def subset(self, indices: Sequence[int]) -> "TravelTimeMatrix":
        """Matrix restricted to ``indices``, re-indexed in the given order."""
        return TravelTimeMatrix([[self._rows[i][j] for j in indices] for i in indices])

    def to_list(self) -> List[List[Optional[int]]]:
        return [list(row) for row in self._rows]


def seconds_to_minutes(seconds: Optional[float]) -> Optional[int]:
    if seconds is None:
        return None
    return int(math.ceil(seconds / 60))


def exclude_unlocated(places: Iterable[Place]) -> List[Place]:
    """Drop places without coordinates; they cannot take part in a matrix."""
    located = []
    for place in places:
        if place.coordinates is None:
            logger.warning(f"Excluding {place.name} ({place.place_id}): no coordinates")
            continue
        located.append(place)
    return located


def _require_coordinates(places: Sequence[Place]):
    missing = [p.place_id for p in places if p.coordinates is None]
    if missing:
        raise ValueError(f"Places without coordinates cannot be added to a matrix: {', '.join(missing)}")


async def _fetch_pairwise(places: Sequence[Place], provider, field: str) -> Optional[List[List[Optional[int]]]]:
    """Ask the provider for every pair; ``None`` when the whole call fails."""
    try:
        elements = await provider.fetch_walking_elements([p.coordinates.as_tuple() for p in places])
    except Exception as e:
        logger.error(f"Walking matrix lookup failed for {len(places)} places: {str(e)}")
        return None

    n = len(places)
    if not elements or len(elements) != n:
        logger.warning("Walking matrix provider returned an incomplete response")
        return None

    values: List[List[Optional[int]]] = []
    for row in elements:
        row = list(row or [])
        row += [None] * (n - len(row))
        values.append([el.get(field) if el else None for el in row[:n]])
    return values


async def build_travel_time_matrix(places: Sequence[Place], provider) -> TravelTimeMatrix:
    """Build the walking-minutes matrix for ``places`` (all must have coordinates).

    A provider failure never propagates: the matrix comes back with every
    off-diagonal pair unreachable.
    """
    _require_coordinates(places)
    n = len(places)
    if n <= 1:
        return TravelTimeMatrix([[0]] if n == 1 else [])

    seconds = await _fetch_pairwise(places, provider, "duration_seconds")
    if seconds is None:
        return TravelTimeMatrix.unreachable(n)

    matrix = TravelTimeMatrix.from_seconds(seconds)
    unknown = sum(1 for i in range(n) for j in range(n) if i != j and not matrix.is_reachable(i, j))
    if unknown:
        logger.info(f"Travel time matrix built with {unknown} unreachable pairs", extra={"places": n})
    return matrix


async def build_distance_matrix(places: Sequence[Place], provider) -> List[List[Optional[int]]]:
    """Walking distance in meters between every pair of ``places``; ``None`` when unknown."""
    _require_coordinates(places)
    n = len(places)
    meters = await _fetch_pairwise(places, provider, "distance_meters") if n > 1 else None
    if meters is None:
        meters = [[None] * n for _ in range(n)]
    for i in range(n):
        meters[i][i] = 0
    return meters
