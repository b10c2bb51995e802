import googlemaps
import asyncio
import math
import logging
from typing import List, Dict, Optional, Tuple

Coordinate = Tuple[float, float]

class TravelTimeService:
    """Walking times and distances from the Google Distance Matrix and Directions APIs.

    Failures are logged and reported as missing data (``None``), never raised,
    except when the whole matrix lookup cannot start.
    """

    # Distance Matrix API limit on destinations per request
    MAX_DESTINATIONS_PER_REQUEST = 25

    def __init__(self, api_key: str, max_concurrent_calls: int = 10):
        self.client = googlemaps.Client(key=api_key)
        self.logger = logging.getLogger(__name__)
        self.api_calls_made = 0
        self._rate_limiter = asyncio.Semaphore(max_concurrent_calls)

    async def fetch_walking_elements(self, coordinates: List[Coordinate]) -> List[List[Optional[Dict[str, int]]]]:
        """Fetch every origin/destination pair, one request per origin row, concurrently.

        Each element is ``{"duration_seconds": ..., "distance_meters": ...}`` or
        ``None`` when the API had no route for the pair or the row failed.
        """
        if len(coordinates) > self.MAX_DESTINATIONS_PER_REQUEST:
            raise ValueError(
                f"At most {self.MAX_DESTINATIONS_PER_REQUEST} places per walking matrix, got {len(coordinates)}"
            )

        rows = await asyncio.gather(
            *(self._fetch_row(origin, coordinates) for origin in coordinates),
            return_exceptions=True
        )

        elements: List[List[Optional[Dict[str, int]]]] = []
        for i, row in enumerate(rows):
            if isinstance(row, Exception):
                self.logger.warning(f"Walking matrix row {i} failed: {row}")
                row = [None] * len(coordinates)
            elements.append(row)
        return elements

    async def _fetch_row(self, origin: Coordinate, destinations: List[Coordinate]) -> List[Optional[Dict[str, int]]]:
        async with self._rate_limiter:
            loop = asyncio.get_event_loop()
            result = await loop.run_in_executor(
                None,
                lambda: self.client.distance_matrix(
                    origins=[origin],
                    destinations=destinations,
                    mode="walking",
                    units="metric"
                )
            )
            self.api_calls_made += 1

        row = (result.get('rows') or [{}])[0].get('elements') or []
        return [self._parse_element(el) for el in row]

    @staticmethod
    def _parse_element(element: Dict) -> Optional[Dict[str, int]]:
        if not element or element.get('status') != 'OK':
            return None
        try:
            return {
                'duration_seconds': int(element['duration']['value']),
                'distance_meters': int(element['distance']['value'])
            }
        except (KeyError, TypeError, ValueError):
            return None

    async def get_travel_time(self, origin: Coordinate, destination: Coordinate,
                              mode: str = "walking") -> Optional[Dict]:
        """Travel time and distance for a single leg via the Directions API."""
        try:
            loop = asyncio.get_event_loop()
            routes = await loop.run_in_executor(
                None,
                lambda: self.client.directions(origin, destination, mode=mode)
            )
            self.api_calls_made += 1
        except Exception as e:
            self.logger.error(f"Error getting travel time: {str(e)}")
            return None

        if not routes:
            return None

        leg = routes[0]['legs'][0]
        return {
            'distance_meters': leg['distance']['value'],
            'distance_text': leg['distance']['text'],
            'duration_seconds': leg['duration']['value'],
            'duration_text': leg['duration']['text'],
            'duration_minutes': int(math.ceil(leg['duration']['value'] / 60))
        }
