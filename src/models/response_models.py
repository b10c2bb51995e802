from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional, Dict, Any
from decimal import Decimal

from src.models.place_models import Place, PriceTier

class ItineraryStop(BaseModel):
    place: Place
    estimated_visit_minutes: int

class ItineraryResponse(BaseModel):
    stops: List[ItineraryStop] = Field(default_factory=list)
    walking_minutes_between: List[Optional[int]] = Field(default_factory=list)
    total_walking_minutes: int = 0
    total_visit_minutes: int = 0
    total_budget_minutes: int = 0
    total_cost: Decimal = Decimal("0")
    route: str = ""
    route_optimized: bool = False

    @property
    def total_minutes(self) -> int:
        return self.total_walking_minutes + self.total_visit_minutes

    @property
    def places(self) -> List[Place]:
        return [stop.place for stop in self.stops]

class OptimizedRoute(BaseModel):
    """Result of re-ordering a fixed set of stops."""
    stops: List[Place] = Field(default_factory=list)
    order: List[int] = Field(default_factory=list)  # indices into the input stops
    changed: bool = False
    total_cost: float = 0.0

class CrawlResponse(BaseModel):
    # Metadata
    crawl_id: str
    generated_at: datetime
    version: str = "1.0"

    # Request echo
    city: str
    price_tier: PriceTier
    start_time: str
    end_time: str

    # Main content
    itinerary: ItineraryResponse
    price_range: str = ""
    price_tier_label: str = ""  # per-stop range for the tier, e.g. "$10–$25"
    total_time_display: str = ""

    # Candidate pool diagnostics
    restaurant_pool_widened: bool = False
    candidate_counts: Dict[str, int] = Field(default_factory=dict)
    notes: List[str] = Field(default_factory=list)

class RestaurantSearchResponse(BaseModel):
    place: Place
    google_maps_uri: Optional[str] = None

class TravelTimeResponse(BaseModel):
    distance_meters: int
    distance_text: str
    duration_seconds: int
    duration_text: str
    duration_minutes: int

class RestaurantDetailsResponse(BaseModel):
    place: Place
    website_uri: Optional[str] = None
    phone_number: Optional[str] = None
    google_maps_uri: Optional[str] = None

class IsOpenResponse(BaseModel):
    place_id: str
    status: str  # "open", "closed" or "unknown"
    is_open: Optional[bool] = None
    opening_hours: Optional[Dict[str, Any]] = None
