from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import List, Optional
from enum import Enum

from src.models.place_models import PriceTier, Place, Coordinates

class TravelMode(str, Enum):
    WALKING = "walking"
    DRIVING = "driving"
    BICYCLING = "bicycling"
    TRANSIT = "transit"

class CrawlRequest(BaseModel):
    city: str = Field(..., min_length=2, max_length=100)
    price_tier: PriceTier = PriceTier.MODERATE
    start_time: str = Field(..., description='Clock time such as "09:00 AM" or "13:30"')
    end_time: str = Field(..., description='Clock time such as "05:00 PM" or "17:00"')
    visit_date: Optional[date] = None
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    max_stops: int = Field(default=10, ge=1, le=10)
    optimize_route: bool = True

    @field_validator('price_tier', mode='before')
    @classmethod
    def parse_price_tier(cls, v):
        return PriceTier.parse(v)

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "city": "San Francisco",
                    "price_tier": "$$",
                    "start_time": "11:00 AM",
                    "end_time": "03:00 PM",
                }
            ]
        }

class OptimizeOrderRequest(BaseModel):
    """Stops already chosen by the caller, to be re-ordered by walking distance."""
    stops: List[Place] = Field(default_factory=list, max_length=10)

class RestaurantSearchRequest(BaseModel):
    restaurant_name: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=2, max_length=100)

class TravelTimeRequest(BaseModel):
    origin: Coordinates
    destination: Coordinates
    mode: TravelMode = TravelMode.WALKING

class IsOpenRequest(BaseModel):
    place_id: str = Field(..., min_length=1)
    date_time: datetime = Field(..., description="Local date and time at the restaurant")
