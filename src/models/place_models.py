from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Dict, Any, Tuple
from decimal import Decimal
from enum import Enum

DEFAULT_VISIT_MINUTES = {
    "restaurant": 45,
    "landmark": 30,
}

class PlaceKind(str, Enum):
    RESTAURANT = "restaurant"
    LANDMARK = "landmark"

class PriceTier(str, Enum):
    INEXPENSIVE = "$"
    MODERATE = "$$"
    EXPENSIVE = "$$$"

    @property
    def rank(self) -> int:
        return list(PriceTier).index(self) + 1

    @classmethod
    def cheapest(cls) -> "PriceTier":
        return cls.INEXPENSIVE

    @classmethod
    def parse(cls, value: Any) -> "PriceTier":
        """Parse a tier label. "$$$$" is folded into "$$$", the top of the closed set."""
        if isinstance(value, PriceTier):
            return value
        label = str(value).strip()
        if label == "$$$$":
            return cls.EXPENSIVE
        return cls(label)

    @classmethod
    def from_google_price_level(cls, level: Any) -> Optional["PriceTier"]:
        """Map Places API price levels (v1 strings or legacy 0-4 ints) onto the tier set."""
        if level is None:
            return None
        return _GOOGLE_PRICE_LEVELS.get(level)

    def google_price_levels(self) -> List[str]:
        """Places API v1 priceLevels that count as this tier in a search request."""
        return [name for name, tier in _GOOGLE_PRICE_LEVELS.items()
                if tier == self and isinstance(name, str) and name != "PRICE_LEVEL_FREE"]

_GOOGLE_PRICE_LEVELS: Dict[Any, PriceTier] = {
    "PRICE_LEVEL_FREE": PriceTier.INEXPENSIVE,
    "PRICE_LEVEL_INEXPENSIVE": PriceTier.INEXPENSIVE,
    "PRICE_LEVEL_MODERATE": PriceTier.MODERATE,
    "PRICE_LEVEL_EXPENSIVE": PriceTier.EXPENSIVE,
    "PRICE_LEVEL_VERY_EXPENSIVE": PriceTier.EXPENSIVE,
    0: PriceTier.INEXPENSIVE,
    1: PriceTier.INEXPENSIVE,
    2: PriceTier.MODERATE,
    3: PriceTier.EXPENSIVE,
    4: PriceTier.EXPENSIVE,
}

# Per-stop USD ranges shown next to each tier; (min, max)
PRICE_TIER_RANGES: Dict[PriceTier, Tuple[int, int]] = {
    PriceTier.INEXPENSIVE: (0, 10),
    PriceTier.MODERATE: (10, 25),
    PriceTier.EXPENSIVE: (25, 45),
}

PRICE_TIER_LABELS: Dict[PriceTier, str] = {
    PriceTier.INEXPENSIVE: "Usually $10 and under",
    PriceTier.MODERATE: "$10–$25",
    PriceTier.EXPENSIVE: "$25–$45",
}

def estimated_cost_for_tier(tier: Optional[PriceTier]) -> Decimal:
    """Midpoint of the tier's per-stop range."""
    if tier is None:
        return Decimal("0")
    low, high = PRICE_TIER_RANGES[tier]
    return (Decimal(low) + Decimal(high)) / 2

class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

class Place(BaseModel):
    place_id: str
    kind: PlaceKind
    name: str
    address: str = ""
    coordinates: Optional[Coordinates] = None
    estimated_visit_minutes: Optional[int] = Field(default=None, gt=0)
    price_tier: Optional[PriceTier] = None
    rating: Optional[float] = None
    user_ratings_total: int = 0
    types: List[str] = Field(default_factory=list)
    opening_hours: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_kind_fields(self) -> "Place":
        if self.kind == PlaceKind.LANDMARK and self.price_tier is not None:
            raise ValueError("Landmarks cannot carry a price tier")
        if self.estimated_visit_minutes is None:
            self.estimated_visit_minutes = DEFAULT_VISIT_MINUTES[self.kind.value]
        return self

    @property
    def is_restaurant(self) -> bool:
        return self.kind == PlaceKind.RESTAURANT

    @property
    def estimated_cost(self) -> Decimal:
        if not self.is_restaurant:
            return Decimal("0")
        return estimated_cost_for_tier(self.price_tier)

class RestaurantPool(BaseModel):
    places: List[Place] = Field(default_factory=list)
    widened: bool = False  # True when the price-unrestricted retry ran
    search_attempts: int = 0
