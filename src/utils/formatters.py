import re
from typing import Optional

from src.models.place_models import PriceTier, PRICE_TIER_RANGES

_CLOCK_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")
_CLOCK_24H = re.compile(r"^(\d{1,2}):(\d{2})$")


class ResponseFormatter:
    """Format crawl values for presentation"""

    @staticmethod
    def parse_clock_time(value: str) -> Optional[int]:
        """Minutes after midnight for "09:30 AM" or "21:30"; None if unparseable."""
        text = (value or "").strip()
        match = _CLOCK_12H.match(text)
        if match:
            hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
            if not 1 <= hours <= 12 or minutes > 59:
                return None
            if period == "AM" and hours == 12:
                hours = 0
            elif period == "PM" and hours != 12:
                hours += 12
            return hours * 60 + minutes

        match = _CLOCK_24H.match(text)
        if match:
            hours, minutes = int(match.group(1)), int(match.group(2))
            if hours > 23 or minutes > 59:
                return None
            return hours * 60 + minutes
        return None

    @staticmethod
    def format_duration(minutes: int) -> str:
        """Format minutes as "2h 15m" """
        return f"{minutes // 60}h {minutes % 60}m"

    @staticmethod
    def format_crawl_price_range(tier: PriceTier, restaurant_count: int) -> str:
        """Total price range for ``restaurant_count`` stops of ``tier``."""
        if restaurant_count <= 0:
            return "Free"
        low, high = PRICE_TIER_RANGES[tier]
        if low == 0:
            return f"Up to ${high * restaurant_count}"
        return f"${low * restaurant_count}–${high * restaurant_count}"
