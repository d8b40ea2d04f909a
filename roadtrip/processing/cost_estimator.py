"""
Fuel cost estimation.

Formula: C = (D / MPG) × P
Where:
  D = distance in miles
  MPG = miles per gallon
  P = price per gallon
"""

from ..config import get_yaml_setting
from ..models.travel import CostEstimate, CostSettings, RouteData

METERS_TO_MILES = 0.000621371


class InvalidCostSettings(ValueError):
    """Raised for settings the formula cannot use (e.g. zero MPG)."""
    pass


def default_cost_settings() -> CostSettings:
    """Settings a new session starts with."""
    return CostSettings(
        mpg=get_yaml_setting("cost", "default_mpg", default=25),
        price_per_gallon=get_yaml_setting("cost", "default_price_per_gallon", default=3.5),
    )


def meters_to_miles(meters: float) -> float:
    """Convert meters to miles."""
    return meters * METERS_TO_MILES


def split_duration(seconds: float) -> tuple[int, int]:
    """Whole hours and remaining whole minutes."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return hours, minutes


def format_duration(seconds: float) -> str:
    """Render a duration as "2h 5m", or "45m" under an hour."""
    hours, minutes = split_duration(seconds)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def _check_mpg(mpg: float):
    if not mpg > 0:
        raise InvalidCostSettings(f"MPG must be greater than zero, got {mpg}")


def gallons_needed(distance_miles: float, mpg: float) -> float:
    """Fuel needed for the trip, rounded to 2 decimals."""
    _check_mpg(mpg)
    return round(distance_miles / mpg, 2)


def fuel_cost(distance_miles: float, settings: CostSettings) -> float:
    """Total fuel cost for the trip, rounded to 2 decimals."""
    _check_mpg(settings.mpg)
    if not settings.price_per_gallon > 0:
        raise InvalidCostSettings(
            f"Price per gallon must be greater than 0, got {settings.price_per_gallon}"
        )
    return round(distance_miles / settings.mpg * settings.price_per_gallon, 2)


def estimate(route: RouteData, settings: CostSettings) -> CostEstimate:
    """Derive all displayed cost and time figures for a resolved route."""
    miles = meters_to_miles(route.distance)
    hours, minutes = split_duration(route.duration)
    return CostEstimate(
        distance_miles=round(miles, 2),
        gallons_needed=gallons_needed(miles, settings.mpg),
        fuel_cost=fuel_cost(miles, settings),
        duration_hours=hours,
        duration_minutes=minutes,
        duration_text=format_duration(route.duration),
    )
