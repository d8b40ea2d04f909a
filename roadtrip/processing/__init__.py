"""Waypoint, routing and cost pipeline."""

from .waypoint_store import WaypointStore
from .route_resolver import RouteResolver, RouteResolution, DirectionsProvider
from .cost_estimator import (
    InvalidCostSettings,
    default_cost_settings,
    estimate,
    format_duration,
    fuel_cost,
    gallons_needed,
    meters_to_miles,
    split_duration,
)
from .session import PlannerSession, SessionRegistry
from .pipeline import TripPlanner

__all__ = [
    "WaypointStore",
    "RouteResolver",
    "RouteResolution",
    "DirectionsProvider",
    "InvalidCostSettings",
    "default_cost_settings",
    "estimate",
    "format_duration",
    "fuel_cost",
    "gallons_needed",
    "meters_to_miles",
    "split_duration",
    "PlannerSession",
    "SessionRegistry",
    "TripPlanner",
]
