"""FastAPI route definitions for routing, cost and place search."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from ..config import get_yaml_setting
from ..clients.mapbox_search import new_session_token
from ..models.requests import CostRequest, DirectionsRequest
from ..models.travel import CostSettings, RouteData
from ..processing.cost_estimator import InvalidCostSettings, estimate
from ..processing.pipeline import TripPlanner

logger = logging.getLogger(__name__)

router = APIRouter()


# Dependency to get planner instance (set in main.py)
_planner: TripPlanner = None


def get_planner() -> TripPlanner:
    """Get the planner instance."""
    if _planner is None:
        raise HTTPException(status_code=503, detail="Planner not initialized")
    return _planner


def set_planner(planner: Optional[TripPlanner]):
    """Set the planner instance (called from main.py)."""
    global _planner
    _planner = planner


@router.get("/health")
async def health_check(planner: Annotated[TripPlanner, Depends(get_planner)]):
    """Health check endpoint - does NOT call providers to preserve rate limits."""
    return {
        "status": "ok",
        "message": "Planner initialized",
        "directions_provider": planner.config.directions_provider,
    }


@router.get("/settings/defaults")
async def cost_setting_defaults():
    """Default cost settings and advisory MPG bounds for the settings panel."""
    return {
        "mpg": get_yaml_setting("cost", "default_mpg", default=25),
        "price_per_gallon": get_yaml_setting("cost", "default_price_per_gallon", default=3.5),
        "min_mpg": get_yaml_setting("cost", "min_mpg", default=10),
        "max_mpg": get_yaml_setting("cost", "max_mpg", default=60),
    }


@router.post("/directions")
async def resolve_directions(
    request: DirectionsRequest,
    planner: Annotated[TripPlanner, Depends(get_planner)],
):
    """Resolve a driving route through the waypoints, in order."""
    try:
        coordinates = [(w.longitude, w.latitude) for w in request.waypoints]
        route = await planner.resolver.resolve(coordinates)
        if route is None:
            return {"route": None, "message": "Unable to calculate route"}
        return {"route": route.model_dump()}

    except Exception as e:
        logger.exception("Route resolution failed")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/cost")
async def estimate_cost(request: CostRequest):
    """Fuel and time estimate for a route distance/duration."""
    try:
        settings = CostSettings(mpg=request.mpg, price_per_gallon=request.price_per_gallon)
        route = RouteData(
            distance=request.distance_m,
            duration=request.duration_s,
            geometry={"coordinates": []},
        )
        return estimate(route, settings).model_dump()
    except InvalidCostSettings as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/search/session")
async def start_search_session():
    """New session token for one interactive search."""
    return {"session_token": new_session_token()}


@router.get("/search/suggest")
async def search_suggest(
    planner: Annotated[TripPlanner, Depends(get_planner)],
    q: Annotated[str, Query(min_length=1)],
    session_token: str,
    limit: Optional[int] = Query(default=None, ge=1, le=10),
    proximity_lon: Optional[float] = Query(default=None, ge=-180, le=180),
    proximity_lat: Optional[float] = Query(default=None, ge=-90, le=90),
    country: Optional[str] = None,
):
    """Ranked place suggestions for partial text."""
    proximity = None
    if proximity_lon is not None and proximity_lat is not None:
        proximity = (proximity_lon, proximity_lat)
    suggestions = await planner.search.suggest(
        q,
        session_token,
        limit=limit or get_yaml_setting("search", "suggestion_limit", default=5),
        proximity=proximity,
        countries=[c.strip() for c in country.split(",")] if country else None,
    )
    return [s.model_dump() for s in suggestions]


@router.get("/search/retrieve/{mapbox_id}")
async def search_retrieve(
    mapbox_id: str,
    session_token: str,
    planner: Annotated[TripPlanner, Depends(get_planner)],
):
    """Coordinates and details for a selected suggestion."""
    try:
        result = await planner.search.retrieve(mapbox_id, session_token)
        if result is None:
            raise HTTPException(status_code=404, detail="Place not found")
        return result.model_dump()

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Place retrieval failed")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/search/reverse")
async def search_reverse(
    planner: Annotated[TripPlanner, Depends(get_planner)],
    longitude: Annotated[float, Query(ge=-180, le=180)],
    latitude: Annotated[float, Query(ge=-90, le=90)],
):
    """Best-effort label for a coordinate."""
    name = await planner.search.reverse_geocode(longitude, latitude)
    return {"name": name}
