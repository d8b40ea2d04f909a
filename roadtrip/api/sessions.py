"""
Planner session API endpoints.

A session holds one client's in-progress waypoints, displayed route and
cost settings. It stays the source of truth until a save succeeds.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from ..models.requests import (
    SaveSessionRequest,
    SettingsRequest,
    WaypointAddRequest,
    WaypointInput,
    WaypointPatchRequest,
)
from ..processing.pipeline import TripPlanner
from ..processing.session import PlannerSession
from ..storage.errors import PersistenceError
from ..storage.routes import RouteRepository
from .routes import get_planner
from .saved_routes import get_current_user, get_repository, persistence_error_to_http

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def get_session(
    session_id: str,
    planner: Annotated[TripPlanner, Depends(get_planner)],
) -> PlannerSession:
    session = planner.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return session


@router.post("", status_code=201)
async def create_session(planner: Annotated[TripPlanner, Depends(get_planner)]):
    """Start an empty planning session with default cost settings."""
    session = planner.sessions.create()
    return session.snapshot()


@router.get("/{session_id}")
async def get_session_state(session: Annotated[PlannerSession, Depends(get_session)]):
    """Waypoints, displayed route, settings and cost."""
    return session.snapshot()


@router.delete("/{session_id}")
async def drop_session(
    session_id: str,
    planner: Annotated[TripPlanner, Depends(get_planner)],
):
    if not await planner.sessions.drop(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return {"success": True}


@router.post("/{session_id}/waypoints", status_code=201)
async def add_session_waypoint(
    request: WaypointAddRequest,
    session: Annotated[PlannerSession, Depends(get_session)],
):
    """Append a waypoint; its name is filled in by a background lookup."""
    await session.add_waypoint(request.longitude, request.latitude, name=request.name)
    return session.snapshot()


@router.patch("/{session_id}/waypoints/{waypoint_id}")
async def update_session_waypoint(
    waypoint_id: str,
    request: WaypointPatchRequest,
    session: Annotated[PlannerSession, Depends(get_session)],
):
    """Move or rename a waypoint. Unknown ids are ignored."""
    fields = request.model_dump(exclude_none=True)
    try:
        await session.update_waypoint(waypoint_id, **fields)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors())
    return session.snapshot()


@router.delete("/{session_id}/waypoints/{waypoint_id}")
async def remove_session_waypoint(
    waypoint_id: str,
    session: Annotated[PlannerSession, Depends(get_session)],
):
    """Remove a waypoint. Unknown ids are ignored."""
    await session.remove_waypoint(waypoint_id)
    return session.snapshot()


@router.delete("/{session_id}/waypoints")
async def clear_session_waypoints(session: Annotated[PlannerSession, Depends(get_session)]):
    await session.clear_waypoints()
    return session.snapshot()


@router.put("/{session_id}/settings")
async def update_session_settings(
    request: SettingsRequest,
    session: Annotated[PlannerSession, Depends(get_session)],
):
    """Change MPG and/or price per gallon."""
    session.update_settings(mpg=request.mpg, price_per_gallon=request.price_per_gallon)
    return session.snapshot()


@router.post("/{session_id}/save")
async def save_session(
    request: SaveSessionRequest,
    session: Annotated[PlannerSession, Depends(get_session)],
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """
    Persist the session's waypoints as a saved route.

    A failed save leaves the session's waypoints untouched.
    """
    waypoints = [
        WaypointInput(longitude=w.longitude, latitude=w.latitude, name=w.name)
        for w in session.store.waypoints
    ]
    route_id = request.route_id
    try:
        if route_id:
            route = await repo.update_route(
                route_id,
                user_id,
                name=request.name,
                description=request.description,
                waypoints=waypoints,
            )
        else:
            route = await repo.create_route(
                user_id, request.name, request.description, waypoints
            )
    except PersistenceError as e:
        logger.warning(f"Saving session {session.id} failed: {e}")
        raise persistence_error_to_http(e)

    session.route_id = str(route.id)
    return route.to_dict()


@router.post("/{session_id}/load/{route_id}")
async def load_route_into_session(
    route_id: str,
    session: Annotated[PlannerSession, Depends(get_session)],
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """Replace the session's waypoints with a saved route's."""
    try:
        route = await repo.get_route(route_id, user_id)
    except PersistenceError as e:
        raise persistence_error_to_http(e)

    await session.load_waypoints(
        [w.to_waypoint() for w in route.waypoints], route_id=str(route.id)
    )
    return session.snapshot()
