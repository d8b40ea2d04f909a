"""
Saved route API endpoints.

The identity proxy in front of this service forwards the signed-in user
id in a header (AUTH_USER_HEADER, default X-User-Id).
"""

import logging
from typing import Annotated, AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.requests import RouteCreateRequest, RouteUpdateRequest, WaypointAddRequest
from ..processing.pipeline import TripPlanner
from ..storage.errors import (
    NotFound,
    PersistenceError,
    StorageFailure,
    Unauthenticated,
    Unauthorized,
    ValidationFailed,
)
from ..storage.routes import RouteRepository
from .routes import get_planner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


def persistence_error_to_http(error: PersistenceError) -> HTTPException:
    """
    Map repository errors to HTTP responses.

    Foreign routes answer exactly like missing ones so ids do not leak.
    """
    if isinstance(error, Unauthenticated):
        return HTTPException(status_code=401, detail=str(error))
    if isinstance(error, (Unauthorized, NotFound)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ValidationFailed):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, StorageFailure):
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=500, detail="Unexpected storage error")


def get_current_user(
    request: Request,
    planner: Annotated[TripPlanner, Depends(get_planner)],
) -> Optional[str]:
    """Caller identity from the identity proxy header, None when anonymous."""
    user_id = request.headers.get(planner.config.auth_user_header)
    if user_id is None or not user_id.strip():
        return None
    return user_id.strip()


async def get_db(
    planner: Annotated[TripPlanner, Depends(get_planner)],
) -> AsyncIterator[AsyncSession]:
    """One database session per request."""
    async with planner.session_factory() as session:
        yield session


def get_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> RouteRepository:
    return RouteRepository(db)


@router.get("")
async def list_routes(
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """Caller's saved routes, newest first."""
    try:
        routes = await repo.list_routes(user_id)
    except PersistenceError as e:
        raise persistence_error_to_http(e)
    return [r.to_dict() for r in routes]


@router.post("", status_code=201)
async def create_route(
    request: RouteCreateRequest,
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """Save a new route with its waypoints."""
    try:
        route = await repo.create_route(
            user_id, request.name, request.description, request.waypoints
        )
    except PersistenceError as e:
        raise persistence_error_to_http(e)
    return route.to_dict()


@router.get("/{route_id}")
async def get_route(
    route_id: str,
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """A saved route with waypoints in order."""
    try:
        route = await repo.get_route(route_id, user_id)
    except PersistenceError as e:
        raise persistence_error_to_http(e)
    return route.to_dict()


@router.patch("/{route_id}")
async def update_route(
    route_id: str,
    request: RouteUpdateRequest,
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """Edit name/description; supplied waypoints replace the whole set."""
    try:
        route = await repo.update_route(
            route_id,
            user_id,
            name=request.name,
            description=request.description,
            waypoints=request.waypoints,
        )
    except PersistenceError as e:
        raise persistence_error_to_http(e)
    return route.to_dict()


@router.delete("/{route_id}")
async def delete_route(
    route_id: str,
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """Delete a route and its waypoints."""
    try:
        await repo.delete_route(route_id, user_id)
    except PersistenceError as e:
        raise persistence_error_to_http(e)
    return {"success": True}


@router.post("/{route_id}/waypoints", status_code=201)
async def add_waypoint(
    route_id: str,
    request: WaypointAddRequest,
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """Append a waypoint to a saved route."""
    try:
        waypoint = await repo.add_waypoint(
            route_id, user_id, request.longitude, request.latitude, request.name
        )
    except PersistenceError as e:
        raise persistence_error_to_http(e)
    return waypoint.to_dict()


@router.delete("/waypoints/{waypoint_id}")
async def remove_waypoint(
    waypoint_id: str,
    repo: Annotated[RouteRepository, Depends(get_repository)],
    user_id: Annotated[Optional[str], Depends(get_current_user)],
):
    """Remove a waypoint from a saved route."""
    try:
        await repo.remove_waypoint(waypoint_id, user_id)
    except PersistenceError as e:
        raise persistence_error_to_http(e)
    return {"success": True}
