"""
Saved route repository.

Every operation takes the caller's identity. Routes are only ever visible
to and writable by their owner; each write commits as one transaction.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.requests import WaypointInput
from ..utils.geo_validator import CoordinateValidator
from .errors import (
    PersistenceError,
    RouteNotFound,
    StorageFailure,
    Unauthenticated,
    Unauthorized,
    ValidationFailed,
    WaypointNotFound,
)
from .models import COORDINATE_SCALE, RouteRecord, WaypointRecord

logger = logging.getLogger(__name__)


def _parse_id(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _require_owner(owner: Optional[str]) -> str:
    if owner is None or not str(owner).strip():
        raise Unauthenticated()
    return str(owner).strip()


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationFailed("Route name is required")
    return name.strip()


class RouteRepository:
    """
    Saved routes and their ordered waypoints.

    Positions are always re-derived from list order, 0..n-1.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _transaction(self, action: str):
        """Commit on success; roll back and translate database errors."""
        try:
            yield
            await self.db.commit()
        except PersistenceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Storage failure during {action}")
            raise StorageFailure(f"Could not {action}. Please try again.") from e

    def _build_waypoints(self, waypoints: Iterable[WaypointInput]) -> list[WaypointRecord]:
        records = []
        for position, wp in enumerate(waypoints):
            is_valid, msg = CoordinateValidator.validate_coordinates(wp.longitude, wp.latitude)
            if not is_valid:
                raise ValidationFailed(f"Waypoint {position + 1}: {msg}")
            records.append(
                WaypointRecord(
                    position=position,
                    longitude=round(float(wp.longitude), COORDINATE_SCALE),
                    latitude=round(float(wp.latitude), COORDINATE_SCALE),
                    name=wp.name,
                )
            )
        return records

    async def _load_route(self, route_id) -> Optional[RouteRecord]:
        parsed = _parse_id(route_id)
        if parsed is None:
            return None
        result = await self.db.execute(
            select(RouteRecord)
            .options(selectinload(RouteRecord.waypoints))
            .where(RouteRecord.id == parsed)
        )
        return result.scalar_one_or_none()

    async def _load_owned_route(self, route_id, owner: str) -> RouteRecord:
        """Route owned by owner; foreign routes raise Unauthorized."""
        route = await self._load_route(route_id)
        if route is None:
            raise RouteNotFound(route_id)
        if route.owner != owner:
            logger.warning(f"User {owner} attempted to modify route {route_id} owned by another user")
            raise Unauthorized(f"Route not found: {route_id}")
        return route

    async def create_route(
        self,
        owner: Optional[str],
        name: str,
        description: Optional[str] = None,
        waypoints: Iterable[WaypointInput] = (),
    ) -> RouteRecord:
        """
        Save a new route with its waypoints in one transaction.

        Args:
            owner: Caller identity
            name: Non-empty route name
            description: Optional free text
            waypoints: Ordered stops; list index becomes position

        Returns:
            The saved RouteRecord with waypoints loaded
        """
        owner = _require_owner(owner)
        route = RouteRecord(
            owner=owner,
            name=_clean_name(name),
            description=description,
        )
        route.waypoints = self._build_waypoints(waypoints)

        async with self._transaction("save the route"):
            self.db.add(route)
            await self.db.flush()

        logger.info(f"Created route {route.id} for {owner} with {len(route.waypoints)} waypoints")
        return route

    async def list_routes(self, owner: Optional[str]) -> list[RouteRecord]:
        """Caller's routes, newest first. Anonymous callers get an empty list."""
        if owner is None or not str(owner).strip():
            return []
        try:
            result = await self.db.execute(
                select(RouteRecord)
                .options(selectinload(RouteRecord.waypoints))
                .where(RouteRecord.owner == str(owner).strip())
                .order_by(RouteRecord.created_at.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception("Storage failure while listing routes")
            raise StorageFailure("Could not load routes. Please try again.") from e

    async def get_route(self, route_id, owner: Optional[str]) -> RouteRecord:
        """
        Route with waypoints ordered by position.

        Routes owned by someone else are reported as not found.
        """
        owner = _require_owner(owner)
        try:
            route = await self._load_route(route_id)
        except SQLAlchemyError as e:
            logger.exception(f"Storage failure while loading route {route_id}")
            raise StorageFailure("Could not load the route. Please try again.") from e
        if route is None or route.owner != owner:
            raise RouteNotFound(route_id)
        return route

    async def update_route(
        self,
        route_id,
        owner: Optional[str],
        name: Optional[str] = None,
        description: Optional[str] = None,
        waypoints: Optional[Iterable[WaypointInput]] = None,
    ) -> RouteRecord:
        """
        Edit a route. Supplied waypoints replace the whole set.

        Old waypoints are deleted before the new ones are inserted, inside
        the same transaction.
        """
        owner = _require_owner(owner)
        new_name = _clean_name(name) if name is not None else None
        new_waypoints = self._build_waypoints(waypoints) if waypoints is not None else None

        async with self._transaction("update the route"):
            route = await self._load_owned_route(route_id, owner)
            if new_name is not None:
                route.name = new_name
            if description is not None:
                route.description = description
            if new_waypoints is not None:
                route.waypoints.clear()
                await self.db.flush()
                route.waypoints.extend(new_waypoints)
            route.touch()
            await self.db.flush()

        logger.info(f"Updated route {route.id}")
        return route

    async def delete_route(self, route_id, owner: Optional[str]):
        """Delete a route and, by cascade, all of its waypoints."""
        owner = _require_owner(owner)
        async with self._transaction("delete the route"):
            route = await self._load_owned_route(route_id, owner)
            await self.db.delete(route)
        logger.info(f"Deleted route {route_id}")

    async def add_waypoint(
        self,
        route_id,
        owner: Optional[str],
        longitude: float,
        latitude: float,
        name: Optional[str] = None,
    ) -> WaypointRecord:
        """Append a stop at position max + 1 (0 for an empty route)."""
        owner = _require_owner(owner)
        [record] = self._build_waypoints(
            [WaypointInput.model_construct(longitude=longitude, latitude=latitude, name=name)]
        )

        async with self._transaction("add the waypoint"):
            route = await self._load_owned_route(route_id, owner)
            record.position = max((w.position for w in route.waypoints), default=-1) + 1
            route.waypoints.append(record)
            route.touch()
            await self.db.flush()

        return record

    async def remove_waypoint(self, waypoint_id, owner: Optional[str]):
        """Delete a stop from a route the caller owns and close the position gap."""
        owner = _require_owner(owner)
        parsed = _parse_id(waypoint_id)
        if parsed is None:
            raise WaypointNotFound(waypoint_id)

        async with self._transaction("remove the waypoint"):
            result = await self.db.execute(
                select(WaypointRecord)
                .options(
                    selectinload(WaypointRecord.route).selectinload(RouteRecord.waypoints)
                )
                .where(WaypointRecord.id == parsed)
            )
            record = result.scalar_one_or_none()
            if record is None:
                raise WaypointNotFound(waypoint_id)
            route = record.route
            if route.owner != owner:
                logger.warning(f"User {owner} attempted to remove waypoint {waypoint_id} from a foreign route")
                raise Unauthorized(f"Waypoint not found: {waypoint_id}")

            route.waypoints.remove(record)
            for position, remaining in enumerate(route.waypoints):
                remaining.position = position
            route.touch()
            await self.db.flush()
