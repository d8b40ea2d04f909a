"""
Saved route tables.

routes     - one row per saved route, owned by a user
waypoints  - ordered stops of a route; FK route_id ON DELETE CASCADE
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..models.travel import NameStatus, Waypoint
from ..utils.geo_validator import fallback_waypoint_label
from .database import Base

# Fractional digits kept for stored coordinates
COORDINATE_SCALE = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RouteRecord(Base):
    """A saved, owned waypoint sequence."""
    __tablename__ = "routes"
    __table_args__ = (
        Index("routes_user_id_created_at_idx", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner: Mapped[str] = mapped_column("user_id", String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    waypoints: Mapped[list["WaypointRecord"]] = relationship(
        back_populates="route",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WaypointRecord.position",
    )

    def touch(self):
        self.updated_at = utcnow()

    def to_dict(self, include_waypoints: bool = True) -> dict:
        """Convert to dictionary for API responses."""
        data = {
            "id": str(self.id),
            "owner": self.owner,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_waypoints:
            data["waypoints"] = [w.to_dict() for w in self.waypoints]
        return data


class WaypointRecord(Base):
    """A stop of a saved route; position is its 0-based index."""
    __tablename__ = "waypoints"
    __table_args__ = (
        Index("waypoints_route_id_position_idx", "route_id", "position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("routes.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    latitude: Mapped[float] = mapped_column(
        Numeric(10, COORDINATE_SCALE, asdecimal=False), nullable=False
    )
    longitude: Mapped[float] = mapped_column(
        Numeric(11, COORDINATE_SCALE, asdecimal=False), nullable=False
    )
    name: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    route: Mapped[RouteRecord] = relationship(back_populates="waypoints")

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": str(self.id),
            "route_id": str(self.route_id) if self.route_id else None,
            "position": self.position,
            "longitude": float(self.longitude),
            "latitude": float(self.latitude),
            "name": self.name,
        }

    def to_waypoint(self) -> Waypoint:
        """Domain waypoint for loading into a planner session."""
        longitude = float(self.longitude)
        latitude = float(self.latitude)
        if self.name:
            return Waypoint(
                id=str(self.id),
                longitude=longitude,
                latitude=latitude,
                name=self.name,
                name_status=NameStatus.MANUAL,
            )
        return Waypoint(
            id=str(self.id),
            longitude=longitude,
            latitude=latitude,
            name=fallback_waypoint_label(longitude, latitude),
            name_status=NameStatus.FALLBACK,
        )
