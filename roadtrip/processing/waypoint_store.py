"""
In-memory ordered waypoint sequence for one planning session.

Every mutation swaps in a new tuple, so a snapshot taken by a caller is
never observed half-mutated.
"""

from typing import Iterable, Optional

from ..models.travel import NameStatus, Waypoint

_UPDATABLE_FIELDS = {"longitude", "latitude", "name", "name_status"}


class WaypointStore:
    """Ordered collection of waypoints; order is route traversal order."""

    def __init__(self, waypoints: Iterable[Waypoint] = ()):
        self._waypoints: tuple[Waypoint, ...] = tuple(waypoints)
        self.version = 0

    @property
    def waypoints(self) -> tuple[Waypoint, ...]:
        """Current immutable snapshot."""
        return self._waypoints

    def __len__(self) -> int:
        return len(self._waypoints)

    def __iter__(self):
        return iter(self._waypoints)

    def _commit(self, waypoints: tuple[Waypoint, ...]):
        self._waypoints = waypoints
        self.version += 1

    def coordinates(self) -> list[tuple[float, float]]:
        """Ordered (lon, lat) pairs for routing."""
        return [w.coordinates for w in self._waypoints]

    def get(self, waypoint_id: str) -> Optional[Waypoint]:
        for w in self._waypoints:
            if w.id == waypoint_id:
                return w
        return None

    def add(self, longitude: float, latitude: float, name: Optional[str] = None) -> Waypoint:
        """
        Append a new waypoint.

        Without a name the waypoint starts PENDING until a lookup fills it in.
        Raises pydantic.ValidationError for out-of-range coordinates.
        """
        name = (name or "").strip() or None
        waypoint = Waypoint(
            longitude=longitude,
            latitude=latitude,
            name=name,
            name_status=NameStatus.MANUAL if name else NameStatus.PENDING,
        )
        self._commit(self._waypoints + (waypoint,))
        return waypoint

    def remove(self, waypoint_id: str) -> bool:
        """Delete a waypoint. Returns False (no-op) when the id is unknown."""
        remaining = tuple(w for w in self._waypoints if w.id != waypoint_id)
        if len(remaining) == len(self._waypoints):
            return False
        self._commit(remaining)
        return True

    def update(self, waypoint_id: str, **fields) -> Optional[Waypoint]:
        """
        Merge fields into the matching waypoint.

        Accepts longitude, latitude, name and name_status. Returns the
        updated waypoint, or None (no-op) when the id is unknown.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update waypoint fields: {sorted(unknown)}")

        current = self.get(waypoint_id)
        if current is None:
            return None

        # Re-validate through the model so moved points stay in range
        updated = Waypoint.model_validate({**current.model_dump(), **fields})
        self._commit(
            tuple(updated if w.id == waypoint_id else w for w in self._waypoints)
        )
        return updated

    def replace(self, waypoints: Iterable[Waypoint]):
        """Load a whole sequence, e.g. from a saved route."""
        self._commit(tuple(waypoints))

    def clear(self):
        """Remove every waypoint."""
        self._commit(())
