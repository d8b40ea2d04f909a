"""Errors raised by the saved route repository."""


class PersistenceError(Exception):
    """Base class for repository errors."""
    pass


class Unauthenticated(PersistenceError):
    """No caller identity was supplied."""

    def __init__(self, message: str = "You must be signed in to perform this action"):
        super().__init__(message)


class Unauthorized(PersistenceError):
    """The caller does not own the resource."""
    pass


class NotFound(PersistenceError):
    """The resource does not exist."""
    pass


class RouteNotFound(NotFound):
    def __init__(self, route_id):
        super().__init__(f"Route not found: {route_id}")
        self.route_id = route_id


class WaypointNotFound(NotFound):
    def __init__(self, waypoint_id):
        super().__init__(f"Waypoint not found: {waypoint_id}")
        self.waypoint_id = waypoint_id


class ValidationFailed(PersistenceError):
    """Input rejected before touching storage."""
    pass


class StorageFailure(PersistenceError):
    """The database or transaction failed; nothing was written."""
    pass
