"""
Geographic validation utilities.
Range checks for WGS84 coordinates and coordinate-derived labels.
"""

from typing import Iterable, Tuple


class CoordinateValidator:
    """
    Validates longitude/latitude pairs before they reach storage or a provider.
    """

    BOUNDS = {
        "min_lat": -90.0,
        "max_lat": 90.0,
        "min_lon": -180.0,
        "max_lon": 180.0,
    }

    @classmethod
    def is_valid(cls, longitude: float, latitude: float) -> bool:
        """
        Check if coordinates are within WGS84 bounds.

        Args:
            longitude: Longitude in decimal degrees
            latitude: Latitude in decimal degrees

        Returns:
            True if both values are finite and in range
        """
        try:
            lon = float(longitude)
            lat = float(latitude)
        except (TypeError, ValueError):
            return False
        # NaN fails every comparison
        return (
            cls.BOUNDS["min_lat"] <= lat <= cls.BOUNDS["max_lat"]
            and cls.BOUNDS["min_lon"] <= lon <= cls.BOUNDS["max_lon"]
        )

    @classmethod
    def validate_coordinates(cls, longitude: float, latitude: float) -> Tuple[bool, str]:
        """
        Validate a single coordinate pair.

        Returns:
            Tuple of (is_valid, message)
        """
        if not cls.is_valid(longitude, latitude):
            return False, (
                f"Coordinates (lon={longitude}, lat={latitude}) are out of range. "
                "Longitude must be within [-180, 180] and latitude within [-90, 90]."
            )
        return True, "Valid coordinates"

    @classmethod
    def validate_sequence(
        cls, points: Iterable[Tuple[float, float]]
    ) -> Tuple[bool, str]:
        """
        Validate an ordered sequence of (lon, lat) pairs.

        Returns:
            Tuple of (is_valid, message) naming the first bad waypoint
        """
        for i, (lon, lat) in enumerate(points):
            is_valid, msg = cls.validate_coordinates(lon, lat)
            if not is_valid:
                return False, f"Waypoint {i + 1}: {msg}"
        return True, "All waypoints valid"


def fallback_waypoint_label(longitude: float, latitude: float) -> str:
    """Label used when reverse geocoding fails."""
    return f"Waypoint ({latitude:.4f}, {longitude:.4f})"


def unnamed_location_label(longitude: float, latitude: float) -> str:
    """Label used when the provider answers but knows no place there."""
    return f"Location at {latitude:.2f}, {longitude:.2f}"
