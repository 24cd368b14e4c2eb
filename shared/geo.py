"""Geographic distance and proximity utilities.

Used by the backend to gate checkpoint verification and by the patrol client
to evaluate proximity on every location update.
"""
import math
from typing import NamedTuple

# Earth mean radius used for haversine calculations
EARTH_RADIUS_METERS = 6371000.0

FEET_PER_METER = 3.28084
FEET_PER_MILE = 5280

# Checkpoint verification is allowed within 50 feet of the checkpoint
CHECKPOINT_PROXIMITY_THRESHOLD_FEET = 50.0
CHECKPOINT_PROXIMITY_THRESHOLD_METERS = 15.24


class Coordinate(NamedTuple):
    """Latitude/longitude pair in decimal degrees."""
    latitude: float
    longitude: float


def compute_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great-circle distance between two points.

    Uses the haversine formula. Inputs are not validated; out-of-range
    coordinates give a mathematically defined but meaningless result.

    Args:
        lat1: Latitude of the first point in degrees
        lon1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lon2: Longitude of the second point in degrees

    Returns:
        float: Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # Rounding can push a slightly above 1 for antipodal points
    if a > 1.0:
        a = 1.0
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def distance_between(first: Coordinate, second: Coordinate) -> float:
    """Distance in meters between two Coordinate values."""
    if first is None or second is None:
        raise ValueError("Coordinates cannot be None")
    return compute_distance(first.latitude, first.longitude, second.latitude, second.longitude)


def is_within_proximity(lat1: float, lon1: float, lat2: float, lon2: float,
                        threshold_meters: float = CHECKPOINT_PROXIMITY_THRESHOLD_METERS) -> bool:
    """Check whether two points are within threshold_meters of each other.

    The boundary is inclusive: a distance equal to the threshold is in range.
    """
    return compute_distance(lat1, lon1, lat2, lon2) <= threshold_meters


def bounding_box(latitude: float, longitude: float, radius_meters: float):
    """Approximate lat/lon box enclosing a circle, for prefiltering queries.

    Returns:
        tuple: (min_lat, max_lat, min_lon, max_lon). Longitude bounds are
        None when the box reaches a pole or crosses the antimeridian.
    """
    angular = radius_meters / EARTH_RADIUS_METERS
    min_lat = latitude - math.degrees(angular)
    max_lat = latitude + math.degrees(angular)

    ratio = math.sin(angular) / math.cos(math.radians(latitude)) if angular < math.pi / 2 else 2.0
    if min_lat <= -90 or max_lat >= 90 or ratio >= 1:
        return max(min_lat, -90.0), min(max_lat, 90.0), None, None

    lon_delta = math.degrees(math.asin(ratio))
    min_lon = longitude - lon_delta
    max_lon = longitude + lon_delta
    if min_lon < -180 or max_lon > 180:
        return min_lat, max_lat, None, None

    return min_lat, max_lat, min_lon, max_lon


def meters_to_feet(meters: float) -> float:
    return meters * FEET_PER_METER


def feet_to_meters(feet: float) -> float:
    return feet / FEET_PER_METER


def format_distance(distance_meters: float, use_imperial: bool = False) -> str:
    """Format a distance for display.

    Args:
        distance_meters: Distance in meters
        use_imperial: Use feet/miles instead of meters/kilometers

    Returns:
        str: e.g. "42 m", "1.25 km", "120 ft", "2.5 mi"
    """
    # Switch units where the rounded value would reach 1000
    if use_imperial:
        feet = meters_to_feet(distance_meters)
        if feet < 999.5:
            return f"{round(feet)} ft"
        return f"{round(feet / FEET_PER_MILE, 2)} mi"

    if distance_meters < 999.5:
        return f"{round(distance_meters)} m"
    return f"{round(distance_meters / 1000, 2)} km"
