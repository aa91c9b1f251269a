"""Great-circle distance helpers.

Distances use the Haversine formula on a spherical Earth. Longitudes on
either side of the antimeridian need no special handling: the formula only
sees ``sin²(Δλ/2)``, which is the same for Δλ and Δλ ± 360°.
"""

from math import atan2, cos, radians, sin, sqrt

from snapbite.models.restaurant import Coordinates

EARTH_RADIUS_METERS = 6_371_000.0

# Two saved entries closer than this are the same restaurant.
DUPLICATE_RADIUS_METERS = 100.0

# Saved restaurants within this distance of the user trigger an alert.
PROXIMITY_RADIUS_METERS = 500.0


def distance_meters(a: Coordinates, b: Coordinates) -> float:
    """Compute great-circle distance in meters between two points."""
    phi1 = radians(a.latitude)
    phi2 = radians(b.latitude)
    dphi = radians(b.latitude - a.latitude)
    dlambda = radians(b.longitude - a.longitude)

    h = sin(dphi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlambda / 2) ** 2
    # Rounding can push h a hair outside [0, 1] for antipodal points.
    h = min(max(h, 0.0), 1.0)
    return 2 * EARTH_RADIUS_METERS * atan2(sqrt(h), sqrt(1 - h))


def is_within(a: Coordinates, b: Coordinates, radius_meters: float) -> bool:
    """Check whether two points are at most ``radius_meters`` apart."""
    return distance_meters(a, b) <= radius_meters
