"""Great-circle helpers on a spherical Earth.

Used by the location service (distance between fixes) and by the overlay
(visibility of pinned objects). All angles in degrees, distances in metres.

Reference: haversine formula and initial great-circle bearing with the
mean Earth radius R = 6 371 000 m.
"""

import numpy as np

from terrain_ar.config import EARTH_RADIUS_M

# (accuracy above which, visible radius) pairs, from worst fix quality to best
VISIBILITY_BY_ACCURACY_M = (
    (100.0, 500.0),
    (50.0, 1000.0),
    (20.0, 2000.0),
)
MAX_VISIBLE_DISTANCE_M = 5000.0


def distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points (haversine formula).

    Args:
        lat1: Latitude of the first point in degrees.
        lon1: Longitude of the first point in degrees.
        lat2: Latitude of the second point in degrees.
        lon2: Longitude of the second point in degrees.

    Returns:
        Distance in metres.

    Example:
        >>> round(distance_m(35.0, 139.0, 35.0, 139.01))
        911
    """
    phi1 = np.deg2rad(lat1)
    phi2 = np.deg2rad(lat2)
    d_phi = np.deg2rad(lat2 - lat1)
    d_lambda = np.deg2rad(lon2 - lon1)

    a = np.sin(d_phi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2.0) ** 2
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))

    return float(EARTH_RADIUS_M * c)


def bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Initial bearing from point 1 to point 2.

    Returns:
        Bearing in [0, 360) degrees, north = 0, increasing clockwise.
    """
    phi1 = np.deg2rad(lat1)
    phi2 = np.deg2rad(lat2)
    d_lambda = np.deg2rad(lon2 - lon1)

    y = np.sin(d_lambda) * np.cos(phi2)
    x = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(d_lambda)

    return float((np.rad2deg(np.arctan2(y, x)) + 360.0) % 360.0)


def should_show_object(
    user_lat: float,
    user_lon: float,
    object_lat: float,
    object_lon: float,
    accuracy_m: float,
) -> bool:
    """
    Decide whether an object is close enough to display given the fix quality.

    A poor GPS fix only shows nearby objects: accuracy worse than 100 m
    limits the radius to 500 m, worse than 50 m to 1 km, worse than 20 m to
    2 km; otherwise objects up to 5 km away are shown.
    """
    distance = distance_m(user_lat, user_lon, object_lat, object_lon)

    for accuracy_limit, radius in VISIBILITY_BY_ACCURACY_M:
        if accuracy_m > accuracy_limit:
            return distance < radius

    return distance < MAX_VISIBLE_DISTANCE_M
