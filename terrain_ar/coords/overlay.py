"""Map-overlay tuning helpers.

The terrain texture is laid over the 2D map inside the converter's
footprint bounds. While aligning it by eye, the bounds are scaled about
their centre and shifted by a latitude/longitude offset; the resulting
correction can then be folded back into the terrain configuration as a
metric centre offset.
"""

from typing import Tuple

import numpy as np

from terrain_ar.config import EARTH_RADIUS_M
from terrain_ar.coords.converter import GeoBounds


def adjust_bounds(
    bounds: GeoBounds,
    scale: float = 1.0,
    offset_lat: float = 0.0,
    offset_lng: float = 0.0,
) -> GeoBounds:
    """
    Scale bounds about their centre, then shift the centre.

    Args:
        bounds: Base overlay bounds.
        scale: Multiplier applied to the latitude and longitude spans.
        offset_lat: Centre shift in degrees of latitude.
        offset_lng: Centre shift in degrees of longitude.

    Returns:
        Adjusted bounds.

    Example:
        >>> adjust_bounds(GeoBounds(35.0, 139.0, 36.0, 140.0), scale=0.5)
        GeoBounds(south=35.25, west=139.25, north=35.75, east=139.75)
    """
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")

    center_lat, center_lng = bounds.center
    half_lat = (bounds.north - bounds.south) * scale / 2.0
    half_lng = (bounds.east - bounds.west) * scale / 2.0
    center_lat += offset_lat
    center_lng += offset_lng

    return GeoBounds(
        south=center_lat - half_lat,
        west=center_lng - half_lng,
        north=center_lat + half_lat,
        east=center_lng + half_lng,
    )


def offset_in_meters(
    offset_lat: float,
    offset_lng: float,
    reference_lat: float,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> Tuple[float, float]:
    """
    Convert a small lat/lng shift to metres at a reference latitude.

    Returns:
        (east_m, north_m), to be added to the terrain centre offset (x, z)
        after multiplying by the scene scale.
    """
    north_m = np.deg2rad(offset_lat) * earth_radius_m
    east_m = np.deg2rad(offset_lng) * earth_radius_m * np.cos(np.deg2rad(reference_lat))
    return float(east_m), float(north_m)
