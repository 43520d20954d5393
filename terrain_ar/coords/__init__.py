"""
Geographic coordinates and the local 3D scene frame.

Modules:
    converter: SceneAnchor and bidirectional scene <-> GPS conversion
    geodesy: Great-circle distance, bearing and object visibility
    overlay: Map-overlay bounds tuning
"""

from terrain_ar.coords.converter import (
    CoordinateConverter,
    GeoBounds,
    GeoPoint,
    SceneAnchor,
    ScenePoint,
)
from terrain_ar.coords.geodesy import bearing_deg, distance_m, should_show_object
from terrain_ar.coords.overlay import adjust_bounds, offset_in_meters

__all__ = [
    "CoordinateConverter",
    "GeoBounds",
    "GeoPoint",
    "SceneAnchor",
    "ScenePoint",
    "adjust_bounds",
    "bearing_deg",
    "distance_m",
    "offset_in_meters",
    "should_show_object",
]
