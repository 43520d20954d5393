"""Conversion between geographic coordinates and the local 3D scene frame.

The terrain model is registered to the map by a static SceneAnchor: a
geographic origin, a scale (scene units per metre) and the scene position of
that origin. Conversion uses a local tangent-plane (equirectangular)
approximation on a spherical Earth, adequate for the few-kilometre extent of
the terrain:

    dx  = (x - cx) / scale                   east of the origin, metres
    dz  = (z - cz) / scale                   north of the origin, metres
    lat = lat0 + deg(dz / R)
    lon = lon0 + deg(dx / (R * cos(lat0)))

with R = 6 371 000 m (mean Earth radius). Scene y maps linearly to altitude
and plays no part in the horizontal projection.

The projection error grows with distance from the origin, so points farther
than the anchor's ``usable_radius_m`` are refused with
ConversionOutOfRangeError.

Reference: equirectangular projection about a reference latitude.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from terrain_ar.config import EARTH_RADIUS_M, TerrainConfig
from terrain_ar.errors import ConversionOutOfRangeError


@dataclass(frozen=True)
class GeoPoint:
    """Geographic coordinate: degrees and metres above the reference."""

    latitude: float
    longitude: float
    altitude: float = 0.0


@dataclass(frozen=True)
class ScenePoint:
    """Point in the 3D scene frame (scene units)."""

    x: float
    y: float
    z: float

    def as_array(self) -> NDArray[np.float64]:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass(frozen=True)
class GeoBounds:
    """Axis-aligned latitude/longitude box."""

    south: float
    west: float
    north: float
    east: float

    def __post_init__(self) -> None:
        if self.south > self.north or self.west > self.east:
            raise ValueError(f"invalid bounds: {self}")

    @property
    def center(self) -> Tuple[float, float]:
        return (self.south + self.north) / 2.0, (self.west + self.east) / 2.0

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east


@dataclass(frozen=True)
class SceneAnchor:
    """
    Static registration between a geographic origin and the scene frame.

    Attributes:
        origin: Geographic position of the scene origin.
        scale_factor: Scene units per metre. Must be positive.
        center_offset: Scene (x, y, z) of the geographic origin.
        extent_m: Declared terrain size (east-west, north-south) in metres,
            centred on the origin.
        usable_radius_m: Ground distance from the origin beyond which
            conversions are refused.
    """

    origin: GeoPoint
    scale_factor: float = 1.0
    center_offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    extent_m: Tuple[float, float] = (1490.0, 1490.0)
    usable_radius_m: float = 10000.0

    def __post_init__(self) -> None:
        if self.scale_factor <= 0:
            raise ValueError(f"scale_factor must be positive, got {self.scale_factor}")
        if abs(self.origin.latitude) >= 89.0:
            raise ValueError(
                f"origin latitude too close to a pole for a local plane: {self.origin.latitude}"
            )
        if self.usable_radius_m <= 0:
            raise ValueError(f"usable_radius_m must be positive, got {self.usable_radius_m}")

    @classmethod
    def from_config(cls, config: TerrainConfig) -> "SceneAnchor":
        lat, lon, alt = config.origin
        return cls(
            origin=GeoPoint(lat, lon, alt),
            scale_factor=config.scale_factor,
            center_offset=tuple(config.center_offset),
            extent_m=tuple(config.extent_m),
            usable_radius_m=config.usable_radius_m,
        )


PointLike = Union[ScenePoint, Sequence[float]]


class CoordinateConverter:
    """
    Bidirectional scene <-> geographic conversion for one SceneAnchor.

    Example:
        >>> anchor = SceneAnchor(GeoPoint(35.777041, 139.0185245), scale_factor=6.0)
        >>> conv = CoordinateConverter(anchor)
        >>> geo = conv.world_to_gps(ScenePoint(600.0, 0.0, -300.0))
        >>> p = conv.gps_to_world(geo)   # ~ ScenePoint(600, 0, -300)
    """

    def __init__(self, anchor: SceneAnchor, earth_radius_m: float = EARTH_RADIUS_M) -> None:
        self.anchor = anchor
        self.earth_radius_m = earth_radius_m

        lat0 = np.deg2rad(anchor.origin.latitude)
        # metres per radian along each axis at the origin
        self._m_per_rad_north = earth_radius_m
        self._m_per_rad_east = earth_radius_m * np.cos(lat0)
        self._offset = np.asarray(anchor.center_offset, dtype=np.float64)

    def _check_radius(self, east_m: NDArray[np.float64], north_m: NDArray[np.float64]) -> None:
        distance = np.hypot(east_m, north_m)
        worst = float(np.max(distance)) if np.size(distance) else 0.0
        if worst > self.anchor.usable_radius_m:
            raise ConversionOutOfRangeError(
                f"point is {worst:.0f} m from the anchor origin; "
                f"local projection is only valid within {self.anchor.usable_radius_m:.0f} m"
            )

    # ------------------------------------------------------------------
    # Vectorized forms
    # ------------------------------------------------------------------

    def world_to_gps_array(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Convert scene points to geographic coordinates.

        Args:
            points: Scene points, shape (N, 3) or (3,).

        Returns:
            Array of [latitude, longitude, altitude] rows with the input shape.
        """
        pts = np.asarray(points, dtype=np.float64)
        if pts.shape[-1:] != (3,) or pts.ndim > 2:
            raise ValueError(f"points must have shape (N, 3) or (3,), got {pts.shape}")

        local = (pts - self._offset) / self.anchor.scale_factor
        east_m = local[..., 0]
        up_m = local[..., 1]
        north_m = local[..., 2]
        self._check_radius(east_m, north_m)

        origin = self.anchor.origin
        lat = origin.latitude + np.rad2deg(north_m / self._m_per_rad_north)
        lon = origin.longitude + np.rad2deg(east_m / self._m_per_rad_east)
        alt = origin.altitude + up_m

        return np.stack([lat, lon, alt], axis=-1)

    def gps_to_world_array(self, coords: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Inverse of world_to_gps_array.

        Args:
            coords: [latitude, longitude, altitude] rows, shape (N, 3) or (3,).

        Returns:
            Scene points with the input shape.
        """
        geo = np.asarray(coords, dtype=np.float64)
        if geo.shape[-1:] != (3,) or geo.ndim > 2:
            raise ValueError(f"coords must have shape (N, 3) or (3,), got {geo.shape}")

        origin = self.anchor.origin
        north_m = np.deg2rad(geo[..., 0] - origin.latitude) * self._m_per_rad_north
        east_m = np.deg2rad(geo[..., 1] - origin.longitude) * self._m_per_rad_east
        up_m = geo[..., 2] - origin.altitude
        self._check_radius(east_m, north_m)

        local = np.stack([east_m, up_m, north_m], axis=-1)
        return local * self.anchor.scale_factor + self._offset

    # ------------------------------------------------------------------
    # Point forms
    # ------------------------------------------------------------------

    def world_to_gps(self, point: PointLike) -> GeoPoint:
        """Convert one scene point to a GeoPoint."""
        if isinstance(point, ScenePoint):
            point = point.as_array()
        lat, lon, alt = self.world_to_gps_array(np.asarray(point, dtype=np.float64))
        return GeoPoint(float(lat), float(lon), float(alt))

    def gps_to_world(self, geo: GeoPoint) -> ScenePoint:
        """Convert one GeoPoint to a scene point."""
        x, y, z = self.gps_to_world_array(
            np.array([geo.latitude, geo.longitude, geo.altitude], dtype=np.float64)
        )
        return ScenePoint(float(x), float(y), float(z))

    def ground_distance_m(self, point: PointLike) -> float:
        """Horizontal distance of a scene point from the anchor origin, metres."""
        if isinstance(point, ScenePoint):
            point = point.as_array()
        local = (np.asarray(point, dtype=np.float64) - self._offset) / self.anchor.scale_factor
        return float(np.hypot(local[0], local[2]))

    # ------------------------------------------------------------------
    # Terrain footprint
    # ------------------------------------------------------------------

    def scene_corners(self) -> NDArray[np.float64]:
        """Scene-space corners of the declared extent: SW, SE, NE, NW (shape (4, 3))."""
        half_x = self.anchor.extent_m[0] * self.anchor.scale_factor / 2.0
        half_z = self.anchor.extent_m[1] * self.anchor.scale_factor / 2.0
        cx, cy, cz = self._offset
        return np.array(
            [
                [cx - half_x, cy, cz - half_z],
                [cx + half_x, cy, cz - half_z],
                [cx + half_x, cy, cz + half_z],
                [cx - half_x, cy, cz + half_z],
            ],
            dtype=np.float64,
        )

    def footprint(self) -> List[GeoPoint]:
        """Geographic polygon (SW, SE, NE, NW) of the terrain for the map overlay."""
        rows = self.world_to_gps_array(self.scene_corners())
        return [GeoPoint(float(lat), float(lon), float(alt)) for lat, lon, alt in rows]

    def bounds(self) -> GeoBounds:
        corners = self.footprint()
        lats = [c.latitude for c in corners]
        lons = [c.longitude for c in corners]
        return GeoBounds(south=min(lats), west=min(lons), north=max(lats), east=max(lons))

    def contains(self, point: PointLike) -> bool:
        """True if a scene point lies inside the declared terrain extent."""
        if isinstance(point, ScenePoint):
            point = point.as_array()
        local = (np.asarray(point, dtype=np.float64) - self._offset) / self.anchor.scale_factor
        return bool(
            abs(local[0]) <= self.anchor.extent_m[0] / 2.0
            and abs(local[2]) <= self.anchor.extent_m[1] / 2.0
        )
