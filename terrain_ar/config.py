"""
Configuration for the sensor services, the calibration flow and the terrain anchor.

Defaults correspond to the Okutama Lake deployment (Tokyo region). Every
section is a frozen dataclass validated in ``__post_init__``; ``AppConfig``
aggregates them. YAML loading lives in :mod:`terrain_ar.config_yaml`.
"""

from dataclasses import dataclass, field
from typing import Tuple

# ---- Orientation ----
DEFAULT_MAGNETIC_DECLINATION_DEG = 7.3   # Tokyo region, applied as alpha + declination
FLAT_THRESHOLD_DEG = 15.0                # generic is_device_flat() query
SIGNIFICANT_CHANGE_DEG = 5.0
PORTRAIT_GAMMA_LIMIT_DEG = 45.0

# ---- Calibration ----
CALIBRATION_FLAT_THRESHOLD_DEG = 5.0
STABILITY_WINDOW_MS = 1500.0
MANUAL_OFFSET_MIN_DEG = -180
MANUAL_OFFSET_MAX_DEG = 180

# ---- Location ----
GPS_TIMEOUT_S = 30.0
GPS_MAXIMUM_AGE_S = 60.0
GPS_RECEPTION_CHECK_S = 10.0
# Lake plus surrounding roads: (south, west, north, east)
OKUTAMA_AREA_BOUNDS = (35.73, 138.91, 35.83, 139.07)
OKUTAMA_DAM_POSITION = (35.789472, 139.048889, 530.0)

# ---- Motion ----
WALKING_THRESHOLD_MS2 = 2.5
SHAKE_THRESHOLD_MS2 = 15.0
STATIONARY_THRESHOLD_MS2 = 0.5
MIN_STEP_INTERVAL_S = 0.3
WALKING_TIMEOUT_S = 3.0
MOTION_BUFFER_SIZE = 5

# ---- Terrain anchor ----
EARTH_RADIUS_M = 6371000.0
TERRAIN_CENTER_GPS = (35.777041, 139.0185245, 0.0)  # Ogouchi shrine
TERRAIN_EXTENT_M = (1490.0, 1490.0)                 # x (east) by z extent
USABLE_RADIUS_M = 10000.0


@dataclass(frozen=True)
class OrientationConfig:
    """Orientation service parameters (degrees)."""

    magnetic_declination_deg: float = DEFAULT_MAGNETIC_DECLINATION_DEG
    flat_threshold_deg: float = FLAT_THRESHOLD_DEG
    significant_change_deg: float = SIGNIFICANT_CHANGE_DEG

    def __post_init__(self) -> None:
        if not -180.0 <= self.magnetic_declination_deg <= 180.0:
            raise ValueError(
                f"magnetic_declination_deg must be in [-180, 180], got {self.magnetic_declination_deg}"
            )
        if self.flat_threshold_deg <= 0:
            raise ValueError(f"flat_threshold_deg must be positive, got {self.flat_threshold_deg}")
        if self.significant_change_deg < 0:
            raise ValueError(
                f"significant_change_deg must be non-negative, got {self.significant_change_deg}"
            )


@dataclass(frozen=True)
class CalibrationConfig:
    """
    Parameters of the interactive heading calibration flow.

    Attributes:
        flat_threshold_deg: Tilt limit for the horizontal step. Stricter than
            the generic orientation query.
        stability_window_ms: Unbroken flat duration required before the auto
            path completes.
        manual_offset_min_deg: Lower slider bound (integer degrees).
        manual_offset_max_deg: Upper slider bound (integer degrees).
        allow_manual: Whether the manual slider step is reachable.
    """

    flat_threshold_deg: float = CALIBRATION_FLAT_THRESHOLD_DEG
    stability_window_ms: float = STABILITY_WINDOW_MS
    manual_offset_min_deg: int = MANUAL_OFFSET_MIN_DEG
    manual_offset_max_deg: int = MANUAL_OFFSET_MAX_DEG
    allow_manual: bool = True

    def __post_init__(self) -> None:
        if self.flat_threshold_deg <= 0:
            raise ValueError(f"flat_threshold_deg must be positive, got {self.flat_threshold_deg}")
        if self.stability_window_ms <= 0:
            raise ValueError(f"stability_window_ms must be positive, got {self.stability_window_ms}")
        if self.manual_offset_min_deg > 0 or self.manual_offset_max_deg < 0:
            raise ValueError(
                "manual offset range must contain 0, got "
                f"[{self.manual_offset_min_deg}, {self.manual_offset_max_deg}]"
            )


@dataclass(frozen=True)
class LocationConfig:
    """GPS watch options and the deployment area."""

    enable_high_accuracy: bool = True
    timeout_s: float = GPS_TIMEOUT_S
    maximum_age_s: float = GPS_MAXIMUM_AGE_S
    reception_check_s: float = GPS_RECEPTION_CHECK_S
    area_bounds: Tuple[float, float, float, float] = OKUTAMA_AREA_BOUNDS
    mock_position: Tuple[float, float, float] = OKUTAMA_DAM_POSITION

    def __post_init__(self) -> None:
        south, west, north, east = self.area_bounds
        if south >= north or west >= east:
            raise ValueError(f"area_bounds must be (south, west, north, east), got {self.area_bounds}")


@dataclass(frozen=True)
class MotionConfig:
    """Thresholds for walking/shake/stationary detection (m/s^2, seconds)."""

    walking_threshold_ms2: float = WALKING_THRESHOLD_MS2
    shake_threshold_ms2: float = SHAKE_THRESHOLD_MS2
    stationary_threshold_ms2: float = STATIONARY_THRESHOLD_MS2
    min_step_interval_s: float = MIN_STEP_INTERVAL_S
    walking_timeout_s: float = WALKING_TIMEOUT_S
    buffer_size: int = MOTION_BUFFER_SIZE

    def __post_init__(self) -> None:
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {self.buffer_size}")


@dataclass(frozen=True)
class TerrainConfig:
    """
    Registration between the terrain model and the map.

    ``scale_factor`` is scene units per metre; ``center_offset`` is the scene
    position (x, y, z) of the geographic origin.
    """

    origin: Tuple[float, float, float] = TERRAIN_CENTER_GPS
    scale_factor: float = 1.0
    center_offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    extent_m: Tuple[float, float] = TERRAIN_EXTENT_M
    usable_radius_m: float = USABLE_RADIUS_M

    def __post_init__(self) -> None:
        if self.scale_factor <= 0:
            raise ValueError(f"scale_factor must be positive, got {self.scale_factor}")
        if self.usable_radius_m <= 0:
            raise ValueError(f"usable_radius_m must be positive, got {self.usable_radius_m}")


@dataclass(frozen=True)
class AppConfig:
    orientation: OrientationConfig = field(default_factory=OrientationConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    terrain: TerrainConfig = field(default_factory=TerrainConfig)
