"""
Data structures for the device sensor streams.

This module defines the sample types delivered by the sensor services and
the descriptors that replace run-time feature probing:
    - OrientationSample: one device-orientation event (alpha/beta/gamma)
    - GPSPosition / GPSError: one geolocation fix or failure
    - MotionSample: one device-motion event (accelerations, rotation rate)
    - PermissionState: result of a sensor permission prompt
    - PlatformCapabilities: which sensor APIs the platform provides

Unknown-value convention:
    Any angle or axis may be ``None`` when the sensor is temporarily
    unavailable. Consumers must treat ``None`` as "unknown", never as 0.

Time base:
    Timestamps are float seconds taken from the service's clock.

Angle conventions (degrees):
    - alpha: rotation about the vertical axis, [0, 360)
    - beta: front/back tilt, (-180, 180]
    - gamma: left/right tilt, (-90, 90]
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from terrain_ar.utils.angles import fold_signed_degrees, normalize_range, wrap_degrees


class PermissionState(str, Enum):
    """Outcome of a sensor permission query."""

    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PlatformCapabilities:
    """
    Sensor APIs offered by the host platform, resolved once at startup.

    Attributes:
        orientation: Device-orientation events are available.
        absolute_orientation: The platform offers an absolute (compass
            referenced) orientation stream, preferred when present.
        orientation_permission_required: An explicit user prompt is needed
            before orientation events flow (iOS 13+ style).
        motion: Device-motion events are available.
        motion_permission_required: Same as above, for motion.
        geolocation: GPS fixes are available.
    """

    orientation: bool = True
    absolute_orientation: bool = False
    orientation_permission_required: bool = False
    motion: bool = True
    motion_permission_required: bool = False
    geolocation: bool = True

    @classmethod
    def none(cls) -> "PlatformCapabilities":
        """Descriptor for a platform without any sensor API (e.g. desktop)."""
        return cls(orientation=False, motion=False, geolocation=False)


def _optional_angle(value: Any) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class OrientationSample:
    """
    One device-orientation event.

    Attributes:
        alpha: Azimuth in degrees, [0, 360), or None if unknown.
        beta: Pitch in degrees, (-180, 180], or None if unknown.
        gamma: Roll in degrees, (-90, 90], or None if unknown.
        absolute: True if alpha is referenced to magnetic north.
        raw_compass_heading: Device-supplied absolute heading (e.g. the
            ``webkitCompassHeading`` field), or None.
        timestamp: Delivery time in seconds.
    """

    alpha: Optional[float]
    beta: Optional[float]
    gamma: Optional[float]
    absolute: bool = False
    raw_compass_heading: Optional[float] = None
    timestamp: float = 0.0

    @classmethod
    def from_event(cls, event: Mapping[str, Any], timestamp: float) -> "OrientationSample":
        """
        Normalize a raw platform orientation event.

        Accepts the browser-style keys ``alpha``, ``beta``, ``gamma``,
        ``absolute`` and either ``rawCompassHeading`` or
        ``webkitCompassHeading``. Missing or non-finite angles become None;
        known angles are folded into their canonical ranges.

        Args:
            event: Raw event mapping from the platform.
            timestamp: Delivery time in seconds.

        Returns:
            Normalized, immutable OrientationSample.
        """
        alpha = _optional_angle(event.get("alpha"))
        beta = _optional_angle(event.get("beta"))
        gamma = _optional_angle(event.get("gamma"))
        heading = _optional_angle(event.get("rawCompassHeading"))
        if heading is None:
            heading = _optional_angle(event.get("webkitCompassHeading"))

        return cls(
            alpha=wrap_degrees(alpha) if alpha is not None else None,
            beta=fold_signed_degrees(beta) if beta is not None else None,
            # gamma has a 180 degree period; negate to land in (-90, 90]
            gamma=-normalize_range(-gamma, -90.0, 90.0) if gamma is not None else None,
            absolute=bool(event.get("absolute", False)),
            raw_compass_heading=wrap_degrees(heading) if heading is not None else None,
            timestamp=float(timestamp),
        )

    @property
    def is_complete(self) -> bool:
        """True if all three angles are known."""
        return self.alpha is not None and self.beta is not None and self.gamma is not None


@dataclass(frozen=True)
class GPSPosition:
    """One geolocation fix (degrees, metres, m/s, seconds)."""

    latitude: float
    longitude: float
    altitude: Optional[float] = None
    accuracy: float = 0.0
    heading: Optional[float] = None
    speed: Optional[float] = None
    timestamp: float = 0.0

    @classmethod
    def from_event(cls, event: Mapping[str, Any], timestamp: float) -> "GPSPosition":
        """Build a fix from a raw ``{latitude, longitude, ...}`` event."""
        return cls(
            latitude=float(event["latitude"]),
            longitude=float(event["longitude"]),
            altitude=_optional_angle(event.get("altitude")),
            accuracy=float(event.get("accuracy", 0.0)),
            heading=_optional_angle(event.get("heading")),
            speed=_optional_angle(event.get("speed")),
            timestamp=float(timestamp),
        )


@dataclass(frozen=True)
class GPSError:
    """A geolocation failure reported by the platform."""

    code: int
    message: str
    timestamp: float = 0.0

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


Vector3 = Tuple[Optional[float], Optional[float], Optional[float]]


@dataclass(frozen=True)
class MotionSample:
    """
    One device-motion event.

    Attributes:
        acceleration: Linear acceleration without gravity (m/s^2), per axis
            possibly None.
        acceleration_including_gravity: Raw accelerometer reading (m/s^2).
        rotation_rate: (alpha, beta, gamma) rates in deg/s.
        interval: Platform sampling interval in seconds.
        timestamp: Delivery time in seconds.
    """

    acceleration: Vector3 = (None, None, None)
    acceleration_including_gravity: Vector3 = (None, None, None)
    rotation_rate: Vector3 = (None, None, None)
    interval: float = 0.0
    timestamp: float = 0.0

    @classmethod
    def from_event(cls, event: Mapping[str, Any], timestamp: float) -> "MotionSample":
        def vec(key: str, axes: Tuple[str, str, str]) -> Vector3:
            raw = event.get(key) or {}
            return tuple(_optional_angle(raw.get(a)) for a in axes)  # type: ignore[return-value]

        return cls(
            acceleration=vec("acceleration", ("x", "y", "z")),
            acceleration_including_gravity=vec("accelerationIncludingGravity", ("x", "y", "z")),
            rotation_rate=vec("rotationRate", ("alpha", "beta", "gamma")),
            interval=float(event.get("interval", 0.0)),
            timestamp=float(timestamp),
        )
