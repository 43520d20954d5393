"""
Device sensor services.

Modules:
    types: Sample types, permission states and the platform capability descriptor
    platform: SensorChannel seam to the host environment
    subscription: Reference-counted subscriber lists with isolated fan-out
    orientation: Orientation stream, compass heading and tilt checks
    location: GPS watch, area check and distance between fixes
    motion: Motion stream and activity heuristics
    manager: SensorManager context object owning one of each service

Design principles:
    - Sample dataclasses are frozen (immutable)
    - Unknown angles are None and never treated as 0 by heading logic
    - Platform listeners are attached only while at least one subscriber exists
    - One failing subscriber never prevents delivery to the others
"""

from terrain_ar.sensors.location import LocationService
from terrain_ar.sensors.manager import SensorManager, SensorState
from terrain_ar.sensors.motion import MotionService
from terrain_ar.sensors.orientation import OrientationService
from terrain_ar.sensors.platform import NullChannel, SensorChannel
from terrain_ar.sensors.subscription import DeliveryReport, SubscriberList, Subscription
from terrain_ar.sensors.types import (
    GPSError,
    GPSPosition,
    MotionSample,
    OrientationSample,
    PermissionState,
    PlatformCapabilities,
)

__all__ = [
    # Types
    "GPSError",
    "GPSPosition",
    "MotionSample",
    "OrientationSample",
    "PermissionState",
    "PlatformCapabilities",
    # Platform seam
    "NullChannel",
    "SensorChannel",
    # Subscriptions
    "DeliveryReport",
    "SubscriberList",
    "Subscription",
    # Services
    "LocationService",
    "MotionService",
    "OrientationService",
    "SensorManager",
    "SensorState",
]
