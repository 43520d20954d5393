"""
Lifecycle coordinator for the device sensor services.

SensorManager is an explicit context object: the application builds one at
startup from the platform capability descriptor and the per-sensor channels,
and passes it to whatever needs sensors. Tests build their own isolated
instances.

After ``dispose()`` the manager fails fast: asking it for a service raises
SensorManagerDisposedError, and a new manager must be constructed.

The manager also enforces the single-calibration-session assumption: only
one calibration flow may hold the orientation stream at a time.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from terrain_ar.config import AppConfig
from terrain_ar.errors import CalibrationStateError, SensorManagerDisposedError
from terrain_ar.sensors.location import LocationService
from terrain_ar.sensors.motion import MotionService
from terrain_ar.sensors.orientation import OrientationService
from terrain_ar.sensors.platform import NullChannel, SensorChannel
from terrain_ar.sensors.types import PlatformCapabilities

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SensorState:
    """Snapshot of one sensor for status displays."""

    available: bool
    active: bool
    last_update: Optional[float]


class SensorManager:
    """
    Owns one location, orientation and motion service.

    Args:
        capabilities: Platform capability descriptor.
        orientation_channel: Raw orientation event source.
        location_channel: Raw GPS event source.
        motion_channel: Raw motion event source.
        config: Application configuration.
        clock: Time source (seconds) shared by all services.
    """

    def __init__(
        self,
        capabilities: PlatformCapabilities,
        orientation_channel: Optional[SensorChannel] = None,
        location_channel: Optional[SensorChannel] = None,
        motion_channel: Optional[SensorChannel] = None,
        config: Optional[AppConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        config = config or AppConfig()
        self.capabilities = capabilities
        self.config = config

        self._orientation = OrientationService(
            orientation_channel or NullChannel(), capabilities, config.orientation, clock
        )
        self._location = LocationService(
            location_channel or NullChannel(), capabilities, config.location, clock
        )
        self._motion = MotionService(
            motion_channel or NullChannel(), capabilities, config.motion, clock
        )
        self._disposed = False
        self._calibration_owner: Optional[object] = None

        logger.debug("SensorManager created (%s)", capabilities)

    def _check_alive(self) -> None:
        if self._disposed:
            raise SensorManagerDisposedError("SensorManager was disposed; build a new one")

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def orientation_service(self) -> OrientationService:
        self._check_alive()
        return self._orientation

    @property
    def location_service(self) -> LocationService:
        self._check_alive()
        return self._location

    @property
    def motion_service(self) -> MotionService:
        self._check_alive()
        return self._motion

    def claim_calibration(self, owner: object) -> None:
        """Mark ``owner`` as the one live calibration session."""
        self._check_alive()
        if self._calibration_owner is not None and self._calibration_owner is not owner:
            raise CalibrationStateError("another calibration session is already open")
        self._calibration_owner = owner

    def release_calibration(self, owner: object) -> None:
        if self._calibration_owner is owner:
            self._calibration_owner = None

    @property
    def calibration_in_progress(self) -> bool:
        return self._calibration_owner is not None

    def status(self) -> Dict[str, SensorState]:
        """Availability, activity and last update time of every sensor."""
        self._check_alive()
        position = self._location.last_position
        orientation = self._orientation.last_sample
        motion = self._motion.last_sample
        return {
            "location": SensorState(
                available=self._location.is_available(),
                active=self._location.is_watching,
                last_update=position.timestamp if position else None,
            ),
            "orientation": SensorState(
                available=self._orientation.is_available(),
                active=self._orientation.is_tracking,
                last_update=orientation.timestamp if orientation else None,
            ),
            "motion": SensorState(
                available=self._motion.is_available(),
                active=self._motion.is_tracking,
                last_update=motion.timestamp if motion else None,
            ),
        }

    def stop_all(self) -> None:
        """Unsubscribe everything from every sensor."""
        self._check_alive()
        logger.info("Stopping all sensors")
        self._location.stop_watching()
        self._orientation.stop_tracking()
        self._motion.stop_tracking()

    def dispose(self) -> None:
        """Stop and release all services. Idempotent."""
        if self._disposed:
            return
        self.stop_all()
        self._location.dispose()
        self._orientation.dispose()
        self._motion.dispose()
        self._calibration_owner = None
        self._disposed = True
        logger.debug("SensorManager disposed")
