"""
Device motion service: accelerometer/gyro stream plus simple activity cues.

Like the orientation service, the platform listener is reference counted and
fan-out is isolated per subscriber. On top of the raw stream it offers:
    - walking detection from gravity-removed acceleration peaks
    - shake detection from the raw acceleration magnitude
    - stationary check on linear acceleration
    - screen orientation class from the gravity direction
    - a short moving-average buffer of recent accelerations

Walking detection is driven by sample timestamps, so it behaves the same
on replayed traces as on a live device.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Any, Callable, Deque, Mapping, Optional

import numpy as np

from terrain_ar.config import MotionConfig
from terrain_ar.errors import PermissionDeniedError, UnsupportedError
from terrain_ar.sensors.platform import SensorChannel
from terrain_ar.sensors.subscription import DeliveryReport, SubscriberList, Subscription
from terrain_ar.sensors.types import MotionSample, PermissionState, PlatformCapabilities, Vector3

logger = logging.getLogger(__name__)

MotionCallback = Callable[[MotionSample], None]

STANDARD_GRAVITY = 9.8  # m/s^2


def _magnitude(vec: Vector3) -> Optional[float]:
    if any(v is None for v in vec):
        return None
    return float(np.linalg.norm(np.asarray(vec, dtype=np.float64)))


class MotionService:
    """Device motion subscription and activity heuristics."""

    def __init__(
        self,
        channel: SensorChannel,
        capabilities: Optional[PlatformCapabilities] = None,
        config: Optional[MotionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._channel = channel
        self._capabilities = capabilities or PlatformCapabilities()
        self._config = config or MotionConfig()
        self._clock = clock

        self._subscribers: SubscriberList[MotionSample] = SubscriberList(
            "Motion", on_first=self._attach_listener, on_empty=self._detach_listener
        )
        self._listening = False
        self._last_sample: Optional[MotionSample] = None
        self._buffer: Deque[MotionSample] = deque(maxlen=self._config.buffer_size)
        self._permission: Optional[PermissionState] = None
        self._permission_task: Optional["asyncio.Future[PermissionState]"] = None

        self.step_count = 0
        self._last_step_time: Optional[float] = None

        self.last_report: Optional[DeliveryReport] = None

    def is_available(self) -> bool:
        return self._capabilities.motion

    async def request_permission(self) -> PermissionState:
        """Same contract as OrientationService.request_permission, for motion."""
        if not self.is_available():
            raise UnsupportedError("Device motion is not supported")
        if self._permission is PermissionState.GRANTED:
            return PermissionState.GRANTED
        if not self._capabilities.motion_permission_required:
            self._permission = PermissionState.GRANTED
            return PermissionState.GRANTED

        task = self._permission_task
        if task is None:
            task = asyncio.ensure_future(self._prompt())
            self._permission_task = task
        try:
            return await asyncio.shield(task)
        finally:
            if self._permission_task is task and task.done():
                self._permission_task = None

    async def _prompt(self) -> PermissionState:
        try:
            result = await self._channel.request_permission()
        except Exception:
            logger.warning("Device motion permission request failed", exc_info=True)
            result = PermissionState.DENIED
        state = PermissionState.GRANTED if result == PermissionState.GRANTED else PermissionState.DENIED
        logger.info("DeviceMotion permission result: %s", state.value)
        self._permission = state
        return state

    async def start_tracking(self, callback: MotionCallback) -> Subscription:
        if not self.is_available():
            raise UnsupportedError("Device motion is not supported")
        if await self.request_permission() is not PermissionState.GRANTED:
            raise PermissionDeniedError("Device motion permission denied")
        return self._subscribers.add(callback)

    def stop_tracking(self, callback: Optional[MotionCallback] = None) -> None:
        if callback is not None:
            self._subscribers.remove(callback)
        else:
            self._subscribers.clear()

    @property
    def is_tracking(self) -> bool:
        return self._listening

    @property
    def last_sample(self) -> Optional[MotionSample]:
        return self._last_sample

    def _attach_listener(self) -> None:
        self._listening = True
        self._channel.attach(self._handle_event)
        logger.debug("Motion listener attached")

    def _detach_listener(self) -> None:
        self._listening = False
        self._channel.detach(self._handle_event)
        self._buffer.clear()
        self.reset_walking_state()
        logger.debug("Motion listener detached")

    def _handle_event(self, event: Mapping[str, Any]) -> None:
        if not self._listening:
            return
        sample = MotionSample.from_event(event, self._clock())
        self._last_sample = sample
        self._buffer.append(sample)
        self.last_report = self._subscribers.publish(sample)

    # ------------------------------------------------------------------
    # Activity heuristics
    # ------------------------------------------------------------------

    def detect_walking(self, sample: MotionSample) -> bool:
        """
        Step-based walking detection.

        A step is counted when the gravity-removed acceleration magnitude
        exceeds the walking threshold at least ``min_step_interval_s`` after
        the previous step. The user is considered walking while the last
        step is less than ``walking_timeout_s`` old.

        Args:
            sample: Motion sample; its timestamp drives the timing.

        Returns:
            True if a step was detected now or the user is still walking.
        """
        magnitude = _magnitude(sample.acceleration_including_gravity)
        if magnitude is None:
            return False

        since_last = (
            sample.timestamp - self._last_step_time if self._last_step_time is not None else np.inf
        )
        if abs(magnitude - STANDARD_GRAVITY) > self._config.walking_threshold_ms2 and (
            since_last > self._config.min_step_interval_s
        ):
            self.step_count += 1
            self._last_step_time = sample.timestamp
            return True

        return since_last < self._config.walking_timeout_s

    def reset_walking_state(self) -> None:
        self.step_count = 0
        self._last_step_time = None

    def detect_shake(self, sample: MotionSample) -> bool:
        magnitude = _magnitude(sample.acceleration_including_gravity)
        return magnitude is not None and magnitude > self._config.shake_threshold_ms2

    def is_stationary(self, sample: MotionSample, threshold_ms2: Optional[float] = None) -> bool:
        """True if linear acceleration (gravity removed) stays under the threshold."""
        if threshold_ms2 is None:
            threshold_ms2 = self._config.stationary_threshold_ms2
        magnitude = _magnitude(sample.acceleration)
        return magnitude is not None and magnitude < threshold_ms2

    @staticmethod
    def screen_orientation(sample: MotionSample) -> str:
        """
        Classify how the device is held from the gravity direction.

        Returns:
            One of 'portrait', 'landscape-left', 'landscape-right',
            'portrait-upside-down' or 'unknown'.
        """
        x, y, _ = sample.acceleration_including_gravity
        if x is None or y is None:
            return 'unknown'

        angle = np.rad2deg(np.arctan2(x, y))
        if -45.0 <= angle < 45.0:
            return 'portrait'
        if 45.0 <= angle < 135.0:
            return 'landscape-left'
        if -135.0 <= angle < -45.0:
            return 'landscape-right'
        return 'portrait-upside-down'

    def smoothed_acceleration(self) -> Optional[np.ndarray]:
        """Mean acceleration (with gravity) over the recent sample buffer."""
        rows = [
            s.acceleration_including_gravity
            for s in self._buffer
            if all(v is not None for v in s.acceleration_including_gravity)
        ]
        if not rows:
            return None
        return np.mean(np.asarray(rows, dtype=np.float64), axis=0)

    def dispose(self) -> None:
        self.stop_tracking()
        self._last_sample = None
        self._buffer.clear()
        self.last_report = None
