"""
Device orientation service: permission, subscription and compass heading.

This module turns the platform's raw, event-driven orientation stream into
normalized OrientationSample values and provides the heading helpers the
calibration flow builds on:
    - Compass heading with a constant magnetic declination
    - Signed relative angle to a target heading
    - Flatness / portrait checks on the tilt angles
    - Significant-change detection between two samples

Lifecycle:
    ``start_tracking`` registers a subscriber; the platform listener is
    attached only when the first subscriber arrives and detached when the
    last one leaves. Every delivered event updates ``last_sample`` before
    the subscribers are called, in arrival order. A subscriber that raises
    is logged and skipped; the others still receive the sample.

Unknown angles (None) never raise: heading queries return None and the
tilt checks report "not flat".
"""

import asyncio
import logging
import time
from typing import Any, Callable, Mapping, Optional

from terrain_ar.config import PORTRAIT_GAMMA_LIMIT_DEG, OrientationConfig
from terrain_ar.errors import PermissionDeniedError, UnsupportedError
from terrain_ar.sensors.platform import SensorChannel
from terrain_ar.sensors.subscription import DeliveryReport, SubscriberList, Subscription
from terrain_ar.sensors.types import OrientationSample, PermissionState, PlatformCapabilities
from terrain_ar.utils.angles import angle_diff_deg, wrap_degrees

logger = logging.getLogger(__name__)

OrientationCallback = Callable[[OrientationSample], None]


class OrientationService:
    """
    Normalizes device orientation events and derives compass headings.

    Args:
        channel: Platform channel delivering raw orientation events.
        capabilities: Platform capability descriptor resolved at startup.
        config: Declination and default thresholds.
        clock: Returns the current time in seconds; stamps each sample.

    Example:
        >>> service = OrientationService(channel, PlatformCapabilities())
        >>> sub = await service.start_tracking(on_sample)
        >>> ...
        >>> sub.dispose()
    """

    def __init__(
        self,
        channel: SensorChannel,
        capabilities: Optional[PlatformCapabilities] = None,
        config: Optional[OrientationConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._channel = channel
        self._capabilities = capabilities or PlatformCapabilities()
        self._config = config or OrientationConfig()
        self._clock = clock

        self._declination = self._config.magnetic_declination_deg
        self._subscribers: SubscriberList[OrientationSample] = SubscriberList(
            "Orientation", on_first=self._attach_listener, on_empty=self._detach_listener
        )
        self._listening = False
        self._last_sample: Optional[OrientationSample] = None
        self._permission: Optional[PermissionState] = None
        self._permission_task: Optional["asyncio.Future[PermissionState]"] = None

        self.last_report: Optional[DeliveryReport] = None

    # ------------------------------------------------------------------
    # Capability and permission
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        """True if the platform provides device orientation events."""
        return self._capabilities.orientation

    async def request_permission(self) -> PermissionState:
        """
        Ask the user for orientation access.

        Platforms that do not require a prompt grant immediately. Concurrent
        callers share a single in-flight prompt; a granted result is
        remembered for the lifetime of the service.

        Returns:
            PermissionState.GRANTED or PermissionState.DENIED.

        Raises:
            UnsupportedError: The platform lacks the orientation API.
        """
        if not self.is_available():
            raise UnsupportedError("Device orientation is not supported")
        if self._permission is PermissionState.GRANTED:
            return PermissionState.GRANTED
        if not self._capabilities.orientation_permission_required:
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
            logger.warning("Device orientation permission request failed", exc_info=True)
            result = PermissionState.DENIED

        state = PermissionState.GRANTED if result == PermissionState.GRANTED else PermissionState.DENIED
        logger.info("DeviceOrientation permission result: %s", state.value)
        self._permission = state
        return state

    @property
    def permission(self) -> Optional[PermissionState]:
        """Last known permission outcome, or None if never requested."""
        return self._permission

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    async def start_tracking(self, callback: OrientationCallback) -> Subscription:
        """
        Register ``callback`` for orientation samples.

        Raises:
            UnsupportedError: The platform lacks the orientation API.
            PermissionDeniedError: The user declined access.

        Returns:
            Subscription token; ``dispose()`` removes this registration.
        """
        if not self.is_available():
            raise UnsupportedError("Device orientation is not supported")

        state = await self.request_permission()
        if state is not PermissionState.GRANTED:
            raise PermissionDeniedError("Device orientation permission denied")

        return self._subscribers.add(callback)

    def stop_tracking(self, callback: Optional[OrientationCallback] = None) -> None:
        """Remove one subscriber, or all of them when ``callback`` is None."""
        if callback is not None:
            self._subscribers.remove(callback)
        else:
            self._subscribers.clear()

    @property
    def is_tracking(self) -> bool:
        """True while the platform listener is attached."""
        return self._listening

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def last_sample(self) -> Optional[OrientationSample]:
        """Most recently delivered sample, queryable without subscribing."""
        return self._last_sample

    def _attach_listener(self) -> None:
        self._listening = True
        self._channel.attach(self._handle_event)
        logger.debug(
            "Orientation listener attached (absolute=%s)", self._capabilities.absolute_orientation
        )

    def _detach_listener(self) -> None:
        self._listening = False
        self._channel.detach(self._handle_event)
        logger.debug("Orientation listener detached")

    def _handle_event(self, event: Mapping[str, Any]) -> None:
        if not self._listening:
            # Late event from a platform that already had the listener removed.
            return
        sample = OrientationSample.from_event(event, self._clock())
        self._last_sample = sample
        self.last_report = self._subscribers.publish(sample)

    # ------------------------------------------------------------------
    # Heading helpers
    # ------------------------------------------------------------------

    @property
    def magnetic_declination(self) -> float:
        return self._declination

    def set_magnetic_declination(self, declination_deg: float) -> None:
        if not -180.0 <= declination_deg <= 180.0:
            raise ValueError(f"declination must be in [-180, 180], got {declination_deg}")
        self._declination = float(declination_deg)

    def get_compass_heading(self, sample: OrientationSample) -> Optional[float]:
        """
        Compass heading with north at 0 degrees.

        Implements ``(alpha + declination) mod 360``.

        Args:
            sample: Orientation sample.

        Returns:
            Heading in [0, 360), or None when alpha is unknown.

        Example:
            >>> # alpha=355, declination=7.3
            >>> service.get_compass_heading(sample)
            2.3
        """
        if sample.alpha is None:
            return None
        return wrap_degrees(sample.alpha + self._declination)

    def get_relative_angle(self, sample: OrientationSample, target_heading_deg: float) -> Optional[float]:
        """
        Signed angle to turn from the current heading to ``target_heading_deg``.

        Returns:
            ``target - heading`` folded into (-180, 180], or None when the
            heading is unknown. Positive means clockwise.
        """
        heading = self.get_compass_heading(sample)
        if heading is None:
            return None
        return angle_diff_deg(target_heading_deg, heading)

    def is_device_flat(self, sample: OrientationSample, threshold_deg: Optional[float] = None) -> bool:
        """True iff both tilt angles are known and below ``threshold_deg`` in magnitude."""
        if threshold_deg is None:
            threshold_deg = self._config.flat_threshold_deg
        if sample.beta is None or sample.gamma is None:
            return False
        return abs(sample.beta) < threshold_deg and abs(sample.gamma) < threshold_deg

    def is_device_portrait(self, sample: OrientationSample) -> bool:
        # Unknown roll: assume the default portrait hold.
        if sample.gamma is None:
            return True
        return abs(sample.gamma) < PORTRAIT_GAMMA_LIMIT_DEG

    def has_significant_change(
        self,
        current: OrientationSample,
        previous: OrientationSample,
        threshold_deg: Optional[float] = None,
    ) -> bool:
        """
        True if any of alpha/beta/gamma moved by more than ``threshold_deg``.

        Unknown values are treated as 0. The alpha difference is taken along
        the shorter arc, so 359 -> 1 is a 2 degree change.
        """
        if threshold_deg is None:
            threshold_deg = self._config.significant_change_deg

        alpha_diff = abs(angle_diff_deg(current.alpha or 0.0, previous.alpha or 0.0))
        beta_diff = abs((current.beta or 0.0) - (previous.beta or 0.0))
        gamma_diff = abs((current.gamma or 0.0) - (previous.gamma or 0.0))

        return alpha_diff > threshold_deg or beta_diff > threshold_deg or gamma_diff > threshold_deg

    def dispose(self) -> None:
        """Stop tracking and forget the cached sample."""
        self.stop_tracking()
        self._last_sample = None
        self.last_report = None
