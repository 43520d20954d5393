"""
GPS location service.

Sibling of the orientation service: the calibration core only consumes its
output shape (GPSPosition), but it follows the same lifecycle rules. The
platform watch is started when the first subscriber registers and cleared
when the last one leaves; every fix updates ``last_position`` before the
subscribers are called, and a failing subscriber never blocks the others.

Raw events from the channel are either a fix mapping
(``{latitude, longitude, altitude?, accuracy?, heading?, speed?}``) or an
error mapping (``{"error": {"code": int, "message": str}}``).
"""

import asyncio
import logging
import time
from typing import Any, Callable, List, Mapping, Optional, Tuple

from terrain_ar.config import LocationConfig
from terrain_ar.coords.geodesy import distance_m
from terrain_ar.errors import LocationError, UnsupportedError
from terrain_ar.sensors.platform import SensorChannel
from terrain_ar.sensors.subscription import DeliveryReport, SubscriberList, Subscription
from terrain_ar.sensors.types import GPSError, GPSPosition, PermissionState, PlatformCapabilities

logger = logging.getLogger(__name__)

GPSCallback = Callable[[GPSPosition], None]
GPSErrorCallback = Callable[[GPSError], None]


class LocationService:
    """Reference-counted GPS watch with isolated fan-out."""

    def __init__(
        self,
        channel: SensorChannel,
        capabilities: Optional[PlatformCapabilities] = None,
        config: Optional[LocationConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._channel = channel
        self._capabilities = capabilities or PlatformCapabilities()
        self._config = config or LocationConfig()
        self._clock = clock

        self._subscribers: SubscriberList[GPSPosition] = SubscriberList(
            "GPS", on_first=self._start_watch, on_empty=self._clear_watch
        )
        self._error_subscribers: SubscriberList[GPSError] = SubscriberList("GPS error")
        # fix callback -> combined token for watches registered with an error callback
        self._paired: List[Tuple[GPSCallback, Subscription]] = []
        self._watching = False
        self._reception_check: Optional[asyncio.TimerHandle] = None
        self._last_position: Optional[GPSPosition] = None

        self.last_report: Optional[DeliveryReport] = None

    def is_available(self) -> bool:
        return self._capabilities.geolocation

    async def check_permission(self) -> PermissionState:
        """Query the geolocation permission without starting a watch."""
        if not self.is_available():
            return PermissionState.DENIED
        try:
            state = await self._channel.request_permission()
        except Exception:
            logger.warning("Geolocation permission query failed", exc_info=True)
            return PermissionState.UNKNOWN
        return PermissionState(state)

    async def get_current_position(self) -> GPSPosition:
        """
        Return one fix, reusing the cached one if it is recent enough.

        Raises:
            UnsupportedError: Geolocation is not available.
            LocationError: The platform reported an error or no fix arrived
                within the configured timeout.
        """
        if not self.is_available():
            raise UnsupportedError("Geolocation is not supported")

        cached = self._last_position
        if cached is not None and self._clock() - cached.timestamp <= self._config.maximum_age_s:
            return cached

        loop = asyncio.get_running_loop()
        result: "asyncio.Future[GPSPosition]" = loop.create_future()

        def on_fix(position: GPSPosition) -> None:
            if not result.done():
                result.set_result(position)

        def on_error(error: GPSError) -> None:
            if not result.done():
                result.set_exception(LocationError(error.message, error))

        with self.start_watching(on_fix, on_error):
            try:
                return await asyncio.wait_for(result, timeout=self._config.timeout_s)
            except asyncio.TimeoutError as e:
                raise LocationError(
                    f"no GPS fix within {self._config.timeout_s:.0f} s",
                    GPSError(GPSError.TIMEOUT, "timeout", self._clock()),
                ) from e

    def start_watching(
        self,
        callback: GPSCallback,
        error_callback: Optional[GPSErrorCallback] = None,
    ) -> Subscription:
        """Register a fix subscriber (and optionally an error subscriber)."""
        if not self.is_available():
            raise UnsupportedError("Geolocation is not supported")

        error_subscription = (
            self._error_subscribers.add(error_callback) if error_callback is not None else None
        )
        subscription = self._subscribers.add(callback)
        logger.debug("GPS callbacks added, total: %d", len(self._subscribers))

        if error_subscription is None:
            return subscription

        def dispose_both() -> None:
            subscription.dispose()
            error_subscription.dispose()
            self._paired[:] = [entry for entry in self._paired if entry[1] is not combined]

        combined = Subscription(dispose_both)
        self._paired.append((callback, combined))
        return combined

    def stop_watching(self, callback: Optional[GPSCallback] = None) -> None:
        """
        Remove one fix subscriber together with the error subscriber it was
        registered with, or every fix and error subscriber.
        """
        if callback is None:
            self._paired.clear()
            self._subscribers.clear()
            self._error_subscribers.clear()
            return

        for fix_callback, combined in self._paired:
            if fix_callback == callback:
                combined.dispose()
                return
        self._subscribers.remove(callback)

    @property
    def is_watching(self) -> bool:
        return self._watching

    @property
    def last_position(self) -> Optional[GPSPosition]:
        return self._last_position

    def _start_watch(self) -> None:
        self._watching = True
        self._channel.attach(self._handle_event)
        logger.debug(
            "GPS watch started (high_accuracy=%s, timeout=%.0fs, maximum_age=%.0fs)",
            self._config.enable_high_accuracy,
            self._config.timeout_s,
            self._config.maximum_age_s,
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._cancel_reception_check()
        self._reception_check = loop.call_later(self._config.reception_check_s, self.check_reception)

    def _clear_watch(self) -> None:
        self._watching = False
        self._channel.detach(self._handle_event)
        self._cancel_reception_check()
        logger.debug("GPS watch cleared")

    def _cancel_reception_check(self) -> None:
        if self._reception_check is not None:
            self._reception_check.cancel()
            self._reception_check = None

    def check_reception(self) -> bool:
        """True if a fix has been received; warns otherwise."""
        self._reception_check = None
        if self._last_position is None:
            logger.warning(
                "No GPS data received yet; check that location permission is granted"
            )
            return False
        return True

    def _handle_event(self, event: Mapping[str, Any]) -> None:
        if not self._watching:
            return
        now = self._clock()
        if "error" in event:
            raw = event["error"]
            error = GPSError(int(raw.get("code", 0)), str(raw.get("message", "")), now)
            logger.error("GPS error received: %s (code %d)", error.message, error.code)
            self._error_subscribers.publish(error)
            return

        position = GPSPosition.from_event(event, now)
        self._last_position = position
        self.last_report = self._subscribers.publish(position)

    def is_in_area(self, position: GPSPosition) -> bool:
        """True if ``position`` lies inside the configured deployment area."""
        south, west, north, east = self._config.area_bounds
        return south <= position.latitude <= north and west <= position.longitude <= east

    def mock_position(self) -> GPSPosition:
        """Fixed position at the deployment landmark, for desktop testing."""
        lat, lon, alt = self._config.mock_position
        return GPSPosition(
            latitude=lat,
            longitude=lon,
            altitude=alt,
            accuracy=5.0,
            heading=0.0,
            speed=0.0,
            timestamp=self._clock(),
        )

    @staticmethod
    def distance(pos1: GPSPosition, pos2: GPSPosition) -> float:
        """Great-circle distance between two fixes in metres."""
        return distance_m(pos1.latitude, pos1.longitude, pos2.latitude, pos2.longitude)

    def dispose(self) -> None:
        self.stop_watching()
        self._last_position = None
        self.last_report = None
