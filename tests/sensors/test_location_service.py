"""
Unit tests for LocationService.

Tests verify:
    1. The platform watch follows the subscriber count
    2. Fixes update last_position and fan out; errors reach error subscribers
    3. get_current_position reuses a recent fix, waits for a new one,
       and reports platform errors and timeouts as LocationError
    4. Area check, mock position and distance helpers
"""

import asyncio
import unittest

from terrain_ar.config import LocationConfig
from terrain_ar.errors import LocationError, UnsupportedError
from terrain_ar.sensors.location import LocationService
from terrain_ar.sensors.types import GPSError, GPSPosition, PermissionState, PlatformCapabilities
from terrain_ar.sim.scripted import ManualClock, ScriptedChannel

FIX = {"latitude": 35.78, "longitude": 139.02, "altitude": 540.0, "accuracy": 8.0}


class TestLocationWatch(unittest.IsolatedAsyncioTestCase):
    """Watch lifecycle and fan-out."""

    def setUp(self) -> None:
        self.clock = ManualClock(100.0)
        self.channel = ScriptedChannel()
        self.service = LocationService(self.channel, PlatformCapabilities(), clock=self.clock)

    async def test_watch_follows_subscribers(self) -> None:
        a = self.service.start_watching(lambda p: None)
        b = self.service.start_watching(lambda p: None)
        self.assertTrue(self.service.is_watching)
        self.assertEqual(self.channel.attach_count, 1)

        a.dispose()
        self.assertTrue(self.service.is_watching)
        b.dispose()
        self.assertFalse(self.service.is_watching)
        self.assertEqual(self.channel.detach_count, 1)

    async def test_fix_is_cached_and_delivered(self) -> None:
        received = []
        self.service.start_watching(received.append)

        self.channel.emit(FIX)

        self.assertEqual(len(received), 1)
        position = self.service.last_position
        self.assertIs(received[0], position)
        self.assertAlmostEqual(position.latitude, 35.78)
        self.assertEqual(position.accuracy, 8.0)
        self.assertEqual(position.timestamp, 100.0)
        self.assertIsNone(position.heading)

    async def test_error_event_reaches_error_subscribers(self) -> None:
        fixes, errors = [], []
        self.service.start_watching(fixes.append, errors.append)

        with self.assertLogs("terrain_ar.sensors.location", level="ERROR"):
            self.channel.emit({"error": {"code": 1, "message": "User denied Geolocation"}})

        self.assertEqual(fixes, [])
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].code, GPSError.PERMISSION_DENIED)
        self.assertIsNone(self.service.last_position)

    async def test_combined_subscription_removes_both(self) -> None:
        errors = []
        sub = self.service.start_watching(lambda p: None, errors.append)
        sub.dispose()

        self.assertFalse(self.service.is_watching)
        self.channel.emit({"error": {"code": 2, "message": "unavailable"}})
        self.assertEqual(errors, [])

    async def test_stop_watching_callback_removes_its_error_callback(self) -> None:
        def fix_callback(position):
            pass

        errors, later_errors = [], []
        self.service.start_watching(fix_callback, errors.append)
        self.service.stop_watching(fix_callback)
        self.assertFalse(self.service.is_watching)

        self.service.start_watching(lambda p: None, later_errors.append)
        with self.assertLogs("terrain_ar.sensors.location", level="ERROR"):
            self.channel.emit({"error": {"code": 2, "message": "unavailable"}})

        self.assertEqual(errors, [])
        self.assertEqual(len(later_errors), 1)

    async def test_stop_watching_callback_without_error_callback(self) -> None:
        def fix_callback(position):
            pass

        errors = []
        self.service.start_watching(lambda p: None, errors.append)
        self.service.start_watching(fix_callback)
        self.service.stop_watching(fix_callback)

        self.assertTrue(self.service.is_watching)
        with self.assertLogs("terrain_ar.sensors.location", level="ERROR"):
            self.channel.emit({"error": {"code": 3, "message": "timeout"}})
        self.assertEqual(len(errors), 1)

    async def test_stop_watching_all(self) -> None:
        self.service.start_watching(lambda p: None, lambda e: None)
        self.service.start_watching(lambda p: None)
        self.service.stop_watching()
        self.assertFalse(self.service.is_watching)

    async def test_reception_check_warns_without_fix(self) -> None:
        self.service.start_watching(lambda p: None)
        with self.assertLogs("terrain_ar.sensors.location", level="WARNING"):
            self.assertFalse(self.service.check_reception())

        self.channel.emit(FIX)
        self.assertTrue(self.service.check_reception())


class TestGetCurrentPosition(unittest.IsolatedAsyncioTestCase):
    """One-shot position queries."""

    def setUp(self) -> None:
        self.clock = ManualClock(0.0)
        self.channel = ScriptedChannel()

    def make_service(self, **config) -> LocationService:
        return LocationService(
            self.channel, PlatformCapabilities(), LocationConfig(**config), clock=self.clock
        )

    async def test_waits_for_next_fix(self) -> None:
        service = self.make_service()
        loop = asyncio.get_running_loop()
        loop.call_soon(self.channel.emit, FIX)

        position = await service.get_current_position()

        self.assertAlmostEqual(position.longitude, 139.02)
        # temporary watch is released afterwards
        self.assertFalse(service.is_watching)

    async def test_recent_fix_is_reused(self) -> None:
        service = self.make_service(maximum_age_s=60.0)
        service.start_watching(lambda p: None)
        self.channel.emit(FIX)
        cached = service.last_position

        self.clock.advance(30.0)
        attaches = self.channel.attach_count
        self.assertIs(await service.get_current_position(), cached)
        self.assertEqual(self.channel.attach_count, attaches)

    async def test_platform_error_raises(self) -> None:
        service = self.make_service()
        loop = asyncio.get_running_loop()
        loop.call_soon(self.channel.emit, {"error": {"code": 2, "message": "no signal"}})

        with self.assertLogs("terrain_ar.sensors.location", level="ERROR"):
            with self.assertRaises(LocationError) as ctx:
                await service.get_current_position()
        self.assertEqual(ctx.exception.gps_error.code, GPSError.POSITION_UNAVAILABLE)
        self.assertFalse(service.is_watching)

    async def test_timeout_raises(self) -> None:
        service = self.make_service(timeout_s=0.01)

        with self.assertRaises(LocationError) as ctx:
            await service.get_current_position()
        self.assertEqual(ctx.exception.gps_error.code, GPSError.TIMEOUT)
        self.assertFalse(service.is_watching)

    async def test_unsupported(self) -> None:
        service = LocationService(self.channel, PlatformCapabilities.none(), clock=self.clock)
        with self.assertRaises(UnsupportedError):
            await service.get_current_position()
        with self.assertRaises(UnsupportedError):
            service.start_watching(lambda p: None)
        self.assertEqual(await service.check_permission(), PermissionState.DENIED)

    async def test_check_permission(self) -> None:
        service = self.make_service()
        self.assertEqual(await service.check_permission(), PermissionState.GRANTED)

        failing = LocationService(
            ScriptedChannel(prompt_error=RuntimeError("query failed")), PlatformCapabilities()
        )
        with self.assertLogs("terrain_ar.sensors.location", level="WARNING"):
            self.assertEqual(await failing.check_permission(), PermissionState.UNKNOWN)


class TestLocationHelpers(unittest.TestCase):
    """Area check, mock position and distance."""

    def setUp(self) -> None:
        self.service = LocationService(ScriptedChannel(), clock=ManualClock(5.0))

    def test_is_in_area(self) -> None:
        self.assertTrue(self.service.is_in_area(GPSPosition(35.78, 139.0)))
        self.assertFalse(self.service.is_in_area(GPSPosition(35.68, 139.76)))  # central Tokyo

    def test_mock_position(self) -> None:
        mock = self.service.mock_position()
        self.assertAlmostEqual(mock.latitude, 35.789472)
        self.assertEqual(mock.accuracy, 5.0)
        self.assertEqual(mock.timestamp, 5.0)
        self.assertTrue(self.service.is_in_area(mock))

    def test_distance(self) -> None:
        a = GPSPosition(35.0, 139.0)
        b = GPSPosition(35.0, 139.01)
        self.assertAlmostEqual(LocationService.distance(a, b), 911.0, delta=1.0)
        self.assertEqual(LocationService.distance(a, a), 0.0)


if __name__ == "__main__":
    unittest.main()
