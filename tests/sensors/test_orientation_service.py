"""
Unit tests for OrientationService.

Tests verify:
    1. Raw events are normalized (ranges, NaN -> None, compass key aliases)
    2. Compass heading applies the declination and wraps (355 + 7.3 -> 2.3)
    3. The platform listener is attached on the first subscriber and
       detached after the last one
    4. A failing subscriber never blocks the others
    5. Concurrent permission requests share one prompt
    6. Unsupported platforms and denied permission raise the right errors
"""

import asyncio
import unittest

from terrain_ar.config import OrientationConfig
from terrain_ar.errors import PermissionDeniedError, UnsupportedError
from terrain_ar.sensors.orientation import OrientationService
from terrain_ar.sensors.types import OrientationSample, PermissionState, PlatformCapabilities
from terrain_ar.sim.scripted import ManualClock, ScriptedChannel, orientation_event


def make_sample(alpha=0.0, beta=0.0, gamma=0.0) -> OrientationSample:
    return OrientationSample(alpha=alpha, beta=beta, gamma=gamma)


class TestOrientationSampleFromEvent(unittest.TestCase):
    """Normalization of raw orientation events."""

    def test_angles_are_folded(self) -> None:
        sample = OrientationSample.from_event(
            {"alpha": 370.0, "beta": -190.0, "gamma": 100.0}, timestamp=1.5
        )
        self.assertAlmostEqual(sample.alpha, 10.0)
        self.assertAlmostEqual(sample.beta, 170.0)
        self.assertAlmostEqual(sample.gamma, -80.0)
        self.assertEqual(sample.timestamp, 1.5)

    def test_gamma_upper_bound_inclusive(self) -> None:
        sample = OrientationSample.from_event({"alpha": 0.0, "beta": 0.0, "gamma": 90.0}, 0.0)
        self.assertEqual(sample.gamma, 90.0)
        sample = OrientationSample.from_event({"alpha": 0.0, "beta": 0.0, "gamma": -90.0}, 0.0)
        self.assertEqual(sample.gamma, 90.0)

    def test_missing_and_nan_become_none(self) -> None:
        sample = OrientationSample.from_event({"alpha": float("nan"), "beta": None}, 0.0)
        self.assertIsNone(sample.alpha)
        self.assertIsNone(sample.beta)
        self.assertIsNone(sample.gamma)
        self.assertFalse(sample.is_complete)

    def test_compass_heading_aliases(self) -> None:
        webkit = OrientationSample.from_event({"alpha": 1.0, "webkitCompassHeading": 42.0}, 0.0)
        raw = OrientationSample.from_event({"alpha": 1.0, "rawCompassHeading": 43.0}, 0.0)
        self.assertEqual(webkit.raw_compass_heading, 42.0)
        self.assertEqual(raw.raw_compass_heading, 43.0)

    def test_null_raw_heading_falls_back_to_webkit(self) -> None:
        sample = OrientationSample.from_event(
            {"alpha": 1.0, "rawCompassHeading": None, "webkitCompassHeading": 42.0}, 0.0
        )
        self.assertEqual(sample.raw_compass_heading, 42.0)

        sample = OrientationSample.from_event(
            {"alpha": 1.0, "rawCompassHeading": float("nan"), "webkitCompassHeading": 44.0}, 0.0
        )
        self.assertEqual(sample.raw_compass_heading, 44.0)


class TestHeadingHelpers(unittest.TestCase):
    """Compass heading, relative angle, tilt checks and change detection."""

    def setUp(self) -> None:
        self.service = OrientationService(ScriptedChannel(), PlatformCapabilities())

    def test_declination_wraps_past_north(self) -> None:
        heading = self.service.get_compass_heading(make_sample(alpha=355.0))
        self.assertAlmostEqual(heading, 2.3, places=9)

    def test_unknown_alpha_has_no_heading(self) -> None:
        self.assertIsNone(self.service.get_compass_heading(make_sample(alpha=None)))
        self.assertIsNone(self.service.get_relative_angle(make_sample(alpha=None), 90.0))

    def test_custom_declination(self) -> None:
        service = OrientationService(
            ScriptedChannel(), config=OrientationConfig(magnetic_declination_deg=-5.0)
        )
        self.assertAlmostEqual(service.get_compass_heading(make_sample(alpha=2.0)), 357.0)

        service.set_magnetic_declination(0.0)
        self.assertAlmostEqual(service.get_compass_heading(make_sample(alpha=2.0)), 2.0)
        with self.assertRaises(ValueError):
            service.set_magnetic_declination(200.0)

    def test_relative_angle_shorter_arc(self) -> None:
        self.service.set_magnetic_declination(0.0)
        self.assertAlmostEqual(self.service.get_relative_angle(make_sample(alpha=350.0), 10.0), 20.0)
        self.assertAlmostEqual(self.service.get_relative_angle(make_sample(alpha=10.0), 350.0), -20.0)

    def test_is_device_flat(self) -> None:
        self.assertTrue(self.service.is_device_flat(make_sample(beta=3.0, gamma=-3.0), 5.0))
        self.assertFalse(self.service.is_device_flat(make_sample(beta=5.0, gamma=0.0), 5.0))
        # default threshold is the generic 15 degrees
        self.assertTrue(self.service.is_device_flat(make_sample(beta=10.0, gamma=10.0)))

    def test_unknown_tilt_is_not_flat(self) -> None:
        self.assertFalse(self.service.is_device_flat(make_sample(beta=None, gamma=0.0)))
        self.assertFalse(self.service.is_device_flat(make_sample(beta=0.0, gamma=None)))

    def test_is_device_portrait(self) -> None:
        self.assertTrue(self.service.is_device_portrait(make_sample(gamma=10.0)))
        self.assertFalse(self.service.is_device_portrait(make_sample(gamma=-60.0)))
        self.assertTrue(self.service.is_device_portrait(make_sample(gamma=None)))

    def test_significant_change(self) -> None:
        base = make_sample(alpha=100.0, beta=0.0, gamma=0.0)
        self.assertFalse(self.service.has_significant_change(make_sample(alpha=104.0), base))
        self.assertTrue(self.service.has_significant_change(make_sample(alpha=106.0), base))
        self.assertTrue(self.service.has_significant_change(make_sample(alpha=100.0, beta=6.0), base))

    def test_significant_change_across_north(self) -> None:
        self.assertFalse(
            self.service.has_significant_change(make_sample(alpha=1.0), make_sample(alpha=359.0))
        )


class TestOrientationLifecycle(unittest.IsolatedAsyncioTestCase):
    """Listener reference counting and fan-out."""

    def setUp(self) -> None:
        self.clock = ManualClock(10.0)
        self.channel = ScriptedChannel()
        self.service = OrientationService(self.channel, PlatformCapabilities(), clock=self.clock)

    async def test_listener_attached_once_and_detached_after_last(self) -> None:
        first = await self.service.start_tracking(lambda s: None)
        second = await self.service.start_tracking(lambda s: None)
        self.assertEqual(self.channel.attach_count, 1)
        self.assertTrue(self.service.is_tracking)

        first.dispose()
        self.assertEqual(self.channel.detach_count, 0)
        self.assertTrue(self.channel.listening)

        second.dispose()
        self.assertEqual(self.channel.detach_count, 1)
        self.assertFalse(self.channel.listening)
        self.assertFalse(self.service.is_tracking)

    async def test_resubscribe_after_detach(self) -> None:
        sub = await self.service.start_tracking(lambda s: None)
        sub.dispose()
        sub = await self.service.start_tracking(lambda s: None)
        self.assertEqual(self.channel.attach_count, 2)
        sub.dispose()

    async def test_failing_subscriber_is_isolated(self) -> None:
        received = []

        def boom(sample):
            raise RuntimeError("render failed")

        await self.service.start_tracking(boom)
        await self.service.start_tracking(received.append)

        with self.assertLogs("terrain_ar.sensors.subscription", level="ERROR"):
            self.channel.emit(orientation_event(10.0))
            self.clock.advance(0.1)
            self.channel.emit(orientation_event(20.0))

        self.assertEqual([s.alpha for s in received], [10.0, 20.0])
        self.assertEqual(self.service.last_report.delivered, 1)
        self.assertEqual(len(self.service.last_report.failures), 1)

    async def test_last_sample_updated_before_fan_out(self) -> None:
        seen = []

        def check(sample):
            seen.append(self.service.last_sample is sample)

        await self.service.start_tracking(check)
        self.channel.emit(orientation_event(42.0))

        self.assertEqual(seen, [True])
        self.assertEqual(self.service.last_sample.alpha, 42.0)
        self.assertEqual(self.service.last_sample.timestamp, 10.0)

    async def test_stop_tracking_all(self) -> None:
        await self.service.start_tracking(lambda s: None)
        await self.service.start_tracking(lambda s: None)
        self.service.stop_tracking()
        self.assertEqual(self.service.subscriber_count, 0)
        self.assertFalse(self.channel.listening)

    async def test_events_after_detach_are_ignored(self) -> None:
        sub = await self.service.start_tracking(lambda s: None)
        handler = self.channel._listeners[0]
        sub.dispose()

        handler(orientation_event(5.0))
        self.assertIsNone(self.service.last_sample)


class TestOrientationPermission(unittest.IsolatedAsyncioTestCase):
    """Permission prompting and capability checks."""

    async def test_no_prompt_when_not_required(self) -> None:
        channel = ScriptedChannel(permission=PermissionState.DENIED)
        service = OrientationService(channel, PlatformCapabilities())

        self.assertEqual(await service.request_permission(), PermissionState.GRANTED)
        self.assertEqual(channel.prompt_count, 0)

    async def test_concurrent_requests_share_one_prompt(self) -> None:
        channel = ScriptedChannel(prompt_delay_s=0.01)
        caps = PlatformCapabilities(orientation_permission_required=True)
        service = OrientationService(channel, caps)

        results = await asyncio.gather(
            service.request_permission(),
            service.request_permission(),
            service.request_permission(),
        )

        self.assertEqual(results, [PermissionState.GRANTED] * 3)
        self.assertEqual(channel.prompt_count, 1)

        # granted result is remembered
        await service.request_permission()
        self.assertEqual(channel.prompt_count, 1)

    async def test_concurrent_start_tracking_share_one_prompt(self) -> None:
        channel = ScriptedChannel(prompt_delay_s=0.01)
        caps = PlatformCapabilities(orientation_permission_required=True)
        service = OrientationService(channel, caps)

        subs = await asyncio.gather(
            service.start_tracking(lambda s: None),
            service.start_tracking(lambda s: None),
        )

        self.assertEqual(channel.prompt_count, 1)
        self.assertEqual(channel.attach_count, 1)
        self.assertEqual(service.subscriber_count, 2)
        for sub in subs:
            sub.dispose()

    async def test_denied_raises(self) -> None:
        channel = ScriptedChannel(permission=PermissionState.DENIED)
        caps = PlatformCapabilities(orientation_permission_required=True)
        service = OrientationService(channel, caps)

        with self.assertRaises(PermissionDeniedError):
            await service.start_tracking(lambda s: None)
        self.assertEqual(service.permission, PermissionState.DENIED)
        self.assertEqual(channel.attach_count, 0)

    async def test_prompt_failure_maps_to_denied(self) -> None:
        channel = ScriptedChannel(prompt_error=RuntimeError("prompt crashed"))
        caps = PlatformCapabilities(orientation_permission_required=True)
        service = OrientationService(channel, caps)

        with self.assertLogs("terrain_ar.sensors.orientation", level="WARNING"):
            state = await service.request_permission()
        self.assertEqual(state, PermissionState.DENIED)

    async def test_unsupported_raises(self) -> None:
        channel = ScriptedChannel()
        service = OrientationService(channel, PlatformCapabilities.none())

        self.assertFalse(service.is_available())
        with self.assertRaises(UnsupportedError):
            await service.start_tracking(lambda s: None)
        with self.assertRaises(UnsupportedError):
            await service.request_permission()
        self.assertEqual(channel.attach_count, 0)


if __name__ == "__main__":
    unittest.main()
