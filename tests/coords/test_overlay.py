"""Unit tests for map-overlay bounds tuning."""

import unittest

import numpy as np

from terrain_ar.config import EARTH_RADIUS_M
from terrain_ar.coords.converter import GeoBounds
from terrain_ar.coords.overlay import adjust_bounds, offset_in_meters


class TestAdjustBounds(unittest.TestCase):

    def setUp(self) -> None:
        self.bounds = GeoBounds(south=35.0, west=139.0, north=36.0, east=140.0)

    def test_identity(self) -> None:
        self.assertEqual(adjust_bounds(self.bounds), self.bounds)

    def test_scale_about_center(self) -> None:
        adjusted = adjust_bounds(self.bounds, scale=0.5)
        self.assertAlmostEqual(adjusted.south, 35.25)
        self.assertAlmostEqual(adjusted.north, 35.75)
        self.assertAlmostEqual(adjusted.west, 139.25)
        self.assertAlmostEqual(adjusted.east, 139.75)
        self.assertEqual(adjusted.center, self.bounds.center)

    def test_offset(self) -> None:
        adjusted = adjust_bounds(self.bounds, scale=2.0, offset_lat=0.1, offset_lng=-0.2)
        center_lat, center_lng = adjusted.center
        self.assertAlmostEqual(center_lat, 35.6)
        self.assertAlmostEqual(center_lng, 139.3)
        self.assertAlmostEqual(adjusted.north - adjusted.south, 2.0)

    def test_invalid_scale(self) -> None:
        with self.assertRaises(ValueError):
            adjust_bounds(self.bounds, scale=0.0)

    def test_invalid_bounds(self) -> None:
        with self.assertRaises(ValueError):
            GeoBounds(south=36.0, west=139.0, north=35.0, east=140.0)


class TestOffsetInMeters(unittest.TestCase):

    def test_north_offset(self) -> None:
        east, north = offset_in_meters(0.001, 0.0, 35.8)
        self.assertEqual(east, 0.0)
        self.assertAlmostEqual(north, np.deg2rad(0.001) * EARTH_RADIUS_M)
        self.assertAlmostEqual(north, 111.19, places=2)

    def test_east_offset_uses_reference_latitude(self) -> None:
        east, _ = offset_in_meters(0.0, 0.001, 35.8)
        # about 91 m per 0.001 degree of longitude at Okutama
        self.assertAlmostEqual(east, 90.2, delta=0.5)

    def test_sign(self) -> None:
        east, north = offset_in_meters(-0.002, -0.003, 35.8)
        self.assertLess(east, 0.0)
        self.assertLess(north, 0.0)


if __name__ == "__main__":
    unittest.main()
