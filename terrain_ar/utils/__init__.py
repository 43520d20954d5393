"""
Utility functions shared across the sensor, calibration and coordinate layers.
"""

from .angles import (
    angle_diff_deg,
    fold_signed_degrees,
    normalize_range,
    wrap_degrees,
    wrap_degrees_array,
)

__all__ = [
    'angle_diff_deg',
    'fold_signed_degrees',
    'normalize_range',
    'wrap_degrees',
    'wrap_degrees_array',
]
