"""
Angle wrapping and manipulation utilities (degrees).

Device orientation events, compass headings and calibration offsets are all
expressed in degrees, so every helper here works in degrees rather than
radians.

Critical for:
- Compass heading normalization after declination correction
- Relative bearings to a target heading
- Shortest-path rotation of the on-screen compass dial
- Heading offset resolution at calibration time

Folding is done by repeated addition/subtraction of the period instead of
``%`` so that the half-open interval boundaries are exact (e.g. -180 folds
to +180, never the other way round).
"""

from typing import Union

import numpy as np


def normalize_range(value: float, lo: float, hi: float) -> float:
    """
    Fold a value into the half-open interval [lo, hi).

    The period is ``hi - lo``; the value is shifted by whole periods until it
    lies inside the interval.

    Args:
        value: Angle (or any periodic quantity) to fold.
        lo: Inclusive lower bound.
        hi: Exclusive upper bound. Must be greater than ``lo``.

    Returns:
        Equivalent value in [lo, hi).

    Example:
        >>> normalize_range(-340.0, 0.0, 360.0)
        20.0
        >>> normalize_range(720.0, 0.0, 360.0)
        0.0
    """
    if not hi > lo:
        raise ValueError(f"hi must be greater than lo, got lo={lo}, hi={hi}")
    if not np.isfinite(value):
        raise ValueError(f"value must be finite, got {value}")

    period = hi - lo
    # Jump close to the interval first so huge cumulative values stay cheap.
    if value >= hi or value < lo:
        value -= np.floor((value - lo) / period) * period
    while value >= hi:
        value -= period
    while value < lo:
        value += period
    return float(value)


def wrap_degrees(angle: float) -> float:
    """Wrap an angle to [0, 360) degrees."""
    return normalize_range(angle, 0.0, 360.0)


def fold_signed_degrees(angle: float) -> float:
    """
    Fold an angle into (-180, 180] degrees.

    This is the range used for signed angular differences: a difference of
    exactly half a turn is reported as +180, never -180.

    Args:
        angle: Angle in degrees (any magnitude).

    Returns:
        Equivalent angle in (-180, 180].

    Example:
        >>> fold_signed_degrees(-340.0)
        20.0
        >>> fold_signed_degrees(-180.0)
        180.0
    """
    if not np.isfinite(angle):
        raise ValueError(f"angle must be finite, got {angle}")
    if angle > 180.0 or angle <= -180.0:
        angle -= np.floor((angle + 180.0) / 360.0) * 360.0
    while angle > 180.0:
        angle -= 360.0
    while angle <= -180.0:
        angle += 360.0
    return float(angle)


def angle_diff_deg(angle1: float, angle2: float) -> float:
    """
    Compute the shortest signed difference ``angle1 - angle2`` in degrees.

    Args:
        angle1: First angle in degrees (target).
        angle2: Second angle in degrees (current).

    Returns:
        Signed difference in (-180, 180].

    Example:
        >>> angle_diff_deg(10.0, 350.0)
        20.0
        >>> angle_diff_deg(350.0, 10.0)
        -20.0
    """
    return fold_signed_degrees(angle1 - angle2)


def wrap_degrees_array(angles: np.ndarray) -> np.ndarray:
    """
    Wrap an array of angles to [0, 360) degrees.

    Vectorized version of wrap_degrees() for traces of headings.
    """
    wrapped = np.mod(np.asarray(angles, dtype=np.float64), 360.0)
    # np.mod can return 360.0 for tiny negative inputs
    wrapped[wrapped >= 360.0] = 0.0
    return wrapped

