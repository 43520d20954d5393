"""
Heading offset resolution at calibration time.

At the instant the auto calibration completes, the compass-corrected heading
is trusted. The offset computed here reconciles the device's raw azimuth
(alpha) with that heading:

    offset = normalize((compass + manual) - alpha, 0, 360)

Afterwards the 3D camera heading is derived every frame as

    heading = (alpha + offset) mod 360

without polling the compass again: alpha updates faster and more smoothly
than the declination-corrected heading, while the offset anchors it to the
true heading observed during calibration.
"""

from terrain_ar.utils.angles import normalize_range, wrap_degrees


def resolve_heading_offset(
    compass_heading_deg: float,
    manual_offset_deg: float,
    device_alpha_deg: float,
) -> float:
    """
    Compute the heading offset from one calibration instant.

    Args:
        compass_heading_deg: Declination-corrected compass heading at
            calibration, degrees.
        manual_offset_deg: User adjustment in degrees (0 on the auto path).
        device_alpha_deg: Raw device azimuth at the same instant, degrees.

    Returns:
        Offset in [0, 360).

    Example:
        >>> resolve_heading_offset(100.0, 10.0, 80.0)
        30.0
        >>> resolve_heading_offset(10.0, 0.0, 350.0)
        20.0
    """
    return normalize_range(
        (compass_heading_deg + manual_offset_deg) - device_alpha_deg, 0.0, 360.0
    )


def live_heading(device_alpha_deg: float, offset_deg: float) -> float:
    """Per-frame scene heading ``(alpha + offset) mod 360``."""
    return wrap_degrees(device_alpha_deg + offset_deg)
