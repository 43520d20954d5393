"""Heading calibration and scene registration core for the terrain overlay.

This package contains the reusable components that keep a historical 3D
terrain reconstruction aligned with a handheld device's live view:
- sensors: Orientation, location and motion services plus their lifecycle manager
- calibration: Interactive heading calibration flow and offset resolution
- coords: Geographic <-> scene-frame conversion and overlay geometry
- utils: Angle arithmetic in degrees
- sim: Scripted sensor platform for replay and tests
"""

__version__ = "0.1.0"
