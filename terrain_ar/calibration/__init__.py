"""
Heading calibration: interactive flow, dial smoothing and offset resolution.

Modules:
    state_machine: horizontal/manual/complete calibration session
    compass_dial: shortest-path rotation of the on-screen compass ring
    resolver: heading offset from one calibration instant
    scene_heading: per-3D-session owner of the resolved offset
"""

from terrain_ar.calibration.compass_dial import CompassDial
from terrain_ar.calibration.resolver import live_heading, resolve_heading_offset
from terrain_ar.calibration.scene_heading import SceneHeading
from terrain_ar.calibration.state_machine import (
    CalibrationStateMachine,
    CalibrationStep,
    CompletionPath,
)

__all__ = [
    "CalibrationStateMachine",
    "CalibrationStep",
    "CompassDial",
    "CompletionPath",
    "SceneHeading",
    "live_heading",
    "resolve_heading_offset",
]
