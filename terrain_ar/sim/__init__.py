"""
Simulation utilities for driving the sensor services without a device.

Modules:
    scripted: In-memory sensor channel, manual clock and trace replay
"""

from terrain_ar.sim.scripted import (
    ManualClock,
    ScriptedChannel,
    orientation_event,
    replay,
)

__all__ = [
    "ManualClock",
    "ScriptedChannel",
    "orientation_event",
    "replay",
]
