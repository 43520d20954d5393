"""
Platform seam between the sensor services and the host environment.

A service never inspects global objects to discover what the host offers.
Instead it receives:
    - a PlatformCapabilities descriptor (see terrain_ar.sensors.types)
    - a SensorChannel per sensor, which knows how to prompt for permission
      and how to attach/detach a single raw-event listener

The channel is deliberately small: the services do all reference counting
and fan-out themselves, so a channel only ever sees one listener at a time.
"""

import abc
from typing import Any, Callable, Mapping

from terrain_ar.sensors.types import PermissionState

RawListener = Callable[[Mapping[str, Any]], None]


class SensorChannel(abc.ABC):
    """Raw event source for one sensor on the host platform."""

    @abc.abstractmethod
    async def request_permission(self) -> PermissionState:
        """Show the platform permission prompt and return its outcome.

        May raise if the platform prompt itself fails; services map such
        failures to ``PermissionState.DENIED``.
        """

    @abc.abstractmethod
    def attach(self, listener: RawListener) -> None:
        """Start delivering raw events to ``listener``."""

    @abc.abstractmethod
    def detach(self, listener: RawListener) -> None:
        """Stop delivering raw events to ``listener``."""


class NullChannel(SensorChannel):
    """Channel for a sensor the platform does not provide."""

    async def request_permission(self) -> PermissionState:
        return PermissionState.DENIED

    def attach(self, listener: RawListener) -> None:
        pass

    def detach(self, listener: RawListener) -> None:
        pass
