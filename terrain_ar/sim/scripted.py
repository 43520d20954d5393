"""
Scripted sensor platform for replaying recorded or synthetic event traces.

ScriptedChannel implements SensorChannel without any host API: the caller
decides the permission outcome and pushes raw events with ``emit``. The
channel counts prompts and listener attach/detach calls so lifecycle
behaviour can be observed from the outside. ManualClock is a settable time
source for the services and the calibration flow.
"""

import asyncio
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from terrain_ar.sensors.platform import RawListener, SensorChannel
from terrain_ar.sensors.types import PermissionState


class ManualClock:
    """Clock returning a time (seconds) that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards, got {seconds}")
        self.now += seconds
        return self.now

    def advance_ms(self, milliseconds: float) -> float:
        return self.advance(milliseconds / 1000.0)


class ScriptedChannel(SensorChannel):
    """
    In-memory sensor channel.

    Args:
        permission: Outcome returned by the permission prompt.
        prompt_delay_s: Simulated time the user takes to answer the prompt.
        prompt_error: If set, the prompt raises this exception instead.
    """

    def __init__(
        self,
        permission: PermissionState = PermissionState.GRANTED,
        prompt_delay_s: float = 0.0,
        prompt_error: Optional[Exception] = None,
    ) -> None:
        self.permission = permission
        self.prompt_delay_s = prompt_delay_s
        self.prompt_error = prompt_error

        self.prompt_count = 0
        self.attach_count = 0
        self.detach_count = 0
        self._listeners: List[RawListener] = []

    async def request_permission(self) -> PermissionState:
        self.prompt_count += 1
        if self.prompt_delay_s > 0:
            await asyncio.sleep(self.prompt_delay_s)
        else:
            await asyncio.sleep(0)
        if self.prompt_error is not None:
            raise self.prompt_error
        return self.permission

    def attach(self, listener: RawListener) -> None:
        self.attach_count += 1
        self._listeners.append(listener)

    def detach(self, listener: RawListener) -> None:
        self.detach_count += 1
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listening(self) -> bool:
        return bool(self._listeners)

    def emit(self, event: Mapping[str, Any]) -> int:
        """Deliver one raw event to the attached listeners; returns how many."""
        listeners = list(self._listeners)
        for listener in listeners:
            listener(event)
        return len(listeners)


def orientation_event(
    alpha: Optional[float],
    beta: Optional[float] = 0.0,
    gamma: Optional[float] = 0.0,
    absolute: bool = False,
    compass_heading: Optional[float] = None,
) -> dict:
    """Build a raw orientation event in the platform's key layout."""
    event = {"alpha": alpha, "beta": beta, "gamma": gamma, "absolute": absolute}
    if compass_heading is not None:
        event["webkitCompassHeading"] = compass_heading
    return event


def replay(
    channel: ScriptedChannel,
    clock: ManualClock,
    trace: Iterable[Tuple[float, Mapping[str, Any]]],
) -> int:
    """
    Replay a trace of ``(dt_ms, event)`` pairs.

    The clock advances by ``dt_ms`` before each event is emitted.

    Returns:
        Number of events that reached at least one listener.
    """
    reached = 0
    for dt_ms, event in trace:
        clock.advance_ms(dt_ms)
        if channel.emit(event):
            reached += 1
    return reached
