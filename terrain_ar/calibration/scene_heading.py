"""
Owner of the heading offset for one 3D session.

SceneHeading opens the calibration flow, turns its completion into the
session's single heading offset and serves the live per-frame camera
heading ``(alpha + offset) mod 360``.

The two completion paths are treated differently:
    - auto: the reported 0 is resolved against the compass heading and the
      raw alpha of the sample that completed the stability window
      (resolve_heading_offset);
    - manual: the slider value is used directly as a camera rotation,
      without going through the resolver.
"""

import logging
import time
from typing import Callable, Optional

from terrain_ar.calibration.resolver import live_heading, resolve_heading_offset
from terrain_ar.calibration.state_machine import CalibrationStateMachine, CompletionPath
from terrain_ar.errors import CalibrationStateError, HeadingOffsetAlreadySetError
from terrain_ar.sensors.manager import SensorManager
from terrain_ar.utils.angles import wrap_degrees

logger = logging.getLogger(__name__)


class SceneHeading:
    """Heading offset of one 3D session, fixed once computed."""

    def __init__(self, sensors: SensorManager, clock: Callable[[], float] = time.monotonic) -> None:
        self._sensors = sensors
        self._clock = clock
        self._machine: Optional[CalibrationStateMachine] = None

        self.offset_deg: Optional[float] = None
        self.source: Optional[CompletionPath] = None
        self.cancelled = False

    @property
    def is_calibrated(self) -> bool:
        return self.offset_deg is not None

    @property
    def calibration(self) -> Optional[CalibrationStateMachine]:
        return self._machine

    def begin_calibration(
        self,
        on_close: Optional[Callable[[], None]] = None,
        initial_offset_deg: int = 0,
    ) -> CalibrationStateMachine:
        """
        Create the calibration session for this 3D session.

        The caller still has to ``await machine.open()``.
        """
        if self.is_calibrated:
            raise HeadingOffsetAlreadySetError("heading offset already fixed for this session")
        if self._machine is not None and not self._machine.finished:
            raise CalibrationStateError("calibration already in progress")

        def handle_close() -> None:
            self.cancelled = True
            if on_close is not None:
                on_close()

        self.cancelled = False
        self._machine = CalibrationStateMachine(
            self._sensors,
            on_complete=self._handle_complete,
            on_close=handle_close,
            clock=self._clock,
            initial_offset_deg=initial_offset_deg,
        )
        return self._machine

    def _handle_complete(self, reported_offset_deg: float) -> None:
        machine = self._machine
        if machine is not None and machine.completed_via is CompletionPath.AUTO:
            self._resolve_auto(machine, reported_offset_deg)
        else:
            # Manual path: the slider value is a pure camera rotation.
            self.set_offset(reported_offset_deg, CompletionPath.MANUAL)

    def _resolve_auto(self, machine: CalibrationStateMachine, manual_offset_deg: float) -> None:
        sample = machine.completion_sample
        orientation = self._sensors.orientation_service
        compass = orientation.get_compass_heading(sample) if sample is not None else None

        if compass is None or sample is None or sample.alpha is None:
            logger.warning("Azimuth unknown at calibration; using a zero heading offset")
            self.set_offset(manual_offset_deg, CompletionPath.AUTO)
            return

        offset = resolve_heading_offset(compass, manual_offset_deg, sample.alpha)
        logger.info(
            "Heading offset resolved: compass=%.1f alpha=%.1f offset=%.1f",
            compass,
            sample.alpha,
            offset,
        )
        self.set_offset(offset, CompletionPath.AUTO)

    def set_offset(self, offset_deg: float, source: CompletionPath) -> None:
        """Fix the heading offset. A second call in the same session raises."""
        if self.offset_deg is not None:
            raise HeadingOffsetAlreadySetError("heading offset already fixed for this session")
        self.offset_deg = wrap_degrees(offset_deg)
        self.source = source

    def heading_for(self, device_alpha_deg: Optional[float]) -> Optional[float]:
        """
        Live camera heading for the current frame.

        Returns:
            ``(alpha + offset) mod 360``, or None when alpha is unknown.

        Raises:
            CalibrationStateError: No offset has been computed yet.
        """
        if self.offset_deg is None:
            raise CalibrationStateError("heading offset not calibrated yet")
        if device_alpha_deg is None:
            return None
        return live_heading(device_alpha_deg, self.offset_deg)
