"""
Interactive compass calibration flow.

Steps:
    horizontal (initial) -> complete      auto path, device held flat long enough
    horizontal -> manual -> complete      manual slider path (if permitted)
    manual -> horizontal                  user goes back to the auto step

Horizontal-step stability protocol, evaluated once per orientation sample:
    1. is_flat = both tilt angles known and below the calibration threshold
    2. dt = elapsed time since the previous evaluation (0 for the first
       sample after opening or returning from the manual step)
    3. flat:     accumulator = min(window, accumulator + dt)
    4. not flat: accumulator = max(0, accumulator - dt), flat run broken
    5. accumulator >= window and the current unbroken flat run >= window:
       manual offset reset to 0, step -> complete, on_complete(0)

The accumulator drives the progress bar and decays on interruptions; the
unbroken-run condition makes every interruption require a fresh full window
before completion.

While horizontal, every known compass heading also rotates the CompassDial
along the shorter arc.

Exactly one of ``on_complete`` / ``on_close`` fires per session. The auto
path reports 0: resolving it against the compass happens in the session
owner (see terrain_ar.calibration.scene_heading). The manual path reports
the raw slider value.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

from terrain_ar.calibration.compass_dial import CompassDial
from terrain_ar.config import CalibrationConfig
from terrain_ar.errors import (
    CalibrationClosedError,
    CalibrationStateError,
    PermissionDeniedError,
    UnsupportedError,
)
from terrain_ar.sensors.manager import SensorManager
from terrain_ar.sensors.subscription import Subscription
from terrain_ar.sensors.types import OrientationSample

logger = logging.getLogger(__name__)

# Tolerance for clock arithmetic when comparing against the stability window
_WINDOW_EPS_MS = 1e-6


class CalibrationStep(str, Enum):
    HORIZONTAL = "horizontal"
    MANUAL = "manual"
    COMPLETE = "complete"


class CompletionPath(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class CalibrationStateMachine:
    """
    One calibration session over the orientation stream.

    Args:
        sensors: Sensor context; provides the orientation service and
            enforces a single live session.
        on_complete: Called once with the offset in degrees.
        on_close: Called at most once if the session is cancelled.
        config: Thresholds, window and slider range.
        clock: Time source in seconds, used for the stability timing.
        initial_offset_deg: Starting slider value.
    """

    def __init__(
        self,
        sensors: SensorManager,
        on_complete: Callable[[float], None],
        on_close: Optional[Callable[[], None]] = None,
        config: Optional[CalibrationConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        initial_offset_deg: int = 0,
    ) -> None:
        self._sensors = sensors
        self._orientation = sensors.orientation_service
        self._on_complete = on_complete
        self._on_close = on_close
        self._config = config or sensors.config.calibration
        self._clock = clock

        self.step = CalibrationStep.HORIZONTAL
        self.manual_offset_deg = self._clamp_offset(initial_offset_deg)
        self.stability_ms = 0.0
        self.is_flat: Optional[bool] = None
        self.dial = CompassDial()

        self.completed_via: Optional[CompletionPath] = None
        self.completion_sample: Optional[OrientationSample] = None
        self.sensor_error: Optional[Exception] = None

        self._opened = False
        self._finished = False
        self._subscription: Optional[Subscription] = None
        self._last_eval: Optional[float] = None
        self._flat_run_ms = 0.0

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """
        Start the session and subscribe to orientation samples.

        If the orientation sensor is unsupported or permission is denied,
        the session falls back to the manual step. When manual adjustment is
        not permitted, the sensor error propagates instead.

        Raises:
            CalibrationStateError: Already opened, or another session is live.
            UnsupportedError, PermissionDeniedError: Sensor unusable and
                manual adjustment not permitted.
        """
        if self._opened:
            raise CalibrationStateError("calibration session already opened")
        self._sensors.claim_calibration(self)
        self._opened = True

        try:
            subscription = await self._orientation.start_tracking(self.handle_sample)
        except (UnsupportedError, PermissionDeniedError) as e:
            self.sensor_error = e
            if not self._config.allow_manual:
                self._finished = True
                self._sensors.release_calibration(self)
                raise
            logger.warning("Orientation unavailable (%s); switching to manual calibration", e)
            self.step = CalibrationStep.MANUAL
            return

        if self._finished:
            # Closed while the permission prompt was pending.
            subscription.dispose()
            return
        self._subscription = subscription
        logger.debug("Calibration session opened")

    def close(self) -> None:
        """Cancel the session. No offset is produced; ``on_close`` fires at most once."""
        if self._finished:
            return
        self._finish()
        self.stability_ms = 0.0
        self._flat_run_ms = 0.0
        logger.info("Calibration cancelled")
        if self._on_close is not None:
            self._on_close()

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def progress(self) -> float:
        """Stability progress in percent, [0, 100]."""
        return min(100.0, 100.0 * self.stability_ms / self._config.stability_window_ms)

    def _finish(self) -> None:
        self._finished = True
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None
        self._sensors.release_calibration(self)

    def _require_active(self) -> None:
        if self._finished:
            raise CalibrationClosedError("calibration session is finished")
        if not self._opened:
            raise CalibrationStateError("calibration session not opened")

    # ------------------------------------------------------------------
    # Horizontal step
    # ------------------------------------------------------------------

    def handle_sample(self, sample: OrientationSample) -> None:
        """Orientation subscriber: dial smoothing and stability evaluation."""
        if self._finished or self.step is not CalibrationStep.HORIZONTAL:
            return

        heading = self._orientation.get_compass_heading(sample)
        if heading is not None:
            self.dial.update(heading)

        self._evaluate_stability(sample)

    def _evaluate_stability(self, sample: OrientationSample) -> None:
        now = self._clock()
        dt_ms = 0.0 if self._last_eval is None else max(0.0, (now - self._last_eval) * 1000.0)
        self._last_eval = now
        window = self._config.stability_window_ms

        self.is_flat = self._orientation.is_device_flat(sample, self._config.flat_threshold_deg)
        if not self.is_flat:
            if self._flat_run_ms > 0.0:
                logger.debug("Flat run broken after %.0f ms", self._flat_run_ms)
            self._flat_run_ms = 0.0
            self.stability_ms = max(0.0, self.stability_ms - dt_ms)
            return

        self._flat_run_ms += dt_ms
        self.stability_ms = min(window, self.stability_ms + dt_ms)

        if (
            self.stability_ms >= window - _WINDOW_EPS_MS
            and self._flat_run_ms >= window - _WINDOW_EPS_MS
        ):
            self.stability_ms = window
            self._complete_auto(sample)

    def _complete_auto(self, sample: OrientationSample) -> None:
        self.manual_offset_deg = 0
        self.step = CalibrationStep.COMPLETE
        self.completed_via = CompletionPath.AUTO
        self.completion_sample = sample
        self._finish()
        logger.info("Calibration complete (auto, alpha=%s)", sample.alpha)
        self._on_complete(0.0)

    def _reset_stability(self) -> None:
        self.stability_ms = 0.0
        self.is_flat = None
        self._flat_run_ms = 0.0

    # ------------------------------------------------------------------
    # Manual step
    # ------------------------------------------------------------------

    def enter_manual(self) -> None:
        """horizontal -> manual. Stability tracking starts over afterwards."""
        self._require_active()
        if not self._config.allow_manual:
            raise CalibrationStateError("manual adjustment is not permitted")
        if self.step is not CalibrationStep.HORIZONTAL:
            raise CalibrationStateError(f"cannot enter manual from {self.step.value}")
        self.step = CalibrationStep.MANUAL
        self._reset_stability()

    def return_to_horizontal(self) -> None:
        """manual -> horizontal. The slider value is kept."""
        self._require_active()
        if self.step is not CalibrationStep.MANUAL:
            raise CalibrationStateError(f"cannot return to horizontal from {self.step.value}")
        if self._subscription is None:
            raise CalibrationStateError("orientation sensor unavailable; only manual calibration possible")
        self.step = CalibrationStep.HORIZONTAL
        self._last_eval = None

    def _clamp_offset(self, value: float) -> int:
        lo = self._config.manual_offset_min_deg
        hi = self._config.manual_offset_max_deg
        return int(min(hi, max(lo, round(value))))

    def set_manual_offset(self, value_deg: float) -> int:
        """Move the slider; the value is rounded to an integer and clamped."""
        self._require_active()
        if self.step is not CalibrationStep.MANUAL:
            raise CalibrationStateError("slider is only available in the manual step")
        self.manual_offset_deg = self._clamp_offset(value_deg)
        return self.manual_offset_deg

    def reset_manual_offset(self) -> None:
        self.set_manual_offset(0)

    def confirm_manual(self) -> None:
        """Complete with the raw slider value as the camera rotation."""
        self._require_active()
        if self.step is not CalibrationStep.MANUAL:
            raise CalibrationStateError("confirm is only available in the manual step")
        self.step = CalibrationStep.COMPLETE
        self.completed_via = CompletionPath.MANUAL
        self._finish()
        logger.info("Calibration complete (manual, offset=%d)", self.manual_offset_deg)
        self._on_complete(float(self.manual_offset_deg))
