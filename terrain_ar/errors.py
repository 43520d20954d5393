"""Exception hierarchy shared by the sensor, calibration and coordinate layers."""


class TerrainARError(Exception):
    """Base class for all errors raised by terrain_ar."""


class SensorError(TerrainARError):
    """A sensor could not be started or queried."""


class UnsupportedError(SensorError):
    """The platform does not provide the requested sensor API.

    Raised before any subscription is made. Callers fall back to
    manual-only calibration.
    """


class PermissionDeniedError(SensorError):
    """The user declined the sensor permission prompt."""


class LocationError(SensorError):
    """A geolocation request failed; ``gps_error`` carries the platform report."""

    def __init__(self, message: str, gps_error=None) -> None:
        super().__init__(message)
        self.gps_error = gps_error


class SensorManagerDisposedError(TerrainARError):
    """A disposed SensorManager was queried for one of its services."""


class CalibrationStateError(TerrainARError):
    """An action is not legal in the current calibration step."""


class CalibrationClosedError(CalibrationStateError):
    """The calibration session already completed or was cancelled."""


class HeadingOffsetAlreadySetError(TerrainARError):
    """The heading offset of a 3D session was already fixed."""


class ConversionOutOfRangeError(TerrainARError, ValueError):
    """A point lies outside the usable radius of the scene anchor.

    The local tangent-plane projection degrades with distance from the
    anchor origin, so conversions beyond the declared radius are refused.
    """
