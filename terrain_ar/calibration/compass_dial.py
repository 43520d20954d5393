"""Continuous rotation of the on-screen compass ring.

The ring rotates opposite to the device (target = -heading). Its rotation is
kept as an unbounded cumulative value instead of a value mod 360, and every
update moves it along the shorter arc, so crossing north never produces a
visible 340 degree spin.
"""

from typing import Optional

from terrain_ar.utils.angles import fold_signed_degrees


class CompassDial:
    """
    Shortest-path smoother for the compass ring rotation.

    Attributes:
        cumulative_deg: Rendered rotation in degrees, unbounded.
        last_delta_deg: Delta applied by the most recent update, in (-180, 180].

    Example:
        >>> dial = CompassDial()
        >>> dial.update(350.0)
        10.0
        >>> dial.update(10.0)   # crossed north: -20, not +340
        -20.0
    """

    def __init__(self, initial_deg: float = 0.0) -> None:
        self.cumulative_deg = float(initial_deg)
        self.last_delta_deg: Optional[float] = None

    def update(self, compass_heading_deg: float) -> float:
        """
        Move the ring toward ``-compass_heading_deg`` along the shorter arc.

        Returns:
            The applied delta in (-180, 180].
        """
        target = -compass_heading_deg
        delta = fold_signed_degrees(target - self.cumulative_deg)
        self.cumulative_deg += delta
        self.last_delta_deg = delta
        return delta

    def reset(self, initial_deg: float = 0.0) -> None:
        self.cumulative_deg = float(initial_deg)
        self.last_delta_deg = None
