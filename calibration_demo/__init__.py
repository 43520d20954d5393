"""
Heading calibration replay demo.

Examples:
    - example_calibration_replay.py: Replays a synthetic orientation trace
      through the calibration flow and plots the compass ring rotation and
      the stability progress.
"""

__all__ = []
