"""
Terrain footprint demo.

Examples:
    - example_scene_footprint.py: Prints and plots the geographic footprint
      of the terrain model and a tuned overlay.
"""

__all__ = []
