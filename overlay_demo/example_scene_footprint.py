"""
Example: Terrain Footprint on the Map

Projects the declared extent of the terrain model onto geographic
coordinates with the scene anchor, as the 2D map does for its texture
overlay, and shows how a hand-tuned overlay correction translates back into
a metric centre offset for the terrain configuration.

Also reports the round-trip error of the local-plane projection across the
footprint and what happens beyond the usable radius.
"""

import argparse
import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from terrain_ar.config import AppConfig
from terrain_ar.config_yaml import load_app_config_yaml
from terrain_ar.coords import (
    CoordinateConverter,
    SceneAnchor,
    ScenePoint,
    adjust_bounds,
    distance_m,
    offset_in_meters,
)
from terrain_ar.errors import ConversionOutOfRangeError


def main():
    parser = argparse.ArgumentParser(description="Print and plot the terrain footprint")
    parser.add_argument("--config", type=str, default=None, help="YAML configuration file")
    parser.add_argument("--scale", type=float, default=1.02, help="Overlay scale tweak (default: 1.02)")
    parser.add_argument("--offset-lat", type=float, default=0.0004, help="Overlay latitude shift [deg]")
    parser.add_argument("--offset-lng", type=float, default=-0.0003, help="Overlay longitude shift [deg]")
    parser.add_argument("--no-show", action="store_true", help="Save the figure without showing it")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = load_app_config_yaml(args.config) if args.config else AppConfig()
    anchor = SceneAnchor.from_config(config.terrain)
    converter = CoordinateConverter(anchor)

    print("\n" + "=" * 70)
    print("Terrain Footprint")
    print("=" * 70)
    print(f"  Origin:        {anchor.origin.latitude:.6f} N, {anchor.origin.longitude:.6f} E")
    print(f"  Scale factor:  {anchor.scale_factor} scene units / m")
    print(f"  Extent:        {anchor.extent_m[0]:.0f} m x {anchor.extent_m[1]:.0f} m")

    footprint = converter.footprint()
    print("\nCorners:")
    for name, corner in zip(("SW", "SE", "NE", "NW"), footprint):
        print(f"  {name}: {corner.latitude:.6f}, {corner.longitude:.6f}")

    sw, se, ne, nw = footprint
    print(f"\n  South edge:    {distance_m(sw.latitude, sw.longitude, se.latitude, se.longitude):.1f} m")
    print(f"  West edge:     {distance_m(sw.latitude, sw.longitude, nw.latitude, nw.longitude):.1f} m")

    # Round-trip error over a grid covering the footprint
    corners = converter.scene_corners()
    xs = np.linspace(corners[:, 0].min(), corners[:, 0].max(), 41)
    zs = np.linspace(corners[:, 2].min(), corners[:, 2].max(), 41)
    grid = np.array([[x, 0.0, z] for x in xs for z in zs])
    back = converter.gps_to_world_array(converter.world_to_gps_array(grid))
    print(f"\n  Max round-trip error: {np.abs(back - grid).max():.2e} scene units")

    far = ScenePoint(0.0, 0.0, (anchor.usable_radius_m + 1000.0) * anchor.scale_factor)
    try:
        converter.world_to_gps(far)
    except ConversionOutOfRangeError as e:
        print(f"  Beyond usable radius: {e}")

    bounds = converter.bounds()
    tuned = adjust_bounds(bounds, args.scale, args.offset_lat, args.offset_lng)
    east_m, north_m = offset_in_meters(args.offset_lat, args.offset_lng, bounds.center[0])

    print("\nOverlay correction:")
    print(f"  Scale factor x {args.scale}")
    print(f"  Centre offset: {east_m:+.1f} m east, {north_m:+.1f} m north")
    print(f"  -> add ({east_m * anchor.scale_factor:+.1f}, 0, {north_m * anchor.scale_factor:+.1f}) "
          "to terrain.center_offset")

    figs_dir = Path(__file__).parent / 'figs'
    figs_dir.mkdir(exist_ok=True)

    fig, ax = plt.subplots(figsize=(8, 8))
    lons = [c.longitude for c in footprint] + [footprint[0].longitude]
    lats = [c.latitude for c in footprint] + [footprint[0].latitude]
    ax.plot(lons, lats, 'b-', linewidth=2, label='Terrain footprint')
    ax.plot([tuned.west, tuned.east, tuned.east, tuned.west, tuned.west],
            [tuned.south, tuned.south, tuned.north, tuned.north, tuned.south],
            'r--', label='Tuned overlay')
    ax.plot(anchor.origin.longitude, anchor.origin.latitude, 'k*', markersize=12, label='Anchor origin')
    ax.set_xlabel('Longitude [deg]')
    ax.set_ylabel('Latitude [deg]')
    ax.set_title('Terrain model registered on the map')
    ax.set_aspect(1.0 / np.cos(np.deg2rad(anchor.origin.latitude)))
    ax.legend()
    ax.grid(True, alpha=0.3)

    output_file = figs_dir / 'scene_footprint.svg'
    fig.savefig(output_file, dpi=300, bbox_inches='tight')
    print(f"\n  [OK] Saved: {output_file}")

    if not args.no_show:
        plt.show()


if __name__ == "__main__":
    main()
