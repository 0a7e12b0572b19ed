"""
plot_preview.py
===============
Matplotlib 3-D preview for the spiral galaxy generator.

Shows the generated point cloud on a black background, each point in its
own radial-gradient colour, with the galaxy disk horizontal (scene y is the
plot's vertical axis).  Points are drawn translucent and without depth
shading so that dense arms read brighter, the closest matplotlib gets to
additive blending.

The cloud is never stored on disk: it is re-created from a parameter file
plus seed, which reproduces it exactly.

Usage
-----
    # Default: read ./output/params.json if present, else use defaults
    python plot_preview.py

    # Point at a different parameter file
    python plot_preview.py --params_file my_run/params.json

    # Rotate the galaxy using its rotation_x/y/z rates
    python plot_preview.py --animate

    # Save to PNG instead of opening an interactive window
    python plot_preview.py --save galaxy.png

    # Save as SVG (vector; slow for large counts)
    python plot_preview.py --svg galaxy.svg
"""

from __future__ import annotations

import argparse
import os
from typing import Any, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.animation import FuncAnimation
from scipy.spatial.transform import Rotation

from spiralgen import (
    GalaxyParameters,
    InvalidParameter,
    PointCloud,
    generate,
    load_parameters,
    make_rng,
)


BG = "#000000"


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="plot_preview.py",
        description="3-D preview for the spiral galaxy generator.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    p.add_argument("--params_file", default=os.path.join("output", "params.json"),
                   help="Parameter file written by run_generate.py "
                        "(defaults are used when it does not exist).")
    p.add_argument("--seed", type=int, default=None,
                   help="Random seed; overrides the seed stored in the file.")

    p.add_argument("--save", default=None, metavar="FILE",
                   help="Save figure to FILE (png/pdf/svg) instead of displaying.")
    p.add_argument("--svg", nargs="?", const="galaxy.svg", default=None,
                   metavar="FILE",
                   help="Save figure as SVG.  FILE defaults to 'galaxy.svg' "
                        "when omitted.  Overrides --save when both are given.")

    p.add_argument("--animate", action="store_true",
                   help="Spin the galaxy at its rotation rates (interactive only).")
    p.add_argument("--elev", type=float, default=30.0,
                   help="Camera elevation in degrees.")
    p.add_argument("--azim", type=float, default=-60.0,
                   help="Camera azimuth in degrees.")

    return p


# ---------------------------------------------------------------------------
# Graphics layer
# ---------------------------------------------------------------------------

def marker_area(size: float) -> float:
    """Scatter marker area (pt²) for a point size in scene units."""
    return max(0.05, size * 50.0)


def set_artist_positions(artist: Any, positions: np.ndarray) -> None:
    """Move an existing 3-D scatter to *positions* (scene x, y, z)."""
    artist._offsets3d = (positions[:, 0], positions[:, 2], positions[:, 1])


class ScatterLayer:
    """Graphics layer that draws point clouds into a 3-D matplotlib axes.

    ``live`` counts handles uploaded but not yet released.
    """

    def __init__(self, ax) -> None:
        self.ax   = ax
        self.live = 0

    def upload(self, cloud: PointCloud, params: GalaxyParameters):
        pos = cloud.positions
        artist = self.ax.scatter(
            pos[:, 0], pos[:, 2], pos[:, 1],
            c=cloud.colors if len(cloud) else None,
            s=marker_area(params.size),
            alpha=0.8,
            linewidths=0,
            depthshade=False,
        )
        self.live += 1
        return artist

    def release(self, handle) -> None:
        handle.remove()
        self.live -= 1


# ---------------------------------------------------------------------------
# Plot
# ---------------------------------------------------------------------------

def setup_axes(fig: plt.Figure, params: GalaxyParameters):
    """Add a dark, frameless 3-D axes sized to the galaxy radius."""
    fig.patch.set_facecolor(BG)
    ax = fig.add_subplot(projection="3d")
    ax.set_facecolor(BG)
    ax.set_axis_off()

    margin = max(params.radius, 0.01) * 1.1
    ax.set_xlim(-margin, margin)
    ax.set_ylim(-margin, margin)
    ax.set_zlim(-margin, margin)
    ax.set_box_aspect((1, 1, 1))
    return ax


def draw_galaxy(
    cloud: PointCloud,
    params: GalaxyParameters,
    fig: Optional[plt.Figure] = None,
) -> Tuple[plt.Figure, ScatterLayer, Any]:
    """Draw *cloud* into a new (or the given, emptied) figure.

    Returns
    -------
    fig    : matplotlib Figure
    layer  : ScatterLayer bound to the figure's axes
    handle : the scatter artist holding the points
    """
    if fig is None:
        fig = plt.figure(figsize=(9, 9))
    else:
        fig.clear()

    ax = setup_axes(fig, params)
    layer = ScatterLayer(ax)
    handle = layer.upload(cloud, params)

    ax.set_title(
        f"Spiral galaxy  ·  {len(cloud):,} points  |  {params.branches} arms  |  "
        f"spin {params.spin:g}",
        color="white", fontsize=11, pad=10,
    )
    return fig, layer, handle


# ---------------------------------------------------------------------------
# Rotation animation
# ---------------------------------------------------------------------------

def rotate_positions(
    positions: np.ndarray, params: GalaxyParameters, elapsed: float
) -> np.ndarray:
    """Rotate the whole cloud by ``elapsed × rotation_{x,y,z}`` radians.

    Angles are applied as intrinsic X-Y-Z Euler rotations.
    """
    if len(positions) == 0:
        return np.array(positions, dtype=np.float32)
    angles = elapsed * np.array([params.rotation_x, params.rotation_y, params.rotation_z])
    rot = Rotation.from_euler("XYZ", angles)
    return rot.apply(np.asarray(positions, dtype=np.float64)).astype(np.float32)


def animate_galaxy(
    fig: plt.Figure,
    artist: Any,
    cloud: PointCloud,
    params: GalaxyParameters,
    interval: int = 33,
) -> FuncAnimation:
    """Spin *artist* in place; keep a reference to the returned animation."""

    def _update(frame: int):
        elapsed = frame * interval / 1000.0
        set_artist_positions(artist, rotate_positions(cloud.positions, params, elapsed))
        return (artist,)

    return FuncAnimation(fig, _update, interval=interval, cache_frame_data=False)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def load_preview_inputs(args: argparse.Namespace) -> Tuple[GalaxyParameters, Optional[int]]:
    """Resolve parameters and seed: CLI seed > file seed; file > defaults."""
    if os.path.exists(args.params_file):
        params, seed = load_parameters(args.params_file)
    else:
        print(f"{args.params_file} not found – using default parameters.")
        params, seed = GalaxyParameters(), None
    if args.seed is not None:
        seed = args.seed
    return params, seed


def main() -> None:
    parser = build_parser()
    args   = parser.parse_args()

    try:
        params, seed = load_preview_inputs(args)
        cloud = generate(params, make_rng(seed))
    except InvalidParameter as exc:
        parser.exit(2, f"Invalid parameters: {exc}\n")

    fig, _layer, handle = draw_galaxy(cloud, params)
    fig.axes[0].view_init(elev=args.elev, azim=args.azim)

    if args.svg:
        fig.savefig(args.svg, format="svg", bbox_inches="tight",
                    facecolor=fig.get_facecolor())
        print(f"Saved figure to {args.svg}")
    elif args.save:
        fig.savefig(args.save, dpi=150, bbox_inches="tight",
                    facecolor=fig.get_facecolor())
        print(f"Saved figure to {args.save}")
    else:
        anim = animate_galaxy(fig, handle, cloud, params) if args.animate else None
        plt.show()
        del anim


if __name__ == "__main__":
    main()
