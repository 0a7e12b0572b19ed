"""
spiralgen.py
============
Core procedural generator for decorative spiral-galaxy point clouds.

Turns a small set of numeric and colour parameters into two parallel
float32 buffers, one 3-D position and one RGB colour per point, ready to be
uploaded as vertex attributes by a real-time renderer.

Each point i is placed as follows:
  • radius  – uniform draw scaled to the galaxy radius
  • arm     – cyclic by index: (i mod branches) / branches × 2π
  • spin    – extra twist proportional to radius (radius × spin)
  • jitter  – per axis, u^power × ±1 × randomness × radius, so the core
              stays tight and the rim is diffuse
  • colour  – linear blend inner → outer by radius / galaxy radius

The galaxy disk lies in the x/z plane; y carries only jitter.

Usage (importable)
------------------
    from spiralgen import GalaxyParameters, generate, make_rng
    params = GalaxyParameters(count=50_000, branches=3, spin=1.2)
    cloud  = generate(params, make_rng(7))
    cloud.position_buffer()   # flat float32, 3 × count

Usage (script, uses all defaults)
----------------------------------
    python spiralgen.py
"""

from __future__ import annotations

import dataclasses
import json
import math
import numbers
import time
from typing import Any, Optional, Protocol, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from matplotlib.colors import to_rgb


RGB   = Tuple[float, float, float]
Color = Union[str, Sequence[float]]

# Uniform draws consumed per point: radius, then (magnitude, sign) × 3 axes.
DRAWS_PER_POINT = 7


class InvalidParameter(ValueError):
    """A galaxy parameter is out of its valid domain."""


# ---------------------------------------------------------------------------
# Parameter dataclass
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class GalaxyParameters:
    """All tunable parameters for one galaxy.

    Spatial units are arbitrary scene units.  ``size`` and the three
    ``rotation_*`` rates are carried for the renderer and the animation
    step; ``generate`` never reads them.

    Colours may be given as RGB triples in [0, 1] or as any matplotlib
    colour string (``"#ff6030"``, ``"orange"``).
    """

    # ---- point count ----
    count: int = 100_000

    # ---- display ----
    size: float = 0.01          # point sprite size in scene units

    # ---- shape ----
    radius: float = 5.0         # maximum galaxy radius
    branches: int = 5           # number of spiral arms
    spin: float = 1.0           # radians of twist per unit radius

    # ---- jitter ----
    randomness: float = 0.2         # jitter amplitude, relative to local radius
    randomness_power: float = 3.0   # larger → jitter concentrated near zero

    # ---- colour gradient ----
    inner_color: Color = "#ff6030"
    outer_color: Color = "#1b3984"

    # ---- animation (rad / s) ----
    rotation_x: float = 0.0
    rotation_y: float = 0.05
    rotation_z: float = 0.0

    def __post_init__(self) -> None:
        # Colour sequences are stored as tuples so the parameters stay hashable.
        for name in ("inner_color", "outer_color"):
            value = getattr(self, name)
            if isinstance(value, np.ndarray):
                value = value.tolist()
            if isinstance(value, list):
                object.__setattr__(self, name, tuple(value))

    def replace(self, **changes: Any) -> "GalaxyParameters":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        """Plain-JSON view; colour tuples become lists."""
        out = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (tuple, list, np.ndarray)):
                value = [float(v) for v in value]
            out[f.name] = value
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "GalaxyParameters":
        """Build parameters from a mapping of field names.

        Both the snake_case field names and the camelCase names used by the
        browser version of the generator (``randomnessPower``,
        ``innerColor`` …) are accepted.  Missing fields keep their defaults.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _CAMEL_ALIASES.get(key, key)
            if name not in known:
                raise InvalidParameter(f"unknown galaxy parameter {key!r}")
            if isinstance(value, list):
                value = tuple(value)
            kwargs[name] = value
        return cls(**kwargs)


_CAMEL_ALIASES = {
    "randomnessPower": "randomness_power",
    "innerColor":      "inner_color",
    "outerColor":      "outer_color",
    "rotationX":       "rotation_x",
    "rotationY":       "rotation_y",
    "rotationZ":       "rotation_z",
}


# ---------------------------------------------------------------------------
# Editing ranges (consumed by the GUI / CLI, not by generate)
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class ParamRange:
    """Recognised slider range and step for one editable parameter."""

    lo: float
    hi: float
    step: float

    def clamp(self, value: float) -> float:
        """Clamp *value* into [lo, hi] and snap it to the step grid."""
        value = max(self.lo, min(self.hi, float(value)))
        snapped = self.lo + round((value - self.lo) / self.step) * self.step
        return round(max(self.lo, min(self.hi, snapped)), 10)


PARAMETER_RANGES: dict[str, ParamRange] = {
    "count":            ParamRange(100, 1_000_000, 100),
    "size":             ParamRange(0.001, 0.1, 0.001),
    "radius":           ParamRange(0.01, 20.0, 0.01),
    "branches":         ParamRange(2, 20, 1),
    "spin":             ParamRange(-5.0, 5.0, 0.001),
    "randomness":       ParamRange(0.0, 2.0, 0.001),
    "randomness_power": ParamRange(1.0, 10.0, 0.001),
    "rotation_x":       ParamRange(-0.05, 0.05, 0.001),
    "rotation_y":       ParamRange(-0.05, 0.05, 0.001),
    "rotation_z":       ParamRange(-0.05, 0.05, 0.001),
}


# ---------------------------------------------------------------------------
# Random source
# ---------------------------------------------------------------------------

class RandomSource(Protocol):
    """Anything that yields uniform floats in [0, 1) on demand.

    ``numpy.random.Generator`` satisfies this protocol directly.
    """

    def random(self, size: Any = None) -> np.ndarray: ...


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Seeded (reproducible) generator when *seed* is given, else OS entropy.

    Raises ``InvalidParameter`` for a seed that is not a non-negative integer.
    """
    if seed is not None:
        check_seed(seed)
    return np.random.default_rng(seed)



def check_seed(seed: Any, source: str = "seed") -> int:
    if not _is_integral(seed) or seed < 0:
        raise InvalidParameter(f"{source} must be a non-negative integer, got {seed!r}")
    return int(seed)

# ---------------------------------------------------------------------------
# Colour helpers
# ---------------------------------------------------------------------------

def parse_color(value: Color) -> RGB:
    """Normalise a colour string or RGB triple to a float triple in [0, 1]."""
    if isinstance(value, np.ndarray):
        value = tuple(value.tolist())
    if not isinstance(value, str) and (
            not isinstance(value, Sequence) or len(value) != 3):
        raise InvalidParameter(f"invalid colour {value!r}: expected an RGB triple")
    try:
        r, g, b = to_rgb(value)
    except (ValueError, TypeError) as exc:
        raise InvalidParameter(f"invalid colour {value!r}: {exc}") from None
    return float(r), float(g), float(b)


def radial_color_factor(radii: np.ndarray, radius: float) -> np.ndarray:
    """Blend factor t = radii / radius, clipped to [0, 1]; zeros when radius is 0."""
    radii = np.asarray(radii, dtype=np.float64)
    if radius == 0:
        return np.zeros_like(radii)
    return np.clip(radii / radius, 0.0, 1.0)


def mix_colors(inner: Color, outer: Color, t: Union[float, np.ndarray]) -> np.ndarray:
    """Component-wise linear interpolation inner → outer.

    Returns shape ``(3,)`` for scalar *t* and ``(N, 3)`` for an array.
    """
    c0 = np.asarray(parse_color(inner), dtype=np.float64)
    c1 = np.asarray(parse_color(outer), dtype=np.float64)
    t  = np.asarray(t, dtype=np.float64)
    return c0 + (c1 - c0) * t[..., None]


# ---------------------------------------------------------------------------
# Point cloud value object
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True, eq=False)
class PointCloud:
    """Generated galaxy: parallel position / colour buffers, one row per point.

    The buffers are stored as read-only views; the arrays passed in stay
    writable, so callers must not mutate them afterwards.  ``radii`` keeps the
    radius drawn for each point, which the spiral term and the colour blend
    were both derived from.
    """

    positions: np.ndarray   # (N, 3) float32  x, y, z
    colors:    np.ndarray   # (N, 3) float32  r, g, b
    radii:     np.ndarray   # (N,)   float64

    def __post_init__(self) -> None:
        n = len(self.radii)
        if self.positions.shape != (n, 3) or self.colors.shape != (n, 3):
            raise ValueError(
                f"mismatched buffers: positions {self.positions.shape}, "
                f"colors {self.colors.shape}, radii {self.radii.shape}"
            )
        for name in ("positions", "colors", "radii"):
            view = getattr(self, name).view()
            view.setflags(write=False)
            object.__setattr__(self, name, view)

    def __len__(self) -> int:
        return len(self.radii)

    @property
    def count(self) -> int:
        return len(self.radii)

    def position_buffer(self) -> np.ndarray:
        """Flat float32 buffer (x0, y0, z0, x1, …) for vertex upload."""
        return self.positions.reshape(-1)

    def color_buffer(self) -> np.ndarray:
        return self.colors.reshape(-1)

    @classmethod
    def empty(cls) -> "PointCloud":
        return cls(
            positions=np.empty((0, 3), dtype=np.float32),
            colors=np.empty((0, 3), dtype=np.float32),
            radii=np.empty(0, dtype=np.float64),
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _is_integral(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _check_finite(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameter(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidParameter(f"{name} must be finite, got {value!r}")
    return value


def validate_parameters(params: GalaxyParameters) -> None:
    """Raise ``InvalidParameter`` unless *params* can be generated.

    Only the generator's own domain is checked here.  The narrower editing
    ranges in ``PARAMETER_RANGES`` are a UI concern.
    """
    if not _is_integral(params.count):
        raise InvalidParameter(f"count must be an integer, got {params.count!r}")
    if params.count < 0:
        raise InvalidParameter(f"count must be >= 0, got {params.count}")

    if not _is_integral(params.branches):
        raise InvalidParameter(f"branches must be an integer, got {params.branches!r}")
    if params.branches < 1:
        raise InvalidParameter(f"branches must be >= 1, got {params.branches}")

    if _check_finite("size", params.size) <= 0:
        raise InvalidParameter(f"size must be > 0, got {params.size}")
    if _check_finite("radius", params.radius) < 0:
        raise InvalidParameter(f"radius must be >= 0, got {params.radius}")
    if _check_finite("randomness", params.randomness) < 0:
        raise InvalidParameter(f"randomness must be >= 0, got {params.randomness}")
    if _check_finite("randomness_power", params.randomness_power) <= 0:
        raise InvalidParameter(
            f"randomness_power must be > 0, got {params.randomness_power}"
        )
    for name in ("spin", "rotation_x", "rotation_y", "rotation_z"):
        _check_finite(name, getattr(params, name))

    parse_color(params.inner_color)
    parse_color(params.outer_color)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate(params: GalaxyParameters, rng: Optional[RandomSource] = None) -> PointCloud:
    """Generate the galaxy point cloud described by *params*.

    Parameters
    ----------
    params : GalaxyParameters
    rng    : RandomSource, optional
        Source of uniform draws.  Defaults to a fresh unseeded
        ``numpy.random.Generator``; pass ``make_rng(seed)`` for
        reproducible output.

    Returns
    -------
    PointCloud with exactly ``params.count`` points.

    Raises
    ------
    InvalidParameter
        Before any buffer is allocated or any randomness consumed.
    """
    validate_parameters(params)
    n = params.count
    if n == 0:
        return PointCloud.empty()
    if rng is None:
        rng = make_rng()

    # One row per point: [radius, mag_x, sign_x, mag_y, sign_y, mag_z, sign_z]
    draws = np.asarray(rng.random((n, DRAWS_PER_POINT)), dtype=np.float64)
    draws = draws.reshape(n, DRAWS_PER_POINT)

    radii = draws[:, 0] * params.radius

    branch_angle = (np.arange(n) % params.branches) / params.branches * 2.0 * math.pi
    spin_angle   = radii * params.spin
    angle        = branch_angle + spin_angle

    magnitude = draws[:, 1::2] ** params.randomness_power
    sign      = np.where(draws[:, 2::2] < 0.5, 1.0, -1.0)
    jitter    = magnitude * sign * params.randomness * radii[:, None]

    positions = np.empty((n, 3), dtype=np.float32)
    positions[:, 0] = np.cos(angle) * radii + jitter[:, 0]
    positions[:, 1] = jitter[:, 1]
    positions[:, 2] = np.sin(angle) * radii + jitter[:, 2]

    t = radial_color_factor(radii, params.radius)
    colors = mix_colors(params.inner_color, params.outer_color, t).astype(np.float32)

    return PointCloud(positions=positions, colors=colors, radii=radii)


# ---------------------------------------------------------------------------
# Parameter file I/O
# ---------------------------------------------------------------------------

def save_parameters(path: str, params: GalaxyParameters, seed: Optional[int] = None) -> None:
    """Write *params* (and the seed, if any) as a flat JSON object."""
    data = params.to_dict()
    if seed is not None:
        data["seed"] = int(seed)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def load_parameters(path: str) -> Tuple[GalaxyParameters, Optional[int]]:
    """Read a parameter file written by ``save_parameters``.

    Returns
    -------
    (params, seed) – seed is None when the file does not carry one.
    """
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise InvalidParameter(f"{path}: not valid JSON ({exc})") from None
    if not isinstance(data, dict):
        raise InvalidParameter(f"{path}: expected a JSON object")
    seed = data.pop("seed", None)
    if seed is not None:
        seed = check_seed(seed, f"{path}: seed")
    return GalaxyParameters.from_dict(data), seed


# ---------------------------------------------------------------------------
# Summaries and acceptance checks
# ---------------------------------------------------------------------------

def branch_summary(params: GalaxyParameters, cloud: PointCloud) -> pd.DataFrame:
    """Per-arm statistics: point count, radius spread and mean colour.

    Points are assigned to arms by index, exactly as ``generate`` does.
    """
    columns = ["branch", "points", "mean_r", "max_r", "mean_red", "mean_green", "mean_blue"]
    if len(cloud) == 0:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame({
        "branch":     np.arange(len(cloud)) % params.branches,
        "r":          cloud.radii,
        "mean_red":   cloud.colors[:, 0],
        "mean_green": cloud.colors[:, 1],
        "mean_blue":  cloud.colors[:, 2],
    })
    summary = df.groupby("branch").agg(
        points=("r", "size"),
        mean_r=("r", "mean"),
        max_r=("r", "max"),
        mean_red=("mean_red", "mean"),
        mean_green=("mean_green", "mean"),
        mean_blue=("mean_blue", "mean"),
    ).reset_index()
    return summary[columns]


def run_checks(params: GalaxyParameters, cloud: PointCloud) -> bool:
    """Print acceptance test results to stdout; return True if all pass."""
    sep = "─" * 52
    tol = 1e-4 * max(params.radius, 1.0)
    results = []

    print(f"\n{sep}")
    print("  ACCEPTANCE TESTS")
    print(sep)

    ok = len(cloud.positions) == len(cloud.colors) == params.count
    results.append(ok)
    print(f"  Point count : {len(cloud):>9,}  (target {params.count:,})  "
          f"{'✓' if ok else '✗ FAIL'}")

    if len(cloud) == 0:
        print("  (no points to check)")
        print(sep + "\n")
        return all(results)

    r_max = float(cloud.radii.max())
    ok = r_max <= params.radius + tol
    results.append(ok)
    print(f"  Max radius  : {r_max:>9.4f}  <= {params.radius}  "
          f"{'✓' if ok else '✗ FAIL'}")

    # Spiral term is at most r; the jitter vector adds at most √3·randomness·r.
    reach = params.radius * (1.0 + math.sqrt(3.0) * params.randomness)
    dist_max = float(np.linalg.norm(cloud.positions, axis=1).max())
    ok = dist_max <= reach + tol
    results.append(ok)
    print(f"  Max extent  : {dist_max:>9.4f}  <= {reach:.4f}  "
          f"{'✓' if ok else '✗ FAIL'}")

    y_max = float(np.abs(cloud.positions[:, 1]).max())
    ok = y_max <= params.randomness * params.radius + tol
    results.append(ok)
    print(f"  Max |y|     : {y_max:>9.4f}  <= {params.randomness * params.radius:.4f}  "
          f"{'✓' if ok else '✗ FAIL'}")

    ok = bool((cloud.colors >= 0.0).all() and (cloud.colors <= 1.0).all())
    results.append(ok)
    print(f"  Colours     : all channels in [0, 1]  {'✓' if ok else '✗ FAIL'}")

    per_arm = np.bincount(np.arange(len(cloud)) % params.branches,
                          minlength=params.branches)
    ok = int(per_arm.max() - per_arm.min()) <= 1
    results.append(ok)
    print(f"  Arm balance : min={per_arm.min():,}  max={per_arm.max():,}  "
          f"{'✓' if ok else '✗ FAIL'}")

    print(sep + "\n")
    return all(results)


# ---------------------------------------------------------------------------
# Script entry point (uses all GalaxyParameters defaults)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    _params = GalaxyParameters()
    _t0 = time.perf_counter()
    _cloud = generate(_params, make_rng(7))
    print(f"{len(_cloud):,} points generated in {time.perf_counter() - _t0:.2f}s")
    print(branch_summary(_params, _cloud).to_string(index=False))
    run_checks(_params, _cloud)
