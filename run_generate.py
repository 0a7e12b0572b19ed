"""
run_generate.py
===============
CLI entrypoint for the spiral galaxy generator.

All parameters are optional.  Values are layered: ``GalaxyParameters``
defaults, then ``--params_file`` (if given), then any explicit flag.

Quick start
-----------
    python run_generate.py

With custom parameters (matching the default preset)::

    python run_generate.py \\
        --count 100000 \\
        --radius 5 \\
        --branches 5 \\
        --spin 1 \\
        --randomness 0.2 \\
        --randomness_power 3 \\
        --inner_color "#ff6030" \\
        --outer_color "#1b3984" \\
        --seed 7 \\
        --out_dir output

Then look at the result::

    python plot_preview.py --params_file output/params.json
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import sys
import time
from typing import Optional, Sequence

from spiralgen import (
    GalaxyParameters,
    InvalidParameter,
    branch_summary,
    check_seed,
    generate,
    load_parameters,
    make_rng,
    run_checks,
    save_parameters,
)

DEFAULT_SEED = 7

_D = GalaxyParameters()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="run_generate.py",
        description=(
            "Procedural spiral galaxy point-cloud generator.\n"
            "Prints a per-arm summary and acceptance checks, and writes the "
            "parameters to OUT_DIR/params.json so the preview can rebuild "
            "the same cloud."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # ── Shape ─────────────────────────────────────────────────────────────
    p.add_argument(
        "--count", type=int, default=None,
        metavar="N",
        help=f"Number of points to generate (default {_D.count}).",
    )
    p.add_argument(
        "--radius", type=float, default=None,
        metavar="R",
        help=f"Maximum galaxy radius (default {_D.radius}).",
    )
    p.add_argument(
        "--branches", type=int, default=None,
        metavar="N",
        help=f"Number of spiral arms (default {_D.branches}).",
    )
    p.add_argument(
        "--spin", type=float, default=None,
        metavar="S",
        help=f"Radians of twist per unit radius; negative winds the other "
             f"way (default {_D.spin}).",
    )

    # ── Jitter ────────────────────────────────────────────────────────────
    p.add_argument(
        "--randomness", type=float, default=None,
        metavar="A",
        help=f"Jitter amplitude relative to each point's radius "
             f"(default {_D.randomness}).",
    )
    p.add_argument(
        "--randomness_power", type=float, default=None,
        metavar="P",
        help=f"Jitter exponent; higher keeps most points close to their arm "
             f"(default {_D.randomness_power}).",
    )

    # ── Appearance ────────────────────────────────────────────────────────
    p.add_argument(
        "--size", type=float, default=None,
        metavar="S",
        help=f"Point size in scene units, display only (default {_D.size}).",
    )
    p.add_argument(
        "--inner_color", default=None,
        metavar="COLOR",
        help=f"Colour at the centre (default {_D.inner_color}).",
    )
    p.add_argument(
        "--outer_color", default=None,
        metavar="COLOR",
        help=f"Colour at the rim (default {_D.outer_color}).",
    )
    p.add_argument("--rotation_x", type=float, default=None, metavar="W",
                   help=f"Animation spin about x, rad/s (default {_D.rotation_x}).")
    p.add_argument("--rotation_y", type=float, default=None, metavar="W",
                   help=f"Animation spin about y, rad/s (default {_D.rotation_y}).")
    p.add_argument("--rotation_z", type=float, default=None, metavar="W",
                   help=f"Animation spin about z, rad/s (default {_D.rotation_z}).")

    # ── Reproducibility ───────────────────────────────────────────────────
    p.add_argument(
        "--params_file", default=None,
        metavar="FILE",
        help="Start from a params.json written by an earlier run.",
    )
    p.add_argument(
        "--seed", type=int, default=None,
        metavar="S",
        help=f"Random seed (default: the file's seed, else {DEFAULT_SEED}).",
    )

    # ── Output ───────────────────────────────────────────────────────────
    p.add_argument(
        "--out_dir", type=str, default="output",
        metavar="DIR",
        help="Directory for params.json and images (created if absent).",
    )
    p.add_argument(
        "--no_params", action="store_true",
        help="Do not write params.json.",
    )
    p.add_argument(
        "--save", default=None, metavar="FILE",
        help="Also render the preview to FILE (png/pdf/svg).",
    )

    return p


def parameters_from_args(args: argparse.Namespace) -> tuple[GalaxyParameters, int]:
    """Resolve the layered configuration into parameters and a seed."""
    params, seed = GalaxyParameters(), None
    if args.params_file:
        params, seed = load_parameters(args.params_file)

    overrides = {
        f.name: getattr(args, f.name)
        for f in dataclasses.fields(GalaxyParameters)
        if getattr(args, f.name, None) is not None
    }
    if overrides:
        params = params.replace(**overrides)

    if args.seed is not None:
        seed = check_seed(args.seed, "--seed")
    if seed is None:
        seed = DEFAULT_SEED
    return params, seed


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args   = parser.parse_args(argv)

    try:
        params, seed = parameters_from_args(args)
    except (InvalidParameter, OSError) as exc:
        print(f"Invalid parameters: {exc}", file=sys.stderr)
        return 2

    # Print config so the user can confirm parameters before waiting
    print("Configuration")
    print("─" * 40)
    for name, value in params.to_dict().items():
        print(f"  {name:<18} = {value}")
    print(f"  {'seed':<18} = {seed}")
    print()

    print("Generating point cloud …")
    t0 = time.perf_counter()
    try:
        cloud = generate(params, make_rng(seed))
    except InvalidParameter as exc:
        print(f"Invalid parameters: {exc}", file=sys.stderr)
        return 2
    print(f"  {len(cloud):,} points generated in {time.perf_counter() - t0:.2f}s")

    print("\nPer-arm summary")
    summary = branch_summary(params, cloud)
    if len(summary):
        print(summary.to_string(index=False, float_format=lambda v: f"{v:.3f}"))
    else:
        print("  (empty)")

    ok = run_checks(params, cloud)

    if not args.no_params or args.save:
        os.makedirs(args.out_dir, exist_ok=True)

    if not args.no_params:
        params_path = os.path.join(args.out_dir, "params.json")
        save_parameters(params_path, params, seed)
        print(f"Wrote {params_path}")

    if args.save:
        # Imported lazily so plain generation never touches a plotting backend.
        import matplotlib.pyplot as plt
        from plot_preview import draw_galaxy

        fig, _layer, _handle = draw_galaxy(cloud, params)
        fig.savefig(args.save, dpi=150, bbox_inches="tight",
                    facecolor=fig.get_facecolor())
        plt.close(fig)
        print(f"Saved figure to {args.save}")

    if not args.no_params:
        print(
            f"\nNext steps:\n"
            f"  • Preview : python plot_preview.py --params_file "
            f"{os.path.join(args.out_dir, 'params.json')}\n"
            f"  • Editor  : python galaxy_gui.py"
        )

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
