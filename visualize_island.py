#!/usr/bin/env python3
"""
Render a generated island as a top-down biome map.

Usage:
    python visualize_island.py [--year 2025] [--seed 42] [--grid-size 141]
                               [--enforce-ocean] [--per-cell] [--no-water]

Prints the per-biome table and saves island_<year>_<seed>.png.
"""

import argparse

import matplotlib.pyplot as plt
from matplotlib.colors import ListedColormap
from matplotlib.patches import Patch

from py_fairshare.core.biomes import BIOME_COLORS, BIOME_NAMES, BiomeType
from py_fairshare.core.island import GenerationParams, IslandGenerator, PlacementMode
from py_fairshare.utils.logging import configure_logging


def print_report(result):
    """Print the per-biome table."""
    print(f"\nYear {result.params.year}: population {result.population:,}")
    print(f"Area per person: {result.area_per_person:,.1f} m^2")
    print(f"Grid: {result.grid.size}x{result.grid.size} ({result.grid.cell_count:,} tiles)")
    print(f"Freshwater features converted {result.water_converted:,} tiles\n")

    print(f"{'Biome':<22}{'Tiles':>9}{'Target':>9}{'Left':>7}{'Actual %':>10}{'Target %':>10}")
    for row in result.report():
        print(
            f"{row.name:<22}{row.count:>9,}{row.target:>9,}{row.remaining:>7}"
            f"{row.percentage:>9.2f}%{row.target_percentage:>9.2f}%"
        )


def visualize_island(result, output_file=None, show=True):
    """Draw the island with one flat color per biome."""
    grid = result.grid
    half = grid.half_size
    cmap = ListedColormap([BIOME_COLORS[biome] for biome in BiomeType])

    fig, ax = plt.subplots(figsize=(10, 10))
    # Rows of the assignment are x; transpose so x runs left to right
    ax.imshow(
        result.assignment.biomes.T,
        cmap=cmap,
        vmin=0,
        vmax=len(BiomeType) - 1,
        origin="lower",
        extent=(-half - 0.5, half + 0.5, -half - 0.5, half + 0.5),
        interpolation="nearest",
    )

    counts = result.actual_counts()
    legend = [
        Patch(facecolor=BIOME_COLORS[biome], label=f"{BIOME_NAMES[biome]} ({counts[biome]:,})")
        for biome in BiomeType
        if counts[biome]
    ]
    ax.legend(handles=legend, loc="upper left", bbox_to_anchor=(1.01, 1.0), fontsize=9)

    ax.set_xlabel("X", fontsize=12)
    ax.set_ylabel("Z", fontsize=12)
    ax.set_title(
        f"Year {result.params.year} - {grid.size}x{grid.size} - "
        f"{result.population:,} people - seed {result.seed:g}",
        fontsize=13,
    )

    if output_file is None:
        output_file = f"island_{result.params.year}_{result.seed:g}.png"
    plt.savefig(output_file, dpi=200, bbox_inches="tight")
    print(f"\nIsland map saved to: {output_file}")

    if show:
        plt.show()
    plt.close(fig)


def main():
    parser = argparse.ArgumentParser(description="Generate and render a fair share island")
    parser.add_argument("--year", type=int, default=2025)
    parser.add_argument("--seed", type=float, default=None)
    parser.add_argument("--grid-size", type=int, default=None)
    parser.add_argument("--fixed-size", action="store_true", help="Disable population sizing")
    parser.add_argument("--enforce-ocean", action="store_true")
    parser.add_argument("--per-cell", action="store_true", help="Use the per-cell enforcer")
    parser.add_argument("--no-water", action="store_true", help="Skip freshwater features")
    parser.add_argument("--no-show", action="store_true")
    parser.add_argument("--output", default=None)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(args.log_level, fmt="console")

    params = GenerationParams(
        year=args.year,
        use_population_sizing=not args.fixed_size,
        grid_size=args.grid_size,
        seed=args.seed,
        enforce_ocean_quota=args.enforce_ocean,
        placement_mode=PlacementMode.PER_CELL if args.per_cell else PlacementMode.EXACT,
        water_features=not args.no_water,
    )
    result = IslandGenerator().generate(params)

    print_report(result)
    visualize_island(result, output_file=args.output, show=not args.no_show)


if __name__ == "__main__":
    main()
