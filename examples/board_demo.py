#!/usr/bin/env python3
"""
Simple demo script showing board generation capabilities.
"""

import numpy as np
from py_boardgen.core import GenerationMode, GenerationParameters, RoadStyle, generate_board
from py_boardgen.config import list_templates

GLYPHS = {"road": "#", "parcel": "P", "special": "*", "empty": "."}


def render(result):
    """Render a board as text, top row first."""
    rows = []
    for y in reversed(range(result.height)):
        row = ""
        for x in range(result.width):
            row += GLYPHS[result.tiles[y * result.width + x].kind]
        rows.append(row)
    return "\n".join(rows)


def main():
    """Demonstrate board generation."""
    print("Py-BoardGen Board Generation Demo")
    print("=" * 40)

    # Classic templates
    for template in list_templates():
        print(f"\n{template['name']} Template:")
        print("-" * 30)

        params = GenerationParameters(
            mode=GenerationMode.CLASSIC_TEMPLATE,
            template_id=template["id"],
            seed=12345,
            traffic_rounds=500,
        )
        result = generate_board(params)
        stats = result.statistics

        print(f"  Road cells: {stats.road_count}")
        print(f"  Parcels: {stats.parcel_count} ({stats.parcel_2x2_count} large)")
        print(f"  Special tiles: {stats.special_tile_count}")
        print(f"  Streets: {stats.region_count}")

        # Show price coefficient distribution
        prices = np.array([p.price_coefficient for p in result.parcels])
        if prices.size:
            bins = [0.5, 0.875, 1.25, 1.625, 2.0]
            hist, _ = np.histogram(prices, bins=bins)
            print("  Price distribution:")
            for i in range(len(bins) - 1):
                bar = '#' * int(hist[i] / max(max(hist), 1) * 20)
                print(f"    {bins[i]:.2f}-{bins[i+1]:.2f}: {bar} ({hist[i]})")

    # Free-form boards
    for style in RoadStyle:
        print(f"\n\nFree-form board ({style.value}):")
        print("-" * 30)
        params = GenerationParameters(
            mode=GenerationMode.FREE_FORM,
            road_style=style,
            width=30,
            height=30,
            seed=2024,
            traffic_rounds=300,
        )
        result = generate_board(params)
        print(render(result))


if __name__ == "__main__":
    main()
