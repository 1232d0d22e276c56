"""
Monte-Carlo traffic analysis.

Random walks between start positions and random road targets count how
often each road cell is crossed. Visit counts become per-cell hotness,
hotness becomes a percentile rank, and the percentile drives a price
coefficient in [0.5, 2.0].
"""

from typing import Dict, List, Sequence

import numpy as np
import structlog

from .grid import Cell
from .lcg_prng import LcgPRNG
from .models import (
    MAX_PRICE_COEFFICIENT,
    MIN_PRICE_COEFFICIENT,
    RoadNetworkData,
    TrafficResult,
)

logger = structlog.get_logger()

MAX_HOPS = 100
NEARBY_RADIUS = 3
MAIN_ROAD_BOOST = 1.2
INTERSECTION_BOOST = 1.3
HOT_SPOT_PERCENTILE = 0.9
COLD_SPOT_PERCENTILE = 0.1


def price_coefficient(percentile):
    """
    Map a percentile (scalar or array) in [0, 1] to a price coefficient.

    ``0.5 + 1.5 * percentile``, so 0 maps to 0.5 and 1 maps to 2.0.
    """
    return np.clip(
        MIN_PRICE_COEFFICIENT
        + np.asarray(percentile, dtype=np.float64)
        * (MAX_PRICE_COEFFICIENT - MIN_PRICE_COEFFICIENT),
        MIN_PRICE_COEFFICIENT,
        MAX_PRICE_COEFFICIENT,
    )


def percentile_ranks(hotness: np.ndarray) -> np.ndarray:
    """
    Rank every cell among the cells with positive hotness.

    A cell's percentile is the index of the first sorted positive value
    that is >= its hotness, divided by the number of positive values.
    Cells with zero hotness get 0.
    """
    positive = np.sort(hotness[hotness > 0])
    if positive.size == 0:
        return np.zeros_like(hotness, dtype=np.float64)
    ranks = np.searchsorted(positive, hotness, side="left") / positive.size
    return np.where(hotness > 0, ranks, 0.0)


class TrafficAnalyzer:
    """
    Simulates traffic over a road network.

    Args:
        width: Grid width
        height: Grid height
        prng: Shared generation PRNG
        rounds: Number of simulated trips
        start_positions: Cells trips start from (snapped to the nearest road)
    """

    def __init__(
        self,
        width: int,
        height: int,
        prng: LcgPRNG,
        rounds: int = 1000,
        start_positions: Sequence[Cell] = (Cell(0, 0),),
    ):
        self.width = width
        self.height = height
        self.prng = prng
        self.rounds = rounds
        self.start_positions = list(start_positions) or [Cell(0, 0)]

    def analyze(self, network: RoadNetworkData) -> TrafficResult:
        """Run the simulation and derive hotness, percentiles and prices."""
        visits = self.simulate(network)
        hotness = self.hotness(visits, network)
        percentile = percentile_ranks(hotness)
        coefficients = price_coefficient(percentile)

        hot_spots = tuple(
            Cell(int(x), int(y)) for y, x in np.argwhere(percentile >= HOT_SPOT_PERCENTILE)
        )
        cold_spots = tuple(
            Cell(int(x), int(y)) for y, x in np.argwhere(percentile <= COLD_SPOT_PERCENTILE)
        )

        logger.info(
            "Analyzed traffic",
            rounds=self.rounds,
            max_visits=int(visits.max()) if visits.size else 0,
            hot_spots=len(hot_spots),
            cold_spots=len(cold_spots),
        )
        return TrafficResult(
            hotness=hotness,
            percentile=percentile,
            price_coefficients=coefficients,
            hot_spots=hot_spots,
            cold_spots=cold_spots,
        )

    def nearest_road(self, cell: Cell, roads: Sequence[Cell]) -> Cell:
        """Manhattan-nearest road cell, first in road order on ties."""
        road_xy = np.array(roads, dtype=np.int64)
        distances = np.abs(road_xy[:, 0] - cell.x) + np.abs(road_xy[:, 1] - cell.y)
        return roads[int(np.argmin(distances))]

    def simulate(self, network: RoadNetworkData) -> np.ndarray:
        """Return per-cell visit counts indexed ``[y, x]``."""
        visits = np.zeros((self.height, self.width), dtype=np.int64)
        roads = network.roads
        if not roads:
            logger.debug("No roads, skipping traffic simulation")
            return visits

        entry_points: Dict[Cell, Cell] = {
            start: self.nearest_road(start, roads) for start in self.start_positions
        }

        for _ in range(self.rounds):
            start = self.start_positions[int(self.prng.random() * len(self.start_positions))]
            target = roads[int(self.prng.random() * len(roads))]
            self._walk(entry_points[start], target, network, visits)

        return visits

    def _walk(
        self, current: Cell, target: Cell, network: RoadNetworkData, visits: np.ndarray
    ) -> None:
        seen = set()
        for _ in range(MAX_HOPS):
            visits[current.y, current.x] += 1
            seen.add(current)
            if current == target:
                return

            options = network.adjacency.get(current, ())
            if not options:
                return
            unvisited = [n for n in options if n not in seen]
            current = self._next_step(unvisited or list(options), target)

    def _next_step(self, options: List[Cell], target: Cell) -> Cell:
        """Roulette pick weighted towards the target."""
        distances = [abs(n.x - target.x) + abs(n.y - target.y) for n in options]
        max_dist = max(distances)
        weights = [(max_dist - d + 1) * (0.5 + self.prng.random()) for d in distances]

        remaining = self.prng.random() * sum(weights)
        for option, weight in zip(options, weights):
            remaining -= weight
            if remaining <= 0:
                return option
        return options[0]

    def hotness(self, visits: np.ndarray, network: RoadNetworkData) -> np.ndarray:
        """
        Normalized visit intensity per cell.

        Road cells use ``visits / max_visits``. Other cells take the
        ``1 / (1 + chebyshev)`` weighted mean of road visits within a
        radius of 3, normalized the same way. Main roads are boosted by 1.2
        and intersections by 1.3; everything is capped at 1.
        """
        max_visits = int(visits.max()) if visits.size else 0
        if max_visits == 0:
            return np.zeros((self.height, self.width), dtype=np.float64)

        road_mask = self._mask(network.roads)
        main_mask = self._mask(network.main_roads)
        junction_mask = self._mask(network.intersections)

        road_visits = np.where(road_mask, visits, 0).astype(np.float64)
        nearby = self._nearby_mean(road_visits, road_mask.astype(np.float64))

        hotness = np.where(road_mask, visits / max_visits, np.minimum(1.0, nearby / max_visits))
        hotness = np.where(main_mask, np.minimum(1.0, hotness * MAIN_ROAD_BOOST), hotness)
        hotness = np.where(
            junction_mask, np.minimum(1.0, hotness * INTERSECTION_BOOST), hotness
        )
        return hotness

    def _mask(self, cells: Sequence[Cell]) -> np.ndarray:
        mask = np.zeros((self.height, self.width), dtype=bool)
        for cell in cells:
            mask[cell.y, cell.x] = True
        return mask

    def _nearby_mean(self, road_visits: np.ndarray, road_mask: np.ndarray) -> np.ndarray:
        """Distance-weighted mean of road visits in a (2r+1)^2 window."""
        r = NEARBY_RADIUS
        padded_visits = np.pad(road_visits, r)
        padded_mask = np.pad(road_mask, r)
        total = np.zeros_like(road_visits)
        weight_sum = np.zeros_like(road_visits)

        for dy in range(-r, r + 1):
            for dx in range(-r, r + 1):
                weight = 1.0 / (1 + max(abs(dx), abs(dy)))
                window = (
                    slice(r + dy, r + dy + self.height),
                    slice(r + dx, r + dx + self.width),
                )
                total += weight * padded_visits[window]
                weight_sum += weight * padded_mask[window]

        with np.errstate(divide="ignore", invalid="ignore"):
            return np.where(weight_sum > 0, total / weight_sum, 0.0)

