"""
Road network generation and connectivity repair.

Two generation modes:

- ring_radial: sampled ring road around the map centre, eight radial spokes
  and a density top-up of cells adjacent to the network
- growth: organic queue-driven growth from 5-10 random seeds

Every road set, whatever produced it, goes through build_network_data(),
which stitches stray components onto the largest one and classifies main
roads, side roads and intersections.
"""

import math
from collections import deque
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np
import structlog

from .grid import Cell, draw_line, in_bounds, manhattan_stitch, neighbors
from .lcg_prng import LcgPRNG
from .models import RoadNetworkData
from ..utils.random import rand_int

logger = structlog.get_logger()

RING_SAMPLES = 60
RING_RADIUS_FACTOR = 0.35
SPOKE_COUNT = 8
SPOKE_LENGTH_FACTOR = 0.45
SPOKE_MAIN_FRACTION = 0.6
GROWTH_SINGLE_CHILD_PROBABILITY = 0.7


class RoadNetworkMode(str, Enum):
    RING_RADIAL = "ring_radial"
    GROWTH = "growth"


def find_components(roads: Iterable[Cell]) -> List[List[Cell]]:
    """
    Find 4-connected components of a road set with a stack-based DFS.

    Components are returned in discovery order, following the iteration
    order of ``roads``.
    """
    ordered = list(roads)
    road_set = set(ordered)
    visited: Set[Cell] = set()
    components = []

    for start in ordered:
        if start in visited:
            continue
        component = []
        stack = [start]
        while stack:
            cell = stack.pop()
            if cell in visited:
                continue
            visited.add(cell)
            component.append(cell)
            for neighbor in neighbors(cell):
                if neighbor in road_set and neighbor not in visited:
                    stack.append(neighbor)
        components.append(component)

    return components


def nearest_pair(source: List[Cell], target: List[Cell]) -> Tuple[Cell, Cell]:
    """
    Globally nearest (Manhattan) pair between two cell lists.

    Ties resolve to the first source cell and, for it, the first target
    cell in list order.
    """
    target_xy = np.array(target, dtype=np.int64)
    best: Optional[Tuple[int, Cell, Cell]] = None
    for cell in source:
        distances = np.abs(target_xy[:, 0] - cell.x) + np.abs(target_xy[:, 1] - cell.y)
        idx = int(np.argmin(distances))
        dist = int(distances[idx])
        if best is None or dist < best[0]:
            best = (dist, cell, target[idx])
    return best[1], best[2]


def connect_components(roads: List[Cell]) -> List[Cell]:
    """
    Stitch every non-largest component onto the largest one.

    Returns:
        The cells added by the stitches, in the order they were added
    """
    components = find_components(roads)
    if len(components) <= 1:
        return []

    largest = max(components, key=len)
    road_set = set(roads)
    added = []
    for component in components:
        if component is largest:
            continue
        start, end = nearest_pair(component, largest)
        for cell in manhattan_stitch(start, end):
            if cell not in road_set:
                road_set.add(cell)
                added.append(cell)

    logger.debug(
        "Connected isolated road components",
        components=len(components),
        stitched_cells=len(added),
    )
    return added


def build_network_data(
    roads: Iterable[Cell], main_roads: Iterable[Cell] = ()
) -> RoadNetworkData:
    """
    Repair connectivity and classify a road set.

    Args:
        roads: Road cells in generation order (duplicates are ignored)
        main_roads: Cells to tag as main roads; every other road is a side road

    Returns:
        RoadNetworkData forming a single connected component (when non-empty)
    """
    ordered = list(dict.fromkeys(roads))
    ordered.extend(connect_components(ordered))
    road_set = set(ordered)

    main_set = set(main_roads) & road_set
    main = tuple(c for c in ordered if c in main_set)
    side = tuple(c for c in ordered if c not in main_set)

    adjacency: Dict[Cell, Tuple[Cell, ...]] = {}
    intersections = []
    for cell in ordered:
        linked = tuple(n for n in neighbors(cell) if n in road_set)
        adjacency[cell] = linked
        if len(linked) >= 3:
            intersections.append(cell)

    return RoadNetworkData(
        roads=tuple(ordered),
        main_roads=main,
        side_roads=side,
        intersections=tuple(intersections),
        adjacency=MappingProxyType(adjacency),
    )


class RoadNetwork:
    """
    Procedural road network generator.

    Args:
        width: Grid width
        height: Grid height
        prng: Shared generation PRNG
        road_density: Target share of road cells for the top-up/growth budget
        mode: Generation mode
    """

    def __init__(
        self,
        width: int,
        height: int,
        prng: LcgPRNG,
        road_density: float = 0.2,
        mode: RoadNetworkMode = RoadNetworkMode.RING_RADIAL,
    ):
        self.width = width
        self.height = height
        self.prng = prng
        self.road_density = road_density
        self.mode = RoadNetworkMode(mode)

        self._roads: List[Cell] = []
        self._road_set: Set[Cell] = set()
        self._main: Set[Cell] = set()

    def generate(self) -> RoadNetworkData:
        """Generate roads in the configured mode and return the repaired network."""
        self._roads = []
        self._road_set = set()
        self._main = set()

        if self.mode == RoadNetworkMode.RING_RADIAL:
            self._generate_ring_radial()
        else:
            self._generate_growth()

        network = build_network_data(self._roads, self._main)
        logger.info(
            "Generated road network",
            mode=self.mode.value,
            roads=len(network.roads),
            main=len(network.main_roads),
            intersections=len(network.intersections),
        )
        return network

    def _add(self, cell: Cell, main: bool = False) -> None:
        if not in_bounds(cell, self.width, self.height):
            return
        if cell not in self._road_set:
            self._road_set.add(cell)
            self._roads.append(cell)
        if main:
            self._main.add(cell)

    def _generate_ring_radial(self) -> None:
        cx, cy = self.width // 2, self.height // 2
        size = min(self.width, self.height)

        radius = RING_RADIUS_FACTOR * size
        samples = [
            Cell(
                int(round(cx + radius * math.cos(2 * math.pi * i / RING_SAMPLES))),
                int(round(cy + radius * math.sin(2 * math.pi * i / RING_SAMPLES))),
            )
            for i in range(RING_SAMPLES)
        ]
        for i, start in enumerate(samples):
            for cell in draw_line(start, samples[(i + 1) % RING_SAMPLES]):
                self._add(cell, main=True)

        spoke_length = SPOKE_LENGTH_FACTOR * size
        steps = int(spoke_length)
        center = Cell(cx, cy)
        self._add(center, main=True)
        for k in range(SPOKE_COUNT):
            angle = 2 * math.pi * k / SPOKE_COUNT
            previous = center
            for t in range(1, steps + 1):
                point = Cell(
                    int(round(cx + t * math.cos(angle))),
                    int(round(cy + t * math.sin(angle))),
                )
                is_main = t <= SPOKE_MAIN_FRACTION * spoke_length
                for cell in draw_line(previous, point)[1:]:
                    self._add(cell, main=is_main)
                previous = point

        self._top_up_density()

    def _top_up_density(self) -> None:
        """Add random cells adjacent to the network until the density budget is spent."""
        area = self.width * self.height
        current = len(self._roads) / area
        if current >= self.road_density:
            return

        tries = int((self.road_density - current) * area)
        added = 0
        for _ in range(tries):
            cell = Cell(
                rand_int(self.prng, 0, self.width - 1),
                rand_int(self.prng, 0, self.height - 1),
            )
            if cell in self._road_set:
                continue
            if any(n in self._road_set for n in neighbors(cell)):
                self._add(cell)
                added += 1
        logger.debug("Density top-up", tries=tries, added=added)

    def _generate_growth(self) -> None:
        area = self.width * self.height
        seed_count = rand_int(self.prng, 5, 10)
        budget = int(area * self.road_density) / seed_count

        seeds = [
            Cell(
                rand_int(self.prng, 0, self.width - 1),
                rand_int(self.prng, 0, self.height - 1),
            )
            for _ in range(seed_count)
        ]
        for seed in seeds:
            self._grow_from(seed, budget)

    def _grow_from(self, seed: Cell, budget: float) -> None:
        """FIFO growth: each accepted cell queues one (70%) or two random free neighbours."""
        queue = deque([seed])
        length = 0
        while queue and length < budget:
            current = queue.popleft()
            if current in self._road_set or not in_bounds(
                current, self.width, self.height
            ):
                continue
            self._add(current)
            length += 1

            candidates = [
                n
                for n in neighbors(current)
                if in_bounds(n, self.width, self.height) and n not in self._road_set
            ]
            if not candidates:
                continue
            children = 1 if self.prng.random() < GROWTH_SINGLE_CHILD_PROBABILITY else 2
            for _ in range(min(children, len(candidates))):
                idx = int(self.prng.random() * len(candidates))
                queue.append(candidates.pop(idx))
