"""
Free parcel placement along any road network.

Candidates are interior non-road cells touching a road. They are shuffled
with the generation PRNG and consumed in order until the target count is
reached; each candidate becomes a 2x2 parcel with probability
``parcel_2x2_ratio`` when the footprint fits, otherwise a 1x1 parcel.
"""

from typing import Iterable, List, Protocol, Set

import structlog

from .grid import Cell, footprint, in_bounds, in_interior, iter_cells, neighbors
from .lcg_prng import LcgPRNG
from .models import Parcel, ParcelSize
from ..utils.random import chance, shuffle, uniform

logger = structlog.get_logger()

BASE_PARCEL_VALUE = 500
PARCEL_VALUE_SPREAD = 3500


class ParcelPlacementStrategy(Protocol):
    """Common contract of the parcel placers."""

    def place(self) -> List[Parcel]:
        ...

    def can_place_2x2(self, anchor: Cell) -> bool:
        ...


def draw_parcel_value(prng: LcgPRNG) -> int:
    """Base value in [500, 4000)."""
    return BASE_PARCEL_VALUE + int(prng.random() * PARCEL_VALUE_SPREAD)


class RandomParcelPlacer:
    """
    Places parcels next to roads at random.

    Args:
        width: Grid width
        height: Grid height
        roads: Road cells
        prng: Shared generation PRNG
        parcel_ratio: Cap on parcels as a share of non-road cells
        parcel_2x2_ratio: Probability of trying a 2x2 parcel per candidate
        min_parcel_spacing: Free ring required around each parcel (0 disables)
    """

    def __init__(
        self,
        width: int,
        height: int,
        roads: Iterable[Cell],
        prng: LcgPRNG,
        parcel_ratio: float = 0.3,
        parcel_2x2_ratio: float = 0.15,
        min_parcel_spacing: int = 0,
    ):
        self.width = width
        self.height = height
        self.road_set: Set[Cell] = set(roads)
        self.prng = prng
        self.parcel_ratio = parcel_ratio
        self.parcel_2x2_ratio = parcel_2x2_ratio
        self.min_parcel_spacing = min_parcel_spacing
        self.occupied: Set[Cell] = set()

    def is_road_adjacent(self, cell: Cell) -> bool:
        return any(n in self.road_set for n in neighbors(cell))

    def candidates(self) -> List[Cell]:
        """Interior non-road cells with at least one road neighbour, row by row."""
        return [
            cell
            for cell in iter_cells(self.width, self.height)
            if cell not in self.road_set
            and in_interior(cell, self.width, self.height)
            and self.is_road_adjacent(cell)
        ]

    def can_place_2x2(self, anchor: Cell) -> bool:
        """
        Check a 2x2 footprint anchored at its bottom-left cell.

        All four cells must be in bounds, off-road and free, and at least
        one of them must touch a road.
        """
        cells = footprint(anchor, 2)
        for cell in cells:
            if not in_bounds(cell, self.width, self.height):
                return False
            if cell in self.road_set or cell in self.occupied:
                return False
        if not any(self.is_road_adjacent(cell) for cell in cells):
            return False
        return self._has_spacing(cells)

    def can_place_1x1(self, cell: Cell) -> bool:
        if cell in self.road_set or cell in self.occupied:
            return False
        return self._has_spacing([cell])

    def _has_spacing(self, cells: List[Cell]) -> bool:
        spacing = self.min_parcel_spacing
        if spacing <= 0:
            return True
        own = set(cells)
        for cell in cells:
            for dx in range(-spacing, spacing + 1):
                for dy in range(-spacing, spacing + 1):
                    neighbor = cell.offset(dx, dy)
                    if neighbor not in own and neighbor in self.occupied:
                        return False
        return True

    def target_count(self) -> int:
        non_road = self.width * self.height - len(self.road_set)
        by_roads = int(len(self.road_set) * uniform(self.prng, 0.3, 0.5))
        return min(by_roads, int(non_road * self.parcel_ratio))

    def place(self) -> List[Parcel]:
        """
        Place parcels and return them in placement order.

        Returns:
            List of parcels; empty when there are no roads or candidates
        """
        self.occupied = set()
        candidates = self.candidates()
        if not candidates:
            logger.debug("No parcel candidates")
            return []

        candidates = shuffle(self.prng, candidates)
        target = self.target_count()
        parcels: List[Parcel] = []

        for cell in candidates:
            if len(parcels) >= target:
                break
            if cell in self.occupied:
                continue

            size = ParcelSize.SMALL
            if chance(self.prng, self.parcel_2x2_ratio):
                if self.can_place_2x2(cell):
                    size = ParcelSize.LARGE
                else:
                    logger.debug("Rejected 2x2 parcel, trying 1x1", anchor=cell)

            if size == ParcelSize.SMALL and not self.can_place_1x1(cell):
                continue

            parcel = Parcel(anchor=cell, size=size, value=draw_parcel_value(self.prng))
            self.occupied.update(parcel.cells)
            parcels.append(parcel)

        logger.info(
            "Placed parcels",
            placer="random",
            target=target,
            placed=len(parcels),
            large=sum(1 for p in parcels if p.size == ParcelSize.LARGE),
        )
        return parcels
