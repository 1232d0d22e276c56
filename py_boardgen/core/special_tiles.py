"""Special tile placement on leftover road cells."""

from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from .grid import Cell
from .lcg_prng import LcgPRNG
from .models import Parcel, SpecialCategory, SpecialTile
from ..utils.random import choice, rand_int, shuffle, uniform

logger = structlog.get_logger()

# Inclusive payload ranges; categories not listed carry no payload
PAYLOAD_RANGES: Dict[SpecialCategory, tuple] = {
    SpecialCategory.FEE: (100, 500),
    SpecialCategory.BONUS: (200, 1000),
}


class SpecialTilePlacer:
    """
    Scatters special tiles over road cells not covered by parcels.

    The target count is ``floor(len(free_roads) * U(ratio / 2, ratio))``;
    the default ratio of 0.2 gives the 10-20% band.
    """

    def __init__(
        self,
        prng: LcgPRNG,
        ratio: float = 0.2,
        categories: Optional[Sequence[SpecialCategory]] = None,
    ):
        self.prng = prng
        self.ratio = ratio
        self.categories = list(categories) if categories else list(SpecialCategory)

    def payload_for(self, category: SpecialCategory) -> int:
        bounds = PAYLOAD_RANGES.get(category)
        if bounds is None:
            return 0
        return rand_int(self.prng, bounds[0], bounds[1])

    def place(self, roads: Iterable[Cell], parcels: Iterable[Parcel] = ()) -> List[SpecialTile]:
        """
        Place special tiles.

        Args:
            roads: Road cells in network order
            parcels: Placed parcels whose footprints are excluded

        Returns:
            Special tiles in placement order
        """
        covered = {cell for parcel in parcels for cell in parcel.cells}
        free_roads = [cell for cell in roads if cell not in covered]
        if not free_roads or self.ratio <= 0:
            return []

        target = int(len(free_roads) * uniform(self.prng, self.ratio / 2, self.ratio))
        tiles = []
        for cell in shuffle(self.prng, free_roads)[:target]:
            category = choice(self.prng, self.categories)
            tiles.append(
                SpecialTile(cell=cell, category=category, payload=self.payload_for(category))
            )

        logger.info("Placed special tiles", count=len(tiles), candidates=len(free_roads))
        return tiles


def category_counts(tiles: Iterable[SpecialTile]) -> Dict[str, int]:
    """Number of tiles per category, every category listed."""
    counts = Counter(tile.category.value for tile in tiles)
    return {category.value: counts.get(category.value, 0) for category in SpecialCategory}
