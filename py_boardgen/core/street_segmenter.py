"""
Street segmentation.

Flood-fills non-road cells into connected regions, folds undersized
regions into their nearest sizeable neighbour and hands out colour groups
so parcels of one street form a set.
"""

from collections import deque
from typing import Dict, Iterable, List, Sequence, Set

import structlog

from .grid import Cell, in_bounds, iter_cells, manhattan, neighbors
from .models import COLOR_GROUPS, Parcel, StreetRegion

logger = structlog.get_logger()

MIN_REGION_SIZE = 5


def centroid_of(cells: Sequence[Cell]) -> Cell:
    """Floored mean of the member cells."""
    return Cell(sum(c.x for c in cells) // len(cells), sum(c.y for c in cells) // len(cells))


def merge_small_regions(
    regions: List[StreetRegion], min_size: int = MIN_REGION_SIZE
) -> List[StreetRegion]:
    """
    Fold every region smaller than ``min_size`` into the region of at least
    ``min_size`` cells whose centroid is nearest (Manhattan).

    The receiving region's centroid is recomputed after each merge. Small
    regions with no sizeable region to join are kept. Ids are renumbered
    contiguously from 0 in input order.
    """
    working = list(regions)
    absorbed: Set[int] = set()

    for idx, region in enumerate(working):
        if len(region.cells) >= min_size:
            continue
        best = None
        for other_idx, other in enumerate(working):
            if other_idx == idx or other_idx in absorbed or len(other.cells) < min_size:
                continue
            dist = manhattan(region.centroid, other.centroid)
            if best is None or dist < best[0]:
                best = (dist, other_idx)
        if best is None:
            continue

        target = working[best[1]]
        cells = target.cells + region.cells
        working[best[1]] = target.model_copy(
            update={
                "cells": cells,
                "parcels": target.parcels + region.parcels,
                "centroid": centroid_of(cells),
            }
        )
        absorbed.add(idx)

    merged = [r for i, r in enumerate(working) if i not in absorbed]
    if absorbed:
        logger.debug("Merged small regions", merged=len(absorbed), remaining=len(merged))
    return [region.model_copy(update={"id": new_id}) for new_id, region in enumerate(merged)]


class StreetSegmenter:
    """
    Partitions the non-road cells of a grid into street regions.

    Args:
        width: Grid width
        height: Grid height
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.regions: List[StreetRegion] = []

    def flood_fill(self, roads: Iterable[Cell]) -> List[List[Cell]]:
        """BFS over non-road cells; one cell list per connected component."""
        road_set = set(roads)
        visited: Set[Cell] = set()
        components = []

        for start in iter_cells(self.width, self.height):
            if start in road_set or start in visited:
                continue
            visited.add(start)
            component = []
            queue = deque([start])
            while queue:
                cell = queue.popleft()
                component.append(cell)
                for neighbor in neighbors(cell):
                    if (
                        in_bounds(neighbor, self.width, self.height)
                        and neighbor not in road_set
                        and neighbor not in visited
                    ):
                        visited.add(neighbor)
                        queue.append(neighbor)
            components.append(component)

        return components

    def segment(
        self, roads: Iterable[Cell], parcels: Iterable[Parcel] = ()
    ) -> List[StreetRegion]:
        """
        Build, merge and colour street regions.

        Args:
            roads: Road cells
            parcels: Placed parcels; each joins the region its footprint
                intersects

        Returns:
            Regions ordered by id, with colour groups propagated to their
            parcels
        """
        parcels = list(parcels)
        regions = []
        for idx, cells in enumerate(self.flood_fill(roads)):
            members = set(cells)
            contained = tuple(p for p in parcels if any(c in members for c in p.cells))
            regions.append(
                StreetRegion(
                    id=idx, cells=tuple(cells), centroid=centroid_of(cells), parcels=contained
                )
            )

        regions = merge_small_regions(regions)
        self.regions = self.assign_colors(regions)
        logger.info(
            "Segmented streets",
            regions=len(self.regions),
            parcels=sum(len(r.parcels) for r in self.regions),
        )
        return self.regions

    def assign_colors(self, regions: List[StreetRegion]) -> List[StreetRegion]:
        """Colour regions by (parcel count, cell count) rank, cycling the palette."""
        ranked = sorted(regions, key=lambda r: (-len(r.parcels), -len(r.cells)))
        colors: Dict[int, str] = {
            region.id: COLOR_GROUPS[rank % len(COLOR_GROUPS)]
            for rank, region in enumerate(ranked)
        }

        colored = []
        for region in regions:
            color = colors[region.id]
            members = tuple(
                p.model_copy(update={"region_id": region.id, "color_group": color})
                for p in region.parcels
            )
            colored.append(
                region.model_copy(update={"color_group": color, "parcels": members})
            )
        return colored

    def label_parcels(self, parcels: Iterable[Parcel]) -> List[Parcel]:
        """Return parcels carrying the region id and colour of their region."""
        labels = {}
        for region in self.regions:
            for parcel in region.parcels:
                labels[parcel.anchor] = (region.id, region.color_group)

        labelled = []
        for parcel in parcels:
            if parcel.anchor in labels:
                region_id, color = labels[parcel.anchor]
                parcel = parcel.model_copy(
                    update={"region_id": region_id, "color_group": color}
                )
            labelled.append(parcel)
        return labelled

    def with_parcels(self, parcels: Iterable[Parcel]) -> List[StreetRegion]:
        """Rebuild the regions around updated copies of their parcels."""
        by_region: Dict[int, List[Parcel]] = {}
        for parcel in parcels:
            if parcel.region_id is not None:
                by_region.setdefault(parcel.region_id, []).append(parcel)
        self.regions = [
            region.model_copy(update={"parcels": tuple(by_region.get(region.id, ()))})
            for region in self.regions
        ]
        return self.regions

    def get_statistics(self) -> Dict[str, float]:
        """Summary of the last segmentation."""
        if not self.regions:
            return {
                "total_streets": 0,
                "average_street_size": 0.0,
                "largest_street": 0,
                "smallest_street": 0,
                "average_parcels_per_street": 0.0,
            }
        sizes = [len(r.cells) for r in self.regions]
        parcel_counts = [len(r.parcels) for r in self.regions]
        return {
            "total_streets": len(self.regions),
            "average_street_size": sum(sizes) / len(sizes),
            "largest_street": max(sizes),
            "smallest_street": min(sizes),
            "average_parcels_per_street": sum(parcel_counts) / len(parcel_counts),
        }
