"""
Tests for street segmentation and colour groups.
"""

from py_boardgen.core.grid import Cell, draw_line, iter_cells
from py_boardgen.core.models import COLOR_GROUPS, Parcel, StreetRegion
from py_boardgen.core.street_segmenter import (
    StreetSegmenter,
    centroid_of,
    merge_small_regions,
)


def block(x0, y0, width, height):
    return tuple(Cell(x, y) for y in range(y0, y0 + height) for x in range(x0, x0 + width))


class TestStreetSegmenter:
    """Test flood fill, merging and colouring."""

    def test_no_roads_single_region(self):
        """A road-free 4x4 grid is one 16-cell region."""
        segmenter = StreetSegmenter(4, 4)
        regions = segmenter.segment([])
        assert len(regions) == 1
        assert len(regions[0].cells) == 16
        assert regions[0].id == 0

    def test_road_splits_regions(self):
        """A road column splits the grid and colours follow parcel counts."""
        roads = draw_line(Cell(3, 0), Cell(3, 2))
        parcels = [Parcel(anchor=Cell(1, 1))]
        segmenter = StreetSegmenter(8, 3)
        regions = segmenter.segment(roads, parcels)

        assert sorted(len(r.cells) for r in regions) == [9, 12]
        left = next(r for r in regions if Cell(0, 0) in r.cells)
        right = next(r for r in regions if Cell(7, 0) in r.cells)
        assert left.color_group == COLOR_GROUPS[0]
        assert right.color_group == COLOR_GROUPS[1]
        assert left.parcels[0].color_group == COLOR_GROUPS[0]
        assert left.parcels[0].region_id == left.id

    def test_regions_partition_non_road_cells(self):
        """Every non-road cell belongs to exactly one region."""
        roads = draw_line(Cell(0, 5), Cell(11, 5)) + draw_line(Cell(6, 0), Cell(6, 11))
        segmenter = StreetSegmenter(12, 12)
        regions = segmenter.segment(roads)

        members = [c for r in regions for c in r.cells]
        expected = set(iter_cells(12, 12)) - set(roads)
        assert len(members) == len(set(members))
        assert set(members) == expected
        assert [r.id for r in regions] == list(range(len(regions)))

    def test_tiny_regions_without_target_are_kept(self):
        """Small regions stay when there is no sizeable region to join."""
        segmenter = StreetSegmenter(3, 1)
        regions = segmenter.segment([Cell(1, 0)])
        assert len(regions) == 2

    def test_label_parcels(self):
        """Parcels receive their region id and colour."""
        roads = draw_line(Cell(3, 0), Cell(3, 2))
        parcels = [Parcel(anchor=Cell(1, 1)), Parcel(anchor=Cell(5, 1))]
        segmenter = StreetSegmenter(8, 3)
        segmenter.segment(roads, parcels)
        labelled = segmenter.label_parcels(parcels)

        assert all(p.region_id is not None for p in labelled)
        assert labelled[0].region_id != labelled[1].region_id
        assert all(p.color_group in COLOR_GROUPS for p in labelled)

    def test_with_parcels(self):
        """Regions can be rebuilt around updated parcels."""
        roads = draw_line(Cell(3, 0), Cell(3, 2))
        parcels = [Parcel(anchor=Cell(1, 1))]
        segmenter = StreetSegmenter(8, 3)
        segmenter.segment(roads, parcels)
        priced = [
            p.model_copy(update={"price_coefficient": 1.75})
            for p in segmenter.label_parcels(parcels)
        ]
        regions = segmenter.with_parcels(priced)
        owner = next(r for r in regions if r.parcels)
        assert owner.parcels[0].price_coefficient == 1.75

    def test_statistics(self):
        """Statistics summarize region sizes and parcel counts."""
        roads = draw_line(Cell(3, 0), Cell(3, 2))
        segmenter = StreetSegmenter(8, 3)
        segmenter.segment(roads, [Parcel(anchor=Cell(1, 1))])
        stats = segmenter.get_statistics()

        assert stats["total_streets"] == 2
        assert stats["largest_street"] == 12
        assert stats["smallest_street"] == 9
        assert stats["average_street_size"] == 10.5
        assert stats["average_parcels_per_street"] == 0.5

    def test_empty_statistics(self):
        """No segmentation yet, all-zero statistics."""
        assert StreetSegmenter(4, 4).get_statistics()["total_streets"] == 0


class TestMergeSmallRegions:
    """Test folding undersized regions into their neighbours."""

    def test_small_region_merges_into_large(self):
        """A 3-cell region next to a 20-cell region yields one 23-cell region."""
        small_cells = block(0, 0, 3, 1)
        large_cells = block(0, 2, 5, 4)
        regions = [
            StreetRegion(id=0, cells=small_cells, centroid=centroid_of(small_cells)),
            StreetRegion(id=1, cells=large_cells, centroid=centroid_of(large_cells)),
        ]
        merged = merge_small_regions(regions)

        assert len(merged) == 1
        assert len(merged[0].cells) == 23
        assert merged[0].id == 0
        assert merged[0].centroid == centroid_of(large_cells + small_cells)

    def test_nearest_target_wins(self):
        """The small region joins the sizeable region with the closest centroid."""
        small_cells = block(10, 0, 2, 1)
        near_cells = block(8, 2, 5, 2)
        far_cells = block(0, 10, 5, 2)
        regions = [
            StreetRegion(id=0, cells=far_cells, centroid=centroid_of(far_cells)),
            StreetRegion(id=1, cells=small_cells, centroid=centroid_of(small_cells)),
            StreetRegion(id=2, cells=near_cells, centroid=centroid_of(near_cells)),
        ]
        merged = merge_small_regions(regions)

        assert [len(r.cells) for r in merged] == [10, 12]
        assert [r.id for r in merged] == [0, 1]

    def test_centroid_is_floored(self):
        """Centroids use floored means."""
        assert centroid_of([Cell(0, 0), Cell(1, 0), Cell(1, 1)]) == Cell(0, 0)
