"""
Tests for the ring template builder and the template catalog.
"""

import pytest

from py_boardgen.config.board_templates import (
    SQUARE_RING,
    TEMPLATES,
    TemplateNotFoundError,
    get_template,
    get_template_by_index,
    list_templates,
    select_random_template,
)
from py_boardgen.core.grid import Cell, manhattan
from py_boardgen.core.lcg_prng import LcgPRNG
from py_boardgen.core.template_builder import (
    BoardTemplate,
    BridgeSpec,
    RingKind,
    RingSpec,
    TemplateBuilder,
    overlap_range,
    segmentize,
)


def assert_cyclic_path(path):
    """Consecutive cells (including last to first) are 4-neighbours."""
    for i, cell in enumerate(path):
        assert manhattan(cell, path[(i + 1) % len(path)]) == 1


class TestTemplateBuilder:
    """Test building roads from ring templates."""

    def test_square_ring_geometry(self):
        """An unjittered square ring follows its scaled vertices exactly."""
        result = TemplateBuilder(40, 40, LcgPRNG(1)).build(SQUARE_RING)
        outer = result.ring(RingKind.OUTER)

        assert outer.bbox == (6, 33, 6, 33)
        assert len(outer.path) == 4 * 27
        assert outer.path[0] == Cell(6, 6)
        assert_cyclic_path(outer.path)
        assert set(result.roads) == set(outer.path)
        assert set(result.ring_index_by_cell.values()) == {0}

    @pytest.mark.parametrize("template_id", list(TEMPLATES))
    @pytest.mark.parametrize("size", [20, 40, 100])
    def test_all_templates_stay_in_interior(self, template_id, size):
        """Every built road cell lies inside [1, size-2] on both axes."""
        result = TemplateBuilder(size, size, LcgPRNG(77)).build(TEMPLATES[template_id])
        assert result.roads
        assert len(result.roads) == len(set(result.roads))
        for cell in result.roads:
            assert 1 <= cell.x <= size - 2
            assert 1 <= cell.y <= size - 2
        for ring in result.rings:
            assert_cyclic_path(ring.path)

    def test_scale_and_clamp(self):
        """Design-canvas vertices scale with the map and clamp to the interior."""
        builder = TemplateBuilder(80, 20, LcgPRNG(1))
        assert builder.scale((20, 20)) == Cell(40, 10)
        assert builder.clamp(Cell(0, 50)) == Cell(1, 18)

    def test_anchor_slots(self):
        """Slots split the ring path into quartiles and clamp to [1, 4]."""
        builder = TemplateBuilder(40, 40, LcgPRNG(1))
        rings = list(builder.build(SQUARE_RING).rings)
        path = rings[0].path

        assert builder.pick_ring_anchor(rings, "outer@2") == path[len(path) // 2]
        assert builder.pick_ring_anchor(rings, "outer@4") == path[0]
        assert builder.pick_ring_anchor(rings, "outer@9") == path[0]
        assert builder.pick_ring_anchor(rings, "outer@0") == path[len(path) // 4]

    def test_bridge_to_missing_ring_is_skipped(self):
        """A bridge whose anchor ring does not exist adds no roads."""
        template = BoardTemplate(
            id="lonely",
            name="Lonely",
            description="Outer ring with a dangling bridge",
            rings=(RingSpec(RingKind.OUTER, ((6, 6), (33, 6), (33, 33), (6, 33))),),
            bridges=(BridgeSpec("outer@1", "inner@1"),),
        )
        result = TemplateBuilder(40, 40, LcgPRNG(3)).build(template)
        assert set(result.roads) == set(result.ring(RingKind.OUTER).path)

    def test_long_parallel_runs_get_bumps(self):
        """Rings two cells apart over a long stretch get detours carved in."""
        template = BoardTemplate(
            id="hugging",
            name="Hugging",
            description="Inner ring two cells inside the outer one",
            rings=(
                RingSpec(RingKind.OUTER, ((2, 2), (20, 2), (20, 20), (2, 20))),
                RingSpec(RingKind.INNER, ((4, 4), (18, 4), (18, 18), (4, 18))),
            ),
        )
        result = TemplateBuilder(40, 40, LcgPRNG(5)).build(template)
        ring_cells = {c for ring in result.rings for c in ring.path}
        extra = set(result.roads) - ring_cells

        assert extra
        # The bottom inner run bumps upwards, away from the outer ring
        assert any(c.y == 5 and 5 <= c.x <= 17 for c in extra)


class TestSegmentize:
    """Test splitting cyclic paths into straight runs."""

    def test_square_has_four_runs(self):
        """A square path splits into four runs sharing their corners."""
        result = TemplateBuilder(40, 40, LcgPRNG(1)).build(SQUARE_RING)
        runs = segmentize(result.ring(RingKind.OUTER).path)
        assert len(runs) == 4
        assert all(len(run.cells) == 28 for run in runs)
        for a, b in zip(runs, runs[1:]):
            assert a.cells[-1] == b.cells[0]

    def test_overlap_range(self):
        """Overlap is reported as (start, length)."""
        assert overlap_range([2, 3, 4, 5], [4, 5, 6]) == (4, 2)
        assert overlap_range([0, 1], [5, 6]) == (5, 0)


class TestTemplateCatalog:
    """Test template lookup."""

    def test_five_templates(self):
        """The catalog holds the five ring layouts."""
        assert list(TEMPLATES) == [
            "double_ring_2_bridges",
            "single_ring",
            "large_outer_small_inner_3_bridges",
            "irregular_double_ring",
            "square_ring",
        ]

    def test_lookup_by_id_and_name(self):
        """Templates resolve by id or display name."""
        assert get_template("single_ring") is get_template("SingleRing")

    def test_unknown_template(self):
        """Unknown ids raise a LookupError carrying the id."""
        with pytest.raises(TemplateNotFoundError) as exc_info:
            get_template("triple_ring")
        assert exc_info.value.template_id == "triple_ring"
        assert isinstance(exc_info.value, LookupError)

    def test_index_wraps(self):
        """Catalog indices wrap around."""
        assert get_template_by_index(5) is get_template_by_index(0)
        assert get_template_by_index(-1).id == "square_ring"

    def test_random_selection_is_seeded(self):
        """Selection uses exactly one draw from the given PRNG."""
        prng = LcgPRNG(11)
        template = select_random_template(prng)
        assert template is select_random_template(LcgPRNG(11))
        assert prng.call_count == 1

    def test_list_templates(self):
        """Summaries describe rings and bridge counts."""
        summaries = {s["id"]: s for s in list_templates()}
        assert len(summaries) == 5
        assert summaries["double_ring_2_bridges"]["rings"] == ["outer", "inner"]
        assert summaries["double_ring_2_bridges"]["bridges"] == 2
        assert summaries["single_ring"]["bridges"] == 0
