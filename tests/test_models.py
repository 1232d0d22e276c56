"""
Tests for grid primitives and the generation parameter model.
"""

import pytest
from pydantic import ValidationError

from py_boardgen.core.grid import (
    Cell,
    draw_line,
    footprint,
    in_interior,
    iter_cells,
    manhattan_stitch,
)
from py_boardgen.core.models import (
    GenerationMode,
    GenerationParameters,
    Parcel,
    ParcelSize,
    SpecialCategory,
)


class TestGrid:
    """Test cell helpers."""

    def test_cell_key_round_trip(self):
        """The legacy string key parses back to the same cell."""
        cell = Cell(12, 7)
        assert cell.key == "12_7"
        assert Cell.from_key("12_7") == cell

    def test_draw_line_moves_x_first(self):
        """Lines are 4-connected and include both endpoints."""
        line = draw_line(Cell(0, 0), Cell(2, 2))
        assert line == [Cell(0, 0), Cell(1, 0), Cell(2, 0), Cell(2, 1), Cell(2, 2)]

    def test_manhattan_stitch_excludes_target(self):
        """The stitch stops one step short of its target."""
        stitch = manhattan_stitch(Cell(3, 0), Cell(0, 0))
        assert stitch == [Cell(3, 0), Cell(2, 0), Cell(1, 0)]

    def test_footprint(self):
        """2x2 footprints grow right and up from the anchor."""
        assert footprint(Cell(4, 4), 1) == [Cell(4, 4)]
        assert set(footprint(Cell(4, 4), 2)) == {
            Cell(4, 4),
            Cell(5, 4),
            Cell(4, 5),
            Cell(5, 5),
        }

    def test_interior(self):
        """Border cells are not interior."""
        assert in_interior(Cell(1, 1), 10, 10)
        assert not in_interior(Cell(0, 5), 10, 10)
        assert not in_interior(Cell(9, 5), 10, 10)

    def test_iter_cells_row_major(self):
        """Rows are iterated bottom to top, x fastest."""
        cells = list(iter_cells(3, 2))
        assert cells[:4] == [Cell(0, 0), Cell(1, 0), Cell(2, 0), Cell(0, 1)]
        assert len(cells) == 6


class TestGenerationParameters:
    """Test parameter defaults, clamping and presets."""

    def test_defaults(self):
        """Default parameters describe a 40x40 classic board."""
        params = GenerationParameters()
        assert params.mode == GenerationMode.CLASSIC_TEMPLATE
        assert (params.width, params.height) == (40, 40)
        assert params.start_positions == [Cell(0, 0)]
        assert set(params.special_tile_categories) == set(SpecialCategory)

    def test_dimensions_clamped(self):
        """Width and height are clamped into [20, 100]."""
        params = GenerationParameters(width=150, height=5)
        assert params.width == 100
        assert params.height == 20

    def test_ratios_clamped(self):
        """Ratios outside their bounds are clamped, not rejected."""
        params = GenerationParameters(
            road_density=0.9,
            parcel_ratio=0.01,
            parcel_2x2_ratio=0.8,
            special_tile_ratio=0.5,
            min_parcel_spacing=9,
            traffic_rounds=10,
        )
        assert params.road_density == 0.4
        assert params.parcel_ratio == 0.1
        assert params.parcel_2x2_ratio == 0.5
        assert params.special_tile_ratio == 0.2
        assert params.min_parcel_spacing == 5
        assert params.traffic_rounds == 100

    def test_start_positions_clamped_into_grid(self):
        """Start positions outside the grid are pulled onto its edge."""
        params = GenerationParameters(width=30, height=30, start_positions=[(500, -3)])
        assert params.start_positions == [Cell(29, 0)]

    def test_empty_start_positions_default(self):
        """An empty start list falls back to the origin."""
        params = GenerationParameters(start_positions=[])
        assert params.start_positions == [Cell(0, 0)]

    def test_empty_categories_means_all(self):
        """An empty category list enables every category."""
        params = GenerationParameters(special_tile_categories=[])
        assert len(params.special_tile_categories) == len(SpecialCategory)

    def test_preset(self):
        """Presets fill in values and accept overrides."""
        params = GenerationParameters.from_preset("medium", seed=5)
        assert params.width == 50
        assert params.seed == 5

    def test_unknown_preset(self):
        """Unknown presets are rejected."""
        with pytest.raises(ValueError):
            GenerationParameters.from_preset("gigantic")


class TestParcel:
    """Test the parcel model."""

    def test_cells_follow_size(self):
        """A parcel covers its footprint."""
        small = Parcel(anchor=Cell(3, 3))
        large = Parcel(anchor=Cell(3, 3), size=ParcelSize.LARGE)
        assert small.cells == [Cell(3, 3)]
        assert len(large.cells) == 4

    def test_parcels_are_frozen(self):
        """Parcels are immutable; updates go through copies."""
        parcel = Parcel(anchor=Cell(1, 1), value=700)
        with pytest.raises(ValidationError):
            parcel.value = 800
        updated = parcel.model_copy(update={"price_coefficient": 1.5})
        assert updated.price_coefficient == 1.5
        assert parcel.price_coefficient == 1.0
