"""
Tests for free-form path generation and the road network engine.
"""

import pytest

from py_boardgen.core.grid import Cell, draw_line, in_bounds
from py_boardgen.core.lcg_prng import LcgPRNG
from py_boardgen.core.path_generator import SHAPES, PathGenerator
from py_boardgen.core.road_network import (
    RoadNetwork,
    RoadNetworkMode,
    build_network_data,
    connect_components,
    find_components,
    nearest_pair,
)


class TestPathGenerator:
    """Test the free-form path shapes."""

    @pytest.mark.parametrize("seed", range(1, 31))
    def test_generate_any_shape(self, seed):
        """Generated paths are unique, in bounds and connected."""
        result = PathGenerator(40, 40, LcgPRNG(seed)).generate()
        assert result.shape in SHAPES
        assert result.cells
        assert len(result.cells) == len(set(result.cells))
        assert all(in_bounds(c, 40, 40) for c in result.cells)
        assert set(result.main_path) <= set(result.cells)
        assert len(find_components(result.cells)) == 1

    @pytest.mark.parametrize("size", [20, 40, 70])
    def test_square_ring_is_closed_loop(self, size):
        """The jittered square ring forms one connected loop."""
        result = PathGenerator(size, size, LcgPRNG(size)).square_ring()
        assert result.shape == "square_ring"
        assert len(find_components(result.cells)) == 1
        assert all(in_bounds(c, size, size) for c in result.cells)

    def test_double_ring_has_inner_loop_and_bridges(self):
        """On a roomy map the inner loop is bridged to the outer loop."""
        result = PathGenerator(60, 60, LcgPRNG(21)).double_ring()
        assert result.shape == "double_ring"
        assert len(result.side_paths) >= 3
        assert len(find_components(result.cells)) == 1

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_double_ring_on_small_map(self, seed):
        """Small maps still produce a usable layout."""
        result = PathGenerator(20, 20, LcgPRNG(seed)).double_ring()
        assert result.cells
        assert all(in_bounds(c, 20, 20) for c in result.cells)

    def test_snake_keeps_off_the_edge(self):
        """Snake paths stay at least two cells away from the border."""
        result = PathGenerator(30, 30, LcgPRNG(4)).snake()
        assert result.shape == "snake"
        for cell in result.cells:
            assert 2 <= cell.x <= 27
            assert 2 <= cell.y <= 27

    def test_validate_spacing(self):
        """Long runs closer than the minimum spacing are reported."""
        generator = PathGenerator(20, 20, LcgPRNG(1))
        line = draw_line(Cell(0, 5), Cell(9, 5))
        adjacent = draw_line(Cell(0, 6), Cell(9, 6))
        distant = draw_line(Cell(0, 8), Cell(9, 8))

        assert generator.validate_spacing(line)
        assert not generator.validate_spacing(line + adjacent)
        assert generator.validate_spacing(line + distant)


class TestNetworkHelpers:
    """Test connectivity repair and classification."""

    def test_find_components(self):
        """Separate blobs are separate components."""
        roads = [Cell(0, 0), Cell(1, 0), Cell(5, 5), Cell(5, 6)]
        components = find_components(roads)
        assert len(components) == 2
        assert sorted(len(c) for c in components) == [2, 2]

    def test_nearest_pair(self):
        """The globally nearest pair is returned."""
        source = [Cell(0, 0), Cell(4, 0)]
        target = [Cell(9, 0), Cell(6, 0)]
        assert nearest_pair(source, target) == (Cell(4, 0), Cell(6, 0))

    def test_connect_components_stitch(self):
        """The stitch walks towards the largest component and stops before it."""
        added = connect_components([Cell(0, 0), Cell(3, 0)])
        assert set(added) == {Cell(2, 0), Cell(1, 0)}

    def test_build_network_data_repairs_connectivity(self):
        """Disjoint segments become a single component."""
        roads = draw_line(Cell(2, 2), Cell(10, 2)) + draw_line(Cell(2, 8), Cell(10, 8))
        network = build_network_data(roads, main_roads=draw_line(Cell(2, 2), Cell(10, 2)))

        assert len(find_components(network.roads)) == 1
        assert len(network.roads) > len(roads)
        assert set(network.main_roads) == set(draw_line(Cell(2, 2), Cell(10, 2)))
        assert set(network.main_roads).isdisjoint(network.side_roads)
        assert len(network.main_roads) + len(network.side_roads) == len(network)

    def test_intersections_and_adjacency(self):
        """Cells with three or more road neighbours are intersections."""
        plus = [Cell(5, 5), Cell(4, 5), Cell(6, 5), Cell(5, 4), Cell(5, 6)]
        network = build_network_data(plus)
        assert network.intersections == (Cell(5, 5),)
        assert set(network.adjacency[Cell(5, 5)]) == set(plus[1:])
        assert network.adjacency[Cell(4, 5)] == (Cell(5, 5),)

    def test_adjacency_is_read_only(self):
        """The adjacency mapping cannot be mutated."""
        network = build_network_data([Cell(0, 0), Cell(1, 0)])
        with pytest.raises(TypeError):
            network.adjacency[Cell(2, 0)] = ()

    def test_empty_network(self):
        """No roads, no components."""
        network = build_network_data([])
        assert len(network) == 0
        assert network.intersections == ()


class TestRoadNetwork:
    """Test the procedural road network engine."""

    @pytest.mark.parametrize("mode", list(RoadNetworkMode))
    @pytest.mark.parametrize("seed", [1, 17, 99, 2024])
    def test_single_component(self, mode, seed):
        """Every generated network is connected and in bounds."""
        network = RoadNetwork(40, 40, LcgPRNG(seed), road_density=0.2, mode=mode).generate()
        assert network.roads
        assert len(find_components(network.roads)) == 1
        assert all(in_bounds(c, 40, 40) for c in network.roads)
        assert set(network.main_roads) <= set(network.roads)

    def test_ring_radial_has_main_roads(self):
        """The ring and inner spokes are main roads."""
        network = RoadNetwork(40, 40, LcgPRNG(5), mode=RoadNetworkMode.RING_RADIAL).generate()
        assert network.main_roads
        assert Cell(20, 20) in network.main_set
        assert network.intersections

    def test_growth_roads_are_side_roads(self):
        """Growth mode produces side roads only."""
        network = RoadNetwork(40, 40, LcgPRNG(5), mode=RoadNetworkMode.GROWTH).generate()
        assert network.main_roads == ()
        assert network.side_roads == network.roads

    def test_deterministic(self):
        """Same seed, same network."""
        a = RoadNetwork(30, 30, LcgPRNG(8), mode="growth").generate()
        b = RoadNetwork(30, 30, LcgPRNG(8), mode="growth").generate()
        assert a.roads == b.roads
