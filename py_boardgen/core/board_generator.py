"""
Board generation pipeline.

Runs the generation stages in order for one set of parameters:

- Resolve the seed and (classic mode) the template
- Build roads from the template, the free-form path generator or the
  road network engine
- Place parcels, then special tiles on the remaining road cells
- Segment streets and assign colour groups
- Simulate traffic and price parcels from it
- Assemble one tile per cell and summarize the board
"""

from collections import Counter
from enum import Enum
from typing import Callable, Dict, List, Optional

import structlog

from .grid import Cell, iter_cells
from .lcg_prng import LcgPRNG
from .models import (
    BoardStatistics,
    EmptyTile,
    GenerationMode,
    GenerationParameters,
    GenerationResult,
    Parcel,
    ParcelSize,
    ParcelTile,
    RoadNetworkData,
    RoadStyle,
    RoadTile,
    SpecialTile,
    SpecialTileCell,
    StreetRegion,
    TrafficResult,
)
from .parcel_placer import RandomParcelPlacer
from .path_generator import PathGenerator
from .road_network import RoadNetwork, RoadNetworkMode, build_network_data
from .rule_based_placer import RuleBasedParcelPlacer
from .special_tiles import SpecialTilePlacer, category_counts
from .street_segmenter import StreetSegmenter
from .template_builder import BoardTemplate, RingKind, TemplateBuilder
from .traffic_analyzer import TrafficAnalyzer
from ..config import board_templates

logger = structlog.get_logger()


class GenerationStage(str, Enum):
    """Pipeline stages, in the order they complete."""

    UNCONFIGURED = "unconfigured"
    VALIDATED = "validated"
    ROADS_BUILT = "roads_built"
    PARCELS_PLACED = "parcels_placed"
    SPECIAL_TILES_PLACED = "special_tiles_placed"
    SEGMENTED = "segmented"
    TRAFFIC_ANALYZED = "traffic_analyzed"
    ASSEMBLED = "assembled"


class GenerationCancelled(RuntimeError):
    """Raised when the caller's cancellation check fires between stages."""

    def __init__(self, stage: GenerationStage):
        self.stage = stage
        super().__init__(f"Board generation cancelled after stage '{stage.value}'")


class BoardGenerator:
    """
    Generates one board from GenerationParameters.

    Every call to generate() owns a fresh PRNG seeded from the parameters,
    so an explicit seed always yields the same result.
    """

    def __init__(self, params: GenerationParameters):
        self.params = params
        self.stage = GenerationStage.UNCONFIGURED

    def _complete(
        self, stage: GenerationStage, should_cancel: Optional[Callable[[], bool]], **fields
    ) -> None:
        self.stage = stage
        logger.info("Generation stage complete", stage=stage.value, **fields)
        if should_cancel is not None and should_cancel():
            logger.info("Generation cancelled", stage=stage.value)
            raise GenerationCancelled(stage)

    def resolve_template(self, prng: LcgPRNG) -> BoardTemplate:
        """
        Pick the template for classic mode.

        An explicit id or name wins, then an explicit index; otherwise one
        draw from the PRNG selects it.

        Raises:
            TemplateNotFoundError: If the requested id is not in the catalog
        """
        if self.params.template_id:
            return board_templates.get_template(self.params.template_id)
        if self.params.template_index is not None:
            return board_templates.get_template_by_index(self.params.template_index)
        return board_templates.select_random_template(prng)

    def generate(
        self, should_cancel: Optional[Callable[[], bool]] = None
    ) -> GenerationResult:
        """
        Run the full pipeline.

        Args:
            should_cancel: Optional callable checked after each stage

        Returns:
            GenerationResult

        Raises:
            TemplateNotFoundError: Unknown template, before any generation work
            GenerationCancelled: If should_cancel returned True
        """
        params = self.params
        seed = LcgPRNG.resolve_seed(params.seed)
        prng = LcgPRNG(seed)
        width, height = params.width, params.height

        template = None
        if params.mode == GenerationMode.CLASSIC_TEMPLATE:
            template = self.resolve_template(prng)
        self._complete(
            GenerationStage.VALIDATED,
            should_cancel,
            seed=seed,
            mode=params.mode.value,
            template=template.id if template else None,
        )

        shape = None
        outer_ring = None
        if template is not None:
            built = TemplateBuilder(width, height, prng).build(template)
            outer_ring = built.ring(RingKind.OUTER)
            network = build_network_data(
                built.roads, outer_ring.path if outer_ring else ()
            )
        elif params.road_style == RoadStyle.PATHS:
            paths = PathGenerator(width, height, prng).generate()
            shape = paths.shape
            network = build_network_data(paths.cells, paths.main_path)
        else:
            network = RoadNetwork(
                width,
                height,
                prng,
                road_density=params.road_density,
                mode=RoadNetworkMode(params.road_style.value),
            ).generate()
        self._complete(GenerationStage.ROADS_BUILT, should_cancel, roads=len(network))

        if template is not None:
            placer = RuleBasedParcelPlacer(
                width, height, network.roads, outer_ring, template, prng
            )
        else:
            placer = RandomParcelPlacer(
                width,
                height,
                network.roads,
                prng,
                parcel_ratio=params.parcel_ratio,
                parcel_2x2_ratio=params.parcel_2x2_ratio,
                min_parcel_spacing=params.min_parcel_spacing,
            )
        parcels = [
            p for p in placer.place() if not any(c in network.road_set for c in p.cells)
        ]
        self._complete(GenerationStage.PARCELS_PLACED, should_cancel, parcels=len(parcels))

        special_tiles = SpecialTilePlacer(
            prng, params.special_tile_ratio, params.special_tile_categories
        ).place(network.roads, parcels)
        self._complete(
            GenerationStage.SPECIAL_TILES_PLACED, should_cancel, special_tiles=len(special_tiles)
        )

        segmenter = StreetSegmenter(width, height)
        segmenter.segment(network.roads, parcels)
        parcels = segmenter.label_parcels(parcels)
        self._complete(
            GenerationStage.SEGMENTED, should_cancel, regions=len(segmenter.regions)
        )

        traffic = TrafficAnalyzer(
            width, height, prng, params.traffic_rounds, params.start_positions
        ).analyze(network)
        parcels = [
            p.model_copy(
                update={"price_coefficient": traffic.price_coefficient_at(p.anchor)}
            )
            for p in parcels
        ]
        regions = segmenter.with_parcels(parcels)
        self._complete(GenerationStage.TRAFFIC_ANALYZED, should_cancel)

        tiles = assemble_tiles(width, height, network, parcels, special_tiles, regions, traffic)
        statistics = compute_statistics(
            width, height, tiles, network, parcels, special_tiles, regions, traffic
        )
        result = GenerationResult(
            width=width,
            height=height,
            seed=seed,
            mode=params.mode,
            tiles=tuple(tiles),
            parcels=tuple(parcels),
            special_tiles=tuple(special_tiles),
            road_network=network,
            regions=tuple(regions),
            traffic=traffic,
            statistics=statistics,
            template_id=template.id if template else None,
            road_style=None if template else params.road_style,
            shape=shape,
        )
        self._complete(GenerationStage.ASSEMBLED, None, tiles=len(tiles))
        return result


def assemble_tiles(
    width: int,
    height: int,
    network: RoadNetworkData,
    parcels: List[Parcel],
    special_tiles: List[SpecialTile],
    regions: List[StreetRegion],
    traffic: TrafficResult,
) -> List:
    """
    One tile per cell, row by row.

    A cell claimed by several layers resolves as special > parcel > road >
    empty.
    """
    specials: Dict[Cell, SpecialTile] = {t.cell: t for t in special_tiles}
    parcel_cells: Dict[Cell, Parcel] = {c: p for p in parcels for c in p.cells}
    region_of: Dict[Cell, int] = {c: r.id for r in regions for c in r.cells}

    tiles = []
    for cell in iter_cells(width, height):
        if cell in specials:
            special = specials[cell]
            tiles.append(
                SpecialTileCell(cell=cell, category=special.category, payload=special.payload)
            )
        elif cell in parcel_cells:
            parcel = parcel_cells[cell]
            tiles.append(
                ParcelTile(
                    cell=cell,
                    anchor=parcel.anchor,
                    size=parcel.size,
                    price_coefficient=parcel.price_coefficient,
                    region_id=parcel.region_id,
                    color_group=parcel.color_group,
                )
            )
        elif cell in network.road_set:
            tiles.append(
                RoadTile(
                    cell=cell,
                    is_main=cell in network.main_set,
                    is_intersection=cell in network.intersection_set,
                    hotness=traffic.hotness_at(cell),
                )
            )
        else:
            tiles.append(
                EmptyTile(
                    cell=cell, region_id=region_of.get(cell), hotness=traffic.hotness_at(cell)
                )
            )
    return tiles


def compute_statistics(
    width: int,
    height: int,
    tiles: List,
    network: RoadNetworkData,
    parcels: List[Parcel],
    special_tiles: List[SpecialTile],
    regions: List[StreetRegion],
    traffic: TrafficResult,
) -> BoardStatistics:
    total = width * height
    kinds = Counter(tile.kind for tile in tiles)
    groups = Counter(p.color_group for p in parcels if p.color_group)
    large = sum(1 for p in parcels if p.size == ParcelSize.LARGE)

    return BoardStatistics(
        total_tiles=len(tiles),
        road_count=kinds.get("road", 0),
        parcel_tile_count=kinds.get("parcel", 0),
        special_tile_count=kinds.get("special", 0),
        empty_count=kinds.get("empty", 0),
        parcel_count=len(parcels),
        parcel_1x1_count=len(parcels) - large,
        parcel_2x2_count=large,
        special_counts=category_counts(special_tiles),
        group_parcel_counts=dict(sorted(groups.items())),
        region_count=len(regions),
        average_region_size=(
            sum(len(r.cells) for r in regions) / len(regions) if regions else 0.0
        ),
        road_density=len(network.roads) / total,
        parcel_density=kinds.get("parcel", 0) / total,
        average_traffic_hotness=traffic.average_hotness,
        hot_spot_count=len(traffic.hot_spots),
        cold_spot_count=len(traffic.cold_spots),
    )


def generate_board(
    params: GenerationParameters, should_cancel: Optional[Callable[[], bool]] = None
) -> GenerationResult:
    """Generate a board for the given parameters."""
    return BoardGenerator(params).generate(should_cancel)
