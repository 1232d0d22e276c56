"""
Data model for board generation.

Parameter and record types shared by every generation step. Records that
leave the engine (parcels, special tiles, regions, tiles, statistics) are
frozen pydantic models; grid-shaped results are frozen dataclasses backed
by NumPy arrays.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import (
    Annotated,
    Dict,
    FrozenSet,
    List,
    Literal,
    Mapping,
    Optional,
    Tuple,
    Union,
)

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .grid import Cell, footprint

logger = structlog.get_logger()

# Colour groups assigned to street regions, in assignment order
COLOR_GROUPS: Tuple[str, ...] = (
    "brown",
    "lightblue",
    "pink",
    "orange",
    "red",
    "yellow",
    "green",
    "darkblue",
)

MIN_PRICE_COEFFICIENT = 0.5
MAX_PRICE_COEFFICIENT = 2.0


class GenerationMode(str, Enum):
    """Top-level generation strategy."""

    CLASSIC_TEMPLATE = "classic"
    FREE_FORM = "free_form"


class RoadStyle(str, Enum):
    """Road engine used in free-form mode."""

    PATHS = "paths"
    RING_RADIAL = "ring_radial"
    GROWTH = "growth"


class SpecialCategory(str, Enum):
    """Special tile categories."""

    HOSPITAL = "hospital"
    CHANCE = "chance"
    NEWS = "news"
    BONUS = "bonus"
    FEE = "fee"
    CARD = "card"


class ParcelSize(int, Enum):
    SMALL = 1
    LARGE = 2


# name -> (bounds, description) for the clamped numeric parameters
_CLAMPED_FIELDS: Dict[str, Tuple[float, float]] = {
    "width": (20, 100),
    "height": (20, 100),
    "road_density": (0.1, 0.4),
    "parcel_ratio": (0.1, 0.5),
    "parcel_2x2_ratio": (0.0, 0.5),
    "min_parcel_spacing": (0, 5),
    "special_tile_ratio": (0.0, 0.2),
    "traffic_rounds": (100, 10000),
}

_PRESETS: Dict[str, Dict] = {
    "small": {"width": 30, "height": 30, "road_density": 0.2, "parcel_ratio": 0.3},
    "medium": {"width": 50, "height": 50, "road_density": 0.25, "parcel_ratio": 0.35},
    "large": {"width": 80, "height": 80, "road_density": 0.3, "parcel_ratio": 0.4},
    "classic": {"mode": GenerationMode.CLASSIC_TEMPLATE, "width": 40, "height": 40},
}


class GenerationParameters(BaseModel):
    """
    Board generation parameters.

    Out-of-range values are clamped to their documented bounds (with a
    warning) instead of being rejected.
    """

    mode: GenerationMode = Field(
        default=GenerationMode.CLASSIC_TEMPLATE, description="Generation strategy"
    )
    template_id: Optional[str] = Field(
        default=None, description="Template id or name (classic mode, random if unset)"
    )
    template_index: Optional[int] = Field(
        default=None, description="Template catalog index (classic mode)"
    )
    road_style: RoadStyle = Field(
        default=RoadStyle.PATHS, description="Road engine for free-form mode"
    )
    width: int = Field(default=40, description="Grid width in cells (20-100)")
    height: int = Field(default=40, description="Grid height in cells (20-100)")
    seed: Optional[int] = Field(
        default=None, description="Random seed; wall-clock derived if unset or 0"
    )
    road_density: float = Field(default=0.2, description="Road density (0.1-0.4)")
    parcel_ratio: float = Field(
        default=0.3, description="Upper bound of parcel count over non-road cells (0.1-0.5)"
    )
    parcel_2x2_ratio: float = Field(
        default=0.15, description="Probability of a 2x2 parcel in free placement (0-0.5)"
    )
    min_parcel_spacing: int = Field(
        default=0, description="Minimum free ring around free-placed parcels (0-5)"
    )
    special_tile_ratio: float = Field(
        default=0.2, description="Upper special tile share of leftover road cells (0-0.2)"
    )
    special_tile_categories: List[SpecialCategory] = Field(
        default_factory=lambda: list(SpecialCategory),
        description="Categories special tiles are drawn from",
    )
    traffic_rounds: int = Field(
        default=1000, description="Monte-Carlo simulation rounds (100-10000)"
    )
    start_positions: List[Cell] = Field(
        default_factory=lambda: [Cell(0, 0)],
        description="Simulation start cells",
    )

    @model_validator(mode="after")
    def clamp_to_bounds(self) -> "GenerationParameters":
        for name, (low, high) in _CLAMPED_FIELDS.items():
            value = getattr(self, name)
            if value < low or value > high:
                clamped = type(value)(max(low, min(high, value)))
                logger.warning(
                    "Parameter out of range, clamped",
                    parameter=name,
                    value=value,
                    clamped=clamped,
                )
                setattr(self, name, clamped)

        if not self.special_tile_categories:
            self.special_tile_categories = list(SpecialCategory)

        if not self.start_positions:
            self.start_positions = [Cell(0, 0)]
        self.start_positions = [
            Cell(
                max(0, min(self.width - 1, pos.x)),
                max(0, min(self.height - 1, pos.y)),
            )
            for pos in self.start_positions
        ]
        return self

    @classmethod
    def from_preset(cls, preset: str, **overrides) -> "GenerationParameters":
        """Build parameters from a named preset (small, medium, large, classic)."""
        if preset not in _PRESETS:
            raise ValueError(
                f"Unknown preset '{preset}'. Available: {', '.join(_PRESETS)}"
            )
        values = dict(_PRESETS[preset])
        values.update(overrides)
        return cls(**values)


class Parcel(BaseModel):
    """A purchasable parcel (1x1 or 2x2)."""

    model_config = ConfigDict(frozen=True)

    anchor: Cell = Field(description="Grid cell (bottom-left corner for 2x2)")
    size: ParcelSize = Field(default=ParcelSize.SMALL, description="Edge length in cells")
    value: int = Field(default=0, description="Base purchase value")
    price_coefficient: float = Field(default=1.0, description="Traffic price multiplier")
    region_id: Optional[int] = Field(default=None, description="Owning street region")
    color_group: Optional[str] = Field(default=None, description="Monopoly colour group")

    @property
    def cells(self) -> List[Cell]:
        return footprint(self.anchor, int(self.size))


class SpecialTile(BaseModel):
    """A special-effect tile placed on a road cell."""

    model_config = ConfigDict(frozen=True)

    cell: Cell = Field(description="Grid cell")
    category: SpecialCategory = Field(description="Tile category")
    payload: int = Field(default=0, description="Category-specific amount")


class StreetRegion(BaseModel):
    """Connected component of non-road cells grouped as one street."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Contiguous region id")
    cells: Tuple[Cell, ...] = Field(description="Member cells")
    centroid: Cell = Field(description="Floored mean of member cells")
    parcels: Tuple[Parcel, ...] = Field(default=(), description="Parcels inside the region")
    color_group: Optional[str] = Field(default=None, description="Assigned colour group")


class RoadTile(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["road"] = "road"
    cell: Cell
    is_main: bool = False
    is_intersection: bool = False
    hotness: float = 0.0


class ParcelTile(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["parcel"] = "parcel"
    cell: Cell
    anchor: Cell
    size: ParcelSize
    price_coefficient: float
    region_id: Optional[int] = None
    color_group: Optional[str] = None


class SpecialTileCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["special"] = "special"
    cell: Cell
    category: SpecialCategory
    payload: int = 0


class EmptyTile(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"
    cell: Cell
    region_id: Optional[int] = None
    hotness: float = 0.0


Tile = Annotated[
    Union[RoadTile, ParcelTile, SpecialTileCell, EmptyTile],
    Field(discriminator="kind"),
]


@dataclass(frozen=True)
class RoadNetworkData:
    """
    Road cells with their classification and adjacency.

    ``adjacency`` is read-only: consumers use it as graph input and never
    mutate it.
    """

    roads: Tuple[Cell, ...]
    main_roads: Tuple[Cell, ...]
    side_roads: Tuple[Cell, ...]
    intersections: Tuple[Cell, ...]
    adjacency: Mapping[Cell, Tuple[Cell, ...]]

    @cached_property
    def road_set(self) -> FrozenSet[Cell]:
        return frozenset(self.roads)

    @cached_property
    def main_set(self) -> FrozenSet[Cell]:
        return frozenset(self.main_roads)

    @cached_property
    def intersection_set(self) -> FrozenSet[Cell]:
        return frozenset(self.intersections)

    def __len__(self) -> int:
        return len(self.roads)


@dataclass(frozen=True)
class TrafficResult:
    """Traffic simulation output; grids are indexed ``[y, x]``."""

    hotness: np.ndarray
    percentile: np.ndarray
    price_coefficients: np.ndarray
    hot_spots: Tuple[Cell, ...] = ()
    cold_spots: Tuple[Cell, ...] = ()

    def hotness_at(self, cell: Cell) -> float:
        return float(self.hotness[cell.y, cell.x])

    def percentile_at(self, cell: Cell) -> float:
        return float(self.percentile[cell.y, cell.x])

    def price_coefficient_at(self, cell: Cell) -> float:
        return float(self.price_coefficients[cell.y, cell.x])

    @property
    def average_hotness(self) -> float:
        return float(self.hotness.mean()) if self.hotness.size else 0.0


class BoardStatistics(BaseModel):
    """Summary counts and densities of a generated board."""

    model_config = ConfigDict(frozen=True)

    total_tiles: int
    road_count: int
    parcel_tile_count: int
    special_tile_count: int
    empty_count: int
    parcel_count: int
    parcel_1x1_count: int
    parcel_2x2_count: int
    special_counts: Dict[str, int] = Field(default_factory=dict)
    group_parcel_counts: Dict[str, int] = Field(default_factory=dict)
    region_count: int = 0
    average_region_size: float = 0.0
    road_density: float = 0.0
    parcel_density: float = 0.0
    average_traffic_hotness: float = 0.0
    hot_spot_count: int = 0
    cold_spot_count: int = 0


@dataclass(frozen=True)
class GenerationResult:
    """Complete, self-consistent output of one generation call."""

    width: int
    height: int
    seed: int
    mode: GenerationMode
    tiles: Tuple[Tile, ...]
    parcels: Tuple[Parcel, ...]
    special_tiles: Tuple[SpecialTile, ...]
    road_network: RoadNetworkData
    regions: Tuple[StreetRegion, ...]
    traffic: TrafficResult
    statistics: BoardStatistics
    template_id: Optional[str] = None
    road_style: Optional[RoadStyle] = None
    shape: Optional[str] = field(default=None)

    def tile_at(self, cell: Cell) -> Tile:
        """Tiles are stored row by row."""
        return self.tiles[cell.y * self.width + cell.x]

    def cells_of_kind(self, kind: str) -> FrozenSet[Cell]:
        return frozenset(tile.cell for tile in self.tiles if tile.kind == kind)
