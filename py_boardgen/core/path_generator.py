"""
Free-form path generator.

Produces a road layout without a template by picking one of three shapes:

- square_ring: one jittered rectangular loop
- double_ring: two concentric loops joined by 2-3 bridges on one side
- snake: 3-5 straight runs turning 90 degrees clockwise after each run
"""

from dataclasses import dataclass
from typing import List, Set, Tuple

import structlog

from .grid import Cell, dedupe, draw_line
from .lcg_prng import LcgPRNG
from ..utils.random import rand_int

logger = structlog.get_logger()

SHAPES = ("square_ring", "double_ring", "snake")

# right, down, left, up with y growing upwards: each step is a clockwise turn
SNAKE_DIRECTIONS: Tuple[Tuple[int, int], ...] = ((1, 0), (0, -1), (-1, 0), (0, 1))


@dataclass(frozen=True)
class PathGenerationResult:
    """Ordered, deduplicated path cells with their classification."""

    shape: str
    cells: Tuple[Cell, ...]
    main_path: Tuple[Cell, ...]
    side_paths: Tuple[Tuple[Cell, ...], ...]
    corners: Tuple[Cell, ...]


class PathGenerator:
    """Generates a free-form road layout on a width x height grid."""

    def __init__(self, width: int, height: int, prng: LcgPRNG):
        self.width = width
        self.height = height
        self.prng = prng

    def generate(self) -> PathGenerationResult:
        """Pick a shape uniformly at random and build it."""
        shape = SHAPES[int(self.prng.random() * len(SHAPES))]
        if shape == "square_ring":
            result = self.square_ring()
        elif shape == "double_ring":
            result = self.double_ring()
        else:
            result = self.snake()

        logger.info(
            "Generated free-form paths",
            shape=shape,
            cells=len(result.cells),
            corners=len(result.corners),
        )
        return result

    def square_ring(self) -> PathGenerationResult:
        """
        Rectangular loop with a random 5-10 cell margin.

        Each edge is split into 8-12 steps; every intermediate waypoint is
        nudged by up to one cell per axis and consecutive waypoints are
        joined with axis-aligned lines.
        """
        margin = min(rand_int(self.prng, 5, 10), (min(self.width, self.height) - 4) // 2)
        corners = self._rectangle(margin)

        waypoints: List[Cell] = []
        for i, start in enumerate(corners):
            end = corners[(i + 1) % len(corners)]
            steps = rand_int(self.prng, 8, 12)
            waypoints.append(start)
            for k in range(1, steps):
                point = Cell(
                    start.x + round((end.x - start.x) * k / steps),
                    start.y + round((end.y - start.y) * k / steps),
                )
                jitter = Cell(
                    point.x + rand_int(self.prng, -1, 1),
                    point.y + rand_int(self.prng, -1, 1),
                )
                waypoints.append(self._clamp(jitter, 1))

        path = self._join(waypoints, closed=True)
        return PathGenerationResult(
            shape="square_ring",
            cells=tuple(path),
            main_path=tuple(path),
            side_paths=(),
            corners=tuple(corners),
        )

    def double_ring(self) -> PathGenerationResult:
        """
        Outer loop (margin 5-7) and inner loop (margin 12-15).

        The inner margin is shrunk to fit small maps; if the inner loop
        would touch or cross the outer one it is dropped, together with the
        bridges.
        """
        outer_margin = rand_int(self.prng, 5, 7)
        inner_margin = rand_int(self.prng, 12, 15)
        inner_margin = min(inner_margin, (min(self.width, self.height) - 4) // 2)

        outer_corners = self._rectangle(outer_margin)
        outer = self._join(outer_corners, closed=True)
        corners = list(outer_corners)
        side_paths: List[Tuple[Cell, ...]] = []
        cells = list(outer)

        if inner_margin - outer_margin >= 2:
            inner_corners = self._rectangle(inner_margin)
            inner = self._join(inner_corners, closed=True)
            side_paths.append(tuple(inner))
            corners.extend(inner_corners)
            cells.extend(inner)

            for bridge in self._bridges(outer_margin, inner_margin):
                side_paths.append(tuple(bridge))
                cells.extend(bridge)
        else:
            logger.debug(
                "Inner ring collapsed, building outer ring only",
                outer_margin=outer_margin,
                inner_margin=inner_margin,
            )

        return PathGenerationResult(
            shape="double_ring",
            cells=tuple(dedupe(cells)),
            main_path=tuple(outer),
            side_paths=tuple(side_paths),
            corners=tuple(corners),
        )

    def snake(self) -> PathGenerationResult:
        """3-5 straight runs of 8-15 cells, turning clockwise, kept 2 cells off the edge."""
        segments = rand_int(self.prng, 3, 5)
        current = self._clamp(Cell(2, self.height - 3), 2)
        path = [current]
        corners: List[Cell] = []

        for i in range(segments):
            dx, dy = SNAKE_DIRECTIONS[i % len(SNAKE_DIRECTIONS)]
            length = rand_int(self.prng, 8, 15)
            for _ in range(length):
                current = self._clamp(current.offset(dx, dy), 2)
                path.append(current)
            if i < segments - 1:
                corners.append(current)

        path = dedupe(path)
        return PathGenerationResult(
            shape="snake",
            cells=tuple(path),
            main_path=tuple(path),
            side_paths=(),
            corners=tuple(dedupe(corners)),
        )

    def validate_spacing(self, cells, min_spacing: int = 2) -> bool:
        """
        Check that parallel runs keep their distance.

        Returns False if a run longer than 4 cells has another road running
        alongside it closer than ``min_spacing`` cells.
        """
        road_set: Set[Cell] = set(cells)
        for cell in road_set:
            for offset in range(1, min_spacing):
                for axis, normal in (((1, 0), (0, 1)), ((0, 1), (1, 0))):
                    if not self._has_parallel(road_set, cell, normal, offset):
                        continue
                    length = 1
                    for step in range(1, 5):
                        nxt = cell.offset(axis[0] * step, axis[1] * step)
                        if nxt in road_set and self._has_parallel(
                            road_set, nxt, normal, offset
                        ):
                            length += 1
                        else:
                            break
                    if length > 4:
                        return False
        return True

    @staticmethod
    def _has_parallel(road_set: Set[Cell], cell: Cell, normal, offset: int) -> bool:
        return (
            cell.offset(normal[0] * offset, normal[1] * offset) in road_set
            or cell.offset(-normal[0] * offset, -normal[1] * offset) in road_set
        )

    def _rectangle(self, margin: int) -> List[Cell]:
        """Corners of the loop inset by margin, counter-clockwise from bottom-left."""
        left, right = margin, self.width - 1 - margin
        bottom, top = margin, self.height - 1 - margin
        return [Cell(left, bottom), Cell(right, bottom), Cell(right, top), Cell(left, top)]

    def _bridges(self, outer_margin: int, inner_margin: int) -> List[List[Cell]]:
        """2-3 straight links from the outer to the inner loop on one random side."""
        count = rand_int(self.prng, 2, 3)
        side = rand_int(self.prng, 0, 3)
        inner_lo = inner_margin + 1
        inner_hi_x = self.width - 2 - inner_margin
        inner_hi_y = self.height - 2 - inner_margin

        bridges = []
        for _ in range(count):
            if side in (0, 1):
                x = rand_int(self.prng, inner_lo, inner_hi_x)
                if side == 0:
                    start, end = Cell(x, outer_margin), Cell(x, inner_margin)
                else:
                    start = Cell(x, self.height - 1 - outer_margin)
                    end = Cell(x, self.height - 1 - inner_margin)
            else:
                y = rand_int(self.prng, inner_lo, inner_hi_y)
                if side == 2:
                    start, end = Cell(outer_margin, y), Cell(inner_margin, y)
                else:
                    start = Cell(self.width - 1 - outer_margin, y)
                    end = Cell(self.width - 1 - inner_margin, y)
            bridges.append(draw_line(start, end))
        return bridges

    def _join(self, waypoints: List[Cell], closed: bool) -> List[Cell]:
        path: List[Cell] = []
        count = len(waypoints) if closed else len(waypoints) - 1
        for i in range(count):
            path.extend(draw_line(waypoints[i], waypoints[(i + 1) % len(waypoints)]))
        return dedupe(path)

    def _clamp(self, cell: Cell, border: int) -> Cell:
        return Cell(
            max(border, min(self.width - 1 - border, cell.x)),
            max(border, min(self.height - 1 - border, cell.y)),
        )
