"""
Rule-based parcel placement along a template's outer ring.

The outer ring is cut into maximal straight segments. Parcels are placed
in four passes:

1. Large (2x2) parcels on the outer side of long straight segments
2. Small (1x1) parcels on both sides at a random 2-3 cell rhythm
3. Corner correction, thinning parcels that crowd a ring corner
4. Booster, refilling short segments when too few small parcels landed
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

import structlog

from .grid import Cell, footprint, in_interior, neighbors
from .lcg_prng import LcgPRNG
from .models import Parcel, ParcelSize
from .parcel_placer import draw_parcel_value
from .template_builder import BoardTemplate, BuiltRing, segmentize
from ..utils.random import rand_int

logger = structlog.get_logger()

OUTER = 1
INNER = -1

# Segments at least this long keep a one-cell gap to each corner
LONG_SEGMENT = 7
# Corners between two segments this short may keep one close pair
SHORT_SEGMENT = 5
# Same-side parcels must be at least this many indices apart
SAME_SIDE_GAP = 2


@dataclass(frozen=True)
class RingSegment:
    """Maximal straight run of the ring; both end cells are ring corners."""

    index: int
    cells: Tuple[Cell, ...]
    direction: Tuple[int, int]
    normal: Tuple[int, int]

    def __len__(self) -> int:
        return len(self.cells)

    def side_cell(self, i: int, side: int) -> Cell:
        """Cell next to position i on the given side (OUTER or INNER)."""
        return self.cells[i].offset(self.normal[0] * side, self.normal[1] * side)


def rotate_to_corner(path: List[Cell]) -> List[Cell]:
    """Rotate a cyclic path so it starts at its first direction change."""
    n = len(path)
    if n > 1 and path[-1] == path[0]:
        path = path[:-1]
        n -= 1
    for i in range(n):
        prev, cur, nxt = path[i - 1], path[i], path[(i + 1) % n]
        d_in = (cur.x - prev.x, cur.y - prev.y)
        d_out = (nxt.x - cur.x, nxt.y - cur.y)
        if d_in != d_out:
            return path[i:] + path[:i]
    return list(path)


def outward_normal(ring: BuiltRing, cell: Cell, direction: Tuple[int, int]) -> Tuple[int, int]:
    """Normal pointing away from the ring interior, judged from the bounding box."""
    bbox = ring.bbox
    if direction[0] != 0:
        if cell.y == bbox.min_y:
            return (0, -1)
        if cell.y == bbox.max_y:
            return (0, 1)
        return (0, -1) if cell.y < (bbox.min_y + bbox.max_y) / 2 else (0, 1)
    if cell.x == bbox.min_x:
        return (-1, 0)
    if cell.x == bbox.max_x:
        return (1, 0)
    return (-1, 0) if cell.x < (bbox.min_x + bbox.max_x) / 2 else (1, 0)


def split_ring(ring: BuiltRing) -> List[RingSegment]:
    """Cut a built ring into straight segments with their outward normals."""
    path = rotate_to_corner(list(ring.path))
    segments = []
    for idx, run in enumerate(segmentize(tuple(path))):
        sample = run.cells[1] if len(run.cells) > 2 else run.cells[0]
        segments.append(
            RingSegment(
                index=idx,
                cells=tuple(run.cells),
                direction=run.direction,
                normal=outward_normal(ring, sample, run.direction),
            )
        )
    return segments


class RuleBasedParcelPlacer:
    """
    Places parcels along the outer ring of a built template.

    Args:
        width: Grid width
        height: Grid height
        roads: All road cells of the built template
        ring: The template's built outer ring
        template: Template providing the placement quotas
        prng: Shared generation PRNG
    """

    def __init__(
        self,
        width: int,
        height: int,
        roads: Iterable[Cell],
        ring: Optional[BuiltRing],
        template: BoardTemplate,
        prng: LcgPRNG,
    ):
        self.width = width
        self.height = height
        self.road_set: Set[Cell] = set(roads)
        self.ring = ring
        self.template = template
        self.prng = prng

        self.segments: List[RingSegment] = split_ring(ring) if ring and ring.path else []
        self.ring_length = len(ring.path) if ring else 0
        self.occupied: Set[Cell] = set()
        # (segment index, side) -> {path index: parcel}
        self.taken: Dict[Tuple[int, int], Dict[int, Parcel]] = {}
        self.buffers: Dict[Tuple[int, int], Set[int]] = {}

    def place(self) -> List[Parcel]:
        """Run all passes and return large parcels followed by small ones."""
        self.occupied = set()
        self.taken = {}
        self.buffers = {}
        if not self.segments:
            logger.debug("No outer ring to place parcels on", template=self.template.id)
            return []

        large = self.place_large()
        small_cap = int(self.template.small_parcels.ratio[1] * self.ring_length)
        small_min = int(self.template.small_parcels.ratio[0] * self.ring_length)

        small = self.place_small(small_cap)
        removed = self.correct_corners()
        small = [p for p in small if p not in removed]

        if len(small) < small_min:
            small.extend(self.boost(small_min - len(small), small_cap - len(small)))

        logger.info(
            "Placed parcels",
            placer="rule_based",
            template=self.template.id,
            large=len(large),
            small=len(small),
            corner_removed=len(removed),
        )
        return large + small

    def can_place_2x2(self, anchor: Cell) -> bool:
        """All four footprint cells must be interior, off-road and free."""
        return self._cells_free(footprint(anchor, 2))

    def _cells_free(self, cells: List[Cell]) -> bool:
        for cell in cells:
            if not in_interior(cell, self.width, self.height):
                return False
            if cell in self.road_set or cell in self.occupied:
                return False
        return True

    def _record(self, segment: RingSegment, side: int, i: int, parcel: Parcel) -> None:
        self.taken.setdefault((segment.index, side), {})[i] = parcel
        self.occupied.update(parcel.cells)

    def place_large(self) -> List[Parcel]:
        """2x2 parcels on the outer side of straight runs, spaced per segment."""
        quota = self.template.large_parcels
        target = rand_int(self.prng, quota.count[0], quota.count[1])
        min_run = max(3, quota.min_straight)
        parcels: List[Parcel] = []

        for segment in self.segments:
            if len(parcels) >= target:
                break
            if len(segment) < min_run:
                continue
            placed_at: List[int] = []
            for i in range(1, len(segment) - 2):
                if len(parcels) >= target:
                    break
                if any(abs(j - i) < quota.min_spacing for j in placed_at):
                    continue

                near = segment.side_cell(i, OUTER)
                cells = [
                    near,
                    near.offset(*segment.direction),
                    near.offset(*segment.normal),
                    near.offset(
                        segment.direction[0] + segment.normal[0],
                        segment.direction[1] + segment.normal[1],
                    ),
                ]
                if not self._cells_free(cells):
                    continue

                anchor = Cell(min(c.x for c in cells), min(c.y for c in cells))
                parcel = Parcel(
                    anchor=anchor, size=ParcelSize.LARGE, value=draw_parcel_value(self.prng)
                )
                self._record(segment, OUTER, i, parcel)
                self.buffers.setdefault((segment.index, OUTER), set()).update(
                    (i - 1, i, i + 1, i + 2)
                )
                placed_at.append(i)
                parcels.append(parcel)

        return parcels

    def _index_range(self, segment: RingSegment, end_buffer: int) -> Tuple[int, int]:
        return end_buffer, len(segment) - 1 - end_buffer

    def _small_allowed(self, segment: RingSegment, side: int, i: int) -> bool:
        if i in self.buffers.get((segment.index, side), ()):
            return False
        same_side = self.taken.get((segment.index, side), {})
        if any(abs(i - j) < SAME_SIDE_GAP for j in same_side):
            return False
        if i in self.taken.get((segment.index, -side), {}):
            return False
        return self._cells_free([segment.side_cell(i, side)])

    def _place_small_at(self, segment: RingSegment, side: int, i: int) -> Parcel:
        parcel = Parcel(
            anchor=segment.side_cell(i, side),
            size=ParcelSize.SMALL,
            value=draw_parcel_value(self.prng),
        )
        self._record(segment, side, i, parcel)
        return parcel

    def place_small(self, cap: int) -> List[Parcel]:
        """1x1 parcels on both sides with a random 2-3 stride and random phase."""
        stride_min, stride_max = self.template.small_parcels.stride
        parcels: List[Parcel] = []

        for segment in self.segments:
            end_buffer = 2 if len(segment) >= LONG_SEGMENT else 1
            lo, hi = self._index_range(segment, end_buffer)
            for side in (OUTER, INNER):
                i = lo + rand_int(self.prng, 0, stride_min - 1)
                while i <= hi and len(parcels) < cap:
                    if self._small_allowed(segment, side, i):
                        parcels.append(self._place_small_at(segment, side, i))
                        i += rand_int(self.prng, stride_min, stride_max)
                    else:
                        i += 1

        return parcels

    def _corner_pairs(self):
        """Yield (corner cell, segment before, segment after) around the ring."""
        count = len(self.segments)
        for k in range(count):
            before = self.segments[k]
            after = self.segments[(k + 1) % count]
            yield before.cells[-1], before, after

    def _nearest_to_end(self, segment: RingSegment) -> Optional[Tuple[int, int, int]]:
        """(gap to the end corner, side, index) of the small parcel closest to the end."""
        best = None
        for side in (OUTER, INNER):
            for i, parcel in self.taken.get((segment.index, side), {}).items():
                if parcel.size != ParcelSize.SMALL:
                    continue
                gap = max(0, len(segment) - 2 - i)
                if best is None or gap < best[0]:
                    best = (gap, side, i)
        return best

    def _nearest_to_start(self, segment: RingSegment) -> Optional[Tuple[int, int, int]]:
        best = None
        for side in (OUTER, INNER):
            for i, parcel in self.taken.get((segment.index, side), {}).items():
                if parcel.size != ParcelSize.SMALL:
                    continue
                gap = max(0, i - 1)
                if best is None or gap < best[0]:
                    best = (gap, side, i)
        return best

    def _is_pure_turn(self, corner: Cell, before: RingSegment, after: RingSegment) -> bool:
        road_neighbors = sum(1 for n in neighbors(corner) if n in self.road_set)
        return (
            len(before) <= SHORT_SEGMENT
            and len(after) <= SHORT_SEGMENT
            and road_neighbors == 2
        )

    def correct_corners(self) -> List[Parcel]:
        """
        Remove one parcel of each pair crowding a ring corner.

        A pair crowds the corner when the gaps between each parcel and the
        corner add up to at most one cell. The parcel on the following
        segment is removed, unless the corner is a pure turn between two
        short segments, which tolerates its close pair. Each corner loses
        at most one parcel per pass.

        Returns:
            Removed parcels
        """
        removed: List[Parcel] = []
        for corner, before, after in self._corner_pairs():
            first = self._nearest_to_end(before)
            second = self._nearest_to_start(after)
            if first is None or second is None or first[0] + second[0] > 1:
                continue
            if self._is_pure_turn(corner, before, after):
                logger.debug("Tolerated close pair at pure corner", corner=corner)
                continue
            _, side, i = second
            parcel = self.taken[(after.index, side)].pop(i)
            for cell in parcel.cells:
                self.occupied.discard(cell)
            removed.append(parcel)

        return removed

    def _crowds_corner(self, segment: RingSegment, i: int) -> bool:
        """Would a small parcel at index i form a close pair at either corner."""
        count = len(self.segments)
        before = self.segments[(segment.index - 1) % count]
        after = self.segments[(segment.index + 1) % count]

        start_gap = max(0, i - 1)
        nearest = self._nearest_to_end(before)
        if nearest is not None and start_gap + nearest[0] <= 1:
            if not self._is_pure_turn(segment.cells[0], before, segment):
                return True

        end_gap = max(0, len(segment) - 2 - i)
        nearest = self._nearest_to_start(after)
        if nearest is not None and end_gap + nearest[0] <= 1:
            if not self._is_pure_turn(segment.cells[-1], segment, after):
                return True
        return False

    def boost(self, needed: int, cap: int) -> List[Parcel]:
        """
        Refill short segments with relaxed end buffers.

        Level one scans every index keeping one cell at each end, level two
        drops the end buffer entirely. Spacing, buffer, anti-mirroring and
        corner rules still apply.
        """
        parcels: List[Parcel] = []
        limit = min(needed, cap)
        for end_buffer in (1, 0):
            for segment in self.segments:
                if len(segment) >= LONG_SEGMENT:
                    continue
                lo, hi = self._index_range(segment, end_buffer)
                for side in (OUTER, INNER):
                    for i in range(lo, hi + 1):
                        if len(parcels) >= limit:
                            return parcels
                        if not self._small_allowed(segment, side, i):
                            continue
                        if self._crowds_corner(segment, i):
                            continue
                        parcels.append(self._place_small_at(segment, side, i))
        if parcels:
            logger.debug("Booster added parcels", added=len(parcels))
        return parcels
