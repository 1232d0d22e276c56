"""
Ring template builder.

Turns a declarative ring/bridge template into concrete road cells:

- Scale template vertices from the design canvas to the map size
- Jitter and clamp each vertex into the map interior
- Route consecutive vertices with two-leg Manhattan paths
- Resolve bridge anchors (``outer@2`` style references) and route them
- Break long outer/inner parallel corridors with small bumps
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple

import structlog

from .grid import Cell, dedupe, draw_line
from .lcg_prng import LcgPRNG
from ..utils.random import chance, rand_int

logger = structlog.get_logger()

# Template vertices are authored on a DESIGN_CANVAS x DESIGN_CANVAS grid
DESIGN_CANVAS = 40

# Number of anchor slots a ring path is divided into for bridges
ANCHOR_SLOTS = 4

# Parallel outer/inner runs at this centre distance and length get a bump
PARALLEL_GAP = 2
PARALLEL_MIN_LENGTH = 7


class RingKind(str, Enum):
    OUTER = "outer"
    INNER = "inner"
    SPUR = "spur"


@dataclass(frozen=True)
class RingSpec:
    """A closed polygon on the design canvas with a per-axis jitter range."""

    kind: RingKind
    vertices: Tuple[Tuple[int, int], ...]
    jitter: Tuple[int, int] = (0, 0)


@dataclass(frozen=True)
class BridgeSpec:
    """Connects two ring anchors, e.g. ``BridgeSpec("outer@1", "inner@1")``."""

    source: str
    target: str


@dataclass(frozen=True)
class SmallParcelQuota:
    ratio: Tuple[float, float] = (0.3, 0.45)
    stride: Tuple[int, int] = (2, 3)


@dataclass(frozen=True)
class LargeParcelQuota:
    count: Tuple[int, int] = (2, 4)
    min_straight: int = 5
    min_spacing: int = 5


@dataclass(frozen=True)
class BoardTemplate:
    """Declarative board layout: rings, bridges and parcel quotas."""

    id: str
    name: str
    description: str
    rings: Tuple[RingSpec, ...]
    bridges: Tuple[BridgeSpec, ...] = ()
    small_parcels: SmallParcelQuota = field(default_factory=SmallParcelQuota)
    large_parcels: LargeParcelQuota = field(default_factory=LargeParcelQuota)


class BoundingBox(NamedTuple):
    min_x: int
    max_x: int
    min_y: int
    max_y: int


@dataclass(frozen=True)
class BuiltRing:
    """
    Concrete ring path.

    ``path`` is cyclic: its last cell connects back to the first, and the
    first cell is not repeated at the end.
    """

    kind: RingKind
    path: Tuple[Cell, ...]
    bbox: BoundingBox


@dataclass(frozen=True)
class TemplateBuildResult:
    rings: Tuple[BuiltRing, ...]
    roads: Tuple[Cell, ...]
    ring_index_by_cell: Mapping[Cell, int]

    def ring(self, kind: RingKind) -> Optional[BuiltRing]:
        """First built ring of the given kind, or None."""
        for ring in self.rings:
            if ring.kind == kind:
                return ring
        return None


@dataclass
class _Segment:
    cells: List[Cell]
    direction: Tuple[int, int]


class TemplateBuilder:
    """Builds road cells for a BoardTemplate on a width x height grid."""

    def __init__(self, width: int, height: int, prng: LcgPRNG):
        self.width = width
        self.height = height
        self.prng = prng

    def build(self, template: BoardTemplate) -> TemplateBuildResult:
        """
        Build the template's rings and bridges.

        Args:
            template: Template to build

        Returns:
            TemplateBuildResult with built rings, ordered unique road cells
            and the ring index owning each ring cell
        """
        roads: List[Cell] = []
        ring_index_by_cell: Dict[Cell, int] = {}
        rings: List[BuiltRing] = []

        for idx, spec in enumerate(template.rings):
            jmin, jmax = spec.jitter
            jittered = [
                self.clamp(self.jitter(self.scale(vertex), jmin, jmax))
                for vertex in spec.vertices
            ]

            path: List[Cell] = []
            for i, start in enumerate(jittered):
                route = self.draw_manhattan(start, jittered[(i + 1) % len(jittered)])
                if path and route and path[-1] == route[0]:
                    route = route[1:]
                path.extend(route)
            if len(path) > 1 and path[-1] == path[0]:
                path.pop()

            for cell in path:
                roads.append(cell)
                ring_index_by_cell[cell] = idx

            xs = [c.x for c in path]
            ys = [c.y for c in path]
            bbox = BoundingBox(min(xs), max(xs), min(ys), max(ys))
            rings.append(BuiltRing(kind=spec.kind, path=tuple(path), bbox=bbox))

        for bridge in template.bridges:
            start = self.pick_ring_anchor(rings, bridge.source)
            end = self.pick_ring_anchor(rings, bridge.target)
            if start is None or end is None:
                logger.debug(
                    "Skipping bridge with missing anchor ring",
                    template=template.id,
                    source=bridge.source,
                    target=bridge.target,
                )
                continue
            roads.extend(self.draw_manhattan(start, end))

        roads.extend(self.break_long_parallels(rings))

        result = TemplateBuildResult(
            rings=tuple(rings),
            roads=tuple(dedupe(roads)),
            ring_index_by_cell=MappingProxyType(ring_index_by_cell),
        )
        logger.info(
            "Built template",
            template=template.id,
            rings=len(rings),
            road_cells=len(result.roads),
        )
        return result

    def scale(self, vertex: Tuple[int, int]) -> Cell:
        """Map a design-canvas vertex onto the actual grid."""
        x, y = vertex
        return Cell(
            int(x * self.width / DESIGN_CANVAS), int(y * self.height / DESIGN_CANVAS)
        )

    def jitter(self, cell: Cell, jmin: int, jmax: int) -> Cell:
        """Offset each axis independently by a random magnitude and sign."""
        if jmax <= 0:
            return cell
        jx = rand_int(self.prng, jmin, jmax) * (-1 if chance(self.prng, 0.5) else 1)
        jy = rand_int(self.prng, jmin, jmax) * (-1 if chance(self.prng, 0.5) else 1)
        return Cell(cell.x + jx, cell.y + jy)

    def clamp(self, cell: Cell) -> Cell:
        """Clamp into [1, width-2] x [1, height-2]."""
        return Cell(
            max(1, min(self.width - 2, cell.x)), max(1, min(self.height - 2, cell.y))
        )

    def draw_manhattan(self, a: Cell, b: Cell) -> List[Cell]:
        """Two-leg route from a to b; a coin flip picks horizontal or vertical first."""
        horizontal_first = self.prng.random() < 0.5
        mid = Cell(b.x, a.y) if horizontal_first else Cell(a.x, b.y)
        return draw_line(a, mid) + draw_line(mid, b)[1:]

    def pick_ring_anchor(self, rings: List[BuiltRing], ref: str) -> Optional[Cell]:
        """
        Resolve a ``kind@slot`` reference to a ring cell.

        The ring path is divided into four quartiles; slot is 1-based and
        clamped to [1, 4]. Returns None if no ring of that kind exists.
        """
        kind, _, slot_text = ref.partition("@")
        ring = next((r for r in rings if r.kind.value == kind), None)
        if ring is None or not ring.path:
            return None
        slot = max(1, min(ANCHOR_SLOTS, int(slot_text or 1)))
        index = int(slot / ANCHOR_SLOTS * len(ring.path)) % len(ring.path)
        return ring.path[index]

    def break_long_parallels(self, rings: List[BuiltRing]) -> List[Cell]:
        """
        Carve small bumps off inner-ring runs hugging the outer ring.

        When an outer and an inner straight run are parallel at a centre
        distance of 2 and overlap for at least 7 cells, a one-cell detour of
        length 2-3 is added from the middle of the overlap, pointing away
        from the outer ring.

        Returns:
            Road cells added by the bumps
        """
        outer = next((r for r in rings if r.kind == RingKind.OUTER), None)
        inner = next((r for r in rings if r.kind == RingKind.INNER), None)
        if outer is None or inner is None:
            return []

        added: List[Cell] = []
        for a in segmentize(outer.path):
            for b in segmentize(inner.path):
                if a.direction[1] == 0 and b.direction[1] == 0:
                    gap = b.cells[0].y - a.cells[0].y
                    overlap = overlap_range(
                        [c.x for c in a.cells], [c.x for c in b.cells]
                    )
                    if abs(gap) == PARALLEL_GAP and overlap[1] >= PARALLEL_MIN_LENGTH:
                        base = Cell(overlap[0] + overlap[1] // 2, b.cells[0].y)
                        away = 1 if gap > 0 else -1
                        added.extend(self.bump(base, (1, 0), (0, away)))
                elif a.direction[0] == 0 and b.direction[0] == 0:
                    gap = b.cells[0].x - a.cells[0].x
                    overlap = overlap_range(
                        [c.y for c in a.cells], [c.y for c in b.cells]
                    )
                    if abs(gap) == PARALLEL_GAP and overlap[1] >= PARALLEL_MIN_LENGTH:
                        base = Cell(b.cells[0].x, overlap[0] + overlap[1] // 2)
                        away = 1 if gap > 0 else -1
                        added.extend(self.bump(base, (0, 1), (away, 0)))
        if added:
            logger.debug("Broke parallel ring runs", bump_cells=len(added))
        return added

    def bump(
        self, base: Cell, axis: Tuple[int, int], normal: Tuple[int, int]
    ) -> List[Cell]:
        """Step out along normal, run 2-3 cells along axis, step back."""
        length = rand_int(self.prng, 2, 3)
        p1 = self.clamp(base.offset(*normal))
        p2 = self.clamp(p1.offset(axis[0] * length, axis[1] * length))
        p3 = self.clamp(p2.offset(-normal[0], -normal[1]))
        return draw_line(base, p1) + draw_line(p1, p2)[1:] + draw_line(p2, p3)[1:]


def segmentize(path: Tuple[Cell, ...]) -> List[_Segment]:
    """Split a cyclic path into maximal same-direction runs (corners shared)."""
    if len(path) < 2:
        return []
    closed = list(path) + [path[0]]

    def direction(i: int) -> Tuple[int, int]:
        return (closed[i + 1].x - closed[i].x, closed[i + 1].y - closed[i].y)

    segments = []
    start = 0
    current = direction(0)
    for i in range(1, len(closed) - 1):
        d = direction(i)
        if d != current:
            segments.append(_Segment(closed[start : i + 1], current))
            start = i
            current = d
    segments.append(_Segment(closed[start:], current))
    return segments


def overlap_range(a: List[int], b: List[int]) -> Tuple[int, int]:
    """Return (start, length) of the overlap of two coordinate spans."""
    start = max(min(a), min(b))
    end = min(max(a), max(b))
    return start, max(0, end - start + 1)
