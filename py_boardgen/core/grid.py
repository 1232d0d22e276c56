"""Grid primitives shared by the board generation modules."""

from typing import Iterable, Iterator, List, NamedTuple, Set, Tuple


class Cell(NamedTuple):
    """Integer grid coordinate. Hashable and orderable, usable as a set/dict key."""

    x: int
    y: int

    @property
    def key(self) -> str:
        """Legacy ``"x_y"`` string form."""
        return f"{self.x}_{self.y}"

    @classmethod
    def from_key(cls, key: str) -> "Cell":
        x, y = key.split("_")
        return cls(int(x), int(y))

    def offset(self, dx: int, dy: int) -> "Cell":
        return Cell(self.x + dx, self.y + dy)


# 4-connectivity, in the order +x, -x, +y, -y
NEIGHBOR_OFFSETS: Tuple[Tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))

# 2x2 footprint offsets relative to the bottom-left anchor
FOOTPRINT_2X2: Tuple[Tuple[int, int], ...] = ((0, 0), (1, 0), (0, 1), (1, 1))


def neighbors(cell: Cell) -> List[Cell]:
    """Return the four orthogonal neighbours of a cell (unbounded)."""
    return [Cell(cell.x + dx, cell.y + dy) for dx, dy in NEIGHBOR_OFFSETS]


def in_bounds(cell: Cell, width: int, height: int) -> bool:
    return 0 <= cell.x < width and 0 <= cell.y < height


def in_interior(cell: Cell, width: int, height: int) -> bool:
    """True if the cell is not on the outermost border row/column."""
    return 1 <= cell.x < width - 1 and 1 <= cell.y < height - 1


def manhattan(a: Cell, b: Cell) -> int:
    return abs(a.x - b.x) + abs(a.y - b.y)


def chebyshev(a: Cell, b: Cell) -> int:
    return max(abs(a.x - b.x), abs(a.y - b.y))


def footprint(anchor: Cell, size: int) -> List[Cell]:
    """Cells covered by a parcel of ``size`` anchored at its bottom-left corner."""
    if size == 1:
        return [anchor]
    return [Cell(anchor.x + dx, anchor.y + dy) for dx, dy in FOOTPRINT_2X2]


def iter_cells(width: int, height: int) -> Iterator[Cell]:
    """Iterate every cell of the grid row by row."""
    for y in range(height):
        for x in range(width):
            yield Cell(x, y)


def dedupe(cells: Iterable[Cell]) -> List[Cell]:
    """Drop repeated cells while keeping first-seen order."""
    seen: Set[Cell] = set()
    unique = []
    for cell in cells:
        if cell not in seen:
            seen.add(cell)
            unique.append(cell)
    return unique


def draw_line(a: Cell, b: Cell) -> List[Cell]:
    """
    Axis-aligned straight line from ``a`` to ``b``, endpoints included.

    Moves along x first when both coordinates differ, so the result is
    always 4-connected.
    """
    points = [a]
    x, y = a
    while (x, y) != (b.x, b.y):
        if x != b.x:
            x += 1 if b.x > x else -1
        else:
            y += 1 if b.y > y else -1
        points.append(Cell(x, y))
    return points


def manhattan_stitch(a: Cell, b: Cell) -> List[Cell]:
    """Cells from ``a`` towards ``b``, x first then y, excluding ``b`` itself."""
    return draw_line(a, b)[:-1]
