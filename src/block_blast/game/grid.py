from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Sequence, Tuple

import numpy as np

from .pieces import Piece


Coordinate = Tuple[int, int]


@dataclass(frozen=True)
class Cell:
    filled: bool = False
    color: str = ""
    clearing: bool = False  # only true between marking and resolving a clear


EMPTY_CELL = Cell()


class Grid:
    """Immutable square board of cells.

    Every operation that changes cells returns a new Grid; nothing mutates an
    existing one, so snapshots taken before a move stay valid after it.
    """

    __slots__ = ("_rows",)

    def __init__(self, rows: Iterable[Sequence[Cell]]) -> None:
        rows_t = tuple(tuple(row) for row in rows)
        size = len(rows_t)
        if size == 0:
            raise ValueError("grid must have at least one row")
        for row in rows_t:
            if len(row) != size:
                raise ValueError(f"grid must be square, got a row of {len(row)} in a {size}-row grid")
        self._rows: Tuple[Tuple[Cell, ...], ...] = rows_t

    @classmethod
    def empty(cls, size: int) -> "Grid":
        return cls([EMPTY_CELL] * size for _ in range(size))

    @property
    def size(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> Tuple[Tuple[Cell, ...], ...]:
        return self._rows

    def __getitem__(self, pos: Coordinate) -> Cell:
        r, c = pos
        return self._rows[r][c]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self._rows == other._rows

    def __hash__(self) -> int:
        return hash(self._rows)

    def __repr__(self) -> str:
        return f"Grid({self.size}x{self.size}, filled={self.filled_count()})"

    def is_inside(self, r: int, c: int) -> bool:
        return 0 <= r < self.size and 0 <= c < self.size

    def filled_mask(self) -> np.ndarray:
        mask = np.array([[cell.filled for cell in row] for row in self._rows], dtype=np.bool_)
        mask.flags.writeable = False
        return mask

    def filled_count(self) -> int:
        return sum(cell.filled for row in self._rows for cell in row)

    def has_clearing(self) -> bool:
        return any(cell.clearing for row in self._rows for cell in row)

    def replace(self, cells: Iterable[Tuple[Coordinate, Cell]]) -> "Grid":
        """Return a copy with the given coordinates set to new cells."""
        rows: List[List[Cell]] = [list(row) for row in self._rows]
        for (r, c), cell in cells:
            rows[r][c] = cell
        return Grid(rows)


@dataclass(frozen=True)
class ClearResult:
    rows: FrozenSet[int] = frozenset()
    cols: FrozenSet[int] = frozenset()

    @property
    def count(self) -> int:
        # Rows and columns count separately; a shared cell is not deduplicated.
        return len(self.rows) + len(self.cols)

    def cells(self, size: int) -> List[Coordinate]:
        coords = {(r, c) for r in self.rows for c in range(size)}
        coords.update((r, c) for c in self.cols for r in range(size))
        return sorted(coords)


def can_place(grid: Grid, piece: Piece, row: int, col: int) -> bool:
    """Check if every occupied cell of piece lands inside the grid on an empty cell."""
    for dr, dc in piece.offsets():
        r, c = row + dr, col + dc
        if not grid.is_inside(r, c):
            return False
        if grid[r, c].filled:
            return False
    return True


def valid_placements(grid: Grid, piece: Piece) -> List[Coordinate]:
    """All (row, col) origins where piece fits, in row-major order."""
    return [
        (r, c)
        for r in range(grid.size)
        for c in range(grid.size)
        if can_place(grid, piece, r, c)
    ]


def place_piece(grid: Grid, piece: Piece, row: int, col: int) -> Grid:
    """Stamp piece onto grid. Assumes the position is already validated."""
    stamped = Cell(filled=True, color=piece.color)
    return grid.replace(((row + dr, col + dc), stamped) for dr, dc in piece.offsets())


def detect_clears(grid: Grid) -> ClearResult:
    filled = grid.filled_mask()
    rows = np.flatnonzero(np.all(filled, axis=1))
    cols = np.flatnonzero(np.all(filled, axis=0))
    return ClearResult(rows=frozenset(int(r) for r in rows), cols=frozenset(int(c) for c in cols))


def mark_clearing(grid: Grid, clears: ClearResult) -> Grid:
    """Flag every cell of the cleared lines; cells stay filled until resolved."""
    return grid.replace(
        ((r, c), Cell(filled=grid[r, c].filled, color=grid[r, c].color, clearing=True))
        for r, c in clears.cells(grid.size)
    )


def resolve_clearing(grid: Grid) -> Grid:
    """Empty every cell flagged as clearing."""
    if not grid.has_clearing():
        return grid
    return Grid([EMPTY_CELL if cell.clearing else cell for cell in row] for row in grid.rows)


def print_grid(grid: Grid) -> None:
    for row in grid.rows:
        print("".join(["*" if cell.clearing else "█" if cell.filled else "·" for cell in row]))
