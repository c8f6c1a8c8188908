from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

import numpy as np


Shape = np.ndarray


def make_shape(rows: Sequence[Sequence[int]]) -> Shape:
    """Build a read-only 0/1 shape matrix.

    Raises ValueError for ragged input or a shape with no occupied cell.
    """
    try:
        arr = np.array(rows, dtype=np.int8)
    except ValueError as exc:
        raise ValueError(f"ragged shape rows: {rows!r}") from exc
    if arr.ndim != 2 or arr.size == 0:
        raise ValueError(f"shape must be a non-empty 2D matrix, got {rows!r}")
    if not np.isin(arr, (0, 1)).all():
        raise ValueError(f"shape cells must be 0 or 1, got {rows!r}")
    if not arr.any():
        raise ValueError("shape must have at least one occupied cell")
    arr.flags.writeable = False
    return arr


SHAPES: Dict[str, Shape] = {
    "dot": make_shape([[1]]),
    "line2_h": make_shape([[1, 1]]),
    "line2_v": make_shape([[1], [1]]),
    "line3_h": make_shape([[1, 1, 1]]),
    "line3_v": make_shape([[1], [1], [1]]),
    "line4_h": make_shape([[1, 1, 1, 1]]),
    "line4_v": make_shape([[1], [1], [1], [1]]),
    "square2": make_shape([[1, 1], [1, 1]]),
    "l_tall": make_shape([[1, 0], [1, 0], [1, 1]]),
    "j_tall": make_shape([[0, 1], [0, 1], [1, 1]]),
    "t": make_shape([[1, 1, 1], [0, 1, 0]]),
    "z": make_shape([[1, 1, 0], [0, 1, 1]]),
    "s": make_shape([[0, 1, 1], [1, 1, 0]]),
    "corner_bl": make_shape([[1, 0], [1, 1]]),
    "corner_br": make_shape([[0, 1], [1, 1]]),
    "l_wide": make_shape([[1, 1, 1], [1, 0, 0]]),
    "j_wide": make_shape([[1, 1, 1], [0, 0, 1]]),
    "line5_h": make_shape([[1, 1, 1, 1, 1]]),
    "line5_v": make_shape([[1], [1], [1], [1], [1]]),
    "square3": make_shape([[1, 1, 1], [1, 1, 1], [1, 1, 1]]),
    "plus": make_shape([[0, 1, 0], [1, 1, 1], [0, 1, 0]]),
    "u": make_shape([[1, 1, 1], [1, 0, 1]]),
    "u_flipped": make_shape([[1, 0, 1], [1, 1, 1]]),
    "l_big": make_shape([[1, 0, 0], [1, 0, 0], [1, 1, 1]]),
    "j_big": make_shape([[0, 0, 1], [0, 0, 1], [1, 1, 1]]),
    "diagonal": make_shape([[1, 0, 0], [0, 1, 0], [0, 0, 1]]),
    "anti_diagonal": make_shape([[0, 0, 1], [0, 1, 0], [1, 0, 0]]),
    "corner_tl": make_shape([[1, 1], [1, 0]]),
    "corner_tr": make_shape([[1, 1], [0, 1]]),
    "t_tall": make_shape([[1, 1, 1], [0, 1, 0], [0, 1, 0]]),
    "t_side": make_shape([[0, 0, 1], [1, 1, 1], [0, 0, 1]]),
}

BLOCK_COLORS = (
    "#e94560",
    "#533483",
    "#06B6D4",
    "#F59E0B",
    "#10B981",
    "#3B82F6",
)


@dataclass(frozen=True, eq=False)
class Piece:
    """A colored shape sitting in a tray slot. Pieces compare by id."""
    id: str
    shape: Shape
    color: str

    @property
    def width(self) -> int:
        return int(self.shape.shape[1])

    @property
    def height(self) -> int:
        return int(self.shape.shape[0])

    @property
    def cell_count(self) -> int:
        return int(np.count_nonzero(self.shape))

    def offsets(self) -> List[Tuple[int, int]]:
        """(row, col) offsets of occupied cells relative to the top-left corner."""
        rows, cols = np.nonzero(self.shape)
        return [(int(r), int(c)) for r, c in zip(rows, cols)]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Piece):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Piece(id={self.id!r}, {self.height}x{self.width}, color={self.color!r})"


class PieceFactory:
    """Draws uniformly random pieces from the shape catalog.

    Shape and color are independent uniform draws. Ids come from the same
    random source, so a seeded factory is reproducible end to end.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 shapes: Optional[Sequence[Shape]] = None,
                 colors: Sequence[str] = BLOCK_COLORS) -> None:
        self.rng = rng or random.Random()
        self.shapes: List[Shape] = list(shapes) if shapes is not None else list(SHAPES.values())
        self.colors: List[str] = list(colors)
        if not self.shapes or not self.colors:
            raise ValueError("PieceFactory needs at least one shape and one color")
        self._issued_ids: Set[str] = set()

    def _new_id(self) -> str:
        while True:
            piece_id = f"{self.rng.getrandbits(36):09x}"
            if piece_id not in self._issued_ids:
                self._issued_ids.add(piece_id)
                return piece_id

    def draw_piece(self) -> Piece:
        shape = self.shapes[self.rng.randrange(len(self.shapes))]
        color = self.colors[self.rng.randrange(len(self.colors))]
        return Piece(id=self._new_id(), shape=shape, color=color)

    def draw_pieces(self, count: int = 3) -> List[Piece]:
        return [self.draw_piece() for _ in range(count)]

    def reserve_ids(self, ids: Sequence[str]) -> None:
        """Mark ids of restored pieces as taken so new draws never collide."""
        self._issued_ids.update(ids)

    def retain_ids(self, ids: Sequence[str]) -> None:
        """Forget every issued id except the given live ones."""
        self._issued_ids = set(ids)

    @property
    def issued_count(self) -> int:
        return len(self._issued_ids)


def draw_pieces(count: int = 3, factory: Optional[PieceFactory] = None) -> List[Piece]:
    return (factory or PieceFactory()).draw_pieces(count)
