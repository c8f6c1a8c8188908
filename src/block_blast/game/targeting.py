from __future__ import annotations

import math
from typing import NamedTuple, Optional, Tuple

from .grid import Grid, can_place
from .pieces import Piece


TOUCH_Y_OFFSET = -80.0


class Position(NamedTuple):
    r: int
    c: int


class BoardRect(NamedTuple):
    """On-screen board bounds; the board is square so only width is needed."""
    left: float
    top: float
    width: float


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def resolve_target(pointer: Tuple[float, float], board_rect: BoardRect, piece: Piece, grid: Grid,
                   y_offset: float = TOUCH_Y_OFFSET) -> Optional[Position]:
    """Snap a pointer position to the placement origin it points at.

    The piece is centered under the (lifted) pointer, so its top-left corner
    sits half a footprint up and left of it. Returns None when the snapped
    origin is not a legal placement, in which case no ghost should be shown.
    """
    cell_size = board_rect.width / grid.size
    x, y = pointer
    rel_x = x - board_rect.left
    rel_y = (y + y_offset) - board_rect.top

    top_left_x = rel_x - (piece.width * cell_size) / 2
    top_left_y = rel_y - (piece.height * cell_size) / 2

    c = _round_half_up(top_left_x / cell_size)
    r = _round_half_up(top_left_y / cell_size)
    if can_place(grid, piece, r, c):
        return Position(r, c)
    return None
