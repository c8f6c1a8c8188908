from __future__ import annotations

import random
from typing import Iterable, Sequence

import pytest

from block_blast.game import Cell, Grid, Piece, PieceFactory, make_shape


def piece(rows: Sequence[Sequence[int]], piece_id: str = "p", color: str = "#e94560") -> Piece:
    return Piece(id=piece_id, shape=make_shape(rows), color=color)


def grid_from(lines: Iterable[str], color: str = "#10B981") -> Grid:
    """Build a grid from rows of '#' (filled) and '.' (empty)."""
    return Grid(
        [Cell(filled=True, color=color) if ch == "#" else Cell() for ch in line]
        for line in lines
    )


@pytest.fixture
def factory() -> PieceFactory:
    return PieceFactory(random.Random(1234))


@pytest.fixture
def empty_grid() -> Grid:
    return Grid.empty(8)
