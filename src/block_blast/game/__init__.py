"""Game module for Block Blast.

Exports the placement-and-clearing engine:
- Grid, Cell: immutable board and its cells
- Piece, PieceFactory: tray pieces and their random source
- ScoringRules: move scoring and streak accounting
- GameState, Tray: the value replaced on every move
- commit, resolve_clear: the two halves of a move
- BlockBlastGame: stateful controller driving the deferred clear
"""

from .pieces import BLOCK_COLORS, SHAPES, Piece, PieceFactory, draw_pieces, make_shape
from .grid import (
    EMPTY_CELL,
    Cell,
    ClearResult,
    Grid,
    can_place,
    detect_clears,
    mark_clearing,
    place_piece,
    resolve_clearing,
    valid_placements,
)
from .rules import ScoringRules, is_game_over
from .targeting import TOUCH_Y_OFFSET, BoardRect, Position, resolve_target
from .scheduling import ImmediateScheduler, ManualScheduler, Scheduler
from .state import GameState, Tray
from .core import BlockBlastGame, MovePhase, MoveResult, commit, resolve_clear


__all__ = [
    "BLOCK_COLORS",
    "SHAPES",
    "Piece",
    "PieceFactory",
    "make_shape",
    "draw_pieces",
    "EMPTY_CELL",
    "Cell",
    "ClearResult",
    "Grid",
    "can_place",
    "valid_placements",
    "place_piece",
    "detect_clears",
    "mark_clearing",
    "resolve_clearing",
    "ScoringRules",
    "is_game_over",
    "TOUCH_Y_OFFSET",
    "BoardRect",
    "Position",
    "resolve_target",
    "Scheduler",
    "ManualScheduler",
    "ImmediateScheduler",
    "GameState",
    "Tray",
    "BlockBlastGame",
    "MovePhase",
    "MoveResult",
    "commit",
    "resolve_clear",
]
