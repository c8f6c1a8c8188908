from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from ..config import GameConfig
from .grid import Grid
from .pieces import Piece, PieceFactory


Slot = Optional[Piece]  # None marks a slot whose piece has been placed


@dataclass(frozen=True)
class Tray:
    """Fixed-size row of piece slots.

    Slots only ever go from full to empty one at a time; the whole tray is
    redrawn at once, and only after every slot is empty.
    """
    slots: Tuple[Slot, ...]

    @classmethod
    def full(cls, factory: PieceFactory, size: int) -> "Tray":
        # a new tray replaces every live piece, so older ids can be reused
        factory.retain_ids(())
        return cls(tuple(factory.draw_pieces(size)))

    def __len__(self) -> int:
        return len(self.slots)

    def live_pieces(self) -> List[Piece]:
        return [p for p in self.slots if p is not None]

    def find(self, piece_id: str) -> Optional[Piece]:
        for piece in self.slots:
            if piece is not None and piece.id == piece_id:
                return piece
        return None

    def slot_of(self, piece_id: str) -> Optional[int]:
        for idx, piece in enumerate(self.slots):
            if piece is not None and piece.id == piece_id:
                return idx
        return None

    @property
    def is_exhausted(self) -> bool:
        return all(p is None for p in self.slots)

    def take(self, piece_id: str) -> "Tray":
        idx = self.slot_of(piece_id)
        if idx is None:
            raise KeyError(piece_id)
        slots = list(self.slots)
        slots[idx] = None
        return Tray(tuple(slots))

    def refill_if_exhausted(self, factory: PieceFactory) -> "Tray":
        if not self.is_exhausted:
            return self
        return Tray.full(factory, len(self.slots))


@dataclass(frozen=True)
class GameState:
    score: int
    high_score: int
    grid: Grid
    tray: Tray
    game_over: bool = False
    streak: int = 0

    @classmethod
    def new(cls, factory: PieceFactory, config: Optional[GameConfig] = None, high_score: int = 0) -> "GameState":
        config = config or GameConfig()
        return cls(
            score=0,
            high_score=high_score,
            grid=Grid.empty(config.board_size),
            tray=Tray.full(factory, config.tray_size),
            game_over=False,
            streak=0,
        )

    @property
    def pending_clear(self) -> bool:
        return self.grid.has_clearing()

    def evolve(self, **changes) -> "GameState":
        return replace(self, **changes)
