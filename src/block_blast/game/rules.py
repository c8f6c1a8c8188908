from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .grid import Grid, can_place
from .pieces import Piece


@dataclass
class ScoringRules:
    line_clear_points: int = 100

    def score_move(self, piece: Piece, cleared_count: int, streak_before: int) -> int:
        """Score for one placement.

        Every occupied cell is worth a point; each cleared line is worth
        line_clear_points times the streak multiplier. The multiplier uses the
        streak as it was before this move.
        """
        placement_score = piece.cell_count
        clear_score = cleared_count * self.line_clear_points * (streak_before + 1)
        return placement_score + clear_score

    @staticmethod
    def high_score(previous: int, new_score: int) -> int:
        return max(previous, new_score)

    @staticmethod
    def next_streak(streak_before: int, cleared_count: int) -> int:
        return streak_before + 1 if cleared_count > 0 else 0


def is_game_over(grid: Grid, pieces: Iterable[Optional[Piece]]) -> bool:
    """True when no live piece fits anywhere on the grid.

    An all-empty tray is never game over: a refill always happens before the
    tray can be seen empty.
    """
    live = [p for p in pieces if p is not None]
    if not live:
        return False
    for piece in live:
        for r in range(grid.size):
            for c in range(grid.size):
                if can_place(grid, piece, r, c):
                    return False
    return True
