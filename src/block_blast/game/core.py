from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Tuple

from ..config import GameConfig
from .grid import (
    can_place,
    detect_clears,
    mark_clearing,
    place_piece,
    print_grid,
    resolve_clearing,
    valid_placements,
)
from .pieces import Piece, PieceFactory
from .rules import ScoringRules, is_game_over
from .scheduling import ImmediateScheduler, Scheduler, TimerHandle
from .state import GameState
from .targeting import BoardRect, Position, resolve_target


logger = logging.getLogger(__name__)


class MovePhase(IntEnum):
    IDLE = 0
    RESOLVING = 1
    TERMINATED = 2


@dataclass(frozen=True)
class MoveResult:
    state: GameState
    cleared_count: int = 0
    accepted: bool = False
    gained: int = 0


def commit(state: GameState, row: int, col: int, piece: Piece, factory: PieceFactory,
           rules: Optional[ScoringRules] = None) -> MoveResult:
    """Place piece at (row, col) and return the next state.

    Invalid requests (game over, a clear still pending, a piece that is not
    in the tray, or a blocked position) return the input state untouched.
    When lines clear, the returned grid has them flagged as clearing and the
    game-over check is deferred to resolve_clear().
    """
    rules = rules or ScoringRules()
    if state.game_over or state.pending_clear:
        return MoveResult(state)
    live = state.tray.find(piece.id)
    if live is None or not can_place(state.grid, live, row, col):
        return MoveResult(state)

    grid = place_piece(state.grid, live, row, col)
    clears = detect_clears(grid)
    gained = rules.score_move(live, clears.count, state.streak)
    score = state.score + gained

    tray = state.tray.take(live.id).refill_if_exhausted(factory)

    if clears.count == 0:
        game_over = is_game_over(grid, tray.slots)
    else:
        grid = mark_clearing(grid, clears)
        game_over = False

    next_state = state.evolve(
        score=score,
        high_score=rules.high_score(state.high_score, score),
        grid=grid,
        tray=tray,
        streak=rules.next_streak(state.streak, clears.count),
        game_over=game_over,
    )
    return MoveResult(next_state, cleared_count=clears.count, accepted=True, gained=gained)


def resolve_clear(state: GameState) -> GameState:
    """Empty the flagged cells of a pending clear, then check for game over."""
    if not state.pending_clear:
        return state
    grid = resolve_clearing(state.grid)
    return state.evolve(grid=grid, game_over=is_game_over(grid, state.tray.slots))


class BlockBlastGame:
    """Owns the authoritative GameState and drives the two-phase clear.

    A clearing commit flags its lines right away and schedules a single
    resolution after config.clear_delay. Commits arriving while that
    resolution is pending are rejected.
    """

    def __init__(self, config: Optional[GameConfig] = None, factory: Optional[PieceFactory] = None,
                 scheduler: Optional[Scheduler] = None, rules: Optional[ScoringRules] = None,
                 state: Optional[GameState] = None,
                 on_change: Optional[Callable[[GameState], None]] = None) -> None:
        self.config = config or GameConfig()
        self.factory = factory or PieceFactory(random.Random(self.config.random_seed))
        self.scheduler: Scheduler = scheduler or ImmediateScheduler()
        self.rules = rules or ScoringRules(line_clear_points=self.config.line_clear_points)
        self.on_change = on_change
        self._pending: Optional[TimerHandle] = None
        self._state = state or GameState.new(self.factory, self.config)
        if self._state.pending_clear:
            # A save taken mid-clear resumes with the clear finished.
            self._state = resolve_clear(self._state)
        self.factory.reserve_ids([p.id for p in self._state.tray.live_pieces()])

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def phase(self) -> MovePhase:
        if self._pending is not None:
            return MovePhase.RESOLVING
        if self._state.game_over:
            return MovePhase.TERMINATED
        return MovePhase.IDLE

    def _set_state(self, state: GameState) -> None:
        self._state = state
        if self.on_change is not None:
            self.on_change(state)

    def commit(self, row: int, col: int, piece_id: str) -> MoveResult:
        if self.phase != MovePhase.IDLE:
            logger.debug("commit of %s rejected in phase %s", piece_id, self.phase.name)
            return MoveResult(self._state)
        piece = self._state.tray.find(piece_id)
        if piece is None:
            logger.debug("commit rejected: %s is not in the tray", piece_id)
            return MoveResult(self._state)
        result = commit(self._state, row, col, piece, self.factory, self.rules)
        if not result.accepted:
            logger.debug("commit rejected: %s does not fit at (%d, %d)", piece_id, row, col)
            return result

        logger.debug("placed %r at (%d, %d): +%d, %d line(s)", piece, row, col, result.gained,
                     result.cleared_count)
        self._set_state(result.state)
        if result.cleared_count > 0:
            handle = self.scheduler.call_later(self.config.clear_delay, self._resolve)
            # An immediate scheduler has already resolved by now.
            if not handle.done:
                self._pending = handle
        elif result.state.game_over:
            logger.info("game over with score %d", result.state.score)
        return result

    def _resolve(self) -> None:
        self._pending = None
        state = resolve_clear(self._state)
        self._set_state(state)
        if state.game_over:
            logger.info("game over with score %d", state.score)

    def target(self, pointer: Tuple[float, float], board_rect: BoardRect, piece_id: str) -> Optional[Position]:
        piece = self._state.tray.find(piece_id)
        if piece is None:
            return None
        return resolve_target(pointer, board_rect, piece, self._state.grid, self.config.touch_y_offset)

    def restart(self) -> None:
        if self._pending is not None:
            self.scheduler.cancel(self._pending)
            self._pending = None
        self._set_state(GameState.new(self.factory, self.config, high_score=self._state.high_score))
        logger.debug("restarted; best score %d", self._state.high_score)


def run_game_demo(seed: int = 0) -> None:
    game = BlockBlastGame(GameConfig(random_seed=seed))
    print("=== Block Blast Demo ===")
    print(f"Tray: {game.state.tray.live_pieces()}")
    while game.phase == MovePhase.IDLE:
        for piece in game.state.tray.live_pieces():
            spots = valid_placements(game.state.grid, piece)
            if spots:
                r, c = spots[0]
                result = game.commit(r, c, piece.id)
                print(f"\nPlaced {piece} at ({r}, {c}): +{result.gained}, lines {result.cleared_count}")
                print_grid(game.state.grid)
                break
    print(f"\nGame over. Score: {game.state.score}")


if __name__ == "__main__":  # pragma: no cover
    run_game_demo()
