from __future__ import annotations

import random

import pytest

from block_blast.config import GameConfig
from block_blast.game import (
    EMPTY_CELL,
    BlockBlastGame,
    BoardRect,
    GameState,
    Grid,
    ManualScheduler,
    MovePhase,
    PieceFactory,
    Tray,
    can_place,
    commit,
    detect_clears,
    resolve_clear,
)
from block_blast.game.core import run_game_demo

from conftest import grid_from, piece


def _state(grid: Grid, slots, score: int = 0, streak: int = 0, high_score: int = 0) -> GameState:
    return GameState(score=score, high_score=high_score, grid=grid, tray=Tray(tuple(slots)), streak=streak)


ROW0_GAP = ["#######."] + ["........"] * 7


def test_single_cell_on_empty_board(factory, empty_grid):
    dot = piece([[1]], "dot")
    state = _state(empty_grid, [dot, piece([[1, 1]], "b"), piece([[1]], "c")])
    result = commit(state, 0, 0, dot, factory)
    assert result.accepted
    assert result.cleared_count == 0
    assert result.gained == 1
    new = result.state
    assert new.grid[0, 0].filled and new.grid[0, 0].color == dot.color
    assert new.score == 1
    assert new.streak == 0
    assert new.tray.slots[0] is None
    assert not new.game_over
    # The input state is untouched.
    assert state.grid.filled_count() == 0
    assert state.tray.slots[0] is dot


def test_row_clear_is_two_phase(factory):
    dot = piece([[1]], "dot")
    state = _state(grid_from(ROW0_GAP), [dot, piece([[1, 1]], "b"), None])
    result = commit(state, 0, 7, dot, factory)

    assert result.cleared_count == 1
    marked = result.state
    assert marked.streak == 1
    assert marked.score == 1 + 100
    assert marked.pending_clear
    assert all(cell.clearing and cell.filled for cell in marked.grid.rows[0])
    assert not marked.grid[1, 0].clearing

    resolved = resolve_clear(marked)
    assert all(cell == EMPTY_CELL for cell in resolved.grid.rows[0])
    assert not resolved.pending_clear
    assert resolved.score == marked.score
    assert resolved.tray == marked.tray


def test_resolve_clear_twice_is_noop(factory):
    dot = piece([[1]], "dot")
    state = _state(grid_from(ROW0_GAP), [dot, piece([[1, 1]], "b"), None])
    resolved = resolve_clear(commit(state, 0, 7, dot, factory).state)
    assert resolve_clear(resolved) is resolved


def test_streak_multiplier_uses_streak_before_move(factory):
    dot = piece([[1]], "dot")
    state = _state(grid_from(ROW0_GAP), [dot, piece([[1]], "x"), None], score=50, streak=2)
    result = commit(state, 0, 7, dot, factory)
    assert result.gained == 1 + 1 * 100 * 3
    assert result.state.score == 50 + 301
    assert result.state.streak == 3


def test_non_clearing_move_resets_streak(factory, empty_grid):
    dot = piece([[1]], "dot")
    state = _state(empty_grid, [dot, piece([[1]], "x"), None], streak=4)
    result = commit(state, 3, 3, dot, factory)
    assert result.gained == 1
    assert result.state.streak == 0


def test_row_and_column_clear_count_separately(factory):
    grid = grid_from(["#######."] + [".......#"] * 6 + ["........"])
    dot = piece([[1]], "dot")
    state = _state(grid, [dot, piece([[1]], "x"), None])
    result = commit(state, 0, 7, dot, factory)
    # Row 0 is full but column 7 still misses (7, 7).
    assert result.cleared_count == 1
    grid = grid_from(["#######."] + [".......#"] * 7)
    state = _state(grid, [dot, piece([[1]], "x"), None])
    result = commit(state, 0, 7, dot, factory)
    assert result.cleared_count == 2
    assert result.gained == 1 + 200
    resolved = resolve_clear(result.state)
    assert resolved.grid.filled_count() == 0


def test_last_piece_triggers_full_refill(factory, empty_grid):
    last = piece([[1, 1]], "last")
    state = _state(empty_grid, [None, last, None])
    result = commit(state, 4, 4, last, factory)
    assert result.accepted
    tray = result.state.tray
    assert len(tray) == 3
    assert all(p is not None for p in tray.slots)
    assert last.id not in {p.id for p in tray.slots}


def test_partial_tray_is_not_refilled(factory, empty_grid):
    a, b = piece([[1]], "a"), piece([[1]], "b")
    state = _state(empty_grid, [a, b, None])
    result = commit(state, 0, 0, a, factory)
    assert result.state.tray.slots == (None, b, None)


def test_filled_count_grows_by_piece_cells_before_clearing(factory):
    rng = random.Random(8)
    for _ in range(50):
        state = GameState.new(PieceFactory(random.Random(rng.random())))
        for _ in range(6):
            pieces = state.tray.live_pieces()
            spots = [(p, r, c) for p in pieces for r in range(8) for c in range(8) if can_place(state.grid, p, r, c)]
            if not spots or state.game_over:
                break
            p, r, c = rng.choice(spots)
            before = state.grid.filled_count()
            result = commit(state, r, c, p, factory)
            assert result.state.grid.filled_count() == before + p.cell_count
            assert result.state.score >= state.score
            state = resolve_clear(result.state)
            assert detect_clears(state.grid).count == 0


@pytest.mark.parametrize(
    "row, col",
    [(0, 7), (-1, 0), (8, 0), (0, 0)],
)
def test_invalid_commit_is_noop(factory, row, col):
    domino = piece([[1, 1]], "d")
    grid = grid_from(["#......."] + ["........"] * 7)
    state = _state(grid, [domino, None, None])
    result = commit(state, row, col, domino, factory)
    assert not result.accepted
    assert result.state is state
    assert result.cleared_count == 0


def test_commit_of_piece_not_in_tray_is_noop(factory, empty_grid):
    state = _state(empty_grid, [piece([[1]], "a"), None, None])
    result = commit(state, 0, 0, piece([[1]], "stranger"), factory)
    assert result.state is state and not result.accepted


def test_commit_uses_tray_piece_for_matching_id(factory, empty_grid):
    live = piece([[1]], "a")
    state = _state(empty_grid, [live, piece([[1]], "b"), None])
    result = commit(state, 0, 0, piece([[1, 1, 1]], "a"), factory)
    assert result.state.grid.filled_count() == 1


def test_commit_rejected_while_clear_pending(factory):
    dot, other = piece([[1]], "dot"), piece([[1]], "other")
    state = _state(grid_from(ROW0_GAP), [dot, other, None])
    marked = commit(state, 0, 7, dot, factory).state
    result = commit(marked, 5, 5, other, factory)
    assert not result.accepted
    assert result.state is marked


def test_commit_rejected_after_game_over(factory, empty_grid):
    dot = piece([[1]], "dot")
    state = _state(empty_grid, [dot, None, None]).evolve(game_over=True)
    assert commit(state, 0, 0, dot, factory).state is state


def test_game_over_detected_without_clear(factory):
    grid = grid_from(["..#.#.#.", ".#.#.#.#"] + ["########"] * 6)
    dot = piece([[1]], "dot")
    square = piece([[1, 1], [1, 1]], "sq")
    state = _state(grid, [dot, square, None])
    result = commit(state, 0, 0, dot, factory)
    assert result.cleared_count == 0
    assert result.state.game_over


def test_game_over_waits_for_resolution(factory):
    # Filling (0, 7) clears row 0; game over is decided only after the clear resolves.
    checkerboard = ["#.#.#.#.", ".#.#.#.#"] * 4
    grid = grid_from(["#######."] + checkerboard[1:])
    dot = piece([[1]], "dot")
    square = piece([[1, 1, 1], [1, 1, 1], [1, 1, 1]], "sq")
    state = _state(grid, [dot, square, None])
    marked = commit(state, 0, 7, dot, factory).state
    assert not marked.game_over
    resolved = resolve_clear(marked)
    assert resolved.game_over  # a single freed row cannot hold a 3x3


def test_high_score_tracks_best(factory, empty_grid):
    dot = piece([[1]], "dot")
    state = _state(empty_grid, [dot, piece([[1]], "x"), None], score=10, high_score=10)
    assert commit(state, 0, 0, dot, factory).state.high_score == 11
    state = _state(empty_grid, [dot, piece([[1]], "x"), None], score=10, high_score=500)
    assert commit(state, 0, 0, dot, factory).state.high_score == 500


class TestBlockBlastGame:
    def _game(self, grid, slots, **kwargs):
        scheduler = ManualScheduler()
        changes = []
        game = BlockBlastGame(
            GameConfig(clear_delay=0.3),
            factory=PieceFactory(random.Random(0)),
            scheduler=scheduler,
            state=_state(grid, slots, **kwargs),
            on_change=changes.append,
        )
        return game, scheduler, changes

    def test_clear_resolves_after_delay_exactly_once(self):
        dot = piece([[1]], "dot")
        game, scheduler, changes = self._game(grid_from(ROW0_GAP), [dot, piece([[1]], "x"), None])
        result = game.commit(0, 7, "dot")
        assert result.cleared_count == 1
        assert game.phase == MovePhase.RESOLVING
        assert game.state.pending_clear

        assert scheduler.advance(0.1) == 0
        assert game.state.pending_clear
        assert scheduler.advance(0.25) == 1
        assert not game.state.pending_clear
        assert game.phase == MovePhase.IDLE
        assert scheduler.advance(10) == 0
        assert len(changes) == 2

    def test_commit_rejected_while_resolving(self):
        dot, other = piece([[1]], "dot"), piece([[1]], "other")
        game, scheduler, _ = self._game(grid_from(ROW0_GAP), [dot, other, None])
        game.commit(0, 7, "dot")
        before = game.state
        result = game.commit(5, 5, "other")
        assert not result.accepted
        assert game.state is before
        scheduler.run_all()
        assert game.commit(5, 5, "other").accepted

    def test_non_clearing_commit_stays_idle(self, empty_grid):
        dot = piece([[1]], "dot")
        game, scheduler, changes = self._game(empty_grid, [dot, piece([[1]], "x"), None])
        game.commit(0, 0, "dot")
        assert game.phase == MovePhase.IDLE
        assert scheduler.pending == 0
        assert len(changes) == 1

    def test_unknown_piece_and_bad_position_are_ignored(self, empty_grid):
        dot = piece([[1]], "dot")
        game, _, changes = self._game(empty_grid, [dot, None, None])
        assert not game.commit(0, 0, "missing").accepted
        assert not game.commit(9, 9, "dot").accepted
        assert changes == []

    def test_terminated_after_game_over(self):
        dot = piece([[1]], "dot")
        grid = grid_from(["..#.#.#.", ".#.#.#.#"] + ["########"] * 6)
        game, _, _ = self._game(grid, [dot, piece([[1, 1], [1, 1]], "sq"), None])
        game.commit(0, 0, "dot")
        assert game.phase == MovePhase.TERMINATED
        assert not game.commit(0, 1, "sq").accepted

    def test_restart_cancels_pending_clear_and_keeps_best(self):
        dot = piece([[1]], "dot")
        game, scheduler, _ = self._game(grid_from(ROW0_GAP), [dot, piece([[1]], "x"), None])
        game.commit(0, 7, "dot")
        best = game.state.high_score
        game.restart()
        assert game.phase == MovePhase.IDLE
        assert game.state.score == 0
        assert game.state.high_score == best
        assert game.state.grid.filled_count() == 0
        assert len(game.state.tray.live_pieces()) == 3
        assert scheduler.advance(1.0) == 0
        assert game.state.grid.filled_count() == 0

    def test_target_uses_configured_offset(self, empty_grid):
        dot = piece([[1]], "dot")
        game, _, _ = self._game(empty_grid, [dot, None, None])
        rect = BoardRect(0, 0, 400)
        # Pointer at the center of cell (4, 4) shifted down by the lift.
        assert game.target((225, 225 + 80), rect, "dot") == (4, 4)
        assert game.target((225, 225 + 80), rect, "missing") is None

    def test_default_scheduler_resolves_immediately(self):
        dot = piece([[1]], "dot")
        game = BlockBlastGame(state=_state(grid_from(ROW0_GAP), [dot, piece([[1]], "x"), None]))
        result = game.commit(0, 7, "dot")
        assert result.cleared_count == 1
        assert game.phase == MovePhase.IDLE
        assert not game.state.pending_clear
        assert all(not cell.filled for cell in game.state.grid.rows[0])

    def test_restored_mid_clear_state_is_resolved(self):
        dot = piece([[1]], "dot")
        marked = commit(_state(grid_from(ROW0_GAP), [dot, piece([[1]], "x"), None]), 0, 7, dot,
                        PieceFactory(random.Random(1))).state
        game = BlockBlastGame(state=marked)
        assert not game.state.pending_clear
        assert game.phase == MovePhase.IDLE


def test_demo_places_first_valid_spot_until_game_over(capsys):
    run_game_demo(seed=3)
    out = capsys.readouterr().out
    placed = [line for line in out.splitlines() if line.startswith("Placed")]
    assert placed
    assert placed[0].split(" at ")[1].startswith("(0, 0)")
    assert "Game over. Score:" in out


def test_restarts_do_not_accumulate_piece_ids():
    factory = PieceFactory(random.Random(8))
    game = BlockBlastGame(factory=factory)
    for _ in range(100):
        game.restart()
    assert factory.issued_count == game.config.tray_size
