"""JSON persistence for saved games and the best-score record.

The save blob uses the camelCase layout shared with the browser build of the
game, so the same file can be exchanged between the two.
"""

from __future__ import annotations

import json
import logging
import math
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import GameConfig
from .game.grid import Cell, Grid
from .game.pieces import Piece, PieceFactory, make_shape
from .game.state import GameState, Tray


logger = logging.getLogger(__name__)

SAVE_FILE = "save_state.json"
HIGH_SCORE_FILE = "high_score.json"


class InvalidSaveError(ValueError):
    """Raised when a saved game does not have the expected structure."""


def _cell_to_dict(cell: Cell) -> Dict[str, Any]:
    data: Dict[str, Any] = {"filled": cell.filled, "color": cell.color}
    if cell.clearing:
        data["clearing"] = True
    return data


def _piece_to_dict(piece: Piece) -> Dict[str, Any]:
    return {
        "id": piece.id,
        "shape": piece.shape.tolist(),
        "color": piece.color,
        "width": piece.width,
        "height": piece.height,
    }


def state_to_dict(state: GameState) -> Dict[str, Any]:
    return {
        "score": state.score,
        "highScore": state.high_score,
        "streak": state.streak,
        "gameOver": state.game_over,
        "grid": [[_cell_to_dict(cell) for cell in row] for row in state.grid.rows],
        "availableBlocks": [None if p is None else _piece_to_dict(p) for p in state.tray.slots],
    }


def _cell_from_dict(data: Any) -> Cell:
    if not isinstance(data, dict):
        raise InvalidSaveError(f"cell must be an object, got {data!r}")
    return Cell(
        filled=bool(data.get("filled", False)),
        color=str(data.get("color", "") or ""),
        clearing=bool(data.get("clearing", False)),
    )


def _piece_from_dict(data: Any) -> Optional[Piece]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise InvalidSaveError(f"block must be an object or null, got {data!r}")
    try:
        shape = make_shape(data["shape"])
        return Piece(id=str(data["id"]), shape=shape, color=str(data["color"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidSaveError(f"malformed block {data!r}") from exc


def _int_field(data: Dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidSaveError(f"{key} must be a finite number, got {value!r}")
    return max(0, int(value))


def state_from_dict(data: Any, config: Optional[GameConfig] = None, best_score: int = 0) -> GameState:
    """Rebuild a GameState from a save blob.

    Raises InvalidSaveError when the grid is missing or not N x N, or the
    tray is not a list of the configured length.
    """
    config = config or GameConfig()
    if not isinstance(data, dict):
        raise InvalidSaveError("save must be a JSON object")

    rows = data.get("grid")
    size = config.board_size
    if not isinstance(rows, list) or len(rows) != size:
        raise InvalidSaveError(f"grid must have {size} rows")
    if any(not isinstance(row, list) or len(row) != size for row in rows):
        raise InvalidSaveError(f"grid rows must have {size} cells")
    grid = Grid([_cell_from_dict(cell) for cell in row] for row in rows)

    blocks = data.get("availableBlocks")
    if not isinstance(blocks, list):
        raise InvalidSaveError("availableBlocks must be a list")
    if len(blocks) != config.tray_size:
        raise InvalidSaveError(f"availableBlocks must have {config.tray_size} slots")
    slots: List[Optional[Piece]] = [_piece_from_dict(block) for block in blocks]

    score = _int_field(data, "score")
    return GameState(
        score=score,
        high_score=max(_int_field(data, "highScore"), best_score, score),
        grid=grid,
        tray=Tray(tuple(slots)),
        game_over=bool(data.get("gameOver", False)),
        streak=_int_field(data, "streak"),
    )


class GameStore:
    """Reads and writes the save blob and the best-score record in one directory."""

    def __init__(self, directory: Union[str, os.PathLike]) -> None:
        self.directory = Path(directory)
        self.save_path = self.directory / SAVE_FILE
        self.high_score_path = self.directory / HIGH_SCORE_FILE

    def load_high_score(self) -> int:
        try:
            data = json.loads(self.high_score_path.read_text(encoding="utf-8"))
            return max(0, int(data.get("highScore", 0)))
        except FileNotFoundError:
            return 0
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError, OverflowError) as exc:
            logger.warning("ignoring unreadable best score in %s: %s", self.high_score_path, exc)
            return 0

    def load(self, factory: PieceFactory, config: Optional[GameConfig] = None) -> GameState:
        """Restore the saved game, or start a fresh one if there is none usable."""
        config = config or GameConfig()
        best = self.load_high_score()
        try:
            data = json.loads(self.save_path.read_text(encoding="utf-8"))
            state = state_from_dict(data, config, best_score=best)
        except FileNotFoundError:
            return GameState.new(factory, config, high_score=best)
        except (json.JSONDecodeError, InvalidSaveError) as exc:
            logger.warning("discarding saved game in %s: %s", self.save_path, exc)
            return GameState.new(factory, config, high_score=best)
        factory.reserve_ids([p.id for p in state.tray.live_pieces()])
        if state.tray.is_exhausted:
            state = state.evolve(tray=state.tray.refill_if_exhausted(factory))
        return state

    def save(self, state: GameState) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.save_path.write_text(json.dumps(state_to_dict(state)), encoding="utf-8")
        best = max(self.load_high_score(), state.high_score)
        self.high_score_path.write_text(json.dumps({"highScore": best}), encoding="utf-8")

