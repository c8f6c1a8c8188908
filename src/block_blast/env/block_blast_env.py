from __future__ import annotations

import random
from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from block_blast.config import GameConfig
from block_blast.game import BlockBlastGame, ImmediateScheduler, PieceFactory, valid_placements


PIECE_CANVAS = 5  # every catalog shape fits in 5x5
MAX_STREAK_OBS = 999


def _compute_action_mask(game: BlockBlastGame) -> np.ndarray:
    size = game.config.board_size
    k = game.config.tray_size
    mask = np.zeros((k, size, size), dtype=np.bool_)
    if game.state.game_over or game.state.pending_clear:
        return mask
    for slot, piece in enumerate(game.state.tray.slots):
        if piece is None:
            continue
        for r, c in valid_placements(game.state.grid, piece):
            mask[slot, r, c] = True
    return mask


class BlockBlastEnv(gym.Env):
    """Tray-slot placement environment.

    Action: (slot, row, col). Reward is the engine's score delta for the move;
    invalid actions leave the game untouched and cost invalid_action_penalty.
    Line clears resolve within the same step.
    """

    metadata = {"render_modes": ["rgb_array"], "render_fps": 30}

    def __init__(self, config: Optional[GameConfig] = None, render_mode: Optional[str] = None,
                 invalid_action_penalty: float = -1.0) -> None:
        super().__init__()
        self.config = config or GameConfig()
        self.render_mode = render_mode
        self.invalid_action_penalty = float(invalid_action_penalty)
        self.game = self._new_game(self.config.random_seed)

        size = self.config.board_size
        k = self.config.tray_size

        # Observation: occupancy grid, tray shapes padded to a fixed canvas, current streak
        self.observation_space = spaces.Dict(
            {
                "grid": spaces.Box(low=0, high=1, shape=(size, size), dtype=np.int8),
                "pieces": spaces.Box(low=0, high=1, shape=(k, PIECE_CANVAS, PIECE_CANVAS), dtype=np.int8),
                "streak": spaces.Discrete(MAX_STREAK_OBS + 1),
            }
        )

        # Action: (slot, row, col)
        self.action_space = spaces.MultiDiscrete((k, size, size))

        self._steps = 0

    def _new_game(self, seed: Optional[int]) -> BlockBlastGame:
        factory = PieceFactory(random.Random(seed))
        return BlockBlastGame(self.config, factory=factory, scheduler=ImmediateScheduler())

    def _get_obs(self) -> Dict[str, Any]:
        k = self.config.tray_size
        pieces = np.zeros((k, PIECE_CANVAS, PIECE_CANVAS), dtype=np.int8)
        for slot, piece in enumerate(self.game.state.tray.slots):
            if piece is not None:
                pieces[slot, : piece.height, : piece.width] = piece.shape
        return {
            "grid": self.game.state.grid.filled_mask().astype(np.int8),
            "pieces": pieces,
            "streak": min(self.game.state.streak, MAX_STREAK_OBS),
        }

    def _get_info(self) -> Dict[str, Any]:
        return {
            "action_mask": _compute_action_mask(self.game),
            "score": self.game.state.score,
            "streak": self.game.state.streak,
        }

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        if seed is None:
            seed = int(self.np_random.integers(0, 2**31 - 1))
        self.game = self._new_game(seed)
        self._steps = 0
        info = self._get_info()
        info["cleared_count"] = 0
        return self._get_obs(), info

    def step(self, action: np.ndarray | Tuple[int, int, int]):
        slot, r, c = map(int, action)

        piece = None
        if 0 <= slot < len(self.game.state.tray):
            piece = self.game.state.tray.slots[slot]

        if piece is None:
            accepted, gained, cleared = False, 0, 0
        else:
            result = self.game.commit(r, c, piece.id)
            accepted, gained, cleared = result.accepted, result.gained, result.cleared_count

        reward = float(gained) if accepted else self.invalid_action_penalty
        self._steps += 1
        terminated = bool(self.game.state.game_over)
        truncated = self._steps >= self.config.max_episode_steps

        info = self._get_info()
        info["cleared_count"] = cleared
        info["accepted"] = accepted
        return self._get_obs(), reward, terminated, truncated, info

    def render(self) -> Optional[np.ndarray]:
        if self.render_mode != "rgb_array":
            return None
        cell = 12
        grid = self.game.state.grid
        img = np.zeros((grid.size * cell, grid.size * cell, 3), dtype=np.uint8)
        for y, row in enumerate(grid.rows):
            for x, value in enumerate(row):
                color = _hex_to_rgb(value.color) if value.filled else (30, 30, 36)
                img[y * cell : (y + 1) * cell, x * cell : (x + 1) * cell, :] = color
        return img

    def close(self) -> None:
        pass


def _hex_to_rgb(color: str) -> Tuple[int, int, int]:
    value = color.lstrip("#")
    if len(value) != 6:
        return (200, 200, 200)
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))
