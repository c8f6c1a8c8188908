from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class GameConfig:
    """Configuration for a Block Blast game"""
    board_size: int = 8
    tray_size: int = 3
    line_clear_points: int = 100
    clear_delay: float = 0.3  # seconds between marking and removing cleared lines
    touch_y_offset: float = -80.0  # pointer lift so the piece is not hidden under a finger
    random_seed: Optional[int] = None
    max_episode_steps: int = 10000

    def __post_init__(self) -> None:
        if self.board_size <= 0:
            raise ValueError(f"board_size must be positive, got {self.board_size}")
        if self.tray_size <= 0:
            raise ValueError(f"tray_size must be positive, got {self.tray_size}")
        if self.clear_delay < 0:
            raise ValueError(f"clear_delay must be non-negative, got {self.clear_delay}")
