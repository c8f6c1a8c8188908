"""Block Blast: an 8x8 block placement puzzle.

Pieces from a three-slot tray are dropped onto the board; full rows and
columns clear for points, and the game ends once no tray piece fits.
"""

from .config import GameConfig

__all__ = ["GameConfig"]
