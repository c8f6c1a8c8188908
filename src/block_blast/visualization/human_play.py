from __future__ import annotations

import argparse
import logging
import random
from pathlib import Path
from typing import List, Optional, Tuple

import pygame

from block_blast.config import GameConfig
from block_blast.game import BlockBlastGame, BoardRect, GameState, ManualScheduler, MovePhase, Piece, PieceFactory
from block_blast.storage import GameStore


CELL_SIZE = 48
MARGIN = 24
TRAY_CELL = 20
TRAY_SLOT = TRAY_CELL * 5 + 20

EMPTY_COLOR = (40, 40, 52)
CLEARING_COLOR = (250, 250, 250)
GHOST_COLOR = (220, 220, 220)


def board_rect(config: GameConfig) -> BoardRect:
    return BoardRect(MARGIN, MARGIN + 40, config.board_size * CELL_SIZE)


def tray_slot_rects(config: GameConfig) -> List[pygame.Rect]:
    rect = board_rect(config)
    y = rect.top + rect.width + MARGIN
    spacing = rect.width / config.tray_size
    return [
        pygame.Rect(int(rect.left + i * spacing + (spacing - TRAY_SLOT) / 2), int(y), TRAY_SLOT, TRAY_SLOT)
        for i in range(config.tray_size)
    ]


def draw_board(screen: pygame.Surface, state: GameState, rect: BoardRect) -> None:
    cell = rect.width / state.grid.size
    for r, row in enumerate(state.grid.rows):
        for c, value in enumerate(row):
            if value.clearing:
                color = CLEARING_COLOR
            elif value.filled:
                color = pygame.Color(value.color)
            else:
                color = EMPTY_COLOR
            cell_rect = pygame.Rect(int(rect.left + c * cell), int(rect.top + r * cell), int(cell) - 2, int(cell) - 2)
            pygame.draw.rect(screen, color, cell_rect, border_radius=4)


def draw_piece(screen: pygame.Surface, piece: Piece, center: Tuple[float, float], cell: int) -> None:
    x0 = center[0] - piece.width * cell / 2
    y0 = center[1] - piece.height * cell / 2
    color = pygame.Color(piece.color)
    for dr, dc in piece.offsets():
        rect = pygame.Rect(int(x0 + dc * cell), int(y0 + dr * cell), cell - 2, cell - 2)
        pygame.draw.rect(screen, color, rect, border_radius=3)


def draw_tray(screen: pygame.Surface, game: BlockBlastGame, dragging: Optional[str]) -> None:
    for rect, piece in zip(tray_slot_rects(game.config), game.state.tray.slots):
        if piece is None or piece.id == dragging:
            continue
        draw_piece(screen, piece, rect.center, TRAY_CELL)


def draw_ghost(screen: pygame.Surface, piece: Piece, origin: Tuple[int, int], rect: BoardRect, size: int) -> None:
    cell = rect.width / size
    r0, c0 = origin
    for dr, dc in piece.offsets():
        ghost = pygame.Rect(int(rect.left + (c0 + dc) * cell), int(rect.top + (r0 + dr) * cell),
                            int(cell) - 2, int(cell) - 2)
        pygame.draw.rect(screen, GHOST_COLOR, ghost, 2, border_radius=4)


def piece_under(game: BlockBlastGame, pos: Tuple[int, int]) -> Optional[Piece]:
    for rect, piece in zip(tray_slot_rects(game.config), game.state.tray.slots):
        if piece is not None and rect.collidepoint(pos):
            return piece
    return None


def run(config: GameConfig, store: Optional[GameStore]) -> None:
    pygame.init()
    try:
        scheduler = ManualScheduler()
        factory = PieceFactory(random.Random(config.random_seed))
        state = store.load(factory, config) if store is not None else None
        game = BlockBlastGame(config, factory=factory, scheduler=scheduler, state=state,
                              on_change=store.save if store is not None else None)

        rect = board_rect(config)
        width = int(rect.width) + MARGIN * 2
        height = int(rect.top + rect.width) + TRAY_SLOT + MARGIN * 2
        screen = pygame.display.set_mode((width, height))
        pygame.display.set_caption("Block Blast")
        font = pygame.font.SysFont(None, 28)

        dragging: Optional[Piece] = None
        pointer: Tuple[int, int] = (0, 0)

        running = True
        clock = pygame.time.Clock()
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_n:
                        dragging = None
                        game.restart()
                elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                    if game.phase != MovePhase.TERMINATED:
                        dragging = piece_under(game, event.pos)
                        pointer = event.pos
                elif event.type == pygame.MOUSEMOTION:
                    pointer = event.pos
                elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                    if dragging is not None:
                        target = game.target(event.pos, rect, dragging.id)
                        if target is not None:
                            game.commit(target.r, target.c, dragging.id)
                    dragging = None

            # Draw
            screen.fill((15, 15, 20))
            draw_board(screen, game.state, rect)
            draw_tray(screen, game, dragging.id if dragging is not None else None)
            if dragging is not None:
                target = game.target(pointer, rect, dragging.id)
                if target is not None:
                    draw_ghost(screen, dragging, target, rect, config.board_size)
                lifted = (pointer[0], pointer[1] + config.touch_y_offset)
                draw_piece(screen, dragging, lifted, CELL_SIZE)

            info = f"Score: {game.state.score}   Best: {game.state.high_score}   Streak: {game.state.streak}"
            screen.blit(font.render(info, True, (230, 230, 230)), (MARGIN, MARGIN))
            if game.phase == MovePhase.TERMINATED:
                over = font.render("Game Over - Press N to restart", True, (255, 100, 100))
                screen.blit(over, over.get_rect(center=(width // 2, int(rect.top + rect.width / 2))))

            pygame.display.flip()
            scheduler.advance(clock.tick(60) / 1000.0)
    finally:
        pygame.quit()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Play Block Blast with the mouse.")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--save-dir", type=Path, default=Path.home() / ".block_blast")
    p.add_argument("--no-save", action="store_true", help="Do not load or write the saved game")
    p.add_argument("--verbose", "-v", action="store_true")
    return p


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = GameConfig(random_seed=args.seed)
    store = None if args.no_save else GameStore(args.save_dir)
    run(config, store)


if __name__ == "__main__":  # pragma: no cover
    main()
