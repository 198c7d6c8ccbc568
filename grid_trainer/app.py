"""Pygame UI shell for the Grid Reaction Trainer.

The player clicks the highlighted cell of an N x N grid as quickly and
accurately as possible before the countdown runs out.

Deterministic timing/scoring/RNG/state lives in grid_trainer/grid_core.py.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .config import GRID_SIZES, GridTaskConfig, config_from_env
from .grid_core import GridTaskEngine, GridTaskSnapshot, Phase, build_grid_task
from .timing import RealClock

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 720)
TARGET_FPS = 60

_GRID_SIZE_KEYS = {
    pygame.K_1: GRID_SIZES[0],
    pygame.K_2: GRID_SIZES[1],
    pygame.K_3: GRID_SIZES[2],
    pygame.K_KP1: GRID_SIZES[0],
    pygame.K_KP2: GRID_SIZES[1],
    pygame.K_KP3: GRID_SIZES[2],
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...
    def close(self) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop().close()

    def quit(self) -> None:
        self._running = False

    def shutdown(self) -> None:
        while self._screens:
            self._screens.pop().close()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def close(self) -> None:
        return

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        bg = (244, 244, 246)
        border = (209, 213, 219)
        text_main = (3, 7, 18)
        text_muted = (107, 114, 128)
        active_bg = (3, 7, 18)
        active_text = (255, 255, 255)

        surface.fill(bg)

        title = self._title_font.render(self._title, True, text_main)
        surface.blit(title, title.get_rect(midtop=(w // 2, max(24, h // 8))))

        row_w = max(240, min(420, w // 2))
        row_h = 44
        gap = 10
        total_h = row_h * len(self._items) + gap * max(0, len(self._items) - 1)
        y = (h - total_h) // 2

        for idx, item in enumerate(self._items):
            row = pygame.Rect((w - row_w) // 2, y, row_w, row_h)
            selected = idx == self._selected
            pygame.draw.rect(surface, active_bg if selected else (255, 255, 255), row)
            pygame.draw.rect(surface, border, row, 1)
            text = self._item_font.render(item.label, True, active_text if selected else text_main)
            surface.blit(text, text.get_rect(center=row.center))
            y += row_h + gap

        footer = "Up/Down: Move  |  Enter/Space: Select  |  Esc: Back"
        foot = self._hint_font.render(footer, True, text_muted)
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 16)))


class GridTaskScreen:
    def __init__(self, app: App, *, engine_factory: Callable[[], GridTaskEngine]) -> None:
        self._app = app
        self._engine = engine_factory()
        self._hud_font = pygame.font.Font(None, 40)
        self._small_font = pygame.font.Font(None, 24)
        self._result_font = pygame.font.Font(None, 30)

        # Grid placement from the last render; clicks before the first frame are ignored.
        self._grid_rect: pygame.Rect | None = None
        self._closed = False

    @property
    def engine(self) -> GridTaskEngine:
        return self._engine

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            key = event.key
            if key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
                self._app.pop()
                return
            if key == pygame.K_r:
                if self._engine.phase is Phase.GAME_OVER:
                    self._engine.reset()
                return
            size = _GRID_SIZE_KEYS.get(key)
            if size is not None:
                self._engine.set_grid_size(size)
            return

        if event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 0) == 1:
            pos = getattr(event, "pos", None)
            if pos is None:
                return
            cell = self._cell_at(pos)
            if cell is not None:
                self._engine.click(*cell)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._engine.close()

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        snap = self._engine.snapshot()

        w, h = surface.get_size()
        surface.fill((255, 255, 255))

        hud_h = 130
        footer_h = 36
        margin = 20
        side = max(60, min(w - margin * 2, h - hud_h - footer_h - margin))
        grid_rect = pygame.Rect((w - side) // 2, hud_h, side, side)
        self._grid_rect = grid_rect

        self._render_hud(surface, snap, center_x=w // 2)
        self._render_grid(surface, snap, grid_rect)

        if snap.phase is Phase.GAME_OVER:
            self._render_results(surface, grid_rect)

        if snap.phase is Phase.IDLE:
            hint = "Click the dark cell to start  |  1/2/3: grid 10/20/30  |  Esc: Back"
        elif snap.phase is Phase.ACTIVE:
            hint = "Click the dark cell  |  Esc: Back"
        else:
            hint = "R: Play again  |  Esc: Back"
        foot = self._small_font.render(hint, True, (107, 114, 128))
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 10)))

    def _render_hud(self, surface: pygame.Surface, snap: GridTaskSnapshot, *, center_x: int) -> None:
        lines = [
            snap.time_text,
            f"{snap.bps_text} BPS",
            f"{snap.ntpm} NTPM · {snap.grid_size}×{snap.grid_size}",
        ]
        y = 12
        for line in lines:
            text = self._hud_font.render(line, True, (0, 0, 0))
            surface.blit(text, text.get_rect(midtop=(center_x, y)))
            y += text.get_height() + 6

    def _render_grid(self, surface: pygame.Surface, snap: GridTaskSnapshot, rect: pygame.Rect) -> None:
        g = snap.grid_size
        pygame.draw.rect(surface, (229, 231, 235), rect)
        for row in range(g):
            y0 = rect.y + row * rect.h // g
            y1 = rect.y + (row + 1) * rect.h // g
            for col in range(g):
                x0 = rect.x + col * rect.w // g
                x1 = rect.x + (col + 1) * rect.w // g
                cell = pygame.Rect(x0, y0, max(1, x1 - x0 - 1), max(1, y1 - y0 - 1))
                color = (3, 7, 18) if snap.target == (row, col) else (255, 255, 255)
                pygame.draw.rect(surface, color, cell)
        pygame.draw.rect(surface, (209, 213, 219), rect, 1)

    def _render_results(self, surface: pygame.Surface, grid_rect: pygame.Rect) -> None:
        s = self._engine.summary()
        rt = "n/a" if s.mean_hit_interval_s is None else f"{s.mean_hit_interval_s:.2f}s"
        lines = [
            "Time's up",
            f"Hits: {s.hits}   Misses: {s.misses}",
            f"Accuracy: {int(round(s.accuracy * 100))}%",
            f"Mean time between hits: {rt}",
            f"Final: {s.final_ntpm} NTPM  |  {s.final_bps:.2f} BPS",
        ]
        panel = pygame.Rect(0, 0, min(grid_rect.w - 20, 460), 40 + 36 * len(lines))
        panel.center = grid_rect.center
        pygame.draw.rect(surface, (255, 255, 255), panel)
        pygame.draw.rect(surface, (3, 7, 18), panel, 2)
        y = panel.y + 20
        for line in lines:
            text = self._result_font.render(line, True, (3, 7, 18))
            surface.blit(text, text.get_rect(midtop=(panel.centerx, y)))
            y += 36

    def _cell_at(self, pos: tuple[int, int]) -> tuple[int, int] | None:
        rect = self._grid_rect
        if rect is None or not rect.collidepoint(pos):
            return None
        g = self._engine.session.grid_size
        col = (pos[0] - rect.x) * g // rect.w
        row = (pos[1] - rect.y) * g // rect.h
        return (min(g - 1, int(row)), min(g - 1, int(col)))


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    config: GridTaskConfig | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption("Grid Reaction Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)

    task_config = config or config_from_env()
    real_clock = RealClock()
    logger.info("Starting Grid Reaction Trainer (grid=%dx%d)", task_config.grid_size, task_config.grid_size)

    def open_grid_task() -> None:
        seed = _new_seed()
        app.push(
            GridTaskScreen(
                app,
                engine_factory=lambda: build_grid_task(clock=real_clock, seed=seed, config=task_config),
            )
        )

    main_items = [
        MenuItem("Grid Task", open_grid_task),
        MenuItem("Quit", app.quit),
    ]

    app.push(MenuScreen(app, "Grid Reaction Trainer", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        app.shutdown()
        pygame.quit()

    return 0
