from __future__ import annotations

import logging
import math
import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from .config import GRID_SIZES, GridTaskConfig
from .timing import Clock, ClockScheduler, ScheduledCallback, Scheduler

logger = logging.getLogger(__name__)

Cell = tuple[int, int]  # (row, col)


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


class Phase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    GAME_OVER = "game_over"


@dataclass(frozen=True, slots=True)
class Trial:
    timestamp_s: float
    hit: bool
    cell: Cell
    target: Cell


@dataclass(slots=True)
class GridSession:
    """All mutable state of one grid task run."""

    grid_size: int
    time_remaining_s: int
    phase: Phase = Phase.IDLE
    target: Cell | None = None
    trials: list[Trial] = field(default_factory=list)
    ntpm: int = 0
    bps: float = 0.0

    @property
    def active(self) -> bool:
        return self.phase is Phase.ACTIVE

    @property
    def game_over(self) -> bool:
        return self.phase is Phase.GAME_OVER


@dataclass(frozen=True, slots=True)
class GridTaskSummary:
    hits: int
    misses: int
    accuracy: float
    final_ntpm: int
    final_bps: float
    duration_s: int
    mean_hit_interval_s: float | None


@dataclass(frozen=True, slots=True)
class GridTaskSnapshot:
    """View model for the UI (pure data)."""

    phase: Phase
    grid_size: int
    time_remaining_s: int
    time_text: str
    ntpm: int
    bps: float
    bps_text: str
    target: Cell | None
    hits: int
    misses: int
    can_change_grid_size: bool


class SeededRng:
    """Seeded RNG wrapper so target streams are reproducible."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)


def pick_target(grid_size: int, rng: RandomSource) -> Cell:
    """Uniform random cell in [0, grid_size) x [0, grid_size); repeats allowed."""

    if grid_size < 1:
        raise ValueError("grid_size must be >= 1")
    row = rng.randint(0, grid_size - 1)
    col = rng.randint(0, grid_size - 1)
    return (row, col)


def record_trial(cell: Cell, target: Cell, now_s: float) -> Trial:
    return Trial(timestamp_s=float(now_s), hit=tuple(cell) == tuple(target), cell=cell, target=target)


def net_targets_per_minute(trials: Iterable[Trial], *, now_s: float, window_s: float = 60.0) -> int:
    """Hits minus misses among trials no older than ``window_s`` seconds."""

    net = 0
    for trial in trials:
        if now_s - trial.timestamp_s > window_s:
            continue
        net += 1 if trial.hit else -1
    return net


def bits_per_second(ntpm: int, grid_size: int) -> float:
    """Throughput in bits/s, floored at zero and rounded to 2 decimals.

    Each correct selection among grid_size**2 cells carries log2(grid_size**2 - 1)
    bits. Net-negative performance reports 0.0 rather than a negative rate.
    """

    if grid_size < 2:
        raise ValueError("grid_size must be >= 2")
    bits_per_target = math.log2(grid_size * grid_size - 1)
    return round(max(0.0, bits_per_target * ntpm / 60.0), 2)


def _count_hits(trials: Iterable[Trial]) -> tuple[int, int]:
    hits = 0
    misses = 0
    for trial in trials:
        if trial.hit:
            hits += 1
        else:
            misses += 1
    return hits, misses


def format_time(seconds: int) -> str:
    total = max(0, int(seconds))
    minutes, rem = divmod(total, 60)
    return f"{minutes:02d}:{rem:02d}"


class GridTaskEngine:
    """Idle -> active -> game over state machine for the grid reaction task.

    - The first click starts the countdown and is itself scored.
    - A periodic scheduler callback ticks the countdown once per interval.
    - Game over freezes NTPM/BPS; only ``reset()`` leaves it.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: GridTaskConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        cfg = config or GridTaskConfig()
        if cfg.grid_size not in GRID_SIZES:
            raise ValueError(f"grid_size must be one of {GRID_SIZES}")
        if cfg.duration_s <= 0:
            raise ValueError("duration_s must be > 0")
        if cfg.window_s <= 0:
            raise ValueError("window_s must be > 0")
        if cfg.tick_interval_s <= 0:
            raise ValueError("tick_interval_s must be > 0")

        self._config = cfg
        self._clock = clock
        self._scheduler: Scheduler = scheduler if scheduler is not None else ClockScheduler(clock)
        self._seed = int(seed)
        self._rng = SeededRng(self._seed)
        self._timer: ScheduledCallback | None = None

        self._session = GridSession(grid_size=cfg.grid_size, time_remaining_s=cfg.duration_s)
        self._session.target = pick_target(self._session.grid_size, self._rng)

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def config(self) -> GridTaskConfig:
        return self._config

    @property
    def session(self) -> GridSession:
        return self._session

    @property
    def phase(self) -> Phase:
        return self._session.phase

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and self._timer.active

    def trials(self) -> list[Trial]:
        return list(self._session.trials)

    def click(self, row: int, col: int) -> bool:
        """Register a click on (row, col). Returns True if a trial was recorded."""

        # Let ticks that fell due before this click run first.
        self._scheduler.poll()

        s = self._session
        if s.game_over:
            return False
        if not (0 <= row < s.grid_size and 0 <= col < s.grid_size):
            return False
        assert s.target is not None

        now_s = self._clock.now()
        if s.phase is Phase.IDLE:
            self._start()

        trial = record_trial((int(row), int(col)), s.target, now_s)
        s.trials.append(trial)
        if trial.hit:
            s.target = pick_target(s.grid_size, self._rng)
        self._recompute(now_s)
        return True

    def tick(self, now_s: float | None = None) -> None:
        """Advance the countdown by one interval, scoring the window at ``now_s``.

        The scheduler passes each tick's due time so catch-up ticks score the
        window where the tick belonged, not where the frame loop caught up.
        """

        s = self._session
        if s.phase is not Phase.ACTIVE:
            self._cancel_timer()
            return

        s.time_remaining_s = max(0, s.time_remaining_s - 1)
        if now_s is None:
            now_s = self._clock.now()
        self._recompute(now_s)
        if s.time_remaining_s == 0:
            self._finish()
        else:
            logger.debug("Tick: %ds remaining, ntpm=%d", s.time_remaining_s, s.ntpm)

    def update(self) -> None:
        """Per-frame hook: let due timer callbacks run."""
        self._scheduler.poll()

    def set_grid_size(self, grid_size: int) -> bool:
        if grid_size not in GRID_SIZES:
            raise ValueError(f"grid_size must be one of {GRID_SIZES}")
        s = self._session
        if s.phase is not Phase.IDLE:
            return False
        if grid_size != s.grid_size:
            s.grid_size = int(grid_size)
            s.target = pick_target(s.grid_size, self._rng)
            logger.debug("Grid size set to %dx%d", grid_size, grid_size)
        return True

    def reset(self) -> None:
        self._cancel_timer()
        grid_size = self._session.grid_size
        self._session = GridSession(grid_size=grid_size, time_remaining_s=self._config.duration_s)
        self._session.target = pick_target(grid_size, self._rng)
        logger.info("Grid task reset (grid=%dx%d)", grid_size, grid_size)

    def close(self) -> None:
        self._cancel_timer()

    def summary(self) -> GridTaskSummary:
        s = self._session
        hits, misses = _count_hits(s.trials)
        attempted = hits + misses
        accuracy = 0.0 if attempted == 0 else hits / attempted

        hit_times = [t.timestamp_s for t in s.trials if t.hit]
        mean_interval: float | None = None
        if len(hit_times) >= 2:
            mean_interval = (hit_times[-1] - hit_times[0]) / float(len(hit_times) - 1)

        return GridTaskSummary(
            hits=hits,
            misses=misses,
            accuracy=accuracy,
            final_ntpm=s.ntpm,
            final_bps=s.bps,
            duration_s=self._config.duration_s - s.time_remaining_s,
            mean_hit_interval_s=mean_interval,
        )

    def snapshot(self) -> GridTaskSnapshot:
        s = self._session
        hits, misses = _count_hits(s.trials)
        return GridTaskSnapshot(
            phase=s.phase,
            grid_size=s.grid_size,
            time_remaining_s=s.time_remaining_s,
            time_text=format_time(s.time_remaining_s),
            ntpm=s.ntpm,
            bps=s.bps,
            bps_text=f"{s.bps:.2f}",
            target=s.target,
            hits=hits,
            misses=misses,
            can_change_grid_size=s.phase is Phase.IDLE,
        )

    def _start(self) -> None:
        s = self._session
        s.phase = Phase.ACTIVE
        self._timer = self._scheduler.call_every(self._config.tick_interval_s, self.tick)
        logger.info("Grid task started (grid=%dx%d, duration=%ds)", s.grid_size, s.grid_size, s.time_remaining_s)

    def _finish(self) -> None:
        s = self._session
        s.phase = Phase.GAME_OVER
        s.target = None
        self._cancel_timer()
        logger.info("Grid task over: ntpm=%d bps=%.2f trials=%d", s.ntpm, s.bps, len(s.trials))

    def _recompute(self, now_s: float) -> None:
        s = self._session
        s.ntpm = net_targets_per_minute(s.trials, now_s=now_s, window_s=self._config.window_s)
        s.bps = bits_per_second(s.ntpm, s.grid_size)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def build_grid_task(
    *,
    clock: Clock,
    seed: int,
    config: GridTaskConfig | None = None,
    scheduler: Scheduler | None = None,
) -> GridTaskEngine:
    return GridTaskEngine(clock=clock, seed=seed, config=config, scheduler=scheduler)
