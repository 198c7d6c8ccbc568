from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

GRID_SIZES: tuple[int, ...] = (10, 20, 30)

GRID_SIZE_ENV = "GRID_TRAINER_GRID_SIZE"
DURATION_ENV = "GRID_TRAINER_DURATION_S"
LOG_LEVEL_ENV = "GRID_TRAINER_LOG_LEVEL"


@dataclass(frozen=True, slots=True)
class GridTaskConfig:
    grid_size: int = 10
    # 1:10 on the countdown; the first 10s warm up the trailing NTPM window.
    duration_s: int = 70
    window_s: float = 60.0
    tick_interval_s: float = 1.0


def config_from_env(
    environ: Mapping[str, str] | None = None,
    *,
    base: GridTaskConfig | None = None,
) -> GridTaskConfig:
    """Apply environment overrides on top of ``base`` (or the defaults)."""

    env = os.environ if environ is None else environ
    cfg = base or GridTaskConfig()

    raw_size = str(env.get(GRID_SIZE_ENV, "")).strip()
    if raw_size != "":
        size = _as_int(raw_size, cfg.grid_size)
        if size in GRID_SIZES:
            cfg = replace(cfg, grid_size=size)
        else:
            logger.warning("Ignoring %s=%r; expected one of %s", GRID_SIZE_ENV, raw_size, GRID_SIZES)

    raw_duration = str(env.get(DURATION_ENV, "")).strip()
    if raw_duration != "":
        duration = _as_int(raw_duration, 0)
        if duration > 0:
            cfg = replace(cfg, duration_s=duration)
        else:
            logger.warning("Ignoring %s=%r; expected a positive whole number", DURATION_ENV, raw_duration)

    return cfg


def log_level_from_env(environ: Mapping[str, str] | None = None) -> int:
    env = os.environ if environ is None else environ
    name = str(env.get(LOG_LEVEL_ENV, "WARNING")).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def _as_int(value: object, fallback: int) -> int:
    try:
        return int(str(value))
    except ValueError:
        return fallback
