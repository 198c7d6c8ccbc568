from __future__ import annotations

import logging

from grid_trainer.config import (
    DURATION_ENV,
    GRID_SIZE_ENV,
    LOG_LEVEL_ENV,
    GridTaskConfig,
    config_from_env,
    log_level_from_env,
)


def test_defaults_without_overrides() -> None:
    cfg = config_from_env({})
    assert cfg == GridTaskConfig()
    assert cfg.grid_size == 10
    assert cfg.duration_s == 70
    assert cfg.window_s == 60.0
    assert cfg.tick_interval_s == 1.0


def test_env_overrides_grid_size_and_duration() -> None:
    cfg = config_from_env({GRID_SIZE_ENV: "20", DURATION_ENV: " 45 "})
    assert cfg.grid_size == 20
    assert cfg.duration_s == 45


def test_invalid_overrides_fall_back_and_warn(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="grid_trainer.config"):
        cfg = config_from_env({GRID_SIZE_ENV: "25", DURATION_ENV: "soon"})
    assert cfg == GridTaskConfig()
    assert GRID_SIZE_ENV in caplog.text
    assert DURATION_ENV in caplog.text


def test_overrides_apply_on_top_of_base() -> None:
    base = GridTaskConfig(grid_size=30, duration_s=90)
    cfg = config_from_env({DURATION_ENV: "30"}, base=base)
    assert cfg.grid_size == 30
    assert cfg.duration_s == 30


def test_log_level_from_env() -> None:
    assert log_level_from_env({}) == logging.WARNING
    assert log_level_from_env({LOG_LEVEL_ENV: "debug"}) == logging.DEBUG
    assert log_level_from_env({LOG_LEVEL_ENV: "chatty"}) == logging.WARNING
