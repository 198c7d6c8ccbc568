from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass

import pytest

from grid_trainer.config import GRID_SIZES, GridTaskConfig
from grid_trainer.grid_core import (
    SeededRng,
    Trial,
    bits_per_second,
    build_grid_task,
    format_time,
    net_targets_per_minute,
    pick_target,
    record_trial,
)


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


@pytest.mark.parametrize("grid_size", GRID_SIZES)
def test_pick_target_in_bounds_with_uniform_marginals(grid_size: int) -> None:
    rng = SeededRng(1234 + grid_size)
    samples_per_value = 1000
    n = grid_size * samples_per_value

    rows: Counter[int] = Counter()
    cols: Counter[int] = Counter()
    for _ in range(n):
        row, col = pick_target(grid_size, rng)
        assert 0 <= row < grid_size
        assert 0 <= col < grid_size
        rows[row] += 1
        cols[col] += 1

    assert set(rows) == set(range(grid_size))
    assert set(cols) == set(range(grid_size))
    # ~6 standard deviations for a binomial count around 1000.
    for counts in (rows, cols):
        for value in range(grid_size):
            assert abs(counts[value] - samples_per_value) < 200


def test_pick_target_same_seed_same_stream() -> None:
    a = SeededRng(99)
    b = SeededRng(99)
    assert [pick_target(20, a) for _ in range(30)] == [pick_target(20, b) for _ in range(30)]


def test_record_trial_hit_only_on_target_cell() -> None:
    hit = record_trial((3, 4), (3, 4), 12.5)
    miss = record_trial((4, 3), (3, 4), 13.0)

    assert hit == Trial(timestamp_s=12.5, hit=True, cell=(3, 4), target=(3, 4))
    assert miss.hit is False
    assert miss.timestamp_s == 13.0


def test_ntpm_counts_hits_minus_misses() -> None:
    trials = [
        record_trial((0, 0), (0, 0), 1.0),
        record_trial((0, 1), (0, 0), 2.0),
        record_trial((5, 5), (5, 5), 3.0),
        record_trial((5, 5), (5, 5), 4.0),
    ]
    assert net_targets_per_minute(trials, now_s=10.0) == 2


def test_ntpm_ignores_trials_older_than_window() -> None:
    fresh = record_trial((1, 1), (1, 1), 100.0)
    old_hit = record_trial((2, 2), (2, 2), 100.0)
    assert net_targets_per_minute([fresh, old_hit], now_s=130.0) == 2

    # Same trial shifted beyond 60s ago no longer contributes.
    shifted = Trial(timestamp_s=69.0, hit=True, cell=(2, 2), target=(2, 2))
    assert net_targets_per_minute([fresh, shifted], now_s=130.0) == 1

    old_miss = Trial(timestamp_s=10.0, hit=False, cell=(0, 0), target=(2, 2))
    assert net_targets_per_minute([fresh, old_miss], now_s=130.0) == 1


def test_ntpm_window_edge_is_inclusive() -> None:
    t = record_trial((0, 0), (0, 0), 0.0)
    assert net_targets_per_minute([t], now_s=60.0) == 1
    assert net_targets_per_minute([t], now_s=60.001) == 0


def test_bps_single_hit_on_10_grid() -> None:
    assert bits_per_second(1, 10) == pytest.approx(0.11)
    assert bits_per_second(1, 10) == round(math.log2(99) / 60.0, 2)


def test_bps_negative_ntpm_clamps_to_zero() -> None:
    assert bits_per_second(-3, 10) == 0.0
    assert f"{bits_per_second(-3, 10):.2f}" == "0.00"


@pytest.mark.parametrize("grid_size", GRID_SIZES)
def test_bps_monotonic_and_non_negative(grid_size: int) -> None:
    values = [bits_per_second(ntpm, grid_size) for ntpm in range(-20, 121)]
    assert all(v >= 0.0 for v in values)
    assert all(a <= b for a, b in zip(values, values[1:]))


def test_bps_uses_grid_alternatives() -> None:
    assert bits_per_second(60, 30) == round(math.log2(899), 2)
    assert bits_per_second(0, 20) == 0.0


def test_format_time_is_mm_ss() -> None:
    assert format_time(70) == "01:10"
    assert format_time(60) == "01:00"
    assert format_time(9) == "00:09"
    assert format_time(0) == "00:00"
    assert format_time(-5) == "00:00"


@pytest.mark.parametrize(
    "config",
    [
        GridTaskConfig(grid_size=15),
        GridTaskConfig(duration_s=0),
        GridTaskConfig(window_s=0.0),
        GridTaskConfig(tick_interval_s=-1.0),
    ],
)
def test_engine_rejects_invalid_config(config: GridTaskConfig) -> None:
    with pytest.raises(ValueError):
        build_grid_task(clock=FakeClock(), seed=1, config=config)


def test_initial_snapshot_is_idle_with_target() -> None:
    engine = build_grid_task(clock=FakeClock(), seed=3)
    snap = engine.snapshot()

    assert snap.phase.value == "idle"
    assert snap.time_remaining_s == 70
    assert snap.time_text == "01:10"
    assert snap.ntpm == 0
    assert snap.bps_text == "0.00"
    assert snap.target is not None
    assert 0 <= snap.target[0] < 10 and 0 <= snap.target[1] < 10
    assert snap.can_change_grid_size is True
    assert engine.timer_running is False
