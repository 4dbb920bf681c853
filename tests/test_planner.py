"""Batch planning and executor option resolution tests."""

import pytest

from mediagen.core.config import Settings
from mediagen.executor.options import ExecutorOptions
from mediagen.executor.planner import plan_batch


@pytest.mark.parametrize(
    "variation_count, completed, failed, batch_size, expected",
    [
        (5, 0, 0, 2, [1, 2]),
        (5, 2, 0, 2, [3, 4]),
        (5, 4, 0, 2, [5]),
        (5, 5, 0, 2, []),
        (5, 2, 1, 10, [4, 5]),
        (3, 1, 2, 1, []),
        (15, 0, 0, 1, [1]),
    ],
)
def test_plan_batch(variation_count, completed, failed, batch_size, expected):
    assert plan_batch(variation_count, completed, failed, batch_size) == expected


def test_plan_batch_never_goes_negative():
    """Counters past the target (double counting) plan nothing."""
    assert plan_batch(variation_count=3, completed_count=3, failed_count=2, batch_size=5) == []


def test_options_defaults():
    options = ExecutorOptions.resolve()

    assert options.batch_size == 1
    assert options.parallelism == 1
    assert options.time_budget_ms == 760_000
    assert options.variation_timeout_ms == 300_000
    assert options.max_retries == 2
    assert options.retry_base_ms == 1500


def test_options_explicit_values_win_over_settings():
    settings = Settings(GENERATION_BATCH_SIZE=3, GENERATION_PARALLELISM=2)

    options = ExecutorOptions.resolve(settings, batch_size=5, parallelism=4, time_budget_ms=1000)

    assert options.batch_size == 5
    assert options.parallelism == 4
    assert options.time_budget_ms == 1000


def test_options_invalid_values_fall_back():
    settings = Settings(
        GENERATION_BATCH_SIZE=0,
        GENERATION_PARALLELISM=3,
        GENERATION_TIME_BUDGET_MS=-5,
        GENERATION_VARIATION_RETRIES=0,
    )

    options = ExecutorOptions.resolve(settings, batch_size=-1, parallelism=0)

    assert options.batch_size == 1
    assert options.parallelism == 3
    assert options.time_budget_ms == 760_000
    assert options.max_retries == 0
