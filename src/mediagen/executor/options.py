"""Executor tuning options with environment-level fallbacks."""

from dataclasses import dataclass
from typing import Optional

from mediagen.core.config import Settings

DEFAULT_BATCH_SIZE = 1
DEFAULT_PARALLELISM = 1
DEFAULT_TIME_BUDGET_MS = 760_000
DEFAULT_VARIATION_TIMEOUT_MS = 300_000
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_BASE_MS = 1500


def _positive(value: Optional[float], fallback: int) -> int:
    if value is None or value <= 0:
        return fallback
    return int(value)


def _non_negative(value: Optional[float], fallback: int) -> int:
    if value is None or value < 0:
        return fallback
    return int(value)


@dataclass(frozen=True)
class ExecutorOptions:
    """Per-invocation knobs for process_generation_job."""

    batch_size: int = DEFAULT_BATCH_SIZE
    parallelism: int = DEFAULT_PARALLELISM
    time_budget_ms: int = DEFAULT_TIME_BUDGET_MS
    variation_timeout_ms: int = DEFAULT_VARIATION_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_ms: int = DEFAULT_RETRY_BASE_MS

    @classmethod
    def resolve(
        cls,
        settings: Optional[Settings] = None,
        *,
        batch_size: Optional[float] = None,
        parallelism: Optional[float] = None,
        time_budget_ms: Optional[float] = None,
    ) -> "ExecutorOptions":
        """Merge explicit overrides with environment defaults.

        Non-positive or missing values fall back to the setting, and invalid
        settings fall back to the built-in defaults.

        Args:
            settings: Environment settings (defaults used when omitted)
            batch_size: Override for variations attempted per invocation
            parallelism: Override for concurrent workers
            time_budget_ms: Override for the invocation's claim deadline

        Returns:
            Fully resolved ExecutorOptions
        """
        if settings is None:
            return cls(
                batch_size=_positive(batch_size, DEFAULT_BATCH_SIZE),
                parallelism=_positive(parallelism, DEFAULT_PARALLELISM),
                time_budget_ms=_positive(time_budget_ms, DEFAULT_TIME_BUDGET_MS),
            )

        return cls(
            batch_size=_positive(
                batch_size, _positive(settings.generation_batch_size, DEFAULT_BATCH_SIZE)
            ),
            parallelism=_positive(
                parallelism, _positive(settings.generation_parallelism, DEFAULT_PARALLELISM)
            ),
            time_budget_ms=_positive(
                time_budget_ms,
                _positive(settings.generation_time_budget_ms, DEFAULT_TIME_BUDGET_MS),
            ),
            variation_timeout_ms=_positive(
                settings.generation_variation_timeout_ms, DEFAULT_VARIATION_TIMEOUT_MS
            ),
            max_retries=_non_negative(settings.generation_variation_retries, DEFAULT_MAX_RETRIES),
            retry_base_ms=_positive(settings.generation_retry_base_ms, DEFAULT_RETRY_BASE_MS),
        )
