"""Batch planning from persisted job progress."""


def plan_batch(
    variation_count: int,
    completed_count: int,
    failed_count: int,
    batch_size: int,
) -> list[int]:
    """Pick the variation numbers to attempt in this invocation.

    Planning depends only on the persisted counters, so any process can pick
    up a partially finished job and continue where the last one stopped.

    Args:
        variation_count: Total variations requested by the job
        completed_count: Variations already produced
        failed_count: Variations already given up on
        batch_size: Maximum variations to attempt now

    Returns:
        Increasing variation numbers following completed_count + failed_count

    Example:
        >>> plan_batch(variation_count=5, completed_count=2, failed_count=0, batch_size=2)
        [3, 4]
    """
    done = completed_count + failed_count
    to_process = max(0, min(batch_size, variation_count - done))
    return [done + i + 1 for i in range(to_process)]
