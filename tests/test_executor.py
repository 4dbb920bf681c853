"""End-to-end executor tests against in-memory collaborators.

Covers job routing, resumable batching, finalization, cancellation, the
time budget and per-variation timeouts.
"""

import asyncio
from uuid import uuid4

import pytest

from mediagen.models.generation_job import JobStatus
from mediagen.services.exceptions import JobNotFoundError, StorageNetworkError, TransientError


def assert_counters_within_target(row):
    assert row.completed_count + row.failed_count <= row.variation_count


@pytest.mark.asyncio
async def test_batched_job_resumes_across_invocations(harness):
    """5 variations, batch 2, parallel 1: completed goes 2 -> 4 -> 5."""
    job = harness.add_image_job(variation_count=5)

    observed = []
    for _ in range(3):
        result = await harness.run(job.id, batch_size=2, parallelism=1)
        observed.append((result.completed, result.status))
        assert_counters_within_target(harness.jobs.row(job.id))

    assert observed == [
        (2, JobStatus.RUNNING),
        (4, JobStatus.RUNNING),
        (5, JobStatus.COMPLETED),
    ]
    row = harness.jobs.row(job.id)
    assert row.status == JobStatus.COMPLETED
    assert row.failed_count == 0
    assert row.started_at is not None
    assert row.completed_at is not None
    assert [m.variation_number for m in harness.units.inserted] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_one_large_batch_matches_resumed_batches(harness):
    job = harness.add_image_job(variation_count=5)

    result = await harness.run(job.id, batch_size=5, parallelism=1)

    assert result.processed == 5
    assert result.completed == 5
    assert result.failed == 0
    assert result.status == JobStatus.COMPLETED
    assert [m.variation_number for m in harness.units.inserted] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_parallel_batch_produces_unique_variations(harness):
    job = harness.add_image_job(variation_count=6)

    result = await harness.run(job.id, batch_size=6, parallelism=3)

    assert result.status == JobStatus.COMPLETED
    assert sorted(m.variation_number for m in harness.units.inserted) == [1, 2, 3, 4, 5, 6]


@pytest.mark.asyncio
async def test_all_variations_failing_fails_the_job(harness):
    job = harness.add_image_job(variation_count=3)
    harness.images.outcomes = [
        ValueError("invalid prompt (1)"),
        ValueError("invalid prompt (2)"),
        ValueError("invalid prompt (3)"),
    ]

    result = await harness.run(job.id, batch_size=3, parallelism=1)

    assert result.status == JobStatus.FAILED
    assert result.completed == 0
    assert result.failed == 3
    row = harness.jobs.row(job.id)
    assert row.status == JobStatus.FAILED
    assert row.error_message == "invalid prompt (3)"
    assert row.completed_at is not None
    assert harness.units.inserted == []
    # Fatal errors are not retried
    assert len(harness.images.calls) == 3


@pytest.mark.asyncio
async def test_partial_success_completes_with_failures(harness):
    job = harness.add_image_job(variation_count=4)
    harness.images.outcomes = [None, None, ValueError("invalid prompt"), None]

    result = await harness.run(job.id, batch_size=4, parallelism=1)

    assert result.status == JobStatus.COMPLETED
    assert result.completed == 3
    assert result.failed == 1
    row = harness.jobs.row(job.id)
    assert row.status == JobStatus.COMPLETED
    assert row.error_message == "invalid prompt"


@pytest.mark.asyncio
async def test_transient_failures_are_retried_with_backoff(harness):
    job = harness.add_image_job(variation_count=1)
    harness.images.outcomes = [TransientError("Server error 503")]

    result = await harness.run(job.id, batch_size=1)

    assert result.status == JobStatus.COMPLETED
    assert result.completed == 1
    assert len(harness.images.calls) == 2
    assert len(harness.sleep.delays) == 1
    assert 1.5 <= harness.sleep.delays[0] < 1.75


@pytest.mark.asyncio
async def test_persistent_rate_limit_exhausts_retries(harness):
    job = harness.add_image_job(variation_count=1)
    harness.images.default = RuntimeError("Rate limit exceeded")

    result = await harness.run(job.id, batch_size=1, max_retries=2)

    assert result.status == JobStatus.FAILED
    assert result.failed == 1
    assert len(harness.images.calls) == 3
    assert harness.jobs.row(job.id).error_message == "Rate limit exceeded"


@pytest.mark.asyncio
async def test_upload_outage_does_not_regenerate_the_variation(harness):
    job = harness.add_image_job(variation_count=1)
    harness.storage.fail_uploads = StorageNetworkError("Upload failed: service unavailable (503)")

    result = await harness.run(job.id, batch_size=1, max_retries=2)

    assert result.status == JobStatus.FAILED
    assert result.failed == 1
    assert len(harness.images.calls) == 1
    assert harness.sleep.delays == []
    assert harness.units.inserted == []
    assert "503" in harness.jobs.row(job.id).error_message


@pytest.mark.asyncio
async def test_hung_generation_times_out_as_transient(harness):
    job = harness.add_image_job(variation_count=1)

    async def hang(call_index):
        await asyncio.sleep(5)

    harness.images.on_call = hang

    result = await harness.run(job.id, batch_size=1, variation_timeout_ms=10, max_retries=1)

    assert result.status == JobStatus.FAILED
    assert len(harness.images.calls) == 2
    assert "timeout" in harness.jobs.row(job.id).error_message.lower()


@pytest.mark.asyncio
async def test_time_budget_leaves_job_resumable(harness):
    job = harness.add_image_job(variation_count=5)

    async def slow(call_index):
        harness.clock.advance(0.6)

    harness.images.on_call = slow

    first = await harness.run(job.id, batch_size=5, time_budget_ms=1000)

    assert first.processed == 2
    assert first.status == JobStatus.RUNNING
    assert harness.jobs.row(job.id).completed_count == 2

    second = await harness.run(job.id, batch_size=5, time_budget_ms=10_000)

    assert second.processed == 3
    assert second.status == JobStatus.COMPLETED
    assert harness.jobs.row(job.id).completed_count == 5


@pytest.mark.asyncio
async def test_external_cancel_stops_the_batch(harness):
    job = harness.add_image_job(variation_count=5)

    async def cancel_then_wait(call_index):
        if call_index == 1:
            harness.jobs.cancel(job.id)
        harness.clock.advance(3.0)

    harness.images.on_call = cancel_then_wait

    result = await harness.run(job.id, batch_size=5, parallelism=1)

    assert result.status == JobStatus.CANCELLED
    assert result.processed == 1
    assert result.completed == 0
    row = harness.jobs.row(job.id)
    assert row.status == JobStatus.CANCELLED
    # The guarded write does not touch a cancelled row
    assert row.completed_count == 0
    assert len(harness.images.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status", [JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.FAILED]
)
async def test_terminal_jobs_are_not_processed(harness, status):
    job = harness.add_image_job(
        variation_count=3, completed_count=2, failed_count=1, status=status
    )

    result = await harness.run(job.id, batch_size=3)

    assert result.processed == 0
    assert result.completed == 2
    assert result.failed == 1
    assert result.status == status
    assert harness.images.calls == []
    assert harness.jobs.updates == []


@pytest.mark.asyncio
async def test_unknown_job_raises(harness):
    with pytest.raises(JobNotFoundError):
        await harness.run(uuid4())


@pytest.mark.asyncio
async def test_image_job_without_reference_set_fails_without_attempts(harness):
    job = harness.add_image_job(reference_set_id=None)

    result = await harness.run(job.id, batch_size=3)

    assert result.status == JobStatus.FAILED
    assert result.processed == 0
    assert result.failed == 0
    row = harness.jobs.row(job.id)
    assert row.status == JobStatus.FAILED
    assert row.error_message == "Image job missing reference_set_id"
    assert harness.images.calls == []
    assert harness.references.loads == 0


@pytest.mark.asyncio
async def test_pending_job_is_marked_running_before_work(harness):
    job = harness.add_image_job(variation_count=2)

    await harness.run(job.id, batch_size=1)

    first_update = harness.jobs.updates[0]
    assert first_update["status"] == JobStatus.RUNNING
    assert "started_at" in first_update
    assert harness.jobs.row(job.id).status == JobStatus.RUNNING


@pytest.mark.asyncio
async def test_cancel_before_start_does_no_work(harness):
    job = harness.add_image_job(variation_count=3)
    load = harness.jobs.get

    async def load_then_cancel(job_id):
        snapshot = await load(job_id)
        harness.jobs.cancel(job_id)
        return snapshot

    harness.jobs.get = load_then_cancel

    result = await harness.run(job.id, batch_size=3)

    assert result.status == JobStatus.CANCELLED
    assert result.processed == 0
    assert harness.references.loads == 0
    assert harness.images.calls == []
    assert harness.jobs.updates == []
    assert harness.jobs.row(job.id).started_at is None


@pytest.mark.asyncio
async def test_reference_assets_are_loaded_once_per_invocation(harness):
    job = harness.add_image_job(variation_count=3)

    await harness.run(job.id, batch_size=3, parallelism=2)

    assert harness.references.loads == 1
    assert all(call["reference_assets"] == harness.references.assets for call in harness.images.calls)


@pytest.mark.asyncio
async def test_video_job_without_scene_fails_as_one_unit(harness):
    job = harness.add_video_job(scene_id=None)

    result = await harness.run(job.id)

    assert result.status == JobStatus.FAILED
    assert result.processed == 1
    assert result.failed == 1
    row = harness.jobs.row(job.id)
    assert row.error_message == "Video job missing scene_id"
    assert row.failed_count == 1
    assert harness.videos.calls == []


@pytest.mark.asyncio
async def test_video_job_generates_one_clip(harness):
    scene = harness.add_scene()
    job = harness.add_video_job(scene_id=scene.id)

    result = await harness.run(job.id, batch_size=5, parallelism=4)

    assert result.status == JobStatus.COMPLETED
    assert result.processed == 1
    assert result.completed == 1
    assert len(harness.videos.calls) == 1
    assert len(harness.units.inserted) == 1


@pytest.mark.asyncio
async def test_video_failure_is_not_retried(harness):
    scene = harness.add_scene()
    job = harness.add_video_job(scene_id=scene.id)
    harness.videos.error = TransientError("Veo API error: rate limit exceeded (429)")

    result = await harness.run(job.id)

    assert result.status == JobStatus.FAILED
    assert result.failed == 1
    assert len(harness.videos.calls) == 1
    assert harness.sleep.delays == []
    assert harness.jobs.row(job.id).error_message == "Veo API error: rate limit exceeded (429)"


@pytest.mark.asyncio
async def test_video_scene_without_motion_prompt_fails(harness):
    scene = harness.add_scene(motion_prompt=None)
    job = harness.add_video_job(scene_id=scene.id)

    result = await harness.run(job.id)

    assert result.status == JobStatus.FAILED
    assert harness.jobs.row(job.id).error_message == "Scene has no motion prompt"
    assert harness.videos.calls == []


@pytest.mark.asyncio
async def test_video_scene_missing_fails(harness):
    job = harness.add_video_job(scene_id=uuid4())

    result = await harness.run(job.id)

    assert result.status == JobStatus.FAILED
    assert harness.jobs.row(job.id).error_message == "Scene not found"
