"""Worker trigger endpoint.

GET /api/worker/generate runs one bounded executor invocation for a single job
(`jobId`) or drains the oldest runnable jobs. It is meant to be hit
repeatedly by a scheduler until every job reaches a terminal status.
"""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from mediagen.api.dependencies import (
    get_collaborators,
    get_settings,
    get_uow_factory,
    verify_worker_trigger,
)
from mediagen.core.config import Settings
from mediagen.executor.ports import Collaborators
from mediagen.workers.generation_worker import UowFactory, trigger_generation

logger = structlog.get_logger()
router = APIRouter(prefix="/api/worker", tags=["worker"])


@router.get("/generate", dependencies=[Depends(verify_worker_trigger)])
async def generate(
    job_id: Optional[UUID] = Query(None, alias="jobId"),
    batch: Optional[float] = Query(None, description="Variations attempted per job"),
    parallel: Optional[float] = Query(None, description="Concurrent variations per job"),
    jobs: Optional[float] = Query(None, description="Jobs picked up by a drain"),
    image_jobs: Optional[float] = Query(None, alias="imageJobs"),
    video_jobs: Optional[float] = Query(None, alias="videoJobs"),
    budget: Optional[float] = Query(None, description="Time budget in milliseconds"),
    settings: Settings = Depends(get_settings),
    uow_factory: UowFactory = Depends(get_uow_factory),
    collaborators: Collaborators = Depends(get_collaborators),
):
    """Process one job or drain the queue.

    Returns:
        200: {"processed": n, "results": [{job_id, processed, completed, failed, status}]}
        401: {"detail": "Unauthorized"} without a valid trigger credential
        500: {"error": message} on any processing error
    """
    try:
        drained = await trigger_generation(
            settings,
            uow_factory,
            collaborators,
            job_id=job_id,
            batch_size=batch,
            parallelism=parallel,
            time_budget_ms=budget,
            job_limit=jobs,
            image_concurrency=image_jobs,
            video_concurrency=video_jobs,
        )
    except Exception as e:
        logger.error(
            "worker.trigger_failed",
            job_id=str(job_id) if job_id else None,
            error=str(e),
            error_type=type(e).__name__,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e) or "Worker error"},
        )

    return drained.to_dict()
