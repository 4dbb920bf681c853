"""pytest fixtures for mediagen tests.

Provides:
- harness: In-memory collaborators + fake clock for executor tests
- postgres_container: Session-scoped testcontainer PostgreSQL instance
  (migrations applied; tests using it are skipped when Docker is unavailable)
- session: Function-scoped database session with table cleanup
- uow_factory: Function-scoped UnitOfWork factory
"""

import os
import subprocess
import sys
from pathlib import Path
from typing import Any, AsyncGenerator, Iterable, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediagen.core.database import setup_db_session
from mediagen.executor.options import ExecutorOptions
from mediagen.executor.ports import (
    Collaborators,
    FrameReference,
    GeneratedPayload,
    ReferenceAsset,
    Rendition,
    VideoFrames,
)
from mediagen.executor.router import process_generation_job
from mediagen.models.generated_media import GeneratedMedia
from mediagen.models.generation_job import GenerationJob, JobStatus, JobType
from mediagen.models.scene import StoryboardScene

PROJECT_ROOT = Path(__file__).resolve().parent.parent


# In-memory collaborators


class FakeClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Backoff sleep that returns immediately and remembers the delays."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.delays: list[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class InMemoryJobStore:
    """JobStore keeping rows in a dict; get() returns detached snapshots."""

    def __init__(self):
        self.rows: dict[UUID, GenerationJob] = {}
        self.updates: list[dict[str, Any]] = []
        self.status_reads = 0

    def add(self, job: GenerationJob) -> GenerationJob:
        self.rows[job.id] = job
        return job

    def row(self, job_id: UUID) -> GenerationJob:
        return self.rows[job_id]

    def cancel(self, job_id: UUID) -> None:
        self.rows[job_id].status = JobStatus.CANCELLED

    async def get(self, job_id: UUID) -> GenerationJob | None:
        row = self.rows.get(job_id)
        return GenerationJob(**row.model_dump()) if row else None

    async def get_status(self, job_id: UUID) -> JobStatus | None:
        self.status_reads += 1
        row = self.rows.get(job_id)
        return row.status if row else None

    async def conditional_update(
        self, job_id: UUID, values: dict[str, Any], allowed_statuses: Iterable[JobStatus]
    ) -> bool:
        row = self.rows.get(job_id)
        if row is None or row.status not in tuple(allowed_statuses):
            return False
        for key, value in values.items():
            setattr(row, key, value)
        self.updates.append(dict(values))
        return True


class FakeUnitStore:
    def __init__(self):
        self.inserted: list[GeneratedMedia] = []

    async def insert(self, media: GeneratedMedia) -> GeneratedMedia:
        self.inserted.append(media)
        return media


class FakeReferenceReader:
    def __init__(self):
        self.assets: list[ReferenceAsset] = [ReferenceAsset(data=b"ref-1", mime_type="image/png")]
        self.frames: dict[UUID, FrameReference] = {}
        self.loads = 0

    async def load_reference_set(self, reference_set_id: UUID) -> list[ReferenceAsset]:
        self.loads += 1
        return list(self.assets)

    async def resolve_frame(self, media_id: UUID) -> FrameReference | None:
        return self.frames.get(media_id)


class FakeSceneReader:
    def __init__(self):
        self.scenes: dict[UUID, StoryboardScene] = {}

    async def get_scene(self, scene_id: UUID) -> StoryboardScene | None:
        return self.scenes.get(scene_id)


class FakeImageService:
    """Image generator driven by a script of outcomes.

    Each entry in `outcomes` is consumed by one call: an exception is raised,
    anything else produces an image. When the script runs out, `default` is
    used (None = success). `on_call` runs before each call (e.g. to advance a
    clock or cancel the job).
    """

    def __init__(self):
        self.outcomes: list[Optional[BaseException]] = []
        self.default: Optional[BaseException] = None
        self.on_call = None
        self.calls: list[dict[str, Any]] = []

    async def generate(
        self,
        prompt: str,
        resolution: str,
        aspect_ratio: str,
        reference_assets: list[ReferenceAsset],
        credential: Optional[str] = None,
        model: Optional[str] = None,
    ) -> GeneratedPayload:
        self.calls.append(
            {
                "prompt": prompt,
                "resolution": resolution,
                "aspect_ratio": aspect_ratio,
                "reference_assets": reference_assets,
                "credential": credential,
                "model": model,
            }
        )
        if self.on_call is not None:
            await self.on_call(len(self.calls))
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return GeneratedPayload(data=b"\x89PNG-generated", mime_type="image/png")


class FakeVideoService:
    def __init__(self):
        self.error: Optional[BaseException] = None
        self.calls: list[tuple[str, VideoFrames, str]] = []

    async def generate(self, prompt: str, frames: VideoFrames, model: str) -> GeneratedPayload:
        self.calls.append((prompt, frames, model))
        if self.error is not None:
            raise self.error
        return GeneratedPayload(data=b"video-bytes", mime_type="video/mp4")


class FakeTranscoder:
    async def thumbnail(self, data: bytes) -> Rendition:
        return Rendition(data=b"thumb", mime_type="image/webp", extension="webp")

    async def preview(self, data: bytes) -> Rendition:
        return Rendition(data=b"preview", mime_type="image/webp", extension="webp")


class FakeObjectStore:
    def __init__(self):
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.fail_uploads: Optional[BaseException] = None

    async def upload(self, bucket: str, path: str, data: bytes, mime_type: str) -> None:
        if self.fail_uploads is not None:
            raise self.fail_uploads
        self.objects[(bucket, path)] = (data, mime_type)

    async def download(self, bucket: str, path: str) -> bytes:
        return self.objects[(bucket, path)][0]

    async def signed_read(self, bucket: str, path: str, expires_in: int) -> str:
        return f"https://storage.test/{bucket}/{path}?expires={expires_in}"


class ExecutorHarness:
    """Everything needed to run process_generation_job against fakes."""

    def __init__(self):
        self.clock = FakeClock()
        self.sleep = RecordingSleep()
        self.jobs = InMemoryJobStore()
        self.units = FakeUnitStore()
        self.references = FakeReferenceReader()
        self.scenes = FakeSceneReader()
        self.images = FakeImageService()
        self.videos = FakeVideoService()
        self.transcoder = FakeTranscoder()
        self.storage = FakeObjectStore()
        self.product_id = uuid4()

    @property
    def collaborators(self) -> Collaborators:
        return Collaborators(
            jobs=self.jobs,
            units=self.units,
            references=self.references,
            scenes=self.scenes,
            images=self.images,
            videos=self.videos,
            transcoder=self.transcoder,
            storage=self.storage,
        )

    def add_image_job(self, **overrides) -> GenerationJob:
        values: dict[str, Any] = {
            "product_id": self.product_id,
            "reference_set_id": uuid4(),
            "final_prompt": "Hero shot of a red sneaker on white marble",
            "variation_count": 3,
            "job_type": JobType.IMAGE,
        }
        values.update(overrides)
        return self.jobs.add(GenerationJob(**values))

    def add_scene(self, **overrides) -> StoryboardScene:
        values: dict[str, Any] = {
            "product_id": self.product_id,
            "title": "Opening",
            "motion_prompt": "Slow dolly in on the sneaker",
            "generation_model": "veo3",
        }
        values.update(overrides)
        scene = StoryboardScene(**values)
        self.scenes.scenes[scene.id] = scene
        return scene

    def add_video_job(self, **overrides) -> GenerationJob:
        values: dict[str, Any] = {
            "product_id": self.product_id,
            "variation_count": 1,
            "job_type": JobType.VIDEO,
            "generation_model": "veo3",
        }
        values.update(overrides)
        return self.jobs.add(GenerationJob(**values))

    async def run(self, job_id: UUID, **options):
        option_values = {"max_retries": 2, "retry_base_ms": 1500}
        option_values.update(options)
        return await process_generation_job(
            job_id,
            self.collaborators,
            ExecutorOptions(**option_values),
            clock=self.clock,
            sleep=self.sleep,
        )


@pytest.fixture
def harness() -> ExecutorHarness:
    return ExecutorHarness()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


# PostgreSQL (testcontainers)


@pytest.fixture(scope="session")
def postgres_container():
    """Provide session-scoped PostgreSQL container with migrations applied.

    Container starts once per test session and is reused across all tests.
    Migrations are applied using subprocess to avoid asyncio event loop conflicts.
    """
    try:
        from testcontainers.postgres import PostgresContainer

        container = PostgresContainer(
            image="postgres:17",
            username="test",
            password="test",
            dbname="test_mediagen",
        )
        container.start()
    except Exception as e:  # Docker not installed or daemon not reachable
        pytest.skip(f"PostgreSQL testcontainer unavailable: {e}")

    try:
        db_url = container.get_connection_url(driver="psycopg")

        env = os.environ.copy()
        env["DATABASE_URL"] = db_url
        env["APP_ENV"] = "test"

        subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
            env=env,
            cwd=PROJECT_ROOT,
        )

        yield container
    finally:
        container.stop()


@pytest_asyncio.fixture(scope="function")
async def session(postgres_container) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session with table cleanup."""
    db_url = postgres_container.get_connection_url(driver="psycopg")
    session_factory = setup_db_session(db_url, pool_size=5)

    async with session_factory() as session:
        yield session

        await session.rollback()

        # Dependent tables first
        await session.execute(text("DELETE FROM generated_media"))
        await session.execute(text("DELETE FROM generation_jobs"))
        await session.execute(text("DELETE FROM reference_images"))
        await session.execute(text("DELETE FROM storyboard_scenes"))
        await session.commit()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(session: AsyncSession):
    """Provide function-scoped UnitOfWork factory bound to the test database."""
    from mediagen.uow import create_uow_factory

    session_factory = async_sessionmaker(
        bind=session.bind,
        expire_on_commit=False,
    )
    return create_uow_factory(session_factory)
