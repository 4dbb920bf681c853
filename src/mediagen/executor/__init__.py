"""Generation job executor."""

from mediagen.executor.options import ExecutorOptions
from mediagen.executor.ports import Collaborators
from mediagen.executor.progress import JobRunResult
from mediagen.executor.router import process_generation_job

__all__ = [
    "Collaborators",
    "ExecutorOptions",
    "JobRunResult",
    "process_generation_job",
]
