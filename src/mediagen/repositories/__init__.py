"""Repository layer for mediagen.

Provides data access abstractions for all domain entities.
No base classes - each repository is self-contained.
"""

from mediagen.repositories.generated_media import GeneratedMediaRepository
from mediagen.repositories.generation_job import GenerationJobRepository
from mediagen.repositories.reference_image import ReferenceImageRepository
from mediagen.repositories.scene import SceneRepository

__all__ = [
    "GeneratedMediaRepository",
    "GenerationJobRepository",
    "ReferenceImageRepository",
    "SceneRepository",
]
