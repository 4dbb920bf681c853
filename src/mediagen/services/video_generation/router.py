"""Dispatch video generation to a provider by model family name."""

from mediagen.executor.ports import GeneratedPayload, VideoFrames, VideoGenerationService
from mediagen.services.exceptions import ConfigurationError


class VideoModelRouter:
    """VideoGenerationService choosing Veo or LTX from the job's model name."""

    def __init__(self, veo: VideoGenerationService, ltx: VideoGenerationService):
        self.veo = veo
        self.ltx = ltx

    def select(self, model: str) -> VideoGenerationService:
        name = (model or "").strip().lower()
        if name.startswith("veo"):
            return self.veo
        if name.startswith("ltx"):
            return self.ltx
        raise ConfigurationError(f"Unsupported model: {model}")

    async def generate(self, prompt: str, frames: VideoFrames, model: str) -> GeneratedPayload:
        return await self.select(model).generate(prompt, frames, model)
