# tools/media/image_tool.py
from __future__ import annotations
import base64
import os
from typing import Any, List, Optional

from google import genai
from google.genai import types
from openai import AsyncOpenAI

from livecontext.core.config import env_float
from livecontext.core.constants import (
    DEFAULT_IMAGE_PROVIDER,
    IMAGE_API_TIMEOUT_SEC,
    IMAGE_MODELS,
    IMAGE_PROVIDERS,
    MAX_IMAGES_PER_REQUEST,
)
from livecontext.core.errors import ImageJobError
from livecontext.core.logging import get_logger
from livecontext.llm.base import require_env
from livecontext.schemas.state import ImagePayload
from livecontext.schemas.transports import EditResult

logger = get_logger("livecontext.media.image")


def data_url(image: ImagePayload) -> str:
    return f"data:{image.mime};base64,{base64.b64encode(image.data).decode('ascii')}"


def _models(provider: str) -> tuple[str, str]:
    gen, edit = IMAGE_MODELS[provider]
    return os.getenv("IMAGE_MODEL", gen), os.getenv("IMAGE_EDIT_MODEL", edit)


class GeminiImageTransport:
    """Imagen for generation, a Gemini image model for mixed text/image edits."""

    def __init__(self, client: Optional[genai.Client] = None):
        self._client = client
        self.model, self.edit_model = _models("gemini")

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=require_env("GOOGLE_API_KEY"))
        return self._client

    async def generate(self, prompt: str, count: int) -> List[ImagePayload]:
        logger.info("IMAGE_REQUEST provider=gemini model=%s count=%s prompt_len=%s", self.model, count, len(prompt))
        r = await self.client.aio.models.generate_images(
            model=self.model,
            prompt=prompt,
            config=types.GenerateImagesConfig(number_of_images=count),
        )
        out = [
            ImagePayload(data=g.image.image_bytes, mime=g.image.mime_type or "image/png")
            for g in (r.generated_images or [])
            if g.image is not None and g.image.image_bytes
        ]
        if not out:
            logger.error("IMAGE_RESPONSE_EMPTY provider=gemini model=%s", self.model)
            raise ImageJobError("Image API returned no image bytes")
        return out

    async def edit(self, image: ImagePayload, prompt: str) -> EditResult:
        logger.info("IMAGE_EDIT_REQUEST provider=gemini model=%s prompt_len=%s", self.edit_model, len(prompt))
        r = await self.client.aio.models.generate_content(
            model=self.edit_model,
            contents=[types.Part.from_bytes(data=image.data, mime_type=image.mime), prompt],
            config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
        )
        text = ""
        edited: Optional[ImagePayload] = None
        candidates: List[Any] = r.candidates or []
        parts = (candidates[0].content.parts or []) if candidates and candidates[0].content else []
        for part in parts:
            if part.text:
                text += part.text
            elif part.inline_data is not None and part.inline_data.data:
                edited = ImagePayload(data=part.inline_data.data, mime=part.inline_data.mime_type or "image/png")
        return EditResult(text=text or None, image=edited)


class OpenAIImageTransport:
    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self._client = client
        self.model, self.edit_model = _models("openai")

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            require_env("OPENAI_API_KEY")
            timeout_sec = env_float("IMAGE_API_TIMEOUT_SEC", IMAGE_API_TIMEOUT_SEC)
            self._client = AsyncOpenAI(timeout=max(1.0, timeout_sec))
        return self._client

    async def generate(self, prompt: str, count: int) -> List[ImagePayload]:
        logger.info("IMAGE_REQUEST provider=openai model=%s count=%s prompt_len=%s", self.model, count, len(prompt))
        r = await self.client.images.generate(model=self.model, prompt=prompt, n=count, size="1024x1024")
        out = [ImagePayload(data=base64.b64decode(d.b64_json)) for d in (r.data or []) if d.b64_json]
        if not out:
            logger.error("IMAGE_RESPONSE_EMPTY provider=openai model=%s", self.model)
            raise ImageJobError("Image API returned no image bytes")
        return out

    async def edit(self, image: ImagePayload, prompt: str) -> EditResult:
        logger.info("IMAGE_EDIT_REQUEST provider=openai model=%s prompt_len=%s", self.edit_model, len(prompt))
        r = await self.client.images.edit(
            model=self.edit_model,
            image=("image.png", image.data, image.mime),
            prompt=prompt,
        )
        if not r.data or not r.data[0].b64_json:
            return EditResult()
        return EditResult(image=ImagePayload(data=base64.b64decode(r.data[0].b64_json)))


def clamp_count(count: int) -> int:
    return max(1, min(int(count), MAX_IMAGES_PER_REQUEST))


def get_image_transport(provider: Optional[str] = None):
    p = (provider or os.getenv("IMAGE_PROVIDER") or DEFAULT_IMAGE_PROVIDER).lower()
    if p not in IMAGE_PROVIDERS:
        raise ValueError(f"Unsupported image provider: {p}")
    return GeminiImageTransport() if p == "gemini" else OpenAIImageTransport()
