"""Image generation through the OpenAI images API."""

import os
from typing import Optional

from openai import AsyncOpenAI

from ..config.schemas import ImageConfig, LLMConfig
from ..utils import get_logger
from .base import GeneratedImage

logger = get_logger(__name__)


class OpenAIImageGenerator:
    """Generates base64 PNG images with an OpenAI image model."""

    def __init__(
        self,
        config: ImageConfig,
        llm_config: LLMConfig,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """Initialize the generator.

        Args:
            config: Image model settings
            llm_config: Endpoint and API key settings shared with the chat model
            client: Pre-built client (built from config when omitted)
        """
        self.config = config
        if client is None:
            api_key = os.environ.get(llm_config.api_key_env, "")
            client = AsyncOpenAI(base_url=llm_config.endpoint, api_key=api_key or "not-needed")
        self.client = client

    async def generate(self, prompt: str) -> GeneratedImage:
        """Generate one image.

        Raises:
            RuntimeError: If the provider returned no image data
        """
        response = await self.client.images.generate(
            model=self.config.model,
            prompt=prompt,
            size=self.config.size,
            n=1,
        )
        image = response.data[0] if response.data else None
        if image is None or not image.b64_json:
            raise RuntimeError("Image generation returned no image data")
        logger.debug(f"Generated image ({len(image.b64_json)} base64 chars)")
        return GeneratedImage(image_data=image.b64_json, mime_type="image/png", prompt=prompt)
