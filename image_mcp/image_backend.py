"""
OpenAI Images API backend.

The OpenAI client is created on first use from environment credentials and
reused afterwards. Tests can pass a ready-made client instead.
"""

import logging
import os
from typing import Any, Callable, Dict, NamedTuple, Optional, Sequence, Union

from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError

from .errors import BackendError, ConfigurationError
from .schemas import EDIT_MODEL

logger = logging.getLogger(__name__)

OpenAIClient = Union[AsyncOpenAI, AsyncAzureOpenAI]


class ReferenceImage(NamedTuple):
    data: bytes
    filename: str
    mime_type: str


class ImageResult(NamedTuple):
    b64_json: str
    revised_prompt: Optional[str] = None


def create_openai_client() -> OpenAIClient:
    """Initialize an OpenAI client from the environment, preferring Azure when configured"""
    if os.getenv("AZURE_OPENAI_API_KEY"):
        client = AsyncAzureOpenAI(
            api_key=os.getenv("AZURE_OPENAI_API_KEY"),
            api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-01"),
            azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT", "")
        )
        logger.info("Initialized Azure OpenAI client")
        return client
    if os.getenv("OPENAI_API_KEY"):
        client = AsyncOpenAI(api_key=os.getenv("OPENAI_API_KEY"))
        logger.info("Initialized OpenAI client")
        return client

    logger.error("OpenAI API key is missing")
    raise ConfigurationError(
        "OpenAI API key not configured. Please set OPENAI_API_KEY environment variable."
    )


def _first_image(response: Any) -> ImageResult:
    data = getattr(response, "data", None) or []
    b64_json = getattr(data[0], "b64_json", None) if data else None
    if not b64_json:
        raise BackendError("Invalid or missing image data in OpenAI API response")
    return ImageResult(b64_json=b64_json, revised_prompt=getattr(data[0], "revised_prompt", None))


class OpenAIImageBackend:
    """Generate and edit operations against the OpenAI Images API"""

    def __init__(
        self,
        client: Optional[OpenAIClient] = None,
        client_factory: Callable[[], OpenAIClient] = create_openai_client
    ):
        self._client = client
        self._client_factory = client_factory

    @property
    def is_configured(self) -> bool:
        if self._client is not None:
            return True
        return bool(os.getenv("AZURE_OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY"))

    def get_client(self) -> OpenAIClient:
        """Return the shared client, creating it on first call"""
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    async def generate(
        self,
        *,
        model: str,
        prompt: str,
        size: str,
        quality: str,
        background: str
    ) -> ImageResult:
        client = self.get_client()
        params: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "size": size,
            "quality": quality,
            "background": background,
            "n": 1
        }
        # dall-e models return URLs unless asked for inline data
        if model.startswith("dall-e"):
            params["response_format"] = "b64_json"

        logger.info(f"Calling images.generate with model {model}, size {size}, quality {quality}")
        try:
            response = await client.images.generate(**params)
        except OpenAIError as e:
            raise BackendError(str(e)) from e
        return _first_image(response)

    async def edit(
        self,
        *,
        prompt: str,
        images: Sequence[ReferenceImage],
        background: str
    ) -> ImageResult:
        client = self.get_client()
        files = [(image.filename, image.data, image.mime_type) for image in images]

        logger.info(f"Calling images.edit with model {EDIT_MODEL} and {len(files)} reference image(s)")
        try:
            response = await client.images.edit(
                model=EDIT_MODEL,
                image=files,
                prompt=prompt,
                background=background,
                n=1
            )
        except OpenAIError as e:
            raise BackendError(str(e)) from e
        return _first_image(response)
