"""Image-editing model client.

Async-first client for an OpenAI-compatible chat completions endpoint that
returns images (OpenRouter serving Gemini image models). Inputs are fitted to
the target box and sent as JPEG data URLs; the returned image is fitted the
same way so every asset leaving this module has the requested dimensions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx
from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

from hairswap.core.synthesis.errors import ImageGenerationError
from hairswap.core.synthesis.models import GenerationRequest, ImageAsset
from hairswap.core.utils.images import fit_to_jpeg

logger = logging.getLogger(__name__)

# Errors worth retrying at the provider level
_RETRYABLE_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError)

DEFAULT_IMAGE_MODEL = "google/gemini-2.5-flash-image-preview"


class ImageEditModel(Protocol):
    """Capability interface for the image-editing endpoint."""

    async def edit(self, request: GenerationRequest) -> ImageAsset:
        """Produce one edited image for ``request``.

        Raises:
            ImageGenerationError: If the endpoint fails or returns no image
        """
        ...


def _field(obj: Any, key: str) -> Any:
    """Read ``key`` from a dict or an attribute-style SDK object."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _extract_image_url(response: Any) -> str:
    """Pull the first image URL out of a chat completion.

    Image-capable models attach images to the assistant message as
    ``message.images[i].image_url.url``.
    """
    choices = _field(response, "choices") or []
    if not choices:
        raise ImageGenerationError("API returned no choices")
    message = _field(choices[0], "message")
    images = _field(message, "images") or []
    if not images:
        raise ImageGenerationError("No image found in response")
    url = _field(_field(images[0], "image_url"), "url")
    if not url:
        raise ImageGenerationError("No image found in response")
    return url


class OpenRouterImageClient:
    """Image-editing client over an OpenAI-compatible chat completions API.

    Args:
        client: AsyncOpenAI client pointed at the provider's base URL
        model: Image-capable model identifier
        http_client: Client used to download images returned by URL
        provider_sort: Provider routing preference sent with each request
        max_retries: Attempts per request on transient errors (1 = no retry)
        retry_delay_s: Initial delay between attempts in seconds
        retry_backoff: Backoff multiplier for retry delays
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = DEFAULT_IMAGE_MODEL,
        http_client: httpx.AsyncClient | None = None,
        provider_sort: str | None = "throughput",
        max_retries: int = 1,
        retry_delay_s: float = 2.0,
        retry_backoff: float = 2.0,
    ) -> None:
        self._client = client
        self._model = model
        self._http_client = http_client
        self._provider_sort = provider_sort
        self._max_retries = max(1, max_retries)
        self._retry_delay_s = retry_delay_s
        self._retry_backoff = retry_backoff

    @property
    def model(self) -> str:
        return self._model

    async def edit(self, request: GenerationRequest) -> ImageAsset:
        """Send one editing request and return the fitted JPEG result.

        Raises:
            ImageGenerationError: If all attempts fail or the response has no image
        """
        try:
            messages = await self._build_messages(request)
        except ValueError as e:
            raise ImageGenerationError(f"Invalid input image: {e}") from e

        extra_body: dict[str, Any] = {"modalities": ["image", "text"]}
        if self._provider_sort:
            extra_body["provider"] = {"sort": self._provider_sort}

        last_error: Exception | None = None
        delay = self._retry_delay_s

        for attempt in range(1, self._max_retries + 1):
            try:
                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,  # type: ignore[arg-type]
                    extra_body=extra_body,
                )
                url = _extract_image_url(response)
                raw_bytes = await self._load_image(url)
                fitted = await asyncio.to_thread(
                    fit_to_jpeg, raw_bytes, request.width, request.height
                )
                return ImageAsset(data=fitted, media_type="image/jpeg")

            except _RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(
                    "Image edit attempt %d/%d failed (retryable): %s",
                    attempt,
                    self._max_retries,
                    e,
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(delay)
                    delay *= self._retry_backoff

            except ImageGenerationError:
                raise

            except Exception as e:
                raise ImageGenerationError(f"Image edit failed (non-retryable): {e}") from e

        raise ImageGenerationError(
            f"Image edit failed after {self._max_retries} attempt(s): {last_error}"
        )

    async def _build_messages(self, request: GenerationRequest) -> list[dict[str, Any]]:
        images = [request.primary_image, *request.reference_images]
        fitted = await asyncio.gather(
            *[
                asyncio.to_thread(fit_to_jpeg, image.data, request.width, request.height)
                for image in images
            ]
        )

        content: list[dict[str, Any]] = [
            {
                "type": "image_url",
                "image_url": {"url": ImageAsset(data=data, media_type="image/jpeg").to_data_url()},
            }
            for data in fitted
        ]
        content.append({"type": "text", "text": request.prompt})
        return [{"role": "user", "content": content}]

    async def _load_image(self, url: str) -> bytes:
        if url.startswith("data:image/"):
            return ImageAsset.from_data_url(url).data

        if self._http_client is not None:
            response = await self._http_client.get(url)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as http_client:
                response = await http_client.get(url)

        if response.status_code != 200:
            raise ImageGenerationError(
                f"Failed to fetch image from URL: status={response.status_code}"
            )
        return response.content
