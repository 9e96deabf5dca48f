"""Structured hairstyle description from a single photo."""

from __future__ import annotations

import json
import logging

import pydantic
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field

from hairswap.core.synthesis.judge import DEFAULT_JUDGE_MODEL
from hairswap.core.synthesis.models import ImageAsset
from hairswap.core.synthesis.prompts import DESCRIBE_HAIR, render_prompt

logger = logging.getLogger(__name__)


class DescriptionError(Exception):
    """Raised when the vision model returns no usable description."""


class HairstyleDescription(BaseModel):
    """Attributes of the hairstyle visible in a photo."""

    style: str = Field(description="Overall style (bob, pixie, afro, ...)")
    length: str = Field(description="Length (short, medium, long, ...)")
    color: str = Field(description="Hair color(s)")
    texture: str = Field(description="Texture (straight, wavy, curly, ...)")
    cut: str = Field(description="Cut type (layered, blunt, ...)")
    condition: str = Field(description="Condition or appearance")
    overall_description: str = Field(description="Free-form summary")

    model_config = ConfigDict(frozen=True, extra="ignore")


async def describe_hairstyle(
    client: AsyncOpenAI,
    image: ImageAsset,
    model: str = DEFAULT_JUDGE_MODEL,
) -> HairstyleDescription:
    """Describe the hairstyle in ``image``.

    Args:
        client: AsyncOpenAI client pointed at the provider's base URL
        image: Photo of a person
        model: Vision model returning JSON objects

    Returns:
        HairstyleDescription

    Raises:
        DescriptionError: If the call fails or the response is invalid
    """
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": render_prompt(DESCRIBE_HAIR)},
                        {"type": "image_url", "image_url": {"url": image.to_data_url()}},
                    ],
                }
            ],
            response_format={"type": "json_object"},
        )
    except Exception as e:
        raise DescriptionError(f"Description call failed: {e}") from e

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise DescriptionError("Empty response from description model")

    try:
        description = HairstyleDescription.model_validate(json.loads(content))
    except (json.JSONDecodeError, pydantic.ValidationError) as e:
        raise DescriptionError(f"Invalid hairstyle description: {e}") from e

    logger.debug(f"Described hairstyle: {description.style}, {description.length}")
    return description
