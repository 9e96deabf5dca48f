"""Input preprocessing: hair removal and reference relighting.

The two transforms are independent and run concurrently. Both must succeed;
the raw images are never substituted for a failed transform.
"""

from __future__ import annotations

import asyncio
import logging

from hairswap.core.synthesis.errors import PreprocessingError
from hairswap.core.synthesis.image_model import ImageEditModel
from hairswap.core.synthesis.models import GenerationRequest, ImageAsset, PreprocessedInputs
from hairswap.core.synthesis.prompts import RELIGHT, REMOVE_HAIR, render_prompt

logger = logging.getLogger(__name__)


async def remove_hair(
    model: ImageEditModel,
    original: ImageAsset,
    width: int,
    height: int,
) -> ImageAsset:
    """Strip hair and headwear down to a short neutral buzz cut."""
    request = GenerationRequest(
        prompt=render_prompt(REMOVE_HAIR),
        primary_image=original,
        width=width,
        height=height,
    )
    return await model.edit(request)


async def relight_reference(
    model: ImageEditModel,
    reference: ImageAsset,
    original: ImageAsset,
    width: int,
    height: int,
) -> ImageAsset:
    """Relight ``reference`` and move it into the original photo's setting."""
    request = GenerationRequest(
        prompt=render_prompt(RELIGHT),
        primary_image=reference,
        reference_images=(original,),
        width=width,
        height=height,
    )
    return await model.edit(request)


async def preprocess(
    model: ImageEditModel,
    original: ImageAsset,
    reference: ImageAsset,
    width: int,
    height: int,
) -> PreprocessedInputs:
    """Run hair removal and relighting concurrently.

    Args:
        model: Image-editing model
        original: User's photo
        reference: Reference hairstyle photo
        width: Target width in pixels
        height: Target height in pixels

    Returns:
        PreprocessedInputs with the cleaned subject and relit reference

    Raises:
        PreprocessingError: If either transform fails
    """
    subject, relit = await asyncio.gather(
        remove_hair(model, original, width, height),
        relight_reference(model, reference, original, width, height),
        return_exceptions=True,
    )

    failures: list[str] = []
    if isinstance(subject, BaseException):
        failures.append(f"hair removal: {subject}")
    if isinstance(relit, BaseException):
        failures.append(f"relighting: {relit}")

    if failures:
        message = "Preprocessing failed: " + "; ".join(failures)
        logger.error(message)
        cause = subject if isinstance(subject, BaseException) else relit
        raise PreprocessingError(message) from cause

    assert isinstance(subject, ImageAsset) and isinstance(relit, ImageAsset)
    return PreprocessedInputs(subject=subject, reference=relit)
