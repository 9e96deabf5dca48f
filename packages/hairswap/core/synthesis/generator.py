"""Candidate generation by settle-all fan-out.

Issues N identical composite requests concurrently and reports every outcome,
success or failure, keyed by its ordinal.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from hairswap.core.synthesis.errors import UpstreamGenerationError
from hairswap.core.synthesis.fanout import settle_all
from hairswap.core.synthesis.image_model import ImageEditModel
from hairswap.core.synthesis.models import (
    CandidateOutcome,
    GenerationRequest,
    PreprocessedInputs,
)
from hairswap.core.synthesis.prompts import COMPOSITE, render_prompt

logger = logging.getLogger(__name__)

DEFAULT_NUM_GENERATIONS = 5


def build_composite_request(
    inputs: PreprocessedInputs,
    width: int,
    height: int,
) -> GenerationRequest:
    """Build the composite request: subject first, relit reference second."""
    return GenerationRequest(
        prompt=render_prompt(COMPOSITE),
        primary_image=inputs.subject,
        reference_images=(inputs.reference,),
        width=width,
        height=height,
    )


async def generate_candidates(
    model: ImageEditModel,
    inputs: PreprocessedInputs,
    width: int,
    height: int,
    num_generations: int = DEFAULT_NUM_GENERATIONS,
) -> list[CandidateOutcome]:
    """Fan out ``num_generations`` composite requests and settle all of them.

    Args:
        model: Image-editing model
        inputs: Preprocessed subject and reference
        width: Target width in pixels
        height: Target height in pixels
        num_generations: Fan-out size (>= 1)

    Returns:
        Exactly ``num_generations`` outcomes ordered by ordinal index

    Raises:
        ValueError: If num_generations < 1
    """
    if num_generations < 1:
        raise ValueError(f"num_generations must be >= 1, got {num_generations}")

    requests = [build_composite_request(inputs, width, height) for _ in range(num_generations)]
    settled = await settle_all([model.edit(request) for request in requests])

    outcomes: list[CandidateOutcome] = []
    for result in settled:
        if result.ok:
            outcomes.append(CandidateOutcome(index=result.index, image=result.value))
        else:
            logger.warning("Generation %d failed: %s", result.index + 1, result.error)
            reason = str(result.error) or repr(result.error)
            outcomes.append(CandidateOutcome(index=result.index, error=reason))

    logger.info(
        "Fan-out complete: %d/%d candidates succeeded",
        sum(1 for o in outcomes if o.succeeded),
        num_generations,
    )
    return outcomes


def successful_candidates(outcomes: Sequence[CandidateOutcome]) -> list[CandidateOutcome]:
    """Filter to successful outcomes, preserving ordinal order.

    Raises:
        UpstreamGenerationError: If no candidate succeeded
    """
    successes = [o for o in outcomes if o.succeeded]
    if not successes:
        failures = [o.error or "" for o in outcomes]
        raise UpstreamGenerationError(
            f"All {len(outcomes)} image generations failed", failures=failures
        )
    return successes
