"""Automated candidate judging.

The judge is modeled as a capability interface so deterministic doubles can
stand in for the vision model. :func:`select_best` owns verdict validation:
a verdict pointing outside the successful subset is an error, never a reason
to fall back to some other candidate.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import pydantic
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, StrictInt, field_validator

from hairswap.core.synthesis.errors import JudgeError, QualityRejected
from hairswap.core.synthesis.models import (
    CandidateOutcome,
    ImageAsset,
    JudgeVerdict,
    QualityAssessment,
    Rating,
)
from hairswap.core.synthesis.prompts import JUDGE, SIMILARITY, render_prompt

logger = logging.getLogger(__name__)

DEFAULT_JUDGE_MODEL = "openai/gpt-5-mini"


class CandidateJudge(Protocol):
    """Picks the best of several candidate images."""

    async def evaluate(
        self,
        candidates: Sequence[ImageAsset],
        reference: ImageAsset,
    ) -> JudgeVerdict:
        """Return a verdict whose index refers to a position in ``candidates``."""
        ...


class SimilarityChecker(Protocol):
    """Rates how closely a candidate matches the reference hairstyle."""

    async def assess(self, candidate: ImageAsset, reference: ImageAsset) -> QualityAssessment: ...


class _VerdictPayload(BaseModel):
    reason: str
    best_index: StrictInt
    confidence: Rating | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("confidence", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class _SimilarityPayload(BaseModel):
    similarity: Rating
    reason: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("similarity", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


def _image_part(image: ImageAsset) -> dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": image.to_data_url()}}


class VisionJudge:
    """Judge and similarity checker backed by a vision chat model.

    Args:
        client: AsyncOpenAI client pointed at the provider's base URL
        model: Vision-capable model returning JSON objects
    """

    def __init__(self, client: AsyncOpenAI, *, model: str = DEFAULT_JUDGE_MODEL) -> None:
        self._client = client
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def evaluate(
        self,
        candidates: Sequence[ImageAsset],
        reference: ImageAsset,
    ) -> JudgeVerdict:
        """Ask the model for the best candidate.

        The reference goes first, then the candidates in subset order so the
        model's 0-based labels line up with ``candidates``.

        Raises:
            JudgeError: If the call fails or the response does not parse
        """
        messages: list[dict[str, Any]] = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": render_prompt(JUDGE, candidate_count=len(candidates))},
                    _image_part(reference),
                ],
            },
            {
                "role": "assistant",
                "content": "Ok, I'm ready to evaluate the generated images.",
            },
            {
                "role": "user",
                "content": [
                    *[_image_part(candidate) for candidate in candidates],
                    {
                        "type": "text",
                        "text": (
                            "The generated images. The first image is at index 0, "
                            "the second image is at index 1, etc."
                        ),
                    },
                ],
            },
        ]

        payload = await self._request_json(messages)
        try:
            parsed = _VerdictPayload.model_validate(payload)
        except pydantic.ValidationError as e:
            raise JudgeError(f"Invalid judge verdict: {e}") from e

        return JudgeVerdict(
            chosen_index=parsed.best_index,
            rationale=parsed.reason,
            confidence=parsed.confidence,
        )

    async def assess(self, candidate: ImageAsset, reference: ImageAsset) -> QualityAssessment:
        """Rate the candidate's similarity to the reference.

        Raises:
            JudgeError: If the call fails or the response does not parse
        """
        messages: list[dict[str, Any]] = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": render_prompt(SIMILARITY)},
                    _image_part(reference),
                    _image_part(candidate),
                ],
            }
        ]

        payload = await self._request_json(messages)
        try:
            parsed = _SimilarityPayload.model_validate(payload)
        except pydantic.ValidationError as e:
            raise JudgeError(f"Invalid similarity assessment: {e}") from e

        return QualityAssessment(similarity=parsed.similarity, rationale=parsed.reason)

    async def _request_json(self, messages: list[dict[str, Any]]) -> dict[str, Any]:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,  # type: ignore[arg-type]
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise JudgeError(f"Judge call failed: {e}") from e

        if not response.choices:
            raise JudgeError("Empty response from judge model")
        content = response.choices[0].message.content
        if not content:
            raise JudgeError("Empty response from judge model")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise JudgeError(f"Failed to parse judge response: {e}") from e

        if not isinstance(data, dict):
            raise JudgeError(f"Expected a JSON object from judge, got {type(data).__name__}")
        return data


async def select_best(
    successes: Sequence[CandidateOutcome],
    reference: ImageAsset,
    judge: CandidateJudge,
) -> tuple[CandidateOutcome, JudgeVerdict]:
    """Pick the best of two or more successful candidates.

    Args:
        successes: Successful subset, in ordinal order (size >= 2)
        reference: Relit reference image shown to the judge
        judge: Judge implementation, called exactly once

    Returns:
        Tuple of (chosen outcome, verdict)

    Raises:
        ValueError: If fewer than two candidates are given
        JudgeError: If the judge fails or its index is outside the subset
    """
    if len(successes) < 2:
        raise ValueError(f"Judging requires at least 2 candidates, got {len(successes)}")

    images = [outcome.image for outcome in successes if outcome.image is not None]
    if len(images) != len(successes):
        raise ValueError("Judging requires successful candidates only")

    try:
        verdict = await judge.evaluate(images, reference)
    except JudgeError:
        raise
    except Exception as e:
        raise JudgeError(f"Judge evaluation failed: {e}") from e

    index = verdict.chosen_index
    if not 0 <= index < len(successes):
        raise JudgeError(
            f"Judge chose index {index}, outside the {len(successes)} successful candidates"
        )

    chosen = successes[index]
    logger.info(
        "Judge chose candidate %d of %d (ordinal %d, confidence=%s): %s",
        index,
        len(successes),
        chosen.index,
        verdict.confidence.value if verdict.confidence else "n/a",
        verdict.rationale,
    )
    return chosen, verdict


async def check_quality(
    candidate: ImageAsset,
    reference: ImageAsset,
    checker: SimilarityChecker,
) -> QualityAssessment:
    """Reject candidates rated low in similarity to the reference.

    Raises:
        QualityRejected: If similarity is low
        JudgeError: If the checker itself fails
    """
    try:
        assessment = await checker.assess(candidate, reference)
    except JudgeError:
        raise
    except Exception as e:
        raise JudgeError(f"Similarity check failed: {e}") from e

    logger.info("Similarity check: %s (%s)", assessment.similarity.value, assessment.rationale)
    if assessment.similarity is Rating.LOW:
        raise QualityRejected(
            f"Chosen candidate rated low similarity: {assessment.rationale}",
            similarity=assessment.similarity,
        )
    return assessment
