"""Test doubles and image factories for synthesis tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from io import BytesIO

from PIL import Image

from hairswap.core.synthesis.errors import ImageGenerationError
from hairswap.core.synthesis.models import (
    GenerationRequest,
    ImageAsset,
    JudgeVerdict,
    QualityAssessment,
    Rating,
)
from hairswap.core.synthesis.prompts import COMPOSITE, RELIGHT, REMOVE_HAIR, render_prompt

GIF_BYTES = b"GIF89a" + b"\x00" * 32


def make_image_bytes(
    color: tuple[int, int, int] = (200, 60, 60),
    size: tuple[int, int] = (64, 48),
    fmt: str = "JPEG",
) -> bytes:
    """Encode a solid-color image."""
    img = Image.new("RGB", size, color)
    buf = BytesIO()
    img.save(buf, fmt)
    return buf.getvalue()


def make_asset(
    color: tuple[int, int, int] = (200, 60, 60),
    size: tuple[int, int] = (64, 48),
) -> ImageAsset:
    return ImageAsset(data=make_image_bytes(color, size), media_type="image/jpeg")


def candidate_asset(ordinal: int) -> ImageAsset:
    """Distinct payload for the composite call with the given ordinal."""
    return make_asset(color=((10 + ordinal * 20) % 256, 120, 200))


class FakeImageModel:
    """Image model double that routes requests by prompt.

    Args:
        composite_results: One entry per composite call, in call order across
            attempts. ``True`` succeeds, an exception instance is raised.
            Calls past the end succeed.
        failing_stages: Preprocessing prompts (REMOVE_HAIR, RELIGHT) that fail
        delays: Per-ordinal sleep before a composite call completes
    """

    def __init__(
        self,
        composite_results: Iterable[bool | Exception] = (),
        *,
        failing_stages: Iterable[str] = (),
        delays: Sequence[float] = (),
    ) -> None:
        self.composite_results = list(composite_results)
        self.failing_stages = set(failing_stages)
        self.delays = list(delays)
        self.requests: list[GenerationRequest] = []
        self.composite_calls = 0
        self.produced: list[ImageAsset] = []
        self._prompts = {render_prompt(name): name for name in (REMOVE_HAIR, RELIGHT, COMPOSITE)}

    def stage_of(self, request: GenerationRequest) -> str:
        return self._prompts[request.prompt]

    def requests_for(self, stage: str) -> list[GenerationRequest]:
        return [r for r in self.requests if self.stage_of(r) == stage]

    async def edit(self, request: GenerationRequest) -> ImageAsset:
        self.requests.append(request)
        stage = self.stage_of(request)

        if stage != COMPOSITE:
            await asyncio.sleep(0)
            if stage in self.failing_stages:
                raise ImageGenerationError(f"{stage} failed")
            color = (0, 0, 0) if stage == REMOVE_HAIR else (255, 255, 255)
            return make_asset(color=color)

        ordinal = self.composite_calls
        self.composite_calls += 1
        outcome = (
            self.composite_results[ordinal] if ordinal < len(self.composite_results) else True
        )
        slot = ordinal % max(len(self.delays), 1)
        await asyncio.sleep(self.delays[slot] if self.delays else 0)

        if isinstance(outcome, Exception):
            raise outcome
        asset = candidate_asset(ordinal)
        self.produced.append(asset)
        return asset


class FakeJudge:
    """Judge double returning a fixed or computed index."""

    def __init__(
        self,
        choose: int | Callable[[int], int] = 0,
        *,
        error: Exception | None = None,
    ) -> None:
        self.choose = choose
        self.error = error
        self.calls: list[tuple[list[ImageAsset], ImageAsset]] = []

    async def evaluate(
        self, candidates: Sequence[ImageAsset], reference: ImageAsset
    ) -> JudgeVerdict:
        self.calls.append((list(candidates), reference))
        if self.error is not None:
            raise self.error
        index = self.choose(len(candidates)) if callable(self.choose) else self.choose
        return JudgeVerdict(chosen_index=index, rationale="fake verdict", confidence=Rating.HIGH)


class FakeSimilarityChecker:
    """Similarity double returning ratings in order (HIGH once exhausted)."""

    def __init__(self, ratings: Iterable[Rating] = ()) -> None:
        self.ratings = list(ratings)
        self.calls: list[tuple[ImageAsset, ImageAsset]] = []

    async def assess(self, candidate: ImageAsset, reference: ImageAsset) -> QualityAssessment:
        position = len(self.calls)
        self.calls.append((candidate, reference))
        rating = self.ratings[position] if position < len(self.ratings) else Rating.HIGH
        return QualityAssessment(similarity=rating, rationale=f"rated {rating.value}")


class FakeRenderer:
    """Transition renderer double."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[dict] = []

    async def render(
        self,
        before: ImageAsset,
        after: ImageAsset,
        width: int,
        height: int,
        duration_ms: int = 1000,
    ) -> ImageAsset:
        self.calls.append(
            {
                "before": before,
                "after": after,
                "width": width,
                "height": height,
                "duration_ms": duration_ms,
            }
        )
        if self.error is not None:
            raise self.error
        return ImageAsset(data=GIF_BYTES, media_type="image/gif")


__all__ = [
    "GIF_BYTES",
    "FakeImageModel",
    "FakeJudge",
    "FakeRenderer",
    "FakeSimilarityChecker",
    "candidate_asset",
    "make_asset",
    "make_image_bytes",
]
