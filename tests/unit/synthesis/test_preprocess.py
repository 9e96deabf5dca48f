"""Tests for concurrent input preprocessing."""

from __future__ import annotations

import pytest

from hairswap.core.synthesis.errors import PreprocessingError
from hairswap.core.synthesis.models import ImageAsset
from hairswap.core.synthesis.preprocess import preprocess
from hairswap.core.synthesis.prompts import RELIGHT, REMOVE_HAIR
from tests.fixtures.synthesis import FakeImageModel


@pytest.mark.asyncio
async def test_issues_both_transforms(
    original_image: ImageAsset, reference_image: ImageAsset
) -> None:
    model = FakeImageModel()

    inputs = await preprocess(model, original_image, reference_image, 400, 400)

    assert len(model.requests) == 2
    assert inputs.subject != original_image
    assert inputs.reference != reference_image


@pytest.mark.asyncio
async def test_request_shapes(original_image: ImageAsset, reference_image: ImageAsset) -> None:
    model = FakeImageModel()

    await preprocess(model, original_image, reference_image, 320, 240)

    (removal,) = model.requests_for(REMOVE_HAIR)
    assert removal.primary_image == original_image
    assert removal.reference_images == ()
    assert (removal.width, removal.height) == (320, 240)

    (relight,) = model.requests_for(RELIGHT)
    assert relight.primary_image == reference_image
    assert relight.reference_images == (original_image,)


@pytest.mark.asyncio
@pytest.mark.parametrize("failing", [REMOVE_HAIR, RELIGHT])
async def test_either_failure_fails_stage(
    failing: str, original_image: ImageAsset, reference_image: ImageAsset
) -> None:
    model = FakeImageModel(failing_stages=[failing])

    with pytest.raises(PreprocessingError) as exc_info:
        await preprocess(model, original_image, reference_image, 400, 400)

    # Both calls settle even when one fails
    assert len(model.requests) == 2
    assert failing in str(exc_info.value)
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_both_failures_reported(
    original_image: ImageAsset, reference_image: ImageAsset
) -> None:
    model = FakeImageModel(failing_stages=[REMOVE_HAIR, RELIGHT])

    with pytest.raises(PreprocessingError, match="hair removal.*relighting"):
        await preprocess(model, original_image, reference_image, 400, 400)
