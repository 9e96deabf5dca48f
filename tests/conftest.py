"""Shared pytest fixtures for hairswap tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from hairswap.core.synthesis.models import ImageAsset, SynthesisRequest
from tests.fixtures.synthesis import (
    FakeImageModel,
    FakeJudge,
    FakeRenderer,
    make_asset,
    make_image_bytes,
)

# ============================================================================
# Path Fixtures
# ============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


# ============================================================================
# Image Fixtures
# ============================================================================


@pytest.fixture
def original_bytes() -> bytes:
    """Landscape JPEG standing in for the user's photo."""
    return make_image_bytes(color=(180, 140, 120), size=(96, 64))


@pytest.fixture
def reference_bytes() -> bytes:
    """Portrait PNG standing in for a reference hairstyle."""
    return make_image_bytes(color=(40, 30, 20), size=(48, 80), fmt="PNG")


@pytest.fixture
def original_image(original_bytes: bytes) -> ImageAsset:
    return ImageAsset(data=original_bytes, media_type="image/jpeg")


@pytest.fixture
def reference_image(reference_bytes: bytes) -> ImageAsset:
    return ImageAsset(data=reference_bytes, media_type="image/png")


@pytest.fixture
def candidate_image() -> ImageAsset:
    return make_asset(color=(90, 90, 200))


@pytest.fixture
def synthesis_request(original_image: ImageAsset, reference_image: ImageAsset) -> SynthesisRequest:
    """400x400 request with one reference and default retry policy."""
    return SynthesisRequest(original=original_image, references=(reference_image,))


# ============================================================================
# Collaborator Fixtures
# ============================================================================


@pytest.fixture
def image_model() -> FakeImageModel:
    return FakeImageModel()


@pytest.fixture
def judge() -> FakeJudge:
    return FakeJudge()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()
