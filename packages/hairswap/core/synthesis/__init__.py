"""Hairstyle synthesis pipeline."""

from hairswap.core.synthesis.describe import (
    DescriptionError,
    HairstyleDescription,
    describe_hairstyle,
)
from hairswap.core.synthesis.errors import (
    ImageGenerationError,
    JudgeError,
    PreprocessingError,
    QualityRejected,
    RetryExhausted,
    SynthesisError,
    TransitionError,
    UpstreamGenerationError,
    ValidationError,
)
from hairswap.core.synthesis.models import (
    CandidateOutcome,
    GenerationRequest,
    ImageAsset,
    JudgeVerdict,
    PipelineResult,
    PipelineState,
    QualityAssessment,
    Rating,
    SynthesisRequest,
)
from hairswap.core.synthesis.pipeline import SynthesisPipeline, build_pipeline, synthesize
from hairswap.core.synthesis.retry import retry

__all__ = [
    # Entry points
    "SynthesisPipeline",
    "build_pipeline",
    "describe_hairstyle",
    "retry",
    "synthesize",
    # Models
    "CandidateOutcome",
    "GenerationRequest",
    "HairstyleDescription",
    "ImageAsset",
    "JudgeVerdict",
    "PipelineResult",
    "PipelineState",
    "QualityAssessment",
    "Rating",
    "SynthesisRequest",
    # Errors
    "DescriptionError",
    "ImageGenerationError",
    "JudgeError",
    "PreprocessingError",
    "QualityRejected",
    "RetryExhausted",
    "SynthesisError",
    "TransitionError",
    "UpstreamGenerationError",
    "ValidationError",
]
