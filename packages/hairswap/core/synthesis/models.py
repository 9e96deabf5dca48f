"""Data models for the hairstyle synthesis pipeline.

All models are immutable once produced. Mutable run bookkeeping lives in
:class:`RunContext`, which is owned by a single pipeline attempt.
"""

from __future__ import annotations

import base64
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator


class ImageAsset(BaseModel):
    """Opaque image payload plus its declared media type.

    Attributes:
        data: Raw encoded image bytes (never empty)
        media_type: MIME type of the payload (e.g. image/jpeg, image/gif)
    """

    data: bytes = Field(min_length=1, repr=False, description="Encoded image bytes")
    media_type: str = Field(default="image/jpeg", description="MIME type of the payload")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def byte_length(self) -> int:
        """Size of the payload in bytes."""
        return len(self.data)

    def to_data_url(self) -> str:
        """Encode the payload as a base64 data URL."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"

    @classmethod
    def from_data_url(cls, url: str) -> ImageAsset:
        """Decode a base64 data URL into an asset.

        Args:
            url: URL of the form ``data:<media-type>;base64,<payload>``

        Returns:
            ImageAsset with the decoded payload

        Raises:
            ValueError: If the URL is not a base64 image data URL
        """
        header, sep, payload = url.partition(",")
        if not sep or not header.startswith("data:image/") or ";base64" not in header:
            raise ValueError("Expected a base64 image data URL")
        media_type = header[len("data:") :].split(";", 1)[0]
        return cls(data=base64.b64decode(payload), media_type=media_type)


class GenerationRequest(BaseModel):
    """One request to the image-editing model.

    Built fresh for every candidate and never mutated after dispatch.
    """

    prompt: str = Field(min_length=1)
    primary_image: ImageAsset
    reference_images: tuple[ImageAsset, ...] = ()
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class CandidateOutcome(BaseModel):
    """Result of a single fan-out generation request.

    Exactly one of ``image`` and ``error`` is set.
    """

    index: int = Field(ge=0, description="Ordinal of the request within the fan-out")
    image: ImageAsset | None = None
    error: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _exactly_one_result(self) -> CandidateOutcome:
        if (self.image is None) == (self.error is None):
            raise ValueError("CandidateOutcome requires exactly one of image or error")
        return self

    @property
    def succeeded(self) -> bool:
        return self.image is not None


class Rating(str, Enum):
    """Categorical rating used for judge confidence and similarity checks."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class JudgeVerdict(BaseModel):
    """Best-pick verdict over the successful candidate subset.

    ``chosen_index`` refers to the position within the successful subset,
    not the original fan-out ordinal. Range checks happen in the judge stage,
    which knows the subset size.
    """

    chosen_index: StrictInt
    rationale: str
    confidence: Rating | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class QualityAssessment(BaseModel):
    """Similarity of a chosen candidate to the reference hairstyle."""

    similarity: Rating
    rationale: str = ""

    model_config = ConfigDict(frozen=True, extra="forbid")


class PreprocessedInputs(BaseModel):
    """Cleaned inputs handed to candidate generation."""

    subject: ImageAsset = Field(description="Original photo with hair removed")
    reference: ImageAsset = Field(description="Reference relit to match the original")

    model_config = ConfigDict(frozen=True, extra="forbid")


class SynthesisRequest(BaseModel):
    """Validated input to :meth:`SynthesisPipeline.synthesize`."""

    original: ImageAsset
    references: tuple[ImageAsset, ...] = Field(min_length=1)
    width: int = Field(default=400, gt=0)
    height: int = Field(default=400, gt=0)
    transition_duration_ms: int | None = Field(default=None, gt=0)
    quality_check: bool = False
    max_attempts: int = Field(default=2, ge=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


class PipelineResult(BaseModel):
    """Terminal result of a successful synthesis run.

    Attributes:
        final_image: Chosen composite (always present)
        transition: Cross-fade GIF, or None if rendering failed or was disabled
        attempts: Attempt number that produced this result (1-based)
        chosen_index: Fan-out ordinal of the chosen candidate
        verdict: Judge verdict, if the judge ran
        transition_error: Reason the transition is missing, if it failed
    """

    final_image: ImageAsset
    transition: ImageAsset | None = None
    attempts: int = Field(default=1, ge=1)
    chosen_index: int = Field(default=0, ge=0)
    verdict: JudgeVerdict | None = None
    transition_error: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class PipelineState(str, Enum):
    """States of a single pipeline attempt."""

    INIT = "INIT"
    PREPROCESSING = "PREPROCESSING"
    GENERATING = "GENERATING"
    JUDGING = "JUDGING"
    TRANSITIONING = "TRANSITIONING"
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.FAILED)


_ALLOWED_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.INIT: frozenset({PipelineState.PREPROCESSING}),
    PipelineState.PREPROCESSING: frozenset({PipelineState.GENERATING, PipelineState.FAILED}),
    PipelineState.GENERATING: frozenset(
        {PipelineState.JUDGING, PipelineState.TRANSITIONING, PipelineState.FAILED}
    ),
    PipelineState.JUDGING: frozenset({PipelineState.TRANSITIONING, PipelineState.FAILED}),
    PipelineState.TRANSITIONING: frozenset({PipelineState.DONE}),
    PipelineState.DONE: frozenset(),
    PipelineState.FAILED: frozenset(),
}


class RunContext(BaseModel):
    """Mutable bookkeeping for one pipeline attempt.

    Discarded when the attempt ends; a retry starts from a fresh context.
    """

    attempt: int = Field(ge=1, default=1)
    state: PipelineState = Field(default=PipelineState.INIT)
    history: list[PipelineState] = Field(default_factory=lambda: [PipelineState.INIT])
    failure_reason: str | None = None

    model_config = ConfigDict(extra="forbid")

    def advance(self, new_state: PipelineState) -> None:
        """Move to ``new_state``.

        Raises:
            RuntimeError: If the transition is not allowed from the current state
        """
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def fail(self, reason: str) -> None:
        self.advance(PipelineState.FAILED)
        self.failure_reason = reason
