"""Pipeline orchestrator.

One attempt walks ``INIT -> PREPROCESSING -> GENERATING -> JUDGING? ->
TRANSITIONING -> DONE``. Any failure before TRANSITIONING moves the attempt to
FAILED and propagates to the retry combinator, which reruns the whole attempt
from scratch. A transition failure only drops the transition asset.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

import httpx
import pydantic
from openai import AsyncOpenAI

from hairswap.core.config.models import AppConfig
from hairswap.core.synthesis.errors import ValidationError
from hairswap.core.synthesis.generator import (
    DEFAULT_NUM_GENERATIONS,
    generate_candidates,
    successful_candidates,
)
from hairswap.core.synthesis.image_model import ImageEditModel, OpenRouterImageClient
from hairswap.core.synthesis.judge import (
    CandidateJudge,
    SimilarityChecker,
    VisionJudge,
    check_quality,
    select_best,
)
from hairswap.core.synthesis.models import (
    CandidateOutcome,
    ImageAsset,
    JudgeVerdict,
    PipelineResult,
    PipelineState,
    RunContext,
    SynthesisRequest,
)
from hairswap.core.synthesis.preprocess import preprocess
from hairswap.core.synthesis.retry import retry
from hairswap.core.synthesis.transition import (
    DEFAULT_DURATION_MS,
    FFmpegTransitionRenderer,
    TransitionRenderer,
)
from hairswap.core.utils.images import sniff_media_type
from hairswap.core.utils.logging import get_logger

logger = logging.getLogger(__name__)


class SynthesisPipeline:
    """Sequences preprocessing, generation, judging, and transition rendering.

    Holds only immutable collaborators; every attempt gets its own RunContext,
    so one pipeline can serve concurrent runs.

    Args:
        image_model: Image-editing model used by preprocessing and generation
        judge: Candidate judge, consulted when 2+ candidates succeed
        renderer: Transition renderer, or None to skip transitions
        similarity_checker: Checker for the optional quality gate
        num_generations: Candidate fan-out size
        transition_duration_ms: Default cross-fade length
    """

    def __init__(
        self,
        image_model: ImageEditModel,
        judge: CandidateJudge,
        renderer: TransitionRenderer | None = None,
        *,
        similarity_checker: SimilarityChecker | None = None,
        num_generations: int = DEFAULT_NUM_GENERATIONS,
        transition_duration_ms: int = DEFAULT_DURATION_MS,
    ) -> None:
        if num_generations < 1:
            raise ValueError(f"num_generations must be >= 1, got {num_generations}")
        if transition_duration_ms <= 0:
            raise ValueError(
                f"transition_duration_ms must be positive, got {transition_duration_ms}"
            )
        self.image_model = image_model
        self.judge = judge
        self.renderer = renderer
        self.similarity_checker = similarity_checker
        self.num_generations = num_generations
        self.transition_duration_ms = transition_duration_ms

    async def synthesize(self, request: SynthesisRequest) -> PipelineResult:
        """Run the pipeline with bounded immediate retry.

        Raises:
            ValidationError: If the request asks for a check this pipeline cannot run
            RetryExhausted: If every attempt failed
        """
        if request.quality_check and self.similarity_checker is None:
            raise ValidationError("Quality check requested but no similarity checker configured")

        return await retry(
            lambda attempt: self.run(request, attempt=attempt),
            request.max_attempts,
        )

    async def run(self, request: SynthesisRequest, attempt: int = 1) -> PipelineResult:
        """Execute one full attempt from INIT.

        Args:
            request: Validated synthesis request
            attempt: 1-based attempt number, for logging and the result

        Returns:
            PipelineResult with the chosen image and, if rendered, the transition

        Raises:
            SynthesisError: Any fatal stage failure (the attempt ends FAILED)
        """
        context = RunContext(attempt=attempt)
        log = get_logger(__name__, run_id=uuid.uuid4().hex[:8], attempt=attempt)
        original = request.original
        reference = request.references[0]

        try:
            context.advance(PipelineState.PREPROCESSING)
            log.info("Preprocessing inputs")
            inputs = await preprocess(
                self.image_model, original, reference, request.width, request.height
            )

            context.advance(PipelineState.GENERATING)
            log.info(f"Generating {self.num_generations} candidates")
            outcomes = await generate_candidates(
                self.image_model,
                inputs,
                request.width,
                request.height,
                num_generations=self.num_generations,
            )
            successes = successful_candidates(outcomes)

            chosen: CandidateOutcome
            verdict: JudgeVerdict | None = None
            if len(successes) == 1:
                log.info("Single candidate succeeded, skipping judge")
                chosen = successes[0]
            else:
                context.advance(PipelineState.JUDGING)
                log.info(f"Judging {len(successes)} candidates")
                chosen, verdict = await select_best(successes, inputs.reference, self.judge)

            assert chosen.image is not None
            if request.quality_check:
                assert self.similarity_checker is not None
                await check_quality(chosen.image, inputs.reference, self.similarity_checker)

        except Exception as e:
            stage = context.state
            context.fail(str(e))
            log.warning(f"Attempt failed during {stage.value}: {e}")
            raise

        context.advance(PipelineState.TRANSITIONING)
        transition, transition_error = await self._render_transition(
            original, chosen.image, request, log
        )

        context.advance(PipelineState.DONE)
        log.info(f"Attempt complete: {' -> '.join(s.value for s in context.history)}")
        return PipelineResult(
            final_image=chosen.image,
            transition=transition,
            attempts=attempt,
            chosen_index=chosen.index,
            verdict=verdict,
            transition_error=transition_error,
        )

    async def _render_transition(
        self,
        before: ImageAsset,
        after: ImageAsset,
        request: SynthesisRequest,
        log: logging.Logger | logging.LoggerAdapter,
    ) -> tuple[ImageAsset | None, str | None]:
        if self.renderer is None:
            return None, None

        duration_ms = request.transition_duration_ms or self.transition_duration_ms
        try:
            transition = await self.renderer.render(
                before, after, request.width, request.height, duration_ms
            )
        except Exception as e:
            log.warning(f"Transition rendering failed, returning result without it: {e}")
            return None, str(e) or type(e).__name__
        return transition, None


def build_pipeline(
    config: AppConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> SynthesisPipeline:
    """Wire the real collaborators from app config.

    Raises:
        ValidationError: If no API key is configured
    """
    endpoint = config.endpoint
    if not endpoint.api_key:
        raise ValidationError(
            "No API key configured (set endpoint.api_key or OPENROUTER_API_KEY)"
        )

    # Retries are owned by the image client and the outer pipeline loop
    client = AsyncOpenAI(
        api_key=endpoint.api_key,
        base_url=endpoint.base_url,
        timeout=endpoint.timeout_seconds,
        max_retries=0,
    )
    image_model = OpenRouterImageClient(
        client,
        model=endpoint.image_model,
        http_client=http_client,
        provider_sort=endpoint.provider_sort,
        max_retries=endpoint.max_retries,
    )
    judge = VisionJudge(client, model=endpoint.judge_model)

    renderer: TransitionRenderer | None = None
    if config.transition.enabled:
        renderer = FFmpegTransitionRenderer(
            ffmpeg_path=config.transition.ffmpeg_path,
            fps=config.transition.fps,
            temp_dir=config.transition.temp_dir,
        )

    return SynthesisPipeline(
        image_model,
        judge,
        renderer,
        similarity_checker=judge,
        num_generations=config.synthesis.num_generations,
        transition_duration_ms=config.transition.duration_ms,
    )


def _to_asset(data: bytes, label: str) -> ImageAsset:
    if not isinstance(data, bytes | bytearray) or not data:
        raise ValidationError(f"{label} image is missing or empty")
    return ImageAsset(data=bytes(data), media_type=sniff_media_type(data))


async def synthesize(
    original: bytes,
    references: Sequence[bytes],
    width: int | None = None,
    height: int | None = None,
    *,
    transition_duration_ms: int | None = None,
    quality_check: bool = False,
    max_attempts: int | None = None,
    pipeline: SynthesisPipeline | None = None,
    config: AppConfig | None = None,
) -> PipelineResult:
    """Turn a photo and reference hairstyle image(s) into a composite.

    Inputs are validated before any remote call. Unset sizes and attempt
    counts come from ``config`` (defaults: 400x400, 2 attempts).

    Args:
        original: User photo bytes
        references: Reference hairstyle image bytes (the first is used)
        width: Target width in pixels
        height: Target height in pixels
        transition_duration_ms: Cross-fade length (pipeline default if None)
        quality_check: Reject low-similarity results and retry
        max_attempts: Whole-pipeline attempts
        pipeline: Pre-built pipeline (built from ``config`` if None)
        config: App config (defaults if None)

    Returns:
        PipelineResult

    Raises:
        ValidationError: If inputs are malformed
        RetryExhausted: If every attempt failed
    """
    config = config or AppConfig()
    synthesis = config.synthesis

    if isinstance(references, bytes | bytearray):
        raise ValidationError("references must be a sequence of images, not raw bytes")
    if not references:
        raise ValidationError("At least one reference image is required")

    original_asset = _to_asset(original, "Original")
    reference_assets = tuple(
        _to_asset(ref, f"Reference {i + 1}") for i, ref in enumerate(references)
    )

    try:
        request = SynthesisRequest(
            original=original_asset,
            references=reference_assets,
            width=synthesis.width if width is None else width,
            height=synthesis.height if height is None else height,
            transition_duration_ms=transition_duration_ms,
            quality_check=quality_check,
            max_attempts=synthesis.max_attempts if max_attempts is None else max_attempts,
        )
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid synthesis request: {e}") from e

    if pipeline is None:
        pipeline = build_pipeline(config)

    logger.info(
        f"Synthesizing {request.width}x{request.height} "
        f"(max_attempts={request.max_attempts}, quality_check={request.quality_check})"
    )
    return await pipeline.synthesize(request)
