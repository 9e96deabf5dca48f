"""Configuration models for hairswap."""

from __future__ import annotations

from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field


class ConfigBase(BaseModel):
    """Base class for hairswap configurations."""

    model_config = ConfigDict(extra="ignore")  # Forward compatibility


class EndpointConfig(BaseModel):
    """Model endpoint configuration (OpenAI-compatible API)."""

    base_url: str = Field(
        default="https://openrouter.ai/api/v1", description="Chat completions base URL"
    )
    api_key: str | None = Field(
        default=None, description="API key (falls back to OPENROUTER_API_KEY)"
    )
    image_model: str = Field(
        default="google/gemini-2.5-flash-image-preview",
        description="Image-editing model identifier",
    )
    judge_model: str = Field(default="openai/gpt-5-mini", description="Vision judge model")
    timeout_seconds: float = Field(default=120.0, gt=0, description="Per-request timeout")
    max_retries: int = Field(
        default=1, ge=1, description="Attempts per image call on transient errors (1 = no retry)"
    )
    provider_sort: str | None = Field(
        default="throughput", description="Provider routing preference"
    )


class SynthesisConfig(BaseModel):
    """Pipeline tunables."""

    num_generations: int = Field(default=5, ge=1, description="Candidate fan-out size")
    max_attempts: int = Field(default=2, ge=1, description="Whole-pipeline attempts")
    width: int = Field(default=400, gt=0)
    height: int = Field(default=400, gt=0)
    quality_check: bool = Field(default=False, description="Run the similarity check")


class TransitionConfig(BaseModel):
    """Transition GIF rendering configuration."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Render a transition GIF")
    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")
    duration_ms: int = Field(default=1000, gt=0, description="Cross-fade length")
    fps: int = Field(default=18, gt=0, le=60)
    temp_dir: str | None = Field(default=None, description="Staging directory for inputs")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = Field(default=False, description="Emit JSON log records")
    filename: str | None = Field(default=None, description="Log file (stdout if None)")


class AppConfig(ConfigBase):
    """Application-level configuration."""

    model_config = ConfigDict(extra="ignore")
    endpoint: EndpointConfig = EndpointConfig()
    synthesis: SynthesisConfig = SynthesisConfig()
    transition: TransitionConfig = TransitionConfig()
    logging: LoggingConfig = LoggingConfig()
    catalog_path: str | None = Field(default=None, description="Style catalog file (JSON/YAML)")

    @classmethod
    def default_path(cls) -> Path:
        """Default path for application config."""
        return Path("config.json")

    @classmethod
    def load_or_default(cls, path: Path | str | None = None) -> Self:
        """Load from ``path`` (default: ``default_path()``), falling back to defaults.

        The API key is filled from the environment when the file omits it.
        """
        from hairswap.core.config.loader import load_app_config

        return load_app_config(path)
