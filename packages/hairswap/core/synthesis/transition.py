"""Cross-fade transition rendering via ffmpeg.

Input stills are staged to uniquely named temp files; the GIF is read from
ffmpeg's stdout so no output file is written.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Protocol

from hairswap.core.synthesis.errors import TransitionError
from hairswap.core.synthesis.models import ImageAsset
from hairswap.core.utils.images import sniff_extension

logger = logging.getLogger(__name__)

DEFAULT_FPS = 18
DEFAULT_DURATION_MS = 1000


class TransitionRenderer(Protocol):
    """Renders an animated transition between two stills."""

    async def render(
        self,
        before: ImageAsset,
        after: ImageAsset,
        width: int,
        height: int,
        duration_ms: int = DEFAULT_DURATION_MS,
    ) -> ImageAsset: ...


def _fmt_seconds(value: float) -> str:
    # ffmpeg accepts plain decimals; avoid "1.0e-03" style output
    return f"{value:.3f}".rstrip("0").rstrip(".") or "0"


def build_filter_graph(
    width: int,
    height: int,
    duration_s: float,
    fps: int = DEFAULT_FPS,
    hold_start_s: float = 0.0,
    hold_end_s: float = 0.0,
) -> str:
    """Build the ``-filter_complex`` graph for a full-length cross-fade.

    Both stills are scaled to cover the box, center-cropped, and faded with
    alpha over ``duration_s``; the overlay is quantized with a generated
    palette for GIF output.
    """
    len_a = _fmt_seconds(hold_start_s + duration_s)
    len_b = _fmt_seconds(hold_end_s + duration_s)
    offset = _fmt_seconds(hold_start_s)
    duration = _fmt_seconds(duration_s)

    scale_crop = (
        f"scale={width}:{height}:force_original_aspect_ratio=increase,"
        f"crop={width}:{height}:(ow-iw)/2:(oh-ih)/2,format=rgba,setsar=1"
    )
    return ";".join(
        [
            f"[0:v]{scale_crop},trim=duration={len_a},setpts=PTS-STARTPTS,"
            f"fade=out:st={offset}:d={duration}:alpha=1[v0]",
            f"[1:v]{scale_crop},trim=duration={len_b},setpts=PTS-STARTPTS,"
            f"fade=in:st={offset}:d={duration}:alpha=1[v1]",
            f"[v0][v1]overlay,fps={fps}[x]",
            "[x]split[x1][x2]",
            "[x1]palettegen=stats_mode=diff[p]",
            "[x2][p]paletteuse=new=1:dither=sierra2_4a",
        ]
    )


def build_ffmpeg_args(
    ffmpeg_path: str,
    input_a: Path,
    input_b: Path,
    width: int,
    height: int,
    duration_s: float,
    fps: int = DEFAULT_FPS,
) -> list[str]:
    """Full argv for rendering a looping GIF to stdout."""
    clip_length = _fmt_seconds(duration_s)
    return [
        ffmpeg_path,
        "-y",
        "-loop", "1", "-t", clip_length, "-i", str(input_a),
        "-loop", "1", "-t", clip_length, "-i", str(input_b),
        "-filter_complex", build_filter_graph(width, height, duration_s, fps),
        "-gifflags", "+transdiff",
        "-loop", "0",
        "-f", "gif",
        "pipe:1",
    ]  # fmt: skip


@contextmanager
def staged_inputs(
    before: bytes,
    after: bytes,
    temp_dir: str | Path | None = None,
) -> Iterator[tuple[Path, Path]]:
    """Write both stills to per-run temp files and remove them on exit."""
    directory = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
    run_id = uuid.uuid4().hex
    path_a = directory / f"transition_{run_id}_a{sniff_extension(before)}"
    path_b = directory / f"transition_{run_id}_b{sniff_extension(after)}"

    try:
        path_a.write_bytes(before)
        path_b.write_bytes(after)
        yield path_a, path_b
    finally:
        for path in (path_a, path_b):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove temp file {path}: {e}")


class FFmpegTransitionRenderer:
    """Transition renderer that shells out to ffmpeg.

    Args:
        ffmpeg_path: ffmpeg executable name or path
        fps: Output frame rate
        temp_dir: Directory for staged inputs (system temp dir if None)
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        fps: int = DEFAULT_FPS,
        temp_dir: str | Path | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.fps = fps
        self.temp_dir = temp_dir

    async def render(
        self,
        before: ImageAsset,
        after: ImageAsset,
        width: int,
        height: int,
        duration_ms: int = DEFAULT_DURATION_MS,
    ) -> ImageAsset:
        """Render a cross-fade GIF from ``before`` to ``after``.

        Args:
            before: First still
            after: Last still
            width: Output width in pixels
            height: Output height in pixels
            duration_ms: Fade length in milliseconds

        Returns:
            ImageAsset with media type image/gif

        Raises:
            ValueError: If dimensions or duration are not positive
            TransitionError: If ffmpeg is missing, fails, or produces no output
        """
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be positive")
        if duration_ms <= 0:
            raise ValueError(f"duration_ms must be positive, got {duration_ms}")

        duration_s = duration_ms / 1000

        with staged_inputs(before.data, after.data, self.temp_dir) as (path_a, path_b):
            args = build_ffmpeg_args(
                self.ffmpeg_path, path_a, path_b, width, height, duration_s, self.fps
            )
            logger.debug(f"Running ffmpeg: {' '.join(args)}")
            stdout, stderr, returncode = await self._run(args)

        diagnostic = stderr.decode("utf-8", errors="replace").strip()
        if returncode != 0:
            raise TransitionError(
                diagnostic or f"ffmpeg exited with code {returncode}",
                returncode=returncode,
                stderr=diagnostic,
            )
        if not stdout:
            raise TransitionError(
                "ffmpeg produced no output", returncode=returncode, stderr=diagnostic
            )

        logger.debug(f"Rendered transition GIF: {len(stdout)} bytes")
        return ImageAsset(data=stdout, media_type="image/gif")

    async def _run(self, args: list[str]) -> tuple[bytes, bytes, int]:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TransitionError(f"Failed to start ffmpeg ({self.ffmpeg_path}): {e}") from e

        try:
            stdout, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                with suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        return stdout, stderr, process.returncode if process.returncode is not None else -1
