"""Unit tests for the hairswap CLI."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from hairswap.cli.main import (
    COMPOSITE_FILENAME,
    TRANSITION_FILENAME,
    build_arg_parser,
    main,
    run_describe_async,
    run_styles_async,
    run_synthesize_async,
)
from hairswap.core.config import AppConfig
from hairswap.core.synthesis import (
    ImageAsset,
    JudgeVerdict,
    PipelineResult,
    Rating,
    RetryExhausted,
)
from hairswap.core.synthesis.errors import UpstreamGenerationError
from tests.fixtures.synthesis import GIF_BYTES, candidate_asset, make_image_bytes

_SYNTHESIZE = "hairswap.cli.main.synthesize"


def _result(transition: bool = True, transition_error: str | None = None) -> PipelineResult:
    return PipelineResult(
        final_image=candidate_asset(2),
        transition=ImageAsset(data=GIF_BYTES, media_type="image/gif") if transition else None,
        attempts=1,
        chosen_index=2,
        verdict=JudgeVerdict(chosen_index=1, rationale="closest match", confidence=Rating.HIGH),
        transition_error=transition_error,
    )


@pytest.fixture
def photos(tmp_path: Path) -> tuple[Path, Path]:
    original = tmp_path / "me.jpg"
    reference = tmp_path / "ref.png"
    original.write_bytes(make_image_bytes())
    reference.write_bytes(make_image_bytes(fmt="PNG"))
    return original, reference


@pytest.fixture
def catalog(tmp_path: Path) -> Path:
    (tmp_path / "bob.png").write_bytes(make_image_bytes(fmt="PNG"))
    path = tmp_path / "styles.json"
    path.write_text(
        json.dumps(
            {
                "styles": [
                    {"name": "Bob", "image_url": "bob.png", "length": "short"},
                    {"name": "Waves", "image_url": "waves.jpg", "length": "long"},
                ]
            }
        )
    )
    return path


def _parse(*argv: str):
    return build_arg_parser().parse_args(list(argv))


class TestArgParser:
    def test_synthesize_defaults(self) -> None:
        args = _parse("synthesize", "me.jpg", "--reference", "a.png", "--reference", "b.png")

        assert args.cmd == "synthesize"
        assert args.reference == ["a.png", "b.png"]
        assert args.width is None and args.height is None
        assert not args.quality_check and not args.no_transition
        assert args.out == "."

    def test_log_level_case_insensitive(self) -> None:
        assert _parse("--log-level", "debug", "styles").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(SystemExit):
            _parse("--log-level", "loud", "styles")

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            _parse()


class TestRunSynthesize:
    @pytest.mark.asyncio
    async def test_writes_outputs(self, photos: tuple[Path, Path], tmp_path: Path) -> None:
        original, reference = photos
        out = tmp_path / "out"
        args = _parse(
            "synthesize", str(original), "--reference", str(reference),
            "--width", "320", "--duration", "800", "--out", str(out),
        )  # fmt: skip

        with patch(_SYNTHESIZE, AsyncMock(return_value=_result())) as synth:
            code = await run_synthesize_async(args, AppConfig())

        assert code == 0
        assert (out / COMPOSITE_FILENAME).read_bytes() == candidate_asset(2).data
        assert (out / TRANSITION_FILENAME).read_bytes() == GIF_BYTES
        call = synth.call_args
        assert call.args[0] == original.read_bytes()
        assert call.args[1] == [reference.read_bytes()]
        assert call.args[2:] == (320, None)
        assert call.kwargs["transition_duration_ms"] == 800

    @pytest.mark.asyncio
    async def test_transition_error_reported_without_gif(
        self, photos: tuple[Path, Path], tmp_path: Path
    ) -> None:
        original, reference = photos
        args = _parse(
            "synthesize", str(original), "--reference", str(reference), "--out", str(tmp_path)
        )

        with patch(_SYNTHESIZE, AsyncMock(return_value=_result(False, "ffmpeg missing"))):
            code = await run_synthesize_async(args, AppConfig())

        assert code == 0
        assert (tmp_path / COMPOSITE_FILENAME).exists()
        assert not (tmp_path / TRANSITION_FILENAME).exists()

    @pytest.mark.asyncio
    async def test_no_transition_disables_renderer(self, photos: tuple[Path, Path]) -> None:
        original, reference = photos
        args = _parse(
            "synthesize", str(original), "--reference", str(reference), "--no-transition",
            "--out", str(original.parent),
        )  # fmt: skip

        with patch(_SYNTHESIZE, AsyncMock(return_value=_result(False))) as synth:
            await run_synthesize_async(args, AppConfig())

        assert synth.call_args.kwargs["config"].transition.enabled is False

    @pytest.mark.asyncio
    async def test_quality_check_from_config(self, photos: tuple[Path, Path]) -> None:
        original, reference = photos
        args = _parse(
            "synthesize", str(original), "--reference", str(reference),
            "--out", str(original.parent),
        )  # fmt: skip
        config = AppConfig.model_validate({"synthesis": {"quality_check": True}})

        with patch(_SYNTHESIZE, AsyncMock(return_value=_result())) as synth:
            await run_synthesize_async(args, config)

        assert synth.call_args.kwargs["quality_check"] is True

    @pytest.mark.asyncio
    async def test_synthesis_failure_exit_code(self, photos: tuple[Path, Path]) -> None:
        original, reference = photos
        args = _parse("synthesize", str(original), "--reference", str(reference))
        error = RetryExhausted(2, UpstreamGenerationError("All 5 candidates failed"))

        with patch(_SYNTHESIZE, AsyncMock(side_effect=error)):
            assert await run_synthesize_async(args, AppConfig()) == 1

    @pytest.mark.asyncio
    async def test_missing_reference_file(self, photos: tuple[Path, Path], tmp_path: Path) -> None:
        original, _ = photos
        args = _parse("synthesize", str(original), "--reference", str(tmp_path / "nope.png"))

        with patch(_SYNTHESIZE, AsyncMock()) as synth:
            assert await run_synthesize_async(args, AppConfig()) == 1
        synth.assert_not_called()

    @pytest.mark.asyncio
    async def test_catalog_style_reference(
        self, photos: tuple[Path, Path], catalog: Path, tmp_path: Path
    ) -> None:
        original, _ = photos
        args = _parse(
            "synthesize", str(original), "--style", "bob", "--catalog", str(catalog),
            "--out", str(tmp_path),
        )  # fmt: skip

        with patch(_SYNTHESIZE, AsyncMock(return_value=_result())) as synth:
            code = await run_synthesize_async(args, AppConfig())

        assert code == 0
        assert synth.call_args.args[1] == [(tmp_path / "bob.png").read_bytes()]

    @pytest.mark.asyncio
    async def test_catalog_style_used_before_file_references(
        self, photos: tuple[Path, Path], catalog: Path, tmp_path: Path
    ) -> None:
        original, reference = photos
        args = _parse(
            "synthesize", str(original), "--reference", str(reference),
            "--style", "Bob", "--catalog", str(catalog), "--out", str(tmp_path),
        )  # fmt: skip

        with patch(_SYNTHESIZE, AsyncMock(return_value=_result())) as synth:
            assert await run_synthesize_async(args, AppConfig()) == 0

        references = synth.call_args.args[1]
        assert references[0] == (tmp_path / "bob.png").read_bytes()
        assert references[1:] == [reference.read_bytes()]

    @pytest.mark.asyncio
    async def test_unknown_catalog_style(self, photos: tuple[Path, Path], catalog: Path) -> None:
        original, _ = photos
        args = _parse("synthesize", str(original), "--style", "Mullet", "--catalog", str(catalog))

        with patch(_SYNTHESIZE, AsyncMock()) as synth:
            assert await run_synthesize_async(args, AppConfig()) == 1
        synth.assert_not_called()


class TestRunStyles:
    @pytest.mark.asyncio
    async def test_lists_matching_styles(self, catalog: Path, capsys) -> None:
        args = _parse("styles", "--catalog", str(catalog), "--length", "Short")

        assert await run_styles_async(args, AppConfig()) == 0

        out = capsys.readouterr().out
        assert "Bob" in out
        assert "Waves" not in out

    @pytest.mark.asyncio
    async def test_catalog_from_config(self, catalog: Path) -> None:
        args = _parse("styles")
        config = AppConfig(catalog_path=str(catalog))
        assert await run_styles_async(args, config) == 0

    @pytest.mark.asyncio
    async def test_no_catalog(self) -> None:
        assert await run_styles_async(_parse("styles"), AppConfig()) == 1


class TestRunDescribe:
    @pytest.mark.asyncio
    async def test_requires_api_key(self, photos: tuple[Path, Path]) -> None:
        original, _ = photos
        assert await run_describe_async(_parse("describe", str(original)), AppConfig()) == 1

    @pytest.mark.asyncio
    async def test_empty_image(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.jpg"
        empty.write_bytes(b"")
        config = AppConfig.model_validate({"endpoint": {"api_key": "sk-test"}})

        assert await run_describe_async(_parse("describe", str(empty)), config) == 1


class TestMain:
    def test_synthesize_requires_reference_or_style(
        self, photos: tuple[Path, Path], tmp_path: Path
    ) -> None:
        original, _ = photos
        with pytest.raises(SystemExit) as exc_info:
            main(["--app-config", str(tmp_path / "none.json"), "synthesize", str(original)])
        assert exc_info.value.code == 2

    def test_style_and_reference_rejected(
        self, photos: tuple[Path, Path], catalog: Path, tmp_path: Path
    ) -> None:
        original, reference = photos
        with patch(_SYNTHESIZE, AsyncMock()) as synth:
            with pytest.raises(SystemExit) as exc_info:
                main(
                    [
                        "--app-config", str(tmp_path / "none.json"),
                        "synthesize", str(original), "--reference", str(reference),
                        "--style", "Bob", "--catalog", str(catalog),
                    ]
                )  # fmt: skip
        assert exc_info.value.code == 2
        synth.assert_not_called()

    def test_missing_photo(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(
                [
                    "--app-config", str(tmp_path / "none.json"),
                    "synthesize", str(tmp_path / "missing.jpg"), "--reference", "r.png",
                ]
            )  # fmt: skip
        assert exc_info.value.code == 1

    def test_invalid_config(self, tmp_path: Path) -> None:
        config = tmp_path / "config.json"
        config.write_text("{broken")
        with pytest.raises(SystemExit) as exc_info:
            main(["--app-config", str(config), "styles"])
        assert exc_info.value.code == 1

    def test_styles_success(self, catalog: Path, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--app-config", str(tmp_path / "none.json"), "styles", "--catalog", str(catalog)])
        assert exc_info.value.code == 0
