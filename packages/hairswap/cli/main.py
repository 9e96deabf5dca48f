"""Command-line interface for hairswap."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
import sys

from openai import AsyncOpenAI
from rich.console import Console
from rich.table import Table

from hairswap.core.catalog import (
    CatalogError,
    Ethnicity,
    FileStyleCatalog,
    HairColor,
    Length,
    Sex,
    StyleQuery,
    load_reference_image,
    parse_choice,
)
from hairswap.core.config import AppConfig, configure_logging, load_app_config
from hairswap.core.synthesis import (
    DescriptionError,
    ImageAsset,
    SynthesisError,
    describe_hairstyle,
    synthesize,
)
from hairswap.core.utils.images import sniff_media_type

console = Console()
logger = logging.getLogger(__name__)

COMPOSITE_FILENAME = "composite.jpeg"
TRANSITION_FILENAME = "transition.gif"


def _style_query(args: argparse.Namespace) -> StyleQuery:
    return StyleQuery(
        haircolor=parse_choice(args.haircolor, HairColor),
        ethnicity=parse_choice(args.ethnicity, Ethnicity),
        sex=parse_choice(args.sex, Sex),
        length=parse_choice(args.length, Length),
        max_records=args.max_records,
    )


def _catalog(app_config: AppConfig, override: str | None) -> FileStyleCatalog | None:
    path = override or app_config.catalog_path
    return FileStyleCatalog(path) if path else None


async def _reference_from_catalog(
    app_config: AppConfig, args: argparse.Namespace
) -> bytes | None:
    catalog = _catalog(app_config, args.catalog)
    if catalog is None:
        console.print("[red]ERROR: --style requires a catalog (--catalog or catalog_path)[/red]")
        return None

    styles = await catalog.find(StyleQuery(max_records=100))
    matches = [s for s in styles if s.name.lower() == args.style.lower()]
    if not matches:
        console.print(f"[red]ERROR: Style not found in catalog: {args.style}[/red]")
        return None

    style = matches[0]
    console.print(f"[green]Using catalog style:[/green] {style.name}")
    return await load_reference_image(style)


async def run_synthesize_async(args: argparse.Namespace, app_config: AppConfig) -> int:
    """Run the synthesis pipeline and write its outputs.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        original = Path(args.original).read_bytes()
        references = [Path(ref).read_bytes() for ref in args.reference]
        if args.style:
            catalog_reference = await _reference_from_catalog(app_config, args)
            if catalog_reference is None:
                return 1
            references.insert(0, catalog_reference)
    except (OSError, CatalogError) as e:
        console.print(f"[red]ERROR: Could not load input image: {e}[/red]")
        return 1

    if args.no_transition:
        app_config = app_config.model_copy(
            update={"transition": app_config.transition.model_copy(update={"enabled": False})}
        )

    console.print("[bold]🚀 Starting synthesis...[/bold]")
    try:
        result = await synthesize(
            original,
            references,
            args.width,
            args.height,
            transition_duration_ms=args.duration,
            quality_check=args.quality_check or app_config.synthesis.quality_check,
            max_attempts=args.max_attempts,
            config=app_config,
        )
    except SynthesisError as e:
        console.print(f"[red]❌ Synthesis failed: {e}[/red]")
        return 1

    output_dir = Path(args.out).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    composite_path = output_dir / COMPOSITE_FILENAME
    composite_path.write_bytes(result.final_image.data)
    console.print(f"[green]✅ Composite:[/green] {composite_path}")
    console.print(f"   Attempts: {result.attempts}, candidate: {result.chosen_index}")
    if result.verdict is not None:
        console.print(f"   Judge: {result.verdict.rationale}")

    if result.transition is not None:
        transition_path = output_dir / TRANSITION_FILENAME
        transition_path.write_bytes(result.transition.data)
        console.print(f"[green]✅ Transition:[/green] {transition_path}")
    elif result.transition_error:
        console.print(f"[yellow]⚠ Transition skipped: {result.transition_error}[/yellow]")

    return 0


async def run_describe_async(args: argparse.Namespace, app_config: AppConfig) -> int:
    """Print a structured description of the hairstyle in a photo."""
    endpoint = app_config.endpoint
    if not endpoint.api_key:
        console.print("[red]ERROR: OPENROUTER_API_KEY environment variable not set[/red]")
        return 1

    try:
        data = Path(args.image).read_bytes()
    except OSError as e:
        console.print(f"[red]ERROR: Could not read image: {e}[/red]")
        return 1
    if not data:
        console.print(f"[red]ERROR: Image is empty: {args.image}[/red]")
        return 1

    image = ImageAsset(data=data, media_type=sniff_media_type(data))
    client = AsyncOpenAI(
        api_key=endpoint.api_key,
        base_url=endpoint.base_url,
        timeout=endpoint.timeout_seconds,
    )

    try:
        description = await describe_hairstyle(client, image, model=endpoint.judge_model)
    except DescriptionError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1

    table = Table(title=f"Hairstyle: {Path(args.image).name}", show_header=False)
    for field, value in description.model_dump().items():
        table.add_row(field.replace("_", " ").title(), value)
    console.print(table)
    return 0


async def run_styles_async(args: argparse.Namespace, app_config: AppConfig) -> int:
    """List catalog styles matching the given filters."""
    catalog = _catalog(app_config, args.catalog)
    if catalog is None:
        console.print("[red]ERROR: No style catalog configured (--catalog or catalog_path)[/red]")
        return 1

    try:
        styles = await catalog.find(_style_query(args))
    except CatalogError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1

    table = Table(title=f"Styles ({len(styles)})")
    for column in ("Name", "Hair Color", "Ethnicity", "Sex", "Length", "Image"):
        table.add_column(column)
    for style in styles:
        table.add_row(
            style.name,
            *(
                value.value if value is not None else "-"
                for value in (style.haircolor, style.ethnicity, style.sex, style.length)
            ),
            style.image_url,
        )
    console.print(table)
    return 0


_COMMANDS = {
    "synthesize": run_synthesize_async,
    "describe": run_describe_async,
    "styles": run_styles_async,
}


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="hairswap",
        description="hairswap - try a new hairstyle on your own photo",
    )
    p.add_argument(
        "--app-config",
        default="config.json",
        help="Path to app config JSON/YAML (default: config.json)",
    )
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override the configured log level",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    syn = sub.add_parser("synthesize", help="Apply a reference hairstyle to a photo")
    syn.add_argument("original", help="Path to the user's photo")
    syn.add_argument(
        "--reference",
        action="append",
        default=[],
        help="Path to a reference hairstyle image (repeatable)",
    )
    syn.add_argument("--style", help="Name of a catalog style to use as the reference")
    syn.add_argument("--catalog", help="Path to a style catalog JSON/YAML")
    syn.add_argument("--width", type=int, default=None, help="Output width (default: 400)")
    syn.add_argument("--height", type=int, default=None, help="Output height (default: 400)")
    syn.add_argument("--duration", type=int, default=None, help="Transition length in ms")
    syn.add_argument("--max-attempts", type=int, default=None, help="Whole-pipeline attempts")
    syn.add_argument(
        "--quality-check",
        action="store_true",
        help="Reject and retry results rated low similarity to the reference",
    )
    syn.add_argument("--no-transition", action="store_true", help="Skip the transition GIF")
    syn.add_argument("--out", default=".", help="Output directory (default: current dir)")

    desc = sub.add_parser("describe", help="Describe the hairstyle in a photo")
    desc.add_argument("image", help="Path to a photo")

    styles = sub.add_parser("styles", help="List catalog styles")
    styles.add_argument("--catalog", help="Path to a style catalog JSON/YAML")
    styles.add_argument("--haircolor", help="black | brown | blonde")
    styles.add_argument("--ethnicity", help="asian | black | white | brown")
    styles.add_argument("--sex", help="male | female")
    styles.add_argument("--length", help="short | medium | long")
    styles.add_argument("--max-records", type=int, default=None, help="1-100 (default: 20)")

    return p


def main(argv: list[str] | None = None) -> None:
    """Main entry point for CLI."""
    p = build_arg_parser()
    args = p.parse_args(argv)

    try:
        app_config = load_app_config(Path(args.app_config))
    except Exception as e:
        console.print(f"[red]ERROR: Could not load config: {e}[/red]")
        sys.exit(1)

    if args.log_level:
        logging_config = app_config.logging.model_copy(update={"level": args.log_level})
        app_config = app_config.model_copy(update={"logging": logging_config})
    configure_logging(app_config)

    if args.cmd == "synthesize":
        if not args.reference and not args.style:
            p.error("synthesize requires --reference or --style")
        if args.reference and args.style:
            p.error("--style cannot be combined with --reference")
        if not Path(args.original).exists():
            console.print(f"[red]ERROR: Photo not found: {args.original}[/red]")
            sys.exit(1)

    exit_code = asyncio.run(_COMMANDS[args.cmd](args, app_config))
    sys.exit(exit_code)
