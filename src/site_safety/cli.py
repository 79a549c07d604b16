"""CLI interface for site-safety."""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click

from . import __version__
from .hazard_analysis.compressor import (
    DEFAULT_CEILING_BYTES,
    DEFAULT_MIN_HEIGHT,
    DEFAULT_MIN_WIDTH,
    format_file_size,
    reduce_media,
)
from .hazard_analysis.config import Language
from .hazard_analysis.exceptions import HazardAnalysisError
from .hazard_analysis.factory import create_client
from .hazard_analysis.base import CompletionClient
from .hazard_analysis.models import HazardRecord, PhotoAnalysisRecord, RawMedia
from .hazard_analysis import pipeline

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"


def ai_options(func):
    """Options shared by every command that calls the AI service."""
    func = click.option("--language", default="auto", help="Answer language (ko/en/auto)")(func)
    func = click.option("--mock", is_flag=True, help="Use mock client for testing (no API calls)")(func)
    func = click.option("--api-key", help="API key (or set GOOGLE_API_KEY / QWEN_API_KEY env var)")(func)
    func = click.option("--model", default=DEFAULT_MODEL, help="Model to use (e.g., gemini-2.5-flash, qwen-vl-max)")(func)
    return func


def limit_options(func):
    """Compression limits for commands that upload an image."""
    func = click.option("--min-height", type=click.IntRange(min=1), default=DEFAULT_MIN_HEIGHT, show_default=True, help="Minimum height after resizing")(func)
    func = click.option("--min-width", type=click.IntRange(min=1), default=DEFAULT_MIN_WIDTH, show_default=True, help="Minimum width after resizing")(func)
    func = click.option("--ceiling", type=click.IntRange(min=1), default=DEFAULT_CEILING_BYTES, show_default=True, help="Maximum upload size in bytes")(func)
    return func


output_format_option = click.option(
    "--output-format", type=click.Choice(["text", "json"]), default="text", help="Output format"
)


@click.group()
@click.version_option(version=__version__, prog_name="site-safety")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug mode.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """site-safety - AI-assisted hazard analysis for work-site photos."""
    if ctx.obj is None:
        ctx.obj = {}

    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug

    if debug:
        logger.debug("Debug mode enabled")
    elif verbose:
        logger.info("Verbose mode enabled")


def _make_client(ctx: click.Context, model: str, api_key: Optional[str], mock: bool, language: Language) -> CompletionClient:
    if mock:
        if ctx.obj.get("verbose"):
            click.echo("Using mock client (no API calls)")
        return create_client("mock", language=language)
    try:
        return create_client(model, api_key=api_key)
    except (ValueError, ImportError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def _fail(ctx: click.Context, error: HazardAnalysisError) -> None:
    stage = f" during {error.stage}" if error.stage else ""
    click.echo(f"Error{stage}: {error}", err=True)
    if ctx.obj.get("debug"):
        import traceback
        traceback.print_exc()
    ctx.exit(1)


def _echo_hazards(hazards: List[HazardRecord], output_format: str) -> None:
    if output_format == "json":
        click.echo(json.dumps([
            dict(h.to_dict(), risk_score=h.risk_score, risk_level=h.risk_level.value)
            for h in hazards
        ], indent=2, ensure_ascii=False))
        return

    if not hazards:
        click.echo("No hazards identified.")
        return
    click.echo(f"Identified {len(hazards)} hazards:")
    for i, hazard in enumerate(hazards, 1):
        click.echo(f"\n{i}. {hazard.description}")
        click.echo(
            f"   Severity: {hazard.severity}  Likelihood: {hazard.likelihood}  "
            f"Risk: {hazard.risk_score} ({hazard.risk_level.value})"
        )
        click.echo(f"   Countermeasures: {hazard.countermeasures}")


def _echo_photo_analysis(result: PhotoAnalysisRecord, output_format: str) -> None:
    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    sections = [
        ("Hazards", result.hazards),
        ("Engineering solutions", result.engineering_solutions),
        ("Management solutions", result.management_solutions),
        ("Related regulations", result.related_regulations),
    ]
    for title, items in sections:
        click.echo(f"{title}:")
        if not items:
            click.echo("  (none)")
        for item in items:
            click.echo(f"  - {item}")


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Where to write the compressed image")
@limit_options
@click.pass_context
def compress(ctx, image, output, ceiling, min_width, min_height):
    """Compress an image so it fits under the upload ceiling."""
    media = RawMedia.from_path(image)
    try:
        result = reduce_media(media, ceiling, min_width, min_height)
    except HazardAnalysisError as e:
        _fail(ctx, e)
        return

    if result.steps == 0:
        click.echo(f"No compression needed: {format_file_size(result.original_size)}")
    else:
        click.echo(
            f"Compressed: {format_file_size(result.original_size)} -> "
            f"{format_file_size(result.final_size)} "
            f"({result.width}x{result.height}, quality {result.quality}, {result.steps} trials)"
        )
        if result.oversized:
            click.echo("Warning: result still exceeds the ceiling", err=True)

    if output is None:
        source = Path(image)
        suffix = ".webp" if result.mime_type == "image/webp" else ".jpg"
        if result.steps == 0:
            suffix = source.suffix
        output = str(source.with_name(f"{source.stem}_compressed{suffix}"))
    Path(output).write_bytes(result.data)
    click.echo(f"Written to: {output}")


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--description", help="Optional description of the photo")
@ai_options
@limit_options
@output_format_option
@click.pass_context
def analyze(ctx, image, description, model, api_key, mock, language, ceiling, min_width, min_height, output_format):
    """Find hazards and improvement suggestions in a work-site photo."""
    lang = Language.normalize(language)
    client = _make_client(ctx, model, api_key, mock, lang)
    try:
        result = pipeline.analyze_photo(
            client,
            RawMedia.from_path(image),
            description=description,
            language=lang,
            ceiling_bytes=ceiling,
            min_width=min_width,
            min_height=min_height,
        )
    except HazardAnalysisError as e:
        _fail(ctx, e)
        return
    _echo_photo_analysis(result, output_format)


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--process", "process_name", required=True, help="Process or equipment name")
@click.option("--description", help="Optional description of the photo")
@ai_options
@limit_options
@output_format_option
@click.pass_context
def assess(ctx, image, process_name, description, model, api_key, mock, language, ceiling, min_width, min_height, output_format):
    """Generate a rated risk assessment from a photo."""
    lang = Language.normalize(language)
    client = _make_client(ctx, model, api_key, mock, lang)
    try:
        hazards = pipeline.generate_risk_assessment(
            client,
            RawMedia.from_path(image),
            process_name,
            description=description,
            language=lang,
            ceiling_bytes=ceiling,
            min_width=min_width,
            min_height=min_height,
        )
    except HazardAnalysisError as e:
        _fail(ctx, e)
        return
    _echo_hazards(hazards, output_format)


@cli.command("more-hazards")
@click.option("--process", "process_name", required=True, help="Process or equipment name")
@click.option("--existing", multiple=True, help="Hazard already identified (repeatable)")
@ai_options
@output_format_option
@click.pass_context
def more_hazards(ctx, process_name, existing, model, api_key, mock, language, output_format):
    """Suggest hazards not already identified for a process."""
    lang = Language.normalize(language)
    client = _make_client(ctx, model, api_key, mock, lang)
    try:
        hazards = pipeline.generate_additional_hazards(client, process_name, existing, language=lang)
    except HazardAnalysisError as e:
        _fail(ctx, e)
        return
    _echo_hazards(hazards, output_format)


@cli.command()
@click.argument("question")
@click.option("--image", type=click.Path(exists=True, dir_okay=False), help="Image the question refers to")
@ai_options
@click.pass_context
def ask(ctx, question, image, model, api_key, mock, language):
    """Ask the safety assistant a question."""
    lang = Language.normalize(language)
    client = _make_client(ctx, model, api_key, mock, lang)
    media = RawMedia.from_path(image) if image else None
    try:
        answer = pipeline.answer_safety_question(client, question, media=media, language=lang)
    except HazardAnalysisError as e:
        _fail(ctx, e)
        return
    click.echo(answer)


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Display system and package information."""
    import platform
    from PIL import __version__ as pillow_version
    click.echo(f"site-safety v{__version__}")
    click.echo(f"Python {platform.python_version()} on {platform.system()} {platform.release()}")
    click.echo(f"Pillow {pillow_version}")

    if ctx.obj.get("verbose"):
        click.echo(f"Executable: {sys.executable}")
        click.echo(f"Default upload ceiling: {format_file_size(DEFAULT_CEILING_BYTES)}")
        click.echo(f"Minimum resolution: {DEFAULT_MIN_WIDTH}x{DEFAULT_MIN_HEIGHT}")


def main() -> None:
    """Entry point for the CLI."""
    try:
        cli(obj={})
    except Exception as e:
        click.echo(f"Fatal error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
