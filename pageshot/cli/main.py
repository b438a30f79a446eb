#!/usr/bin/env python3
"""Main CLI entry point for pageshot using Typer."""

import asyncio
import json
from enum import IntEnum
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml

from .. import __version__
from ..capture.config import ConfigManager
from ..capture.engine import capture_url, error_response
from ..errors import InvalidRequestError
from ..logging_setup import configure_logging
from ..models.capture import CaptureRequest


class ExitCode(IntEnum):
    """CLI exit codes."""
    SUCCESS = 0
    CAPTURE_FAILED = 1
    INVALID_INPUT = 2


app = typer.Typer(
    name="pageshot",
    help="pageshot - capture a screenshot, metadata and media of any URL",
    add_completion=False,
    rich_markup_mode="rich"
)


@app.callback()
def main():
    """
    pageshot - capture a screenshot, metadata and media of any URL.

    Handles direct images and videos, X/Twitter and Instagram posts, and
    generic pages behind consent dialogs and interstitial challenges.
    """
    pass


@app.command(name="version")
def show_version():
    """Show version information."""
    typer.echo(f"pageshot v{__version__}")


IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/avif": "avif",
    "image/svg+xml": "svg",
}


def default_output_path(content_type: str) -> Path:
    return Path(f"screenshot.{IMAGE_EXTENSIONS.get(content_type, 'jpg')}")


@app.command()
def capture(
    url: Annotated[
        str,
        typer.Argument(help="URL to capture (scheme optional)")
    ],

    fullpage: Annotated[
        bool,
        typer.Option("--fullpage", help="Capture the full scrollable page")
    ] = False,

    headful: Annotated[
        bool,
        typer.Option("--headful", help="Run browser with GUI (for debugging)")
    ] = False,

    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging and page metrics")
    ] = False,

    img_index: Annotated[
        Optional[int],
        typer.Option("--img-index", help="1-based carousel item to use as the primary image")
    ] = None,

    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Where to write the image")
    ] = None,

    json_path: Annotated[
        Optional[Path],
        typer.Option("--json", help="Write the full JSON response to this file")
    ] = None,

    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to pageshot YAML configuration")
    ] = None,

    no_filters: Annotated[
        bool,
        typer.Option("--no-filters", help="Disable ad and tracker blocking")
    ] = False,
):
    """
    Capture a single URL.

    Writes the primary image to --output and, optionally, the JSON response
    (metadata, media URLs, caption and gallery images) to --json.
    """
    configure_logging(verbose=verbose, headless=not headful)

    try:
        request = CaptureRequest.from_raw(
            url,
            full_page=fullpage,
            headless=not headful,
            verbose=verbose,
            image_index=img_index,
        )
    except InvalidRequestError as e:
        typer.echo(f"❌ Invalid request: {e}", err=True)
        raise typer.Exit(code=ExitCode.INVALID_INPUT.value)

    try:
        engine_config = ConfigManager(config).config.get_engine_config()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(code=ExitCode.INVALID_INPUT.value)

    if no_filters:
        engine_config.filters_enabled = False

    try:
        result = asyncio.run(capture_url(request, engine_config))
    except KeyboardInterrupt:
        typer.echo("❌ Operation interrupted by user", err=True)
        raise typer.Exit(code=ExitCode.CAPTURE_FAILED.value)
    except Exception as e:
        status, body = error_response(e)
        typer.echo(f"❌ Capture failed ({status}): {body['error']}", err=True)
        code = ExitCode.INVALID_INPUT if status == 400 else ExitCode.CAPTURE_FAILED
        raise typer.Exit(code=code.value)

    output = output or default_output_path(result.content_type)
    output.write_bytes(result.image)
    typer.echo(f"✅ Captured {request.url} via {result.handler.value} handler -> {output} ({result.image_size} bytes)")

    if result.metadata and result.metadata.title:
        typer.echo(f"   Title: {result.metadata.title}")
    if result.media:
        typer.echo(f"   Media items: {len(result.media)}")
    if result.all_images:
        typer.echo(f"   Gallery images: {len(result.all_images)}")

    if json_path:
        json_path.write_text(json.dumps(result.to_response(), indent=2))
        typer.echo(f"   Response written to {json_path}")


@app.command()
def validate_config(
    config_file: Annotated[
        Path,
        typer.Argument(help="Path to configuration file to validate")
    ],
):
    """
    Validate a pageshot configuration file without capturing anything.
    """
    if not config_file.exists():
        typer.echo(f"❌ Configuration file not found: {config_file}", err=True)
        raise typer.Exit(code=ExitCode.INVALID_INPUT.value)

    try:
        loaded = ConfigManager(config_file).load_config()
        engine_config = loaded.get_engine_config()
    except (ValueError, yaml.YAMLError) as e:
        typer.echo(f"❌ Configuration validation failed: {e}", err=True)
        raise typer.Exit(code=ExitCode.INVALID_INPUT.value)

    typer.echo(f"✅ Configuration file {config_file} is valid")
    typer.echo(f"   Environment: {loaded.environment}")
    typer.echo(f"   Retry attempts: {engine_config.retry_attempts}")
    typer.echo(f"   Filters: {'enabled' if engine_config.filters_enabled else 'disabled'}")


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    app()
