"""Main entry point for site-safety web server."""

import logging
from pathlib import Path
from typing import Optional

import click
import uvicorn

from .api import create_app
from .config import WebConfig

logger = logging.getLogger(__name__)


@click.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Interface to bind")
@click.option("--port", default=8000, show_default=True, help="Port to listen on")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Path to a JSON config file")
@click.option("--model", help="Override the configured model (e.g. gemini-2.5-flash, qwen-vl-max, mock)")
@click.option("--save-config", is_flag=True, help="Write the effective settings back to the config file")
def serve(host: str, port: int, config_path: Optional[str], model: Optional[str], save_config: bool) -> None:
    """Serve the hazard analysis API."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    path = Path(config_path) if config_path else None
    config = WebConfig.load_from_file(path)
    if model:
        config.model = model
    if save_config:
        config.save_to_file(path)
        logger.info("Saved configuration")

    click.echo("Starting site-safety web server...")
    click.echo(f"API documentation: http://localhost:{port}/docs")
    click.echo(f"Model: {config.model}, upload ceiling: {config.ceiling_bytes} bytes")
    if not config.get_api_key():
        click.echo("\nNote: To use AI features, set environment variables:")
        click.echo("  For Gemini: export GOOGLE_API_KEY='your-key'")
        click.echo("  For Qwen: export QWEN_API_KEY='your-key'")
    click.echo("\nPress Ctrl+C to stop the server")

    uvicorn.run(create_app(config=config), host=host, port=port, log_level="info")


def main() -> None:
    """Run the web server."""
    serve()


if __name__ == "__main__":
    main()
