"""Click CLI for running the gateway and probing webhook URLs."""

from __future__ import annotations

import asyncio
import json

import click
import uvicorn

from wagateway.config import is_valid_url
from wagateway.webhook.dispatcher import WebhookDispatcher


@click.group()
def cli() -> None:
    """WhatsApp session gateway with webhook forwarding."""


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address.")
@click.option("--port", default=3000, type=int, help="Bind port.")
@click.option("--reload", is_flag=True, help="Reload on code changes.")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API (configured from environment variables)."""
    uvicorn.run(
        "wagateway.api.app:create_app_from_env",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@cli.command("test-webhook")
@click.argument("url")
@click.option("--timeout", default=10.0, type=float, help="Timeout in seconds.")
def test_webhook(url: str, timeout: float) -> None:
    """Send a sample payload to URL and print the result."""
    if not is_valid_url(url):
        raise click.BadParameter("Invalid URL format", param_hint="URL")
    dispatcher = WebhookDispatcher(timeout=timeout)
    result = asyncio.run(dispatcher.test_delivery(url))
    click.echo(json.dumps(result.to_wire(), indent=2))
    if not result.success:
        raise SystemExit(1)
