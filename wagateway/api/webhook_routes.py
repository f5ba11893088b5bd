"""Webhook API endpoints.

Provides endpoints for:
- Reading and replacing the configured webhook URLs
- Probing a single URL
- Reading and clearing the delivery log
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from wagateway.api.responses import fail, ok, read_json_object
from wagateway.config import WEBHOOK_URLS_KEY, ConfigWriteError, is_valid_url, update_env_file

if TYPE_CHECKING:
    from wagateway.config import Settings
    from wagateway.webhook.dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)


def create_webhook_router(
    settings: Settings,
    dispatcher: WebhookDispatcher,
) -> APIRouter:
    """Create the webhook API router."""
    router = APIRouter(prefix="/webhook")

    @router.get("/settings")
    async def get_settings() -> JSONResponse:
        return ok({"webhookUrls": list(settings.webhook_urls)})

    @router.post("/settings")
    async def update_settings(request: Request) -> JSONResponse:
        """Replace the URL list and mirror it into the env file."""
        body = await read_json_object(request)
        urls = body.get("webhookUrls") if body is not None else None

        if not isinstance(urls, list):
            return fail("webhookUrls must be an array", 400)
        if not all(is_valid_url(url) for url in urls):
            return fail("All webhook URLs must be valid URLs", 400)

        settings.webhook_urls = list(urls)
        logger.info("Webhook URLs updated (%d configured)", len(urls))

        try:
            update_env_file(settings.env_file_path, WEBHOOK_URLS_KEY, ",".join(urls))
        except ConfigWriteError as e:
            return fail(str(e), 500)

        return ok(
            {"webhookUrls": list(settings.webhook_urls)},
            message="Webhook settings updated successfully",
        )

    @router.post("/test")
    async def test_webhook(request: Request) -> JSONResponse:
        """Probe one URL; a failed probe is reported as data, not as an error."""
        body = await read_json_object(request)
        url = body.get("url") if body is not None else None

        if not url or not isinstance(url, str):
            return fail("URL is required", 400)
        if not is_valid_url(url):
            return fail("Invalid URL format", 400)

        result = await dispatcher.test_delivery(url)
        return ok(result.to_wire())

    @router.get("/logs")
    async def get_logs() -> JSONResponse:
        return ok([entry.to_wire() for entry in dispatcher.get_recent_deliveries()])

    @router.delete("/logs")
    async def clear_logs() -> JSONResponse:
        dispatcher.clear_deliveries()
        return ok(message="Webhook delivery logs cleared")

    return router
