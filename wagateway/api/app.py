"""FastAPI application wiring sessions, messaging and webhook delivery."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from wagateway.api.auth_middleware import AuthMiddleware
from wagateway.api.session_routes import create_session_router
from wagateway.api.webhook_routes import create_webhook_router
from wagateway.config import Settings
from wagateway.sessions.client import ClientFactory, load_client_factory
from wagateway.sessions.manager import SessionManager
from wagateway.webhook.dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    client_factory: ClientFactory | None = None
    if settings.client_factory:
        client_factory = load_client_factory(settings.client_factory)
    else:
        logger.warning("CLIENT_FACTORY not set; sessions cannot be created")
    return create_app(settings, client_factory=client_factory, restore_sessions=True)


def create_app(
    settings: Settings,
    dispatcher: WebhookDispatcher | None = None,
    client_factory: ClientFactory | None = None,
    session_manager: SessionManager | None = None,
    restore_sessions: bool = False,
) -> FastAPI:
    """Create the API app. One dispatcher is shared by sessions and routes."""
    dispatcher = dispatcher or WebhookDispatcher()
    sessions = session_manager or SessionManager(
        dispatcher=dispatcher,
        webhook_urls=lambda: settings.webhook_urls,
        client_factory=client_factory,
        session_path=settings.session_path,
        max_sessions=settings.max_sessions,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if restore_sessions:
            restored = sessions.restore_sessions()
            logger.info("Restored %d session(s)", len(restored))
        yield
        await sessions.shutdown()

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.settings = settings
    app.state.dispatcher = dispatcher
    app.state.sessions = sessions

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({
            "success": True,
            "message": "WhatsApp API is running",
            "timestamp": datetime.now(UTC).isoformat(),
        })

    app.include_router(create_session_router(sessions, settings.upload_dir))
    app.include_router(create_webhook_router(settings, dispatcher))

    if settings.api_token:
        app.add_middleware(AuthMiddleware, token=settings.api_token)

    return app
