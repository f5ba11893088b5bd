"""ASGI middleware for Bearer token authentication on message-sending routes."""

from __future__ import annotations

import hmac
import logging
import re

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

# Paths that require a token (everything else is open)
PROTECTED_PATHS = re.compile(r"^/sessions/[^/]+/(send-text|send-media)/?$")


class AuthMiddleware:
    """ASGI middleware that validates Bearer tokens using constant-time comparison."""

    def __init__(
        self,
        app: ASGIApp,
        token: str,
        protected: re.Pattern[str] = PROTECTED_PATHS,
    ) -> None:
        self.app = app
        self._token = token.encode()
        self._protected = protected

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        path = request.url.path

        if not self._protected.match(path):
            await self.app(scope, receive, send)
            return

        auth_header = request.headers.get("authorization", "")

        if not auth_header.startswith("Bearer "):
            response = JSONResponse(
                {
                    "success": False,
                    "error": "Unauthorized: No token provided or invalid format",
                },
                status_code=401,
            )
            self._log_failure(request, "missing_token" if not auth_header else "invalid_format")
            await response(scope, receive, send)
            return

        provided_token = auth_header[7:].encode()

        if not hmac.compare_digest(provided_token, self._token):
            response = JSONResponse(
                {"success": False, "error": "Unauthorized: Invalid token"},
                status_code=401,
            )
            self._log_failure(request, "invalid_token")
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)

    def _log_failure(self, request: Request, reason: str) -> None:
        logger.warning(
            "Auth failure for %s %s from %s: %s",
            request.method,
            request.url.path,
            request.client.host if request.client else "unknown",
            reason,
        )
