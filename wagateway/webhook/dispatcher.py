"""Webhook dispatcher: best-effort fan-out of inbound message events.

Every configured URL receives the payload concurrently. Attempts are
isolated from each other, never retried, and never raise to the caller;
each outcome is recorded in a bounded in-memory delivery log.
"""

from __future__ import annotations

import asyncio
import logging
import random
import string
import time
from collections.abc import Sequence

import httpx

from wagateway.webhook.delivery_log import DeliveryLog
from wagateway.webhook.models import DeliveryLogEntry, ProbeResult, WebhookPayload

logger = logging.getLogger(__name__)

DELIVERY_TIMEOUT_SECONDS = 10.0
USER_AGENT = "WhatsApp-Bot-Webhook/1.0"
PROBE_USER_AGENT = "WhatsApp-Bot-Webhook-Test/1.0"

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_LENGTH = 9


def generate_entry_id() -> str:
    """Short random base-36 id; collisions are possible and tolerated."""
    return "".join(random.choices(_ID_ALPHABET, k=_ID_LENGTH))


def build_probe_payload() -> WebhookPayload:
    body = "This is a test message from WhatsApp Bot"
    return WebhookPayload(
        session_id="test_session",
        message=body,
        from_="1234567890@c.us",
        to="test_bot@c.us",
        message_details={
            "id": "test_message_id",
            "type": "chat",
            "timestamp": int(time.time() * 1000),
            "body": body,
        },
    )


class WebhookDispatcher:
    """Delivers webhook payloads and keeps the recent delivery log.

    One instance is created per application and handed to the session
    manager and the API routes.
    """

    def __init__(
        self,
        delivery_log: DeliveryLog | None = None,
        timeout: float = DELIVERY_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._log = delivery_log if delivery_log is not None else DeliveryLog()
        self._timeout = timeout
        self._transport = transport

    async def dispatch(self, payload: WebhookPayload, urls: Sequence[str]) -> None:
        """POST ``payload`` to every URL and record one log entry per URL."""
        if not urls:
            logger.info("No webhook URLs configured, skipping webhook delivery")
            return

        async with self._client() as client:
            results = await asyncio.gather(
                *(self._deliver(client, payload, url) for url in urls),
                return_exceptions=True,
            )

        for url, result in zip(urls, results):
            if isinstance(result, BaseException):
                logger.error("Webhook attempt to %s crashed: %r", url, result)

    async def test_delivery(self, url: str) -> ProbeResult:
        """Send a synthetic payload to ``url``. The delivery log is untouched."""
        payload = build_probe_payload()
        async with self._client() as client:
            error, elapsed_ms = await self._post(
                client, url, payload, PROBE_USER_AGENT,
            )
        return ProbeResult(
            success=error is None, error=error, response_time=elapsed_ms,
        )

    def get_recent_deliveries(self) -> list[DeliveryLogEntry]:
        return self._log.recent()

    def clear_deliveries(self) -> None:
        self._log.clear()
        logger.info("Webhook delivery logs cleared")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
            follow_redirects=True,
        )

    async def _deliver(
        self, client: httpx.AsyncClient, payload: WebhookPayload, url: str,
    ) -> None:
        logger.info("Sending webhook to %s for session %s", url, payload.session_id)
        error, elapsed_ms = await self._post(client, url, payload, USER_AGENT)

        if error is None:
            logger.info("Webhook delivered successfully to %s (%dms)", url, elapsed_ms)
        else:
            logger.error("Failed to deliver webhook to %s: %s", url, error)

        self._log.append(DeliveryLogEntry(
            id=generate_entry_id(),
            url=url,
            payload=payload,
            success=error is None,
            error=error,
            response_time=elapsed_ms,
        ))

    async def _post(
        self,
        client: httpx.AsyncClient,
        url: str,
        payload: WebhookPayload,
        user_agent: str,
    ) -> tuple[str | None, int]:
        """POST one payload. Returns (error or None, elapsed milliseconds).

        The timeout bounds the whole attempt, redirects and body included.
        """
        headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }
        start = time.monotonic()
        error: str | None = None
        try:
            async with asyncio.timeout(self._timeout):
                resp = await client.post(
                    url, content=payload.to_json(), headers=headers,
                )
            if not resp.is_success:
                error = f"Request failed with status code {resp.status_code}"
        except (httpx.TimeoutException, TimeoutError):
            error = f"timeout of {int(self._timeout * 1000)}ms exceeded"
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            error = str(exc) or type(exc).__name__
        except Exception as exc:  # noqa: BLE001 - recorded as a failed attempt
            logger.exception("Unexpected error posting webhook to %s", url)
            error = str(exc) or type(exc).__name__
        elapsed_ms = int((time.monotonic() - start) * 1000)
        return error, elapsed_ms
