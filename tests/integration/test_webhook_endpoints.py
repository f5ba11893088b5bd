"""Integration tests for the webhook settings, probe and log endpoints."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from tests.conftest import make_payload
from wagateway.api.app import create_app
from wagateway.config import Settings
from wagateway.webhook.dispatcher import WebhookDispatcher


async def _receiver(request: httpx.Request) -> httpx.Response:
    if request.url.host == "down.test":
        raise httpx.ConnectError("Connection refused", request=request)
    return httpx.Response(200)


@pytest.fixture
def dispatcher() -> WebhookDispatcher:
    return WebhookDispatcher(transport=httpx.MockTransport(_receiver))


@pytest.fixture
def app(settings: Settings, dispatcher: WebhookDispatcher):  # noqa: ANN201
    return create_app(settings, dispatcher=dispatcher)


def _client(app) -> AsyncClient:  # noqa: ANN001
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestWebhookSettings:

    @pytest.mark.asyncio
    async def test_get_settings(self, app, settings: Settings) -> None:  # noqa: ANN001
        settings.webhook_urls = ["http://a.test"]
        async with _client(app) as client:
            resp = await client.get("/webhook/settings")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "data": {"webhookUrls": ["http://a.test"]}}

    @pytest.mark.asyncio
    async def test_update_settings_persists_to_env_file(
        self, app, settings: Settings,  # noqa: ANN001
    ) -> None:
        settings.env_file_path.write_text("PORT=3000\nWEBHOOK_URLS=http://old.test")
        urls = ["http://a.test/hook", "https://b.test/hook"]

        async with _client(app) as client:
            resp = await client.post("/webhook/settings", json={"webhookUrls": urls})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["webhookUrls"] == urls
        assert settings.webhook_urls == urls
        assert settings.env_file_path.read_text() == (
            "PORT=3000\nWEBHOOK_URLS=http://a.test/hook,https://b.test/hook"
        )

    @pytest.mark.asyncio
    async def test_invalid_url_rejected_and_settings_unchanged(
        self, app, settings: Settings,  # noqa: ANN001
    ) -> None:
        settings.webhook_urls = ["http://keep.test"]
        async with _client(app) as client:
            resp = await client.post(
                "/webhook/settings",
                json={"webhookUrls": ["not-a-url", "http://ok.test"]},
            )
        assert resp.status_code == 400
        assert resp.json() == {
            "success": False, "error": "All webhook URLs must be valid URLs",
        }
        assert settings.webhook_urls == ["http://keep.test"]
        assert not settings.env_file_path.exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"webhookUrls": "http://a.test"}, {}, [1, 2]])
    async def test_non_array_rejected(self, app, body) -> None:  # noqa: ANN001
        async with _client(app) as client:
            resp = await client.post("/webhook/settings", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"] == "webhookUrls must be an array"

    @pytest.mark.asyncio
    async def test_empty_list_allowed(self, app, settings: Settings) -> None:  # noqa: ANN001
        settings.webhook_urls = ["http://a.test"]
        async with _client(app) as client:
            resp = await client.post("/webhook/settings", json={"webhookUrls": []})
        assert resp.status_code == 200
        assert settings.webhook_urls == []

    @pytest.mark.asyncio
    async def test_env_file_failure_returns_500(self, app) -> None:  # noqa: ANN001
        with patch.object(Path, "write_text", side_effect=OSError("disk full")):
            async with _client(app) as client:
                resp = await client.post(
                    "/webhook/settings", json={"webhookUrls": ["http://a.test"]},
                )
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False, "error": "Failed to update configuration file",
        }

    @pytest.mark.asyncio
    async def test_undecodable_env_file_returns_500(self, app, settings: Settings) -> None:  # noqa: ANN001
        settings.env_file_path.write_bytes(b"NAME=\xff\xfe\n")
        async with _client(app) as client:
            resp = await client.post(
                "/webhook/settings", json={"webhookUrls": ["http://a.test"]},
            )
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False, "error": "Failed to update configuration file",
        }


class TestWebhookProbe:

    @pytest.mark.asyncio
    async def test_probe_success(self, app, dispatcher: WebhookDispatcher) -> None:  # noqa: ANN001
        async with _client(app) as client:
            resp = await client.post("/webhook/test", json={"url": "http://ok.test"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["success"] is True
        assert "responseTime" in body["data"]
        assert dispatcher.get_recent_deliveries() == []

    @pytest.mark.asyncio
    async def test_probe_failure_is_data_not_error(self, app) -> None:  # noqa: ANN001
        async with _client(app) as client:
            resp = await client.post("/webhook/test", json={"url": "http://down.test"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["success"] is False
        assert "refused" in data["error"].lower()

    @pytest.mark.asyncio
    async def test_missing_url(self, app) -> None:  # noqa: ANN001
        async with _client(app) as client:
            resp = await client.post("/webhook/test", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "URL is required"

    @pytest.mark.asyncio
    async def test_invalid_url(self, app) -> None:  # noqa: ANN001
        async with _client(app) as client:
            resp = await client.post("/webhook/test", json={"url": "nope"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid URL format"


class TestDeliveryLogs:

    @pytest.mark.asyncio
    async def test_logs_newest_first(self, app, dispatcher: WebhookDispatcher) -> None:  # noqa: ANN001
        await dispatcher.dispatch(make_payload(message="first"), ["http://ok.test"])
        await dispatcher.dispatch(make_payload(message="second"), ["http://down.test"])

        async with _client(app) as client:
            resp = await client.get("/webhook/logs")

        assert resp.status_code == 200
        entries = resp.json()["data"]
        assert [e["payload"]["message"] for e in entries] == ["second", "first"]
        assert entries[0]["success"] is False
        assert "error" in entries[0]
        assert entries[1]["success"] is True
        assert "error" not in entries[1]
        assert set(entries[1]) == {"id", "timestamp", "url", "payload", "success", "responseTime"}

    @pytest.mark.asyncio
    async def test_clear_logs(self, app, dispatcher: WebhookDispatcher) -> None:  # noqa: ANN001
        await dispatcher.dispatch(make_payload(), ["http://ok.test"])

        async with _client(app) as client:
            resp = await client.delete("/webhook/logs")
            assert resp.status_code == 200
            assert resp.json()["message"] == "Webhook delivery logs cleared"

            resp = await client.get("/webhook/logs")
            assert resp.json()["data"] == []

            resp = await client.delete("/webhook/logs")
            assert resp.status_code == 200
