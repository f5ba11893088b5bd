"""Shared test fixtures for wagateway."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from wagateway.config import Settings
from wagateway.models import ClientInfo
from wagateway.sessions.client import AutomationClient, IncomingMessage, MessageMedia
from wagateway.webhook.models import DeliveryLogEntry, WebhookPayload


class FakeClient(AutomationClient):
    """In-memory automation client recording every call."""

    def __init__(self, client_id: str, data_path: Path) -> None:
        super().__init__(client_id, data_path)
        self.initialized = False
        self.logged_out = False
        self.destroyed = False
        self.sent: list[tuple[str, str | MessageMedia, str | None]] = []
        self.fail_initialize: Exception | None = None
        self.fail_send: Exception | None = None
        self.fail_destroy: Exception | None = None
        self._info: ClientInfo | None = None

    @property
    def info(self) -> ClientInfo | None:
        return self._info

    async def initialize(self) -> None:
        if self.fail_initialize:
            raise self.fail_initialize
        self.initialized = True

    async def logout(self) -> None:
        self.logged_out = True

    async def destroy(self) -> None:
        if self.fail_destroy:
            raise self.fail_destroy
        self.destroyed = True

    async def send_message(
        self,
        chat_id: str,
        content: str | MessageMedia,
        caption: str | None = None,
    ) -> str:
        if self.fail_send:
            raise self.fail_send
        self.sent.append((chat_id, content, caption))
        return f"true_{chat_id}_MSG{len(self.sent)}"

    async def become_ready(self, wid: str = "15550001111@c.us") -> None:
        """Drive the client through pairing to the ready state."""
        self._info = ClientInfo(pushname="Bot", wid=wid, platform="android")
        await self.emit("authenticated")
        await self.emit("ready")


class FakeClientFactory:
    """Client factory that remembers the clients it built."""

    def __init__(self) -> None:
        self.clients: dict[str, FakeClient] = {}

    def __call__(self, client_id: str, data_path: Path) -> FakeClient:
        client = FakeClient(client_id, data_path)
        self.clients[client_id] = client
        return client


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        webhook_urls=[],
        max_sessions=3,
        session_path=tmp_path / "sessions",
        env_file_path=tmp_path / ".env",
        upload_dir=tmp_path / "uploads",
    )


# --- Factory functions for test data ---


def make_payload(**kwargs: Any) -> WebhookPayload:
    """Factory for WebhookPayload with sensible defaults."""
    defaults: dict[str, Any] = {
        "session_id": "s1",
        "message": "hello",
        "from_": "15551234567@c.us",
        "to": "15550001111@c.us",
        "message_details": {"id": "msg1", "type": "chat", "timestamp": 1700000000},
    }
    defaults.update(kwargs)
    return WebhookPayload(**defaults)


def make_log_entry(**kwargs: Any) -> DeliveryLogEntry:
    """Factory for DeliveryLogEntry with sensible defaults."""
    defaults: dict[str, Any] = {
        "id": "abc123xyz",
        "url": "http://ok.test/hook",
        "payload": make_payload(),
        "success": True,
        "response_time": 12,
    }
    defaults.update(kwargs)
    return DeliveryLogEntry(**defaults)


def make_incoming_message(**kwargs: Any) -> IncomingMessage:
    """Factory for IncomingMessage with sensible defaults."""
    defaults: dict[str, Any] = {
        "id": "false_15551234567@c.us_ABC",
        "from_": "15551234567@c.us",
        "body": "hi there",
        "timestamp": 1700000000,
    }
    defaults.update(kwargs)
    return IncomingMessage(**defaults)
