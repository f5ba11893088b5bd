"""Data models for webhook delivery."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class WebhookPayload(BaseModel):
    """Inbound message event forwarded to every configured webhook URL."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    message: str
    from_: str = Field(alias="from")
    to: str
    message_details: dict[str, Any] = Field(default_factory=dict, alias="messageDetails")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class DeliveryLogEntry(BaseModel):
    """Outcome of one (payload, url) delivery attempt."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    timestamp: str = Field(default_factory=_now_iso)
    url: str
    payload: WebhookPayload
    success: bool
    error: str | None = None
    response_time: int | None = Field(default=None, alias="responseTime")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProbeResult(BaseModel):
    """Outcome of an ad-hoc webhook probe; never recorded in the delivery log."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    error: str | None = None
    response_time: int | None = Field(default=None, alias="responseTime")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
