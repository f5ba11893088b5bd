"""Shared Pydantic data models for wagateway."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class SessionStatus(str, Enum):
    INITIALIZING = "initializing"
    QR = "qr"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"


# --- Session Models ---


class ClientInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    pushname: str = "Unknown"
    wid: str
    platform: str = "Unknown"


class Session(BaseModel):
    """Observed state of one WhatsApp session.

    ``qr_code`` is only set while the session waits for pairing and
    ``client_info`` only while it is ready.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: SessionStatus = SessionStatus.INITIALIZING
    qr_code: str | None = Field(default=None, alias="qrCode")
    client_info: ClientInfo | None = Field(default=None, alias="clientInfo")

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SendMessageResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_id: str = Field(alias="messageId")
