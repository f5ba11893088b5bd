"""Session management for wrapped WhatsApp automation clients.

This module provides the SessionManager class for:
- Creating, restoring and destroying sessions
- Tracking session status from client events
- Proxying text and media sends
- Forwarding inbound messages to the webhook dispatcher
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import uuid
from collections.abc import Callable, Coroutine, Sequence
from pathlib import Path
from typing import Any

from wagateway.models import SendMessageResult, Session, SessionStatus
from wagateway.sessions.client import (
    AutomationClient,
    ClientFactory,
    IncomingMessage,
    MessageMedia,
)
from wagateway.webhook.dispatcher import WebhookDispatcher
from wagateway.webhook.models import WebhookPayload

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


class SessionError(Exception):
    """Base class for session manager errors."""

    pass


class SessionExistsError(SessionError):
    pass


class SessionLimitError(SessionError):
    pass


class SessionNotFoundError(SessionError):
    pass


class SessionNotReadyError(SessionError):
    pass


class ClientUnavailableError(SessionError):
    """Raised when no automation client factory is configured."""

    pass


class SendMessageError(SessionError):
    """Raised when the automation client fails to send a message."""

    pass


def normalize_recipient(recipient: str) -> str:
    """Convert a phone number to a chat id; full addresses pass through."""
    if "@" in recipient:
        return recipient
    return f"{_NON_DIGITS.sub('', recipient)}@c.us"


class SessionManager:
    """Tracks automation clients keyed by session id.

    Provides:
    - Session creation with a configurable cap
    - Status tracking from client events
    - Message sending through ready sessions
    - Fire-and-forget webhook dispatch of inbound messages
    """

    def __init__(
        self,
        dispatcher: WebhookDispatcher,
        webhook_urls: Callable[[], Sequence[str]],
        client_factory: ClientFactory | None,
        session_path: Path,
        max_sessions: int = 10,
    ) -> None:
        """Initialize the session manager.

        Args:
            dispatcher: Dispatcher receiving inbound message events.
            webhook_urls: Returns the currently configured webhook URLs.
            client_factory: Builds a client from (client_id, data_path).
            session_path: Root directory for per-session credentials.
            max_sessions: Maximum number of tracked sessions.
        """
        self._dispatcher = dispatcher
        self._webhook_urls = webhook_urls
        self._client_factory = client_factory
        self._session_path = session_path
        self._max_sessions = max_sessions
        self._sessions: dict[str, tuple[AutomationClient, Session]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def create_session(self, session_id: str | None = None) -> Session:
        """Create a session and start its client in the background.

        Raises:
            SessionExistsError: If the id is already tracked.
            SessionLimitError: If the session cap is reached.
            ClientUnavailableError: If no client factory is configured.
        """
        sid = session_id or str(uuid.uuid4())

        if sid in self._sessions:
            raise SessionExistsError(f"Session {sid} already exists")
        if len(self._sessions) >= self._max_sessions:
            raise SessionLimitError(
                f"Maximum number of sessions ({self._max_sessions}) reached",
            )
        if self._client_factory is None:
            raise ClientUnavailableError("No automation client configured")

        self._session_path.mkdir(parents=True, exist_ok=True)
        session = Session(id=sid)
        client = self._client_factory(sid, self._session_path / sid)
        self._wire_events(client, session)
        self._sessions[sid] = (client, session)
        self._spawn(self._initialize(sid, client))
        return session

    def restore_sessions(self) -> list[Session]:
        """Recreate a session for every credential directory on disk."""
        if not self._session_path.is_dir():
            return []
        restored: list[Session] = []
        for entry in sorted(self._session_path.iterdir()):
            if not entry.is_dir() or entry.name in self._sessions:
                continue
            logger.info("Attempting to load session: %s", entry.name)
            try:
                restored.append(self.create_session(entry.name))
            except SessionError as exc:
                logger.warning("Could not restore session %s: %s", entry.name, exc)
        return restored

    def get_session(self, session_id: str) -> Session | None:
        data = self._sessions.get(session_id)
        return data[1] if data else None

    def list_sessions(self) -> list[Session]:
        return [session for _, session in self._sessions.values()]

    async def send_text(
        self, session_id: str, recipient: str, body: str,
    ) -> SendMessageResult:
        client = self._ready_client(session_id)
        return await self._send(client, normalize_recipient(recipient), body)

    async def send_media(
        self,
        session_id: str,
        recipient: str,
        file_path: Path | str,
        caption: str | None = None,
    ) -> SendMessageResult:
        """Send a file from disk.

        Raises:
            FileNotFoundError: If ``file_path`` does not exist.
        """
        client = self._ready_client(session_id)
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Media file not found: {path}")
        media = MessageMedia.from_file_path(path)
        return await self._send(
            client, normalize_recipient(recipient), media, caption or None,
        )

    async def logout(self, session_id: str) -> bool:
        data = self._sessions.get(session_id)
        if data is None:
            return False
        client, _ = data
        try:
            await client.logout()
            await client.destroy()
        except Exception:
            logger.exception("Error logging out session %s", session_id)
            return False
        self._forget(session_id)
        return True

    async def destroy_session(self, session_id: str) -> bool:
        data = self._sessions.get(session_id)
        if data is None:
            return False
        client, _ = data
        try:
            await client.destroy()
        except Exception:
            logger.exception("Error destroying session %s", session_id)
            return False
        self._forget(session_id)
        return True

    async def shutdown(self) -> None:
        """Release every client, keeping credentials for the next start."""
        for sid, (client, _) in list(self._sessions.items()):
            try:
                await client.destroy()
            except Exception:
                logger.exception("Error closing session %s", sid)
        self._sessions.clear()
        for task in list(self._tasks):
            task.cancel()

    # --- Internal ---

    def _ready_client(self, session_id: str) -> AutomationClient:
        data = self._sessions.get(session_id)
        if data is None:
            raise SessionNotFoundError("Session not found")
        client, session = data
        if session.status != SessionStatus.READY:
            raise SessionNotReadyError("Session not ready")
        return client

    async def _send(
        self,
        client: AutomationClient,
        chat_id: str,
        content: str | MessageMedia,
        caption: str | None = None,
    ) -> SendMessageResult:
        try:
            message_id = await client.send_message(chat_id, content, caption)
        except Exception as exc:
            raise SendMessageError(str(exc) or type(exc).__name__) from exc
        return SendMessageResult(message_id=message_id)

    def _forget(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        session_dir = self._session_path / session_id
        if session_dir.exists():
            shutil.rmtree(session_dir, ignore_errors=True)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _initialize(self, session_id: str, client: AutomationClient) -> None:
        try:
            await client.initialize()
        except Exception:
            logger.exception("Failed to initialize session %s", session_id)
            current = self._sessions.get(session_id)
            if current is not None and current[0] is client:
                self._sessions.pop(session_id, None)

    def _wire_events(self, client: AutomationClient, session: Session) -> None:
        def on_qr(qr: str) -> None:
            session.qr_code = qr
            session.status = SessionStatus.QR
            logger.info("QR code received for session %s", session.id)

        def on_authenticated() -> None:
            session.status = SessionStatus.AUTHENTICATED
            logger.info("Session %s authenticated", session.id)

        def on_ready() -> None:
            session.status = SessionStatus.READY
            session.qr_code = None
            session.client_info = client.info
            logger.info("Session %s is ready", session.id)

        def on_disconnected(reason: str = "") -> None:
            session.status = SessionStatus.DISCONNECTED
            session.qr_code = None
            session.client_info = None
            logger.info("Session %s disconnected: %s", session.id, reason)

        def on_auth_failure(message: str = "") -> None:
            session.status = SessionStatus.DISCONNECTED
            logger.warning("Session %s authentication failed: %s", session.id, message)

        def on_message(message: IncomingMessage) -> None:
            if message.from_me:
                return
            try:
                self._handle_incoming(session, message)
            except Exception:
                logger.exception(
                    "Error handling incoming message for session %s", session.id,
                )

        client.on("qr", on_qr)
        client.on("authenticated", on_authenticated)
        client.on("ready", on_ready)
        client.on("disconnected", on_disconnected)
        client.on("auth_failure", on_auth_failure)
        client.on("message", on_message)

    def _handle_incoming(self, session: Session, message: IncomingMessage) -> None:
        if session.client_info is None:
            return
        payload = WebhookPayload(
            session_id=session.id,
            message=message.body or "",
            from_=message.from_,
            to=session.client_info.wid,
            message_details=message.details(),
        )
        # not awaited: inbound handling must not wait on webhook delivery
        self._spawn(self._dispatcher.dispatch(payload, list(self._webhook_urls())))
