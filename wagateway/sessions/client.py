"""Interface to the wrapped WhatsApp automation client.

The browser-driving library lives outside this package. A concrete client
subclasses :class:`AutomationClient`, raises events through :meth:`emit`,
and is built by a factory configured with ``CLIENT_FACTORY=module:callable``.

Events raised by a client:

- ``qr`` (qr: str)
- ``authenticated`` ()
- ``ready`` ()
- ``disconnected`` (reason: str)
- ``auth_failure`` (message: str)
- ``message`` (message: IncomingMessage)
"""

from __future__ import annotations

import base64
import importlib
import inspect
import mimetypes
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wagateway.models import ClientInfo

EventHandler = Callable[..., Any]
ClientFactory = Callable[[str, Path], "AutomationClient"]


@dataclass(frozen=True)
class MessageMedia:
    """Base64 media attachment, as the automation client expects it."""

    mimetype: str
    data: str
    filename: str | None = None

    @classmethod
    def from_file_path(cls, path: Path | str) -> MessageMedia:
        path = Path(path)
        mimetype, _ = mimetypes.guess_type(path.name)
        return cls(
            mimetype=mimetype or "application/octet-stream",
            data=base64.b64encode(path.read_bytes()).decode("ascii"),
            filename=path.name,
        )


@dataclass
class IncomingMessage:
    """A message observed by the automation client."""

    id: str
    from_: str
    body: str = ""
    type: str = "chat"
    timestamp: int = 0
    from_me: bool = False
    has_media: bool = False
    is_forwarded: bool = False
    is_status: bool = False
    is_starred: bool = False
    broadcast: bool = False
    has_quoted_msg: bool = False
    device_type: str | None = None
    is_gif: bool = False
    v_cards: list[str] = field(default_factory=list)
    mentioned_ids: list[str] = field(default_factory=list)
    group_mentions: list[dict[str, Any]] = field(default_factory=list)
    links: list[dict[str, Any]] = field(default_factory=list)

    def details(self) -> dict[str, Any]:
        """Metadata bag forwarded to webhooks as ``messageDetails``."""
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp,
            "body": self.body,
            "hasMedia": self.has_media,
            "isForwarded": self.is_forwarded,
            "isStatus": self.is_status,
            "isStarred": self.is_starred,
            "broadcast": self.broadcast,
            "fromMe": self.from_me,
            "hasQuotedMsg": self.has_quoted_msg,
            "deviceType": self.device_type,
            "isGif": self.is_gif,
            "vCards": list(self.v_cards),
            "mentionedIds": list(self.mentioned_ids),
            "groupMentions": list(self.group_mentions),
            "links": list(self.links),
        }


class AutomationClient(ABC):
    """One automation client per WhatsApp session."""

    def __init__(self, client_id: str, data_path: Path) -> None:
        self.client_id = client_id
        self.data_path = data_path
        self._handlers: dict[str, list[EventHandler]] = {}

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    async def emit(self, event: str, *args: Any) -> None:
        """Invoke every handler registered for ``event``, awaiting coroutines."""
        for handler in list(self._handlers.get(event, [])):
            result = handler(*args)
            if inspect.isawaitable(result):
                await result

    @property
    @abstractmethod
    def info(self) -> ClientInfo | None:
        """Identity of the connected account, available once ready."""

    @abstractmethod
    async def initialize(self) -> None: ...

    @abstractmethod
    async def logout(self) -> None: ...

    @abstractmethod
    async def destroy(self) -> None: ...

    @abstractmethod
    async def send_message(
        self,
        chat_id: str,
        content: str | MessageMedia,
        caption: str | None = None,
    ) -> str:
        """Send a message and return the serialized message id."""


def load_client_factory(target: str) -> ClientFactory:
    """Resolve a ``module:callable`` string to a client factory."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Invalid client factory '{target}', expected 'module:callable'")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr)
    if not callable(factory):
        raise TypeError(f"Client factory '{target}' is not callable")
    return factory
