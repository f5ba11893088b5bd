"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

WEBHOOK_URLS_KEY = "WEBHOOK_URLS"


class ConfigWriteError(Exception):
    """Raised when the env file could not be updated."""

    pass


def parse_url_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def is_valid_url(value: object) -> bool:
    """True for a well-formed absolute URL (scheme and host present)."""
    if not isinstance(value, str) or not value or value != value.strip():
        return False
    try:
        parts = urlsplit(value)
        # accessing .port validates the port range
        parts.port  # noqa: B018
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


@dataclass
class Settings:
    """Process-wide settings. ``webhook_urls`` is replaced at runtime."""

    webhook_urls: list[str] = field(default_factory=list)
    max_sessions: int = 10
    session_path: Path = Path("sessions")
    env_file_path: Path = Path(".env")
    upload_dir: Path = Path("uploads")
    api_token: str | None = None
    client_factory: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Create Settings from environment variables."""
        return cls(
            webhook_urls=parse_url_list(os.environ.get(WEBHOOK_URLS_KEY)),
            max_sessions=int(os.environ.get("MAX_SESSIONS", "10")),
            session_path=Path(os.environ.get("SESSION_PATH", "sessions")),
            env_file_path=Path(os.environ.get("ENV_FILE_PATH", ".env")),
            upload_dir=Path(os.environ.get("UPLOAD_DIR", "uploads")),
            api_token=os.environ.get("API_TOKEN") or None,
            client_factory=os.environ.get("CLIENT_FACTORY") or None,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def update_env_file(path: Path, key: str, value: str) -> None:
    """Set ``key=value`` in a dotenv-style file, keeping every other line.

    Raises:
        ConfigWriteError: If the file could not be read or written.
    """
    try:
        lines = path.read_text(encoding="utf-8").split("\n") if path.exists() else []
        prefix = f"{key}="
        for i, line in enumerate(lines):
            if line.startswith(prefix):
                lines[i] = f"{key}={value}"
                break
        else:
            lines.append(f"{key}={value}")
        path.write_text("\n".join(lines), encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        logger.error("Error updating env file %s: %s", path, exc)
        raise ConfigWriteError("Failed to update configuration file") from exc
