"""JSON envelope helpers: every endpoint answers ``{success, data?, error?}``."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


def ok(data: Any = None, message: str | None = None) -> JSONResponse:
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return JSONResponse(body)


def fail(error: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": error}, status_code=status_code)


async def read_json_object(request: Request) -> dict[str, Any] | None:
    """Parse the request body as a JSON object, or None if it is not one."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
