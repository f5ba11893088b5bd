"""Session and messaging API endpoints."""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from wagateway.api.responses import fail, ok, read_json_object
from wagateway.sessions.manager import (
    ClientUnavailableError,
    SendMessageError,
    SessionExistsError,
    SessionLimitError,
    SessionNotFoundError,
    SessionNotReadyError,
)

if TYPE_CHECKING:
    from wagateway.sessions.manager import SessionManager

logger = logging.getLogger(__name__)


def _send_error(e: Exception) -> JSONResponse:
    if isinstance(e, SessionNotFoundError):
        return fail(str(e), 404)
    if isinstance(e, SessionNotReadyError):
        return fail(str(e), 409)
    logger.error("Message send failed: %s", e)
    return fail(str(e), 500)


def create_session_router(
    sessions: SessionManager,
    upload_dir: Path,
) -> APIRouter:
    """Create the session API router."""
    router = APIRouter(prefix="/sessions")

    @router.post("")
    async def create_session(request: Request) -> JSONResponse:
        body = await read_json_object(request) or {}
        session_id = body.get("sessionId")
        if session_id is not None and (not isinstance(session_id, str) or not session_id):
            return fail("sessionId must be a non-empty string", 400)

        try:
            session = sessions.create_session(session_id)
        except SessionExistsError as e:
            return fail(str(e), 409)
        except SessionLimitError as e:
            return fail(str(e), 429)
        except ClientUnavailableError as e:
            return fail(str(e), 503)
        except Exception as e:
            logger.exception("Failed to create session")
            return fail(str(e), 500)

        return JSONResponse(
            {
                "success": True,
                "message": "Session created successfully",
                "data": session.to_wire(),
            },
            status_code=201,
        )

    @router.get("")
    async def list_sessions() -> JSONResponse:
        return ok([s.to_wire() for s in sessions.list_sessions()])

    @router.get("/{session_id}")
    async def get_session(session_id: str) -> JSONResponse:
        session = sessions.get_session(session_id)
        if session is None:
            return fail("Session not found", 404)
        return ok(session.to_wire())

    @router.post("/{session_id}/logout")
    async def logout(session_id: str) -> JSONResponse:
        if not await sessions.logout(session_id):
            return fail("Session not found or logout failed", 404)
        return ok(message="Session logged out successfully")

    @router.delete("/{session_id}")
    async def destroy_session(session_id: str) -> JSONResponse:
        if not await sessions.destroy_session(session_id):
            return fail("Session not found or destroy failed", 404)
        return ok(message="Session destroyed successfully")

    @router.post("/{session_id}/send-text")
    async def send_text(session_id: str, request: Request) -> JSONResponse:
        body = await read_json_object(request) or {}
        to = body.get("to")
        message = body.get("message")
        if not to or not message or not isinstance(to, str) or not isinstance(message, str):
            return fail("Both 'to' and 'message' are required", 400)

        try:
            result = await sessions.send_text(session_id, to, message)
        except (SessionNotFoundError, SessionNotReadyError, SendMessageError) as e:
            return _send_error(e)
        return ok(result.model_dump(by_alias=True))

    @router.post("/{session_id}/send-media")
    async def send_media(session_id: str, request: Request) -> JSONResponse:
        form = await request.form()
        upload = form.get("file")
        to = form.get("to")
        caption = form.get("caption")
        if not isinstance(upload, UploadFile):
            return fail("A media file is required", 400)
        if not to or not isinstance(to, str):
            return fail("'to' is required", 400)

        stored_dir = upload_dir / uuid.uuid4().hex
        stored_dir.mkdir(parents=True, exist_ok=True)
        stored = stored_dir / Path(upload.filename or "upload").name
        try:
            stored.write_bytes(await upload.read())
            result = await sessions.send_media(
                session_id, to, stored,
                caption if isinstance(caption, str) else None,
            )
        except (SessionNotFoundError, SessionNotReadyError, SendMessageError) as e:
            return _send_error(e)
        finally:
            await upload.close()
            shutil.rmtree(stored_dir, ignore_errors=True)
        return ok(result.model_dump(by_alias=True))

    return router
