"""WebSocket endpoint for the live chat stream."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket
from fastapi.responses import JSONResponse

from kutter.api.auth import TOKEN_COOKIE, AuthError, verify_token
from kutter.api.chat import CLOSE_POLICY_VIOLATION, ChatSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


async def _deny(ws: WebSocket, status_code: int, detail: str) -> None:
    """Refuse the upgrade with a plain HTTP response when the server allows it."""
    if "websocket.http.response" in ws.scope.get("extensions", {}):
        await ws.send_denial_response(JSONResponse(detail, status_code=status_code))
    else:
        await ws.close(code=CLOSE_POLICY_VIOLATION, reason=detail)


@router.websocket("/ws")
async def ws_chat(ws: WebSocket) -> None:
    """Bidirectional chat stream.

    Connect: ws://host:port/ws with the ``token`` cookie set by /auth/login.
    Sends JSON frames: new_message / delete broadcasts and per-session errors.
    """
    if ws.app.state.maintenance:
        await _deny(ws, 503, "Service under maintenance")
        return

    try:
        identity = verify_token(
            ws.cookies.get(TOKEN_COOKIE), ws.app.state.config.jwt_secret
        )
    except AuthError as exc:
        logger.info("Rejected WebSocket upgrade: %s", exc.reason)
        await _deny(ws, 401, "Unauthorized")
        return

    await ws.accept()
    await ChatSession(ws, identity, ws.app.state.hub).run()
