"""WebSocket frame models.

Client → server::

    {"action": "new_message",    "payload": {"body": "<text>"}}
    {"action": "delete_message", "payload": {"id": <int>}}

Server → client frames are built by the events in :mod:`kutter.api.pubsub`
and by :func:`error_frame`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class InboundFrame(BaseModel):
    """Client → Server envelope."""

    action: str
    payload: dict[str, Any]


class NewMessagePayload(BaseModel):
    body: str


class DeleteMessagePayload(BaseModel):
    # Message ids are 64-bit signed integers in every backend
    id: int = Field(ge=1, le=2**63 - 1)


def error_frame(message: str) -> dict:
    """Per-session error, never broadcast."""
    return {"status": "error", "message": message}
