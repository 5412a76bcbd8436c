"""Message history endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from kutter.errors import StoreUnavailable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("")
async def get_messages(request: Request):
    """Entire chat log, newest first."""
    try:
        msgs = await request.app.state.hub.history()
    except StoreUnavailable:
        logger.error("Error fetching messages", exc_info=True)
        return JSONResponse("Error fetching messages", status_code=500)
    return [m.to_dict() for m in msgs]
