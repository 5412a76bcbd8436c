"""Maintenance-mode switch: answer 503 on API routes while enabled."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# Only these paths are gated; static assets stay reachable
_API_PREFIXES = ("/messages", "/auth")


class MaintenanceMiddleware(BaseHTTPMiddleware):
    """Short-circuit API requests while ``app.state.maintenance`` is true.

    WebSocket upgrades bypass HTTP middleware; the /ws route checks the
    same flag itself.
    """

    async def dispatch(self, request: Request, call_next):
        if request.app.state.maintenance and request.url.path.startswith(_API_PREFIXES):
            return JSONResponse(
                {"detail": "Service under maintenance"}, status_code=503
            )
        return await call_next(request)
