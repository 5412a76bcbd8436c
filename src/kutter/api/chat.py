"""Per-connection chat session actor.

Each accepted WebSocket gets one :class:`ChatSession`. While active it runs
an outbound pump (bus → client), an inbound dispatcher (client → hub) and,
if the credential carries an expiry, a watcher that ends the session when
the token runs out. The first of these to finish ends the session.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Awaitable, Callable

from fastapi import WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from kutter.api.auth import Identity
from kutter.api.frames import (
    DeleteMessagePayload,
    InboundFrame,
    NewMessagePayload,
    error_frame,
)
from kutter.api.pubsub import BusClosed, Lagged, Subscription
from kutter.errors import Forbidden, InvalidArgument, NotFound, StoreError
from kutter.hub import ChatHub

logger = logging.getLogger(__name__)

CLOSE_NORMAL = 1000
CLOSE_POLICY_VIOLATION = 1008
CLOSE_TRY_AGAIN_LATER = 1013


class ChatSession:
    """Owns one client's stream, identity and bus subscription."""

    def __init__(self, ws: WebSocket, identity: Identity, hub: ChatHub) -> None:
        self.ws = ws
        self.identity = identity
        self.hub = hub
        self._send_lock = asyncio.Lock()
        self._close_code = CLOSE_NORMAL
        self._handlers: dict[str, Callable[[dict], Awaitable[None]]] = {
            "new_message": self._on_new_message,
            "delete_message": self._on_delete_message,
        }

    async def run(self) -> None:
        """Serve the session until the client leaves or the session is closed."""
        subscription = self.hub.bus.subscribe()
        name = self.identity.author_id
        tasks = [
            asyncio.create_task(self._pump(subscription), name=f"ws-pump:{name}"),
            asyncio.create_task(self._dispatch(), name=f"ws-dispatch:{name}"),
        ]
        remaining = self.identity.seconds_left()
        if remaining is not None:
            tasks.append(
                asyncio.create_task(
                    self._expire_after(remaining), name=f"ws-expiry:{name}"
                )
            )
        logger.info("Chat session opened for %s", name)
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.debug(
                        "Session task %s ended with error",
                        task.get_name(),
                        exc_info=task.exception(),
                    )
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            subscription.close()
            await self._close()
            logger.info("Chat session closed for %s", name)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _send(self, frame: dict) -> None:
        async with self._send_lock:
            await self.ws.send_text(json.dumps(frame))

    async def send_error(self, message: str) -> None:
        """Send an error frame to this session only."""
        await self._send(error_frame(message))

    async def _pump(self, subscription: Subscription) -> None:
        """Forward bus events to the client until lag, shutdown or send error."""
        while True:
            try:
                event = await subscription.recv()
            except Lagged as exc:
                logger.warning(
                    "Session for %s lagged (%d dropped), disconnecting",
                    self.identity.author_id,
                    exc.missed,
                )
                self._close_code = CLOSE_TRY_AGAIN_LATER
                await self.send_error("lagged")
                return
            except BusClosed:
                return
            await self._send(event.to_frame())

    async def _expire_after(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0))
        logger.info("Token for %s expired, closing session", self.identity.author_id)
        self._close_code = CLOSE_POLICY_VIOLATION
        await self.send_error("token expired")

    async def _close(self) -> None:
        """Attempt a clean close frame unless either side already closed."""
        if (
            self.ws.client_state != WebSocketState.CONNECTED
            or self.ws.application_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await self.ws.close(code=self._close_code)
        except (RuntimeError, OSError):
            logger.debug("Close frame not delivered", exc_info=True)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _dispatch(self) -> None:
        """Read client frames sequentially until end of stream."""
        while True:
            message = await self.ws.receive()
            if message["type"] == "websocket.disconnect":
                return
            text = message.get("text")
            if text is None:
                continue
            await self.handle_frame(text)

    async def handle_frame(self, text: str) -> None:
        """Decode one text frame and run its action. Malformed frames are dropped."""
        try:
            frame = InboundFrame.model_validate_json(text)
        except ValidationError:
            logger.debug("Ignoring malformed frame from %s", self.identity.author_id)
            return
        handler = self._handlers.get(frame.action)
        if handler is None:
            logger.warning("Unknown action: %s", frame.action)
            return
        await handler(frame.payload)

    async def _on_new_message(self, payload: dict) -> None:
        try:
            body = NewMessagePayload.model_validate(payload).body
        except ValidationError:
            logger.debug("Ignoring new_message with bad payload")
            return
        try:
            await self.hub.post_message(self.identity, body)
        except InvalidArgument:
            logger.debug("Ignoring empty message from %s", self.identity.author_id)
        except StoreError:
            logger.warning("Error saving message for %s", self.identity.author_id)
            await self.send_error("Failed to save message")

    async def _on_delete_message(self, payload: dict) -> None:
        try:
            message_id = DeleteMessagePayload.model_validate(payload).id
        except ValidationError:
            logger.debug("Ignoring delete_message with bad payload")
            return
        try:
            await self.hub.delete_message(self.identity, message_id)
        except NotFound:
            await self.send_error("Message not found")
        except Forbidden:
            await self.send_error("You can only delete your own messages")
        except StoreError:
            logger.warning("Error deleting message %d", message_id)
            await self.send_error("Failed to delete message")
