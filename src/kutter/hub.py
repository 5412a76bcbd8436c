"""Chat hub — the single commit-then-publish path for chat actions."""

from __future__ import annotations

import asyncio
import logging

from kutter.api.auth import Identity
from kutter.api.pubsub import Delete, MessageBus, NewMessage
from kutter.errors import Forbidden, NotFound
from kutter.store import ChatMessage, MessageStore

logger = logging.getLogger(__name__)


class ChatHub:
    """Binds the message store to the broadcast bus.

    Commit and publish happen under one lock, so the order in which the
    store accepts writes is the order every subscriber observes.
    """

    def __init__(self, store: MessageStore, bus: MessageBus) -> None:
        self.store = store
        self.bus = bus
        self._commit_lock = asyncio.Lock()

    async def post_message(self, identity: Identity, body: str) -> ChatMessage:
        """Append a message authored by ``identity`` and broadcast it."""
        async with self._commit_lock:
            msg = await self.store.append(identity.author_id, identity.author_name, body)
            self.bus.publish(NewMessage(msg))
        logger.info("Message %d posted by %s", msg.id, identity.author_id)
        return msg

    async def delete_message(self, identity: Identity, message_id: int) -> None:
        """Delete one of the caller's own messages and broadcast the deletion.

        Raises:
            NotFound: no message with that id.
            Forbidden: the message belongs to someone else.
        """
        async with self._commit_lock:
            msg = await self.store.fetch_by_id(message_id)
            if msg is None:
                raise NotFound(message_id)
            if msg.author_id != identity.author_id:
                raise Forbidden("You can only delete your own messages")
            if not await self.store.delete_by_id(message_id):
                raise NotFound(message_id)
            self.bus.publish(Delete(message_id))
        logger.info("Message %d deleted by %s", message_id, identity.author_id)

    async def history(self) -> list[ChatMessage]:
        """Full log, most recent first."""
        return await self.store.fetch_all()

    def close(self) -> None:
        self.bus.close()
