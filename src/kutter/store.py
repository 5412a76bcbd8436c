"""Message store: the durable, ordered log of chat messages.

Thin facade over :class:`kutter.db.Repository` that opens one session per
call and translates database failures into :mod:`kutter.errors` types.
The store is the only place ids and timestamps are assigned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from kutter.db import Repository, get_session, init_db
from kutter.db.models import Message
from kutter.errors import ConstraintViolation, InvalidArgument, StoreUnavailable

logger = logging.getLogger(__name__)


def _utc_iso(dt: datetime) -> str:
    """Serialize as RFC 3339 UTC (SQLite drops tzinfo on the way back)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


@dataclass(frozen=True)
class ChatMessage:
    """A committed message as seen by the rest of the application."""

    id: int
    author_id: str
    author_name: str
    body: str
    timestamp: datetime

    @classmethod
    def from_row(cls, row: Message) -> ChatMessage:
        return cls(
            id=row.id,
            author_id=row.author_id,
            author_name=row.author_name,
            body=row.body,
            timestamp=row.timestamp,
        )

    def to_dict(self) -> dict:
        """JSON shape used by both the history endpoint and the stream."""
        return {
            "id": self.id,
            "authorId": self.author_id,
            "authorName": self.author_name,
            "body": self.body,
            "timestamp": _utc_iso(self.timestamp),
        }


class MessageStore:
    """Async append/read/delete access to the ``messages`` table."""

    async def create_schema(self, url: str | None = None) -> None:
        """Ensure tables exist. Safe to call repeatedly."""
        try:
            await init_db(url)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def append(self, author_id: str, author_name: str, body: str) -> ChatMessage:
        """Insert a message and return it with its assigned id and timestamp.

        Raises:
            InvalidArgument: empty body or author fields.
            ConstraintViolation: the author is not a registered user.
            StoreUnavailable: any other database failure.
        """
        if not body or not body.strip():
            raise InvalidArgument("body must not be empty")
        if not author_id or not author_name:
            raise InvalidArgument("author must not be empty")
        try:
            async with get_session() as s:
                row = await Repository(s).add_message(author_id, author_name, body)
                msg = ChatMessage.from_row(row)
        except IntegrityError as exc:
            logger.warning("Rejected message from unknown author %s", author_id)
            raise ConstraintViolation(f"author {author_id!r} is not registered") from exc
        except SQLAlchemyError as exc:
            logger.error("Failed to append message", exc_info=True)
            raise StoreUnavailable(str(exc)) from exc
        return msg

    async def fetch_by_id(self, message_id: int) -> ChatMessage | None:
        """Return the message or None."""
        try:
            async with get_session() as s:
                row = await Repository(s).get_message(message_id)
                return ChatMessage.from_row(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch message %d", message_id, exc_info=True)
            raise StoreUnavailable(str(exc)) from exc

    async def delete_by_id(self, message_id: int) -> bool:
        """Delete a message. Returns whether a row was removed."""
        try:
            async with get_session() as s:
                return await Repository(s).delete_message(message_id)
        except SQLAlchemyError as exc:
            logger.error("Failed to delete message %d", message_id, exc_info=True)
            raise StoreUnavailable(str(exc)) from exc

    async def fetch_all(self) -> list[ChatMessage]:
        """Every message, most recent first."""
        try:
            async with get_session() as s:
                rows = await Repository(s).list_messages()
                return [ChatMessage.from_row(r) for r in rows]
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch message history", exc_info=True)
            raise StoreUnavailable(str(exc)) from exc
