"""Repository — async CRUD for users and messages."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from kutter.db.models import Message, User


class Repository:
    """High-level async data access. Accepts a session from get_session()."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(self, email: str, username: str, password_hash: str) -> User:
        """Insert a new user. Raises IntegrityError on duplicate email/username."""
        user = User(email=email, username=username, password_hash=password_hash)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email."""
        stmt = select(User).where(User.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> User | None:
        """Get user by display handle."""
        stmt = select(User).where(User.username == username)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def add_message(self, author_id: str, author_name: str, body: str) -> Message:
        """Insert a message; id and timestamp are filled in on flush."""
        msg = Message(author_id=author_id, author_name=author_name, body=body)
        self.session.add(msg)
        await self.session.flush()
        return msg

    async def get_message(self, message_id: int) -> Message | None:
        """Get a single message by id."""
        return await self.session.get(Message, message_id)

    async def delete_message(self, message_id: int) -> bool:
        """Delete a message by id. Returns True if a row was removed."""
        stmt = delete(Message).where(Message.id == message_id)
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def list_messages(self) -> list[Message]:
        """All messages, newest first (id breaks timestamp ties)."""
        stmt = select(Message).order_by(Message.timestamp.desc(), Message.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
