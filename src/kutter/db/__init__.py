"""Database layer for kutter — async SQLAlchemy, SQLite by default."""

from kutter.db.engine import close_db, get_session, init_db
from kutter.db.models import Base, Message, User
from kutter.db.repository import Repository

__all__ = [
    "Base",
    "Message",
    "Repository",
    "User",
    "close_db",
    "get_session",
    "init_db",
]
