"""Domain errors raised by the store and the chat hub."""

from __future__ import annotations


class KutterError(Exception):
    """Base class for all kutter errors."""


class InvalidArgument(KutterError):
    """Input rejected before reaching the database (e.g. empty body)."""


class StoreError(KutterError):
    """The message store could not complete an operation."""


class StoreUnavailable(StoreError):
    """Transient database / I/O failure."""


class ConstraintViolation(StoreError):
    """A database constraint rejected the write (e.g. unknown author)."""


class NotFound(KutterError):
    """The referenced message does not exist."""

    def __init__(self, message_id: int):
        super().__init__(f"Message {message_id} not found")
        self.message_id = message_id


class Forbidden(KutterError):
    """The caller is not allowed to act on this message."""
