"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from starlette.websockets import WebSocketState

from kutter.api.auth import Identity, create_token, hash_password
from kutter.config import Config
from kutter.db import Repository, get_session

SECRET = "test-secret"


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config wired to an in-memory DB and no static frontend."""
    return Config(
        database_url="sqlite+aiosqlite://",
        jwt_secret=SECRET,
        static_dir=str(tmp_path / "no-static"),
    )


@pytest.fixture
def alice() -> Identity:
    return Identity(author_id="alice@example.com", author_name="alice")


@pytest.fixture
def bob() -> Identity:
    return Identity(author_id="bob@example.com", author_name="bob")


def token_for(identity: Identity) -> str:
    """Mint a cookie value for an identity."""
    return create_token(identity.author_id, identity.author_name, SECRET)


async def add_user(identity: Identity, password: str = "password123") -> None:
    """Register a user directly through the repository."""
    async with get_session() as s:
        await Repository(s).create_user(
            identity.author_id, identity.author_name, hash_password(password)
        )


class FakeWebSocket:
    """Minimal stand-in for a Starlette WebSocket, driven from the test."""

    def __init__(self) -> None:
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.sent: list[dict] = []
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.closed_with: int | None = None
        self.send_gate = asyncio.Event()
        self.send_gate.set()
        self.fail_sends = False

    def push_text(self, text: str) -> None:
        self.inbox.put_nowait({"type": "websocket.receive", "text": text})

    def push_json(self, data: dict) -> None:
        self.push_text(json.dumps(data))

    def disconnect(self) -> None:
        self.inbox.put_nowait({"type": "websocket.disconnect", "code": 1000})

    async def receive(self) -> dict:
        message = await self.inbox.get()
        if message["type"] == "websocket.disconnect":
            self.client_state = WebSocketState.DISCONNECTED
        return message

    async def send_text(self, data: str) -> None:
        await self.send_gate.wait()
        if self.fail_sends:
            raise RuntimeError("connection reset")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.application_state = WebSocketState.DISCONNECTED
        self.closed_with = code
