"""Tests for the commit-then-publish chat hub."""

from __future__ import annotations

import asyncio

import pytest

from kutter.api.auth import Identity
from kutter.api.pubsub import BusClosed, Delete, MessageBus, NewMessage
from kutter.db import close_db, init_db
from kutter.errors import ConstraintViolation, Forbidden, InvalidArgument, NotFound
from kutter.hub import ChatHub
from kutter.store import MessageStore

from conftest import add_user


@pytest.fixture(autouse=True)
async def db():
    """Create an in-memory SQLite DB for each test."""
    await init_db("sqlite+aiosqlite://")
    yield
    await close_db()


@pytest.fixture
async def hub(alice, bob) -> ChatHub:
    await add_user(alice)
    await add_user(bob)
    return ChatHub(MessageStore(), MessageBus())


async def test_post_publishes_committed_row(hub, alice):
    sub = hub.bus.subscribe()
    msg = await hub.post_message(alice, "hello")
    event = await sub.recv()
    assert isinstance(event, NewMessage)
    assert event.message == msg
    assert event.message.author_id == alice.author_id
    assert event.message.author_name == alice.author_name


async def test_post_empty_body_publishes_nothing(hub, alice):
    sub = hub.bus.subscribe()
    with pytest.raises(InvalidArgument):
        await hub.post_message(alice, "")
    assert sub._queue.empty()


async def test_post_by_unregistered_author(hub):
    ghost = Identity(author_id="ghost@example.com", author_name="ghost")
    sub = hub.bus.subscribe()
    with pytest.raises(ConstraintViolation):
        await hub.post_message(ghost, "boo")
    assert sub._queue.empty()


async def test_concurrent_posts_publish_in_commit_order(hub, alice, bob):
    sub = hub.bus.subscribe()
    await asyncio.gather(
        *(hub.post_message(alice if i % 2 else bob, f"m{i}") for i in range(10))
    )
    ids = [(await sub.recv()).message.id for _ in range(10)]
    assert ids == sorted(ids)
    history = await hub.history()
    assert [m.id for m in history] == sorted(ids, reverse=True)


async def test_delete_own_message(hub, alice):
    msg = await hub.post_message(alice, "oops")
    sub = hub.bus.subscribe()
    await hub.delete_message(alice, msg.id)
    assert await sub.recv() == Delete(msg.id)
    assert await hub.store.fetch_by_id(msg.id) is None


async def test_delete_someone_elses_message_is_forbidden(hub, alice, bob):
    msg = await hub.post_message(alice, "mine")
    sub = hub.bus.subscribe()
    with pytest.raises(Forbidden):
        await hub.delete_message(bob, msg.id)
    assert sub._queue.empty()
    assert await hub.store.fetch_by_id(msg.id) is not None


async def test_delete_missing_message(hub, alice):
    with pytest.raises(NotFound) as exc_info:
        await hub.delete_message(alice, 12345)
    assert exc_info.value.message_id == 12345


async def test_close_shuts_bus(hub):
    sub = hub.bus.subscribe()
    hub.close()
    assert len(hub.bus) == 0
    with pytest.raises(BusClosed):
        await sub.recv()
