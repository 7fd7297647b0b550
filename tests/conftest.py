"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from pydantic import BaseModel

from monitoring_agent.errors import PublishError


class FakeConnector:
    """In-memory stand-in for NATSConnector.

    ``fail_attempts`` lists the 1-based publish attempts that should fail.
    """

    def __init__(self, fail_attempts: set[int] | None = None) -> None:
        self.fail_attempts = fail_attempts or set()
        self.attempts: list[tuple[str, float]] = []
        self.published: list[tuple[str, BaseModel]] = []
        self.subscriptions: dict[str, Callable[[Any], Awaitable[None]]] = {}
        self.closed = False

    async def publish(self, subject: str, message: BaseModel) -> None:
        self.attempts.append((subject, time.monotonic()))
        if len(self.attempts) in self.fail_attempts:
            raise PublishError(subject, "nats: timeout")
        self.published.append((subject, message))

    async def subscribe(self, name: str, handler: Callable[[Any], Awaitable[None]]) -> tuple[str, str]:
        self.subscriptions[name] = handler
        return f"test.subject.{name}", f"test.queue.{name}"

    async def close(self) -> None:
        self.closed = True

    def attempts_on(self, subject: str) -> list[float]:
        return [t for s, t in self.attempts if s == subject]


class FakeMsg:
    """Minimal nats Msg with an awaitable ``respond``."""

    def __init__(self, data: bytes = b"", subject: str = "test.subject.ping", fail: bool = False) -> None:
        self.data = data
        self.subject = subject
        self.reply = "_INBOX.test"
        self.fail = fail
        self.responses: list[bytes] = []

    async def respond(self, data: bytes) -> None:
        if self.fail:
            raise RuntimeError("nats: connection closed")
        self.responses.append(data)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the running loop until it holds or time runs out."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()
