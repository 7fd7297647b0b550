"""NATS connector — the single bus connection shared by every task.

Subscriptions are scoped under a base subject and a base queue group so
that only one agent in a fleet answers any given request. Publishing is
bounded by a send timeout and reports failure as ``PublishError``.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import nats
from nats.aio.client import Client
from nats.aio.msg import Msg
from nats.errors import Error as NATSError
from pydantic import BaseModel

from monitoring_agent.errors import BusConnectionError, PublishError

logger = logging.getLogger(__name__)

DEFAULT_PUBLISH_TIMEOUT = 5.0  # seconds

MessageHandler = Callable[[Msg], Awaitable[None]]


class Publisher(Protocol):
    """Anything the check tasks can publish records through."""

    async def publish(self, subject: str, message: BaseModel) -> None:
        ...


@dataclass(frozen=True)
class ConnectorSettings:
    """Everything needed to open the bus connection."""

    base_subject: str
    base_queue: str
    servers: tuple[str, ...]
    creds_path: str = ""
    tls_cert_path: str = ""
    tls_key_path: str = ""
    ca_path: str = ""
    max_reconnects: int = 10
    reconnect_wait: float = 1.0  # seconds
    publish_timeout: float = DEFAULT_PUBLISH_TIMEOUT
    name: str = "monitoring-agent"


def build_tls_context(settings: ConnectorSettings) -> ssl.SSLContext | None:
    """Client TLS context from the CA bundle and the client cert/key pair."""
    if not (settings.ca_path or settings.tls_cert_path):
        return None
    try:
        ctx = ssl.create_default_context(
            purpose=ssl.Purpose.SERVER_AUTH,
            cafile=settings.ca_path or None,
        )
        if settings.tls_cert_path:
            ctx.load_cert_chain(settings.tls_cert_path, settings.tls_key_path or None)
    except (OSError, ssl.SSLError) as e:
        raise BusConnectionError(f"unable to load NATS TLS material: {e}") from e
    return ctx


class NATSConnector:
    """Wraps one connected ``nats.aio.client.Client``.

    The client serializes writes internally, so ``publish`` and ``subscribe``
    may be called from any task on the loop without extra locking.
    """

    def __init__(
        self,
        conn: Client,
        base_subject: str,
        base_queue: str,
        publish_timeout: float = DEFAULT_PUBLISH_TIMEOUT,
    ) -> None:
        self.conn = conn
        self.base_subject = base_subject
        self.base_queue = base_queue
        self.publish_timeout = publish_timeout

    @classmethod
    async def connect(cls, settings: ConnectorSettings) -> NATSConnector:
        """Open the connection described by ``settings``."""
        options: dict[str, Any] = {
            "servers": list(settings.servers),
            "name": settings.name,
            "max_reconnect_attempts": settings.max_reconnects,
            "reconnect_time_wait": settings.reconnect_wait,
            "error_cb": _on_error,
            "disconnected_cb": _on_disconnected,
            "reconnected_cb": _on_reconnected,
            "closed_cb": _on_closed,
        }
        tls = build_tls_context(settings)
        if tls is not None:
            options["tls"] = tls
        if settings.creds_path:
            options["user_credentials"] = settings.creds_path

        try:
            conn = await nats.connect(**options)
        except (NATSError, OSError, asyncio.TimeoutError) as e:
            raise BusConnectionError(
                f"unable to connect to NATS at {', '.join(settings.servers)}: {e}"
            ) from e

        logger.info("Connected to NATS cluster %s", ", ".join(settings.servers))
        return cls(
            conn,
            base_subject=settings.base_subject,
            base_queue=settings.base_queue,
            publish_timeout=settings.publish_timeout,
        )

    # -- subscriptions ---------------------------------------------------------

    def scoped_subject(self, name: str) -> str:
        return f"{self.base_subject}.{name}"

    def scoped_queue(self, name: str) -> str:
        return f"{self.base_queue}.{name}"

    async def subscribe(self, name: str, handler: MessageHandler) -> tuple[str, str]:
        """Queue-subscribe ``handler`` to ``<base subject>.<name>``.

        Returns the full subject and queue group that were used.
        """
        subject = self.scoped_subject(name)
        queue = self.scoped_queue(name)
        try:
            await self.conn.subscribe(subject, queue=queue, cb=handler)
        except NATSError as e:
            raise BusConnectionError(f"unable to subscribe to {subject}: {e}") from e
        return subject, queue

    # -- publishing ------------------------------------------------------------

    async def publish(self, subject: str, message: BaseModel) -> None:
        """Send ``message`` as JSON and wait for the server to take it.

        Raises ``PublishError`` on transport errors or once the send timeout
        expires; never waits longer than ``publish_timeout``.
        """
        payload = message.model_dump_json().encode()
        try:
            await asyncio.wait_for(self._send(subject, payload), timeout=self.publish_timeout)
        except asyncio.TimeoutError as e:
            raise PublishError(subject, f"timed out after {self.publish_timeout}s") from e
        except NATSError as e:
            raise PublishError(subject, f"{type(e).__name__}: {e}") from e

    async def _send(self, subject: str, payload: bytes) -> None:
        await self.conn.publish(subject, payload)
        await self.conn.flush(timeout=self.publish_timeout)

    async def close(self) -> None:
        """Drain subscriptions and close the connection."""
        if self.conn.is_closed:
            return
        try:
            await self.conn.drain()
        except NATSError:
            logger.warning("NATS drain failed, closing connection", exc_info=True)
            await self.conn.close()


# ── Connection event callbacks ──────────────────────────────────────────────


async def _on_error(e: Exception) -> None:
    logger.error("NATS error: %s", e)


async def _on_disconnected() -> None:
    logger.warning("Disconnected from NATS")


async def _on_reconnected() -> None:
    logger.info("Reconnected to NATS")


async def _on_closed() -> None:
    logger.info("NATS connection closed")
