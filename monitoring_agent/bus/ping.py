"""Ping responder — answers liveness probes sent by other services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nats.aio.msg import Msg

from monitoring_agent.stats import PingCounters

if TYPE_CHECKING:
    from monitoring_agent.bus.connector import NATSConnector

logger = logging.getLogger(__name__)

PING_SUBJECT = "ping"
PONG = b"pong"


class PingResponder:
    """Replies ``pong`` to every request on the scoped ``ping`` subject."""

    def __init__(self, connector: NATSConnector, counters: PingCounters | None = None) -> None:
        self.connector = connector
        self.counters = counters or PingCounters()

    async def start(self) -> tuple[str, str]:
        subject, queue = await self.connector.subscribe(PING_SUBJECT, self.handle)
        logger.info("subscribed to %s on queue %s via NATS", subject, queue)
        return subject, queue

    async def handle(self, msg: Msg) -> None:
        """Reply to one request; the payload is ignored."""
        self.counters.received += 1
        logger.info("ping message received")
        try:
            await msg.respond(PONG)
        except Exception:
            self.counters.reply_failures += 1
            logger.exception("ping reply on %s failed", msg.subject)
