"""Liveness heartbeat — publishes the node name every interval."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from monitoring_agent.bus.connector import Publisher
from monitoring_agent.health.models import MonitoringHeartbeat, now_timestamp
from monitoring_agent.health.periodic import PeriodicTask
from monitoring_agent.stats import TaskCounters

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_INTERVAL = 10.0  # seconds


@dataclass(frozen=True)
class HeartbeatConfiguration:
    node: str
    interval: float = DEFAULT_HEARTBEAT_INTERVAL


def heartbeat_subject(namespace: str) -> str:
    return f"{namespace}.monitoring.heartbeat"


class HeartbeatTask(PeriodicTask):
    name = "heartbeat"

    def __init__(
        self,
        config: HeartbeatConfiguration,
        publisher: Publisher,
        subject: str,
        counters: TaskCounters | None = None,
    ) -> None:
        super().__init__(publisher, subject, config.interval, counters=counters)
        self.config = config

    def beat(self) -> MonitoringHeartbeat:
        return MonitoringHeartbeat(node=self.config.node, dateSent=now_timestamp())

    async def run_cycle(self) -> None:
        if await self.publish(self.beat()):
            logger.debug("heartbeat published for %s", self.config.node)
