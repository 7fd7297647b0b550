"""Monitoring scheduler — launches the ping responder and both check loops.

The scheduler only starts things. Once running, the DNS and heartbeat
loops share nothing but the bus connection and the node name.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from monitoring_agent.bus.ping import PingResponder
from monitoring_agent.health.dns import DNSCheckConfiguration, DNSCheckTask, dns_subject
from monitoring_agent.health.heartbeat import HeartbeatConfiguration, HeartbeatTask, heartbeat_subject
from monitoring_agent.health.resolver import Resolver, lookup_host
from monitoring_agent.stats import AgentStats

if TYPE_CHECKING:
    from monitoring_agent.bus.connector import NATSConnector

logger = logging.getLogger(__name__)


class MonitoringScheduler:
    def __init__(
        self,
        connector: NATSConnector,
        dns_config: DNSCheckConfiguration,
        heartbeat_config: HeartbeatConfiguration,
        namespace: str,
        stats: AgentStats | None = None,
        resolver: Resolver = lookup_host,
    ) -> None:
        self.connector = connector
        self.stats = stats or AgentStats(node=dns_config.node)
        self.ping = PingResponder(connector, counters=self.stats.ping)
        self.dns = DNSCheckTask(
            dns_config,
            connector,
            dns_subject(namespace),
            resolver=resolver,
            counters=self.stats.dns,
        )
        self.heartbeat = HeartbeatTask(
            heartbeat_config,
            connector,
            heartbeat_subject(namespace),
            counters=self.stats.heartbeat,
        )

    async def start(self) -> None:
        """Subscribe the ping responder, then launch both loops."""
        await self.ping.start()
        await self.dns.start()
        await self.heartbeat.start()
        logger.info(
            "Monitoring started for node %s: %d external, %d internal hostnames",
            self.stats.node,
            len(self.dns.config.external_hostnames),
            len(self.dns.config.internal_hostnames),
        )

    async def stop(self) -> None:
        await self.dns.stop()
        await self.heartbeat.stop()
        logger.info("Monitoring stopped")
