"""Tests for the monitoring scheduler."""

from __future__ import annotations

import asyncio

from conftest import FakeConnector, wait_until
from monitoring_agent.health.dns import DNSCheckConfiguration
from monitoring_agent.health.heartbeat import HeartbeatConfiguration
from monitoring_agent.health.resolver import Resolved
from monitoring_agent.health.scheduler import MonitoringScheduler


def make_scheduler(connector: FakeConnector) -> MonitoringScheduler:
    return MonitoringScheduler(
        connector,
        DNSCheckConfiguration(node="node-1", interval=0.05, external_hostnames=("a.example",)),
        HeartbeatConfiguration(node="node-1", interval=0.05),
        namespace="example.qa",
        resolver=lambda hostname: Resolved(("10.0.0.1",)),
    )


class TestMonitoringScheduler:
    def test_subjects_use_namespace(self, connector: FakeConnector) -> None:
        scheduler = make_scheduler(connector)
        assert scheduler.dns.subject == "example.qa.monitoring.dns"
        assert scheduler.heartbeat.subject == "example.qa.monitoring.heartbeat"

    def test_start_launches_everything(self, connector: FakeConnector) -> None:
        scheduler = make_scheduler(connector)

        async def scenario() -> None:
            await scheduler.start()
            assert "ping" in connector.subscriptions
            await wait_until(
                lambda: connector.attempts_on(scheduler.dns.subject)
                and connector.attempts_on(scheduler.heartbeat.subject)
            )
            await scheduler.stop()

        asyncio.run(scenario())

        assert not scheduler.dns.running
        assert not scheduler.heartbeat.running
        dns_result = next(m for s, m in connector.published if s == scheduler.dns.subject)
        assert dns_result.node == "node-1"
        assert dns_result.lookups[0].addresses == ["10.0.0.1"]

    def test_shared_stats(self, connector: FakeConnector) -> None:
        scheduler = make_scheduler(connector)
        assert scheduler.stats.node == "node-1"
        assert scheduler.dns.counters is scheduler.stats.dns
        assert scheduler.heartbeat.counters is scheduler.stats.heartbeat
        assert scheduler.ping.counters is scheduler.stats.ping

    def test_nothing_runs_before_start(self, connector: FakeConnector) -> None:
        make_scheduler(connector)
        assert connector.attempts == []
        assert connector.subscriptions == {}
