"""Tests for the heartbeat task and its independence from the DNS task."""

from __future__ import annotations

import asyncio
import time

from conftest import FakeConnector, wait_until
from monitoring_agent.health.dns import DNSCheckConfiguration, DNSCheckTask, dns_subject
from monitoring_agent.health.heartbeat import (
    HeartbeatConfiguration,
    HeartbeatTask,
    heartbeat_subject,
)
from monitoring_agent.health.models import MonitoringHeartbeat
from monitoring_agent.health.resolver import Resolved

SUBJECT = heartbeat_subject("cyverse.discoenv")


def make_task(connector: FakeConnector, interval: float = 10.0) -> HeartbeatTask:
    return HeartbeatTask(HeartbeatConfiguration(node="node-1", interval=interval), connector, SUBJECT)


class TestHeartbeat:
    def test_subject(self) -> None:
        assert SUBJECT == "cyverse.discoenv.monitoring.heartbeat"

    def test_default_interval(self) -> None:
        assert HeartbeatConfiguration(node="n").interval == 10.0

    def test_beat_carries_node_and_timestamp(self, connector: FakeConnector) -> None:
        beat = make_task(connector).beat()
        assert beat.node == "node-1"
        assert "T" in beat.dateSent

    def test_cycle_publishes_once(self, connector: FakeConnector) -> None:
        task = make_task(connector)
        asyncio.run(task.run_cycle())

        assert len(connector.published) == 1
        subject, beat = connector.published[0]
        assert subject == SUBJECT
        assert isinstance(beat, MonitoringHeartbeat)
        assert task.counters.published == 1

    def test_publish_failure_is_counted_not_raised(self) -> None:
        connector = FakeConnector(fail_attempts={1})
        task = make_task(connector)
        asyncio.run(task.run_cycle())

        assert connector.published == []
        assert task.counters.publish_failures == 1

    def test_loop_recovers_after_failure(self) -> None:
        connector = FakeConnector(fail_attempts={1, 2})
        task = make_task(connector, interval=0.01)

        async def scenario() -> None:
            await task.start()
            await wait_until(lambda: len(connector.published) >= 1)
            await task.stop()

        asyncio.run(scenario())

        assert task.counters.publish_failures == 2
        assert len(connector.attempts) >= 3

    def test_cycles_are_spaced_by_at_least_the_interval(self, connector: FakeConnector) -> None:
        interval = 0.03
        task = make_task(connector, interval=interval)

        async def scenario() -> None:
            await task.start()
            await wait_until(lambda: len(connector.attempts) >= 4)
            await task.stop()

        asyncio.run(scenario())

        times = connector.attempts_on(SUBJECT)
        assert all(b - a >= interval - 1e-3 for a, b in zip(times, times[1:]))


class TestIndependence:
    def test_slow_dns_does_not_block_heartbeats(self, connector: FakeConnector) -> None:
        def slow_resolver(hostname: str) -> Resolved:
            time.sleep(0.3)
            return Resolved(("10.0.0.1",))

        dns = DNSCheckTask(
            DNSCheckConfiguration(node="node-1", interval=60.0, external_hostnames=("slow.example",)),
            connector,
            dns_subject("cyverse.discoenv"),
            resolver=slow_resolver,
        )
        heartbeat = make_task(connector, interval=0.02)

        async def scenario() -> None:
            await dns.start()
            await heartbeat.start()
            await wait_until(lambda: len(connector.attempts_on(dns.subject)) >= 1)
            await heartbeat.stop()
            await dns.stop()

        asyncio.run(scenario())

        dns_time = connector.attempts_on(dns.subject)[0]
        beats_before_dns = [t for t in connector.attempts_on(SUBJECT) if t < dns_time]
        assert len(beats_before_dns) >= 3
