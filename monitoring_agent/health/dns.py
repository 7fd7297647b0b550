"""Periodic DNS health check.

Every cycle resolves the external hostnames, then the internal ones, and
publishes a single ``DNSCheckResult``. A hostname that fails to resolve is
recorded with its error and never stops the rest of the cycle.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from monitoring_agent.bus.connector import Publisher
from monitoring_agent.health.models import DNSCheckResult, DNSLookup, LookupType, now_timestamp
from monitoring_agent.health.periodic import PeriodicTask
from monitoring_agent.health.resolver import Resolved, Resolver, Unresolved, lookup_host
from monitoring_agent.stats import DNSCounters

logger = logging.getLogger(__name__)

DEFAULT_DNS_INTERVAL = 60.0  # 1 minute


@dataclass(frozen=True)
class DNSCheckConfiguration:
    node: str
    interval: float = DEFAULT_DNS_INTERVAL
    internal_hostnames: tuple[str, ...] = ()
    external_hostnames: tuple[str, ...] = ()

    @property
    def hostnames(self) -> list[tuple[str, LookupType]]:
        """Hostnames in lookup order, each with its direction tag."""
        return [(h, LookupType.EXTERNAL) for h in self.external_hostnames] + [
            (h, LookupType.INTERNAL) for h in self.internal_hostnames
        ]


def dns_subject(namespace: str) -> str:
    return f"{namespace}.monitoring.dns"


def to_lookup(hostname: str, lookup_type: LookupType, resolution: Resolved | Unresolved) -> DNSLookup:
    """Exactly one of ``addresses`` and ``error`` is non-empty on the result."""
    if isinstance(resolution, Resolved) and resolution.addresses:
        return DNSLookup(host=hostname, addresses=list(resolution.addresses), type=lookup_type)
    if isinstance(resolution, Resolved):
        return DNSLookup(host=hostname, type=lookup_type, error=f"lookup {hostname}: no addresses found")
    if isinstance(resolution, Unresolved):
        reason = resolution.reason or f"lookup {hostname}: unknown error"
        return DNSLookup(host=hostname, type=lookup_type, error=reason)
    raise TypeError(f"unexpected resolution: {resolution!r}")


class DNSCheckTask(PeriodicTask):
    """Resolves the configured hostnames and publishes the results."""

    name = "dns check"

    def __init__(
        self,
        config: DNSCheckConfiguration,
        publisher: Publisher,
        subject: str,
        resolver: Resolver = lookup_host,
        counters: DNSCounters | None = None,
    ) -> None:
        self.dns_counters = counters if counters is not None else DNSCounters()
        super().__init__(publisher, subject, config.interval, counters=self.dns_counters)
        self.config = config
        self.resolver = resolver
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="dns-lookup")

    async def stop(self) -> None:
        await super().stop()
        self._executor.shutdown(wait=False)

    async def resolve_all(self) -> list[DNSLookup]:
        """Resolve every hostname, external first, in configured order."""
        loop = asyncio.get_running_loop()
        lookups: list[DNSLookup] = []

        for hostname, lookup_type in self.config.hostnames:
            resolution = await loop.run_in_executor(self._executor, self.resolver, hostname)
            lookup = to_lookup(hostname, lookup_type, resolution)
            self.dns_counters.lookups += 1
            if not lookup.ok:
                self.dns_counters.lookup_failures += 1
                logger.debug("DNS lookup failed: %s", lookup.error)
            lookups.append(lookup)

        return lookups

    async def check(self) -> DNSCheckResult:
        lookups = await self.resolve_all()
        return DNSCheckResult(node=self.config.node, lookups=lookups, dateSent=now_timestamp())

    async def run_cycle(self) -> None:
        result = await self.check()
        if await self.publish(result):
            failed = sum(1 for lookup in result.lookups if not lookup.ok)
            logger.debug(
                "DNS check published: %d lookups, %d failed",
                len(result.lookups), failed,
            )
