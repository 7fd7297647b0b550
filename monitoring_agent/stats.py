"""Runtime counters exposed on ``/debug/vars``.

Each counter group is written only by the task that owns it.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class TaskCounters:
    cycles: int = 0
    published: int = 0
    publish_failures: int = 0
    last_cycle: str | None = None
    last_error: str | None = None


@dataclass
class DNSCounters(TaskCounters):
    lookups: int = 0
    lookup_failures: int = 0


@dataclass
class PingCounters:
    received: int = 0
    reply_failures: int = 0


@dataclass
class AgentStats:
    node: str = ""
    dns: DNSCounters = field(default_factory=DNSCounters)
    heartbeat: TaskCounters = field(default_factory=TaskCounters)
    ping: PingCounters = field(default_factory=PingCounters)
    started_at: float = field(default_factory=time.time)

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.started_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node,
            "uptime_seconds": round(self.uptime_seconds, 1),
            "dns": asdict(self.dns),
            "heartbeat": asdict(self.heartbeat),
            "ping": asdict(self.ping),
        }
