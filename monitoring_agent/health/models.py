"""Pydantic models for the records published on the monitoring subjects.

Field names follow the JSON the rest of the platform already consumes
(camelCase, every field emitted even when empty).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def now_timestamp() -> str:
    """Send timestamp for a record, ISO-8601 in UTC."""
    return datetime.now(timezone.utc).isoformat()


class LookupType(str, Enum):
    INTERNAL = "INTERNAL_LOOKUP"
    EXTERNAL = "EXTERNAL_LOOKUP"


# ── Records ──────────────────────────────────────────────────────────────────


class DNSLookup(BaseModel):
    host: str
    addresses: list[str] = Field(default_factory=list)
    type: LookupType
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


class DNSCheckResult(BaseModel):
    node: str
    lookups: list[DNSLookup] = Field(default_factory=list)
    dateSent: str = ""


class MonitoringHeartbeat(BaseModel):
    node: str
    dateSent: str = ""
