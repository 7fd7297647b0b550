"""Health subsystem — resolver, DNS check and heartbeat loops, scheduler."""

from .dns import DNSCheckConfiguration, DNSCheckTask
from .heartbeat import HeartbeatConfiguration, HeartbeatTask
from .models import DNSCheckResult, DNSLookup, LookupType, MonitoringHeartbeat
from .scheduler import MonitoringScheduler
