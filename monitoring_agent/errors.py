"""Exception hierarchy shared by the agent's layers."""

from __future__ import annotations


class MonitoringAgentError(Exception):
    """Base class for all monitoring-agent errors."""


class ConfigurationError(MonitoringAgentError):
    """Raised at startup when a setting is missing or malformed."""


class BusConnectionError(MonitoringAgentError):
    """Raised when the NATS connection cannot be established."""


class PublishError(MonitoringAgentError):
    """Raised when a message could not be sent on the bus."""

    def __init__(self, subject: str, reason: str) -> None:
        self.subject = subject
        self.reason = reason
        super().__init__(f"publish to {subject} failed: {reason}")
