"""monitoring-agent — node-resident DNS and heartbeat reporter for the NATS bus."""

__version__ = "0.1.0"
