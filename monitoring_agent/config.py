"""Agent configuration — YAML file, dotenv file and prefixed environment.

Precedence, highest first: process environment, dotenv file, YAML config
file, field defaults. Environment names are the prefix plus the dotted
config key with dots turned into underscores, so ``nats.tls.ca.cert`` in the
YAML file is ``DISCOENV_NATS_TLS_CA_CERT`` in the environment.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from monitoring_agent.bus.connector import DEFAULT_PUBLISH_TIMEOUT, ConnectorSettings
from monitoring_agent.errors import ConfigurationError
from monitoring_agent.health.dns import DEFAULT_DNS_INTERVAL, DNSCheckConfiguration
from monitoring_agent.health.heartbeat import DEFAULT_HEARTBEAT_INTERVAL, HeartbeatConfiguration

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/etc/cyverse/de/configs/service.yml"
DEFAULT_DOTENV_PATH = "/etc/cyverse/de/env/service.env"
DEFAULT_ENV_PREFIX = "DISCOENV_"
DEFAULT_NAMESPACE = "cyverse.discoenv"


class AgentSettings(BaseSettings):
    """Raw settings as read from the config sources.

    Keyword arguments passed to the constructor act as the config-file
    layer and sit below the dotenv file and the environment.
    """

    model_config = {"env_prefix": DEFAULT_ENV_PREFIX, "env_file_encoding": "utf-8", "extra": "ignore"}

    node: str = ""

    # NATS
    nats_cluster: str = ""
    nats_tls_cert: str = ""
    nats_tls_key: str = ""
    nats_tls_ca_cert: str = ""
    nats_creds_path: str = ""
    nats_reconnects_max: int = 10
    nats_reconnects_wait: int = 1  # seconds
    nats_basesubject: str = ""
    nats_basequeue: str = ""
    nats_publish_timeout: str = ""

    # Checks (durations are Go-style strings: 500ms, 10s, 1m30s)
    dns_internal_hostnames: str = ""
    dns_external_hostnames: str = ""
    dns_checkinterval: str = ""
    heartbeat_interval: str = ""

    monitoring_namespace: str = DEFAULT_NAMESPACE

    @field_validator("dns_internal_hostnames", "dns_external_hostnames", mode="before")
    @classmethod
    def _join_lists(cls, value: Any) -> Any:
        # YAML may give a list where the environment gives "a,b,c"
        if isinstance(value, (list, tuple)):
            return ",".join(str(v) for v in value)
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, dotenv_settings, init_settings


# ── Config file ──────────────────────────────────────────────────────────────


def flatten_config(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested YAML mappings into underscore-joined field names.

    ``{"nats": {"tls": {"cert": "x"}}}`` becomes ``{"nats_tls_cert": "x"}``.
    Scalars are passed through as strings, lists are kept for the
    validators to join, and nulls are dropped.
    """
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        name = name.lower().replace(".", "_").replace("-", "_")
        if isinstance(value, dict):
            flat.update(flatten_config(value, name))
        elif value is None:
            continue
        elif isinstance(value, list):
            flat[name] = value
        else:
            flat[name] = str(value)
    return flat


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Load the YAML config file; a missing file yields no settings."""
    config_path = Path(path)
    if not config_path.is_file():
        logger.warning("Config file %s not found, using environment only", config_path)
        return {}

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"unable to read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {config_path} must contain a mapping")
    return flatten_config(data)


def load_settings(
    config_path: str | Path = DEFAULT_CONFIG_PATH,
    dotenv_path: str | Path = DEFAULT_DOTENV_PATH,
    env_prefix: str = DEFAULT_ENV_PREFIX,
) -> AgentSettings:
    """Merge the YAML file, the dotenv file and the environment."""
    values = read_config_file(config_path)
    try:
        settings = AgentSettings(_env_prefix=env_prefix, _env_file=str(dotenv_path), **values)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e
    logger.info("Done reading config from %s", config_path)
    return settings


# ── Durations ────────────────────────────────────────────────────────────────


_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION = re.compile(r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+")


def parse_duration(text: str) -> float:
    """Parse a Go-style duration string (``1h30m``, ``10s``) into seconds."""
    value = text.strip()
    if value in ("0", "+0", "-0"):
        return 0.0
    if not _DURATION.fullmatch(value):
        raise ConfigurationError(f"invalid duration {text!r}")

    sign = -1.0 if value.startswith("-") else 1.0
    total = sum(
        float(number) * _DURATION_UNITS[unit]
        for number, unit in _DURATION_PART.findall(value)
    )
    return sign * total


def parse_interval(text: str, default: float, key: str) -> float:
    """An empty setting means ``default``; anything else must be positive."""
    if not text.strip():
        return default
    try:
        seconds = parse_duration(text)
    except ConfigurationError as e:
        raise ConfigurationError(f"{key}: {e}") from e
    if seconds <= 0:
        raise ConfigurationError(f"{key}: interval must be positive, got {text!r}")
    return seconds


def split_hostnames(setting: str) -> tuple[str, ...]:
    """Comma-separated hostnames, each trimmed; order and duplicates kept."""
    if not setting:
        return ()
    return tuple(part.strip() for part in setting.split(","))


# ── Agent configuration ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class AgentConfig:
    """Validated configuration handed to the runtime."""

    node: str
    namespace: str
    dns: DNSCheckConfiguration
    heartbeat: HeartbeatConfiguration
    connector: ConnectorSettings


def _env_name(env_prefix: str, field_name: str) -> str:
    return f"{env_prefix}{field_name.upper()}"


def _require(settings: AgentSettings, field_name: str, key: str, env_prefix: str) -> str:
    value = getattr(settings, field_name).strip()
    if not value:
        raise ConfigurationError(
            f"The {_env_name(env_prefix, field_name)} environment variable "
            f"or {key} configuration value must be set"
        )
    return value


def init_dns_checks(settings: AgentSettings, node: str) -> DNSCheckConfiguration:
    return DNSCheckConfiguration(
        node=node,
        interval=parse_interval(settings.dns_checkinterval, DEFAULT_DNS_INTERVAL, "dns.checkinterval"),
        internal_hostnames=split_hostnames(settings.dns_internal_hostnames),
        external_hostnames=split_hostnames(settings.dns_external_hostnames),
    )


def init_heartbeat(settings: AgentSettings, node: str) -> HeartbeatConfiguration:
    return HeartbeatConfiguration(
        node=node,
        interval=parse_interval(settings.heartbeat_interval, DEFAULT_HEARTBEAT_INTERVAL, "heartbeat.interval"),
    )


def init_nats(settings: AgentSettings, env_prefix: str = DEFAULT_ENV_PREFIX) -> ConnectorSettings:
    cluster = _require(settings, "nats_cluster", "nats.cluster", env_prefix)
    tls_cert = _require(settings, "nats_tls_cert", "nats.tls.cert", env_prefix)
    tls_key = _require(settings, "nats_tls_key", "nats.tls.key", env_prefix)
    ca_cert = _require(settings, "nats_tls_ca_cert", "nats.tls.ca.cert", env_prefix)
    creds_path = _require(settings, "nats_creds_path", "nats.creds.path", env_prefix)
    base_subject = _require(settings, "nats_basesubject", "nats.basesubject", env_prefix)
    base_queue = _require(settings, "nats_basequeue", "nats.basequeue", env_prefix)

    logger.info("nats.cluster is set to '%s'", cluster)
    logger.info("NATS TLS cert file is %s", tls_cert)
    logger.info("NATS TLS key file is %s", tls_key)
    logger.info("NATS CA cert file is %s", ca_cert)
    logger.info("NATS creds file is %s", creds_path)
    logger.info("NATS max reconnects is %d", settings.nats_reconnects_max)
    logger.info("NATS reconnect wait is %d", settings.nats_reconnects_wait)

    return ConnectorSettings(
        base_subject=base_subject,
        base_queue=base_queue,
        servers=tuple(s.strip() for s in cluster.split(",") if s.strip()),
        creds_path=creds_path,
        tls_cert_path=tls_cert,
        tls_key_path=tls_key,
        ca_path=ca_cert,
        max_reconnects=settings.nats_reconnects_max,
        reconnect_wait=float(settings.nats_reconnects_wait),
        publish_timeout=parse_interval(
            settings.nats_publish_timeout, DEFAULT_PUBLISH_TIMEOUT, "nats.publish.timeout",
        ),
    )


def build_agent_config(settings: AgentSettings, env_prefix: str = DEFAULT_ENV_PREFIX) -> AgentConfig:
    """Validate ``settings``; raises ``ConfigurationError`` on the first problem."""
    node = _require(settings, "node", "node", env_prefix)
    namespace = settings.monitoring_namespace.strip() or DEFAULT_NAMESPACE
    return AgentConfig(
        node=node,
        namespace=namespace,
        dns=init_dns_checks(settings, node),
        heartbeat=init_heartbeat(settings, node),
        connector=init_nats(settings, env_prefix),
    )
