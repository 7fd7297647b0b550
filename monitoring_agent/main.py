"""Entry point for the monitoring agent — `monitoring-agent` console script."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel

from monitoring_agent import __version__
from monitoring_agent.api.server import create_app
from monitoring_agent.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_DOTENV_PATH,
    DEFAULT_ENV_PREFIX,
    AgentConfig,
    build_agent_config,
    load_settings,
)
from monitoring_agent.errors import ConfigurationError

console = Console()

SERVICE_NAME = "monitoring-agent"

# logrus-style names accepted on the command line
LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

UVICORN_LOG_LEVELS = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "critical",
}


def setup_logging(level_name: str) -> int:
    level = LOG_LEVELS[level_name.lower()]
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    return level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME,
        description="Publishes DNS checks and heartbeats for this node over NATS",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="The path to the config file")
    parser.add_argument("--dotenv-path", default=DEFAULT_DOTENV_PATH, help="The path to the env file to load")
    parser.add_argument(
        "--log-level",
        default="info",
        type=str.lower,
        choices=sorted(LOG_LEVELS),
        help="One of trace, debug, info, warn, error, fatal, or panic.",
    )
    parser.add_argument(
        "--env-prefix",
        default=DEFAULT_ENV_PREFIX,
        help="The prefix to look for when setting configuration setting in environment variables",
    )
    parser.add_argument(
        "--vars-port",
        default=60000,
        type=int,
        help="The port to listen on for requests to /debug/vars",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def print_banner(config: AgentConfig, vars_port: int) -> None:
    console.print(
        Panel.fit(
            f"[bold]Monitoring Agent[/bold] v{__version__}\n"
            f"Node:      {config.node}\n"
            f"NATS:      {', '.join(config.connector.servers)}\n"
            f"DNS:       {len(config.dns.external_hostnames)} external, "
            f"{len(config.dns.internal_hostnames)} internal every {config.dns.interval:g}s\n"
            f"Heartbeat: every {config.heartbeat.interval:g}s\n"
            f"Vars:      :{vars_port}/debug/vars",
            title=SERVICE_NAME,
            border_style="green",
        )
    )


def main(argv: list[str] | None = None) -> None:
    """Read the configuration, then serve until terminated."""
    args = build_parser().parse_args(argv)
    level = setup_logging(args.log_level)

    try:
        settings = load_settings(args.config, args.dotenv_path, args.env_prefix)
        config = build_agent_config(settings, args.env_prefix)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    print_banner(config, args.vars_port)

    uvicorn.run(
        create_app(config),
        host="0.0.0.0",
        port=args.vars_port,
        log_level=UVICORN_LOG_LEVELS[level],
    )


if __name__ == "__main__":
    main()
