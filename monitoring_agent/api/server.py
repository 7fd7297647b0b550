"""Debug HTTP server — ``/debug/vars`` plus the agent's lifespan.

The server is what keeps the process alive. Its lifespan opens the NATS
connection, starts the monitoring scheduler, and tears both down on exit.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, Request

from monitoring_agent import __version__
from monitoring_agent.bus.connector import NATSConnector
from monitoring_agent.config import AgentConfig
from monitoring_agent.health.scheduler import MonitoringScheduler
from monitoring_agent.stats import AgentStats

logger = logging.getLogger(__name__)

debug_router = APIRouter()


@debug_router.get("/debug/vars")
def debug_vars(request: Request) -> dict[str, Any]:
    """Runtime counters in the spirit of Go's expvar."""
    stats: AgentStats = request.app.state.stats
    return {
        "cmdline": sys.argv,
        "version": __version__,
        "monitoring": stats.to_dict(),
    }


# ── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect to NATS and run the monitoring tasks for the app's lifetime."""
    config: AgentConfig = app.state.config

    connector = await NATSConnector.connect(config.connector)
    app.state.connector = connector

    scheduler = MonitoringScheduler(
        connector,
        config.dns,
        config.heartbeat,
        namespace=config.namespace,
        stats=app.state.stats,
    )
    app.state.scheduler = scheduler

    try:
        await scheduler.start()
        yield
    finally:
        await scheduler.stop()
        await connector.close()


# ── App factory ──────────────────────────────────────────────────────────────


def create_app(config: AgentConfig) -> FastAPI:
    """Create the agent's FastAPI application."""
    app = FastAPI(
        title="monitoring-agent",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config
    app.state.stats = AgentStats(node=config.node)
    app.include_router(debug_router)
    return app
