"""HTTP surface — the debug endpoint that keeps the agent running."""

from .server import create_app
