"""Bus layer — NATS connection, publishing and the ping responder."""

from .connector import ConnectorSettings, NATSConnector, Publisher
from .ping import PingResponder
