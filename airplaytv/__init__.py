"""Video source aggregation: source handlers, registry, helpers and a websocket relay hub."""

__version__ = "0.1.0"