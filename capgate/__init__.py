"""capgate: Capacities API gateway exposed as MCP tools."""

__version__ = "0.1.0"
