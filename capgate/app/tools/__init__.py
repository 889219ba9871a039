"""MCP tool layer for the Capacities gateway."""

from capgate.app.tools.server import CapacitiesTools, build_server

__all__ = ["CapacitiesTools", "build_server"]
