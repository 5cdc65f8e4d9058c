"""Route group exports."""

from . import health, pois, routes, waypoints

__all__ = ["routes", "pois", "health", "waypoints"]
